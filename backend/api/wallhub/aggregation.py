"""Read side: merge both partitions into paginated / searchable / related result sets.

Every function here is read-only. Reads take no locks; the two partition
queries may observe slightly different snapshots.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import String, and_, func, literal, or_, select, union_all
from sqlalchemy.engine import Engine

from wallhub import db, repo
from wallhub.errors import InvalidArgument, NotFound
from wallhub.models import APPROVED, CURATED, PENDING, USER, ContentItem, Page, content_table
from wallhub.normalize import like_pattern, like_prefix, normalize_tags, validate_id

DEFAULT_RELATED_LIMIT = 8

_ESCAPE = "\\"


# ----------------------------
# Helpers
# ----------------------------

def _clamp(page: Any, limit: Any) -> Tuple[int, int]:
    """page/limit are clamped to >= 1. No upper bound here: that is caller policy."""
    try:
        p = int(page)
    except (TypeError, ValueError):
        p = 1
    try:
        n = int(limit)
    except (TypeError, ValueError):
        n = 1
    return max(p, 1), max(n, 1)


def _partitions_for(partition_filter: Optional[str]) -> Tuple[str, ...]:
    """
    Allowed filters (explicit allow-list):
      - None / "" / "all" -> both (curated first)
      - "curated"
      - "user"
    """
    f = (partition_filter or "all").strip().lower()
    if f == "all":
        return (CURATED, USER)
    if f in (CURATED, USER):
        return (f,)
    raise InvalidArgument(f"Unknown partition filter: {partition_filter}")


def _visible(partition: str, t):
    # Browsing shows approved items only; for user rows is_approved mirrors state.
    if partition == USER:
        return t.c.is_approved.is_(True)
    return t.c.state == APPROVED


def _has_tag(partition: str, t, condition):
    return (
        select(db.content_tags.c.content_id)
        .where(
            db.content_tags.c.collection == partition,
            db.content_tags.c.content_id == t.c.id,
            condition,
        )
        .exists()
    )


def _key_select(partition: str, rank: int, *where):
    t = content_table(partition)
    return select(
        literal(partition, String).label("collection"),
        literal(rank).label("rank"),
        t.c.id.label("id"),
        t.c.created_at.label("created_at"),
    ).where(*where)


def _page(engine: Engine, selects: Sequence, order_by, page: int, limit: int) -> Page:
    """Run the union of key selects, slice it, then hydrate the slice in order."""
    u = union_all(*selects).subquery() if len(selects) > 1 else selects[0].subquery()
    offset = (page - 1) * limit

    with repo.store_errors("read"), engine.begin() as conn:
        total = int(conn.execute(select(func.count()).select_from(u)).scalar_one())
        if offset >= total:
            # Past the end: skip the keyed query entirely.
            return Page(items=[], total_count=total, page=page, limit=limit)
        keys = conn.execute(
            select(u.c.collection, u.c.id).order_by(*order_by(u)).limit(min(limit, total - offset)).offset(offset)
        ).all()
        items = repo.load_items(conn, [(k.collection, k.id) for k in keys])

    return Page(items=items, total_count=total, page=page, limit=limit)


def _newest_first(u):
    # id breaks timestamp ties so page boundaries are stable.
    return (u.c.created_at.desc(), u.c.id.desc())


# ----------------------------
# Public operations
# ----------------------------

def list_content(engine: Engine, partition_filter: Optional[str] = None, page: Any = 1, limit: Any = 20) -> Page:
    page, limit = _clamp(page, limit)
    selects = []
    for rank, partition in enumerate(_partitions_for(partition_filter)):
        t = content_table(partition)
        selects.append(_key_select(partition, rank, _visible(partition, t)))
    return _page(engine, selects, _newest_first, page, limit)


def get_by_id(engine: Engine, content_id: Any) -> ContentItem:
    cid = validate_id(content_id)
    with repo.store_errors("get_by_id"), engine.begin() as conn:
        return repo.find_item(conn, cid)


def search(engine: Engine, query: Optional[str], page: Any = 1, limit: Any = 10) -> Page:
    """
    Case-insensitive substring over title, category or any tag.

    Results are curated matches (any state) followed by approved user matches,
    each block in insertion order. The combined list is NOT re-sorted by time.
    """
    if not query or not query.strip():
        raise InvalidArgument("Search query is required")

    page, limit = _clamp(page, limit)
    pattern = like_pattern(query)

    selects = []
    for rank, partition in enumerate((CURATED, USER)):
        t = content_table(partition)
        match = or_(
            func.lower(t.c.title).like(pattern, escape=_ESCAPE),
            func.lower(t.c.category).like(pattern, escape=_ESCAPE),
            _has_tag(partition, t, db.content_tags.c.tag.like(pattern, escape=_ESCAPE)),
        )
        where = [match]
        if partition == USER:
            where.append(t.c.is_approved.is_(True))
        selects.append(_key_select(partition, rank, *where))

    def _concatenated(u):
        return (u.c.rank.asc(), u.c.created_at.asc(), u.c.id.asc())

    return _page(engine, selects, _concatenated, page, limit)


def related(engine: Engine, content_id: Any, limit: Any = DEFAULT_RELATED_LIMIT) -> List[ContentItem]:
    """
    Items sharing the source's primary category (first comma separated segment,
    prefix match) and, when the source has tags, at least one tag. Newest first.
    """
    cid = validate_id(content_id)
    _, limit = _clamp(1, limit)

    with repo.store_errors("related"), engine.begin() as conn:
        source = repo.find_item(conn, cid)

        category_like = like_prefix(source.primary_category)
        tags = normalize_tags(source.tags)

        selects = []
        for rank, partition in enumerate((CURATED, USER)):
            t = content_table(partition)
            where = [
                t.c.id != source.id,
                func.lower(t.c.category).like(category_like, escape=_ESCAPE),
            ]
            if tags:
                where.append(_has_tag(partition, t, db.content_tags.c.tag.in_(tags)))
            if partition == USER:
                where.append(t.c.is_approved.is_(True))
            selects.append(_key_select(partition, rank, and_(*where)))

        u = union_all(*selects).subquery()
        keys = conn.execute(
            select(u.c.collection, u.c.id).order_by(*_newest_first(u)).limit(limit)
        ).all()
        return repo.load_items(conn, [(k.collection, k.id) for k in keys])


# ----------------------------
# Owner / moderation / actor views
# ----------------------------

def list_owned(engine: Engine, actor_id: Optional[str], page: Any = 1, limit: Any = 10) -> Page:
    """Every item the actor uploaded, in any lifecycle state."""
    if not actor_id:
        raise InvalidArgument("Actor id is required")
    page, limit = _clamp(page, limit)
    t = content_table(USER)
    return _page(engine, [_key_select(USER, 0, t.c.owner_id == actor_id)], _newest_first, page, limit)


def get_owned(engine: Engine, content_id: Any, actor_id: Optional[str]) -> ContentItem:
    cid = validate_id(content_id)
    if not actor_id:
        raise InvalidArgument("Actor id is required")
    with repo.store_errors("get_owned"), engine.begin() as conn:
        item = repo.fetch_item(conn, USER, cid)
    if item is None or item.owner_id != actor_id:
        raise NotFound("Content not found or you are not the owner")
    return item


def list_pending(engine: Engine, page: Any = 1, limit: Any = 20) -> Page:
    """Moderation queue: pending user uploads, oldest first."""
    page, limit = _clamp(page, limit)
    t = content_table(USER)

    def _oldest_first(u):
        return (u.c.created_at.asc(), u.c.id.asc())

    return _page(engine, [_key_select(USER, 0, t.c.state == PENDING)], _oldest_first, page, limit)


def liked_content(engine: Engine, actor_id: Optional[str]) -> List[ContentItem]:
    """The actor's likes in the order they were made."""
    if not actor_id:
        raise InvalidArgument("Actor id is required")
    alc = db.actor_liked_content
    with repo.store_errors("liked_content"), engine.begin() as conn:
        keys = conn.execute(
            select(alc.c.collection, alc.c.content_id).where(alc.c.actor_id == actor_id).order_by(alc.c.seq)
        ).all()
        return repo.load_items(conn, [(k.collection, k.content_id) for k in keys])
