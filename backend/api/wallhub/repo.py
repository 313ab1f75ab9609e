from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
from uuid import uuid4

from sqlalchemy import Table, delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from wallhub import db
from wallhub.errors import Conflict, ContentError, Internal, NotFound
from wallhub.models import (
    PARTITION_PRIORITY,
    PARTITION_POLICIES,
    ContentDraft,
    ContentItem,
    MediaRef,
    content_table,
)
from wallhub.normalize import slugify
from wallhub.workflow import approval_fields

DEFAULT_SLUG_RETRY_BUDGET = 5

ContentKey = Tuple[str, str]  # (partition, id)


# ----------------------------
# Helpers
# ----------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Turn driver/ORM failures into Internal; domain errors pass through."""
    try:
        yield
    except ContentError:
        raise
    except SQLAlchemyError as e:
        raise Internal(f"Store failure during {action}") from e


_INSERT_IGNORE = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_ignore(conn: Connection, table: Table, values: Dict[str, Any]) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING.
    Returns True when a row was written, False when the unique key already existed.
    """
    factory = _INSERT_IGNORE.get(conn.dialect.name)
    if factory is None:
        raise Internal(f"Unsupported database dialect: {conn.dialect.name}")
    result = conn.execute(factory(table).values(**values).on_conflict_do_nothing())
    return result.rowcount == 1


def _row_to_item(partition: str, row: Dict[str, Any], tags: Sequence[str], media: Sequence[MediaRef]) -> ContentItem:
    return ContentItem(
        partition=partition,
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        category=row["category"],
        tags=tuple(tags),
        media_refs=tuple(media),
        media_kind=row["media_kind"],
        resolution=row["resolution"],
        byte_size=int(row["byte_size"] or 0),
        owner_id=row["owner_id"],
        state=row["state"],
        is_approved=bool(row["is_approved"]),
        slug=row["slug"],
        like_count=int(row["like_count"]),
        download_count=int(row["download_count"]),
        view_count=int(row["view_count"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def hydrate(conn: Connection, partition: str, rows: Sequence[Dict[str, Any]]) -> List[ContentItem]:
    """Attach tags + media refs to raw content rows, keeping row order."""
    ids = [r["id"] for r in rows]
    if not ids:
        return []

    tags: Dict[str, List[str]] = defaultdict(list)
    for cid, tag in conn.execute(
        select(db.content_tags.c.content_id, db.content_tags.c.tag)
        .where(db.content_tags.c.collection == partition, db.content_tags.c.content_id.in_(ids))
        .order_by(db.content_tags.c.content_id, db.content_tags.c.position)
    ):
        tags[cid].append(tag)

    media: Dict[str, List[MediaRef]] = defaultdict(list)
    for cid, url, storage_id in conn.execute(
        select(db.content_media.c.content_id, db.content_media.c.url, db.content_media.c.storage_id)
        .where(db.content_media.c.collection == partition, db.content_media.c.content_id.in_(ids))
        .order_by(db.content_media.c.content_id, db.content_media.c.position)
    ):
        media[cid].append(MediaRef(url=url, storage_id=storage_id))

    return [_row_to_item(partition, r, tags[r["id"]], media[r["id"]]) for r in rows]


# ----------------------------
# Reads
# ----------------------------

def fetch_item(conn: Connection, partition: str, content_id: str) -> Optional[ContentItem]:
    t = content_table(partition)
    row = conn.execute(select(t).where(t.c.id == content_id)).mappings().first()
    if row is None:
        return None
    return hydrate(conn, partition, [dict(row)])[0]


def find_item(conn: Connection, content_id: str) -> ContentItem:
    """Probe partitions in PARTITION_PRIORITY order; first match wins."""
    for partition in PARTITION_PRIORITY:
        item = fetch_item(conn, partition, content_id)
        if item is not None:
            return item
    raise NotFound(f"Content {content_id} not found")


def locate(conn: Connection, content_id: str) -> str:
    """Like find_item but only returns the partition name."""
    for partition in PARTITION_PRIORITY:
        t = content_table(partition)
        if conn.execute(select(t.c.id).where(t.c.id == content_id)).first() is not None:
            return partition
    raise NotFound(f"Content {content_id} not found")


def load_items(conn: Connection, keys: Iterable[ContentKey]) -> List[ContentItem]:
    """Fetch items for (partition, id) keys, preserving key order. Missing keys are skipped."""
    keys = list(keys)
    by_partition: Dict[str, List[str]] = defaultdict(list)
    for partition, cid in keys:
        by_partition[partition].append(cid)

    found: Dict[ContentKey, ContentItem] = {}
    for partition, ids in by_partition.items():
        t = content_table(partition)
        rows = conn.execute(select(t).where(t.c.id.in_(ids))).mappings().all()
        for item in hydrate(conn, partition, [dict(r) for r in rows]):
            found[(partition, item.id)] = item

    return [found[k] for k in keys if k in found]


# ----------------------------
# Writes
# ----------------------------

def next_free_slug(conn: Connection, table: Table, base: str) -> str:
    """base, base-1, base-2, ... first one not taken in this partition."""
    taken = set(
        conn.execute(
            select(table.c.slug).where((table.c.slug == base) | table.c.slug.like(f"{base}-%"))
        ).scalars()
    )
    if base not in taken:
        return base

    n = 1
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def _write_tags(conn: Connection, partition: str, content_id: str, tags: Sequence[str]) -> None:
    conn.execute(
        delete(db.content_tags).where(
            db.content_tags.c.collection == partition, db.content_tags.c.content_id == content_id
        )
    )
    if tags:
        conn.execute(
            db.content_tags.insert(),
            [
                {"collection": partition, "content_id": content_id, "position": i, "tag": tag}
                for i, tag in enumerate(tags)
            ],
        )


def insert_item(
    engine: Engine,
    partition: str,
    draft: ContentDraft,
    owner_id: Optional[str],
    created_at: Optional[datetime] = None,
    retry_budget: int = DEFAULT_SLUG_RETRY_BUDGET,
) -> ContentItem:
    """
    Persist a new item with a slug unique in its partition.

    The slug is picked inside the insert transaction; a concurrent insert that
    grabs the same slug surfaces as a unique-index violation and we try again
    with a fresh pick. After retry_budget failed attempts -> Conflict.
    """
    policy = PARTITION_POLICIES[partition]
    table = policy.table
    base = slugify(draft.title)
    now = utcnow()
    created = created_at or now

    for _ in range(max(1, retry_budget)):
        content_id = str(uuid4())
        try:
            with engine.begin() as conn:
                slug = next_free_slug(conn, table, base)
                conn.execute(
                    table.insert().values(
                        id=content_id,
                        title=draft.title,
                        description=draft.description,
                        category=draft.category,
                        media_kind=draft.media_kind,
                        resolution=draft.resolution,
                        byte_size=draft.byte_size,
                        owner_id=owner_id,
                        slug=slug,
                        like_count=0,
                        download_count=0,
                        view_count=0,
                        created_at=created,
                        updated_at=now,
                        **approval_fields(policy.initial_state),
                    )
                )
                _write_tags(conn, partition, content_id, draft.tags)
                conn.execute(
                    db.content_media.insert(),
                    [
                        {
                            "collection": partition,
                            "content_id": content_id,
                            "position": i,
                            "url": ref.url,
                            "storage_id": ref.storage_id,
                        }
                        for i, ref in enumerate(draft.media_refs)
                    ],
                )
                item = fetch_item(conn, partition, content_id)
            return item
        except IntegrityError:
            # Lost a race for the slug (or, vanishingly, the uuid); pick again.
            continue
        except SQLAlchemyError as e:
            raise Internal("Store failure during create") from e

    raise Conflict(f"Could not assign a unique slug for '{draft.title}' after {retry_budget} attempts")


def update_fields(
    conn: Connection,
    partition: str,
    content_id: str,
    values: Dict[str, Any],
    tags: Optional[Sequence[str]] = None,
) -> None:
    t = content_table(partition)
    conn.execute(t.update().where(t.c.id == content_id).values(updated_at=utcnow(), **values))
    if tags is not None:
        _write_tags(conn, partition, content_id, tags)


def delete_item(conn: Connection, partition: str, content_id: str) -> None:
    """Remove an item with everything that points at it."""
    for child in (db.content_tags, db.content_media, *db.LEDGERS):
        conn.execute(delete(child).where(child.c.collection == partition, child.c.content_id == content_id))
    conn.execute(
        delete(db.actor_liked_content).where(
            db.actor_liked_content.c.collection == partition,
            db.actor_liked_content.c.content_id == content_id,
        )
    )
    t = content_table(partition)
    conn.execute(delete(t).where(t.c.id == content_id))
