"""View / like / download counters with per-actor ledgers.

Each operation runs in a single store transaction. The ledger tables are keyed
on (collection, content_id, actor_id), so "has this actor already ..." is
decided by the unique key at insert time, not by a separate read. Two
concurrent requests from the same actor cannot both pass the check.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import case, delete, select
from sqlalchemy.engine import Connection, Engine

from wallhub import db, repo
from wallhub.errors import Forbidden, Internal, InvalidArgument
from wallhub.media import attachment_url
from wallhub.models import APPROVED, CURATED, DownloadResult, LikeResult, ViewResult, content_table
from wallhub.normalize import validate_id


def _require_actor(actor_id: Optional[str]) -> str:
    actor = (actor_id or "").strip()
    if not actor:
        raise InvalidArgument("Actor id is required")
    return actor


def _ledger_key(partition: str, content_id: str, actor_id: str) -> dict:
    return {"collection": partition, "content_id": content_id, "actor_id": actor_id}


def _counter(conn: Connection, partition: str, content_id: str, column: str) -> int:
    t = content_table(partition)
    return int(conn.execute(select(t.c[column]).where(t.c.id == content_id)).scalar_one())


def _bump(conn: Connection, partition: str, content_id: str, column: str) -> None:
    t = content_table(partition)
    conn.execute(t.update().where(t.c.id == content_id).values({column: t.c[column] + 1}))


def view(engine: Engine, content_id: Any, actor_id: Optional[str]) -> ViewResult:
    """First view per actor counts; later views are no-ops that report the current count."""
    cid = validate_id(content_id)
    actor = _require_actor(actor_id)

    with repo.store_errors("view"), engine.begin() as conn:
        partition = repo.locate(conn, cid)
        counted = repo.insert_ignore(
            conn, db.content_views, {**_ledger_key(partition, cid, actor), "created_at": repo.utcnow()}
        )
        if counted:
            _bump(conn, partition, cid, "view_count")
        count = _counter(conn, partition, cid, "view_count")

    return ViewResult(view_count=count, counted=counted)


def toggle_like(engine: Engine, content_id: Any, actor_id: Optional[str]) -> LikeResult:
    """
    Like if the actor has not liked the item, unlike otherwise.

    The item counter, the item ledger and the actor's liked_content mirror are
    written in one transaction, so a failure anywhere leaves neither side changed.
    """
    cid = validate_id(content_id)
    actor = _require_actor(actor_id)
    likes = db.content_likes
    mirror = db.actor_liked_content

    with repo.store_errors("toggle_like"), engine.begin() as conn:
        partition = repo.locate(conn, cid)
        t = content_table(partition)
        now = repo.utcnow()

        removed = conn.execute(
            delete(likes).where(
                likes.c.collection == partition,
                likes.c.content_id == cid,
                likes.c.actor_id == actor,
            )
        ).rowcount

        if removed:
            conn.execute(
                t.update()
                .where(t.c.id == cid)
                .values(like_count=case((t.c.like_count > 0, t.c.like_count - 1), else_=0))
            )
            conn.execute(
                delete(mirror).where(
                    mirror.c.actor_id == actor,
                    mirror.c.collection == partition,
                    mirror.c.content_id == cid,
                )
            )
            is_liked = False
        else:
            # A concurrent like from the same actor may win the insert; either way the actor likes it now.
            if repo.insert_ignore(conn, likes, {**_ledger_key(partition, cid, actor), "created_at": now}):
                _bump(conn, partition, cid, "like_count")
                repo.insert_ignore(
                    conn,
                    mirror,
                    {"actor_id": actor, "content_id": cid, "collection": partition, "created_at": now},
                )
            is_liked = True

        count = _counter(conn, partition, cid, "like_count")

    return LikeResult(is_liked=is_liked, like_count=count)


def download(engine: Engine, content_id: Any, actor_id: Optional[str] = None) -> DownloadResult:
    """
    Every call adds one to download_count. A known actor is also recorded in the
    downloaded_by ledger (once); the ledger never gates the counter.
    Curated items must be approved.
    """
    cid = validate_id(content_id)
    actor = (actor_id or "").strip() or None

    with repo.store_errors("download"), engine.begin() as conn:
        item = repo.find_item(conn, cid)

        if item.partition == CURATED and item.state != APPROVED:
            raise Forbidden("Curated content is not approved for download")
        if not item.media_refs:
            raise Internal("Content has no media reference")

        # Built before any write so a bad URL leaves the counter untouched.
        url = attachment_url(item.media_refs[0].url, item.title)

        _bump(conn, item.partition, cid, "download_count")
        if actor:
            repo.insert_ignore(
                conn,
                db.content_downloads,
                {**_ledger_key(item.partition, cid, actor), "created_at": repo.utcnow()},
            )
        count = _counter(conn, item.partition, cid, "download_count")

    return DownloadResult(download_count=count, download_url=url)
