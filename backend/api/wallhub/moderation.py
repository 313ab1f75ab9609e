"""Lifecycle writes: create, moderate (approve / reject), owner edit + delete."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.engine import Engine

from wallhub import repo
from wallhub.errors import Forbidden, Internal, InvalidArgument, NotFound
from wallhub.media import MediaSink
from wallhub.models import (
    APPROVED,
    PARTITION_POLICIES,
    REJECTED,
    USER,
    ContentDraft,
    ContentItem,
    ContentPatch,
)
from wallhub.normalize import validate_id
from wallhub.workflow import WorkflowError, approval_fields, validate_transition


def create(
    engine: Engine,
    partition: str,
    draft: ContentDraft,
    owner_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    slug_retry_budget: int = repo.DEFAULT_SLUG_RETRY_BUDGET,
) -> ContentItem:
    """
    User uploads need an owner and start pending; curated uploads are owned by
    the admin marker and start approved (they never enter the queue).
    """
    policy = PARTITION_POLICIES.get(partition)
    if policy is None:
        raise InvalidArgument(f"Unknown partition: {partition}")

    owner = (owner_id or "").strip() or None
    if policy.requires_owner and not owner:
        raise InvalidArgument("Owner is required for user uploads")
    if not policy.requires_owner:
        owner = None

    return repo.insert_item(
        engine,
        partition,
        draft,
        owner_id=owner,
        created_at=created_at,
        retry_budget=slug_retry_budget,
    )


def _transition(from_state: str, to_state: str) -> None:
    try:
        validate_transition(from_state, to_state)
    except WorkflowError as e:
        raise InvalidArgument(str(e)) from None


def approve(engine: Engine, content_id: Any) -> ContentItem:
    """pending -> approved. Re-approving an approved item is accepted."""
    cid = validate_id(content_id)

    with repo.store_errors("approve"), engine.begin() as conn:
        item = repo.fetch_item(conn, USER, cid)
        if item is None:
            raise NotFound(f"Content {cid} not found")
        _transition(item.state, APPROVED)

        repo.update_fields(conn, USER, cid, approval_fields(APPROVED))
        return repo.fetch_item(conn, USER, cid)


def reject(engine: Engine, sink: MediaSink, content_id: Any) -> None:
    """
    pending -> deleted. Only the first stored media reference is removed from
    the sink; the record (with tags, media rows and ledgers) is then deleted.
    """
    cid = validate_id(content_id)

    with repo.store_errors("reject"), engine.begin() as conn:
        item = repo.fetch_item(conn, USER, cid)
        if item is None:
            raise NotFound(f"Content {cid} not found")
        if not item.media_refs:
            raise InvalidArgument("No media reference stored for this content")
        _transition(item.state, REJECTED)

        storage_id = item.media_refs[0].storage_id
        if not sink.delete(storage_id):
            raise Internal(f"Media sink could not delete {storage_id}")

        repo.delete_item(conn, USER, cid)


def _owned(conn, content_id: str, actor_id: Optional[str], verb: str) -> ContentItem:
    item = repo.fetch_item(conn, USER, content_id)
    if item is None:
        raise NotFound(f"Content {content_id} not found")
    if not actor_id or item.owner_id != actor_id:
        raise Forbidden(f"You are not allowed to {verb} this content")
    return item


def edit(engine: Engine, content_id: Any, actor_id: Optional[str], patch: ContentPatch) -> ContentItem:
    """Owner-only edit of title / category / tags. The slug never changes."""
    cid = validate_id(content_id)

    with repo.store_errors("edit"), engine.begin() as conn:
        _owned(conn, cid, actor_id, "edit")

        values: dict[str, Any] = {}
        if patch.title is not None:
            values["title"] = patch.title
        if patch.category is not None:
            values["category"] = patch.category

        repo.update_fields(conn, USER, cid, values, tags=patch.tags)
        return repo.fetch_item(conn, USER, cid)


def delete(engine: Engine, content_id: Any, actor_id: Optional[str]) -> None:
    """Owner-only delete. Does not call the media sink."""
    cid = validate_id(content_id)

    with repo.store_errors("delete"), engine.begin() as conn:
        _owned(conn, cid, actor_id, "delete")
        repo.delete_item(conn, USER, cid)
