from __future__ import annotations

import logging
from typing import Optional

from wallhub.config import get_settings, load_env_once

# -------------------------------------------------------------------
# ENV LOADING (must run before anything reads settings)
# -------------------------------------------------------------------
load_env_once()

from fastapi import FastAPI, Header, Request, Response  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from wallhub import aggregation, engagement, moderation  # noqa: E402
from wallhub.db import db_ping, get_engine  # noqa: E402
from wallhub.errors import ContentError, ErrorKind  # noqa: E402
from wallhub.identity import require_actor, require_admin, resolve_actor  # noqa: E402
from wallhub.log import setup_logging  # noqa: E402
from wallhub.media import get_media_sink  # noqa: E402
from wallhub.models import CURATED, USER, ContentItem, Page  # noqa: E402
from wallhub.normalize import build_draft, build_patch  # noqa: E402
from wallhub.schemas import (  # noqa: E402
    ContentCreateIn,
    ContentEditIn,
    ContentListOut,
    ContentOut,
    DownloadOut,
    LikeOut,
    PageOut,
    ViewOut,
    WorkflowStatesOut,
)
from wallhub.workflow import list_states  # noqa: E402

setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wallhub API", version="0.1.0")

_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


@app.exception_handler(ContentError)
async def content_error_handler(request: Request, exc: ContentError) -> JSONResponse:
    status = _STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return JSONResponse(status_code=status, content=exc.to_dict())


# -----------------------------
# Helpers
# -----------------------------
def _limit(limit: Optional[int], default: int) -> int:
    # Caller policy: the core only clamps to >= 1.
    return min(limit or default, get_settings().max_page_limit)


def _item_out(item: ContentItem) -> ContentOut:
    return ContentOut.model_validate(item.to_dict())


def _page_out(page: Page) -> PageOut:
    return PageOut.model_validate(page.to_dict())


def _list_out(items: list[ContentItem]) -> ContentListOut:
    return ContentListOut(items=[_item_out(i) for i in items], count=len(items))


def _draft(body: ContentCreateIn):
    return build_draft(
        title=body.title,
        category=body.category,
        media_refs=[r.model_dump() for r in body.media_refs],
        description=body.description,
        tags=body.tags,
        media_kind=body.media_kind,
        resolution=body.resolution,
        byte_size=body.byte_size,
    )


# -----------------------------
# Health checks
# -----------------------------
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/readyz")
def readyz():
    engine = get_engine()
    db_ping(engine)
    return {"status": "ready", "db": "ok"}


@app.get("/workflow/states", response_model=WorkflowStatesOut)
def workflow_states():
    return {"states": list_states()}


# -----------------------------
# Browse / search / related
# -----------------------------
@app.get("/content", response_model=PageOut)
def list_content(partition: Optional[str] = None, page: int = 1, limit: Optional[int] = None):
    engine = get_engine()
    result = aggregation.list_content(
        engine, partition, page=page, limit=_limit(limit, get_settings().default_list_limit)
    )
    return _page_out(result)


@app.get("/content/search", response_model=PageOut)
def search_content(q: Optional[str] = None, page: int = 1, limit: Optional[int] = None):
    engine = get_engine()
    result = aggregation.search(engine, q, page=page, limit=_limit(limit, get_settings().default_search_limit))
    return _page_out(result)


@app.get("/content/{content_id}", response_model=ContentOut)
def get_content(content_id: str):
    engine = get_engine()
    return _item_out(aggregation.get_by_id(engine, content_id))


@app.get("/content/{content_id}/related", response_model=ContentListOut)
def related_content(content_id: str, limit: Optional[int] = None):
    engine = get_engine()
    items = aggregation.related(engine, content_id, limit=_limit(limit, get_settings().related_limit))
    return _list_out(items)


# -----------------------------
# Engagement
# -----------------------------
@app.post("/content/{content_id}/view", response_model=ViewOut)
def view_content(
    content_id: str,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    result = engagement.view(get_engine(), content_id, actor)
    return ViewOut(view_count=result.view_count, counted=result.counted)


@app.post("/content/{content_id}/like", response_model=LikeOut)
def like_content(
    content_id: str,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    result = engagement.toggle_like(get_engine(), content_id, actor)
    return LikeOut(is_liked=result.is_liked, like_count=result.like_count)


@app.get("/content/{content_id}/download", response_model=DownloadOut)
def download_content(
    content_id: str,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    result = engagement.download(get_engine(), content_id, resolve_actor(x_actor_id))
    return DownloadOut(download_count=result.download_count, download_url=result.download_url)


# -----------------------------
# User uploads (owner scoped)
# -----------------------------
@app.post("/content", response_model=ContentOut, status_code=201)
def create_user_content(
    body: ContentCreateIn,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    item = moderation.create(
        get_engine(),
        USER,
        _draft(body),
        owner_id=actor,
        slug_retry_budget=get_settings().slug_retry_budget,
    )
    return _item_out(item)


@app.get("/me/content", response_model=PageOut)
def my_content(
    page: int = 1,
    limit: Optional[int] = None,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    result = aggregation.list_owned(get_engine(), actor, page=page, limit=_limit(limit, 10))
    return _page_out(result)


@app.get("/me/content/{content_id}", response_model=ContentOut)
def my_single_content(
    content_id: str,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    return _item_out(aggregation.get_owned(get_engine(), content_id, actor))


@app.patch("/me/content/{content_id}", response_model=ContentOut)
def edit_my_content(
    content_id: str,
    body: ContentEditIn,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    patch = build_patch(title=body.title, category=body.category, tags=body.tags)
    return _item_out(moderation.edit(get_engine(), content_id, actor, patch))


@app.delete("/me/content/{content_id}", status_code=204)
def delete_my_content(
    content_id: str,
    x_actor_id: str | None = Header(default=None, alias="X-Actor-Id"),
):
    actor = require_actor(x_actor_id)
    moderation.delete(get_engine(), content_id, actor)
    return Response(status_code=204)


@app.get("/me/likes", response_model=ContentListOut)
def my_likes(x_actor_id: str | None = Header(default=None, alias="X-Actor-Id")):
    actor = require_actor(x_actor_id)
    return _list_out(aggregation.liked_content(get_engine(), actor))


# -----------------------------
# Admin: curated catalog + moderation queue
# -----------------------------
@app.post("/admin/content", response_model=ContentOut, status_code=201)
def create_curated_content(
    body: ContentCreateIn,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
):
    require_admin(x_admin_token)
    item = moderation.create(
        get_engine(),
        CURATED,
        _draft(body),
        slug_retry_budget=get_settings().slug_retry_budget,
    )
    return _item_out(item)


@app.get("/admin/pending", response_model=PageOut)
def pending_content(
    page: int = 1,
    limit: Optional[int] = None,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
):
    require_admin(x_admin_token)
    result = aggregation.list_pending(
        get_engine(), page=page, limit=_limit(limit, get_settings().default_list_limit)
    )
    return _page_out(result)


@app.post("/admin/content/{content_id}/approve", response_model=ContentOut)
def approve_content(
    content_id: str,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
):
    require_admin(x_admin_token)
    item = moderation.approve(get_engine(), content_id)
    logger.info("Approved content %s", item.id)
    return _item_out(item)


@app.delete("/admin/content/{content_id}/reject", status_code=204)
def reject_content(
    content_id: str,
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
):
    require_admin(x_admin_token)
    moderation.reject(get_engine(), get_media_sink(), content_id)
    logger.info("Rejected and deleted content %s", content_id)
    return Response(status_code=204)
