"""Write-time normalization for content fields.

Search and related-content matching assume category and tags are already
lowercased and trimmed, so every create/edit goes through here before the
store sees the values.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Iterable, Optional
from uuid import UUID

from wallhub.errors import InvalidArgument
from wallhub.models import MEDIA_KINDS, ContentDraft, ContentPatch, MediaRef

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_DASH_RE = re.compile(r"[\s_-]+")

DEFAULT_SLUG = "wallpaper"


def validate_id(content_id: Any) -> str:
    """Return the canonical id string or raise InvalidArgument."""
    try:
        return str(UUID(str(content_id).strip()))
    except (TypeError, ValueError, AttributeError):
        raise InvalidArgument(f"Invalid content id: {content_id!r}") from None


def normalize_category(category: Optional[str]) -> str:
    return (category or "").strip().lower()


def normalize_tags(tags: Optional[Iterable[str] | str]) -> tuple[str, ...]:
    """Accepts a list or a comma separated string. Drops empties + duplicates, keeps order."""
    if tags is None:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")

    out: list[str] = []
    for tag in tags:
        t = (tag or "").strip().lower()
        if t and t not in out:
            out.append(t)
    return tuple(out)


def slugify(title: str) -> str:
    """'Mountain View!' -> 'mountain-view'. Falls back to DEFAULT_SLUG."""
    s = unicodedata.normalize("NFKD", title or "").encode("ascii", "ignore").decode("ascii")
    s = _SLUG_STRIP_RE.sub("", s.lower())
    s = _SLUG_DASH_RE.sub("-", s).strip("-")
    return s or DEFAULT_SLUG


def _media_refs(raw: Iterable[Any]) -> tuple[MediaRef, ...]:
    refs: list[MediaRef] = []
    for r in raw or ():
        if isinstance(r, MediaRef):
            url, storage_id = r.url, r.storage_id
        elif isinstance(r, dict):
            url, storage_id = r.get("url"), r.get("storage_id")
        elif isinstance(r, (tuple, list)) and len(r) == 2:
            url, storage_id = r
        else:
            raise InvalidArgument(f"Malformed media reference: {r!r}")
        if not all(v is None or isinstance(v, str) for v in (url, storage_id)):
            raise InvalidArgument("Media reference url and storage_id must be strings")
        url = (url or "").strip()
        storage_id = (storage_id or "").strip()
        if not url or not storage_id:
            raise InvalidArgument("Media references need both url and storage_id")
        refs.append(MediaRef(url=url, storage_id=storage_id))
    return tuple(refs)


def build_draft(
    *,
    title: Optional[str],
    category: Optional[str],
    media_refs: Iterable[Any],
    description: Optional[str] = None,
    tags: Optional[Iterable[str] | str] = None,
    media_kind: Optional[str] = None,
    resolution: Optional[str] = None,
    byte_size: Optional[int] = None,
) -> ContentDraft:
    title = (title or "").strip()
    category = normalize_category(category)
    if not title or not category:
        raise InvalidArgument("Title and category are required")

    refs = _media_refs(media_refs)
    if not refs:
        raise InvalidArgument("At least one media reference is required")

    kind = (media_kind or "image").strip().lower()
    if kind not in MEDIA_KINDS:
        raise InvalidArgument(f"media_kind must be one of {list(MEDIA_KINDS)}")

    try:
        size = int(byte_size or 0)
    except (TypeError, ValueError):
        raise InvalidArgument(f"byte_size must be an integer, got {byte_size!r}") from None
    if size < 0:
        raise InvalidArgument("byte_size must be >= 0")

    return ContentDraft(
        title=title,
        category=category,
        media_refs=refs,
        description=(description or "").strip(),
        tags=normalize_tags(tags),
        media_kind=kind,
        resolution=(resolution or "").strip() or None,
        byte_size=size,
    )


def build_patch(
    *,
    title: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[Iterable[str] | str] = None,
) -> ContentPatch:
    """Blank values mean "leave unchanged"."""
    t = (title or "").strip() or None
    c = normalize_category(category) or None
    tg = normalize_tags(tags) if tags else None
    return ContentPatch(title=t, category=c, tags=tg or None)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_pattern(query: str) -> str:
    """Case-insensitive substring pattern for LIKE ... ESCAPE '\\'."""
    return f"%{_escape_like(query.strip().lower())}%"


def like_prefix(value: str) -> str:
    """Case-insensitive prefix pattern for LIKE ... ESCAPE '\\'."""
    return f"{_escape_like(value.strip().lower())}%"
