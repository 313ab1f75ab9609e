from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Table

from wallhub import db

USER = "user"
CURATED = "curated"

PARTITIONS: tuple[str, ...] = (USER, CURATED)

# Lookup order for an id that could live in either partition: curated wins.
PARTITION_PRIORITY: tuple[str, ...] = (CURATED, USER)

ADMIN_OWNER = "admin"

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

MEDIA_KINDS: tuple[str, ...] = ("image", "video")


@dataclass(frozen=True)
class PartitionPolicy:
    table: Table
    initial_state: str
    requires_owner: bool


PARTITION_POLICIES: dict[str, PartitionPolicy] = {
    USER: PartitionPolicy(table=db.user_content, initial_state=PENDING, requires_owner=True),
    CURATED: PartitionPolicy(table=db.curated_content, initial_state=APPROVED, requires_owner=False),
}


def content_table(partition: str) -> Table:
    try:
        return PARTITION_POLICIES[partition].table
    except KeyError:
        raise ValueError(f"Unknown partition: {partition}") from None


@dataclass(frozen=True)
class MediaRef:
    url: str
    storage_id: str


@dataclass(frozen=True)
class ContentItem:
    partition: str
    id: str
    title: str
    description: str
    category: str
    tags: tuple[str, ...]
    media_refs: tuple[MediaRef, ...]
    media_kind: str
    resolution: Optional[str]
    byte_size: int
    owner_id: Optional[str]
    state: str
    is_approved: bool
    slug: str
    like_count: int
    download_count: int
    view_count: int
    created_at: datetime
    updated_at: datetime

    @property
    def owner(self) -> str:
        return self.owner_id if self.partition == USER else ADMIN_OWNER

    @property
    def primary_category(self) -> str:
        return self.category.split(",")[0].strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "partition": self.partition,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "media_refs": [{"url": m.url, "storage_id": m.storage_id} for m in self.media_refs],
            "media_kind": self.media_kind,
            "resolution": self.resolution,
            "byte_size": self.byte_size,
            "owner": self.owner,
            "state": self.state,
            "is_approved": self.is_approved,
            "slug": self.slug,
            "like_count": self.like_count,
            "download_count": self.download_count,
            "view_count": self.view_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ContentDraft:
    """Validated + normalized input for a new item."""

    title: str
    category: str
    media_refs: tuple[MediaRef, ...]
    description: str = ""
    tags: tuple[str, ...] = ()
    media_kind: str = "image"
    resolution: Optional[str] = None
    byte_size: int = 0


@dataclass(frozen=True)
class ContentPatch:
    title: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class Page:
    items: list[ContentItem]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.total_count else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [i.to_dict() for i in self.items],
            "totalCount": self.total_count,
            "page": self.page,
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class ViewResult:
    view_count: int
    counted: bool


@dataclass(frozen=True)
class LikeResult:
    is_liked: bool
    like_count: int


@dataclass(frozen=True)
class DownloadResult:
    download_count: int
    download_url: str
