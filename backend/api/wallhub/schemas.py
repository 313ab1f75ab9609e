from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Partition = Literal["user", "curated"]
LifecycleState = Literal["pending", "approved", "rejected"]
MediaKind = Literal["image", "video"]


class MediaRefIn(BaseModel):
    url: str = Field(..., min_length=1)
    storage_id: str = Field(..., min_length=1)


class ContentCreateIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=400)
    category: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    # list or comma separated string
    tags: Union[List[str], str, None] = None
    media_refs: List[MediaRefIn] = Field(..., min_length=1)
    media_kind: MediaKind = "image"
    resolution: Optional[str] = None
    byte_size: int = Field(0, ge=0)


class ContentEditIn(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    tags: Union[List[str], str, None] = None


class MediaRefOut(BaseModel):
    url: str
    storage_id: str


class ContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    partition: Partition
    title: str
    description: str
    category: str
    tags: List[str]
    media_refs: List[MediaRefOut]
    media_kind: MediaKind
    resolution: Optional[str] = None
    byte_size: int
    owner: Optional[str] = None
    state: LifecycleState
    is_approved: bool
    slug: str
    like_count: int
    download_count: int
    view_count: int
    created_at: datetime
    updated_at: datetime


class PageOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[ContentOut]
    total_count: int = Field(..., alias="totalCount")
    page: int
    total_pages: int = Field(..., alias="totalPages")


class ContentListOut(BaseModel):
    items: List[ContentOut]
    count: int


class ViewOut(BaseModel):
    view_count: int
    counted: bool


class LikeOut(BaseModel):
    is_liked: bool
    like_count: int


class DownloadOut(BaseModel):
    download_count: int
    download_url: str


class WorkflowStatesOut(BaseModel):
    states: List[LifecycleState]
