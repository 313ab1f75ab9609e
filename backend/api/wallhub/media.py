"""Media sink collaborators + attachment URL rewriting."""

from __future__ import annotations

import logging
import re
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from wallhub.config import Settings, get_settings
from wallhub.errors import Internal

logger = logging.getLogger(__name__)

_UPLOAD_MARKER = "/upload/"
_FILENAME_RE = re.compile(r"[^a-zA-Z0-9_-]")


class MediaSink(Protocol):
    def delete(self, storage_id: str) -> bool:
        ...


class NullMediaSink:
    """Accepts every delete and remembers it. Used when no object store is configured."""

    def __init__(self) -> None:
        self.deleted: list[str] = []

    def delete(self, storage_id: str) -> bool:
        logger.info("Media delete (null sink): %s", storage_id)
        self.deleted.append(storage_id)
        return True


class S3MediaSink:
    """Deletes objects from an S3-compatible bucket (S3, R2, MinIO)."""

    def __init__(self, bucket: str, client=None, endpoint_url: str | None = None, region: str | None = None) -> None:
        self.bucket = bucket
        self.client = client or boto3.client("s3", endpoint_url=endpoint_url, region_name=region)

    def delete(self, storage_id: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=storage_id)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Media delete failed for %s in %s: %s", storage_id, self.bucket, e)
            return False


def build_media_sink(settings: Settings) -> MediaSink:
    kind = (settings.media_sink or "null").strip().lower()
    if kind == "s3":
        if not settings.s3_bucket:
            raise RuntimeError("MEDIA_SINK=s3 requires S3_BUCKET")
        return S3MediaSink(
            settings.s3_bucket,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.s3_region,
        )
    if kind == "null":
        return NullMediaSink()
    raise RuntimeError(f"Unknown MEDIA_SINK: {settings.media_sink}")


_sink: MediaSink | None = None


def get_media_sink() -> MediaSink:
    global _sink

    if _sink is None:
        _sink = build_media_sink(get_settings())
    return _sink


def set_media_sink(sink: MediaSink | None) -> None:
    global _sink
    _sink = sink


def attachment_url(url: str, title: str | None) -> str:
    """
    Rewrite a stored delivery URL so the CDN serves it as a download:
        https://cdn/x/upload/v1/a.jpg -> https://cdn/x/upload/fl_attachment:<title>/v1/a.jpg
    Pure string transform; raises Internal when the URL has no /upload/ segment.
    """
    if not url or _UPLOAD_MARKER not in url:
        raise Internal("Invalid media URL format")

    filename = _FILENAME_RE.sub("_", title or "wallpaper")
    head, tail = url.split(_UPLOAD_MARKER, 1)
    return f"{head}{_UPLOAD_MARKER}fl_attachment:{filename}/{tail}"
