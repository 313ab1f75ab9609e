"""Shared fixtures: throwaway SQLite store, recording media sink, item factory."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

from wallhub import moderation
from wallhub.db import init_schema
from wallhub.models import USER
from wallhub.normalize import build_draft

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class RecordingSink:
    """Media sink double: remembers every delete, optionally reports failure."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.deleted: list[str] = []

    def delete(self, storage_id: str) -> bool:
        self.deleted.append(storage_id)
        return self.ok


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'wallhub.db'}", future=True)
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_item(engine):
    """
    Create an item through the public create path.

    Each call gets a created_at one minute after the previous one unless
    created_at is given, so ordering in tests is predictable.
    """
    seq = itertools.count()

    def _make(
        partition: str = USER,
        title: str = "Sunset",
        category: str = "nature",
        tags=("sunset",),
        owner_id: str | None = "alice",
        approve: bool = False,
        created_at: datetime | None = None,
        media_refs=None,
    ):
        n = next(seq)
        refs = media_refs or [
            {"url": f"https://res.cdn.test/demo/image/upload/v1/{n}.jpg", "storage_id": f"wall/{n}"}
        ]
        draft = build_draft(title=title, category=category, tags=list(tags), media_refs=refs)
        item = moderation.create(
            engine,
            partition,
            draft,
            owner_id=owner_id if partition == USER else None,
            created_at=created_at or BASE_TIME + timedelta(minutes=n),
        )
        if approve and partition == USER:
            item = moderation.approve(engine, item.id)
        return item

    return _make
