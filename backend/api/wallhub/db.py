# backend/api/wallhub/db.py
from __future__ import annotations

import logging

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine

from wallhub.config import env_search_paths, get_settings

logger = logging.getLogger(__name__)

metadata = MetaData()


def _content_table(name: str) -> Table:
    # user_content and curated_content share one shape; owner_id is NULL for curated rows.
    return Table(
        name,
        metadata,
        Column("id", String(36), primary_key=True),
        Column("title", Text, nullable=False),
        Column("description", Text, nullable=False, server_default=""),
        Column("category", Text, nullable=False),
        Column("media_kind", String(16), nullable=False, server_default="image"),
        Column("resolution", String(32), nullable=True),
        Column("byte_size", BigInteger, nullable=False, server_default="0"),
        Column("owner_id", String(64), nullable=True, index=True),
        Column("state", String(16), nullable=False),
        Column("is_approved", Boolean, nullable=False),
        Column("slug", String(255), nullable=False),
        Column("like_count", Integer, nullable=False, server_default="0"),
        Column("download_count", Integer, nullable=False, server_default="0"),
        Column("view_count", Integer, nullable=False, server_default="0"),
        Column("created_at", DateTime(timezone=True), nullable=False, index=True),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        UniqueConstraint("slug", name=f"uq_{name}_slug"),
    )


curated_content = _content_table("curated_content")
user_content = _content_table("user_content")

content_tags = Table(
    "content_tags",
    metadata,
    Column("collection", String(16), primary_key=True),
    Column("content_id", String(36), primary_key=True),
    Column("position", Integer, primary_key=True),
    Column("tag", Text, nullable=False),
    Index("ix_content_tags_tag", "collection", "tag"),
)

content_media = Table(
    "content_media",
    metadata,
    Column("collection", String(16), primary_key=True),
    Column("content_id", String(36), primary_key=True),
    Column("position", Integer, primary_key=True),
    Column("url", Text, nullable=False),
    Column("storage_id", Text, nullable=False),
)


def _ledger_table(name: str) -> Table:
    # The primary key is the at-most-once-per-actor guarantee.
    return Table(
        name,
        metadata,
        Column("collection", String(16), primary_key=True),
        Column("content_id", String(36), primary_key=True),
        Column("actor_id", String(64), primary_key=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
    )


content_views = _ledger_table("content_views")
content_likes = _ledger_table("content_likes")
content_downloads = _ledger_table("content_downloads")

actor_liked_content = Table(
    "actor_liked_content",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("actor_id", String(64), nullable=False),
    Column("content_id", String(36), nullable=False),
    Column("collection", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("actor_id", "collection", "content_id", name="uq_actor_liked_content"),
)

LEDGERS: tuple[Table, ...] = (content_views, content_likes, content_downloads)


_engine: Engine | None = None


def get_engine() -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    db_url = get_settings().database_url
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL is not set. Ensure it exists in backend/api/.env or set ENV_PATH.\n"
            f"Tried: {', '.join(env_search_paths())}"
        )

    _engine = create_engine(db_url, pool_pre_ping=True, future=True)
    logger.info("Database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def dispose_engine() -> None:
    global _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None


def db_ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def init_schema(engine: Engine) -> None:
    """Create every table that does not exist yet. Idempotent."""
    metadata.create_all(engine, checkfirst=True)
