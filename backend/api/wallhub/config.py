"""Runtime settings loaded from .env + environment variables.

Loading order: ENV_PATH → backend/api/.env → ./.env (first hit wins, never
overrides variables already present in the process environment).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# backend/api/wallhub/config.py -> parents[1] == backend/api
API_DIR = Path(__file__).resolve().parents[1]


def load_env_once() -> Path | None:
    """
    Loads .env from:
      1) ENV_PATH if provided
      2) backend/api/.env (project default)
      3) current working directory .env (fallback)
    Returns the path that was loaded, or None.
    """
    env_path = os.getenv("ENV_PATH")
    if env_path:
        p = Path(env_path)
        if p.exists():
            load_dotenv(p, override=False)
            return p

    p2 = API_DIR / ".env"
    if p2.exists():
        load_dotenv(p2, override=False)
        return p2

    p3 = Path.cwd() / ".env"
    if p3.exists():
        load_dotenv(p3, override=False)
        return p3

    return None


def env_search_paths() -> list[str]:
    return [
        f"ENV_PATH={os.getenv('ENV_PATH')}",
        str(API_DIR / ".env"),
        str(Path.cwd() / ".env"),
    ]


class Settings(BaseModel):
    database_url: str | None = None
    admin_token: str | None = None

    media_sink: str = "null"
    s3_bucket: str | None = None
    s3_endpoint_url: str | None = None
    s3_region: str | None = None

    # Caller policy: the core clamps page/limit to >= 1 only.
    max_page_limit: int = Field(100, ge=1)
    default_list_limit: int = Field(20, ge=1)
    default_search_limit: int = Field(10, ge=1)
    related_limit: int = Field(8, ge=1)
    slug_retry_budget: int = Field(5, ge=1)

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        load_env_once()
        raw = {
            "database_url": os.getenv("DATABASE_URL") or os.getenv("DB_URL"),
            "admin_token": os.getenv("ADMIN_TOKEN"),
            "media_sink": os.getenv("MEDIA_SINK"),
            "s3_bucket": os.getenv("S3_BUCKET"),
            "s3_endpoint_url": os.getenv("S3_ENDPOINT_URL"),
            "s3_region": os.getenv("S3_REGION"),
            "max_page_limit": os.getenv("MAX_PAGE_LIMIT"),
            "default_list_limit": os.getenv("DEFAULT_LIST_LIMIT"),
            "default_search_limit": os.getenv("DEFAULT_SEARCH_LIMIT"),
            "related_limit": os.getenv("RELATED_LIMIT"),
            "slug_retry_budget": os.getenv("SLUG_RETRY_BUDGET"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in raw.items() if v not in (None, "")})


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings

    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
