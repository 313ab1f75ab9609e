from __future__ import annotations

from alembic import context
from sqlalchemy import engine_from_config, pool

from wallhub.config import API_DIR, get_settings, load_env_once
from wallhub.db import metadata

# Alembic Config object
config = context.config

# -------------------------------------------------------------------
# ENV LOADING
# Same search order as the API: ENV_PATH, backend/api/.env, ./.env
# -------------------------------------------------------------------
load_env_once()

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    from logging.config import fileConfig

    fileConfig(config.config_file_name)

target_metadata = metadata


def get_url() -> str:
    url = get_settings().database_url
    if not url:
        raise RuntimeError(f"DATABASE_URL is not set. Expected it in {API_DIR / '.env'}")
    return url


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
