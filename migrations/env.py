"""Alembic environment for the portal's batch-round and role tables."""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection
from sqlalchemy.engine.url import make_url
from sqlmodel import SQLModel

from app.config import settings
from app.core.database import coerce_sync_database_url
from app.models import batch_round, user_role  # noqa: F401 - ensure models are imported

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("mentor_portal.alembic")
target_metadata = SQLModel.metadata


def _resolve_database_url() -> tuple[str, dict]:
    candidates = [
        ("environment variable", os.environ.get("DATABASE_URL")),
        ("alembic.ini", config.get_main_option("sqlalchemy.url")),
        ("app settings", settings.database_url),
    ]
    for source, value in candidates:
        if not value:
            continue
        sync_url, connect_args, _ = coerce_sync_database_url(make_url(value))
        rendered = make_url(sync_url).render_as_string(hide_password=True)
        logger.info("Alembic resolved DATABASE_URL from %s: %s", source, rendered)
        return sync_url, connect_args
    raise RuntimeError("DATABASE_URL must be set to run migrations.")


def run_migrations_offline() -> None:
    url, _ = _resolve_database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url, connect_args = _resolve_database_url()
    engine = create_engine(url, poolclass=pool.NullPool, connect_args=connect_args)
    try:
        with engine.connect() as connection:
            _run_with_connection(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
