from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlmodel import create_engine

from app.config import settings

logger = logging.getLogger(__name__)

# Global engine shared by the Supabase-backed repositories
_engine: Engine | None = None


def coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = False
    if "ssl" in query:
        query.pop("ssl", None)
        removed_ssl = True
    sync_url = sync_url.set(query=query)

    host = (url.host or "").lower()
    if drivername.startswith("postgresql"):
        if "sslmode" not in query and (removed_ssl or "supabase.co" in host):
            connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def build_engine(
    database_url: str,
    *,
    pool_min_size: int | None = None,
    pool_max_size: int | None = None,
) -> Engine:
    """Create a pooled sync engine for Postgres/Supabase (or SQLite in tests)."""
    if not database_url:
        raise ValueError("DATABASE_URL is required to build a database engine.")
    sync_url, connect_args, drivername = coerce_sync_database_url(make_url(database_url))
    pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
    pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
    is_sqlite = drivername.startswith("sqlite")
    engine_kwargs: dict[str, Any] = {
        "echo": settings.debug and not is_sqlite,
        "connect_args": connect_args,
        "pool_pre_ping": not is_sqlite,
    }
    if not is_sqlite:
        engine_kwargs["pool_size"] = pool_min
        engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)
        engine_kwargs["pool_recycle"] = 300
    return create_engine(sync_url, **engine_kwargs)


def get_engine() -> Engine | None:
    """Return the process engine, creating it on first use when DATABASE_URL is set."""
    global _engine  # noqa: PLW0603
    if _engine is None and settings.database_url:
        try:
            _engine = build_engine(settings.database_url)
            logger.info("Database connection initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise
    return _engine


def init_database() -> None:
    """Initialize database connection if DATABASE_URL is provided."""
    if not settings.database_url:
        logger.info("No DATABASE_URL provided, running without database")
        return
    get_engine()


def check_database_health() -> bool:
    """Check if database is accessible."""
    engine = get_engine()
    if not engine:
        return True  # No database configured, consider healthy

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
