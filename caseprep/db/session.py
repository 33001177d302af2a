"""Engines and session factory built from ``DATABASE_URL``.

Requests run on the synchronous engine; startup ``create_all`` and the
back-office use the asynchronous one. In development an unreachable
PostgreSQL falls back to a local SQLite file.
"""

from __future__ import annotations

import logging
import os
from time import perf_counter
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker

from caseprep.core.config import settings

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./caseprep_local.db"

# Renseignés par ``configure_database``.
async_engine: AsyncEngine
sync_engine: Engine
SessionLocal: sessionmaker

ConnectionParameters = tuple[str, dict[str, Any]]


def engine_urls(database_url: str) -> tuple[ConnectionParameters, ConnectionParameters]:
    """Split one URL into ``(async_url, async_args), (sync_url, sync_args)``.

    libpq's ``sslmode`` query parameter is not understood by asyncpg: it moves
    to asyncpg's ``ssl`` argument on one side and to psycopg2's ``sslmode`` on
    the other.
    """

    url = make_url(database_url)
    async_args: dict[str, Any] = {}
    sync_args: dict[str, Any] = {}

    if url.drivername.startswith("postgresql"):
        query = dict(url.query)
        sslmode = query.pop("sslmode", None)
        if isinstance(sslmode, str):
            async_args["ssl"] = sslmode.lower()
            sync_args["sslmode"] = sslmode
        async_url = url.set(drivername="postgresql+asyncpg", query=query)
        sync_url = url.set(drivername="postgresql", query=query)
    elif url.drivername.startswith("sqlite"):
        async_url = url.set(drivername="sqlite+aiosqlite")
        sync_url = url.set(drivername="sqlite")
        sync_args["check_same_thread"] = False
    else:
        async_url = sync_url = url

    return (
        (async_url.render_as_string(hide_password=False), async_args),
        (sync_url.render_as_string(hide_password=False), sync_args),
    )


def _log_slow_queries(engine: Engine, threshold_ms: int) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_started_at", []).append(perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _stop_timer(conn, cursor, statement, parameters, context, executemany):
        elapsed_ms = (perf_counter() - conn.info["query_started_at"].pop()) * 1000.0
        if elapsed_ms >= threshold_ms:
            logger.warning("SQL lente (%.1f ms) - %s", elapsed_ms, " ".join(statement.split())[:200])


def _sqlite_fallback_allowed() -> bool:
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return (settings.ENVIRONMENT or "").lower() in {"development", "local"}


def configure_database(database_url: str | None = None, *, allow_fallback: bool = True) -> None:
    global async_engine, sync_engine, SessionLocal

    (async_url, async_args), (sync_url, sync_args) = engine_urls(str(database_url or settings.DATABASE_URL))
    engine = create_engine(sync_url, pool_pre_ping=True, connect_args=sync_args)

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (OperationalError, OSError) as exc:
        engine.dispose()
        if allow_fallback and _sqlite_fallback_allowed():
            logger.warning("Base de données injoignable (%s). Bascule vers %s.", exc, SQLITE_FALLBACK_URL)
            configure_database(SQLITE_FALLBACK_URL, allow_fallback=False)
            return
        logger.error("Connexion à la base de données échouée: %s", exc)
        raise

    if settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS > 0:
        _log_slow_queries(engine, settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS)

    sync_engine = engine
    async_engine = create_async_engine(async_url, connect_args=async_args)
    SessionLocal = sessionmaker(bind=sync_engine, autoflush=False)
    logger.info("Base de données configurée: %s", engine.url.render_as_string())


configure_database()
