from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from statehub.core.config import Settings, get_settings


_POOL_TIMEOUT_S = 30
_POOL_RECYCLE_S = 1800


def _pool_options(settings: Settings) -> dict[str, Any]:
    # Bounded asyncpg pool; account actions hold a connection only for one short transaction.
    options: dict[str, Any] = {
        "pool_size": max(1, settings.api_db_pool_size),
        "max_overflow": max(0, settings.api_db_max_overflow),
        "pool_timeout": _POOL_TIMEOUT_S,
        "pool_recycle": _POOL_RECYCLE_S,
    }
    if settings.api_db_statement_timeout_ms > 0:
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(settings.api_db_statement_timeout_ms)}
        }
    return options


def build_engine(database_url: str | None = None, *, settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    url = database_url or settings.database_url
    options: dict[str, Any] = {"pool_pre_ping": True}
    # sqlite (local runs, tests) has neither a sized pool nor server settings.
    if not url.startswith("sqlite"):
        options.update(_pool_options(settings))
    return create_async_engine(url, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


def pool_stats(engine: AsyncEngine) -> dict[str, int | None]:
    pool = engine.sync_engine.pool
    stats: dict[str, int | None] = {}
    for key, attribute in (
        ("size", "size"),
        ("checked_out", "checkedout"),
        ("checked_in", "checkedin"),
        ("overflow", "overflow"),
    ):
        # NullPool/StaticPool (sqlite) do not expose every counter.
        reader = getattr(pool, attribute, None)
        stats[key] = int(reader()) if callable(reader) else None
    return stats
