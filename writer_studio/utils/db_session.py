"""
Process-wide database engine for the Postgres store.

Logins, submissions, the content catalogue and the daily metrics fallback
all share one engine; ``dispose_engine`` is called on shutdown and by CLI
commands once they are done.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from writer_studio.config.settings import get_settings


@lru_cache
def get_async_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
        connect_args={"timeout": settings.METRICS_TIMEOUT_SECONDS},
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine. Sessions keep objects usable after commit."""
    return async_sessionmaker(get_async_engine(), expire_on_commit=False, autoflush=False)


async def dispose_engine() -> None:
    """Close pooled connections and drop the cached engine so the next use reconnects."""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
    get_async_engine.cache_clear()
    get_async_session_factory.cache_clear()
