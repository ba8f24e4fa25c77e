"""Engine and session factory for the record store and tenant directory.

The store, the tenant gate and the directory open one short session per
operation from ``async_session_factory``; request handlers that need a
session of their own get it from ``get_db``. The ARQ worker builds its own
smaller engine with ``build_engine``.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from contentdesk.config import settings


def build_engine(
    url: str | None = None,
    pool_size: int | None = None,
    max_overflow: int | None = None,
) -> AsyncEngine:
    """Create an engine with the configured pool limits.

    Args:
        url: Async database URL; defaults to ``DATABASE_URL``
        pool_size: Persistent connections; defaults to ``DATABASE_POOL_SIZE``
        max_overflow: Extra connections under load; defaults to
            ``DATABASE_MAX_OVERFLOW``
    """
    return create_async_engine(
        url or settings.async_database_url,
        pool_size=pool_size if pool_size is not None else settings.database_pool_size,
        max_overflow=max_overflow if max_overflow is not None else settings.database_max_overflow,
        pool_recycle=settings.database_pool_recycle_seconds,
        pool_pre_ping=True,
        echo=settings.database_echo,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Snapshots are read from rows after commit
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_engine = build_engine()
async_session_factory = build_session_factory(async_engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: committed on success, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
