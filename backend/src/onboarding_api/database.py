"""Async engine and per-request sessions."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from onboarding_api.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Engine for the hire database.

    Connections are tagged with the application name so they can be told
    apart in ``pg_stat_activity``. SQL is never echoed: hire rows carry
    generated passwords.
    """
    return create_async_engine(
        settings.async_database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"server_settings": {"application_name": settings.app_name}},
        echo=False,
    )


engine = build_engine(get_settings())

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session.

    Services commit their own units of work; whatever is still pending when
    the request ends is committed here, and any error rolls it back.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
