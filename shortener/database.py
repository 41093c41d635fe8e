"""Engine and session plumbing behind the identity store.

The ``short_links`` table is the only durable state the service owns, and
every read or write of it goes through an ``IdentityStore`` bound to one of
the sessions made here. PostgreSQL through asyncpg is the deployment target;
the test-suite points ``DATABASE_URL`` at SQLite through aiosqlite.

Session Lifetime
================
::
    request ──► get_db() ──► AsyncSession ──► IdentityStore(session)
                                  │
                                  └── closed when the response is sent

Key Behaviours
===============
- A session belongs to one request or task. Concurrent resolutions each open
  their own, which is what keeps click increments independent.
- ``expire_on_commit=False`` so a ShortLink can still be rendered after the
  store has committed it.
- Pool sizing and the asyncpg command timeout only apply to PostgreSQL URLs.
- ``init_db()`` creates the schema at startup and ``close_db()`` disposes the
  pool at shutdown.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import Settings, get_settings

__all__ = ["Base", "build_engine", "build_sessionmaker", "get_db", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    options: dict = {
        "echo": False,
        "pool_pre_ping": True,
    }
    if settings.DATABASE_URL.startswith("postgresql+asyncpg"):
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            connect_args={"command_timeout": settings.DATABASE_COMMAND_TIMEOUT_SECONDS},
        )
    return create_async_engine(settings.DATABASE_URL, **options)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(get_settings())
async_session = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
