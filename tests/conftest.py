"""Shared pytest fixtures: SQLite identity store, in-memory Redis double, clock."""

import datetime
import logging
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.cache import ResolutionCache
from shortener.config import Settings
from shortener.database import Base, build_engine, build_sessionmaker, get_db
from shortener.dependencies import ServiceManager, get_service_manager
from shortener.main import app
from shortener.resolution import ResolutionService
from shortener.shortening import ShorteningService
from shortener.store import IdentityStore

BASE_URL = "http://sho.rt"


class MutableClock:
    """Test clock that only moves when told to."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += datetime.timedelta(**kwargs)


class InMemoryRedis:
    """Dict-backed stand-in for the few redis.asyncio calls the cache makes.

    TTLs are tracked against the shared MutableClock. Setting ``fail`` makes
    every call raise a Redis timeout, as an unreachable cache would.
    """

    def __init__(self, clock: MutableClock) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, datetime.datetime | None]] = {}
        self.fail = False
        self.set_calls = 0

    def _check(self) -> None:
        if self.fail:
            raise RedisTimeoutError("Timeout reading from socket")

    async def get(self, key: str) -> str | None:
        self._check()
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and self._clock() >= expires:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        expires = self._clock() + datetime.timedelta(seconds=ex) if ex else None
        self._data[key] = (value, expires)
        self.set_calls += 1
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self._data.pop(key, None) is not None)

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        return None

    def keys(self) -> list[str]:
        return list(self._data)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortener.db'}",
        BASE_URL=f"{BASE_URL}/",
        CACHE_TTL_SECONDS=86400,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def fake_redis(clock: MutableClock) -> InMemoryRedis:
    return InMemoryRedis(clock)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shortener.tests")


@pytest_asyncio.fixture
async def sessions(settings: Settings) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = build_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_sessionmaker(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(sessions) -> AsyncGenerator[AsyncSession, None]:
    async with sessions() as session:
        yield session


@pytest.fixture
def shortening_factory(settings, logger, clock):
    def build(session: AsyncSession) -> ShorteningService:
        return ShorteningService(IdentityStore(session), settings, logger, clock=clock)

    return build


@pytest.fixture
def resolution_factory(settings, logger, clock, fake_redis):
    def build(session: AsyncSession) -> ResolutionService:
        cache = ResolutionCache(fake_redis, settings, logger)
        return ResolutionService(IdentityStore(session), cache, settings, logger, clock=clock)

    return build


@pytest_asyncio.fixture
async def client(sessions, settings, fake_redis, clock) -> AsyncGenerator[AsyncClient, None]:
    manager = ServiceManager(settings=settings, cache_client=fake_redis, clock=clock)
    await manager.initialize()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with sessions() as session:
            yield session

    async def override_get_service_manager() -> ServiceManager:
        return manager

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
