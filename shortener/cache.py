"""Redis-backed resolution cache for short-code lookups.

This module owns the Redis client used by the service and the
``ResolutionCache`` wrapper around it. The cache is an accelerator only:
every failure is logged and reported as a miss so resolution falls through
to the identity store.

Flow Diagram — ResolutionCache.get()
====================================
::
    ┌─────────────┐
    │ GET prefix: │
    │ short_code  │
    └──────┬──────┘
    OK?    │
    ┌──────┴──────┐
    │ ERROR       │ OK
    ▼             ▼
┌─────────┐  ┌──────────┐
│ warn,   │  │ decode   │
│ miss    │  │ payload  │
└─────────┘  └────┬─────┘
                  │ bad JSON → warn, miss
                  ▼
             ┌──────────┐
             │CachedLink│
             └──────────┘

How to Use
===========
**Step 1 — Build from a client**::
    cache = ResolutionCache(await get_redis(), settings, logger)

**Step 2 — Read through**::
    cached = await cache.get("abc123")
    if cached is None:
        link = await store.find_by_code("abc123")
        await cache.put(link)

Key Behaviours
===============
- Entries expire after CACHE_TTL_SECONDS.
- Payloads include expires_at so callers can re-check expiry on every hit.
- Socket timeouts come from CACHE_TIMEOUT_SECONDS.
- Unknown codes are never cached.
- Concurrent puts of the same key are last-write-wins.

Functions:
    get_redis():  Lazily create the shared Redis client.
    close_redis():  Cleanup function for shutdown.
"""

import logging

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortener.config import Settings, get_settings
from shortener.enums import CacheStatus
from shortener.metrics import CACHE_ERRORS_TOTAL, CACHE_LOOKUPS_TOTAL
from shortener.models import ShortLink
from shortener.schemas import CachedLink

__all__ = ["ResolutionCache", "create_redis", "get_redis", "close_redis"]

# OSError covers socket-level failures and asyncio timeouts.
CACHE_FAILURES = (RedisError, OSError)

redis_client: redis.Redis | None = None


def create_redis(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.CACHE_TIMEOUT_SECONDS,
        socket_connect_timeout=settings.CACHE_TIMEOUT_SECONDS,
    )


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = create_redis(get_settings())
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None


class ResolutionCache:
    """Short code → CachedLink accelerator with a bounded TTL."""

    def __init__(self, client: redis.Redis, settings: Settings, logger: logging.Logger | logging.LoggerAdapter) -> None:
        self._client = client
        self._prefix = settings.CACHE_KEY_PREFIX
        self._ttl = settings.CACHE_TTL_SECONDS
        self._logger = logger

    def key_for(self, short_code: str) -> str:
        return f"{self._prefix}:{short_code}"

    async def get(self, short_code: str) -> CachedLink | None:
        try:
            raw = await self._client.get(self.key_for(short_code))
        except CACHE_FAILURES as exc:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheStatus.ERROR).inc()
            CACHE_ERRORS_TOTAL.labels(operation="get").inc()
            self._logger.warning(f"Cache read failed for {short_code}, bypassing cache: {exc}")
            return None

        if raw is None:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheStatus.MISS).inc()
            return None

        try:
            cached = CachedLink.model_validate_json(raw)
        except ValidationError as exc:
            CACHE_LOOKUPS_TOTAL.labels(result=CacheStatus.ERROR).inc()
            self._logger.warning(f"Discarding undecodable cache entry for {short_code}: {exc}")
            return None

        CACHE_LOOKUPS_TOTAL.labels(result=CacheStatus.HIT).inc()
        return cached

    async def put(self, link: ShortLink) -> bool:
        payload = CachedLink.from_link(link)
        try:
            await self._client.set(self.key_for(payload.short_code), payload.model_dump_json(), ex=self._ttl)
        except CACHE_FAILURES as exc:
            CACHE_ERRORS_TOTAL.labels(operation="set").inc()
            self._logger.warning(f"Cache write failed for {payload.short_code}: {exc}")
            return False
        return True

    async def evict(self, short_code: str) -> bool:
        try:
            await self._client.delete(self.key_for(short_code))
        except CACHE_FAILURES as exc:
            CACHE_ERRORS_TOTAL.labels(operation="delete").inc()
            self._logger.warning(f"Cache eviction failed for {short_code}: {exc}")
            return False
        return True
