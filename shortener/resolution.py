"""Read path: two-tier lookup, expiry enforcement and click accounting.

Flow Diagram — resolve()
========================
::
    ┌─────────────┐
    │ resolve(cd) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache GET   │──── error/timeout ───┐
    └──────┬──────┘                      │
    HIT?   │                             │
    ┌──────┴──────┐                      │
    │ YES         │ NO  ◄────────────────┘
    │             ▼
    │      ┌─────────────┐
    │      │ Store SELECT│── absent ──► LinkNotFound
    │      └──────┬──────┘
    │             ▼
    │      ┌─────────────┐
    │      │ Cache SET   │ (TTL, failures ignored)
    │      └──────┬──────┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ expired?    │── yes ──► LinkExpired (no click)
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Store UPDATE│ click_count + 1
    │ (atomic)    │ failure → logged, redirect still served
    └──────┬──────┘
           ▼
       target_url

Key Behaviours
===============
- Expiry is evaluated against the current clock on cache hits and misses.
- Clicks are counted in the identity store, never in the cache.
- Statistics read the identity store directly and never mutate state.
- Unknown codes are not cached, so a code created later resolves at once.
"""

import datetime
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from shortener.cache import ResolutionCache
from shortener.config import Settings
from shortener.enums import RequestStatus
from shortener.exceptions import LinkExpired, LinkNotFound
from shortener.metrics import CLICK_INCREMENT_FAILURES_TOTAL, LINK_RESOLUTIONS_TOTAL
from shortener.models import Clock, ShortLink, is_expired, utcnow
from shortener.schemas import CachedLink
from shortener.store import IdentityStore

__all__ = ["LinkStats", "ResolutionService"]


@dataclass(frozen=True)
class LinkStats:
    """Snapshot of a link as stored, with expiry evaluated at read time."""

    short_code: str
    short_url: str
    target_url: str
    click_count: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None
    is_expired: bool


class ResolutionService:
    def __init__(
        self,
        store: IdentityStore,
        cache: ResolutionCache,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._cache = cache
        self._settings = settings
        self._logger = logger
        self._clock = clock

    async def resolve(self, short_code: str) -> str:
        """Return the target URL for ``short_code`` and count the click.

        Raises:
            LinkNotFound: No row exists for the code.
            LinkExpired: The row exists but its expiry has passed.
        """
        try:
            cached = await self._lookup(short_code)
            if is_expired(cached.expires_at, self._clock()):
                raise LinkExpired(short_code)
        except LinkNotFound:
            LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            raise
        except LinkExpired:
            LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.EXPIRED).inc()
            self._logger.info(f"Resolution refused, link expired: {short_code}")
            raise

        await self._count_click(short_code)
        LINK_RESOLUTIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return cached.target_url

    async def get_stats(self, short_code: str) -> LinkStats:
        link = await self._store.find_by_code(short_code)
        if link is None:
            raise LinkNotFound(short_code)
        return self._to_stats(link)

    async def evict(self, short_code: str) -> bool:
        self._logger.info(f"Evicting short code from cache: {short_code}")
        return await self._cache.evict(short_code)

    async def _lookup(self, short_code: str) -> CachedLink:
        cached = await self._cache.get(short_code)
        if cached is not None:
            self._logger.debug(f"Cache hit for {short_code}")
            return cached

        self._logger.debug(f"Cache miss for {short_code}")
        link = await self._store.find_by_code(short_code)
        if link is None:
            raise LinkNotFound(short_code)
        await self._cache.put(link)
        return CachedLink.from_link(link)

    async def _count_click(self, short_code: str) -> None:
        try:
            matched = await self._store.increment_clicks(short_code)
        except (SQLAlchemyError, OSError) as exc:
            CLICK_INCREMENT_FAILURES_TOTAL.inc()
            self._logger.error(f"Click increment failed for {short_code}: {exc}")
            return
        if matched == 0:
            # Served from cache but the row is gone from the store.
            CLICK_INCREMENT_FAILURES_TOTAL.inc()
            self._logger.error(f"Click increment matched no row for {short_code}")

    def _to_stats(self, link: ShortLink) -> LinkStats:
        return LinkStats(
            short_code=link.short_code,
            short_url=f"{self._settings.public_base_url}/{link.short_code}",
            target_url=link.target_url,
            click_count=link.click_count,
            created_at=link.created_at,
            expires_at=link.expires_at,
            is_expired=link.is_expired_at(self._clock()),
        )
