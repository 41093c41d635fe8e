"""Creation path: alias validation, identifier allocation and persistence.

Flow Diagram — shorten()
========================
::
    ┌──────────────┐
    │ shorten(url, │
    │ alias, hours)│
    └──────┬───────┘
    ALIAS? │
    ┌──────┴──────────────┐
    │ YES                 │ NO
    ▼                     ▼
┌────────────┐     ┌──────────────┐
│ is_valid?  │     │ INSERT code= │
│ exists?    │     │ NULL → id    │
│ → conflict │     └──────┬───────┘
└─────┬──────┘            ▼
      ▼            ┌──────────────┐
┌────────────┐     │ code =       │
│ INSERT     │     │ encode(id),  │
│ (unique    │     │ UPDATE       │
│ constraint)│     └──────┬───────┘
└─────┬──────┘            │
      └─────────┬─────────┘
                ▼
         ┌─────────────┐
         │ ShortLink   │
         └─────────────┘

Key Behaviours
===============
- The existence check only fails fast; the unique constraint decides, and its
  violation is reported as the same AliasConflict.
- Generated codes need two writes because the id does not exist before the
  first one. Both happen in one transaction.
- Non-positive expires_in_hours means the link never expires.
- Codes equal to an application path in RESERVED_CODES are never issued,
  neither as aliases nor as generated codes.
- Nothing is written to the resolution cache here; it fills on first read.
"""

import datetime
import logging
import time

from sqlalchemy.exc import IntegrityError

from shortener import encoder
from shortener.config import Settings
from shortener.enums import RequestStatus
from shortener.exceptions import AliasConflict, InvalidAlias, InvalidExpiry, ShortCodeCollision
from shortener.metrics import LINK_CREATIONS_TOTAL
from shortener.models import Clock, ShortLink, utcnow
from shortener.store import IdentityStore

__all__ = ["ShorteningService", "RESERVED_CODES"]

# Single-segment paths served by the application itself; a short code equal to
# one of these would never reach the redirect route.
RESERVED_CODES = frozenset({"health", "metrics", "docs", "redoc"})


class ShorteningService:
    """Creates short links in the identity store.

    Example:
        >>> service = ShorteningService(IdentityStore(session), settings, logger)
        >>> link = await service.shorten("https://example.com/x")
        >>> service.public_url(link)
        'http://localhost:8080/1'
    """

    def __init__(
        self,
        store: IdentityStore,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._settings = settings
        self._logger = logger
        self._clock = clock

    async def shorten(
        self,
        target_url: str,
        custom_alias: str | None = None,
        expires_in_hours: int | None = None,
    ) -> ShortLink:
        """Create a short link for ``target_url``.

        Args:
            target_url: URL to redirect to; validated by the caller.
            custom_alias: Caller-chosen code. Empty string means none.
            expires_in_hours: Lifetime in hours; None or ≤ 0 never expires.

        Returns:
            ShortLink: Persisted row with ``short_code`` and ``id`` populated.

        Raises:
            InvalidAlias: If the alias is not 1–10 base-62 characters or is reserved.
            InvalidExpiry: If the expiry would fall past the largest datetime.
            AliasConflict: If the alias is already taken.
            ShortCodeCollision: If generated codes keep hitting custom aliases.
        """
        start_time = time.perf_counter()
        created_at = self._clock()

        try:
            expires_at = self._compute_expiry(created_at, expires_in_hours)
            if custom_alias:
                link = await self._create_with_alias(custom_alias, target_url, created_at, expires_at)
            else:
                link = await self._create_with_generated_code(target_url, created_at, expires_at)
        except (InvalidAlias, InvalidExpiry, AliasConflict, ShortCodeCollision) as exc:
            LINK_CREATIONS_TOTAL.labels(
                status=(
                    RequestStatus.VALIDATION_ERROR
                    if isinstance(exc, (InvalidAlias, InvalidExpiry))
                    else RequestStatus.CONFLICT
                )
            ).inc()
            self._logger.warning(f"Short link creation rejected: {exc}")
            raise
        except Exception as exc:
            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short link creation error: {exc}")
            raise

        LINK_CREATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        duration = time.perf_counter() - start_time
        self._logger.info(f"Created short URL: {link.short_code} -> {target_url} in {duration:.3f}s")
        return link

    def public_url(self, link: ShortLink) -> str:
        return f"{self._settings.public_base_url}/{link.short_code}"

    def validate_alias(self, alias: str) -> None:
        if len(alias) > self._settings.MAX_SHORT_CODE_LENGTH:
            raise InvalidAlias(alias, f"must be at most {self._settings.MAX_SHORT_CODE_LENGTH} characters")
        if not encoder.is_valid(alias):
            raise InvalidAlias(alias, "only the characters 0-9, a-z and A-Z are allowed")
        if alias in RESERVED_CODES:
            raise InvalidAlias(alias, "reserved by the service")

    @staticmethod
    def _compute_expiry(created_at: datetime.datetime, expires_in_hours: int | None) -> datetime.datetime | None:
        if expires_in_hours is None or expires_in_hours <= 0:
            return None
        try:
            return created_at + datetime.timedelta(hours=expires_in_hours)
        except OverflowError as exc:
            raise InvalidExpiry(expires_in_hours) from exc

    async def _create_with_alias(
        self,
        alias: str,
        target_url: str,
        created_at: datetime.datetime,
        expires_at: datetime.datetime | None,
    ) -> ShortLink:
        self.validate_alias(alias)
        if await self._store.exists(alias):
            raise AliasConflict(alias)
        try:
            return await self._store.add_with_alias(alias, target_url, created_at, expires_at)
        except IntegrityError as exc:
            # Lost the race between the existence check and the insert.
            raise AliasConflict(alias) from exc

    async def _create_with_generated_code(
        self,
        target_url: str,
        created_at: datetime.datetime,
        expires_at: datetime.datetime | None,
    ) -> ShortLink:
        attempts = self._settings.CODE_ALLOCATION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            try:
                link = await self._store.add_with_generated_code(
                    encoder.encode, target_url, created_at, expires_at, reserved=RESERVED_CODES
                )
            except IntegrityError:
                link = None
            if link is not None:
                return link
            self._logger.warning(f"Generated short code was unavailable, retrying (attempt {attempt}/{attempts})")
        raise ShortCodeCollision(attempts)
