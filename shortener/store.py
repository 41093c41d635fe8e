"""Identity store: the durable source of truth for short links.

Every mutation of a ShortLink row goes through this repository. It owns the
two-phase insert used for generated codes and the atomic click increment.

Flow Diagram — Generated Code Insert
====================================
::
    ┌──────────────┐
    │ INSERT row   │
    │ short_code=  │
    │ NULL         │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ flush → id   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ short_code = │
    │ encode(id)   │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ UPDATE +     │
    │ COMMIT       │
    └──────────────┘

Key Behaviours
===============
- Both writes of a generated insert share one transaction; readers never see
  a provisional row.
- An id whose encoding is reserved or taken by an alias is retired: its row
  is committed with a NULL code, which no lookup can match.
- Uniqueness violations roll the session back and re-raise IntegrityError;
  translating them is the caller's job.
- Click increments are a single UPDATE statement evaluated by the database.
"""

import datetime
from collections.abc import Callable, Collection

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.metrics import STORE_READS_TOTAL, STORE_WRITES_TOTAL
from shortener.models import ShortLink

__all__ = ["IdentityStore"]


class IdentityStore:
    """Repository over a single request-scoped AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_code(self, short_code: str) -> ShortLink | None:
        result = await self._session.execute(
            select(ShortLink)
            .where(ShortLink.short_code == short_code)
            .execution_options(populate_existing=True)
        )
        STORE_READS_TOTAL.inc()
        return result.scalar_one_or_none()

    async def exists(self, short_code: str) -> bool:
        result = await self._session.execute(select(ShortLink.id).where(ShortLink.short_code == short_code))
        STORE_READS_TOTAL.inc()
        return result.first() is not None

    async def add_with_alias(
        self,
        alias: str,
        target_url: str,
        created_at: datetime.datetime,
        expires_at: datetime.datetime | None,
    ) -> ShortLink:
        link = ShortLink(
            short_code=alias,
            target_url=target_url,
            click_count=0,
            created_at=created_at,
            expires_at=expires_at,
        )
        self._session.add(link)
        try:
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            raise
        STORE_WRITES_TOTAL.inc()
        return link

    async def add_with_generated_code(
        self,
        encode: Callable[[int], str],
        target_url: str,
        created_at: datetime.datetime,
        expires_at: datetime.datetime | None,
        reserved: Collection[str] = (),
    ) -> ShortLink | None:
        """Insert a row and give it ``encode(id)`` as its code.

        When the encoded id is in ``reserved`` or already held by a custom
        alias, the row is committed without a code and None is returned. The
        id stays consumed, so the next call encodes a different one even on
        backends that hand rolled-back ids out again.
        """
        link = ShortLink(
            short_code=None,
            target_url=target_url,
            click_count=0,
            created_at=created_at,
            expires_at=expires_at,
        )
        self._session.add(link)
        try:
            await self._session.flush()
            STORE_WRITES_TOTAL.inc()
            code = encode(link.id)
            if code in reserved or await self.exists(code):
                await self._session.commit()
                return None
            link.short_code = code
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            raise
        STORE_WRITES_TOTAL.inc()
        return link

    async def increment_clicks(self, short_code: str) -> int:
        """Atomically add one click to ``short_code``.

        Returns:
            int: Number of rows matched (0 if the code does not exist).
        """
        try:
            result = await self._session.execute(
                update(ShortLink)
                .where(ShortLink.short_code == short_code)
                .values(click_count=ShortLink.click_count + 1)
                .execution_options(synchronize_session=False)
            )
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            raise
        STORE_WRITES_TOTAL.inc()
        return result.rowcount
