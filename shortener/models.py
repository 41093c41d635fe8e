"""SQLAlchemy ORM model for short links.

Data Model Layout
=================
::
    short_links table
    ├─ id (SERIAL PRIMARY KEY, never reused)
    ├─ short_code (VARCHAR(10) UNIQUE, INDEXED)
    ├─ target_url (VARCHAR(2048) NOT NULL)
    ├─ click_count (INTEGER DEFAULT 0)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    └─ expires_at (TIMESTAMPTZ NULL → never expires)

How to Use
===========
**Step 1 — Import**::
    from shortener.models import ShortLink

**Step 2 — Check expiry**::
    if link.is_expired_at(utcnow()):
        raise LinkExpired(link.short_code)

Key Behaviours
===============
- short_code is unique; the database constraint is the authoritative guard.
- short_code is NULL while a generated row is inside its creating
  transaction, and for ids retired because their encoding was unavailable.
  Lookups by code never match NULL.
- click_count is only changed by IdentityStore.increment_clicks.
- Expiry is a predicate, not a deletion; expired rows stay in the table.

Classes:
    ShortLink:  A short code mapped to its target URL with click tracking.
"""

import datetime
from collections.abc import Callable

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["ShortLink", "Clock", "utcnow", "as_utc", "is_expired", "MAX_URL_LENGTH"]

MAX_URL_LENGTH = 2048

Clock = Callable[[], datetime.datetime]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def is_expired(expires_at: datetime.datetime | None, now: datetime.datetime) -> bool:
    return expires_at is not None and as_utc(now) >= as_utc(expires_at)


class ShortLink(Base):
    __tablename__ = "short_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str | None] = mapped_column(String(10), unique=True, index=True, nullable=True)
    target_url: Mapped[str] = mapped_column(String(MAX_URL_LENGTH), nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_expired_at(self, now: datetime.datetime) -> bool:
        return is_expired(self.expires_at, now)

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, short_code='{self.short_code}', clicks={self.click_count})>"
