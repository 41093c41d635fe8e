"""Pydantic schemas for request/response validation and the cache payload.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    ├─ originalUrl: str (validated URL, ≤ 2048 chars)
    ├─ customAlias: str | None
    └─ expiresInHours: int | None (≤ 0 means never expires)

    ShortenResponse (Output)
    ├─ shortCode, shortUrl, originalUrl
    └─ createdAt, expiresAt

    LinkStatsResponse (Output)
    ├─ shortCode, shortUrl, originalUrl
    ├─ clickCount
    ├─ createdAt, expiresAt
    └─ isExpired

    CachedLink (Redis value)
    ├─ short_code
    ├─ target_url
    └─ expires_at

Key Behaviours
===============
- Wire names are camelCase; Python attributes stay snake_case.
- The cached payload always carries ``expires_at`` so expiry is checked on
  every cache hit.
- Alias format is checked by the shortening service, not here, so direct
  service callers get the same validation.
"""

import datetime

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shortener.enums import HealthStatus
from shortener.models import MAX_URL_LENGTH, ShortLink

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "LinkStatsResponse",
    "HealthResponse",
    "ErrorResponse",
    "CachedLink",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortenRequest(CamelModel):
    original_url: str = Field(..., max_length=MAX_URL_LENGTH)
    custom_alias: str | None = None
    expires_in_hours: int | None = None

    @field_validator("original_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not validators.url(v):
            raise ValueError("Must be a valid URL")
        return v


class ShortenResponse(CamelModel):
    short_code: str
    short_url: str
    original_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None

    @classmethod
    def from_link(cls, link: ShortLink, short_url: str) -> "ShortenResponse":
        return cls(
            short_code=link.short_code,
            short_url=short_url,
            original_url=link.target_url,
            created_at=link.created_at,
            expires_at=link.expires_at,
        )


class LinkStatsResponse(CamelModel):
    short_code: str
    short_url: str
    original_url: str
    click_count: int
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None
    is_expired: bool


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ErrorResponse(BaseModel):
    status: int
    error: str
    message: str


class CachedLink(BaseModel):
    """Redis cache payload for a resolvable short link."""

    short_code: str
    target_url: str
    expires_at: datetime.datetime | None = None

    @classmethod
    def from_link(cls, link: ShortLink) -> "CachedLink":
        return cls(short_code=link.short_code, target_url=link.target_url, expires_at=link.expires_at)
