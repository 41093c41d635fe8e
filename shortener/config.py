"""Configuration management for the short-link service.

This module provides centralized configuration using Pydantic BaseSettings
with environment variable support. The settings object is frozen: it is built
once and handed to every component constructor instead of being read from
module globals.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache │
    │ (lru_cache) │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Pass to components**::
    settings = get_settings()
    service = ShorteningService(store, settings, logger)

**Step 3 — Override in tests**::
    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./test.db")

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables override defaults automatically.
- Instances are immutable; assigning an attribute raises ValidationError.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortener"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Identity store (PostgreSQL)
    DATABASE_URL: str = "postgresql+asyncpg://shortener:shortener@db:5432/shortener"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_COMMAND_TIMEOUT_SECONDS: float = 5.0

    # Resolution cache (Redis)
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_KEY_PREFIX: str = "shortener:urls"
    CACHE_TTL_SECONDS: int = 86400
    CACHE_TIMEOUT_SECONDS: float = 0.25

    # Short codes
    MAX_SHORT_CODE_LENGTH: int = 10
    CODE_ALLOCATION_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
    )

    @property
    def public_base_url(self) -> str:
        return self.BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
