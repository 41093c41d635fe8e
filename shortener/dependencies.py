"""Dependency injection with a shared service manager.

Shared resources (settings, logger, Redis client, clock) live on one
ServiceManager created at startup. Everything request-scoped (the database
session, request ids, the services themselves) is built per request from it.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.cache import ResolutionCache, get_redis
from shortener.config import Settings, get_settings
from shortener.database import get_db
from shortener.models import Clock, utcnow
from shortener.resolution import ResolutionService
from shortener.shortening import ShorteningService
from shortener.store import IdentityStore

LOGGER_NAME = "shortener"


# ============================================================================
# SHARED SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Holds resources shared by every request.

    Attributes:
        settings: Immutable application settings.
        logger: Configured ``shortener`` logger.
        cache_client: Redis client backing the resolution cache.
        clock: Callable returning the current UTC time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache_client: Optional[redis.Redis] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings
        self.cache_client = cache_client
        self.clock = clock
        self.logger: Optional[logging.Logger] = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        if self.settings is None:
            self.settings = get_settings()
        self.logger = setup_logger(self.settings.LOG_LEVEL)
        if self.cache_client is None:
            self.cache_client = await get_redis()
        self._initialized = True

    async def cleanup(self) -> None:
        """Drop shared resources at shutdown; the Redis client is closed by close_redis()."""
        self.cache_client = None
        self._initialized = False


def setup_logger(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared resources plus tracing identifiers."""

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.perf_counter)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def cache_client(self) -> redis.Redis:
        return self.service_manager.cache_client

    @property
    def clock(self) -> Clock:
        return self.service_manager.clock

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger with request context attached to every record."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Request duration in milliseconds."""
        return (time.perf_counter() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_shortening_service(ctx: RequestContext = Depends(get_request_context)) -> ShorteningService:
    return ShorteningService(IdentityStore(ctx.database), ctx.settings, ctx.logger, clock=ctx.clock)


def get_resolution_service(ctx: RequestContext = Depends(get_request_context)) -> ResolutionService:
    cache = ResolutionCache(ctx.cache_client, ctx.settings, ctx.logger)
    return ResolutionService(IdentityStore(ctx.database), cache, ctx.settings, ctx.logger, clock=ctx.clock)
