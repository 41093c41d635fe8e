"""FastAPI route definitions for the short-link REST API.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST {API_PREFIX}/shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/409

    GET  {API_PREFIX}/urls/:short_code
    GET  {API_PREFIX}/urls/:short_code/stats
        └─ LinkStatsResponse (200) or 404

    GET  /:short_code
        └─ 302 Redirect, 404 or 410

Key Behaviours
===============
- Domain errors propagate to the handlers registered in shortener.main.
- Redirects are 302 so every visit reaches the service and is counted.
- Info and stats never touch the cache or the click counter.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from shortener.config import get_settings
from shortener.dependencies import (
    RequestContext,
    get_request_context,
    get_resolution_service,
    get_shortening_service,
)
from shortener.enums import HealthStatus
from shortener.resolution import LinkStats, ResolutionService
from shortener.schemas import HealthResponse, LinkStatsResponse, ShortenRequest, ShortenResponse
from shortener.shortening import ShorteningService

__all__ = ["router", "api_router"]

router = APIRouter()
api_router = APIRouter(prefix=get_settings().API_PREFIX)


def _stats_response(stats: LinkStats) -> LinkStatsResponse:
    return LinkStatsResponse(
        short_code=stats.short_code,
        short_url=stats.short_url,
        original_url=stats.target_url,
        click_count=stats.click_count,
        created_at=stats.created_at,
        expires_at=stats.expires_at,
        is_expired=stats.is_expired,
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache_client.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@api_router.post("/shorten", response_model=ShortenResponse, status_code=201, tags=["urls"])
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: ShorteningService = Depends(get_shortening_service),
) -> ShortenResponse:
    ctx.logger.info(f"Received shorten request for URL: {payload.original_url}")
    link = await service.shorten(
        payload.original_url,
        custom_alias=payload.custom_alias,
        expires_in_hours=payload.expires_in_hours,
    )
    return ShortenResponse.from_link(link, service.public_url(link))


@api_router.get("/urls/{short_code}", response_model=LinkStatsResponse, tags=["urls"])
async def get_url_info(
    short_code: str,
    service: ResolutionService = Depends(get_resolution_service),
) -> LinkStatsResponse:
    return _stats_response(await service.get_stats(short_code))


@api_router.get("/urls/{short_code}/stats", response_model=LinkStatsResponse, tags=["urls"])
async def get_url_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> LinkStatsResponse:
    ctx.logger.info(f"Stats request for short code: {short_code}")
    return _stats_response(await service.get_stats(short_code))


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: ResolutionService = Depends(get_resolution_service),
) -> RedirectResponse:
    target_url = await service.resolve(short_code)
    ctx.logger.info(f"Redirect {short_code} -> {target_url} in {ctx.get_duration():.1f}ms")
    return RedirectResponse(url=target_url, status_code=302)
