"""FastAPI application entry point for the short-link service.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan():  │
    │ init_db()    │
    │ manager init │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan():  │
    │ close_db()   │
    │ close_redis()│
    └──────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortener.main:app --host 0.0.0.0 --port 8080

**Shorten a URL**::
    curl -X POST http://localhost:8080/api/v1/shorten \
         -H "Content-Type: application/json" \
         -d '{"originalUrl": "https://example.com"}'

Key Behaviours
===============
- Domain errors render as ``{"status", "error", "message"}`` with the status
  carried by the exception class.
- Request validation errors render as 400.
- Identity store connectivity failures render as 503.
- Prometheus metrics are exposed on /metrics.
"""

__all__ = ["app", "create_app"]

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from shortener.cache import close_redis
from shortener.config import get_settings
from shortener.database import close_db, init_db
from shortener.dependencies import LOGGER_NAME, _service_manager
from shortener.exceptions import ShortenerError
from shortener.routes import api_router, router
from shortener.schemas import ErrorResponse

logger = logging.getLogger(LOGGER_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await init_db()
    await _service_manager.initialize()
    yield
    # Shutdown
    await _service_manager.cleanup()
    await close_db()
    await close_redis()


def _error_body(status_code: int, message: str) -> dict:
    return ErrorResponse(status=status_code, error=HTTPStatus(status_code).phrase, message=message).model_dump()


async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.status_code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return JSONResponse(status_code=400, content=_error_body(400, message))


async def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Identity store unavailable during {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content=_error_body(503, "Identity store unavailable"))


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Short links with cached resolution and click counting",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(ShortenerError, shortener_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    for exc_type in (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError):
        application.add_exception_handler(exc_type, store_unavailable_handler)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(application).expose(application)

    # The catch-all redirect route must be registered last.
    application.include_router(api_router)
    application.include_router(router)
    return application


app = create_app()
