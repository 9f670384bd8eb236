"""
Formdesk API

Turns website form submissions into helpdesk tickets and proxies postal-code
lookups so the geocoding key stays on the server.
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formdesk.config import get_settings
from formdesk.middleware import (
    OriginCORSMiddleware,
    RequestIDLogFilter,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
    apply_cors_headers,
)
from formdesk.routers import geocode, tickets
from formdesk.services.http_client import close_shared_client

logger = logging.getLogger(__name__)

# Health check cache: (result_dict, timestamp)
_health_cache: tuple[dict[str, Any], float] | None = None
_HEALTH_CACHE_TTL = 30  # seconds

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Install a root handler (if none exists) that includes request IDs."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIDLogFilter) for f in handler.filters):
            handler.addFilter(RequestIDLogFilter())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    configure_logging(get_settings().debug)
    yield
    await close_shared_client()


app = FastAPI(
    title="Formdesk API",
    description="Form submissions to helpdesk tickets",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware added last runs first: request ID is outermost
app.add_middleware(OriginCORSMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

# Routers
app.include_router(tickets.router, prefix="/api")
app.include_router(geocode.router, prefix="/api")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render every HTTP error as ``{"error": message}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Starlette calls this outside the user middleware stack
    response = JSONResponse(
        status_code=500, content={"error": "Internal server error"}
    )
    apply_cors_headers(request, response)
    return response


def _run_health_checks() -> dict[str, Any]:
    """Report which outbound integrations are configured."""
    global _health_cache
    now = time.time()
    if _health_cache is not None:
        cached_result, cached_at = _health_cache
        if now - cached_at < _HEALTH_CACHE_TTL:
            return cached_result

    settings = get_settings()
    checks = {
        "ticketing": "ok" if settings.gorgias_configured else "fail",
        "geocoding": "ok" if settings.google_api_key else "fail",
        "origins": "ok" if settings.allowed_origins else "fail",
    }
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded — failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "formdesk-api",
        "version": "0.1.0",
        "checks": checks,
    }
    _health_cache = (result, now)
    return result


@app.get("/api/health")
async def health_check() -> JSONResponse:
    """Health check reporting integration configuration."""
    return JSONResponse(content=_run_health_checks())
