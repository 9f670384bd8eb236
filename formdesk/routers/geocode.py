"""Postal-code geocoding proxy endpoint."""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from formdesk.config import get_settings
from formdesk.errors import RateLimited, ServerMisconfiguration
from formdesk.models.geocode import GeocodeResponse
from formdesk.services.geocode import lookup_postal_code, validate_postal_code
from formdesk.services.rate_limit import (
    FixedWindowRateLimiter,
    client_ip,
    get_geocode_limiter,
)
from formdesk.services.validation import check_origin

router = APIRouter(prefix="/geocode", tags=["geocode"])
logger = logging.getLogger(__name__)

# Postal code lookups rarely change
CACHE_CONTROL = "public, max-age=86400, s-maxage=86400"


@router.options("")
async def geocode_preflight() -> Response:
    return Response(status_code=204)


@router.get("", response_model=GeocodeResponse)
async def geocode(
    request: Request,
    response: Response,
    postal_code: str | None = Query(default=None, alias="postalCode"),
    limiter: FixedWindowRateLimiter = Depends(get_geocode_limiter),
) -> GeocodeResponse:
    """Look up address components for a postal code."""
    settings = get_settings()

    check_origin(request.headers.get("origin"), settings.allowed_origins)

    if not limiter.check(client_ip(request)):
        raise RateLimited()

    if not settings.google_api_key:
        logger.error("GOOGLE_API_KEY not configured")
        raise ServerMisconfiguration("Service temporarily unavailable")

    result = await lookup_postal_code(validate_postal_code(postal_code))
    if result.status == "OK":
        response.headers["Cache-Control"] = CACHE_CONTROL
    return result
