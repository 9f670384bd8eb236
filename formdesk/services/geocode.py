"""Postal-code lookups against the Google Geocoding API.

The API key stays server-side; only address components are passed back.
"""

import logging
import re

import httpx

from formdesk.config import get_settings
from formdesk.errors import BadRequest, UpstreamFailure
from formdesk.models.geocode import AddressComponent, GeocodeResponse, GeocodeResult
from formdesk.services.http_client import get_shared_client

logger = logging.getLogger(__name__)

POSTAL_CODE_RE = re.compile(r"^[A-Za-z0-9\s\-]{2,20}$")


def validate_postal_code(value: str | None) -> str:
    if not value:
        raise BadRequest("Missing postalCode parameter")
    trimmed = value.strip()
    if not POSTAL_CODE_RE.match(trimmed):
        raise BadRequest("Invalid postal code format")
    return trimmed


def trim_geocode_response(data: dict) -> GeocodeResponse:
    """Keep the first result's address components and nothing else."""
    status = str(data.get("status", "UNKNOWN_ERROR"))
    results = data.get("results") or []
    if status != "OK" or not results:
        return GeocodeResponse(status=status, results=[])

    components = [
        AddressComponent(
            long_name=c.get("long_name", ""),
            short_name=c.get("short_name", ""),
            types=c.get("types", []),
        )
        for c in results[0].get("address_components", [])
    ]
    return GeocodeResponse(
        status="OK", results=[GeocodeResult(address_components=components)]
    )


async def lookup_postal_code(postal_code: str) -> GeocodeResponse:
    """Geocode *postal_code*.

    Raises:
        UpstreamFailure: the geocoding API could not be reached or returned
            something other than a JSON object.
    """
    settings = get_settings()
    client = get_shared_client()
    try:
        resp = await client.get(
            settings.geocode_api_url,
            params={"address": postal_code, "key": settings.google_api_key},
        )
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Geocoding proxy error: %s", type(e).__name__)
        raise UpstreamFailure("Geocoding service temporarily unavailable") from e

    if not isinstance(data, dict):
        logger.error("Geocoding proxy got a non-object response (%d)", resp.status_code)
        raise UpstreamFailure("Geocoding service temporarily unavailable")
    return trim_geocode_response(data)
