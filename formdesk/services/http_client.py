"""Shared HTTP client utilities — reusable httpx client and auth helpers."""

import logging

import httpx

from formdesk.config import get_settings

logger = logging.getLogger(__name__)

# Module-level shared client (created lazily, lives for the process lifetime)
_client: httpx.AsyncClient | None = None


def get_shared_client() -> httpx.AsyncClient:
    """Return a shared httpx.AsyncClient, creating it on first call."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(timeout=get_settings().http_timeout)
    return _client


async def close_shared_client() -> None:
    """Close the shared client (application shutdown)."""
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None


def gorgias_auth() -> httpx.BasicAuth:
    """Basic auth (username + API key) for the Gorgias REST API."""
    settings = get_settings()
    return httpx.BasicAuth(settings.gorgias_username, settings.gorgias_api_key)


def gorgias_url(path: str) -> str:
    """Absolute URL for a Gorgias API path, e.g. ``gorgias_url("/tickets")``."""
    return f"{get_settings().gorgias_base_url}{path}"
