"""Optional bot verification via Cloudflare Turnstile.

The gate only applies when both a token was submitted and a secret is
configured. If Turnstile itself cannot be reached or answers with an error,
the submission is let through: a helpdesk outage is worse than a stray bot.
"""

import logging

import httpx

from formdesk.config import get_settings
from formdesk.errors import Forbidden
from formdesk.services.http_client import get_shared_client

logger = logging.getLogger(__name__)


async def verify_token(token: str, remote_ip: str | None = None) -> bool | None:
    """Ask Turnstile whether *token* is valid.

    Returns True/False for a definite answer, or None when the verification
    service could not give one (network error, non-200, unreadable body).
    """
    settings = get_settings()
    payload: dict[str, str] = {
        "secret": settings.turnstile_secret_key,
        "response": token,
    }
    if remote_ip and remote_ip != "unknown":
        payload["remoteip"] = remote_ip

    client = get_shared_client()
    try:
        resp = await client.post(settings.turnstile_verify_url, json=payload)
        if resp.status_code != 200:
            logger.warning("Turnstile returned %d", resp.status_code)
            return None
        data = resp.json()
    except (httpx.HTTPError, ValueError):
        logger.warning("Turnstile verification unavailable", exc_info=True)
        return None

    if not isinstance(data, dict) or "success" not in data:
        logger.warning("Turnstile response had no verdict")
        return None
    if not data["success"]:
        logger.info("Turnstile rejected token: %s", data.get("error-codes", []))
        return False
    return True


async def check_verification(token: str | None, remote_ip: str | None = None) -> None:
    """Raise Forbidden when Turnstile definitively rejects the token."""
    settings = get_settings()
    if not token or not settings.turnstile_secret_key:
        return

    result = await verify_token(token, remote_ip)
    if result is False:
        raise Forbidden("Verification failed")
    if result is None:
        logger.warning("Proceeding without bot verification (fail-open)")
