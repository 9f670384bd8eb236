"""Tests for the optional Turnstile bot-verification gate."""

import json

import pytest

from formdesk.errors import Forbidden
from formdesk.services.verification import check_verification, verify_token


@pytest.fixture
def turnstile(upstream, mock_settings):
    mock_settings.turnstile_secret_key = "ts-secret"
    return upstream


async def test_valid_token_passes(turnstile):
    await check_verification("good-token", "203.0.113.5")

    (request,) = turnstile.calls("/siteverify")
    body = json.loads(request.content)
    assert body == {"secret": "ts-secret", "response": "good-token", "remoteip": "203.0.113.5"}


async def test_rejected_token_is_forbidden(turnstile):
    turnstile.turnstile_json = {"success": False, "error-codes": ["invalid-input-response"]}
    with pytest.raises(Forbidden, match="Verification failed"):
        await check_verification("bad-token")


async def test_service_error_fails_open(turnstile):
    turnstile.turnstile_status = 503
    assert await verify_token("token") is None
    await check_verification("token")  # does not raise


async def test_response_without_verdict_fails_open(turnstile):
    turnstile.turnstile_json = {"error-codes": []}
    assert await verify_token("token") is None
    await check_verification("token")


async def test_unknown_ip_not_forwarded(turnstile):
    await verify_token("token", "unknown")
    body = json.loads(turnstile.calls("/siteverify")[0].content)
    assert "remoteip" not in body


async def test_no_secret_skips_verification(upstream):
    await check_verification("token")
    assert upstream.requests == []


async def test_no_token_skips_verification(turnstile):
    await check_verification(None)
    assert turnstile.requests == []
