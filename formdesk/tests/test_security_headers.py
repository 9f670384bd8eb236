"""Tests for security headers, CORS headers, request IDs and the health check."""

import json
import logging

from starlette.requests import Request

from formdesk.main import unhandled_error_handler
from formdesk.middleware import RequestIDLogFilter, request_id_var

ORIGIN = "https://shop.example.com"


async def test_security_headers_present(api_client):
    """Every response includes security headers."""
    response = await api_client.get("/api/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


async def test_request_id_is_echoed(api_client):
    response = await api_client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


async def test_request_id_generated_when_absent(api_client):
    response = await api_client.get("/api/health")
    assert len(response.headers["X-Request-ID"]) == 36


async def test_cors_grant_only_for_allowed_origin(api_client):
    allowed = await api_client.get("/api/health", headers={"Origin": ORIGIN})
    foreign = await api_client.get(
        "/api/health", headers={"Origin": "https://evil.example.com"}
    )

    assert allowed.headers["Access-Control-Allow-Origin"] == ORIGIN
    assert allowed.headers["Access-Control-Allow-Credentials"] == "true"
    assert allowed.headers["Vary"] == "Origin"
    assert "Access-Control-Allow-Origin" not in foreign.headers
    assert foreign.headers["Access-Control-Allow-Headers"] == "Content-Type"


async def test_health_reports_configured_integrations(api_client):
    response = await api_client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "service": "formdesk-api",
        "version": "0.1.0",
        "checks": {"ticketing": "ok", "geocoding": "ok", "origins": "ok"},
    }


async def test_health_degraded_without_credentials(api_client, mock_settings):
    mock_settings.gorgias_api_key = ""
    response = await api_client.get("/api/health")
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["ticketing"] == "fail"


def test_log_filter_injects_request_id():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("abc")
    try:
        assert RequestIDLogFilter().filter(record) is True
    finally:
        request_id_var.reset(token)
    assert record.request_id == "abc"


async def test_unhandled_error_response_keeps_cors_grant(mock_settings):
    request = Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/create-ticket",
            "headers": [(b"origin", ORIGIN.encode())],
        }
    )

    response = await unhandled_error_handler(request, RuntimeError("boom"))

    assert response.status_code == 500
    assert json.loads(response.body) == {"error": "Internal server error"}
    assert response.headers["Access-Control-Allow-Origin"] == ORIGIN
    assert b"boom" not in response.body
