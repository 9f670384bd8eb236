"""Shared fixtures for formdesk tests."""

import json
import re

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

ALLOWED_ORIGIN = "https://shop.example.com"
BOUNDARY = "formdesk-test-boundary"


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from formdesk.config import get_settings

    get_settings.cache_clear()

    # 2. HTTP client singleton
    import formdesk.services.http_client as http_mod

    http_mod._client = None

    # 3. Rate limiters
    import formdesk.services.rate_limit as rate_mod

    rate_mod._ticket_limiter = None
    rate_mod._geocode_limiter = None

    # 4. Health check cache
    import formdesk.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from formdesk.config import Settings, get_settings

    test_settings = Settings(
        _env_file=None,
        allowed_origins=[ALLOWED_ORIGIN],
        gorgias_subdomain="testdesk",
        gorgias_username="api@testdesk.com",
        gorgias_api_key="test-key",
        gorgias_support_email="support@testdesk.com",
        google_api_key="test-google-key",
        turnstile_secret_key="",
    )

    get_settings.cache_clear()
    monkeypatch.setattr("formdesk.config.get_settings", lambda: test_settings)

    # Patch get_settings in every module that imports it directly
    # (from formdesk.config import get_settings creates a local binding that
    # the formdesk.config monkeypatch above does not affect)
    for mod_path in [
        "formdesk.main",
        "formdesk.middleware",
        "formdesk.routers.tickets",
        "formdesk.routers.geocode",
        "formdesk.services.http_client",
        "formdesk.services.rate_limit",
        "formdesk.services.tickets",
        "formdesk.services.verification",
        "formdesk.services.geocode",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


class FakeUpstream:
    """Stands in for Gorgias, Turnstile and Google behind httpx.MockTransport.

    Every request is recorded. Responses are driven by the public attributes.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.failing_uploads: set[str] = set()
        self.ticket_status = 201
        self.ticket_json: dict = {"id": 4242, "uri": "/api/tickets/4242"}
        self.turnstile_status = 200
        self.turnstile_json: dict = {"success": True}
        self.geocode_json: dict = {"status": "ZERO_RESULTS", "results": []}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/upload"):
            match = re.search(rb'filename="([^"]*)"', request.content)
            filename = match.group(1).decode() if match else ""
            if filename in self.failing_uploads:
                return httpx.Response(500, text="storage error")
            return httpx.Response(
                201,
                json=[
                    {
                        "url": f"https://uploads.testdesk.com/{filename}",
                        "name": filename,
                        "size": len(request.content),
                        "content_type": "application/pdf",
                    }
                ],
            )
        if path.endswith("/tickets"):
            return httpx.Response(self.ticket_status, json=self.ticket_json)
        if "siteverify" in path:
            return httpx.Response(self.turnstile_status, json=self.turnstile_json)
        if "geocode" in path:
            return httpx.Response(200, json=self.geocode_json)
        return httpx.Response(404)

    def calls(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def ticket_payload(self) -> dict:
        (request,) = self.calls("/tickets")
        return json.loads(request.content)


@pytest.fixture
def upstream(mock_settings):
    """Route the shared outbound client to a FakeUpstream."""
    import formdesk.services.http_client as http_mod

    fake = FakeUpstream()
    http_mod._client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return fake


@pytest.fixture
async def api_client(mock_settings):
    from formdesk.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client


def encode_multipart(
    fields: dict[str, str] | list[tuple[str, str]],
    files: list[tuple[str, str, bytes, str]] = (),
) -> tuple[bytes, str]:
    """Build a multipart/form-data body. Files are (field, filename, data, type)."""
    items = fields.items() if isinstance(fields, dict) else fields
    chunks: list[bytes] = []
    for name, value in items:
        chunks.append(
            f'--{BOUNDARY}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode()
            + b"\r\n"
        )
    for name, filename, data, content_type in files:
        chunks.append(
            (
                f"--{BOUNDARY}\r\n"
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                f"Content-Type: {content_type}\r\n\r\n"
            ).encode()
            + data
            + b"\r\n"
        )
    chunks.append(f"--{BOUNDARY}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={BOUNDARY}"


@pytest.fixture
def multipart_body():
    return encode_multipart


@pytest.fixture
def post_form(api_client):
    """POST a multipart form to /api/create-ticket from the allowed origin."""

    async def _post(fields, files=(), origin=ALLOWED_ORIGIN, headers=None):
        body, content_type = encode_multipart(fields, files)
        request_headers = {"Content-Type": content_type}
        if origin:
            request_headers["Origin"] = origin
        request_headers.update(headers or {})
        return await api_client.post(
            "/api/create-ticket", content=body, headers=request_headers
        )

    return _post
