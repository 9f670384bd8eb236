"""Tests for attachment uploads and per-file failure isolation."""

import httpx
import pytest

from formdesk.models.submission import RejectedFile, SubmittedFile
from formdesk.models.ticket import AttachmentDescriptor
from formdesk.services.attachments import (
    parse_upload_response,
    upload_attachment,
    upload_attachments,
)


@pytest.fixture
def make_file(tmp_path):
    def _make(name: str, data: bytes = b"%PDF-1.4", content_type: str = "application/pdf"):
        path = tmp_path / name
        path.write_bytes(data)
        return SubmittedFile(
            field_name="docs",
            filename=name,
            content_type=content_type,
            path=str(path),
            size=len(data),
        )

    return _make


class TestParseUploadResponse:
    def test_single_element_list(self):
        result = parse_upload_response(
            [{"url": "https://u/1", "name": "a.pdf", "size": 3, "content_type": "application/pdf"}],
            "orig.pdf",
        )
        assert result == AttachmentDescriptor(
            url="https://u/1", name="a.pdf", size=3, content_type="application/pdf"
        )

    def test_plain_object_and_name_default(self):
        result = parse_upload_response({"url": "https://u/2"}, "orig.pdf")
        assert result.name == "orig.pdf"

    @pytest.mark.parametrize("data", [[], {}, {"name": "x"}, "oops", None])
    def test_unusable_responses(self, data):
        assert parse_upload_response(data, "orig.pdf") is None


async def test_upload_sends_file_with_basic_auth(upstream, make_file):
    result = await upload_attachment(make_file("scan.pdf", b"hello pdf"))

    assert isinstance(result, AttachmentDescriptor)
    assert result.url == "https://uploads.testdesk.com/scan.pdf"
    (request,) = upstream.calls("/upload")
    assert request.url.params["type"] == "attachment"
    assert request.headers["Authorization"].startswith("Basic ")
    assert b'filename="scan.pdf"' in request.content
    assert b"Content-Type: application/pdf" in request.content
    assert b"hello pdf" in request.content


async def test_missing_content_type_uses_binary_fallback(upstream, make_file):
    await upload_attachment(make_file("blob.bin", content_type=""))
    (request,) = upstream.calls("/upload")
    assert b"Content-Type: application/octet-stream" in request.content


async def test_failed_upload_is_isolated(upstream, make_file):
    upstream.failing_uploads = {"b.pdf"}
    files = [make_file("a.pdf"), make_file("b.pdf"), make_file("c.pdf")]

    outcome = await upload_attachments(files)

    assert [a.name for a in outcome.uploaded] == ["a.pdf", "c.pdf"]
    assert outcome.rejected == [RejectedFile(filename="b.pdf", reason="Upload failed")]
    # Sequential, in parse order, no retry
    names = [r.content.split(b'filename="')[1].split(b'"')[0] for r in upstream.calls("/upload")]
    assert names == [b"a.pdf", b"b.pdf", b"c.pdf"]


async def test_transport_error_is_a_rejection(mock_settings, monkeypatch, make_file):
    import formdesk.services.http_client as http_mod

    def handler(request):
        raise httpx.ReadTimeout("slow")

    monkeypatch.setattr(
        http_mod, "_client", httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    result = await upload_attachment(make_file("a.pdf"))
    assert result == RejectedFile(filename="a.pdf", reason="Upload failed")


async def test_missing_temp_file_is_a_rejection(upstream, make_file, tmp_path):
    submitted = make_file("gone.pdf")
    (tmp_path / "gone.pdf").unlink()
    result = await upload_attachment(submitted)
    assert isinstance(result, RejectedFile)
    assert upstream.calls("/upload") == []
