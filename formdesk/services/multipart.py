"""Streaming multipart/form-data decoder.

Feeds the raw request stream through python-multipart's callback parser.
File parts go straight to temporary files on disk and the size, count and
MIME-type limits are applied while bytes arrive, so an oversized upload is
cut off instead of being buffered first.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import IO

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect, Request

from formdesk.config import Settings
from formdesk.errors import BadRequest, FormParseError
from formdesk.models.submission import DecodedForm, RejectedFile, SubmittedFile

logger = logging.getLogger(__name__)

MAX_PARTS = 1000
TEMP_PREFIX = "formdesk-"

# Unreadable body: malformed parts, disconnects, disk errors, unknown charset
_PARSE_ERRORS = (MultipartParseError, ClientDisconnect, OSError, LookupError)


@dataclass
class DecoderLimits:
    max_files: int = 20
    max_file_size: int = 5 * 1024 * 1024
    max_field_bytes: int = 64 * 1024
    allowed_file_types: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DecoderLimits":
        return cls(
            max_files=settings.max_files,
            max_file_size=settings.max_file_size,
            max_field_bytes=settings.max_field_bytes,
            allowed_file_types=[t.lower() for t in settings.allowed_file_types],
        )


@dataclass
class _Part:
    name: str = ""
    filename: str | None = None
    content_type: str = ""
    data: bytearray = field(default_factory=bytearray)
    file: IO[bytes] | None = None
    submitted: SubmittedFile | None = None
    skip: bool = False


def _clean_filename(raw: str) -> str:
    # Browsers may send a full client path (old IE); keep the last segment only
    return os.path.basename(raw.replace("\\", "/")).strip()


class MultipartDecoder:
    """Incremental decoder. Call ``feed`` per chunk, then ``finish``."""

    def __init__(
        self, boundary: bytes, limits: DecoderLimits, charset: str = "utf-8"
    ) -> None:
        self.limits = limits
        self.charset = charset
        self.form = DecodedForm()
        self._accepted_files = 0
        self._parts_seen = 0
        self._part = _Part()
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._headers: dict[bytes, bytes] = {}
        self._parser = MultipartParser(
            boundary,
            {
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
            },
        )

    def feed(self, chunk: bytes) -> None:
        if chunk:
            self._parser.write(chunk)

    def finish(self) -> DecodedForm:
        self._parser.finalize()
        if self._part.file is not None:
            raise MultipartParseError("Body ended inside a file part")
        return self.form

    def discard(self) -> None:
        """Abort: close and delete every temp file written so far."""
        part = self._part
        if part.file is not None:
            part.file.close()
            part.file = None
            if part.submitted is not None:
                _unlink_quietly(part.submitted.path)
        self.form.cleanup()

    # -- parser callbacks -------------------------------------------------

    def _on_part_begin(self) -> None:
        self._parts_seen += 1
        if self._parts_seen > MAX_PARTS:
            raise BadRequest("Too many fields")
        self._part = _Part()
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def _on_header_end(self) -> None:
        self._headers[bytes(self._header_field).lower()] = bytes(self._header_value)
        self._header_field = bytearray()
        self._header_value = bytearray()

    def _on_headers_finished(self) -> None:
        disposition = self._headers.get(b"content-disposition", b"")
        _, options = parse_options_header(disposition)
        if b"name" not in options:
            raise MultipartParseError("Part is missing a field name")

        part = self._part
        part.name = options[b"name"].decode(self.charset, errors="replace")
        if b"filename" not in options:
            return

        part.filename = _clean_filename(
            options[b"filename"].decode(self.charset, errors="replace")
        )
        raw_type = self._headers.get(b"content-type", b"").decode("latin-1")
        part.content_type = raw_type.split(";")[0].strip().lower()

        if not part.filename:
            # Empty file input ("no file chosen")
            part.skip = True
            return

        if self._accepted_files >= self.limits.max_files:
            self._reject(part, "Too many files")
            return

        if part.content_type not in self.limits.allowed_file_types:
            logger.info("Dropped upload with type %s", part.content_type or "<none>")
            self._reject(part, "Unsupported file type")
            return

        tmp = tempfile.NamedTemporaryFile(prefix=TEMP_PREFIX, delete=False)
        part.file = tmp
        part.submitted = SubmittedFile(
            field_name=part.name,
            filename=part.filename,
            content_type=part.content_type,
            path=tmp.name,
        )

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        part = self._part
        if part.skip:
            return
        chunk = data[start:end]

        if part.filename is None:
            part.data.extend(chunk)
            if len(part.data) > self.limits.max_field_bytes:
                raise BadRequest("Input too long")
            return

        submitted = part.submitted
        if part.file is None or submitted is None:
            return
        if submitted.size + len(chunk) > self.limits.max_file_size:
            part.file.close()
            part.file = None
            _unlink_quietly(submitted.path)
            part.submitted = None
            self._reject(part, "File too large")
            return
        part.file.write(chunk)
        submitted.size += len(chunk)

    def _on_part_end(self) -> None:
        part = self._part
        if part.filename is None:
            # First value wins for repeated field names
            if part.name not in self.form.fields:
                self.form.fields[part.name] = part.data.decode(
                    self.charset, errors="replace"
                )
            return

        if part.file is not None and part.submitted is not None:
            part.file.close()
            part.file = None
            self.form.files.setdefault(part.name, []).append(part.submitted)
            self._accepted_files += 1

    def _reject(self, part: _Part, reason: str) -> None:
        part.skip = True
        self.form.rejected.append(
            RejectedFile(filename=part.filename or "", reason=reason)
        )


def _unlink_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except OSError:
        logger.warning("Could not remove temp file %s", path)


async def decode_multipart(request: Request, settings: Settings) -> DecodedForm:
    """Decode a multipart request body into fields and temp files.

    Raises:
        BadRequest: the body is not multipart/form-data, or a field is too long.
        FormParseError: the body could not be read or parsed. Any temp files
            written before the failure are removed first.
    """
    content_type, params = parse_options_header(
        request.headers.get("content-type", "")
    )
    if content_type != b"multipart/form-data" or b"boundary" not in params:
        raise BadRequest("Expected multipart/form-data")

    charset = params.get(b"charset", b"utf-8").decode("latin-1")
    decoder = MultipartDecoder(
        params[b"boundary"], DecoderLimits.from_settings(settings), charset=charset
    )

    try:
        async for chunk in request.stream():
            decoder.feed(chunk)
        form = decoder.finish()
    except BadRequest:
        decoder.discard()
        raise
    except _PARSE_ERRORS as e:
        decoder.discard()
        logger.error("Multipart parse failed: %s", type(e).__name__)
        raise FormParseError() from e
    except BaseException:
        decoder.discard()
        raise

    if form.rejected:
        logger.info("Dropped %d file(s) while parsing", len(form.rejected))
    return form
