"""Attachment uploads to the Gorgias file store.

Files are sent one at a time, in the order they were parsed. A failed upload
never aborts the submission: it becomes a RejectedFile and the loop moves on.
"""

import logging
from typing import Any

import httpx

from formdesk.models.submission import RejectedFile, SubmittedFile
from formdesk.models.ticket import AttachmentDescriptor, UploadOutcome
from formdesk.services.http_client import get_shared_client, gorgias_auth, gorgias_url

logger = logging.getLogger(__name__)

FALLBACK_CONTENT_TYPE = "application/octet-stream"
UPLOAD_FAILED = "Upload failed"


def parse_upload_response(data: Any, filename: str) -> AttachmentDescriptor | None:
    """Normalize the upload response (an object or a one-element list)."""
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict) or not data.get("url"):
        return None
    return AttachmentDescriptor(
        url=data["url"],
        name=data.get("name") or filename,
        size=data.get("size"),
        content_type=data.get("content_type"),
    )


async def upload_attachment(
    submitted: SubmittedFile,
) -> AttachmentDescriptor | RejectedFile:
    """Stream one temp file to ``/upload?type=attachment``."""
    client = get_shared_client()
    content_type = submitted.content_type or FALLBACK_CONTENT_TYPE
    try:
        with open(submitted.path, "rb") as fh:
            resp = await client.post(
                gorgias_url("/upload"),
                params={"type": "attachment"},
                auth=gorgias_auth(),
                files={"file": (submitted.filename, fh, content_type)},
            )
        if not resp.is_success:
            logger.warning("Attachment upload returned %d", resp.status_code)
            return RejectedFile(filename=submitted.filename, reason=UPLOAD_FAILED)
        descriptor = parse_upload_response(resp.json(), submitted.filename)
    except (httpx.HTTPError, OSError, ValueError) as e:
        logger.warning("Attachment upload error: %s", type(e).__name__)
        return RejectedFile(filename=submitted.filename, reason=UPLOAD_FAILED)

    if descriptor is None:
        logger.warning("Attachment upload response had no file URL")
        return RejectedFile(filename=submitted.filename, reason=UPLOAD_FAILED)
    return descriptor


async def upload_attachments(files: list[SubmittedFile]) -> UploadOutcome:
    """Upload every file sequentially, splitting results into two lists."""
    outcome = UploadOutcome()
    for submitted in files:
        result = await upload_attachment(submitted)
        if isinstance(result, RejectedFile):
            outcome.rejected.append(result)
        else:
            outcome.uploaded.append(result)

    if files:
        logger.info(
            "Uploaded %d/%d attachment(s)", len(outcome.uploaded), len(files)
        )
    return outcome
