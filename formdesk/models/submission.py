"""Form submission models: decoded multipart data and the validated submission."""

import logging
import os
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


@dataclass
class SubmittedFile:
    """One uploaded file, spooled to a temporary path on disk."""

    field_name: str
    filename: str
    content_type: str
    path: str
    size: int = 0


@dataclass
class RejectedFile:
    """A file that did not make it onto the ticket."""

    filename: str
    reason: str


@dataclass
class DecodedForm:
    """Result of decoding a multipart body.

    ``fields`` holds the first value seen for each field name. ``files`` maps
    a field name to every accepted file sent under it, in arrival order.
    ``rejected`` lists files dropped while parsing (size, count, MIME type).
    """

    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, list[SubmittedFile]] = field(default_factory=dict)
    rejected: list[RejectedFile] = field(default_factory=list)

    def all_files(self) -> list[SubmittedFile]:
        return [f for group in self.files.values() for f in group]

    def cleanup(self) -> None:
        """Delete every temporary file. Best-effort: failures are logged only."""
        for submitted in self.all_files():
            try:
                os.unlink(submitted.path)
            except FileNotFoundError:
                pass
            except OSError:
                logger.warning("Could not remove temp file %s", submitted.path)


class ValidatedSubmission(BaseModel):
    """Decoded fields that passed every input check. Read-only."""

    model_config = ConfigDict(frozen=True)

    form_type: str
    email: str
    fields: dict[str, str]
    subject: str | None = None  # already escaped and truncated
    verification_token: str | None = None
