"""Input validation for form submissions.

Checks run in a fixed order and stop at the first failure:
origin, rate limit (router), required fields, form type, email, lengths.
"""

import html
import logging
import re

from formdesk.config import Settings
from formdesk.errors import BadRequest, Forbidden, ServerMisconfiguration
from formdesk.models.submission import ValidatedSubmission

logger = logging.getLogger(__name__)

# local@domain.tld, no whitespace, alphabetic TLD of 2+ characters
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@.]+(?:\.[^\s@.]+)*\.[A-Za-z]{2,}$")

MAX_SUBJECT_LENGTH = 200
SUBJECT_FIELDS = ("subject", "customSubject")
VERIFICATION_TOKEN_FIELD = "cf-turnstile-response"


def check_origin(origin: str | None, allowed_origins: list[str]) -> None:
    """Reject requests whose Origin header is missing or not allow-listed."""
    if not origin or origin not in allowed_origins:
        raise Forbidden()


def ensure_ticketing_configured(settings: Settings) -> None:
    if settings.gorgias_configured:
        return
    missing = [
        name
        for name in ("gorgias_subdomain", "gorgias_username", "gorgias_api_key")
        if not getattr(settings, name)
    ]
    logger.error("Missing Gorgias configuration: %s", ", ".join(missing))
    raise ServerMisconfiguration()


def sanitize_subject(raw: str) -> str:
    """HTML-escape a client subject line and cap it at 200 characters.

    An entity cut by the cap is dropped whole.
    """
    escaped = html.escape(raw.strip(), quote=True)[:MAX_SUBJECT_LENGTH]
    amp = escaped.rfind("&")
    if amp != -1 and ";" not in escaped[amp:]:
        escaped = escaped[:amp]
    return escaped


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def validate_submission(
    fields: dict[str, str], settings: Settings
) -> ValidatedSubmission:
    """Validate decoded form fields and build the read-only submission.

    Raises:
        BadRequest: on missing fields, unknown form type, malformed email,
            or any value over the length cap.
    """
    form_type = fields.get("formType", "").strip()
    email = fields.get("email", "").strip()

    if not form_type or not email:
        raise BadRequest("Missing required fields")

    if form_type not in settings.allowed_form_types:
        logger.warning("Rejected unknown form type (%d chars)", len(form_type))
        raise BadRequest("Invalid form type")

    if not is_valid_email(email):
        raise BadRequest("Invalid email address")

    for value in fields.values():
        if len(value) > settings.max_field_length:
            raise BadRequest("Input too long")

    subject = None
    for name in SUBJECT_FIELDS:
        raw = fields.get(name, "").strip()
        if raw:
            subject = sanitize_subject(raw)
            break

    token = fields.get(VERIFICATION_TOKEN_FIELD, "").strip() or None

    return ValidatedSubmission(
        form_type=form_type,
        email=email,
        fields=dict(fields),
        subject=subject,
        verification_token=token,
    )
