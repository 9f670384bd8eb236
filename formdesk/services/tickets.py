"""Ticket payload construction and creation against the Gorgias API."""

import html
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from formdesk.config import get_settings
from formdesk.errors import UpstreamFailure
from formdesk.models.submission import ValidatedSubmission
from formdesk.models.ticket import (
    AttachmentDescriptor,
    Customer,
    EmailAddress,
    MessageSource,
    Tag,
    TicketMessage,
    TicketPayload,
)
from formdesk.services.http_client import get_shared_client, gorgias_auth, gorgias_url
from formdesk.services.labels import form_type_label
from formdesk.services.validation import MAX_SUBJECT_LENGTH

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 100


@dataclass
class CustomerName:
    full: str
    first: str
    last: str


def _split_name(full: str) -> tuple[str, str]:
    words = full.split()
    if not words:
        return "", ""
    return words[0], " ".join(words[1:])


def resolve_customer(fields: Mapping[str, str], email: str) -> CustomerName:
    """Resolve the customer's name.

    Full name comes from ``fullName``, then ``firstName`` + ``lastName``, then
    ``name``, then the local part of the email. First and last names are taken
    from their own fields when present, else split from the full name.
    """
    first = fields.get("firstName", "").strip()
    last = fields.get("lastName", "").strip()

    full = fields.get("fullName", "").strip()
    if not full:
        full = f"{first} {last}".strip()
    if not full:
        full = " ".join(fields.get("name", "").split())
    if not full:
        full = email.split("@")[0]

    split_first, split_last = _split_name(full)
    return CustomerName(full=full, first=first or split_first, last=last or split_last)


def resolve_subject(submission: ValidatedSubmission, customer: CustomerName) -> str:
    """Client subject if given, else "<form label> - <company or name>"."""
    if submission.subject:
        return submission.subject

    who = customer.full
    if submission.form_type == "b2b-form":
        who = submission.fields.get("companyName", "").strip() or who
    subject = f"{form_type_label(submission.form_type)} - {who}"
    return html.escape(subject, quote=True)[:MAX_SUBJECT_LENGTH]


def _clean_tags(values: list[str]) -> list[str]:
    tags: list[str] = []
    for value in values:
        tag = value.strip()[:MAX_TAG_LENGTH]
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def resolve_tags(raw: str | None, form_type: str) -> list[str]:
    """Parse client tags: JSON array first, then comma-separated text.

    Any JSON value that is not an array (object, string, number) falls through
    to the comma split. The form-type tag is always included, first.
    """
    candidates: list[str] = []
    raw = (raw or "").strip()
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            candidates = [
                str(item)
                for item in parsed
                if isinstance(item, (str, int, float)) and not isinstance(item, bool)
            ]
        else:
            candidates = raw.split(",")

    tags = _clean_tags(candidates)
    form_tag = form_type[:MAX_TAG_LENGTH]
    if form_tag in tags:
        tags.remove(form_tag)
    tags.insert(0, form_tag)
    return tags


def build_ticket_payload(
    submission: ValidatedSubmission,
    body_html: str,
    attachments: list[AttachmentDescriptor],
) -> TicketPayload:
    settings = get_settings()
    customer = resolve_customer(submission.fields, submission.email)

    message = TicketMessage(
        source=MessageSource(
            to=[EmailAddress(address=settings.gorgias_support_email)],
            from_=EmailAddress(address=submission.email, name=customer.full),
        ),
        body_html=body_html,
        attachments=attachments or None,
        integration_id=settings.form_integration_ids.get(submission.form_type),
    )

    return TicketPayload(
        customer=Customer(
            email=submission.email,
            name=customer.full,
            firstname=customer.first,
            lastname=customer.last,
        ),
        subject=resolve_subject(submission, customer),
        messages=[message],
        tags=[
            Tag(name=tag)
            for tag in resolve_tags(submission.fields.get("tags"), submission.form_type)
        ],
    )


async def create_ticket(payload: TicketPayload) -> int | str:
    """POST the ticket and return its id.

    Raises:
        UpstreamFailure: on transport errors or any non-2xx response. The
            upstream status is logged here and never sent to the caller.
    """
    client = get_shared_client()
    try:
        resp = await client.post(
            gorgias_url("/tickets"),
            auth=gorgias_auth(),
            json=payload.to_api(),
        )
    except httpx.HTTPError as e:
        logger.error("Gorgias ticket request failed: %s", type(e).__name__)
        raise UpstreamFailure("Failed to create ticket") from e

    if not resp.is_success:
        logger.error(
            "Gorgias API error %d (%d byte body)", resp.status_code, len(resp.content)
        )
        raise UpstreamFailure("Failed to create ticket")

    try:
        ticket_id = resp.json()["id"]
    except (ValueError, KeyError, TypeError) as e:
        logger.error("Gorgias ticket response had no id")
        raise UpstreamFailure("Failed to create ticket") from e
    return ticket_id
