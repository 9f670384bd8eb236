"""Ticket creation endpoint: multipart form in, helpdesk ticket out."""

import logging

from fastapi import APIRouter, Depends, Request, Response

from formdesk.config import get_settings
from formdesk.errors import InternalError, RateLimited, ServiceError
from formdesk.models.submission import DecodedForm
from formdesk.models.ticket import RejectedFileOut, TicketResponse
from formdesk.services.attachments import upload_attachments
from formdesk.services.multipart import decode_multipart
from formdesk.services.rate_limit import (
    FixedWindowRateLimiter,
    client_ip,
    get_ticket_limiter,
)
from formdesk.services.renderer import render_ticket_body
from formdesk.services.tickets import build_ticket_payload, create_ticket
from formdesk.services.validation import (
    check_origin,
    ensure_ticketing_configured,
    validate_submission,
)
from formdesk.services.verification import check_verification

router = APIRouter(prefix="/create-ticket", tags=["tickets"])
logger = logging.getLogger(__name__)


@router.options("")
async def create_ticket_preflight() -> Response:
    """CORS preflight. Headers are added by OriginCORSMiddleware."""
    return Response(status_code=204)


@router.post("", response_model=TicketResponse)
async def submit_form(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_ticket_limiter),
) -> TicketResponse:
    """Validate a form submission, upload its files, and open a ticket."""
    settings = get_settings()

    check_origin(request.headers.get("origin"), settings.allowed_origins)

    ip = client_ip(request)
    if not limiter.check(ip):
        logger.warning("Rate limited ticket submission from %s", ip)
        raise RateLimited()

    ensure_ticketing_configured(settings)

    form: DecodedForm | None = None
    try:
        form = await decode_multipart(request, settings)
        submission = validate_submission(form.fields, settings)
        await check_verification(submission.verification_token, ip)

        body_html = render_ticket_body(
            submission.form_type,
            submission.fields,
            use_templates=settings.use_form_templates,
        )
        outcome = await upload_attachments(form.all_files())

        payload = build_ticket_payload(submission, body_html, outcome.uploaded)
        ticket_id = await create_ticket(payload)
    except ServiceError:
        raise
    except Exception:
        logger.exception("Unexpected error while creating ticket")
        raise InternalError()
    finally:
        if form is not None:
            form.cleanup()

    rejected = form.rejected + outcome.rejected
    logger.info(
        "Created ticket %s (%s): %d file(s) uploaded, %d rejected",
        ticket_id,
        submission.form_type,
        len(outcome.uploaded),
        len(rejected),
    )

    return TicketResponse(
        ticket_id=ticket_id,
        files_uploaded=len(outcome.uploaded),
        files_rejected=len(rejected),
        rejected_files=[
            RejectedFileOut(filename=r.filename, reason=r.reason) for r in rejected
        ],
    )
