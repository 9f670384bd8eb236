"""Ticket payload and response models for the Gorgias ticketing API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formdesk.models.submission import RejectedFile


class AttachmentDescriptor(BaseModel):
    """Normalized metadata for a file stored by the helpdesk."""

    url: str
    name: str
    size: int | None = None
    content_type: str | None = None


class UploadOutcome(BaseModel):
    """Per-request upload results: successes and failures kept apart."""

    uploaded: list[AttachmentDescriptor] = []
    rejected: list[RejectedFile] = []


class Customer(BaseModel):
    email: str
    name: str
    firstname: str = ""
    lastname: str = ""


class EmailAddress(BaseModel):
    address: str
    name: str | None = None


class MessageSource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = "email"
    to: list[EmailAddress]
    from_: EmailAddress = Field(alias="from")


class TicketMessage(BaseModel):
    source: MessageSource
    body_html: str
    channel: str = "email"
    from_agent: bool = False
    via: str = "api"
    public: bool = True
    attachments: list[AttachmentDescriptor] | None = None
    integration_id: int | None = None


class Tag(BaseModel):
    name: str


class TicketPayload(BaseModel):
    """Outbound ticket-creation body."""

    channel: str = "email"
    via: str = "api"
    customer: Customer
    subject: str
    messages: list[TicketMessage]
    tags: list[Tag]
    status: str = "open"

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RejectedFileOut(BaseModel):
    filename: str
    reason: str


class TicketResponse(BaseModel):
    """Response after a ticket is created.

    The helpdesk subdomain and ticket URL are deliberately left out.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    ticket_id: int | str
    files_uploaded: int = 0
    files_rejected: int = 0
    rejected_files: list[RejectedFileOut] = []
