"""Ticket body rendering.

The generic renderer lists every submitted field as a label/value pair. Known
form types can register a hand-written layout in ``form_templates``; those
take over when templates are enabled, and anything else falls back to the
generic layout.
"""

from collections.abc import Mapping

from formdesk.services import markup
from formdesk.services.form_templates import FORM_TEMPLATES
from formdesk.services.labels import humanize_field_name
from formdesk.services.validation import SUBJECT_FIELDS, VERIFICATION_TOKEN_FIELD

# Control fields consumed by the pipeline, never shown in the ticket body
RESERVED_FIELDS = frozenset(
    {"formType", "tags", *SUBJECT_FIELDS, VERIFICATION_TOKEN_FIELD}
)

INLINE_MAX_LENGTH = 100
EMPTY_NOTICE = '<p><em>No additional data was provided.</em></p>'


def _normalize(value: str) -> str:
    return value.replace("\r\n", "\n").strip()


def render_generic(form_type: str, fields: Mapping[str, str]) -> str:
    """Render all non-reserved, non-blank fields in submission order."""
    parts = [markup.heading(f"{humanize_field_name(form_type)} Submission")]
    rendered = 0
    for name, value in fields.items():
        if name in RESERVED_FIELDS:
            continue
        text = _normalize(value)
        if not text:
            continue
        label = humanize_field_name(name)
        if len(text) <= INLINE_MAX_LENGTH and "\n" not in text:
            parts.append(markup.row(label, text))
        else:
            parts.append(markup.section(label))
            parts.append(markup.block(text))
        rendered += 1

    if not rendered:
        parts.append(EMPTY_NOTICE)
    return markup.wrap(parts)


def render_ticket_body(
    form_type: str, fields: Mapping[str, str], use_templates: bool = True
) -> str:
    """Pick the form's template if one is registered, else the generic layout."""
    template = FORM_TEMPLATES.get(form_type) if use_templates else None
    if template is not None:
        return template(fields)
    return render_generic(form_type, fields)
