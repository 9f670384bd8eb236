"""Hand-written ticket layouts for specific forms.

Only the fields named in a layout are shown. Register new layouts in
``FORM_TEMPLATES`` keyed by form type.
"""

from collections.abc import Callable, Mapping

from formdesk.services.markup import block, heading, row, section, wrap

# organizationType value -> (section title, [(label, field name), ...])
_ORGANIZATION_SECTIONS: dict[str, tuple[str, list[tuple[str, str]]]] = {
    "education": (
        "Education Details",
        [("Grade Levels", "gradeLevels"), ("Number of Students", "numStudents")],
    ),
    "interior-design": (
        "Interior Design Details",
        [
            ("Project Type", "projectType"),
            ("Budget Range", "budgetRange"),
            ("Playspace Design Service", "playspaceDesignId"),
        ],
    ),
    "corporation": (
        "Corporation Details",
        [("Company Size", "companySize"), ("Industry", "industry")],
    ),
    "hotel": (
        "Hotel Details",
        [
            ("Hotel Type", "hotelType"),
            ("Number of Rooms", "numRooms"),
            ("Playspace Design Service", "playspaceDesignHotel"),
        ],
    ),
}

# Checkbox-style fields rendered as Yes/No
_YES_NO_FIELDS = {"playspaceDesignId", "playspaceDesignHotel"}


def _first(fields: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = fields.get(name, "")
        if value:
            return value
    return ""


def _value(fields: Mapping[str, str], name: str) -> str:
    value = fields.get(name, "")
    if name in _YES_NO_FIELDS:
        return "Yes" if value == "yes" else "No"
    return value


def render_b2b_form(fields: Mapping[str, str]) -> str:
    phone = f"{fields.get('countryCode', '')} {fields.get('phone', '')}".strip()
    parts = [
        heading("B2B Lead Form Submission"),
        section("Contact Information"),
        row("Full Name", fields.get("fullName", "")),
        row("Email", fields.get("email", "")),
        row("Phone", phone),
        section("Business Information"),
        row("Company", fields.get("companyName", "")),
        row("Tax ID", fields.get("taxId", "")),
        row("Organization Type", fields.get("organizationType", "")),
        row("Website", fields.get("website", "")),
        row("Inquiry Type", fields.get("inquiryType", "")),
        section("Address"),
        row("Street", fields.get("streetAddress", "")),
        row("City", fields.get("city", "")),
        row("State", fields.get("state", "")),
        row("Postal Code", fields.get("postalCode", "")),
    ]

    org_section = _ORGANIZATION_SECTIONS.get(fields.get("organizationType", ""))
    if org_section is not None:
        title, rows = org_section
        parts.append(section(title))
        parts.extend(row(label, _value(fields, name)) for label, name in rows)

    message = fields.get("message", "")
    if message.strip():
        parts.extend([section("Message"), block(message)])

    return wrap(parts)


def _format_role(value: str) -> str:
    # The design form's free-text "Other" role is tagged for the support team
    if value.startswith("Other –"):
        return value.replace("Other –", "role-other –", 1)
    return value


def render_playspace_design(fields: Mapping[str, str]) -> str:
    parts = [
        section("Contact Information"),
        row("Name", _first(fields, "name", "fullName")),
        row("Email", fields.get("email", "")),
        section("Space Requirements"),
        row("Type of Space", _first(fields, "space_type", "spaceType")),
        row("Budget Range", fields.get("budget", "")),
        row(
            "Designed For",
            _format_role(_first(fields, "designed_for", "designedFor")),
        ),
        row("Project Timeline", fields.get("timeline", "")),
    ]

    notes = fields.get("notes", "")
    if notes.strip():
        parts.extend([section("Additional Notes"), block(notes)])

    return wrap(parts)


FORM_TEMPLATES: dict[str, Callable[[Mapping[str, str]], str]] = {
    "b2b-form": render_b2b_form,
    "playspace-design": render_playspace_design,
}
