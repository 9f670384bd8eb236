"""Human-readable labels for field names and form types."""

import re

# Lower/digit followed by upper ("firstName"), or an acronym followed by a
# capitalized word ("companyURLField" -> "company URL Field")
_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[-_.\s]+")

# Subject prefixes for known forms
FORM_TYPE_LABELS = {
    "b2b-form": "B2B Inquiry",
    "contact-form": "Customer Inquiry",
    "playspace-design": "Playspace Design Service Request",
}


def humanize_field_name(name: str) -> str:
    """Turn ``companyName`` / ``space_type`` / ``num-rooms`` into ``Company Name`` etc.

    Only the first letter of each word is upper-cased, so acronyms survive and
    the function is stable when applied to its own output.
    """
    spaced = _CASE_BOUNDARY.sub(" ", name)
    words = [w for w in _SEPARATORS.split(spaced) if w]
    return " ".join(w[0].upper() + w[1:] for w in words)


def form_type_label(form_type: str) -> str:
    return FORM_TYPE_LABELS.get(form_type) or humanize_field_name(form_type)
