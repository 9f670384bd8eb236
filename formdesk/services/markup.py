"""HTML building blocks for ticket bodies.

Every helper escapes its text arguments; callers pass raw submitted values.
"""

import html

WRAPPER_STYLE = "font-family: Arial, sans-serif; font-size: 14px; color: #222;"
HEADING_STYLE = "color: #21808D;"
SECTION_STYLE = "color: #134252; margin-top: 20px;"
BLOCK_STYLE = (
    "white-space: pre-wrap; background: #f5f5f5; padding: 12px; border-radius: 4px;"
)


def esc(value: str) -> str:
    return html.escape(value, quote=True)


def wrap(parts: list[str]) -> str:
    body = "\n".join(parts)
    return f'<div style="{WRAPPER_STYLE}">\n{body}\n</div>'


def heading(text: str) -> str:
    return f'<h2 style="{HEADING_STYLE}">{esc(text)}</h2>'


def section(title: str) -> str:
    return f'<h3 style="{SECTION_STYLE}">{esc(title)}</h3>'


def row(label: str, value: str) -> str:
    return f"<p><strong>{esc(label)}:</strong> {esc(value)}</p>"


def block(value: str) -> str:
    return f'<div style="{BLOCK_STYLE}">{esc(value)}</div>'
