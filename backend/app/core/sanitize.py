"""Text sanitization for free-text order fields."""

import html


def sanitize_text(value: str | None) -> str | None:
    """Trim and HTML-escape user-supplied text; blank input becomes None.

    Guest names, delivery addresses and customization notes are shown on the
    kitchen display and printed receipts, so they are stored escaped.
    """
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        return None
    return html.escape(value, quote=True)
