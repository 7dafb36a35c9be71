"""
Display helpers for chat rows.

HtmlRow content is produced by world scripts and is not trusted; it is cleaned
with bleach before any presentation layer renders it.
"""

import bleach

from .messages import ChatRow, HtmlRow

# Inline formatting that world scripts use for emphasis, links and colour spans
DEFAULT_ALLOWED_TAGS = frozenset(
    {"a", "b", "br", "code", "em", "i", "p", "pre", "span", "strong", "u", "ul", "ol", "li"}
)

DEFAULT_ALLOWED_ATTRIBUTES = {
    "a": ["href", "title"],
    "span": ["class"],
    "p": ["class"],
    "code": ["class"],
}

DEFAULT_ALLOWED_PROTOCOLS = frozenset({"http", "https"})


def sanitize_row_html(html: str, allow_tags: frozenset[str] | None = None) -> str:
    """
    Sanitize pre-rendered row markup.

    Args:
        html: Markup from an HtmlRow
        allow_tags: Tags to keep (default: inline formatting only)

    Returns:
        Markup with disallowed tags, attributes, comments and link schemes stripped
    """
    if not html:
        return ""

    if allow_tags is None:
        allow_tags = DEFAULT_ALLOWED_TAGS

    return bleach.clean(
        html,
        tags=allow_tags,
        attributes=DEFAULT_ALLOWED_ATTRIBUTES,
        protocols=DEFAULT_ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def row_display_text(row: ChatRow) -> str:
    """Return what a presentation layer should render for a row."""
    if isinstance(row, HtmlRow):
        return sanitize_row_html(row.html)
    return row.text
