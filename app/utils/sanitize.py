"""
Input Sanitization Utilities

Client- and studio-supplied free text (gallery descriptions, order notes,
customer names) is rendered in emails and the public gallery page, so it
is cleaned with bleach before it is stored.
"""

import re
from typing import Optional

import bleach

# Light formatting allowed in gallery descriptions
DESCRIPTION_TAGS = ["p", "br", "strong", "em", "u", "a"]
DESCRIPTION_ATTRS = {"a": ["href", "title"]}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_plain_text(text: Optional[str]) -> Optional[str]:
    """
    Strip all HTML tags and collapse whitespace.

    None stays None so optional fields remain unset.
    """
    if text is None:
        return None
    cleaned = bleach.clean(text, tags=[], strip=True)
    return re.sub(r"\s+", " ", cleaned).strip()


def sanitize_description(text: Optional[str]) -> Optional[str]:
    """Allow a handful of inline tags; links keep safe protocols only."""
    if text is None:
        return None
    return bleach.clean(
        text,
        tags=DESCRIPTION_TAGS,
        attributes=DESCRIPTION_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    ).strip()


def sanitize_multiline(text: Optional[str]) -> Optional[str]:
    """Strip tags but keep line breaks (order notes)."""
    if text is None:
        return None
    cleaned = bleach.clean(text, tags=[], strip=True)
    return "\n".join(line.rstrip() for line in cleaned.strip().splitlines())
