# bookmeta/utils/title_normalizer.py
"""
Title, description and ISBN normalization.

Series annotations are removed so different editions of one work search the
same way, and (title, author) pairs are folded into a dedup key.
"""

import re
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

MAX_DESCRIPTION_LENGTH = 2000

# Applied in order; each match is replaced by a single space
_SERIES_PATTERNS = [
    re.compile(r"\s*\([^)]*#\d+[^)]*\)\s*", re.IGNORECASE),  # "(Mistborn, #1)"
    re.compile(r"\s*#\d+\s*", re.IGNORECASE),                # "#3"
    re.compile(r"\s*,?\s*book\s+\d+\s*", re.IGNORECASE),      # ", Book 2"
    re.compile(r"\s*,?\s*vol\.?\s*\d+\s*", re.IGNORECASE),    # "Vol. 4"
]

_WHITESPACE = re.compile(r"\s+")


def clean_title(title: str) -> str:
    """
    Strip series/volume notation and collapse whitespace.

    >>> clean_title("Mistborn (Mistborn, #1)")
    'Mistborn'
    >>> clean_title("Dune: Book 2")
    'Dune:'
    """
    if not title:
        return title
    cleaned = title
    for pattern in _SERIES_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def normalize_part(value: Optional[str]) -> str:
    """Lower-case and keep only alphanumeric characters"""
    if not value:
        return ""
    return "".join(ch for ch in value.lower() if ch.isalnum())


def normalize_key(title: Optional[str], author: Optional[str]) -> str:
    """Dedup key for a BookGroup: two rows share a group iff their keys match"""
    return f"{normalize_part(title)}|{normalize_part(author)}"


def strip_html(html: Optional[str]) -> Optional[str]:
    """
    Remove markup and decode entities from provider description text.

    Returns None for empty input or text that is empty once stripped.
    """
    if not html:
        return None

    with warnings.catch_warnings():
        # Plain descriptions sometimes look like a URL or filename to bs4
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        text = BeautifulSoup(html, "lxml").get_text()

    text = _WHITESPACE.sub(" ", text).strip()
    return text or None


def truncate_description(html: Optional[str], limit: int = MAX_DESCRIPTION_LENGTH) -> Optional[str]:
    text = strip_html(html)
    if text is None:
        return None
    return text[:limit]


def normalize_isbn(raw: Optional[str]) -> Optional[str]:
    """
    Strip separators from an ISBN.

    Only 10- or 13-character results are accepted; no checksum validation.
    """
    if not raw:
        return None
    compact = re.sub(r"[\s\-]", "", str(raw)).upper()
    if len(compact) == 13 and compact.isdigit():
        return compact
    if len(compact) == 10 and compact[:9].isdigit() and (compact[9].isdigit() or compact[9] == "X"):
        return compact
    return None
