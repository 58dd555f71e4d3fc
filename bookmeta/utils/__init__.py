# bookmeta/utils/__init__.py
"""
Shared helpers for titles, descriptions and cover images.
"""

from .title_normalizer import (
    clean_title,
    normalize_key,
    normalize_part,
    normalize_isbn,
    strip_html,
    truncate_description,
)
from .placeholder import (
    is_likely_placeholder_url,
    is_likely_placeholder_dimensions,
    is_placeholder_image,
    normalize_cover_url,
    fetch_cover_dimensions,
)

__all__ = [
    "clean_title",
    "normalize_key",
    "normalize_part",
    "normalize_isbn",
    "strip_html",
    "truncate_description",
    "is_likely_placeholder_url",
    "is_likely_placeholder_dimensions",
    "is_placeholder_image",
    "normalize_cover_url",
    "fetch_cover_dimensions",
]
