# bookmeta/models/__init__.py
"""
Data models for the book metadata enrichment engine.
"""

from .book import BookGroup, BookMetadata, BookRecord, SearchCandidate, METADATA_FIELDS

__all__ = [
    "BookGroup",
    "BookMetadata",
    "BookRecord",
    "SearchCandidate",
    "METADATA_FIELDS",
]
