# bookmeta/__init__.py
"""
Book metadata resolution and cover enrichment engine.

Primary interfaces:
- MetadataResolver: Resolve one title/author pair across providers
- SearchAggregator: Ranked, cache-first interactive search
- BatchEnrichmentJob: Deduplicated, rate-limited backfill over a book store

Building blocks:
- ISBNdbSource, GoogleBooksSource, OpenLibrarySource: Provider adapters
- APICaller / fetch_with_retry: Outbound HTTP with backoff
- clean_title, normalize_key: Title normalization and group keys
- is_likely_placeholder_url, is_likely_placeholder_dimensions: Placeholder covers
"""

from .models import BookGroup, BookMetadata, BookRecord, SearchCandidate
from .config import Settings
from .api_caller import APICaller, fetch_with_retry, backoff_delay
from .sources import ISBNdbSource, GoogleBooksSource, OpenLibrarySource
from .pipeline import (
    MetadataResolver,
    SearchAggregator,
    SearchResult,
    BatchEnrichmentJob,
    BatchResult,
    search_books,
)
from .storage import BookStore, InMemoryBookStore, SQLiteBookStore
from .utils import (
    clean_title,
    normalize_key,
    strip_html,
    is_likely_placeholder_url,
    is_likely_placeholder_dimensions,
    normalize_cover_url,
)

__all__ = [
    # Primary interface
    "MetadataResolver",
    "SearchAggregator",
    "SearchResult",
    "BatchEnrichmentJob",
    "BatchResult",
    "search_books",
    "Settings",

    # Models
    "BookGroup",
    "BookMetadata",
    "BookRecord",
    "SearchCandidate",

    # Storage
    "BookStore",
    "InMemoryBookStore",
    "SQLiteBookStore",

    # Internal components
    "APICaller",
    "fetch_with_retry",
    "backoff_delay",
    "ISBNdbSource",
    "GoogleBooksSource",
    "OpenLibrarySource",
    "clean_title",
    "normalize_key",
    "strip_html",
    "is_likely_placeholder_url",
    "is_likely_placeholder_dimensions",
    "normalize_cover_url",
]
