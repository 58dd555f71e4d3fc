# bookmeta/pipeline/resolver.py
"""
Core Metadata Resolver - single title/author resolution logic.

Providers are asked strictly in priority order and their answers are merged
fill-only: a field that is already set is never replaced, so providers that
are strong in different fields compose into one result.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ..api_caller import APICaller
from ..config import Settings
from ..models import BookMetadata
from ..sources import ISBNdbSource, GoogleBooksSource, OpenLibrarySource
from ..sources.isbndb import ISBNDB_RATE_LIMIT


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_sources(settings: Settings) -> List:
    """
    Providers in priority order.

    The paid primary source is left out entirely when no key is configured.
    """
    timeout = settings.request_timeout
    sources = []
    if settings.isbndb_api_key:
        sources.append(ISBNdbSource(
            settings.isbndb_api_key,
            APICaller(rate_limit=ISBNDB_RATE_LIMIT, timeout=timeout),
        ))
    sources.append(GoogleBooksSource(settings.google_books_api_key, APICaller(timeout=timeout)))
    sources.append(OpenLibrarySource(APICaller(timeout=timeout)))
    return sources


class MetadataResolver:
    """
    Resolves one (title, author) pair against an ordered list of sources.

    A source is anything with a `name` attribute and a
    `lookup(title, author) -> BookMetadata | None` method; `find_cover`
    is optional.
    """

    def __init__(self, sources: List, clock: Callable[[], datetime] = utc_now):
        self.sources = list(sources)
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MetadataResolver":
        return cls(build_sources(settings))

    def resolve(self, title: str, author: str, known: Optional[BookMetadata] = None) -> BookMetadata:
        """
        Main resolution method for a single book.

        Args:
            title: Book title as stored (series notation is stripped per source)
            author: Author as stored
            known: Fields already known; these are kept and never looked up again

        Returns:
            BookMetadata, never None. `attempted_at` is always set.
        """
        result = known.copy() if known else BookMetadata()
        result.source = None

        self.logger.info(f"Resolving: {title} by {author}")

        for source in self.sources:
            if result.is_complete():
                self.logger.debug("All fields set, skipping remaining sources")
                break

            try:
                found = source.lookup(title, author)
            except Exception as e:
                self.logger.error(f"{source.name}: lookup failed for '{title}': {e}")
                continue

            if not found:
                self.logger.debug(f"{source.name}: no match for '{title}'")
                continue

            filled = result.merge_missing(found)
            if filled:
                self.logger.info(f"{source.name}: filled {', '.join(filled)}")
                if result.source is None:
                    result.source = source.name

        result.attempted_at = self.clock()

        self.logger.info(
            f"Resolution complete: filled={len(result.filled_fields())}, "
            f"missing={','.join(result.missing_fields()) or 'none'}, source={result.source}"
        )
        return result

    def find_cover(self, title: str, author: str, include_primary: bool = False) -> Tuple[Optional[str], Optional[str]]:
        """
        Cover-only lookups, used when a refresh still has no cover.

        Returns:
            (cover_url, source_name), or (None, None)
        """
        sources = self.sources if include_primary else [
            s for s in self.sources if s.name != ISBNdbSource.name
        ]
        for source in sources:
            finder = getattr(source, "find_cover", None)
            if finder is None:
                continue
            try:
                cover = finder(title, author)
            except Exception as e:
                self.logger.error(f"{source.name}: cover lookup failed for '{title}': {e}")
                continue
            if cover:
                self.logger.info(f"Found cover via {source.name}")
                return cover, source.name
        return None, None
