# bookmeta/pipeline/search.py
"""
Interactive book search.

Stored, cover-bearing rows (the cache) and two free providers are queried
concurrently; results are merged by title, scored against the query and
the best 12 returned.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import aiohttp

from ..config import SEARCH_RESULT_LIMIT, MAX_QUERY_LENGTH, Settings
from ..models import BookRecord, SearchCandidate
from ..sources import GoogleBooksSource, OpenLibrarySource
from ..storage import BookStore
from ..utils import is_likely_placeholder_url

MIN_QUERY_LENGTH = 2
CACHE_SCAN_LIMIT = 50

_UNSAFE_QUERY_CHARS = re.compile(r"[<>'\"`;\\]")

logger = logging.getLogger(__name__)


def sanitize_query(query) -> Optional[str]:
    """
    Trim and bound a user query.

    Returns None for non-strings and queries shorter than 2 characters.
    """
    if not isinstance(query, str):
        return None
    cleaned = query[:MAX_QUERY_LENGTH].strip()
    if len(cleaned) < MIN_QUERY_LENGTH:
        return None
    cleaned = _UNSAFE_QUERY_CHARS.sub("", cleaned).strip()
    return cleaned if len(cleaned) >= MIN_QUERY_LENGTH else None


def score_match(title: str, author: str, query: str) -> float:
    """
    Relevance of a book to the query, 0-100.

    Title matches outrank author matches, so a book whose author merely
    contains a common word does not beat a real title hit.
    """
    q = query.lower().strip()
    t = (title or "").lower().strip()
    a = (author or "").lower().strip()

    if t == q:
        return 100
    if t.startswith(q):
        return 90
    if a == q:
        return 85
    if q in t:
        return 70
    if a and q in a:
        return 60

    words = [w for w in q.split() if len(w) > 2]
    if not words:
        return 0
    combined = f"{t} {a}"
    matching = [w for w in words if w in combined]
    if len(matching) == len(words):
        return 50
    return 30 * len(matching) / len(words)


def dedupe_cached_rows(rows: Sequence[BookRecord]) -> List[BookRecord]:
    """
    Collapse stored duplicates by title + author, keeping the richer row.
    """
    seen: Dict[str, BookRecord] = {}
    for row in rows:
        key = f"{row.title.lower().strip()}|{(row.author or '').lower().strip()}"
        existing = seen.get(key)
        if (
            existing is None
            or (row.description and not existing.description)
            or (row.isbn and not existing.isbn)
        ):
            seen[key] = row
    return list(seen.values())


def has_usable_cover(record: BookRecord) -> bool:
    return not is_likely_placeholder_url(record.cover_url)


def rank_candidates(
    result_sets: Sequence[Tuple[str, Sequence[BookRecord]]],
    query: str,
    limit: int = SEARCH_RESULT_LIMIT,
) -> List[SearchCandidate]:
    """
    Merge result sets (first title wins), score and sort.

    Ties are broken by cover availability; the merge order is kept otherwise.
    """
    seen = set()
    candidates = []
    for source, records in result_sets:
        for record in records:
            key = (record.title or "").lower().strip()
            if not key or key in seen:
                continue
            seen.add(key)
            candidates.append(SearchCandidate(
                book=record,
                match_score=score_match(record.title, record.author, query),
                has_cover=has_usable_cover(record),
                source=source,
            ))

    candidates.sort(key=lambda c: (-c.match_score, not c.has_cover))
    return candidates[:limit]


def source_tag(result_sets: Sequence[Tuple[str, Sequence[BookRecord]]]) -> str:
    contributors = [name for name, records in result_sets if records]
    if not contributors:
        return "none"
    if len(contributors) == 1:
        return contributors[0]
    return "combined"


@dataclass
class SearchResult:
    items: List[SearchCandidate] = field(default_factory=list)
    source: str = "none"

    def to_dict(self) -> Dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "source": self.source,
        }


class SearchAggregator:
    """
    Cache-first, multi-provider search with relevance ranking.

    Use as an async context manager so the HTTP session is opened and
    closed around the searches.
    """

    def __init__(
        self,
        store: Optional[BookStore] = None,
        google: Optional[GoogleBooksSource] = None,
        openlibrary: Optional[OpenLibrarySource] = None,
        timeout: int = 30,
    ):
        self.store = store
        self.google = google or GoogleBooksSource()
        self.openlibrary = openlibrary or OpenLibrarySource()
        self.timeout = timeout
        self.session = None
        self.logger = logging.getLogger(self.__class__.__name__)

    async def __aenter__(self):
        """Async context manager entry"""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            connector=aiohttp.TCPConnector(limit=10)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session:
            await self.session.close()

    async def search(self, query) -> SearchResult:
        """
        Ranked results for a free-text query, at most 12.

        Queries shorter than 2 characters give an empty result, not an error.
        """
        cleaned = sanitize_query(query)
        if cleaned is None:
            return SearchResult()

        self.logger.info(f"Searching for: {cleaned}")

        cache_rows, openlibrary_rows, google_rows = await asyncio.gather(
            self._search_cache(cleaned),
            self.openlibrary.search_async(self.session, cleaned),
            self.google.search_async(self.session, cleaned),
            return_exceptions=True,
        )

        result_sets = []
        for name, rows in (("cache", cache_rows), ("openlibrary", openlibrary_rows), ("google", google_rows)):
            if isinstance(rows, Exception):
                self.logger.warning(f"{name} search failed: {rows}")
                rows = []
            result_sets.append((name, rows))

        items = rank_candidates(result_sets, cleaned)
        source = source_tag(result_sets)

        self.logger.info(
            f"Cache: {len(result_sets[0][1])}, Open Library: {len(result_sets[1][1])}, "
            f"Google: {len(result_sets[2][1])}; returning {len(items)} (source: {source})"
        )
        return SearchResult(items=items, source=source)

    async def _search_cache(self, query: str) -> List[BookRecord]:
        if self.store is None:
            return []
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, self.store.search_cached, query, CACHE_SCAN_LIMIT)
        return dedupe_cached_rows(rows)

    def lookup_isbn(self, isbn: str) -> Optional[SearchCandidate]:
        """Direct cache hit by ISBN; no external calls"""
        if self.store is None or not isbn:
            return None
        record = self.store.find_cached_isbn(isbn)
        if record is None:
            return None
        return SearchCandidate(book=record, match_score=100, has_cover=has_usable_cover(record), source="cache")


def search_books(query, store: Optional[BookStore] = None, settings: Optional[Settings] = None) -> SearchResult:
    """Synchronous entry point for callers outside an event loop"""
    settings = settings or Settings.from_env()

    async def _run() -> SearchResult:
        async with SearchAggregator(
            store=store,
            google=GoogleBooksSource(settings.google_books_api_key),
        ) as aggregator:
            return await aggregator.search(query)

    return asyncio.run(_run())
