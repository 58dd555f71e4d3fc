# bookmeta/sources/google.py
"""
Google Books source (fallback 1).

Good at descriptions and categories. Cover thumbnails need `edge=curl`
or Google may serve its "image not available" picture instead.
"""

import logging
from typing import Dict, List, Optional

import aiohttp

from ..api_caller import APICaller, fetch_json_async
from ..models import BookMetadata, BookRecord
from ..utils import (
    clean_title,
    normalize_isbn,
    truncate_description,
    normalize_cover_url,
    is_likely_placeholder_url,
)
from .matching import select_best_match, MALFORMED_RESPONSE_ERRORS

GOOGLE_BOOKS_URL = "https://www.googleapis.com/books/v1/volumes"
MAX_CATEGORIES = 5
SEARCH_RESULTS = 12

logger = logging.getLogger(__name__)


def extract_google_cover(volume_info: Dict) -> Optional[str]:
    thumbnail = (volume_info.get("imageLinks") or {}).get("thumbnail")
    if not thumbnail:
        return None
    return normalize_cover_url(thumbnail.replace("http://", "https://"))


def _extract_isbn(volume_info: Dict) -> Optional[str]:
    identifiers = volume_info.get("industryIdentifiers") or []
    by_type = {ident.get("type"): ident.get("identifier") for ident in identifiers}
    return normalize_isbn(by_type.get("ISBN_13")) or normalize_isbn(by_type.get("ISBN_10"))


def process_google_volume(volume_info: Dict) -> BookMetadata:
    """
    Map a Google Books `volumeInfo` object onto BookMetadata.
    """
    metadata = BookMetadata()

    if volume_info.get("pageCount"):
        metadata.page_count = int(volume_info["pageCount"])

    metadata.isbn = _extract_isbn(volume_info)
    metadata.description = truncate_description(volume_info.get("description"))

    categories = [c for c in volume_info.get("categories") or [] if c and c.strip()]
    if categories:
        metadata.categories = categories[:MAX_CATEGORIES]

    cover = extract_google_cover(volume_info)
    if cover and not is_likely_placeholder_url(cover):
        metadata.cover_url = cover

    return metadata


def _has_rich_fields(metadata: BookMetadata) -> bool:
    return bool(metadata.page_count or metadata.description or metadata.categories)


class GoogleBooksSource:
    """
    Google Books volume search, by title and author or by free text.
    """

    name = "google"

    def __init__(self, api_key: Optional[str] = None, api_caller: Optional[APICaller] = None):
        self.api_key = api_key
        self.api_caller = api_caller or APICaller()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _params(self, query: str, max_results: int) -> Dict:
        params = {
            "q": query,
            "maxResults": max_results,
            "printType": "books",
        }
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _volumes(self, title: str, author: str, max_results: int = 3) -> List[Dict]:
        success, status_code, data = self.api_caller.get(
            GOOGLE_BOOKS_URL, params=self._params(f"{title} {author}".strip(), max_results)
        )
        if not success or not data:
            return []
        return [item.get("volumeInfo") for item in data.get("items") or [] if item.get("volumeInfo")]

    def lookup(self, title: str, author: str) -> Optional[BookMetadata]:
        cleaned = clean_title(title)
        try:
            volumes = self._volumes(cleaned, author)
            candidates = [(volume, process_google_volume(volume)) for volume in volumes]
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"Google Books: malformed response for '{title}': {e}")
            return None

        # Results carrying pages, description or categories beat cover-only ones
        rich = [c for c in candidates if _has_rich_fields(c[1])]
        pool = rich or [c for c in candidates if c[1].has_data()]
        best = select_best_match(pool, cleaned, lambda c: c[0].get("title"))
        if best is None:
            return None

        metadata = best[1]
        metadata.source = self.name
        return metadata

    def find_cover(self, title: str, author: str) -> Optional[str]:
        try:
            for volume in self._volumes(title, author):
                cover = extract_google_cover(volume)
                if cover and not is_likely_placeholder_url(cover):
                    return cover
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"Google Books: malformed cover response for '{title}': {e}")
        return None

    async def search_async(self, session: aiohttp.ClientSession, query: str) -> List[BookRecord]:
        """Free-text search used by the interactive search path"""
        data = await fetch_json_async(session, GOOGLE_BOOKS_URL, params=self._params(query, SEARCH_RESULTS))
        if not data:
            return []

        records = []
        for item in data.get("items") or []:
            try:
                volume_info = item.get("volumeInfo") or {}
                if not volume_info.get("title"):
                    continue
                metadata = process_google_volume(volume_info)
                records.append(BookRecord(
                    id=f"gb-{item.get('id')}",
                    title=volume_info["title"],
                    author=", ".join(volume_info.get("authors") or []),
                    page_count=metadata.page_count,
                    isbn=metadata.isbn,
                    description=metadata.description,
                    categories=metadata.categories,
                    cover_url=extract_google_cover(volume_info),
                ))
            except MALFORMED_RESPONSE_ERRORS as e:
                self.logger.debug(f"Google Books: skipping malformed item: {e}")
        return records
