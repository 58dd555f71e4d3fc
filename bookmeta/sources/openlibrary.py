# bookmeta/sources/openlibrary.py
"""
Open Library source (fallback 2).

Strong for page counts and subjects, with good fiction coverage.
Has no descriptions in search results. Covers are built from `cover_i`.
"""

import logging
from typing import Dict, List, Optional

import aiohttp

from ..api_caller import APICaller, fetch_json_async
from ..models import BookMetadata, BookRecord
from ..utils import clean_title, normalize_isbn
from .matching import select_best_match, MALFORMED_RESPONSE_ERRORS

OPENLIBRARY_SEARCH_URL = "https://openlibrary.org/search.json"
OPENLIBRARY_COVER_URL = "https://covers.openlibrary.org/b/id/{cover_id}-{size}.jpg"
LOOKUP_FIELDS = "key,title,author_name,number_of_pages_median,isbn,subject,cover_i"
SEARCH_FIELDS = "key,title,author_name,cover_i,first_publish_year,subject"
MAX_CATEGORIES = 5
SEARCH_RESULTS = 12

logger = logging.getLogger(__name__)


def cover_url_for(cover_id, size: str = "M") -> Optional[str]:
    if not cover_id:
        return None
    return OPENLIBRARY_COVER_URL.format(cover_id=cover_id, size=size)


def _pick_isbn(isbns: List[str]) -> Optional[str]:
    normalized = [n for n in (normalize_isbn(i) for i in isbns or []) if n]
    for isbn in normalized:
        if len(isbn) == 13:
            return isbn
    return normalized[0] if normalized else None


def process_open_library_doc(doc: Dict) -> BookMetadata:
    metadata = BookMetadata()

    pages = doc.get("number_of_pages_median")
    if pages:
        metadata.page_count = int(pages)

    metadata.isbn = _pick_isbn(doc.get("isbn"))

    subjects = [s for s in doc.get("subject") or [] if s and s.strip()]
    if subjects:
        metadata.categories = subjects[:MAX_CATEGORIES]

    metadata.cover_url = cover_url_for(doc.get("cover_i"))
    return metadata


class OpenLibrarySource:
    """
    Open Library search API lookups.
    """

    name = "openlibrary"

    def __init__(self, api_caller: Optional[APICaller] = None):
        self.api_caller = api_caller or APICaller()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _docs(self, title: str, author: str, fields: str, limit: int = 3) -> List[Dict]:
        params = {
            "q": f"{title} {author}".strip(),
            "limit": limit,
            "fields": fields,
        }
        success, status_code, data = self.api_caller.get(OPENLIBRARY_SEARCH_URL, params=params)
        if not success or not data:
            return []
        return data.get("docs") or []

    def lookup(self, title: str, author: str) -> Optional[BookMetadata]:
        cleaned = clean_title(title)
        try:
            docs = self._docs(cleaned, author, LOOKUP_FIELDS)
            best = select_best_match(docs, cleaned, lambda d: d.get("title"))
            if best is None:
                return None
            metadata = process_open_library_doc(best)
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"Open Library: malformed response for '{title}': {e}")
            return None

        if not metadata.has_data():
            return None
        metadata.source = self.name
        return metadata

    def find_cover(self, title: str, author: str) -> Optional[str]:
        try:
            for doc in self._docs(title, author, "cover_i"):
                if doc.get("cover_i"):
                    return cover_url_for(doc["cover_i"])
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"Open Library: malformed cover response for '{title}': {e}")
        return None

    async def search_async(self, session: aiohttp.ClientSession, query: str) -> List[BookRecord]:
        params = {
            "q": query,
            "limit": SEARCH_RESULTS,
            "fields": SEARCH_FIELDS,
        }
        data = await fetch_json_async(session, OPENLIBRARY_SEARCH_URL, params=params)
        if not data:
            return []

        records = []
        for doc in data.get("docs") or []:
            try:
                if not doc.get("title"):
                    continue
                subjects = doc.get("subject") or []
                records.append(BookRecord(
                    id=f"ol-{doc.get('key')}",
                    title=doc["title"],
                    author=", ".join(doc.get("author_name") or []),
                    categories=subjects[:3] or None,
                    cover_url=cover_url_for(doc.get("cover_i")),
                ))
            except MALFORMED_RESPONSE_ERRORS as e:
                self.logger.debug(f"Open Library: skipping malformed doc: {e}")
        return records
