# bookmeta/sources/isbndb.py
"""
ISBNdb source (primary, paid).

Richest single-call metadata: pages, ISBN, synopsis, subjects and a cover.
The plan allows 3 requests per second, which the caller's rate limiter enforces.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import quote

from ..api_caller import APICaller
from ..models import BookMetadata
from ..utils import clean_title, normalize_isbn, truncate_description, is_likely_placeholder_url
from .matching import select_best_match, MALFORMED_RESPONSE_ERRORS

ISBNDB_SEARCH_URL = "https://api2.isbndb.com/books/"
ISBNDB_RATE_LIMIT = 3.0
MAX_CATEGORIES = 5

logger = logging.getLogger(__name__)


def process_isbndb_book(book: Dict) -> BookMetadata:
    """
    Map one ISBNdb book record onto BookMetadata.

    Only fields ISBNdb actually supplied are set.
    """
    metadata = BookMetadata()

    pages = book.get("pages")
    if pages:
        metadata.page_count = int(pages)

    metadata.isbn = normalize_isbn(book.get("isbn13")) or normalize_isbn(book.get("isbn"))

    metadata.description = truncate_description(book.get("synopsis") or book.get("overview"))

    subjects = [s.strip() for s in book.get("subjects") or [] if s and s.strip()]
    if subjects:
        metadata.categories = subjects[:MAX_CATEGORIES]

    image = book.get("image")
    if image and not is_likely_placeholder_url(image):
        metadata.cover_url = image

    return metadata


class ISBNdbSource:
    """
    Title/author lookups against the ISBNdb search endpoint.
    """

    name = "isbndb"

    def __init__(self, api_key: str, api_caller: Optional[APICaller] = None):
        self.api_key = api_key
        self.api_caller = api_caller or APICaller(rate_limit=ISBNDB_RATE_LIMIT)
        self.logger = logging.getLogger(self.__class__.__name__)

    def _search(self, title: str, author: str, page_size: int) -> List[Dict]:
        query = quote(f"{title} {author}".strip(), safe="")
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
        }
        success, status_code, data = self.api_caller.get(
            f"{ISBNDB_SEARCH_URL}{query}",
            params={"pageSize": page_size},
            headers=headers,
        )

        if status_code == 404:
            self.logger.debug(f"ISBNdb: not found '{title}'")
            return []
        if not success or not data:
            return []
        return data.get("books") or []

    def lookup(self, title: str, author: str) -> Optional[BookMetadata]:
        cleaned = clean_title(title)
        try:
            books = self._search(cleaned, author, page_size=5)
            best = select_best_match(books, cleaned, lambda b: b.get("title") or b.get("title_long"))
            if best is None:
                return None
            metadata = process_isbndb_book(best)
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"ISBNdb: malformed response for '{title}': {e}")
            return None

        if not metadata.has_data():
            return None
        metadata.source = self.name
        return metadata

    def find_cover(self, title: str, author: str) -> Optional[str]:
        """First usable cover among the top results"""
        try:
            for book in self._search(clean_title(title), author, page_size=3):
                image = book.get("image")
                if image and not is_likely_placeholder_url(image):
                    return image
        except MALFORMED_RESPONSE_ERRORS as e:
            self.logger.warning(f"ISBNdb: malformed cover response for '{title}': {e}")
        return None
