"""Shared pytest fixtures for all tests."""
import io
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from unittest.mock import Mock

import pytest
from PIL import Image

from bookmeta.models import BookMetadata, BookRecord
from bookmeta.pipeline import MetadataResolver
from bookmeta.storage import InMemoryBookStore

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

OPEN_LIBRARY_COVER = "https://covers.openlibrary.org/b/id/8259447-M.jpg"
GOOGLE_COVER = (
    "https://books.google.com/books/content?id=B1hSG45JCX4C"
    "&printsec=frontcover&img=1&zoom=2&edge=curl"
)


class FakeSource:
    """Provider double that records every call"""

    def __init__(
        self,
        name: str,
        metadata: Optional[BookMetadata] = None,
        cover: Optional[str] = None,
        error: Optional[Exception] = None,
    ):
        self.name = name
        self.metadata = metadata
        self.cover = cover
        self.error = error
        self.calls: List[Tuple[str, str]] = []
        self.cover_calls: List[Tuple[str, str]] = []

    def lookup(self, title: str, author: str) -> Optional[BookMetadata]:
        self.calls.append((title, author))
        if self.error:
            raise self.error
        if self.metadata is None:
            return None
        found = self.metadata.copy()
        found.source = self.name
        return found

    def find_cover(self, title: str, author: str) -> Optional[str]:
        self.cover_calls.append((title, author))
        return self.cover


@pytest.fixture
def fake_source():
    """Factory for provider doubles."""
    return FakeSource


@pytest.fixture
def make_resolver():
    """Build a resolver over the given sources with a fixed clock."""
    def _make(*sources) -> MetadataResolver:
        return MetadataResolver(list(sources), clock=lambda: FIXED_NOW)
    return _make


@pytest.fixture
def no_sleep() -> Mock:
    return Mock()


@pytest.fixture
def mistborn_rows() -> List[BookRecord]:
    """Two users' copies of the same book, spelled differently, plus an unrelated book."""
    return [
        BookRecord(id="1", title="Mistborn: The Final Empire", author="Brandon Sanderson", user_id="u1"),
        BookRecord(id="2", title="mistborn the final empire", author="BRANDON SANDERSON", user_id="u2"),
        BookRecord(id="3", title="Dune", author="Frank Herbert", user_id="u1"),
    ]


@pytest.fixture
def memory_store(mistborn_rows) -> InMemoryBookStore:
    return InMemoryBookStore(mistborn_rows)


@pytest.fixture
def complete_metadata() -> BookMetadata:
    return BookMetadata(
        page_count=541,
        isbn="9780765311788",
        description="A crew of thieves plans a heist against an immortal emperor.",
        categories=["Fantasy"],
        cover_url=OPEN_LIBRARY_COVER,
    )


@pytest.fixture
def isbndb_payload() -> dict:
    return {
        "total": 1,
        "books": [
            {
                "title": "Mistborn: The Final Empire",
                "title_long": "Mistborn: The Final Empire (Mistborn, Book 1)",
                "authors": ["Sanderson, Brandon"],
                "pages": 541,
                "isbn": "076531178X",
                "isbn13": "9780765311788",
                "synopsis": "<p>For a thousand years the ash fell &amp; no flowers bloomed.</p>",
                "subjects": ["Fiction", "Fantasy", " "],
                "image": "https://images.isbndb.com/covers/17/88/9780765311788.jpg",
            }
        ],
    }


@pytest.fixture
def google_payload() -> dict:
    return {
        "totalItems": 1,
        "items": [
            {
                "id": "B1hSG45JCX4C",
                "volumeInfo": {
                    "title": "Dune",
                    "authors": ["Frank Herbert"],
                    "pageCount": 412,
                    "description": "Set on the desert planet <b>Arrakis</b>.",
                    "categories": ["Fiction"],
                    "industryIdentifiers": [
                        {"type": "ISBN_10", "identifier": "0441013597"},
                        {"type": "ISBN_13", "identifier": "9780441013593"},
                    ],
                    "imageLinks": {
                        "thumbnail": "http://books.google.com/books/content?id=B1hSG45JCX4C"
                                     "&printsec=frontcover&img=1&zoom=1&source=gbs_api"
                    },
                },
            }
        ],
    }


@pytest.fixture
def open_library_payload() -> dict:
    return {
        "numFound": 1,
        "docs": [
            {
                "key": "/works/OL15358691W",
                "title": "Mistborn",
                "author_name": ["Brandon Sanderson"],
                "number_of_pages_median": 541,
                "isbn": ["076531178X", "9780765311788"],
                "subject": ["Fantasy", "Magic", "Fiction", "Heists", "Revolutions", "Nobility"],
                "cover_i": 8259447,
            }
        ],
    }


@pytest.fixture
def png_bytes():
    """Encode a blank PNG of the given size."""
    def _encode(width: int, height: int) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), color="white").save(buffer, format="PNG")
        return buffer.getvalue()
    return _encode


@pytest.fixture
def image_session(png_bytes):
    """A requests.Session double serving PNGs of fixed sizes by URL; unknown URLs get a 404."""
    def _make(sizes: dict) -> Mock:
        def get(url, timeout=None):
            if url not in sizes:
                return Mock(status_code=404, content=b"")
            return Mock(status_code=200, content=png_bytes(*sizes[url]))
        session = Mock()
        session.get.side_effect = get
        return session
    return _make
