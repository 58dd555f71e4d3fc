# bookmeta/models/book.py
"""
Data models for the book metadata enrichment engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Optional, Any

from ..utils.title_normalizer import normalize_key, normalize_part


# Fields the resolver tries to fill, in the order they are reported
METADATA_FIELDS = ("page_count", "isbn", "description", "categories", "cover_url")

SOURCE_NAMES = ("isbndb", "google", "openlibrary")


def is_unset(value: Any) -> bool:
    """None, empty strings and empty lists all count as missing"""
    return value is None or value == "" or value == []


@dataclass
class BookMetadata:
    """
    Resolved (or partially resolved) metadata for one title/author pair.
    """
    page_count: Optional[int] = None
    isbn: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    cover_url: Optional[str] = None
    source: Optional[str] = None
    attempted_at: Optional[datetime] = None

    def missing_fields(self) -> List[str]:
        return [name for name in METADATA_FIELDS if is_unset(getattr(self, name))]

    def filled_fields(self) -> List[str]:
        return [name for name in METADATA_FIELDS if not is_unset(getattr(self, name))]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def has_data(self) -> bool:
        return bool(self.filled_fields())

    def merge_missing(self, other: "BookMetadata") -> List[str]:
        """
        Copy fields from `other` only where this object has nothing yet.

        Returns:
            Names of the fields that were filled
        """
        filled = []
        for name in METADATA_FIELDS:
            if is_unset(getattr(self, name)) and not is_unset(getattr(other, name)):
                setattr(self, name, getattr(other, name))
                filled.append(name)
        return filled

    def copy(self) -> "BookMetadata":
        return BookMetadata(
            page_count=self.page_count,
            isbn=self.isbn,
            description=self.description,
            categories=list(self.categories) if self.categories else self.categories,
            cover_url=self.cover_url,
            source=self.source,
            attempted_at=self.attempted_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire format used by the handlers (camelCase, unset fields omitted)"""
        data: Dict[str, Any] = {}
        if not is_unset(self.page_count):
            data["pageCount"] = self.page_count
        if not is_unset(self.isbn):
            data["isbn"] = self.isbn
        if not is_unset(self.description):
            data["description"] = self.description
        if not is_unset(self.categories):
            data["categories"] = list(self.categories)
        if not is_unset(self.cover_url):
            data["coverUrl"] = self.cover_url
        if self.source:
            data["source"] = self.source
        if self.attempted_at:
            data["attemptedAt"] = self.attempted_at.isoformat()
        return data


@dataclass
class BookRecord:
    """A stored book row, as seen by the enrichment engine"""
    id: str
    title: str
    author: str
    page_count: Optional[int] = None
    isbn: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    cover_url: Optional[str] = None
    attempted_at: Optional[datetime] = None
    user_id: Optional[str] = None

    @property
    def group_key(self) -> str:
        return normalize_key(self.title, self.author)

    def metadata(self) -> BookMetadata:
        return BookMetadata(
            page_count=self.page_count,
            isbn=self.isbn,
            description=self.description,
            categories=self.categories,
            cover_url=self.cover_url,
            attempted_at=self.attempted_at,
        )

    def richness(self) -> int:
        """Number of metadata fields present, used to pick between duplicates"""
        return len(self.metadata().filled_fields())


@dataclass
class BookGroup:
    """
    All stored rows sharing one normalized (title, author) pair.

    `title` and `author` keep the original spelling of the first row seen;
    they are what gets sent to the providers.
    """
    normalized_title: str
    normalized_author: str
    title: str
    author: str
    rows: List[BookRecord] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: BookRecord) -> "BookGroup":
        return cls(
            normalized_title=normalize_part(record.title),
            normalized_author=normalize_part(record.author),
            title=record.title,
            author=record.author,
            rows=[record],
        )

    @property
    def key(self) -> str:
        return f"{self.normalized_title}|{self.normalized_author}"

    def common_metadata(self) -> BookMetadata:
        """
        Fields every row in the group already has.

        A field missing on any row stays unset so the resolver still looks for it.
        """
        common = BookMetadata()
        for name in METADATA_FIELDS:
            values = [getattr(row, name) for row in self.rows]
            if values and all(not is_unset(value) for value in values):
                setattr(common, name, values[0])
        return common


@dataclass
class SearchCandidate:
    """Query-time search result, never persisted"""
    book: BookRecord
    match_score: float
    has_cover: bool
    source: str = "cache"

    def to_dict(self) -> Dict[str, Any]:
        book = self.book
        return {
            "id": book.id,
            "title": book.title,
            "author": book.author,
            "description": book.description,
            "coverUrl": book.cover_url,
            "categories": book.categories,
            "pageCount": book.page_count,
            "isbn": book.isbn,
            "matchScore": self.match_score,
            "hasCover": self.has_cover,
            "source": self.source,
        }
