# bookmeta/storage/memory.py
"""
In-process book store, for tests and local experiments.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..models import BookRecord
from ..models.book import is_unset
from ..utils import normalize_isbn
from .base import BookStore, needs_cover_refresh


class InMemoryBookStore(BookStore):

    def __init__(self, records: Iterable[BookRecord] = ()):
        self._rows: Dict[str, BookRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: BookRecord) -> None:
        self._rows[record.id] = record

    def get(self, row_id: str) -> Optional[BookRecord]:
        return self._rows.get(row_id)

    def all(self) -> List[BookRecord]:
        return list(self._rows.values())

    def iter_candidates(self, refresh_covers: bool = False) -> Iterator[BookRecord]:
        for row in list(self._rows.values()):
            if row.attempted_at is None or (refresh_covers and needs_cover_refresh(row.cover_url)):
                yield row

    def rows_for_group(self, group_key: str) -> List[BookRecord]:
        return [row for row in self._rows.values() if row.group_key == group_key]

    def update_rows(self, updates: Dict[str, Dict[str, Any]]) -> None:
        # Build every new row first so a bad column name leaves nothing half-written
        staged = {}
        for row_id, changes in updates.items():
            staged[row_id] = replace(self._rows[row_id], **changes)
        self._rows.update(staged)

    def search_cached(self, query: str, limit: int = 50) -> List[BookRecord]:
        needle = query.lower()
        matches = []
        for row in self._rows.values():
            if is_unset(row.cover_url):
                continue
            if needle in row.title.lower() or needle in (row.author or "").lower():
                matches.append(row)
                if len(matches) >= limit:
                    break
        return matches

    def find_cached_isbn(self, isbn: str) -> Optional[BookRecord]:
        wanted = normalize_isbn(isbn) or isbn
        for row in self._rows.values():
            if row.isbn == wanted and not is_unset(row.cover_url):
                return row
        return None
