# bookmeta/storage/base.py
"""
The narrow storage contract: "which rows need work" and
"update every row of this group".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from ..models import BookMetadata, BookRecord
from ..models.book import is_unset
from ..utils import is_likely_placeholder_url

# Fields written fill-only; the cover has its own rule
FILL_ONLY_FIELDS = ("page_count", "isbn", "description", "categories")


def needs_cover_refresh(cover_url: Optional[str]) -> bool:
    """Empty, local placeholder, or a known-bad provider URL shape"""
    return is_likely_placeholder_url(cover_url)


def plan_row_update(row: BookRecord, metadata: BookMetadata, refresh_covers: bool = False) -> Dict[str, Any]:
    """
    Changes to apply to one stored row.

    Never overwrites a value the row already has, except the cover in
    refresh mode when the stored cover is empty or a placeholder.
    """
    changes: Dict[str, Any] = {}

    for name in FILL_ONLY_FIELDS:
        new_value = getattr(metadata, name)
        if is_unset(getattr(row, name)) and not is_unset(new_value):
            changes[name] = new_value

    new_cover = metadata.cover_url
    if not is_unset(new_cover) and new_cover != row.cover_url:
        replaceable = is_unset(row.cover_url) or (refresh_covers and needs_cover_refresh(row.cover_url))
        if replaceable:
            changes["cover_url"] = new_cover

    return changes


@dataclass
class GroupWriteResult:
    rows_matched: int = 0
    rows_updated: int = 0
    covers_updated: int = 0


class BookStore(ABC):
    """
    Storage consumed by the batch job and the search cache.

    The engine never creates or deletes rows; it only updates metadata
    columns and the attempt marker on existing ones.
    """

    @abstractmethod
    def iter_candidates(self, refresh_covers: bool = False) -> Iterator[BookRecord]:
        """
        Rows needing work, oldest first.

        Basic mode: rows never attempted. Refresh mode additionally yields
        rows whose cover is missing or a placeholder, attempted or not.
        """

    @abstractmethod
    def rows_for_group(self, group_key: str) -> List[BookRecord]:
        """Every stored row whose normalized (title, author) equals `group_key`"""

    @abstractmethod
    def update_rows(self, updates: Dict[str, Dict[str, Any]]) -> None:
        """Apply per-row column changes atomically"""

    @abstractmethod
    def search_cached(self, query: str, limit: int = 50) -> List[BookRecord]:
        """Cover-bearing rows whose title or author contains `query`, case-insensitively"""

    @abstractmethod
    def find_cached_isbn(self, isbn: str) -> Optional[BookRecord]:
        """A cover-bearing row with this ISBN"""

    def apply_group_update(
        self,
        group_key: str,
        metadata: BookMetadata,
        attempted_at: datetime,
        refresh_covers: bool = False,
    ) -> GroupWriteResult:
        """
        Propagate resolved metadata to every row of a group.

        The attempt marker is set on all matching rows, even when nothing
        new was found, in the same write as the metadata.
        """
        rows = self.rows_for_group(group_key)
        result = GroupWriteResult(rows_matched=len(rows))
        updates = {}

        for row in rows:
            changes = plan_row_update(row, metadata, refresh_covers)
            if changes:
                result.rows_updated += 1
                if "cover_url" in changes:
                    result.covers_updated += 1
            changes["attempted_at"] = attempted_at
            updates[row.id] = changes

        if updates:
            self.update_rows(updates)
        return result

    def count_remaining_groups(self, refresh_covers: bool = False) -> int:
        return len({row.group_key for row in self.iter_candidates(refresh_covers)})
