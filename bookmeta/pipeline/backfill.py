# bookmeta/pipeline/backfill.py
"""
Batch Enrichment Job - feeds book groups from storage through the resolver.

Runs are sequential on purpose: every group hits the same rate-limited
providers, so parallel calls would only produce more 429s. The job is safe
to re-invoke from a scheduler because the selection shrinks as attempt
markers are written.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field, asdict
from typing import Callable, Dict, List, Optional

from ..config import (
    DEFAULT_BATCH_SIZE,
    MAX_BATCH_SIZE,
    INTER_GROUP_DELAY_SECONDS,
    ERROR_SAMPLE_SIZE,
)
from ..models import BookGroup
from ..storage import BookStore, needs_cover_refresh
from ..utils import is_placeholder_image
from .resolver import MetadataResolver


@dataclass
class BatchResult:
    """Counters reported after one run"""
    processed: int = 0
    updated: int = 0
    covers_updated: int = 0
    no_data_found: int = 0
    remaining: int = 0
    propagated: int = 0
    not_found_samples: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["coversUpdated"] = data.pop("covers_updated")
        data["noDataFound"] = data.pop("no_data_found")
        data["notFoundSamples"] = data.pop("not_found_samples")
        return data


def clamp_batch_size(batch_size: Optional[int]) -> int:
    try:
        size = int(batch_size)
    except (TypeError, ValueError):
        return DEFAULT_BATCH_SIZE
    if size < 1:
        return DEFAULT_BATCH_SIZE
    return min(size, MAX_BATCH_SIZE)


class BatchEnrichmentJob:
    """
    Selects book groups needing work, resolves each group once and
    propagates the result to every stored row of the group.
    """

    def __init__(
        self,
        store: BookStore,
        resolver: MetadataResolver,
        delay: float = INTER_GROUP_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        cover_check: Callable[[str], bool] = is_placeholder_image,
    ):
        self.store = store
        self.resolver = resolver
        self.delay = delay
        self.sleep = sleep
        # URL shape first, then decoded pixel size; a failed download counts as a real cover
        self.cover_check = cover_check
        self.logger = logging.getLogger(self.__class__.__name__)

    def select_groups(self, batch_size: int, refresh_covers: bool = False) -> List[BookGroup]:
        """
        Deduplicate candidate rows into at most `batch_size` groups.
        """
        groups: "OrderedDict[str, BookGroup]" = OrderedDict()
        for record in self.store.iter_candidates(refresh_covers):
            key = record.group_key
            if key in groups:
                groups[key].rows.append(record)
                continue
            if len(groups) >= batch_size:
                # Later rows of groups already picked are reached by propagation
                break
            groups[key] = BookGroup.from_record(record)
        return list(groups.values())

    def run(self, batch_size: Optional[int] = DEFAULT_BATCH_SIZE, refresh_covers: bool = False) -> BatchResult:
        """
        Process one batch.

        Args:
            batch_size: Maximum number of unique groups (default 100, max 150)
            refresh_covers: Also select rows whose cover is missing or a
                placeholder, and allow replacing such covers

        Returns:
            BatchResult with counters and capped samples
        """
        batch_size = clamp_batch_size(batch_size)
        result = BatchResult()

        groups = self.select_groups(batch_size, refresh_covers)
        if not groups:
            self.logger.info("Nothing to process: all books have been attempted")
            return result

        total_rows = sum(len(g.rows) for g in groups)
        self.logger.info(
            f"Processing {len(groups)} unique books (from {total_rows} selected rows), "
            f"refresh_covers={refresh_covers}"
        )
        start_time = time.time()

        for i, group in enumerate(groups, 1):
            self.logger.info(f"Processing group {i}/{len(groups)}: {group.title} by {group.author}")
            try:
                self._process_group(group, refresh_covers, result)
            except Exception as e:
                self.logger.error(f"Failed to process '{group.title}': {e}")
                self._record_error(result, f'Error processing "{group.title}": {e}')

            if i < len(groups) and self.delay:
                self.sleep(self.delay)

        try:
            result.remaining = self.store.count_remaining_groups(refresh_covers)
        except Exception as e:
            self.logger.error(f"Could not count remaining books: {e}")
            self._record_error(result, f"Remaining count failed: {e}")

        elapsed = time.time() - start_time
        self.logger.info(
            f"Batch complete in {elapsed:.1f}s: processed={result.processed}, "
            f"updated={result.updated}, covers={result.covers_updated}, "
            f"no_data={result.no_data_found}, remaining={result.remaining}"
        )
        return result

    def _process_group(self, group: BookGroup, refresh_covers: bool, result: BatchResult) -> None:
        known = group.common_metadata()
        lacks_cover = any(needs_cover_refresh(row.cover_url) for row in group.rows)
        if refresh_covers and lacks_cover:
            known.cover_url = None

        metadata = self.resolver.resolve(group.title, group.author, known=known)

        if refresh_covers and lacks_cover:
            if metadata.cover_url and self.cover_check(metadata.cover_url):
                self.logger.info(f"Resolved cover for '{group.title}' is a placeholder image, trying fallbacks")
                metadata.cover_url = None

            if not metadata.cover_url:
                cover, source = self.resolver.find_cover(group.title, group.author)
                if cover and self.cover_check(cover):
                    self.logger.info(f"Fallback cover from {source} is a placeholder image, skipping")
                    cover = None
                if cover:
                    metadata.cover_url = cover
                    metadata.source = metadata.source or source

        write = self.store.apply_group_update(
            group.key, metadata, metadata.attempted_at, refresh_covers=refresh_covers
        )

        result.processed += 1
        result.updated += write.rows_updated
        result.covers_updated += write.covers_updated
        if write.rows_updated:
            result.propagated += max(write.rows_updated - 1, 0)
            self.logger.info(f"Updated {write.rows_updated} of {write.rows_matched} rows for '{group.title}'")
        else:
            result.no_data_found += 1
            if len(result.not_found_samples) < ERROR_SAMPLE_SIZE:
                result.not_found_samples.append(f"{group.title} by {group.author}")
            self.logger.info(f"No new metadata for: {group.title} by {group.author}")

    @staticmethod
    def _record_error(result: BatchResult, message: str) -> None:
        if len(result.errors) < ERROR_SAMPLE_SIZE:
            result.errors.append(message)
