# bookmeta/pipeline/__init__.py
"""
Resolution, search and batch enrichment.
"""

from .resolver import MetadataResolver, build_sources
from .search import SearchAggregator, SearchResult, score_match, rank_candidates, search_books
from .backfill import BatchEnrichmentJob, BatchResult

__all__ = [
    "MetadataResolver",
    "build_sources",
    "SearchAggregator",
    "SearchResult",
    "score_match",
    "rank_candidates",
    "search_books",
    "BatchEnrichmentJob",
    "BatchResult",
]
