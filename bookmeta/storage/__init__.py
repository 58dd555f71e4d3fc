# bookmeta/storage/__init__.py
"""
Book store contract consumed by the enrichment engine, plus two backends.
"""

from .base import BookStore, GroupWriteResult, needs_cover_refresh, plan_row_update
from .memory import InMemoryBookStore
from .sqlite_store import SQLiteBookStore

__all__ = [
    "BookStore",
    "GroupWriteResult",
    "InMemoryBookStore",
    "SQLiteBookStore",
    "needs_cover_refresh",
    "plan_row_update",
]
