# bookmeta/storage/sqlite_store.py
"""
SQLite-backed book store.

Group matching happens in SQL through `group_key(title, author)`, a Python
function registered on the connection, so propagation reaches every row
whose normalized title and author match, whatever their spelling.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..models import BookRecord
from ..utils import normalize_isbn, normalize_key
from .base import BookStore, needs_cover_refresh

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    page_count INTEGER,
    isbn TEXT,
    description TEXT,
    categories TEXT,
    cover_url TEXT,
    metadata_attempted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_books_attempted ON books(metadata_attempted_at);
CREATE INDEX IF NOT EXISTS idx_books_isbn ON books(isbn);
"""

COLUMNS = "id, user_id, title, author, page_count, isbn, description, categories, cover_url, metadata_attempted_at"

# BookRecord attribute -> column
_WRITABLE_COLUMNS = {
    "page_count": "page_count",
    "isbn": "isbn",
    "description": "description",
    "categories": "categories",
    "cover_url": "cover_url",
    "attempted_at": "metadata_attempted_at",
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_column_value(name: str, value: Any) -> Any:
    if name == "categories" and value is not None:
        return json.dumps(list(value))
    if name == "attempted_at" and isinstance(value, datetime):
        return value.isoformat()
    return value


def _row_to_record(row: sqlite3.Row) -> BookRecord:
    categories = json.loads(row["categories"]) if row["categories"] else None
    attempted_at = row["metadata_attempted_at"]
    return BookRecord(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        author=row["author"],
        page_count=row["page_count"],
        isbn=row["isbn"],
        description=row["description"],
        categories=categories,
        cover_url=row["cover_url"],
        attempted_at=datetime.fromisoformat(attempted_at) if attempted_at else None,
    )


class SQLiteBookStore(BookStore):

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.create_function("group_key", 2, normalize_key, deterministic=True)
        self.conn.create_function(
            "needs_cover", 1, lambda url: int(needs_cover_refresh(url)), deterministic=True
        )
        with self.conn:
            self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    def add(self, record: BookRecord) -> None:
        with self.conn:
            self.conn.execute(
                f"INSERT INTO books ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.user_id,
                    record.title,
                    record.author,
                    record.page_count,
                    record.isbn,
                    record.description,
                    _to_column_value("categories", record.categories),
                    record.cover_url,
                    _to_column_value("attempted_at", record.attempted_at),
                ),
            )

    def get(self, row_id: str) -> Optional[BookRecord]:
        row = self.conn.execute(f"SELECT {COLUMNS} FROM books WHERE id = ?", (row_id,)).fetchone()
        return _row_to_record(row) if row else None

    def iter_candidates(self, refresh_covers: bool = False) -> Iterator[BookRecord]:
        where = "metadata_attempted_at IS NULL"
        if refresh_covers:
            where += " OR needs_cover(cover_url)"
        rows = self.conn.execute(f"SELECT {COLUMNS} FROM books WHERE {where} ORDER BY rowid").fetchall()
        for row in rows:
            yield _row_to_record(row)

    def rows_for_group(self, group_key: str) -> List[BookRecord]:
        rows = self.conn.execute(
            f"SELECT {COLUMNS} FROM books WHERE group_key(title, author) = ? ORDER BY rowid",
            (group_key,),
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    def update_rows(self, updates: Dict[str, Dict[str, Any]]) -> None:
        with self.conn:
            for row_id, changes in updates.items():
                if not changes:
                    continue
                unknown = set(changes) - set(_WRITABLE_COLUMNS)
                if unknown:
                    raise ValueError(f"Not a writable column: {', '.join(sorted(unknown))}")
                assignments = ", ".join(f"{_WRITABLE_COLUMNS[name]} = ?" for name in changes)
                values = [_to_column_value(name, value) for name, value in changes.items()]
                self.conn.execute(f"UPDATE books SET {assignments} WHERE id = ?", (*values, row_id))

    def search_cached(self, query: str, limit: int = 50) -> List[BookRecord]:
        # LIKE is case-insensitive for ASCII in SQLite
        pattern = f"%{_escape_like(query)}%"
        rows = self.conn.execute(
            f"""
            SELECT {COLUMNS} FROM books
            WHERE (title LIKE ? ESCAPE '\\' OR author LIKE ? ESCAPE '\\')
              AND cover_url IS NOT NULL AND cover_url != ''
            LIMIT ?
            """,
            (pattern, pattern, limit),
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    def find_cached_isbn(self, isbn: str) -> Optional[BookRecord]:
        row = self.conn.execute(
            f"""
            SELECT {COLUMNS} FROM books
            WHERE isbn = ? AND cover_url IS NOT NULL AND cover_url != ''
            LIMIT 1
            """,
            (normalize_isbn(isbn) or isbn,),
        ).fetchone()
        return _row_to_record(row) if row else None
