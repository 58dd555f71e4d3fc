# bookmeta/config.py
"""
Runtime configuration, read from the environment.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

# Fixed operating limits
DEFAULT_BATCH_SIZE = 100
MAX_BATCH_SIZE = 150
# ISBNdb allows 3 requests/second; this is an external limit, not a tuning knob
INTER_GROUP_DELAY_SECONDS = 0.35
ERROR_SAMPLE_SIZE = 5
SEARCH_RESULT_LIMIT = 12
MAX_QUERY_LENGTH = 200
MAX_TITLE_LENGTH = 200
MAX_AUTHOR_LENGTH = 100


def _split_tokens(raw: Optional[str]) -> FrozenSet[str]:
    if not raw:
        return frozenset()
    return frozenset(token.strip() for token in raw.split(",") if token.strip())


@dataclass(frozen=True)
class Settings:
    isbndb_api_key: Optional[str] = None
    google_books_api_key: Optional[str] = None
    db_path: str = "books.db"
    cron_project_ref: Optional[str] = None
    admin_tokens: FrozenSet[str] = field(default_factory=frozenset)
    request_timeout: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            isbndb_api_key=os.environ.get("ISBNDB_API_KEY") or None,
            google_books_api_key=os.environ.get("GOOGLE_BOOKS_API_KEY") or None,
            db_path=os.environ.get("BOOKMETA_DB_PATH", "books.db"),
            cron_project_ref=os.environ.get("BOOKMETA_CRON_PROJECT_REF") or None,
            admin_tokens=_split_tokens(os.environ.get("BOOKMETA_ADMIN_TOKENS")),
            request_timeout=int(os.environ.get("BOOKMETA_REQUEST_TIMEOUT", "10")),
            log_level=os.environ.get("BOOKMETA_LOG_LEVEL", "INFO").upper(),
        )
