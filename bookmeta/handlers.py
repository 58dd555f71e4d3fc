# bookmeta/handlers.py
"""
The three operations the engine exposes: resolve one book, search, and
run a backfill batch. Payloads and results are plain dicts so they can sit
behind any transport.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from .auth import AuthorizationError, StaticAdminDirectory, authorize_backfill_caller
from .config import MAX_AUTHOR_LENGTH, MAX_TITLE_LENGTH, Settings
from .pipeline import BatchEnrichmentJob, MetadataResolver, search_books
from .storage import BookStore

logger = logging.getLogger(__name__)


def _flag(value: Any) -> bool:
    """Only a real true or the string "true" switches a flag on"""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def enrich_book(payload: Dict[str, Any], resolver: Optional[MetadataResolver] = None) -> Dict[str, Any]:
    """
    Resolve metadata for one title/author pair.

    Never raises: a failure to enrich must not block adding the book, so
    errors come back as `enriched: false` with empty data.
    """
    if not isinstance(payload, dict):
        payload = {}

    title = payload.get("title")
    safe_title = title[:MAX_TITLE_LENGTH].strip() if isinstance(title, str) else ""
    if not safe_title:
        return {"success": False, "enriched": False, "data": {}, "error": "Title is required"}

    author = payload.get("author")
    safe_author = (author if isinstance(author, str) and author.strip() else "Unknown")[:MAX_AUTHOR_LENGTH].strip()

    try:
        resolver = resolver or MetadataResolver.from_settings(Settings.from_env())
        metadata = resolver.resolve(safe_title, safe_author)
    except Exception as e:
        logger.error(f"Enrich book error for '{safe_title}': {e}")
        return {"success": True, "enriched": False, "data": {}, "error": str(e)}

    logger.info(f"Enrichment {'successful' if metadata.has_data() else 'empty'}: {safe_title}")
    return {"success": True, "enriched": metadata.has_data(), "data": metadata.to_dict()}


def search(
    payload: Dict[str, Any],
    store: Optional[BookStore] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        payload = {}

    query = payload.get("query")
    if not isinstance(query, str):
        return {"items": [], "source": "none", "error": "Query must be a string"}

    try:
        return search_books(query, store=store, settings=settings).to_dict()
    except Exception as e:
        logger.error(f"Search failed for '{query[:50]}': {e}")
        return {"items": [], "source": "none", "error": str(e)}


def run_backfill(
    payload: Dict[str, Any],
    authorization: Optional[str],
    store: BookStore,
    resolver: Optional[MetadataResolver] = None,
    settings: Optional[Settings] = None,
    authenticate: Optional[Callable[[str], Optional[str]]] = None,
    has_admin_role: Optional[Callable[[str], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Authorize the caller, then run one batch.

    Returns:
        Batch counters, or {"error": ..., "status": ...} when rejected or failed
    """
    settings = settings or Settings.from_env()
    directory = StaticAdminDirectory(settings.admin_tokens)

    try:
        caller = authorize_backfill_caller(
            authorization,
            settings.cron_project_ref,
            authenticate or directory.authenticate,
            has_admin_role or directory.has_admin_role,
        )
    except AuthorizationError as e:
        logger.warning(f"Backfill rejected: {e}")
        return {"error": str(e), "status": e.status}

    if not isinstance(payload, dict):
        payload = {}
    batch_size = payload.get("batchSize")
    refresh_covers = _flag(payload.get("refreshCovers"))

    try:
        job = BatchEnrichmentJob(
            store,
            resolver or MetadataResolver.from_settings(settings),
            sleep=sleep,
        )
        result = job.run(batch_size=batch_size, refresh_covers=refresh_covers)
    except Exception as e:
        logger.error(f"Backfill error: {e}")
        return {"error": str(e), "status": 500}

    response = {"message": "Backfill batch complete", "caller": caller}
    response.update(result.to_dict())
    return response
