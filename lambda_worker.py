#!/usr/bin/env python3
"""
AWS Lambda entry points for the metadata engine.

Deploy each handler as its own function:
- enrich_handler:   called when a user adds a book (never fails the caller)
- search_handler:   interactive search box
- backfill_handler: scheduled / admin-triggered batch enrichment

Runtime: Python 3.12
Timeout: 60 seconds (a full backfill batch takes ~35-50s at ISBNdb's rate limit)
"""

import json
import logging
from typing import Dict, Any

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Accept both direct invocations and API Gateway proxy events"""
    if not isinstance(event, dict):
        return {}
    body = event.get("body")
    if body is None:
        return event
    if isinstance(body, str):
        try:
            body = json.loads(body) if body else {}
        except ValueError:
            return {}
    return body if isinstance(body, dict) else {}


def _authorization(event: Dict[str, Any]) -> str:
    headers = event.get("headers") if isinstance(event, dict) else None
    if not isinstance(headers, dict):
        headers = {}
    return headers.get("Authorization") or headers.get("authorization") or ""


def enrich_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    Input event:
    {
        "title": "Mistborn: The Final Empire",
        "author": "Brandon Sanderson"
    }

    Returns:
    {
        "success": true,
        "enriched": true,
        "data": {"pageCount": 541, "isbn": "...", "coverUrl": "...", "source": "isbndb", ...}
    }
    """
    # Import here to avoid cold start overhead
    from bookmeta.handlers import enrich_book

    payload = _body(event)
    logger.info(f"Enriching book: {payload.get('title', 'Unknown')}")
    return enrich_book(payload)


def search_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    from bookmeta.config import Settings
    from bookmeta.handlers import search
    from bookmeta.storage import SQLiteBookStore

    settings = Settings.from_env()
    store = SQLiteBookStore(settings.db_path)
    try:
        return search(_body(event), store=store, settings=settings)
    finally:
        store.close()


def backfill_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    Input event:
    {
        "headers": {"Authorization": "Bearer <scheduler or admin token>"},
        "body": {"batchSize": 100, "refreshCovers": false}
    }
    """
    from bookmeta.config import Settings
    from bookmeta.handlers import run_backfill
    from bookmeta.storage import SQLiteBookStore

    settings = Settings.from_env()
    store = SQLiteBookStore(settings.db_path)
    try:
        result = run_backfill(_body(event), _authorization(event), store, settings=settings)
    finally:
        store.close()

    if "error" in result:
        logger.error(f"Backfill did not run: {result['error']}")
    return result


# For local testing
if __name__ == "__main__":
    test_event = {
        "title": "Mistborn: The Final Empire",
        "author": "Brandon Sanderson",
    }

    result = enrich_handler(test_event, None)
    print(json.dumps(result, indent=2))
