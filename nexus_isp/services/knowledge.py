from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import NO_SINGLE_ROW, TABLE_NOT_FOUND_CODES, BackendError, missing_ok
from ..models import utcnow_naive

log = logging.getLogger("nexus.services")

TABLE = "knowledge_articles"
# maintained by the backend / record_view, never taken from callers
READ_ONLY = ("id", "views", "created_at", "updated_at")


def _clean(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in READ_ONLY}


@missing_ok(list)
def fetch_articles(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="created_at", desc=True)


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_article(backend, article_id: str) -> Optional[Dict[str, Any]]:
    return backend.select(TABLE, filters={"id": article_id}, single=True)


def create_article(backend, article: Dict[str, Any]) -> Dict[str, Any]:
    payload = _clean(article)
    payload.setdefault("tags", [])
    return backend.insert(TABLE, payload, single=True)


def update_article(backend, article_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    patch = {**_clean(updates), "updated_at": utcnow_naive()}
    return backend.update(TABLE, {"id": article_id}, patch, single=True)


def delete_article(backend, article_id: str) -> None:
    backend.delete(TABLE, {"id": article_id})


def increment_article_views(backend, article_id: str) -> Optional[int]:
    """Best-effort view counter. Returns the new count, None when nothing was recorded."""
    try:
        row = fetch_article(backend, article_id)
        if row is None:
            return None
        views = int(row.get("views") or 0) + 1
        backend.update(TABLE, {"id": article_id}, {"views": views}, single=True)
        return views
    except BackendError:
        log.exception("Failed to record article view | id=%s", article_id)
        return None
