from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..errors import BackendError, missing_ok

log = logging.getLogger("nexus.services")

TABLE = "audit_logs"
FEED_LIMIT = 100


@missing_ok(list)
def fetch_audit_logs(backend, limit: int = FEED_LIMIT) -> List[Dict[str, Any]]:
    """Global feed, newest first, capped."""
    return backend.select(TABLE, order_by="created_at", desc=True, limit=min(int(limit), FEED_LIMIT))


def fetch_audit_logs_by_entity(backend, entity: str, entity_id: str) -> List[Dict[str, Any]]:
    """History panel for one record; never breaks the page it sits on."""
    try:
        return backend.select(
            TABLE,
            filters={"entity": entity, "entity_id": str(entity_id)},
            order_by="created_at",
            desc=True,
        )
    except BackendError as e:
        log.warning("Audit history unavailable | entity=%s id=%s code=%s", entity, entity_id, e.code)
        return []
