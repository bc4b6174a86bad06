from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok
from ..models import utcnow_naive

TABLE = "network_alerts"
FEED_LIMIT = 50


@missing_ok(list)
def fetch_alerts(backend, limit: int = FEED_LIMIT) -> List[Dict[str, Any]]:
    """Newest first, capped at FEED_LIMIT."""
    return backend.select(TABLE, order_by="timestamp", desc=True, limit=min(int(limit), FEED_LIMIT))


def create_alert(backend, alert: Dict[str, Any]) -> Dict[str, Any]:
    payload = dict(alert)
    if not payload.get("timestamp"):
        payload["timestamp"] = utcnow_naive()
    return backend.insert(TABLE, payload, single=True)
