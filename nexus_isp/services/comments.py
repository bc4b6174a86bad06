from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok

TABLE = "ticket_comments"


@missing_ok(list)
def fetch_comments(backend, ticket_id: str) -> List[Dict[str, Any]]:
    """Oldest first (conversation order)."""
    return backend.select(TABLE, filters={"ticket_id": ticket_id}, order_by="created_at")


def create_comment(backend, comment: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, comment, single=True)
