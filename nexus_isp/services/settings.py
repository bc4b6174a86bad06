from __future__ import annotations

import logging
from typing import Optional

from ..errors import NO_SINGLE_ROW, TABLE_NOT_FOUND_CODES, BackendError
from ..models import utcnow_naive

log = logging.getLogger("nexus.services")

TABLE = "system_settings"


def fetch_setting(backend, key: str) -> Optional[str]:
    """Missing table or missing key -> None."""
    try:
        row = backend.select(TABLE, filters={"key": key}, single=True)
    except BackendError as e:
        if e.code in TABLE_NOT_FOUND_CODES or e.code == NO_SINGLE_ROW:
            return None
        raise
    return row.get("value") or None


def update_setting(backend, key: str, value: str, description: Optional[str] = None) -> None:
    row = {"key": key, "value": value, "updated_at": utcnow_naive()}
    if description is not None:
        row["description"] = description
    backend.upsert(TABLE, row, on_conflict="key")
