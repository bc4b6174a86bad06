from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import (
    NO_SINGLE_ROW,
    TABLE_NOT_FOUND_CODES,
    UNDEFINED_COLUMN,
    BackendError,
    is_relationship_missing,
    missing_ok,
)

log = logging.getLogger("nexus.services")

TABLE = "tickets"
JOIN = ("customer",)


def _join_failed(err: BackendError) -> bool:
    return is_relationship_missing(err) or err.code == UNDEFINED_COLUMN


def _clean(payload: Dict[str, Any]) -> Dict[str, Any]:
    """The embedded customer is read-only; never send it back."""
    return {k: v for k, v in payload.items() if k != "customer"}


# =========================================================
# Reads (join first, plain row on relationship failure)
# =========================================================
@missing_ok(list)
def fetch_tickets(backend) -> List[Dict[str, Any]]:
    try:
        return backend.select(TABLE, order_by="created_at", desc=True, embed=JOIN)
    except BackendError as e:
        if not _join_failed(e):
            raise
        log.warning("Relationship lookup failed (%s), fetching tickets without customer data.", e.code)
        return backend.select(TABLE, order_by="created_at", desc=True)


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_ticket(backend, ticket_id: str) -> Optional[Dict[str, Any]]:
    try:
        return backend.select(TABLE, filters={"id": ticket_id}, embed=JOIN, single=True)
    except BackendError as e:
        if not _join_failed(e):
            raise
        return backend.select(TABLE, filters={"id": ticket_id}, single=True)


# =========================================================
# Writes (always propagate; join fallback only)
# =========================================================
def create_ticket(backend, ticket: Dict[str, Any]) -> Dict[str, Any]:
    payload = _clean(ticket)
    try:
        return backend.insert(TABLE, payload, embed=JOIN, single=True)
    except BackendError as e:
        if not is_relationship_missing(e):
            raise
        log.warning("Relationship lookup failed (%s), creating ticket without customer data.", e.code)
        return backend.insert(TABLE, payload, single=True)


def update_ticket(backend, ticket_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    patch = _clean(updates)
    try:
        return backend.update(TABLE, {"id": ticket_id}, patch, embed=JOIN, single=True)
    except BackendError as e:
        if not is_relationship_missing(e):
            raise
        log.warning("Relationship lookup failed (%s), updating ticket without customer data.", e.code)
        return backend.update(TABLE, {"id": ticket_id}, patch, single=True)


def delete_ticket(backend, ticket_id: str) -> None:
    backend.delete(TABLE, {"id": ticket_id})


# =========================================================
# Audit wording
# =========================================================
def audit_details_for_update(updates: Dict[str, Any]) -> str:
    """One line per update: a status change wins over an assignment."""
    status = updates.get("status")
    if status:
        return f"Changed status to {getattr(status, 'value', status).upper()}"
    if updates.get("assigned_to"):
        return f"Assigned to {updates['assigned_to']}"
    return "Updated ticket details"
