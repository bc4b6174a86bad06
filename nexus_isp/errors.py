from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

log = logging.getLogger("nexus.services")


# =========================================================
# Backend error codes (kept verbatim from the hosted backend)
# =========================================================
TABLE_NOT_IN_SCHEMA = "PGRST205"
UNDEFINED_TABLE = "42P01"
RELATIONSHIP_NOT_FOUND = "PGRST200"
UNDEFINED_COLUMN = "42703"
UNKNOWN_PAYLOAD_COLUMN = "PGRST204"
NO_SINGLE_ROW = "PGRST116"

TABLE_NOT_FOUND_CODES = frozenset({TABLE_NOT_IN_SCHEMA, UNDEFINED_TABLE})


class BackendError(Exception):
    """Error raised by the resource gateway. `code` drives the read fallbacks."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"<BackendError code={self.code} message={self.message!r}>"


class ServiceError(Exception):
    """Normalized, user-displayable failure of a store operation."""


class InvalidTransition(ServiceError):
    def __init__(self, entity: str, current: Any, requested: Any):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(f"{entity} cannot move from '{current}' to '{requested}'")


# =========================================================
# Classification helpers
# =========================================================
def safe_error_message(err: Any) -> str:
    if isinstance(err, str):
        return err
    message = getattr(err, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(err, BaseException) and str(err):
        return str(err)
    try:
        return json.dumps(err, default=str)
    except (TypeError, ValueError):
        return repr(err)


def error_code(err: Any) -> str:
    return str(getattr(err, "code", "") or "")


def is_table_missing(err: Any) -> bool:
    return error_code(err) in TABLE_NOT_FOUND_CODES


def is_relationship_missing(err: Any) -> bool:
    if error_code(err) == RELATIONSHIP_NOT_FOUND:
        return True
    return "relationship" in safe_error_message(err).lower()


def is_setup_error(err: Any) -> bool:
    """True when the backend simply isn't configured yet (table or relationship absent)."""
    if is_table_missing(err) or error_code(err) == RELATIONSHIP_NOT_FOUND:
        return True
    msg = safe_error_message(err)
    return "Could not find the table" in msg or "Could not find a relationship" in msg


# =========================================================
# Read fallback
# =========================================================
def missing_ok(default: Callable[[], Any] = list, codes: frozenset = TABLE_NOT_FOUND_CODES):
    """
    Reads only: a "resource not configured" BackendError yields default()
    instead of raising. Anything else propagates unchanged.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except BackendError as e:
                if e.code in codes:
                    log.warning("%s: resource not configured (%s), returning empty", fn.__name__, e.code)
                    return default()
                raise

        return wrapper

    return decorator
