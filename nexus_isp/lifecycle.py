"""
Status vocabularies and transition tables for tickets, invoices and
customer installations.

Edges are only enforced when strict mode is on (STRICT_TRANSITIONS).
With strict mode off any known status may be written, which keeps
workflows such as reopening a closed ticket or correcting a paid invoice
working the way staff are used to.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Type

from .errors import InvalidTransition, ServiceError


class TicketStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    VERIFIED = "verified"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class CustomerStatus(str, Enum):
    LEAD = "lead"
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class CustomerType(str, Enum):
    RESIDENTIAL = "residential"
    CORPORATE = "corporate"


class InstallationStatus(str, Enum):
    PENDING_SURVEY = "pending_survey"
    SURVEY_COMPLETED = "survey_completed"
    SURVEY_FAILED = "survey_failed"
    SCHEDULED = "scheduled"
    INSTALLED = "installed"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    WARNING = "warning"
    MAINTENANCE = "maintenance"


class DeviceType(str, Enum):
    ROUTER = "router"
    SWITCH = "switch"
    OLT = "olt"
    SERVER = "server"
    CPE = "cpe"
    OTHER = "other"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class EmployeeRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    SUPPORT = "support"
    TECHNICIAN = "technician"
    CUSTOMER = "customer"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    SYSTEM = "system"


def _edges(table: Dict[Enum, tuple]) -> Dict[str, FrozenSet[str]]:
    return {src.value: frozenset(dst.value for dst in dsts) for src, dsts in table.items()}


T = TicketStatus
TICKET_TRANSITIONS = _edges({
    T.OPEN: (T.ASSIGNED, T.IN_PROGRESS),
    T.ASSIGNED: (T.OPEN, T.IN_PROGRESS),
    T.IN_PROGRESS: (T.ASSIGNED, T.RESOLVED),
    T.RESOLVED: (T.IN_PROGRESS, T.VERIFIED),  # failed verification goes back to work
    T.VERIFIED: (T.CLOSED,),
    T.CLOSED: (),
})

I = InvoiceStatus
INVOICE_TRANSITIONS = _edges({
    I.PENDING: (I.PAID, I.OVERDUE, I.CANCELLED),
    I.OVERDUE: (I.PAID, I.CANCELLED),
    I.PAID: (),
    I.CANCELLED: (),
})

S = InstallationStatus
INSTALLATION_TRANSITIONS = _edges({
    S.PENDING_SURVEY: (S.SURVEY_COMPLETED, S.SURVEY_FAILED),
    S.SURVEY_FAILED: (S.PENDING_SURVEY,),
    S.SURVEY_COMPLETED: (S.SCHEDULED,),
    S.SCHEDULED: (S.INSTALLED, S.PENDING_SURVEY),
    S.INSTALLED: (),
})
del T, I, S

TRANSITIONS: Dict[str, Dict[str, FrozenSet[str]]] = {
    "ticket": TICKET_TRANSITIONS,
    "invoice": INVOICE_TRANSITIONS,
    "installation": INSTALLATION_TRANSITIONS,
}


def _value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, Enum) else str(status).strip().lower()


def is_known_status(entity: str, status) -> bool:
    return _value(status) in TRANSITIONS[entity]


def can_transition(entity: str, current, requested) -> bool:
    """Edge check against the table for `entity` (ticket / invoice / installation)."""
    table = TRANSITIONS[entity]
    cur, nxt = _value(current), _value(requested)
    if nxt not in table:
        return False
    if cur is None or cur == nxt:
        return True
    return nxt in table.get(cur, frozenset())


def check_transition(entity: str, current, requested, strict: bool = False) -> str:
    """
    Returns the normalized target status. Unknown targets are always
    rejected; edges are only enforced when `strict` is on.
    """
    if not is_known_status(entity, requested):
        raise InvalidTransition(entity, _value(current), _value(requested))
    if strict and not can_transition(entity, current, requested):
        raise InvalidTransition(entity, _value(current), _value(requested))
    return _value(requested)


def coerce(vocabulary: Type[Enum], value, field: str) -> str:
    """Stored form of `value` (" Active " -> "active"); unknown values raise ServiceError."""
    raw = _value(value)
    try:
        return vocabulary(raw).value
    except ValueError:
        raise ServiceError(f"Unknown {field}: '{raw}'") from None
