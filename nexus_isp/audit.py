from __future__ import annotations

import logging
from typing import Any, Optional

from .lifecycle import AuditAction

log = logging.getLogger("nexus.audit")


class AuditTrail:
    """
    Append-only writer for audit_logs.

    record() is best-effort: a failed write is logged and reported as False,
    never raised, so it cannot change the outcome of the mutation that
    triggered it. There is no update or delete.
    """

    table = "audit_logs"

    def __init__(self, backend):
        self.backend = backend

    def record(
        self,
        action: AuditAction | str,
        entity: str,
        performed_by: str,
        entity_id: Optional[Any] = None,
        details: Optional[str] = None,
    ) -> bool:
        try:
            self.backend.insert(
                self.table,
                {
                    "action": action.value if isinstance(action, AuditAction) else str(action),
                    "entity": entity,
                    "entity_id": str(entity_id) if entity_id is not None else None,
                    "details": details,
                    "performed_by": performed_by,
                },
            )
            return True
        except Exception:
            log.exception(
                "Failed to write audit log | action=%s entity=%s entity_id=%s by=%s",
                getattr(action, "value", action), entity, entity_id, performed_by,
            )
            return False
