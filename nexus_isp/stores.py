"""
Per-resource state containers.

Each store keeps a KeyedCollection of rows, a loading flag and the last
load error. Mutations call the service layer, merge the stored row into the
collection and, when an actor is known, append an audit entry. The change
feed (watch / apply_change) goes through the same merge, so an event for a
row we already hold just overwrites it.
"""
from __future__ import annotations

import ipaddress
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .audit import AuditTrail
from .cache import KeyedCollection
from .errors import InvalidTransition, ServiceError, safe_error_message
from .lifecycle import (
    AlertSeverity,
    AuditAction,
    CustomerStatus,
    CustomerType,
    DeviceStatus,
    DeviceType,
    InvoiceStatus,
    TicketPriority,
    TicketStatus,
    check_transition,
    coerce,
)
from .realtime import DELETE, UPDATE, ChangeEvent, Subscription
from .services import alerts as alert_svc
from .services import audit_logs as audit_svc
from .services import billing as billing_svc
from .services import comments as comment_svc
from .services import customers as customer_svc
from .services import departments as department_svc
from .services import devices as device_svc
from .services import inventory as inventory_svc
from .services import knowledge as kb_svc
from .services import plans as plan_svc
from .services import subnets as subnet_svc
from .services import tickets as ticket_svc
from .services.notify import notify_ticket_escalated

log = logging.getLogger("nexus.stores")

Row = Dict[str, Any]


def _by(field: str) -> Callable[[Row], Any]:
    # None sorts before any value (after, when reversed)
    return lambda r: (r.get(field) is not None, r.get(field) if r.get(field) is not None else "")


def _status(value: Any) -> Any:
    return getattr(value, "value", value)


class Store:
    table: str = ""
    # load errors: re-raised as ServiceError, or only recorded on .error
    raise_on_load = False
    partial_updates = False
    sort_field: Optional[str] = None
    sort_desc = False

    def __init__(self, backend, actor: Optional[str] = None, audit: Optional[AuditTrail] = None, strict: bool = False):
        self.backend = backend
        self.actor = actor
        self.audit = audit or AuditTrail(backend)
        self.strict = strict
        self.items = KeyedCollection(
            sort_key=_by(self.sort_field) if self.sort_field else None,
            reverse=self.sort_desc,
        )
        self.loading = False
        self.error: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    @property
    def rows(self) -> List[Row]:
        return self.items.rows()

    def get(self, row_id: Any) -> Optional[Row]:
        return self.items.get(row_id)

    # -----------------------
    # Loading
    # -----------------------
    def _fetch(self) -> List[Row]:
        raise NotImplementedError

    def load(self) -> List[Row]:
        self.loading = True
        self.error = None
        try:
            self.items.replace(self._fetch())
        except Exception as e:
            self.error = safe_error_message(e)
            if self.raise_on_load:
                raise ServiceError(self.error) from e
            log.warning("Failed to load %s: %s", self.table, self.error)
        finally:
            self.loading = False
        return self.rows

    # -----------------------
    # Change feed
    # -----------------------
    def watch(self) -> Subscription:
        if self._subscription is None or not self._subscription.active:
            self._subscription = self.backend.subscribe(self.table, self.apply_change)
        return self._subscription

    def unwatch(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _hydrate(self, row: Row) -> Row:
        return row

    def apply_change(self, event: ChangeEvent) -> None:
        if event.type == DELETE:
            self.items.remove(event.row_id)
            return
        if not event.new:
            return
        self.items.merge(
            self._hydrate(event.new),
            at_head=True,
            partial=self.partial_updates and event.type == UPDATE,
        )

    # -----------------------
    # Helpers
    # -----------------------
    def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(self.backend, *args, **kwargs)
        except InvalidTransition:
            raise
        except ServiceError:
            raise
        except Exception as e:
            raise ServiceError(safe_error_message(e)) from e

    def _audit(self, action: AuditAction, entity: str, entity_id: Any, details: Optional[str]) -> bool:
        if not self.actor:
            return False
        return self.audit.record(action, entity, self.actor, entity_id=entity_id, details=details)

    def _guard(self, entity: str, current: Any, requested: Any) -> str:
        return check_transition(entity, _status(current), _status(requested), strict=self.strict)

    def _invoice_status(self, invoice_id: str) -> Any:
        # only strict mode looks at the current status
        if not self.strict:
            return None
        cached = self.items.get(invoice_id)
        if cached is not None:
            return cached.get("status")
        row = self._call(billing_svc.fetch_invoice, invoice_id)
        return row.get("status") if row else None


# =========================================================
# Tickets
# =========================================================
class TicketStore(Store):
    table = "tickets"
    entity = "Ticket"
    raise_on_load = True
    sort_field = "created_at"
    sort_desc = True

    def _fetch(self) -> List[Row]:
        return ticket_svc.fetch_tickets(self.backend)

    def _hydrate(self, row: Row) -> Row:
        # feed rows carry no embedded customer
        try:
            full = ticket_svc.fetch_ticket(self.backend, row["id"])
        except Exception:
            log.warning("Could not refresh ticket from feed | id=%s", row.get("id"))
            full = None
        return full or row

    def _current_status(self, ticket_id: str) -> Any:
        if not self.strict:
            return None
        cached = self.items.get(ticket_id)
        if cached is not None:
            return cached.get("status")
        row = self._call(ticket_svc.fetch_ticket, ticket_id)
        return row.get("status") if row else None

    def add(self, ticket: Row) -> Row:
        payload = dict(ticket)
        missing = [f for f in ("title", "description", "priority", "category") if not payload.get(f)]
        if missing:
            raise ServiceError(f"Missing required field(s): {', '.join(missing)}")
        payload["priority"] = coerce(TicketPriority, payload["priority"], "priority")
        payload["status"] = self._guard("ticket", None, payload.get("status") or TicketStatus.OPEN)

        created = self._call(ticket_svc.create_ticket, payload)
        self.items.merge(created, at_head=True)
        self._audit(AuditAction.CREATE, self.entity, created["id"], f"Created ticket: {created.get('title', '')}")
        return created

    def edit(self, ticket_id: str, updates: Row) -> Row:
        updates = dict(updates)
        if updates.get("status") is not None:
            updates["status"] = self._guard("ticket", self._current_status(ticket_id), updates["status"])
        if updates.get("priority") is not None:
            updates["priority"] = coerce(TicketPriority, updates["priority"], "priority")

        updated = self._call(ticket_svc.update_ticket, ticket_id, updates)
        self.items.merge(updated)
        self._audit(AuditAction.UPDATE, self.entity, ticket_id, ticket_svc.audit_details_for_update(updates))
        return updated

    def remove(self, ticket_id: str) -> None:
        self._call(ticket_svc.delete_ticket, ticket_id)
        self.items.remove(ticket_id)
        self._audit(AuditAction.DELETE, self.entity, ticket_id, "Deleted ticket")

    def escalate(self, ticket_id: str, reason: str, assignee: Optional[str] = None) -> Row:
        """
        Posts a system comment, forces priority to high and optionally
        reassigns (status -> assigned). Supervisors are notified best-effort.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ServiceError("An escalation reason is required")

        content = f"TICKET ESCALATED\n\nReason: {reason}"
        if assignee:
            content += f"\nReassigned to: {assignee}"
        self._call(comment_svc.create_comment, {"ticket_id": ticket_id, "content": content, "author_name": "System"})

        updates: Row = {"is_escalated": True, "priority": TicketPriority.HIGH.value}
        if assignee:
            updates["assigned_to"] = assignee
            updates["status"] = TicketStatus.ASSIGNED.value

        updated = self.edit(ticket_id, updates)
        notify_ticket_escalated(
            {
                "id": ticket_id,
                "title": updated.get("title"),
                "priority": updated.get("priority"),
                "reason": reason,
                "assigned_to": assignee,
                "escalated_by": self.actor or "System",
            }
        )
        return updated


# =========================================================
# Customers
# =========================================================
class CustomerStore(Store):
    table = "customers"
    entity = "Customer"
    raise_on_load = True
    sort_field = "name"

    def _fetch(self) -> List[Row]:
        return customer_svc.fetch_customers(self.backend)

    def _vocabulary(self, payload: Row) -> Row:
        payload = dict(payload)
        if payload.get("account_status") is not None:
            payload["account_status"] = coerce(CustomerStatus, payload["account_status"], "account_status")
        if payload.get("type") is not None:
            payload["type"] = coerce(CustomerType, payload["type"], "type")
        return payload

    def add(self, customer: Row) -> Row:
        payload = self._vocabulary(customer)
        if payload.get("installation_status") is not None:
            payload["installation_status"] = self._guard("installation", None, payload["installation_status"])

        created = self._call(customer_svc.create_customer, payload)
        self.items.merge(created)
        self._audit(AuditAction.CREATE, self.entity, created["id"], f"Registered new customer: {created.get('name', '')}")
        return created

    def edit(self, customer_id: str, updates: Row) -> Row:
        updates = self._vocabulary(updates)
        if updates.get("installation_status") is not None:
            current = None
            if self.strict:
                row = self.items.get(customer_id) or self._call(customer_svc.fetch_customer, customer_id) or {}
                current = row.get("installation_status")
            updates["installation_status"] = self._guard("installation", current, updates["installation_status"])

        updated = self._call(customer_svc.update_customer, customer_id, updates)
        self.items.merge(updated)
        self._audit(AuditAction.UPDATE, self.entity, customer_id, f"Updated: {', '.join(updates.keys())}")
        return updated

    def remove(self, customer_id: str) -> None:
        existing = self.items.get(customer_id) or self._call(customer_svc.fetch_customer, customer_id) or {}
        name = existing.get("name") or customer_id

        self._call(customer_svc.delete_customer, customer_id)
        self.items.remove(customer_id)
        self._audit(AuditAction.DELETE, self.entity, customer_id, f"Deleted customer: {name}")


# =========================================================
# Network devices
# =========================================================
class DeviceStore(Store):
    table = "network_devices"
    # feed rows carry no interfaces; keep the cached ones
    partial_updates = True
    sort_field = "name"

    def _fetch(self) -> List[Row]:
        return device_svc.fetch_devices(self.backend)

    def _vocabulary(self, payload: Row) -> Row:
        payload = dict(payload)
        if payload.get("status") is not None:
            payload["status"] = coerce(DeviceStatus, payload["status"], "status")
        if payload.get("type") is not None:
            payload["type"] = coerce(DeviceType, payload["type"], "type")
        return payload

    def add(self, device: Row) -> Row:
        created = self._call(device_svc.create_device, self._vocabulary(device))
        self.items.merge(created)
        return created

    def edit(self, device_id: str, updates: Row) -> Row:
        updated = self._call(device_svc.update_device, device_id, self._vocabulary(updates))
        self.items.merge(updated, partial=True)
        return self.items.get(device_id) or updated

    def remove(self, device_id: str) -> None:
        self._call(device_svc.delete_device, device_id)
        self.items.remove(device_id)


# =========================================================
# Plans
# =========================================================
class PlanStore(Store):
    table = "plans"
    sort_field = "price"

    def _fetch(self) -> List[Row]:
        return plan_svc.fetch_plans(self.backend)

    def add(self, plan: Row) -> Row:
        created = self._call(plan_svc.create_plan, plan)
        self.items.merge(created)
        return created

    def remove(self, plan_id: str) -> None:
        self._call(plan_svc.delete_plan, plan_id)
        self.items.remove(plan_id)


# =========================================================
# Billing (one customer)
# =========================================================
class BillingStore(Store):
    table = "invoices"
    sort_field = "issued_date"
    sort_desc = True

    def __init__(self, backend, customer_id: str, **kwargs):
        super().__init__(backend, **kwargs)
        self.customer_id = customer_id
        self.payment_methods = KeyedCollection(sort_key=lambda r: not r.get("is_default"))

    @property
    def invoices(self) -> List[Row]:
        return self.rows

    def _fetch(self) -> List[Row]:
        methods = billing_svc.fetch_payment_methods(self.backend, self.customer_id)
        invoices = billing_svc.fetch_invoices(self.backend, self.customer_id)
        self.payment_methods.replace(methods)
        return invoices

    def load(self) -> List[Row]:
        if not self.customer_id:
            return []
        return super().load()

    def apply_change(self, event: ChangeEvent) -> None:
        row = event.new or event.old or {}
        if row.get("customer_id") != self.customer_id:
            return
        super().apply_change(event)

    def create_invoice(self, amount: float, due_date: datetime, description: Optional[str] = None) -> Row:
        created = self._call(billing_svc.generate_invoice, self.customer_id, amount, due_date, description)
        self.items.merge(created, at_head=True)
        return created

    def update_status(self, invoice_id: str, status: Any) -> Row:
        status = self._guard("invoice", self._invoice_status(invoice_id), status)

        updated = self._call(billing_svc.update_invoice_status, invoice_id, status)
        self.items.merge(updated)
        return updated

    def add_method(self, method: Row) -> Row:
        payload = {**method, "customer_id": self.customer_id}
        created = self._call(billing_svc.add_payment_method, payload)
        if created.get("is_default"):
            for existing in self.payment_methods.rows():
                self.payment_methods.merge({"id": existing["id"], "is_default": False}, partial=True)
        self.payment_methods.merge(created)
        return created


# =========================================================
# Finance (all invoices)
# =========================================================
class FinanceStore(Store):
    table = "invoices"
    sort_field = "issued_date"
    sort_desc = True

    def _fetch(self) -> List[Row]:
        return billing_svc.fetch_all_invoices(self.backend)

    def run_billing_cycle(
        self,
        customers: Iterable[Row],
        plans: Iterable[Row],
        now: Optional[datetime] = None,
    ) -> billing_svc.BillingCycleResult:
        try:
            result = billing_svc.run_billing_cycle(self.backend, list(customers), list(plans), now=now)
        except Exception as e:
            raise ServiceError(safe_error_message(e)) from e

        if result.created or result.failed:
            self._audit(
                AuditAction.SYSTEM,
                "Invoice",
                None,
                f"Billing cycle: {result.count} invoices created, {len(result.failed)} failed",
            )
            self.load()
        return result

    def mark_as_paid(self, invoice_id: str) -> Row:
        self._guard("invoice", self._invoice_status(invoice_id), InvoiceStatus.PAID)

        updated = self._call(billing_svc.update_invoice_status, invoice_id, InvoiceStatus.PAID)
        self.items.merge(updated, partial=True)
        return self.items.get(invoice_id) or updated


# =========================================================
# Audit feed (read-only)
# =========================================================
class AuditLogStore(Store):
    table = "audit_logs"
    sort_field = "created_at"
    sort_desc = True

    def _fetch(self) -> List[Row]:
        return audit_svc.fetch_audit_logs(self.backend)

    def apply_change(self, event: ChangeEvent) -> None:
        super().apply_change(event)
        # keep only the newest entries
        for row in self.rows[audit_svc.FEED_LIMIT:]:
            self.items.remove(row["id"])

    def history(self, entity: str, entity_id: str) -> List[Row]:
        return audit_svc.fetch_audit_logs_by_entity(self.backend, entity, entity_id)


# =========================================================
# Network alerts (newest 50)
# =========================================================
class AlertStore(Store):
    table = "network_alerts"
    sort_field = "timestamp"
    sort_desc = True

    def _fetch(self) -> List[Row]:
        return alert_svc.fetch_alerts(self.backend)

    def _trim(self) -> None:
        for row in self.rows[alert_svc.FEED_LIMIT:]:
            self.items.remove(row["id"])

    def apply_change(self, event: ChangeEvent) -> None:
        super().apply_change(event)
        self._trim()

    def trigger(self, alert: Row) -> Row:
        payload = dict(alert)
        missing = [f for f in ("device_name", "message") if not payload.get(f)]
        if missing:
            raise ServiceError(f"Missing required field(s): {', '.join(missing)}")
        payload["severity"] = coerce(AlertSeverity, payload.get("severity") or AlertSeverity.INFO, "severity")

        created = self._call(alert_svc.create_alert, payload)
        self.items.merge(created, at_head=True)
        self._trim()
        return created


# =========================================================
# Subnets (IP plan)
# =========================================================
class SubnetStore(Store):
    table = "subnets"
    sort_field = "cidr"

    def _fetch(self) -> List[Row]:
        return subnet_svc.fetch_subnets(self.backend)

    def _checked(self, payload: Row) -> Row:
        payload = dict(payload)
        if "cidr" in payload:
            cidr = str(payload["cidr"] or "").strip()
            try:
                ipaddress.ip_network(cidr, strict=False)
            except ValueError:
                raise ServiceError(f"Invalid CIDR: '{cidr}'") from None
            payload["cidr"] = cidr
        return payload

    def add(self, subnet: Row) -> Row:
        payload = self._checked(subnet)
        if not payload.get("name") or not payload.get("cidr"):
            raise ServiceError("name and cidr are required")
        created = self._call(subnet_svc.create_subnet, payload)
        self.items.merge(created)
        return created

    def edit(self, subnet_id: str, updates: Row) -> Row:
        updated = self._call(subnet_svc.update_subnet, subnet_id, self._checked(updates))
        self.items.merge(updated)
        return updated

    def remove(self, subnet_id: str) -> None:
        self._call(subnet_svc.delete_subnet, subnet_id)
        self.items.remove(subnet_id)


# =========================================================
# Warehouse stock
# =========================================================
class InventoryStore(Store):
    table = "inventory_items"
    sort_field = "name"

    def _fetch(self) -> List[Row]:
        return inventory_svc.fetch_inventory(self.backend)

    @property
    def low_stock(self) -> List[Row]:
        return inventory_svc.low_stock(self.rows)

    def add(self, item: Row) -> Row:
        missing = [f for f in ("name", "sku") if not item.get(f)]
        if missing:
            raise ServiceError(f"Missing required field(s): {', '.join(missing)}")
        created = self._call(inventory_svc.create_inventory_item, item)
        self.items.merge(created)
        return created

    def edit(self, item_id: str, updates: Row) -> Row:
        updated = self._call(inventory_svc.update_inventory_item, item_id, updates)
        self.items.merge(updated)
        return updated

    def remove(self, item_id: str) -> None:
        self._call(inventory_svc.delete_inventory_item, item_id)
        self.items.remove(item_id)

    def adjust_stock(self, item_id: str, delta: Any) -> Row:
        """Positive delta restocks, negative takes items out (e.g. for an install)."""
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ServiceError("Stock adjustment must be a whole number")
        updated = self._call(inventory_svc.adjust_inventory_stock, item_id, delta)
        self.items.merge(updated)
        return updated


# =========================================================
# Departments / knowledge base
# =========================================================
class DepartmentStore(Store):
    table = "departments"
    sort_field = "name"

    def _fetch(self) -> List[Row]:
        return department_svc.fetch_departments(self.backend)

    def add(self, department: Row) -> Row:
        if not department.get("name"):
            raise ServiceError("name is required")
        created = self._call(department_svc.create_department, department)
        self.items.merge(created)
        return created

    def edit(self, department_id: str, updates: Row) -> Row:
        updated = self._call(department_svc.update_department, department_id, updates)
        self.items.merge(updated)
        return updated

    def remove(self, department_id: str) -> None:
        self._call(department_svc.delete_department, department_id)
        self.items.remove(department_id)


class KnowledgeStore(Store):
    table = "knowledge_articles"
    sort_field = "created_at"
    sort_desc = True

    def _fetch(self) -> List[Row]:
        return kb_svc.fetch_articles(self.backend)

    def add(self, article: Row) -> Row:
        missing = [f for f in ("title", "content", "category") if not article.get(f)]
        if missing:
            raise ServiceError(f"Missing required field(s): {', '.join(missing)}")
        payload = {**article, "author_name": article.get("author_name") or self.actor or "Staff"}
        created = self._call(kb_svc.create_article, payload)
        self.items.merge(created, at_head=True)
        return created

    def edit(self, article_id: str, updates: Row) -> Row:
        updated = self._call(kb_svc.update_article, article_id, updates)
        self.items.merge(updated)
        return updated

    def remove(self, article_id: str) -> None:
        self._call(kb_svc.delete_article, article_id)
        self.items.remove(article_id)

    def record_view(self, article_id: str) -> Optional[int]:
        views = kb_svc.increment_article_views(self.backend, article_id)
        if views is not None and article_id in self.items:
            self.items.merge({"id": article_id, "views": views}, partial=True)
        return views
