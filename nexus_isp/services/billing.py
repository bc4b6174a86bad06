from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..errors import (
    NO_SINGLE_ROW,
    RELATIONSHIP_NOT_FOUND,
    TABLE_NOT_FOUND_CODES,
    BackendError,
    missing_ok,
    safe_error_message,
)
from ..lifecycle import CustomerStatus, InvoiceStatus
from ..models import utcnow_naive

log = logging.getLogger("nexus.services")

INVOICES = "invoices"
PAYMENT_METHODS = "payment_methods"

BILLING_DUE_DAYS = 14
ALL_INVOICES_LIMIT = 500


# =========================================================
# Reads
# =========================================================
@missing_ok(list)
def fetch_invoices(backend, customer_id: str) -> List[Dict[str, Any]]:
    """One customer's invoices, newest first."""
    return backend.select(
        INVOICES,
        filters={"customer_id": customer_id},
        order_by="issued_date",
        desc=True,
    )


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_invoice(backend, invoice_id: str) -> Optional[Dict[str, Any]]:
    return backend.select(INVOICES, filters={"id": invoice_id}, single=True)


@missing_ok(list)
def fetch_all_invoices(backend, limit: int = ALL_INVOICES_LIMIT) -> List[Dict[str, Any]]:
    try:
        return backend.select(INVOICES, order_by="issued_date", desc=True, limit=limit, embed="customer")
    except BackendError as e:
        if e.code != RELATIONSHIP_NOT_FOUND:
            raise
        log.warning("Invoice/customer relationship missing, fetching invoices without customer data.")
        return backend.select(INVOICES, order_by="issued_date", desc=True, limit=limit)


@missing_ok(list)
def fetch_payment_methods(backend, customer_id: str) -> List[Dict[str, Any]]:
    """Default method first."""
    return backend.select(
        PAYMENT_METHODS,
        filters={"customer_id": customer_id},
        order_by="is_default",
        desc=True,
    )


# =========================================================
# Invoice numbers
# =========================================================
def _epoch_millis(now: datetime) -> int:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return int(now.timestamp() * 1000)


def invoice_number(now: Optional[datetime] = None) -> str:
    """INV-<last 6 digits of epoch millis>. Not guaranteed unique."""
    now = now or utcnow_naive()
    return f"INV-{str(_epoch_millis(now))[-6:]}"


def cycle_invoice_number(now: datetime, batch_id: str, index: int) -> str:
    # month is not zero-padded: INV-20261-4821-0 for January
    return f"INV-{now.year}{now.month}-{batch_id}-{index}"


# =========================================================
# Writes
# =========================================================
def create_invoice(backend, invoice: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(INVOICES, invoice, single=True)


def generate_invoice(
    backend,
    customer_id: str,
    amount: float,
    due_date: datetime,
    description: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow_naive()
    return create_invoice(
        backend,
        {
            "customer_id": customer_id,
            "invoice_number": invoice_number(now),
            "amount": amount,
            "status": InvoiceStatus.PENDING.value,
            "issued_date": now,
            "due_date": due_date,
            "description": description or "General Service",
        },
    )


def update_invoice_status(backend, invoice_id: str, status: InvoiceStatus | str) -> Dict[str, Any]:
    """Direct overwrite. Transition policy is applied by the caller."""
    value = status.value if isinstance(status, InvoiceStatus) else str(status)
    return backend.update(INVOICES, {"id": invoice_id}, {"status": value}, single=True)


def add_payment_method(backend, method: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keeps at most one default per customer:
    - a customer's first method is always the default
    - a new default clears the flag on the existing ones first
    """
    payload = dict(method)
    customer_id = payload["customer_id"]

    existing = fetch_payment_methods(backend, customer_id)
    payload["is_default"] = True if not existing else bool(payload.get("is_default"))

    if payload["is_default"] and existing:
        backend.update(
            PAYMENT_METHODS,
            {"customer_id": customer_id, "is_default": True},
            {"is_default": False},
        )

    return backend.insert(PAYMENT_METHODS, payload, single=True)


# =========================================================
# Billing cycle
# =========================================================
@dataclass
class BillingFailure:
    customer_id: str
    invoice_number: str
    error: str


@dataclass
class BillingCycleResult:
    created: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[BillingFailure] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.created)

    @property
    def ok(self) -> bool:
        return not self.failed


def is_billing_eligible(customer: Dict[str, Any]) -> bool:
    status = customer.get("account_status")
    return getattr(status, "value", status) == CustomerStatus.ACTIVE.value and bool(customer.get("plan_id"))


def build_cycle_invoices(
    customers: Iterable[Dict[str, Any]],
    plans: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Invoice payloads for one cycle, without writing anything."""
    now = now or utcnow_naive()
    eligible = [c for c in customers if is_billing_eligible(c)]
    if not eligible:
        return []

    plans_by_id = {p["id"]: p for p in plans}
    due_date = now + timedelta(days=BILLING_DUE_DAYS)
    batch_id = str(_epoch_millis(now))[-4:]

    out: List[Dict[str, Any]] = []
    for index, customer in enumerate(eligible):
        plan = plans_by_id.get(customer.get("plan_id"))
        out.append(
            {
                "customer_id": customer["id"],
                "invoice_number": cycle_invoice_number(now, batch_id, index),
                "amount": plan["price"] if plan else 0,
                "status": InvoiceStatus.PENDING.value,
                "issued_date": now,
                "due_date": due_date,
                "description": f"Monthly Subscription: {plan['name'] if plan else 'Service'}",
            }
        )
    return out


def run_billing_cycle(
    backend,
    customers: Iterable[Dict[str, Any]],
    plans: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> BillingCycleResult:
    """
    One invoice per eligible customer (active + plan set).

    Rows are written one at a time so a bad row is reported instead of
    sinking the batch. No eligible customers means no writes.
    """
    result = BillingCycleResult()
    for payload in build_cycle_invoices(customers, plans, now=now):
        try:
            result.created.append(create_invoice(backend, payload))
        except Exception as e:
            log.warning(
                "Billing cycle row failed | customer_id=%s invoice=%s err=%s",
                payload["customer_id"], payload["invoice_number"], e,
            )
            result.failed.append(
                BillingFailure(payload["customer_id"], payload["invoice_number"], safe_error_message(e))
            )
    return result
