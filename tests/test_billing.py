import re
from datetime import datetime, timedelta

from nexus_isp.errors import BackendError
from nexus_isp.services import billing as billing_svc


NOW = datetime(2026, 1, 15, 9, 30, 0)


def _customers(plan_id):
    return [
        {"id": "c-active", "name": "Active", "account_status": "active", "plan_id": plan_id},
        {"id": "c-noplan", "name": "No Plan", "account_status": "active", "plan_id": None},
        {"id": "c-lead", "name": "Lead", "account_status": "lead", "plan_id": plan_id},
        {"id": "c-suspended", "name": "Suspended", "account_status": "suspended", "plan_id": plan_id},
        {"id": "c-orphan", "name": "Orphan Plan", "account_status": "active", "plan_id": "gone"},
    ]


# ======================================================
# Numbering
# ======================================================
def test_single_invoice_number_format():
    assert re.fullmatch(r"INV-\d{6}", billing_svc.invoice_number())
    assert re.fullmatch(r"INV-\d{6}", billing_svc.invoice_number(NOW))


def test_cycle_number_uses_unpadded_month():
    assert billing_svc.cycle_invoice_number(NOW, "4821", 0) == "INV-20261-4821-0"
    assert billing_svc.cycle_invoice_number(datetime(2026, 11, 1), "0007", 12) == "INV-202611-0007-12"


# ======================================================
# Eligibility + cycle payloads
# ======================================================
def test_eligibility_requires_active_and_plan():
    customers = _customers("p1")
    assert [c["id"] for c in customers if billing_svc.is_billing_eligible(c)] == ["c-active", "c-orphan"]


def test_build_cycle_invoices():
    plans = [{"id": "p1", "name": "Fiber 100", "price": 49.5}]

    drafts = billing_svc.build_cycle_invoices(_customers("p1"), plans, now=NOW)

    assert [d["customer_id"] for d in drafts] == ["c-active", "c-orphan"]
    assert drafts[0]["amount"] == 49.5
    assert drafts[0]["description"] == "Monthly Subscription: Fiber 100"
    assert drafts[1]["amount"] == 0
    assert drafts[1]["description"] == "Monthly Subscription: Service"
    assert all(d["status"] == "pending" for d in drafts)
    assert all(d["due_date"] == NOW + timedelta(days=14) for d in drafts)
    assert re.fullmatch(r"INV-20261-\d{4}-0", drafts[0]["invoice_number"])
    assert drafts[1]["invoice_number"].endswith("-1")


def test_no_eligible_customers_means_no_writes(backend):
    result = billing_svc.run_billing_cycle(backend, [{"id": "x", "account_status": "lead", "plan_id": None}], [])

    assert result.count == 0
    assert result.ok
    assert backend.select("invoices") == []


def test_run_billing_cycle_creates_one_invoice_per_eligible_customer(backend, customer, plan):
    other = backend.insert("customers", {"name": "Bob", "account_status": "pending", "plan_id": plan["id"]}, single=True)

    result = billing_svc.run_billing_cycle(backend, [customer, other], [plan], now=NOW)

    assert result.count == 1
    invoices = backend.select("invoices")
    assert len(invoices) == 1
    assert invoices[0]["customer_id"] == customer["id"]
    assert invoices[0]["amount"] == 49.5


def test_billing_cycle_reports_partial_failure(backend, customer, plan, monkeypatch):
    second = backend.insert("customers", {"name": "Zed", "account_status": "active", "plan_id": plan["id"]}, single=True)
    real_create = billing_svc.create_invoice

    def flaky(b, payload):
        if payload["customer_id"] == second["id"]:
            raise BackendError("duplicate key value violates unique constraint", code="23505")
        return real_create(b, payload)

    monkeypatch.setattr(billing_svc, "create_invoice", flaky)

    result = billing_svc.run_billing_cycle(backend, [customer, second], [plan], now=NOW)

    assert result.count == 1
    assert not result.ok
    assert result.failed[0].customer_id == second["id"]
    assert "duplicate key" in result.failed[0].error
    assert len(backend.select("invoices")) == 1


# ======================================================
# Single invoices + status
# ======================================================
def test_generate_invoice_defaults(backend, customer, due_date):
    inv = billing_svc.generate_invoice(backend, customer["id"], 25, due_date, now=NOW)

    assert inv["status"] == "pending"
    assert inv["issued_date"] == NOW
    assert inv["description"] == "General Service"
    assert re.fullmatch(r"INV-\d{6}", inv["invoice_number"])


def test_customer_invoices_newest_first(backend, customer, due_date):
    older = billing_svc.generate_invoice(backend, customer["id"], 10, due_date, now=NOW)
    newer = billing_svc.generate_invoice(backend, customer["id"], 20, due_date, now=NOW + timedelta(minutes=5))

    assert [i["id"] for i in billing_svc.fetch_invoices(backend, customer["id"])] == [newer["id"], older["id"]]


def test_update_status_is_a_plain_overwrite(backend, customer, due_date):
    inv = billing_svc.generate_invoice(backend, customer["id"], 25, due_date)

    billing_svc.update_invoice_status(backend, inv["id"], "paid")
    back = billing_svc.update_invoice_status(backend, inv["id"], billing_svc.InvoiceStatus.PENDING)

    assert back["status"] == "pending"


def test_all_invoices_embed_customer_with_fallback(backend, customer, due_date, drop_table):
    billing_svc.generate_invoice(backend, customer["id"], 10, due_date)
    assert billing_svc.fetch_all_invoices(backend)[0]["customer"]["name"] == "Alice Smith"

    drop_table("customers")
    rows = billing_svc.fetch_all_invoices(backend)
    assert len(rows) == 1 and "customer" not in rows[0]


# ======================================================
# Payment methods: one default per customer
# ======================================================
def _defaults(backend, customer_id):
    return [m["last_four"] for m in billing_svc.fetch_payment_methods(backend, customer_id) if m["is_default"]]


def test_first_method_is_default_regardless_of_flag(backend, customer):
    method = billing_svc.add_payment_method(
        backend, {"customer_id": customer["id"], "type": "credit_card", "last_four": "4242", "is_default": False}
    )
    assert method["is_default"] is True


def test_new_default_clears_previous(backend, customer):
    add = billing_svc.add_payment_method
    add(backend, {"customer_id": customer["id"], "type": "credit_card", "last_four": "1111"})
    add(backend, {"customer_id": customer["id"], "type": "bank_transfer", "last_four": "2222"})
    assert _defaults(backend, customer["id"]) == ["1111"]

    add(backend, {"customer_id": customer["id"], "type": "credit_card", "last_four": "3333", "is_default": True})

    assert _defaults(backend, customer["id"]) == ["3333"]
    assert len(billing_svc.fetch_payment_methods(backend, customer["id"])) == 3


def test_default_flag_is_per_customer(backend, customer):
    other = backend.insert("customers", {"name": "Bob"}, single=True)
    billing_svc.add_payment_method(backend, {"customer_id": customer["id"], "type": "credit_card", "last_four": "1111"})
    billing_svc.add_payment_method(backend, {"customer_id": other["id"], "type": "credit_card", "last_four": "9999"})

    assert _defaults(backend, customer["id"]) == ["1111"]
    assert _defaults(backend, other["id"]) == ["9999"]
