import pytest

from nexus_isp.errors import BackendError
from nexus_isp.services import audit_logs as audit_svc
from nexus_isp.services import billing as billing_svc


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


# ======================================================
# billing run
# ======================================================
def test_billing_run_is_dry_by_default(runner, backend, customer, plan):
    result = runner.invoke(args=["billing", "run"])

    assert result.exit_code == 0
    assert "[DRY]" in result.output
    assert "1 invoice(s) would be created" in result.output
    assert backend.select("invoices") == []
    assert audit_svc.fetch_audit_logs(backend) == []


def test_billing_run_nobody_eligible(runner):
    result = runner.invoke(args=["billing", "run", "--apply"])

    assert result.exit_code == 0
    assert "created=0 failed=0" in result.output


def test_billing_run_apply(runner, backend, customer, plan):
    result = runner.invoke(args=["billing", "run", "--apply", "--actor", "cron"])

    assert result.exit_code == 0
    assert "[OK]" in result.output
    assert "created=1 failed=0" in result.output
    assert len(backend.select("invoices")) == 1

    logs = audit_svc.fetch_audit_logs(backend)
    assert len(logs) == 1
    assert logs[0]["action"] == "system"
    assert logs[0]["performed_by"] == "cron"


def test_billing_run_partial_failure_exits_nonzero(runner, backend, customer, plan, monkeypatch):
    def always_fails(b, payload):
        raise BackendError("insert failed", code="23505")

    monkeypatch.setattr(billing_svc, "create_invoice", always_fails)

    result = runner.invoke(args=["billing", "run", "--apply"])

    assert result.exit_code == 1
    assert "[FAIL]" in result.output
    assert "Some invoices could not be created." in result.output
    assert audit_svc.fetch_audit_logs(backend)[0]["details"] == "Billing cycle: 0 invoices created, 1 failed"


# ======================================================
# invoices export
# ======================================================
def test_invoice_export_writes_file(runner, backend, customer, due_date, tmp_path):
    invoice = billing_svc.generate_invoice(backend, customer["id"], 150000, due_date)
    backend.upsert("system_settings", {"key": "currency", "value": "IDR"}, on_conflict="key")
    out = tmp_path / "exports"

    result = runner.invoke(args=["invoices", "export", invoice["id"], "--out", str(out)])

    assert result.exit_code == 0
    path = out / f"Invoice-{invoice['invoice_number']}.html"
    assert path.exists()
    html = path.read_text(encoding="utf-8")
    assert "Rp150,000" in html
    assert "Alice Smith" in html


def test_invoice_export_missing(runner, tmp_path):
    result = runner.invoke(args=["invoices", "export", "nope", "--out", str(tmp_path)])

    assert result.exit_code == 1
    assert "Invoice not found: nope" in result.output


# ======================================================
# audit tail / categories seed
# ======================================================
def test_audit_tail(runner, backend):
    assert "No audit entries." in runner.invoke(args=["audit", "tail"]).output

    backend.insert(
        "audit_logs",
        [
            {"action": "create", "entity": "Ticket", "entity_id": "t1", "performed_by": "Dana", "details": "Created ticket: A"},
            {"action": "update", "entity": "Customer", "entity_id": "c1", "performed_by": "Dana", "details": "Updated: phone"},
        ],
    )

    everything = runner.invoke(args=["audit", "tail"]).output
    assert "Created ticket: A" in everything and "Updated: phone" in everything

    one = runner.invoke(args=["audit", "tail", "--entity", "Ticket", "--entity-id", "t1"]).output
    assert "Created ticket: A" in one
    assert "Updated: phone" not in one


def test_audit_tail_limit_is_bounded(runner):
    assert runner.invoke(args=["audit", "tail", "--limit", "500"]).exit_code != 0


def test_categories_seed(runner):
    assert "Seeded 5 categories." in runner.invoke(args=["categories", "seed"]).output
    assert "Seeded 0 categories." in runner.invoke(args=["categories", "seed"]).output
