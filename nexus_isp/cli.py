# nexus_isp/cli.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from flask.cli import with_appcontext

from .backend import get_backend
from .errors import ServiceError
from .services import audit_logs as audit_svc
from .services import billing as billing_svc
from .services import categories as category_svc
from .services import customers as customer_svc
from .services import inventory as inventory_svc
from .services import invoice_export
from .services import plans as plan_svc
from .stores import FinanceStore


# ======================================================
# Billing
# ======================================================
@click.group()
def billing():
    """Billing tools (monthly cycle)."""


@billing.command("run")
@click.option("--apply", "apply_changes", is_flag=True, help="Actually create invoices (default is DRY-RUN).")
@click.option("--actor", default="System", show_default=True, help="Name recorded on the audit entry.")
@with_appcontext
def billing_run(apply_changes: bool, actor: str):
    """
    One invoice per active customer with a plan.
    DRY-RUN by default: prints what would be created.
    """
    backend = get_backend()
    customers = customer_svc.fetch_customers(backend)
    plans = plan_svc.fetch_plans(backend)

    if not apply_changes:
        drafts = billing_svc.build_cycle_invoices(customers, plans)
        if not drafts:
            click.echo("No eligible customers.")
            return
        for d in drafts:
            click.echo(f"[DRY] {d['invoice_number']} customer_id={d['customer_id']} amount={d['amount']} ({d['description']})")
        click.echo(f"\n{len(drafts)} invoice(s) would be created. Re-run with --apply to write them.")
        return

    try:
        result = FinanceStore(backend, actor=actor).run_billing_cycle(customers, plans)
    except ServiceError as e:
        raise click.ClickException(str(e)) from e

    for inv in result.created:
        click.echo(f"[OK] {inv['invoice_number']} customer_id={inv['customer_id']} amount={inv['amount']}")
    for f in result.failed:
        click.echo(f"[FAIL] {f.invoice_number} customer_id={f.customer_id} error={f.error}")

    click.echo(f"\nDone. created={result.count} failed={len(result.failed)}")
    if not result.ok:
        raise click.ClickException("Some invoices could not be created.")


# ======================================================
# Invoices
# ======================================================
@click.group()
def invoices():
    """Invoice tools."""


@invoices.command("export")
@click.argument("invoice_id")
@click.option("--out", "out_dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."), show_default=True)
@with_appcontext
def invoices_export(invoice_id: str, out_dir: Path):
    """Write the printable HTML invoice to OUT/Invoice-<number>.html."""
    backend = get_backend()
    invoice = billing_svc.fetch_invoice(backend, invoice_id)
    if invoice is None:
        raise click.ClickException(f"Invoice not found: {invoice_id}")

    customer = customer_svc.fetch_customer(backend, invoice["customer_id"]) or {}
    html = invoice_export.render_invoice_html(invoice, customer, invoice_export.resolve_currency(backend))

    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / invoice_export.invoice_filename(invoice)
    path.write_text(html, encoding="utf-8")
    click.echo(f"Wrote {path}")


# ======================================================
# Audit
# ======================================================
@click.group()
def audit():
    """Audit log tools (read-only)."""


@audit.command("tail")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(1, audit_svc.FEED_LIMIT))
@click.option("--entity", default=None, help="Entity name, e.g. Ticket or Customer.")
@click.option("--entity-id", default=None)
@with_appcontext
def audit_tail(limit: int, entity: Optional[str], entity_id: Optional[str]):
    """Newest audit entries first."""
    backend = get_backend()
    if entity and entity_id:
        rows = audit_svc.fetch_audit_logs_by_entity(backend, entity, entity_id)[:limit]
    else:
        rows = audit_svc.fetch_audit_logs(backend, limit=limit)

    if not rows:
        click.echo("No audit entries.")
        return
    for r in rows:
        click.echo(
            f"{r['created_at']} | {r['action']:<6} | {r['entity']}:{r.get('entity_id') or '-'} | "
            f"{r['performed_by']} | {r.get('details') or ''}"
        )


# ======================================================
# Ticket categories
# ======================================================
@click.group()
def categories():
    """Ticket category tools."""


@categories.command("seed")
@with_appcontext
def categories_seed():
    """Insert the default categories (existing codes are left alone)."""
    seeded = category_svc.seed_default_categories(get_backend())
    click.echo(f"Seeded {len(seeded)} categor{'y' if len(seeded) == 1 else 'ies'}.")


# ======================================================
# Inventory
# ======================================================
@click.group()
def inventory():
    """Warehouse stock tools."""


@inventory.command("low-stock")
@with_appcontext
def inventory_low_stock():
    """Items at or below their minimum quantity."""
    items = inventory_svc.low_stock(inventory_svc.fetch_inventory(get_backend()))
    if not items:
        click.echo("Stock levels OK.")
        return
    for i in items:
        click.echo(f"{i['sku']:<12} {i['name']} qty={i['quantity']} min={i['min_quantity']} {i.get('location') or ''}".rstrip())
    click.echo(f"\n{len(items)} item(s) need restocking.")


def init_app(app):
    app.cli.add_command(billing)
    app.cli.add_command(invoices)
    app.cli.add_command(audit)
    app.cli.add_command(categories)
    app.cli.add_command(inventory)
