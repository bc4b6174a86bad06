from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional

from flask import current_app, render_template

from .settings import fetch_setting

# code -> (symbol, decimals)
CURRENCIES: Dict[str, tuple] = {
    "USD": ("$", 2),
    "EUR": ("€", 2),
    "IDR": ("Rp", 0),
    "GBP": ("£", 2),
    "AUD": ("A$", 2),
    "SGD": ("S$", 2),
    "JPY": ("¥", 0),
    "CAD": ("C$", 2),
}


def format_currency(amount: Any, currency: str = "USD") -> str:
    code = (currency or "USD").strip().upper()
    try:
        value = Decimal(str(amount if amount is not None else 0))
    except InvalidOperation:
        value = Decimal("0")

    if code not in CURRENCIES:
        # unknown code: plain "XXX 12.34"
        return f"{code} {value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"

    symbol, decimals = CURRENCIES[code]
    quant = Decimal(1).scaleb(-decimals)
    rounded = value.quantize(quant, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.{decimals}f}"


def invoice_filename(invoice: Dict[str, Any]) -> str:
    return f"Invoice-{invoice.get('invoice_number', 'draft')}.html"


def resolve_currency(backend) -> str:
    """system_settings.currency, then DEFAULT_CURRENCY."""
    return fetch_setting(backend, "currency") or current_app.config.get("DEFAULT_CURRENCY", "USD")


def _day(value: Any) -> str:
    if not value:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def render_invoice_html(invoice: Dict[str, Any], customer: Dict[str, Any], currency: Optional[str] = None) -> str:
    """Self-printing HTML invoice (opens the print dialog on load)."""
    currency = currency or current_app.config.get("DEFAULT_CURRENCY", "USD")
    amount = format_currency(invoice.get("amount"), currency)
    return render_template(
        "invoice.html",
        company_name=current_app.config.get("COMPANY_NAME", "Nexus ISP"),
        invoice=invoice,
        customer=customer or {},
        issued=_day(invoice.get("issued_date")),
        due=_day(invoice.get("due_date")),
        line_description=invoice.get("description") or "Service",
        amount=amount,
        total=amount,
    )
