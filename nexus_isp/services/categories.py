from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok

TABLE = "ticket_categories"

DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {"name": "Internet Issue", "code": "internet_issue", "sla_hours": 4,
     "description": "Connectivity problems, slow speeds, packet loss."},
    {"name": "Billing", "code": "billing", "sla_hours": 24,
     "description": "Invoice inquiries, payment issues, plan changes."},
    {"name": "Hardware", "code": "hardware", "sla_hours": 48,
     "description": "Router malfunction, cable breaks, equipment replacement."},
    {"name": "Installation", "code": "installation", "sla_hours": 72,
     "description": "New service setup, moving services."},
    {"name": "Other", "code": "other", "sla_hours": 24,
     "description": "General inquiries and feedback."},
]


@missing_ok(list)
def fetch_categories(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="name")


def create_category(backend, category: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, category, single=True)


def update_category(backend, category_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": category_id}, updates, single=True)


def delete_category(backend, category_id: str) -> None:
    backend.delete(TABLE, {"id": category_id})


def seed_default_categories(backend) -> List[Dict[str, Any]]:
    """Idempotent: existing codes are left untouched."""
    return backend.upsert(TABLE, DEFAULT_CATEGORIES, on_conflict="code", ignore_duplicates=True)
