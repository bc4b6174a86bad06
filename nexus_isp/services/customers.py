from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import NO_SINGLE_ROW, TABLE_NOT_FOUND_CODES, missing_ok

TABLE = "customers"


@missing_ok(list)
def fetch_customers(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="name")


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_customer(backend, customer_id: str) -> Optional[Dict[str, Any]]:
    return backend.select(TABLE, filters={"id": customer_id}, single=True)


def create_customer(backend, customer: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, customer, single=True)


def update_customer(backend, customer_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": customer_id}, updates, single=True)


def delete_customer(backend, customer_id: str) -> None:
    backend.delete(TABLE, {"id": customer_id})
