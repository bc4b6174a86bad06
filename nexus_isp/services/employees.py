from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import NO_SINGLE_ROW, TABLE_NOT_FOUND_CODES, missing_ok

TABLE = "employees"


@missing_ok(list)
def fetch_employees(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="name")


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_employee(backend, employee_id: str) -> Optional[Dict[str, Any]]:
    return backend.select(TABLE, filters={"id": employee_id}, single=True)


def create_employee(backend, employee: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, employee, single=True)


def update_employee(backend, employee_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": employee_id}, updates, single=True)


def delete_employee(backend, employee_id: str) -> None:
    backend.delete(TABLE, {"id": employee_id})
