from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok

TABLE = "departments"


@missing_ok(list)
def fetch_departments(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="name")


def create_department(backend, department: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, department, single=True)


def update_department(backend, department_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": department_id}, updates, single=True)


def delete_department(backend, department_id: str) -> None:
    backend.delete(TABLE, {"id": department_id})
