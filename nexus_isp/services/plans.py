from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok

TABLE = "plans"


@missing_ok(list)
def fetch_plans(backend) -> List[Dict[str, Any]]:
    # cheapest first
    return backend.select(TABLE, order_by="price")


def create_plan(backend, plan: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, plan, single=True)


def delete_plan(backend, plan_id: str) -> None:
    backend.delete(TABLE, {"id": plan_id})
