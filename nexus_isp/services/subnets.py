from __future__ import annotations

from typing import Any, Dict, List

from ..errors import missing_ok

TABLE = "subnets"


@missing_ok(list)
def fetch_subnets(backend) -> List[Dict[str, Any]]:
    # plain string order on cidr ("10.0.10.0/24" sorts before "10.0.2.0/24")
    return backend.select(TABLE, order_by="cidr")


def create_subnet(backend, subnet: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, subnet, single=True)


def update_subnet(backend, subnet_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": subnet_id}, updates, single=True)


def delete_subnet(backend, subnet_id: str) -> None:
    backend.delete(TABLE, {"id": subnet_id})
