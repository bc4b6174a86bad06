from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ..errors import NO_SINGLE_ROW, TABLE_NOT_FOUND_CODES, missing_ok
from ..models import utcnow_naive

TABLE = "inventory_items"


@missing_ok(list)
def fetch_inventory(backend) -> List[Dict[str, Any]]:
    return backend.select(TABLE, order_by="name")


@missing_ok(lambda: None, codes=TABLE_NOT_FOUND_CODES | {NO_SINGLE_ROW})
def fetch_inventory_item(backend, item_id: str) -> Optional[Dict[str, Any]]:
    return backend.select(TABLE, filters={"id": item_id}, single=True)


def create_inventory_item(backend, item: Dict[str, Any]) -> Dict[str, Any]:
    return backend.insert(TABLE, item, single=True)


def update_inventory_item(backend, item_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    return backend.update(TABLE, {"id": item_id}, {**updates, "updated_at": utcnow_naive()}, single=True)


def delete_inventory_item(backend, item_id: str) -> None:
    backend.delete(TABLE, {"id": item_id})


def adjust_inventory_stock(backend, item_id: str, delta: int) -> Dict[str, Any]:
    """
    quantity += delta (read, then write). Two concurrent adjustments of the
    same item can lose one of them. An unknown id raises (PGRST116), and so
    does taking out more than is on hand.
    """
    current = backend.select(TABLE, filters={"id": item_id}, single=True)
    on_hand = int(current.get("quantity") or 0)
    quantity = on_hand + int(delta)
    if quantity < 0:
        raise ValueError(f"Not enough stock for {current.get('sku') or item_id}: {on_hand} on hand, {-int(delta)} requested")
    return backend.update(TABLE, {"id": item_id}, {"quantity": quantity, "updated_at": utcnow_naive()}, single=True)


def is_low_stock(item: Dict[str, Any]) -> bool:
    return int(item.get("quantity") or 0) <= int(item.get("min_quantity") or 0)


def low_stock(items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [i for i in items if is_low_stock(i)]
