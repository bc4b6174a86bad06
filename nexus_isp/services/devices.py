from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import BackendError, is_relationship_missing, missing_ok
from ..models import utcnow_naive

log = logging.getLogger("nexus.services")

DEVICES = "network_devices"
INTERFACES = "network_interfaces"


def _interface_rows(device_id: str, interfaces: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "device_id": device_id,
            "name": intf.get("name") or "eth",
            "ip_address": intf.get("ip_address"),
            "mac_address": intf.get("mac_address"),
            "status": intf.get("status") or "up",
            "type": intf.get("type") or "ethernet",
        }
        for intf in interfaces
    ]


@missing_ok(list)
def fetch_devices(backend) -> List[Dict[str, Any]]:
    try:
        return backend.select(DEVICES, order_by="name", embed="interfaces")
    except BackendError as e:
        if not is_relationship_missing(e):
            raise
        log.warning("Interface relationship missing, fetching devices without interfaces.")
        return backend.select(DEVICES, order_by="name")


def create_device(backend, device: Dict[str, Any]) -> Dict[str, Any]:
    """
    Device row first, then its interfaces. Interface failures are logged;
    the device stays created.
    """
    payload = dict(device)
    interfaces: Optional[List[Dict[str, Any]]] = payload.pop("interfaces", None)
    payload["last_check"] = utcnow_naive()

    created = backend.insert(DEVICES, payload, single=True)

    saved: List[Dict[str, Any]] = []
    if interfaces:
        try:
            saved = backend.insert(INTERFACES, _interface_rows(created["id"], interfaces))
        except BackendError:
            log.exception("Error saving interfaces | device_id=%s", created["id"])

    return {**created, "interfaces": saved}


def update_device(backend, device_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bumps last_check. When `interfaces` is given the set is replaced
    (delete all for the device, insert the new list).
    """
    patch = dict(updates)
    interfaces: Optional[List[Dict[str, Any]]] = patch.pop("interfaces", None)
    patch["last_check"] = utcnow_naive()

    updated = backend.update(DEVICES, {"id": device_id}, patch, single=True)

    if interfaces is None:
        return updated

    saved: List[Dict[str, Any]] = []
    backend.delete(INTERFACES, {"device_id": device_id})
    if interfaces:
        saved = backend.insert(INTERFACES, _interface_rows(device_id, interfaces))
    return {**updated, "interfaces": saved}


def delete_device(backend, device_id: str) -> None:
    backend.delete(DEVICES, {"id": device_id})
