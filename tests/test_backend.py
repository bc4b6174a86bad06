from datetime import datetime

import pytest

from nexus_isp.backend import SqlBackend
from nexus_isp.errors import (
    NO_SINGLE_ROW,
    RELATIONSHIP_NOT_FOUND,
    TABLE_NOT_IN_SCHEMA,
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNKNOWN_PAYLOAD_COLUMN,
    BackendError,
)
from nexus_isp.extensions import db
from nexus_isp.realtime import DELETE, INSERT, UPDATE


def test_insert_assigns_id_and_returns_stored_row(backend):
    row = backend.insert("plans", {"name": "Home 20", "price": 19.0}, single=True)

    assert len(row["id"]) == 36
    assert row["name"] == "Home 20"
    assert isinstance(row["created_at"], datetime)


def test_select_filters_order_and_limit(backend):
    backend.insert("plans", [{"name": "B", "price": 30}, {"name": "A", "price": 10}, {"name": "C", "price": 20}])

    rows = backend.select("plans", order_by="price", desc=True, limit=2)
    assert [r["name"] for r in rows] == ["B", "C"]

    only = backend.select("plans", filters={"name": ["A", "C"]}, order_by="name")
    assert [r["name"] for r in only] == ["A", "C"]


def test_single_requires_exactly_one_row(backend):
    with pytest.raises(BackendError) as exc:
        backend.select("plans", filters={"name": "ghost"}, single=True)
    assert exc.value.code == NO_SINGLE_ROW


def test_update_single_does_not_touch_rows_when_ambiguous(backend):
    backend.insert("plans", [{"name": "Dup", "price": 1}, {"name": "Dup", "price": 2}])

    with pytest.raises(BackendError) as exc:
        backend.update("plans", {"name": "Dup"}, {"price": 99}, single=True)

    assert exc.value.code == NO_SINGLE_ROW
    assert sorted(r["price"] for r in backend.select("plans")) == [1, 2]


def test_update_and_delete_require_filters(backend):
    with pytest.raises(BackendError):
        backend.update("plans", {}, {"price": 0})
    with pytest.raises(BackendError):
        backend.delete("plans", {})


def test_iso_strings_are_accepted_for_datetime_columns(backend, customer):
    inv = backend.insert(
        "invoices",
        {"customer_id": customer["id"], "invoice_number": "INV-1", "amount": 5, "due_date": "2026-12-01T00:00:00Z"},
        single=True,
    )
    assert inv["due_date"] == datetime(2026, 12, 1)

    with pytest.raises(BackendError):
        backend.update("invoices", {"id": inv["id"]}, {"due_date": "next tuesday"})


# ======================================================
# Error codes
# ======================================================
def test_unknown_table_is_not_in_schema(backend):
    with pytest.raises(BackendError) as exc:
        backend.select("inventory_items")
    assert exc.value.code == TABLE_NOT_IN_SCHEMA


def test_dropped_table_maps_to_undefined_table(backend, drop_table):
    drop_table("plans")
    with pytest.raises(BackendError) as exc:
        backend.select("plans")
    assert exc.value.code == UNDEFINED_TABLE


def test_unknown_columns(backend):
    with pytest.raises(BackendError) as exc:
        backend.select("plans", filters={"speed": 1})
    assert exc.value.code == UNDEFINED_COLUMN

    with pytest.raises(BackendError) as exc:
        backend.insert("plans", {"name": "X", "price": 1, "colour": "red"})
    assert exc.value.code == UNKNOWN_PAYLOAD_COLUMN
    assert backend.select("plans") == []


def test_undeclared_relationship(app):
    backend = SqlBackend(db, relationships={})
    with pytest.raises(BackendError) as exc:
        backend.select("tickets", embed="customer")
    assert exc.value.code == RELATIONSHIP_NOT_FOUND


def test_missing_join_target_fails_before_writing(backend, drop_table):
    drop_table("customers")

    with pytest.raises(BackendError) as exc:
        backend.insert(
            "tickets",
            {"title": "No link", "description": "x", "priority": "low", "category": "other"},
            embed="customer",
        )

    assert exc.value.code == RELATIONSHIP_NOT_FOUND
    assert backend.select("tickets") == []


# ======================================================
# Embeds
# ======================================================
def test_embed_one_and_many(backend, customer):
    ticket = backend.insert(
        "tickets",
        {"title": "Slow", "description": "x", "priority": "low", "category": "other", "customer_id": customer["id"]},
        embed="customer",
        single=True,
    )
    assert ticket["customer"]["name"] == "Alice Smith"

    device = backend.insert("network_devices", {"name": "olt-1", "ip_address": "10.0.0.2"}, single=True)
    backend.insert("network_interfaces", [{"device_id": device["id"], "name": "pon1"}, {"device_id": device["id"], "name": "pon2"}])

    fetched = backend.select("network_devices", embed="interfaces", single=True)
    assert sorted(i["name"] for i in fetched["interfaces"]) == ["pon1", "pon2"]


# ======================================================
# Change feed
# ======================================================
def test_writes_publish_change_events(backend):
    seen = []
    backend.subscribe("plans", seen.append)

    plan = backend.insert("plans", {"name": "P", "price": 1}, single=True)
    backend.update("plans", {"id": plan["id"]}, {"price": 2})
    backend.delete("plans", {"id": plan["id"]})

    assert [e.type for e in seen] == [INSERT, UPDATE, DELETE]
    assert seen[1].old["price"] == 1 and seen[1].new["price"] == 2
    assert seen[2].row_id == plan["id"]


def test_failed_write_publishes_nothing(backend):
    seen = []
    backend.subscribe("plans", seen.append)

    with pytest.raises(BackendError):
        backend.insert("plans", {"price": 1})  # name is NOT NULL

    assert seen == []


def test_upsert_inserts_then_updates_or_skips(backend):
    first = backend.upsert("system_settings", {"key": "currency", "value": "USD"}, on_conflict="key")
    assert first[0]["value"] == "USD"

    backend.upsert("system_settings", {"key": "currency", "value": "IDR"}, on_conflict="key")
    assert backend.select("system_settings", single=True)["value"] == "IDR"

    skipped = backend.upsert(
        "system_settings", {"key": "currency", "value": "EUR"}, on_conflict="key", ignore_duplicates=True
    )
    assert skipped == []
    assert backend.select("system_settings", single=True)["value"] == "IDR"
