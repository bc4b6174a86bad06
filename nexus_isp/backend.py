from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .errors import (
    NO_SINGLE_ROW,
    RELATIONSHIP_NOT_FOUND,
    TABLE_NOT_IN_SCHEMA,
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNKNOWN_PAYLOAD_COLUMN,
    BackendError,
    is_table_missing,
)
from .models import new_id
from .realtime import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed, Handler, Subscription

log = logging.getLogger("nexus.backend")

Row = Dict[str, Any]
Embed = Union[str, Sequence[str], None]


# =========================================================
# Declared relationships ("schema cache")
# =========================================================
@dataclass(frozen=True)
class Relation:
    target: str
    column: str
    # many=False: base.<column> -> target.id  (e.g. ticket.customer)
    # many=True:  target.<column> -> base.id  (e.g. device.interfaces)
    many: bool = False


RELATIONSHIPS: Dict[str, Dict[str, Relation]] = {
    "tickets": {"customer": Relation("customers", "customer_id")},
    "invoices": {"customer": Relation("customers", "customer_id")},
    "network_devices": {"interfaces": Relation("network_interfaces", "device_id", many=True)},
}


def _as_tuple(embed: Embed) -> tuple:
    if not embed:
        return ()
    if isinstance(embed, str):
        return (embed,)
    return tuple(embed)


class SqlBackend:
    """
    Table-level resource gateway over the Flask-SQLAlchemy session.

    Rows go in and come out as plain dicts. Failures surface as BackendError
    with the hosted backend's error codes so callers can tell
    "table/relationship not configured" apart from real failures.
    Successful writes are published on the change feed after commit.
    """

    def __init__(self, db, feed: Optional[ChangeFeed] = None, relationships: Optional[Dict[str, Dict[str, Relation]]] = None):
        self.db = db
        self.feed = feed or ChangeFeed()
        self.relationships = RELATIONSHIPS if relationships is None else relationships

    @property
    def session(self):
        return self.db.session

    # -----------------------
    # Schema helpers
    # -----------------------
    def _table(self, name: str) -> sa.Table:
        table = self.db.metadata.tables.get(name)
        if table is None:
            raise BackendError(
                f"Could not find the table 'public.{name}' in the schema cache",
                code=TABLE_NOT_IN_SCHEMA,
            )
        return table

    def _column(self, table: sa.Table, name: str, payload: bool = False) -> sa.Column:
        if name not in table.c:
            if payload:
                raise BackendError(
                    f"Could not find the '{name}' column of '{table.name}' in the schema cache",
                    code=UNKNOWN_PAYLOAD_COLUMN,
                )
            raise BackendError(f"column {table.name}.{name} does not exist", code=UNDEFINED_COLUMN)
        return table.c[name]

    def _payload(self, table: sa.Table, row: Row) -> Row:
        """Validates payload columns; ISO strings become datetimes for DateTime columns."""
        out: Row = {}
        for key, value in row.items():
            col = self._column(table, key, payload=True)
            if isinstance(value, str) and isinstance(col.type, sa.DateTime):
                try:
                    value = datetime.fromisoformat(value.replace("Z", "+00:00"))
                except ValueError as e:
                    raise BackendError(f"invalid input syntax for type timestamp: \"{value}\"", code="22007") from e
                if value.tzinfo is not None:
                    value = value.astimezone(timezone.utc).replace(tzinfo=None)
            out[key] = value
        return out

    def _pk(self, table: sa.Table) -> sa.Column:
        return list(table.primary_key.columns)[0]

    def _where(self, table: sa.Table, filters: Optional[Dict[str, Any]]) -> list:
        clauses = []
        for key, value in (filters or {}).items():
            col = self._column(table, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            elif value is None:
                clauses.append(col.is_(None))
            else:
                clauses.append(col == value)
        return clauses

    def _translate(self, exc: SQLAlchemyError, table_name: str) -> BackendError:
        orig = getattr(exc, "orig", None)
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        message = str(orig) if orig is not None else str(exc)
        lowered = message.lower()

        if not code:
            # SQLite has no SQLSTATE; map the two messages we care about
            if "no such table" in lowered:
                code = UNDEFINED_TABLE
            elif "no such column" in lowered:
                code = UNDEFINED_COLUMN

        return BackendError(message, code=code, details=f"table={table_name}")

    def _run(self, table_name: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise self._translate(e, table_name) from e

    def _rows(self, stmt) -> List[Row]:
        return [dict(r) for r in self.session.execute(stmt).mappings().all()]

    def _fetch_by_keys(self, table: sa.Table, keys: Sequence[Any]) -> List[Row]:
        if not keys:
            return []
        pk = self._pk(table)
        by_key = {r[pk.name]: r for r in self._rows(sa.select(table).where(pk.in_(list(keys))))}
        return [by_key[k] for k in keys if k in by_key]

    def _shape(self, rows: List[Row], single: bool):
        if not single:
            return rows
        if len(rows) != 1:
            raise BackendError(
                "JSON object requested, multiple (or no) rows returned",
                code=NO_SINGLE_ROW,
                details=f"The result contains {len(rows)} rows",
            )
        return rows[0]

    # -----------------------
    # Embedding (joins)
    # -----------------------
    def _relation(self, table: str, name: str) -> Relation:
        rel = self.relationships.get(table, {}).get(name)
        if rel is None:
            raise BackendError(
                f"Could not find a relationship between '{table}' and '{name}' in the schema cache",
                code=RELATIONSHIP_NOT_FOUND,
            )
        return rel

    def _check_embeds(self, table: str, embed: tuple) -> None:
        """Fail before any write when a requested join cannot be resolved."""
        for name in embed:
            rel = self._relation(table, name)
            exists = rel.target in self.db.metadata.tables and self._run(
                table, lambda: sa.inspect(self.session.connection()).has_table(rel.target)
            )
            if not exists:
                raise BackendError(
                    f"Could not find a relationship between '{table}' and '{rel.target}' in the schema cache",
                    code=RELATIONSHIP_NOT_FOUND,
                )

    def _embed(self, table: str, rows: List[Row], embed: tuple) -> List[Row]:
        for name in embed:
            rel = self._relation(table, name)
            target = self._table(rel.target)
            try:
                if rel.many:
                    ids = [r["id"] for r in rows]
                    related = self._run(
                        rel.target,
                        lambda: self._rows(sa.select(target).where(target.c[rel.column].in_(ids))),
                    ) if ids else []
                    groups: Dict[Any, List[Row]] = {}
                    for item in related:
                        groups.setdefault(item[rel.column], []).append(item)
                    for r in rows:
                        r[name] = groups.get(r["id"], [])
                else:
                    keys = sorted({r.get(rel.column) for r in rows if r.get(rel.column)})
                    related = self._run(
                        rel.target,
                        lambda: self._rows(sa.select(target).where(target.c.id.in_(keys))),
                    ) if keys else []
                    by_id = {item["id"]: item for item in related}
                    for r in rows:
                        r[name] = by_id.get(r.get(rel.column))
            except BackendError as e:
                if is_table_missing(e):
                    raise BackendError(
                        f"Could not find a relationship between '{table}' and '{rel.target}' in the schema cache",
                        code=RELATIONSHIP_NOT_FOUND,
                    ) from e
                raise
        return rows

    # -----------------------
    # Resource protocol
    # -----------------------
    def select(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        embed: Embed = None,
        single: bool = False,
    ):
        t = self._table(table)
        embed = _as_tuple(embed)
        self._check_embeds(table, embed)

        stmt = sa.select(t).where(*self._where(t, filters))
        if order_by:
            col = self._column(t, order_by)
            stmt = stmt.order_by(col.desc() if desc else col.asc())
        if limit is not None:
            stmt = stmt.limit(int(limit))

        rows = self._run(table, lambda: self._rows(stmt))
        if embed:
            rows = self._embed(table, rows, embed)
        return self._shape(rows, single)

    def insert(self, table: str, rows: Union[Row, Iterable[Row]], *, embed: Embed = None, single: bool = False):
        t = self._table(table)
        embed = _as_tuple(embed)
        self._check_embeds(table, embed)

        if isinstance(rows, dict):
            rows = [rows]
        pk = self._pk(t)
        prepared: List[Row] = []
        for row in rows:
            item = self._payload(t, row)
            if item.get(pk.name) is None and isinstance(pk.type, sa.String):
                item[pk.name] = new_id()
            prepared.append(item)

        def _write():
            for item in prepared:
                self.session.execute(sa.insert(t).values(**item))
            self.session.commit()

        if prepared:
            self._run(table, _write)

        stored = self._run(table, lambda: self._fetch_by_keys(t, [p[pk.name] for p in prepared]))
        for row in stored:
            self.feed.publish(ChangeEvent(table, INSERT, new=dict(row)))

        if embed:
            stored = self._embed(table, stored, embed)
        return self._shape(stored, single)

    def update(
        self,
        table: str,
        filters: Dict[str, Any],
        patch: Row,
        *,
        embed: Embed = None,
        single: bool = False,
    ):
        t = self._table(table)
        embed = _as_tuple(embed)
        self._check_embeds(table, embed)
        if not filters:
            raise BackendError("UPDATE requires a WHERE clause", code="21000")
        patch = self._payload(t, patch)

        pk = self._pk(t)
        clauses = self._where(t, filters)

        def _write():
            before = self._rows(sa.select(t).where(*clauses))
            if single and len(before) != 1:
                self.session.rollback()
                return before, False
            keys = [r[pk.name] for r in before]
            if keys and patch:
                self.session.execute(sa.update(t).where(pk.in_(keys)).values(**patch))
            self.session.commit()
            return before, True

        before, applied = self._run(table, _write)
        if not applied:
            return self._shape(before, True)  # raises PGRST116

        after = self._run(table, lambda: self._fetch_by_keys(t, [r[pk.name] for r in before]))
        old_by_key = {r[pk.name]: r for r in before}
        for row in after:
            self.feed.publish(ChangeEvent(table, UPDATE, new=dict(row), old=old_by_key.get(row[pk.name])))

        if embed:
            after = self._embed(table, after, embed)
        return self._shape(after, single)

    def delete(self, table: str, filters: Dict[str, Any]) -> None:
        t = self._table(table)
        if not filters:
            raise BackendError("DELETE requires a WHERE clause", code="21000")
        clauses = self._where(t, filters)

        def _write():
            before = self._rows(sa.select(t).where(*clauses))
            self.session.execute(sa.delete(t).where(*clauses))
            self.session.commit()
            return before

        removed = self._run(table, _write)
        for row in removed:
            self.feed.publish(ChangeEvent(table, DELETE, old=row))

    def upsert(
        self,
        table: str,
        rows: Union[Row, Iterable[Row]],
        *,
        on_conflict: Optional[str] = None,
        ignore_duplicates: bool = False,
    ) -> List[Row]:
        t = self._table(table)
        if isinstance(rows, dict):
            rows = [rows]
        pk = self._pk(t)
        conflict = self._column(t, on_conflict) if on_conflict else pk
        rows = [self._payload(t, row) for row in rows]

        def _write():
            written = []
            for row in rows:
                item = dict(row)
                existing = self._rows(sa.select(t).where(conflict == item.get(conflict.name)))
                if existing:
                    if ignore_duplicates:
                        continue
                    patch = {k: v for k, v in item.items() if k != pk.name}
                    self.session.execute(sa.update(t).where(conflict == item[conflict.name]).values(**patch))
                    written.append((UPDATE, existing[0][pk.name], existing[0]))
                else:
                    if item.get(pk.name) is None and isinstance(pk.type, sa.String):
                        item[pk.name] = new_id()
                    self.session.execute(sa.insert(t).values(**item))
                    written.append((INSERT, item[pk.name], None))
            self.session.commit()
            return written

        events = self._run(table, _write)
        stored = self._run(table, lambda: self._fetch_by_keys(t, [key for _, key, _ in events]))
        by_key = {r[pk.name]: r for r in stored}
        for kind, key, old in events:
            if key in by_key:
                self.feed.publish(ChangeEvent(table, kind, new=dict(by_key[key]), old=old))
        return stored

    def subscribe(self, table: str, handler: Handler, events: Optional[Iterable[str]] = None) -> Subscription:
        return self.feed.subscribe(table, handler, events)


def get_backend() -> SqlBackend:
    """The app's backend (set up by create_app)."""
    return current_app.extensions["nexus_backend"]
