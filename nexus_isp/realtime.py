from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

log = logging.getLogger("nexus.realtime")

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS = frozenset({INSERT, UPDATE, DELETE})


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: str  # INSERT / UPDATE / DELETE
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def row_id(self) -> Any:
        row = self.new if self.new is not None else (self.old or {})
        return row.get("id")


Handler = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, handler: Handler, events: frozenset):
        self.feed = feed
        self.table = table
        self.handler = handler
        self.events = events
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.feed._remove(self)
            self.active = False

    def __repr__(self) -> str:
        return f"<Subscription table={self.table} events={sorted(self.events)} active={self.active}>"


class ChangeFeed:
    """
    In-process change notifications, one channel per table.

    Writers publish after commit; subscribers get events on the publishing
    thread. A failing handler is logged and skipped, never raised to the writer.
    """

    def __init__(self) -> None:
        self._subs: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, handler: Handler, events: Optional[Iterable[str]] = None) -> Subscription:
        wanted = frozenset(e.upper() for e in events) if events else ALL_EVENTS
        unknown = wanted - ALL_EVENTS
        if unknown:
            raise ValueError(f"Unknown event type(s): {', '.join(sorted(unknown))}")

        sub = Subscription(self, table, handler, wanted)
        with self._lock:
            self._subs[table].append(sub)
        log.debug("subscribed table=%s events=%s", table, sorted(wanted))
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [s for s in self._subs.get(event.table, []) if event.type in s.events]

        for sub in targets:
            try:
                sub.handler(event)
            except Exception:
                log.exception("change handler failed | table=%s type=%s id=%s", event.table, event.type, event.row_id)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subs.get(table, []))
