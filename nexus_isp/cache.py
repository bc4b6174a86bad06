from __future__ import annotations

from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

Row = Dict[str, Any]


class KeyedCollection:
    """
    Client-side copy of a table, keyed by id.

    Optimistic writes and change-feed events both go through merge():
    insert if absent, overwrite if present. Arrival order decides the final
    value (last write wins); there is no version field to detect conflicts.
    """

    def __init__(
        self,
        rows: Iterable[Row] = (),
        *,
        sort_key: Optional[Callable[[Row], Any]] = None,
        reverse: bool = False,
        key: str = "id",
    ):
        self._items: "OrderedDict[Any, Row]" = OrderedDict()
        self.sort_key = sort_key
        self.reverse = reverse
        self.key = key
        self.replace(rows)

    def replace(self, rows: Iterable[Row]) -> None:
        self._items.clear()
        for row in rows:
            self._items[row[self.key]] = dict(row)

    def merge(self, row: Row, *, at_head: bool = False, partial: bool = False) -> bool:
        """Returns True when the row was new."""
        row_id = row[self.key]
        if row_id in self._items:
            if partial:
                self._items[row_id] = {**self._items[row_id], **row}
            else:
                self._items[row_id] = dict(row)
            return False

        self._items[row_id] = dict(row)
        if at_head:
            self._items.move_to_end(row_id, last=False)
        return True

    def remove(self, row_id: Any) -> Optional[Row]:
        return self._items.pop(row_id, None)

    def get(self, row_id: Any) -> Optional[Row]:
        return self._items.get(row_id)

    def rows(self) -> List[Row]:
        items = list(self._items.values())
        if self.sort_key is not None:
            items.sort(key=self.sort_key, reverse=self.reverse)
        return items

    def __contains__(self, row_id: Any) -> bool:
        return row_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows())
