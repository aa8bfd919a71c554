"""Storage contract for the catalog, both ledgers and alert markers.

Stores are dumb: they hold records and answer lookups. Validation and
referential checks happen one level up, in ``ledger_access.api``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord


class LedgerStore(Protocol):
    """Persistence collaborator consumed by the application layer."""

    def load_line_items(self, project_id: str) -> list[LineItem]: ...

    def load_purchases(self, project_id: str) -> list[PurchaseRecord]: ...

    def load_usage(self, project_id: str) -> list[UsageRecord]: ...

    def get_line_item(self, item_id: str) -> LineItem | None: ...

    def get_purchase(self, record_id: str) -> PurchaseRecord | None: ...

    def get_usage(self, record_id: str) -> UsageRecord | None: ...

    def has_ledger_entries(self, item_id: str) -> bool: ...

    def insert_line_item(self, item: LineItem) -> None: ...

    def remove_line_item(self, item_id: str) -> None: ...

    def insert_purchase(self, record: PurchaseRecord) -> None: ...

    def replace_purchase(self, record: PurchaseRecord) -> None: ...

    def remove_purchase(self, record_id: str) -> None: ...

    def insert_usage(self, record: UsageRecord) -> None: ...

    def replace_usage(self, record: UsageRecord) -> None: ...

    def remove_usage(self, record_id: str) -> None: ...

    def load_alert_marker(self, item_id: str) -> float | None: ...

    def save_alert_marker(self, item_id: str, remaining_percent: float | None) -> None: ...


class InMemoryLedgerStore:
    """Dict-backed store. Insertion order is preserved for stable listings."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: dict[str, LineItem] = {}
        self._purchases: dict[str, PurchaseRecord] = {}
        self._usage: dict[str, UsageRecord] = {}
        self._markers: dict[str, float] = {}

    def _project_item_ids(self, project_id: str) -> set[str]:
        return {item.id for item in self._items.values() if item.project_id == project_id}

    # --- Reads ---
    def load_line_items(self, project_id: str) -> list[LineItem]:
        with self._lock:
            return [item for item in self._items.values() if item.project_id == project_id]

    def load_purchases(self, project_id: str) -> list[PurchaseRecord]:
        with self._lock:
            item_ids = self._project_item_ids(project_id)
            return [p for p in self._purchases.values() if p.item_id in item_ids]

    def load_usage(self, project_id: str) -> list[UsageRecord]:
        with self._lock:
            item_ids = self._project_item_ids(project_id)
            return [u for u in self._usage.values() if u.item_id in item_ids]

    def get_line_item(self, item_id: str) -> LineItem | None:
        with self._lock:
            return self._items.get(item_id)

    def get_purchase(self, record_id: str) -> PurchaseRecord | None:
        with self._lock:
            return self._purchases.get(record_id)

    def get_usage(self, record_id: str) -> UsageRecord | None:
        with self._lock:
            return self._usage.get(record_id)

    def has_ledger_entries(self, item_id: str) -> bool:
        with self._lock:
            return any(p.item_id == item_id for p in self._purchases.values()) or any(
                u.item_id == item_id for u in self._usage.values()
            )

    def load_alert_marker(self, item_id: str) -> float | None:
        with self._lock:
            return self._markers.get(item_id)

    # --- Writes ---
    @contextmanager
    def _writing(self) -> Iterator[None]:
        """Apply one write and persist it; memory is rolled back if persisting fails."""
        with self._lock:
            snapshot = (dict(self._items), dict(self._purchases), dict(self._usage), dict(self._markers))
            yield
            try:
                self._changed()
            except BaseException:
                for table, saved in zip((self._items, self._purchases, self._usage, self._markers), snapshot):
                    table.clear()
                    table.update(saved)
                raise

    def insert_line_item(self, item: LineItem) -> None:
        with self._writing():
            self._items[item.id] = item

    def remove_line_item(self, item_id: str) -> None:
        with self._writing():
            self._items.pop(item_id, None)
            self._markers.pop(item_id, None)

    def insert_purchase(self, record: PurchaseRecord) -> None:
        with self._writing():
            self._purchases[record.id] = record

    def replace_purchase(self, record: PurchaseRecord) -> None:
        self.insert_purchase(record)

    def remove_purchase(self, record_id: str) -> None:
        with self._writing():
            self._purchases.pop(record_id, None)

    def insert_usage(self, record: UsageRecord) -> None:
        with self._writing():
            self._usage[record.id] = record

    def replace_usage(self, record: UsageRecord) -> None:
        self.insert_usage(record)

    def remove_usage(self, record_id: str) -> None:
        with self._writing():
            self._usage.pop(record_id, None)

    def save_alert_marker(self, item_id: str, remaining_percent: float | None) -> None:
        with self._writing():
            if remaining_percent is None:
                self._markers.pop(item_id, None)
            else:
                self._markers[item_id] = remaining_percent

    def _changed(self) -> None:
        """Hook called after every write while the lock is held. Raising undoes the write."""

