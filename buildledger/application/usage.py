"""Usage recording with edge-triggered low-stock alerts.

Recording usage is the one read-compute-compare-write sequence that must not
interleave for the same item: two writers reading the same stale "previous"
percent would either both fire the alert or neither would. Each item gets its
own lock; different items proceed in parallel. Purchase writes and usage
corrections take the same lock so they cannot land between the pre- and
post-event views of a usage event.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

from buildledger.domain.alerts import LowStockAlert, build_low_stock_alert, detect_crossing
from buildledger.domain.errors import ReferentialError
from buildledger.domain.models import LineItem, UsageRecord
from buildledger.domain.reconcile import ReconciledItemView, reconcile
from buildledger.ledger_access import LedgerStore, add_usage, delete_usage, update_usage
from buildledger.runtime import AlertSink, Settings, create_alert_sink, get_logger, get_settings

logger = get_logger(__name__)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def item_lock(item_id: str) -> Iterator[None]:
    """Serialize marker updates for one item across threads in this process."""
    with _locks_guard:
        lock = _locks.setdefault(item_id, threading.Lock())
    with lock:
        yield


def _require_item(store: LedgerStore, item_id: str) -> LineItem:
    item = store.get_line_item(item_id)
    if item is None:
        raise ReferentialError(f"Line item {item_id!r} does not exist")
    return item


def _require_usage(store: LedgerStore, record_id: str) -> UsageRecord:
    record = store.get_usage(record_id)
    if record is None:
        raise ReferentialError(f"Usage record {record_id!r} does not exist")
    return record


def reconcile_item(store: LedgerStore, item: LineItem) -> ReconciledItemView:
    """Fresh view of one item computed from the current ledgers."""
    return reconcile(item, store.load_purchases(item.project_id), store.load_usage(item.project_id))


def reseed_alert_marker(store: LedgerStore, item_id: str) -> float | None:
    """Re-seed the stored remaining percent from the ledgers without alerting.

    Called after purchases and usage corrections so the next usage event
    compares against the current stock, not a value from before the change.
    The caller must hold ``item_lock(item_id)`` across the ledger write and
    this call.
    """
    item = store.get_line_item(item_id)
    if item is None:
        return None
    current = reconcile_item(store, item).remaining_percent
    store.save_alert_marker(item_id, current)
    logger.debug("Alert marker for %s re-seeded to %s", item_id, current)
    return current


@dataclass(frozen=True)
class UsageRecordRequest:
    """Inputs for recording material usage against a line item."""

    item_id: str
    quantity_used: float
    used_at: datetime | None = None
    notes: str | None = None
    record_id: str | None = None


@dataclass(frozen=True)
class UsageRecordResult:
    """Outcome of one usage write."""

    record: UsageRecord
    view: ReconciledItemView
    previous_remaining_percent: float | None
    alert: LowStockAlert | None = None
    alert_delivered: bool = False


class UsageRecorder:
    """Records usage and fires a low-stock alert once per downward crossing."""

    def __init__(
        self,
        store: LedgerStore,
        *,
        settings: Settings | None = None,
        sink: AlertSink | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.sink = sink or create_alert_sink(self.settings.notifications)

    def record_usage(self, request: UsageRecordRequest) -> UsageRecordResult:
        item = _require_item(self.store, request.item_id)
        alert_settings = self.settings.alerts_for(item.project_id)
        threshold = alert_settings.threshold_percent

        record = UsageRecord(
            id=request.record_id or uuid.uuid4().hex,
            item_id=item.id,
            quantity_used=request.quantity_used,
            used_at=request.used_at or datetime.now(timezone.utc),
            notes=request.notes,
        )

        with item_lock(item.id):
            previous = self.store.load_alert_marker(item.id)
            if previous is None:
                # First usage since start (or since the marker was cleared): seed from
                # the pre-event ledgers, never from 0.
                previous = reconcile_item(self.store, item).remaining_percent

            add_usage(self.store, record)

            after = reconcile_item(self.store, item)
            crossed = alert_settings.enabled and detect_crossing(previous, after.remaining_percent, threshold)
            self.store.save_alert_marker(item.id, after.remaining_percent)

        alert = None
        delivered = False
        if crossed:
            alert = build_low_stock_alert(after, threshold)
            logger.info("Low stock: %s", alert.message)
            delivered = self._emit(alert)

        return UsageRecordResult(
            record=record,
            view=after,
            previous_remaining_percent=previous,
            alert=alert,
            alert_delivered=delivered,
        )

    def _emit(self, alert: LowStockAlert) -> bool:
        try:
            self.sink.emit(alert.item_id, alert.kind, alert.payload())
        except Exception as e:
            # The usage write already happened and stays.
            logger.warning("Failed to deliver %s alert for %s: %s", alert.kind.value, alert.item_id, e)
            return False
        return True


def edit_usage(
    store: LedgerStore,
    record_id: str,
    *,
    quantity_used: float | None = None,
    used_at: datetime | None = None,
    notes: str | None = None,
) -> UsageRecord:
    """Correct a usage record in place and re-seed the item's alert marker."""
    existing = _require_usage(store, record_id)

    changes: dict[str, object] = {}
    if quantity_used is not None:
        changes["quantity_used"] = quantity_used
    if used_at is not None:
        changes["used_at"] = used_at
    if notes is not None:
        changes["notes"] = notes

    with item_lock(existing.item_id):
        current = _require_usage(store, record_id)
        updated = update_usage(store, dataclasses.replace(current, **changes))
        reseed_alert_marker(store, updated.item_id)
    return updated


def remove_usage(store: LedgerStore, record_id: str) -> UsageRecord:
    existing = _require_usage(store, record_id)
    with item_lock(existing.item_id):
        removed = delete_usage(store, record_id)
        reseed_alert_marker(store, removed.item_id)
    return removed
