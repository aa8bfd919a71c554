"""Tests for usage recording and once-per-crossing low-stock alerts."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from _pytest.monkeypatch import MonkeyPatch

from buildledger.application.procurement import PurchaseRequest, record_purchase, remove_purchase
from buildledger.application.usage import UsageRecorder, UsageRecordRequest, edit_usage, remove_usage
from buildledger.domain import AlertKind, LineItem, ReferentialError, UsageRecord, ValidationError
from buildledger.ledger_access import InMemoryLedgerStore, JsonLedgerStore, LedgerStore, add_line_item, json_store
from buildledger.runtime import AlertSettings, Settings

ALERTS_ON = Settings(alerts=AlertSettings(enabled=True, threshold_percent=20.0))


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, AlertKind, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def emit(self, item_id: str, kind: AlertKind, payload: dict[str, Any]) -> None:
        with self._lock:
            self.events.append((item_id, kind, payload))


class BrokenSink:
    def emit(self, item_id: str, kind: AlertKind, payload: dict[str, Any]) -> None:
        raise ConnectionError("webhook unreachable")


def _add_item(store: LedgerStore, item_id: str = "cement", estimated_quantity: float = 50) -> LineItem:
    return add_line_item(
        store,
        LineItem(
            id=item_id,
            project_id="p1",
            name="Cement",
            unit="bags",
            estimated_quantity=estimated_quantity,
            estimated_unit_price=12.0,
        ),
    )


def _buy(store: LedgerStore, quantity: float, item_id: str = "cement") -> None:
    record_purchase(
        store,
        PurchaseRequest(item_id=item_id, quantity=quantity, unit_price=12.0, supplier_ref="Halsteds"),
    )


def _use(recorder: UsageRecorder, quantity: float, item_id: str = "cement") -> Any:
    return recorder.record_usage(
        UsageRecordRequest(item_id=item_id, quantity_used=quantity, used_at=datetime(2025, 4, 1))
    )


def test_alert_fires_once_per_downward_crossing() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    _buy(store, 50)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)

    first = _use(recorder, 30)
    second = _use(recorder, 12.5)
    third = _use(recorder, 2.5)

    assert first.view.remaining_percent == pytest.approx(40.0)
    assert first.alert is None
    assert second.previous_remaining_percent == pytest.approx(40.0)
    assert second.alert is not None
    assert second.alert_delivered is True
    assert third.alert is None

    assert len(sink.events) == 1
    item_id, kind, payload = sink.events[0]
    assert item_id == "cement"
    assert kind is AlertKind.LOW_STOCK
    assert payload["remaining_percent"] == pytest.approx(15.0)
    assert store.load_alert_marker("cement") == pytest.approx(10.0)


def test_first_usage_compares_against_pre_event_stock() -> None:
    store = InMemoryLedgerStore()
    _add_item(store, estimated_quantity=100)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)

    result = _use(recorder, 85)

    assert result.previous_remaining_percent == pytest.approx(100.0)
    assert result.view.remaining_percent == pytest.approx(15.0)
    assert len(sink.events) == 1


def test_disabled_alerts_still_track_the_marker() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=Settings(), sink=sink)

    result = _use(recorder, 45)

    assert result.alert is None
    assert sink.events == []
    assert store.load_alert_marker("cement") == pytest.approx(10.0)


def test_project_threshold_override() -> None:
    settings = Settings(
        alerts=AlertSettings(enabled=True, threshold_percent=20.0),
        project_alerts={"p1": AlertSettings(enabled=True, threshold_percent=50.0)},
    )
    store = InMemoryLedgerStore()
    _add_item(store)
    sink = RecordingSink()

    result = _use(UsageRecorder(store, settings=settings, sink=sink), 30)

    assert result.view.remaining_percent == pytest.approx(40.0)
    assert result.alert is not None
    assert result.alert.threshold_percent == 50.0


def test_failed_delivery_keeps_the_usage_record() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=BrokenSink())

    result = _use(recorder, 45)

    assert result.alert is not None
    assert result.alert_delivered is False
    assert store.get_usage(result.record.id) is not None
    assert store.load_alert_marker("cement") == pytest.approx(10.0)


def test_rejected_usage_leaves_marker_untouched() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    store.save_alert_marker("cement", 80.0)
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=RecordingSink())

    with pytest.raises(ValidationError):
        _use(recorder, -3)
    with pytest.raises(ReferentialError):
        _use(recorder, 3, item_id="missing")

    assert store.load_alert_marker("cement") == 80.0
    assert store.load_usage("p1") == []


def test_concurrent_usage_fires_exactly_once() -> None:
    store = InMemoryLedgerStore()
    _add_item(store, estimated_quantity=20)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)
    start = threading.Barrier(20)

    def worker(_: int) -> None:
        start.wait()
        _use(recorder, 1)

    with ThreadPoolExecutor(max_workers=20) as pool:
        list(pool.map(worker, range(20)))

    assert len(store.load_usage("p1")) == 20
    assert len(sink.events) == 1
    assert store.load_alert_marker("cement") == 0.0


def test_marker_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "ledger.json"
    store = JsonLedgerStore(path)
    _add_item(store)
    _buy(store, 50)
    first_sink = RecordingSink()
    _use(UsageRecorder(store, settings=ALERTS_ON, sink=first_sink), 30)
    assert first_sink.events == []

    second_sink = RecordingSink()
    result = _use(UsageRecorder(JsonLedgerStore(path), settings=ALERTS_ON, sink=second_sink), 12.5)
    assert result.previous_remaining_percent == pytest.approx(40.0)
    assert len(second_sink.events) == 1

    third_sink = RecordingSink()
    _use(UsageRecorder(JsonLedgerStore(path), settings=ALERTS_ON, sink=third_sink), 2.5)
    assert third_sink.events == []


def test_restock_rearms_the_alert() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    _buy(store, 50)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)

    _use(recorder, 45)
    assert len(sink.events) == 1

    _buy(store, 50)
    assert store.load_alert_marker("cement") == pytest.approx(55.0)

    _use(recorder, 40)
    assert len(sink.events) == 2


def test_purchase_delete_reseeds_marker_without_alerting() -> None:
    store = InMemoryLedgerStore()
    _add_item(store, estimated_quantity=100)
    _buy(store, 50)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)
    _use(recorder, 20)

    purchase = store.load_purchases("p1")[0]
    remove_purchase(store, purchase.id)

    # Back to burning down against the estimate of 100.
    assert store.load_alert_marker("cement") == pytest.approx(80.0)
    assert sink.events == []


def test_usage_corrections_reseed_marker() -> None:
    store = InMemoryLedgerStore()
    _add_item(store)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)
    result = _use(recorder, 45)
    assert len(sink.events) == 1

    edit_usage(store, result.record.id, quantity_used=5)
    assert store.load_alert_marker("cement") == pytest.approx(90.0)

    remove_usage(store, result.record.id)
    assert store.load_alert_marker("cement") == pytest.approx(100.0)
    assert len(sink.events) == 1

    with pytest.raises(ReferentialError):
        edit_usage(store, "missing", quantity_used=1)


class _PausingStore(InMemoryLedgerStore):
    """Runs a callback right after the first usage row is written."""

    def __init__(self) -> None:
        super().__init__()
        self.after_first_usage: Any = None

    def insert_usage(self, record: UsageRecord) -> None:
        super().insert_usage(record)
        callback, self.after_first_usage = self.after_first_usage, None
        if callback is not None:
            callback()


def test_purchase_waits_for_in_flight_usage_on_same_item() -> None:
    store = _PausingStore()
    _add_item(store)
    _buy(store, 50)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)
    buyer = threading.Thread(target=_buy, args=(store, 50), daemon=True)

    def start_restock() -> None:
        buyer.start()
        buyer.join(timeout=0.2)
        # The restock is held back until the usage event has saved its marker.
        assert buyer.is_alive()
        assert len(store.load_purchases("p1")) == 1

    store.after_first_usage = start_restock
    result = _use(recorder, 45)
    buyer.join(timeout=5)

    assert not buyer.is_alive()
    assert result.view.remaining_percent == pytest.approx(10.0)
    assert len(sink.events) == 1
    assert len(store.load_purchases("p1")) == 2
    # Marker reflects the restock (55 of 100 left), not the usage event's 10%.
    assert store.load_alert_marker("cement") == pytest.approx(55.0)


def _fail_dump(*args: Any, **kwargs: Any) -> None:
    raise OSError("disk full")


def test_failed_usage_write_keeps_ledger_and_marker(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    store = JsonLedgerStore(tmp_path / "ledger.json")
    _add_item(store)
    _buy(store, 50)
    sink = RecordingSink()
    recorder = UsageRecorder(store, settings=ALERTS_ON, sink=sink)

    with monkeypatch.context() as m:
        m.setattr(json_store.json, "dump", _fail_dump)
        with pytest.raises(OSError):
            _use(recorder, 45)

    assert store.load_usage("p1") == []
    assert store.load_alert_marker("cement") == pytest.approx(100.0)
    assert sink.events == []

    _use(recorder, 45)
    assert len(sink.events) == 1
    assert JsonLedgerStore(tmp_path / "ledger.json").load_alert_marker("cement") == pytest.approx(10.0)
