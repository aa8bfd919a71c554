"""Tests for the buildledger command line."""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from _pytest.capture import CaptureFixture
from _pytest.monkeypatch import MonkeyPatch

from buildledger.application import procurement
from buildledger.cli import main as cli
from buildledger.domain import PurchaseRecord


def _add_cement(ledger: Path) -> None:
    exit_code = cli.main(
        [
            "--ledger",
            str(ledger),
            "add-item",
            "house-42",
            "Cement",
            "bags",
            "100",
            "10",
            "--id",
            "cement",
            "--material-key",
            "cement-42.5n",
        ]
    )
    assert exit_code == 0


def test_no_command_prints_help(capsys: CaptureFixture[str]) -> None:
    assert cli.main([]) == 1
    assert "Commands:" in capsys.readouterr().out


def test_record_purchase_handoff_builds_typed_request(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    captured_request: procurement.PurchaseRequest | None = None

    def fake_record(store: Any, request: procurement.PurchaseRequest) -> PurchaseRecord:
        nonlocal captured_request
        captured_request = request
        return PurchaseRecord(
            id="p1",
            item_id=request.item_id,
            quantity=request.quantity,
            unit_price=request.unit_price,
            purchased_at=request.purchased_at,
            supplier_ref=request.supplier_ref,
        )

    sentinel_argv = ["sentinel", "keep-this"]
    monkeypatch.setattr(sys, "argv", sentinel_argv)
    monkeypatch.setattr(procurement, "record_purchase", fake_record)

    ledger = str(tmp_path / "ledger.json")
    argv = ["--ledger", ledger, "record-purchase", "cement", "60", "11.5", "Halsteds", "--date", "2025-03-01"]
    exit_code = cli.main(argv)

    assert exit_code == 0
    assert sys.argv == sentinel_argv
    assert captured_request == procurement.PurchaseRequest(
        item_id="cement",
        quantity=60.0,
        unit_price=11.5,
        supplier_ref="Halsteds",
        purchased_at=datetime(2025, 3, 1),
    )


def test_tracking_and_usage_output(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    ledger = tmp_path / "ledger.json"
    _add_cement(ledger)
    assert cli.main(["--ledger", str(ledger), "record-purchase", "cement", "60", "11", "Halsteds"]) == 0
    assert cli.main(["--ledger", str(ledger), "record-usage", "cement", "51"]) == 0
    capsys.readouterr()

    assert cli.main(["--ledger", str(ledger), "tracking", "house-42"]) == 0
    tracking_out = capsys.readouterr().out
    assert "Project house-42: 60% purchased" in tracking_out
    assert "In progress" in tracking_out

    assert cli.main(["--ledger", str(ledger), "usage", "house-42"]) == 0
    usage_out = capsys.readouterr().out
    assert "Low stock (<= 20% remaining): 1" in usage_out
    assert " LOW" in usage_out


def test_unknown_item_exits_with_error(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    exit_code = cli.main(["--ledger", str(tmp_path / "ledger.json"), "record-usage", "missing", "3"])

    assert exit_code == 1
    assert "Line item 'missing' does not exist" in capsys.readouterr().out


def test_accept_quote_prints_draft(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    ledger = tmp_path / "ledger.json"
    _add_cement(ledger)
    quote_file = tmp_path / "quote.json"
    quote_file.write_text(
        json.dumps({"quote_id": "q1", "rfq_id": "r1", "supplier_name": "Halsteds", "material_name": "Cement"}),
        encoding="utf-8",
    )
    capsys.readouterr()

    assert cli.main(["--ledger", str(ledger), "accept-quote", "house-42", str(quote_file)]) == 0
    out = capsys.readouterr().out
    assert "Draft purchase for item cement from Halsteds (matched by name)" in out

    quote_file.write_text(
        json.dumps({"quote_id": "q2", "rfq_id": "r1", "supplier_name": "Halsteds", "material_name": "Rebar"}),
        encoding="utf-8",
    )
    assert cli.main(["--ledger", str(ledger), "accept-quote", "house-42", str(quote_file)]) == 1
    assert "record the purchase manually" in capsys.readouterr().out


def test_bad_date_exits_with_error(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    ledger = tmp_path / "ledger.json"
    _add_cement(ledger)
    capsys.readouterr()

    argv = ["--ledger", str(ledger), "record-purchase", "cement", "60", "11", "Halsteds", "--date", "yesterday"]
    assert cli.main(argv) == 1
    assert "Invalid input:" in capsys.readouterr().out
    assert json.loads(ledger.read_text(encoding="utf-8"))["purchase_records"] == []


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps(["q1", "r1"]),
        json.dumps({"quote_id": "q1", "rfq_id": "r1", "supplier_name": "Halsteds", "colour": "grey"}),
    ],
)
def test_unusable_quote_file_exits_with_error(tmp_path: Path, capsys: CaptureFixture[str], content: str) -> None:
    ledger = tmp_path / "ledger.json"
    _add_cement(ledger)
    quote_file = tmp_path / "quote.json"
    quote_file.write_text(content, encoding="utf-8")
    capsys.readouterr()

    assert cli.main(["--ledger", str(ledger), "accept-quote", "house-42", str(quote_file)]) == 1
    assert "Invalid input:" in capsys.readouterr().out


def test_missing_quote_file_exits_with_error(tmp_path: Path, capsys: CaptureFixture[str]) -> None:
    quote_file = tmp_path / "absent.json"
    argv = ["--ledger", str(tmp_path / "ledger.json"), "accept-quote", "house-42", str(quote_file)]

    assert cli.main(argv) == 1
    assert f"Cannot read quote file {quote_file}" in capsys.readouterr().out


def test_serve_hands_app_to_uvicorn(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    import uvicorn

    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append({"app": app, **kwargs}))

    assert cli.main(["--ledger", str(tmp_path / "ledger.json"), "serve", "--port", "9001"]) == 0
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 9001


@pytest.mark.parametrize("status", ["pending", "over_purchased"])
def test_tracking_status_filter_accepts_known_statuses(tmp_path: Path, status: str) -> None:
    ledger = tmp_path / "ledger.json"
    _add_cement(ledger)
    assert cli.main(["--ledger", str(ledger), "tracking", "house-42", "--status", status]) == 0
