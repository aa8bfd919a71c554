"""JSON-file ledger store.

The document mirrors the hosted database tables the app already uses
(``boq_items``, ``purchase_records``, ``material_usage``) plus an
``alert_markers`` table, so alert markers survive process restarts.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord
from buildledger.ledger_access.store import InMemoryLedgerStore
from buildledger.runtime import get_logger, get_paths

logger = get_logger(__name__)


def _record_to_json(record: Any, *datetime_fields: str) -> dict[str, Any]:
    row = asdict(record)
    for name in datetime_fields:
        row[name] = row[name].isoformat()
    return row


def _purchase_from_json(row: dict[str, Any]) -> PurchaseRecord:
    return PurchaseRecord(**{**row, "purchased_at": datetime.fromisoformat(row["purchased_at"])})


def _usage_from_json(row: dict[str, Any]) -> UsageRecord:
    return UsageRecord(**{**row, "used_at": datetime.fromisoformat(row["used_at"])})


class JsonLedgerStore(InMemoryLedgerStore):
    """In-memory store that rewrites its JSON document after every write."""

    def __init__(self, path: Path | str | None = None) -> None:
        super().__init__()
        self.path = Path(path) if path is not None else get_paths().ledger_file
        self._loading = False
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        with open(self.path, encoding="utf-8") as f:
            document = json.load(f)

        self._loading = True
        try:
            for row in document.get("boq_items", []):
                self.insert_line_item(LineItem(**row))
            for row in document.get("purchase_records", []):
                self.insert_purchase(_purchase_from_json(row))
            for row in document.get("material_usage", []):
                self.insert_usage(_usage_from_json(row))
            for item_id, percent in document.get("alert_markers", {}).items():
                self.save_alert_marker(item_id, float(percent))
        finally:
            self._loading = False

        logger.debug(
            "Loaded %d item(s), %d purchase(s), %d usage record(s) from %s",
            len(self._items),
            len(self._purchases),
            len(self._usage),
            self.path,
        )

    def _document(self) -> dict[str, Any]:
        return {
            "boq_items": [asdict(item) for item in self._items.values()],
            "purchase_records": [_record_to_json(p, "purchased_at") for p in self._purchases.values()],
            "material_usage": [_record_to_json(u, "used_at") for u in self._usage.values()],
            "alert_markers": dict(self._markers),
        }

    def _changed(self) -> None:
        if self._loading:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file and swap it in so readers never see half a document.
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._document(), f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
