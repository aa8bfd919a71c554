"""Edge-triggered low-stock detection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from buildledger.domain.reconcile import ReconciledItemView


class AlertKind(str, Enum):
    LOW_STOCK = "low_stock"


def remaining_percent(available_qty: float, used_qty: float) -> float | None:
    """Remaining stock as a percent of what is available; None when nothing is."""
    if available_qty <= 0:
        return None
    return max(available_qty - used_qty, 0.0) / available_qty * 100.0


def detect_crossing(
    previous_remaining_percent: float | None,
    current_remaining_percent: float | None,
    threshold: float,
) -> bool:
    """True only on the transition from above the threshold to at/below it.

    Staying below the threshold does not fire again, and an undefined percent
    (nothing available) never fires.
    """
    if previous_remaining_percent is None or current_remaining_percent is None:
        return False
    return previous_remaining_percent > threshold and current_remaining_percent <= threshold


@dataclass(frozen=True)
class LowStockAlert:
    item_id: str
    project_id: str
    item_name: str
    unit: str
    remaining_percent: float
    remaining_qty: float
    threshold_percent: float

    kind: AlertKind = AlertKind.LOW_STOCK
    title: str = "Low stock alert"

    @property
    def message(self) -> str:
        return (
            f"{self.item_name} is at {self.remaining_percent:.0f}% remaining "
            f"({self.remaining_qty:.2f} {self.unit})."
        )

    def payload(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "unit": self.unit,
            "remaining_percent": self.remaining_percent,
            "remaining_qty": self.remaining_qty,
            "threshold_percent": self.threshold_percent,
            "title": self.title,
            "message": self.message,
        }


def build_low_stock_alert(view: ReconciledItemView, threshold_percent: float) -> LowStockAlert:
    assert view.remaining_percent is not None
    return LowStockAlert(
        item_id=view.item.id,
        project_id=view.item.project_id,
        item_name=view.item.name,
        unit=view.item.unit,
        remaining_percent=view.remaining_percent,
        remaining_qty=view.remaining_available,
        threshold_percent=threshold_percent,
    )
