"""Data models for the bill of quantities and its ledgers."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LineItem:
    """An estimated material/labour entry from the bill of quantities."""

    id: str
    project_id: str
    name: str
    unit: str
    estimated_quantity: float
    estimated_unit_price: float
    category: str = ""
    material_key: str | None = None  # stable catalog key, e.g. "cement-42.5n"

    @property
    def estimated_cost(self) -> float:
        return self.estimated_quantity * self.estimated_unit_price


@dataclass(frozen=True)
class PurchaseRecord:
    """One purchase against a line item."""

    id: str
    item_id: str
    quantity: float
    unit_price: float
    purchased_at: datetime
    supplier_ref: str
    notes: str | None = None

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class UsageRecord:
    """Material consumed on site against a line item."""

    id: str
    item_id: str
    quantity_used: float
    used_at: datetime
    notes: str | None = None
