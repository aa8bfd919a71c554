"""Checks applied at the ledger-write boundary.

Nothing here clamps or repairs input: a bad value raises ValidationError and
the write does not happen.
"""

from __future__ import annotations

import math

from buildledger.domain.errors import ValidationError
from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord


def _require_id(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string")


def _require_finite(value: float, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return number


def require_positive(value: float, field_name: str) -> None:
    if _require_finite(value, field_name) <= 0:
        raise ValidationError(f"{field_name} must be greater than 0, got {value!r}")


def require_non_negative(value: float, field_name: str) -> None:
    if _require_finite(value, field_name) < 0:
        raise ValidationError(f"{field_name} must not be negative, got {value!r}")


def validate_line_item(item: LineItem) -> None:
    _require_id(item.id, "id")
    _require_id(item.project_id, "project_id")
    _require_id(item.name, "name")
    require_non_negative(item.estimated_quantity, "estimated_quantity")
    require_non_negative(item.estimated_unit_price, "estimated_unit_price")


def validate_purchase(record: PurchaseRecord) -> None:
    _require_id(record.id, "id")
    _require_id(record.item_id, "item_id")
    require_positive(record.quantity, "quantity")
    require_positive(record.unit_price, "unit_price")


def validate_usage(record: UsageRecord) -> None:
    _require_id(record.id, "id")
    _require_id(record.item_id, "item_id")
    require_positive(record.quantity_used, "quantity_used")
