"""Reconcile estimated line items against purchase and usage ledgers.

Everything here is recomputed from the ledgers on each call. Status is a
label over the recomputed totals and is never stored.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord

# Absorbs float noise from repeated sums of fractional quantities.
EPSILON = 1e-4

TrackingStatus = Literal["pending", "in_progress", "completed", "over_purchased"]
TRACKING_STATUSES: tuple[TrackingStatus, ...] = ("pending", "in_progress", "completed", "over_purchased")


@dataclass(frozen=True)
class ReconciledItemView:
    """Derived per-item state. ``None`` marks a ratio with a zero denominator."""

    item: LineItem
    purchased_qty: float
    spend: float
    avg_paid_price: float | None
    remaining_to_purchase: float
    status: TrackingStatus
    progress_percent: float
    estimated_cost: float
    price_variance: float | None
    price_variance_percent: float | None
    cost_variance: float
    last_purchased_at: datetime | None
    used_qty: float
    available_qty: float
    remaining_available: float
    usage_percent: float | None
    remaining_percent: float | None

    @property
    def item_id(self) -> str:
        return self.item.id


def derive_status(estimated_quantity: float, purchased_qty: float) -> TrackingStatus:
    """Map (estimate, purchased) to a status; rule order matters.

    An item estimated at 0 becomes over_purchased on its first purchase.
    """
    if purchased_qty <= EPSILON:
        return "pending"
    if purchased_qty < estimated_quantity - EPSILON:
        return "in_progress"
    if purchased_qty >= estimated_quantity + EPSILON:
        return "over_purchased"
    return "completed"


def progress_percent(estimated_quantity: float, purchased_qty: float) -> float:
    if estimated_quantity <= 0:
        return 0.0
    return min(purchased_qty / estimated_quantity * 100.0, 100.0)


def _ratio_percent(numerator: float, denominator: float) -> float | None:
    if denominator <= 0:
        return None
    return numerator / denominator * 100.0


def reconcile(
    item: LineItem,
    purchases: Iterable[PurchaseRecord],
    usage: Iterable[UsageRecord],
) -> ReconciledItemView:
    """Derive the reconciled view of one line item.

    Records belonging to other items are ignored, so callers may pass a
    whole project's ledgers.
    """
    item_purchases = [p for p in purchases if p.item_id == item.id]
    item_usage = [u for u in usage if u.item_id == item.id]

    purchased_qty = sum(p.quantity for p in item_purchases)
    spend = sum(p.total for p in item_purchases)
    avg_paid_price = spend / purchased_qty if purchased_qty > 0 else None
    estimated_qty = item.estimated_quantity
    estimated_price = item.estimated_unit_price

    price_variance = None
    price_variance_percent = None
    if avg_paid_price is not None:
        price_variance = avg_paid_price - estimated_price
        if estimated_price > 0:
            price_variance_percent = price_variance / estimated_price * 100.0

    last_purchased_at = max((p.purchased_at for p in item_purchases), default=None)

    used_qty = sum(u.quantity_used for u in item_usage)
    # Items bought without purchase tracking burn down against the estimate.
    available_qty = purchased_qty if item_purchases else estimated_qty
    remaining_available = max(available_qty - used_qty, 0.0)

    return ReconciledItemView(
        item=item,
        purchased_qty=purchased_qty,
        spend=spend,
        avg_paid_price=avg_paid_price,
        remaining_to_purchase=max(estimated_qty - purchased_qty, 0.0),
        status=derive_status(estimated_qty, purchased_qty),
        progress_percent=progress_percent(estimated_qty, purchased_qty),
        estimated_cost=item.estimated_cost,
        price_variance=price_variance,
        price_variance_percent=price_variance_percent,
        cost_variance=spend - purchased_qty * estimated_price,
        last_purchased_at=last_purchased_at,
        used_qty=used_qty,
        available_qty=available_qty,
        remaining_available=remaining_available,
        usage_percent=_ratio_percent(used_qty, available_qty),
        remaining_percent=_ratio_percent(remaining_available, available_qty),
    )


def reconcile_all(
    items: Sequence[LineItem],
    purchases: Iterable[PurchaseRecord],
    usage: Iterable[UsageRecord],
) -> list[ReconciledItemView]:
    """Reconcile every item, grouping ledger records by item once."""
    purchases_by_item: dict[str, list[PurchaseRecord]] = {}
    for purchase in purchases:
        purchases_by_item.setdefault(purchase.item_id, []).append(purchase)
    usage_by_item: dict[str, list[UsageRecord]] = {}
    for record in usage:
        usage_by_item.setdefault(record.item_id, []).append(record)

    return [
        reconcile(item, purchases_by_item.get(item.id, ()), usage_by_item.get(item.id, ()))
        for item in items
    ]


def filter_views(
    views: Iterable[ReconciledItemView],
    *,
    status: TrackingStatus | None = None,
    search: str | None = None,
) -> list[ReconciledItemView]:
    """Filter by status and by case-insensitive substring of the item name."""
    term = (search or "").strip().lower()
    result: list[ReconciledItemView] = []
    for view in views:
        if status is not None and view.status != status:
            continue
        if term and term not in view.item.name.lower():
            continue
        result.append(view)
    return result


@dataclass(frozen=True)
class ProcurementSummary:
    counts: dict[TrackingStatus, int] = field(default_factory=dict)
    total_estimated_qty: float = 0.0
    total_purchased_qty: float = 0.0
    total_remaining_qty: float = 0.0
    total_spend: float = 0.0
    total_estimated_cost: float = 0.0
    total_cost_variance: float = 0.0
    progress_percent: float = 0.0


def summarize_procurement(views: Iterable[ReconciledItemView]) -> ProcurementSummary:
    """Roll item views up by summing each field; ratios are derived from the sums."""
    counts: dict[TrackingStatus, int] = {status: 0 for status in TRACKING_STATUSES}
    total_estimated_qty = 0.0
    total_purchased_qty = 0.0
    total_remaining_qty = 0.0
    total_spend = 0.0
    total_estimated_cost = 0.0
    total_cost_variance = 0.0

    for view in views:
        counts[view.status] += 1
        total_estimated_qty += view.item.estimated_quantity
        total_purchased_qty += view.purchased_qty
        total_remaining_qty += view.remaining_to_purchase
        total_spend += view.spend
        total_estimated_cost += view.estimated_cost
        total_cost_variance += view.cost_variance

    return ProcurementSummary(
        counts=counts,
        total_estimated_qty=total_estimated_qty,
        total_purchased_qty=total_purchased_qty,
        total_remaining_qty=total_remaining_qty,
        total_spend=total_spend,
        total_estimated_cost=total_estimated_cost,
        total_cost_variance=total_cost_variance,
        progress_percent=progress_percent(total_estimated_qty, total_purchased_qty),
    )


@dataclass(frozen=True)
class UsageSummary:
    total_available: float = 0.0
    total_used: float = 0.0
    total_remaining: float = 0.0
    overall_percent: float | None = None
    low_stock_count: int = 0
    total_used_cost: float = 0.0
    remaining_cost: float = 0.0


def is_low_stock(view: ReconciledItemView, threshold_percent: float) -> bool:
    """Level check (not a crossing): remaining stock is at or below the threshold."""
    if view.remaining_percent is None:
        return False
    return view.remaining_percent <= threshold_percent


def summarize_usage(views: Iterable[ReconciledItemView], threshold_percent: float) -> UsageSummary:
    """Project-wide burn-down totals."""
    total_available = 0.0
    total_used = 0.0
    low_stock_count = 0
    total_used_cost = 0.0
    remaining_cost = 0.0

    for view in views:
        price = view.item.estimated_unit_price
        total_available += view.available_qty
        total_used += view.used_qty
        total_used_cost += view.used_qty * price
        remaining_cost += view.remaining_available * price
        if is_low_stock(view, threshold_percent):
            low_stock_count += 1

    return UsageSummary(
        total_available=total_available,
        total_used=total_used,
        total_remaining=max(total_available - total_used, 0.0),
        overall_percent=_ratio_percent(total_used, total_available),
        low_stock_count=low_stock_count,
        total_used_cost=total_used_cost,
        remaining_cost=remaining_cost,
    )
