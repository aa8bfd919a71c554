"""Plain-text rendering of tracking projections for the terminal."""

from __future__ import annotations

from buildledger.application.tracking import ProjectTracking
from buildledger.domain.reconcile import TRACKING_STATUSES, ReconciledItemView, is_low_stock

STATUS_LABELS = {
    "pending": "Pending",
    "in_progress": "In progress",
    "completed": "Completed",
    "over_purchased": "Over-purchased",
}


def format_ratio(value: float | None, *, decimals: int = 0) -> str:
    """Render a percent; an undefined ratio is shown as a dash, never as 0."""
    if value is None:
        return "—"
    return f"{value:.{decimals}f}%"


def format_amount(value: float | None) -> str:
    if value is None:
        return "—"
    return f"{value:,.2f}"


def _item_row(view: ReconciledItemView) -> str:
    item = view.item
    return (
        f"{item.name[:28]:<28} {STATUS_LABELS[view.status]:<15} "
        f"{view.purchased_qty:>10.2f} / {item.estimated_quantity:<10.2f} {item.unit:<6} "
        f"rem {view.remaining_to_purchase:>9.2f}  spent {format_amount(view.spend):>12}  "
        f"avg {format_amount(view.avg_paid_price):>10} (est {format_amount(item.estimated_unit_price)})"
    )


def format_tracking(tracking: ProjectTracking) -> list[str]:
    summary = tracking.procurement
    lines = [f"Project {tracking.project_id}: {summary.progress_percent:.0f}% purchased"]
    lines.append(
        "  "
        + "  ".join(f"{STATUS_LABELS[status]}: {summary.counts.get(status, 0)}" for status in TRACKING_STATUSES)
    )
    lines.append(
        f"  Spent {format_amount(summary.total_spend)} of {format_amount(summary.total_estimated_cost)} estimated"
        f" (variance {format_amount(summary.total_cost_variance)})"
    )
    lines.append("")
    lines.extend(_item_row(view) for view in tracking.views)
    return lines


def format_usage(tracking: ProjectTracking) -> list[str]:
    usage = tracking.usage
    lines = [
        f"Project {tracking.project_id}: {format_ratio(usage.overall_percent)} used "
        f"({usage.total_used:.2f} of {usage.total_available:.2f})",
        f"  Low stock (<= {tracking.threshold_percent:.0f}% remaining): {usage.low_stock_count}",
        f"  Used cost {format_amount(usage.total_used_cost)}, remaining cost {format_amount(usage.remaining_cost)}",
        "",
    ]
    for view in tracking.views:
        marker = " LOW" if is_low_stock(view, tracking.threshold_percent) else ""
        lines.append(
            f"{view.item.name[:28]:<28} used {view.used_qty:>9.2f} of {view.available_qty:<9.2f} {view.item.unit:<6} "
            f"{format_ratio(view.usage_percent):>5}{marker}"
        )
    return lines
