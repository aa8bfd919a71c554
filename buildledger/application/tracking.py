"""Project-level tracking projections shared by the CLI and the HTTP server."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from buildledger.domain.models import LineItem
from buildledger.domain.reconcile import (
    ProcurementSummary,
    ReconciledItemView,
    TrackingStatus,
    UsageSummary,
    filter_views,
    is_low_stock,
    reconcile_all,
    summarize_procurement,
    summarize_usage,
)
from buildledger.ledger_access import LedgerStore, add_line_item, delete_line_item
from buildledger.runtime import Settings, get_settings


@dataclass(frozen=True)
class ProjectTracking:
    project_id: str
    views: list[ReconciledItemView]
    procurement: ProcurementSummary
    usage: UsageSummary
    threshold_percent: float
    alerts_enabled: bool

    @property
    def low_stock(self) -> list[ReconciledItemView]:
        return [view for view in self.views if is_low_stock(view, self.threshold_percent)]


def load_project_tracking(
    store: LedgerStore,
    project_id: str,
    *,
    status: TrackingStatus | None = None,
    search: str | None = None,
    settings: Settings | None = None,
) -> ProjectTracking:
    """Reconcile every line item of a project.

    Summaries always cover the whole project; ``status``/``search`` only
    narrow the returned item views.
    """
    alert_settings = (settings or get_settings()).alerts_for(project_id)
    views = reconcile_all(
        store.load_line_items(project_id),
        store.load_purchases(project_id),
        store.load_usage(project_id),
    )
    return ProjectTracking(
        project_id=project_id,
        views=filter_views(views, status=status, search=search),
        procurement=summarize_procurement(views),
        usage=summarize_usage(views, alert_settings.threshold_percent),
        threshold_percent=alert_settings.threshold_percent,
        alerts_enabled=alert_settings.enabled,
    )


def create_line_item(
    store: LedgerStore,
    project_id: str,
    *,
    name: str,
    unit: str,
    estimated_quantity: float,
    estimated_unit_price: float,
    category: str = "",
    material_key: str | None = None,
    item_id: str | None = None,
) -> LineItem:
    item = LineItem(
        id=item_id or uuid.uuid4().hex,
        project_id=project_id,
        name=name,
        unit=unit,
        estimated_quantity=estimated_quantity,
        estimated_unit_price=estimated_unit_price,
        category=category,
        material_key=material_key,
    )
    return add_line_item(store, item)


def remove_line_item(store: LedgerStore, item_id: str) -> None:
    """Remove an unreferenced line item (rejected while ledger entries exist)."""
    delete_line_item(store, item_id)
