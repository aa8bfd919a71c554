"""Core domain models and pure reconciliation logic.

This package provides:
- LineItem, PurchaseRecord, UsageRecord: catalog and ledger records
- reconcile(), summarize_procurement(), summarize_usage(): derived views
- detect_crossing(): edge-triggered low-stock detection
- convert_accepted_quote(): RFQ quote -> purchase draft

Usage:
    from buildledger.domain import LineItem, reconcile
"""

from buildledger.domain.alerts import (
    AlertKind,
    LowStockAlert,
    build_low_stock_alert,
    detect_crossing,
    remaining_percent,
)
from buildledger.domain.errors import (
    ConversionError,
    LedgerError,
    NoMatchingLineItem,
    ReferentialError,
    ValidationError,
)
from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord
from buildledger.domain.reconcile import (
    EPSILON,
    TRACKING_STATUSES,
    ProcurementSummary,
    ReconciledItemView,
    TrackingStatus,
    UsageSummary,
    derive_status,
    filter_views,
    reconcile,
    reconcile_all,
    summarize_procurement,
    summarize_usage,
)
from buildledger.domain.rfq import AcceptedQuote, PurchaseRecordDraft, convert_accepted_quote

__all__ = [
    "AcceptedQuote",
    "AlertKind",
    "ConversionError",
    "EPSILON",
    "LedgerError",
    "LineItem",
    "LowStockAlert",
    "NoMatchingLineItem",
    "ProcurementSummary",
    "PurchaseRecord",
    "PurchaseRecordDraft",
    "ReconciledItemView",
    "ReferentialError",
    "TRACKING_STATUSES",
    "TrackingStatus",
    "UsageRecord",
    "UsageSummary",
    "ValidationError",
    "build_low_stock_alert",
    "convert_accepted_quote",
    "derive_status",
    "detect_crossing",
    "filter_views",
    "reconcile",
    "reconcile_all",
    "remaining_percent",
    "summarize_procurement",
    "summarize_usage",
]
