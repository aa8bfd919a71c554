"""Purchase recording and RFQ quote acceptance workflows."""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from buildledger.application.usage import item_lock, reseed_alert_marker
from buildledger.domain.errors import NoMatchingLineItem, ReferentialError
from buildledger.domain.models import PurchaseRecord
from buildledger.domain.rfq import (
    AcceptedQuote,
    PurchaseRecordDraft,
    SupplierMatch,
    SupplierRanker,
    convert_accepted_quote,
)
from buildledger.ledger_access import LedgerStore, add_purchase, delete_purchase, update_purchase
from buildledger.runtime import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PurchaseRequest:
    """Inputs for recording a purchase against a line item."""

    item_id: str
    quantity: float
    unit_price: float
    supplier_ref: str
    purchased_at: datetime | None = None
    notes: str | None = None
    record_id: str | None = None


def _require_purchase(store: LedgerStore, record_id: str) -> PurchaseRecord:
    record = store.get_purchase(record_id)
    if record is None:
        raise ReferentialError(f"Purchase {record_id!r} does not exist")
    return record


def record_purchase(store: LedgerStore, request: PurchaseRequest) -> PurchaseRecord:
    record = PurchaseRecord(
        id=request.record_id or uuid.uuid4().hex,
        item_id=request.item_id,
        quantity=request.quantity,
        unit_price=request.unit_price,
        purchased_at=request.purchased_at or datetime.now(timezone.utc),
        supplier_ref=request.supplier_ref,
        notes=request.notes,
    )
    with item_lock(record.item_id):
        add_purchase(store, record)
        reseed_alert_marker(store, record.item_id)
    return record


def edit_purchase(
    store: LedgerStore,
    record_id: str,
    *,
    quantity: float | None = None,
    unit_price: float | None = None,
    purchased_at: datetime | None = None,
    notes: str | None = None,
) -> PurchaseRecord:
    """Correct quantity, price, date or notes of an existing purchase."""
    existing = _require_purchase(store, record_id)

    changes: dict[str, object] = {}
    if quantity is not None:
        changes["quantity"] = quantity
    if unit_price is not None:
        changes["unit_price"] = unit_price
    if purchased_at is not None:
        changes["purchased_at"] = purchased_at
    if notes is not None:
        changes["notes"] = notes

    with item_lock(existing.item_id):
        current = _require_purchase(store, record_id)
        updated = update_purchase(store, dataclasses.replace(current, **changes))
        reseed_alert_marker(store, updated.item_id)
    return updated


def remove_purchase(store: LedgerStore, record_id: str) -> PurchaseRecord:
    existing = _require_purchase(store, record_id)
    with item_lock(existing.item_id):
        removed = delete_purchase(store, record_id)
        reseed_alert_marker(store, removed.item_id)
    return removed


def draft_purchase_from_quote(store: LedgerStore, project_id: str, quote: AcceptedQuote) -> PurchaseRecordDraft:
    """Suggest a purchase for an accepted quote. Nothing is written.

    Raises:
        NoMatchingLineItem: the quote matches no line item in the project; the
            user has to record the purchase manually.
    """
    try:
        draft = convert_accepted_quote(quote, store.load_line_items(project_id))
    except NoMatchingLineItem:
        logger.warning(
            "Quote %s (RFQ %s) matches no line item in project %s",
            quote.quote_id,
            quote.rfq_id,
            project_id,
        )
        raise
    logger.info("Quote %s matched item %s by %s", quote.quote_id, draft.item_id, draft.matched_by)
    return draft


def confirm_purchase_draft(
    store: LedgerStore,
    draft: PurchaseRecordDraft,
    *,
    quantity: float,
    unit_price: float,
    purchased_at: datetime | None = None,
    notes: str | None = None,
) -> PurchaseRecord:
    """Write the purchase once the user has confirmed quantity and price."""
    return record_purchase(
        store,
        PurchaseRequest(
            item_id=draft.item_id,
            quantity=quantity,
            unit_price=unit_price,
            supplier_ref=draft.supplier_ref,
            purchased_at=purchased_at,
            notes=notes or f"Accepted quote {draft.quote_id} from {draft.supplier_name}",
        ),
    )


def suggest_suppliers(
    store: LedgerStore,
    project_id: str,
    ranker: SupplierRanker,
    *,
    item_ids: Sequence[str] | None = None,
) -> list[SupplierMatch]:
    """Rank suppliers for an RFQ covering some (default: all) items of a project."""
    items = store.load_line_items(project_id)
    if item_ids is not None:
        wanted = set(item_ids)
        missing = wanted - {item.id for item in items}
        if missing:
            raise ReferentialError(f"Line items not in project {project_id!r}: {', '.join(sorted(missing))}")
        items = [item for item in items if item.id in wanted]
    if not items:
        return []
    matches = ranker(items)
    logger.debug("Ranked %d supplier(s) for %d item(s) in %s", len(matches), len(items), project_id)
    return matches
