"""Map an accepted supplier quote onto a purchase draft.

The conversion is a suggestion: it picks the line item and supplier but
leaves quantity and price for the user to confirm, because both may still
change between acceptance and delivery.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from buildledger.domain.errors import NoMatchingLineItem
from buildledger.domain.models import LineItem


@dataclass(frozen=True)
class AcceptedQuote:
    """One quoted material from a supplier quote the builder accepted."""

    quote_id: str
    rfq_id: str
    supplier_name: str
    material_key: str | None = None
    material_name: str | None = None
    supplier_id: str | None = None
    unit_price: float | None = None
    available_quantity: float | None = None


@dataclass(frozen=True)
class PurchaseRecordDraft:
    item_id: str
    supplier_name: str
    supplier_ref: str
    quote_id: str
    matched_by: str  # "material_key" | "name"
    # Left blank on purpose; filled in by the user before the ledger write.
    quantity: float | None = None
    unit_price: float | None = None
    suggested_quantity: float | None = None
    suggested_unit_price: float | None = None


@dataclass(frozen=True)
class SupplierMatch:
    supplier_id: str
    supplier_name: str
    score: float
    reasons: list[str] = field(default_factory=list)


class SupplierRanker(Protocol):
    """Opaque supplier ranking used when sending RFQs; best match first."""

    def __call__(self, items: Sequence[LineItem]) -> list[SupplierMatch]: ...


def match_quote_to_line_item(quote: AcceptedQuote, line_items: Sequence[LineItem]) -> tuple[LineItem, str] | None:
    """Find the line item for a quote: material key first, then exact name."""
    if quote.material_key:
        for item in line_items:
            if item.material_key == quote.material_key:
                return item, "material_key"
    if quote.material_name:
        for item in line_items:
            if item.name == quote.material_name:
                return item, "name"
    return None


def convert_accepted_quote(quote: AcceptedQuote, line_items: Sequence[LineItem]) -> PurchaseRecordDraft:
    """Build a purchase draft for an accepted quote.

    Raises:
        NoMatchingLineItem: neither the material key nor the name matches.
    """
    match = match_quote_to_line_item(quote, line_items)
    if match is None:
        raise NoMatchingLineItem(quote.material_key, quote.material_name)

    item, matched_by = match
    return PurchaseRecordDraft(
        item_id=item.id,
        supplier_name=quote.supplier_name,
        supplier_ref=quote.supplier_id or quote.supplier_name,
        quote_id=quote.quote_id,
        matched_by=matched_by,
        suggested_quantity=quote.available_quantity,
        suggested_unit_price=quote.unit_price,
    )
