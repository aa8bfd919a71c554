"""Validated write API for the catalog and both ledgers.

Every write goes through here: values are validated and references checked
before the store is touched, and errors propagate to the caller unchanged.
"""

from __future__ import annotations

from buildledger.domain.errors import ReferentialError
from buildledger.domain.models import LineItem, PurchaseRecord, UsageRecord
from buildledger.domain.validation import validate_line_item, validate_purchase, validate_usage
from buildledger.ledger_access.store import LedgerStore
from buildledger.runtime import get_logger

logger = get_logger(__name__)


def _require_item(store: LedgerStore, item_id: str) -> LineItem:
    item = store.get_line_item(item_id)
    if item is None:
        raise ReferentialError(f"Line item {item_id!r} does not exist")
    return item


def add_line_item(store: LedgerStore, item: LineItem) -> LineItem:
    validate_line_item(item)
    if store.get_line_item(item.id) is not None:
        raise ReferentialError(f"Line item {item.id!r} already exists", missing=False)
    store.insert_line_item(item)
    logger.info("Added line item %s (%s) to project %s", item.id, item.name, item.project_id)
    return item


def delete_line_item(store: LedgerStore, item_id: str) -> None:
    """Delete a line item. Items with purchase or usage records are kept."""
    _require_item(store, item_id)
    if store.has_ledger_entries(item_id):
        raise ReferentialError(
            f"Line item {item_id!r} still has purchase or usage records; delete those first",
            missing=False,
        )
    store.remove_line_item(item_id)
    logger.info("Deleted line item %s", item_id)


def add_purchase(store: LedgerStore, record: PurchaseRecord) -> PurchaseRecord:
    validate_purchase(record)
    _require_item(store, record.item_id)
    if store.get_purchase(record.id) is not None:
        raise ReferentialError(f"Purchase {record.id!r} already exists", missing=False)
    store.insert_purchase(record)
    logger.info(
        "Recorded purchase %s: %s x %s for item %s",
        record.id,
        record.quantity,
        record.unit_price,
        record.item_id,
    )
    return record


def update_purchase(store: LedgerStore, record: PurchaseRecord) -> PurchaseRecord:
    validate_purchase(record)
    existing = store.get_purchase(record.id)
    if existing is None:
        raise ReferentialError(f"Purchase {record.id!r} does not exist")
    if existing.item_id != record.item_id:
        raise ReferentialError(f"Purchase {record.id!r} cannot move to another line item", missing=False)
    store.replace_purchase(record)
    logger.info("Updated purchase %s", record.id)
    return record


def delete_purchase(store: LedgerStore, record_id: str) -> PurchaseRecord:
    existing = store.get_purchase(record_id)
    if existing is None:
        raise ReferentialError(f"Purchase {record_id!r} does not exist")
    store.remove_purchase(record_id)
    logger.info("Deleted purchase %s", record_id)
    return existing


def add_usage(store: LedgerStore, record: UsageRecord) -> UsageRecord:
    validate_usage(record)
    _require_item(store, record.item_id)
    if store.get_usage(record.id) is not None:
        raise ReferentialError(f"Usage record {record.id!r} already exists", missing=False)
    store.insert_usage(record)
    logger.info("Recorded usage %s: %s of item %s", record.id, record.quantity_used, record.item_id)
    return record


def update_usage(store: LedgerStore, record: UsageRecord) -> UsageRecord:
    validate_usage(record)
    existing = store.get_usage(record.id)
    if existing is None:
        raise ReferentialError(f"Usage record {record.id!r} does not exist")
    if existing.item_id != record.item_id:
        raise ReferentialError(f"Usage record {record.id!r} cannot move to another line item", missing=False)
    store.replace_usage(record)
    logger.info("Updated usage record %s", record.id)
    return record


def delete_usage(store: LedgerStore, record_id: str) -> UsageRecord:
    existing = store.get_usage(record_id)
    if existing is None:
        raise ReferentialError(f"Usage record {record_id!r} does not exist")
    store.remove_usage(record_id)
    logger.info("Deleted usage record %s", record_id)
    return existing
