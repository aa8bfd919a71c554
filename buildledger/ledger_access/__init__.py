"""Centralized access to the line-item catalog and its ledgers."""

from buildledger.ledger_access.api import (
    add_line_item,
    add_purchase,
    add_usage,
    delete_line_item,
    delete_purchase,
    delete_usage,
    update_purchase,
    update_usage,
)
from buildledger.ledger_access.json_store import JsonLedgerStore
from buildledger.ledger_access.store import InMemoryLedgerStore, LedgerStore

__all__ = [
    "InMemoryLedgerStore",
    "JsonLedgerStore",
    "LedgerStore",
    "add_line_item",
    "add_purchase",
    "add_usage",
    "delete_line_item",
    "delete_purchase",
    "delete_usage",
    "update_purchase",
    "update_usage",
]
