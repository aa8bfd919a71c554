"""Procurement and usage reconciliation for construction bills of quantities."""

__version__ = "0.1.0"
