"""Workflows that combine the pure domain with ledger storage and alert delivery."""
