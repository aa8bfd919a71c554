"""Error taxonomy for ledger writes and quote conversion.

Undefined ratios (average price with nothing purchased, usage percent with
nothing available) are not errors: the engine returns ``None`` for them.
"""


class LedgerError(Exception):
    """Base class for errors surfaced to the caller of a ledger operation."""


class ValidationError(LedgerError):
    """A submitted value is out of range (non-positive quantity or price, etc.)."""


class ReferentialError(LedgerError):
    """A record references a line item or record that does not exist, or an
    item cannot be removed because ledger entries still reference it.

    ``missing`` is False for conflicts (duplicate id, item still referenced).
    """

    def __init__(self, message: str, *, missing: bool = True) -> None:
        super().__init__(message)
        self.missing = missing


class ConversionError(LedgerError):
    """An accepted quote could not be turned into a purchase draft."""


class NoMatchingLineItem(ConversionError):
    """No line item matches the quote by material key or by exact name."""

    def __init__(self, material_key: str | None, material_name: str | None) -> None:
        self.material_key = material_key
        self.material_name = material_name
        label = material_key or material_name or "<unnamed>"
        super().__init__(
            f"No line item matches quoted material {label!r}; record the purchase manually."
        )
