"""Exceptions raised by the proving inventory."""

from __future__ import annotations


class ProvingError(Exception):
    """Base class for recoverable inventory errors."""


class InvalidQuantityError(ProvingError, ValueError):
    """A tray or unit count is not an integer."""


class BatchNotFoundError(ProvingError, KeyError):
    """No batch with the requested id exists in the store."""

    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id)
        self.batch_id = batch_id

    def __str__(self) -> str:
        return f"Unknown batch id: {self.batch_id!r}."


class InvalidTransitionError(ProvingError):
    """A manual stage change does not follow the pipeline order."""


class InsufficientStockError(ProvingError):
    """Frozen stock cannot cover a release under strict stock accounting."""

    def __init__(self, units_needed: int, units_available: int) -> None:
        super().__init__(
            f"Frozen stock of {units_available} units cannot cover "
            f"{units_needed} units."
        )
        self.units_needed = units_needed
        self.units_available = units_available


class NegativeQuantityError(AssertionError):
    """A batch quantity went below zero.

    This is a programming error rather than a recoverable condition, so it does
    not derive from ``ProvingError``.
    """
