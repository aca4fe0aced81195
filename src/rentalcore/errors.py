"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed failures raised by the cache and recurrence subsystems.
"""

from __future__ import annotations


class RentalCoreError(RuntimeError):
    """Base error for all rentalcore failures."""


class BackendError(RentalCoreError):
    """
    Raised by backend accessors when a read or write fails.

    The cache never retries on this error; callers decide on retry/backoff.
    """

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind


class FetchCancelledError(RentalCoreError):
    """
    Raised for a superseded request when the caller asked to observe it.

    By default a superseded load resolves to a ``cancelled`` outcome instead.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Request for '{key}' was superseded")
        self.key = key


class InvalidTransitionError(RentalCoreError):
    """Raised when a recurrence status change is not allowed."""

    def __init__(self, contract_id: str, current: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} contract '{contract_id}' from status '{current}'"
        )
        self.contract_id = contract_id
        self.current = current
        self.action = action


class RecurrenceValidationError(RentalCoreError, ValueError):
    """Raised when a recurrence rule or record is malformed."""


class CacheSlotError(RentalCoreError):
    """Raised when a durable cache slot backend cannot be resolved."""
