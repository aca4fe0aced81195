"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Record store contract for recurring contracts and an in-memory backend.
"""

from __future__ import annotations

from typing import Protocol

from ..errors import BackendError
from ..types import JsonObject
from .records import contract_to_record
from .types import RecurrenceStatus, RecurringContract


class RecordStore(Protocol):
    """Write side of the external record store used by the scheduler."""

    async def update_status(self, contract_id: str, status: RecurrenceStatus) -> None:
        """Persist a new recurrence status. Raises on failure."""
        ...

    async def save_contract(self, contract: RecurringContract) -> None:
        """Insert or replace the full contract row. Raises on failure."""
        ...


class InMemoryRecordStore:
    """
    Process-local record store suitable for development/test workloads.

    Rows are kept in backend field format (see ``contract_to_record``).
    """

    def __init__(self) -> None:
        self.rows: dict[str, JsonObject] = {}

    async def update_status(self, contract_id: str, status: RecurrenceStatus) -> None:
        row = self.rows.get(contract_id)
        if row is None:
            raise BackendError(f"Contract '{contract_id}' not found")
        row["recurrence_status"] = status

    async def save_contract(self, contract: RecurringContract) -> None:
        self.rows[contract.id] = contract_to_record(contract)
