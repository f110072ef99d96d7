"""Store wrappers used to observe and break record store calls."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from worktrack.core.exceptions import StoreError
from worktrack.services.memory_store import InMemoryRecordStore


class RecordingStore:
    """
    Wraps an InMemoryRecordStore, logging every call as (operation, table).

    fail(op, table) makes the next matching calls raise StoreError.
    gate(op, table) makes matching calls wait until the returned event is set.
    """

    def __init__(self, inner: InMemoryRecordStore) -> None:
        self.inner = inner
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], str] = {}
        self._gates: dict[tuple[str, str], asyncio.Event] = {}

    def fail(self, op: str, table: str, message: str = "remote unavailable") -> None:
        self._failures[(op, table)] = message

    def heal(self, op: str, table: str) -> None:
        self._failures.pop((op, table), None)

    def gate(self, op: str, table: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[(op, table)] = event
        return event

    def ungate(self, op: str, table: str) -> None:
        self._gates.pop((op, table), None)

    def inserts(self) -> list[str]:
        return [table for op, table in self.calls if op == "insert_one"]

    async def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        gate = self._gates.get((op, table))
        if gate is not None:
            await gate.wait()
        message = self._failures.get((op, table))
        if message is not None:
            raise StoreError(message, table=table)

    async def insert_one(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        await self._enter("insert_one", table)
        return await self.inner.insert_one(table, values)

    async def select_one(self, table: str, **filters: Any) -> Optional[dict[str, Any]]:
        await self._enter("select_one", table)
        return await self.inner.select_one(table, **filters)

    async def select_many(
        self,
        table: str,
        order_by: str = "created_at",
        descending: bool = False,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        await self._enter("select_many", table)
        return await self.inner.select_many(
            table, order_by=order_by, descending=descending, **filters
        )

    async def update_one(self, table: str, record_id: str, values: dict[str, Any]) -> dict[str, Any]:
        await self._enter("update_one", table)
        return await self.inner.update_one(table, record_id, values)

    async def delete_one(self, table: str, record_id: str) -> None:
        await self._enter("delete_one", table)
        await self.inner.delete_one(table, record_id)
