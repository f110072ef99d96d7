"""In-memory record store for testing and development."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from worktrack.core.exceptions import (
    MultipleRecordsError,
    NotFoundError,
    RecordConflictError,
    StoreError,
)

Row = dict[str, Any]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Column defaults the SQL schema applies on insert.
_DEFAULTS: dict[str, dict[str, Callable[[], Any]]] = {
    "organizations": {
        "type": lambda: "startup",
        "email_domain": lambda: None,
        "config": dict,
        "is_active": lambda: True,
    },
    "departments": {
        "description": lambda: None,
        "parent_department_id": lambda: None,
        "is_active": lambda: True,
    },
    "users": {
        "department_id": lambda: None,
        "role": lambda: "employee",
        "phone": lambda: None,
        "avatar_url": lambda: None,
        "is_active": lambda: True,
        "is_verified": lambda: False,
        "last_login": lambda: None,
    },
    "licenses": {
        "status": lambda: "active",
        "features": list,
        "start_date": _now,
        "expiry_date": lambda: None,
        "auto_renew": lambda: True,
    },
    "auth_users": {
        "user_metadata": dict,
        "last_sign_in_at": lambda: None,
    },
}

_UNIQUE: dict[str, tuple[str, ...]] = {
    "users": ("email",),
    "licenses": ("license_key",),
    "auth_users": ("email",),
}


class InMemoryRecordStore:
    """Dict-backed RecordStore with the same defaults and unique keys as the SQL schema."""

    def __init__(self) -> None:
        self._tables: dict[str, list[Row]] = {name: [] for name in _DEFAULTS}

    def _rows(self, table: str) -> list[Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreError(f"Unknown table '{table}'", table=table)

    def _check_unique(self, table: str, row: Row, ignore_id: Optional[str] = None) -> None:
        for column in _UNIQUE.get(table, ()):
            for existing in self._tables[table]:
                if existing["id"] != ignore_id and existing.get(column) == row.get(column):
                    raise RecordConflictError(
                        f"duplicate key value violates unique constraint on {table}.{column}",
                        table=table,
                    )

    @staticmethod
    def _matches(row: Row, filters: dict[str, Any]) -> bool:
        return all(row.get(column) == value for column, value in filters.items())

    async def insert_one(self, table: str, values: Row) -> Row:
        rows = self._rows(table)
        row = {column: factory() for column, factory in _DEFAULTS[table].items()}
        row.update(copy.deepcopy(values))
        row.setdefault("id", str(uuid.uuid4()))
        now = _now()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        self._check_unique(table, row)
        rows.append(row)
        return copy.deepcopy(row)

    async def select_one(self, table: str, **filters: Any) -> Optional[Row]:
        matches = [row for row in self._rows(table) if self._matches(row, filters)]
        if len(matches) > 1:
            raise MultipleRecordsError(
                f"More than one '{table}' row matched {sorted(filters)}", table=table
            )
        return copy.deepcopy(matches[0]) if matches else None

    async def select_many(
        self,
        table: str,
        order_by: str = "created_at",
        descending: bool = False,
        **filters: Any,
    ) -> list[Row]:
        matches = [row for row in self._rows(table) if self._matches(row, filters)]
        matches.sort(key=lambda row: row.get(order_by), reverse=descending)
        return copy.deepcopy(matches)

    async def update_one(self, table: str, record_id: str, values: Row) -> Row:
        for row in self._rows(table):
            if row["id"] == record_id:
                candidate = {**row, **copy.deepcopy(values)}
                self._check_unique(table, candidate, ignore_id=record_id)
                candidate["updated_at"] = _now()
                row.update(candidate)
                return copy.deepcopy(row)
        raise NotFoundError(f"No '{table}' row with id '{record_id}'")

    async def delete_one(self, table: str, record_id: str) -> None:
        rows = self._rows(table)
        rows[:] = [row for row in rows if row["id"] != record_id]

    def count(self, table: str) -> int:
        return len(self._rows(table))
