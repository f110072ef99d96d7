"""
services/store.py
-----------------
Record store interface and its SQLAlchemy implementation.

The store is the application's view of the hosted data service: a set of
named tables offering single-record insert / update / delete and
equality-filtered selects. Rows travel as plain dicts keyed by the wire
column names.

SqlRecordStore opens a fresh session per call and commits before
returning, so every successful call is durable and visible on its own.
There is no transaction spanning two calls.
"""

from typing import Any, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, MultipleResultsFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.core.exceptions import (
    MultipleRecordsError,
    NotFoundError,
    RecordConflictError,
    StoreError,
)
from worktrack.core.logging import get_logger
from worktrack.db.base import row_to_dict
from worktrack.models import TABLES

logger = get_logger(__name__)

Row = dict[str, Any]


class RecordStore(Protocol):
    """Backend interface for table-level record access."""

    async def insert_one(self, table: str, values: Row) -> Row: ...
    async def select_one(self, table: str, **filters: Any) -> Optional[Row]: ...
    async def select_many(
        self,
        table: str,
        order_by: str = "created_at",
        descending: bool = False,
        **filters: Any,
    ) -> list[Row]: ...
    async def update_one(self, table: str, record_id: str, values: Row) -> Row: ...
    async def delete_one(self, table: str, record_id: str) -> None: ...


class SqlRecordStore:
    """RecordStore backed by the SQLAlchemy models in worktrack.models."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table '{table}'", table=table)

    @staticmethod
    def _where(model, table: str, filters: dict[str, Any]) -> list:
        clauses = []
        for column, value in filters.items():
            if not hasattr(model, column):
                raise StoreError(f"Unknown column '{column}' on '{table}'", table=table)
            clauses.append(getattr(model, column) == value)
        return clauses

    async def insert_one(self, table: str, values: Row) -> Row:
        model = self._model(table)
        async with self._sessionmaker() as session:
            record = model(**values)
            session.add(record)
            try:
                await session.commit()
                await session.refresh(record)
            except IntegrityError as exc:
                await session.rollback()
                raise RecordConflictError(str(exc.orig), table=table) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Insert failed", table=table, error=str(exc))
                raise StoreError(str(exc), table=table) from exc
            return row_to_dict(record)

    async def select_one(self, table: str, **filters: Any) -> Optional[Row]:
        model = self._model(table)
        stmt = select(model).where(*self._where(model, table, filters))
        async with self._sessionmaker() as session:
            try:
                result = await session.execute(stmt)
                record = result.scalar_one_or_none()
            except MultipleResultsFound as exc:
                raise MultipleRecordsError(
                    f"More than one '{table}' row matched {sorted(filters)}", table=table
                ) from exc
            except SQLAlchemyError as exc:
                raise StoreError(str(exc), table=table) from exc
            return row_to_dict(record) if record is not None else None

    async def select_many(
        self,
        table: str,
        order_by: str = "created_at",
        descending: bool = False,
        **filters: Any,
    ) -> list[Row]:
        model = self._model(table)
        if not hasattr(model, order_by):
            raise StoreError(f"Unknown column '{order_by}' on '{table}'", table=table)
        column = getattr(model, order_by)
        stmt = (
            select(model)
            .where(*self._where(model, table, filters))
            .order_by(column.desc() if descending else column)
        )
        async with self._sessionmaker() as session:
            try:
                result = await session.execute(stmt)
            except SQLAlchemyError as exc:
                raise StoreError(str(exc), table=table) from exc
            return [row_to_dict(record) for record in result.scalars().all()]

    async def update_one(self, table: str, record_id: str, values: Row) -> Row:
        model = self._model(table)
        async with self._sessionmaker() as session:
            try:
                record = await session.get(model, record_id)
                if record is None:
                    raise NotFoundError(f"No '{table}' row with id '{record_id}'")
                for column, value in values.items():
                    setattr(record, column, value)
                await session.commit()
                await session.refresh(record)
            except IntegrityError as exc:
                await session.rollback()
                raise RecordConflictError(str(exc.orig), table=table) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(str(exc), table=table) from exc
            return row_to_dict(record)

    async def delete_one(self, table: str, record_id: str) -> None:
        model = self._model(table)
        async with self._sessionmaker() as session:
            try:
                await session.execute(delete(model).where(model.id == record_id))
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(str(exc), table=table) from exc
