"""Shared helpers for entity repositories."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy import Table, func
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.sql import ColumnElement
from sqlalchemy.sql.expression import Executable

UpdateBuilder = Callable[[Any], Mapping[str, Any]]


class BaseRepository:
    """Base repository bound to a caller-owned ``Session``.

    Repositories never commit; the caller's unit of work decides.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def _dialect(self) -> str:
        return self._session.get_bind().dialect.name

    def _scalar(self, statement: Executable, params: dict[str, Any] | None = None) -> int:
        """Execute ``statement`` and return the scalar integer result."""

        value = self._session.execute(statement, params or {}).scalar() or 0
        return int(value)

    def _random_order(self) -> ColumnElement:
        if self._dialect in ("mysql", "mariadb"):
            return func.rand()
        return func.random()

    def _upsert(
        self,
        table: Table,
        values: Mapping[str, Any],
        *,
        conflict_columns: Sequence[str],
        updates: UpdateBuilder,
    ) -> None:
        """Insert ``values`` or update the conflicting row in one statement.

        ``updates`` receives the dialect's proposed-row namespace
        (``EXCLUDED`` or ``VALUES()``) and returns the SET clause.
        """

        dialect = self._dialect
        if dialect in ("mysql", "mariadb"):
            statement = mysql.insert(table).values(**values)
            statement = statement.on_duplicate_key_update(**updates(statement.inserted))
        elif dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            statement = insert(table).values(**values)
            statement = statement.on_conflict_do_update(
                index_elements=list(conflict_columns),
                set_=dict(updates(statement.excluded)),
            )
        else:
            raise NotImplementedError(f"Atomic upsert is not supported on {dialect}")
        self._session.execute(statement)

    @staticmethod
    def _to_decimal(value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        if value is None:
            return Decimal(0)
        return Decimal(str(value))

    @staticmethod
    def _coerce_date(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if value is None:
            raise ValueError("Cannot convert None to date")
        return date.fromisoformat(str(value)[:10])
