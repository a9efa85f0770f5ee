"""
Generic table repository: filtered counts, ordered slices, distinct values,
aggregate expressions, batch inserts and allow-listed server-side procedures.

The repository never commits; callers own the transaction boundary.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, func, select, text
from sqlalchemy.orm import InstrumentedAttribute, Session

from db.base import Base
from db.repositories.errors import RecordNotFoundError, UnknownProcedureError

# Procedure name -> ordered argument names.
KNOWN_PROCEDURES: dict[str, tuple[str, ...]] = {
    "calculate_investment_ranking": ("target_year",),
    "calculate_workforce_ranking": ("target_year",),
    "calculate_subsector_ranking": ("target_year", "ranking_type"),
    "get_regional_project_pivot": (),
    "get_regional_workforce_pivot": (),
    "refresh_all_views": (),
    "refresh_summary_views": (),
}


class TableRepository:
    def __init__(self, session: Session, model: type[Base]) -> None:
        self._session = session
        self._model = model

    @property
    def model(self) -> type[Base]:
        return self._model

    def column(self, name: str) -> InstrumentedAttribute:
        attribute = getattr(self._model, name, None)
        if attribute is None or name not in self._model.__table__.columns:
            raise ValueError(f"{self._model.__tablename__} has no column {name!r}")
        return attribute

    def count(self, conditions: Sequence[ColumnElement[bool]]) -> int:
        stmt = select(func.count()).select_from(self._model).where(*conditions)
        return int(self._session.scalar(stmt) or 0)

    def fetch_slice(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[ColumnElement[Any]],
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Base]:
        stmt = select(self._model).where(*conditions).order_by(*order_by).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.scalars(stmt).all())

    def distinct_values(
        self,
        column_name: str,
        conditions: Sequence[ColumnElement[bool]] = (),
    ) -> list[Any]:
        column = self.column(column_name)
        stmt = select(column).where(column.is_not(None), *conditions).distinct()
        return list(self._session.scalars(stmt).all())

    def aggregate(
        self,
        conditions: Sequence[ColumnElement[bool]],
        expressions: Sequence[ColumnElement[Any]],
    ) -> dict[str, Any]:
        """Evaluate labelled aggregate expressions over the filtered rows in one statement."""
        stmt = select(*expressions).select_from(self._model).where(*conditions)
        return dict(self._session.execute(stmt).mappings().one())

    def grouped(
        self,
        conditions: Sequence[ColumnElement[bool]],
        group_columns: Sequence[str],
        expressions: Sequence[ColumnElement[Any]],
    ) -> list[dict[str, Any]]:
        keys = [self.column(name) for name in group_columns]
        stmt = (
            select(*keys, *expressions)
            .select_from(self._model)
            .where(*conditions)
            .group_by(*keys)
            .order_by(*keys)
        )
        return [dict(row) for row in self._session.execute(stmt).mappings().all()]

    def insert_rows(self, records: Sequence[Mapping[str, Any]]) -> list[Base]:
        """Stage one batch of rows and flush it so ids are assigned."""
        if not records:
            return []
        instances = [self._model(**dict(record)) for record in records]
        self._session.add_all(instances)
        self._session.flush()
        return instances

    def get(self, record_id: int) -> Base:
        instance = self._session.get(self._model, record_id)
        if instance is None:
            raise RecordNotFoundError(f"{self._model.__tablename__} record not found: {record_id}")
        return instance

    def update_row(self, record_id: int, changes: Mapping[str, Any]) -> Base:
        instance = self.get(record_id)
        for key, value in changes.items():
            self.column(key)
            setattr(instance, key, value)
        self._session.flush()
        return instance

    def call_procedure(self, name: str, **params: Any) -> list[dict[str, Any]]:
        return call_procedure(self._session, name, **params)


def call_procedure(session: Session, name: str, **params: Any) -> list[dict[str, Any]]:
    """
    Call an allow-listed server-side function and return its rows.
    """

    expected = KNOWN_PROCEDURES.get(name)
    if expected is None:
        raise UnknownProcedureError(f"Unknown procedure: {name!r}")
    if set(params) != set(expected):
        raise UnknownProcedureError(
            f"Procedure {name!r} expects arguments {list(expected)}, got {sorted(params)}"
        )

    placeholders = ", ".join(f":{arg}" for arg in expected)
    stmt = text(f"SELECT * FROM {name}({placeholders})")
    result = session.execute(stmt, params)
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]
