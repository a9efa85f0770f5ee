"""
app/services/query_service.py

Generic filtered / paginated / aggregated access to any registered dataset.

One DatasetQueryService instance serves every table; the per-table details
(filter schema, search columns, order key, page size, metrics) come from the
DatasetSpec passed to each call.

Every backend failure is logged here and re-raised as DatasetQueryError so
callers can show one retryable error state. Nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from decimal import Decimal
from functools import lru_cache
from typing import Any

from sqlalchemy import ColumnElement, case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_dashboard_settings
from app.domain.datasets import DatasetSpec, MetricSpec
from app.domain.results import PageResult, total_pages_for
from app.services.coercion import coerce_record
from app.services.filters import build_conditions, normalize_filters
from db.repositories.errors import BulkInsertError
from db.repositories.table_repository import TableRepository

logger = logging.getLogger(__name__)


class DatasetQueryError(RuntimeError):
    """
    Raised when the backend rejects or fails a dataset query.
    """

    def __init__(self, message: str, *, dataset: str, operation: str) -> None:
        super().__init__(message)
        self.dataset = dataset
        self.operation = operation


def _as_number(value: Any) -> int | float:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)


class DatasetQueryService:
    """
    List, discover, summarise and write rows of one dataset at a time.
    """

    def __init__(self, *, refresh_views: bool = True) -> None:
        self._refresh_views = refresh_views

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_page(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None = None,
        *,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult:
        """
        Return rows `[(page-1)*size, page*size)` of the filtered dataset and
        the exact filtered row count.

        Rows are ordered by the dataset order key with the primary key as a
        final tie-breaker, so consecutive pages never overlap. An empty match
        is a normal result, not an error.
        """

        size = page_size or spec.page_size
        if page < 1:
            raise ValueError("page must be >= 1.")
        if size < 1:
            raise ValueError("page_size must be >= 1.")

        normalized = normalize_filters(spec, filters)
        conditions = build_conditions(spec, normalized)
        repository = TableRepository(db, spec.model)

        with self._guard(spec, "list"):
            total_count = repository.count(conditions)
            rows: list[dict[str, Any]] = []
            if total_count > (page - 1) * size:
                instances = repository.fetch_slice(
                    conditions,
                    self._order_by(repository, spec),
                    offset=(page - 1) * size,
                    limit=size,
                )
                rows = [instance.to_dict() for instance in instances]

        logger.debug(
            "Listed dataset=%r page=%d size=%d rows=%d total=%d",
            spec.name,
            page,
            size,
            len(rows),
            total_count,
        )
        return PageResult(
            rows=rows,
            total_count=total_count,
            total_pages=total_pages_for(total_count, size),
            current_page=page,
            page_size=size,
        )

    def fetch_rows(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None = None,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Every filtered row in display order, optionally capped at `limit`."""
        conditions = build_conditions(spec, normalize_filters(spec, filters))
        repository = TableRepository(db, spec.model)
        with self._guard(spec, "fetch"):
            instances = repository.fetch_slice(
                conditions,
                self._order_by(repository, spec),
                limit=limit,
            )
        return [instance.to_dict() for instance in instances]

    def filter_options(self, db: Session, spec: DatasetSpec) -> dict[str, list[Any]]:
        """
        Distinct non-null values of every option-backed filter, ascending.

        Recomputed on every call.
        """

        repository = TableRepository(db, spec.model)
        base_conditions = build_conditions(spec, {})
        options: dict[str, list[Any]] = {}
        with self._guard(spec, "filter_options"):
            for field in spec.option_filters:
                values = repository.distinct_values(field.column, base_conditions)
                options[field.name] = sorted(set(values))
        return options

    def available_years(self, db: Session, spec: DatasetSpec) -> list[int]:
        """Distinct years present in the dataset, newest first."""
        if spec.fixed_years:
            return sorted(spec.fixed_years, reverse=True)
        if not spec.year_column:
            return []

        repository = TableRepository(db, spec.model)
        with self._guard(spec, "available_years"):
            years = repository.distinct_values(spec.year_column, build_conditions(spec, {}))
        return sorted({int(year) for year in years}, reverse=True)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def summary_metrics(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[str, int | float]:
        """
        Named totals over the whole filtered set, computed by the backend in
        one aggregate statement. Ratios are derived from the aggregated
        numerator and denominator; a zero denominator yields 0.0.
        """

        normalized = normalize_filters(spec, filters)
        conditions = build_conditions(spec, normalized)
        repository = TableRepository(db, spec.model)

        expressions = [
            expression
            for metric in spec.metrics
            if (expression := self._metric_expression(repository, metric)) is not None
        ]

        metrics: dict[str, int | float] = {}
        with self._guard(spec, "summary"):
            if expressions:
                raw = repository.aggregate(conditions, expressions)
                metrics.update({name: _as_number(value) for name, value in raw.items()})

            for metric in spec.metrics:
                if metric.kind == "growth":
                    metrics[metric.name] = self._growth_rate(repository, spec, normalized, metric)

        for metric in spec.metrics:
            if metric.kind == "ratio":
                numerator = metrics.get(metric.numerator or "", 0)
                denominator = metrics.get(metric.denominator or "", 0)
                metrics[metric.name] = (
                    round(numerator / denominator * 100, 2) if denominator else 0.0
                )

        return {metric.name: metrics.get(metric.name, 0) for metric in spec.metrics}

    def grand_total(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[str, int | float]:
        """Sum of every numeric column over the full filtered set."""
        if not spec.numeric_columns:
            return {}

        conditions = build_conditions(spec, normalize_filters(spec, filters))
        repository = TableRepository(db, spec.model)
        expressions = [
            func.coalesce(func.sum(repository.column(name)), 0).label(name)
            for name in spec.numeric_columns
        ]
        with self._guard(spec, "grand_total"):
            raw = repository.aggregate(conditions, expressions)
        return {name: _as_number(raw.get(name)) for name in spec.numeric_columns}

    def grouped_totals(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None,
        *,
        group_by: Sequence[str],
        sum_columns: Sequence[str],
    ) -> list[dict[str, Any]]:
        """Sums of `sum_columns` per distinct `group_by` combination, ordered by the group keys."""
        conditions = build_conditions(spec, normalize_filters(spec, filters))
        repository = TableRepository(db, spec.model)
        expressions = [
            func.coalesce(func.sum(repository.column(name)), 0).label(name)
            for name in sum_columns
        ]
        with self._guard(spec, "grouped_totals"):
            rows = repository.grouped(conditions, group_by, expressions)
        for row in rows:
            for name in sum_columns:
                row[name] = _as_number(row[name])
        return rows

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def bulk_insert(
        self,
        db: Session,
        spec: DatasetSpec,
        records: Sequence[Mapping[str, Any]],
        *,
        refresh: bool = True,
        batch_number: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Insert one batch in a single transaction and return the stored rows.

        A rejected batch is rolled back and raised as BulkInsertError with the
        backend message and `batch_number`. On success the dataset's
        server-side aggregates are refreshed when it has a refresh procedure
        and `refresh` is set.
        """

        if not records:
            return []

        allowed = set(spec.model_columns())
        for record in records:
            unknown = set(record) - allowed
            if unknown:
                raise ValueError(
                    f"Unknown column(s) for {spec.name}: {sorted(unknown)}"
                )

        repository = TableRepository(db, spec.model)
        try:
            instances = repository.insert_rows(records)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            message = str(getattr(exc, "orig", None) or exc)
            logger.error(
                "Bulk insert rejected dataset=%r batch=%s rows=%d: %s",
                spec.name,
                batch_number,
                len(records),
                message,
            )
            raise BulkInsertError(message, batch_number=batch_number) from exc

        inserted = [instance.to_dict() for instance in instances]
        logger.info("Bulk insert dataset=%r rows=%d", spec.name, len(inserted))

        if refresh:
            self.refresh_aggregates(db, spec)
        return inserted

    def refresh_aggregates(self, db: Session, spec: DatasetSpec) -> bool:
        """
        Ask the backend to rebuild materialised summaries for the dataset.

        Returns False when there is nothing to refresh or the refresh failed;
        the inserted rows are already committed either way.
        """

        if not (self._refresh_views and spec.refresh_procedure):
            return False

        repository = TableRepository(db, spec.model)
        try:
            repository.call_procedure(spec.refresh_procedure)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Aggregate refresh failed dataset=%r procedure=%r: %s",
                spec.name,
                spec.refresh_procedure,
                exc,
            )
            return False
        return True

    def update_record(
        self,
        db: Session,
        spec: DatasetSpec,
        record_id: int,
        changes: Mapping[str, Any],
    ) -> dict[str, Any]:
        """
        Apply an inline edit to one row and return the stored row.

        Raises ValueError for read-only datasets or unknown columns, and
        RecordNotFoundError when the id does not exist.
        """

        if not spec.editable:
            raise ValueError(f"Dataset {spec.name!r} is read-only.")
        if not changes:
            raise ValueError("No changes supplied.")
        unknown = set(changes) - set(spec.model_columns())
        if unknown:
            raise ValueError(f"Unknown column(s) for {spec.name}: {sorted(unknown)}")

        repository = TableRepository(db, spec.model)
        with self._guard(spec, "update"):
            try:
                instance = repository.update_row(record_id, coerce_record(spec.model, changes))
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        logger.info("Updated dataset=%r id=%s columns=%s", spec.name, record_id, sorted(changes))
        return instance.to_dict()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self, spec: DatasetSpec, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Dataset query failed dataset=%r operation=%s", spec.name, operation)
            raise DatasetQueryError(
                f"Query {operation!r} failed for dataset {spec.name!r}.",
                dataset=spec.name,
                operation=operation,
            ) from exc

    @staticmethod
    def _order_by(repository: TableRepository, spec: DatasetSpec) -> list[ColumnElement[Any]]:
        order: list[ColumnElement[Any]] = []
        for key in spec.order_by:
            column = repository.column(key.column)
            order.append(column.desc() if key.descending else column.asc())
        order.append(repository.column("id").asc())
        return order

    @staticmethod
    def _metric_expression(
        repository: TableRepository,
        metric: MetricSpec,
    ) -> ColumnElement[Any] | None:
        if metric.kind == "count":
            return func.count().label(metric.name)
        if metric.kind == "sum":
            return func.coalesce(func.sum(repository.column(metric.column)), 0).label(metric.name)
        if metric.kind == "count_distinct":
            return func.count(func.distinct(repository.column(metric.column))).label(metric.name)
        if metric.kind == "count_where":
            matches = repository.column(metric.where_column) == metric.equals
            return func.coalesce(func.sum(case((matches, 1), else_=0)), 0).label(metric.name)
        if metric.kind == "sum_where":
            matches = repository.column(metric.where_column) == metric.equals
            value = case((matches, repository.column(metric.column)), else_=0)
            return func.coalesce(func.sum(value), 0).label(metric.name)
        return None

    @staticmethod
    def _growth_rate(
        repository: TableRepository,
        spec: DatasetSpec,
        filters: Mapping[str, Any],
        metric: MetricSpec,
    ) -> float:
        """
        Percent change of sum(metric.column) from the previous year to the
        selected year (or the latest year when no year filter is active).
        """

        if not spec.year_column:
            return 0.0

        year_filters = {
            field.name
            for field in spec.filters
            if field.column == spec.year_column and field.kind == "int"
        }
        selected = next((filters[name] for name in year_filters if name in filters), None)
        other_filters = {key: value for key, value in filters.items() if key not in year_filters}
        conditions = build_conditions(spec, other_filters)
        year_column = repository.column(spec.year_column)

        if selected is None:
            latest = repository.aggregate(conditions, [func.max(year_column).label("latest")])
            selected = latest.get("latest")
        if selected is None:
            return 0.0

        current_year = int(selected)
        totals = repository.grouped(
            [*conditions, year_column.in_([current_year, current_year - 1])],
            [spec.year_column],
            [func.coalesce(func.sum(repository.column(metric.column)), 0).label("total")],
        )
        by_year = {int(row[spec.year_column]): _as_number(row["total"]) for row in totals}
        previous = by_year.get(current_year - 1, 0)
        if not previous:
            return 0.0
        return round((by_year.get(current_year, 0) - previous) / previous * 100, 2)


@lru_cache(maxsize=1)
def get_dataset_query_service() -> DatasetQueryService:
    """
    Build and cache the query service with env-driven settings.
    """

    settings = get_dashboard_settings()
    return DatasetQueryService(refresh_views=settings.refresh_views_after_insert)
