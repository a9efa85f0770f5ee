"""
app/domain/datasets.py

Declarative description of one dashboard dataset.

A DatasetSpec carries everything the generic query, export and import
services need to know about a table: visible columns, the filter schema,
free-text search columns, the order key, page size and summary metrics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from db.base import Base

FILTER_KINDS: frozenset[str] = frozenset({"eq", "contains", "gte", "lte", "in", "bool", "int"})
METRIC_KINDS: frozenset[str] = frozenset(
    {"sum", "count", "count_where", "sum_where", "count_distinct", "ratio", "growth"}
)
GRAND_TOTAL_SCOPES: frozenset[str] = frozenset({"page", "filtered"})


class UnknownDatasetError(LookupError):
    """Raised when a dataset name is not registered."""


@dataclass(frozen=True)
class ColumnSpec:
    """One visible table column; `label` doubles as the CSV header."""

    key: str
    label: str
    numeric: bool = False


@dataclass(frozen=True)
class FilterField:
    """
    One user-facing filter.

    kind:
      eq        exact match
      contains  case-insensitive substring
      gte / lte inclusive range bound (integer)
      in        membership in a list
      bool      boolean flag
      int       exact integer match (year filters)
    """

    name: str
    column: str
    kind: str = "eq"
    label: str | None = None
    options: bool | None = None

    def __post_init__(self) -> None:
        if self.kind not in FILTER_KINDS:
            raise ValueError(f"Unknown filter kind {self.kind!r} for {self.name!r}")

    @property
    def has_options(self) -> bool:
        """Whether the filter is populated from the column's distinct values."""
        if self.options is not None:
            return self.options
        return self.kind in {"eq", "in", "int", "bool"}

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()


@dataclass(frozen=True)
class OrderKey:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class MetricSpec:
    """
    One named summary total.

    sum / count_distinct   aggregate `column`
    count                  row count
    count_where            rows where `where_column == equals`
    sum_where              sum of `column` over rows where `where_column == equals`
    ratio                  numerator / denominator * 100, both metric names
    growth                 percent change of sum(`column`) between the latest
                           year in scope and the year before
    """

    name: str
    kind: str
    column: str | None = None
    where_column: str | None = None
    equals: Any = None
    numerator: str | None = None
    denominator: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in METRIC_KINDS:
            raise ValueError(f"Unknown metric kind {self.kind!r} for {self.name!r}")
        if self.kind in {"sum", "count_distinct", "sum_where", "growth"} and not self.column:
            raise ValueError(f"Metric {self.name!r} needs a column")
        if self.kind in {"count_where", "sum_where"} and not self.where_column:
            raise ValueError(f"Metric {self.name!r} needs a where_column")
        if self.kind == "ratio" and not (self.numerator and self.denominator):
            raise ValueError(f"Metric {self.name!r} needs numerator and denominator")


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    title: str
    model: type[Base]
    columns: tuple[ColumnSpec, ...]
    filters: tuple[FilterField, ...] = ()
    search_columns: tuple[str, ...] = ()
    order_by: tuple[OrderKey, ...] = ()
    page_size: int = 10
    year_column: str | None = None
    fixed_years: tuple[int, ...] = ()
    fixed_filters: tuple[tuple[str, Any], ...] = ()
    metrics: tuple[MetricSpec, ...] = ()
    grand_total_scope: str = "page"
    importable: bool = False
    editable: bool = False
    required_import_field: str | None = None
    import_aliases: tuple[tuple[str, str], ...] = ()
    template_headers: tuple[str, ...] = ()
    template_example: tuple[str, ...] = ()
    refresh_procedure: str | None = None
    export_prefix: str | None = None

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive for {self.name!r}")
        if self.grand_total_scope not in GRAND_TOTAL_SCOPES:
            raise ValueError(f"Unknown grand_total_scope {self.grand_total_scope!r}")
        if self.importable and not self.required_import_field:
            raise ValueError(f"Importable dataset {self.name!r} needs a required_import_field")

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def numeric_columns(self) -> tuple[str, ...]:
        return tuple(column.key for column in self.columns if column.numeric)

    @property
    def column_keys(self) -> tuple[str, ...]:
        return tuple(column.key for column in self.columns)

    @property
    def option_filters(self) -> tuple[FilterField, ...]:
        return tuple(item for item in self.filters if item.has_options)

    def filter_field(self, name: str) -> FilterField | None:
        for item in self.filters:
            if item.name == name:
                return item
        return None

    def model_columns(self) -> tuple[str, ...]:
        """Writable model columns (everything but the key and timestamps)."""
        skipped = {"id", "created_at", "updated_at"}
        return tuple(
            column.key for column in self.model.__table__.columns if column.key not in skipped
        )
