"""
app/services/pivot_service.py

Region/subsector x year pivot tables with PMA / PMDN breakdown.

`reshape_pivot` is pure: it turns long-form aggregate rows
(key, year, status, value) into groups of

    <key>  PMA    y1 y2 ... total
           PMDN   y1 y2 ... total
           Total  y1 y2 ... total

followed by one grand-total row. Only PMA and PMDN rows are read; any
pre-computed "Total" rows in the source are ignored so that every subtotal
cell is exactly pma + pmdn.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.dataset_registry import get_dataset
from app.services.query_service import DatasetQueryError, DatasetQueryService, get_dataset_query_service
from app.services.ranking_service import ProcedureCaller
from db.models.creative_economy import CAPITAL_STATUSES
from db.repositories.table_repository import call_procedure

logger = logging.getLogger(__name__)

PIVOT_METRICS: dict[str, str] = {
    "projects": "project_count",
    "workforce": "worker_count",
    "investment": "investment_amount",
}

# Pivot metric -> procedure returning wide rows (kabupaten_kota, status_modal, year_YYYY ..., grand_total).
PIVOT_PROCEDURES: dict[str, str] = {
    "projects": "get_regional_project_pivot",
    "workforce": "get_regional_workforce_pivot",
}

_YEAR_COLUMN_PREFIX = "year_"


@dataclass
class PivotRow:
    label: str
    values: dict[int, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return sum(self.values.values())

    def add(self, year: int, amount: float) -> None:
        self.values[year] = self.values.get(year, 0) + amount

    def as_dict(self, years: Iterable[int]) -> dict[str, Any]:
        payload: dict[str, Any] = {"label": self.label}
        for year in years:
            payload[str(year)] = self.values.get(year, 0)
        payload["total"] = self.total
        return payload


@dataclass
class PivotGroup:
    key: str
    rows: dict[str, PivotRow]
    subtotal: PivotRow


@dataclass
class PivotTable:
    years: list[int]
    groups: list[PivotGroup]
    grand_total: PivotRow

    def to_records(self) -> list[dict[str, Any]]:
        """Flatten into display rows: one per status, one subtotal per group, then the grand total."""
        records: list[dict[str, Any]] = []
        for group in self.groups:
            for status in CAPITAL_STATUSES:
                records.append({"group": group.key, **group.rows[status].as_dict(self.years)})
            records.append({"group": group.key, **group.subtotal.as_dict(self.years)})
        records.append({"group": "Grand Total", **self.grand_total.as_dict(self.years)})
        return records


def reshape_pivot(
    rows: Iterable[Mapping[str, Any]],
    *,
    key_field: str = "region",
    year_field: str = "year",
    status_field: str = "status",
    value_field: str = "value",
) -> PivotTable:
    years: set[int] = set()
    groups: dict[str, PivotGroup] = {}
    grand_total = PivotRow(label="Grand Total")

    for row in rows:
        status = str(row.get(status_field) or "").upper()
        if status not in CAPITAL_STATUSES:
            continue
        key = row.get(key_field)
        year = row.get(year_field)
        if key is None or year is None:
            continue

        year = int(year)
        amount = row.get(value_field) or 0
        years.add(year)

        group = groups.get(key)
        if group is None:
            group = PivotGroup(
                key=key,
                rows={name: PivotRow(label=name) for name in CAPITAL_STATUSES},
                subtotal=PivotRow(label="Total"),
            )
            groups[key] = group

        group.rows[status].add(year, amount)
        group.subtotal.add(year, amount)
        grand_total.add(year, amount)

    return PivotTable(
        years=sorted(years),
        groups=[groups[key] for key in sorted(groups)],
        grand_total=grand_total,
    )


def melt_year_columns(
    rows: Iterable[Mapping[str, Any]],
    *,
    key_field: str = "kabupaten_kota",
    status_field: str = "status_modal",
) -> list[dict[str, Any]]:
    """
    Turn wide rows with `year_YYYY` columns into long (region, year, status, value) rows.
    """

    long_rows: list[dict[str, Any]] = []
    for row in rows:
        for column, value in row.items():
            if not column.startswith(_YEAR_COLUMN_PREFIX):
                continue
            year_text = column[len(_YEAR_COLUMN_PREFIX) :]
            if not year_text.isdigit():
                continue
            long_rows.append(
                {
                    "region": row.get(key_field),
                    "year": int(year_text),
                    "status": row.get(status_field),
                    "value": value or 0,
                }
            )
    return long_rows


class PivotService:
    """
    Loads regional long-form aggregates and reshapes them into pivots.
    """

    def __init__(
        self,
        *,
        query_service: DatasetQueryService,
        procedure_caller: ProcedureCaller = call_procedure,
    ) -> None:
        self._query_service = query_service
        self._call = procedure_caller

    def regional_pivot(
        self,
        db: Session,
        metric: str,
        *,
        filters: Mapping[str, Any] | None = None,
    ) -> PivotTable:
        column = PIVOT_METRICS.get(metric)
        if column is None:
            raise ValueError(f"Unknown pivot metric {metric!r}. Must be one of: {sorted(PIVOT_METRICS)}.")

        spec = get_dataset("regional_analysis")
        rows = self._query_service.grouped_totals(
            db,
            spec,
            filters,
            group_by=("region", "year", "status"),
            sum_columns=(column,),
        )
        table = reshape_pivot(rows, value_field=column)
        logger.info(
            "Regional pivot metric=%r groups=%d years=%d",
            metric,
            len(table.groups),
            len(table.years),
        )
        return table

    def record_pivot(self, db: Session, metric: str) -> PivotTable:
        """
        Pivot of the main investment records, pre-aggregated by the backend.
        """

        procedure = PIVOT_PROCEDURES.get(metric)
        if procedure is None:
            raise ValueError(f"Unknown pivot metric {metric!r}. Must be one of: {sorted(PIVOT_PROCEDURES)}.")

        try:
            wide_rows = self._call(db, procedure)
        except SQLAlchemyError as exc:
            logger.exception("Pivot procedure failed procedure=%r", procedure)
            raise DatasetQueryError(
                f"Pivot {metric!r} failed.",
                dataset="ekraf_analysis",
                operation=procedure,
            ) from exc
        return reshape_pivot(melt_year_columns(wide_rows))


@lru_cache(maxsize=1)
def get_pivot_service() -> PivotService:
    return PivotService(query_service=get_dataset_query_service())
