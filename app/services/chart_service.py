"""
app/services/chart_service.py

Series for the dashboard chart panels.

Every series is built from backend aggregates (grouped sums) of one
registered dataset and shaped into plain records a chart can plot.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.domain.dataset_registry import get_dataset
from app.services.query_service import DatasetQueryService, get_dataset_query_service
from db.models.analysis import QUARTERS

logger = logging.getLogger(__name__)

TRILLION = 1_000_000_000_000

QUARTERLY_SERIES: dict[str, str] = {
    "investment_analysis": "investment_amount",
    "workforce_analysis": "worker_count",
}


class ChartService:
    def __init__(self, *, query_service: DatasetQueryService) -> None:
        self._query_service = query_service

    def investment_trend(
        self,
        db: Session,
        *,
        year: int | None = None,
        last: int = 8,
    ) -> list[dict[str, Any]]:
        """
        PMA vs PMDN investment (rupiah, in trillions) per year and period,
        oldest first, limited to the last `last` periods.
        """

        spec = get_dataset("ekraf_analysis")
        rows = self._query_service.grouped_totals(
            db,
            spec,
            {"tahun": year},
            group_by=("tahun", "periode", "status_modal"),
            sum_columns=("tambahan_investasi_rp",),
        )

        points: dict[tuple[int, str], dict[str, Any]] = {}
        for row in rows:
            key = (int(row["tahun"]), row["periode"] or "")
            point = points.setdefault(
                key,
                {"period": f"{key[0]} {key[1]}".strip(), "year": key[0], "pma": 0.0, "pmdn": 0.0},
            )
            status = str(row["status_modal"] or "").lower()
            if status in {"pma", "pmdn"}:
                point[status] += row["tambahan_investasi_rp"] / TRILLION

        series = [points[key] for key in sorted(points)]
        return series[-last:] if last > 0 else series

    def quarterly_breakdown(
        self,
        db: Session,
        dataset: str,
        *,
        start_year: int | None = None,
        end_year: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Year x quarter grid (TW-I .. TW-IV plus a total) for the quarterly
        investment or workforce dataset.
        """

        value_column = QUARTERLY_SERIES.get(dataset)
        if value_column is None:
            raise ValueError(f"Unknown quarterly dataset {dataset!r}. Must be one of: {sorted(QUARTERLY_SERIES)}.")

        rows = self._query_service.grouped_totals(
            db,
            get_dataset(dataset),
            {"start_year": start_year, "end_year": end_year},
            group_by=("year", "quarter"),
            sum_columns=(value_column,),
        )

        grid: dict[int, dict[str, Any]] = {}
        for row in rows:
            year = int(row["year"])
            entry = grid.setdefault(year, {"year": year, **{quarter: 0 for quarter in QUARTERS}, "total": 0})
            if row["quarter"] in QUARTERS:
                entry[row["quarter"]] += row[value_column]
            entry["total"] += row[value_column]
        return [grid[year] for year in sorted(grid)]

    def yearly_totals(
        self,
        db: Session,
        dataset: str,
        value_column: str,
    ) -> list[dict[str, Any]]:
        spec = get_dataset(dataset)
        if not spec.year_column:
            raise ValueError(f"Dataset {dataset!r} has no year column.")
        rows = self._query_service.grouped_totals(
            db,
            spec,
            None,
            group_by=(spec.year_column,),
            sum_columns=(value_column,),
        )
        return [{"year": int(row[spec.year_column]), "value": row[value_column]} for row in rows]

    def top_groups(
        self,
        db: Session,
        dataset: str,
        *,
        year: int | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """
        Ranked project and workforce totals per name from one of the labour
        ranking tables (region or subsector), largest project count first.
        """

        spec = get_dataset(dataset)
        rows = self._query_service.grouped_totals(
            db,
            spec,
            {"year": year},
            group_by=("name",),
            sum_columns=("project_count", "labor_count"),
        )
        rows.sort(key=lambda row: (-row["project_count"], row["name"]))
        return [
            {"name": row["name"], "projects": row["project_count"], "workers": row["labor_count"]}
            for row in (rows[:limit] if limit > 0 else rows)
        ]

    def subsector_chart(
        self,
        db: Session,
        *,
        year: int | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Top subsectors by project count with their rupiah investment in trillions."""
        groups = self.top_groups(db, "labor_subsector", year=year, limit=limit)
        investment = {
            row["name"]: row["investment_idr"]
            for row in self._query_service.grouped_totals(
                db,
                get_dataset("attachment_subsector"),
                {"year": year},
                group_by=("name",),
                sum_columns=("investment_idr",),
            )
        }
        for group in groups:
            amount = investment.get(group["name"], 0)
            group["investment_amount"] = amount
            group["investment"] = amount / TRILLION
        return groups

    def comparison(
        self,
        db: Session,
        *,
        regions: Sequence[str] = (),
        years: Sequence[int] = (),
    ) -> list[dict[str, Any]]:
        """
        Projects, workers and investment per (region, year) with year-on-year
        project growth, sorted by region then year.
        """

        filters = {"names": list(regions), "years": [str(year) for year in years]}
        labor_rows = self._query_service.fetch_rows(db, get_dataset("labor_region"), filters)
        investment = {
            (row["name"], int(row["year"])): row["investment_idr"]
            for row in self._query_service.grouped_totals(
                db,
                get_dataset("attachment_region"),
                filters,
                group_by=("name", "year"),
                sum_columns=("investment_idr",),
            )
        }

        by_region: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in labor_rows:
            by_region[row["name"]].append(
                {
                    "region": row["name"],
                    "year": int(row["year"]),
                    "companies": row["project_count"],
                    "workers": row["labor_count"],
                    "investment": investment.get((row["name"], int(row["year"])), 0),
                    "growth": 0.0,
                }
            )

        points: list[dict[str, Any]] = []
        for region in sorted(by_region):
            series = sorted(by_region[region], key=lambda point: point["year"])
            for previous, current in zip(series, series[1:]):
                if previous["companies"] > 0:
                    current["growth"] = round(
                        (current["companies"] - previous["companies"]) / previous["companies"] * 100,
                        2,
                    )
            points.extend(series)

        logger.debug("Comparison regions=%d points=%d", len(by_region), len(points))
        return points


@lru_cache(maxsize=1)
def get_chart_service() -> ChartService:
    return ChartService(query_service=get_dataset_query_service())
