"""
app/schemas/analytics.py

Response schemas for pivot, ranking and chart endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.services.pivot_service import PivotTable


class PivotResponse(BaseModel):
    """
    Flattened pivot: per group one row per capital status plus a "Total"
    row, then one "Grand Total" row. Year cells are keyed by the year.
    """

    metric: str
    source: str
    years: list[int]
    rows: list[dict[str, Any]]

    @classmethod
    def from_table(cls, metric: str, source: str, table: PivotTable) -> PivotResponse:
        return cls(metric=metric, source=source, years=table.years, rows=table.to_records())


class RankingPageResponse(BaseModel):
    kind: str
    year: int
    rows: list[dict[str, Any]]
    total_count: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)


class ChartSeriesResponse(BaseModel):
    chart: str
    points: list[dict[str, Any]]


class RefreshResponse(BaseModel):
    procedure: str
    refreshed: bool
