"""
app/api/routers/analytics.py

Pivot, ranking and chart endpoints.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import get_query_filters
from app.api.errors import service_errors
from app.schemas.analytics import ChartSeriesResponse, PivotResponse, RankingPageResponse, RefreshResponse
from app.services.chart_service import ChartService, get_chart_service
from app.services.pivot_service import PivotService, get_pivot_service
from app.services.query_service import DatasetQueryError
from app.services.ranking_service import RankingService, get_ranking_service
from db.repositories.table_repository import call_procedure
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])

REFRESH_PROCEDURE = "refresh_all_views"


@router.get("/pivot/{metric}", response_model=PivotResponse)
def get_pivot(
    metric: str,
    source: str = Query(default="regional", pattern="^(regional|records)$"),
    filters: dict[str, Any] = Depends(get_query_filters),
    db: Session = Depends(get_db),
    service: PivotService = Depends(get_pivot_service),
) -> PivotResponse:
    """
    Region x year pivot with PMA / PMDN / Total rows per region.

    source=regional aggregates the regional analysis table (filters apply);
    source=records uses the backend pivot over the main investment records.
    """

    with service_errors(f"Pivot {metric}"):
        if source == "records":
            table = service.record_pivot(db, metric)
        else:
            table = service.regional_pivot(db, metric, filters=filters)
    return PivotResponse.from_table(metric, source, table)


@router.get("/ranking/{kind}", response_model=RankingPageResponse)
def get_ranking(
    kind: str,
    year: int = Query(..., ge=2000, le=2100),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    service: RankingService = Depends(get_ranking_service),
) -> RankingPageResponse:
    with service_errors(f"Ranking {kind}"):
        result = service.ranking(db, kind, year=year, page=page, page_size=page_size)
    return RankingPageResponse(
        kind=kind,
        year=year,
        rows=result.rows,
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.current_page,
        page_size=result.page_size,
    )


@router.get("/trend", response_model=ChartSeriesResponse)
def get_investment_trend(
    year: int | None = Query(default=None),
    last: int = Query(default=8, ge=1, le=100),
    db: Session = Depends(get_db),
    service: ChartService = Depends(get_chart_service),
) -> ChartSeriesResponse:
    with service_errors("Investment trend"):
        points = service.investment_trend(db, year=year, last=last)
    return ChartSeriesResponse(chart="investment_trend", points=points)


@router.get("/quarterly/{dataset}", response_model=ChartSeriesResponse)
def get_quarterly(
    dataset: str,
    start_year: int | None = Query(default=None),
    end_year: int | None = Query(default=None),
    db: Session = Depends(get_db),
    service: ChartService = Depends(get_chart_service),
) -> ChartSeriesResponse:
    with service_errors(f"Quarterly breakdown {dataset}"):
        points = service.quarterly_breakdown(db, dataset, start_year=start_year, end_year=end_year)
    return ChartSeriesResponse(chart=f"quarterly_{dataset}", points=points)


@router.get("/top/{dataset}", response_model=ChartSeriesResponse)
def get_top_groups(
    dataset: str,
    year: int | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    service: ChartService = Depends(get_chart_service),
) -> ChartSeriesResponse:
    with service_errors(f"Top groups {dataset}"):
        points = service.top_groups(db, dataset, year=year, limit=limit)
    return ChartSeriesResponse(chart=f"top_{dataset}", points=points)


@router.get("/subsectors", response_model=ChartSeriesResponse)
def get_subsectors(
    year: int | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    service: ChartService = Depends(get_chart_service),
) -> ChartSeriesResponse:
    with service_errors("Subsector chart"):
        points = service.subsector_chart(db, year=year, limit=limit)
    return ChartSeriesResponse(chart="subsectors", points=points)


@router.get("/comparison", response_model=ChartSeriesResponse)
def get_comparison(
    region: list[str] = Query(default=[]),
    year: list[int] = Query(default=[]),
    db: Session = Depends(get_db),
    service: ChartService = Depends(get_chart_service),
) -> ChartSeriesResponse:
    with service_errors("Regional comparison"):
        points = service.comparison(db, regions=region, years=year)
    return ChartSeriesResponse(chart="comparison", points=points)


@router.post("/refresh", response_model=RefreshResponse)
def refresh_views(db: Session = Depends(get_db)) -> RefreshResponse:
    """
    Rebuild every server-side summary view.
    """

    with service_errors("Refresh views"):
        try:
            call_procedure(db, REFRESH_PROCEDURE)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise DatasetQueryError(
                "Summary view refresh failed.", dataset="*", operation=REFRESH_PROCEDURE
            ) from exc
    logger.info("Summary views refreshed")
    return RefreshResponse(procedure=REFRESH_PROCEDURE, refreshed=True)
