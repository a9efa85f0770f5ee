"""
app/api/routers/datasets.py

Generic dataset endpoints: listing, filter discovery, summaries and inline
edits for every registered dataset.

Filters are passed as plain query parameters named after the dataset's
filter fields (e.g. `?tahun=2024&status_modal=PMA&search=bandung`); the
value "all" or an empty value means "no filter". Unknown names are ignored.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dependencies import get_dataset_spec, get_query_filters
from app.api.errors import service_errors
from app.domain.dataset_registry import list_datasets
from app.domain.datasets import DatasetSpec
from app.domain.results import page_totals
from app.schemas.datasets import (
    DatasetInfoResponse,
    FilterOptionsResponse,
    GrandTotalResponse,
    PageResponse,
    RecordResponse,
    RecordUpdateRequest,
    SummaryResponse,
    YearsResponse,
)
from app.services.query_service import DatasetQueryService, get_dataset_query_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["datasets"])


@router.get("", response_model=list[DatasetInfoResponse])
def get_datasets() -> list[DatasetInfoResponse]:
    return [DatasetInfoResponse.from_spec(spec) for spec in list_datasets()]


@router.get("/{name}", response_model=DatasetInfoResponse)
def get_dataset_info(spec: DatasetSpec = Depends(get_dataset_spec)) -> DatasetInfoResponse:
    return DatasetInfoResponse.from_spec(spec)


@router.get("/{name}/rows", response_model=PageResponse)
def list_rows(
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
    spec: DatasetSpec = Depends(get_dataset_spec),
    filters: dict[str, Any] = Depends(get_query_filters),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> PageResponse:
    """
    One page of the filtered dataset plus the exact filtered row count.
    """

    with service_errors(f"List {spec.name}"):
        result = service.list_page(db, spec, filters, page=page, page_size=page_size)
    return PageResponse.from_result(spec.name, result)


@router.get("/{name}/filter-options", response_model=FilterOptionsResponse)
def get_filter_options(
    spec: DatasetSpec = Depends(get_dataset_spec),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> FilterOptionsResponse:
    with service_errors(f"Filter options for {spec.name}"):
        options = service.filter_options(db, spec)
    return FilterOptionsResponse(dataset=spec.name, options=options)


@router.get("/{name}/summary", response_model=SummaryResponse)
def get_summary(
    spec: DatasetSpec = Depends(get_dataset_spec),
    filters: dict[str, Any] = Depends(get_query_filters),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> SummaryResponse:
    with service_errors(f"Summary for {spec.name}"):
        metrics = service.summary_metrics(db, spec, filters)
    return SummaryResponse(dataset=spec.name, metrics=metrics)


@router.get("/{name}/grand-total", response_model=GrandTotalResponse)
def get_grand_total(
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
    spec: DatasetSpec = Depends(get_dataset_spec),
    filters: dict[str, Any] = Depends(get_query_filters),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> GrandTotalResponse:
    """
    Grand-total row in the dataset's scope: the visible page, or every
    filtered row.
    """

    with service_errors(f"Grand total for {spec.name}"):
        if spec.grand_total_scope == "filtered":
            totals = service.grand_total(db, spec, filters)
        else:
            result = service.list_page(db, spec, filters, page=page, page_size=page_size)
            totals = page_totals(result.rows, spec.numeric_columns)
    return GrandTotalResponse(dataset=spec.name, scope=spec.grand_total_scope, totals=totals)


@router.get("/{name}/years", response_model=YearsResponse)
def get_years(
    spec: DatasetSpec = Depends(get_dataset_spec),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> YearsResponse:
    with service_errors(f"Years for {spec.name}"):
        years = service.available_years(db, spec)
    return YearsResponse(dataset=spec.name, years=years)


@router.patch("/{name}/rows/{record_id}", response_model=RecordResponse)
def update_row(
    record_id: int,
    payload: RecordUpdateRequest,
    spec: DatasetSpec = Depends(get_dataset_spec),
    db: Session = Depends(get_db),
    service: DatasetQueryService = Depends(get_dataset_query_service),
) -> RecordResponse:
    with service_errors(f"Update {spec.name}"):
        record = service.update_record(db, spec, record_id, payload.changes)
    return RecordResponse(dataset=spec.name, record=record)
