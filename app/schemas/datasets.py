"""
app/schemas/datasets.py

Response and request schemas for the generic dataset endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.domain.datasets import DatasetSpec
from app.domain.results import PageResult


class ColumnResponse(BaseModel):
    key: str
    label: str
    numeric: bool = False


class FilterFieldResponse(BaseModel):
    name: str
    label: str
    kind: str
    has_options: bool


class DatasetInfoResponse(BaseModel):
    """
    API response model describing one registered dataset.
    """

    name: str
    title: str
    table: str
    page_size: int = Field(..., ge=1)
    columns: list[ColumnResponse]
    filters: list[FilterFieldResponse]
    search_columns: list[str] = Field(default_factory=list)
    grand_total_scope: str
    importable: bool
    editable: bool

    @classmethod
    def from_spec(cls, spec: DatasetSpec) -> DatasetInfoResponse:
        return cls(
            name=spec.name,
            title=spec.title,
            table=spec.table_name,
            page_size=spec.page_size,
            columns=[
                ColumnResponse(key=column.key, label=column.label, numeric=column.numeric)
                for column in spec.columns
            ],
            filters=[
                FilterFieldResponse(
                    name=item.name,
                    label=item.display_label,
                    kind=item.kind,
                    has_options=item.has_options,
                )
                for item in spec.filters
            ],
            search_columns=list(spec.search_columns),
            grand_total_scope=spec.grand_total_scope,
            importable=spec.importable,
            editable=spec.editable,
        )


class PageResponse(BaseModel):
    """
    API response model for one page of a filtered dataset.
    """

    dataset: str
    rows: list[dict[str, Any]]
    total_count: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)

    @classmethod
    def from_result(cls, dataset: str, result: PageResult) -> PageResponse:
        return cls(
            dataset=dataset,
            rows=result.rows,
            total_count=result.total_count,
            total_pages=result.total_pages,
            current_page=result.current_page,
            page_size=result.page_size,
        )


class FilterOptionsResponse(BaseModel):
    dataset: str
    options: dict[str, list[Any]]


class SummaryResponse(BaseModel):
    dataset: str
    metrics: dict[str, float]


class GrandTotalResponse(BaseModel):
    """
    Grand-total row; `scope` tells whether it covers the page or every
    filtered row.
    """

    dataset: str
    scope: str
    totals: dict[str, float]


class YearsResponse(BaseModel):
    dataset: str
    years: list[int]


class RecordUpdateRequest(BaseModel):
    changes: dict[str, Any] = Field(..., min_length=1)


class RecordResponse(BaseModel):
    dataset: str
    record: dict[str, Any]
