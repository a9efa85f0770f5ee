"""
app/schemas package marker.
"""

from app.schemas.analytics import ChartSeriesResponse, PivotResponse, RankingPageResponse, RefreshResponse
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
from app.schemas.health import HealthResponse
from app.schemas.imports import ImportSummaryResponse, RowIssueResponse

__all__ = [
    "ChartSeriesResponse",
    "DatasetInfoResponse",
    "FilterOptionsResponse",
    "GrandTotalResponse",
    "HealthResponse",
    "ImportSummaryResponse",
    "PageResponse",
    "PivotResponse",
    "RankingPageResponse",
    "RecordResponse",
    "RecordUpdateRequest",
    "RefreshResponse",
    "RowIssueResponse",
    "SummaryResponse",
    "YearsResponse",
]
