"""
app/services package marker.
"""

from app.services.auth_service import AuthError, AuthService, AuthSession, AuthUser, get_auth_service
from app.services.chart_service import ChartService, get_chart_service
from app.services.export_service import ExportResult, ExportService, get_export_service
from app.services.import_service import (
    ImportFileError,
    ImportService,
    ImportValidationError,
    get_import_service,
)
from app.services.pivot_service import PivotService, PivotTable, get_pivot_service
from app.services.query_service import DatasetQueryError, DatasetQueryService, get_dataset_query_service
from app.services.ranking_service import RankingService, get_ranking_service

__all__ = [
    "AuthError",
    "AuthService",
    "AuthSession",
    "AuthUser",
    "get_auth_service",
    "ChartService",
    "get_chart_service",
    "ExportResult",
    "ExportService",
    "get_export_service",
    "ImportFileError",
    "ImportService",
    "ImportValidationError",
    "get_import_service",
    "PivotService",
    "PivotTable",
    "get_pivot_service",
    "DatasetQueryError",
    "DatasetQueryService",
    "get_dataset_query_service",
    "RankingService",
    "get_ranking_service",
]
