"""
app/domain package marker.
"""

from app.domain.dataset_registry import DATASETS, get_dataset, list_datasets
from app.domain.datasets import (
    ColumnSpec,
    DatasetSpec,
    FilterField,
    MetricSpec,
    OrderKey,
    UnknownDatasetError,
)
from app.domain.results import ImportSummary, PageResult, RowIssue, page_totals, total_pages_for

__all__ = [
    "DATASETS",
    "ColumnSpec",
    "DatasetSpec",
    "FilterField",
    "ImportSummary",
    "MetricSpec",
    "OrderKey",
    "PageResult",
    "RowIssue",
    "UnknownDatasetError",
    "get_dataset",
    "page_totals",
    "list_datasets",
    "total_pages_for",
]
