"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from typing import Any

from fastapi import File, HTTPException, Request, UploadFile, status

from app.domain.dataset_registry import get_dataset
from app.domain.datasets import DatasetSpec, UnknownDatasetError

TABLE_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
TABLE_EXTENSIONS = (".csv", ".xlsx")

# Query parameters consumed by the endpoints themselves, never treated as filters.
RESERVED_QUERY_PARAMS = frozenset({"page", "page_size", "format", "scope"})


def get_dataset_spec(name: str) -> DatasetSpec:
    """
    Resolve the `{name}` path parameter to a registered dataset or 404.
    """

    try:
        return get_dataset(name)
    except UnknownDatasetError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def get_query_filters(request: Request) -> dict[str, Any]:
    """
    Collect filter values from the query string. Repeated keys become lists.
    """

    filters: dict[str, Any] = {}
    for key in request.query_params.keys():
        if key in RESERVED_QUERY_PARAMS or key in filters:
            continue
        values = request.query_params.getlist(key)
        filters[key] = values if len(values) > 1 else values[0]
    return filters


def get_table_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV or Excel workbook by extension
    or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(TABLE_EXTENSIONS) and content_type not in TABLE_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV or Excel (.xlsx) files are allowed.",
        )

    return file
