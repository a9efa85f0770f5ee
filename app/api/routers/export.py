"""
app/api/routers/export.py

Dataset export endpoint.

GET /datasets/{name}/export

Query parameters
----------------
format     : "csv" | "json"   (default: "csv")
scope      : "page" | "all"   (default: "page"); "all" is every filtered row
page       : page number when scope=page
page_size  : page size when scope=page
<filters>  : the dataset's filter fields, as for /rows

Responses
---------
CSV  -> StreamingResponse, Content-Type: text/csv
        Content-Disposition: attachment; filename=<prefix>[_<filter>...].csv
JSON -> JSONResponse
        Body: {"dataset": str, "rows": int, "fields": list[str], "data": list[dict]}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_dataset_spec, get_query_filters
from app.api.errors import service_errors
from app.domain.datasets import DatasetSpec
from app.services.export_service import (
    EXPORT_SCOPES,
    ExportResult,
    ExportService,
    get_export_service,
    iter_csv,
)
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["export"])

_VALID_FORMATS = frozenset({"csv", "json"})


def _to_csv_streaming(result: ExportResult) -> StreamingResponse:
    """Stream *result* as a UTF-8 CSV file download."""
    return StreamingResponse(
        content=iter_csv(result.rows, result.columns),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Row-Count": str(len(result.rows)),
        },
    )


def _to_json_response(result: ExportResult, dataset: str) -> JSONResponse:
    return JSONResponse(
        content={
            "dataset": dataset,
            "rows": len(result.rows),
            "fields": result.fields,
            "data": result.json_rows(),
        }
    )


@router.get(
    "/{name}/export",
    summary="Export the filtered dataset as CSV or JSON",
    response_model=None,
)
def export_dataset(
    output_format: str = Query(default="csv", alias="format"),
    scope: str = Query(default="page"),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
    spec: DatasetSpec = Depends(get_dataset_spec),
    filters: dict[str, Any] = Depends(get_query_filters),
    db: Session = Depends(get_db),
    service: ExportService = Depends(get_export_service),
) -> StreamingResponse | JSONResponse:
    if output_format not in _VALID_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format {output_format!r}. Must be one of: {sorted(_VALID_FORMATS)}.",
        )
    if scope not in EXPORT_SCOPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid scope {scope!r}. Must be one of: {sorted(EXPORT_SCOPES)}.",
        )

    with service_errors(f"Export {spec.name}"):
        result = service.export(db, spec, filters, scope=scope, page=page, page_size=page_size)

    logger.info(
        "Export dataset=%r format=%r scope=%r rows=%d",
        spec.name,
        output_format,
        scope,
        len(result.rows),
    )

    if output_format == "csv":
        return _to_csv_streaming(result)
    return _to_json_response(result, spec.name)
