"""
app/api/routers/imports.py

Bulk import and import-template endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_dataset_spec, get_table_upload
from app.api.errors import service_errors
from app.domain.datasets import DatasetSpec
from app.schemas.imports import ImportSummaryResponse, RowIssueResponse
from app.services.import_service import ImportService, ImportValidationError, get_import_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasets", tags=["import"])

_TEMPLATE_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _require_importable(spec: DatasetSpec) -> None:
    if not spec.importable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Dataset {spec.name!r} does not accept imports.",
        )


@router.post("/{name}/import", response_model=ImportSummaryResponse)
def import_file(
    file: UploadFile = Depends(get_table_upload),
    spec: DatasetSpec = Depends(get_dataset_spec),
    db: Session = Depends(get_db),
    import_service: ImportService = Depends(get_import_service),
) -> ImportSummaryResponse:
    """
    Import one CSV / Excel file into the dataset.

    A batch rejected by the database does not fail the request: the summary
    comes back with status "error", the backend message, and the count of
    rows committed by earlier batches.
    """

    _require_importable(spec)
    try:
        content = file.file.read()
        with service_errors(f"Import into {spec.name}"):
            try:
                summary = import_service.import_file(
                    db,
                    spec,
                    filename=file.filename or "upload.csv",
                    content=content,
                )
            except ImportValidationError as exc:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={
                        "message": str(exc),
                        "rows": [
                            RowIssueResponse(
                                row_number=issue.row_number,
                                message=issue.message,
                                column=issue.column,
                                value=issue.value,
                            ).model_dump()
                            for issue in exc.issues
                        ],
                    },
                ) from exc
    finally:
        file.file.close()

    return ImportSummaryResponse.from_summary(summary)


@router.get("/{name}/import-template")
def download_template(
    output_format: str = Query(default="csv", alias="format"),
    spec: DatasetSpec = Depends(get_dataset_spec),
    import_service: ImportService = Depends(get_import_service),
) -> Response:
    """
    Header row (plus an example row where one is defined) for the import file.
    """

    _require_importable(spec)
    media_type = _TEMPLATE_MEDIA_TYPES.get(output_format)
    if media_type is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format {output_format!r}. Must be one of: {sorted(_TEMPLATE_MEDIA_TYPES)}.",
        )

    if output_format == "csv":
        content: str | bytes = import_service.template_csv(spec)
    else:
        content = import_service.template_xlsx(spec)

    filename = f"template_{spec.export_prefix or spec.name}.{output_format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
