"""
app/schemas/imports.py

Response schemas for the import endpoint.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.domain.results import ImportSummary


class RowIssueResponse(BaseModel):
    """
    API response model for one skipped import row.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class ImportSummaryResponse(BaseModel):
    """
    API response model for an import run.
    """

    dataset: str
    status: str
    rows_total: int = Field(..., ge=0)
    rows_valid: int = Field(..., ge=0)
    rows_inserted: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    batches_committed: int = Field(..., ge=0)
    skipped_rows: list[RowIssueResponse] = Field(default_factory=list)
    error_message: str | None = None
    failed_batch: int | None = Field(default=None, ge=1)

    @classmethod
    def from_summary(cls, summary: ImportSummary) -> ImportSummaryResponse:
        return cls(
            dataset=summary.dataset,
            status=summary.status,
            rows_total=summary.rows_total,
            rows_valid=summary.rows_valid,
            rows_inserted=summary.rows_inserted,
            rows_skipped=summary.rows_skipped,
            batches_committed=summary.batches_committed,
            skipped_rows=[
                RowIssueResponse(
                    row_number=issue.row_number,
                    message=issue.message,
                    column=issue.column,
                    value=issue.value,
                )
                for issue in summary.skipped_rows
            ],
            error_message=summary.error_message,
            failed_batch=summary.failed_batch,
        )
