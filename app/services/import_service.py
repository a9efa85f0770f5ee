"""
app/services/import_service.py

Bulk import of CSV / Excel files into an importable dataset.

Flow
----
1. Read the file: CSV through csv.DictReader (quoted fields, embedded commas
   and newlines are handled), .xlsx through pandas + openpyxl.
2. Map headers onto model columns: case / punctuation-insensitive, plus the
   dataset's aliases (e.g. `kabkota` -> `kabupaten_kota`).
3. Validate each row: the dataset's required field must be non-blank and
   every value must coerce to its column type.
4. Apply the import policy to invalid rows:
   - "skip"   drop them and report each one in the summary;
   - "strict" reject the whole file before anything is written.
5. Insert valid rows sequentially in fixed-size batches. Each batch commits
   on its own; the first rejected batch stops the import, batches already
   committed stay, and the summary carries the backend error message.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from pathlib import Path
from typing import Any

import pandas as pd
from sqlalchemy.orm import Session

from app.config import get_dashboard_settings
from app.domain.datasets import DatasetSpec
from app.domain.results import ImportSummary, RowIssue
from app.logging_utils import log_event
from app.services.coercion import coerce_value
from app.services.query_service import DatasetQueryService, get_dataset_query_service
from db.repositories.errors import BulkInsertError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

CSV_EXTENSIONS: frozenset[str] = frozenset({".csv"})
EXCEL_EXTENSIONS: frozenset[str] = frozenset({".xlsx"})
MAX_REPORTED_ISSUES = 500


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ImportFileError(ValueError):
    """
    Raised when the uploaded file cannot be read or lacks required columns.
    """


class ImportValidationError(ImportFileError):
    """
    Raised under the strict policy when any row is invalid.
    """

    def __init__(self, message: str, *, issues: Sequence[RowIssue]) -> None:
        super().__init__(message)
        self.issues = tuple(issues)


# ---------------------------------------------------------------------------
# Header mapping
# ---------------------------------------------------------------------------


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in str(header).strip().lower() if ch.isalnum())


def resolve_headers(spec: DatasetSpec, headers: Sequence[str]) -> dict[str, str]:
    """
    Map source headers to model columns. Unknown headers are ignored.

    Raises ImportFileError when the required field has no source column.
    """

    targets = {normalize_header(column): column for column in spec.model_columns()}
    targets.update(
        {normalize_header(alias): column for alias, column in spec.import_aliases}
    )

    mapping: dict[str, str] = {}
    claimed: set[str] = set()
    for header in headers:
        column = targets.get(normalize_header(header))
        if column is None:
            logger.debug("Ignoring unmapped import header dataset=%r header=%r", spec.name, header)
            continue
        if column in claimed:
            logger.debug("Ignoring duplicate import header dataset=%r header=%r", spec.name, header)
            continue
        mapping[header] = column
        claimed.add(column)

    if spec.required_import_field not in claimed:
        raise ImportFileError(
            f"Required column {spec.required_import_field!r} is missing from the file header."
        )
    return mapping


def _mandatory_columns(spec: DatasetSpec) -> set[str]:
    """Non-nullable columns the backend cannot fill with a default."""
    table = spec.model.__table__
    return {
        column.key
        for column in table.columns
        if not column.nullable
        and not column.primary_key
        and column.default is None
        and column.server_default is None
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ImportService:
    """
    Parses, validates and batch-inserts one uploaded file.
    """

    def __init__(
        self,
        *,
        query_service: DatasetQueryService,
        batch_size: int = 100,
        policy: str = "skip",
    ) -> None:
        self._query_service = query_service
        self._batch_size = max(1, batch_size)
        self._policy = policy

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def read_rows(self, *, filename: str, content: bytes) -> tuple[list[str], list[dict[str, Any]]]:
        extension = Path(filename or "").suffix.lower()
        if extension in CSV_EXTENSIONS:
            return self._read_csv(content)
        if extension in EXCEL_EXTENSIONS:
            return self._read_excel(content)
        raise ImportFileError(
            f"Unsupported file type {extension or filename!r}. Upload a .csv or .xlsx file."
        )

    def prepare_records(
        self,
        spec: DatasetSpec,
        headers: Sequence[str],
        raw_rows: Sequence[Mapping[str, Any]],
    ) -> tuple[list[dict[str, Any]], list[RowIssue]]:
        """
        Turn raw rows into typed records; invalid rows become RowIssues.

        Row numbers count the header as row 1.
        """

        mapping = resolve_headers(spec, headers)
        required = spec.required_import_field
        mandatory = _mandatory_columns(spec)
        records: list[dict[str, Any]] = []
        issues: list[RowIssue] = []

        for row_number, raw in enumerate(raw_rows, start=2):
            values = {column: raw.get(header) for header, column in mapping.items()}
            if all(_is_blank(value) for value in values.values()):
                issues.append(RowIssue(row_number=row_number, message="Empty row."))
                continue
            if _is_blank(values.get(required)):
                issues.append(
                    RowIssue(
                        row_number=row_number,
                        column=required,
                        message=f"Missing required field {required!r}.",
                    )
                )
                continue

            record: dict[str, Any] = {}
            issue: RowIssue | None = None
            for column, raw_value in values.items():
                try:
                    value = coerce_value(spec.model, column, raw_value)
                except ValueError as exc:
                    issue = RowIssue(
                        row_number=row_number,
                        column=column,
                        message=str(exc),
                        value=None if raw_value is None else str(raw_value),
                    )
                    break
                if value is not None:
                    record[column] = value

            if issue is None:
                missing = sorted(mandatory - set(record))
                if missing:
                    issue = RowIssue(
                        row_number=row_number,
                        column=missing[0],
                        message=f"Missing value(s) for {', '.join(missing)}.",
                    )

            if issue is not None:
                issues.append(issue)
                continue
            records.append(record)

        return records, issues

    def import_file(
        self,
        db: Session,
        spec: DatasetSpec,
        *,
        filename: str,
        content: bytes,
        progress: ProgressCallback | None = None,
    ) -> ImportSummary:
        """
        Import one file and return the summary. Batch rejection does not
        raise; it is reported through `status="error"` and `error_message`.
        """

        if not spec.importable:
            raise ValueError(f"Dataset {spec.name!r} does not accept imports.")

        headers, raw_rows = self.read_rows(filename=filename, content=content)
        if not headers:
            raise ImportFileError("File header row is missing.")

        records, issues = self.prepare_records(spec, headers, raw_rows)
        if issues and self._policy == "strict":
            raise ImportValidationError(
                f"{len(issues)} row(s) failed validation; nothing was imported "
                f"(rows {', '.join(str(issue.row_number) for issue in issues[:20])}).",
                issues=issues,
            )

        total = len(records)
        log_event(
            logger,
            logging.INFO,
            "import_started",
            dataset=spec.name,
            filename=filename,
            rows_total=len(raw_rows),
            rows_valid=total,
            rows_skipped=len(issues),
            policy=self._policy,
        )

        inserted = 0
        batches = 0
        error_message: str | None = None
        failed_batch: int | None = None
        if progress is not None:
            progress(0, total)

        for start in range(0, total, self._batch_size):
            batch = records[start : start + self._batch_size]
            try:
                self._query_service.bulk_insert(db, spec, batch, refresh=False, batch_number=batches + 1)
            except BulkInsertError as exc:
                error_message = str(exc)
                failed_batch = exc.batch_number or batches + 1
                log_event(
                    logger,
                    logging.WARNING,
                    "import_batch_failed",
                    dataset=spec.name,
                    batch=failed_batch,
                    rows_inserted=inserted,
                    error=error_message,
                )
                break

            inserted += len(batch)
            batches += 1
            if progress is not None:
                progress(inserted, total)
            log_event(
                logger,
                logging.INFO,
                "import_batch_committed",
                dataset=spec.name,
                batch=batches,
                rows_inserted=inserted,
                rows_valid=total,
            )

        if inserted:
            self._query_service.refresh_aggregates(db, spec)

        return ImportSummary(
            dataset=spec.name,
            status="error" if error_message else "success",
            rows_total=len(raw_rows),
            rows_valid=total,
            rows_inserted=inserted,
            rows_skipped=len(issues),
            batches_committed=batches,
            skipped_rows=issues[:MAX_REPORTED_ISSUES],
            error_message=error_message,
            failed_batch=failed_batch,
        )

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    @staticmethod
    def template_headers(spec: DatasetSpec) -> list[str]:
        return list(spec.template_headers or spec.model_columns())

    def template_csv(self, spec: DatasetSpec) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\r\n")
        writer.writerow(self.template_headers(spec))
        if spec.template_example:
            writer.writerow(spec.template_example)
        return buf.getvalue()

    def template_xlsx(self, spec: DatasetSpec) -> bytes:
        rows = [list(spec.template_example)] if spec.template_example else []
        frame = pd.DataFrame(rows, columns=self.template_headers(spec))
        buf = io.BytesIO()
        frame.to_excel(buf, index=False, sheet_name="Template", engine="openpyxl")
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_csv(content: bytes) -> tuple[list[str], list[dict[str, Any]]]:
        try:
            text = content.decode("utf-8-sig")
            reader = csv.DictReader(io.StringIO(text, newline=""))
            headers = [header.strip() for header in (reader.fieldnames or [])]
            reader.fieldnames = headers
            rows = [dict(row) for row in reader]
        except UnicodeDecodeError as exc:
            raise ImportFileError("CSV must be UTF-8 encoded.") from exc
        except csv.Error as exc:
            raise ImportFileError(f"Invalid CSV format: {exc}") from exc
        return headers, rows

    @staticmethod
    def _read_excel(content: bytes) -> tuple[list[str], list[dict[str, Any]]]:
        try:
            frame = pd.read_excel(
                io.BytesIO(content),
                engine="openpyxl",
                dtype=str,
                keep_default_na=False,
            )
        except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
            raise ImportFileError(f"Invalid Excel file: {exc}") from exc
        headers = [str(header).strip() for header in frame.columns]
        frame.columns = headers
        return headers, frame.to_dict(orient="records")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@lru_cache(maxsize=1)
def get_import_service() -> ImportService:
    """
    Build and cache the import service with env-driven settings.
    """

    settings = get_dashboard_settings()
    return ImportService(
        query_service=get_dataset_query_service(),
        batch_size=settings.import_batch_size,
        policy=settings.import_policy,
    )
