"""
app/services/export_service.py

CSV / JSON export of dataset rows.

CSV files use the visible column labels as the header row, quote every
string field and leave numbers bare (csv.QUOTE_NONNUMERIC). None is
written as an empty quoted string and booleans as "true" / "false", so a
file read back with `parse_csv` compares field-for-field with the source
rows after `format_cell`.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_dashboard_settings
from app.domain.datasets import ColumnSpec, DatasetSpec
from app.services.filters import SEARCH_KEY, normalize_filters
from app.services.query_service import DatasetQueryService, get_dataset_query_service

logger = logging.getLogger(__name__)

EXPORT_SCOPES: frozenset[str] = frozenset({"page", "all"})


def format_cell(value: Any) -> Any:
    """Normalise one value for CSV output; numbers stay numeric."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def iter_csv(rows: Iterable[Mapping[str, Any]], columns: Sequence[ColumnSpec]) -> Iterator[str]:
    """Yield the CSV text line by line, header first."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\r\n")

    writer.writerow([column.label for column in columns])
    yield buf.getvalue()

    for row in rows:
        buf.seek(0)
        buf.truncate(0)
        writer.writerow([format_cell(row.get(column.key)) for column in columns])
        yield buf.getvalue()


def rows_to_csv(rows: Iterable[Mapping[str, Any]], columns: Sequence[ColumnSpec]) -> str:
    return "".join(iter_csv(rows, columns))


def parse_csv(text: str, columns: Sequence[ColumnSpec]) -> list[dict[str, Any]]:
    """
    Read an exported CSV back into rows keyed by column key.

    Unquoted fields come back as floats, quoted fields as strings, and
    empty strings as None.
    """

    reader = csv.reader(io.StringIO(text, newline=""), quoting=csv.QUOTE_NONNUMERIC)
    header = next(reader, None)
    expected = [column.label for column in columns]
    if header != expected:
        raise ValueError(f"Unexpected CSV header {header!r}; expected {expected!r}.")

    rows: list[dict[str, Any]] = []
    for record in reader:
        if len(record) != len(columns):
            raise ValueError(f"Row {reader.line_num} has {len(record)} fields; expected {len(columns)}.")
        rows.append(
            {
                column.key: (None if value == "" else value)
                for column, value in zip(columns, record)
            }
        )
    return rows


def _slug(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = "-".join(str(item) for item in value)
    return re.sub(r"[^0-9a-z]+", "-", str(value).lower()).strip("-")


def export_filename(
    spec: DatasetSpec,
    filters: Mapping[str, Any] | None = None,
    *,
    extension: str = "csv",
) -> str:
    """
    `<prefix>[_<filter value>...].<extension>`, e.g. `lampiran_investasi_2024.csv`.
    """

    normalized = normalize_filters(spec, filters)
    parts = [spec.export_prefix or spec.name]
    for field in spec.filters:
        if field.name in normalized:
            slug = _slug(normalized[field.name])
            if slug:
                parts.append(slug)
    if SEARCH_KEY in normalized:
        parts.append(_slug(normalized[SEARCH_KEY]))
    return f"{'_'.join(parts)}.{extension}"


@dataclass(frozen=True)
class ExportResult:
    """
    Rows ready for serialisation, plus the column layout and file name.
    """

    rows: list[dict[str, Any]]
    columns: tuple[ColumnSpec, ...]
    filename: str

    @property
    def fields(self) -> list[str]:
        return [column.key for column in self.columns]

    def json_rows(self) -> list[dict[str, Any]]:
        return [
            {column.key: _json_cell(row.get(column.key)) for column in self.columns}
            for row in self.rows
        ]


def _json_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class ExportService:
    """
    Collects rows for an export: the current page or the whole filtered set.
    """

    def __init__(self, *, query_service: DatasetQueryService, max_rows: int) -> None:
        self._query_service = query_service
        self._max_rows = max(1, max_rows)

    def export(
        self,
        db: Session,
        spec: DatasetSpec,
        filters: Mapping[str, Any] | None = None,
        *,
        scope: str = "page",
        page: int = 1,
        page_size: int | None = None,
    ) -> ExportResult:
        if scope not in EXPORT_SCOPES:
            raise ValueError(f"Invalid scope {scope!r}. Must be one of: {sorted(EXPORT_SCOPES)}.")

        if scope == "page":
            rows = self._query_service.list_page(
                db, spec, filters, page=page, page_size=page_size
            ).rows
        else:
            rows = self._query_service.fetch_rows(db, spec, filters, limit=self._max_rows)

        logger.info("Export dataset=%r scope=%s rows=%d", spec.name, scope, len(rows))
        return ExportResult(
            rows=rows,
            columns=spec.columns,
            filename=export_filename(spec, filters),
        )


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    settings = get_dashboard_settings()
    return ExportService(
        query_service=get_dataset_query_service(),
        max_rows=settings.export_max_rows,
    )
