"""
app/domain/results.py

Result records returned by the query and import services.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


def total_pages_for(total_count: int, page_size: int) -> int:
    """Number of pages needed for `total_count` rows; zero rows give zero pages."""
    if page_size < 1:
        raise ValueError("page_size must be positive.")
    return math.ceil(max(0, total_count) / page_size)


@dataclass(frozen=True)
class PageResult:
    """
    One page of a filtered dataset plus the exact size of the full result.
    """

    rows: list[dict[str, Any]]
    total_count: int
    total_pages: int
    current_page: int
    page_size: int

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0


@dataclass(frozen=True)
class RowIssue:
    """
    One import row that did not reach the backend.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ImportSummary:
    """
    End-of-run import summary.

    status is "success" when every valid row was inserted, "error" when a
    batch was rejected; in that case `rows_inserted` counts the batches
    committed before the failure and `error_message` carries the backend
    message of the rejected batch and `failed_batch` its 1-based number.
    """

    dataset: str
    status: str
    rows_total: int
    rows_valid: int
    rows_inserted: int
    rows_skipped: int
    batches_committed: int
    skipped_rows: list[RowIssue] = field(default_factory=list)
    error_message: str | None = None
    failed_batch: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


def page_totals(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> dict[str, int | float]:
    """Column sums over the rows currently on screen; missing values count as 0."""
    return {column: sum(row.get(column) or 0 for row in rows) for column in columns}
