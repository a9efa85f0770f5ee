"""
app/services/ranking_service.py

Year-scoped rankings computed by server-side procedures and paginated in
memory. Each ranking row carries a percentage-of-total; across the full
result for one (year, dimension) the percentages should add up to ~100.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.results import PageResult, total_pages_for
from app.services.query_service import DatasetQueryError
from db.repositories.table_repository import call_procedure

logger = logging.getLogger(__name__)

ProcedureCaller = Callable[..., list[dict[str, Any]]]

# Ranking kind -> (procedure, fixed arguments besides target_year).
RANKING_PROCEDURES: dict[str, tuple[str, dict[str, Any]]] = {
    "investment": ("calculate_investment_ranking", {}),
    "workforce": ("calculate_workforce_ranking", {}),
    "subsector_investment": ("calculate_subsector_ranking", {"ranking_type": "investment"}),
    "subsector_workforce": ("calculate_subsector_ranking", {"ranking_type": "workforce"}),
}

PERCENTAGE_TOLERANCE = 0.5


def percentage_total(rows: Sequence[Mapping[str, Any]], field: str = "percentage") -> float:
    return round(sum(float(row.get(field) or 0) for row in rows), 4)


def paginate_rows(
    rows: Sequence[dict[str, Any]],
    *,
    page: int,
    page_size: int,
) -> PageResult:
    """Slice an in-memory result into one page using the same contract as list queries."""
    if page < 1:
        raise ValueError("page must be >= 1.")
    if page_size < 1:
        raise ValueError("page_size must be >= 1.")
    start = (page - 1) * page_size
    return PageResult(
        rows=list(rows[start : start + page_size]),
        total_count=len(rows),
        total_pages=total_pages_for(len(rows), page_size),
        current_page=page,
        page_size=page_size,
    )


class RankingService:
    def __init__(
        self,
        *,
        page_size: int = 15,
        procedure_caller: ProcedureCaller = call_procedure,
    ) -> None:
        self._page_size = max(1, page_size)
        self._call = procedure_caller

    def ranking(
        self,
        db: Session,
        kind: str,
        *,
        year: int,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult:
        """
        Fetch the full ranking for `year` and return one page of it.
        """

        rows = self.full_ranking(db, kind, year=year)
        return paginate_rows(rows, page=page, page_size=page_size or self._page_size)

    def full_ranking(self, db: Session, kind: str, *, year: int) -> list[dict[str, Any]]:
        entry = RANKING_PROCEDURES.get(kind)
        if entry is None:
            raise ValueError(f"Unknown ranking {kind!r}. Must be one of: {sorted(RANKING_PROCEDURES)}.")
        procedure, fixed_args = entry

        try:
            rows = self._call(db, procedure, target_year=year, **fixed_args)
        except SQLAlchemyError as exc:
            logger.exception("Ranking procedure failed kind=%r year=%s", kind, year)
            raise DatasetQueryError(
                f"Ranking {kind!r} failed for year {year}.",
                dataset=kind,
                operation=procedure,
            ) from exc

        rows = sorted(rows, key=lambda row: row.get("rank") or 0)
        total = percentage_total(rows)
        if rows and abs(total - 100) > PERCENTAGE_TOLERANCE:
            logger.warning(
                "Ranking percentages do not add up kind=%r year=%s total=%.2f",
                kind,
                year,
                total,
            )
        return rows


@lru_cache(maxsize=1)
def get_ranking_service() -> RankingService:
    return RankingService()
