"""
db/models/analysis.py

Pre-aggregated analysis tables: quarterly investment, quarterly workforce and
the long-form regional table that feeds the region x year pivot.
"""

from sqlalchemy import CheckConstraint, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IdMixin, TimestampMixin

QUARTERS: tuple[str, ...] = ("TW-I", "TW-II", "TW-III", "TW-IV")


class InvestmentAnalysis(Base, IdMixin, TimestampMixin):
    __tablename__ = "investment_analysis_data"
    __table_args__ = (
        CheckConstraint("year > 0", name="ck_investment_analysis_year"),
        CheckConstraint("investment_amount >= 0", name="ck_investment_analysis_amount"),
        Index("ix_investment_analysis_year_quarter", "year", "quarter"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[str] = mapped_column(String(8), nullable=False, comment="TW-I .. TW-IV")
    investment_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="IDR")
    region: Mapped[str | None] = mapped_column(String(120), nullable=True)
    sector: Mapped[str | None] = mapped_column(String(120), nullable=True)


class WorkforceAnalysis(Base, IdMixin, TimestampMixin):
    __tablename__ = "workforce_analysis_data"
    __table_args__ = (
        CheckConstraint("year > 0", name="ck_workforce_analysis_year"),
        CheckConstraint("worker_count >= 0", name="ck_workforce_analysis_workers"),
        Index("ix_workforce_analysis_year_quarter", "year", "quarter"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[str] = mapped_column(String(8), nullable=False)
    region: Mapped[str | None] = mapped_column(String(120), nullable=True)
    worker_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    region_type: Mapped[str | None] = mapped_column(String(32), nullable=True, comment="kabupaten | kota")


class RegionalAnalysis(Base, IdMixin, TimestampMixin):
    """
    Long-form regional totals keyed by (region, year, status).

    status is PMA, PMDN or Total; the pivot reshape only reads PMA and PMDN
    rows and derives the total itself.
    """

    __tablename__ = "regional_analysis_data"
    __table_args__ = (
        CheckConstraint("status IN ('PMA', 'PMDN', 'Total')", name="ck_regional_analysis_status"),
        CheckConstraint("year > 0", name="ck_regional_analysis_year"),
        Index("ix_regional_analysis_region_year", "region", "year"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    region: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[str] = mapped_column(String(8), nullable=False)
    project_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    worker_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    investment_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    data_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
