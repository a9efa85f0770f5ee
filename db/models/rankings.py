"""
db/models/rankings.py

Stored ranking tables. `type` distinguishes the ranking dimension:
1 = region (kabupaten/kota), 2 = subsector.
"""

from sqlalchemy import CheckConstraint, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IdMixin, TimestampMixin

RANKING_TYPE_REGION = 1
RANKING_TYPE_SUBSECTOR = 2


class RankingAnalysis(Base, IdMixin, TimestampMixin):
    __tablename__ = "ranking_analysis_data"
    __table_args__ = (
        CheckConstraint(
            "status IN ('All', 'Workforce', 'Projects', 'PMA', 'PMDN')",
            name="ck_ranking_analysis_status",
        ),
        Index("ix_ranking_analysis_year_rank", "year", "rank"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    region: Mapped[str] = mapped_column(String(120), nullable=False)
    project_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    investment_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_idr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    worker_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class InvestmentAttachmentRanking(Base, IdMixin, TimestampMixin):
    __tablename__ = "investment_attachment_ranking"
    __table_args__ = (
        CheckConstraint("type IN (1, 2)", name="ck_investment_attachment_type"),
        Index("ix_investment_attachment_type_year", "type", "year"),
    )

    type: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    investment_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_idr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class LaborRanking(Base, IdMixin, TimestampMixin):
    __tablename__ = "labor_ranking"
    __table_args__ = (
        CheckConstraint("type IN (1, 2)", name="ck_labor_ranking_type"),
        Index("ix_labor_ranking_type_year", "type", "year"),
    )

    type: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    labor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True, comment="wilayah | subsektor")


class InvestmentRealizationRanking(Base, IdMixin, TimestampMixin):
    __tablename__ = "investment_realization_ranking"
    __table_args__ = (
        CheckConstraint("investment_amount >= 0", name="ck_investment_realization_amount"),
        Index("ix_investment_realization_type_year", "type", "year"),
    )

    type: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    regency_city: Mapped[str] = mapped_column(String(120), nullable=False)
    investment_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="IDR")
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    category: Mapped[str | None] = mapped_column(String(32), nullable=True)
