"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.analysis import QUARTERS, InvestmentAnalysis, RegionalAnalysis, WorkforceAnalysis
from db.models.creative_economy import CAPITAL_STATUSES, CreativeEconomyCompany, EkrafInvestmentRecord
from db.models.intellectual_property import PATENT_YEARS, PatentRegistration, TrademarkFiling
from db.models.rankings import (
    RANKING_TYPE_REGION,
    RANKING_TYPE_SUBSECTOR,
    InvestmentAttachmentRanking,
    InvestmentRealizationRanking,
    LaborRanking,
    RankingAnalysis,
)

__all__ = [
    "CAPITAL_STATUSES",
    "PATENT_YEARS",
    "QUARTERS",
    "RANKING_TYPE_REGION",
    "RANKING_TYPE_SUBSECTOR",
    "CreativeEconomyCompany",
    "EkrafInvestmentRecord",
    "InvestmentAnalysis",
    "WorkforceAnalysis",
    "RegionalAnalysis",
    "RankingAnalysis",
    "InvestmentAttachmentRanking",
    "LaborRanking",
    "InvestmentRealizationRanking",
    "PatentRegistration",
    "TrademarkFiling",
]
