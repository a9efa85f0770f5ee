"""
tests/test_chart_service.py

Pytest unit tests for app/services/chart_service.py against SQLite.

Coverage
--------
- PMA vs PMDN trend uses the real status split, in trillions, oldest first
- quarterly grid fills missing quarters with zero
- top groups ordered by project count
- subsector chart joins investment onto labour totals
- regional comparison growth between consecutive years; region/year filters pushed to SQL
"""

from __future__ import annotations

import pytest

from app.services.chart_service import TRILLION, ChartService
from app.services.query_service import DatasetQueryService
from db.models import (
    EkrafInvestmentRecord,
    InvestmentAnalysis,
    InvestmentAttachmentRanking,
    LaborRanking,
)


@pytest.fixture()
def charts() -> ChartService:
    return ChartService(query_service=DatasetQueryService(refresh_views=False))


def _record(tahun, periode, status, rupiah):
    return EkrafInvestmentRecord(
        tahun=tahun,
        periode=periode,
        status_modal=status,
        nama_perusahaan=f"PT {tahun} {periode} {status}",
        tambahan_investasi_rp=rupiah,
    )


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------


class TestInvestmentTrend:
    @pytest.fixture()
    def seeded(self, db):
        db.add_all(
            [
                _record(2023, "TW-IV", "PMA", 2 * TRILLION),
                _record(2023, "TW-IV", "PMDN", 1 * TRILLION),
                _record(2024, "TW-I", "PMA", 0.5 * TRILLION),
                _record(2024, "TW-I", "PMA", 0.5 * TRILLION),
                _record(2024, "TW-II", "PMDN", 3 * TRILLION),
            ]
        )
        db.commit()
        return db

    def test_points_oldest_first(self, charts, seeded):
        points = charts.investment_trend(seeded)
        assert [point["period"] for point in points] == ["2023 TW-IV", "2024 TW-I", "2024 TW-II"]

    def test_real_status_split(self, charts, seeded):
        points = charts.investment_trend(seeded)
        assert points[0]["pma"] == pytest.approx(2.0)
        assert points[0]["pmdn"] == pytest.approx(1.0)
        assert points[1]["pma"] == pytest.approx(1.0)
        assert points[1]["pmdn"] == 0.0

    def test_last_limits_points(self, charts, seeded):
        points = charts.investment_trend(seeded, last=1)
        assert [point["period"] for point in points] == ["2024 TW-II"]

    def test_year_filter(self, charts, seeded):
        points = charts.investment_trend(seeded, year=2023)
        assert len(points) == 1


# ---------------------------------------------------------------------------
# Quarterly grid
# ---------------------------------------------------------------------------


class TestQuarterlyBreakdown:
    def test_grid(self, charts, db):
        db.add_all(
            [
                InvestmentAnalysis(year=2024, quarter="TW-I", investment_amount=10.0),
                InvestmentAnalysis(year=2024, quarter="TW-III", investment_amount=5.0),
                InvestmentAnalysis(year=2024, quarter="TW-III", investment_amount=1.0),
                InvestmentAnalysis(year=2023, quarter="TW-IV", investment_amount=2.0),
            ]
        )
        db.commit()
        grid = charts.quarterly_breakdown(db, "investment_analysis")
        assert grid == [
            {"year": 2023, "TW-I": 0, "TW-II": 0, "TW-III": 0, "TW-IV": 2.0, "total": 2.0},
            {"year": 2024, "TW-I": 10.0, "TW-II": 0, "TW-III": 6.0, "TW-IV": 0, "total": 16.0},
        ]

    def test_range_filter(self, charts, db):
        db.add_all(
            [
                InvestmentAnalysis(year=2022, quarter="TW-I", investment_amount=1.0),
                InvestmentAnalysis(year=2024, quarter="TW-I", investment_amount=1.0),
            ]
        )
        db.commit()
        grid = charts.quarterly_breakdown(db, "investment_analysis", start_year=2023)
        assert [row["year"] for row in grid] == [2024]

    def test_unknown_dataset(self, charts, db):
        with pytest.raises(ValueError):
            charts.quarterly_breakdown(db, "patent_registration")


# ---------------------------------------------------------------------------
# Groups and comparison
# ---------------------------------------------------------------------------


class TestGroups:
    @pytest.fixture()
    def seeded(self, db):
        db.add_all(
            [
                LaborRanking(type=2, year=2024, rank=1, name="Kuliner", project_count=9, labor_count=90),
                LaborRanking(type=2, year=2024, rank=2, name="Fesyen", project_count=4, labor_count=40),
                LaborRanking(type=2, year=2024, rank=3, name="Film", project_count=4, labor_count=12),
                LaborRanking(type=1, year=2023, rank=1, name="Bandung", project_count=10, labor_count=100),
                LaborRanking(type=1, year=2024, rank=1, name="Bandung", project_count=15, labor_count=120),
                LaborRanking(type=1, year=2024, rank=2, name="Bogor", project_count=5, labor_count=50),
                InvestmentAttachmentRanking(type=2, year=2024, rank=1, name="Kuliner", investment_idr=3 * TRILLION),
                InvestmentAttachmentRanking(type=1, year=2024, rank=1, name="Bandung", investment_idr=7.0),
            ]
        )
        db.commit()
        return db

    def test_top_groups_order(self, charts, seeded):
        groups = charts.top_groups(seeded, "labor_subsector", limit=2)
        assert [group["name"] for group in groups] == ["Kuliner", "Fesyen"]
        assert groups[0] == {"name": "Kuliner", "projects": 9, "workers": 90}

    def test_subsector_chart_adds_investment(self, charts, seeded):
        groups = charts.subsector_chart(seeded)
        assert groups[0]["investment"] == pytest.approx(3.0)
        assert groups[1]["investment_amount"] == 0

    def test_comparison_growth(self, charts, seeded):
        points = charts.comparison(seeded, regions=["Bandung"])
        assert [(point["year"], point["companies"]) for point in points] == [(2023, 10), (2024, 15)]
        assert points[0]["growth"] == 0.0
        assert points[1]["growth"] == 50.0
        assert points[1]["investment"] == 7.0

    def test_comparison_year_filter(self, charts, seeded):
        points = charts.comparison(seeded, years=[2024])
        assert [point["region"] for point in points] == ["Bandung", "Bogor"]

    def test_comparison_filters_reach_the_query(self, seeded):
        calls: list[tuple[str, str, dict]] = []

        class _SpyQueryService(DatasetQueryService):
            def fetch_rows(self, db, spec, filters=None, *, limit=None):
                calls.append(("fetch_rows", spec.name, dict(filters or {})))
                return super().fetch_rows(db, spec, filters, limit=limit)

            def grouped_totals(self, db, spec, filters, *, group_by, sum_columns):
                calls.append(("grouped_totals", spec.name, dict(filters or {})))
                return super().grouped_totals(db, spec, filters, group_by=group_by, sum_columns=sum_columns)

        charts = ChartService(query_service=_SpyQueryService(refresh_views=False))
        points = charts.comparison(seeded, regions=["Bogor"], years=[2024])

        assert [(point["region"], point["year"]) for point in points] == [("Bogor", 2024)]
        assert [(name, dataset) for name, dataset, _ in calls] == [
            ("fetch_rows", "labor_region"),
            ("grouped_totals", "attachment_region"),
        ]
        assert all(filters == {"names": ["Bogor"], "years": ["2024"]} for _, _, filters in calls)
