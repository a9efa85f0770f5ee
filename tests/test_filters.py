"""
tests/test_filters.py

Pytest unit tests for app/services/filters.py and app/services/coercion.py.

Coverage
--------
- None, "" and lowercase "all" never reach the backend; "All" is a real value
- integer filters: numeric strings parsed, junk dropped
- boolean and list filters
- unknown keys ignored; search kept only for searchable datasets
- predicate count matches the active filters plus fixed filters
- value coercion for import / edit payloads, status spelling and CHECK rules
"""

from __future__ import annotations

import pytest

from app.domain.dataset_registry import get_dataset
from app.services.coercion import coerce_record, coerce_value
from app.services.filters import (
    SEARCH_KEY,
    build_conditions,
    is_absent,
    normalize_filters,
    parse_bool,
    parse_int,
)
from db.models import CreativeEconomyCompany, EkrafInvestmentRecord, RankingAnalysis, RegionalAnalysis


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def ekraf():
    return get_dataset("ekraf_analysis")


@pytest.fixture()
def workforce():
    return get_dataset("workforce_analysis")


# ---------------------------------------------------------------------------
# Sentinels
# ---------------------------------------------------------------------------


class TestAbsentValues:
    @pytest.mark.parametrize("value", [None, "", "   ", "all", " all ", [], ["all", ""]])
    def test_absent(self, value):
        assert is_absent(value) is True

    @pytest.mark.parametrize("value", ["PMA", "All", "ALL", 0, False, ["Bandung"]])
    def test_present(self, value):
        assert is_absent(value) is False

    def test_all_sentinel_dropped(self, ekraf):
        assert normalize_filters(ekraf, {"status_modal": "all", "tahun": "all"}) == {}

    def test_none_input(self, ekraf):
        assert normalize_filters(ekraf, None) == {}

    def test_all_category_is_a_value(self):
        ranking = get_dataset("ranking_analysis")
        assert normalize_filters(ranking, {"status": "All"}) == {"status": "All"}
        assert normalize_filters(ranking, {"status": "all"}) == {}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParsing:
    def test_parse_int(self):
        assert parse_int("2024") == 2024
        assert parse_int(" 2023 ") == 2023
        assert parse_int(2022.0) == 2022
        assert parse_int("20x4") is None
        assert parse_int(2022.5) is None
        assert parse_int(True) is None

    def test_parse_bool(self):
        assert parse_bool("true") is True
        assert parse_bool("Ya") is True
        assert parse_bool("0") is False
        assert parse_bool("maybe") is None

    def test_non_numeric_year_dropped(self, ekraf):
        assert normalize_filters(ekraf, {"tahun": "latest"}) == {}

    def test_numeric_year_parsed(self, ekraf):
        assert normalize_filters(ekraf, {"tahun": "2024"}) == {"tahun": 2024}

    def test_bool_filter(self, ekraf):
        assert normalize_filters(ekraf, {"is_ekraf": "yes"}) == {"is_ekraf": True}

    def test_list_filter_from_csv_string(self, workforce):
        assert normalize_filters(workforce, {"quarters": "TW-I, TW-II"}) == {
            "quarters": ["TW-I", "TW-II"]
        }

    def test_list_filter_drops_sentinels(self, workforce):
        assert normalize_filters(workforce, {"regions": ["Bandung", "all", ""]}) == {
            "regions": ["Bandung"]
        }

    def test_unknown_key_ignored(self, ekraf):
        assert normalize_filters(ekraf, {"colour": "red", "status_modal": "PMA"}) == {
            "status_modal": "PMA"
        }


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_search_trimmed(self, ekraf):
        assert normalize_filters(ekraf, {SEARCH_KEY: "  kreatif "}) == {SEARCH_KEY: "kreatif"}

    def test_blank_search_dropped(self, ekraf):
        assert normalize_filters(ekraf, {SEARCH_KEY: "   "}) == {}


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


class TestBuildConditions:
    def test_no_filters_no_conditions(self, ekraf):
        assert build_conditions(ekraf, {}) == []

    def test_one_condition_per_filter(self, ekraf):
        filters = normalize_filters(ekraf, {"tahun": "2024", "status_modal": "PMA", SEARCH_KEY: "pt"})
        assert len(build_conditions(ekraf, filters)) == 3

    def test_fixed_filter_always_applied(self):
        spec = get_dataset("labor_subsector")
        assert len(build_conditions(spec, {})) == 1


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


class TestCoercion:
    def test_blank_becomes_none(self):
        assert coerce_value(EkrafInvestmentRecord, "kabupaten_kota", "  ") is None

    def test_integer_from_float_text(self):
        assert coerce_value(EkrafInvestmentRecord, "tahun", "2024.0") == 2024

    def test_fractional_integer_rejected(self):
        with pytest.raises(ValueError):
            coerce_value(EkrafInvestmentRecord, "proyek", "2.5")

    def test_float_column(self):
        assert coerce_value(EkrafInvestmentRecord, "tambahan_investasi_rp", "1500000") == 1_500_000.0

    def test_bad_number_rejected(self):
        with pytest.raises(ValueError, match="tambahan_investasi_usd"):
            coerce_value(EkrafInvestmentRecord, "tambahan_investasi_usd", "lots")

    def test_bool_column(self):
        assert coerce_value(EkrafInvestmentRecord, "is_ekraf", "TRUE") is True

    def test_unknown_column(self):
        with pytest.raises(ValueError):
            coerce_value(EkrafInvestmentRecord, "missing", "x")

    def test_coerce_record(self):
        assert coerce_record(EkrafInvestmentRecord, {"tahun": "2023", "tki": "4"}) == {
            "tahun": 2023,
            "tki": 4,
        }

    @pytest.mark.parametrize(
        ("model", "key", "raw", "expected"),
        [
            (EkrafInvestmentRecord, "status_modal", "pmdn", "PMDN"),
            (CreativeEconomyCompany, "status", " Pma ", "PMA"),
            (RegionalAnalysis, "status", "total", "Total"),
            (RankingAnalysis, "status", "workforce", "Workforce"),
        ],
    )
    def test_status_canonical_spelling(self, model, key, raw, expected):
        assert coerce_value(model, key, raw) == expected

    @pytest.mark.parametrize(
        ("key", "raw", "message"),
        [
            ("status_modal", "ASING", "one of PMA, PMDN"),
            ("tahun", "0", "positive"),
            ("tambahan_investasi_rp", "-1", "negative"),
        ],
    )
    def test_check_rules(self, key, raw, message):
        with pytest.raises(ValueError, match=message):
            coerce_value(EkrafInvestmentRecord, key, raw)

    def test_zero_amount_allowed(self):
        assert coerce_value(EkrafInvestmentRecord, "tambahan_investasi_usd", "0") == 0.0


class TestMembershipFilters:
    def test_lists_normalised(self):
        spec = get_dataset("labor_region")
        filters = normalize_filters(spec, {"years": "2023, 2024", "names": ["Bandung", "all"]})
        assert filters == {"years": ["2023", "2024"], "names": ["Bandung"]}
        # fixed ranking type plus the two membership predicates
        assert len(build_conditions(spec, filters)) == 3
