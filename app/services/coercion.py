"""
app/services/coercion.py

Convert raw cell or form values into the Python type of a model column.

Value rules mirror the CHECK constraints created by the migration.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.services.filters import parse_bool
from db.base import Base
from db.models import CAPITAL_STATUSES

# table -> column -> allowed values (stored spelling)
_ALLOWED_VALUES: dict[str, dict[str, tuple[str, ...]]] = {
    "creative_economy_data": {"status": CAPITAL_STATUSES},
    "ekraf_analysis_data": {"status_modal": CAPITAL_STATUSES},
    "regional_analysis_data": {"status": (*CAPITAL_STATUSES, "Total")},
    "ranking_analysis_data": {"status": ("All", "Workforce", "Projects", *CAPITAL_STATUSES)},
}

_POSITIVE_COLUMNS: dict[str, frozenset[str]] = {
    "creative_economy_data": frozenset({"year"}),
    "ekraf_analysis_data": frozenset({"tahun"}),
    "investment_analysis_data": frozenset({"year"}),
    "workforce_analysis_data": frozenset({"year"}),
    "regional_analysis_data": frozenset({"year"}),
}

_NON_NEGATIVE_COLUMNS: dict[str, frozenset[str]] = {
    "creative_economy_data": frozenset({"investment_amount"}),
    "ekraf_analysis_data": frozenset({"tambahan_investasi_usd", "tambahan_investasi_rp"}),
    "investment_analysis_data": frozenset({"investment_amount"}),
    "workforce_analysis_data": frozenset({"worker_count"}),
    "investment_realization_ranking": frozenset({"investment_amount"}),
}


def column_type(model: type[Base], key: str) -> type:
    column = model.__table__.columns.get(key)
    if column is None:
        raise ValueError(f"{model.__tablename__} has no column {key!r}")
    try:
        return column.type.python_type
    except NotImplementedError:
        return str


def _coerce_type(model: type[Base], key: str, raw: Any) -> Any:
    target = column_type(model, key)
    if target is bool:
        parsed = parse_bool(raw)
        if parsed is None:
            raise ValueError(f"{key}: expected true/false, got {raw!r}")
        return parsed
    if target is int:
        if isinstance(raw, bool):
            raise ValueError(f"{key}: expected an integer, got {raw!r}")
        try:
            return int(raw)
        except (TypeError, ValueError):
            pass
        try:
            as_float = float(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key}: expected an integer, got {raw!r}") from exc
        if not as_float.is_integer():
            raise ValueError(f"{key}: expected an integer, got {raw!r}")
        return int(as_float)
    if target is float:
        try:
            return float(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key}: expected a number, got {raw!r}") from exc
    return str(raw)


def _apply_rules(model: type[Base], key: str, value: Any) -> Any:
    table = model.__tablename__
    choices = _ALLOWED_VALUES.get(table, {}).get(key)
    if choices is not None:
        canonical = {choice.lower(): choice for choice in choices}.get(str(value).lower())
        if canonical is None:
            raise ValueError(f"{key}: expected one of {', '.join(choices)}, got {value!r}")
        return canonical
    if key in _POSITIVE_COLUMNS.get(table, ()) and value <= 0:
        raise ValueError(f"{key}: must be positive, got {value!r}")
    if key in _NON_NEGATIVE_COLUMNS.get(table, ()) and value < 0:
        raise ValueError(f"{key}: must not be negative, got {value!r}")
    return value


def coerce_value(model: type[Base], key: str, raw: Any) -> Any:
    """
    Coerce one value; blank strings become None.

    Status values are matched case-insensitively and returned in their
    stored spelling ("pma" -> "PMA"). Raises ValueError when the value
    cannot represent the column type or breaks a table CHECK rule.
    """

    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    return _apply_rules(model, key, _coerce_type(model, key, raw))


def coerce_record(model: type[Base], record: Mapping[str, Any]) -> dict[str, Any]:
    return {key: coerce_value(model, key, value) for key, value in record.items()}
