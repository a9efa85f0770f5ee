"""
app/services/filters.py

Filter normalisation and SQL predicate building shared by every dataset.

Raw filter values arrive from query strings or widget state. Before a
query is built they are normalised against the dataset's filter schema:

- None, "" and the lowercase sentinel "all" mean "no filter"; "All" is a
  real ranking status and filters like any other value;
- integer filters (year, range bounds) are parsed with int(); anything
  non-numeric is dropped instead of being sent upstream;
- boolean filters accept true/false/1/0/yes/no;
- list filters accept a list or a comma-separated string;
- unknown keys are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import ColumnElement, or_

from app.domain.datasets import DatasetSpec, FilterField

logger = logging.getLogger(__name__)

SENTINEL_ALL = "all"
SEARCH_KEY = "search"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on", "y", "ya"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", "n", "tidak"})


def is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped == SENTINEL_ALL
    if isinstance(value, (list, tuple, set, frozenset)):
        return all(is_absent(item) for item in value)
    return False


def parse_int(value: Any) -> int | None:
    """Parse an integer filter value; returns None for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


def _split_list(value: Any) -> list[str]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        items = [value]
    return [str(item).strip() for item in items if not is_absent(item)]


def _parse_value(field: FilterField, value: Any) -> Any:
    if is_absent(value):
        return None
    if field.kind in {"int", "gte", "lte"}:
        return parse_int(value)
    if field.kind == "bool":
        return parse_bool(value)
    if field.kind == "in":
        items = _split_list(value)
        return items or None
    return str(value).strip()


def normalize_filters(spec: DatasetSpec, raw: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Return only the filters that should reach the backend, parsed to their
    column types. The result is empty when nothing constrains the query.
    """

    normalized: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        if key == SEARCH_KEY:
            term = "" if value is None else str(value).strip()
            if term and spec.search_columns:
                normalized[SEARCH_KEY] = term
            continue

        field = spec.filter_field(key)
        if field is None:
            logger.debug("Ignoring unknown filter dataset=%r key=%r", spec.name, key)
            continue

        parsed = _parse_value(field, value)
        if parsed is None:
            if not is_absent(value):
                logger.debug(
                    "Dropping unparseable filter dataset=%r key=%r value=%r",
                    spec.name,
                    key,
                    value,
                )
            continue
        normalized[key] = parsed
    return normalized


def _typed_members(column: Any, values: list[str]) -> list[Any]:
    # Membership lists arrive as strings; integer columns compare as integers.
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return list(values)
    if python_type is int:
        return [number for number in map(parse_int, values) if number is not None]
    return list(values)


def build_conditions(spec: DatasetSpec, filters: Mapping[str, Any]) -> list[ColumnElement[bool]]:
    """
    Translate already-normalised filters into SQLAlchemy predicates.

    The dataset's fixed filters (e.g. ranking type) are always applied.
    """

    model = spec.model
    conditions: list[ColumnElement[bool]] = [
        getattr(model, column) == value for column, value in spec.fixed_filters
    ]

    for name, value in filters.items():
        if name == SEARCH_KEY:
            conditions.append(
                or_(
                    *(
                        getattr(model, column).icontains(value, autoescape=True)
                        for column in spec.search_columns
                    )
                )
            )
            continue

        field = spec.filter_field(name)
        if field is None:
            continue
        column = getattr(model, field.column)
        if field.kind == "contains":
            conditions.append(column.icontains(value, autoescape=True))
        elif field.kind == "gte":
            conditions.append(column >= value)
        elif field.kind == "lte":
            conditions.append(column <= value)
        elif field.kind == "in":
            conditions.append(column.in_(_typed_members(column, value)))
        else:
            conditions.append(column == value)

    return conditions
