"""
app/config.py

Application-level configuration helpers.

Every setting is read from the environment (after `.env` / `.env.local`
have been loaded) once per process and cached.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

IMPORT_POLICIES: frozenset[str] = frozenset({"skip", "strict"})


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Connection-pool settings for the backend engine.
    """

    sql_echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings(
        sql_echo=_get_bool_env("SQL_ECHO", False),
        pool_size=max(1, _get_int_env("DB_POOL_SIZE", 5)),
        max_overflow=max(0, _get_int_env("DB_MAX_OVERFLOW", 10)),
        pool_recycle_seconds=max(1, _get_int_env("DB_POOL_RECYCLE", 1800)),
    )


@dataclass(frozen=True)
class BackendSettings:
    """
    Hosted backend endpoint and anonymous API key used by the auth client.
    """

    supabase_url: str | None
    supabase_anon_key: str | None
    auth_timeout_seconds: float = 15.0
    auth_disabled: bool = False

    @property
    def auth_base_url(self) -> str:
        if not self.supabase_url:
            raise RuntimeError("SUPABASE_URL is not configured.")
        return f"{self.supabase_url.rstrip('/')}/auth/v1"


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    """
    Return cached backend endpoint settings.
    """

    return BackendSettings(
        supabase_url=_get_optional_str_env("SUPABASE_URL"),
        supabase_anon_key=_get_optional_str_env("SUPABASE_ANON_KEY"),
        auth_timeout_seconds=max(1.0, _get_float_env("AUTH_TIMEOUT_SECONDS", 15.0)),
        auth_disabled=_get_bool_env("AUTH_DISABLED", False),
    )


@dataclass(frozen=True)
class DashboardSettings:
    """
    Runtime settings for tables, search, import and export.
    """

    search_debounce_seconds: float = 0.5
    import_batch_size: int = 100
    import_policy: str = "skip"
    export_max_rows: int = 100_000
    refresh_views_after_insert: bool = True


def _require_import_policy() -> str:
    raw = _get_str_env("IMPORT_POLICY", "skip").lower()
    if raw not in IMPORT_POLICIES:
        raise RuntimeError(
            f"IMPORT_POLICY '{raw}' is not valid. Allowed values: {sorted(IMPORT_POLICIES)}."
        )
    return raw


@lru_cache(maxsize=1)
def get_dashboard_settings() -> DashboardSettings:
    """
    Build and cache dashboard settings.

    Raises RuntimeError if IMPORT_POLICY is set to an unknown value.
    """

    return DashboardSettings(
        search_debounce_seconds=max(0.0, _get_float_env("SEARCH_DEBOUNCE_SECONDS", 0.5)),
        import_batch_size=max(1, _get_int_env("IMPORT_BATCH_SIZE", 100)),
        import_policy=_require_import_policy(),
        export_max_rows=max(1, _get_int_env("EXPORT_MAX_ROWS", 100_000)),
        refresh_views_after_insert=_get_bool_env("REFRESH_VIEWS_AFTER_INSERT", True),
    )
