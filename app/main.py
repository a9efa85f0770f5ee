from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.logging_utils import configure_logging
from app.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

_DATABASE_URL_VARS = ("DATABASE_URL", "SUPABASE_DB_URL", "LOCAL_DATABASE_URL")


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - At least one database URL must be set; empty strings do not count.
    - SUPABASE_URL and SUPABASE_ANON_KEY are required unless AUTH_DISABLED is true.
    - IMPORT_POLICY, when set, must be "skip" or "strict".
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    if not any(os.getenv(name, "").strip() for name in _DATABASE_URL_VARS):
        errors.append(
            "No database URL configured. Set one of: " + ", ".join(_DATABASE_URL_VARS) + "."
        )

    # --- Auth backend ---------------------------------------------------
    auth_disabled = os.getenv("AUTH_DISABLED", "false").strip().lower() in {"1", "true", "yes", "on"}
    if not auth_disabled:
        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY"):
            if not os.getenv(name, "").strip():
                errors.append(
                    f"{name} is not set. Set it or disable sign-in with AUTH_DISABLED=true."
                )

    # --- Import policy --------------------------------------------------
    import_policy = os.getenv("IMPORT_POLICY", "skip").strip().lower() or "skip"
    if import_policy not in {"skip", "strict"}:
        errors.append(
            f"IMPORT_POLICY='{import_policy}' is not valid. Allowed values: ['skip', 'strict']."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed: missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _check_database() -> None:
    """
    Verify the dashboard backend before serving traffic.

    The database must answer and every dashboard table registered on
    Base.metadata must exist; either failure aborts startup. Server-side
    ranking, pivot and refresh functions that are missing are only logged,
    since the table pages work without them. Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    import db.models  # noqa: F401  registers every dashboard table on Base.metadata
    from db.base import Base
    from db.repositories import KNOWN_PROCEDURES
    from db.session import session_scope

    try:
        with session_scope() as db:
            db.execute(text("SELECT 1"))
            tables = set(sa_inspect(db.connection()).get_table_names())
            functions = set(
                db.execute(
                    text("SELECT proname FROM pg_proc WHERE proname = ANY(:names)"),
                    {"names": list(KNOWN_PROCEDURES)},
                ).scalars()
            )
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc
    logger.info("Database connectivity confirmed")

    missing_tables = sorted(set(Base.metadata.tables) - tables)
    if missing_tables:
        logger.critical(
            "Dashboard tables missing from the database: %s. Run 'alembic upgrade head' and restart.",
            ", ".join(missing_tables),
        )
        raise RuntimeError(
            f"{len(missing_tables)} dashboard table(s) missing ({', '.join(missing_tables)}). "
            "Run migrations and restart."
        )

    missing_functions = sorted(set(KNOWN_PROCEDURES) - functions)
    if missing_functions:
        logger.warning(
            "Backend functions missing, rankings and pivots will fail: %s",
            ", ".join(missing_functions),
        )
    logger.info("Database schema validated tables=%d", len(Base.metadata.tables))


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _check_database()
    yield


def register_routes(application: FastAPI) -> FastAPI:
    """
    Attach every router and the health check to `application`.
    """

    from app.api.routers import (
        analytics_router,
        datasets_router,
        export_router,
        imports_router,
    )
    from app.domain.dataset_registry import DATASETS

    application.include_router(datasets_router)
    application.include_router(export_router)
    application.include_router(imports_router)
    application.include_router(analytics_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="ok", datasets=len(DATASETS))

    return application


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    configure_logging()

    application = FastAPI(
        title="Jabar Creative Economy Dashboard API",
        version="1.0.0",
        lifespan=_lifespan,
    )
    return register_routes(application)


app = create_app()
