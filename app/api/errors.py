"""
app/api/errors.py

Translation of service exceptions into HTTP errors.

DatasetQueryError       -> 502 (the backend failed, the request was fine)
UnknownDatasetError     -> 404
RecordNotFoundError     -> 404
ValueError (and ImportFileError) -> 400
anything else           -> 500, logged with traceback
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from app.domain.datasets import UnknownDatasetError
from app.services.query_service import DatasetQueryError
from db.repositories.errors import RecordNotFoundError

logger = logging.getLogger(__name__)


@contextmanager
def service_errors(context: str) -> Iterator[None]:
    try:
        yield
    except HTTPException:
        raise
    except DatasetQueryError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except (UnknownDatasetError, RecordNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s failed", context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{context} failed; see server logs for details.",
        ) from exc
