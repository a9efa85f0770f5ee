"""
Repository-layer exceptions for dataset reads and writes.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class UnknownProcedureError(RepositoryError, ValueError):
    """Raised when a server-side procedure name is not on the allow-list."""


class RecordNotFoundError(RepositoryError, LookupError):
    """Raised when a record id does not exist in its table."""


class BulkInsertError(RepositoryError, RuntimeError):
    """
    Raised when the backend rejects one insert batch.

    The batch is rolled back; batches committed earlier are kept.
    """

    def __init__(self, message: str, *, batch_number: int | None = None) -> None:
        super().__init__(message)
        self.batch_number = batch_number
