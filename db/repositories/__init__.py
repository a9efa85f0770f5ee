"""
Repository layer exports.
"""

from db.repositories.errors import (
    BulkInsertError,
    RecordNotFoundError,
    RepositoryError,
    UnknownProcedureError,
)
from db.repositories.table_repository import KNOWN_PROCEDURES, TableRepository, call_procedure

__all__ = [
    "KNOWN_PROCEDURES",
    "TableRepository",
    "call_procedure",
    "RepositoryError",
    "RecordNotFoundError",
    "BulkInsertError",
    "UnknownProcedureError",
]
