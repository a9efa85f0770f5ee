"""
db/base.py

Declarative base and shared mixins for all dashboard tables.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    Every mirrored backend table inherits from this class.
    """

    type_annotation_map: dict[type, Any] = {}

    def to_dict(self) -> dict[str, Any]:
        """Return the row as a plain column -> value mapping."""
        return {column.key: getattr(self, column.key) for column in self.__table__.columns}


class IdMixin:
    """Numeric surrogate key shared by every record table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at to any model.
    updated_at is refreshed on every UPDATE via onupdate.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
