"""
Declarative base and shared column mixins for SQLAlchemy 2.0 models.

All engine tables derive from ``Base`` so ``Base.metadata.create_all`` can
build the schema for tests and local development.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, TypeEngine


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all engine tables."""


class IdMixin:
    """Surrogate integer primary key."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """Row creation and last-update timestamps, maintained by SQLAlchemy."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class ExactInteger(TypeDecorator):
    """
    Integer column wider than BIGINT, stored without loss.

    PostgreSQL gets ``NUMERIC(precision, 0)``. SQLite has no exact wide
    numeric type, so values are stored as decimal text there. Python always
    sees ``int``.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 40) -> None:
        super().__init__(precision=precision, scale=0)
        self.precision = precision

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(self.precision))
        return dialect.type_descriptor(Numeric(precision=self.precision, scale=0))

    def process_bind_param(self, value: Optional[int], dialect: Dialect) -> Any:
        if value is None:
            return None
        if dialect.name == "sqlite":
            return str(int(value))
        return Decimal(int(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> Optional[int]:
        return None if value is None else int(value)
