"""
Module: procurement_kernel.db.base
Responsibility: Declarative base and portable column types for all SQLAlchemy
    ORM models.  Provides the UUID primary key convention and the
    type_annotation_map used by every model.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys stored as 36-character strings.
    - Decimal values are stored as exact strings (DecimalString), so no
      backend ever rounds a contract value or deduction.
    - Timestamps are stored as ISO-8601 strings normalized to UTC
      (IsoDateTime); a naive datetime is rejected at bind time.

Failure modes:
    - ValueError on binding a naive datetime.
    - IntegrityError on duplicate primary keys.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class DecimalString(TypeDecorator):
    """Decimal stored as its exact string form (``str(Decimal)``)."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, float):
            raise ValueError("Refusing to store a float as a Decimal column")
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is not None:
            return Decimal(value)
        return None


class IsoDateTime(TypeDecorator):
    """Timezone-aware datetime stored as a fixed-width ISO-8601 UTC string.

    Fixed width keeps lexicographic order equal to chronological order.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime {value!r} cannot be stored")
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    def process_result_value(self, value, dialect):
        if value is not None:
            return datetime.fromisoformat(value)
        return None


class IsoDate(TypeDecorator):
    """Calendar date stored as YYYY-MM-DD."""

    impl = String(10)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return value.isoformat()
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return date.fromisoformat(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal, datetime and date map to the string-backed types above.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: DecimalString(),
        datetime: IsoDateTime(),
        date: IsoDate(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class VersionedMixin:
    """Optimistic concurrency token.  Incremented by every conditional save."""

    version: Mapped[int] = mapped_column(nullable=False, default=1)


UUID = PyUUID
