"""
Module: procurement_kernel.models.record
Responsibility: ORM persistence for procurement records and the append-only
    status history shared by records, submissions and IPCs.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value objects (for DTO conversion) only.

Invariants enforced:
    - History rows are insert-only; (owner_id, seq) is unique so two writers
      cannot both append entry n.
    - ``version`` is the optimistic concurrency token; the record store only
      ever changes a row through ``UPDATE ... WHERE version = :expected``.

Failure modes:
    - IntegrityError on a duplicate (owner_id, seq) history row.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base, IsoDateTime, UUIDString, VersionedMixin
from procurement_kernel.domain.records import HistoryEntry, ProcurementRecord


class ProcurementRecordModel(VersionedMixin, Base):
    """Persistent PR / RFQ / contract header."""

    __tablename__ = "procurement_records"

    __table_args__ = (
        Index("ix_procurement_records_kind_status", "kind", "status"),
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")
    # name -> exact decimal string
    amounts: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<ProcurementRecord {self.id} {self.kind} status={self.status} v{self.version}>"

    def to_dto(self, history: tuple[HistoryEntry, ...] = ()) -> ProcurementRecord:
        return ProcurementRecord(
            id=self.id,
            kind=self.kind,
            status=self.status,
            created_at=self.created_at,
            amounts={name: Decimal(value) for name, value in self.amounts.items()},
            history=history,
            reference=self.reference,
            currency=self.currency,
        )

    @classmethod
    def from_dto(cls, dto: ProcurementRecord) -> ProcurementRecordModel:
        return cls(id=dto.id, created_at=dto.created_at, version=1, **cls.scalar_values(dto))

    @staticmethod
    def scalar_values(dto: ProcurementRecord) -> dict[str, Any]:
        """Columns a save may change."""
        return {
            "kind": dto.kind.value,
            "status": dto.status,
            "reference": dto.reference,
            "currency": dto.currency,
            "amounts": {name: str(value) for name, value in dto.amounts.items()},
        }


class StatusHistoryModel(Base):
    """One status history entry of a record, submission or IPC."""

    __tablename__ = "status_history"

    __table_args__ = (
        UniqueConstraint("owner_id", "seq", name="uq_status_history_owner_seq"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    seq: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> HistoryEntry:
        return HistoryEntry(
            status=self.status,
            actor=self.actor,
            timestamp=self.timestamp,
            note=self.note,
        )

    @classmethod
    def from_dto(cls, owner_id: UUID, seq: int, dto: HistoryEntry) -> StatusHistoryModel:
        return cls(
            owner_id=owner_id,
            seq=seq,
            status=dto.status,
            actor=dto.actor,
            timestamp=dto.timestamp,
            note=dto.note,
        )
