"""
Module: procurement_kernel.models.ipc
Responsibility: ORM persistence for IPCs and invoices.

Invariants enforced:
    - Only inputs are stored.  Net payable and cumulative value are derived
      by the ledger engine on every read and have no columns here.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import (
    Base,
    DecimalString,
    IsoDate,
    IsoDateTime,
    UUIDString,
    VersionedMixin,
)
from procurement_kernel.domain.ledger import IpcRecord
from procurement_kernel.domain.records import HistoryEntry


class IpcModel(VersionedMixin, Base):
    __tablename__ = "ipcs"

    __table_args__ = (
        Index("ix_ipcs_contract_created", "contract_id", "created_at"),
    )

    contract_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False, default="IPC")
    current_value: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)
    period_from: Mapped[date] = mapped_column(IsoDate(), nullable=False)
    period_to: Mapped[date] = mapped_column(IsoDate(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Ipc {self.id} contract={self.contract_id} status={self.status}>"

    def to_dto(self, history: tuple[HistoryEntry, ...] = ()) -> IpcRecord:
        return IpcRecord(
            id=self.id,
            contract_id=self.contract_id,
            current_value=self.current_value,
            period_from=self.period_from,
            period_to=self.period_to,
            created_at=self.created_at,
            deductions=self.deductions,
            currency=self.currency,
            kind=self.kind,
            status=self.status,
            history=history,
            reference=self.reference,
        )

    @classmethod
    def from_dto(cls, dto: IpcRecord) -> IpcModel:
        return cls(
            id=dto.id,
            contract_id=dto.contract_id,
            kind=dto.kind.value,
            created_at=dto.created_at,
            version=1,
            **cls.scalar_values(dto),
        )

    @staticmethod
    def scalar_values(dto: IpcRecord) -> dict[str, Any]:
        return {
            "current_value": dto.current_value,
            "deductions": dto.deductions,
            "period_from": dto.period_from,
            "period_to": dto.period_to,
            "currency": dto.currency,
            "status": dto.status,
            "reference": dto.reference,
        }
