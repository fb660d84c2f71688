"""
Module: procurement_kernel.models.submission
Responsibility: ORM persistence for vendor submissions on RFQs.

Invariants enforced:
    - At most one submission per (rfq_id, vendor_id) (unique constraint).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import (
    Base,
    DecimalString,
    IsoDateTime,
    UUIDString,
    VersionedMixin,
)
from procurement_kernel.domain.records import HistoryEntry
from procurement_kernel.domain.submissions import Submission


class SubmissionModel(VersionedMixin, Base):
    __tablename__ = "submissions"

    __table_args__ = (
        UniqueConstraint("rfq_id", "vendor_id", name="uq_submissions_rfq_vendor"),
    )

    rfq_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    vendor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    proposed_amount: Mapped[Decimal] = mapped_column(DecimalString(), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    compliance_flag: Mapped[str] = mapped_column(String(10), nullable=False)
    technical_score: Mapped[Decimal | None] = mapped_column(DecimalString(), nullable=True)
    delivery_time_days: Mapped[int | None] = mapped_column(nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Submission {self.id} rfq={self.rfq_id} vendor={self.vendor_id} status={self.status}>"

    def to_dto(self, history: tuple[HistoryEntry, ...] = ()) -> Submission:
        return Submission(
            id=self.id,
            rfq_id=self.rfq_id,
            vendor_id=self.vendor_id,
            proposed_amount=self.proposed_amount,
            submitted_at=self.submitted_at,
            compliance_flag=self.compliance_flag,
            technical_score=self.technical_score,
            delivery_time_days=self.delivery_time_days,
            payment_terms=self.payment_terms,
            status=self.status,
            history=history,
        )

    @classmethod
    def from_dto(cls, dto: Submission) -> SubmissionModel:
        return cls(
            id=dto.id,
            rfq_id=dto.rfq_id,
            vendor_id=dto.vendor_id,
            submitted_at=dto.submitted_at,
            version=1,
            **cls.scalar_values(dto),
        )

    @staticmethod
    def scalar_values(dto: Submission) -> dict[str, Any]:
        return {
            "proposed_amount": dto.proposed_amount,
            "compliance_flag": dto.compliance_flag.value,
            "technical_score": dto.technical_score,
            "delivery_time_days": dto.delivery_time_days,
            "payment_terms": dto.payment_terms,
            "status": dto.status,
        }
