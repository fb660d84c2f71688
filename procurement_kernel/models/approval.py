"""
Module: procurement_kernel.models.approval
Responsibility: ORM persistence for approval steps and their recorded SLA
    extensions.

Invariants enforced:
    - Extension rows are insert-only and numbered per approval; the current
      ``sla_deadline`` column always equals the last extension's
      ``new_deadline`` when any exist.
    - Status values are limited to PENDING / APPROVED / REJECTED.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base, IsoDateTime, UUIDString, VersionedMixin
from procurement_kernel.domain.approval import Approval, SlaExtension


class ApprovalModel(VersionedMixin, Base):
    __tablename__ = "approvals"

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_approvals_valid_status",
        ),
        Index("ix_approvals_status_deadline", "status", "sla_deadline"),
    )

    record_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    record_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    assignee_id: Mapped[str] = mapped_column(String(100), nullable=False)
    sla_deadline: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    decided_at: Mapped[datetime | None] = mapped_column(IsoDateTime(), nullable=True)
    decided_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Approval {self.id} record={self.record_id} status={self.status}>"

    def to_dto(self, extensions: tuple[SlaExtension, ...] = ()) -> Approval:
        return Approval(
            id=self.id,
            record_id=self.record_id,
            record_kind=self.record_kind,
            assignee_id=self.assignee_id,
            sla_deadline=self.sla_deadline,
            created_at=self.created_at,
            status=self.status,
            decided_at=self.decided_at,
            decided_by=self.decided_by,
            comment=self.comment,
            extensions=extensions,
        )

    @classmethod
    def from_dto(cls, dto: Approval) -> ApprovalModel:
        return cls(
            id=dto.id,
            record_id=dto.record_id,
            record_kind=dto.record_kind.value,
            created_at=dto.created_at,
            version=1,
            **cls.scalar_values(dto),
        )

    @staticmethod
    def scalar_values(dto: Approval) -> dict[str, Any]:
        return {
            "assignee_id": dto.assignee_id,
            "sla_deadline": dto.sla_deadline,
            "status": dto.status.value,
            "decided_at": dto.decided_at,
            "decided_by": dto.decided_by,
            "comment": dto.comment,
        }


class SlaExtensionModel(Base):
    __tablename__ = "sla_extensions"

    __table_args__ = (
        UniqueConstraint("approval_id", "seq", name="uq_sla_extensions_approval_seq"),
    )

    approval_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    seq: Mapped[int] = mapped_column(nullable=False)
    previous_deadline: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    new_deadline: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)

    def to_dto(self) -> SlaExtension:
        return SlaExtension(
            previous_deadline=self.previous_deadline,
            new_deadline=self.new_deadline,
            actor=self.actor,
            reason=self.reason,
            recorded_at=self.recorded_at,
        )

    @classmethod
    def from_dto(cls, approval_id: UUID, seq: int, dto: SlaExtension) -> SlaExtensionModel:
        return cls(
            approval_id=approval_id,
            seq=seq,
            previous_deadline=dto.previous_deadline,
            new_deadline=dto.new_deadline,
            actor=dto.actor,
            reason=dto.reason,
            recorded_at=dto.recorded_at,
        )
