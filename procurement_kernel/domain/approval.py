"""
Approval SLA domain types (``procurement_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for a single approval step on a procurement record: who
must act, by when, and what they decided.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``sla_deadline`` is fixed at creation.  It only moves through an explicit
  ``SlaExtension`` appended to ``extensions``; the previous deadline is kept.
* Once an approval leaves PENDING its status, ``decided_at`` and
  ``decided_by`` are frozen; it is never counted as overdue again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from procurement_kernel.domain.lifecycles import RecordKind


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SlaStatus(str, Enum):
    ON_TRACK = "ON_TRACK"
    OVERDUE = "OVERDUE"


@dataclass(frozen=True)
class SlaExtension:
    """Recorded move of an approval's deadline."""

    previous_deadline: datetime
    new_deadline: datetime
    actor: str
    reason: str
    recorded_at: datetime


@dataclass(frozen=True)
class Approval:
    """
    One approval step owned by exactly one procurement record.

    Contract:
        Frozen.  Decisions and extensions are applied by the SLA engine,
        which returns a new ``Approval``.
    """

    id: UUID
    record_id: UUID
    record_kind: RecordKind
    assignee_id: str
    sla_deadline: datetime
    created_at: datetime
    status: ApprovalStatus = ApprovalStatus.PENDING
    decided_at: datetime | None = None
    decided_by: str | None = None
    comment: str | None = None
    extensions: tuple[SlaExtension, ...] = ()

    def __post_init__(self) -> None:
        status = ApprovalStatus(self.status)
        if status is ApprovalStatus.PENDING and self.decided_at is not None:
            raise ValueError("A pending approval cannot carry a decision time")
        if status is not ApprovalStatus.PENDING and self.decided_at is None:
            raise ValueError(f"A {status.value} approval requires decided_at")
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "record_kind", RecordKind(self.record_kind))
        object.__setattr__(self, "extensions", tuple(self.extensions))

    @property
    def is_pending(self) -> bool:
        return self.status is ApprovalStatus.PENDING

    @property
    def original_deadline(self) -> datetime:
        if self.extensions:
            return self.extensions[0].previous_deadline
        return self.sla_deadline
