"""
Vendor submission value objects (``procurement_kernel.domain.submissions``).

Responsibility
--------------
A vendor's priced response to an RFQ, carrying the reviewer-assigned
technical score and compliance flag that the evaluation engine consumes.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``proposed_amount`` is a positive ``Decimal``.
* ``technical_score`` is ``None`` (not yet evaluated) or within 0..100.
* A submission belongs to exactly one RFQ (``rfq_id``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from procurement_kernel.domain.lifecycles import (
    RecordKind,
    SubmissionStatus,
    workflow_for,
)
from procurement_kernel.domain.records import HistoryEntry, status_value


class ComplianceFlag(str, Enum):
    """Reviewer-assigned conformance of a submission to the RFQ specification."""

    YES = "YES"
    PARTIAL = "PARTIAL"
    NO = "NO"


_SCORE_MIN = Decimal("0")
_SCORE_MAX = Decimal("100")


@dataclass(frozen=True)
class Submission:
    """
    A vendor submission on an RFQ.

    Contract:
        Frozen.  Status changes go through ``with_status`` so the status
        machine can treat submissions like any other lifecycle document.

    Guarantees:
        - ``kind`` is always ``RecordKind.SUBMISSION``.
        - ``is_evaluated`` is True exactly when ``technical_score`` is set.
    """

    id: UUID
    rfq_id: UUID
    vendor_id: str
    proposed_amount: Decimal
    submitted_at: datetime
    compliance_flag: ComplianceFlag = ComplianceFlag.YES
    technical_score: Decimal | None = None
    delivery_time_days: int | None = None
    payment_terms: str | None = None
    status: str = SubmissionStatus.SUBMITTED.value
    history: tuple[HistoryEntry, ...] = ()

    def __post_init__(self) -> None:
        amount = Decimal(self.proposed_amount)
        if amount <= 0:
            raise ValueError(f"proposed_amount must be positive, got {amount}")
        object.__setattr__(self, "proposed_amount", amount)

        if self.technical_score is not None:
            score = Decimal(self.technical_score)
            if not (_SCORE_MIN <= score <= _SCORE_MAX):
                raise ValueError(f"technical_score must be within 0..100, got {score}")
            object.__setattr__(self, "technical_score", score)

        if self.delivery_time_days is not None and self.delivery_time_days < 0:
            raise ValueError("delivery_time_days cannot be negative")

        status = status_value(self.status)
        if not workflow_for(RecordKind.SUBMISSION).has_state(status):
            raise ValueError(f"{status!r} is not a submission status")
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "compliance_flag", ComplianceFlag(self.compliance_flag))
        object.__setattr__(self, "history", tuple(self.history))

    @property
    def kind(self) -> RecordKind:
        return RecordKind.SUBMISSION

    @property
    def is_evaluated(self) -> bool:
        return self.technical_score is not None

    @property
    def is_disqualified(self) -> bool:
        return self.compliance_flag is ComplianceFlag.NO

    def with_status(
        self,
        status: str,
        actor: str,
        at: datetime,
        note: str | None = None,
    ) -> Submission:
        entry = HistoryEntry(status=status, actor=actor, timestamp=at, note=note)
        return replace(self, status=entry.status, history=self.history + (entry,))

    def with_technical_score(self, score: Decimal) -> Submission:
        return replace(self, technical_score=Decimal(score))
