"""
Module: procurement_engines.sla
Responsibility:
    Approval SLA tracking: classify a pending approval as on-track or
    overdue, aggregate approval statistics, record decisions, extend
    deadlines through an explicit recorded action, and decide when a
    reminder is due.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - OVERDUE iff status is PENDING and sla_deadline < as_of.  Decided
      approvals are never overdue, whatever their deadline was.
    - aggregate: on_track + overdue == total.
    - A deadline only moves through ``extend_deadline``, which appends an
      ``SlaExtension`` carrying the previous deadline, actor and reason.

Failure modes:
    - ApprovalAlreadyDecidedError when deciding a non-pending approval.
    - SlaExtensionError when extending a decided approval, moving the
      deadline earlier, or giving no reason.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from procurement_kernel.domain.approval import (
    Approval,
    ApprovalStatus,
    SlaExtension,
    SlaStatus,
)
from procurement_kernel.exceptions import (
    ApprovalAlreadyDecidedError,
    SlaExtensionError,
)
from procurement_kernel.logging_config import get_logger
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.sla")

DEFAULT_REMINDER_LEAD = timedelta(hours=24)


@dataclass(frozen=True)
class EntityTypeCounts:
    total: int = 0
    on_track: int = 0
    overdue: int = 0
    pending: int = 0


@dataclass(frozen=True)
class SlaReport:
    as_of: datetime
    total: int
    on_track: int
    overdue: int
    pending: int
    approved: int
    rejected: int
    decided_late: int
    by_entity_type: Mapping[str, EntityTypeCounts] = field(default_factory=dict)
    average_decision_hours: Decimal | None = None
    overdue_ids: tuple[str, ...] = ()


def classify(approval: Approval, as_of: datetime) -> SlaStatus:
    if approval.is_pending and approval.sla_deadline < as_of:
        return SlaStatus.OVERDUE
    return SlaStatus.ON_TRACK


def decided_late(approval: Approval) -> bool:
    """True if the approval left PENDING after its (final) deadline."""
    return approval.decided_at is not None and approval.decided_at > approval.sla_deadline


@traced_engine("sla", "1.0", fingerprint_fields=("as_of",))
def aggregate(approvals: Iterable[Approval], as_of: datetime) -> SlaReport:
    approvals = list(approvals)
    statuses = Counter(a.status for a in approvals)
    per_kind: dict[str, Counter] = {}
    overdue_ids: list[str] = []
    decision_hours: list[Decimal] = []

    for approval in approvals:
        sla_status = classify(approval, as_of)
        counts = per_kind.setdefault(approval.record_kind.value, Counter())
        counts["total"] += 1
        counts["pending"] += int(approval.is_pending)
        if sla_status is SlaStatus.OVERDUE:
            counts["overdue"] += 1
            overdue_ids.append(str(approval.id))
        else:
            counts["on_track"] += 1
        if approval.decided_at is not None:
            seconds = Decimal(str((approval.decided_at - approval.created_at).total_seconds()))
            decision_hours.append(seconds / Decimal("3600"))

    average = None
    if decision_hours:
        average = (sum(decision_hours, Decimal("0")) / len(decision_hours)).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )

    overdue = len(overdue_ids)
    report = SlaReport(
        as_of=as_of,
        total=len(approvals),
        on_track=len(approvals) - overdue,
        overdue=overdue,
        pending=statuses[ApprovalStatus.PENDING],
        approved=statuses[ApprovalStatus.APPROVED],
        rejected=statuses[ApprovalStatus.REJECTED],
        decided_late=sum(1 for a in approvals if decided_late(a)),
        by_entity_type={
            kind: EntityTypeCounts(
                total=c["total"], on_track=c["on_track"],
                overdue=c["overdue"], pending=c["pending"],
            )
            for kind, c in sorted(per_kind.items())
        },
        average_decision_hours=average,
        overdue_ids=tuple(overdue_ids),
    )
    logger.info(
        "sla_aggregated",
        extra={"total": report.total, "overdue": report.overdue, "pending": report.pending},
    )
    return report


def record_decision(
    approval: Approval,
    decision: ApprovalStatus | str,
    actor: str,
    at: datetime,
    comment: str | None = None,
) -> Approval:
    decision = ApprovalStatus(decision)
    if decision is ApprovalStatus.PENDING:
        raise ValueError("A decision must be APPROVED or REJECTED")
    if not approval.is_pending:
        raise ApprovalAlreadyDecidedError(str(approval.id), approval.status.value)
    decided = replace(
        approval, status=decision, decided_at=at, decided_by=actor, comment=comment
    )
    logger.info(
        "approval_decided",
        extra={
            "approval_id": str(approval.id),
            "decision": decision.value,
            "decided_late": decided_late(decided),
        },
    )
    return decided


def extend_deadline(
    approval: Approval,
    new_deadline: datetime,
    actor: str,
    reason: str,
    at: datetime,
) -> Approval:
    approval_id = str(approval.id)
    if not approval.is_pending:
        raise SlaExtensionError(approval_id, f"approval is {approval.status.value}")
    if new_deadline <= approval.sla_deadline:
        raise SlaExtensionError(
            approval_id,
            f"new deadline {new_deadline.isoformat()} is not later than "
            f"{approval.sla_deadline.isoformat()}",
        )
    if not reason or not reason.strip():
        raise SlaExtensionError(approval_id, "a reason is required")

    extension = SlaExtension(
        previous_deadline=approval.sla_deadline,
        new_deadline=new_deadline,
        actor=actor,
        reason=reason,
        recorded_at=at,
    )
    logger.info(
        "sla_extended",
        extra={
            "approval_id": approval_id,
            "previous_deadline": approval.sla_deadline,
            "new_deadline": new_deadline,
        },
    )
    return replace(
        approval,
        sla_deadline=new_deadline,
        extensions=approval.extensions + (extension,),
    )


def needs_reminder(
    approval: Approval,
    as_of: datetime,
    lead: timedelta = DEFAULT_REMINDER_LEAD,
) -> bool:
    """Pending approvals within ``lead`` of their deadline, or past it."""
    return approval.is_pending and as_of >= approval.sla_deadline - lead
