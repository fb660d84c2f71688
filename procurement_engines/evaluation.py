"""
Module: procurement_engines.evaluation
Responsibility:
    Score vendor submissions on an RFQ (technical + commercial), rank them
    deterministically, and apply an award decision.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Award transitions go through ``StatusMachine`` so the RFQ and the
    winning submission get history entries like any other status change.

Invariants enforced:
    - Weights are percentages: each >= 0 and technical + commercial == 100.
    - The lowest-priced compliant submission (flag YES or PARTIAL) scores
      100 on the commercial axis; others score 100 x lowest / price,
      quantized to 0.01.
    - A submission flagged NO is disqualified: it has no commercial score,
      no final score and no rank, and sorts after every other submission
      whatever its price.
    - Ranking is total: final score desc, proposed amount asc, submitted_at
      asc, vendor_id asc.
    - After ``award`` exactly one submission on the RFQ is AWARDED and the
      RFQ itself is AWARDED.  Other submissions are returned unchanged.
    - AWARDED is reached only through ``award``: ``check_status_change``
      refuses it for every other caller.
    - The RFQ's AWARDED history entry names the winning submission, so an
      award whose submission write did not land can be completed by
      re-running the same award, and by nothing else.
    - Technical scores change only while a submission is SUBMITTED or
      UNDER_REVIEW.

Failure modes:
    - InvalidWeightsError on bad weights.
    - DuplicateSubmissionError when a vendor appears twice on one RFQ.
    - AlreadyAwardedError, AwardNotAllowedError, SubmissionNotFoundError,
      SubmissionDisqualifiedError, ManualConfirmationRequiredError on award.
    - ScoringClosedError when rescoring a submission past review.

Usage:
    engine = EvaluationEngine()
    ranked = engine.rank(engine.score_all(submissions, EvaluationWeights()))
    outcome = engine.award(rfq, submissions, ranked[0].submission_id,
                           actor="u-17", at=clock.now())
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from procurement_kernel.domain.lifecycles import RecordKind, RfqStatus, SubmissionStatus
from procurement_kernel.domain.records import ProcurementRecord
from procurement_kernel.domain.submissions import ComplianceFlag, Submission
from procurement_kernel.exceptions import (
    AlreadyAwardedError,
    AwardNotAllowedError,
    DuplicateSubmissionError,
    InvalidWeightsError,
    ManualConfirmationRequiredError,
    ScoringClosedError,
    SubmissionDisqualifiedError,
    SubmissionNotFoundError,
)
from procurement_kernel.logging_config import get_logger
from procurement_engines.status_machine import StatusMachine
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.evaluation")

HUNDRED = Decimal("100")
SCORE_QUANTUM = Decimal("0.01")

AWARD_NOTE_PREFIX = "award to submission "

SCORABLE_STATUSES = frozenset({
    SubmissionStatus.SUBMITTED.value,
    SubmissionStatus.UNDER_REVIEW.value,
})


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(SCORE_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class EvaluationWeights:
    """Technical / commercial weighting, in percent."""

    technical: Decimal = Decimal("40")
    commercial: Decimal = Decimal("60")

    def __post_init__(self) -> None:
        object.__setattr__(self, "technical", Decimal(self.technical))
        object.__setattr__(self, "commercial", Decimal(self.commercial))

    def validate(self) -> None:
        total = self.technical + self.commercial
        if self.technical < 0 or self.commercial < 0 or total != HUNDRED:
            raise InvalidWeightsError(
                {"technical": self.technical, "commercial": self.commercial}, total
            )


@dataclass(frozen=True)
class ScoredSubmission:
    """
    A submission with its derived scores.

    Guarantees:
        - ``disqualified`` implies ``commercial_score``, ``final_score`` and
          ``rank`` are all None.
        - ``awaiting_evaluation`` implies ``final_score`` and ``rank`` are None.
    """

    submission: Submission
    commercial_score: Decimal | None
    final_score: Decimal | None
    disqualified: bool = False
    needs_manual_confirmation: bool = False
    awaiting_evaluation: bool = False
    rank: int | None = None

    @property
    def submission_id(self) -> UUID:
        return self.submission.id

    @property
    def vendor_id(self) -> str:
        return self.submission.vendor_id

    @property
    def is_rankable(self) -> bool:
        return not self.disqualified and not self.awaiting_evaluation


@dataclass(frozen=True)
class AwardOutcome:
    """Result of a successful award."""

    rfq: ProcurementRecord
    awarded: Submission
    submissions: tuple[Submission, ...]
    resumed: bool = False


def check_unique_vendors(submissions: Sequence[Submission]) -> None:
    """Raise DuplicateSubmissionError if any vendor submitted twice on one RFQ."""
    seen: set[tuple[UUID, str]] = set()
    for submission in submissions:
        key = (submission.rfq_id, submission.vendor_id)
        if key in seen:
            raise DuplicateSubmissionError(str(submission.rfq_id), submission.vendor_id)
        seen.add(key)


def lowest_compliant_price(submissions: Sequence[Submission]) -> Decimal | None:
    prices = [s.proposed_amount for s in submissions if not s.is_disqualified]
    return min(prices) if prices else None


def awarded_submission_id(rfq: ProcurementRecord) -> UUID | None:
    """Submission named by the RFQ's latest AWARDED history entry, if any."""
    for entry in reversed(rfq.history):
        if entry.status != RfqStatus.AWARDED.value:
            continue
        if entry.note and entry.note.startswith(AWARD_NOTE_PREFIX):
            return UUID(entry.note[len(AWARD_NOTE_PREFIX):])
        return None
    return None


def check_status_change(entity, requested_status: str) -> None:
    """Refuse AWARDED outside ``EvaluationEngine.award``.

    Raises:
        AwardNotAllowedError: ``entity`` is an RFQ or a submission and
            ``requested_status`` is AWARDED.
    """
    if requested_status != SubmissionStatus.AWARDED.value:
        return
    if entity.kind is RecordKind.RFQ:
        rfq_id = str(entity.id)
    elif entity.kind is RecordKind.SUBMISSION:
        rfq_id = str(entity.rfq_id)
    else:
        return
    raise AwardNotAllowedError(rfq_id, "AWARDED is set only by the award operation")


def rescore(submission: Submission, score: Decimal) -> Submission:
    """Set the technical score of a submission that is still under review."""
    if submission.status not in SCORABLE_STATUSES:
        raise ScoringClosedError(str(submission.id), submission.status)
    return submission.with_technical_score(score)


def _sort_key(scored: ScoredSubmission) -> tuple:
    submission = scored.submission
    if scored.disqualified:
        group = 2
    elif scored.awaiting_evaluation:
        group = 1
    else:
        group = 0
    negated_final = -scored.final_score if scored.final_score is not None else Decimal("0")
    return (
        group,
        negated_final,
        submission.proposed_amount,
        submission.submitted_at,
        submission.vendor_id,
    )


class EvaluationEngine:
    """Scores, ranks and awards RFQ submissions."""

    def __init__(self, status_machine: StatusMachine | None = None):
        self._machine = status_machine or StatusMachine()

    def score(
        self,
        submission: Submission,
        weights: EvaluationWeights,
        lowest_price: Decimal | None,
    ) -> ScoredSubmission:
        weights.validate()
        if submission.is_disqualified:
            return ScoredSubmission(
                submission=submission,
                commercial_score=None,
                final_score=None,
                disqualified=True,
            )
        if lowest_price is None or lowest_price <= 0:
            raise ValueError("lowest_price is required to score a compliant submission")

        commercial = _quantize(HUNDRED * lowest_price / submission.proposed_amount)
        partial = submission.compliance_flag is ComplianceFlag.PARTIAL
        if submission.technical_score is None:
            return ScoredSubmission(
                submission=submission,
                commercial_score=commercial,
                final_score=None,
                needs_manual_confirmation=partial,
                awaiting_evaluation=True,
            )
        final = _quantize(
            (submission.technical_score * weights.technical + commercial * weights.commercial)
            / HUNDRED
        )
        return ScoredSubmission(
            submission=submission,
            commercial_score=commercial,
            final_score=final,
            needs_manual_confirmation=partial,
        )

    @traced_engine("evaluation", "1.0", fingerprint_fields=("submissions", "weights"))
    def score_all(
        self,
        submissions: Sequence[Submission],
        weights: EvaluationWeights,
    ) -> tuple[ScoredSubmission, ...]:
        weights.validate()
        check_unique_vendors(submissions)
        lowest = lowest_compliant_price(submissions)
        scored = tuple(self.score(s, weights, lowest) for s in submissions)
        logger.info(
            "submissions_scored",
            extra={
                "submission_count": len(scored),
                "disqualified_count": sum(1 for s in scored if s.disqualified),
                "awaiting_count": sum(1 for s in scored if s.awaiting_evaluation),
                "lowest_compliant_price": lowest,
            },
        )
        return scored

    def rank(self, scored: Sequence[ScoredSubmission]) -> tuple[ScoredSubmission, ...]:
        """Order submissions and number the rankable ones from 1."""
        ordered = sorted(scored, key=_sort_key)
        result: list[ScoredSubmission] = []
        position = 0
        for item in ordered:
            if item.is_rankable:
                position += 1
                rank = position
            else:
                rank = None
            result.append(
                ScoredSubmission(
                    submission=item.submission,
                    commercial_score=item.commercial_score,
                    final_score=item.final_score,
                    disqualified=item.disqualified,
                    needs_manual_confirmation=item.needs_manual_confirmation,
                    awaiting_evaluation=item.awaiting_evaluation,
                    rank=rank,
                )
            )
        return tuple(result)

    def evaluate(
        self,
        submissions: Sequence[Submission],
        weights: EvaluationWeights,
    ) -> tuple[ScoredSubmission, ...]:
        """Score and rank in one call."""
        return self.rank(self.score_all(submissions, weights))

    @traced_engine("evaluation.award", "1.0", fingerprint_fields=("submission_id", "actor"))
    def award(
        self,
        rfq: ProcurementRecord,
        submissions: Sequence[Submission],
        submission_id: UUID,
        actor: str,
        at: datetime,
        confirm_partial: bool = False,
    ) -> AwardOutcome:
        if rfq.kind is not RecordKind.RFQ:
            raise ValueError(f"Award requires an RFQ record, got {rfq.kind.value}")
        foreign = [s.id for s in submissions if s.rfq_id != rfq.id]
        if foreign:
            raise ValueError(f"Submissions {foreign} do not belong to RFQ {rfq.id}")
        check_unique_vendors(submissions)

        rfq_id = str(rfq.id)
        already = next(
            (s for s in submissions if s.status == SubmissionStatus.AWARDED.value), None
        )
        if already is not None:
            raise AlreadyAwardedError(rfq_id, str(already.id))
        # An AWARDED RFQ without an AWARDED submission is an award whose
        # submission write did not land; only the named submission completes it.
        resuming = rfq.status == RfqStatus.AWARDED.value
        if resuming:
            named = awarded_submission_id(rfq)
            if named != submission_id:
                raise AlreadyAwardedError(rfq_id, str(named) if named else None)
        elif rfq.status != RfqStatus.OPEN.value:
            raise AwardNotAllowedError(rfq_id, f"RFQ status is {rfq.status}, expected OPEN")

        winner = next((s for s in submissions if s.id == submission_id), None)
        if winner is None:
            raise SubmissionNotFoundError(rfq_id, str(submission_id))
        if winner.is_disqualified:
            raise SubmissionDisqualifiedError(str(winner.id), winner.vendor_id)
        if winner.compliance_flag is ComplianceFlag.PARTIAL and not confirm_partial:
            raise ManualConfirmationRequiredError(str(winner.id))
        if not winner.is_evaluated:
            raise AwardNotAllowedError(rfq_id, f"submission {winner.id} has no technical score")
        if winner.status == SubmissionStatus.REJECTED.value:
            raise AwardNotAllowedError(rfq_id, f"submission {winner.id} was rejected")

        if resuming:
            awarded_rfq = rfq
        else:
            awarded_rfq = self._machine.transition(
                rfq, RfqStatus.AWARDED.value, actor, at,
                note=f"{AWARD_NOTE_PREFIX}{winner.id}",
            )
        if winner.status != SubmissionStatus.RECOMMENDED.value:
            winner = self._machine.transition(
                winner, SubmissionStatus.RECOMMENDED.value, actor, at,
                note="recommended on award",
            )
        awarded = self._machine.transition(winner, SubmissionStatus.AWARDED.value, actor, at)

        updated = tuple(awarded if s.id == awarded.id else s for s in submissions)
        logger.info(
            "rfq_awarded",
            extra={
                "rfq_id": rfq_id,
                "submission_id": str(awarded.id),
                "vendor_id": awarded.vendor_id,
                "proposed_amount": awarded.proposed_amount,
                "confirmed_partial": confirm_partial,
                "resumed": resuming,
            },
        )
        return AwardOutcome(
            rfq=awarded_rfq, awarded=awarded, submissions=updated, resumed=resuming
        )
