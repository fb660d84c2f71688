"""
Tests for submission evaluation and award.

Covers:
- Weight validation
- Commercial and final scores
- Disqualified / partial / awaiting submissions
- Ranking order and tie-breaks
- Award preconditions and outcome
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from procurement_engines.evaluation import (
    AWARD_NOTE_PREFIX,
    EvaluationEngine,
    EvaluationWeights,
    awarded_submission_id,
    check_status_change,
    check_unique_vendors,
    lowest_compliant_price,
    rescore,
)
from procurement_kernel.domain.lifecycles import RecordKind
from procurement_kernel.domain.submissions import ComplianceFlag
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
from tests.conftest import T0, make_record, make_submission

AT = datetime(2024, 2, 1, tzinfo=timezone.utc)


class TestWeights:

    def test_default_weights_valid(self):
        EvaluationWeights().validate()

    @pytest.mark.parametrize("technical,commercial", [("50", "60"), ("-10", "110"), ("0", "99.99")])
    def test_invalid_weights_rejected(self, technical, commercial):
        weights = EvaluationWeights(Decimal(technical), Decimal(commercial))
        with pytest.raises(InvalidWeightsError) as exc_info:
            weights.validate()
        assert exc_info.value.total == Decimal(technical) + Decimal(commercial)

    def test_score_all_validates_weights(self):
        rfq = make_record(RecordKind.RFQ, "OPEN")
        subs = [make_submission(rfq.id, "V1", "100", technical="80")]
        with pytest.raises(InvalidWeightsError):
            EvaluationEngine().score_all(subs, EvaluationWeights(Decimal("70"), Decimal("70")))


class TestScoring:

    def setup_method(self):
        self.engine = EvaluationEngine()
        self.rfq = make_record(RecordKind.RFQ, "OPEN")

    def test_lowest_price_scores_100(self):
        subs = [
            make_submission(self.rfq.id, "V1", "800", technical="70"),
            make_submission(self.rfq.id, "V2", "1000", technical="90"),
        ]
        scored = self.engine.score_all(subs, EvaluationWeights())

        assert scored[0].commercial_score == Decimal("100.00")
        assert scored[1].commercial_score == Decimal("80.00")

    def test_final_score_weighted(self):
        subs = [
            make_submission(self.rfq.id, "V1", "800", technical="70"),
            make_submission(self.rfq.id, "V2", "1000", technical="90"),
        ]
        scored = self.engine.score_all(subs, EvaluationWeights())

        # 70*0.4 + 100*0.6 = 88 ; 90*0.4 + 80*0.6 = 84
        assert scored[0].final_score == Decimal("88.00")
        assert scored[1].final_score == Decimal("84.00")

    def test_disqualified_price_ignored_for_lowest(self):
        subs = [
            make_submission(self.rfq.id, "V1", "500", technical="90", flag=ComplianceFlag.NO),
            make_submission(self.rfq.id, "V2", "1000", technical="80"),
        ]
        assert lowest_compliant_price(subs) == Decimal("1000")

        scored = self.engine.score_all(subs, EvaluationWeights())
        assert scored[0].disqualified
        assert scored[0].commercial_score is None
        assert scored[0].final_score is None
        assert scored[1].commercial_score == Decimal("100.00")

    def test_all_disqualified(self):
        subs = [make_submission(self.rfq.id, "V1", "500", flag=ComplianceFlag.NO)]
        assert lowest_compliant_price(subs) is None
        scored = self.engine.evaluate(subs, EvaluationWeights())
        assert scored[0].disqualified and scored[0].rank is None

    def test_partial_flagged_for_confirmation(self):
        subs = [make_submission(self.rfq.id, "V1", "500", technical="60", flag=ComplianceFlag.PARTIAL)]
        scored = self.engine.score_all(subs, EvaluationWeights())
        assert scored[0].needs_manual_confirmation
        assert scored[0].final_score is not None

    def test_unscored_awaits_evaluation(self):
        subs = [make_submission(self.rfq.id, "V1", "500")]
        scored = self.engine.score_all(subs, EvaluationWeights())
        assert scored[0].awaiting_evaluation
        assert scored[0].commercial_score == Decimal("100.00")
        assert scored[0].final_score is None

    def test_duplicate_vendor_rejected(self):
        subs = [
            make_submission(self.rfq.id, "V1", "500"),
            make_submission(self.rfq.id, "V1", "600"),
        ]
        with pytest.raises(DuplicateSubmissionError):
            check_unique_vendors(subs)
        with pytest.raises(DuplicateSubmissionError):
            self.engine.score_all(subs, EvaluationWeights())


class TestRanking:

    def setup_method(self):
        self.engine = EvaluationEngine()
        self.rfq = make_record(RecordKind.RFQ, "OPEN")

    def test_disqualified_never_above_compliant_regardless_of_price(self):
        subs = [
            make_submission(self.rfq.id, "CHEAP", "1", technical="100", flag=ComplianceFlag.NO),
            make_submission(self.rfq.id, "V2", "9000", technical="10"),
            make_submission(self.rfq.id, "V3", "8000", technical="20"),
        ]
        ranked = self.engine.evaluate(subs, EvaluationWeights())

        assert ranked[-1].vendor_id == "CHEAP"
        assert ranked[-1].rank is None
        assert [r.rank for r in ranked[:-1]] == [1, 2]

    def test_order_by_final_score_desc(self):
        subs = [
            make_submission(self.rfq.id, "LOW", "1000", technical="50"),
            make_submission(self.rfq.id, "HIGH", "1000", technical="95"),
        ]
        ranked = self.engine.evaluate(subs, EvaluationWeights())
        assert [r.vendor_id for r in ranked] == ["HIGH", "LOW"]

    def test_tie_broken_by_price_then_time(self):
        # Equal final scores: technical-only weighting removes the price effect
        weights = EvaluationWeights(Decimal("100"), Decimal("0"))
        subs = [
            make_submission(self.rfq.id, "LATE", "900", technical="80", submitted_at=T0 + timedelta(hours=1)),
            make_submission(self.rfq.id, "PRICEY", "950", technical="80"),
            make_submission(self.rfq.id, "EARLY", "900", technical="80", submitted_at=T0),
        ]
        ranked = self.engine.evaluate(subs, weights)
        assert [r.vendor_id for r in ranked] == ["EARLY", "LATE", "PRICEY"]

    def test_awaiting_ranks_after_scored(self):
        subs = [
            make_submission(self.rfq.id, "PENDING", "100"),
            make_submission(self.rfq.id, "SCORED", "1000", technical="10"),
        ]
        ranked = self.engine.evaluate(subs, EvaluationWeights())
        assert [r.vendor_id for r in ranked] == ["SCORED", "PENDING"]
        assert ranked[1].rank is None


class TestAward:

    def setup_method(self):
        self.engine = EvaluationEngine()
        self.rfq = make_record(RecordKind.RFQ, "OPEN")
        self.winner = make_submission(self.rfq.id, "V1", "900", technical="85")
        self.other = make_submission(self.rfq.id, "V2", "1000", technical="80")

    def test_award_moves_rfq_and_winner(self):
        outcome = self.engine.award(
            self.rfq, [self.winner, self.other], self.winner.id, actor="buyer", at=AT
        )

        assert outcome.rfq.status == "AWARDED"
        assert outcome.awarded.status == "AWARDED"
        assert [h.status for h in outcome.awarded.history] == ["RECOMMENDED", "AWARDED"]
        statuses = {s.vendor_id: s.status for s in outcome.submissions}
        assert statuses == {"V1": "AWARDED", "V2": "SUBMITTED"}

    def test_award_requires_open(self):
        rfq = make_record(RecordKind.RFQ, "ISSUED")
        winner = make_submission(rfq.id, "V1", "900", technical="85")
        with pytest.raises(AwardNotAllowedError):
            self.engine.award(rfq, [winner], winner.id, actor="buyer", at=AT)

    def test_already_awarded_rfq(self):
        rfq = make_record(RecordKind.RFQ, "AWARDED")
        winner = make_submission(rfq.id, "V1", "900", technical="85")
        with pytest.raises(AlreadyAwardedError):
            self.engine.award(rfq, [winner], winner.id, actor="buyer", at=AT)

    def test_second_award_rejected(self):
        outcome = self.engine.award(
            self.rfq, [self.winner, self.other], self.winner.id, actor="buyer", at=AT
        )
        with pytest.raises(AlreadyAwardedError) as exc_info:
            self.engine.award(
                outcome.rfq, list(outcome.submissions), self.other.id, actor="buyer", at=AT
            )
        assert exc_info.value.awarded_submission_id == str(self.winner.id)

    def test_unknown_submission(self):
        with pytest.raises(SubmissionNotFoundError):
            self.engine.award(self.rfq, [self.winner], uuid4(), actor="buyer", at=AT)

    def test_disqualified_cannot_win(self):
        bad = make_submission(self.rfq.id, "V3", "100", technical="99", flag=ComplianceFlag.NO)
        with pytest.raises(SubmissionDisqualifiedError):
            self.engine.award(self.rfq, [bad], bad.id, actor="buyer", at=AT)

    def test_partial_requires_confirmation(self):
        partial = make_submission(self.rfq.id, "V3", "100", technical="99", flag=ComplianceFlag.PARTIAL)
        with pytest.raises(ManualConfirmationRequiredError):
            self.engine.award(self.rfq, [partial], partial.id, actor="buyer", at=AT)

        outcome = self.engine.award(
            self.rfq, [partial], partial.id, actor="buyer", at=AT, confirm_partial=True
        )
        assert outcome.awarded.status == "AWARDED"

    def test_unscored_cannot_win(self):
        unscored = make_submission(self.rfq.id, "V3", "100")
        with pytest.raises(AwardNotAllowedError):
            self.engine.award(self.rfq, [unscored], unscored.id, actor="buyer", at=AT)

    def test_rejected_cannot_win(self):
        rejected = make_submission(self.rfq.id, "V3", "100", technical="90", status="REJECTED")
        with pytest.raises(AwardNotAllowedError):
            self.engine.award(self.rfq, [rejected], rejected.id, actor="buyer", at=AT)

    def test_foreign_submission_is_programming_error(self):
        foreign = make_submission(uuid4(), "V9", "100", technical="90")
        with pytest.raises(ValueError):
            self.engine.award(self.rfq, [foreign], foreign.id, actor="buyer", at=AT)

    def test_award_names_winner_on_rfq(self):
        outcome = self.engine.award(
            self.rfq, [self.winner, self.other], self.winner.id, actor="buyer", at=AT
        )
        assert not outcome.resumed
        assert awarded_submission_id(outcome.rfq) == self.winner.id

    def test_awarded_rfq_without_winner_completes_for_named_submission(self):
        rfq = self.rfq.with_status(
            "AWARDED", "buyer", AT, note=f"{AWARD_NOTE_PREFIX}{self.winner.id}"
        )

        outcome = self.engine.award(
            rfq, [self.winner, self.other], self.winner.id, actor="buyer", at=AT
        )

        assert outcome.resumed
        assert outcome.rfq is rfq
        assert outcome.awarded.status == "AWARDED"

    def test_awarded_rfq_refuses_other_submission(self):
        rfq = self.rfq.with_status(
            "AWARDED", "buyer", AT, note=f"{AWARD_NOTE_PREFIX}{self.winner.id}"
        )
        with pytest.raises(AlreadyAwardedError) as exc_info:
            self.engine.award(rfq, [self.winner, self.other], self.other.id, actor="buyer", at=AT)
        assert exc_info.value.awarded_submission_id == str(self.winner.id)

    def test_unnamed_award_is_final(self):
        rfq = self.rfq.with_status("AWARDED", "buyer", AT)
        assert awarded_submission_id(rfq) is None
        with pytest.raises(AlreadyAwardedError):
            self.engine.award(rfq, [self.winner], self.winner.id, actor="buyer", at=AT)


class TestAwardOnlyThroughAward:

    def setup_method(self):
        self.rfq = make_record(RecordKind.RFQ, "OPEN")
        self.submission = make_submission(self.rfq.id, "V1", "900", technical="85")

    def test_awarded_refused_for_rfq_and_submission(self):
        for entity in (self.rfq, self.submission):
            with pytest.raises(AwardNotAllowedError) as exc_info:
                check_status_change(entity, "AWARDED")
            assert exc_info.value.rfq_id == str(self.rfq.id)

    def test_other_statuses_pass(self):
        check_status_change(self.rfq, "CLOSED")
        check_status_change(self.submission, "RECOMMENDED")
        check_status_change(make_record(RecordKind.PURCHASE_REQUEST, "DRAFT"), "SUBMITTED")

    @pytest.mark.parametrize("status", ["SUBMITTED", "UNDER_REVIEW"])
    def test_rescore_during_review(self, status):
        submission = make_submission(self.rfq.id, "V1", "900", technical="85", status=status)
        assert rescore(submission, Decimal("70")).technical_score == Decimal("70")

    @pytest.mark.parametrize("status", ["RECOMMENDED", "AWARDED", "REJECTED"])
    def test_rescore_after_review_refused(self, status):
        submission = make_submission(self.rfq.id, "V1", "900", technical="85", status=status)
        with pytest.raises(ScoringClosedError) as exc_info:
            rescore(submission, Decimal("70"))
        assert exc_info.value.status == status
