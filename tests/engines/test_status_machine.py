"""
Tests for the lifecycle status machine.

Covers:
- Every documented edge of the RFQ, PR, contract, IPC and submission tables
- Rejection of every pair that is not an edge
- Terminal states
- History append on success, no mutation of the input
"""

from datetime import datetime, timezone

import pytest

from procurement_engines.status_machine import StatusMachine
from procurement_kernel.domain.lifecycles import (
    WORKFLOWS,
    PaymentStatus,
    RecordKind,
    RfqStatus,
)
from procurement_kernel.exceptions import InvalidTransitionError, TerminalStateError
from tests.conftest import make_contract, make_ipc, make_record

AT = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

RFQ_EDGES = {
    ("DRAFT", "ISSUED"), ("DRAFT", "CANCELED"),
    ("ISSUED", "OPEN"), ("ISSUED", "CANCELED"),
    ("OPEN", "AWARDED"), ("OPEN", "CLOSED"), ("OPEN", "CANCELED"),
    ("AWARDED", "CLOSED"),
}

PR_EDGES = {
    ("DRAFT", "SUBMITTED"),
    ("SUBMITTED", "UNDER_PROCUREMENT_REVIEW"),
    ("SUBMITTED", "UNDER_TECHNICAL_REVIEW"),
    ("UNDER_PROCUREMENT_REVIEW", "UNDER_TECHNICAL_REVIEW"),
    ("UNDER_PROCUREMENT_REVIEW", "APPROVED"),
    ("UNDER_PROCUREMENT_REVIEW", "REJECTED"),
    ("UNDER_TECHNICAL_REVIEW", "APPROVED"),
    ("UNDER_TECHNICAL_REVIEW", "REJECTED"),
}

PAYMENT_CHAIN = [
    "SUBMITTED", "PROCUREMENT_REVIEW", "TECHNICAL_APPROVED",
    "FINANCE_REVIEW", "APPROVED", "PAID",
]


class TestTransitionTables:
    """The tables hold exactly the documented edges."""

    def setup_method(self):
        self.machine = StatusMachine()

    @pytest.mark.parametrize("kind,edges", [(RecordKind.RFQ, RFQ_EDGES), (RecordKind.PURCHASE_REQUEST, PR_EDGES)])
    def test_every_pair_matches_table(self, kind, edges):
        states = WORKFLOWS[kind].states
        for current in states:
            for requested in states:
                expected = (current, requested) in edges
                assert self.machine.can_transition(kind, current, requested) is expected, (
                    f"{kind.value}: {current} -> {requested}"
                )

    @pytest.mark.parametrize("kind", [RecordKind.IPC, RecordKind.INVOICE])
    def test_payment_forward_chain(self, kind):
        for current, requested in zip(PAYMENT_CHAIN, PAYMENT_CHAIN[1:]):
            assert self.machine.can_transition(kind, current, requested)

    @pytest.mark.parametrize("kind", [RecordKind.IPC, RecordKind.INVOICE])
    def test_payment_rejection_from_every_non_terminal_state(self, kind):
        for status in PAYMENT_CHAIN[:-1]:
            assert self.machine.can_transition(kind, status, "REJECTED")
        assert not self.machine.can_transition(kind, "PAID", "REJECTED")

    def test_payment_cannot_skip_review(self):
        assert not self.machine.can_transition(RecordKind.IPC, "SUBMITTED", "APPROVED")
        assert not self.machine.can_transition(RecordKind.IPC, "PROCUREMENT_REVIEW", "PAID")

    def test_contract_renewal_edge(self):
        assert self.machine.can_transition(RecordKind.CONTRACT, "EXPIRED", "ACTIVE")
        assert not self.machine.can_transition(RecordKind.CONTRACT, "CLOSED", "ACTIVE")

    def test_allowed_transitions(self):
        assert self.machine.allowed_transitions(RecordKind.RFQ, "OPEN") == frozenset(
            {"AWARDED", "CLOSED", "CANCELED"}
        )

    @pytest.mark.parametrize(
        "kind,status",
        [
            (RecordKind.RFQ, "CLOSED"),
            (RecordKind.RFQ, "CANCELED"),
            (RecordKind.IPC, "PAID"),
            (RecordKind.IPC, "REJECTED"),
            (RecordKind.PURCHASE_REQUEST, "APPROVED"),
            (RecordKind.CONTRACT, "TERMINATED"),
            (RecordKind.SUBMISSION, "AWARDED"),
        ],
    )
    def test_terminal_states(self, kind, status):
        assert self.machine.is_terminal(kind, status)

    def test_terminal_states_have_no_edges(self):
        for workflow in WORKFLOWS.values():
            for state in workflow.terminal_states:
                assert not workflow.targets(state)


class TestTransition:
    """Applying transitions to records."""

    def setup_method(self):
        self.machine = StatusMachine()

    def test_success_appends_one_history_entry(self):
        rfq = make_record(RecordKind.RFQ, "DRAFT")

        issued = self.machine.transition(rfq, RfqStatus.ISSUED.value, actor="u-1", at=AT)

        assert issued.status == "ISSUED"
        assert len(issued.history) == 1
        entry = issued.history[-1]
        assert (entry.status, entry.actor, entry.timestamp) == ("ISSUED", "u-1", AT)

    def test_input_record_unchanged(self):
        rfq = make_record(RecordKind.RFQ, "DRAFT")
        self.machine.transition(rfq, "ISSUED", actor="u-1", at=AT)

        assert rfq.status == "DRAFT"
        assert rfq.history == ()

    def test_note_recorded(self):
        rfq = make_record(RecordKind.RFQ, "OPEN")
        closed = self.machine.transition(rfq, "CLOSED", actor="u-1", at=AT, note="no bids")
        assert closed.last_change.note == "no bids"

    def test_invalid_transition_carries_fields(self):
        rfq = make_record(RecordKind.RFQ, "DRAFT")

        with pytest.raises(InvalidTransitionError) as exc_info:
            self.machine.transition(rfq, "AWARDED", actor="u-1", at=AT)

        err = exc_info.value
        assert not isinstance(err, TerminalStateError)
        assert (err.kind, err.current_status, err.requested_status) == ("RFQ", "DRAFT", "AWARDED")
        assert err.code == "INVALID_TRANSITION"

    def test_terminal_state_rejects_everything(self):
        rfq = make_record(RecordKind.RFQ, "CLOSED")

        for requested in WORKFLOWS[RecordKind.RFQ].states:
            with pytest.raises(TerminalStateError):
                self.machine.transition(rfq, requested, actor="u-1", at=AT)

    def test_terminal_state_error_is_invalid_transition(self):
        ipc = make_ipc(make_contract().id, "100").with_status("PAID", "u-1", AT)
        with pytest.raises(InvalidTransitionError):
            self.machine.transition(ipc, "REJECTED", actor="u-1", at=AT)

    def test_self_transition_rejected(self):
        rfq = make_record(RecordKind.RFQ, "OPEN")
        with pytest.raises(InvalidTransitionError):
            self.machine.transition(rfq, "OPEN", actor="u-1", at=AT)

    def test_unknown_status_rejected(self):
        rfq = make_record(RecordKind.RFQ, "DRAFT")
        with pytest.raises(InvalidTransitionError):
            self.machine.transition(rfq, "PUBLISHED", actor="u-1", at=AT)

    def test_ipc_walks_full_chain(self):
        ipc = make_ipc(make_contract().id, "100")
        for status in PAYMENT_CHAIN[1:]:
            ipc = self.machine.transition(ipc, status, actor="finance", at=AT)

        assert ipc.status == PaymentStatus.PAID.value
        assert [h.status for h in ipc.history] == PAYMENT_CHAIN[1:]

    def test_transition_logged(self, captured_logs):
        rfq = make_record(RecordKind.RFQ, "DRAFT")
        self.machine.transition(rfq, "ISSUED", actor="u-1", at=AT)

        applied = [r for r in captured_logs() if r["message"] == "transition_applied"]
        assert applied
        assert applied[0]["from_status"] == "DRAFT"
        assert applied[0]["action"] == "issue"
