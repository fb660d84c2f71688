"""
Tests for IPC reconciliation.

Covers:
- The reference arithmetic (1,000,000 contract, 400,000 prior, 300,000 new, 20,000 deductions)
- Over-commitment reported, never rejected
- Input validation before arithmetic
- Contract summaries
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from procurement_engines.ledger import LedgerEngine, percent_of
from procurement_kernel.domain.ledger import ContractTerms
from procurement_kernel.domain.lifecycles import RecordKind
from procurement_kernel.exceptions import (
    CurrencyMismatchError,
    ForeignIpcError,
    InvalidDeductionError,
    InvalidPeriodError,
    IpcOrderError,
)
from tests.conftest import T0, make_contract, make_ipc, make_record


class TestComputeIpc:

    def setup_method(self):
        self.engine = LedgerEngine()
        self.contract = ContractTerms.from_record(make_contract("1000000"))
        cid = self.contract.contract_id
        self.priors = [
            make_ipc(cid, "250000", created_at=T0),
            make_ipc(cid, "150000", created_at=T0 + timedelta(days=30)),
        ]

    def test_reference_example(self):
        new = make_ipc(
            self.contract.contract_id, "300000", deductions="20000",
            created_at=T0 + timedelta(days=60),
        )

        result = self.engine.compute_ipc(self.contract, self.priors, new)

        assert result.net_payable == Decimal("280000")
        assert result.previous_cumulative == Decimal("400000")
        assert result.cumulative_value == Decimal("700000")
        assert result.remaining_balance == Decimal("300000")
        assert result.percent_used == Decimal("70")
        assert not result.over_committed
        assert result.currency == "SAR"

    def test_first_ipc_has_no_priors(self):
        new = make_ipc(self.contract.contract_id, "100000")
        result = self.engine.compute_ipc(self.contract, [], new)
        assert result.cumulative_value == Decimal("100000")
        assert result.percent_used == Decimal("10.00")

    def test_over_commitment_reported_not_rejected(self, captured_logs):
        new = make_ipc(
            self.contract.contract_id, "700000", created_at=T0 + timedelta(days=60)
        )

        result = self.engine.compute_ipc(self.contract, self.priors, new)

        assert result.over_committed
        assert result.remaining_balance == Decimal("-100000")
        assert result.percent_used == Decimal("100.00")
        assert result.percent_used_raw == Decimal("110")
        assert any(r["message"] == "contract_over_committed" for r in captured_logs())

    def test_negative_deductions_rejected(self):
        new = make_ipc(self.contract.contract_id, "100", deductions="-1")
        with pytest.raises(InvalidDeductionError) as exc_info:
            self.engine.compute_ipc(self.contract, [], new)
        assert exc_info.value.deductions == Decimal("-1")

    def test_inverted_period_rejected(self):
        new = make_ipc(
            self.contract.contract_id, "100",
            period_from=date(2024, 2, 1), period_to=date(2024, 1, 1),
        )
        with pytest.raises(InvalidPeriodError):
            self.engine.compute_ipc(self.contract, [], new)

    def test_currency_mismatch(self):
        new = make_ipc(self.contract.contract_id, "100", currency="USD")
        with pytest.raises(CurrencyMismatchError) as exc_info:
            self.engine.compute_ipc(self.contract, [], new)
        assert (exc_info.value.expected, exc_info.value.actual) == ("SAR", "USD")

    def test_foreign_ipc(self):
        other = make_record(RecordKind.CONTRACT, "ACTIVE")
        new = make_ipc(other.id, "100")
        with pytest.raises(ForeignIpcError):
            self.engine.compute_ipc(self.contract, [], new)

    def test_foreign_prior(self):
        other = make_record(RecordKind.CONTRACT, "ACTIVE")
        new = make_ipc(self.contract.contract_id, "100", created_at=T0 + timedelta(days=90))
        with pytest.raises(ForeignIpcError):
            self.engine.compute_ipc(self.contract, [make_ipc(other.id, "5")], new)

    def test_priors_out_of_order(self):
        new = make_ipc(self.contract.contract_id, "100", created_at=T0 + timedelta(days=90))
        with pytest.raises(IpcOrderError):
            self.engine.compute_ipc(self.contract, list(reversed(self.priors)), new)

    def test_inputs_not_modified(self):
        new = make_ipc(self.contract.contract_id, "300000", created_at=T0 + timedelta(days=60))
        before = list(self.priors)
        self.engine.compute_ipc(self.contract, self.priors, new)
        assert self.priors == before


class TestPercentOf:

    def test_clamped_display(self):
        display, raw = percent_of(Decimal("1500"), Decimal("1000"))
        assert display == Decimal("100.00")
        assert raw == Decimal("150")

    def test_rounded_to_two_places(self):
        display, _ = percent_of(Decimal("1"), Decimal("3"))
        assert display == Decimal("33.33")


class TestSummarizeContract:

    def test_running_totals(self):
        engine = LedgerEngine()
        contract = ContractTerms.from_record(make_contract("1000000"))
        ipcs = [
            make_ipc(contract.contract_id, "400000", deductions="10000", created_at=T0),
            make_ipc(contract.contract_id, "300000", deductions="20000", created_at=T0 + timedelta(days=30)),
        ]

        summary = engine.summarize_contract(contract, ipcs)

        assert summary.ipc_count == 2
        assert summary.total_certified == Decimal("700000")
        assert summary.total_deductions == Decimal("30000")
        assert summary.total_net_payable == Decimal("670000")
        assert summary.remaining_value == Decimal("300000")
        assert summary.percent_used == Decimal("70")
        assert [line.cumulative_value for line in summary.lines] == [
            Decimal("400000"), Decimal("700000"),
        ]

    def test_empty_contract(self):
        engine = LedgerEngine()
        contract = ContractTerms.from_record(make_contract("500"))
        summary = engine.summarize_contract(contract, [])
        assert summary.ipc_count == 0
        assert summary.remaining_value == Decimal("500")
        assert summary.percent_used == Decimal("0")

    def test_contract_terms_require_contract_record(self):
        with pytest.raises(ValueError):
            ContractTerms.from_record(make_record(RecordKind.RFQ, "OPEN"))
