"""
Module: procurement_engines.ledger
Responsibility:
    IPC / invoice reconciliation arithmetic against a contract: net payable,
    cumulative certified value, remaining balance and percentage used.  One
    function per figure so every caller derives them the same way.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Prior IPCs are supplied by
    the caller (the orchestrator reads them); this module never queries
    storage.

Invariants enforced:
    - All arithmetic is Decimal in the contract currency; no conversion.
    - net_payable = current_value - deductions, with deductions >= 0.
    - cumulative_value = sum(prior current_value) + new current_value, with
      priors in creation order.
    - remaining_balance = contract_value - cumulative_value.  It may go
      negative: that is reported as over-commitment, never rejected.
    - percent_used is clamped to 100 for display and quantized to 0.01;
      percent_used_raw keeps the unclamped ratio.

Failure modes:
    - InvalidDeductionError: negative deductions (checked before any
      arithmetic).
    - InvalidPeriodError: period_from after period_to.
    - CurrencyMismatchError: IPC currency differs from the contract's.
    - ForeignIpcError: an IPC belongs to another contract.
    - IpcOrderError: priors not supplied in creation order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from procurement_kernel.domain.ledger import ContractTerms, IpcRecord
from procurement_kernel.exceptions import (
    CurrencyMismatchError,
    ForeignIpcError,
    InvalidDeductionError,
    InvalidPeriodError,
    IpcOrderError,
)
from procurement_kernel.logging_config import get_logger
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.ledger")

HUNDRED = Decimal("100")
PERCENT_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class IpcComputation:
    """Derived figures for one IPC in its contract's running ledger."""

    ipc_id: UUID
    contract_id: UUID
    net_payable: Decimal
    previous_cumulative: Decimal
    cumulative_value: Decimal
    remaining_balance: Decimal
    percent_used: Decimal
    percent_used_raw: Decimal
    over_committed: bool
    currency: str


@dataclass(frozen=True)
class ContractLedgerSummary:
    """Contract-level totals across every IPC supplied."""

    contract_id: UUID
    contract_value: Decimal
    currency: str
    ipc_count: int
    total_certified: Decimal
    total_deductions: Decimal
    total_net_payable: Decimal
    remaining_value: Decimal
    percent_used: Decimal
    percent_used_raw: Decimal
    over_committed: bool
    lines: tuple[IpcComputation, ...] = ()


def _validate_ipc(contract: ContractTerms, ipc: IpcRecord) -> None:
    if ipc.deductions < 0:
        raise InvalidDeductionError(str(ipc.id), ipc.deductions)
    if ipc.period_from > ipc.period_to:
        raise InvalidPeriodError(str(ipc.id), ipc.period_from, ipc.period_to)
    if ipc.contract_id != contract.contract_id:
        raise ForeignIpcError(str(ipc.id), str(contract.contract_id), str(ipc.contract_id))
    if ipc.currency != contract.currency:
        raise CurrencyMismatchError(contract.currency, ipc.currency)


def _validate_order(ipcs: Sequence[IpcRecord]) -> None:
    for previous, current in zip(ipcs, ipcs[1:]):
        if current.created_at < previous.created_at:
            raise IpcOrderError(str(current.id), str(previous.id))


def percent_of(cumulative: Decimal, contract_value: Decimal) -> tuple[Decimal, Decimal]:
    """Return (display percent clamped to 100, raw percent)."""
    raw = cumulative / contract_value * HUNDRED
    display = min(raw, HUNDRED).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    return display, raw


class LedgerEngine:
    """Pure IPC reconciliation."""

    @traced_engine(
        "ledger", "1.0",
        fingerprint_fields=("contract", "prior_ipcs", "new_ipc"),
    )
    def compute_ipc(
        self,
        contract: ContractTerms,
        prior_ipcs: Sequence[IpcRecord],
        new_ipc: IpcRecord,
    ) -> IpcComputation:
        _validate_ipc(contract, new_ipc)
        for prior in prior_ipcs:
            if prior.contract_id != contract.contract_id:
                raise ForeignIpcError(
                    str(prior.id), str(contract.contract_id), str(prior.contract_id)
                )
            if prior.currency != contract.currency:
                raise CurrencyMismatchError(contract.currency, prior.currency)
            if prior.id == new_ipc.id:
                raise ValueError(f"IPC {new_ipc.id} is listed among its own priors")
        _validate_order(list(prior_ipcs) + [new_ipc])

        net_payable = new_ipc.current_value - new_ipc.deductions
        previous_cumulative = sum((p.current_value for p in prior_ipcs), Decimal("0"))
        cumulative = previous_cumulative + new_ipc.current_value
        remaining = contract.contract_value - cumulative
        percent_used, percent_raw = percent_of(cumulative, contract.contract_value)
        over_committed = remaining < 0

        if over_committed:
            logger.warning(
                "contract_over_committed",
                extra={
                    "contract_id": str(contract.contract_id),
                    "ipc_id": str(new_ipc.id),
                    "contract_value": contract.contract_value,
                    "cumulative_value": cumulative,
                    "remaining_balance": remaining,
                    "percent_used_raw": percent_raw,
                },
            )

        return IpcComputation(
            ipc_id=new_ipc.id,
            contract_id=contract.contract_id,
            net_payable=net_payable,
            previous_cumulative=previous_cumulative,
            cumulative_value=cumulative,
            remaining_balance=remaining,
            percent_used=percent_used,
            percent_used_raw=percent_raw,
            over_committed=over_committed,
            currency=contract.currency,
        )

    def summarize_contract(
        self,
        contract: ContractTerms,
        ipcs: Sequence[IpcRecord],
    ) -> ContractLedgerSummary:
        """Running ledger over ``ipcs`` (creation order) plus contract totals."""
        lines: list[IpcComputation] = []
        for index, ipc in enumerate(ipcs):
            lines.append(self.compute_ipc(contract, ipcs[:index], ipc))

        total_certified = lines[-1].cumulative_value if lines else Decimal("0")
        total_deductions = sum((i.deductions for i in ipcs), Decimal("0"))
        total_net = sum((line.net_payable for line in lines), Decimal("0"))
        remaining = contract.contract_value - total_certified
        percent_used, percent_raw = percent_of(total_certified, contract.contract_value)

        return ContractLedgerSummary(
            contract_id=contract.contract_id,
            contract_value=contract.contract_value,
            currency=contract.currency,
            ipc_count=len(lines),
            total_certified=total_certified,
            total_deductions=total_deductions,
            total_net_payable=total_net,
            remaining_value=remaining,
            percent_used=percent_used,
            percent_used_raw=percent_raw,
            over_committed=remaining < 0,
            lines=tuple(lines),
        )
