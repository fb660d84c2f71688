"""
Contract ledger value objects (``procurement_kernel.domain.ledger``).

Responsibility
--------------
Inputs to IPC / invoice reconciliation: the contract terms an IPC is
certified against and the IPC itself.  Derived figures (net payable,
cumulative value, remaining balance) are never stored here; the ledger
engine computes them from these inputs on demand.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``ContractTerms.contract_value`` is positive.
* ``IpcRecord.current_value`` is non-negative.  Deductions and period
  ordering are validated by the ledger engine so that the failure is a
  typed ``LedgerError`` rather than a constructor ``ValueError``.
* ``IpcRecord.kind`` is IPC or INVOICE; invoices reuse the same shape.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from procurement_kernel.domain.lifecycles import (
    PaymentStatus,
    RecordKind,
    workflow_for,
)
from procurement_kernel.domain.records import (
    HistoryEntry,
    ProcurementRecord,
    status_value,
)

_PAYMENT_KINDS = frozenset({RecordKind.IPC, RecordKind.INVOICE})


@dataclass(frozen=True)
class ContractTerms:
    """Contract value and currency that IPCs are reconciled against."""

    contract_id: UUID
    contract_value: Decimal
    currency: str = "SAR"

    def __post_init__(self) -> None:
        value = Decimal(self.contract_value)
        if value <= 0:
            raise ValueError(f"contract_value must be positive, got {value}")
        object.__setattr__(self, "contract_value", value)

    @classmethod
    def from_record(cls, record: ProcurementRecord) -> ContractTerms:
        """Read terms off a CONTRACT record (``amounts['contract_value']``)."""
        if record.kind is not RecordKind.CONTRACT:
            raise ValueError(f"Expected a CONTRACT record, got {record.kind.value}")
        return cls(
            contract_id=record.id,
            contract_value=record.amount("contract_value"),
            currency=record.currency,
        )


@dataclass(frozen=True)
class IpcRecord:
    """
    Interim payment certificate (or invoice) against one contract.

    Contract:
        Frozen.  ``net_payable`` is derived from ``current_value`` and
        ``deductions`` and is not a stored field.
    """

    id: UUID
    contract_id: UUID
    current_value: Decimal
    period_from: date
    period_to: date
    created_at: datetime
    deductions: Decimal = Decimal("0")
    currency: str = "SAR"
    kind: RecordKind = RecordKind.IPC
    status: str = PaymentStatus.SUBMITTED.value
    history: tuple[HistoryEntry, ...] = ()
    reference: str | None = None

    def __post_init__(self) -> None:
        kind = RecordKind(self.kind)
        if kind not in _PAYMENT_KINDS:
            raise ValueError(f"IpcRecord kind must be IPC or INVOICE, got {kind.value}")
        current_value = Decimal(self.current_value)
        if current_value < 0:
            raise ValueError(f"current_value cannot be negative, got {current_value}")
        status = status_value(self.status)
        if not workflow_for(kind).has_state(status):
            raise ValueError(f"{status!r} is not a {kind.value} status")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "current_value", current_value)
        object.__setattr__(self, "deductions", Decimal(self.deductions))
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "history", tuple(self.history))

    @property
    def net_payable(self) -> Decimal:
        return self.current_value - self.deductions

    def with_status(
        self,
        status: str,
        actor: str,
        at: datetime,
        note: str | None = None,
    ) -> IpcRecord:
        entry = HistoryEntry(status=status, actor=actor, timestamp=at, note=note)
        return replace(self, status=entry.status, history=self.history + (entry,))
