"""
Procurement record value objects (``procurement_kernel.domain.records``).

Responsibility
--------------
Frozen representation of a lifecycle-tracked document (purchase request,
RFQ, contract, IPC or invoice header) together with its append-only status
history.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/lifecycles`` and ``domain/workflow``.

Invariants enforced
-------------------
* ``status`` is a member of the state set of ``kind``'s workflow.
* ``history`` is a tuple and only ever grows through ``with_status``.
* Every named amount is a ``Decimal``; floats are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from procurement_kernel.domain.lifecycles import RecordKind, workflow_for


def status_value(status: Any) -> str:
    if isinstance(status, Enum):
        return status.value
    return str(status)


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded status change: who moved the record where, and when."""

    status: str
    actor: str
    timestamp: datetime
    note: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", status_value(self.status))
        if not self.actor:
            raise ValueError("HistoryEntry requires an actor")


@dataclass(frozen=True)
class ProcurementRecord:
    """
    A lifecycle-tracked procurement document.

    Contract:
        Frozen.  State changes produce a new record via ``with_status``;
        the previous record is never modified.

    Guarantees:
        - ``kind`` is a ``RecordKind``; ``status`` is a canonical status
          string of that kind.
        - ``amounts`` maps names such as ``estimated_amount`` or
          ``contract_value`` to ``Decimal``.
    """

    id: UUID
    kind: RecordKind
    status: str
    created_at: datetime
    amounts: dict[str, Decimal] = field(default_factory=dict)
    history: tuple[HistoryEntry, ...] = ()
    reference: str | None = None
    currency: str = "SAR"

    def __post_init__(self) -> None:
        kind = RecordKind(self.kind)
        status = status_value(self.status)
        if not workflow_for(kind).has_state(status):
            raise ValueError(f"{status!r} is not a {kind.value} status")
        amounts: dict[str, Decimal] = {}
        for name, value in dict(self.amounts).items():
            if isinstance(value, float):
                raise ValueError(f"Amount {name} must be Decimal, not float")
            amounts[name] = Decimal(value)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "status", status)
        object.__setattr__(self, "amounts", amounts)
        object.__setattr__(self, "history", tuple(self.history))

    def amount(self, name: str) -> Decimal:
        """Named amount; ``KeyError`` if the record does not carry it."""
        return self.amounts[name]

    def with_status(
        self,
        status: str,
        actor: str,
        at: datetime,
        note: str | None = None,
    ) -> ProcurementRecord:
        entry = HistoryEntry(status=status, actor=actor, timestamp=at, note=note)
        return replace(self, status=entry.status, history=self.history + (entry,))

    @property
    def last_change(self) -> HistoryEntry | None:
        return self.history[-1] if self.history else None
