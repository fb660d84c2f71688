"""
Module: procurement_engines.status_machine
Responsibility:
    Validate and apply lifecycle transitions for every procurement document
    kind against the canonical tables in
    ``procurement_kernel.domain.lifecycles``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procurement_kernel/domain, exceptions and logging_config.

Invariants enforced:
    - A transition succeeds only if (current, requested) is an edge of the
      kind's workflow.
    - A record in a terminal state accepts no transition at all.
    - Every successful transition returns a new entity with exactly one
      extra history entry; the input entity is never modified.

Failure modes:
    - TerminalStateError when the current status has no outgoing edges.
    - InvalidTransitionError for any other non-edge, including unknown
      requested statuses and self-transitions.

Usage:
    from procurement_engines.status_machine import StatusMachine

    machine = StatusMachine()
    issued = machine.transition(rfq, "ISSUED", actor="u-17", at=clock.now())
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Protocol, TypeVar

from procurement_kernel.domain.lifecycles import WORKFLOWS, RecordKind
from procurement_kernel.domain.records import HistoryEntry, status_value
from procurement_kernel.domain.workflow import Workflow
from procurement_kernel.exceptions import InvalidTransitionError, TerminalStateError
from procurement_kernel.logging_config import get_logger
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.status_machine")


class Transitionable(Protocol):
    """Anything with a lifecycle: records, IPCs, submissions."""

    @property
    def kind(self) -> RecordKind: ...

    @property
    def status(self) -> str: ...

    @property
    def history(self) -> tuple[HistoryEntry, ...]: ...

    def with_status(
        self, status: str, actor: str, at: datetime, note: str | None = None
    ) -> "Transitionable": ...


T = TypeVar("T", bound=Transitionable)


class StatusMachine:
    """
    Table-driven lifecycle evaluator.

    Contract:
        Stateless apart from the (immutable) workflow tables passed in.
        Safe to share between threads.
    """

    def __init__(self, workflows: Mapping[RecordKind, Workflow] | None = None):
        self._workflows = dict(workflows if workflows is not None else WORKFLOWS)

    def workflow(self, kind: RecordKind | str) -> Workflow:
        return self._workflows[RecordKind(kind)]

    def can_transition(
        self,
        kind: RecordKind | str,
        current_status: str,
        requested_status: str,
    ) -> bool:
        workflow = self.workflow(kind)
        return status_value(requested_status) in workflow.targets(status_value(current_status))

    def allowed_transitions(self, kind: RecordKind | str, status: str) -> frozenset[str]:
        return self.workflow(kind).targets(status_value(status))

    def is_terminal(self, kind: RecordKind | str, status: str) -> bool:
        workflow = self.workflow(kind)
        status = status_value(status)
        return workflow.has_state(status) and not workflow.targets(status)

    @traced_engine(
        "status_machine", "1.0",
        fingerprint_fields=("requested_status", "actor", "at"),
    )
    def transition(
        self,
        record: T,
        requested_status: str,
        actor: str,
        at: datetime,
        note: str | None = None,
    ) -> T:
        """Apply ``requested_status`` to ``record``.

        Returns:
            A new entity of the same type with the status changed and one
            ``HistoryEntry`` appended.

        Raises:
            TerminalStateError: record is in a terminal state.
            InvalidTransitionError: (current, requested) is not an edge.
        """
        kind = RecordKind(record.kind)
        current = record.status
        requested = status_value(requested_status)

        if self.is_terminal(kind, current):
            logger.warning(
                "transition_from_terminal_state",
                extra={"kind": kind.value, "current_status": current, "requested_status": requested},
            )
            raise TerminalStateError(kind.value, current, requested)

        if not self.can_transition(kind, current, requested):
            logger.warning(
                "transition_rejected",
                extra={"kind": kind.value, "current_status": current, "requested_status": requested},
            )
            raise InvalidTransitionError(kind.value, current, requested)

        updated = record.with_status(requested, actor, at, note)
        logger.info(
            "transition_applied",
            extra={
                "kind": kind.value,
                "from_status": current,
                "to_status": requested,
                "action": self.workflow(kind).action_for(current, requested),
                "actor": actor,
                "history_length": len(updated.history),
            },
        )
        return updated
