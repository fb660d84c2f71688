"""
Canonical workflow types (``procurement_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for lifecycle state machines.  Every lifecycle table
(PR, RFQ, contract, IPC, invoice, submission) is a ``Workflow`` built from
``Transition`` edges, so the state machine engine evaluates one shape of data
for every kind.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states are exactly the states with no outgoing transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    Contract: frozen.  ``action`` is the verb shown to operators
    ("issue", "approve", "pay").
    """
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``; ``terminal_states``
    is derived and never declared by hand.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    _edges: dict[str, frozenset[str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        edges: dict[str, set[str]] = {state: set() for state in self.states}
        for t in self.transitions:
            if t.from_state not in edges or t.to_state not in edges:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.from_state} -> {t.to_state} "
                    "references an unknown state"
                )
            edges[t.from_state].add(t.to_state)
        object.__setattr__(
            self, "_edges", {state: frozenset(targets) for state, targets in edges.items()}
        )

    @property
    def terminal_states(self) -> frozenset[str]:
        return frozenset(s for s, targets in self._edges.items() if not targets)

    def targets(self, state: str) -> frozenset[str]:
        """States reachable in one step from ``state`` (empty if unknown)."""
        return self._edges.get(state, frozenset())

    def has_state(self, state: str) -> bool:
        return state in self._edges

    def action_for(self, from_state: str, to_state: str) -> str | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t.action
        return None
