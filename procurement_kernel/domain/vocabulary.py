"""
External status vocabulary (``procurement_kernel.domain.vocabulary``).

Responsibility
--------------
Translate between the status words shown to users and the canonical status
of each lifecycle table.  RFQ pages say PUBLISHED and UNDER_EVALUATION where
the lifecycle says ISSUED and OPEN; those are the same states, not extra
ones.

Architecture position
---------------------
**Kernel domain layer** -- pure lookup tables.  ZERO I/O.  Applied only at
the boundary (orchestrator input, presentation output); the status machine
never sees an external word.

Invariants enforced
-------------------
* ``mappings`` is a bijection per kind, so
  ``to_canonical(k, to_external(k, s)) == s`` for every canonical ``s``.
* ``aliases`` are one-way spellings (CANCELLED -> CANCELED) and never come
  back out of ``to_external``.
* Words with no entry pass through unchanged; validating them is the status
  machine's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from procurement_kernel.domain.lifecycles import RecordKind, workflow_for
from procurement_kernel.domain.records import status_value


@dataclass(frozen=True)
class StatusVocabulary:
    """Per-kind external <-> canonical status translation."""

    # kind -> {external word: canonical status}
    mappings: Mapping[RecordKind, Mapping[str, str]] = field(default_factory=dict)
    # kind -> {alternate spelling: canonical status}
    aliases: Mapping[RecordKind, Mapping[str, str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        mappings = {RecordKind(k): dict(v) for k, v in dict(self.mappings).items()}
        aliases = {RecordKind(k): dict(v) for k, v in dict(self.aliases).items()}
        for kind, table in list(mappings.items()) + list(aliases.items()):
            workflow = workflow_for(kind)
            for external, canonical in table.items():
                if not workflow.has_state(canonical):
                    raise ValueError(
                        f"Vocabulary maps {external} to unknown {kind.value} status {canonical}"
                    )
        for kind, table in mappings.items():
            if len(set(table.values())) != len(table):
                raise ValueError(f"Vocabulary for {kind.value} is not reversible")
        object.__setattr__(self, "mappings", mappings)
        object.__setattr__(self, "aliases", aliases)

    def to_canonical(self, kind: RecordKind | str, status: str) -> str:
        kind = RecordKind(kind)
        word = status_value(status).strip().upper()
        table = self.mappings.get(kind, {})
        if word in table:
            return table[word]
        return self.aliases.get(kind, {}).get(word, word)

    def to_external(self, kind: RecordKind | str, status: str) -> str:
        kind = RecordKind(kind)
        canonical = status_value(status)
        for external, mapped in self.mappings.get(kind, {}).items():
            if mapped == canonical:
                return external
        return canonical


DEFAULT_VOCABULARY = StatusVocabulary(
    mappings={
        RecordKind.RFQ: {
            "PUBLISHED": "ISSUED",
            "UNDER_EVALUATION": "OPEN",
        },
    },
    aliases={
        RecordKind.RFQ: {"CANCELLED": "CANCELED"},
        RecordKind.CONTRACT: {"CANCELLED": "CANCELED"},
    },
)


def to_canonical(kind: RecordKind | str, status: str) -> str:
    return DEFAULT_VOCABULARY.to_canonical(kind, status)


def to_external(kind: RecordKind | str, status: str) -> str:
    return DEFAULT_VOCABULARY.to_external(kind, status)
