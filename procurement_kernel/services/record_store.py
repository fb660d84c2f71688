"""
RecordStore -- storage port with per-record optimistic concurrency.

Responsibility:
    Define the storage contract the orchestrator composes against, and
    provide the in-memory implementation used by tests and by embedders
    that keep state elsewhere.

Architecture position:
    Kernel > Services -- imperative shell.  Engines never see a store; the
    orchestrator reads through it, calls engines, and writes back.

Invariants enforced:
    - ``get`` returns the entity together with its version token.
    - ``save(entity, expected_version)`` succeeds only if the stored version
      still equals ``expected_version``; it then returns the next version.
      There is no unconditional overwrite.
    - Reads and writes of one entity are atomic: the in-memory store takes a
      single lock around every read-modify-write.

Failure modes:
    - RecordNotFoundError: no entity with that id.
    - StaleWriteError: version token no longer current, or ``add`` of an id
      that already exists (expected version 0).
    - DuplicateSubmissionError: ``add`` of a second submission by the same
      vendor on the same RFQ.

Entity types:
    RECORD      ProcurementRecord   keyed by id
    SUBMISSION  Submission          keyed by id, owned by rfq_id
    IPC         IpcRecord           keyed by id, owned by contract_id
    APPROVAL    Approval            keyed by id, owned by record_id
    VENDOR      VendorDossier       keyed by vendor_id
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from enum import Enum
from typing import Any
from uuid import UUID

from procurement_kernel.domain.approval import Approval
from procurement_kernel.domain.compliance import VendorDossier
from procurement_kernel.domain.ledger import IpcRecord
from procurement_kernel.domain.records import HistoryEntry, ProcurementRecord
from procurement_kernel.domain.submissions import Submission
from procurement_kernel.exceptions import (
    DuplicateSubmissionError,
    RecordNotFoundError,
    StaleWriteError,
)
from procurement_kernel.logging_config import get_logger

logger = get_logger("services.record_store")


class EntityType(str, Enum):
    RECORD = "RECORD"
    SUBMISSION = "SUBMISSION"
    IPC = "IPC"
    APPROVAL = "APPROVAL"
    VENDOR = "VENDOR"


_ENTITY_TYPES: dict[type, EntityType] = {
    ProcurementRecord: EntityType.RECORD,
    Submission: EntityType.SUBMISSION,
    IpcRecord: EntityType.IPC,
    Approval: EntityType.APPROVAL,
    VendorDossier: EntityType.VENDOR,
}


def entity_type_of(entity: Any) -> EntityType:
    try:
        return _ENTITY_TYPES[type(entity)]
    except KeyError:
        raise TypeError(f"{type(entity).__name__} is not a storable entity") from None


def entity_key(entity: Any) -> str:
    if isinstance(entity, VendorDossier):
        return entity.vendor_id
    return str(entity.id)


def owner_key(entity: Any) -> str | None:
    if isinstance(entity, Submission):
        return str(entity.rfq_id)
    if isinstance(entity, IpcRecord):
        return str(entity.contract_id)
    if isinstance(entity, Approval):
        return str(entity.record_id)
    return None


def creation_order(entity: Any) -> tuple[Any, str]:
    """Sort key used by every listing: creation time, then key."""
    if isinstance(entity, Submission):
        created: Any = entity.submitted_at
    elif isinstance(entity, VendorDossier):
        created = ""
    else:
        created = entity.created_at
    return (created, entity_key(entity))


class RecordStore(ABC):
    """
    Storage port.

    Contract:
        Every method is atomic per entity.  Implementations must never let
        a reader observe a status without the history entry that recorded it;
        since status and history travel in the same entity, a single
        conditional ``save`` satisfies this.
    """

    @abstractmethod
    def get(self, entity_id: UUID | str) -> tuple[Any, int]:
        """Return ``(entity, version)``; RecordNotFoundError if absent."""

    @abstractmethod
    def add(self, entity: Any) -> int:
        """Insert a new entity at version 1."""

    @abstractmethod
    def save(self, entity: Any, expected_version: int) -> int:
        """Conditionally replace an entity; returns the new version."""

    @abstractmethod
    def append_history(self, entity_id: UUID | str, entry: HistoryEntry) -> int:
        """Append an annotation to an entity's history without a status change.

        Status changes go through ``save`` with the entity returned by the
        status machine.  Returns the new version.
        """

    @abstractmethod
    def list_related(
        self, owner_id: UUID | str, entity_type: EntityType | str
    ) -> list[Any]:
        """Entities of ``entity_type`` owned by ``owner_id``, in creation order."""

    @abstractmethod
    def list_by_type(self, entity_type: EntityType | str) -> list[Any]:
        """Every entity of ``entity_type``, in creation order."""

    def get_many(self, entity_ids: list[UUID | str]) -> list[tuple[Any, int]]:
        return [self.get(entity_id) for entity_id in entity_ids]


class InMemoryRecordStore(RecordStore):
    """Dict-backed store; one lock serializes every read-modify-write."""

    def __init__(self) -> None:
        self._items: dict[str, tuple[Any, int]] = {}
        self._lock = threading.RLock()

    def get(self, entity_id: UUID | str) -> tuple[Any, int]:
        with self._lock:
            try:
                return self._items[str(entity_id)]
            except KeyError:
                raise RecordNotFoundError(str(entity_id)) from None

    def add(self, entity: Any) -> int:
        entity_type = entity_type_of(entity)
        key = entity_key(entity)
        with self._lock:
            if key in self._items:
                raise StaleWriteError(key, 0, self._items[key][1])
            if entity_type is EntityType.SUBMISSION:
                self._check_unique_vendor(entity)
            self._items[key] = (entity, 1)
        logger.debug("entity_added", extra={"entity_id": key, "entity_type": entity_type.value})
        return 1

    def save(self, entity: Any, expected_version: int) -> int:
        entity_type_of(entity)
        key = entity_key(entity)
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise RecordNotFoundError(key)
            _, actual = current
            if actual != expected_version:
                logger.warning(
                    "stale_write_rejected",
                    extra={
                        "entity_id": key,
                        "expected_version": expected_version,
                        "actual_version": actual,
                    },
                )
                raise StaleWriteError(key, expected_version, actual)
            new_version = actual + 1
            self._items[key] = (entity, new_version)
        return new_version

    def append_history(self, entity_id: UUID | str, entry: HistoryEntry) -> int:
        key = str(entity_id)
        with self._lock:
            current = self._items.get(key)
            if current is None:
                raise RecordNotFoundError(key)
            entity, version = current
            if not hasattr(entity, "history"):
                raise TypeError(f"{type(entity).__name__} has no history")
            updated = replace(entity, history=entity.history + (entry,))
            self._items[key] = (updated, version + 1)
            return version + 1

    def list_related(
        self, owner_id: UUID | str, entity_type: EntityType | str
    ) -> list[Any]:
        entity_type = EntityType(entity_type)
        owner = str(owner_id)
        with self._lock:
            matches = [
                entity for entity, _ in self._items.values()
                if entity_type_of(entity) is entity_type and owner_key(entity) == owner
            ]
        return sorted(matches, key=creation_order)

    def list_by_type(self, entity_type: EntityType | str) -> list[Any]:
        entity_type = EntityType(entity_type)
        with self._lock:
            matches = [
                entity for entity, _ in self._items.values()
                if entity_type_of(entity) is entity_type
            ]
        return sorted(matches, key=creation_order)

    def _check_unique_vendor(self, submission: Submission) -> None:
        for entity, _ in self._items.values():
            if (
                isinstance(entity, Submission)
                and entity.rfq_id == submission.rfq_id
                and entity.vendor_id == submission.vendor_id
            ):
                raise DuplicateSubmissionError(str(submission.rfq_id), submission.vendor_id)
