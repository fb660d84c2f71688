"""
SqlAlchemyRecordStore -- RecordStore backed by SQLAlchemy.

Responsibility:
    Persist procurement entities through the ORM models in
    ``procurement_kernel.models`` while honouring the storage port contract:
    version-token reads and conditional writes.

Architecture position:
    Kernel > Services -- imperative shell.  Owns its transactions: every
    public method runs in its own ``sessionmaker.begin()`` block and commits
    or rolls back before returning.

Invariants enforced:
    - save is ``UPDATE ... SET version = :expected + 1 WHERE key = :key AND
      version = :expected``.  Zero matched rows means the token is stale (or
      the entity is gone), and nothing else in that transaction is written.
    - Child rows (status history, SLA extensions, document versions) are
      insert-only.  A save whose entity carries fewer children than are
      stored is refused rather than truncating history.

Failure modes:
    - RecordNotFoundError, StaleWriteError, DuplicateSubmissionError as
      documented on ``RecordStore``.
    - ValueError when a save would shrink an append-only child collection.
    - SQLAlchemy errors (connectivity, integrity races) propagate unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from procurement_kernel.domain.records import HistoryEntry
from procurement_kernel.exceptions import (
    DuplicateSubmissionError,
    RecordNotFoundError,
    StaleWriteError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models import (
    ApprovalModel,
    DocumentVersionModel,
    IpcModel,
    ProcurementRecordModel,
    SlaExtensionModel,
    StatusHistoryModel,
    SubmissionModel,
    VendorModel,
)
from procurement_kernel.services.record_store import (
    EntityType,
    RecordStore,
    entity_key,
    entity_type_of,
)

logger = get_logger("services.sql_record_store")


@dataclass(frozen=True)
class _TableSpec:
    model: type
    key_column: str = "id"
    owner_column: str | None = None
    order_column: str = "created_at"
    has_history: bool = False


_SPECS: dict[EntityType, _TableSpec] = {
    EntityType.RECORD: _TableSpec(ProcurementRecordModel, has_history=True),
    EntityType.SUBMISSION: _TableSpec(
        SubmissionModel, owner_column="rfq_id", order_column="submitted_at", has_history=True,
    ),
    EntityType.IPC: _TableSpec(IpcModel, owner_column="contract_id", has_history=True),
    EntityType.APPROVAL: _TableSpec(ApprovalModel, owner_column="record_id"),
    EntityType.VENDOR: _TableSpec(VendorModel, key_column="vendor_id", order_column="vendor_id"),
}

_UUID_KEYED = (
    EntityType.RECORD,
    EntityType.SUBMISSION,
    EntityType.IPC,
    EntityType.APPROVAL,
)


def _parse_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class SqlAlchemyRecordStore(RecordStore):
    """
    Contract:
        Takes a ``sessionmaker``; never shares a session between calls, so one
        store instance may be used from several threads.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Port
    # ------------------------------------------------------------------

    def get(self, entity_id: UUID | str) -> tuple[Any, int]:
        with self._session_factory.begin() as session:
            found = self._find_row(session, entity_id)
            if found is None:
                raise RecordNotFoundError(str(entity_id))
            entity_type, row = found
            return self._load(session, entity_type, row), row.version

    def add(self, entity: Any) -> int:
        entity_type = entity_type_of(entity)
        spec = _SPECS[entity_type]
        key = entity_key(entity)
        with self._session_factory.begin() as session:
            existing = session.scalar(
                select(spec.model.version).where(self._key_clause(spec, key))
            )
            if existing is not None:
                raise StaleWriteError(key, 0, existing)
            if entity_type is EntityType.SUBMISSION:
                duplicate = session.scalar(
                    select(SubmissionModel.id).where(
                        SubmissionModel.rfq_id == entity.rfq_id,
                        SubmissionModel.vendor_id == entity.vendor_id,
                    )
                )
                if duplicate is not None:
                    raise DuplicateSubmissionError(str(entity.rfq_id), entity.vendor_id)
            session.add(spec.model.from_dto(entity))
            self._append_children(session, entity_type, entity)
        logger.debug("entity_added", extra={"entity_id": key, "entity_type": entity_type.value})
        return 1

    def save(self, entity: Any, expected_version: int) -> int:
        entity_type = entity_type_of(entity)
        spec = _SPECS[entity_type]
        key = entity_key(entity)
        with self._session_factory.begin() as session:
            result = session.execute(
                update(spec.model)
                .where(self._key_clause(spec, key), spec.model.version == expected_version)
                .values(version=expected_version + 1, **spec.model.scalar_values(entity))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                actual = session.scalar(
                    select(spec.model.version).where(self._key_clause(spec, key))
                )
                if actual is None:
                    raise RecordNotFoundError(key, entity_type.value)
                logger.warning(
                    "stale_write_rejected",
                    extra={
                        "entity_id": key,
                        "expected_version": expected_version,
                        "actual_version": actual,
                    },
                )
                raise StaleWriteError(key, expected_version, actual)
            self._append_children(session, entity_type, entity)
        return expected_version + 1

    def append_history(self, entity_id: UUID | str, entry: HistoryEntry) -> int:
        with self._session_factory.begin() as session:
            found = self._find_row(session, entity_id)
            if found is None:
                raise RecordNotFoundError(str(entity_id))
            entity_type, row = found
            spec = _SPECS[entity_type]
            if not spec.has_history:
                raise TypeError(f"{entity_type.value} entities have no history")
            version = row.version
            result = session.execute(
                update(spec.model)
                .where(spec.model.id == row.id, spec.model.version == version)
                .values(version=version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise StaleWriteError(str(entity_id), version, None)
            count = session.scalar(
                select(func.count()).select_from(StatusHistoryModel).where(
                    StatusHistoryModel.owner_id == row.id
                )
            )
            session.add(StatusHistoryModel.from_dto(row.id, count + 1, entry))
        return version + 1

    def list_related(
        self, owner_id: UUID | str, entity_type: EntityType | str
    ) -> list[Any]:
        entity_type = EntityType(entity_type)
        spec = _SPECS[entity_type]
        if spec.owner_column is None:
            raise ValueError(f"{entity_type.value} entities have no owner")
        owner = _parse_uuid(owner_id)
        if owner is None:
            return []
        with self._session_factory.begin() as session:
            rows = session.scalars(
                select(spec.model)
                .where(getattr(spec.model, spec.owner_column) == owner)
                .order_by(getattr(spec.model, spec.order_column), spec.model.id)
            ).all()
            return [self._load(session, entity_type, row) for row in rows]

    def list_by_type(self, entity_type: EntityType | str) -> list[Any]:
        entity_type = EntityType(entity_type)
        spec = _SPECS[entity_type]
        with self._session_factory.begin() as session:
            rows = session.scalars(
                select(spec.model).order_by(
                    getattr(spec.model, spec.order_column), spec.model.id
                )
            ).all()
            return [self._load(session, entity_type, row) for row in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _key_clause(spec: _TableSpec, key: str):
        column = getattr(spec.model, spec.key_column)
        if spec.key_column == "id":
            return column == UUID(key)
        return column == key

    def _find_row(self, session: Session, entity_id: UUID | str) -> tuple[EntityType, Any] | None:
        as_uuid = _parse_uuid(entity_id)
        if as_uuid is not None:
            for entity_type in _UUID_KEYED:
                row = session.get(_SPECS[entity_type].model, as_uuid)
                if row is not None:
                    return entity_type, row
        row = session.scalar(select(VendorModel).where(VendorModel.vendor_id == str(entity_id)))
        if row is not None:
            return EntityType.VENDOR, row
        return None

    def _load(self, session: Session, entity_type: EntityType, row: Any) -> Any:
        if _SPECS[entity_type].has_history:
            history = session.scalars(
                select(StatusHistoryModel)
                .where(StatusHistoryModel.owner_id == row.id)
                .order_by(StatusHistoryModel.seq)
            ).all()
            return row.to_dto(tuple(h.to_dto() for h in history))
        if entity_type is EntityType.APPROVAL:
            extensions = session.scalars(
                select(SlaExtensionModel)
                .where(SlaExtensionModel.approval_id == row.id)
                .order_by(SlaExtensionModel.seq)
            ).all()
            return row.to_dto(tuple(e.to_dto() for e in extensions))
        documents = session.scalars(
            select(DocumentVersionModel).where(DocumentVersionModel.vendor_id == row.vendor_id)
        ).all()
        return row.to_dto([d.to_dto() for d in documents])

    def _append_children(self, session: Session, entity_type: EntityType, entity: Any) -> None:
        if _SPECS[entity_type].has_history:
            self._append_sequence(
                session, StatusHistoryModel, StatusHistoryModel.owner_id,
                entity.id, entity.history, StatusHistoryModel.from_dto,
            )
        elif entity_type is EntityType.APPROVAL:
            self._append_sequence(
                session, SlaExtensionModel, SlaExtensionModel.approval_id,
                entity.id, entity.extensions, SlaExtensionModel.from_dto,
            )
        else:
            stored = set(
                session.execute(
                    select(DocumentVersionModel.doc_type, DocumentVersionModel.version_number)
                    .where(DocumentVersionModel.vendor_id == entity.vendor_id)
                ).all()
            )
            for chain in entity.chains.values():
                for version in chain.versions:
                    if (version.doc_type.value, version.version) not in stored:
                        session.add(DocumentVersionModel.from_dto(version))

    @staticmethod
    def _append_sequence(session, model, owner_column, owner_id, items, build) -> None:
        stored = session.scalar(
            select(func.count()).select_from(model).where(owner_column == owner_id)
        )
        if len(items) < stored:
            raise ValueError(
                f"{model.__tablename__} for {owner_id} is append-only: "
                f"{stored} stored, {len(items)} supplied"
            )
        for seq, item in enumerate(items[stored:], start=stored + 1):
            session.add(build(owner_id, seq, item))
