"""Services for the procurement kernel (storage port and orchestration)."""

from procurement_kernel.services.orchestrator import (
    CertifiedIpc,
    OperationResult,
    OperationStatus,
    OrchestratorSettings,
    ProcurementOrchestrator,
    ReminderOutcome,
    ReminderStatus,
)
from procurement_kernel.services.record_store import (
    EntityType,
    InMemoryRecordStore,
    RecordStore,
)
from procurement_kernel.services.sql_record_store import SqlAlchemyRecordStore

__all__ = [
    "CertifiedIpc",
    "EntityType",
    "InMemoryRecordStore",
    "OperationResult",
    "OperationStatus",
    "OrchestratorSettings",
    "ProcurementOrchestrator",
    "RecordStore",
    "ReminderOutcome",
    "ReminderStatus",
    "SqlAlchemyRecordStore",
]
