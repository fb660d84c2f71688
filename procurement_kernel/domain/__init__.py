"""
Pure domain layer.

This module contains pure value objects and lifecycle tables
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (other than the injectable Clock itself)
- I/O

All domain objects are immutable and deterministic.
"""

from procurement_kernel.domain.approval import (
    Approval,
    ApprovalStatus,
    SlaExtension,
    SlaStatus,
)
from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procurement_kernel.domain.compliance import (
    ComplianceSummary,
    DocType,
    DocumentChain,
    DocumentStatus,
    DocumentVersion,
    VendorDossier,
    VendorType,
)
from procurement_kernel.domain.events import DomainEvent, EventType
from procurement_kernel.domain.ledger import ContractTerms, IpcRecord
from procurement_kernel.domain.lifecycles import (
    WORKFLOWS,
    ContractStatus,
    PaymentStatus,
    PrStatus,
    RecordKind,
    RfqStatus,
    SubmissionStatus,
    workflow_for,
)
from procurement_kernel.domain.records import HistoryEntry, ProcurementRecord
from procurement_kernel.domain.submissions import ComplianceFlag, Submission
from procurement_kernel.domain.vocabulary import DEFAULT_VOCABULARY, StatusVocabulary
from procurement_kernel.domain.workflow import Transition, Workflow

__all__ = [
    # Records
    "RecordKind",
    "HistoryEntry",
    "ProcurementRecord",
    # Lifecycles
    "Transition",
    "Workflow",
    "WORKFLOWS",
    "workflow_for",
    "PrStatus",
    "RfqStatus",
    "ContractStatus",
    "PaymentStatus",
    "SubmissionStatus",
    "StatusVocabulary",
    "DEFAULT_VOCABULARY",
    # Evaluation
    "ComplianceFlag",
    "Submission",
    # Ledger
    "ContractTerms",
    "IpcRecord",
    # Compliance
    "DocType",
    "VendorType",
    "DocumentStatus",
    "DocumentVersion",
    "DocumentChain",
    "VendorDossier",
    "ComplianceSummary",
    # Approvals
    "Approval",
    "ApprovalStatus",
    "SlaExtension",
    "SlaStatus",
    # Events
    "DomainEvent",
    "EventType",
    # Clock
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
