"""
Pytest fixtures for the procurement kernel test suite.

Provides:
- Structured log capture
- A deterministic clock
- In-memory and SQLite-backed record stores
- Builders for records, submissions, IPCs, approvals and vendor dossiers
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest

from procurement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from procurement_kernel.domain.approval import Approval
from procurement_kernel.domain.clock import DeterministicClock
from procurement_kernel.domain.compliance import VendorDossier
from procurement_kernel.domain.ledger import IpcRecord
from procurement_kernel.domain.lifecycles import RecordKind
from procurement_kernel.domain.records import ProcurementRecord
from procurement_kernel.domain.submissions import ComplianceFlag, Submission
from procurement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from procurement_kernel.services.record_store import InMemoryRecordStore
from procurement_kernel.services.sql_record_store import SqlAlchemyRecordStore

TEST_ACTOR = "user-test"
T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture procurement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "transition_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("procurement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and stores
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(T0)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def sql_store():
    """SqlAlchemyRecordStore over a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield SqlAlchemyRecordStore(get_session_factory())
    drop_tables()
    reset_engine()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Runs a test once per RecordStore implementation."""
    if request.param == "memory":
        yield InMemoryRecordStore()
        return
    init_engine_from_url("sqlite://")
    create_tables()
    yield SqlAlchemyRecordStore(get_session_factory())
    drop_tables()
    reset_engine()


# =============================================================================
# Builders
# =============================================================================


def make_record(
    kind: RecordKind = RecordKind.RFQ,
    status: str = "DRAFT",
    created_at: datetime = T0,
    **amounts: Decimal,
) -> ProcurementRecord:
    return ProcurementRecord(
        id=uuid4(), kind=kind, status=status, created_at=created_at, amounts=amounts
    )


def make_contract(value: str = "1000000", currency: str = "SAR") -> ProcurementRecord:
    return ProcurementRecord(
        id=uuid4(),
        kind=RecordKind.CONTRACT,
        status="ACTIVE",
        created_at=T0,
        amounts={"contract_value": Decimal(value)},
        currency=currency,
    )


def make_submission(
    rfq_id: UUID,
    vendor_id: str,
    amount: str,
    technical: str | None = None,
    flag: ComplianceFlag = ComplianceFlag.YES,
    submitted_at: datetime = T0,
    status: str = "SUBMITTED",
) -> Submission:
    return Submission(
        id=uuid4(),
        rfq_id=rfq_id,
        vendor_id=vendor_id,
        proposed_amount=Decimal(amount),
        submitted_at=submitted_at,
        compliance_flag=flag,
        technical_score=Decimal(technical) if technical is not None else None,
        status=status,
    )


def make_ipc(
    contract_id: UUID,
    current_value: str,
    deductions: str = "0",
    created_at: datetime = T0,
    currency: str = "SAR",
    kind: RecordKind = RecordKind.IPC,
    period_from: date = date(2024, 1, 1),
    period_to: date = date(2024, 1, 31),
) -> IpcRecord:
    return IpcRecord(
        id=uuid4(),
        contract_id=contract_id,
        current_value=Decimal(current_value),
        deductions=Decimal(deductions),
        period_from=period_from,
        period_to=period_to,
        created_at=created_at,
        currency=currency,
        kind=kind,
    )


def make_approval(
    record: ProcurementRecord,
    deadline: datetime,
    created_at: datetime = T0,
    assignee: str = "approver-1",
) -> Approval:
    return Approval(
        id=uuid4(),
        record_id=record.id,
        record_kind=record.kind,
        assignee_id=assignee,
        sla_deadline=deadline,
        created_at=created_at,
    )


def make_dossier(vendor_id: str = "V-100", vendor_type: str = "Supplier") -> VendorDossier:
    return VendorDossier(vendor_id=vendor_id, vendor_type=vendor_type, name=f"{vendor_id} Ltd")


def hours(n: int) -> timedelta:
    return timedelta(hours=n)
