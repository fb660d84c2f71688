"""Domain events emitted by the orchestrator after a successful write."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class EventType:
    """Event type names.  Plain strings so sinks can route without imports."""

    STATUS_CHANGED = "procurement.status_changed"
    SUBMISSIONS_EVALUATED = "procurement.submissions_evaluated"
    RFQ_AWARDED = "procurement.rfq_awarded"
    IPC_CERTIFIED = "procurement.ipc_certified"
    CONTRACT_OVER_COMMITTED = "procurement.contract_over_committed"
    DOCUMENT_UPLOADED = "procurement.document_uploaded"
    APPROVAL_DECIDED = "procurement.approval_decided"
    SLA_EXTENDED = "procurement.sla_extended"
    REMINDER_TRIGGERED = "procurement.reminder_triggered"


@dataclass(frozen=True)
class DomainEvent:
    event_type: str
    entity_id: str
    actor: str
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
