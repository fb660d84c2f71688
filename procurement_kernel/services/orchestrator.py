"""
ProcurementOrchestrator -- read, compute, conditionally write.

Responsibility:
    Sequence the pure engines against the storage port.  Each operation
    reads the entities it needs together with their version tokens, calls
    one or more engines, writes the result back conditioned on the tokens,
    and emits domain events for what was written.

Architecture position:
    Kernel > Services -- imperative shell, the only component with
    side-effect awareness.  Holds no business rules: every rule it applies
    lives in ``procurement_engines``.  Never imports ``procurement_config``;
    configured values arrive as an ``OrchestratorSettings`` built by
    ``procurement_config.bridges``.

Invariants enforced:
    - No unconditional write: every save passes the version read in the
      same operation.  A conflict surfaces as STALE and nothing further is
      written by that operation.
    - Events are emitted only after the write they describe succeeded.
    - Domain errors are reported in the ``OperationResult`` exactly as the
      engine raised them.  There is no default-status fallback.
    - ``send_reminders`` handles each approval independently; one failure
      never stops the rest of the batch.

Failure modes:
    - Domain errors (``ProcurementKernelError``) -> ``OperationResult`` with
      status REJECTED, STALE or NOT_FOUND and the error attached.
    - Anything else (ValueError from malformed input, storage driver errors)
      propagates to the caller.

Audit relevance:
    Every operation runs inside ``LogContext.bind`` with the actor, the
    record id and the operation name, so engine traces and store warnings
    carry who asked for what.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from procurement_engines import compliance, evaluation, sla
from procurement_engines.compliance import (
    DEFAULT_COMPLIANCE_RULES,
    ComplianceRules,
    ExpiryRiskReport,
    RenewalNotice,
)
from procurement_engines.evaluation import (
    AwardOutcome,
    EvaluationEngine,
    EvaluationWeights,
    ScoredSubmission,
)
from procurement_engines.ledger import ContractLedgerSummary, IpcComputation, LedgerEngine
from procurement_engines.qualification import (
    DEFAULT_QUALIFICATION_RULES,
    QualificationResult,
    QualificationRules,
    QualificationScorer,
)
from procurement_engines.sla import DEFAULT_REMINDER_LEAD, SlaReport
from procurement_engines.status_machine import StatusMachine
from procurement_kernel.domain.approval import Approval, ApprovalStatus
from procurement_kernel.domain.clock import Clock
from procurement_kernel.domain.compliance import (
    ComplianceSummary,
    DocType,
    VendorDossier,
    VendorType,
)
from procurement_kernel.domain.events import DomainEvent, EventType
from procurement_kernel.domain.ledger import ContractTerms, IpcRecord
from procurement_kernel.domain.lifecycles import PaymentStatus, RecordKind
from procurement_kernel.domain.records import HistoryEntry, ProcurementRecord
from procurement_kernel.domain.vocabulary import DEFAULT_VOCABULARY, StatusVocabulary
from procurement_kernel.exceptions import (
    NotFoundError,
    ProcurementKernelError,
    RecordNotFoundError,
    StaleWriteError,
    UnknownVendorTypeError,
)
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_kernel.services.record_store import (
    EntityType,
    RecordStore,
    creation_order,
    entity_key,
    entity_type_of,
)

logger = get_logger("services.orchestrator")

DEFAULT_SLA = timedelta(hours=72)

EventSink = Callable[[DomainEvent], None]
Notifier = Callable[[Approval], None]


@dataclass(frozen=True)
class OrchestratorSettings:
    """Configured rule objects.  Defaults equal the engines' built-ins."""

    evaluation_weights: EvaluationWeights = field(default_factory=EvaluationWeights)
    compliance_rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES
    qualification_rules: QualificationRules = DEFAULT_QUALIFICATION_RULES
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY
    reminder_lead: timedelta = DEFAULT_REMINDER_LEAD
    default_sla: timedelta = DEFAULT_SLA
    high_risk_threshold: Decimal = Decimal("0.20")


class OperationStatus(str, Enum):
    """Outcome of one orchestrator operation."""

    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    STALE = "stale"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class OperationResult:
    """Result of an orchestrator operation."""

    status: OperationStatus
    value: Any = None
    error: ProcurementKernelError | None = None
    events: tuple[DomainEvent, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.status is OperationStatus.SUCCEEDED

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    def unwrap(self) -> Any:
        """Return ``value``, or re-raise the reported domain error."""
        if self.error is not None:
            raise self.error
        return self.value


class ReminderStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class ReminderOutcome:
    """Per-approval outcome of a reminder batch."""

    approval_id: UUID
    record_id: UUID
    status: ReminderStatus
    error: Exception | None = None


@dataclass(frozen=True)
class CertifiedIpc:
    """An IPC (or invoice) as stored after certification, with its arithmetic."""

    ipc: IpcRecord
    computation: IpcComputation
    version: int


def _failure(exc: ProcurementKernelError) -> OperationResult:
    if isinstance(exc, StaleWriteError):
        status = OperationStatus.STALE
    elif isinstance(exc, NotFoundError):
        status = OperationStatus.NOT_FOUND
    else:
        status = OperationStatus.REJECTED
    return OperationResult(status=status, error=exc)


class ProcurementOrchestrator:
    """
    Thin composition of engines over a ``RecordStore``.

    Contract:
        Every public operation returns an ``OperationResult``.  Callers that
        prefer exceptions call ``.unwrap()``.

    Non-goals:
        Does not deliver notifications.  ``send_reminders`` hands each due
        approval to the injected ``notifier`` and records that it did.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock,
        event_sink: EventSink | None = None,
        settings: OrchestratorSettings | None = None,
        notifier: Notifier | None = None,
    ):
        self._store = store
        self._clock = clock
        self._event_sink = event_sink
        self._settings = settings or OrchestratorSettings()
        self._notifier = notifier
        self._machine = StatusMachine()
        self._evaluation = EvaluationEngine(self._machine)
        self._ledger = LedgerEngine()
        self._qualification = QualificationScorer(self._settings.qualification_rules)

    @property
    def settings(self) -> OrchestratorSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        actor: str | None,
        record_id: Any,
        body: Callable[[], tuple[Any, list[DomainEvent]]],
    ) -> OperationResult:
        with LogContext.bind(
            actor_id=actor,
            record_id=str(record_id) if record_id is not None else None,
            operation=operation,
        ):
            try:
                value, events = body()
            except ProcurementKernelError as exc:
                logger.info(
                    "operation_refused",
                    extra={"error_code": exc.code, "detail": str(exc)},
                )
                return _failure(exc)
            for event in events:
                self._emit(event)
            return OperationResult(
                status=OperationStatus.SUCCEEDED, value=value, events=tuple(events)
            )

    def _emit(self, event: DomainEvent) -> None:
        logger.info(
            "domain_event",
            extra={"event_type": event.event_type, "entity_id": event.entity_id},
        )
        if self._event_sink is not None:
            self._event_sink(event)

    def _event(
        self, event_type: str, entity_id: Any, actor: str, at: datetime, **payload: Any
    ) -> DomainEvent:
        return DomainEvent(
            event_type=event_type,
            entity_id=str(entity_id),
            actor=actor,
            occurred_at=at,
            payload=payload,
        )

    def _get_record(
        self, record_id: UUID | str, kinds: Sequence[RecordKind]
    ) -> tuple[ProcurementRecord, int]:
        """Read a ProcurementRecord of one of ``kinds``; anything else is not found."""
        entity, version = self._store.get(record_id)
        if not isinstance(entity, ProcurementRecord) or entity.kind not in kinds:
            raise RecordNotFoundError(str(record_id), "/".join(k.value for k in kinds))
        return entity, version

    def _get_typed(
        self, entity_id: UUID | str, entity_type: EntityType
    ) -> tuple[Any, int]:
        entity, version = self._store.get(entity_id)
        if entity_type_of(entity) is not entity_type:
            raise RecordNotFoundError(str(entity_id), entity_type.value)
        return entity, version

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, entity: Any, actor: str) -> OperationResult:
        """Store a new record, submission, IPC, approval or vendor dossier.

        A second submission by the same vendor on one RFQ is REJECTED; an
        id that already exists is STALE.
        """

        def body():
            version = self._store.add(entity)
            return version, []

        return self._run("create", actor, entity_key(entity), body)

    def register_vendor(
        self,
        vendor_id: str,
        vendor_type: str | VendorType,
        actor: str,
        name: str | None = None,
    ) -> OperationResult:
        def body():
            parsed = VendorType.parse(vendor_type)
            if parsed is None:
                raise UnknownVendorTypeError(str(vendor_type))
            dossier = VendorDossier(vendor_id=vendor_id, vendor_type=parsed.value, name=name)
            self._store.add(dossier)
            return dossier, []

        return self._run("register_vendor", actor, vendor_id, body)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition(
        self,
        record_id: UUID | str,
        requested_status: str,
        actor: str,
        note: str | None = None,
    ) -> OperationResult:
        """Move a record, submission or IPC to ``requested_status``.

        ``requested_status`` may use the external vocabulary (PUBLISHED,
        UNDER_EVALUATION, CANCELLED); it is normalized before the status
        machine sees it.  RFQs and submissions reach AWARDED only through
        ``award``.
        """

        def body():
            entity, version = self._store.get(record_id)
            if entity_type_of(entity) not in (
                EntityType.RECORD, EntityType.SUBMISSION, EntityType.IPC,
            ):
                raise TypeError(f"{type(entity).__name__} has no lifecycle")
            canonical = self._settings.vocabulary.to_canonical(entity.kind, requested_status)
            at = self._clock.now()
            updated = self._machine.transition(entity, canonical, actor, at, note=note)
            evaluation.check_status_change(entity, canonical)
            new_version = self._store.save(updated, version)
            event = self._event(
                EventType.STATUS_CHANGED, updated.id, actor, at,
                kind=updated.kind.value,
                from_status=entity.status,
                to_status=updated.status,
                version=new_version,
            )
            return updated, [event]

        return self._run("transition", actor, record_id, body)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def record_technical_score(
        self, submission_id: UUID | str, score: Decimal, actor: str
    ) -> OperationResult:
        """Set a technical score.  Refused once the submission has left review."""

        def body():
            submission, version = self._get_typed(submission_id, EntityType.SUBMISSION)
            updated = evaluation.rescore(submission, Decimal(score))
            self._store.save(updated, version)
            return updated, []

        return self._run("record_technical_score", actor, submission_id, body)

    def evaluate_rfq(
        self,
        rfq_id: UUID | str,
        actor: str,
        weights: EvaluationWeights | None = None,
    ) -> OperationResult:
        """Score and rank every submission on an RFQ.  Writes nothing."""

        def body():
            rfq, _ = self._get_record(rfq_id, (RecordKind.RFQ,))
            submissions = self._store.list_related(rfq.id, EntityType.SUBMISSION)
            ranked: tuple[ScoredSubmission, ...] = self._evaluation.evaluate(
                submissions, weights or self._settings.evaluation_weights
            )
            leader = next((s for s in ranked if s.rank == 1), None)
            event = self._event(
                EventType.SUBMISSIONS_EVALUATED, rfq.id, actor, self._clock.now(),
                submission_count=len(ranked),
                leading_submission_id=str(leader.submission_id) if leader else None,
            )
            return ranked, [event]

        return self._run("evaluate_rfq", actor, rfq_id, body)

    def award(
        self,
        rfq_id: UUID | str,
        submission_id: UUID | str,
        actor: str,
        confirm_partial: bool = False,
    ) -> OperationResult:
        """Award an OPEN RFQ to one submission.

        The RFQ write is the serialization point: of two concurrent awards
        on one RFQ, the second fails STALE before touching any submission.
        If the winner changed between read and write, the operation is STALE
        with the RFQ already AWARDED and naming the winner; running the same
        award again (``retry_on_stale``) completes it.
        """

        def body():
            rfq, rfq_version = self._get_record(rfq_id, (RecordKind.RFQ,))
            listed = self._store.list_related(rfq.id, EntityType.SUBMISSION)
            read = self._store.get_many([s.id for s in listed])
            submissions = [entity for entity, _ in read]
            versions = {entity.id: version for entity, version in read}

            at = self._clock.now()
            outcome: AwardOutcome = self._evaluation.award(
                rfq, submissions, UUID(str(submission_id)), actor, at,
                confirm_partial=confirm_partial,
            )
            events = []
            if not outcome.resumed:
                self._store.save(outcome.rfq, rfq_version)
                events.append(
                    self._event(
                        EventType.STATUS_CHANGED, rfq.id, actor, at,
                        kind=RecordKind.RFQ.value, from_status=rfq.status,
                        to_status=outcome.rfq.status,
                    )
                )
            self._store.save(outcome.awarded, versions[outcome.awarded.id])
            events.append(
                self._event(
                    EventType.RFQ_AWARDED, rfq.id, actor, at,
                    submission_id=str(outcome.awarded.id),
                    vendor_id=outcome.awarded.vendor_id,
                    proposed_amount=outcome.awarded.proposed_amount,
                    resumed=outcome.resumed,
                )
            )
            return outcome, events

        return self._run("award", actor, rfq_id, body)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def _contract_terms(self, contract_id: UUID | str) -> ContractTerms:
        contract, _ = self._get_record(contract_id, (RecordKind.CONTRACT,))
        return ContractTerms.from_record(contract)

    def _ledger_entries(self, contract_id: UUID, kind: RecordKind) -> list[IpcRecord]:
        """IPCs (or invoices) that count toward the contract, in creation order."""
        return [
            ipc for ipc in self._store.list_related(contract_id, EntityType.IPC)
            if ipc.kind is kind and ipc.status != PaymentStatus.REJECTED.value
        ]

    def certify_ipc(
        self,
        ipc_id: UUID | str,
        actor: str,
        to_status: str | None = None,
    ) -> OperationResult:
        """Reconcile an IPC against its contract.

        Priors are the same contract's non-rejected IPCs of the same kind
        created before this one.  With ``to_status`` the IPC is also moved
        along its workflow, conditioned on the version read here.
        """

        def body():
            ipc, version = self._get_typed(ipc_id, EntityType.IPC)
            terms = self._contract_terms(ipc.contract_id)
            own_order = creation_order(ipc)
            priors = [
                p for p in self._ledger_entries(ipc.contract_id, ipc.kind)
                if p.id != ipc.id and creation_order(p) < own_order
            ]
            computation = self._ledger.compute_ipc(terms, priors, ipc)
            at = self._clock.now()

            events: list[DomainEvent] = []
            if to_status is not None:
                canonical = self._settings.vocabulary.to_canonical(ipc.kind, to_status)
                updated = self._machine.transition(
                    ipc, canonical, actor, at,
                    note=f"net payable {computation.net_payable} {computation.currency}",
                )
                version = self._store.save(updated, version)
                events.append(
                    self._event(
                        EventType.STATUS_CHANGED, ipc.id, actor, at,
                        kind=ipc.kind.value, from_status=ipc.status,
                        to_status=updated.status, version=version,
                    )
                )
                ipc = updated

            events.append(
                self._event(
                    EventType.IPC_CERTIFIED, ipc.id, actor, at,
                    contract_id=str(ipc.contract_id),
                    net_payable=computation.net_payable,
                    cumulative_value=computation.cumulative_value,
                    remaining_balance=computation.remaining_balance,
                    percent_used=computation.percent_used,
                )
            )
            if computation.over_committed:
                events.append(
                    self._event(
                        EventType.CONTRACT_OVER_COMMITTED, ipc.contract_id, actor, at,
                        ipc_id=str(ipc.id),
                        remaining_balance=computation.remaining_balance,
                        percent_used_raw=computation.percent_used_raw,
                    )
                )
            return CertifiedIpc(ipc=ipc, computation=computation, version=version), events

        return self._run("certify_ipc", actor, ipc_id, body)

    def contract_ledger(
        self,
        contract_id: UUID | str,
        kind: RecordKind = RecordKind.IPC,
    ) -> OperationResult:
        def body():
            terms = self._contract_terms(contract_id)
            summary: ContractLedgerSummary = self._ledger.summarize_contract(
                terms, self._ledger_entries(terms.contract_id, RecordKind(kind))
            )
            return summary, []

        return self._run("contract_ledger", None, contract_id, body)

    # ------------------------------------------------------------------
    # Vendor documents and compliance
    # ------------------------------------------------------------------

    def upload_document(
        self,
        vendor_id: str,
        doc_type: DocType | str,
        file_ref: str,
        actor: str,
        expiry_date: date | None = None,
        document_number: str | None = None,
    ) -> OperationResult:
        """Append a new version to the vendor's chain for ``doc_type``."""

        def body():
            dossier, version = self._get_typed(vendor_id, EntityType.VENDOR)
            at = self._clock.now()
            chain = dossier.chain(DocType(doc_type)).append(
                file_ref=file_ref,
                uploaded_at=at,
                uploaded_by=actor,
                expiry_date=expiry_date,
                document_number=document_number,
            )
            self._store.save(dossier.with_chain(chain), version)
            uploaded = chain.current
            event = self._event(
                EventType.DOCUMENT_UPLOADED, vendor_id, actor, at,
                doc_type=uploaded.doc_type.value,
                version=uploaded.version,
                expiry_date=uploaded.expiry_date,
            )
            return uploaded, [event]

        return self._run("upload_document", actor, vendor_id, body)

    def compliance_summary(
        self, vendor_id: str, as_of: date | None = None
    ) -> OperationResult:
        def body():
            dossier, _ = self._get_typed(vendor_id, EntityType.VENDOR)
            summary: ComplianceSummary = compliance.compliance_summary(
                dossier, as_of or self._clock.today(), self._settings.compliance_rules
            )
            return summary, []

        return self._run("compliance_summary", None, vendor_id, body)

    def expiry_risk(self, as_of: date | None = None) -> OperationResult:
        """Expiry risk across every registered vendor."""

        def body():
            as_of_date = as_of or self._clock.today()
            summaries = [
                compliance.compliance_summary(
                    dossier, as_of_date, self._settings.compliance_rules
                )
                for dossier in self._store.list_by_type(EntityType.VENDOR)
            ]
            report: ExpiryRiskReport = compliance.expiry_risk(
                summaries, self._settings.high_risk_threshold
            )
            return report, []

        return self._run("expiry_risk", None, None, body)

    def document_renewals(self, as_of: date | None = None) -> OperationResult:
        """Renewal notices for every vendor's expired or expiring documents."""

        def body():
            as_of_date = as_of or self._clock.today()
            notices: list[RenewalNotice] = []
            for dossier in self._store.list_by_type(EntityType.VENDOR):
                notices.extend(
                    compliance.documents_needing_renewal(
                        dossier, as_of_date, self._settings.compliance_rules
                    )
                )
            return tuple(notices), []

        return self._run("document_renewals", None, None, body)

    def qualify_vendor(
        self,
        vendor_id: str,
        scores: Mapping[str, Decimal],
        as_of: date | None = None,
    ) -> OperationResult:
        """Qualification class for a vendor.

        When ``scores`` omits ``document_compliance`` and the rules weigh it,
        the vendor's current compliance percent is used.
        """

        def body():
            dossier, _ = self._get_typed(vendor_id, EntityType.VENDOR)
            merged = dict(scores)
            criteria = {c.name for c in self._settings.qualification_rules.criteria}
            if "document_compliance" in criteria and "document_compliance" not in merged:
                summary = compliance.compliance_summary(
                    dossier, as_of or self._clock.today(), self._settings.compliance_rules
                )
                merged["document_compliance"] = Decimal(summary.percent)
            result: QualificationResult = self._qualification.score(vendor_id, merged)
            return result, []

        return self._run("qualify_vendor", None, vendor_id, body)

    # ------------------------------------------------------------------
    # Approvals and SLA
    # ------------------------------------------------------------------

    def request_approval(
        self,
        record_id: UUID | str,
        assignee_id: str,
        actor: str,
        sla: timedelta | None = None,
    ) -> OperationResult:
        def body():
            record, _ = self._store.get(record_id)
            if entity_type_of(record) not in (
                EntityType.RECORD, EntityType.SUBMISSION, EntityType.IPC,
            ):
                raise RecordNotFoundError(str(record_id), "approvable record")
            at = self._clock.now()
            approval = Approval(
                id=uuid4(),
                record_id=record.id,
                record_kind=record.kind,
                assignee_id=assignee_id,
                sla_deadline=at + (sla or self._settings.default_sla),
                created_at=at,
            )
            self._store.add(approval)
            return approval, []

        return self._run("request_approval", actor, record_id, body)

    def sla_report(self, as_of: datetime | None = None) -> OperationResult:
        def body():
            report: SlaReport = sla.aggregate(
                self._store.list_by_type(EntityType.APPROVAL), as_of or self._clock.now()
            )
            return report, []

        return self._run("sla_report", None, None, body)

    def decide_approval(
        self,
        approval_id: UUID | str,
        decision: ApprovalStatus | str,
        actor: str,
        comment: str | None = None,
    ) -> OperationResult:
        def body():
            approval, version = self._get_typed(approval_id, EntityType.APPROVAL)
            at = self._clock.now()
            decided = sla.record_decision(approval, decision, actor, at, comment)
            self._store.save(decided, version)
            event = self._event(
                EventType.APPROVAL_DECIDED, approval.id, actor, at,
                record_id=str(approval.record_id),
                decision=decided.status.value,
                decided_late=sla.decided_late(decided),
            )
            return decided, [event]

        return self._run("decide_approval", actor, approval_id, body)

    def extend_sla(
        self,
        approval_id: UUID | str,
        new_deadline: datetime,
        actor: str,
        reason: str,
    ) -> OperationResult:
        def body():
            approval, version = self._get_typed(approval_id, EntityType.APPROVAL)
            at = self._clock.now()
            extended = sla.extend_deadline(approval, new_deadline, actor, reason, at)
            self._store.save(extended, version)
            event = self._event(
                EventType.SLA_EXTENDED, approval.id, actor, at,
                previous_deadline=approval.sla_deadline,
                new_deadline=new_deadline,
                reason=reason,
            )
            return extended, [event]

        return self._run("extend_sla", actor, approval_id, body)

    def send_reminders(self, actor: str, as_of: datetime | None = None) -> OperationResult:
        """Remind on every pending approval within the lead time of its deadline.

        One independent call per approval: the owning record gets a history
        annotation, then the notifier is invoked.  Each approval's outcome
        is reported in ``value``; the batch itself always succeeds.
        """
        as_of = as_of or self._clock.now()
        due = [
            approval
            for approval in self._store.list_by_type(EntityType.APPROVAL)
            if sla.needs_reminder(approval, as_of, self._settings.reminder_lead)
        ]
        outcomes: list[ReminderOutcome] = []
        events: list[DomainEvent] = []
        for approval in due:
            result = self._remind(approval, actor, as_of)
            outcomes.append(
                ReminderOutcome(
                    approval_id=approval.id,
                    record_id=approval.record_id,
                    status=ReminderStatus.SENT if result.is_success else ReminderStatus.FAILED,
                    error=result.error,
                )
            )
            events.extend(result.events)

        logger.info(
            "reminders_sent",
            extra={
                "due_count": len(due),
                "failed_count": sum(1 for o in outcomes if o.status is ReminderStatus.FAILED),
            },
        )
        return OperationResult(
            status=OperationStatus.SUCCEEDED, value=tuple(outcomes), events=tuple(events)
        )

    def _remind(self, approval: Approval, actor: str, as_of: datetime) -> OperationResult:
        def body():
            record, _ = self._store.get(approval.record_id)
            overdue = sla.classify(approval, as_of).value
            self._store.append_history(
                approval.record_id,
                HistoryEntry(
                    status=record.status,
                    actor=actor,
                    timestamp=as_of,
                    note=f"SLA reminder to {approval.assignee_id} ({overdue})",
                ),
            )
            if self._notifier is not None:
                self._notifier(approval)
            event = self._event(
                EventType.REMINDER_TRIGGERED, approval.id, actor, as_of,
                record_id=str(approval.record_id),
                assignee_id=approval.assignee_id,
                sla_deadline=approval.sla_deadline,
                sla_status=overdue,
            )
            return approval, [event]

        return self._run("send_reminder", actor, approval.record_id, body)

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def retry_on_stale(
        self, operation: Callable[[], OperationResult], attempts: int = 3
    ) -> OperationResult:
        """Re-run ``operation`` while it reports STALE, up to ``attempts`` runs.

        Every orchestrator operation re-reads what it writes, so each retry
        works on fresh data.  Any other outcome is returned as is.
        """
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        for attempt in range(1, attempts + 1):
            result = operation()
            if result.status is not OperationStatus.STALE:
                return result
            logger.warning(
                "stale_write_retry",
                extra={"attempt": attempt, "attempts": attempts, "error_code": result.error_code},
            )
        return result
