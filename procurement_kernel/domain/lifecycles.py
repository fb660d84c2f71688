"""
Lifecycle tables for every procurement document kind.

One canonical table per kind.  External vocabularies (for example the RFQ
pages that say PUBLISHED / UNDER_EVALUATION) are translated at the boundary by
``procurement_kernel.domain.vocabulary`` and never appear here.
"""

from enum import Enum

from procurement_kernel.domain.workflow import Transition, Workflow


class RecordKind(str, Enum):
    """Kinds of lifecycle-tracked documents."""

    PURCHASE_REQUEST = "PR"
    RFQ = "RFQ"
    CONTRACT = "CONTRACT"
    IPC = "IPC"
    INVOICE = "INVOICE"
    SUBMISSION = "SUBMISSION"


class PrStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_PROCUREMENT_REVIEW = "UNDER_PROCUREMENT_REVIEW"
    UNDER_TECHNICAL_REVIEW = "UNDER_TECHNICAL_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RfqStatus(str, Enum):
    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    OPEN = "OPEN"
    AWARDED = "AWARDED"
    CLOSED = "CLOSED"
    CANCELED = "CANCELED"


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CLOSED = "CLOSED"
    TERMINATED = "TERMINATED"
    CANCELED = "CANCELED"


class PaymentStatus(str, Enum):
    """Shared by IPCs and invoices."""

    SUBMITTED = "SUBMITTED"
    PROCUREMENT_REVIEW = "PROCUREMENT_REVIEW"
    TECHNICAL_APPROVED = "TECHNICAL_APPROVED"
    FINANCE_REVIEW = "FINANCE_REVIEW"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REJECTED = "REJECTED"


class SubmissionStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    RECOMMENDED = "RECOMMENDED"
    AWARDED = "AWARDED"
    REJECTED = "REJECTED"


def _states(enum_cls: type[Enum]) -> tuple[str, ...]:
    return tuple(member.value for member in enum_cls)


# -----------------------------------------------------------------------------
# Purchase Request
# -----------------------------------------------------------------------------

PR_WORKFLOW = Workflow(
    name="purchase_request",
    description="Purchase request review lifecycle",
    initial_state=PrStatus.DRAFT.value,
    states=_states(PrStatus),
    transitions=(
        Transition("DRAFT", "SUBMITTED", action="submit"),
        Transition("SUBMITTED", "UNDER_PROCUREMENT_REVIEW", action="start_procurement_review"),
        Transition("SUBMITTED", "UNDER_TECHNICAL_REVIEW", action="start_technical_review"),
        Transition("UNDER_PROCUREMENT_REVIEW", "UNDER_TECHNICAL_REVIEW", action="refer_to_technical"),
        Transition("UNDER_PROCUREMENT_REVIEW", "APPROVED", action="approve"),
        Transition("UNDER_PROCUREMENT_REVIEW", "REJECTED", action="reject"),
        Transition("UNDER_TECHNICAL_REVIEW", "APPROVED", action="approve"),
        Transition("UNDER_TECHNICAL_REVIEW", "REJECTED", action="reject"),
    ),
)


# -----------------------------------------------------------------------------
# Request for Quotation
# -----------------------------------------------------------------------------

RFQ_WORKFLOW = Workflow(
    name="rfq",
    description="Request for quotation lifecycle",
    initial_state=RfqStatus.DRAFT.value,
    states=_states(RfqStatus),
    transitions=(
        Transition("DRAFT", "ISSUED", action="issue"),
        Transition("DRAFT", "CANCELED", action="cancel"),
        Transition("ISSUED", "OPEN", action="open_evaluation"),
        Transition("ISSUED", "CANCELED", action="cancel"),
        Transition("OPEN", "AWARDED", action="award"),
        Transition("OPEN", "CLOSED", action="close"),
        Transition("OPEN", "CANCELED", action="cancel"),
        Transition("AWARDED", "CLOSED", action="close"),
    ),
)


# -----------------------------------------------------------------------------
# Contract
# -----------------------------------------------------------------------------

CONTRACT_WORKFLOW = Workflow(
    name="contract",
    description="Contract lifecycle",
    initial_state=ContractStatus.DRAFT.value,
    states=_states(ContractStatus),
    transitions=(
        Transition("DRAFT", "ACTIVE", action="activate"),
        Transition("DRAFT", "CANCELED", action="cancel"),
        Transition("ACTIVE", "EXPIRED", action="expire"),
        Transition("ACTIVE", "CLOSED", action="close"),
        Transition("ACTIVE", "TERMINATED", action="terminate"),
        Transition("EXPIRED", "ACTIVE", action="renew"),
        Transition("EXPIRED", "CLOSED", action="close"),
    ),
)


# -----------------------------------------------------------------------------
# IPC / Invoice
# -----------------------------------------------------------------------------

_PAYMENT_REVIEW_CHAIN = (
    ("SUBMITTED", "PROCUREMENT_REVIEW", "start_procurement_review"),
    ("PROCUREMENT_REVIEW", "TECHNICAL_APPROVED", "approve_technical"),
    ("TECHNICAL_APPROVED", "FINANCE_REVIEW", "start_finance_review"),
    ("FINANCE_REVIEW", "APPROVED", "approve"),
    ("APPROVED", "PAID", "pay"),
)


def _payment_transitions() -> tuple[Transition, ...]:
    forward = [Transition(src, dst, action=action) for src, dst, action in _PAYMENT_REVIEW_CHAIN]
    rejections = [
        Transition(src, "REJECTED", action="reject") for src, _, _ in _PAYMENT_REVIEW_CHAIN
    ]
    return tuple(forward + rejections)


IPC_WORKFLOW = Workflow(
    name="ipc",
    description="Interim payment certificate review lifecycle",
    initial_state=PaymentStatus.SUBMITTED.value,
    states=_states(PaymentStatus),
    transitions=_payment_transitions(),
)

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Invoice review lifecycle",
    initial_state=PaymentStatus.SUBMITTED.value,
    states=_states(PaymentStatus),
    transitions=_payment_transitions(),
)


# -----------------------------------------------------------------------------
# Vendor submission (per RFQ)
# -----------------------------------------------------------------------------

SUBMISSION_WORKFLOW = Workflow(
    name="submission",
    description="Vendor submission evaluation lifecycle",
    initial_state=SubmissionStatus.SUBMITTED.value,
    states=_states(SubmissionStatus),
    transitions=(
        Transition("SUBMITTED", "UNDER_REVIEW", action="review"),
        Transition("SUBMITTED", "RECOMMENDED", action="recommend"),
        Transition("UNDER_REVIEW", "RECOMMENDED", action="recommend"),
        Transition("RECOMMENDED", "AWARDED", action="award"),
        Transition("SUBMITTED", "REJECTED", action="reject"),
        Transition("UNDER_REVIEW", "REJECTED", action="reject"),
        Transition("RECOMMENDED", "REJECTED", action="reject"),
    ),
)


WORKFLOWS: dict[RecordKind, Workflow] = {
    RecordKind.PURCHASE_REQUEST: PR_WORKFLOW,
    RecordKind.RFQ: RFQ_WORKFLOW,
    RecordKind.CONTRACT: CONTRACT_WORKFLOW,
    RecordKind.IPC: IPC_WORKFLOW,
    RecordKind.INVOICE: INVOICE_WORKFLOW,
    RecordKind.SUBMISSION: SUBMISSION_WORKFLOW,
}


def workflow_for(kind: RecordKind | str) -> Workflow:
    """Look up the lifecycle table for ``kind`` (enum member or its value)."""
    return WORKFLOWS[RecordKind(kind)]
