"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Procurement numbers feed payments and vendor qualification decisions. A
caller that has to parse an error message to find out *why* an IPC was
refused will eventually get it wrong. Every failure in this package is:

  1. A TYPED exception class (catch by type, not message)
  2. Carrying a CODE class attribute (machine-readable, API-safe)
  3. Carrying structured DATA as attributes (not just a message string)

Example:
    try:
        machine.transition(record, "PAID", actor="u-17", at=clock.now())
    except TerminalStateError as e:
        api_response(code=e.code, status=e.current_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcurementKernelError (base)
    |
    +-- TransitionError
    |   +-- InvalidTransitionError
    |       +-- TerminalStateError
    |
    +-- EvaluationError
    |   +-- InvalidWeightsError
    |   +-- AlreadyAwardedError
    |   +-- AwardNotAllowedError
    |   +-- SubmissionDisqualifiedError
    |   +-- ManualConfirmationRequiredError
    |   +-- DuplicateSubmissionError
    |   +-- ScoringClosedError
    |
    +-- LedgerError
    |   +-- InvalidDeductionError
    |   +-- InvalidPeriodError
    |   +-- CurrencyMismatchError
    |   +-- ForeignIpcError
    |   +-- IpcOrderError
    |
    +-- ComplianceError
    |   +-- UnknownVendorTypeError
    |
    +-- SlaError
    |   +-- ApprovalAlreadyDecidedError
    |   +-- SlaExtensionError
    |
    +-- ConcurrencyError
    |   +-- StaleWriteError
    |
    +-- NotFoundError
        +-- RecordNotFoundError
        +-- SubmissionNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Transition   | INVALID_TRANSITION            | Edge not in the kind's table
             | TERMINAL_STATE                | Record already in a terminal state
-------------|-------------------------------|-----------------------------------
Evaluation   | INVALID_WEIGHTS               | Weights negative or not summing to 100
             | ALREADY_AWARDED               | RFQ already has an awarded submission
             | AWARD_NOT_ALLOWED             | RFQ not open, or submission unscored
             | SUBMISSION_DISQUALIFIED       | Award of a non-compliant submission
             | MANUAL_CONFIRMATION_REQUIRED  | PARTIAL compliance not confirmed
             | DUPLICATE_SUBMISSION          | Two submissions from one vendor
             | SCORING_CLOSED                | Rescoring a submission past review
-------------|-------------------------------|-----------------------------------
Ledger       | INVALID_DEDUCTION             | Negative deductions
             | INVALID_PERIOD                | period_from after period_to
             | CURRENCY_MISMATCH             | IPC currency != contract currency
             | FOREIGN_IPC                   | IPC belongs to another contract
             | IPC_ORDER                     | Prior IPCs not in creation order
-------------|-------------------------------|-----------------------------------
Compliance   | UNKNOWN_VENDOR_TYPE           | Vendor type label not recognised
-------------|-------------------------------|-----------------------------------
SLA          | APPROVAL_ALREADY_DECIDED      | Decision on a non-pending approval
             | SLA_EXTENSION_REJECTED        | Extension not later / not pending
-------------|-------------------------------|-----------------------------------
Concurrency  | STALE_WRITE                   | Version token no longer current
-------------|-------------------------------|-----------------------------------
Not found    | RECORD_NOT_FOUND              | Storage has no entity with that id
             | SUBMISSION_NOT_FOUND          | RFQ has no such submission

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ConcurrencyError is the only category callers retry automatically:

    except StaleWriteError:
        result = orchestrator.transition(record_id, "OPEN", actor=actor)

2. Everything else is domain-meaningful and goes back to the operator
   unchanged. There is no default-status fallback anywhere in the kernel.
"""


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"


# Transition-related exceptions


class TransitionError(ProcurementKernelError):
    """Base exception for lifecycle transition errors."""

    code: str = "TRANSITION_ERROR"


class InvalidTransitionError(TransitionError):
    """Requested status change is not an edge of the kind's workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, kind: str, current_status: str, requested_status: str):
        self.kind = kind
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Invalid {kind} transition: {current_status} -> {requested_status}"
        )


class TerminalStateError(InvalidTransitionError):
    """Record is in a terminal state and accepts no further transitions."""

    code: str = "TERMINAL_STATE"

    def __init__(self, kind: str, current_status: str, requested_status: str):
        super().__init__(kind, current_status, requested_status)
        self.args = (
            f"{kind} is in terminal state {current_status}; "
            f"cannot move to {requested_status}",
        )


# Evaluation-related exceptions


class EvaluationError(ProcurementKernelError):
    """Base exception for submission evaluation and award errors."""

    code: str = "EVALUATION_ERROR"


class InvalidWeightsError(EvaluationError):
    """Evaluation weights are negative or do not sum to 100."""

    code: str = "INVALID_WEIGHTS"

    def __init__(self, weights: dict[str, object], total: object):
        self.weights = weights
        self.total = total
        super().__init__(f"Evaluation weights must sum to 100, got {total}: {weights}")


class AlreadyAwardedError(EvaluationError):
    """RFQ already has an awarded submission."""

    code: str = "ALREADY_AWARDED"

    def __init__(self, rfq_id: str, awarded_submission_id: str | None = None):
        self.rfq_id = rfq_id
        self.awarded_submission_id = awarded_submission_id
        super().__init__(
            f"RFQ {rfq_id} is already awarded"
            + (f" to submission {awarded_submission_id}" if awarded_submission_id else "")
        )


class AwardNotAllowedError(EvaluationError):
    """Award preconditions (RFQ status, scored submission) are not met."""

    code: str = "AWARD_NOT_ALLOWED"

    def __init__(self, rfq_id: str, reason: str):
        self.rfq_id = rfq_id
        self.reason = reason
        super().__init__(f"Cannot award RFQ {rfq_id}: {reason}")


class SubmissionDisqualifiedError(EvaluationError):
    """Submission is non-compliant and cannot be awarded."""

    code: str = "SUBMISSION_DISQUALIFIED"

    def __init__(self, submission_id: str, vendor_id: str):
        self.submission_id = submission_id
        self.vendor_id = vendor_id
        super().__init__(
            f"Submission {submission_id} from vendor {vendor_id} is disqualified"
        )


class ManualConfirmationRequiredError(EvaluationError):
    """PARTIAL compliance must be confirmed by an operator before award."""

    code: str = "MANUAL_CONFIRMATION_REQUIRED"

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(
            f"Submission {submission_id} is partially compliant; "
            "award requires manual confirmation"
        )


class DuplicateSubmissionError(EvaluationError):
    """A vendor has more than one submission on the same RFQ."""

    code: str = "DUPLICATE_SUBMISSION"

    def __init__(self, rfq_id: str, vendor_id: str):
        self.rfq_id = rfq_id
        self.vendor_id = vendor_id
        super().__init__(f"Vendor {vendor_id} already has a submission on RFQ {rfq_id}")


class ScoringClosedError(EvaluationError):
    """Submission has left review; its technical score is frozen."""

    code: str = "SCORING_CLOSED"

    def __init__(self, submission_id: str, status: str):
        self.submission_id = submission_id
        self.status = status
        super().__init__(
            f"Submission {submission_id} is {status}; technical score can no longer change"
        )


# Ledger-related exceptions


class LedgerError(ProcurementKernelError):
    """Base exception for IPC / invoice reconciliation errors."""

    code: str = "LEDGER_ERROR"


class InvalidDeductionError(LedgerError):
    """Deductions must be zero or positive."""

    code: str = "INVALID_DEDUCTION"

    def __init__(self, ipc_id: str, deductions: object):
        self.ipc_id = ipc_id
        self.deductions = deductions
        super().__init__(f"IPC {ipc_id} has negative deductions: {deductions}")


class InvalidPeriodError(LedgerError):
    """IPC period starts after it ends."""

    code: str = "INVALID_PERIOD"

    def __init__(self, ipc_id: str, period_from: object, period_to: object):
        self.ipc_id = ipc_id
        self.period_from = period_from
        self.period_to = period_to
        super().__init__(
            f"IPC {ipc_id} period_from {period_from} is after period_to {period_to}"
        )


class CurrencyMismatchError(LedgerError):
    """IPC currency differs from the contract currency."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: contract is {expected}, IPC is {actual}")


class ForeignIpcError(LedgerError):
    """IPC does not belong to the contract being reconciled."""

    code: str = "FOREIGN_IPC"

    def __init__(self, ipc_id: str, contract_id: str, ipc_contract_id: str):
        self.ipc_id = ipc_id
        self.contract_id = contract_id
        self.ipc_contract_id = ipc_contract_id
        super().__init__(
            f"IPC {ipc_id} belongs to contract {ipc_contract_id}, not {contract_id}"
        )


class IpcOrderError(LedgerError):
    """Prior IPCs were not supplied in creation order."""

    code: str = "IPC_ORDER"

    def __init__(self, ipc_id: str, previous_ipc_id: str):
        self.ipc_id = ipc_id
        self.previous_ipc_id = previous_ipc_id
        super().__init__(
            f"IPC {ipc_id} was created before {previous_ipc_id} but supplied after it"
        )


# Compliance-related exceptions


class ComplianceError(ProcurementKernelError):
    """Base exception for vendor document compliance errors."""

    code: str = "COMPLIANCE_ERROR"


class UnknownVendorTypeError(ComplianceError):
    """Vendor type label is not recognised."""

    code: str = "UNKNOWN_VENDOR_TYPE"

    def __init__(self, vendor_type: str):
        self.vendor_type = vendor_type
        super().__init__(f"Unknown vendor type: {vendor_type!r}")


# SLA-related exceptions


class SlaError(ProcurementKernelError):
    """Base exception for approval SLA errors."""

    code: str = "SLA_ERROR"


class ApprovalAlreadyDecidedError(SlaError):
    """Approval has already left PENDING."""

    code: str = "APPROVAL_ALREADY_DECIDED"

    def __init__(self, approval_id: str, status: str):
        self.approval_id = approval_id
        self.status = status
        super().__init__(f"Approval {approval_id} is already {status}")


class SlaExtensionError(SlaError):
    """SLA deadline extension was refused."""

    code: str = "SLA_EXTENSION_REJECTED"

    def __init__(self, approval_id: str, reason: str):
        self.approval_id = approval_id
        self.reason = reason
        super().__init__(f"Cannot extend SLA of approval {approval_id}: {reason}")


# Concurrency-related exceptions


class ConcurrencyError(ProcurementKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleWriteError(ConcurrencyError):
    """Write was conditioned on a version token that is no longer current."""

    code: str = "STALE_WRITE"

    def __init__(self, entity_id: str, expected_version: int, actual_version: int | None):
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stale write on {entity_id}: expected version {expected_version}, "
            f"found {actual_version}; re-read and retry"
        )


# Lookup-related exceptions


class NotFoundError(ProcurementKernelError):
    """Base exception for missing records and relationships."""

    code: str = "NOT_FOUND"


class RecordNotFoundError(NotFoundError):
    """Storage has no entity with the given id."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, entity_id: str, entity_type: str | None = None):
        self.entity_id = entity_id
        self.entity_type = entity_type
        label = entity_type or "Record"
        super().__init__(f"{label} not found: {entity_id}")


class SubmissionNotFoundError(NotFoundError):
    """RFQ has no submission with the given id."""

    code: str = "SUBMISSION_NOT_FOUND"

    def __init__(self, rfq_id: str, submission_id: str):
        self.rfq_id = rfq_id
        self.submission_id = submission_id
        super().__init__(f"Submission {submission_id} not found on RFQ {rfq_id}")
