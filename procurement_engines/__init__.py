"""
Module: procurement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for the orchestrator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procurement_kernel.domain, exceptions and logging_config
    (and sibling engine modules).  MUST NOT import procurement_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      ``at`` / ``as_of`` values are passed in by the caller.
    - Decimal-only arithmetic for money, scores and percentages.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``procurement_engines.tracer``), emitting PROCUREMENT_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.
"""

from procurement_engines import compliance, sla
from procurement_engines.compliance import (
    DEFAULT_COMPLIANCE_RULES,
    ComplianceRules,
    ExpiryRiskReport,
    RenewalNotice,
    RiskLevel,
    VendorTypeOverride,
)
from procurement_engines.evaluation import (
    AwardOutcome,
    EvaluationEngine,
    EvaluationWeights,
    ScoredSubmission,
)
from procurement_engines.ledger import (
    ContractLedgerSummary,
    IpcComputation,
    LedgerEngine,
)
from procurement_engines.qualification import (
    DEFAULT_QUALIFICATION_RULES,
    QualificationCriterion,
    QualificationResult,
    QualificationRules,
    QualificationScorer,
)
from procurement_engines.sla import EntityTypeCounts, SlaReport
from procurement_engines.status_machine import StatusMachine
from procurement_engines.tracer import traced_engine

__all__ = [
    # Status machine
    "StatusMachine",
    # Evaluation
    "EvaluationEngine",
    "EvaluationWeights",
    "ScoredSubmission",
    "AwardOutcome",
    # Qualification
    "QualificationScorer",
    "QualificationRules",
    "QualificationCriterion",
    "QualificationResult",
    "DEFAULT_QUALIFICATION_RULES",
    # Ledger
    "LedgerEngine",
    "IpcComputation",
    "ContractLedgerSummary",
    # Compliance
    "compliance",
    "ComplianceRules",
    "VendorTypeOverride",
    "DEFAULT_COMPLIANCE_RULES",
    "RenewalNotice",
    "ExpiryRiskReport",
    "RiskLevel",
    # SLA
    "sla",
    "SlaReport",
    "EntityTypeCounts",
    # Tracing
    "traced_engine",
]
