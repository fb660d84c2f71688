"""
Config -> Engine Bridges.

Functions that convert a ``ProcurementConfig`` into the rule objects the
engines and the orchestrator take.  These live in procurement_config (the
producer) because the kernel must NEVER import procurement_config.

Usage:
    from procurement_config import get_active_config
    from procurement_config.bridges import build_orchestrator_settings

    config = get_active_config()
    orchestrator = ProcurementOrchestrator(
        store, clock, settings=build_orchestrator_settings(config)
    )
"""

from __future__ import annotations

from datetime import timedelta

from procurement_config.schema import ProcurementConfig
from procurement_engines.compliance import ComplianceRules, VendorTypeOverride
from procurement_engines.evaluation import EvaluationWeights
from procurement_engines.qualification import (
    ClassThreshold,
    QualificationCriterion,
    QualificationRules,
)
from procurement_kernel.domain.compliance import DocType, VendorType
from procurement_kernel.domain.vocabulary import StatusVocabulary
from procurement_kernel.exceptions import UnknownVendorTypeError
from procurement_kernel.services.orchestrator import OrchestratorSettings


def build_evaluation_weights(config: ProcurementConfig) -> EvaluationWeights:
    weights = EvaluationWeights(
        technical=config.evaluation.technical_weight,
        commercial=config.evaluation.commercial_weight,
    )
    weights.validate()
    return weights


def build_qualification_rules(config: ProcurementConfig) -> QualificationRules:
    """Raises InvalidWeightsError when the criteria weights do not total 100."""
    qualification = config.qualification
    if not qualification.criteria:
        return QualificationRules(fallback_class=qualification.fallback_class)
    return QualificationRules(
        criteria=tuple(
            QualificationCriterion(c.name, c.weight) for c in qualification.criteria
        ),
        thresholds=tuple(
            ClassThreshold(t.vendor_class, t.minimum) for t in qualification.thresholds
        ),
        fallback_class=qualification.fallback_class,
    )


def build_compliance_rules(config: ProcurementConfig) -> ComplianceRules:
    """Resolve document and vendor type names.

    Unknown document names raise ValueError (from the DocType enum);
    unknown vendor types raise UnknownVendorTypeError.
    """
    compliance = config.compliance
    overrides: dict[VendorType, VendorTypeOverride] = {}
    for override in compliance.overrides:
        vendor_type = VendorType.parse(override.vendor_type)
        if vendor_type is None:
            raise UnknownVendorTypeError(override.vendor_type)
        overrides[vendor_type] = VendorTypeOverride(
            add=frozenset(DocType(d) for d in override.add),
            remove=frozenset(DocType(d) for d in override.remove),
        )
    return ComplianceRules(
        baseline=frozenset(DocType(d) for d in compliance.baseline_documents),
        overrides=overrides,
        warning_days=compliance.warning_days,
    )


def build_vocabulary(config: ProcurementConfig) -> StatusVocabulary:
    return StatusVocabulary(
        mappings={kind: dict(pairs) for kind, pairs in config.vocabulary.mappings.items()},
        aliases={kind: dict(pairs) for kind, pairs in config.vocabulary.aliases.items()},
    )


def build_orchestrator_settings(config: ProcurementConfig) -> OrchestratorSettings:
    return OrchestratorSettings(
        evaluation_weights=build_evaluation_weights(config),
        compliance_rules=build_compliance_rules(config),
        qualification_rules=build_qualification_rules(config),
        vocabulary=build_vocabulary(config),
        reminder_lead=timedelta(hours=config.sla.reminder_lead_hours),
        default_sla=timedelta(hours=config.sla.default_sla_hours),
        high_risk_threshold=config.compliance.high_risk_threshold,
    )
