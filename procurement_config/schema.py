"""
Procurement configuration schema.

Typed, frozen view of ``defaults.yaml`` (or an operator-supplied file with
the same shape).  The loader parses YAML into these types; the bridges turn
them into engine rule objects.  Nothing here carries executable logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Evaluation and qualification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluationConfig:
    """Default RFQ scoring weights, as percentages."""

    technical_weight: Decimal = Decimal("40")
    commercial_weight: Decimal = Decimal("60")


@dataclass(frozen=True)
class CriterionDef:
    name: str
    weight: Decimal


@dataclass(frozen=True)
class ClassThresholdDef:
    vendor_class: str
    minimum: Decimal


@dataclass(frozen=True)
class QualificationConfig:
    criteria: tuple[CriterionDef, ...] = ()
    thresholds: tuple[ClassThresholdDef, ...] = ()
    fallback_class: str = "D"


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VendorTypeOverrideDef:
    """Documents added to / removed from the baseline for one vendor type."""

    vendor_type: str
    add: tuple[str, ...] = ()
    remove: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComplianceConfig:
    warning_days: int = 30
    baseline_documents: tuple[str, ...] = ()
    overrides: tuple[VendorTypeOverrideDef, ...] = ()
    high_risk_threshold: Decimal = Decimal("0.20")


# ---------------------------------------------------------------------------
# SLA and vocabulary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SlaConfig:
    reminder_lead_hours: int = 24
    default_sla_hours: int = 72


@dataclass(frozen=True)
class VocabularyConfig:
    # kind -> (external, canonical) pairs
    mappings: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)
    aliases: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcurementConfig:
    """Root configuration object returned by ``get_active_config()``."""

    config_id: str
    version: int
    evaluation: EvaluationConfig
    qualification: QualificationConfig
    compliance: ComplianceConfig
    sla: SlaConfig
    vocabulary: VocabularyConfig
    checksum: str = ""
