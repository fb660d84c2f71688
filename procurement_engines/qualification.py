"""
Module: procurement_engines.qualification
Responsibility:
    Weighted vendor qualification scoring and A/B/C/D classification.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Criterion weights are non-negative and total exactly 100.
    - Every criterion score is within 0..100; unscored criteria count as 0.
    - total = sum(score x weight) / 100, quantized to 0.01.
    - Class thresholds are checked highest first; below every threshold the
      vendor gets the fallback class.

Failure modes:
    - InvalidWeightsError when the criteria weights do not total 100.
    - ValueError for unknown criteria or out-of-range scores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from procurement_kernel.exceptions import InvalidWeightsError
from procurement_kernel.logging_config import get_logger
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.qualification")

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class QualificationCriterion:
    name: str
    weight: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "weight", Decimal(self.weight))


@dataclass(frozen=True)
class ClassThreshold:
    vendor_class: str
    minimum: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "minimum", Decimal(self.minimum))


DEFAULT_CRITERIA: tuple[QualificationCriterion, ...] = (
    QualificationCriterion("document_compliance", Decimal("20")),
    QualificationCriterion("technical_capability", Decimal("25")),
    QualificationCriterion("financial_strength", Decimal("20")),
    QualificationCriterion("experience", Decimal("25")),
    QualificationCriterion("responsiveness", Decimal("10")),
)

DEFAULT_THRESHOLDS: tuple[ClassThreshold, ...] = (
    ClassThreshold("A", Decimal("85")),
    ClassThreshold("B", Decimal("70")),
    ClassThreshold("C", Decimal("55")),
)


@dataclass(frozen=True)
class QualificationRules:
    criteria: tuple[QualificationCriterion, ...] = DEFAULT_CRITERIA
    thresholds: tuple[ClassThreshold, ...] = DEFAULT_THRESHOLDS
    fallback_class: str = "D"

    def __post_init__(self) -> None:
        weights = {c.name: c.weight for c in self.criteria}
        total = sum(weights.values(), Decimal("0"))
        if total != _HUNDRED or any(w < 0 for w in weights.values()):
            raise InvalidWeightsError(weights, total)
        ordered = tuple(sorted(self.thresholds, key=lambda t: t.minimum, reverse=True))
        object.__setattr__(self, "thresholds", ordered)


DEFAULT_QUALIFICATION_RULES = QualificationRules()


@dataclass(frozen=True)
class QualificationResult:
    vendor_id: str
    total_score: Decimal
    vendor_class: str
    contributions: Mapping[str, Decimal] = field(default_factory=dict)
    unscored: tuple[str, ...] = ()


class QualificationScorer:
    """Applies ``QualificationRules`` to per-criterion scores."""

    def __init__(self, rules: QualificationRules = DEFAULT_QUALIFICATION_RULES):
        self.rules = rules

    def classify(self, total: Decimal) -> str:
        for threshold in self.rules.thresholds:
            if total >= threshold.minimum:
                return threshold.vendor_class
        return self.rules.fallback_class

    @traced_engine("qualification", "1.0", fingerprint_fields=("vendor_id", "scores"))
    def score(self, vendor_id: str, scores: Mapping[str, Decimal]) -> QualificationResult:
        known = {c.name for c in self.rules.criteria}
        unknown = sorted(set(scores) - known)
        if unknown:
            raise ValueError(f"Unknown qualification criteria: {unknown}")

        contributions: dict[str, Decimal] = {}
        unscored: list[str] = []
        for criterion in self.rules.criteria:
            raw = scores.get(criterion.name)
            if raw is None:
                unscored.append(criterion.name)
                value = Decimal("0")
            else:
                value = Decimal(raw)
                if not (0 <= value <= _HUNDRED):
                    raise ValueError(
                        f"Score for {criterion.name} must be within 0..100, got {value}"
                    )
            contributions[criterion.name] = value * criterion.weight / _HUNDRED

        total = sum(contributions.values(), Decimal("0")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        vendor_class = self.classify(total)
        logger.info(
            "vendor_qualified",
            extra={
                "vendor_id": vendor_id,
                "total_score": total,
                "vendor_class": vendor_class,
                "unscored_criteria": unscored,
            },
        )
        return QualificationResult(
            vendor_id=vendor_id,
            total_score=total,
            vendor_class=vendor_class,
            contributions=contributions,
            unscored=tuple(unscored),
        )
