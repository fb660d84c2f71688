"""
Module: procurement_engines.compliance
Responsibility:
    Decide which documents a vendor must hold, classify each document's
    expiry state as of a date, and summarise compliance per vendor and
    across the vendor base.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is always passed
    in; this module never reads the clock.

Invariants enforced:
    - Mandatory set = baseline + per-vendor-type additions - removals.
    - classify: no current version -> MISSING; expiry < as_of -> EXPIRED;
      expiry - as_of <= warning window -> EXPIRING; else VALID.  Types
      without expiry are VALID once present.
    - Only mandatory types classified VALID count as compliant.
    - percent = round_half_up(compliant / total x 100); total == 0 -> 100.

Failure modes:
    - UnknownVendorTypeError for a vendor type label that matches no type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Mapping

from procurement_kernel.domain.compliance import (
    ComplianceSummary,
    DocType,
    DocumentStatus,
    DocumentVersion,
    VendorDossier,
    VendorType,
)
from procurement_kernel.exceptions import UnknownVendorTypeError
from procurement_kernel.logging_config import get_logger
from procurement_engines.tracer import traced_engine

logger = get_logger("engines.compliance")

DEFAULT_WARNING_DAYS = 30


@dataclass(frozen=True)
class VendorTypeOverride:
    add: frozenset[DocType] = frozenset()
    remove: frozenset[DocType] = frozenset()


@dataclass(frozen=True)
class ComplianceRules:
    """Baseline mandatory documents plus per-vendor-type adjustments."""

    baseline: frozenset[DocType]
    overrides: Mapping[VendorType, VendorTypeOverride] = field(default_factory=dict)
    warning_days: int = DEFAULT_WARNING_DAYS

    def __post_init__(self) -> None:
        if self.warning_days < 0:
            raise ValueError("warning_days cannot be negative")
        object.__setattr__(self, "baseline", frozenset(DocType(d) for d in self.baseline))
        object.__setattr__(
            self, "overrides", {VendorType(k): v for k, v in dict(self.overrides).items()}
        )


BASELINE_DOCUMENTS: frozenset[DocType] = frozenset({
    DocType.COMMERCIAL_REGISTRATION,
    DocType.ZAKAT_CERTIFICATE,
    DocType.VAT_CERTIFICATE,
    DocType.GOSI_CERTIFICATE,
    DocType.ISO_CERTIFICATE,
    DocType.WARRANTY_CERTIFICATE,
    DocType.QUALITY_PLAN,
    DocType.BANK_LETTER,
    DocType.COMPANY_PROFILE,
    DocType.TECHNICAL_FILE,
    DocType.FINANCIAL_FILE,
    DocType.INSURANCE_CERTIFICATE,
    DocType.VENDOR_CODE_OF_CONDUCT,
    DocType.ORGANIZATION_CHART,
})

_SASO = VendorTypeOverride(add=frozenset({DocType.SASO_SABER_CERTIFICATE}))
_HSE = VendorTypeOverride(add=frozenset({DocType.HSE_PLAN}))

DEFAULT_COMPLIANCE_RULES = ComplianceRules(
    baseline=BASELINE_DOCUMENTS,
    overrides={
        VendorType.SUPPLIER: _SASO,
        VendorType.MANUFACTURER: _SASO,
        VendorType.DISTRIBUTOR: _SASO,
        VendorType.CONTRACTOR: _HSE,
        VendorType.SUBCONTRACTOR: _HSE,
        VendorType.GENERAL_CONTRACTOR: _HSE,
        VendorType.CONSULTANT: VendorTypeOverride(
            remove=frozenset({DocType.WARRANTY_CERTIFICATE})
        ),
    },
)


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


@dataclass(frozen=True)
class RenewalNotice:
    """A current document that is expired or about to expire."""

    vendor_id: str
    doc_type: DocType
    status: DocumentStatus
    expiry_date: date
    days_until_expiry: int
    mandatory: bool


@dataclass(frozen=True)
class ExpiryRiskReport:
    total_vendors: int
    vendors_with_expired: int
    vendors_with_expiring: int
    at_risk_vendor_ids: tuple[str, ...]
    risk_percent: Decimal
    level: RiskLevel

    @property
    def at_risk_count(self) -> int:
        return len(self.at_risk_vendor_ids)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def required_documents(
    vendor_type: str | VendorType,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> frozenset[DocType]:
    parsed = VendorType.parse(vendor_type)
    if parsed is None:
        raise UnknownVendorTypeError(str(vendor_type))
    override = rules.overrides.get(parsed)
    if override is None:
        return rules.baseline
    return (rules.baseline | override.add) - override.remove


def classify(
    document: DocumentVersion | None,
    as_of: date | datetime,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> DocumentStatus:
    if document is None:
        return DocumentStatus.MISSING
    if document.expiry_date is None:
        return DocumentStatus.VALID
    as_of = _as_date(as_of)
    if document.expiry_date < as_of:
        return DocumentStatus.EXPIRED
    if (document.expiry_date - as_of).days <= warning_days:
        return DocumentStatus.EXPIRING
    return DocumentStatus.VALID


def compliance_percent(compliant: int, total: int) -> int:
    if total == 0:
        return 100
    ratio = Decimal(compliant) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@traced_engine("compliance", "1.0", fingerprint_fields=("as_of",))
def compliance_summary(
    dossier: VendorDossier,
    as_of: date | datetime,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> ComplianceSummary:
    as_of = _as_date(as_of)
    mandatory = sorted(required_documents(dossier.vendor_type, rules), key=lambda d: d.value)
    statuses = {
        doc_type: classify(dossier.current(doc_type), as_of, rules.warning_days)
        for doc_type in mandatory
    }

    def of(status: DocumentStatus) -> tuple[DocType, ...]:
        return tuple(d for d, s in statuses.items() if s is status)

    compliant = len(of(DocumentStatus.VALID))
    summary = ComplianceSummary(
        vendor_id=dossier.vendor_id,
        vendor_type=dossier.vendor_type,
        as_of=as_of,
        compliant_count=compliant,
        total_mandatory=len(mandatory),
        percent=compliance_percent(compliant, len(mandatory)),
        statuses=statuses,
        missing=of(DocumentStatus.MISSING),
        expired=of(DocumentStatus.EXPIRED),
        expiring=of(DocumentStatus.EXPIRING),
    )
    logger.info(
        "compliance_summarized",
        extra={
            "vendor_id": dossier.vendor_id,
            "compliant_count": summary.compliant_count,
            "total_mandatory": summary.total_mandatory,
            "percent": summary.percent,
        },
    )
    return summary


def documents_needing_renewal(
    dossier: VendorDossier,
    as_of: date | datetime,
    rules: ComplianceRules = DEFAULT_COMPLIANCE_RULES,
) -> tuple[RenewalNotice, ...]:
    """Current documents (mandatory or not) that are EXPIRING or EXPIRED."""
    as_of = _as_date(as_of)
    mandatory = required_documents(dossier.vendor_type, rules)
    notices: list[RenewalNotice] = []
    for doc_type in sorted(dossier.chains, key=lambda d: d.value):
        current = dossier.current(doc_type)
        status = classify(current, as_of, rules.warning_days)
        if status in (DocumentStatus.EXPIRING, DocumentStatus.EXPIRED):
            notices.append(
                RenewalNotice(
                    vendor_id=dossier.vendor_id,
                    doc_type=doc_type,
                    status=status,
                    expiry_date=current.expiry_date,
                    days_until_expiry=(current.expiry_date - as_of).days,
                    mandatory=doc_type in mandatory,
                )
            )
    return tuple(notices)


def expiry_risk(
    summaries: Iterable[ComplianceSummary],
    high_risk_threshold: Decimal = Decimal("0.20"),
) -> ExpiryRiskReport:
    """Share of vendors holding an expired or expiring mandatory document.

    LOW when no vendor is at risk, MODERATE up to the threshold share of
    vendors, HIGH above it.
    """
    summaries = list(summaries)
    expired_ids = [s.vendor_id for s in summaries if s.expired]
    expiring_ids = [s.vendor_id for s in summaries if s.expiring and not s.expired]
    at_risk = tuple(expired_ids + expiring_ids)
    total = len(summaries)

    if total:
        risk_percent = (Decimal(len(at_risk)) * 100 / Decimal(total)).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
    else:
        risk_percent = Decimal("0.0")

    if not at_risk:
        level = RiskLevel.LOW
    elif Decimal(len(at_risk)) <= Decimal(total) * Decimal(high_risk_threshold):
        level = RiskLevel.MODERATE
    else:
        level = RiskLevel.HIGH

    return ExpiryRiskReport(
        total_vendors=total,
        vendors_with_expired=len(expired_ids),
        vendors_with_expiring=len(expiring_ids),
        at_risk_vendor_ids=at_risk,
        risk_percent=risk_percent,
        level=level,
    )
