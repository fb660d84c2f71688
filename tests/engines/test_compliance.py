"""
Tests for vendor document compliance.

Covers:
- Document expiry classification (MISSING / VALID / EXPIRING / EXPIRED)
- Mandatory document sets per vendor type
- Compliance percent, including the empty mandatory set
- Renewal notices and expiry risk across vendors
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from procurement_engines.compliance import (
    BASELINE_DOCUMENTS,
    DEFAULT_COMPLIANCE_RULES,
    ComplianceRules,
    RiskLevel,
    VendorTypeOverride,
    classify,
    compliance_percent,
    compliance_summary,
    documents_needing_renewal,
    expiry_risk,
    required_documents,
)
from procurement_kernel.domain.compliance import (
    DocType,
    DocumentStatus,
    DocumentVersion,
    VendorDossier,
    VendorType,
)
from procurement_kernel.exceptions import UnknownVendorTypeError
from tests.conftest import make_dossier

AS_OF = date(2024, 1, 1)
UPLOADED = datetime(2023, 6, 1, tzinfo=timezone.utc)

VALID_TYPES = (
    DocType.VAT_CERTIFICATE,
    DocType.WARRANTY_CERTIFICATE,
    DocType.QUALITY_PLAN,
    DocType.BANK_LETTER,
    DocType.COMPANY_PROFILE,
    DocType.TECHNICAL_FILE,
    DocType.FINANCIAL_FILE,
)
MISSING_TYPES = (
    DocType.COMMERCIAL_REGISTRATION,
    DocType.ZAKAT_CERTIFICATE,
    DocType.GOSI_CERTIFICATE,
)


def _doc(doc_type: DocType, expiry: date | None) -> DocumentVersion:
    return DocumentVersion(
        vendor_id="V-100",
        doc_type=doc_type,
        version=1,
        file_ref=f"files/{doc_type.value}.pdf",
        uploaded_at=UPLOADED,
        uploaded_by="vendor-portal",
        expiry_date=expiry,
    )


def _upload(dossier: VendorDossier, doc_type: DocType, expiry: date | None = None) -> VendorDossier:
    chain = dossier.chain(doc_type).append(
        file_ref=f"files/{doc_type.value}.pdf",
        uploaded_at=UPLOADED,
        uploaded_by="vendor-portal",
        expiry_date=expiry,
    )
    return dossier.with_chain(chain)


class TestClassify:

    @pytest.mark.parametrize(
        "expiry,expected",
        [
            (date(2024, 1, 20), DocumentStatus.EXPIRING),
            (date(2023, 12, 31), DocumentStatus.EXPIRED),
            (date(2024, 6, 1), DocumentStatus.VALID),
            (date(2024, 1, 31), DocumentStatus.EXPIRING),
            (date(2024, 2, 1), DocumentStatus.VALID),
            (date(2024, 1, 1), DocumentStatus.EXPIRING),
        ],
    )
    def test_expiry_boundaries(self, expiry, expected):
        assert classify(_doc(DocType.ZAKAT_CERTIFICATE, expiry), AS_OF) is expected

    def test_no_document_is_missing(self):
        assert classify(None, AS_OF) is DocumentStatus.MISSING

    def test_non_expiring_type_valid(self):
        assert classify(_doc(DocType.BANK_LETTER, None), AS_OF) is DocumentStatus.VALID

    def test_deterministic(self):
        doc = _doc(DocType.ISO_CERTIFICATE, date(2024, 1, 10))
        assert classify(doc, AS_OF) == classify(doc, AS_OF)

    def test_datetime_as_of_uses_date(self):
        doc = _doc(DocType.ISO_CERTIFICATE, date(2023, 12, 31))
        as_of = datetime(2024, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
        assert classify(doc, as_of) is DocumentStatus.EXPIRED

    def test_custom_warning_window(self):
        doc = _doc(DocType.ISO_CERTIFICATE, date(2024, 1, 20))
        assert classify(doc, AS_OF, warning_days=7) is DocumentStatus.VALID

    def test_expiry_on_non_expiring_type_rejected(self):
        with pytest.raises(ValueError):
            _doc(DocType.BANK_LETTER, date(2025, 1, 1))


class TestRequiredDocuments:

    def test_supplier_needs_saso(self):
        required = required_documents("Supplier")
        assert DocType.SASO_SABER_CERTIFICATE in required
        assert DocType.HSE_PLAN not in required

    def test_contractor_needs_hse(self):
        assert DocType.HSE_PLAN in required_documents(VendorType.CONTRACTOR)

    def test_label_variants_resolve(self):
        assert required_documents("General Contractor") == required_documents("GeneralContractor")
        assert required_documents("SubContractor") == required_documents(VendorType.SUBCONTRACTOR)

    def test_consultant_drops_warranty(self):
        required = required_documents("Consultant")
        assert DocType.WARRANTY_CERTIFICATE not in required
        assert required == BASELINE_DOCUMENTS - {DocType.WARRANTY_CERTIFICATE}

    def test_service_provider_gets_baseline(self):
        assert required_documents("ServiceProvider") == BASELINE_DOCUMENTS

    def test_unknown_vendor_type(self):
        with pytest.raises(UnknownVendorTypeError):
            required_documents("Astronaut")


class TestComplianceSummary:

    def test_seven_of_ten_is_seventy_percent(self):
        rules = ComplianceRules(baseline=frozenset(VALID_TYPES + MISSING_TYPES))
        dossier = make_dossier(vendor_type="Supplier")
        for doc_type in VALID_TYPES:
            dossier = _upload(dossier, doc_type)

        summary = compliance_summary(dossier, AS_OF, rules)

        assert summary.total_mandatory == 10
        assert summary.compliant_count == 7
        assert summary.percent == 70
        assert set(summary.missing) == set(MISSING_TYPES)
        assert not summary.is_fully_compliant

    def test_empty_mandatory_set_is_fully_compliant(self):
        rules = ComplianceRules(baseline=frozenset())
        summary = compliance_summary(make_dossier(), AS_OF, rules)
        assert summary.total_mandatory == 0
        assert summary.percent == 100

    def test_expiring_and_expired_not_compliant(self):
        rules = ComplianceRules(
            baseline=frozenset({DocType.ZAKAT_CERTIFICATE, DocType.GOSI_CERTIFICATE, DocType.VAT_CERTIFICATE})
        )
        dossier = make_dossier()
        dossier = _upload(dossier, DocType.ZAKAT_CERTIFICATE, date(2024, 1, 20))
        dossier = _upload(dossier, DocType.GOSI_CERTIFICATE, date(2023, 12, 1))
        dossier = _upload(dossier, DocType.VAT_CERTIFICATE)

        summary = compliance_summary(dossier, AS_OF, rules)

        assert summary.expiring == (DocType.ZAKAT_CERTIFICATE,)
        assert summary.expired == (DocType.GOSI_CERTIFICATE,)
        assert summary.compliant_count == 1
        assert summary.percent == 33
        assert summary.has_expiry_risk

    def test_current_version_decides(self):
        rules = ComplianceRules(baseline=frozenset({DocType.ZAKAT_CERTIFICATE}))
        dossier = _upload(make_dossier(), DocType.ZAKAT_CERTIFICATE, date(2023, 6, 30))
        dossier = _upload(dossier, DocType.ZAKAT_CERTIFICATE, date(2025, 6, 30))

        summary = compliance_summary(dossier, AS_OF, rules)

        assert summary.percent == 100
        assert dossier.chain(DocType.ZAKAT_CERTIFICATE).at_version(1).expiry_date == date(2023, 6, 30)

    def test_override_rules(self):
        rules = ComplianceRules(
            baseline=frozenset({DocType.VAT_CERTIFICATE}),
            overrides={VendorType.SUPPLIER: VendorTypeOverride(add=frozenset({DocType.BANK_LETTER}))},
        )
        summary = compliance_summary(make_dossier(vendor_type="Supplier"), AS_OF, rules)
        assert summary.total_mandatory == 2

    def test_default_rules_supplier_total(self):
        summary = compliance_summary(make_dossier(vendor_type="Supplier"), AS_OF)
        assert summary.total_mandatory == len(BASELINE_DOCUMENTS) + 1
        assert summary.percent == 0


class TestCompliancePercent:

    @pytest.mark.parametrize(
        "compliant,total,expected",
        [(7, 10, 70), (0, 0, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13), (15, 15, 100)],
    )
    def test_round_half_up(self, compliant, total, expected):
        assert compliance_percent(compliant, total) == expected


class TestRenewalsAndRisk:

    def test_renewal_notices(self):
        dossier = make_dossier()
        dossier = _upload(dossier, DocType.ZAKAT_CERTIFICATE, date(2024, 1, 20))
        dossier = _upload(dossier, DocType.INDUSTRY_LICENSE, date(2023, 11, 1))
        dossier = _upload(dossier, DocType.ISO_CERTIFICATE, date(2025, 1, 1))

        notices = documents_needing_renewal(dossier, AS_OF)

        by_type = {n.doc_type: n for n in notices}
        assert set(by_type) == {DocType.ZAKAT_CERTIFICATE, DocType.INDUSTRY_LICENSE}
        assert by_type[DocType.ZAKAT_CERTIFICATE].days_until_expiry == 19
        assert by_type[DocType.ZAKAT_CERTIFICATE].mandatory
        assert by_type[DocType.INDUSTRY_LICENSE].status is DocumentStatus.EXPIRED
        assert not by_type[DocType.INDUSTRY_LICENSE].mandatory

    def _summary(self, vendor_id: str, expiry: date | None):
        rules = ComplianceRules(baseline=frozenset({DocType.ZAKAT_CERTIFICATE}))
        dossier = make_dossier(vendor_id)
        if expiry is not None:
            dossier = _upload(dossier, DocType.ZAKAT_CERTIFICATE, expiry)
        return compliance_summary(dossier, AS_OF, rules)

    def test_no_risk(self):
        report = expiry_risk([self._summary("V1", date(2025, 1, 1))])
        assert report.level is RiskLevel.LOW
        assert report.risk_percent == Decimal("0.0")

    def test_moderate_at_threshold(self):
        summaries = [self._summary(f"V{i}", date(2025, 1, 1)) for i in range(4)]
        summaries.append(self._summary("V-EXP", date(2023, 1, 1)))
        report = expiry_risk(summaries)
        assert report.level is RiskLevel.MODERATE
        assert report.risk_percent == Decimal("20.0")
        assert report.at_risk_vendor_ids == ("V-EXP",)

    def test_high_above_threshold(self):
        summaries = [
            self._summary("V1", date(2025, 1, 1)),
            self._summary("V2", date(2024, 1, 10)),
            self._summary("V3", date(2023, 1, 1)),
        ]
        report = expiry_risk(summaries)
        assert report.level is RiskLevel.HIGH
        assert report.vendors_with_expired == 1
        assert report.vendors_with_expiring == 1
        assert report.at_risk_count == 2

    def test_missing_documents_are_not_expiry_risk(self):
        report = expiry_risk([self._summary("V1", None)])
        assert report.level is RiskLevel.LOW

    def test_empty_population(self):
        report = expiry_risk([])
        assert report.total_vendors == 0
        assert report.level is RiskLevel.LOW


def test_default_rules_cover_every_vendor_type():
    for vendor_type in VendorType:
        assert required_documents(vendor_type, DEFAULT_COMPLIANCE_RULES)
