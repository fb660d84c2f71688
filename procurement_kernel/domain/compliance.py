"""
Vendor document value objects (``procurement_kernel.domain.compliance``).

Responsibility
--------------
Document types, vendor types and the append-only version chain that holds
every upload of a vendor's qualification documents.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  File contents
live with an external storage collaborator; only the opaque ``file_ref``
is held here.

Invariants enforced
-------------------
* A ``DocumentChain`` holds versions 1..n of one (vendor, doc type) pair in
  upload order.  Re-upload appends; nothing is replaced or removed.
* ``DocumentChain.current`` is derived from the last version; there is no
  separately stored "current" pointer.
* Documents of a type without expiry never carry an ``expiry_date``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Mapping


class DocType(str, Enum):
    """Vendor qualification document types."""

    COMMERCIAL_REGISTRATION = "COMMERCIAL_REGISTRATION"
    ZAKAT_CERTIFICATE = "ZAKAT_CERTIFICATE"
    VAT_CERTIFICATE = "VAT_CERTIFICATE"
    GOSI_CERTIFICATE = "GOSI_CERTIFICATE"
    ISO_CERTIFICATE = "ISO_CERTIFICATE"
    SASO_SABER_CERTIFICATE = "SASO_SABER_CERTIFICATE"
    HSE_PLAN = "HSE_PLAN"
    WARRANTY_CERTIFICATE = "WARRANTY_CERTIFICATE"
    QUALITY_PLAN = "QUALITY_PLAN"
    BANK_LETTER = "BANK_LETTER"
    COMPANY_PROFILE = "COMPANY_PROFILE"
    TECHNICAL_FILE = "TECHNICAL_FILE"
    FINANCIAL_FILE = "FINANCIAL_FILE"
    INSURANCE_CERTIFICATE = "INSURANCE_CERTIFICATE"
    INDUSTRY_LICENSE = "INDUSTRY_LICENSE"
    VENDOR_CODE_OF_CONDUCT = "VENDOR_CODE_OF_CONDUCT"
    ORGANIZATION_CHART = "ORGANIZATION_CHART"

    @property
    def has_expiry(self) -> bool:
        return self in _EXPIRING_TYPES


_EXPIRING_TYPES = frozenset({
    DocType.COMMERCIAL_REGISTRATION,
    DocType.ZAKAT_CERTIFICATE,
    DocType.GOSI_CERTIFICATE,
    DocType.ISO_CERTIFICATE,
    DocType.SASO_SABER_CERTIFICATE,
    DocType.INSURANCE_CERTIFICATE,
    DocType.INDUSTRY_LICENSE,
})


class VendorType(str, Enum):
    SUPPLIER = "Supplier"
    MANUFACTURER = "Manufacturer"
    DISTRIBUTOR = "Distributor"
    CONTRACTOR = "Contractor"
    SUBCONTRACTOR = "Subcontractor"
    GENERAL_CONTRACTOR = "GeneralContractor"
    CONSULTANT = "Consultant"
    SERVICE_PROVIDER = "ServiceProvider"

    @classmethod
    def parse(cls, label: str | VendorType) -> VendorType | None:
        """Resolve a free-form label ("SubContractor", "General Contractor").

        Returns None when the label matches no vendor type; the caller
        decides whether that is an error.
        """
        if isinstance(label, VendorType):
            return label
        key = _squash(label)
        for member in cls:
            if _squash(member.value) == key:
                return member
        return None


def _squash(label: str) -> str:
    return re.sub(r"[^a-z]", "", label.lower())


class DocumentStatus(str, Enum):
    MISSING = "MISSING"
    VALID = "VALID"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class DocumentVersion:
    """One uploaded file for a (vendor, doc type) pair."""

    vendor_id: str
    doc_type: DocType
    version: int
    file_ref: str
    uploaded_at: datetime
    uploaded_by: str
    expiry_date: date | None = None
    document_number: str | None = None

    def __post_init__(self) -> None:
        doc_type = DocType(self.doc_type)
        if self.version < 1:
            raise ValueError(f"Document version must be >= 1, got {self.version}")
        if self.expiry_date is not None and not doc_type.has_expiry:
            raise ValueError(f"{doc_type.value} documents do not expire")
        object.__setattr__(self, "doc_type", doc_type)


@dataclass(frozen=True)
class DocumentChain:
    """
    Ordered upload history of one document type for one vendor.

    Guarantees:
        - ``versions[i].version == i + 1``.
        - ``append`` returns a new chain; the receiver is unchanged.
    """

    vendor_id: str
    doc_type: DocType
    versions: tuple[DocumentVersion, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "doc_type", DocType(self.doc_type))
        for index, version in enumerate(self.versions, start=1):
            if version.version != index:
                raise ValueError(
                    f"Document chain {self.vendor_id}/{self.doc_type.value} "
                    f"expected version {index}, found {version.version}"
                )
            if version.doc_type is not self.doc_type or version.vendor_id != self.vendor_id:
                raise ValueError("Document version does not belong to this chain")

    @property
    def current(self) -> DocumentVersion | None:
        return self.versions[-1] if self.versions else None

    @property
    def next_version(self) -> int:
        return len(self.versions) + 1

    def at_version(self, version: int) -> DocumentVersion | None:
        if 1 <= version <= len(self.versions):
            return self.versions[version - 1]
        return None

    def append(
        self,
        file_ref: str,
        uploaded_at: datetime,
        uploaded_by: str,
        expiry_date: date | None = None,
        document_number: str | None = None,
    ) -> DocumentChain:
        new_version = DocumentVersion(
            vendor_id=self.vendor_id,
            doc_type=self.doc_type,
            version=self.next_version,
            file_ref=file_ref,
            uploaded_at=uploaded_at,
            uploaded_by=uploaded_by,
            expiry_date=expiry_date,
            document_number=document_number,
        )
        return replace(self, versions=self.versions + (new_version,))


@dataclass(frozen=True)
class VendorDossier:
    """A vendor's type and every document chain it holds."""

    vendor_id: str
    vendor_type: str
    name: str | None = None
    chains: Mapping[DocType, DocumentChain] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "chains", {DocType(k): v for k, v in dict(self.chains).items()}
        )

    def chain(self, doc_type: DocType) -> DocumentChain:
        """Chain for ``doc_type``; an empty chain if nothing was uploaded."""
        doc_type = DocType(doc_type)
        existing = self.chains.get(doc_type)
        if existing is not None:
            return existing
        return DocumentChain(vendor_id=self.vendor_id, doc_type=doc_type)

    def current(self, doc_type: DocType) -> DocumentVersion | None:
        return self.chain(doc_type).current

    def with_chain(self, chain: DocumentChain) -> VendorDossier:
        chains = dict(self.chains)
        chains[chain.doc_type] = chain
        return replace(self, chains=chains)


@dataclass(frozen=True)
class ComplianceSummary:
    """Mandatory-document compliance of one vendor as of a date."""

    vendor_id: str
    vendor_type: str
    as_of: date
    compliant_count: int
    total_mandatory: int
    percent: int
    statuses: Mapping[DocType, DocumentStatus]
    missing: tuple[DocType, ...] = ()
    expired: tuple[DocType, ...] = ()
    expiring: tuple[DocType, ...] = ()

    @property
    def is_fully_compliant(self) -> bool:
        return self.compliant_count == self.total_mandatory

    @property
    def has_expiry_risk(self) -> bool:
        return bool(self.expired or self.expiring)
