"""
Module: procurement_kernel.models.vendor
Responsibility: ORM persistence for vendors and their document version chains.

Invariants enforced:
    - (vendor_id, doc_type, version_number) is unique; document rows are
      insert-only, so a re-upload is a new row and history is never lost.
    - There is no "current document" column.  The current version is the
      highest version_number, derived on read.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base, IsoDate, IsoDateTime, VersionedMixin
from procurement_kernel.domain.compliance import (
    DocType,
    DocumentChain,
    DocumentVersion,
    VendorDossier,
)


class VendorModel(VersionedMixin, Base):
    __tablename__ = "vendors"

    vendor_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    vendor_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<Vendor {self.vendor_id} type={self.vendor_type}>"

    def to_dto(self, documents: list[DocumentVersion]) -> VendorDossier:
        grouped: dict[DocType, list[DocumentVersion]] = {}
        for doc in sorted(documents, key=lambda d: (d.doc_type.value, d.version)):
            grouped.setdefault(doc.doc_type, []).append(doc)
        return VendorDossier(
            vendor_id=self.vendor_id,
            vendor_type=self.vendor_type,
            name=self.name,
            chains={
                doc_type: DocumentChain(
                    vendor_id=self.vendor_id, doc_type=doc_type, versions=tuple(versions)
                )
                for doc_type, versions in grouped.items()
            },
        )

    @classmethod
    def from_dto(cls, dto: VendorDossier) -> VendorModel:
        return cls(vendor_id=dto.vendor_id, version=1, **cls.scalar_values(dto))

    @staticmethod
    def scalar_values(dto: VendorDossier) -> dict[str, Any]:
        return {"vendor_type": dto.vendor_type, "name": dto.name}


class DocumentVersionModel(Base):
    __tablename__ = "vendor_document_versions"

    __table_args__ = (
        UniqueConstraint(
            "vendor_id", "doc_type", "version_number",
            name="uq_vendor_document_versions_chain",
        ),
    )

    vendor_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    doc_type: Mapped[str] = mapped_column(String(50), nullable=False)
    version_number: Mapped[int] = mapped_column(nullable=False)
    file_ref: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(IsoDateTime(), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(100), nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(IsoDate(), nullable=True)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> DocumentVersion:
        return DocumentVersion(
            vendor_id=self.vendor_id,
            doc_type=self.doc_type,
            version=self.version_number,
            file_ref=self.file_ref,
            uploaded_at=self.uploaded_at,
            uploaded_by=self.uploaded_by,
            expiry_date=self.expiry_date,
            document_number=self.document_number,
        )

    @classmethod
    def from_dto(cls, dto: DocumentVersion) -> DocumentVersionModel:
        return cls(
            vendor_id=dto.vendor_id,
            doc_type=dto.doc_type.value,
            version_number=dto.version,
            file_ref=dto.file_ref,
            uploaded_at=dto.uploaded_at,
            uploaded_by=dto.uploaded_by,
            expiry_date=dto.expiry_date,
            document_number=dto.document_number,
        )
