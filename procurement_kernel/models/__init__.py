"""ORM models.  Importing this package registers every table on Base.metadata."""

from procurement_kernel.models.approval import ApprovalModel, SlaExtensionModel
from procurement_kernel.models.ipc import IpcModel
from procurement_kernel.models.record import ProcurementRecordModel, StatusHistoryModel
from procurement_kernel.models.submission import SubmissionModel
from procurement_kernel.models.vendor import DocumentVersionModel, VendorModel

__all__ = [
    "ProcurementRecordModel",
    "StatusHistoryModel",
    "SubmissionModel",
    "IpcModel",
    "ApprovalModel",
    "SlaExtensionModel",
    "VendorModel",
    "DocumentVersionModel",
]
