"""ORM models for the work-hour approval kernel."""

from workhour_kernel.models.approval import ApprovalHistoryModel, ApprovalRecordModel
from workhour_kernel.models.approval_event import ApprovalEventModel
from workhour_kernel.models.approver import ApproverRelationshipModel
from workhour_kernel.models.authority import AuthorityModel

__all__ = [
    "ApprovalEventModel",
    "ApprovalHistoryModel",
    "ApprovalRecordModel",
    "ApproverRelationshipModel",
    "AuthorityModel",
]
