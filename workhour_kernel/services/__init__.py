"""Kernel services: writes flush into the caller's transaction, never commit."""

from workhour_kernel.services.approval_workflow import (
    ApprovalResult,
    ApprovalWorkflowService,
    BatchItemResult,
    BatchResult,
)
from workhour_kernel.services.approver_store import ApproverRelationshipStore
from workhour_kernel.services.authority_registry import AuthorityRegistry
from workhour_kernel.services.authorization import AuthorizationChecker
from workhour_kernel.services.event_outbox import OutboxEventSink

__all__ = [
    "ApprovalResult",
    "ApprovalWorkflowService",
    "ApproverRelationshipStore",
    "AuthorityRegistry",
    "AuthorizationChecker",
    "BatchItemResult",
    "BatchResult",
    "OutboxEventSink",
]
