"""
Pure domain layer.

Value objects and rules of the approval workflow with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable.  Time enters only through an injected
``Clock`` or an explicit ``now`` argument.
"""

from workhour_kernel.domain.approval import (
    ALLOWED_ACTIONS,
    ApprovalAction,
    ApprovalRecord,
    ApprovalStatus,
)
from workhour_kernel.domain.approver import (
    ApproverRelationship,
    latest_assignment,
    overlaps_with_period,
    window_for_dates,
)
from workhour_kernel.domain.authority import (
    AuthorityRecord,
    Rank,
    RankComparison,
    compare_rank,
)
from workhour_kernel.domain.authorization import AuthorizationDecision, DenialReason
from workhour_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from workhour_kernel.domain.events import ApprovalEvent, CollectingEventSink, EventSink
from workhour_kernel.domain.history import ApprovalHistoryEntry
from workhour_kernel.domain.identity import is_well_formed_email, normalize_email
from workhour_kernel.domain.policy import DEFAULT_POLICY, ApprovalPolicy

__all__ = [
    # Approval state machine
    "ALLOWED_ACTIONS",
    "ApprovalAction",
    "ApprovalRecord",
    "ApprovalStatus",
    "ApprovalHistoryEntry",
    # Relationships
    "ApproverRelationship",
    "latest_assignment",
    "overlaps_with_period",
    "window_for_dates",
    # Authority
    "AuthorityRecord",
    "Rank",
    "RankComparison",
    "compare_rank",
    # Authorization
    "AuthorizationDecision",
    "DenialReason",
    # Events
    "ApprovalEvent",
    "CollectingEventSink",
    "EventSink",
    # Clock
    "Clock",
    "DeterministicClock",
    "SequentialClock",
    "SystemClock",
    # Identity
    "is_well_formed_email",
    "normalize_email",
    # Policy
    "ApprovalPolicy",
    "DEFAULT_POLICY",
]
