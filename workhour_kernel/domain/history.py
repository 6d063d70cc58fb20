"""
Approval history domain types (``workhour_kernel.domain.history``).

Every transition of an ``ApprovalRecord`` leaves one append-only
``ApprovalHistoryEntry`` describing who did what, from which status, to
which status, and when.  Entries are never updated or deleted; the ORM
layer rejects both.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID, uuid4

from workhour_kernel.domain.approval import ApprovalAction, ApprovalRecord, ApprovalStatus


@dataclass(frozen=True)
class ApprovalHistoryEntry:
    """One transition of one approval record. Immutable."""

    history_id: UUID
    submitter_email: str
    work_date: date
    action: ApprovalAction
    previous_status: ApprovalStatus
    resulting_status: ApprovalStatus
    actor_email: str | None
    occurred_at: datetime
    record_version: int = 0
    rejection_reason: str | None = None

    @classmethod
    def for_transition(
        cls,
        before: ApprovalRecord,
        after: ApprovalRecord,
        action: ApprovalAction,
        actor_email: str | None,
        occurred_at: datetime,
    ) -> ApprovalHistoryEntry:
        return cls(
            history_id=uuid4(),
            submitter_email=after.submitter_email,
            work_date=after.work_date,
            action=action,
            previous_status=before.status,
            resulting_status=after.status,
            actor_email=actor_email,
            occurred_at=occurred_at,
            record_version=after.version,
            rejection_reason=after.rejection_reason,
        )
