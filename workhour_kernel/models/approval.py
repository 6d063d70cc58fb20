"""
Module: workhour_kernel.models.approval
Responsibility: ORM persistence for daily approval records and their
    append-only transition history.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - One approval record per (submitter_email, work_date) (UNIQUE).
    - status limited to pending/approved/rejected (CHECK).
    - rejection_reason is set iff status is rejected (CHECK).
    - approver_email and approved_at are null iff status is pending (CHECK).
    - History rows are append-only: ORM listeners reject UPDATE and DELETE.

Failure modes:
    - IntegrityError on a duplicate (submitter, date) insert; the workflow
      service treats that as "someone else created it first".
    - ImmutabilityViolationError on history UPDATE/DELETE.

Audit relevance:
    The record holds the current state; the history table holds every
    approve/reject/resubmit with actor and reason.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    Index,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from workhour_kernel.db.base import Base, TrackedBase, UUIDString
from workhour_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from workhour_kernel.domain.approval import ApprovalRecord
    from workhour_kernel.domain.history import ApprovalHistoryEntry


class ApprovalRecordModel(TrackedBase):
    """Current approval state of one submitter's work day.

    Guarantees:
        - ``version`` only grows; the workflow service writes through
          ``UPDATE ... WHERE status = :expected AND version = :expected``.
    """

    __tablename__ = "work_record_approvals"

    __table_args__ = (
        UniqueConstraint(
            "submitter_email", "work_date",
            name="uq_work_record_approvals_submitter_date",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_work_record_approvals_valid_status",
        ),
        CheckConstraint(
            "(status = 'rejected' AND rejection_reason IS NOT NULL) OR "
            "(status <> 'rejected' AND rejection_reason IS NULL)",
            name="ck_work_record_approvals_reason",
        ),
        CheckConstraint(
            "(status = 'pending' AND approver_email IS NULL AND approved_at IS NULL) OR "
            "(status <> 'pending' AND approver_email IS NOT NULL AND approved_at IS NOT NULL)",
            name="ck_work_record_approvals_approver",
        ),
        Index(
            "ix_work_record_approvals_status_date",
            "status", "work_date",
        ),
    )

    submitter_email: Mapped[str] = mapped_column(String(255), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    approver_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<ApprovalRecord {self.submitter_email} {self.work_date} "
            f"status={self.status} v{self.version}>"
        )

    def to_dto(self) -> ApprovalRecord:
        """Convert ORM model to frozen domain DTO."""
        from workhour_kernel.domain.approval import ApprovalRecord, ApprovalStatus

        return ApprovalRecord(
            submitter_email=self.submitter_email,
            work_date=self.work_date,
            status=ApprovalStatus(self.status),
            approver_email=self.approver_email,
            approved_at=self.approved_at,
            rejection_reason=self.rejection_reason,
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalRecord) -> ApprovalRecordModel:
        """Create ORM model from domain DTO."""
        return cls(
            submitter_email=dto.submitter_email,
            work_date=dto.work_date,
            status=dto.status.value,
            approver_email=dto.approver_email,
            approved_at=dto.approved_at,
            rejection_reason=dto.rejection_reason,
            version=dto.version,
            created_at=dto.created_at,
            updated_at=dto.updated_at,
        )


class ApprovalHistoryModel(Base):
    """One approve/reject/resubmit of one approval record. Append-only."""

    __tablename__ = "approval_history"

    __table_args__ = (
        CheckConstraint(
            "action IN ('approve', 'reject', 'resubmit')",
            name="ck_approval_history_valid_action",
        ),
        Index(
            "ix_approval_history_record",
            "submitter_email", "work_date", "record_version",
        ),
        Index("ix_approval_history_actor", "actor_email", "occurred_at"),
    )

    history_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    submitter_email: Mapped[str] = mapped_column(String(255), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_status: Mapped[str] = mapped_column(String(20), nullable=False)
    resulting_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    record_version: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApprovalHistory {self.submitter_email} {self.work_date} "
            f"{self.action} {self.previous_status}->{self.resulting_status}>"
        )

    def to_dto(self) -> ApprovalHistoryEntry:
        """Convert ORM model to frozen domain DTO."""
        from workhour_kernel.domain.approval import ApprovalAction, ApprovalStatus
        from workhour_kernel.domain.history import ApprovalHistoryEntry

        return ApprovalHistoryEntry(
            history_id=self.history_id,
            submitter_email=self.submitter_email,
            work_date=self.work_date,
            action=ApprovalAction(self.action),
            previous_status=ApprovalStatus(self.previous_status),
            resulting_status=ApprovalStatus(self.resulting_status),
            actor_email=self.actor_email,
            rejection_reason=self.rejection_reason,
            occurred_at=self.occurred_at,
            record_version=self.record_version,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalHistoryEntry) -> ApprovalHistoryModel:
        """Create ORM model from domain DTO."""
        return cls(
            history_id=dto.history_id,
            submitter_email=dto.submitter_email,
            work_date=dto.work_date,
            action=dto.action.value,
            previous_status=dto.previous_status.value,
            resulting_status=dto.resulting_status.value,
            actor_email=dto.actor_email,
            rejection_reason=dto.rejection_reason,
            occurred_at=dto.occurred_at,
            record_version=dto.record_version,
        )


# =============================================================================
# ORM-Level Immutability for History (Append-Only)
# =============================================================================


@event.listens_for(ApprovalHistoryModel, "before_update")
def prevent_history_update(mapper, connection, target):
    """Prevent updates to approval history rows."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.history_id),
        reason="Approval history is append-only -- cannot modify",
    )


@event.listens_for(ApprovalHistoryModel, "before_delete")
def prevent_history_delete(mapper, connection, target):
    """Prevent deletion of approval history rows."""
    raise ImmutabilityViolationError(
        entity_type="ApprovalHistory",
        entity_id=str(target.history_id),
        reason="Approval history is append-only -- cannot delete",
    )
