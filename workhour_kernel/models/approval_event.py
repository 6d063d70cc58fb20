"""
Module: workhour_kernel.models.approval_event
Responsibility: Transactional outbox for approval events.  Rows are written
    in the same transaction as the transition that produced them; a relay
    outside the kernel publishes them and stamps ``published_at``.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - event_id is unique.
    - Only ``published_at`` may change after insert.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import JSON, Date, Index, String, Text, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from workhour_kernel.db.base import Base, UUIDString
from workhour_kernel.domain.approval import ApprovalAction, ApprovalStatus
from workhour_kernel.domain.events import ApprovalEvent
from workhour_kernel.exceptions import ImmutabilityViolationError


class ApprovalEventModel(Base):
    """Outbox row for one ``ApprovalEvent``."""

    __tablename__ = "approval_events"

    __table_args__ = (
        Index("ix_approval_events_unpublished", "published_at", "occurred_at"),
        Index("ix_approval_events_record", "submitter_email", "work_date"),
    )

    event_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    submitter_email: Mapped[str] = mapped_column(String(255), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    approver_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    resulting_status: Mapped[str] = mapped_column(String(20), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ApprovalEvent {self.event_id} {self.event_type}>"

    def to_dto(self) -> ApprovalEvent:
        return ApprovalEvent(
            event_id=self.event_id,
            submitter_email=self.submitter_email,
            work_date=self.work_date,
            action=ApprovalAction(self.action),
            approver_email=self.approver_email,
            rejection_reason=self.rejection_reason,
            resulting_status=ApprovalStatus(self.resulting_status),
            occurred_at=self.occurred_at,
        )

    @classmethod
    def from_dto(cls, dto: ApprovalEvent) -> ApprovalEventModel:
        return cls(
            event_id=dto.event_id,
            event_type=dto.event_type,
            submitter_email=dto.submitter_email,
            work_date=dto.work_date,
            action=dto.action.value,
            approver_email=dto.approver_email,
            rejection_reason=dto.rejection_reason,
            resulting_status=dto.resulting_status.value,
            occurred_at=dto.occurred_at,
            payload=dto.to_payload(),
        )


@event.listens_for(ApprovalEventModel, "before_update")
def restrict_event_update(mapper, connection, target):
    """Only the publication stamp may change on an outbox row."""
    state = inspect(target)
    for attr in state.attrs:
        if attr.key == "published_at":
            continue
        if attr.history.has_changes():
            raise ImmutabilityViolationError(
                entity_type="ApprovalEvent",
                entity_id=str(target.event_id),
                reason=f"Approval events are immutable -- cannot modify {attr.key}",
            )
