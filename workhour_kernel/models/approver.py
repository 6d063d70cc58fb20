"""
Module: workhour_kernel.models.approver
Responsibility: ORM persistence for time-bounded approver relationships.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - subordinate_email <> approver_email (CHECK).
    - effective_to IS NULL OR effective_to >= effective_from (CHECK).
    - first_day / last_day hold the wall-clock dates of the bounds as
      supplied; last_day IS NULL OR last_day >= first_day (CHECK).  Day
      containment queries compare these columns, never the UTC instants.
    - assignment_seq is unique per subordinate, so "last inserted" is
      well defined for the tie-break.

Failure modes:
    - IntegrityError when two writers race for the same assignment_seq;
      the losing transaction rolls back and may retry.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from workhour_kernel.db.base import TrackedBase
from workhour_kernel.domain.approver import ApproverRelationship


class ApproverRelationshipModel(TrackedBase):
    """``approver_email`` approves ``subordinate_email`` within a window."""

    __tablename__ = "approver_relationships"

    __table_args__ = (
        CheckConstraint(
            "subordinate_email <> approver_email",
            name="ck_approver_relationships_not_self",
        ),
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="ck_approver_relationships_window_order",
        ),
        CheckConstraint(
            "last_day IS NULL OR last_day >= first_day",
            name="ck_approver_relationships_day_order",
        ),
        UniqueConstraint(
            "subordinate_email", "assignment_seq",
            name="uq_approver_relationships_assignment_seq",
        ),
        Index(
            "ix_approver_relationships_subordinate",
            "subordinate_email", "effective_from",
        ),
        Index(
            "ix_approver_relationships_approver",
            "approver_email", "first_day",
        ),
    )

    subordinate_email: Mapped[str] = mapped_column(String(255), nullable=False)
    approver_email: Mapped[str] = mapped_column(String(255), nullable=False)
    effective_from: Mapped[datetime] = mapped_column(nullable=False)
    effective_to: Mapped[datetime | None] = mapped_column(nullable=True)
    first_day: Mapped[date] = mapped_column(Date, nullable=False)
    last_day: Mapped[date | None] = mapped_column(Date, nullable=True)
    assignment_seq: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApproverRelationship {self.approver_email} -> "
            f"{self.subordinate_email} [{self.effective_from}, {self.effective_to}]>"
        )

    def to_dto(self) -> ApproverRelationship:
        """Convert ORM model to frozen domain DTO."""
        return ApproverRelationship(
            relationship_id=self.id,
            subordinate_email=self.subordinate_email,
            approver_email=self.approver_email,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            assignment_seq=self.assignment_seq,
            created_at=self.created_at,
            updated_at=self.updated_at,
            first_day=self.first_day,
            last_day=self.last_day,
        )
