"""
Module: workhour_kernel.selectors.approval_history_selector
Responsibility: Read-only queries over the append-only approval history and
    the current approval records: the audit trail of one day, everything one
    actor decided, and status counts for a submitter's period.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only: no add/delete/flush/commit.
    - Trails are returned oldest first, in the order the transitions
      happened.

Failure modes:
    - ValidationError when a date range is inverted.
"""

from __future__ import annotations

from collections import Counter
from datetime import date

from sqlalchemy import func, select

from workhour_kernel.domain.approval import ApprovalAction, ApprovalStatus
from workhour_kernel.domain.history import ApprovalHistoryEntry
from workhour_kernel.domain.identity import normalize_email
from workhour_kernel.exceptions import ValidationError
from workhour_kernel.models.approval import ApprovalHistoryModel, ApprovalRecordModel
from workhour_kernel.selectors.base import BaseSelector

_H = ApprovalHistoryModel


class ApprovalHistorySelector(BaseSelector[ApprovalHistoryModel]):
    """Audit-trail queries for approval records."""

    def trail(self, submitter_email: str, work_date: date) -> list[ApprovalHistoryEntry]:
        """Every transition of one day, oldest first."""
        stmt = (
            select(_H)
            .where(
                _H.submitter_email == normalize_email(submitter_email),
                _H.work_date == work_date,
            )
            .order_by(_H.occurred_at.asc(), _H.record_version.asc())
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def latest(self, submitter_email: str, work_date: date) -> ApprovalHistoryEntry | None:
        trail = self.trail(submitter_email, work_date)
        return trail[-1] if trail else None

    def decisions_by(
        self,
        actor_email: str,
        date_from: date | None = None,
        date_to: date | None = None,
        action: ApprovalAction | None = None,
    ) -> list[ApprovalHistoryEntry]:
        """Transitions performed by ``actor_email``, optionally by work date range."""
        _check_range(date_from, date_to)
        stmt = select(_H).where(_H.actor_email == normalize_email(actor_email))
        if date_from is not None:
            stmt = stmt.where(_H.work_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(_H.work_date <= date_to)
        if action is not None:
            stmt = stmt.where(_H.action == action.value)
        stmt = stmt.order_by(
            _H.occurred_at.asc(),
            _H.submitter_email.asc(),
            _H.work_date.asc(),
            _H.record_version.asc(),
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def rejection_count(self, submitter_email: str, work_date: date) -> int:
        """How many times one day was rejected."""
        return self.session.execute(
            select(func.count())
            .select_from(_H)
            .where(
                _H.submitter_email == normalize_email(submitter_email),
                _H.work_date == work_date,
                _H.action == ApprovalAction.REJECT.value,
            )
        ).scalar_one()

    def status_summary(
        self,
        submitter_email: str,
        date_from: date,
        date_to: date,
    ) -> dict[ApprovalStatus, int]:
        """Count of the submitter's current records per status within the range.

        Every status appears in the result, with 0 when absent.
        """
        _check_range(date_from, date_to)
        rows = self.session.execute(
            select(ApprovalRecordModel.status).where(
                ApprovalRecordModel.submitter_email == normalize_email(submitter_email),
                ApprovalRecordModel.work_date >= date_from,
                ApprovalRecordModel.work_date <= date_to,
            )
        ).scalars().all()
        counts = Counter(ApprovalStatus(s) for s in rows)
        return {status: counts.get(status, 0) for status in ApprovalStatus}


def _check_range(date_from: date | None, date_to: date | None) -> None:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise ValidationError("date_from", "must not be after date_to")
