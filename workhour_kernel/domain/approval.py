"""
Approval domain types (``workhour_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the daily approval state machine.  One
``ApprovalRecord`` exists per (submitter, work date); every transition
returns a new frozen snapshot with ``version`` incremented by one.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Persisting a
snapshot is the workflow service's job (a conditional write keyed on the
previous status and version).

Invariants enforced
-------------------
* ``ALLOWED_ACTIONS`` defines the only valid transitions:

      PENDING  --approve--> APPROVED     PENDING  --reject--> REJECTED
      REJECTED --approve--> APPROVED     REJECTED --reject--> REJECTED
      any      --resubmit-> PENDING

  APPROVED is final for approve and reject.
* ``rejection_reason`` is non-null iff status is REJECTED.
* ``approver_email`` and ``approved_at`` are null iff status is PENDING.
* ``approved_at`` reflects the most recent approve or reject call.
* ``version`` increases by exactly one per transition.

Failure modes
-------------
* ``ValidationError`` -- malformed approver email or blank rejection
  reason (checked before status, so a bad request never reaches the
  state check).
* ``InvalidStateError`` -- transition not allowed from current status.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum

from workhour_kernel.domain.clock import ensure_utc
from workhour_kernel.domain.identity import require_email
from workhour_kernel.exceptions import InvalidStateError, ValidationError

MAX_REJECTION_REASON_LENGTH = 1000


# =========================================================================
# Status lifecycle
# =========================================================================


class ApprovalStatus(str, Enum):
    """Approval state of one (submitter, work date) record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(str, Enum):
    """Actions that move a record between statuses."""

    APPROVE = "approve"
    REJECT = "reject"
    RESUBMIT = "resubmit"


ALLOWED_ACTIONS: dict[ApprovalStatus, frozenset[ApprovalAction]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalAction.APPROVE,
        ApprovalAction.REJECT,
        ApprovalAction.RESUBMIT,
    }),
    ApprovalStatus.REJECTED: frozenset({
        ApprovalAction.APPROVE,
        ApprovalAction.REJECT,
        ApprovalAction.RESUBMIT,
    }),
    ApprovalStatus.APPROVED: frozenset({
        ApprovalAction.RESUBMIT,
    }),
}

RESULTING_STATUS: dict[ApprovalAction, ApprovalStatus] = {
    ApprovalAction.APPROVE: ApprovalStatus.APPROVED,
    ApprovalAction.REJECT: ApprovalStatus.REJECTED,
    ApprovalAction.RESUBMIT: ApprovalStatus.PENDING,
}


def is_action_allowed(status: ApprovalStatus, action: ApprovalAction) -> bool:
    return action in ALLOWED_ACTIONS[status]


def require_rejection_reason(reason: str | None) -> str:
    """Return the stripped reason or raise ``ValidationError``."""
    if reason is None or not reason.strip():
        raise ValidationError("rejection_reason", "is required when rejecting")
    reason = reason.strip()
    if len(reason) > MAX_REJECTION_REASON_LENGTH:
        raise ValidationError(
            "rejection_reason",
            f"must be at most {MAX_REJECTION_REASON_LENGTH} characters",
        )
    return reason


# =========================================================================
# Approval record snapshot
# =========================================================================


@dataclass(frozen=True)
class ApprovalRecord:
    """Immutable snapshot of the approval state for one day of one person."""

    submitter_email: str
    work_date: date
    status: ApprovalStatus = ApprovalStatus.PENDING
    approver_email: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def pending(
        cls,
        submitter_email: str,
        work_date: date,
        now: datetime | None = None,
    ) -> ApprovalRecord:
        """A fresh PENDING record, as created with the first work entry of the day."""
        if work_date is None:
            raise ValidationError("work_date", "is required")
        stamp = ensure_utc(now) if now is not None else None
        return cls(
            submitter_email=require_email(submitter_email, "submitter_email"),
            work_date=work_date,
            created_at=stamp,
            updated_at=stamp,
        )

    # -- predicates --------------------------------------------------------

    def is_editable(self) -> bool:
        """Work entries of the day may change unless the day is approved."""
        return self.status != ApprovalStatus.APPROVED

    def can_approve(self) -> bool:
        return is_action_allowed(self.status, ApprovalAction.APPROVE)

    def can_reject(self) -> bool:
        return is_action_allowed(self.status, ApprovalAction.REJECT)

    @property
    def is_final(self) -> bool:
        return self.status == ApprovalStatus.APPROVED

    # -- transitions -------------------------------------------------------

    def approve(self, approver_email: str, now: datetime) -> ApprovalRecord:
        approver = require_email(approver_email, "approver_email")
        self._require(ApprovalAction.APPROVE)
        stamp = ensure_utc(now)
        return replace(
            self,
            status=ApprovalStatus.APPROVED,
            approver_email=approver,
            approved_at=stamp,
            rejection_reason=None,
            version=self.version + 1,
            updated_at=stamp,
        )

    def reject(
        self,
        approver_email: str,
        reason: str | None,
        now: datetime,
    ) -> ApprovalRecord:
        reason = require_rejection_reason(reason)
        approver = require_email(approver_email, "approver_email")
        self._require(ApprovalAction.REJECT)
        stamp = ensure_utc(now)
        return replace(
            self,
            status=ApprovalStatus.REJECTED,
            approver_email=approver,
            approved_at=stamp,
            rejection_reason=reason,
            version=self.version + 1,
            updated_at=stamp,
        )

    def resubmit(
        self,
        now: datetime,
        allow_from_approved: bool = True,
    ) -> ApprovalRecord:
        """Return the record to PENDING, clearing approver, timestamp and reason."""
        if self.status == ApprovalStatus.APPROVED and not allow_from_approved:
            raise InvalidStateError(
                self.submitter_email,
                self.work_date,
                self.status.value,
                ApprovalAction.RESUBMIT.value,
            )
        self._require(ApprovalAction.RESUBMIT)
        return replace(
            self,
            status=ApprovalStatus.PENDING,
            approver_email=None,
            approved_at=None,
            rejection_reason=None,
            version=self.version + 1,
            updated_at=ensure_utc(now),
        )

    def _require(self, action: ApprovalAction) -> None:
        if not is_action_allowed(self.status, action):
            raise InvalidStateError(
                self.submitter_email,
                self.work_date,
                self.status.value,
                action.value,
            )
