"""
Authorization decisions (``workhour_kernel.domain.authorization``).

Responsibility
--------------
The derived, never-persisted answer to "may this approver act on this
submitter's record for this date?", plus the mapping from a denial to
the ``AuthorizationError`` raised at the service boundary.  An
ALREADY_FINAL denial raises ``FinalStatusError``, which is both an
``AuthorizationError`` and an ``InvalidStateError``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  The checks themselves
need the relationship store and registry, so they run in
``services/authorization.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from workhour_kernel.domain.approval import ApprovalAction
from workhour_kernel.exceptions import AuthorizationError, AuthorizationFailure, FinalStatusError


class DenialReason(str, Enum):
    """Why an authorization request was denied."""

    NOT_AN_APPROVER = "not_an_approver"
    RELATIONSHIP_EXPIRED = "relationship_expired"
    SELF_APPROVAL = "self_approval"
    ALREADY_FINAL = "already_final"


DENIAL_FAILURE: dict[DenialReason, AuthorizationFailure] = {
    DenialReason.NOT_AN_APPROVER: AuthorizationFailure.AUTHORITY,
    DenialReason.RELATIONSHIP_EXPIRED: AuthorizationFailure.AUTHORITY,
    DenialReason.SELF_APPROVAL: AuthorizationFailure.AUTHORITY,
    DenialReason.ALREADY_FINAL: AuthorizationFailure.STATUS,
}


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check, with its inputs for audit logging."""

    allowed: bool
    approver_email: str
    submitter_email: str
    work_date: date
    action: ApprovalAction
    reason: DenialReason | None = None
    current_status: str | None = None

    @classmethod
    def allow(
        cls,
        approver_email: str,
        submitter_email: str,
        work_date: date,
        action: ApprovalAction,
    ) -> AuthorizationDecision:
        return cls(True, approver_email, submitter_email, work_date, action)

    @classmethod
    def deny(
        cls,
        reason: DenialReason,
        approver_email: str,
        submitter_email: str,
        work_date: date,
        action: ApprovalAction,
        current_status: str | None = None,
    ) -> AuthorizationDecision:
        return cls(
            False,
            approver_email,
            submitter_email,
            work_date,
            action,
            reason=reason,
            current_status=current_status,
        )

    def to_error(self) -> AuthorizationError:
        """Build the error that a denial raises.  Only valid when denied."""
        if self.allowed or self.reason is None:
            raise ValueError("An allowed decision has no error")
        if self.reason == DenialReason.ALREADY_FINAL:
            return FinalStatusError(
                self.approver_email,
                self.submitter_email,
                self.work_date,
                self.current_status,
                self.action.value,
                denial_reason=self.reason.value,
            )
        return AuthorizationError(
            DENIAL_FAILURE[self.reason],
            self.approver_email,
            self.submitter_email,
            self.work_date,
            operation=self.action.value,
            denial_reason=self.reason.value,
            current_status=self.current_status,
        )
