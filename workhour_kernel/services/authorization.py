"""
AuthorizationChecker -- may this approver act on this record?

Responsibility:
    Evaluates an approve/reject request against the approver relationship
    store, the authority registry (when rank is required) and the current
    approval record status, producing an ``AuthorizationDecision``.

Architecture position:
    Kernel > Services.  Reads only; never writes.

Check order (first failure wins):
    1. Self approval                        -> SELF_APPROVAL
    2. Rank (``require_rank_authority``)    -> NOT_AN_APPROVER
    3. Relationship covering the work date  -> RELATIONSHIP_EXPIRED when the
                                               pair has any relationship,
                                               otherwise NOT_AN_APPROVER
    4. Record status                        -> ALREADY_FINAL when the action
                                               is not allowed from the
                                               current status; a missing
                                               record counts as PENDING

Audit relevance:
    Every denial is logged as ``authorization_denied`` with all inputs.
    The state machine re-validates its own preconditions regardless of
    the decision, so a stale decision can never force a bad transition.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from workhour_kernel.domain.approval import (
    ApprovalAction,
    ApprovalStatus,
    is_action_allowed,
)
from workhour_kernel.domain.authorization import AuthorizationDecision, DenialReason
from workhour_kernel.domain.clock import Clock
from workhour_kernel.domain.identity import normalize_email
from workhour_kernel.domain.policy import DEFAULT_POLICY, ApprovalPolicy
from workhour_kernel.logging_config import get_logger
from workhour_kernel.models.approval import ApprovalRecordModel
from workhour_kernel.services.approver_store import ApproverRelationshipStore
from workhour_kernel.services.authority_registry import AuthorityRegistry

logger = get_logger("services.authorization")


class AuthorizationChecker:
    """Decides whether an approver may approve/reject a submitter's day."""

    def __init__(
        self,
        session: Session,
        relationships: ApproverRelationshipStore | None = None,
        registry: AuthorityRegistry | None = None,
        policy: ApprovalPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.policy = policy or DEFAULT_POLICY
        self.relationships = relationships or ApproverRelationshipStore(
            session, clock, self.policy
        )
        self.registry = registry or AuthorityRegistry(session, clock)

    def authorize(
        self,
        approver_email: str,
        submitter_email: str,
        work_date: date,
        action: ApprovalAction = ApprovalAction.APPROVE,
    ) -> AuthorizationDecision:
        approver = normalize_email(approver_email)
        submitter = normalize_email(submitter_email)

        def deny(reason: DenialReason, status: str | None = None) -> AuthorizationDecision:
            decision = AuthorizationDecision.deny(
                reason, approver, submitter, work_date, action, status
            )
            logger.info(
                "authorization_denied",
                extra={
                    "approver_email": approver,
                    "submitter_email": submitter,
                    "work_date": work_date,
                    "action": action.value,
                    "denial_reason": reason.value,
                    "current_status": status,
                },
            )
            return decision

        if approver == submitter:
            return deny(DenialReason.SELF_APPROVAL)

        if self.policy.require_rank_authority and not self.registry.has_approval_authority(approver):
            return deny(DenialReason.NOT_AN_APPROVER)

        if not self.relationships.is_valid_approver(submitter, approver, work_date):
            if self.relationships.has_relationship_history(submitter, approver):
                return deny(DenialReason.RELATIONSHIP_EXPIRED)
            return deny(DenialReason.NOT_AN_APPROVER)

        status = self._current_status(submitter, work_date)
        if not is_action_allowed(status, action):
            return deny(DenialReason.ALREADY_FINAL, status.value)

        logger.debug(
            "authorization_granted",
            extra={
                "approver_email": approver,
                "submitter_email": submitter,
                "work_date": work_date,
                "action": action.value,
            },
        )
        return AuthorizationDecision.allow(approver, submitter, work_date, action)

    def can_approve(self, approver_email: str, submitter_email: str, work_date: date) -> bool:
        return self.authorize(
            approver_email, submitter_email, work_date, ApprovalAction.APPROVE
        ).allowed

    def can_reject(self, approver_email: str, submitter_email: str, work_date: date) -> bool:
        return self.authorize(
            approver_email, submitter_email, work_date, ApprovalAction.REJECT
        ).allowed

    @staticmethod
    def require(decision: AuthorizationDecision) -> AuthorizationDecision:
        """Return ``decision`` when allowed, else raise its ``AuthorizationError``."""
        if not decision.allowed:
            raise decision.to_error()
        return decision

    def _current_status(self, submitter_email: str, work_date: date) -> ApprovalStatus:
        status = self.session.execute(
            select(ApprovalRecordModel.status).where(
                ApprovalRecordModel.submitter_email == submitter_email,
                ApprovalRecordModel.work_date == work_date,
            )
        ).scalar_one_or_none()
        return ApprovalStatus(status) if status is not None else ApprovalStatus.PENDING
