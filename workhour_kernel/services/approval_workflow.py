"""
ApprovalWorkflowService -- the daily approval state machine, persisted.

Responsibility:
    Opens, approves, rejects, resubmits and discards the approval record of
    one submitter's work day.  Each approve/reject is authorized first,
    applied to an immutable snapshot, written through a single conditional
    UPDATE, recorded in the append-only history, and emitted as one
    ``ApprovalEvent`` -- all inside the caller's transaction.

Architecture position:
    Kernel > Services.  Orchestrates the pure domain (``domain/approval``,
    ``domain/history``, ``domain/events``) with the authorization checker
    and the event sink.

Invariants enforced:
    - At most one record per (submitter, work date); concurrent creators
      converge on the same row.
    - Every transition is ``UPDATE ... WHERE status = :expected AND
      version = :expected``.  Zero affected rows raise
      ``ConcurrentTransitionError``; a lost race is never overwritten.
    - Exactly one history row per successful transition and one event per
      successful approve or reject; a failed transition writes neither.
      Resubmission is history-only.
    - Only the submitter (or an unnamed system actor) may resubmit.

Failure modes:
    - ValidationError -- malformed email, blank rejection reason, inverted
      date range.
    - AuthorizationError -- denied by the checker, or resubmit by another
      person (OWNERSHIP).
    - FinalStatusError -- the checker found the record already final (for
      example a second approve).  It is an InvalidStateError and an
      AuthorizationError with failure STATUS.
    - InvalidStateError / ConcurrentTransitionError -- transition not allowed
      or lost compare-and-swap.
    - ApprovalRecordNotFoundError -- get/resubmit of a missing record.

Audit relevance:
    ``approval_transition_applied`` is logged for every transition with
    actor, previous and resulting status, and version.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workhour_kernel.domain.approval import (
    ApprovalAction,
    ApprovalRecord,
    ApprovalStatus,
    require_rejection_reason,
)
from workhour_kernel.domain.clock import Clock
from workhour_kernel.domain.events import EVENT_ACTIONS, ApprovalEvent, EventSink
from workhour_kernel.domain.history import ApprovalHistoryEntry
from workhour_kernel.domain.identity import normalize_email, require_email
from workhour_kernel.domain.policy import DEFAULT_POLICY, ApprovalPolicy
from workhour_kernel.exceptions import (
    ApprovalRecordNotFoundError,
    AuthorizationError,
    AuthorizationFailure,
    ConcurrentTransitionError,
    ValidationError,
    WorkhourKernelError,
)
from workhour_kernel.logging_config import LogContext, get_logger
from workhour_kernel.models.approval import ApprovalHistoryModel, ApprovalRecordModel
from workhour_kernel.services.approver_store import ApproverRelationshipStore
from workhour_kernel.services.authorization import AuthorizationChecker
from workhour_kernel.services.base import BaseService
from workhour_kernel.services.event_outbox import OutboxEventSink

logger = get_logger("services.approval_workflow")

_OPEN_STATUSES = (ApprovalStatus.PENDING.value, ApprovalStatus.REJECTED.value)


# =========================================================================
# Results
# =========================================================================


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of one successful transition."""

    record: ApprovalRecord
    previous_status: ApprovalStatus
    history_entry: ApprovalHistoryEntry
    event: ApprovalEvent | None  # None for resubmit


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one item of a batch approve/reject."""

    submitter_email: str
    work_date: date
    record: ApprovalRecord | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class BatchResult:
    items: tuple[BatchItemResult, ...]

    @property
    def succeeded(self) -> tuple[BatchItemResult, ...]:
        return tuple(i for i in self.items if i.succeeded)

    @property
    def failed(self) -> tuple[BatchItemResult, ...]:
        return tuple(i for i in self.items if not i.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


# =========================================================================
# Service
# =========================================================================


class ApprovalWorkflowService(BaseService[ApprovalRecordModel]):
    """Approve, reject and resubmit daily work records."""

    def __init__(
        self,
        session: Session,
        event_sink: EventSink | None = None,
        clock: Clock | None = None,
        policy: ApprovalPolicy | None = None,
        relationships: ApproverRelationshipStore | None = None,
        authorization: AuthorizationChecker | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or DEFAULT_POLICY
        self.event_sink = event_sink or OutboxEventSink(session, self.clock)
        self.relationships = relationships or ApproverRelationshipStore(
            session, self.clock, self.policy
        )
        self.authorization = authorization or AuthorizationChecker(
            session,
            relationships=self.relationships,
            policy=self.policy,
            clock=self.clock,
        )

    # ------------------------------------------------------------------
    # Record lifecycle
    # ------------------------------------------------------------------

    def open_record(self, submitter_email: str, work_date: date) -> ApprovalRecord:
        """Get or create the PENDING record for (submitter, work date)."""
        submitter = require_email(submitter_email, "submitter_email")
        return self._open_model(submitter, work_date).to_dto()

    def find_record(self, submitter_email: str, work_date: date) -> ApprovalRecord | None:
        model = self._load(normalize_email(submitter_email), work_date)
        return model.to_dto() if model is not None else None

    def get_record(self, submitter_email: str, work_date: date) -> ApprovalRecord:
        """
        Raises:
            ApprovalRecordNotFoundError: no record for (submitter, work date).
        """
        record = self.find_record(submitter_email, work_date)
        if record is None:
            raise ApprovalRecordNotFoundError(normalize_email(submitter_email), work_date)
        return record

    def discard_record(self, submitter_email: str, work_date: date) -> bool:
        """Remove the record once the day's work entries are gone.

        Returns False when there was nothing to remove.  History rows stay.
        """
        model = self._load(normalize_email(submitter_email), work_date)
        if model is None:
            return False
        self.session.delete(model)
        self.session.flush()
        logger.info(
            "approval_record_discarded",
            extra={
                "submitter_email": model.submitter_email,
                "work_date": work_date,
                "status": model.status,
                "version": model.version,
            },
        )
        return True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(
        self,
        submitter_email: str,
        work_date: date,
        approver_email: str,
    ) -> ApprovalResult:
        """Approve the day.  Opens the record first when it does not exist.

        Raises:
            ValidationError, AuthorizationError.
            FinalStatusError: already approved (an InvalidStateError).
            ConcurrentTransitionError: lost the compare-and-swap.
        """
        submitter = require_email(submitter_email, "submitter_email")
        approver = require_email(approver_email, "approver_email")

        with LogContext.bind(
            actor_email=approver, submitter_email=submitter, work_date=work_date.isoformat()
        ):
            AuthorizationChecker.require(
                self.authorization.authorize(
                    approver, submitter, work_date, ApprovalAction.APPROVE
                )
            )
            return self._transition(
                submitter,
                work_date,
                ApprovalAction.APPROVE,
                approver,
                lambda record, now: record.approve(approver, now),
                create_missing=True,
            )

    def reject(
        self,
        submitter_email: str,
        work_date: date,
        approver_email: str,
        reason: str | None,
    ) -> ApprovalResult:
        """Reject the day with a mandatory reason.

        The reason is validated before anything else, so a blank reason
        never changes the record.
        """
        reason = require_rejection_reason(reason)
        submitter = require_email(submitter_email, "submitter_email")
        approver = require_email(approver_email, "approver_email")

        with LogContext.bind(
            actor_email=approver, submitter_email=submitter, work_date=work_date.isoformat()
        ):
            AuthorizationChecker.require(
                self.authorization.authorize(
                    approver, submitter, work_date, ApprovalAction.REJECT
                )
            )
            return self._transition(
                submitter,
                work_date,
                ApprovalAction.REJECT,
                approver,
                lambda record, now: record.reject(approver, reason, now),
                create_missing=True,
            )

    def resubmit(
        self,
        submitter_email: str,
        work_date: date,
        actor_email: str | None = None,
    ) -> ApprovalResult:
        """Send the day back to PENDING after the submitter edited it.

        Raises:
            AuthorizationError: ``actor_email`` is someone other than the
                submitter (OWNERSHIP).
            ApprovalRecordNotFoundError: no record for the day.
            InvalidStateError: APPROVED and resubmission after approval is
                disabled.
        """
        submitter = require_email(submitter_email, "submitter_email")
        actor = normalize_email(actor_email) if actor_email is not None else None
        if actor is not None and actor != submitter:
            raise AuthorizationError(
                AuthorizationFailure.OWNERSHIP,
                actor,
                submitter,
                work_date,
                operation=ApprovalAction.RESUBMIT.value,
            )

        with LogContext.bind(
            actor_email=actor, submitter_email=submitter, work_date=work_date.isoformat()
        ):
            allow_from_approved = self.policy.allow_resubmit_after_approval
            return self._transition(
                submitter,
                work_date,
                ApprovalAction.RESUBMIT,
                actor,
                lambda record, now: record.resubmit(now, allow_from_approved),
                create_missing=False,
            )

    def apply_transition(
        self,
        before: ApprovalRecord,
        after: ApprovalRecord,
        action: ApprovalAction,
        actor_email: str | None,
    ) -> ApprovalResult:
        """Persist a transition computed from the snapshot ``before``.

        The write succeeds only if the stored record still has
        ``before.status`` and ``before.version``.

        Raises:
            ConcurrentTransitionError: the stored record moved on.
        """
        self._compare_and_swap(before, after, action)

        occurred_at = after.updated_at or self.clock.now()
        entry = ApprovalHistoryEntry.for_transition(
            before, after, action, actor_email, occurred_at
        )
        self.session.add(ApprovalHistoryModel.from_dto(entry))
        self.session.flush()

        event = None
        if action in EVENT_ACTIONS:
            event = ApprovalEvent.for_transition(after, action, actor_email, occurred_at)
            self.event_sink.publish(event)

        logger.info(
            "approval_transition_applied",
            extra={
                "submitter_email": after.submitter_email,
                "work_date": after.work_date,
                "action": action.value,
                "actor": actor_email,
                "previous_status": before.status.value,
                "resulting_status": after.status.value,
                "version": after.version,
            },
        )
        return ApprovalResult(
            record=after,
            previous_status=before.status,
            history_entry=entry,
            event=event,
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def approve_batch(
        self,
        requests: Iterable[tuple[str, date]],
        approver_email: str,
    ) -> BatchResult:
        """Approve many days; each item succeeds or fails on its own."""
        return self._run_batch(
            requests,
            ApprovalAction.APPROVE,
            lambda submitter, day: self.approve(submitter, day, approver_email),
        )

    def reject_batch(
        self,
        requests: Iterable[tuple[str, date]],
        approver_email: str,
        reason: str | None,
    ) -> BatchResult:
        """Reject many days with one reason; each item succeeds or fails on its own."""
        return self._run_batch(
            requests,
            ApprovalAction.REJECT,
            lambda submitter, day: self.reject(submitter, day, approver_email, reason),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def pending_for_approver(
        self,
        approver_email: str,
        on_date: date | None = None,
    ) -> list[ApprovalRecord]:
        """PENDING and REJECTED records of the approver's subordinates.

        Subordinates are resolved on ``on_date`` (default: today).  Newest
        work date first.
        """
        subordinates = self.relationships.subordinates_of(approver_email, on_date)
        if not subordinates:
            return []
        stmt = (
            select(ApprovalRecordModel)
            .where(
                ApprovalRecordModel.submitter_email.in_(subordinates),
                ApprovalRecordModel.status.in_(_OPEN_STATUSES),
            )
            .order_by(
                ApprovalRecordModel.work_date.desc(),
                ApprovalRecordModel.submitter_email.asc(),
            )
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def records_for_submitter(
        self,
        submitter_email: str,
        date_from: date,
        date_to: date,
    ) -> list[ApprovalRecord]:
        """Records of one submitter within ``[date_from, date_to]``, oldest first.

        Raises:
            ValidationError: ``date_from > date_to``.
        """
        if date_from > date_to:
            raise ValidationError("date_from", "must not be after date_to")
        stmt = (
            select(ApprovalRecordModel)
            .where(
                ApprovalRecordModel.submitter_email == normalize_email(submitter_email),
                ApprovalRecordModel.work_date >= date_from,
                ApprovalRecordModel.work_date <= date_to,
            )
            .order_by(ApprovalRecordModel.work_date.asc())
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _transition(
        self,
        submitter: str,
        work_date: date,
        action: ApprovalAction,
        actor: str | None,
        apply: Callable[[ApprovalRecord, datetime], ApprovalRecord],
        create_missing: bool,
    ) -> ApprovalResult:
        if create_missing:
            model = self._open_model(submitter, work_date)
        else:
            model = self._load(submitter, work_date)
            if model is None:
                raise ApprovalRecordNotFoundError(submitter, work_date)

        before = model.to_dto()
        after = apply(before, self.clock.now())
        return self.apply_transition(before, after, action, actor)

    def _compare_and_swap(
        self,
        before: ApprovalRecord,
        after: ApprovalRecord,
        action: ApprovalAction,
    ) -> None:
        stmt = (
            update(ApprovalRecordModel)
            .where(
                ApprovalRecordModel.submitter_email == before.submitter_email,
                ApprovalRecordModel.work_date == before.work_date,
                ApprovalRecordModel.status == before.status.value,
                ApprovalRecordModel.version == before.version,
            )
            .values(
                status=after.status.value,
                approver_email=after.approver_email,
                approved_at=after.approved_at,
                rejection_reason=after.rejection_reason,
                version=after.version,
                updated_at=after.updated_at or self.clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "approval_transition_conflict",
                extra={
                    "submitter_email": before.submitter_email,
                    "work_date": before.work_date,
                    "action": action.value,
                    "expected_status": before.status.value,
                    "expected_version": before.version,
                },
            )
            raise ConcurrentTransitionError(
                before.submitter_email,
                before.work_date,
                before.status.value,
                before.version,
                action.value,
            )

        # Bring an already loaded instance in line with the written row.
        self._load(after.submitter_email, after.work_date)

    def _open_model(self, submitter: str, work_date: date) -> ApprovalRecordModel:
        existing = self._load(submitter, work_date)
        if existing is not None:
            return existing

        snapshot = ApprovalRecord.pending(submitter, work_date, self.clock.now())
        model = ApprovalRecordModel.from_dto(snapshot)
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except IntegrityError:
            # Another transaction created it first; use theirs.
            existing = self._load(submitter, work_date)
            if existing is None:
                raise
            logger.info(
                "approval_record_open_converged",
                extra={"submitter_email": submitter, "work_date": work_date},
            )
            return existing

        logger.info(
            "approval_record_opened",
            extra={"submitter_email": submitter, "work_date": work_date},
        )
        return model

    def _load(self, submitter: str, work_date: date) -> ApprovalRecordModel | None:
        return self.session.execute(
            select(ApprovalRecordModel).where(
                ApprovalRecordModel.submitter_email == submitter,
                ApprovalRecordModel.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _run_batch(
        self,
        requests: Iterable[tuple[str, date]],
        action: ApprovalAction,
        run: Callable[[str, date], ApprovalResult],
    ) -> BatchResult:
        items: list[BatchItemResult] = []
        for submitter, work_date in requests:
            try:
                with self.session.begin_nested():
                    result = run(submitter, work_date)
            except WorkhourKernelError as exc:
                logger.info(
                    "approval_batch_item_failed",
                    extra={
                        "submitter_email": submitter,
                        "work_date": work_date,
                        "action": action.value,
                        "error_code": exc.code,
                    },
                )
                items.append(
                    BatchItemResult(
                        submitter_email=submitter,
                        work_date=work_date,
                        error_code=exc.code,
                        error_message=str(exc),
                    )
                )
            else:
                items.append(
                    BatchItemResult(
                        submitter_email=result.record.submitter_email,
                        work_date=work_date,
                        record=result.record,
                    )
                )

        batch = BatchResult(tuple(items))
        logger.info(
            "approval_batch_completed",
            extra={
                "action": action.value,
                "total": len(batch.items),
                "succeeded": len(batch.succeeded),
                "failed": len(batch.failed),
            },
        )
        return batch
