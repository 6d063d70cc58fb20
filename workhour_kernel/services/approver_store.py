"""
ApproverRelationshipStore -- time-bounded approver relationships.

Responsibility:
    Creates, narrows and deletes "X approves Y from A to B" relationships
    and answers every temporal question the workflow asks about them:
    is X a valid approver of Y on day D, who approves Y right now, whom
    does X approve today, which relationships overlap a window.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - No self-approval; ``effective_to`` is None or ``>= effective_from``.
    - A relationship is only ever narrowed, never widened.
    - Validity for a work date compares the wall-clock dates of the bounds
      as supplied (``first_day`` / ``last_day``, inclusive on both ends);
      an open-ended relationship extends to +infinity.
    - "Today" is the clock's calendar date, and ``create_for_dates`` lays
      its window out in the clock's timezone.
    - Ties between relationships covering the same instant go to the
      latest ``effective_from``, then to the last inserted
      (``assignment_seq``).
    - Under ``ApprovalPolicy(allow_concurrent_approvers=False)`` a
      subordinate's relationships never overlap.

Failure modes:
    - ValidationError on malformed email, self-approval, missing or inverted
      window, widening, or a forbidden overlap.
    - RelationshipNotFoundError on an unknown relationship id.
    - Unknown emails are not errors: queries return empty results.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from workhour_kernel.domain.approver import (
    ApproverRelationship,
    calendar_days,
    validate_pair,
    validate_period,
    validate_window,
    window_for_dates,
)
from workhour_kernel.domain.clock import Clock, ensure_utc
from workhour_kernel.domain.identity import is_well_formed_email, normalize_email
from workhour_kernel.domain.policy import DEFAULT_POLICY, ApprovalPolicy
from workhour_kernel.exceptions import RelationshipNotFoundError, ValidationError
from workhour_kernel.logging_config import get_logger
from workhour_kernel.models.approver import ApproverRelationshipModel
from workhour_kernel.services.base import BaseService

logger = get_logger("services.approver_store")

_Rel = ApproverRelationshipModel

_LATEST_FIRST = (_Rel.effective_from.desc(), _Rel.assignment_seq.desc())


def _covers_day(on_date: date) -> tuple:
    return (
        _Rel.first_day <= on_date,
        or_(_Rel.last_day.is_(None), _Rel.last_day >= on_date),
    )


class ApproverRelationshipStore(BaseService[ApproverRelationshipModel]):
    """Store and temporal queries for approver relationships."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: ApprovalPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy or DEFAULT_POLICY

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        subordinate_email: str,
        approver_email: str,
        effective_from: datetime,
        effective_to: datetime | None = None,
    ) -> ApproverRelationship:
        """Record that ``approver_email`` approves ``subordinate_email``.

        Raises:
            ValidationError: malformed email, self-approval, missing or
                inverted window, or (single-approver regime) an overlap
                with an existing relationship of the subordinate.
        """
        subordinate, approver = validate_pair(subordinate_email, approver_email)
        start, end = validate_window(effective_from, effective_to)
        first_day, last_day = calendar_days(effective_from, effective_to)

        if not self.policy.allow_concurrent_approvers:
            clashes = self._overlapping_models(subordinate, start, end)
            if clashes:
                raise ValidationError(
                    "effective_from",
                    f"{subordinate} already has approver {clashes[0].approver_email} "
                    f"in an overlapping window",
                )

        now = self.clock.now()
        model = ApproverRelationshipModel(
            subordinate_email=subordinate,
            approver_email=approver,
            effective_from=start,
            effective_to=end,
            first_day=first_day,
            last_day=last_day,
            assignment_seq=self._next_assignment_seq(subordinate),
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approver_relationship_created",
            extra={
                "relationship_id": str(model.id),
                "subordinate_email": subordinate,
                "approver_email": approver,
                "effective_from": start,
                "effective_to": end,
                "first_day": first_day,
                "last_day": last_day,
                "assignment_seq": model.assignment_seq,
            },
        )
        return model.to_dto()

    def create_for_dates(
        self,
        subordinate_email: str,
        approver_email: str,
        from_date: date,
        to_date: date | None = None,
    ) -> ApproverRelationship:
        """``create`` with calendar dates: ``from 00:00:00`` to ``to 23:59:59``.

        The window is laid out in the clock's timezone.
        """
        start, end = window_for_dates(from_date, to_date, self.clock.now().tzinfo)
        return self.create(subordinate_email, approver_email, start, end)

    def end_relationship(
        self,
        relationship_id: UUID | str,
        effective_to: datetime,
    ) -> ApproverRelationship:
        """Narrow the window so it ends at ``effective_to``.

        Raises:
            RelationshipNotFoundError: id unknown.
            ValidationError: ``effective_to`` before ``effective_from``, or
                later than an already finite ``effective_to``.
        """
        model = self._load_model(relationship_id)
        if effective_to is None:
            raise ValidationError("effective_to", "is required")
        end = ensure_utc(effective_to)
        if end < model.effective_from:
            raise ValidationError(
                "effective_to",
                f"{end.isoformat()} is before effective_from "
                f"{model.effective_from.isoformat()}",
            )
        last_day = effective_to.date()
        if last_day < model.first_day:
            raise ValidationError(
                "effective_to",
                f"ends on {last_day.isoformat()}, before the first day "
                f"{model.first_day.isoformat()}",
            )
        if model.effective_to is not None and (
            end > model.effective_to or last_day > model.last_day
        ):
            raise ValidationError(
                "effective_to",
                "a relationship can only be narrowed, not widened",
            )

        previous = model.effective_to
        model.effective_to = end
        model.last_day = last_day
        model.updated_at = self.clock.now()
        self.session.flush()

        logger.info(
            "approver_relationship_ended",
            extra={
                "relationship_id": str(model.id),
                "subordinate_email": model.subordinate_email,
                "approver_email": model.approver_email,
                "previous_effective_to": previous,
                "effective_to": end,
            },
        )
        return model.to_dto()

    def delete(self, relationship_id: UUID | str) -> None:
        """Administrative removal.

        Raises:
            RelationshipNotFoundError: id unknown.
        """
        model = self._load_model(relationship_id)
        self.session.delete(model)
        self.session.flush()
        logger.warning(
            "approver_relationship_deleted",
            extra={
                "relationship_id": str(model.id),
                "subordinate_email": model.subordinate_email,
                "approver_email": model.approver_email,
            },
        )

    # ------------------------------------------------------------------
    # Point queries
    # ------------------------------------------------------------------

    def get(self, relationship_id: UUID | str) -> ApproverRelationship:
        return self._load_model(relationship_id).to_dto()

    def is_valid_approver(
        self,
        subordinate_email: str,
        approver_email: str,
        on_date: date,
    ) -> bool:
        """True iff some relationship of the pair covers ``on_date``."""
        if not (is_well_formed_email(subordinate_email) and is_well_formed_email(approver_email)):
            return False
        stmt = self._valid_on(normalize_email(subordinate_email), on_date).where(
            _Rel.approver_email == normalize_email(approver_email)
        )
        return self.session.execute(stmt.limit(1)).first() is not None

    def has_relationship_history(self, subordinate_email: str, approver_email: str) -> bool:
        """True iff any relationship ever existed for the pair."""
        return bool(self.relationships_between(subordinate_email, approver_email))

    def current_approver_of(self, subordinate_email: str) -> str | None:
        """The approver whose window contains the clock's current instant."""
        now = ensure_utc(self.clock.now())
        stmt = (
            select(_Rel)
            .where(
                _Rel.subordinate_email == normalize_email(subordinate_email),
                _Rel.effective_from <= now,
                or_(_Rel.effective_to.is_(None), _Rel.effective_to >= now),
            )
            .order_by(*_LATEST_FIRST)
            .limit(1)
        )
        model = self.session.execute(stmt).scalar_one_or_none()
        return model.approver_email if model is not None else None

    def approver_on(self, subordinate_email: str, on_date: date) -> str | None:
        """Point-in-time variant of ``current_approver_of``, at day granularity."""
        stmt = self._valid_on(normalize_email(subordinate_email), on_date)
        model = self.session.execute(
            stmt.order_by(*_LATEST_FIRST).limit(1)
        ).scalar_one_or_none()
        return model.approver_email if model is not None else None

    # ------------------------------------------------------------------
    # List queries
    # ------------------------------------------------------------------

    def valid_approvers_on(self, subordinate_email: str, on_date: date) -> list[str]:
        """Every approver of ``subordinate_email`` on ``on_date``, latest assignment first."""
        stmt = self._valid_on(normalize_email(subordinate_email), on_date)
        models = self.session.execute(stmt.order_by(*_LATEST_FIRST)).scalars().all()
        return _distinct(m.approver_email for m in models)

    def approvers_of(self, subordinate_email: str, on_date: date | None = None) -> list[str]:
        return self.valid_approvers_on(subordinate_email, on_date or self.clock.today())

    def subordinates_of(self, approver_email: str, on_date: date | None = None) -> list[str]:
        """Everyone ``approver_email`` may approve on ``on_date`` (default: today)."""
        stmt = (
            select(_Rel.subordinate_email)
            .where(
                _Rel.approver_email == normalize_email(approver_email),
                *_covers_day(on_date or self.clock.today()),
            )
            .distinct()
            .order_by(_Rel.subordinate_email)
        )
        return list(self.session.execute(stmt).scalars().all())

    def history_of(self, subordinate_email: str) -> list[ApproverRelationship]:
        """Every relationship of the subordinate, newest ``effective_from`` first."""
        stmt = select(_Rel).where(
            _Rel.subordinate_email == normalize_email(subordinate_email)
        )
        return self._list(stmt)

    def relationships_between(
        self,
        subordinate_email: str,
        approver_email: str,
    ) -> list[ApproverRelationship]:
        stmt = select(_Rel).where(
            _Rel.subordinate_email == normalize_email(subordinate_email),
            _Rel.approver_email == normalize_email(approver_email),
        )
        return self._list(stmt)

    def overlapping(
        self,
        subordinate_email: str,
        period_from: datetime,
        period_to: datetime,
    ) -> list[ApproverRelationship]:
        """Relationships of the subordinate intersecting ``[period_from, period_to]``.

        Raises:
            ValidationError: ``period_from > period_to`` or a bound missing.
        """
        start, end = validate_period(period_from, period_to)
        models = self._overlapping_models(normalize_email(subordinate_email), start, end)
        return [m.to_dto() for m in models]

    def grouped_by_subordinate(
        self,
        on_date: date | None = None,
    ) -> dict[str, set[str]]:
        """``{subordinate: {approvers}}``; restricted to ``on_date`` when given."""
        stmt = select(_Rel.subordinate_email, _Rel.approver_email)
        if on_date is not None:
            stmt = stmt.where(*_covers_day(on_date))
        grouped: dict[str, set[str]] = defaultdict(set)
        for subordinate, approver in self.session.execute(stmt):
            grouped[subordinate].add(approver)
        return dict(grouped)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_model(self, relationship_id: UUID | str) -> ApproverRelationshipModel:
        key = relationship_id
        if not isinstance(key, UUID):
            try:
                key = UUID(str(relationship_id))
            except ValueError:
                raise RelationshipNotFoundError(str(relationship_id)) from None
        model = self.session.get(ApproverRelationshipModel, key)
        if model is None:
            raise RelationshipNotFoundError(str(relationship_id))
        return model

    def _valid_on(self, subordinate_email: str, on_date: date) -> Select:
        return select(_Rel).where(
            _Rel.subordinate_email == subordinate_email,
            *_covers_day(on_date),
        )

    def _overlapping_models(
        self,
        subordinate_email: str,
        start: datetime,
        end: datetime | None,
    ) -> list[ApproverRelationshipModel]:
        stmt = select(_Rel).where(
            _Rel.subordinate_email == subordinate_email,
            or_(_Rel.effective_to.is_(None), _Rel.effective_to >= start),
        )
        if end is not None:
            stmt = stmt.where(_Rel.effective_from <= end)
        return list(self.session.execute(stmt.order_by(*_LATEST_FIRST)).scalars().all())

    def _next_assignment_seq(self, subordinate_email: str) -> int:
        current = self.session.execute(
            select(func.max(_Rel.assignment_seq)).where(
                _Rel.subordinate_email == subordinate_email
            )
        ).scalar_one()
        return (current or 0) + 1

    def _list(self, stmt: Select) -> list[ApproverRelationship]:
        models = self.session.execute(stmt.order_by(*_LATEST_FIRST)).scalars().all()
        return [m.to_dto() for m in models]


def _distinct(emails) -> list[str]:
    seen: dict[str, None] = {}
    for email in emails:
        seen.setdefault(email, None)
    return list(seen)
