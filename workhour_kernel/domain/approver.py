"""
Approver relationship domain types (``workhour_kernel.domain.approver``).

Responsibility
--------------
Pure value object for a time-bounded "X approves Y" relationship plus
the interval arithmetic the relationship store is built on: date
containment, period overlap, and the latest-assignment tie-break.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``subordinate_email != approver_email`` (no self-approval).
* ``effective_to`` is None (open-ended, +infinity) or
  ``>= effective_from``.
* All window timestamps are aware UTC datetimes.
* ``first_day`` / ``last_day`` are the wall-clock dates of the bounds as
  they were supplied, before the UTC conversion.  A window starting
  ``2025-01-01 00:00+09:00`` starts on 2025-01-01 even though its UTC
  instant falls on 2024-12-31.
* Validity for a work date compares those calendar dates, so a window
  ending at ``23:59:59`` still covers its last day and a window starting
  at ``00:00:00`` covers its first.

Failure modes
-------------
* ``ValidationError`` for malformed emails, self-approval, a missing
  ``effective_from`` or an inverted window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Iterable
from uuid import UUID

from workhour_kernel.domain.clock import ensure_utc
from workhour_kernel.domain.identity import require_email
from workhour_kernel.exceptions import ValidationError

START_OF_DAY = time(0, 0, 0)
END_OF_DAY = time(23, 59, 59)


@dataclass(frozen=True)
class ApproverRelationship:
    """``approver_email`` approves ``subordinate_email`` within a window."""

    relationship_id: UUID
    subordinate_email: str
    approver_email: str
    effective_from: datetime
    effective_to: datetime | None = None
    assignment_seq: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    first_day: date | None = None
    last_day: date | None = None

    def __post_init__(self) -> None:
        # Built without explicit days: the bounds' own dates stand in.
        if self.first_day is None:
            object.__setattr__(self, "first_day", self.effective_from.date())
        if self.last_day is None and self.effective_to is not None:
            object.__setattr__(self, "last_day", self.effective_to.date())

    @property
    def is_open_ended(self) -> bool:
        return self.effective_to is None

    def is_valid_for_date(self, on_date: date) -> bool:
        """True when ``on_date`` lies inside the window (calendar dates, inclusive)."""
        if self.first_day > on_date:
            return False
        return self.last_day is None or self.last_day >= on_date

    def contains(self, at: datetime) -> bool:
        """True when the instant ``at`` lies inside the window (inclusive)."""
        at = ensure_utc(at)
        if self.effective_from > at:
            return False
        return self.effective_to is None or self.effective_to >= at

    def overlaps_with_period(self, period_from: datetime, period_to: datetime) -> bool:
        return overlaps_with_period(self, period_from, period_to)


def validate_window(
    effective_from: datetime | None,
    effective_to: datetime | None,
) -> tuple[datetime, datetime | None]:
    """Normalize a window to UTC and check its ordering.

    Raises:
        ValidationError: ``effective_from`` missing or ``effective_to``
            earlier than ``effective_from``.
    """
    if effective_from is None:
        raise ValidationError("effective_from", "is required")
    start = ensure_utc(effective_from)
    end = ensure_utc(effective_to) if effective_to is not None else None
    if end is not None and end < start:
        raise ValidationError(
            "effective_to",
            f"{end.isoformat()} is before effective_from {start.isoformat()}",
        )
    return start, end


def calendar_days(
    effective_from: datetime,
    effective_to: datetime | None,
) -> tuple[date, date | None]:
    """Wall-clock dates of the bounds as supplied (no UTC conversion).

    Raises:
        ValidationError: the bounds carry different offsets and the last
            day falls before the first.
    """
    first = effective_from.date()
    last = effective_to.date() if effective_to is not None else None
    if last is not None and last < first:
        raise ValidationError(
            "effective_to",
            f"ends on {last.isoformat()}, before the first day {first.isoformat()}",
        )
    return first, last


def validate_pair(subordinate_email: str, approver_email: str) -> tuple[str, str]:
    """Normalize both emails and reject self-approval."""
    subordinate = require_email(subordinate_email, "subordinate_email")
    approver = require_email(approver_email, "approver_email")
    if subordinate == approver:
        raise ValidationError("approver_email", "a person cannot approve themselves")
    return subordinate, approver


def window_for_dates(
    from_date: date,
    to_date: date | None = None,
    tz: tzinfo = timezone.utc,
) -> tuple[datetime, datetime | None]:
    """Convert calendar dates to an inclusive ``00:00:00`` / ``23:59:59`` window.

    The bounds are wall-clock times in ``tz``; they are not converted, so
    ``calendar_days`` of the result gives back ``from_date`` and ``to_date``.
    """
    if from_date is None:
        raise ValidationError("from_date", "is required")
    start = datetime.combine(from_date, START_OF_DAY, tzinfo=tz)
    end = (
        datetime.combine(to_date, END_OF_DAY, tzinfo=tz)
        if to_date is not None
        else None
    )
    return start, end


def validate_period(
    period_from: datetime | None,
    period_to: datetime | None,
) -> tuple[datetime, datetime]:
    if period_from is None:
        raise ValidationError("period_from", "is required")
    if period_to is None:
        raise ValidationError("period_to", "is required")
    start, end = ensure_utc(period_from), ensure_utc(period_to)
    if start > end:
        raise ValidationError("period_from", "must not be after period_to")
    return start, end


def overlaps_with_period(
    relationship: ApproverRelationship,
    period_from: datetime,
    period_to: datetime,
) -> bool:
    """True when the relationship window intersects ``[period_from, period_to]``.

    An open-ended relationship extends to +infinity.

    Raises:
        ValidationError: either bound missing, or ``period_from > period_to``.
    """
    period_from, period_to = validate_period(period_from, period_to)
    return not (
        relationship.effective_from > period_to
        or (
            relationship.effective_to is not None
            and relationship.effective_to < period_from
        )
    )


def latest_assignment(
    relationships: Iterable[ApproverRelationship],
) -> ApproverRelationship | None:
    """Pick the most recent assignment.

    Latest ``effective_from`` wins; equal starts fall back to the
    highest ``assignment_seq`` (last inserted).
    """
    best: ApproverRelationship | None = None
    for rel in relationships:
        if best is None or (rel.effective_from, rel.assignment_seq) > (
            best.effective_from,
            best.assignment_seq,
        ):
            best = rel
    return best
