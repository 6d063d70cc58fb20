"""
Approval events (``workhour_kernel.domain.events``).

Responsibility
--------------
The contract of the domain event emitted after every successful approve
or reject, and the ``EventSink`` seam through which the
workflow service hands events to whatever publishes them.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects plus an in-memory sink.
The persistent outbox sink lives in ``services/event_outbox.py``.

Invariants enforced
-------------------
* Exactly one event per successful approve or reject; a failed
  transition emits nothing.  Resubmission is recorded in the approval
  history only and emits no event.
* ``resulting_status`` is the status the record holds after the
  transition, never the requested one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

from workhour_kernel.domain.approval import ApprovalAction, ApprovalRecord, ApprovalStatus


EVENT_ACTIONS = frozenset({ApprovalAction.APPROVE, ApprovalAction.REJECT})


@dataclass(frozen=True)
class ApprovalEvent:
    """Something happened to the approval state of (submitter, work date)."""

    event_id: UUID
    submitter_email: str
    work_date: date
    action: ApprovalAction
    approver_email: str | None
    rejection_reason: str | None
    resulting_status: ApprovalStatus
    occurred_at: datetime

    @classmethod
    def for_transition(
        cls,
        record: ApprovalRecord,
        action: ApprovalAction,
        actor_email: str | None,
        occurred_at: datetime,
    ) -> ApprovalEvent:
        """
        Raises:
            ValueError: ``action`` is not APPROVE or REJECT.
        """
        if action not in EVENT_ACTIONS:
            raise ValueError(f"No approval event for action {action.value!r}")
        return cls(
            event_id=uuid4(),
            submitter_email=record.submitter_email,
            work_date=record.work_date,
            action=action,
            approver_email=actor_email,
            rejection_reason=record.rejection_reason,
            resulting_status=record.status,
            occurred_at=occurred_at,
        )

    @property
    def event_type(self) -> str:
        return f"work_record.{self.action.value}"

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation for outbox storage and publishing."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "submitter_email": self.submitter_email,
            "work_date": self.work_date.isoformat(),
            "action": self.action.value,
            "approver_email": self.approver_email,
            "rejection_reason": self.rejection_reason,
            "resulting_status": self.resulting_status.value,
            "occurred_at": self.occurred_at.isoformat(),
        }


@runtime_checkable
class EventSink(Protocol):
    """Receives approval events.  Publishing mechanics are the sink's concern."""

    def publish(self, event: ApprovalEvent) -> None:
        ...


@dataclass
class CollectingEventSink:
    """Keeps published events in memory, in publication order."""

    events: list[ApprovalEvent] = field(default_factory=list)

    def publish(self, event: ApprovalEvent) -> None:
        self.events.append(event)

    def of_action(self, action: ApprovalAction) -> list[ApprovalEvent]:
        return [e for e in self.events if e.action == action]

    def clear(self) -> None:
        self.events.clear()
