"""
OutboxEventSink -- transactional outbox for approval events.

Responsibility:
    Implements ``EventSink`` by inserting each ``ApprovalEvent`` into the
    ``approval_events`` table inside the caller's transaction.  A relay
    process outside the kernel reads unpublished rows, hands them to the
    event bus and stamps them with ``mark_published``.

Architecture position:
    Kernel > Services.  Publishing mechanics (bus, retries, ordering across
    records) are out of scope; only the event contract and its durable
    capture live here.

Invariants enforced:
    - An event is durable iff the transition that produced it committed.
    - Outbox rows never change except for ``published_at``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from workhour_kernel.domain.events import ApprovalEvent
from workhour_kernel.exceptions import NotFoundError
from workhour_kernel.logging_config import get_logger
from workhour_kernel.models.approval_event import ApprovalEventModel
from workhour_kernel.services.base import BaseService

logger = get_logger("services.event_outbox")


class OutboxEventSink(BaseService[ApprovalEventModel]):
    """``EventSink`` writing to the ``approval_events`` outbox table."""

    def publish(self, event: ApprovalEvent) -> None:
        self.session.add(ApprovalEventModel.from_dto(event))
        self.session.flush()
        logger.info(
            "approval_event_recorded",
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "submitter_email": event.submitter_email,
                "work_date": event.work_date,
                "resulting_status": event.resulting_status.value,
            },
        )

    def unpublished(self, limit: int = 100) -> list[ApprovalEvent]:
        """Oldest unpublished events first."""
        stmt = (
            select(ApprovalEventModel)
            .where(ApprovalEventModel.published_at.is_(None))
            .order_by(ApprovalEventModel.occurred_at, ApprovalEventModel.event_id)
            .limit(limit)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def events_for(self, submitter_email: str) -> list[ApprovalEvent]:
        stmt = (
            select(ApprovalEventModel)
            .where(ApprovalEventModel.submitter_email == submitter_email)
            .order_by(ApprovalEventModel.occurred_at, ApprovalEventModel.id)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def mark_published(self, event_id: UUID) -> None:
        """Stamp an outbox row as handed to the bus.

        Raises:
            NotFoundError: no outbox row with ``event_id``.
        """
        model = self.session.execute(
            select(ApprovalEventModel).where(ApprovalEventModel.event_id == event_id)
        ).scalar_one_or_none()
        if model is None:
            raise NotFoundError("ApprovalEvent", str(event_id))
        if model.published_at is None:
            model.published_at = self.clock.now()
            self.session.flush()
            logger.debug("approval_event_published", extra={"event_id": str(event_id)})
