"""
Tests for approval events, history entries and authorization decisions.

Covers the pure value objects emitted or derived around a transition:
``ApprovalEvent`` payloads, ``CollectingEventSink``, the history entry
built for a transition, and the mapping from a denial to an
``AuthorizationError``.
"""

from datetime import date, datetime, timezone
from uuid import UUID

import pytest

from workhour_kernel.domain.approval import ApprovalAction, ApprovalRecord, ApprovalStatus
from workhour_kernel.domain.authorization import (
    DENIAL_FAILURE,
    AuthorizationDecision,
    DenialReason,
)
from workhour_kernel.domain.events import ApprovalEvent, CollectingEventSink, EventSink
from workhour_kernel.domain.history import ApprovalHistoryEntry
from workhour_kernel.exceptions import (
    AuthorizationError,
    AuthorizationFailure,
    ErrorKind,
    FinalStatusError,
    InvalidStateError,
)

SUBMITTER = "taro@example.com"
APPROVER = "hanako@example.com"
WORK_DATE = date(2025, 1, 15)
NOW = datetime(2025, 1, 16, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def rejected_pair():
    before = ApprovalRecord.pending(SUBMITTER, WORK_DATE, NOW)
    return before, before.reject(APPROVER, "missing hours", NOW)


class TestApprovalEvent:

    def test_for_transition_copies_resulting_state(self, rejected_pair):
        _, after = rejected_pair
        event = ApprovalEvent.for_transition(after, ApprovalAction.REJECT, APPROVER, NOW)
        assert isinstance(event.event_id, UUID)
        assert event.submitter_email == SUBMITTER
        assert event.work_date == WORK_DATE
        assert event.action == ApprovalAction.REJECT
        assert event.approver_email == APPROVER
        assert event.rejection_reason == "missing hours"
        assert event.resulting_status == ApprovalStatus.REJECTED
        assert event.occurred_at == NOW

    def test_event_type(self, rejected_pair):
        _, after = rejected_pair
        event = ApprovalEvent.for_transition(after, ApprovalAction.REJECT, APPROVER, NOW)
        assert event.event_type == "work_record.reject"

    def test_resubmit_has_no_event(self, rejected_pair):
        _, after = rejected_pair
        with pytest.raises(ValueError, match="resubmit"):
            ApprovalEvent.for_transition(after.resubmit(NOW), ApprovalAction.RESUBMIT, None, NOW)

    def test_payload_is_json_safe(self, rejected_pair):
        _, after = rejected_pair
        event = ApprovalEvent.for_transition(after, ApprovalAction.REJECT, APPROVER, NOW)
        payload = event.to_payload()
        assert payload == {
            "event_id": str(event.event_id),
            "event_type": "work_record.reject",
            "submitter_email": SUBMITTER,
            "work_date": "2025-01-15",
            "action": "reject",
            "approver_email": APPROVER,
            "rejection_reason": "missing hours",
            "resulting_status": "rejected",
            "occurred_at": NOW.isoformat(),
        }

    def test_event_ids_unique(self, rejected_pair):
        _, after = rejected_pair
        ids = {
            ApprovalEvent.for_transition(after, ApprovalAction.REJECT, APPROVER, NOW).event_id
            for _ in range(20)
        }
        assert len(ids) == 20


class TestCollectingEventSink:

    def test_satisfies_protocol(self):
        assert isinstance(CollectingEventSink(), EventSink)

    def test_keeps_order_and_filters(self, rejected_pair):
        before, after = rejected_pair
        sink = CollectingEventSink()
        approved = after.approve(APPROVER, NOW)
        sink.publish(ApprovalEvent.for_transition(after, ApprovalAction.REJECT, APPROVER, NOW))
        sink.publish(ApprovalEvent.for_transition(approved, ApprovalAction.APPROVE, APPROVER, NOW))
        assert [e.action for e in sink.events] == [ApprovalAction.REJECT, ApprovalAction.APPROVE]
        assert len(sink.of_action(ApprovalAction.APPROVE)) == 1
        sink.clear()
        assert sink.events == []


class TestHistoryEntry:

    def test_for_transition(self, rejected_pair):
        before, after = rejected_pair
        entry = ApprovalHistoryEntry.for_transition(
            before, after, ApprovalAction.REJECT, APPROVER, NOW
        )
        assert entry.previous_status == ApprovalStatus.PENDING
        assert entry.resulting_status == ApprovalStatus.REJECTED
        assert entry.actor_email == APPROVER
        assert entry.rejection_reason == "missing hours"
        assert entry.record_version == after.version == 1

    def test_system_actor(self, rejected_pair):
        _, after = rejected_pair
        resubmitted = after.resubmit(NOW)
        entry = ApprovalHistoryEntry.for_transition(
            after, resubmitted, ApprovalAction.RESUBMIT, None, NOW
        )
        assert entry.actor_email is None
        assert entry.rejection_reason is None


class TestAuthorizationDecision:

    def test_allow(self):
        decision = AuthorizationDecision.allow(APPROVER, SUBMITTER, WORK_DATE, ApprovalAction.APPROVE)
        assert decision.allowed
        assert decision.reason is None

    def test_allowed_decision_has_no_error(self):
        decision = AuthorizationDecision.allow(APPROVER, SUBMITTER, WORK_DATE, ApprovalAction.APPROVE)
        with pytest.raises(ValueError):
            decision.to_error()

    def test_every_reason_maps_to_a_failure(self):
        assert set(DENIAL_FAILURE) == set(DenialReason)

    @pytest.mark.parametrize(
        "reason, failure",
        [
            (DenialReason.NOT_AN_APPROVER, AuthorizationFailure.AUTHORITY),
            (DenialReason.RELATIONSHIP_EXPIRED, AuthorizationFailure.AUTHORITY),
            (DenialReason.SELF_APPROVAL, AuthorizationFailure.AUTHORITY),
            (DenialReason.ALREADY_FINAL, AuthorizationFailure.STATUS),
        ],
    )
    def test_to_error(self, reason, failure):
        decision = AuthorizationDecision.deny(
            reason, APPROVER, SUBMITTER, WORK_DATE, ApprovalAction.REJECT, "approved"
        )
        error = decision.to_error()
        assert isinstance(error, AuthorizationError)
        assert error.failure == failure
        assert error.denial_reason == reason.value
        assert error.operation == "reject"
        assert error.actor_email == APPROVER
        assert error.submitter_email == SUBMITTER
        assert error.work_date == WORK_DATE

    def test_authority_denial_is_not_a_state_error(self):
        error = AuthorizationDecision.deny(
            DenialReason.NOT_AN_APPROVER, APPROVER, SUBMITTER, WORK_DATE, ApprovalAction.APPROVE
        ).to_error()
        assert error.kind == ErrorKind.AUTHORIZATION
        assert not isinstance(error, InvalidStateError)

    def test_already_final_is_a_state_error(self):
        error = AuthorizationDecision.deny(
            DenialReason.ALREADY_FINAL,
            APPROVER,
            SUBMITTER,
            WORK_DATE,
            ApprovalAction.APPROVE,
            "approved",
        ).to_error()
        assert isinstance(error, FinalStatusError)
        assert isinstance(error, InvalidStateError)
        assert error.code == "INVALID_STATE"
        assert error.kind == ErrorKind.INVALID_STATE
        assert error.failure == AuthorizationFailure.STATUS
        assert error.current_status == "approved"
        assert "approved; approve not allowed" in str(error)
