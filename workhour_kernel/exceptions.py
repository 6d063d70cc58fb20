"""
Typed exception hierarchy for the work-hour approval kernel.

===============================================================================
WHY TYPED, TAGGED EXCEPTIONS
===============================================================================

Callers must never parse error messages.  Every error raised by the kernel:

  1. Is an instance of a typed class (catch by type where that reads best).
  2. Has a ``code`` class attribute (machine-readable, API-safe).
  3. Has a ``kind`` tag (``ErrorKind``) naming its category, so a
     presentation boundary can ``match exc.kind`` instead of walking the
     class tree.
  4. Carries structured data as attributes (never only a message string).

Example - boundary translation:

    try:
        workflow.approve(submitter, work_date, approver)
    except WorkhourKernelError as exc:
        match exc.kind:
            case ErrorKind.VALIDATION:
                return 400, exc.to_dict()
            case ErrorKind.AUTHORIZATION:
                return 403, exc.to_dict()
            case ErrorKind.NOT_FOUND:
                return 404, exc.to_dict()
            case ErrorKind.INVALID_STATE:
                return 409, exc.to_dict()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WorkhourKernelError (base)
    |
    +-- ValidationError                  kind=VALIDATION
    |
    +-- AuthorizationError               kind=AUTHORIZATION
    |       failure: AUTHORITY | OWNERSHIP | STATUS
    |
    +-- InvalidStateError                kind=INVALID_STATE
    |   +-- ConcurrentTransitionError
    |   +-- FinalStatusError             (also an AuthorizationError, STATUS)
    |
    +-- NotFoundError                    kind=NOT_FOUND
    |   +-- AuthorityNotFoundError
    |   +-- RelationshipNotFoundError
    |   +-- ApprovalRecordNotFoundError
    |
    +-- ImmutabilityViolationError       kind=IMMUTABILITY

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed email, missing field,
                |                             | inverted range, empty rejection reason
----------------|-----------------------------|-----------------------------------------
Authorization   | AUTHORIZATION_DENIED        | No rank/relationship, acting on another
                |                             | person's record, status forbids action
----------------|-----------------------------|-----------------------------------------
State           | INVALID_STATE               | Transition not allowed from status
                |                             | (FinalStatusError: record already final
                |                             | when the action was authorized)
                | CONCURRENT_TRANSITION       | Lost compare-and-swap on the record
----------------|-----------------------------|-----------------------------------------
Not found       | AUTHORITY_NOT_FOUND         | Email unknown to the registry
                | RELATIONSHIP_NOT_FOUND      | Approver relationship id unknown
                | APPROVAL_RECORD_NOT_FOUND   | No record for (submitter, work date)
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Updating/deleting approval history

None of these errors is retried automatically.  Infrastructure errors
(``sqlalchemy.exc.*``) are not part of this taxonomy and pass through
unmodified.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Category tag carried by every kernel error."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    IMMUTABILITY = "immutability"


class AuthorizationFailure(str, Enum):
    """Sub-kind of an ``AuthorizationError``."""

    AUTHORITY = "authority"  # approver lacks rank or relationship
    OWNERSHIP = "ownership"  # actor operating on another person's record
    STATUS = "status"  # record status forbids the action


class WorkhourKernelError(Exception):
    """
    Base exception for all kernel errors.

    All subclasses define ``code`` and ``kind`` class attributes.
    """

    code: str = "WORKHOUR_KERNEL_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION

    def to_dict(self) -> dict[str, Any]:
        """Serialize code, kind, message and public attributes."""
        payload: dict[str, Any] = {
            "code": self.code,
            "kind": self.kind.value,
            "message": str(self),
        }
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            payload[key] = value
        return payload


# Validation


class ValidationError(WorkhourKernelError):
    """Malformed input: bad email, missing field, inverted range, empty reason."""

    code: str = "VALIDATION_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Authorization


class AuthorizationError(WorkhourKernelError):
    """
    The actor is not allowed to perform the operation.

    Carries enough context for audit logging: who acted, on whose record,
    for which date, and (for STATUS failures) the current/target status.
    """

    code: str = "AUTHORIZATION_DENIED"
    kind: ErrorKind = ErrorKind.AUTHORIZATION

    def __init__(
        self,
        failure: AuthorizationFailure,
        actor_email: str,
        submitter_email: str,
        work_date: date | None = None,
        *,
        operation: str | None = None,
        denial_reason: str | None = None,
        current_status: str | None = None,
        target_status: str | None = None,
    ):
        self.failure = failure
        self.actor_email = actor_email
        self.submitter_email = submitter_email
        self.work_date = work_date
        self.operation = operation
        self.denial_reason = denial_reason
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(self._describe())

    def _describe(self) -> str:
        day = f" on {self.work_date.isoformat()}" if self.work_date else ""
        if self.failure == AuthorizationFailure.OWNERSHIP:
            return (
                f"{self.actor_email} cannot {self.operation or 'operate on'} "
                f"the record of {self.submitter_email}{day}"
            )
        if self.failure == AuthorizationFailure.STATUS:
            return (
                f"Record of {self.submitter_email}{day} is {self.current_status}; "
                f"{self.operation or 'operation'} not allowed"
            )
        suffix = f" ({self.denial_reason})" if self.denial_reason else ""
        return (
            f"{self.actor_email} has no authority to approve "
            f"{self.submitter_email}{day}{suffix}"
        )


# State machine


class InvalidStateError(WorkhourKernelError):
    """Attempted transition violates the approval state machine."""

    code: str = "INVALID_STATE"
    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(
        self,
        submitter_email: str,
        work_date: date,
        current_status: str,
        operation: str,
    ):
        self.submitter_email = submitter_email
        self.work_date = work_date
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} record of {submitter_email} on "
            f"{work_date.isoformat()}: status is {current_status}"
        )


class ConcurrentTransitionError(InvalidStateError):
    """
    Conditional write affected zero rows.

    Another writer changed the record between read and write; the losing
    writer sees this instead of silently overwriting.
    """

    code: str = "CONCURRENT_TRANSITION"

    def __init__(
        self,
        submitter_email: str,
        work_date: date,
        expected_status: str,
        expected_version: int,
        operation: str,
    ):
        self.expected_version = expected_version
        super().__init__(submitter_email, work_date, expected_status, operation)
        self.args = (
            f"Concurrent modification of record of {submitter_email} on "
            f"{work_date.isoformat()}: expected {expected_status} "
            f"v{expected_version}, {operation} lost the race",
        )


class FinalStatusError(InvalidStateError, AuthorizationError):
    """
    The record's status forbids the action (e.g. approving twice).

    Raised when authorization finds the record already final.  It is an
    ``InvalidStateError`` (code ``INVALID_STATE``) and also an
    ``AuthorizationError`` with ``failure == STATUS``, so callers catching
    either type see it.
    """

    def __init__(
        self,
        actor_email: str,
        submitter_email: str,
        work_date: date,
        current_status: str,
        operation: str,
        denial_reason: str | None = None,
    ):
        AuthorizationError.__init__(
            self,
            AuthorizationFailure.STATUS,
            actor_email,
            submitter_email,
            work_date,
            operation=operation,
            denial_reason=denial_reason,
            current_status=current_status,
        )


# Not found


class NotFoundError(WorkhourKernelError):
    """Referenced entity does not exist (distinct from an empty list result)."""

    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class AuthorityNotFoundError(NotFoundError):
    """Email is unknown to the authority registry."""

    code: str = "AUTHORITY_NOT_FOUND"

    def __init__(self, email: str):
        super().__init__("AuthorityRecord", email)


class RelationshipNotFoundError(NotFoundError):
    """Approver relationship id is unknown."""

    code: str = "RELATIONSHIP_NOT_FOUND"

    def __init__(self, relationship_id: str):
        super().__init__("ApproverRelationship", relationship_id)


class ApprovalRecordNotFoundError(NotFoundError):
    """No approval record for (submitter, work date)."""

    code: str = "APPROVAL_RECORD_NOT_FOUND"

    def __init__(self, submitter_email: str, work_date: date):
        self.submitter_email = submitter_email
        self.work_date = work_date
        super().__init__(
            "ApprovalRecord", f"{submitter_email}@{work_date.isoformat()}"
        )


# Immutability


class ImmutabilityViolationError(WorkhourKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"
    kind: ErrorKind = ErrorKind.IMMUTABILITY

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
