"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every service in the
    kernel.  Services receive a SQLAlchemy ``Session`` and persist through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain layer.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller (``session_scope``
    or the test harness) owns commit/rollback, so a transition, its history
    row and its outbox event land atomically.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from workhour_kernel.db.base import Base
from workhour_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Guarantees:
        - ``self.session`` is the caller's session.
        - ``self.clock`` is the injected clock (``SystemClock`` by default).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
