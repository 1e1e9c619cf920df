"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Common constructor and session-handling contract for every write
    service in the kernel layer.  Services receive a SQLAlchemy ``Session``
    and persist through ``session.flush()``, never ``session.commit()``.

Architecture position:
    Kernel > Services.  TrajectoryStore and DictionaryService extend this
    class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  One decision
      submission is one transaction owned by the caller
      (``session_scope()``, the test harness, or an outer unit of work).

Failure modes:
    - A subclass that commits would make a rejected or conflicting
      submission partially visible.
"""

from abc import ABC

from sqlalchemy.orm import Session

from lifecycle_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel write services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and an optional
        ``Clock`` used for timestamps.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only query methods; those belong in
          ``lifecycle_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
