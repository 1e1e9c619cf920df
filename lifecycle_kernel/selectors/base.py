"""
Module: lifecycle_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the read side of the kernel: structured access to
    dictionaries, templates, guard definitions, catalog data and
    trajectories without mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but never
      call session.add(), session.delete(), session.commit() or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses, tuples or
      scalars, not ORM instances.
    - Session ownership: the caller owns the session and its transaction.

Failure modes:
    - sqlalchemy.exc.OperationalError / InterfaceError propagate unchanged;
      the facade translates them into StorageFaultError.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.

    Non-goals:
        - BaseSelector defines no query methods; subclasses implement the
          queries for their own tables.
    """

    def __init__(self, session: Session):
        self.session = session
