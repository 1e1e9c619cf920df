"""
Workflow value objects (``lifecycle_kernel.domain.workflow``).

Responsibility
--------------
Frozen DTOs exchanged between selectors, services and the boundary layer:
trajectory steps, decision-map entries, authorization results and
transition outcomes.  States and decisions themselves are plain dictionary
rows; the state machine lives per template in the decision map and the
per-process progress lives in the trajectory.  There is no in-memory FSM
object.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* ``TrajectoryStep.position`` is 1-based.
* An allowed ``AuthorizationResult`` always names its next state; a denied
  one always carries a reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# Outcome codes shared by the authorizer, the driver and trace records
OUTCOME_ALLOWED = "allowed"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_ACCESS_DENIED = "access_denied"
OUTCOME_CONFLICT = "conflict"

REASON_TRANSITION_UNDEFINED = "transition undefined for this decision"
REASON_GUARD_NOT_SATISFIED = "guard condition not satisfied"


@dataclass(frozen=True)
class TrajectoryStep:
    """One visit of a process to a state.

    ``decision_id`` is filled in only when the next step is appended; it
    records what caused the move to ``position + 1``.
    """

    process_id: int
    position: int
    state_id: int
    decision_id: int | None
    actor_id: int | None
    recorded_at: datetime
    state_code: str | None = None
    state_name: str | None = None

    def __post_init__(self) -> None:
        if self.position < 1:
            raise ValueError(f"Trajectory positions are 1-based, got {self.position}")

    @property
    def is_open(self) -> bool:
        """True while no decision has been recorded on this step."""
        return self.decision_id is None


@dataclass(frozen=True)
class DecisionMapEntry:
    """template x state x decision -> next state."""

    template_id: int
    state_id: int
    decision_id: int
    next_state_id: int


@dataclass(frozen=True)
class TemplateStateDef:
    """A state as used by one template: initial flag and bound guard formula."""

    template_id: int
    state_id: int
    is_initial: bool = False
    formula_id: int | None = None


@dataclass(frozen=True)
class DecisionOption:
    """A decision legal from some state, with its display fields."""

    decision_id: int
    code: str
    name: str
    next_state_id: int


@dataclass(frozen=True)
class AuthorizationResult:
    """Answer of the transition authorizer.

    Contract: ``allowed=True`` implies ``next_state_id`` is set;
    ``allowed=False`` implies ``reason`` is set.
    """

    allowed: bool
    next_state_id: int | None = None
    reason: str | None = None
    outcome: str = OUTCOME_ALLOWED
    formula_id: int | None = None

    def __post_init__(self) -> None:
        if self.allowed and self.next_state_id is None:
            raise ValueError("An allowed transition must name its next state")
        if not self.allowed and not self.reason:
            raise ValueError("A denied transition must carry a reason")

    @classmethod
    def allow(cls, next_state_id: int, formula_id: int | None = None) -> AuthorizationResult:
        return cls(allowed=True, next_state_id=next_state_id, formula_id=formula_id)

    @classmethod
    def undefined(cls) -> AuthorizationResult:
        return cls(
            allowed=False,
            reason=REASON_TRANSITION_UNDEFINED,
            outcome=OUTCOME_NO_TRANSITION,
        )

    @classmethod
    def guard_failed(cls, formula_id: int) -> AuthorizationResult:
        return cls(
            allowed=False,
            reason=REASON_GUARD_NOT_SATISFIED,
            outcome=OUTCOME_GUARD_FAILED,
            formula_id=formula_id,
        )


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a successful decision submission."""

    process_id: int
    new_state_id: int
    new_state_name: str
    position: int
