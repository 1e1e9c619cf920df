"""
lifecycle_services.process_driver -- One decision submission, end to end.

Responsibility:
    Loads the process and its current step, checks state access when
    enabled, rejects decisions the decision map does not know, asks the
    transition authorizer, and appends the trajectory step.  Every outcome
    produces one structured ``workflow_transition`` trace record.

Architecture position:
    Services layer.  Thin coordinator: legality lives in the authorizer,
    persistence in TrajectoryStore, reads in the kernel selectors.

Invariants enforced:
    - No trajectory mutation on any rejection.
    - A decision missing from the decision map is rejected before any
      guard formula is evaluated.
    - The append is compare-and-append on the position observed at the
      start of the submission.
    - The driver flushes, never commits.  The caller owns the transaction.

Failure modes:
    - ProcessNotFoundError, NoTrajectoryError: lookup failures.
    - StateAccessDeniedError, TransitionUndefinedError,
      GuardNotSatisfiedError: policy rejections, never faults.
    - TrajectoryConflictError: a concurrent submission won the race.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any, Callable, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from lifecycle_kernel.domain.clock import Clock
from lifecycle_kernel.domain.workflow import (
    OUTCOME_ACCESS_DENIED,
    OUTCOME_ALLOWED,
    OUTCOME_CONFLICT,
    OUTCOME_GUARD_FAILED,
    OUTCOME_NO_TRANSITION,
    REASON_TRANSITION_UNDEFINED,
    TransitionOutcome,
)
from lifecycle_kernel.exceptions import (
    GuardNotSatisfiedError,
    NoTrajectoryError,
    ProcessNotFoundError,
    StateAccessDeniedError,
    TrajectoryConflictError,
    TransitionUndefinedError,
)
from lifecycle_kernel.logging_config import LogContext, get_logger
from lifecycle_kernel.selectors.template_selector import TemplateSelector
from lifecycle_kernel.selectors.trajectory_selector import TrajectorySelector
from lifecycle_kernel.services.trajectory_store import TrajectoryStore
from lifecycle_services.formula_evaluator import FormulaEvaluator
from lifecycle_services.transition_authorizer import TransitionAuthorizer

logger = get_logger("services.process_driver")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"


def _emit_transition_trace(
    process_id: int,
    template_id: int | None,
    decision_id: int,
    actor_id: int | None,
    from_state_id: int | None,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state_id: int | None = None,
    position: int | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record for traceability."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "process_id": process_id,
        "template_id": template_id,
        "decision_id": decision_id,
        "actor_id": actor_id,
        "from_state_id": from_state_id,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state_id is not None:
        record["to_state_id"] = to_state_id
    if position is not None:
        record["position"] = position
    for key, val in LogContext.get_all().items():
        record.setdefault(key, val)
    if outcome == OUTCOME_ALLOWED:
        logger.info("workflow_transition", extra=record)
    else:
        logger.warning("workflow_transition", extra=record)
    record["message"] = "workflow_transition"
    if outcome_sink is not None:
        outcome_sink(record)


@runtime_checkable
class StateAccessLookup(Protocol):
    def actor_has_access(self, actor_id: int, template_id: int, state_id: int) -> bool: ...


class ProcessDriver:
    """
    Orchestrates decision submission.

    Contract:
        ``submit_decision`` either returns a TransitionOutcome after a
        successful append or raises; rejected submissions leave the
        trajectory untouched.

    Non-goals:
        - Does NOT retry on TrajectoryConflictError.
        - Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        authorizer: TransitionAuthorizer | None = None,
        store: TrajectoryStore | None = None,
        access_lookup: StateAccessLookup | None = None,
        clock: Clock | None = None,
        enforce_state_access: bool = False,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        templates = TemplateSelector(session)
        self._processes = TrajectorySelector(session)
        self._authorizer = authorizer or TransitionAuthorizer(
            templates, templates, FormulaEvaluator(session),
        )
        self._store = store or TrajectoryStore(session, clock)
        self._access = access_lookup or templates
        self._enforce_state_access = enforce_state_access
        self._outcome_sink = outcome_sink

    @property
    def authorizer(self) -> TransitionAuthorizer:
        return self._authorizer

    def submit_decision(
        self,
        process_id: int,
        decision_id: int,
        actor_id: int | None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> TransitionOutcome:
        """
        Apply ``decision_id`` to the process on behalf of ``actor_id``.

        Raises:
            ProcessNotFoundError, NoTrajectoryError, StateAccessDeniedError,
            TransitionUndefinedError, GuardNotSatisfiedError,
            TrajectoryConflictError.
        """
        t0 = time.monotonic()
        sink = outcome_sink or self._outcome_sink

        process = self._processes.get_process(process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)

        with LogContext.bind(
            process_id=process_id,
            actor_id=actor_id,
            template_id=process.template_id,
        ):
            current = self._store.current_step(process_id)
            if current is None:
                raise NoTrajectoryError(process_id)

            def trace(outcome: str, reason: str, **kwargs: Any) -> None:
                _emit_transition_trace(
                    process_id=process_id,
                    template_id=process.template_id,
                    decision_id=decision_id,
                    actor_id=actor_id,
                    from_state_id=current.state_id,
                    outcome=outcome,
                    reason=reason,
                    duration_ms=(time.monotonic() - t0) * 1000,
                    outcome_sink=sink,
                    **kwargs,
                )

            # 1. Access rights on the current state
            if self._enforce_state_access and not self._access.actor_has_access(
                actor_id, process.template_id, current.state_id,
            ):
                error = StateAccessDeniedError(
                    process_id, decision_id, actor_id, current.state_id,
                )
                trace(OUTCOME_ACCESS_DENIED, error.reason)
                raise error

            # 2. Structural pre-check, independent of any guard
            if self._authorizer.decision_map.next_state(
                process.template_id, current.state_id, decision_id,
            ) is None:
                trace(OUTCOME_NO_TRANSITION, REASON_TRANSITION_UNDEFINED)
                raise TransitionUndefinedError(
                    process_id, decision_id, REASON_TRANSITION_UNDEFINED,
                )

            # 3. Decision map plus guard
            result = self._authorizer.authorize(
                process.template_id,
                current.state_id,
                decision_id,
                process_id,
                process.product_id,
            )
            if not result.allowed:
                trace(result.outcome, result.reason)
                if result.outcome == OUTCOME_GUARD_FAILED:
                    raise GuardNotSatisfiedError(
                        process_id, decision_id, result.reason,
                        formula_id=result.formula_id,
                    )
                raise TransitionUndefinedError(process_id, decision_id, result.reason)

            # 4. Compare-and-append on the observed position
            try:
                step = self._store.append_transition(
                    process_id,
                    decision_id,
                    actor_id,
                    result.next_state_id,
                    expected_position=current.position,
                )
            except TrajectoryConflictError as exc:
                trace(OUTCOME_CONFLICT, str(exc))
                raise

            trace(
                OUTCOME_ALLOWED,
                "transition applied",
                to_state_id=step.state_id,
                position=step.position,
            )
            return TransitionOutcome(
                process_id=process_id,
                new_state_id=step.state_id,
                new_state_name=step.state_name or str(step.state_id),
                position=step.position,
            )
