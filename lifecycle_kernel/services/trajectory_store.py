"""
TrajectoryStore -- append-only persistence of process trajectories.

Responsibility:
    Starts processes at their template's initial state, reads the current
    step and history, and advances a trajectory by one step with
    compare-and-append semantics.  Deleting a process removes its
    trajectory.

Architecture position:
    Kernel > Services.  Called by the process driver for appends and by the
    LifecycleCore facade for reads, process creation and deletion.

Invariants enforced:
    - Positions are 1-based, strictly increasing and gapless.
    - Only the last step has a NULL decision.  Its decision is filled in
      exactly when the next step is appended, in the same flush.
    - Compare-and-append: the append is keyed on (process_id,
      expected_position).  The process row is locked with
      ``SELECT ... FOR UPDATE`` where the backend supports it, the decision
      fill is a conditional UPDATE (``decision_id IS NULL``), and the new
      row is protected by UNIQUE(process_id, position).  Any of the three
      failing means another writer advanced the process first.
    - Exactly one initial state per template when a process starts.

Failure modes:
    - ProcessNotFoundError: unknown process id.
    - NoTrajectoryError: the process has no steps.
    - TrajectoryConflictError: a concurrent append won.  The session must be
      rolled back before it is reused.
    - TemplateNotFoundError / ProductNotFoundError: unknown template or
      subject on init_process.
    - MissingInitialStateError / AmbiguousInitialStateError: the template
      has zero or several initial states.
"""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lifecycle_kernel.domain.clock import Clock
from lifecycle_kernel.domain.workflow import TrajectoryStep
from lifecycle_kernel.exceptions import (
    AmbiguousInitialStateError,
    MissingInitialStateError,
    NoTrajectoryError,
    ProcessNotFoundError,
    ProductNotFoundError,
    TemplateNotFoundError,
    TrajectoryConflictError,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.catalog import ProductModel
from lifecycle_kernel.models.process import ProcessModel, TrajectoryStepModel
from lifecycle_kernel.models.workflow import ProcessTemplateModel, StateModel
from lifecycle_kernel.selectors.template_selector import TemplateSelector
from lifecycle_kernel.selectors.trajectory_selector import TrajectorySelector
from lifecycle_kernel.services.base import BaseService

logger = get_logger("services.trajectory_store")


class TrajectoryStore(BaseService):
    """
    Append-only trajectory persistence.

    Contract:
        All writes flush inside the caller's transaction.  A successful
        append_transition() makes both changes (decision on the previous
        last step and the new last step) visible together at commit.

    Non-goals:
        - Does NOT decide whether a transition is legal; the process driver
          asks the transition authorizer first.
        - Does NOT retry on conflict.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._selector = TrajectorySelector(session)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def current_step(self, process_id: int) -> TrajectoryStep | None:
        return self._selector.current_step(process_id)

    def history(self, process_id: int) -> tuple[TrajectoryStep, ...]:
        return self._selector.history(process_id)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def append_transition(
        self,
        process_id: int,
        decision_id: int,
        actor_id: int | None,
        next_state_id: int,
        expected_position: int | None = None,
    ) -> TrajectoryStep:
        """
        Record ``decision_id`` on the last step and append ``next_state_id``.

        Preconditions:
            - The transition was authorized by the caller.
            - ``expected_position`` is the position of the last step the
              caller observed.  None means "whatever is last now" and only
              the storage constraints guard against a concurrent writer.

        Postconditions:
            - history() ends with the previous last step carrying
              ``decision_id`` followed by a new step at position + 1 in
              ``next_state_id`` with no decision.

        Raises:
            ProcessNotFoundError, NoTrajectoryError, TrajectoryConflictError.
        """
        self._lock_process(process_id)

        last = self.session.execute(
            select(TrajectoryStepModel)
            .where(TrajectoryStepModel.process_id == process_id)
            .order_by(TrajectoryStepModel.position.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if last is None:
            raise NoTrajectoryError(process_id)

        observed = last.position
        if expected_position is not None and observed != expected_position:
            self._log_conflict(process_id, expected_position, observed, "position moved")
            raise TrajectoryConflictError(process_id, expected_position, observed)
        if last.decision_id is not None:
            self._log_conflict(process_id, expected_position, observed, "decision already recorded")
            raise TrajectoryConflictError(process_id, expected_position, observed)

        # Fill the decision only while it is still NULL; zero rows means a
        # concurrent writer got there first.
        result = self.session.execute(
            update(TrajectoryStepModel)
            .where(
                TrajectoryStepModel.process_id == process_id,
                TrajectoryStepModel.position == observed,
                TrajectoryStepModel.decision_id.is_(None),
            )
            .values(decision_id=decision_id)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            self._log_conflict(process_id, expected_position, observed, "decision fill lost")
            raise TrajectoryConflictError(process_id, expected_position, observed)

        step = TrajectoryStepModel(
            process_id=process_id,
            position=observed + 1,
            state_id=next_state_id,
            decision_id=None,
            actor_id=actor_id,
            recorded_at=self.clock.now(),
        )
        self.session.add(step)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self._log_conflict(process_id, expected_position, observed, "duplicate position")
            raise TrajectoryConflictError(
                process_id, expected_position, observed + 1,
            ) from exc

        logger.info(
            "trajectory_appended",
            extra={
                "process_id": process_id,
                "position": step.position,
                "state_id": next_state_id,
                "decision_id": decision_id,
                "actor_id": actor_id,
            },
        )
        return self._with_state_labels(step.to_dto())

    def init_process(
        self,
        template_id: int,
        subject_id: str,
        actor_id: int | None,
        name: str | None = None,
    ) -> int:
        """
        Create a process for ``subject_id`` and its position-1 step.

        The first step is in the template's unique initial state and has no
        decision.

        Raises:
            TemplateNotFoundError, ProductNotFoundError,
            MissingInitialStateError, AmbiguousInitialStateError.
        """
        template = self.session.get(ProcessTemplateModel, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        if self.session.get(ProductModel, subject_id) is None:
            raise ProductNotFoundError(subject_id)

        initial = TemplateSelector(self.session).initial_states(template_id)
        if not initial:
            raise MissingInitialStateError(template_id)
        if len(initial) > 1:
            raise AmbiguousInitialStateError(template_id, initial)

        process = ProcessModel(
            name=name or f"{template.name}: {subject_id}",
            sh_name=template.sh_name,
            template_id=template_id,
            product_id=subject_id,
        )
        self.session.add(process)
        self.session.flush()

        self.session.add(
            TrajectoryStepModel(
                process_id=process.id,
                position=1,
                state_id=initial[0],
                decision_id=None,
                actor_id=actor_id,
                recorded_at=self.clock.now(),
            )
        )
        self.session.flush()

        logger.info(
            "process_started",
            extra={
                "process_id": process.id,
                "template_id": template_id,
                "product_id": subject_id,
                "state_id": initial[0],
                "actor_id": actor_id,
            },
        )
        return process.id

    def delete_process(self, process_id: int) -> None:
        """Delete a process; its trajectory goes with it."""
        process = self.session.get(ProcessModel, process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        self.session.delete(process)
        self.session.flush()
        logger.info("process_deleted", extra={"process_id": process_id})

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _lock_process(self, process_id: int) -> None:
        # FOR UPDATE is ignored by SQLite, where the database-level write
        # lock and the UNIQUE constraint do the serializing.
        locked = self.session.execute(
            select(ProcessModel.id)
            .where(ProcessModel.id == process_id)
            .with_for_update()
        ).scalar_one_or_none()
        if locked is None:
            raise ProcessNotFoundError(process_id)

    def _with_state_labels(self, step: TrajectoryStep) -> TrajectoryStep:
        state = self.session.get(StateModel, step.state_id)
        if state is None:
            return step
        return replace(step, state_code=state.sh_name, state_name=state.name)

    @staticmethod
    def _log_conflict(
        process_id: int,
        expected_position: int | None,
        observed_position: int,
        detail: str,
    ) -> None:
        logger.warning(
            "trajectory_conflict",
            extra={
                "process_id": process_id,
                "expected_position": expected_position,
                "observed_position": observed_position,
                "detail": detail,
            },
        )
