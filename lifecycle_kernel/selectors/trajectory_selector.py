"""
Module: lifecycle_kernel.selectors.trajectory_selector
Responsibility: Read access to processes and their trajectories: the process
    header, the current (highest-position) step, the ordered history, and
    the existence queries that back visited-state and used-decision
    predicates.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - history() is ordered by position ascending.
    - current_step() is the step with the highest position, never any other.

Failure modes:
    - None of the methods raise for unknown process ids; they return None,
      an empty tuple or False.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import exists, select

from lifecycle_kernel.domain.workflow import TrajectoryStep
from lifecycle_kernel.models.process import ProcessModel, TrajectoryStepModel
from lifecycle_kernel.models.workflow import StateModel
from lifecycle_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ProcessInfo:
    """Process header. Source: process."""

    process_id: int
    name: str
    sh_name: str
    template_id: int
    product_id: str


class TrajectorySelector(BaseSelector):
    """Queries over process and trajectory_step."""

    def get_process(self, process_id: int) -> ProcessInfo | None:
        row = self.session.get(ProcessModel, process_id)
        if row is None:
            return None
        return ProcessInfo(
            process_id=row.id,
            name=row.name,
            sh_name=row.sh_name,
            template_id=row.template_id,
            product_id=row.product_id,
        )

    def current_step(self, process_id: int) -> TrajectoryStep | None:
        """Highest-position step of the process, or None."""
        stmt = (
            self._step_query()
            .where(TrajectoryStepModel.process_id == process_id)
            .order_by(TrajectoryStepModel.position.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).first()
        return self._to_step(row) if row is not None else None

    def history(self, process_id: int) -> tuple[TrajectoryStep, ...]:
        stmt = (
            self._step_query()
            .where(TrajectoryStepModel.process_id == process_id)
            .order_by(TrajectoryStepModel.position)
        )
        return tuple(self._to_step(row) for row in self.session.execute(stmt))

    def has_visited_state(self, process_id: int, state_id: int) -> bool:
        """True iff any step of the process is in ``state_id``."""
        stmt = select(
            exists().where(
                TrajectoryStepModel.process_id == process_id,
                TrajectoryStepModel.state_id == state_id,
            )
        )
        return bool(self.session.execute(stmt).scalar())

    def has_used_decision(self, process_id: int, decision_id: int) -> bool:
        """True iff ``decision_id`` was recorded on any step of the process."""
        stmt = select(
            exists().where(
                TrajectoryStepModel.process_id == process_id,
                TrajectoryStepModel.decision_id == decision_id,
            )
        )
        return bool(self.session.execute(stmt).scalar())

    # -------------------------------------------------------------------------

    @staticmethod
    def _step_query():
        return select(
            TrajectoryStepModel,
            StateModel.sh_name,
            StateModel.name,
        ).join(StateModel, StateModel.id == TrajectoryStepModel.state_id)

    @staticmethod
    def _to_step(row) -> TrajectoryStep:
        step_model, state_code, state_name = row
        return TrajectoryStep(
            process_id=step_model.process_id,
            position=step_model.position,
            state_id=step_model.state_id,
            decision_id=step_model.decision_id,
            actor_id=step_model.actor_id,
            recorded_at=step_model.recorded_at,
            state_code=state_code,
            state_name=state_name,
        )
