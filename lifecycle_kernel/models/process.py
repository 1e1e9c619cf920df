"""
Module: lifecycle_kernel.models.process
Responsibility: ORM persistence for running processes and their
    append-only trajectories.
Architecture position: Kernel > Models.  May import from db/, domain/ and
    exceptions.

Invariants enforced:
    - Exactly one step per (process, position): UNIQUE constraint.  This is
      the storage-level half of compare-and-append; a second writer that
      observed the same last step cannot insert the same position.
    - Steps are append-only.  The only permitted change to a persisted step
      is filling its NULL decision_id once (ORM before_update listener).
    - Deleting a process deletes its trajectory (ON DELETE CASCADE).

Failure modes:
    - IntegrityError on a duplicate (process, position).
    - ImmutabilityViolationError on any other UPDATE through the ORM.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifecycle_kernel.db.base import Base
from lifecycle_kernel.db.types import DisplayName, ProductId, ShortCode
from lifecycle_kernel.domain.workflow import TrajectoryStep
from lifecycle_kernel.exceptions import ImmutabilityViolationError


class ProcessModel(Base):
    """One running instance of a template for one product."""

    __tablename__ = "process"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("process_template.id", ondelete="RESTRICT"), nullable=False,
    )
    product_id: Mapped[ProductId] = mapped_column(
        ForeignKey("product.id", ondelete="RESTRICT"), nullable=False,
    )

    steps: Mapped[list["TrajectoryStepModel"]] = relationship(
        "TrajectoryStepModel",
        back_populates="process",
        order_by="TrajectoryStepModel.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Process {self.id} template={self.template_id} product={self.product_id}>"


class TrajectoryStepModel(Base):
    """Append-only trajectory row."""

    __tablename__ = "trajectory_step"

    __table_args__ = (
        UniqueConstraint(
            "process_id", "position",
            name="uq_trajectory_step_position",
        ),
        Index("ix_trajectory_step_state", "process_id", "state_id"),
        Index("ix_trajectory_step_decision", "process_id", "decision_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    process_id: Mapped[int] = mapped_column(
        ForeignKey("process.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    state_id: Mapped[int] = mapped_column(
        ForeignKey("type_state.id", ondelete="RESTRICT"), nullable=False,
    )
    decision_id: Mapped[int | None] = mapped_column(
        ForeignKey("type_decision.id", ondelete="RESTRICT"), nullable=True,
    )
    actor_id: Mapped[int | None] = mapped_column(nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    process: Mapped[ProcessModel] = relationship(
        "ProcessModel", back_populates="steps",
    )

    def __repr__(self) -> str:
        return (
            f"<TrajectoryStep process={self.process_id} pos={self.position} "
            f"state={self.state_id} decision={self.decision_id}>"
        )

    def to_dto(self) -> TrajectoryStep:
        return TrajectoryStep(
            process_id=self.process_id,
            position=self.position,
            state_id=self.state_id,
            decision_id=self.decision_id,
            actor_id=self.actor_id,
            recorded_at=self.recorded_at,
        )


# =============================================================================
# ORM-level append-only enforcement
# =============================================================================


@event.listens_for(TrajectoryStepModel, "before_update")
def prevent_step_rewrite(mapper, connection, target):
    """Allow only the one-time fill of a NULL decision_id."""
    state = inspect(target)
    for attr in state.attrs:
        history = attr.history
        if not history.has_changes():
            continue
        if attr.key != "decision_id":
            raise ImmutabilityViolationError(
                entity_type="TrajectoryStep",
                entity_id=f"{target.process_id}:{target.position}",
                reason=f"column '{attr.key}' is write-once",
            )
        previous = [v for v in history.deleted if v is not None]
        if previous:
            raise ImmutabilityViolationError(
                entity_type="TrajectoryStep",
                entity_id=f"{target.process_id}:{target.position}",
                reason="decision already recorded",
            )
