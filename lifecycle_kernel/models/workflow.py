"""
Module: lifecycle_kernel.models.workflow
Responsibility: ORM persistence for workflow dictionaries and process
    templates: states, decisions, templates, the states each template uses,
    the per-template decision map, and per-state access rights.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Decision map determinism: primary key (template, state, decision), so a
      triple maps to at most one next state.
    - Decision map entries connect states that belong to the template
      (composite foreign keys into template_state).
    - The "exactly one initial state" rule is enforced where it matters, when
      a process is started (TrajectoryStore.init_process) and by the
      configuration validator; templates under construction may have none.

Failure modes:
    - IntegrityError on a second next state for the same triple.
    - IntegrityError when deleting a state/decision/template still in use
      (ON DELETE RESTRICT, including a template that still has states or
      decision map entries).  DictionaryService checks first and raises
      ReferentialIntegrityError instead.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, ForeignKeyConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import Base
from lifecycle_kernel.db.types import DisplayName, ShortCode
from lifecycle_kernel.domain.workflow import DecisionMapEntry, TemplateStateDef


class StateModel(Base):
    """Dictionary of workflow states."""

    __tablename__ = "type_state"

    id: Mapped[int] = mapped_column(primary_key=True)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False, unique=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<State {self.id} {self.sh_name}>"


class DecisionModel(Base):
    """Dictionary of decisions an actor can apply."""

    __tablename__ = "type_decision"

    id: Mapped[int] = mapped_column(primary_key=True)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False, unique=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Decision {self.id} {self.sh_name}>"


class ProcessTemplateModel(Base):
    """A category of process: which states it uses and how decisions move it."""

    __tablename__ = "process_template"

    id: Mapped[int] = mapped_column(primary_key=True)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False, unique=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)
    class_id: Mapped[int | None] = mapped_column(
        ForeignKey("product_class.id", ondelete="RESTRICT"), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ProcessTemplate {self.id} {self.sh_name}>"


class TemplateStateModel(Base):
    """A state as used by one template, with its initial flag and guard."""

    __tablename__ = "template_state"

    template_id: Mapped[int] = mapped_column(
        ForeignKey("process_template.id", ondelete="RESTRICT"), primary_key=True,
    )
    state_id: Mapped[int] = mapped_column(
        ForeignKey("type_state.id", ondelete="RESTRICT"), primary_key=True,
    )
    is_initial: Mapped[bool] = mapped_column(nullable=False, default=False)
    formula_id: Mapped[int | None] = mapped_column(
        ForeignKey("transition_function.id", ondelete="RESTRICT"), nullable=True,
    )

    def to_dto(self) -> TemplateStateDef:
        return TemplateStateDef(
            template_id=self.template_id,
            state_id=self.state_id,
            is_initial=self.is_initial,
            formula_id=self.formula_id,
        )


class DecisionMapModel(Base):
    """template x state x decision -> next state."""

    __tablename__ = "decision_map"

    __table_args__ = (
        ForeignKeyConstraint(
            ["template_id", "state_id"],
            ["template_state.template_id", "template_state.state_id"],
            ondelete="RESTRICT",
            name="fk_decision_map_from_state",
        ),
        ForeignKeyConstraint(
            ["template_id", "next_state_id"],
            ["template_state.template_id", "template_state.state_id"],
            ondelete="RESTRICT",
            name="fk_decision_map_next_state",
        ),
    )

    template_id: Mapped[int] = mapped_column(primary_key=True)
    state_id: Mapped[int] = mapped_column(primary_key=True)
    decision_id: Mapped[int] = mapped_column(
        ForeignKey("type_decision.id", ondelete="RESTRICT"), primary_key=True,
    )
    next_state_id: Mapped[int] = mapped_column(nullable=False)

    def to_dto(self) -> DecisionMapEntry:
        return DecisionMapEntry(
            template_id=self.template_id,
            state_id=self.state_id,
            decision_id=self.decision_id,
            next_state_id=self.next_state_id,
        )


class ActorModel(Base):
    """Someone who submits decisions.  Identity is managed elsewhere."""

    __tablename__ = "actor"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)


class ActorGroupModel(Base):
    """Group of actors sharing access rights."""

    __tablename__ = "actor_group"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)


class GroupMembershipModel(Base):
    """Actor belongs to group."""

    __tablename__ = "group_membership"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("actor_group.id", ondelete="CASCADE"), primary_key=True,
    )
    actor_id: Mapped[int] = mapped_column(
        ForeignKey("actor.id", ondelete="CASCADE"), primary_key=True,
    )


class StateAccessModel(Base):
    """Group may act on a state of a template."""

    __tablename__ = "state_access"

    __table_args__ = (
        ForeignKeyConstraint(
            ["template_id", "state_id"],
            ["template_state.template_id", "template_state.state_id"],
            ondelete="CASCADE",
            name="fk_state_access_template_state",
        ),
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("actor_group.id", ondelete="CASCADE"), primary_key=True,
    )
    template_id: Mapped[int] = mapped_column(primary_key=True)
    state_id: Mapped[int] = mapped_column(primary_key=True)
