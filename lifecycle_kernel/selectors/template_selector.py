"""
Module: lifecycle_kernel.selectors.template_selector
Responsibility: Database-backed view of process templates: the decision map,
    guard bindings, initial states, decisions available from a state, and
    per-state access rights.
Architecture position: Kernel > Selectors.  TemplateSelector satisfies the
    DecisionMapLookup and FormulaBindingLookup protocols consumed by the
    transition authorizer (structural typing, no import of the protocols).

Invariants enforced:
    - next_state() reads the decision_map table only.  The decision_map
      table is the single authoritative source of legal transitions.
    - decisions_from() is ordered by decision id for stable output.

Failure modes:
    - Unknown template/state/decision ids yield None or empty results; the
      caller decides whether that is an error.
"""

from __future__ import annotations

from sqlalchemy import exists, select

from lifecycle_kernel.domain.workflow import DecisionOption, TemplateStateDef
from lifecycle_kernel.models.workflow import (
    DecisionMapModel,
    DecisionModel,
    GroupMembershipModel,
    ProcessTemplateModel,
    StateAccessModel,
    TemplateStateModel,
)
from lifecycle_kernel.selectors.base import BaseSelector


class TemplateSelector(BaseSelector):
    """Queries over process_template, template_state, decision_map and access rights."""

    # DecisionMapLookup ---------------------------------------------------------

    def next_state(self, template_id: int, state_id: int, decision_id: int) -> int | None:
        stmt = select(DecisionMapModel.next_state_id).where(
            DecisionMapModel.template_id == template_id,
            DecisionMapModel.state_id == state_id,
            DecisionMapModel.decision_id == decision_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def decisions_from(self, template_id: int, state_id: int) -> tuple[DecisionOption, ...]:
        """Decisions legal from ``state_id`` together with their target states."""
        stmt = (
            select(
                DecisionMapModel.decision_id,
                DecisionModel.sh_name,
                DecisionModel.name,
                DecisionMapModel.next_state_id,
            )
            .join(DecisionModel, DecisionModel.id == DecisionMapModel.decision_id)
            .where(
                DecisionMapModel.template_id == template_id,
                DecisionMapModel.state_id == state_id,
            )
            .order_by(DecisionMapModel.decision_id)
        )
        return tuple(
            DecisionOption(
                decision_id=decision_id,
                code=code,
                name=name,
                next_state_id=next_state_id,
            )
            for decision_id, code, name, next_state_id in self.session.execute(stmt)
        )

    # FormulaBindingLookup ------------------------------------------------------

    def formula_for(self, template_id: int, state_id: int) -> int | None:
        stmt = select(TemplateStateModel.formula_id).where(
            TemplateStateModel.template_id == template_id,
            TemplateStateModel.state_id == state_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    # Template structure --------------------------------------------------------

    def template_exists(self, template_id: int) -> bool:
        return self.session.get(ProcessTemplateModel, template_id) is not None

    def template_states(self, template_id: int) -> tuple[TemplateStateDef, ...]:
        stmt = (
            select(TemplateStateModel)
            .where(TemplateStateModel.template_id == template_id)
            .order_by(TemplateStateModel.state_id)
        )
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())

    def initial_states(self, template_id: int) -> tuple[int, ...]:
        stmt = (
            select(TemplateStateModel.state_id)
            .where(
                TemplateStateModel.template_id == template_id,
                TemplateStateModel.is_initial.is_(True),
            )
            .order_by(TemplateStateModel.state_id)
        )
        return tuple(self.session.execute(stmt).scalars())

    # Access rights -------------------------------------------------------------

    def actor_has_access(self, actor_id: int, template_id: int, state_id: int) -> bool:
        """True iff one of the actor's groups is granted the template state."""
        stmt = select(
            exists()
            .where(
                StateAccessModel.template_id == template_id,
                StateAccessModel.state_id == state_id,
                StateAccessModel.group_id == GroupMembershipModel.group_id,
                GroupMembershipModel.actor_id == actor_id,
            )
        )
        return bool(self.session.execute(stmt).scalar())
