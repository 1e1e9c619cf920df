"""
DictionaryService -- administration of workflow dictionaries and templates.

Responsibility:
    Creates and deletes the rows the transition-gating core reads: states,
    decisions, parameters, transition functions, predicates, formula rows,
    templates with their states and decision map, and access rights.
    Referential integrity is checked before the database would refuse, so
    callers get a typed ReferentialIntegrityError naming the referrer.

Architecture position:
    Kernel > Services.  Used by the configuration seeder and by
    administrative tooling.  Never called on the decision-submission path.

Invariants enforced:
    - A predicate sets at most one discriminator, and the row it names must
      exist.
    - Formula rows are idempotent: adding an existing row is a no-op.
    - Decision map determinism: a (template, state, decision) triple maps to
      one next state; re-adding the same mapping is a no-op.
    - Decision map entries connect states that belong to the template.
    - At most one initial state per template.
    - A predicate used by a formula row cannot be deleted.
    - A template is deleted only once it has no processes, template states
      or decision map entries left; nothing is cascaded away with it.

Failure modes:
    - *NotFoundError subclasses for unknown referenced rows.
    - InvalidPredicateError, NonDeterministicTransitionError,
      AmbiguousInitialStateError, ReferentialIntegrityError.
"""

from __future__ import annotations

from sqlalchemy import and_, exists, or_, select

from lifecycle_kernel.domain.parameters import ParameterType
from lifecycle_kernel.domain.predicates import FormulaRow, predicate_from_columns
from lifecycle_kernel.exceptions import (
    AmbiguousInitialStateError,
    DecisionNotFoundError,
    FormulaNotFoundError,
    NonDeterministicTransitionError,
    ParameterNotFoundError,
    PredicateNotFoundError,
    ReferentialIntegrityError,
    StateNotFoundError,
    TemplateNotFoundError,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.catalog import ParameterModel, ProductParameterValueModel
from lifecycle_kernel.models.guard import (
    FormulaRowModel,
    PredicateModel,
    TransitionFunctionModel,
)
from lifecycle_kernel.models.process import ProcessModel, TrajectoryStepModel
from lifecycle_kernel.models.workflow import (
    ActorGroupModel,
    ActorModel,
    DecisionMapModel,
    DecisionModel,
    GroupMembershipModel,
    ProcessTemplateModel,
    StateAccessModel,
    StateModel,
    TemplateStateModel,
)
from lifecycle_kernel.services.base import BaseService

logger = get_logger("services.dictionary")


class DictionaryService(BaseService):
    """
    Write side of the workflow dictionaries.

    Contract:
        Every method flushes and returns the id of the row it created (or
        None for deletions).  Ids are caller-assigned when given, otherwise
        generated by the database.

    Non-goals:
        - Catalog maintenance (product classes, products, values).
        - Renaming or editing referenced rows in place.
    """

    # -------------------------------------------------------------------------
    # States and decisions
    # -------------------------------------------------------------------------

    def create_state(self, sh_name: str, name: str, state_id: int | None = None) -> int:
        row = StateModel(id=state_id, sh_name=sh_name, name=name)
        self._add(row)
        logger.info("state_created", extra={"state_id": row.id, "sh_name": sh_name})
        return row.id

    def create_decision(self, sh_name: str, name: str, decision_id: int | None = None) -> int:
        row = DecisionModel(id=decision_id, sh_name=sh_name, name=name)
        self._add(row)
        logger.info("decision_created", extra={"decision_id": row.id, "sh_name": sh_name})
        return row.id

    def delete_state(self, state_id: int) -> None:
        row = self._require(StateModel, state_id, StateNotFoundError)
        self._refuse_if_used(
            "State", state_id,
            (TemplateStateModel.state_id == state_id, "template_state"),
            (TrajectoryStepModel.state_id == state_id, "trajectory_step"),
            (PredicateModel.state_id == state_id, "predicate"),
        )
        self._delete(row, "state_deleted", state_id=state_id)

    def delete_decision(self, decision_id: int) -> None:
        row = self._require(DecisionModel, decision_id, DecisionNotFoundError)
        self._refuse_if_used(
            "Decision", decision_id,
            (DecisionMapModel.decision_id == decision_id, "decision_map"),
            (TrajectoryStepModel.decision_id == decision_id, "trajectory_step"),
            (PredicateModel.decision_id == decision_id, "predicate"),
        )
        self._delete(row, "decision_deleted", decision_id=decision_id)

    # -------------------------------------------------------------------------
    # Parameters
    # -------------------------------------------------------------------------

    def create_parameter(
        self,
        sh_name: str,
        name: str,
        type_par: ParameterType | str = ParameterType.TEXT,
        parameter_id: int | None = None,
    ) -> int:
        type_value = ParameterType(type_par).value
        row = ParameterModel(id=parameter_id, sh_name=sh_name, name=name, type_par=type_value)
        self._add(row)
        logger.info(
            "parameter_created",
            extra={"parameter_id": row.id, "sh_name": sh_name, "type_par": type_value},
        )
        return row.id

    def delete_parameter(self, parameter_id: int) -> None:
        row = self._require(ParameterModel, parameter_id, ParameterNotFoundError)
        self._refuse_if_used(
            "Parameter", parameter_id,
            (PredicateModel.parameter_id == parameter_id, "predicate"),
            (ProductParameterValueModel.parameter_id == parameter_id, "product_parameter"),
        )
        self._delete(row, "parameter_deleted", parameter_id=parameter_id)

    # -------------------------------------------------------------------------
    # Guard logic
    # -------------------------------------------------------------------------

    def create_transition_function(self, name: str, function_id: int | None = None) -> int:
        row = TransitionFunctionModel(id=function_id, name=name)
        self._add(row)
        logger.info("transition_function_created", extra={"formula_id": row.id})
        return row.id

    def delete_transition_function(self, function_id: int) -> None:
        row = self._require(TransitionFunctionModel, function_id, FormulaNotFoundError)
        self._refuse_if_used(
            "TransitionFunction", function_id,
            (TemplateStateModel.formula_id == function_id, "template_state"),
        )
        self._delete(row, "transition_function_deleted", formula_id=function_id)

    def create_predicate(
        self,
        state_id: int | None = None,
        decision_id: int | None = None,
        parameter_id: int | None = None,
        predicate_id: int | None = None,
    ) -> int:
        """
        Create an atomic predicate.

        At most one of ``state_id`` / ``decision_id`` / ``parameter_id`` may
        be given; none creates the always-true predicate.

        Raises:
            InvalidPredicateError: more than one discriminator.
            StateNotFoundError / DecisionNotFoundError /
            ParameterNotFoundError: the referenced row does not exist.
        """
        predicate = predicate_from_columns(
            predicate_id or 0,
            state_id=state_id,
            decision_id=decision_id,
            parameter_id=parameter_id,
        )
        if state_id is not None:
            self._require(StateModel, state_id, StateNotFoundError)
        if decision_id is not None:
            self._require(DecisionModel, decision_id, DecisionNotFoundError)
        if parameter_id is not None:
            self._require(ParameterModel, parameter_id, ParameterNotFoundError)

        row = PredicateModel(
            id=predicate_id,
            state_id=state_id,
            decision_id=decision_id,
            parameter_id=parameter_id,
        )
        self._add(row)
        logger.info(
            "predicate_created",
            extra={"predicate_id": row.id, "kind": predicate.kind},
        )
        return row.id

    def delete_predicate(self, predicate_id: int) -> None:
        row = self._require(PredicateModel, predicate_id, PredicateNotFoundError)
        self._refuse_if_used(
            "Predicate", predicate_id,
            (FormulaRowModel.predicate_id == predicate_id, "formula_row"),
        )
        self._delete(row, "predicate_deleted", predicate_id=predicate_id)

    def add_formula_row(
        self,
        formula_id: int,
        disjunction: int,
        conjunction: int,
        predicate_id: int,
    ) -> bool:
        """
        Add one (disjunction, conjunction, predicate) triple to a formula.

        Returns:
            True when a row was inserted, False when it already existed.
        """
        FormulaRow(formula_id, disjunction, conjunction, predicate_id)
        self._require(TransitionFunctionModel, formula_id, FormulaNotFoundError)
        self._require(PredicateModel, predicate_id, PredicateNotFoundError)

        key = (formula_id, disjunction, conjunction, predicate_id)
        if self.session.get(FormulaRowModel, key) is not None:
            return False
        self._add(
            FormulaRowModel(
                formula_id=formula_id,
                disjunction=disjunction,
                conjunction=conjunction,
                predicate_id=predicate_id,
            )
        )
        logger.info(
            "formula_row_added",
            extra={
                "formula_id": formula_id,
                "disjunction": disjunction,
                "conjunction": conjunction,
                "predicate_id": predicate_id,
            },
        )
        return True

    def remove_formula_row(
        self,
        formula_id: int,
        disjunction: int,
        conjunction: int,
        predicate_id: int,
    ) -> bool:
        row = self.session.get(
            FormulaRowModel, (formula_id, disjunction, conjunction, predicate_id),
        )
        if row is None:
            return False
        self._delete(row, "formula_row_removed", formula_id=formula_id, predicate_id=predicate_id)
        return True

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def create_template(
        self,
        sh_name: str,
        name: str,
        template_id: int | None = None,
        class_id: int | None = None,
    ) -> int:
        row = ProcessTemplateModel(id=template_id, sh_name=sh_name, name=name, class_id=class_id)
        self._add(row)
        logger.info("template_created", extra={"template_id": row.id, "sh_name": sh_name})
        return row.id

    def delete_template(self, template_id: int) -> None:
        """Delete an empty template.

        Its decision map entries and template states must be removed first
        (``remove_transition``, ``remove_template_state``); they are never
        dropped along with the template.
        """
        row = self._require(ProcessTemplateModel, template_id, TemplateNotFoundError)
        self._refuse_if_used(
            "ProcessTemplate", template_id,
            (ProcessModel.template_id == template_id, "process"),
            (DecisionMapModel.template_id == template_id, "decision_map"),
            (TemplateStateModel.template_id == template_id, "template_state"),
        )
        self._delete(row, "template_deleted", template_id=template_id)

    def remove_template_state(self, template_id: int, state_id: int) -> None:
        """Take a state out of a template. Refused while transitions use it."""
        row = self.session.get(TemplateStateModel, (template_id, state_id))
        if row is None:
            raise StateNotFoundError(state_id)
        self._refuse_if_used(
            "TemplateState", state_id,
            (
                and_(
                    DecisionMapModel.template_id == template_id,
                    or_(
                        DecisionMapModel.state_id == state_id,
                        DecisionMapModel.next_state_id == state_id,
                    ),
                ),
                "decision_map",
            ),
        )
        self._delete(row, "template_state_removed", template_id=template_id, state_id=state_id)

    def add_template_state(
        self,
        template_id: int,
        state_id: int,
        is_initial: bool = False,
        formula_id: int | None = None,
    ) -> None:
        """
        Include a state in a template.

        Raises:
            AmbiguousInitialStateError: ``is_initial`` while the template
                already has a different initial state.
        """
        self._require(ProcessTemplateModel, template_id, TemplateNotFoundError)
        self._require(StateModel, state_id, StateNotFoundError)
        if formula_id is not None:
            self._require(TransitionFunctionModel, formula_id, FormulaNotFoundError)

        if is_initial:
            current = self.session.execute(
                select(TemplateStateModel.state_id).where(
                    TemplateStateModel.template_id == template_id,
                    TemplateStateModel.is_initial.is_(True),
                    TemplateStateModel.state_id != state_id,
                )
            ).scalars().all()
            if current:
                raise AmbiguousInitialStateError(
                    template_id, tuple(sorted(current)) + (state_id,),
                )

        row = self.session.get(TemplateStateModel, (template_id, state_id))
        if row is None:
            row = TemplateStateModel(template_id=template_id, state_id=state_id)
            self.session.add(row)
        row.is_initial = is_initial
        row.formula_id = formula_id
        self.session.flush()
        logger.info(
            "template_state_set",
            extra={
                "template_id": template_id,
                "state_id": state_id,
                "is_initial": is_initial,
                "formula_id": formula_id,
            },
        )

    def bind_formula(self, template_id: int, state_id: int, formula_id: int | None) -> None:
        """Attach (or with None, detach) the guard formula of a template state."""
        row = self.session.get(TemplateStateModel, (template_id, state_id))
        if row is None:
            raise StateNotFoundError(state_id)
        if formula_id is not None:
            self._require(TransitionFunctionModel, formula_id, FormulaNotFoundError)
        row.formula_id = formula_id
        self.session.flush()
        logger.info(
            "formula_bound",
            extra={"template_id": template_id, "state_id": state_id, "formula_id": formula_id},
        )

    def add_transition(
        self,
        template_id: int,
        state_id: int,
        decision_id: int,
        next_state_id: int,
    ) -> bool:
        """
        Add a decision map entry.

        Returns:
            True when inserted, False when the identical mapping exists.

        Raises:
            StateNotFoundError: either state is not part of the template.
            DecisionNotFoundError: unknown decision.
            NonDeterministicTransitionError: the triple already maps to a
                different next state.
        """
        for sid in (state_id, next_state_id):
            if self.session.get(TemplateStateModel, (template_id, sid)) is None:
                raise StateNotFoundError(sid)
        self._require(DecisionModel, decision_id, DecisionNotFoundError)

        existing = self.session.get(DecisionMapModel, (template_id, state_id, decision_id))
        if existing is not None:
            if existing.next_state_id == next_state_id:
                return False
            raise NonDeterministicTransitionError(
                template_id, state_id, decision_id, existing.next_state_id,
            )

        self._add(
            DecisionMapModel(
                template_id=template_id,
                state_id=state_id,
                decision_id=decision_id,
                next_state_id=next_state_id,
            )
        )
        logger.info(
            "transition_added",
            extra={
                "template_id": template_id,
                "state_id": state_id,
                "decision_id": decision_id,
                "next_state_id": next_state_id,
            },
        )
        return True

    def remove_transition(self, template_id: int, state_id: int, decision_id: int) -> bool:
        row = self.session.get(DecisionMapModel, (template_id, state_id, decision_id))
        if row is None:
            return False
        self._delete(
            row, "transition_removed",
            template_id=template_id, state_id=state_id, decision_id=decision_id,
        )
        return True

    # -------------------------------------------------------------------------
    # Access rights
    # -------------------------------------------------------------------------

    def create_actor(self, name: str, actor_id: int | None = None) -> int:
        row = ActorModel(id=actor_id, name=name)
        self._add(row)
        return row.id

    def create_group(self, name: str, group_id: int | None = None) -> int:
        row = ActorGroupModel(id=group_id, name=name)
        self._add(row)
        return row.id

    def add_member(self, group_id: int, actor_id: int) -> None:
        if self.session.get(GroupMembershipModel, (group_id, actor_id)) is None:
            self._add(GroupMembershipModel(group_id=group_id, actor_id=actor_id))

    def grant_state_access(self, group_id: int, template_id: int, state_id: int) -> None:
        if self.session.get(TemplateStateModel, (template_id, state_id)) is None:
            raise StateNotFoundError(state_id)
        if self.session.get(StateAccessModel, (group_id, template_id, state_id)) is None:
            self._add(
                StateAccessModel(group_id=group_id, template_id=template_id, state_id=state_id)
            )
            logger.info(
                "state_access_granted",
                extra={"group_id": group_id, "template_id": template_id, "state_id": state_id},
            )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _add(self, row) -> None:
        self.session.add(row)
        self.session.flush()

    def _delete(self, row, event: str, **fields) -> None:
        self.session.delete(row)
        self.session.flush()
        logger.info(event, extra=fields)

    def _require(self, model, entity_id, error_cls):
        row = self.session.get(model, entity_id)
        if row is None:
            raise error_cls(entity_id)
        return row

    def _refuse_if_used(self, entity_type: str, entity_id, *usages) -> None:
        referrers = [
            table
            for criterion, table in usages
            if self.session.execute(select(exists().where(criterion))).scalar()
        ]
        if referrers:
            logger.warning(
                "delete_refused",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "referenced_by": referrers,
                },
            )
            raise ReferentialIntegrityError(entity_type, entity_id, ", ".join(referrers))
