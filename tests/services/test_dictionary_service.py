"""
Tests for DictionaryService (lifecycle_kernel.services.dictionary_service).

Covers referential integrity on deletion, predicate well-formedness,
decision map determinism and the single-initial-state rule.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from lifecycle_kernel.exceptions import (
    AmbiguousInitialStateError,
    FormulaNotFoundError,
    InvalidPredicateError,
    NonDeterministicTransitionError,
    ReferentialIntegrityError,
    StateNotFoundError,
)
from lifecycle_kernel.models.guard import PredicateModel
from lifecycle_kernel.models.workflow import ProcessTemplateModel, StateModel
from lifecycle_kernel.selectors.guard_selector import GuardSelector
from lifecycle_kernel.selectors.template_selector import TemplateSelector
from lifecycle_kernel.services.trajectory_store import TrajectoryStore
from tests.conftest import (
    CANCELLED,
    CARD_VALID_GUARD,
    DRAFT,
    MODERATION,
    MODERATOR,
    NEW_PRODUCT_TEMPLATE,
    PUBLISHED,
    SUBMIT,
    VALID_PRODUCT,
    WEIGHT_PARAMETER,
)

# predicate 1 is valid(weight), used by the card-valid guard
WEIGHT_PREDICATE = 1


class TestDeletion:

    def test_state_used_by_template_is_refused(self, dictionary, marketplace, captured_logs):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            dictionary.delete_state(DRAFT)

        assert "template_state" in exc_info.value.referenced_by
        refused = next(r for r in captured_logs() if r["message"] == "delete_refused")
        assert refused["entity_type"] == "State"

    def test_unused_state_is_deleted(self, session, dictionary, marketplace):
        state_id = dictionary.create_state("limbo", "Limbo", state_id=90)
        dictionary.delete_state(state_id)
        assert session.get(StateModel, state_id) is None

    def test_decision_recorded_in_trajectory_is_refused(
        self, session, dictionary, marketplace, deterministic_clock,
    ):
        store = TrajectoryStore(session, deterministic_clock)
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        store.append_transition(pid, SUBMIT, MODERATOR, MODERATION)
        dictionary.remove_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT)

        with pytest.raises(ReferentialIntegrityError) as exc_info:
            dictionary.delete_decision(SUBMIT)
        assert exc_info.value.referenced_by == "trajectory_step"

    def test_predicate_used_by_formula_is_refused(self, session, dictionary, marketplace):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            dictionary.delete_predicate(WEIGHT_PREDICATE)
        assert exc_info.value.referenced_by == "formula_row"

        assert dictionary.remove_formula_row(CARD_VALID_GUARD, 1, 1, WEIGHT_PREDICATE)
        dictionary.delete_predicate(WEIGHT_PREDICATE)
        assert session.get(PredicateModel, WEIGHT_PREDICATE) is None
        assert GuardSelector(session).formulas_using_predicate(WEIGHT_PREDICATE) == ()

    def test_bound_transition_function_is_refused(self, dictionary, marketplace):
        with pytest.raises(ReferentialIntegrityError):
            dictionary.delete_transition_function(CARD_VALID_GUARD)

        dictionary.bind_formula(NEW_PRODUCT_TEMPLATE, MODERATION, None)
        dictionary.delete_transition_function(CARD_VALID_GUARD)
        with pytest.raises(FormulaNotFoundError):
            dictionary.delete_transition_function(CARD_VALID_GUARD)

    def test_parameter_with_values_is_refused(self, dictionary, marketplace):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            dictionary.delete_parameter(WEIGHT_PARAMETER)
        assert "predicate" in exc_info.value.referenced_by
        assert "product_parameter" in exc_info.value.referenced_by

    def test_template_with_processes_is_refused(
        self, session, dictionary, marketplace, deterministic_clock,
    ):
        TrajectoryStore(session, deterministic_clock).init_process(
            NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR,
        )
        with pytest.raises(ReferentialIntegrityError):
            dictionary.delete_template(NEW_PRODUCT_TEMPLATE)

    def test_template_with_decision_map_is_refused(self, session, dictionary, marketplace):
        template_id = dictionary.create_template("short", "Short", template_id=77)
        dictionary.add_template_state(template_id, DRAFT, is_initial=True)
        dictionary.add_template_state(template_id, MODERATION)
        dictionary.add_transition(template_id, DRAFT, SUBMIT, MODERATION)

        with pytest.raises(ReferentialIntegrityError) as exc_info:
            dictionary.delete_template(template_id)

        assert "decision_map" in exc_info.value.referenced_by
        assert "template_state" in exc_info.value.referenced_by
        templates = TemplateSelector(session)
        assert templates.next_state(template_id, DRAFT, SUBMIT) == MODERATION
        assert len(templates.template_states(template_id)) == 2

    def test_emptied_template_is_deleted(self, session, dictionary, marketplace):
        template_id = dictionary.create_template("short", "Short", template_id=78)
        dictionary.add_template_state(template_id, DRAFT, is_initial=True)
        dictionary.add_template_state(template_id, MODERATION)
        dictionary.add_transition(template_id, DRAFT, SUBMIT, MODERATION)

        with pytest.raises(ReferentialIntegrityError):
            dictionary.remove_template_state(template_id, MODERATION)

        dictionary.remove_transition(template_id, DRAFT, SUBMIT)
        dictionary.remove_template_state(template_id, MODERATION)
        dictionary.remove_template_state(template_id, DRAFT)
        dictionary.delete_template(template_id)
        assert session.get(ProcessTemplateModel, template_id) is None


class TestPredicates:

    def test_two_discriminators_rejected(self, dictionary, marketplace):
        with pytest.raises(InvalidPredicateError):
            dictionary.create_predicate(state_id=DRAFT, decision_id=SUBMIT)

    def test_unknown_reference_rejected(self, dictionary, marketplace):
        with pytest.raises(StateNotFoundError):
            dictionary.create_predicate(state_id=999)

    def test_storage_check_constraint(self, session, marketplace):
        session.add(PredicateModel(id=80, state_id=DRAFT, decision_id=SUBMIT))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_empty_predicate_allowed(self, session, dictionary, marketplace):
        predicate_id = dictionary.create_predicate(predicate_id=81)
        assert GuardSelector(session).get_predicate(predicate_id).kind == "empty"

    def test_formula_row_is_idempotent(self, dictionary, marketplace):
        assert not dictionary.add_formula_row(CARD_VALID_GUARD, 1, 1, WEIGHT_PREDICATE)
        assert dictionary.add_formula_row(CARD_VALID_GUARD, 2, 1, WEIGHT_PREDICATE)


class TestTemplates:

    def test_transition_is_deterministic(self, dictionary, marketplace):
        assert not dictionary.add_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT, MODERATION)
        with pytest.raises(NonDeterministicTransitionError) as exc_info:
            dictionary.add_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT, PUBLISHED)
        assert exc_info.value.existing_next_state_id == MODERATION

    def test_transition_states_must_belong_to_template(self, dictionary, marketplace):
        # state 9 belongs to the change-management template only
        with pytest.raises(StateNotFoundError):
            dictionary.add_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT + 20, 9)

    def test_second_initial_state_rejected(self, dictionary, marketplace):
        with pytest.raises(AmbiguousInitialStateError):
            dictionary.add_template_state(NEW_PRODUCT_TEMPLATE, CANCELLED, is_initial=True)

    def test_remove_transition(self, session, dictionary, marketplace):
        assert dictionary.remove_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT)
        assert not dictionary.remove_transition(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT)
        assert TemplateSelector(session).next_state(NEW_PRODUCT_TEMPLATE, DRAFT, SUBMIT) is None
