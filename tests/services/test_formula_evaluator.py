"""
Tests for FormulaEvaluator (lifecycle_services.formula_evaluator).

Covers:
- the marketplace "card parameters valid" formula on valid and invalid cards
- OR across disjunction groups, including a mixed formula losing its
  alternative group
- formulas without rows are permissive
- a conjunct whose predicate row is gone is false
- one batch load of predicates per evaluation
- rendering a formula as text
"""

import pytest

from lifecycle_kernel.selectors.guard_selector import GuardSelector
from lifecycle_kernel.services.trajectory_store import TrajectoryStore
from lifecycle_services.formula_evaluator import FormulaEvaluator
from tests.conftest import (
    BRAND_PARAMETER,
    CARD_VALID_GUARD,
    DRAFT,
    INVALID_PRODUCT,
    MANAGER_SIGNOFF_GUARD,
    MODERATION,
    MODERATOR,
    NEW_PRODUCT_TEMPLATE,
    PUBLISHED,
    SUBMIT,
    VALID_PRODUCT,
    WEIGHT_PARAMETER,
)


@pytest.fixture
def store(session, marketplace, deterministic_clock):
    return TrajectoryStore(session, deterministic_clock)


@pytest.fixture
def evaluator(session, marketplace):
    return FormulaEvaluator(session)


class TestEvaluateFormula:

    def test_all_conjuncts_true(self, store, evaluator):
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        assert evaluator.evaluate_formula(CARD_VALID_GUARD, pid, VALID_PRODUCT) is True

    def test_one_conjunct_false(self, store, evaluator):
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, INVALID_PRODUCT, MODERATOR)
        assert evaluator.evaluate_formula(CARD_VALID_GUARD, pid, INVALID_PRODUCT) is False

    def test_or_across_groups(self, store, evaluator, dictionary):
        # (visited(published)) OR (valid(weight))
        formula_id = dictionary.create_transition_function("published or light", function_id=50)
        visited_published = dictionary.create_predicate(state_id=PUBLISHED, predicate_id=50)
        weight_valid = dictionary.create_predicate(parameter_id=WEIGHT_PARAMETER, predicate_id=51)
        dictionary.add_formula_row(formula_id, 1, 1, visited_published)
        dictionary.add_formula_row(formula_id, 2, 1, weight_valid)

        valid_pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        invalid_pid = store.init_process(NEW_PRODUCT_TEMPLATE, INVALID_PRODUCT, MODERATOR)

        assert evaluator.evaluate_formula(formula_id, valid_pid, VALID_PRODUCT) is True
        assert evaluator.evaluate_formula(formula_id, invalid_pid, INVALID_PRODUCT) is False

    def test_mixed_groups_until_alternative_removed(self, store, evaluator, dictionary):
        # (valid(weight) AND visited(published)) OR (visited(draft))
        formula_id = dictionary.create_transition_function("light and live, or new", function_id=70)
        weight_valid = dictionary.create_predicate(parameter_id=WEIGHT_PARAMETER, predicate_id=70)
        visited_published = dictionary.create_predicate(state_id=PUBLISHED, predicate_id=71)
        visited_draft = dictionary.create_predicate(state_id=DRAFT, predicate_id=72)
        dictionary.add_formula_row(formula_id, 1, 1, weight_valid)
        dictionary.add_formula_row(formula_id, 1, 2, visited_published)
        dictionary.add_formula_row(formula_id, 2, 1, visited_draft)

        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        assert evaluator.evaluate_formula(formula_id, pid, VALID_PRODUCT) is True

        assert dictionary.remove_formula_row(formula_id, 2, 1, visited_draft)
        assert evaluator.evaluate_formula(formula_id, pid, VALID_PRODUCT) is False

    def test_trajectory_formula(self, store, evaluator):
        # visited(mgr_approval) AND decided(mgr_approved): neither holds here
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        store.append_transition(pid, SUBMIT, MODERATOR, MODERATION)
        assert evaluator.evaluate_formula(MANAGER_SIGNOFF_GUARD, pid, VALID_PRODUCT) is False

    def test_formula_without_rows_is_true(self, store, evaluator, dictionary):
        empty = dictionary.create_transition_function("nothing to check", function_id=60)
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, INVALID_PRODUCT, MODERATOR)
        assert evaluator.evaluate_formula(empty, pid, INVALID_PRODUCT) is True
        assert evaluator.evaluate_formula(9999, pid, INVALID_PRODUCT) is True

    def test_missing_predicate_makes_conjunct_false(
        self, store, evaluator, monkeypatch, captured_logs,
    ):
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        monkeypatch.setattr(evaluator._guards, "predicates_by_ids", lambda ids: {})

        assert evaluator.evaluate_formula(CARD_VALID_GUARD, pid, VALID_PRODUCT) is False
        warnings = [r for r in captured_logs() if r["message"] == "predicate_reference_missing"]
        assert warnings and warnings[0]["formula_id"] == CARD_VALID_GUARD

    def test_predicates_loaded_in_one_batch(self, store, evaluator, monkeypatch):
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, VALID_PRODUCT, MODERATOR)
        original = evaluator._guards.predicates_by_ids
        requested = []

        def spy(ids):
            ids = list(ids)
            requested.append(ids)
            return original(ids)

        monkeypatch.setattr(evaluator._guards, "predicates_by_ids", spy)
        evaluator.evaluate_formula(CARD_VALID_GUARD, pid, VALID_PRODUCT)
        assert len(requested) == 1
        assert sorted(requested[0]) == [1, 2]

    def test_evaluation_is_logged(self, store, evaluator, captured_logs):
        pid = store.init_process(NEW_PRODUCT_TEMPLATE, INVALID_PRODUCT, MODERATOR)
        evaluator.evaluate_formula(CARD_VALID_GUARD, pid, INVALID_PRODUCT)
        record = next(r for r in captured_logs() if r["message"] == "formula_evaluated")
        assert record["formula_id"] == CARD_VALID_GUARD
        assert record["result"] is False
        assert record["groups"] == 1


class TestDescribe:

    def test_marketplace_formulas(self, evaluator):
        assert evaluator.describe(CARD_VALID_GUARD) == "(valid(weight) AND valid(brand))"
        assert evaluator.describe(MANAGER_SIGNOFF_GUARD) == (
            "(visited(mgr_approval) AND decided(mgr_approved))"
        )

    def test_unknown_formula_renders_true(self, evaluator):
        assert evaluator.describe(9999) == "true"

    def test_mixed_formula_uses_short_names(self, evaluator, dictionary):
        formula_id = dictionary.create_transition_function("mixed", function_id=71)
        dictionary.create_predicate(parameter_id=WEIGHT_PARAMETER, predicate_id=73)
        dictionary.create_predicate(decision_id=SUBMIT, predicate_id=74)
        dictionary.create_predicate(state_id=DRAFT, predicate_id=75)
        dictionary.add_formula_row(formula_id, 1, 1, 73)
        dictionary.add_formula_row(formula_id, 1, 2, 74)
        dictionary.add_formula_row(formula_id, 2, 1, 75)

        assert evaluator.describe(formula_id) == (
            "(valid(weight) AND decided(submit)) OR (visited(draft))"
        )

    def test_labels_for_predicates(self, session, marketplace):
        guards = GuardSelector(session)
        labels = guards.labels_for(guards.predicates_by_ids([1, 2, 3, 4]).values())
        assert labels["parameter"] == {WEIGHT_PARAMETER: "weight", BRAND_PARAMETER: "brand"}
        assert labels["state"] == {13: "mgr_approval"}
        assert labels["decision"] == {15: "mgr_approved"}
