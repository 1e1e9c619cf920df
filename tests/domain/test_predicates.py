"""
Tests for the guard language value objects (lifecycle_kernel.domain.predicates).

Covers:
- Decoding the nullable-column predicate layout into tagged variants
- Formula row validation and grouping by disjunction number
- DNF evaluation: empty formula, short-circuiting, OR of ANDs
- Human-readable rendering
"""

import pytest

from lifecycle_kernel.domain.predicates import (
    EmptyPredicate,
    FormulaRow,
    ParameterValid,
    UsedDecision,
    VisitedState,
    describe_formula,
    describe_predicate,
    evaluate_dnf,
    group_formula_rows,
    predicate_columns,
    predicate_from_columns,
)
from lifecycle_kernel.exceptions import InvalidPredicateError


class TestPredicateFromColumns:

    def test_state_column_gives_visited_state(self):
        assert predicate_from_columns(7, state_id=3) == VisitedState(7, 3)

    def test_decision_column_gives_used_decision(self):
        assert predicate_from_columns(7, decision_id=4) == UsedDecision(7, 4)

    def test_parameter_column_gives_parameter_valid(self):
        assert predicate_from_columns(7, parameter_id=5) == ParameterValid(7, 5)

    def test_no_column_gives_empty_predicate(self):
        predicate = predicate_from_columns(7)
        assert isinstance(predicate, EmptyPredicate)
        assert predicate.kind == "empty"

    def test_two_columns_are_rejected(self):
        with pytest.raises(InvalidPredicateError) as exc_info:
            predicate_from_columns(7, state_id=3, parameter_id=5)
        assert "state_id" in exc_info.value.reason
        assert "parameter_id" in exc_info.value.reason

    def test_columns_encode_back(self):
        assert predicate_columns(UsedDecision(1, 9)) == {
            "state_id": None,
            "decision_id": 9,
            "parameter_id": None,
        }
        assert predicate_columns(EmptyPredicate(1)) == {
            "state_id": None,
            "decision_id": None,
            "parameter_id": None,
        }


class TestFormulaRows:

    @pytest.mark.parametrize("disjunction,conjunction", [(0, 1), (1, 0), (-1, 2)])
    def test_non_positive_numbers_rejected(self, disjunction, conjunction):
        with pytest.raises(ValueError):
            FormulaRow(1, disjunction, conjunction, 10)

    def test_grouping_sorts_groups_and_members(self):
        rows = [
            FormulaRow(1, 2, 1, 30),
            FormulaRow(1, 1, 2, 20),
            FormulaRow(1, 1, 1, 10),
        ]
        assert group_formula_rows(rows) == {1: (10, 20), 2: (30,)}

    def test_group_numbers_need_not_be_contiguous(self):
        rows = [FormulaRow(1, 5, 9, 1), FormulaRow(1, 12, 3, 2)]
        assert list(group_formula_rows(rows)) == [5, 12]


class TestEvaluateDnf:

    def test_empty_formula_is_true(self):
        assert evaluate_dnf({}, lambda pid: False) is True

    def test_or_of_ands(self):
        truth = {10: True, 20: False, 30: True}
        groups = {1: (10, 20), 2: (30,)}
        assert evaluate_dnf(groups, truth.__getitem__) is True

    def test_all_groups_false(self):
        truth = {10: True, 20: False, 30: False}
        groups = {1: (10, 20), 2: (30,)}
        assert evaluate_dnf(groups, truth.__getitem__) is False

    def test_short_circuits_inside_and_across_groups(self):
        calls = []
        truth = {10: False, 20: True, 30: True, 40: True}

        def evaluate(pid):
            calls.append(pid)
            return truth[pid]

        groups = {1: (10, 20), 2: (30,), 3: (40,)}
        assert evaluate_dnf(groups, evaluate) is True
        assert calls == [10, 30]


class TestDescribe:

    def test_describe_predicates_with_and_without_labels(self):
        names = {"state": {3: "mgr_approval"}}
        assert describe_predicate(VisitedState(1, 3), names) == "visited(mgr_approval)"
        assert describe_predicate(UsedDecision(2, 15)) == "decided(#15)"
        assert describe_predicate(ParameterValid(3, 4)) == "valid(#4)"
        assert describe_predicate(EmptyPredicate(4)) == "true"
        assert describe_predicate(None) == "<missing predicate>"

    def test_describe_formula(self):
        predicates = {1: ParameterValid(1, 3), 2: ParameterValid(2, 4), 3: VisitedState(3, 13)}
        names = {"parameter": {3: "weight", 4: "brand"}, "state": {13: "mgr_approval"}}
        groups = {1: (1, 2), 2: (3,)}
        assert describe_formula(groups, predicates, names) == (
            "(valid(weight) AND valid(brand)) OR (visited(mgr_approval))"
        )

    def test_describe_empty_formula(self):
        assert describe_formula({}, {}) == "true"
