"""
Tests for parameter validity (lifecycle_kernel.domain.parameters).
"""

import pytest

from lifecycle_kernel.domain.parameters import (
    ParameterConstraint,
    ParameterType,
    is_missing,
    validate_parameter_value,
)


def _constraint(**kwargs) -> ParameterConstraint:
    return ParameterConstraint(parameter_id=1, class_id=1, **kwargs)


class TestMissingValues:

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_values_are_valid_for_every_type(self, value):
        assert is_missing(value)
        for ptype in ParameterType:
            assert validate_parameter_value(value, ptype, _constraint(min_val="5")) is True


class TestNumber:

    def test_within_inclusive_bounds(self):
        c = _constraint(min_val="100", max_val="500")
        assert validate_parameter_value("100", "number", c)
        assert validate_parameter_value("500.0", "number", c)
        assert not validate_parameter_value("500.01", "number", c)
        assert not validate_parameter_value("99", "number", c)

    def test_open_bound(self):
        assert validate_parameter_value("1e6", "number", _constraint(min_val="0"))

    def test_not_a_number(self):
        assert not validate_parameter_value("heavy", "number", None)
        assert not validate_parameter_value("NaN", "number", None)

    def test_malformed_bound_makes_value_invalid(self):
        assert not validate_parameter_value("10", "number", _constraint(max_val="lots"))


class TestText:

    def test_no_constraint(self):
        assert validate_parameter_value("anything", ParameterType.TEXT)

    def test_length_bounds(self):
        c = _constraint(min_val="2", max_val="4")
        assert validate_parameter_value("abc", "text", c)
        assert not validate_parameter_value("a", "text", c)
        assert not validate_parameter_value("abcde", "text", c)

    def test_pattern_must_match_fully(self):
        c = _constraint(pattern="[A-Z][a-z]+")
        assert validate_parameter_value("Acme", "text", c)
        assert not validate_parameter_value("Acme1", "text", c)

    def test_broken_pattern_is_invalid(self):
        assert not validate_parameter_value("Acme", "text", _constraint(pattern="[A-"))

    def test_allowed_values(self):
        c = _constraint(allowed_values=("red", "black"))
        assert validate_parameter_value("red", "text", c)
        assert not validate_parameter_value("green", "text", c)


class TestBoolAndDate:

    def test_bool_literals(self):
        assert validate_parameter_value("Yes", "bool")
        assert validate_parameter_value("0", "bool")
        assert not validate_parameter_value("maybe", "bool")

    def test_bool_allowed_values(self):
        c = _constraint(allowed_values=("true",))
        assert validate_parameter_value("on", "bool", c)
        assert not validate_parameter_value("off", "bool", c)

    def test_date_bounds(self):
        c = _constraint(min_val="2024-01-01", max_val="2024-12-31")
        assert validate_parameter_value("2024-06-30", "date", c)
        assert not validate_parameter_value("2025-01-01", "date", c)
        assert not validate_parameter_value("30/06/2024", "date", c)


def test_unknown_type_is_invalid():
    assert not validate_parameter_value("1", "colour")
