"""
Parameter typing and validity (``lifecycle_kernel.domain.parameters``).

Responsibility
--------------
Type-specific validity checks for product parameter values against the
class-scoped constraint of the product's class.  Values and bounds are
stored as text; each parameter type interprets them its own way:

* ``number`` -- Decimal value, inclusive ``min_val`` / ``max_val``.
* ``text``   -- length bounds from ``min_val`` / ``max_val``, optional
  full-match regex ``pattern``, optional enumerated ``allowed_values``.
* ``bool``   -- one of the recognised literals.
* ``date``   -- ISO-8601 date, inclusive ISO date bounds.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Failure modes
-------------
Malformed values or malformed bounds make the value invalid; nothing here
raises for bad data.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum


class ParameterType(str, Enum):
    """Parameter value types."""

    TEXT = "text"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"


TRUE_LITERALS = frozenset({"true", "1", "yes", "y", "on"})
FALSE_LITERALS = frozenset({"false", "0", "no", "n", "off"})


@dataclass(frozen=True)
class ParameterConstraint:
    """Validity constraint of one parameter within one product class."""

    parameter_id: int
    class_id: int
    min_val: str | None = None
    max_val: str | None = None
    pattern: str | None = None
    allowed_values: tuple[str, ...] = ()


def is_missing(value: str | None) -> bool:
    """A NULL or blank value counts as "no value"."""
    return value is None or value.strip() == ""


def _to_decimal(raw: str | None) -> Decimal | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        parsed = Decimal(raw.strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {raw!r}")
    if not parsed.is_finite():
        raise ValueError(f"not a finite number: {raw!r}")
    return parsed


def _to_date(raw: str | None) -> date | None:
    if raw is None or raw.strip() == "":
        return None
    return date.fromisoformat(raw.strip())


def _to_length(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    return int(raw.strip())


def _within(value, lower, upper) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def _validate_number(value: str, constraint: ParameterConstraint | None) -> bool:
    number = _to_decimal(value)
    if constraint is None:
        return True
    return _within(number, _to_decimal(constraint.min_val), _to_decimal(constraint.max_val))


def _validate_text(value: str, constraint: ParameterConstraint | None) -> bool:
    if constraint is None:
        return True
    if not _within(len(value), _to_length(constraint.min_val), _to_length(constraint.max_val)):
        return False
    if constraint.pattern and re.fullmatch(constraint.pattern, value) is None:
        return False
    if constraint.allowed_values and value not in constraint.allowed_values:
        return False
    return True


def _validate_bool(value: str, constraint: ParameterConstraint | None) -> bool:
    literal = value.strip().lower()
    if literal not in TRUE_LITERALS and literal not in FALSE_LITERALS:
        return False
    if constraint is not None and constraint.allowed_values:
        wanted = {v.strip().lower() in TRUE_LITERALS for v in constraint.allowed_values}
        return (literal in TRUE_LITERALS) in wanted
    return True


def _validate_date(value: str, constraint: ParameterConstraint | None) -> bool:
    day = _to_date(value)
    if constraint is None:
        return True
    return _within(day, _to_date(constraint.min_val), _to_date(constraint.max_val))


_VALIDATORS = {
    ParameterType.NUMBER: _validate_number,
    ParameterType.TEXT: _validate_text,
    ParameterType.BOOL: _validate_bool,
    ParameterType.DATE: _validate_date,
}


def validate_parameter_value(
    value: str | None,
    parameter_type: ParameterType | str,
    constraint: ParameterConstraint | None = None,
) -> bool:
    """Check a stored parameter value against its type and class constraint.

    Missing values are valid (there is nothing to invalidate).  Unknown
    parameter types and unparseable values or bounds are invalid.
    """
    if is_missing(value):
        return True
    try:
        ptype = ParameterType(parameter_type)
    except ValueError:
        return False
    try:
        return _VALIDATORS[ptype](value, constraint)
    except (ValueError, re.error):
        return False
