"""
Guard predicates and DNF formulas (``lifecycle_kernel.domain.predicates``).

Responsibility
--------------
Pure value objects for the guard language:

* a ``Predicate`` is exactly one of ``VisitedState``, ``UsedDecision``,
  ``ParameterValid`` or ``EmptyPredicate`` (tagged variant);
* a formula is a set of ``FormulaRow`` triples read as
  OR over disjunction groups of AND over each group's predicates.

Storage keeps predicates as one row with three nullable discriminator
columns; ``predicate_from_columns`` is the only place that decodes that
layout, so no caller ever tests "all fields null" itself.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* At most one discriminator column is set (``InvalidPredicateError``).
* Group and conjunction numbers carry no meaning beyond equality within a
  formula; grouping is by disjunction number, ordering inside a group is
  by conjunction number for reproducible short-circuiting only.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Union

from lifecycle_kernel.exceptions import InvalidPredicateError


@dataclass(frozen=True)
class VisitedState:
    """True iff the process trajectory contains ``state_id`` at any position."""

    predicate_id: int
    state_id: int

    kind = "visited_state"


@dataclass(frozen=True)
class UsedDecision:
    """True iff the process trajectory records ``decision_id`` at any position."""

    predicate_id: int
    decision_id: int

    kind = "used_decision"


@dataclass(frozen=True)
class ParameterValid:
    """True iff the subject's value for ``parameter_id`` passes its constraints.

    A missing value counts as valid.
    """

    predicate_id: int
    parameter_id: int

    kind = "parameter_valid"


@dataclass(frozen=True)
class EmptyPredicate:
    """No discriminator set. Always true."""

    predicate_id: int

    kind = "empty"


Predicate = Union[VisitedState, UsedDecision, ParameterValid, EmptyPredicate]


def predicate_from_columns(
    predicate_id: int,
    state_id: int | None = None,
    decision_id: int | None = None,
    parameter_id: int | None = None,
) -> Predicate:
    """Decode the nullable-column storage layout into a tagged predicate.

    Raises:
        InvalidPredicateError: more than one discriminator is set.
    """
    present = [
        name
        for name, value in (
            ("state_id", state_id),
            ("decision_id", decision_id),
            ("parameter_id", parameter_id),
        )
        if value is not None
    ]
    if len(present) > 1:
        raise InvalidPredicateError(
            f"predicate {predicate_id} sets {', '.join(present)}; at most one allowed"
        )
    if state_id is not None:
        return VisitedState(predicate_id, state_id)
    if decision_id is not None:
        return UsedDecision(predicate_id, decision_id)
    if parameter_id is not None:
        return ParameterValid(predicate_id, parameter_id)
    return EmptyPredicate(predicate_id)


def predicate_columns(predicate: Predicate) -> dict[str, int | None]:
    """Encode a tagged predicate back into its storage columns."""
    return {
        "state_id": predicate.state_id if isinstance(predicate, VisitedState) else None,
        "decision_id": predicate.decision_id if isinstance(predicate, UsedDecision) else None,
        "parameter_id": predicate.parameter_id if isinstance(predicate, ParameterValid) else None,
    }


@dataclass(frozen=True)
class FormulaRow:
    """One (disjunction, conjunction, predicate) triple of a formula."""

    formula_id: int
    disjunction: int
    conjunction: int
    predicate_id: int

    def __post_init__(self) -> None:
        if self.disjunction < 1 or self.conjunction < 1:
            raise ValueError(
                "Disjunction and conjunction numbers must be positive integers"
            )


def group_formula_rows(rows: Iterable[FormulaRow]) -> dict[int, tuple[int, ...]]:
    """Group rows by disjunction number.

    Returns ``{disjunction: (predicate_id, ...)}`` with groups and members
    sorted by their numbers.
    """
    groups: dict[int, list[tuple[int, int]]] = {}
    for row in rows:
        groups.setdefault(row.disjunction, []).append((row.conjunction, row.predicate_id))
    return {
        dis: tuple(pred_id for _, pred_id in sorted(members))
        for dis, members in sorted(groups.items())
    }


def evaluate_dnf(
    groups: Mapping[int, tuple[int, ...]],
    evaluate_predicate: Callable[[int], bool],
) -> bool:
    """OR over groups of AND over members.

    An empty formula is true.  Evaluation short-circuits inside a group on
    the first false member and across groups on the first true group.
    """
    if not groups:
        return True
    for members in groups.values():
        if all(evaluate_predicate(pred_id) for pred_id in members):
            return True
    return False


def describe_predicate(
    predicate: Predicate | None,
    names: Mapping[str, Mapping[int, str]] | None = None,
) -> str:
    """Human-readable rendering of one predicate."""
    names = names or {}
    if predicate is None:
        return "<missing predicate>"
    if isinstance(predicate, VisitedState):
        label = names.get("state", {}).get(predicate.state_id, f"#{predicate.state_id}")
        return f"visited({label})"
    if isinstance(predicate, UsedDecision):
        label = names.get("decision", {}).get(predicate.decision_id, f"#{predicate.decision_id}")
        return f"decided({label})"
    if isinstance(predicate, ParameterValid):
        label = names.get("parameter", {}).get(
            predicate.parameter_id, f"#{predicate.parameter_id}"
        )
        return f"valid({label})"
    return "true"


def describe_formula(
    groups: Mapping[int, tuple[int, ...]],
    predicates: Mapping[int, Predicate],
    names: Mapping[str, Mapping[int, str]] | None = None,
) -> str:
    """Render a grouped formula as ``(a AND b) OR (c)``; empty renders as ``true``."""
    if not groups:
        return "true"
    clauses = []
    for members in groups.values():
        terms = [describe_predicate(predicates.get(pid), names) for pid in members]
        clauses.append("(" + " AND ".join(terms) + ")")
    return " OR ".join(clauses)
