"""
Guard definition selector.

Read access to transition functions, predicates and formula rows.  Formula
evaluation loads a formula's rows with one query and all predicates those
rows reference with a second one, regardless of formula size.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from lifecycle_kernel.domain.predicates import (
    FormulaRow,
    ParameterValid,
    Predicate,
    UsedDecision,
    VisitedState,
)
from lifecycle_kernel.models.catalog import ParameterModel
from lifecycle_kernel.models.guard import FormulaRowModel, PredicateModel
from lifecycle_kernel.models.workflow import DecisionModel, StateModel
from lifecycle_kernel.selectors.base import BaseSelector


class GuardSelector(BaseSelector):
    """Queries over predicate and formula_row."""

    def formula_rows(self, formula_id: int) -> tuple[FormulaRow, ...]:
        stmt = (
            select(FormulaRowModel)
            .where(FormulaRowModel.formula_id == formula_id)
            .order_by(
                FormulaRowModel.disjunction,
                FormulaRowModel.conjunction,
                FormulaRowModel.predicate_id,
            )
        )
        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars())

    def get_predicate(self, predicate_id: int) -> Predicate | None:
        row = self.session.get(PredicateModel, predicate_id)
        return row.to_dto() if row is not None else None

    def predicates_by_ids(self, predicate_ids: Iterable[int]) -> dict[int, Predicate]:
        """Batch-load predicates; ids with no row are absent from the result."""
        ids = sorted(set(predicate_ids))
        if not ids:
            return {}
        stmt = select(PredicateModel).where(PredicateModel.id.in_(ids))
        return {row.id: row.to_dto() for row in self.session.execute(stmt).scalars()}

    def formulas_using_predicate(self, predicate_id: int) -> tuple[int, ...]:
        stmt = (
            select(FormulaRowModel.formula_id)
            .where(FormulaRowModel.predicate_id == predicate_id)
            .distinct()
            .order_by(FormulaRowModel.formula_id)
        )
        return tuple(self.session.execute(stmt).scalars())

    def labels_for(self, predicates: Iterable[Predicate]) -> dict[str, dict[int, str]]:
        """Short names of the states, decisions and parameters predicates refer to."""
        wanted: dict[str, set[int]] = {"state": set(), "decision": set(), "parameter": set()}
        for predicate in predicates:
            if isinstance(predicate, VisitedState):
                wanted["state"].add(predicate.state_id)
            elif isinstance(predicate, UsedDecision):
                wanted["decision"].add(predicate.decision_id)
            elif isinstance(predicate, ParameterValid):
                wanted["parameter"].add(predicate.parameter_id)

        labels: dict[str, dict[int, str]] = {}
        for key, model in (
            ("state", StateModel),
            ("decision", DecisionModel),
            ("parameter", ParameterModel),
        ):
            ids = wanted[key]
            if not ids:
                labels[key] = {}
                continue
            stmt = select(model.id, model.sh_name).where(model.id.in_(sorted(ids)))
            labels[key] = {row_id: code for row_id, code in self.session.execute(stmt)}
        return labels
