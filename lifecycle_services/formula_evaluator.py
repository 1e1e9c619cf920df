"""
lifecycle_services.formula_evaluator -- DNF guard formula evaluation.

Responsibility:
    Evaluates a stored formula: OR over disjunction groups of AND over the
    predicates in each group.  Also renders a formula as text for
    diagnostics.

Architecture position:
    Services layer.  Loads rows and predicates through GuardSelector and
    delegates each conjunct to PredicateEvaluator.

Invariants enforced:
    - A formula without rows is true.
    - All predicates of a formula are loaded with one query before any of
      them is evaluated.
    - A row whose predicate no longer exists makes that conjunct false.
    - Deterministic and read-only.
"""

from __future__ import annotations

import time

from sqlalchemy.orm import Session

from lifecycle_kernel.domain.predicates import (
    describe_formula,
    evaluate_dnf,
    group_formula_rows,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.selectors.guard_selector import GuardSelector
from lifecycle_services.predicate_evaluator import PredicateEvaluator

logger = get_logger("services.formula_evaluator")


class FormulaEvaluator:
    """Evaluates transition functions stored as formula rows."""

    def __init__(
        self,
        session: Session,
        predicate_evaluator: PredicateEvaluator | None = None,
    ):
        self._guards = GuardSelector(session)
        self._predicates = predicate_evaluator or PredicateEvaluator(session)

    def evaluate_formula(self, formula_id: int, process_id: int, subject_id: str) -> bool:
        t0 = time.monotonic()
        rows = self._guards.formula_rows(formula_id)
        if not rows:
            logger.debug(
                "formula_evaluated",
                extra={"formula_id": formula_id, "process_id": process_id,
                       "result": True, "groups": 0},
            )
            return True

        groups = group_formula_rows(rows)
        predicates = self._guards.predicates_by_ids(row.predicate_id for row in rows)

        def evaluate_member(predicate_id: int) -> bool:
            predicate = predicates.get(predicate_id)
            if predicate is None:
                logger.warning(
                    "predicate_reference_missing",
                    extra={
                        "formula_id": formula_id,
                        "predicate_id": predicate_id,
                        "missing_entity": "predicate",
                    },
                )
                return False
            return self._predicates.evaluate(predicate, process_id, subject_id)

        result = evaluate_dnf(groups, evaluate_member)
        logger.info(
            "formula_evaluated",
            extra={
                "formula_id": formula_id,
                "process_id": process_id,
                "product_id": subject_id,
                "result": result,
                "groups": len(groups),
                "duration_ms": round((time.monotonic() - t0) * 1000, 3),
            },
        )
        return result

    def describe(self, formula_id: int) -> str:
        """Render the formula as ``(a AND b) OR (c)`` using dictionary short names."""
        rows = self._guards.formula_rows(formula_id)
        groups = group_formula_rows(rows)
        predicates = self._guards.predicates_by_ids(row.predicate_id for row in rows)
        labels = self._guards.labels_for(predicates.values())
        return describe_formula(groups, predicates, labels)
