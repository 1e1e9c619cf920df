"""
lifecycle_services.predicate_evaluator -- Atomic guard condition evaluation.

Responsibility:
    Decides one predicate against one process and its subject product:
    visited-state and used-decision predicates consult the trajectory,
    parameter-valid predicates consult the catalog and the parameter type
    validators, the empty predicate is always true.

Architecture position:
    Services layer.  Reads through kernel selectors; never writes.

Invariants enforced:
    - A missing parameter value (no row, NULL or empty string) satisfies
      a parameter-valid predicate.
    - Missing process, subject or parameter rows evaluate to False and are
      logged; they never raise.
    - Storage errors propagate unchanged.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from lifecycle_kernel.domain.parameters import is_missing, validate_parameter_value
from lifecycle_kernel.domain.predicates import (
    EmptyPredicate,
    ParameterValid,
    Predicate,
    UsedDecision,
    VisitedState,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.selectors.catalog_selector import CatalogSelector
from lifecycle_kernel.selectors.trajectory_selector import TrajectorySelector

logger = get_logger("services.predicate_evaluator")


class PredicateEvaluator:
    """Evaluates tagged predicates against stored trajectories and catalog values."""

    def __init__(self, session: Session):
        self._trajectories = TrajectorySelector(session)
        self._catalog = CatalogSelector(session)

    def evaluate(self, predicate: Predicate, process_id: int, subject_id: str) -> bool:
        if isinstance(predicate, EmptyPredicate):
            return True

        if self._trajectories.get_process(process_id) is None:
            self._log_missing(predicate, "process", process_id)
            return False

        if isinstance(predicate, VisitedState):
            return self._trajectories.has_visited_state(process_id, predicate.state_id)
        if isinstance(predicate, UsedDecision):
            return self._trajectories.has_used_decision(process_id, predicate.decision_id)
        if isinstance(predicate, ParameterValid):
            return self._parameter_valid(predicate, subject_id)

        raise TypeError(f"Unsupported predicate type: {type(predicate).__name__}")

    def _parameter_valid(self, predicate: ParameterValid, subject_id: str) -> bool:
        class_id = self._catalog.product_class_id(subject_id)
        if class_id is None:
            self._log_missing(predicate, "product", subject_id)
            return False

        parameter_type = self._catalog.parameter_type(predicate.parameter_id)
        if parameter_type is None:
            self._log_missing(predicate, "parameter", predicate.parameter_id)
            return False

        value = self._catalog.parameter_value(subject_id, predicate.parameter_id)
        if value is None or is_missing(value.val):
            return True

        constraint = self._catalog.constraint(class_id, predicate.parameter_id)
        valid = validate_parameter_value(value.val, parameter_type, constraint)
        logger.debug(
            "parameter_checked",
            extra={
                "predicate_id": predicate.predicate_id,
                "parameter_id": predicate.parameter_id,
                "product_id": subject_id,
                "valid": valid,
            },
        )
        return valid

    @staticmethod
    def _log_missing(predicate: Predicate, entity: str, entity_id) -> None:
        logger.warning(
            "predicate_reference_missing",
            extra={
                "predicate_id": predicate.predicate_id,
                "predicate_kind": predicate.kind,
                "missing_entity": entity,
                "missing_id": entity_id,
            },
        )
