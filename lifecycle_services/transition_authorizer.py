"""
lifecycle_services.transition_authorizer -- Is this decision allowed now?

Responsibility:
    Combines the decision map (structural legality) with the guard formula
    bound to the current state (dynamic legality) into one
    AuthorizationResult.

Architecture position:
    Services layer.  The decision map, the formula bindings and the formula
    evaluator are injected collaborators described by the protocols below.
    TemplateSelector is the database implementation of both lookups;
    StaticDecisionMap is an in-memory one for tests and configuration
    previews.

Invariants enforced:
    - A decision-map miss is denied without evaluating any formula.
    - No bound guard means the mapped transition is allowed.
    - The two denial reasons are distinct and fixed strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from lifecycle_kernel.domain.workflow import AuthorizationResult, DecisionOption
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("services.transition_authorizer")


# ---------------------------------------------------------------------------
# Injected collaborators
# ---------------------------------------------------------------------------


@runtime_checkable
class DecisionMapLookup(Protocol):
    def next_state(self, template_id: int, state_id: int, decision_id: int) -> int | None: ...

    def decisions_from(self, template_id: int, state_id: int) -> tuple[DecisionOption, ...]: ...


@runtime_checkable
class FormulaBindingLookup(Protocol):
    def formula_for(self, template_id: int, state_id: int) -> int | None: ...


@runtime_checkable
class FormulaEvaluatorLike(Protocol):
    def evaluate_formula(self, formula_id: int, process_id: int, subject_id: str) -> bool: ...


class StaticDecisionMap:
    """
    In-memory decision map and guard bindings.

    ``transitions`` maps ``(template_id, state_id, decision_id)`` to the next
    state; ``formulas`` maps ``(template_id, state_id)`` to a formula id.
    """

    def __init__(
        self,
        transitions: Mapping[tuple[int, int, int], int],
        formulas: Mapping[tuple[int, int], int] | None = None,
        decision_labels: Mapping[int, tuple[str, str]] | None = None,
    ):
        self._transitions = dict(transitions)
        self._formulas = dict(formulas or {})
        self._labels = dict(decision_labels or {})

    @classmethod
    def from_configuration(cls, config) -> StaticDecisionMap:
        """Build from a ``WorkflowConfigurationSet`` without touching the database."""
        return cls(
            config.decision_map(),
            config.formula_bindings(),
            {d.id: (d.sh_name, d.name) for d in config.decisions},
        )

    def next_state(self, template_id: int, state_id: int, decision_id: int) -> int | None:
        return self._transitions.get((template_id, state_id, decision_id))

    def decisions_from(self, template_id: int, state_id: int) -> tuple[DecisionOption, ...]:
        options = []
        for (tpl, state, decision), next_state_id in sorted(self._transitions.items()):
            if tpl != template_id or state != state_id:
                continue
            code, name = self._labels.get(decision, (str(decision), str(decision)))
            options.append(
                DecisionOption(
                    decision_id=decision,
                    code=code,
                    name=name,
                    next_state_id=next_state_id,
                )
            )
        return tuple(options)

    def formula_for(self, template_id: int, state_id: int) -> int | None:
        return self._formulas.get((template_id, state_id))


# ---------------------------------------------------------------------------
# Authorizer
# ---------------------------------------------------------------------------


class TransitionAuthorizer:
    """Decides whether a decision may move a process out of its current state."""

    def __init__(
        self,
        decision_map: DecisionMapLookup,
        formula_bindings: FormulaBindingLookup,
        formula_evaluator: FormulaEvaluatorLike,
    ):
        self.decision_map = decision_map
        self.formula_bindings = formula_bindings
        self.formula_evaluator = formula_evaluator

    def authorize(
        self,
        template_id: int,
        current_state_id: int,
        decision_id: int,
        process_id: int,
        subject_id: str,
    ) -> AuthorizationResult:
        next_state_id = self.decision_map.next_state(template_id, current_state_id, decision_id)
        if next_state_id is None:
            return AuthorizationResult.undefined()

        formula_id = self.formula_bindings.formula_for(template_id, current_state_id)
        if formula_id is None:
            return AuthorizationResult.allow(next_state_id)

        if self.formula_evaluator.evaluate_formula(formula_id, process_id, subject_id):
            return AuthorizationResult.allow(next_state_id, formula_id=formula_id)

        logger.info(
            "guard_not_satisfied",
            extra={
                "template_id": template_id,
                "state_id": current_state_id,
                "decision_id": decision_id,
                "formula_id": formula_id,
                "process_id": process_id,
            },
        )
        return AuthorizationResult.guard_failed(formula_id)
