"""
Configuration Validator (``lifecycle_config.validator``).

Responsibility
--------------
Structural checks on a parsed ``WorkflowConfigurationSet`` before it is
seeded: unique ids, exactly one initial state per template, transitions
only between template states, deterministic (state, decision) pairs,
well-formed predicates and formula rows.

Invariants enforced
-------------------
* ``is_valid`` is ``True`` only when ``errors`` is empty.
* All problems are collected; validation never stops at the first one.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from lifecycle_config.schema import WorkflowConfigurationSet

_PARAMETER_TYPES = frozenset({"text", "number", "bool", "date"})


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    Warnings do not block seeding but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: WorkflowConfigurationSet) -> ConfigValidationResult:
    """Validate a configuration set; a set with errors must not be seeded."""
    result = ConfigValidationResult()

    _validate_unique_ids(config, result)
    _validate_parameters(config, result)
    _validate_predicates(config, result)
    _validate_formulas(config, result)
    _validate_templates(config, result)

    return result


def _duplicates(ids) -> list[int]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


def _validate_unique_ids(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    for label, entries in (
        ("state", config.states),
        ("decision", config.decisions),
        ("parameter", config.parameters),
        ("predicate", config.predicates),
        ("transition function", config.transition_functions),
        ("template", config.templates),
    ):
        for dup in _duplicates(e.id for e in entries):
            result.add_error(f"Duplicate {label} id {dup}")

    for label, entries in (
        ("state", config.states),
        ("decision", config.decisions),
        ("template", config.templates),
    ):
        for name, n in Counter(e.sh_name for e in entries).items():
            if n > 1:
                result.add_error(f"Duplicate {label} sh_name '{name}'")


def _validate_parameters(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    for p in config.parameters:
        if p.type_par not in _PARAMETER_TYPES:
            result.add_error(
                f"Parameter {p.id} ({p.sh_name}) has unknown type '{p.type_par}'"
            )


def _validate_predicates(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    states = {s.id for s in config.states}
    decisions = {d.id for d in config.decisions}
    parameters = {p.id for p in config.parameters}

    for p in config.predicates:
        refs = [r for r in (p.state_id, p.decision_id, p.parameter_id) if r is not None]
        if len(refs) > 1:
            result.add_error(f"Predicate {p.id} sets more than one of state/decision/parameter")
            continue
        if p.state_id is not None and p.state_id not in states:
            result.add_error(f"Predicate {p.id} refers to unknown state {p.state_id}")
        if p.decision_id is not None and p.decision_id not in decisions:
            result.add_error(f"Predicate {p.id} refers to unknown decision {p.decision_id}")
        if p.parameter_id is not None and p.parameter_id not in parameters:
            result.add_error(f"Predicate {p.id} refers to unknown parameter {p.parameter_id}")
        if not refs:
            result.add_warning(f"Predicate {p.id} has no condition and is always true")


def _validate_formulas(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    predicates = {p.id for p in config.predicates}
    for f in config.transition_functions:
        for row in f.rows:
            if row.disjunction < 1 or row.conjunction < 1:
                result.add_error(
                    f"Transition function {f.id}: disjunction/conjunction numbers "
                    f"must be positive (got {row.disjunction}/{row.conjunction})"
                )
            if row.predicate_id not in predicates:
                result.add_error(
                    f"Transition function {f.id} refers to unknown predicate {row.predicate_id}"
                )
        if not f.rows:
            result.add_warning(f"Transition function {f.id} ({f.name}) is empty and always true")


def _validate_templates(config: WorkflowConfigurationSet, result: ConfigValidationResult) -> None:
    states = {s.id for s in config.states}
    decisions = {d.id for d in config.decisions}
    functions = {f.id for f in config.transition_functions}

    for t in config.templates:
        label = f"Template {t.id} ({t.sh_name})"
        initial = t.initial_states()
        if len(initial) != 1:
            result.add_error(f"{label} must have exactly one initial state, found {len(initial)}")

        template_states = set()
        for s in t.states:
            if s.state_id not in states:
                result.add_error(f"{label} uses unknown state {s.state_id}")
            if s.state_id in template_states:
                result.add_error(f"{label} lists state {s.state_id} twice")
            template_states.add(s.state_id)
            if s.formula_id is not None and s.formula_id not in functions:
                result.add_error(
                    f"{label} binds unknown transition function {s.formula_id} "
                    f"to state {s.state_id}"
                )

        seen: dict[tuple[int, int], int] = {}
        for tr in t.transitions:
            for sid in (tr.state_id, tr.next_state_id):
                if sid not in template_states:
                    result.add_error(f"{label}: transition uses state {sid} outside the template")
            if tr.decision_id not in decisions:
                result.add_error(f"{label}: transition uses unknown decision {tr.decision_id}")
            key = (tr.state_id, tr.decision_id)
            if key in seen:
                if seen[key] != tr.next_state_id:
                    result.add_error(
                        f"{label}: state {tr.state_id} + decision {tr.decision_id} leads to "
                        f"both {seen[key]} and {tr.next_state_id}"
                    )
                else:
                    result.add_warning(
                        f"{label}: transition {tr.state_id} + {tr.decision_id} listed twice"
                    )
            seen[key] = tr.next_state_id
