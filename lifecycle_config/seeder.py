"""
Configuration seeding bridge (``lifecycle_config.seeder``).

Responsibility
--------------
Writes a validated ``WorkflowConfigurationSet`` into the database through
``DictionaryService``.  After seeding, the decision_map table holds the
configured transitions and is the only source the engine reads.

Invariants enforced
-------------------
* Idempotent: rows that already exist (same id) are left alone, so a set
  can be re-seeded after adding entries.
* Dependency order: dictionaries, then guard logic, then templates.
* Flush only; the caller commits.

Failure modes
-------------
* ``ValueError`` when the set does not validate.
* Kernel errors (``NonDeterministicTransitionError``,
  ``AmbiguousInitialStateError`` ...) when the set disagrees with rows
  already in the database.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from lifecycle_config.schema import WorkflowConfigurationSet
from lifecycle_config.validator import validate_configuration
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.catalog import ParameterModel
from lifecycle_kernel.models.guard import PredicateModel, TransitionFunctionModel
from lifecycle_kernel.models.workflow import (
    DecisionModel,
    ProcessTemplateModel,
    StateModel,
    TemplateStateModel,
)
from lifecycle_kernel.services.dictionary_service import DictionaryService

logger = get_logger("config.seeder")


@dataclass
class SeedReport:
    """Rows created by one seeding run."""

    states: int = 0
    decisions: int = 0
    parameters: int = 0
    transition_functions: int = 0
    predicates: int = 0
    formula_rows: int = 0
    templates: int = 0
    template_states: int = 0
    transitions: int = 0

    def total(self) -> int:
        return sum(vars(self).values())


def seed_configuration(session: Session, config: WorkflowConfigurationSet) -> SeedReport:
    """Seed ``config`` into the database behind ``session``."""
    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    service = DictionaryService(session)
    report = SeedReport()

    for s in config.states:
        if session.get(StateModel, s.id) is None:
            service.create_state(s.sh_name, s.name, state_id=s.id)
            report.states += 1
    for d in config.decisions:
        if session.get(DecisionModel, d.id) is None:
            service.create_decision(d.sh_name, d.name, decision_id=d.id)
            report.decisions += 1
    for p in config.parameters:
        if session.get(ParameterModel, p.id) is None:
            service.create_parameter(p.sh_name, p.name, p.type_par, parameter_id=p.id)
            report.parameters += 1

    for f in config.transition_functions:
        if session.get(TransitionFunctionModel, f.id) is None:
            service.create_transition_function(f.name, function_id=f.id)
            report.transition_functions += 1
    for p in config.predicates:
        if session.get(PredicateModel, p.id) is None:
            service.create_predicate(
                state_id=p.state_id,
                decision_id=p.decision_id,
                parameter_id=p.parameter_id,
                predicate_id=p.id,
            )
            report.predicates += 1
    for f in config.transition_functions:
        for row in f.rows:
            if service.add_formula_row(f.id, row.disjunction, row.conjunction, row.predicate_id):
                report.formula_rows += 1

    for t in config.templates:
        if session.get(ProcessTemplateModel, t.id) is None:
            service.create_template(t.sh_name, t.name, template_id=t.id, class_id=t.class_id)
            report.templates += 1
        for s in t.states:
            is_new = session.get(TemplateStateModel, (t.id, s.state_id)) is None
            service.add_template_state(
                t.id, s.state_id, is_initial=s.is_initial, formula_id=s.formula_id,
            )
            if is_new:
                report.template_states += 1
        for tr in t.transitions:
            if service.add_transition(t.id, tr.state_id, tr.decision_id, tr.next_state_id):
                report.transitions += 1

    logger.info(
        "configuration_seeded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "rows_created": report.total(),
        },
    )
    return report
