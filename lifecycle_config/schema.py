"""
WorkflowConfigurationSet schema.

The human-authored, reviewable source artifact for workflow configuration:
dictionaries (states, decisions, parameters), guard logic (predicates and
transition functions with their formula rows) and process templates
(states, initial flag, guard binding, decision map).  The loader parses
YAML into these types; the seeder writes them to the database, where the
decision_map table becomes the authoritative copy.

All references between entries are by integer id, the same ids the
database rows receive.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Dictionaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StateDef:
    """A workflow state."""

    id: int
    sh_name: str
    name: str


@dataclass(frozen=True)
class DecisionDef:
    """A decision an actor can apply."""

    id: int
    sh_name: str
    name: str


@dataclass(frozen=True)
class ParameterDef:
    """A typed product parameter referenced by parameter-valid predicates."""

    id: int
    sh_name: str
    name: str
    type_par: str = "text"


# ---------------------------------------------------------------------------
# Guard logic
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PredicateDef:
    """Atomic condition; at most one of the three references is set."""

    id: int
    state_id: int | None = None
    decision_id: int | None = None
    parameter_id: int | None = None


@dataclass(frozen=True)
class FormulaRowDef:
    """One (disjunction, conjunction, predicate) triple."""

    disjunction: int
    conjunction: int
    predicate_id: int


@dataclass(frozen=True)
class TransitionFunctionDef:
    """A named DNF formula."""

    id: int
    name: str
    rows: tuple[FormulaRowDef, ...] = ()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateStateEntry:
    """A state used by a template."""

    state_id: int
    is_initial: bool = False
    formula_id: int | None = None


@dataclass(frozen=True)
class TransitionDef:
    """Decision map entry: state + decision -> next state."""

    state_id: int
    decision_id: int
    next_state_id: int


@dataclass(frozen=True)
class TemplateDef:
    """A process template."""

    id: int
    sh_name: str
    name: str
    states: tuple[TemplateStateEntry, ...] = ()
    transitions: tuple[TransitionDef, ...] = ()
    class_id: int | None = None

    def initial_states(self) -> tuple[int, ...]:
        return tuple(s.state_id for s in self.states if s.is_initial)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfigurationSet:
    """Root configuration artifact."""

    config_id: str
    version: int
    name: str = ""
    states: tuple[StateDef, ...] = ()
    decisions: tuple[DecisionDef, ...] = ()
    parameters: tuple[ParameterDef, ...] = ()
    predicates: tuple[PredicateDef, ...] = ()
    transition_functions: tuple[TransitionFunctionDef, ...] = ()
    templates: tuple[TemplateDef, ...] = ()
    checksum: str = ""

    def decision_map(self) -> dict[tuple[int, int, int], int]:
        """``{(template_id, state_id, decision_id): next_state_id}``; last entry wins."""
        return {
            (template.id, t.state_id, t.decision_id): t.next_state_id
            for template in self.templates
            for t in template.transitions
        }

    def formula_bindings(self) -> dict[tuple[int, int], int]:
        return {
            (template.id, s.state_id): s.formula_id
            for template in self.templates
            for s in template.states
            if s.formula_id is not None
        }
