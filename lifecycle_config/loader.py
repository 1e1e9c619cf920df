"""
Configuration Loader (``lifecycle_config.loader``).

Responsibility
--------------
Loads a workflow configuration YAML file and parses it into the frozen
``lifecycle_config.schema`` dataclasses.  Runtime callers go through
``lifecycle_config.get_active_config()``; the seeding script and tests use
the loader directly.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` naming the offending
  entry; required fields have no silent defaults.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  form of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from lifecycle_config.schema import (
    DecisionDef,
    FormulaRowDef,
    ParameterDef,
    PredicateDef,
    StateDef,
    TemplateDef,
    TemplateStateEntry,
    TransitionDef,
    TransitionFunctionDef,
    WorkflowConfigurationSet,
)

_PREDICATE_KEYS = {"state": "state_id", "decision": "decision_id", "parameter": "parameter_id"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def parse_state(data: dict[str, Any]) -> StateDef:
    return StateDef(id=int(data["id"]), sh_name=data["sh_name"], name=data.get("name", data["sh_name"]))


def parse_decision(data: dict[str, Any]) -> DecisionDef:
    return DecisionDef(id=int(data["id"]), sh_name=data["sh_name"], name=data.get("name", data["sh_name"]))


def parse_parameter(data: dict[str, Any]) -> ParameterDef:
    return ParameterDef(
        id=int(data["id"]),
        sh_name=data["sh_name"],
        name=data.get("name", data["sh_name"]),
        type_par=str(data.get("type", "text")),
    )


def parse_predicate(data: dict[str, Any]) -> PredicateDef:
    """
    Parse a predicate.

    Accepts either the short keys (``state``, ``decision``, ``parameter``)
    or the column names (``state_id`` ...).  Setting more than one is left
    for the validator to report.
    """
    refs: dict[str, int | None] = {}
    for short, column in _PREDICATE_KEYS.items():
        value = data.get(short, data.get(column))
        refs[column] = _optional_int(value)
    return PredicateDef(id=int(data["id"]), **refs)


def parse_formula_row(data: dict[str, Any]) -> FormulaRowDef:
    return FormulaRowDef(
        disjunction=int(data["disjunction"]),
        conjunction=int(data["conjunction"]),
        predicate_id=int(data["predicate"]),
    )


def parse_transition_function(data: dict[str, Any]) -> TransitionFunctionDef:
    return TransitionFunctionDef(
        id=int(data["id"]),
        name=data["name"],
        rows=tuple(parse_formula_row(r) for r in data.get("formula", [])),
    )


def parse_template(data: dict[str, Any]) -> TemplateDef:
    """
    Parse a template.

    Transitions are written ``{from: 1, decision: 1, to: 2}``.
    """
    states = tuple(
        TemplateStateEntry(
            state_id=int(s["state"]),
            is_initial=bool(s.get("initial", False)),
            formula_id=_optional_int(s.get("guard")),
        )
        for s in data.get("states", [])
    )
    transitions = tuple(
        TransitionDef(
            state_id=int(t["from"]),
            decision_id=int(t["decision"]),
            next_state_id=int(t["to"]),
        )
        for t in data.get("transitions", [])
    )
    return TemplateDef(
        id=int(data["id"]),
        sh_name=data["sh_name"],
        name=data.get("name", data["sh_name"]),
        states=states,
        transitions=transitions,
        class_id=_optional_int(data.get("class_id")),
    )


def parse_configuration(data: dict[str, Any]) -> WorkflowConfigurationSet:
    """Parse a whole configuration document."""
    return WorkflowConfigurationSet(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        name=data.get("name", ""),
        states=tuple(parse_state(s) for s in data.get("states", [])),
        decisions=tuple(parse_decision(d) for d in data.get("decisions", [])),
        parameters=tuple(parse_parameter(p) for p in data.get("parameters", [])),
        predicates=tuple(parse_predicate(p) for p in data.get("predicates", [])),
        transition_functions=tuple(
            parse_transition_function(f) for f in data.get("transition_functions", [])
        ),
        templates=tuple(parse_template(t) for t in data.get("templates", [])),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> WorkflowConfigurationSet:
    """Load and parse one configuration file."""
    return parse_configuration(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
