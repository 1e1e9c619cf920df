"""
lifecycle_services -- transition-gating services built on lifecycle_kernel.

The public entry point is LifecycleCore; the components are importable on
their own for tests and for callers that wire them differently.
"""

from lifecycle_services.core import LifecycleCore
from lifecycle_services.formula_evaluator import FormulaEvaluator
from lifecycle_services.predicate_evaluator import PredicateEvaluator
from lifecycle_services.process_driver import ProcessDriver
from lifecycle_services.transition_authorizer import (
    DecisionMapLookup,
    FormulaBindingLookup,
    StaticDecisionMap,
    TransitionAuthorizer,
)

__all__ = [
    "DecisionMapLookup",
    "FormulaBindingLookup",
    "FormulaEvaluator",
    "LifecycleCore",
    "PredicateEvaluator",
    "ProcessDriver",
    "StaticDecisionMap",
    "TransitionAuthorizer",
]
