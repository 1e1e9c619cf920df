"""
ORM models for the lifecycle kernel.

Importing this package registers every table on Base.metadata; the engine's
create_tables() relies on that.
"""

from lifecycle_kernel.models.catalog import (
    ParameterConstraintModel,
    ParameterModel,
    ProductClassModel,
    ProductModel,
    ProductParameterValueModel,
)
from lifecycle_kernel.models.guard import (
    FormulaRowModel,
    PredicateModel,
    TransitionFunctionModel,
)
from lifecycle_kernel.models.process import ProcessModel, TrajectoryStepModel
from lifecycle_kernel.models.workflow import (
    ActorGroupModel,
    ActorModel,
    DecisionMapModel,
    DecisionModel,
    GroupMembershipModel,
    ProcessTemplateModel,
    StateAccessModel,
    StateModel,
    TemplateStateModel,
)

__all__ = [
    "ActorGroupModel",
    "ActorModel",
    "DecisionMapModel",
    "DecisionModel",
    "FormulaRowModel",
    "GroupMembershipModel",
    "ParameterConstraintModel",
    "ParameterModel",
    "PredicateModel",
    "ProcessModel",
    "ProcessTemplateModel",
    "ProductClassModel",
    "ProductModel",
    "ProductParameterValueModel",
    "StateAccessModel",
    "StateModel",
    "TemplateStateModel",
    "TrajectoryStepModel",
    "TransitionFunctionModel",
]
