"""Selectors for the lifecycle kernel (read side)."""

from lifecycle_kernel.selectors.catalog_selector import CatalogSelector, ParameterValue
from lifecycle_kernel.selectors.guard_selector import GuardSelector
from lifecycle_kernel.selectors.template_selector import TemplateSelector
from lifecycle_kernel.selectors.trajectory_selector import ProcessInfo, TrajectorySelector

__all__ = [
    "CatalogSelector",
    "GuardSelector",
    "ParameterValue",
    "ProcessInfo",
    "TemplateSelector",
    "TrajectorySelector",
]
