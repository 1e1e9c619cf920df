"""
Catalog selector.

Read-only access to the product catalog data that parameter-valid predicates
need: a product's class, a parameter's type, the product's current value and
the class-scoped constraint.  The catalog itself is maintained elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from lifecycle_kernel.domain.parameters import ParameterConstraint
from lifecycle_kernel.models.catalog import (
    ParameterConstraintModel,
    ParameterModel,
    ProductModel,
    ProductParameterValueModel,
)
from lifecycle_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ParameterValue:
    """Current value of a parameter for a product. Source: product_parameter."""

    product_id: str
    parameter_id: int
    val: str | None
    note: str | None = None


class CatalogSelector(BaseSelector):
    """Queries over product, parameter, parameter_constraint and product_parameter."""

    def product_class_id(self, product_id: str) -> int | None:
        return self.session.execute(
            select(ProductModel.class_id).where(ProductModel.id == product_id)
        ).scalar_one_or_none()

    def parameter_type(self, parameter_id: int) -> str | None:
        return self.session.execute(
            select(ParameterModel.type_par).where(ParameterModel.id == parameter_id)
        ).scalar_one_or_none()

    def parameter_value(self, product_id: str, parameter_id: int) -> ParameterValue | None:
        row = self.session.get(ProductParameterValueModel, (product_id, parameter_id))
        if row is None:
            return None
        return ParameterValue(
            product_id=row.product_id,
            parameter_id=row.parameter_id,
            val=row.val,
            note=row.note,
        )

    def constraint(self, class_id: int, parameter_id: int) -> ParameterConstraint | None:
        row = self.session.get(ParameterConstraintModel, (class_id, parameter_id))
        return row.to_dto() if row is not None else None
