"""
Module: lifecycle_kernel.models.catalog
Responsibility: ORM persistence for the product catalog consulted by guard
    predicates: product classes, typed parameters, per-class parameter
    constraints, products and their current parameter values.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - One current value per (product, parameter): composite primary key.
    - One constraint per (class, parameter): composite primary key.
    - Parameter type is one of text / number / bool / date (check constraint).

Failure modes:
    - IntegrityError on duplicate value or constraint rows.
    - IntegrityError when deleting a class/parameter still referenced
      (ON DELETE RESTRICT).
"""

from __future__ import annotations

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifecycle_kernel.db.base import Base
from lifecycle_kernel.db.types import DisplayName, ProductId, ShortCode
from lifecycle_kernel.domain.parameters import ParameterConstraint, ParameterType


class ProductClassModel(Base):
    """Hierarchical product class (category)."""

    __tablename__ = "product_class"

    id: Mapped[int] = mapped_column(primary_key=True)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False)
    name: Mapped[DisplayName] = mapped_column(nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("product_class.id", ondelete="RESTRICT"), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ProductClass {self.id} {self.sh_name}>"


class ParameterModel(Base):
    """Typed product parameter definition."""

    __tablename__ = "parameter"

    __table_args__ = (
        CheckConstraint(
            "type_par IN ('text', 'number', 'bool', 'date')",
            name="ck_parameter_valid_type",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    sh_name: Mapped[ShortCode] = mapped_column(nullable=False)
    name: Mapped[DisplayName] = mapped_column(nullable=False)
    type_par: Mapped[ShortCode] = mapped_column(
        nullable=False, default=ParameterType.TEXT.value,
    )

    def __repr__(self) -> str:
        return f"<Parameter {self.id} {self.sh_name}:{self.type_par}>"


class ParameterConstraintModel(Base):
    """Validity constraint of a parameter inside one product class."""

    __tablename__ = "parameter_constraint"

    class_id: Mapped[int] = mapped_column(
        ForeignKey("product_class.id", ondelete="CASCADE"), primary_key=True,
    )
    parameter_id: Mapped[int] = mapped_column(
        ForeignKey("parameter.id", ondelete="CASCADE"), primary_key=True,
    )
    min_val: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_val: Mapped[str | None] = mapped_column(Text, nullable=True)
    pattern: Mapped[str | None] = mapped_column(Text, nullable=True)
    allowed_values: Mapped[list | None] = mapped_column(JSON, nullable=True)

    def to_dto(self) -> ParameterConstraint:
        return ParameterConstraint(
            parameter_id=self.parameter_id,
            class_id=self.class_id,
            min_val=self.min_val,
            max_val=self.max_val,
            pattern=self.pattern,
            allowed_values=tuple(str(v) for v in (self.allowed_values or ())),
        )


class ProductModel(Base):
    """Catalog product; the subject of lifecycle processes."""

    __tablename__ = "product"

    id: Mapped[ProductId] = mapped_column(primary_key=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)
    class_id: Mapped[int] = mapped_column(
        ForeignKey("product_class.id", ondelete="RESTRICT"), nullable=False,
    )

    values: Mapped[list["ProductParameterValueModel"]] = relationship(
        "ProductParameterValueModel",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Product {self.id} class={self.class_id}>"


class ProductParameterValueModel(Base):
    """Current value of one parameter for one product."""

    __tablename__ = "product_parameter"

    product_id: Mapped[ProductId] = mapped_column(
        ForeignKey("product.id", ondelete="CASCADE"), primary_key=True,
    )
    parameter_id: Mapped[int] = mapped_column(
        ForeignKey("parameter.id", ondelete="RESTRICT"), primary_key=True,
    )
    val: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    product: Mapped[ProductModel] = relationship(
        "ProductModel", back_populates="values",
    )
