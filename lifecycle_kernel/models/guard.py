"""
Module: lifecycle_kernel.models.guard
Responsibility: ORM persistence for guard logic: named transition functions,
    atomic predicates, and the DNF formula rows that combine them.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - A predicate sets at most one of state_id / decision_id / parameter_id
      (check constraint).  All three NULL is the always-true predicate.
    - Formula rows are unique over (formula, disjunction, conjunction,
      predicate) and use positive group numbers.
    - Deleting a predicate still used by a formula row is refused by the
      database (ON DELETE RESTRICT) so guard logic is never truncated
      silently.  Formula rows belong to their transition function and go
      with it.

Failure modes:
    - IntegrityError when a predicate sets two discriminators.
    - IntegrityError when deleting a referenced predicate.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from lifecycle_kernel.db.base import Base
from lifecycle_kernel.db.types import DisplayName
from lifecycle_kernel.domain.predicates import (
    FormulaRow,
    Predicate,
    predicate_from_columns,
)


class TransitionFunctionModel(Base):
    """A named guard formula; states refer to it by id."""

    __tablename__ = "transition_function"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[DisplayName] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<TransitionFunction {self.id} {self.name}>"


class PredicateModel(Base):
    """Atomic guard condition stored as three nullable discriminators."""

    __tablename__ = "predicate"

    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN state_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN decision_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN parameter_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_predicate_single_kind",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    state_id: Mapped[int | None] = mapped_column(
        ForeignKey("type_state.id", ondelete="RESTRICT"), nullable=True,
    )
    decision_id: Mapped[int | None] = mapped_column(
        ForeignKey("type_decision.id", ondelete="RESTRICT"), nullable=True,
    )
    parameter_id: Mapped[int | None] = mapped_column(
        ForeignKey("parameter.id", ondelete="RESTRICT"), nullable=True,
    )

    def to_dto(self) -> Predicate:
        return predicate_from_columns(
            self.id,
            state_id=self.state_id,
            decision_id=self.decision_id,
            parameter_id=self.parameter_id,
        )


class FormulaRowModel(Base):
    """One (disjunction, conjunction, predicate) triple of a formula."""

    __tablename__ = "formula_row"

    __table_args__ = (
        CheckConstraint("disjunction >= 1", name="ck_formula_row_disjunction"),
        CheckConstraint("conjunction >= 1", name="ck_formula_row_conjunction"),
        Index("ix_formula_row_predicate", "predicate_id"),
    )

    formula_id: Mapped[int] = mapped_column(
        ForeignKey("transition_function.id", ondelete="CASCADE"), primary_key=True,
    )
    disjunction: Mapped[int] = mapped_column(primary_key=True)
    conjunction: Mapped[int] = mapped_column(primary_key=True)
    predicate_id: Mapped[int] = mapped_column(
        ForeignKey("predicate.id", ondelete="RESTRICT"), primary_key=True,
    )

    def to_dto(self) -> FormulaRow:
        return FormulaRow(
            formula_id=self.formula_id,
            disjunction=self.disjunction,
            conjunction=self.conjunction,
            predicate_id=self.predicate_id,
        )
