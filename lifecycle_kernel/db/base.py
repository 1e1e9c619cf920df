"""
Module: lifecycle_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models.  Provides the
    type annotation map that keeps column types consistent across the schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer identifiers: dictionary entities (states, decisions, templates,
      predicates, processes) use integer keys.  On PostgreSQL they are
      BIGINT; on SQLite they fall back to INTEGER so that
      ``INTEGER PRIMARY KEY`` autoincrement keeps working.
    - Timestamps are always timezone-aware.

Failure modes:
    - IntegrityError on duplicate primary keys (caller-assigned dictionary ids).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, Date, DateTime, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase

from lifecycle_kernel.db.types import ANNOTATED_COLUMN_TYPES


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base.  Models declare
        their own primary keys; the type_annotation_map only fixes how
        Python annotations translate to column types.

    Guarantees:
        - int maps to BIGINT (INTEGER on SQLite).
        - datetime maps to DateTime(timezone=True).
        - Decimal maps to Numeric(38, 9).
        - Short codes, display names and product ids map to
          the column types declared in db.types.
    """

    type_annotation_map: ClassVar[dict] = {
        int: BigInteger().with_variant(Integer(), "sqlite"),
        datetime: DateTime(timezone=True),
        date: Date(),
        Decimal: Numeric(38, 9),
        **ANNOTATED_COLUMN_TYPES,
    }
