"""
Module: lifecycle_kernel.db.types
Responsibility: Annotated type aliases shared by the ORM models so that every
    table uses identical column definitions for the same kind of value.
    The concrete SQL types are registered in Base.type_annotation_map.
Architecture position: Kernel > DB.  May be imported by models/.  MUST NOT
    import from models/, services/, selectors/ or domain/.
"""

from typing import Annotated

from sqlalchemy import String

# Short machine-readable codes (state / decision / template sh_name)
ShortCode = Annotated[str, "short_code"]

# Human-readable display names
DisplayName = Annotated[str, "display_name"]

# Product identifiers are externally assigned strings (SKU-like)
ProductId = Annotated[str, "product_id"]

ANNOTATED_COLUMN_TYPES = {
    ShortCode: String(50),
    DisplayName: String(200),
    ProductId: String(50),
}
