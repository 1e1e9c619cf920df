"""Database layer - engine, base class, column types."""

from lifecycle_kernel.db.base import Base
from lifecycle_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from lifecycle_kernel.db.types import DisplayName, ProductId, ShortCode

__all__ = [
    "Base",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "ShortCode",
    "DisplayName",
    "ProductId",
]
