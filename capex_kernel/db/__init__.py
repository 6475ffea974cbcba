"""Database layer - engine, base classes and column types."""

from capex_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from capex_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "UTCDateTime",
    "UUIDString",
    "UUID",
]
