"""Database layer: declarative base, column types, engine and session scope."""

from commission_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from commission_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
]
