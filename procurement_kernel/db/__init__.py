"""Database layer: declarative base, portable column types and engine setup."""

from procurement_kernel.db.base import (
    Base,
    DecimalString,
    IsoDate,
    IsoDateTime,
    UUIDString,
    VersionedMixin,
)
from procurement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "UUIDString",
    "DecimalString",
    "IsoDateTime",
    "IsoDate",
    "VersionedMixin",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
]
