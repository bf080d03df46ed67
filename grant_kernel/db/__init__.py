"""Database layer - engine, base classes and generic repository."""

from grant_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from grant_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from grant_kernel.db.repository import Repository

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Repository",
]
