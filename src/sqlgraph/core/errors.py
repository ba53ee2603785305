"""
Custom exceptions for the sqlgraph system.

Errors with ``client_visible = True`` are reported to GraphQL clients verbatim.
Everything else is masked as an InternalError by the executor.
"""

from __future__ import annotations

from typing import Optional


class SqlGraphError(Exception):
    """Base exception for all sqlgraph errors."""
    client_visible = False


class TypeConversionError(SqlGraphError):
    """Raised when a GraphQL value cannot be converted to a column value."""
    client_visible = True

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Type conversion failed for {path}: {detail}")


class InvalidFilterError(SqlGraphError):
    """Raised when a filter input cannot be compiled."""
    client_visible = True

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid filter {path}: {detail}")


class InvalidPaginationError(SqlGraphError):
    """Raised when a pagination input is malformed or out of bounds."""
    client_visible = True

    def __init__(self, detail: str, reason: Optional[str] = None):
        self.detail = detail
        self.reason = reason
        super().__init__(f"Invalid pagination ({detail}){f': {reason}' if reason else ''}")


class CursorCodecError(SqlGraphError):
    """Raised when a cursor cannot be encoded or decoded."""
    client_visible = True

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid cursor: {detail}")


class GuardBlockedError(SqlGraphError):
    """Raised when an entity or field guard blocks resolution."""
    client_visible = True

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DatabaseError(SqlGraphError):
    """Raised when the database rejects a statement."""

    def __init__(self, message: str):
        super().__init__(f"Database error: {message}")


class SchemaConfigError(SqlGraphError):
    """Raised when the metamodel or builder configuration is invalid."""
    pass


class DuplicateEntityError(SchemaConfigError):
    """Raised when an entity is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entity '{name}' is already registered")
