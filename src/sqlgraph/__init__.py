"""
sqlgraph - GraphQL schemas generated from relational metadata.

Entities (tables, columns, keys, relations) become GraphQL object types
with filter, order and pagination arguments, batched relation loading
and optional CRUD mutations, executed against a SQLAlchemy async engine.

Usage:
    from sqlgraph import Builder, BuilderContext, create_app

    builder = Builder(BuilderContext(default_limit=20, max_limit=100))
    builder.register_schema(schema_def)
    schema = builder.seal()

    app = create_app(schema, engine)
"""

from __future__ import annotations

from .api import create_router
from .core import (
    Column,
    ColumnOverride,
    ColumnType,
    Connection,
    CursorCodecError,
    DatabaseError,
    DuplicateEntityError,
    Entity,
    Enumeration,
    GuardBlockedError,
    InvalidFilterError,
    InvalidPaginationError,
    Junction,
    Relation,
    RelationKind,
    SchemaConfigError,
    SchemaDef,
    Settings,
    SqlGraphError,
    TypeConversionError,
    TypeKind,
    decode_cursor,
    encode_cursor,
    load_settings,
    schema_from_metadata,
)
from .iam import GuardAction, OperationType
from .runtime import BuilderContext, RequestContext
from .schema import Builder, Schema
from .service import create_app, reflect_schema

__version__ = "0.1.0"

__all__ = [
    # Definitions
    "TypeKind",
    "ColumnType",
    "Column",
    "RelationKind",
    "Junction",
    "Relation",
    "Entity",
    "Enumeration",
    "SchemaDef",
    "ColumnOverride",
    # Errors
    "SqlGraphError",
    "TypeConversionError",
    "InvalidFilterError",
    "InvalidPaginationError",
    "CursorCodecError",
    "GuardBlockedError",
    "DatabaseError",
    "SchemaConfigError",
    "DuplicateEntityError",
    # Cursors
    "encode_cursor",
    "decode_cursor",
    # Builder
    "BuilderContext",
    "Builder",
    "Schema",
    "Connection",
    "RequestContext",
    # Guards
    "GuardAction",
    "OperationType",
    # Settings
    "Settings",
    "load_settings",
    # Service
    "create_app",
    "create_router",
    "reflect_schema",
    "schema_from_metadata",
]
