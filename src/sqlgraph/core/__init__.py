"""
Core module - metamodel, type map, filters, cursors and validation.
"""

from __future__ import annotations

from .cursor import CursorValue, decode_cursor, decode_key, encode_cursor, encode_key
from .defs import (
    Column,
    ColumnType,
    Entity,
    Enumeration,
    Junction,
    Relation,
    RelationKind,
    SchemaDef,
    TypeKind,
)
from .errors import (
    CursorCodecError,
    DatabaseError,
    DuplicateEntityError,
    GuardBlockedError,
    InvalidFilterError,
    InvalidPaginationError,
    SchemaConfigError,
    SqlGraphError,
    TypeConversionError,
)
from .filters import FilterCompiler, FilterField, FilterFamily
from .introspect import schema_from_metadata
from .query_types import (
    Connection,
    Edge,
    NormalizedOrder,
    OrderDirection,
    PageInfo,
    PaginationInfo,
    PaginationInput,
)
from .registry import EntityInfo, EntityRegistry, FieldInfo, RelationInfo
from .settings import Settings, load_settings
from .types_map import ColumnOverride, TypeMapper
from .validator import SchemaValidator, ValidationResult

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
    # Type map
    "TypeMapper",
    "ColumnOverride",
    # Filters
    "FilterFamily",
    "FilterField",
    "FilterCompiler",
    # Cursors
    "CursorValue",
    "encode_cursor",
    "decode_cursor",
    "encode_key",
    "decode_key",
    # Query types
    "OrderDirection",
    "NormalizedOrder",
    "PaginationInput",
    "PageInfo",
    "PaginationInfo",
    "Edge",
    "Connection",
    # Registry
    "EntityInfo",
    "EntityRegistry",
    "FieldInfo",
    "RelationInfo",
    # Validation and introspection
    "SchemaValidator",
    "ValidationResult",
    "schema_from_metadata",
    # Settings
    "Settings",
    "load_settings",
]
