"""
GraphQL types and resolvers for entity columns.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from graphql import GraphQLList, GraphQLNamedType, GraphQLNonNull, GraphQLResolveInfo

from ..core.defs import ColumnType, TypeKind
from ..core.errors import SchemaConfigError
from ..core.registry import FieldInfo
from ..iam.guard import OperationType, check_field_guard
from ..runtime.context import SchemaRuntime


def column_base_type(
    column_type: ColumnType,
    types: Mapping[str, GraphQLNamedType],
    runtime: SchemaRuntime,
) -> Any:
    """Nullable GraphQL type of a column type (enum and array aware)."""
    if column_type.kind == TypeKind.ENUM:
        name = runtime.context.enum_type_name(column_type.name)
        if name not in types:
            raise SchemaConfigError(f"Enumeration '{column_type.name}' is not registered")
        return types[name]
    if column_type.kind == TypeKind.ARRAY:
        return GraphQLList(column_base_type(column_type.inner, types, runtime))
    return runtime.mapper.scalar_type(column_type)


def field_base_type(field_info: FieldInfo, types: Mapping[str, GraphQLNamedType], runtime: SchemaRuntime) -> Any:
    """Nullable GraphQL type of a field, honouring a type override."""
    override = field_info.override
    if override is not None and override.type_name is not None:
        if override.type_name not in types:
            raise SchemaConfigError(f"{field_info.path}: type '{override.type_name}' is not registered")
        return types[override.type_name]
    return column_base_type(field_info.column.type, types, runtime)


def field_output_type(field_info: FieldInfo, types: Mapping[str, GraphQLNamedType], runtime: SchemaRuntime) -> Any:
    base = field_base_type(field_info, types, runtime)
    return base if field_info.column.nullable else GraphQLNonNull(base)


def column_resolver(field_info: FieldInfo, runtime: SchemaRuntime) -> Callable[..., Any]:
    """Resolver reading one column from a row dict."""
    guards = runtime.context.field_guards
    mapper = runtime.mapper
    column = field_info.column
    override = field_info.override

    def resolve(row: dict[str, Any], info: GraphQLResolveInfo) -> Any:
        check_field_guard(guards, field_info.path, info, OperationType.READ)
        value = row.get(column.name)
        if override is not None and override.output_conversion is not None:
            return override.output_conversion(value)
        return mapper.format_output(column.type, value)

    return resolve
