"""
Input object types: filter families, order, pagination, insert and update.

Shared types (filter families, OrderByEnum, pagination inputs) are
registered once per schema; per-entity inputs reference them by name
through the builder's type table.
"""

from __future__ import annotations

from typing import Any, Mapping

from graphql import (
    GraphQLBoolean,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLFloat,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLString,
)

from ..core.filters import ENUM_OPERATORS, FAMILY_OPERATORS, LIST_OPERATORS, FilterFamily
from ..core.query_types import OrderDirection
from ..core.registry import EntityInfo
from ..core.types_map import GraphQLBigInt
from ..runtime.context import SchemaRuntime
from .columns import field_base_type

ORDER_BY_ENUM = "OrderByEnum"
PAGINATION_INPUT = "PaginationInput"

# Value type of each filter family
FAMILY_BASE_TYPES = {
    FilterFamily.STRING: GraphQLString,
    FilterFamily.TEXT: GraphQLString,
    FilterFamily.INTEGER: GraphQLInt,
    FilterFamily.BIG_INTEGER: GraphQLBigInt,
    FilterFamily.FLOAT: GraphQLFloat,
    FilterFamily.BOOLEAN: GraphQLBoolean,
    FilterFamily.IDENTITY: GraphQLString,
}


def _operator_fields(base: Any, operators: tuple[str, ...]) -> dict[str, GraphQLInputField]:
    fields = {}
    for op in operators:
        if op in LIST_OPERATORS:
            fields[op] = GraphQLInputField(GraphQLList(GraphQLNonNull(base)))
        else:
            fields[op] = GraphQLInputField(base)
    return fields


def filter_family_types() -> list[GraphQLInputObjectType]:
    """The shared ``<Family>FilterInput`` types."""
    return [
        GraphQLInputObjectType(family.type_name, _operator_fields(FAMILY_BASE_TYPES[family], FAMILY_OPERATORS[family]))
        for family in FilterFamily
    ]


def enum_filter_type(enum_type: GraphQLEnumType) -> GraphQLInputObjectType:
    """``<EnumType>FilterInput`` for an active enum."""
    return GraphQLInputObjectType(f"{enum_type.name}FilterInput", _operator_fields(enum_type, ENUM_OPERATORS))


def order_by_enum() -> GraphQLEnumType:
    return GraphQLEnumType(ORDER_BY_ENUM, {
        "Asc": GraphQLEnumValue(OrderDirection.ASC),
        "Desc": GraphQLEnumValue(OrderDirection.DESC),
    })


def pagination_types() -> list[GraphQLInputObjectType]:
    """CursorInput, PageInput, OffsetInput and the one-of PaginationInput."""
    cursor = GraphQLInputObjectType("CursorInput", {
        "cursor": GraphQLInputField(GraphQLString),
        "limit": GraphQLInputField(GraphQLNonNull(GraphQLInt)),
    })
    page = GraphQLInputObjectType("PageInput", {
        "page": GraphQLInputField(GraphQLNonNull(GraphQLInt)),
        "limit": GraphQLInputField(GraphQLNonNull(GraphQLInt)),
    })
    offset = GraphQLInputObjectType("OffsetInput", {
        "offset": GraphQLInputField(GraphQLNonNull(GraphQLInt)),
        "limit": GraphQLInputField(GraphQLNonNull(GraphQLInt)),
    })
    pagination = GraphQLInputObjectType(PAGINATION_INPUT, {
        "cursor": GraphQLInputField(cursor),
        "page": GraphQLInputField(page),
        "offset": GraphQLInputField(offset),
    })
    return [cursor, page, offset, pagination]


# =============================================================================
# Per-entity inputs
# =============================================================================


def entity_filter_type(info: EntityInfo, types: Mapping[str, GraphQLNamedType]) -> GraphQLInputObjectType:
    """``<Entity>FilterInput`` with one field per filterable column plus and/or."""

    def fields() -> dict[str, GraphQLInputField]:
        result = {
            name: GraphQLInputField(types[field_info.filter.type_name])
            for name, field_info in info.filter_fields.items()
        }
        self_list = GraphQLList(GraphQLNonNull(types[info.filter_type_name]))
        result["and"] = GraphQLInputField(self_list)
        result["or"] = GraphQLInputField(self_list)
        return result

    return GraphQLInputObjectType(info.filter_type_name, fields)


def entity_order_type(info: EntityInfo, types: Mapping[str, GraphQLNamedType]) -> GraphQLInputObjectType:
    return GraphQLInputObjectType(
        info.order_type_name,
        lambda: {name: GraphQLInputField(types[ORDER_BY_ENUM]) for name in info.order_fields},
    )


def entity_insert_type(
    info: EntityInfo,
    types: Mapping[str, GraphQLNamedType],
    runtime: SchemaRuntime,
) -> GraphQLInputObjectType:
    """Insert input: required unless nullable, auto-increment or defaulted."""

    def fields() -> dict[str, GraphQLInputField]:
        result = {}
        for field_info in info.fields:
            column = field_info.column
            base = field_base_type(field_info, types, runtime)
            optional = column.nullable or column.auto_increment or column.has_default
            result[field_info.name] = GraphQLInputField(base if optional else GraphQLNonNull(base))
        return result

    return GraphQLInputObjectType(info.insert_type_name, fields)


def entity_update_type(
    info: EntityInfo,
    types: Mapping[str, GraphQLNamedType],
    runtime: SchemaRuntime,
) -> GraphQLInputObjectType:
    return GraphQLInputObjectType(
        info.update_type_name,
        lambda: {f.name: GraphQLInputField(field_base_type(f, types, runtime)) for f in info.fields},
    )
