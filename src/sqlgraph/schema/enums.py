"""
Active enums - database enumerations exposed as GraphQL enum types.
"""

from __future__ import annotations

import re

from graphql import GraphQLEnumType, GraphQLEnumValue

from ..core.defs import Enumeration
from ..core.errors import SchemaConfigError
from ..runtime.context import BuilderContext

_NAME_PATTERN = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")
_RESERVED_VALUES = frozenset({"true", "false", "null"})


def build_enum_type(enumeration: Enumeration, context: BuilderContext) -> GraphQLEnumType:
    """
    Build ``<TypeName>Enum`` for an enumeration.

    Variant names go through ``context.variant_case``; the internal value
    stays the raw database string.

    Raises:
        SchemaConfigError: a variant name is not a valid GraphQL name, or
            two variants map to the same name
    """
    type_name = context.enum_type_name(enumeration.name)
    values: dict[str, GraphQLEnumValue] = {}

    for raw in enumeration.values:
        name = context.variant_case(raw)
        if not _NAME_PATTERN.match(name) or name in _RESERVED_VALUES:
            raise SchemaConfigError(f"Enum '{enumeration.name}': variant '{raw}' maps to invalid name '{name}'")
        if name in values:
            raise SchemaConfigError(f"Enum '{enumeration.name}': variants collide on name '{name}'")
        values[name] = GraphQLEnumValue(raw)

    return GraphQLEnumType(type_name, values)
