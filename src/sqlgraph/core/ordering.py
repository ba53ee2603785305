"""
Order compilation.

GraphQL coerces input objects in type-definition order, so the order the
client wrote the keys in is recovered from the query document (literal
objects) or from the raw request variables (variable references).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import sqlalchemy as sa
from graphql import GraphQLResolveInfo, ObjectValueNode, VariableNode

from .errors import InvalidFilterError
from .query_types import NormalizedOrder, OrderDirection

if TYPE_CHECKING:
    from .registry import EntityInfo


def argument_key_order(
    info: GraphQLResolveInfo,
    argument: str,
    raw_variables: Optional[dict[str, Any]] = None,
) -> Optional[list[str]]:
    """
    Keys of an input-object argument in the order the client wrote them.

    Returns None when the order cannot be recovered.
    """
    for node in info.field_nodes[:1]:
        for arg in node.arguments or ():
            if arg.name.value != argument:
                continue
            value_node = arg.value
            if isinstance(value_node, ObjectValueNode):
                return [f.name.value for f in value_node.fields]
            if isinstance(value_node, VariableNode):
                raw = (raw_variables or {}).get(value_node.name.value)
                if isinstance(raw, dict):
                    return list(raw.keys())
    return None


def normalize_order(
    entity: EntityInfo,
    value: Optional[dict[str, Any]],
    key_order: Optional[list[str]] = None,
) -> list[NormalizedOrder]:
    """
    Turn a coerced ``<Entity>OrderInput`` into normalized orders.

    Args:
        entity: Entity being ordered
        value: {"fieldName": OrderDirection}
        key_order: Client key order, if known
    """
    if not value:
        return []

    keys = [k for k in (key_order or []) if k in value]
    keys += [k for k in value if k not in keys]

    orders = []
    fields = entity.order_fields
    for key in keys:
        direction = value[key]
        if direction is None:
            continue
        field_info = fields.get(key)
        if field_info is None:
            raise InvalidFilterError(f"{entity.order_type_name}.{key}", "field is not orderable")
        if isinstance(direction, OrderDirection):
            direction = direction.value
        orders.append(NormalizedOrder(
            field=field_info.column.name,
            dir="desc" if str(direction).lower() == "desc" else "asc",
        ))
    return orders


def order_clauses(table: sa.Table, orders: list[NormalizedOrder]) -> list[Any]:
    """SQL ORDER BY clauses, left to right."""
    clauses = []
    for order in orders:
        column = table.c[order.field]
        clauses.append(column.desc() if order.dir == "desc" else column.asc())
    return clauses


def with_key_tiebreak(orders: list[NormalizedOrder], key_columns: list[str]) -> list[NormalizedOrder]:
    """Append ascending primary-key columns that are not ordered yet."""
    ordered = {o.field for o in orders}
    return orders + [NormalizedOrder(field=name, dir="asc") for name in key_columns if name not in ordered]
