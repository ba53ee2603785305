"""
SQLAlchemy table construction from the metamodel.

Every registered entity gets a Core ``Table`` in a private ``MetaData``;
the query and mutation compilers build statements against these tables.
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.types import TypeEngine

from .defs import ColumnType, Entity, Enumeration, TypeKind


def column_sql_type(column_type: ColumnType, enumerations: dict[str, Enumeration]) -> TypeEngine:
    """Map a semantic column type to a SQLAlchemy type."""
    kind = column_type.kind

    if kind == TypeKind.BOOL:
        return sa.Boolean()
    elif kind in (TypeKind.TINY_INT, TypeKind.SMALL_INT, TypeKind.TINY_UNSIGNED):
        return sa.SmallInteger()
    elif kind in (TypeKind.INT, TypeKind.SMALL_UNSIGNED):
        return sa.Integer()
    elif kind in (TypeKind.BIG_INT, TypeKind.UNSIGNED, TypeKind.BIG_UNSIGNED):
        return sa.BigInteger()
    elif kind == TypeKind.FLOAT:
        return sa.Float()
    elif kind == TypeKind.DOUBLE:
        return sa.Double()
    elif kind == TypeKind.DECIMAL:
        return sa.Numeric(asdecimal=True)
    elif kind == TypeKind.CHAR:
        return sa.CHAR(1)
    elif kind == TypeKind.BYTES:
        return sa.LargeBinary()
    elif kind == TypeKind.JSON:
        return sa.JSON()
    elif kind == TypeKind.DATE:
        return sa.Date()
    elif kind == TypeKind.TIME:
        return sa.Time()
    elif kind == TypeKind.DATETIME:
        return sa.DateTime()
    elif kind == TypeKind.DATETIME_TZ:
        return sa.DateTime(timezone=True)
    elif kind == TypeKind.UUID:
        return sa.Uuid()
    elif kind == TypeKind.ENUM:
        enumeration = enumerations.get(column_type.name)
        if enumeration is None:
            return sa.String()
        return sa.Enum(*enumeration.values, name=enumeration.name, validate_strings=False)
    elif kind == TypeKind.ARRAY:
        return sa.ARRAY(column_sql_type(column_type.inner, enumerations))
    else:
        # String, IpNetwork, MacAddress, Custom
        return sa.String()


def build_table(
    entity: Entity,
    metadata: sa.MetaData,
    enumerations: Optional[dict[str, Enumeration]] = None,
) -> sa.Table:
    """
    Create the Core table for an entity.

    Ignored columns are still part of the table so inserts and updates
    keep working; they are only hidden from the GraphQL schema.
    """
    enumerations = enumerations or {}
    columns = []
    for column in entity.columns:
        columns.append(sa.Column(
            column.name,
            column_sql_type(column.type, enumerations),
            primary_key=column.primary_key,
            nullable=column.nullable,
            autoincrement=column.auto_increment if column.primary_key else False,
        ))
    return sa.Table(entity.name, metadata, *columns)

