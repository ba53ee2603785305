"""
Type map - bidirectional mapping between column types and GraphQL types.

For every semantic column type this decides:
- the public GraphQL output type
- the accepted GraphQL input type
- the codec between GraphQL values and column values

Usage:
    mapper = TypeMapper(enumerations={"mpaa_rating": rating}, timestamp_rfc3339=True)
    gql_type = mapper.scalar_type(ColumnType.int_())           # GraphQLInt
    gql_type = mapper.scalar_type(ColumnType.big_int())        # GraphQLBigInt
    value = mapper.parse_input("Film.rating", column.type, "PG-13")
    text = mapper.format_output(column.type, datetime(2030, 1, 1))
"""

from __future__ import annotations

import datetime as dt
import decimal
import json
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from graphql import (
    GraphQLBoolean,
    GraphQLError,
    GraphQLFloat,
    GraphQLInt,
    GraphQLScalarType,
    GraphQLString,
    IntValueNode,
    StringValueNode,
    ValueNode,
)

from .defs import INTEGER_RANGES, WIDE_INTEGER_KINDS, ColumnType, Enumeration, TypeKind
from .errors import TypeConversionError


@dataclass(frozen=True)
class ColumnOverride:
    """
    Per-column override of the default type mapping.

    Keyed as "<TypeName>.<fieldName>" in the builder context.
    """
    type_name: Optional[str] = None  # GraphQL type registered on the builder
    input_conversion: Optional[Callable[[Any], Any]] = None  # GraphQL value -> column value
    output_conversion: Optional[Callable[[Any], Any]] = None  # column value -> GraphQL value


BIG_INT_LIMITS = (-(2 ** 63), 2 ** 64 - 1)


def coerce_big_int(value: Any) -> int:
    if isinstance(value, bool):
        raise GraphQLError(f"BigInt cannot represent a boolean: {value!r}")
    if isinstance(value, int):
        num = value
    elif isinstance(value, float) and value.is_integer():
        num = int(value)
    elif isinstance(value, str):
        try:
            num = int(value)
        except ValueError:
            raise GraphQLError(f"BigInt cannot represent non-integer value: {value!r}") from None
    else:
        raise GraphQLError(f"BigInt cannot represent non-integer value: {value!r}")

    low, high = BIG_INT_LIMITS
    if not low <= num <= high:
        raise GraphQLError(f"BigInt cannot represent value outside 64 bits: {value!r}")
    return num


def parse_big_int_literal(ast: ValueNode, _variables: Optional[dict[str, Any]] = None) -> int:
    # Quoted digits are accepted for clients that cannot write wide number literals
    if isinstance(ast, (IntValueNode, StringValueNode)):
        return coerce_big_int(ast.value)
    raise GraphQLError(f"BigInt cannot represent literal: {ast.kind}", ast)


GraphQLBigInt = GraphQLScalarType(
    name="BigInt",
    description="The `BigInt` scalar type represents whole numbers between "
                "-2^63 and 2^64 - 1, beyond the 32-bit range of `Int`.",
    serialize=coerce_big_int,
    parse_value=coerce_big_int,
    parse_literal=parse_big_int_literal,
)


# GraphQL scalar used for each non-enum, non-array column type
SCALAR_TYPES: dict[TypeKind, GraphQLScalarType] = {
    TypeKind.BOOL: GraphQLBoolean,
    TypeKind.FLOAT: GraphQLFloat,
    TypeKind.DOUBLE: GraphQLFloat,
    **{kind: GraphQLBigInt if kind in WIDE_INTEGER_KINDS else GraphQLInt for kind in INTEGER_RANGES},
}


class TypeMapper:
    """Value codec between GraphQL and relational column values."""

    def __init__(
        self,
        enumerations: Optional[dict[str, Enumeration]] = None,
        timestamp_rfc3339: bool = False,
    ):
        self.enumerations = enumerations or {}
        self.timestamp_rfc3339 = timestamp_rfc3339

    # -------------------------------------------------------------------------
    # GraphQL types
    # -------------------------------------------------------------------------

    def scalar_type(self, column_type: ColumnType) -> GraphQLScalarType:
        """
        Scalar output type for a column type.

        Enums and arrays are built by the schema layer, which owns named types.
        Anything without a numeric or boolean mapping is exposed as String.
        """
        return SCALAR_TYPES.get(column_type.kind, GraphQLString)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def format_output(self, column_type: ColumnType, value: Any) -> Any:
        """Format a column value for GraphQL output."""
        if value is None:
            return None

        kind = column_type.kind
        if kind in INTEGER_RANGES:
            return int(value)
        elif kind in (TypeKind.FLOAT, TypeKind.DOUBLE):
            return float(value)
        elif kind == TypeKind.BOOL:
            return bool(value)
        elif kind == TypeKind.BYTES:
            return bytes(value).hex()
        elif kind == TypeKind.JSON:
            return value if isinstance(value, str) else json.dumps(value)
        elif kind in (TypeKind.DATETIME, TypeKind.DATETIME_TZ):
            if isinstance(value, dt.datetime):
                return value.isoformat() if self.timestamp_rfc3339 else str(value)
            return str(value)
        elif kind in (TypeKind.DATE, TypeKind.TIME):
            return value.isoformat() if hasattr(value, "isoformat") else str(value)
        elif kind == TypeKind.ARRAY:
            return [self.format_output(column_type.inner, item) for item in value]
        elif kind == TypeKind.ENUM:
            # The GraphQL enum type maps raw values to variant names
            return value.value if hasattr(value, "value") else str(value)
        else:
            return str(value)

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    def parse_input(self, path: str, column_type: ColumnType, value: Any) -> Any:
        """
        Convert a GraphQL input value into a column value.

        Args:
            path: "Entity.column" used in error messages
            column_type: Target column type
            value: Coerced GraphQL value

        Raises:
            TypeConversionError: value cannot represent the column type
        """
        if value is None:
            return None

        kind = column_type.kind
        if kind in INTEGER_RANGES:
            return self._parse_integer(path, kind, value)
        elif kind in (TypeKind.FLOAT, TypeKind.DOUBLE):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeConversionError(path, f"expected a number, got {value!r}")
            return float(value)
        elif kind == TypeKind.BOOL:
            if not isinstance(value, bool):
                raise TypeConversionError(path, f"expected a boolean, got {value!r}")
            return value
        elif kind == TypeKind.DECIMAL:
            return self._parse_decimal(path, value)
        elif kind == TypeKind.CHAR:
            text = str(value)
            if len(text) != 1:
                raise TypeConversionError(path, f"expected exactly one character, got {len(text)}")
            return text
        elif kind == TypeKind.BYTES:
            try:
                return bytes.fromhex(str(value))
            except ValueError as e:
                raise TypeConversionError(path, f"invalid hex string: {e}") from e
        elif kind == TypeKind.JSON:
            try:
                return json.loads(value) if isinstance(value, str) else value
            except json.JSONDecodeError as e:
                raise TypeConversionError(path, f"invalid JSON: {e}") from e
        elif kind in (TypeKind.DATE, TypeKind.TIME, TypeKind.DATETIME, TypeKind.DATETIME_TZ):
            return self._parse_temporal(path, kind, value)
        elif kind == TypeKind.UUID:
            try:
                return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
            except ValueError as e:
                raise TypeConversionError(path, f"invalid uuid: {e}") from e
        elif kind == TypeKind.ENUM:
            return self._parse_enum(path, column_type.name, value)
        elif kind == TypeKind.ARRAY:
            if not isinstance(value, (list, tuple)):
                raise TypeConversionError(path, f"expected a list, got {value!r}")
            return [self.parse_input(path, column_type.inner, item) for item in value]
        else:
            return value if isinstance(value, str) else str(value)

    def _parse_integer(self, path: str, kind: TypeKind, value: Any) -> int:
        if isinstance(value, bool):
            raise TypeConversionError(path, f"expected an integer, got {value!r}")
        if isinstance(value, str):
            try:
                value = int(value)
            except ValueError:
                raise TypeConversionError(path, f"expected an integer, got {value!r}") from None
        elif isinstance(value, float):
            if not value.is_integer():
                raise TypeConversionError(path, f"expected an integer, got {value!r}")
            value = int(value)
        elif not isinstance(value, int):
            raise TypeConversionError(path, f"expected an integer, got {value!r}")

        low, high = INTEGER_RANGES[kind]
        if not low <= value <= high:
            raise TypeConversionError(path, f"{value} is out of range for {kind.value} [{low}, {high}]")
        return value

    def _parse_decimal(self, path: str, value: Any) -> decimal.Decimal:
        try:
            result = decimal.Decimal(str(value))
        except decimal.InvalidOperation:
            raise TypeConversionError(path, f"invalid decimal {value!r}") from None
        if not result.is_finite():
            raise TypeConversionError(path, f"decimal must be finite, got {value!r}")
        return result

    def _parse_temporal(self, path: str, kind: TypeKind, value: Any) -> Any:
        if not isinstance(value, str):
            raise TypeConversionError(path, f"expected a string, got {value!r}")
        try:
            if kind == TypeKind.DATE:
                return dt.date.fromisoformat(value)
            elif kind == TypeKind.TIME:
                return dt.time.fromisoformat(value)
            result = dt.datetime.fromisoformat(value)
        except ValueError as e:
            raise TypeConversionError(path, f"invalid {kind.value.lower()}: {e}") from e
        if kind == TypeKind.DATETIME_TZ and result.tzinfo is None:
            result = result.replace(tzinfo=dt.timezone.utc)
        return result

    def _parse_enum(self, path: str, enum_name: str, value: Any) -> str:
        enumeration = self.enumerations.get(enum_name)
        raw = value.value if hasattr(value, "value") else value
        if enumeration is not None and raw not in enumeration.values:
            raise TypeConversionError(path, f"unknown variant {raw!r} of enum '{enum_name}'")
        return raw
