"""
Filter families and the filter compiler.

Seven scalar filter families are shared by every entity. Each family is a
GraphQL input object whose fields are the operators it supports. A per-entity
filter input combines one family (or enum filter) per filterable column
with recursive ``and`` / ``or`` lists.

Compilation walks the coerced GraphQL input bottom-up and produces a
SQLAlchemy boolean expression:

    {"and": [...], "or": [...], "storeId": {"eq": 1, "isIn": [1, 2]}}
    ->
    and_(<and subtrees>, or_(<or subtrees>), store_id = 1, store_id IN (1, 2))
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement

from .defs import FLOAT_KINDS, INTEGER_KINDS, WIDE_INTEGER_KINDS, ColumnType, TypeKind
from .errors import InvalidFilterError, TypeConversionError
from .types_map import TypeMapper

if TYPE_CHECKING:
    from .registry import EntityInfo, FieldInfo


class FilterFamily(str, enum.Enum):
    """Shared scalar filter families."""
    STRING = "String"
    TEXT = "Text"
    INTEGER = "Integer"
    BIG_INTEGER = "BigInteger"
    FLOAT = "Float"
    BOOLEAN = "Boolean"
    IDENTITY = "Identity"

    @property
    def type_name(self) -> str:
        return f"{self.value}FilterInput"


COMPARISON_OPERATORS = ("eq", "ne", "gt", "gte", "lt", "lte")
SET_OPERATORS = ("isIn", "isNotIn", "isNull", "isNotNull")
RANGE_OPERATORS = ("between", "notBetween")
PATTERN_OPERATORS = ("contains", "startsWith", "endsWith", "like", "notLike")
ENUM_OPERATORS = ("eq", "ne", "isIn", "isNotIn", "isNull", "isNotNull")

# Operators taking a list value
LIST_OPERATORS = frozenset({"isIn", "isNotIn", "between", "notBetween"})

FAMILY_OPERATORS: dict[FilterFamily, tuple[str, ...]] = {
    FilterFamily.STRING: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS + PATTERN_OPERATORS,
    FilterFamily.TEXT: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS,
    FilterFamily.INTEGER: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS,
    FilterFamily.BIG_INTEGER: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS,
    FilterFamily.FLOAT: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS,
    FilterFamily.BOOLEAN: COMPARISON_OPERATORS + SET_OPERATORS,
    FilterFamily.IDENTITY: COMPARISON_OPERATORS + SET_OPERATORS + RANGE_OPERATORS,
}


@dataclass(frozen=True)
class FilterField:
    """
    Filter applied to one column: either a shared family or an enum filter.

    ``type_name`` is the GraphQL input type of the field.
    """
    type_name: str
    operators: tuple[str, ...]
    family: Optional[FilterFamily] = None
    enum_name: Optional[str] = None

    @classmethod
    def for_family(cls, family: FilterFamily) -> FilterField:
        return cls(type_name=family.type_name, operators=FAMILY_OPERATORS[family], family=family)

    @classmethod
    def for_enum(cls, enum_name: str, enum_type_name: str) -> FilterField:
        return cls(type_name=f"{enum_type_name}FilterInput", operators=ENUM_OPERATORS, enum_name=enum_name)


def default_filter_family(column_type: ColumnType) -> Optional[FilterFamily]:
    """
    Default family for a column type; None means the column is not filterable.

    Enum columns are handled separately through their enum filter.
    """
    kind = column_type.kind
    if kind == TypeKind.CHAR:
        return FilterFamily.TEXT
    elif kind == TypeKind.STRING:
        return FilterFamily.STRING
    elif kind in WIDE_INTEGER_KINDS:
        return FilterFamily.BIG_INTEGER
    elif kind in INTEGER_KINDS:
        return FilterFamily.INTEGER
    elif kind in FLOAT_KINDS:
        return FilterFamily.FLOAT
    elif kind == TypeKind.BOOL:
        return FilterFamily.BOOLEAN
    elif kind in (
        TypeKind.DECIMAL,
        TypeKind.DATE,
        TypeKind.TIME,
        TypeKind.DATETIME,
        TypeKind.DATETIME_TZ,
        TypeKind.UUID,
        TypeKind.IP_NETWORK,
        TypeKind.MAC_ADDRESS,
    ):
        return FilterFamily.TEXT
    # Bytes, Json, Array, Custom
    return None


def family_from_name(name: str) -> FilterFamily:
    """Resolve a family by case-insensitive name ("string", "Integer", ...)."""
    for family in FilterFamily:
        if family.value.lower() == name.lower():
            return family
    raise ValueError(f"Unknown filter family '{name}'")


class FilterCompiler:
    """
    Compiles coerced filter inputs into SQLAlchemy predicates.

    Usage:
        compiler = FilterCompiler(mapper)
        condition = compiler.compile(info, {"amount": {"gt": "11"}})
        stmt = select(info.table).where(condition)
    """

    def __init__(self, mapper: TypeMapper):
        self.mapper = mapper

    def compile(self, info: EntityInfo, value: Optional[dict[str, Any]]) -> ColumnElement[bool]:
        """
        Compile a filter tree of one entity.

        An empty or absent filter yields the "select all" predicate.

        Raises:
            InvalidFilterError: unknown field/operator, bad cardinality, bad value
        """
        clauses = self._compile_tree(info, value or {})
        if not clauses:
            return sa.true()
        if len(clauses) == 1:
            return clauses[0]
        return sa.and_(*clauses)

    def _compile_tree(self, info: EntityInfo, value: dict[str, Any]) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []

        for key, item in value.items():
            if key == "and":
                # Conjoin every subtree into the surrounding conjunction
                for subtree in item or []:
                    clauses.extend(self._compile_tree(info, subtree or {}))
            elif key == "or":
                branches = []
                for subtree in item or []:
                    inner = self._compile_tree(info, subtree or {})
                    branches.append(sa.and_(*inner) if inner else sa.true())
                if branches:
                    clauses.append(sa.or_(*branches))
            else:
                field_info = info.filter_fields.get(key)
                if field_info is None:
                    raise InvalidFilterError(f"{info.type_name}.{key}", "field is not filterable")
                if item is None:
                    continue
                clauses.extend(self._compile_field(info, field_info, item))

        return clauses

    def _compile_field(
        self,
        info: EntityInfo,
        field_info: FieldInfo,
        operators: dict[str, Any],
    ) -> list[ColumnElement[bool]]:
        column = info.table.c[field_info.column.name]
        allowed = field_info.filter.operators
        clauses = []

        for op, value in operators.items():
            path = f"{field_info.path}.{op}"
            if op not in allowed:
                raise InvalidFilterError(path, f"operator not supported by {field_info.filter.type_name}")
            decode = self._decoder(field_info, path)
            clauses.append(self._apply(column, op, value, decode, path))

        return clauses

    def _decoder(self, field_info: FieldInfo, path: str) -> Callable[[Any], Any]:
        override = field_info.override
        column_type = field_info.column.type

        def decode(value: Any) -> Any:
            if value is None:
                return None
            try:
                if override is not None and override.input_conversion is not None:
                    return override.input_conversion(value)
                return self.mapper.parse_input(field_info.path, column_type, value)
            except TypeConversionError as e:
                raise InvalidFilterError(path, e.detail) from e
            except (TypeError, ValueError) as e:
                raise InvalidFilterError(path, str(e)) from e

        return decode

    def _apply(
        self,
        column: sa.ColumnElement,
        op: str,
        value: Any,
        decode: Callable[[Any], Any],
        path: str,
    ) -> ColumnElement[bool]:
        if op in LIST_OPERATORS:
            if not isinstance(value, (list, tuple)):
                raise InvalidFilterError(path, "expected a list")
            values = [decode(v) for v in value]
            if op in RANGE_OPERATORS and len(values) != 2:
                raise InvalidFilterError(path, f"expected exactly 2 values, got {len(values)}")
            if op == "isIn":
                return column.in_(values)
            elif op == "isNotIn":
                return column.not_in(values)
            elif op == "between":
                return column.between(values[0], values[1])
            return sa.not_(column.between(values[0], values[1]))

        # Any present value applies the null checks
        if op == "isNull":
            return column.is_(None)
        elif op == "isNotNull":
            return column.is_not(None)

        if op in ("like", "notLike"):
            pattern = str(value) if value is not None else None
            if pattern is None:
                raise InvalidFilterError(path, "pattern must not be null")
            return column.like(pattern) if op == "like" else column.not_like(pattern)

        decoded = decode(value)
        if op == "eq":
            return column == decoded
        elif op == "ne":
            return column != decoded

        if decoded is None:
            raise InvalidFilterError(path, "value must not be null")
        if op == "gt":
            return column > decoded
        elif op == "gte":
            return column >= decoded
        elif op == "lt":
            return column < decoded
        elif op == "lte":
            return column <= decoded
        elif op == "contains":
            return column.contains(decoded, autoescape=True)
        elif op == "startsWith":
            return column.startswith(decoded, autoescape=True)
        elif op == "endsWith":
            return column.endswith(decoded, autoescape=True)

        raise InvalidFilterError(path, "unknown operator")
