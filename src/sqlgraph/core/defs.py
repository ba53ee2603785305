"""
Core dataclass definitions for the sqlgraph metamodel.

These describe the relational schema that the builder projects to GraphQL:
entities (tables), columns, relations and enumerations.

Usage:
    from sqlgraph.core.defs import Column, ColumnType, Entity, Relation, RelationKind

    store = Entity(
        name="store",
        columns=[
            Column("store_id", ColumnType.int_(), primary_key=True, auto_increment=True),
            Column("manager_staff_id", ColumnType.tiny_int()),
        ],
        primary_key=["store_id"],
        relations=[
            Relation("staff", RelationKind.BELONGS_TO, "staff",
                     from_columns=["manager_staff_id"], to_columns=["staff_id"]),
        ],
    )
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from .errors import SchemaConfigError


class TypeKind(str, enum.Enum):
    """Semantic column type families."""
    BOOL = "Bool"
    TINY_INT = "TinyInt"
    SMALL_INT = "SmallInt"
    INT = "Int"
    BIG_INT = "BigInt"
    TINY_UNSIGNED = "TinyUnsigned"
    SMALL_UNSIGNED = "SmallUnsigned"
    UNSIGNED = "Unsigned"
    BIG_UNSIGNED = "BigUnsigned"
    FLOAT = "Float"
    DOUBLE = "Double"
    DECIMAL = "Decimal"
    STRING = "String"
    CHAR = "Char"
    BYTES = "Bytes"
    JSON = "Json"
    DATE = "Date"
    TIME = "Time"
    DATETIME = "DateTime"
    DATETIME_TZ = "DateTimeWithTimeZone"
    UUID = "Uuid"
    ENUM = "Enum"
    ARRAY = "Array"
    IP_NETWORK = "IpNetwork"
    MAC_ADDRESS = "MacAddress"
    CUSTOM = "Custom"


# Inclusive value ranges for each integer width
INTEGER_RANGES: dict[TypeKind, tuple[int, int]] = {
    TypeKind.TINY_INT: (-(2 ** 7), 2 ** 7 - 1),
    TypeKind.SMALL_INT: (-(2 ** 15), 2 ** 15 - 1),
    TypeKind.INT: (-(2 ** 31), 2 ** 31 - 1),
    TypeKind.BIG_INT: (-(2 ** 63), 2 ** 63 - 1),
    TypeKind.TINY_UNSIGNED: (0, 2 ** 8 - 1),
    TypeKind.SMALL_UNSIGNED: (0, 2 ** 16 - 1),
    TypeKind.UNSIGNED: (0, 2 ** 32 - 1),
    TypeKind.BIG_UNSIGNED: (0, 2 ** 64 - 1),
}

INTEGER_KINDS = frozenset(INTEGER_RANGES)
# Integers that do not fit the 32-bit GraphQL Int
WIDE_INTEGER_KINDS = frozenset({TypeKind.BIG_INT, TypeKind.UNSIGNED, TypeKind.BIG_UNSIGNED})
FLOAT_KINDS = frozenset({TypeKind.FLOAT, TypeKind.DOUBLE})
TEMPORAL_KINDS = frozenset({TypeKind.DATE, TypeKind.TIME, TypeKind.DATETIME, TypeKind.DATETIME_TZ})


@dataclass(frozen=True)
class ColumnType:
    """
    Tagged column type.

    ``name`` carries the enumeration name for ENUM and the type name for CUSTOM.
    ``inner`` carries the element type for ARRAY.
    """
    kind: TypeKind
    name: Optional[str] = None
    inner: Optional[ColumnType] = None

    def __post_init__(self):
        if self.kind in (TypeKind.ENUM, TypeKind.CUSTOM) and not self.name:
            raise SchemaConfigError(f"{self.kind.value} column type requires a name")
        if self.kind == TypeKind.ARRAY and self.inner is None:
            raise SchemaConfigError("Array column type requires an inner type")

    @property
    def is_integer(self) -> bool:
        return self.kind in INTEGER_KINDS

    def __str__(self) -> str:
        if self.kind == TypeKind.ARRAY:
            return f"Array({self.inner})"
        if self.name:
            return f"{self.kind.value}({self.name})"
        return self.kind.value

    # Shorthand constructors

    @classmethod
    def bool_(cls) -> ColumnType:
        return cls(TypeKind.BOOL)

    @classmethod
    def tiny_int(cls) -> ColumnType:
        return cls(TypeKind.TINY_INT)

    @classmethod
    def small_int(cls) -> ColumnType:
        return cls(TypeKind.SMALL_INT)

    @classmethod
    def int_(cls) -> ColumnType:
        return cls(TypeKind.INT)

    @classmethod
    def big_int(cls) -> ColumnType:
        return cls(TypeKind.BIG_INT)

    @classmethod
    def tiny_unsigned(cls) -> ColumnType:
        return cls(TypeKind.TINY_UNSIGNED)

    @classmethod
    def small_unsigned(cls) -> ColumnType:
        return cls(TypeKind.SMALL_UNSIGNED)

    @classmethod
    def unsigned(cls) -> ColumnType:
        return cls(TypeKind.UNSIGNED)

    @classmethod
    def big_unsigned(cls) -> ColumnType:
        return cls(TypeKind.BIG_UNSIGNED)

    @classmethod
    def float_(cls) -> ColumnType:
        return cls(TypeKind.FLOAT)

    @classmethod
    def double(cls) -> ColumnType:
        return cls(TypeKind.DOUBLE)

    @classmethod
    def decimal(cls) -> ColumnType:
        return cls(TypeKind.DECIMAL)

    @classmethod
    def string(cls) -> ColumnType:
        return cls(TypeKind.STRING)

    @classmethod
    def char(cls) -> ColumnType:
        return cls(TypeKind.CHAR)

    @classmethod
    def bytes_(cls) -> ColumnType:
        return cls(TypeKind.BYTES)

    @classmethod
    def json(cls) -> ColumnType:
        return cls(TypeKind.JSON)

    @classmethod
    def date(cls) -> ColumnType:
        return cls(TypeKind.DATE)

    @classmethod
    def time(cls) -> ColumnType:
        return cls(TypeKind.TIME)

    @classmethod
    def datetime(cls) -> ColumnType:
        return cls(TypeKind.DATETIME)

    @classmethod
    def datetime_tz(cls) -> ColumnType:
        return cls(TypeKind.DATETIME_TZ)

    @classmethod
    def uuid(cls) -> ColumnType:
        return cls(TypeKind.UUID)

    @classmethod
    def enum(cls, name: str) -> ColumnType:
        return cls(TypeKind.ENUM, name=name)

    @classmethod
    def array(cls, inner: ColumnType) -> ColumnType:
        return cls(TypeKind.ARRAY, inner=inner)

    @classmethod
    def ip_network(cls) -> ColumnType:
        return cls(TypeKind.IP_NETWORK)

    @classmethod
    def mac_address(cls) -> ColumnType:
        return cls(TypeKind.MAC_ADDRESS)

    @classmethod
    def custom(cls, name: str) -> ColumnType:
        return cls(TypeKind.CUSTOM, name=name)


@dataclass
class Column:
    """Definition of a table column."""
    name: str
    type: ColumnType
    nullable: bool = False
    primary_key: bool = False
    ignore: bool = False  # hidden from the GraphQL schema
    auto_increment: bool = False  # value generated by the database
    has_default: bool = False  # server-side default exists


class RelationKind(str, enum.Enum):
    """Direction of a relation as seen from its source entity."""
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    MANY_TO_MANY = "many_to_many"

    @property
    def is_to_many(self) -> bool:
        return self in (RelationKind.HAS_MANY, RelationKind.MANY_TO_MANY)


@dataclass
class Junction:
    """
    Junction table of a many-to-many relation.

    Example: film -> actors goes through film_actor, where
    film_actor.film_id matches film.film_id (from_columns) and
    film_actor.actor_id matches actor.actor_id (to_columns).
    """
    table: str
    from_columns: list[str]  # junction columns referencing the source
    to_columns: list[str]  # junction columns referencing the target


@dataclass
class Relation:
    """
    Definition of a relation between entities.

    For direct relations ``from_columns`` live on the source entity and
    ``to_columns`` on the target. For many-to-many relations ``from_columns``
    are source columns matched by ``junction.from_columns`` and ``to_columns``
    are target columns matched by ``junction.to_columns``.
    """
    name: str
    kind: RelationKind
    target: str  # target entity name
    from_columns: list[str]
    to_columns: list[str]
    optional: bool = False  # foreign key is nullable
    junction: Optional[Junction] = None
    reverse_of: Optional[str] = None  # set on generated reverse companions

    def __post_init__(self):
        if not self.from_columns or not self.to_columns:
            raise SchemaConfigError(f"Relation '{self.name}' needs at least one column on each side")
        if len(self.from_columns) != len(self.to_columns):
            raise SchemaConfigError(
                f"Relation '{self.name}' has {len(self.from_columns)} source columns "
                f"but {len(self.to_columns)} target columns"
            )
        if self.kind == RelationKind.MANY_TO_MANY and self.junction is None:
            raise SchemaConfigError(f"Many-to-many relation '{self.name}' requires a junction")


@dataclass
class Entity:
    """Complete definition of a table."""
    name: str
    columns: list[Column]
    primary_key: list[str]
    relations: list[Relation] = field(default_factory=list)

    def __post_init__(self):
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise SchemaConfigError(f"Entity '{self.name}' has duplicate column names")
        if not 1 <= len(self.primary_key) <= 3:
            raise SchemaConfigError(
                f"Entity '{self.name}' primary key must have 1 to 3 columns, got {len(self.primary_key)}"
            )
        for key in self.primary_key:
            if key not in names:
                raise SchemaConfigError(f"Entity '{self.name}' primary key refers to unknown column '{key}'")
        for column in self.columns:
            column.primary_key = column.name in self.primary_key

    def column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"{self.name}.{name}")

    def has_column(self, name: str) -> bool:
        return any(c.name == name for c in self.columns)

    @property
    def visible_columns(self) -> list[Column]:
        return [c for c in self.columns if not c.ignore]

    @property
    def key_columns(self) -> list[Column]:
        return [self.column(name) for name in self.primary_key]

    def all_relations(self) -> list[Relation]:
        """
        Relations including generated reverse companions.

        A self-referential BELONGS_TO relation also yields a HAS_MANY
        relation named ``<name>_reverse`` walking the same columns backwards.
        """
        result = list(self.relations)
        for relation in self.relations:
            if relation.target == self.name and relation.kind == RelationKind.BELONGS_TO:
                result.append(Relation(
                    name=f"{relation.name}_reverse",
                    kind=RelationKind.HAS_MANY,
                    target=self.name,
                    from_columns=list(relation.to_columns),
                    to_columns=list(relation.from_columns),
                    optional=True,
                    reverse_of=relation.name,
                ))
        return result


@dataclass
class Enumeration:
    """A database enumeration and its raw variant values."""
    name: str
    values: list[str]

    def __post_init__(self):
        if not self.values:
            raise SchemaConfigError(f"Enumeration '{self.name}' has no values")
        if len(set(self.values)) != len(self.values):
            raise SchemaConfigError(f"Enumeration '{self.name}' has duplicate values")


@dataclass
class SchemaDef:
    """Complete relational schema handed to the builder."""
    entities: list[Entity] = field(default_factory=list)
    enumerations: list[Enumeration] = field(default_factory=list)

    def entity(self, name: str) -> Entity:
        for entity in self.entities:
            if entity.name == name:
                return entity
        raise KeyError(name)
