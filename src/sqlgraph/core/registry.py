"""
Entity registry - resolved naming and column metadata per entity.

Combines an Entity definition, its SQLAlchemy table and the builder
configuration (casing, overrides, filter overrides) into an EntityInfo
used by both the schema layer and the runtime compilers.

Usage:
    registry = EntityRegistry()
    info = EntityInfo.build(entity, table, context)
    registry.register(info)

    info = registry.get("film_actor")
    info.type_name          # "FilmActor"
    info.query_field        # "filmActor"
    info.field("actorId")   # FieldInfo for column actor_id
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa

from .defs import Column, Entity, Relation, TypeKind
from .errors import SchemaConfigError
from .filters import FilterField, default_filter_family, family_from_name
from .types_map import ColumnOverride

if TYPE_CHECKING:
    from ..runtime.context import BuilderContext

UNORDERABLE_KINDS = frozenset({TypeKind.JSON, TypeKind.ARRAY})


@dataclass
class FieldInfo:
    """A visible column and its GraphQL projection."""
    column: Column
    name: str  # GraphQL field name
    path: str  # "TypeName.fieldName", key for overrides and guards
    override: Optional[ColumnOverride] = None
    filter: Optional[FilterField] = None
    orderable: bool = True


@dataclass
class RelationInfo:
    """A relation and its GraphQL field name."""
    relation: Relation
    name: str
    path: str

    @property
    def is_to_many(self) -> bool:
        return self.relation.kind.is_to_many


@dataclass
class EntityInfo:
    """Resolved metadata of one registered entity."""
    entity: Entity
    table: sa.Table
    type_name: str
    query_field: str
    fields: list[FieldInfo] = field(default_factory=list)
    relations: list[RelationInfo] = field(default_factory=list)

    # --- Derived type names ---

    @property
    def name(self) -> str:
        return self.entity.name

    @property
    def basic_type_name(self) -> str:
        return f"{self.type_name}Basic"

    @property
    def connection_type_name(self) -> str:
        return f"{self.type_name}Connection"

    @property
    def edge_type_name(self) -> str:
        return f"{self.type_name}Edge"

    @property
    def filter_type_name(self) -> str:
        return f"{self.type_name}FilterInput"

    @property
    def order_type_name(self) -> str:
        return f"{self.type_name}OrderInput"

    @property
    def insert_type_name(self) -> str:
        return f"{self.type_name}InsertInput"

    @property
    def update_type_name(self) -> str:
        return f"{self.type_name}UpdateInput"

    # --- Lookups ---

    @property
    def filter_fields(self) -> dict[str, FieldInfo]:
        return {f.name: f for f in self.fields if f.filter is not None}

    @property
    def order_fields(self) -> dict[str, FieldInfo]:
        return {f.name: f for f in self.fields if f.orderable}

    @property
    def key_columns(self) -> list[Column]:
        return self.entity.key_columns

    def field(self, name: str) -> FieldInfo:
        for info in self.fields:
            if info.name == name:
                return info
        raise KeyError(f"{self.type_name}.{name}")

    def field_for_column(self, column_name: str) -> Optional[FieldInfo]:
        for info in self.fields:
            if info.column.name == column_name:
                return info
        return None

    @property
    def key_paths(self) -> list[str]:
        """"TypeName.fieldName" of each primary-key column, hidden keys by column name."""
        paths = []
        for column in self.key_columns:
            field_info = self.field_for_column(column.name)
            paths.append(field_info.path if field_info else f"{self.type_name}.{column.name}")
        return paths

    def sql_columns(self, names: list[str]) -> list[sa.Column]:
        return [self.table.c[name] for name in names]

    @classmethod
    def build(cls, entity: Entity, table: sa.Table, context: BuilderContext) -> EntityInfo:
        """Resolve names, overrides and filter families for an entity."""
        type_name = context.type_name(entity.name)
        info = cls(
            entity=entity,
            table=table,
            type_name=type_name,
            query_field=context.field_name(type_name),
        )

        for column in entity.visible_columns:
            name = context.field_name(column.name)
            path = f"{type_name}.{name}"
            info.fields.append(FieldInfo(
                column=column,
                name=name,
                path=path,
                override=context.column_overrides.get(path),
                filter=_filter_field(column, path, context),
                orderable=column.type.kind not in UNORDERABLE_KINDS,
            ))

        for relation in entity.all_relations():
            name = context.field_name(relation.name)
            info.relations.append(RelationInfo(relation=relation, name=name, path=f"{type_name}.{name}"))

        names = [f.name for f in info.fields] + [r.name for r in info.relations]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise SchemaConfigError(f"Entity '{entity.name}' has clashing field names: {sorted(duplicates)}")

        return info


def _filter_field(column: Column, path: str, context: BuilderContext) -> Optional[FilterField]:
    if path in context.filter_overrides:
        forced = context.filter_overrides[path]
        return FilterField.for_family(family_from_name(forced)) if forced else None

    if column.type.kind == TypeKind.ENUM:
        return FilterField.for_enum(column.type.name, context.enum_type_name(column.type.name))

    family = default_filter_family(column.type)
    return FilterField.for_family(family) if family is not None else None


class EntityRegistry:
    """Registered entities keyed by entity (table) name."""

    def __init__(self):
        self._entities: dict[str, EntityInfo] = {}

    def register(self, info: EntityInfo) -> None:
        self._entities[info.name] = info

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __iter__(self):
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def get(self, name: str) -> EntityInfo:
        try:
            return self._entities[name]
        except KeyError:
            raise SchemaConfigError(f"Entity '{name}' is not registered") from None
