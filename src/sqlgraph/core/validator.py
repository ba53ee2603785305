"""
Metamodel validator - checks a set of entities before the builder seals.

Usage:
    validator = SchemaValidator()
    result = validator.validate(entities, enumerations)
    if not result.success:
        raise SchemaConfigError("; ".join(result.error_messages()))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .defs import Entity, Enumeration, RelationKind, TypeKind


@dataclass
class ValidationIssue:
    """Single validation problem."""
    entity: Optional[str]
    field: Optional[str]
    message: str

    def __str__(self) -> str:
        parts = []
        if self.entity:
            parts.append(self.entity)
        if self.field:
            parts.append(self.field)
        location = ".".join(parts) if parts else "global"
        return f"[{location}] {self.message}"


@dataclass
class ValidationResult:
    """Result of validation."""
    success: bool
    errors: list[ValidationIssue] = field(default_factory=list)

    def error_messages(self) -> list[str]:
        """Get all error messages as strings."""
        return [str(e) for e in self.errors]


class SchemaValidator:
    """
    Validates entity definitions.

    Performs validation:
    - Enum columns reference registered enumerations
    - Relation targets are registered entities
    - Relation columns exist on both sides
    - Junction tables exist and line up with the relation columns
    """

    def __init__(self):
        self.errors: list[ValidationIssue] = []

    def validate(
        self,
        entities: dict[str, Entity],
        enumerations: dict[str, Enumeration],
    ) -> ValidationResult:
        self.errors = []

        for entity in entities.values():
            self._validate_columns(entity, enumerations)
            self._validate_relations(entity, entities)

        return ValidationResult(success=not self.errors, errors=list(self.errors))

    def _add_error(self, message: str, entity: Optional[str] = None, field: Optional[str] = None):
        self.errors.append(ValidationIssue(entity=entity, field=field, message=message))

    def _validate_columns(self, entity: Entity, enumerations: dict[str, Enumeration]):
        for column in entity.columns:
            column_type = column.type
            while column_type.kind == TypeKind.ARRAY:
                column_type = column_type.inner
            if column_type.kind == TypeKind.ENUM and column_type.name not in enumerations:
                self._add_error(
                    f"Unknown enumeration '{column_type.name}'",
                    entity=entity.name,
                    field=column.name,
                )

    def _validate_relations(self, entity: Entity, entities: dict[str, Entity]):
        seen: set[str] = set()
        for relation in entity.all_relations():
            if relation.name in seen:
                self._add_error("Duplicate relation name", entity=entity.name, field=relation.name)
            seen.add(relation.name)

            target = entities.get(relation.target)
            if target is None:
                self._add_error(
                    f"Unknown relation target '{relation.target}'",
                    entity=entity.name,
                    field=relation.name,
                )
                continue

            for name in relation.from_columns:
                if not entity.has_column(name):
                    self._add_error(f"Unknown source column '{name}'", entity=entity.name, field=relation.name)
            for name in relation.to_columns:
                if not target.has_column(name):
                    self._add_error(
                        f"Unknown target column '{relation.target}.{name}'",
                        entity=entity.name,
                        field=relation.name,
                    )

            if relation.kind == RelationKind.MANY_TO_MANY:
                self._validate_junction(entity, relation, entities)

    def _validate_junction(self, entity: Entity, relation, entities: dict[str, Entity]):
        junction = relation.junction
        table = entities.get(junction.table)
        if table is None:
            self._add_error(
                f"Unknown junction table '{junction.table}'",
                entity=entity.name,
                field=relation.name,
            )
            return

        if len(junction.from_columns) != len(relation.from_columns):
            self._add_error("Junction source columns do not match relation", entity=entity.name, field=relation.name)
        if len(junction.to_columns) != len(relation.to_columns):
            self._add_error("Junction target columns do not match relation", entity=entity.name, field=relation.name)
        for name in [*junction.from_columns, *junction.to_columns]:
            if not table.has_column(name):
                self._add_error(
                    f"Unknown junction column '{junction.table}.{name}'",
                    entity=entity.name,
                    field=relation.name,
                )
