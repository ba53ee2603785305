"""
Schema builder - registers entities and enumerations and seals them into
an executable GraphQL schema.

Usage:
    builder = Builder(BuilderContext(default_limit=20, max_limit=100))
    builder.register_schema(schema_def)
    schema = builder.seal()

    print(schema.sdl())
    result = await schema.execute(engine, "{ store { nodes { storeId } } }")
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import sqlalchemy as sa
from graphql import (
    ExecutionResult,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    assert_valid_schema,
    print_schema,
)
from sqlalchemy.ext.asyncio import AsyncEngine

from ..core.defs import Entity, Enumeration, SchemaDef
from ..core.errors import DuplicateEntityError, SchemaConfigError
from ..core.filters import FilterCompiler
from ..core.registry import EntityInfo, EntityRegistry
from ..core.tables import build_table
from ..core.types_map import GraphQLBigInt, TypeMapper
from ..core.validator import SchemaValidator
from ..runtime.context import BuilderContext, SchemaRuntime
from ..runtime.executor import SchemaExecutor
from .entity import EntityTypeFactory, page_info_types
from .enums import build_enum_type
from .inputs import (
    entity_filter_type,
    entity_insert_type,
    entity_order_type,
    entity_update_type,
    enum_filter_type,
    filter_family_types,
    order_by_enum,
    pagination_types,
)
from .limits import complexity_limit_rule, depth_limit_rule
from .mutations import MutationFieldFactory

logger = logging.getLogger(__name__)


class Schema:
    """A sealed, executable schema."""

    def __init__(
        self,
        graphql_schema: GraphQLSchema,
        metadata: sa.MetaData,
        runtime: SchemaRuntime,
        executor: SchemaExecutor,
    ):
        self.graphql_schema = graphql_schema
        self.metadata = metadata
        self.runtime = runtime
        self.executor = executor

    @property
    def registry(self) -> EntityRegistry:
        return self.runtime.registry

    def sdl(self) -> str:
        """Schema definition language of the generated schema."""
        return print_schema(self.graphql_schema)

    async def execute(
        self,
        engine: AsyncEngine,
        source: str,
        variables: Optional[dict[str, Any]] = None,
        operation_name: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> ExecutionResult:
        """Execute a GraphQL request; ``extra`` is exposed to guards as ``info.context.extra``."""
        return await self.executor.execute(engine, source, variables, operation_name, extra)


class Builder:
    """
    Collects entities, enumerations and scalars, then seals them.

    Registration is closed once ``seal()`` has been called.
    """

    def __init__(self, context: Optional[BuilderContext] = None):
        self.context = context or BuilderContext()
        self._entities: dict[str, Entity] = {}
        self._mutable: list[str] = []
        self._enumerations: dict[str, Enumeration] = {}
        self._scalars: dict[str, GraphQLNamedType] = {}
        self._sealed = False

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._sealed:
            raise SchemaConfigError("Builder is sealed")

    def register_entity(self, entity: Entity) -> None:
        self._check_open()
        if entity.name in self._entities:
            raise DuplicateEntityError(entity.name)
        self._entities[entity.name] = entity
        logger.info(f"Registered entity: {entity.name}")

    def register_entity_mutations(self, entity: Union[Entity, str]) -> None:
        """Expose CreateOne, CreateBatch, Update and Delete for a registered entity."""
        self._check_open()
        name = entity if isinstance(entity, str) else entity.name
        if name not in self._entities:
            raise SchemaConfigError(f"Entity '{name}' must be registered before its mutations")
        if name in self._mutable:
            raise DuplicateEntityError(name)
        self._mutable.append(name)

    def register_enumeration(self, enumeration: Enumeration) -> None:
        self._check_open()
        if enumeration.name in self._enumerations:
            raise SchemaConfigError(f"Enumeration '{enumeration.name}' is already registered")
        self._enumerations[enumeration.name] = enumeration

    def register_scalar(self, gql_type: GraphQLNamedType) -> None:
        """Register a custom GraphQL type for use in column overrides."""
        self._check_open()
        if gql_type.name in self._scalars:
            raise SchemaConfigError(f"Type '{gql_type.name}' is already registered")
        self._scalars[gql_type.name] = gql_type

    def register_schema(self, schema_def: SchemaDef, mutations: bool = True) -> None:
        """Register every enumeration and entity of a schema definition."""
        for enumeration in schema_def.enumerations:
            self.register_enumeration(enumeration)
        for entity in schema_def.entities:
            self.register_entity(entity)
            if mutations:
                self.register_entity_mutations(entity)

    # -------------------------------------------------------------------------
    # Seal
    # -------------------------------------------------------------------------

    def seal(self) -> Schema:
        """
        Validate the registrations and build the schema.

        Raises:
            SchemaConfigError: invalid metamodel, name clashes, or an
                invalid resulting GraphQL schema
        """
        self._check_open()
        if not self._entities:
            raise SchemaConfigError("No entities registered")

        result = SchemaValidator().validate(self._entities, self._enumerations)
        if not result.success:
            raise SchemaConfigError("Invalid schema:\n" + "\n".join(result.error_messages()))

        context = self.context
        metadata = sa.MetaData()
        registry = EntityRegistry()
        for entity in self._entities.values():
            table = build_table(entity, metadata, self._enumerations)
            registry.register(EntityInfo.build(entity, table, context))

        mapper = TypeMapper(self._enumerations, timestamp_rfc3339=context.timestamp_rfc3339)
        runtime = SchemaRuntime(context=context, registry=registry, mapper=mapper, filters=FilterCompiler(mapper))

        types: dict[str, GraphQLNamedType] = {}

        def add(gql_type: GraphQLNamedType) -> None:
            if gql_type.name in types:
                raise SchemaConfigError(f"GraphQL type name '{gql_type.name}' is generated twice")
            types[gql_type.name] = gql_type

        for gql_type in self._scalars.values():
            add(gql_type)
        for enumeration in self._enumerations.values():
            enum_type = build_enum_type(enumeration, context)
            add(enum_type)
            add(enum_filter_type(enum_type))
        shared = [GraphQLBigInt, *filter_family_types(), order_by_enum(), *pagination_types(), *page_info_types()]
        for gql_type in shared:
            add(gql_type)

        entities = EntityTypeFactory(runtime, types)
        mutations = MutationFieldFactory(runtime, types)
        for info in registry:
            for gql_type in entities.object_types(info):
                add(gql_type)
            add(entity_filter_type(info, types))
            add(entity_order_type(info, types))
            if info.name in self._mutable:
                add(entity_insert_type(info, types, runtime))
                add(entity_update_type(info, types, runtime))

        def query_fields():
            fields = {}
            for info in registry:
                fields.update(entities.query_fields(info))
            return fields

        def mutation_fields():
            fields = {}
            for name in self._mutable:
                fields.update(mutations.mutation_fields(registry.get(name)))
            return fields

        query = GraphQLObjectType("Query", query_fields)
        mutation = GraphQLObjectType("Mutation", mutation_fields) if self._mutable else None
        try:
            # Field thunks are resolved here
            graphql_schema = GraphQLSchema(query=query, mutation=mutation, types=list(types.values()))
            assert_valid_schema(graphql_schema)
        except (TypeError, ValueError) as e:
            raise SchemaConfigError(f"Invalid GraphQL schema: {e}") from e

        rules = []
        if context.depth_limit is not None:
            rules.append(depth_limit_rule(context.depth_limit))
        if context.complexity_limit is not None:
            rules.append(complexity_limit_rule(context.complexity_limit))

        self._sealed = True
        logger.info(
            f"Sealed schema: {len(registry)} entities, {len(self._enumerations)} enumerations, "
            f"{len(self._mutable)} with mutations"
        )
        return Schema(graphql_schema, metadata, runtime, SchemaExecutor(graphql_schema, runtime, rules))
