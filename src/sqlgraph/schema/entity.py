"""
Entity object types, connections and root query fields.

For each entity:
- <Entity>            columns plus relation fields
- <Entity>Basic       columns only (mutation results)
- <Entity>Edge        { cursor, node }
- <Entity>Connection  { edges, nodes, pageInfo, paginationInfo }

Root fields:
- <entity>(filters, orderBy, pagination): <Entity>Connection!
- <entity>ByPk(<key fields>): <Entity>
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLField,
    GraphQLInt,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLResolveInfo,
    GraphQLString,
)

from ..core.defs import RelationKind
from ..core.ordering import argument_key_order, normalize_order
from ..core.registry import EntityInfo, RelationInfo
from ..iam.guard import OperationType, check_entity_guard, check_field_guard, entity_scope
from ..runtime.context import RequestContext, SchemaRuntime
from ..runtime.pagination import plan_pagination
from ..runtime.query import QueryCompiler
from .columns import column_base_type, column_resolver, field_output_type
from .inputs import PAGINATION_INPUT

logger = logging.getLogger(__name__)

PAGE_INFO = "PageInfo"
PAGINATION_INFO = "PaginationInfo"


def page_info_types() -> list[GraphQLObjectType]:
    """PageInfo and PaginationInfo, shared by every connection."""
    page_info = GraphQLObjectType(PAGE_INFO, {
        "hasPreviousPage": GraphQLField(
            GraphQLNonNull(GraphQLBoolean), resolve=lambda obj, _: obj.has_previous_page
        ),
        "hasNextPage": GraphQLField(GraphQLNonNull(GraphQLBoolean), resolve=lambda obj, _: obj.has_next_page),
        "startCursor": GraphQLField(GraphQLString, resolve=lambda obj, _: obj.start_cursor),
        "endCursor": GraphQLField(GraphQLString, resolve=lambda obj, _: obj.end_cursor),
    })
    pagination_info = GraphQLObjectType(PAGINATION_INFO, {
        "pages": GraphQLField(GraphQLNonNull(GraphQLInt)),
        "current": GraphQLField(GraphQLNonNull(GraphQLInt)),
        "offset": GraphQLField(GraphQLNonNull(GraphQLInt)),
        "total": GraphQLField(GraphQLNonNull(GraphQLInt)),
    })
    return [page_info, pagination_info]


def connection_arguments(info: EntityInfo, types: Mapping[str, GraphQLNamedType]) -> dict[str, GraphQLArgument]:
    return {
        "filters": GraphQLArgument(types[info.filter_type_name]),
        "orderBy": GraphQLArgument(types[info.order_type_name]),
        "pagination": GraphQLArgument(types[PAGINATION_INPUT]),
    }


class EntityTypeFactory:
    """
    Builds the object types and root fields of registered entities.

    Types reference each other by name through ``types``; every field map
    is a thunk so the graph can be cyclic.
    """

    def __init__(self, runtime: SchemaRuntime, types: Mapping[str, GraphQLNamedType]):
        self.runtime = runtime
        self.types = types
        self.compiler = QueryCompiler(runtime)

    # -------------------------------------------------------------------------
    # Object types
    # -------------------------------------------------------------------------

    def object_types(self, info: EntityInfo) -> list[GraphQLObjectType]:
        """<Entity>, <Entity>Basic, <Entity>Edge and <Entity>Connection."""
        types = self.types

        entity_type = GraphQLObjectType(
            info.type_name,
            lambda: {**self._column_fields(info), **self._relation_fields(info)},
        )
        basic_type = GraphQLObjectType(info.basic_type_name, lambda: self._column_fields(info))
        edge_type = GraphQLObjectType(info.edge_type_name, lambda: {
            "cursor": GraphQLField(GraphQLNonNull(GraphQLString), resolve=lambda edge, _: edge.cursor),
            "node": GraphQLField(GraphQLNonNull(types[info.type_name]), resolve=lambda edge, _: edge.node),
        })
        connection_type = GraphQLObjectType(info.connection_type_name, lambda: {
            "edges": GraphQLField(
                GraphQLNonNull(GraphQLList(GraphQLNonNull(types[info.edge_type_name]))),
                resolve=lambda conn, _: conn.edges,
            ),
            "nodes": GraphQLField(
                GraphQLNonNull(GraphQLList(GraphQLNonNull(types[info.type_name]))),
                resolve=lambda conn, _: conn.nodes,
            ),
            "pageInfo": GraphQLField(GraphQLNonNull(types[PAGE_INFO]), resolve=lambda conn, _: conn.page_info),
            "paginationInfo": GraphQLField(types[PAGINATION_INFO], resolve=lambda conn, _: conn.pagination_info),
        })
        return [entity_type, basic_type, edge_type, connection_type]

    def _column_fields(self, info: EntityInfo) -> dict[str, GraphQLField]:
        return {
            field_info.name: GraphQLField(
                field_output_type(field_info, self.types, self.runtime),
                resolve=column_resolver(field_info, self.runtime),
            )
            for field_info in info.fields
        }

    def _relation_fields(self, info: EntityInfo) -> dict[str, GraphQLField]:
        registry = self.runtime.registry
        fields = {}

        for relation_info in info.relations:
            relation = relation_info.relation
            target = registry.get(relation.target)
            resolve = self._relation_resolver(relation_info, target)

            if relation_info.is_to_many:
                fields[relation_info.name] = GraphQLField(
                    GraphQLNonNull(self.types[target.connection_type_name]),
                    args=connection_arguments(target, self.types),
                    resolve=resolve,
                )
            else:
                gql_type = self.types[target.type_name]
                if relation.kind == RelationKind.BELONGS_TO and not relation.optional:
                    gql_type = GraphQLNonNull(gql_type)
                fields[relation_info.name] = GraphQLField(gql_type, resolve=resolve)

        return fields

    def _relation_resolver(self, relation_info: RelationInfo, target: EntityInfo) -> Callable[..., Any]:
        context = self.runtime.context
        compiler = self.compiler

        async def resolve(row: dict[str, Any], info: GraphQLResolveInfo, **args: Any) -> Any:
            check_entity_guard(context.entity_guards, target.type_name, info, OperationType.READ)
            check_field_guard(context.field_guards, relation_info.path, info, OperationType.READ)
            request: RequestContext = info.context
            scope = entity_scope(context.entity_filters, target.type_name, target.table, info, OperationType.READ)

            if not relation_info.is_to_many:
                return await compiler.resolve_relation(request, relation_info, target, row, scope=scope)

            plan = plan_pagination(args.get("pagination"), context)
            key_order = argument_key_order(info, "orderBy", request.variables)
            orders = normalize_order(target, args.get("orderBy"), key_order)
            return await compiler.resolve_relation(
                request, relation_info, target, row, args.get("filters"), orders, plan, scope
            )

        return resolve

    # -------------------------------------------------------------------------
    # Root query fields
    # -------------------------------------------------------------------------

    def query_fields(self, info: EntityInfo) -> dict[str, GraphQLField]:
        """``<entity>`` and ``<entity>ByPk`` root fields."""
        types = self.types
        key_fields = [info.field_for_column(name) for name in info.entity.primary_key]

        by_pk_args = {}
        for field_info in key_fields:
            if field_info is None:
                # Ignored key columns cannot be addressed
                break
            base = column_base_type(field_info.column.type, types, self.runtime)
            by_pk_args[field_info.name] = GraphQLArgument(GraphQLNonNull(base))

        fields = {
            info.query_field: GraphQLField(
                GraphQLNonNull(types[info.connection_type_name]),
                args=connection_arguments(info, types),
                resolve=self._connection_resolver(info),
            ),
        }
        if len(by_pk_args) == len(key_fields):
            fields[f"{info.query_field}ByPk"] = GraphQLField(
                types[info.type_name],
                args=by_pk_args,
                resolve=self._by_pk_resolver(info),
            )
        return fields

    def _connection_resolver(self, entity: EntityInfo) -> Callable[..., Any]:
        context = self.runtime.context
        compiler = self.compiler

        async def resolve(_root: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
            check_entity_guard(context.entity_guards, entity.type_name, info, OperationType.READ)
            request: RequestContext = info.context
            plan = plan_pagination(args.get("pagination"), context)
            key_order = argument_key_order(info, "orderBy", request.variables)
            orders = normalize_order(entity, args.get("orderBy"), key_order)
            scope = entity_scope(context.entity_filters, entity.type_name, entity.table, info, OperationType.READ)
            return await compiler.resolve_connection(request, entity, args.get("filters"), orders, plan, scope)

        return resolve

    def _by_pk_resolver(self, entity: EntityInfo) -> Callable[..., Any]:
        context = self.runtime.context
        mapper = self.runtime.mapper
        compiler = self.compiler

        async def resolve(_root: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
            check_entity_guard(context.entity_guards, entity.type_name, info, OperationType.READ)
            key = {}
            for name, value in args.items():
                field_info = entity.field(name)
                key[field_info.column.name] = mapper.parse_input(field_info.path, field_info.column.type, value)
            scope = entity_scope(context.entity_filters, entity.type_name, entity.table, info, OperationType.READ)
            return await compiler.resolve_by_pk(info.context, entity, key, scope)

        return resolve
