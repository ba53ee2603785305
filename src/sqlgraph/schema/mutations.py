"""
Root mutation fields.

Each mutation checks guards for its operation, runs in its own
transaction and notifies the entity watch once committed.

- <entity>CreateOne(data: <Entity>InsertInput!): <Entity>Basic!
- <entity>CreateBatch(data: [<Entity>InsertInput!]!): [<Entity>Basic!]!
- <entity>Update(data: <Entity>UpdateInput!, filter: <Entity>FilterInput): [<Entity>Basic!]!
- <entity>Delete(filter: <Entity>FilterInput): Int!
"""

from __future__ import annotations

from typing import Any, Mapping

from graphql import (
    GraphQLArgument,
    GraphQLField,
    GraphQLInt,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLResolveInfo,
)

from ..core.registry import EntityInfo
from ..iam.guard import OperationType, check_entity_guard, check_field_guard, entity_scope
from ..runtime.context import SchemaRuntime
from ..runtime.events import notify_watch
from ..runtime.mutation_executor import MutationExecutor


class MutationFieldFactory:
    """Builds the four mutation fields of an entity."""

    def __init__(self, runtime: SchemaRuntime, types: Mapping[str, GraphQLNamedType]):
        self.runtime = runtime
        self.types = types
        self.executor = MutationExecutor(runtime)

    def mutation_fields(self, info: EntityInfo) -> dict[str, GraphQLField]:
        types = self.types
        basic = GraphQLNonNull(types[info.basic_type_name])
        insert = GraphQLNonNull(types[info.insert_type_name])
        executor = self.executor
        context = self.runtime.context

        def scope(gql_info: GraphQLResolveInfo, operation: OperationType) -> Any:
            return entity_scope(context.entity_filters, info.type_name, info.table, gql_info, operation)

        async def create_one(_root: Any, gql_info: GraphQLResolveInfo, data: dict[str, Any]) -> Any:
            self._check_guards(info, gql_info, OperationType.CREATE, [data])
            row = await executor.create_one(gql_info.context, info, data)
            await notify_watch(context.entity_watch, gql_info, info.type_name, OperationType.CREATE)
            return row

        async def create_batch(_root: Any, gql_info: GraphQLResolveInfo, data: list[dict[str, Any]]) -> Any:
            self._check_guards(info, gql_info, OperationType.CREATE, data)
            rows = await executor.create_batch(gql_info.context, info, data)
            await notify_watch(context.entity_watch, gql_info, info.type_name, OperationType.CREATE)
            return rows

        async def update(_root: Any, gql_info: GraphQLResolveInfo, data: dict[str, Any], **args: Any) -> Any:
            self._check_guards(info, gql_info, OperationType.UPDATE, [data])
            rows = await executor.update(
                gql_info.context, info, data, args.get("filter"), scope(gql_info, OperationType.UPDATE)
            )
            await notify_watch(context.entity_watch, gql_info, info.type_name, OperationType.UPDATE)
            return rows

        async def delete(_root: Any, gql_info: GraphQLResolveInfo, **args: Any) -> Any:
            self._check_guards(info, gql_info, OperationType.DELETE, [])
            count = await executor.delete(
                gql_info.context, info, args.get("filter"), scope(gql_info, OperationType.DELETE)
            )
            await notify_watch(context.entity_watch, gql_info, info.type_name, OperationType.DELETE)
            return count

        prefix = info.query_field
        return {
            f"{prefix}CreateOne": GraphQLField(
                basic,
                args={"data": GraphQLArgument(insert)},
                resolve=create_one,
            ),
            f"{prefix}CreateBatch": GraphQLField(
                GraphQLNonNull(GraphQLList(basic)),
                args={"data": GraphQLArgument(GraphQLNonNull(GraphQLList(insert)))},
                resolve=create_batch,
            ),
            f"{prefix}Update": GraphQLField(
                GraphQLNonNull(GraphQLList(basic)),
                args={
                    "data": GraphQLArgument(GraphQLNonNull(types[info.update_type_name])),
                    "filter": GraphQLArgument(types[info.filter_type_name]),
                },
                resolve=update,
            ),
            f"{prefix}Delete": GraphQLField(
                GraphQLNonNull(GraphQLInt),
                args={"filter": GraphQLArgument(types[info.filter_type_name])},
                resolve=delete,
            ),
        }

    def _check_guards(
        self,
        info: EntityInfo,
        gql_info: GraphQLResolveInfo,
        operation: OperationType,
        items: list[dict[str, Any]],
    ) -> None:
        """Entity guard first, then the guard of every supplied input field."""
        context = self.runtime.context
        check_entity_guard(context.entity_guards, info.type_name, gql_info, operation)
        seen = set()
        for data in items:
            for name in data:
                if name not in seen:
                    seen.add(name)
                    check_field_guard(context.field_guards, info.field(name).path, gql_info, operation)

