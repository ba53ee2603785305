"""
Schema executor - parse, validate and execute a GraphQL request.

Errors raised by resolvers are masked unless they are meant for clients:
the client receives "InternalError: <id>" and the full exception is logged
under the same id.

Usage:
    executor = SchemaExecutor(graphql_schema, runtime, rules)
    result = await executor.execute(engine, "{ store { nodes { storeId } } }")
"""

from __future__ import annotations

import inspect
import logging
import uuid
from typing import Any, Optional, Sequence

from graphql import (
    ExecutionResult,
    GraphQLError,
    GraphQLSchema,
    ValidationRule,
    execute,
    parse,
    specified_rules,
    validate,
)
from sqlalchemy.ext.asyncio import AsyncEngine

from .context import RequestContext, SchemaRuntime

logger = logging.getLogger(__name__)


def mask_error(error: GraphQLError) -> GraphQLError:
    """Keep client-visible errors; replace everything else with a correlation id."""
    original = error.original_error
    if original is None or isinstance(original, GraphQLError):
        return error
    if getattr(original, "client_visible", False):
        return error

    correlation_id = uuid.uuid4().hex
    logger.error(f"Internal error {correlation_id} at {error.path}: {original!r}", exc_info=original)
    return GraphQLError(
        f"InternalError: {correlation_id}",
        nodes=error.nodes,
        path=error.path,
        extensions={"correlationId": correlation_id},
    )


class SchemaExecutor:
    """Runs requests against a sealed schema."""

    def __init__(
        self,
        schema: GraphQLSchema,
        runtime: SchemaRuntime,
        rules: Sequence[type[ValidationRule]] = (),
    ):
        self.schema = schema
        self.runtime = runtime
        self.rules = [*specified_rules, *rules]

    async def execute(
        self,
        engine: AsyncEngine,
        source: str,
        variables: Optional[dict[str, Any]] = None,
        operation_name: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ) -> ExecutionResult:
        try:
            document = parse(source)
        except GraphQLError as e:
            return ExecutionResult(data=None, errors=[e])

        validation_errors = validate(self.schema, document, self.rules)
        if validation_errors:
            return ExecutionResult(data=None, errors=validation_errors)

        request = RequestContext(self.runtime, engine, variables, extra)
        try:
            result = execute(
                self.schema,
                document,
                context_value=request,
                variable_values=variables,
                operation_name=operation_name,
            )
            if inspect.isawaitable(result):
                result = await result
        finally:
            await request.close()

        if result.errors:
            result = ExecutionResult(data=result.data, errors=[mask_error(e) for e in result.errors])
        return result
