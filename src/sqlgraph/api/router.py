"""
FastAPI router exposing a sealed schema over HTTP.

Endpoints:
- POST /graphql         - Executes {query, variables, operationName}
- GET  /graphql/schema  - Returns the schema SDL
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncEngine

from ..schema.builder import Schema


class GraphQLRequest(BaseModel):
    """Body of a GraphQL POST request."""
    query: str
    variables: Optional[dict[str, Any]] = None
    operation_name: Optional[str] = Field(default=None, alias="operationName")


def create_router(
    schema: Schema,
    engine: AsyncEngine,
    *,
    get_extra: Optional[Callable[[Request], dict[str, Any]]] = None,
) -> APIRouter:
    """
    Create a router bound to a schema and engine.

    Args:
        schema: Sealed schema
        engine: Engine requests run against
        get_extra: Builds the per-request ``extra`` mapping guards can read
            (e.g. the authenticated user)
    """
    router = APIRouter()

    @router.post("/graphql")
    async def execute_graphql(body: GraphQLRequest, request: Request) -> dict[str, Any]:
        extra = get_extra(request) if get_extra else {"headers": dict(request.headers)}
        result = await schema.execute(
            engine,
            body.query,
            variables=body.variables,
            operation_name=body.operation_name,
            extra=extra,
        )
        response: dict[str, Any] = {"data": result.data}
        if result.errors:
            response["errors"] = [error.formatted for error in result.errors]
        return response

    @router.get("/graphql/schema", response_class=PlainTextResponse)
    async def get_schema_sdl() -> str:
        return schema.sdl()

    return router
