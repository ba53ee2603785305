"""
Service app factory for sqlgraph.

The app serves one sealed schema and carries:
- The GraphQL router
- CORS middleware
- Health check endpoint
- Engine disposal on shutdown
- An access-log filter that drops health and SDL polling requests
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from ..api.router import create_router
from ..schema.builder import Schema


class HealthcheckLogFilter(logging.Filter):
    """Drops uvicorn access lines for /health and /graphql/schema requests."""

    QUIET_PATHS = ("/graphql/schema", "/health")

    def filter(self, record: logging.LogRecord) -> bool:
        line = record.getMessage()
        return not any(f" {path} " in line or f'"{path}' in line for path in self.QUIET_PATHS)


def _install_access_filter() -> None:
    access_logger = logging.getLogger("uvicorn.access")
    if any(isinstance(f, HealthcheckLogFilter) for f in access_logger.filters):
        return
    access_logger.addFilter(HealthcheckLogFilter())


def create_app(
    schema: Schema,
    engine: AsyncEngine,
    *,
    title: str = "sqlgraph",
    get_extra: Optional[Callable[[Request], dict[str, Any]]] = None,
    dispose_engine: bool = True,
) -> FastAPI:
    """
    Create a FastAPI app serving a sealed schema.

    Args:
        schema: Sealed schema
        engine: Engine requests run against
        title: Application title
        get_extra: Per-request ``extra`` for guards
        dispose_engine: Dispose the engine on shutdown

    Returns:
        The FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _install_access_filter()
        yield
        if dispose_engine:
            await engine.dispose()

    app = FastAPI(title=title, version="0.1.0", lifespan=lifespan)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_router(schema, engine, get_extra=get_extra))

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": title}

    return app
