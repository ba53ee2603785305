#!/usr/bin/env python3
"""
sqlgraph CLI - Main entry point.

Usage:
    sqlgraph schema --database-url URL             # Print the SDL of a database
    sqlgraph serve --database-url URL --port 8000  # Serve it over HTTP
    sqlgraph --config sqlgraph.yaml serve          # Read settings from YAML
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from ..core.errors import SqlGraphError
from ..core.settings import Settings, load_settings
from ..runtime.context import BuilderContext
from ..schema.builder import Builder, Schema
from ..service.database import create_engine, reflect_schema

logger = logging.getLogger(__name__)


def load_cli_settings(args: argparse.Namespace) -> Settings:
    return load_settings(
        args.config,
        database_url=args.database_url,
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        tables=args.tables.split(",") if args.tables else None,
    )


async def build_schema(settings: Settings) -> Schema:
    """Reflect the configured database and seal a schema over it."""
    engine = create_engine(settings)
    try:
        schema_def = await reflect_schema(engine, settings.tables)
    finally:
        await engine.dispose()

    builder = Builder(BuilderContext.from_settings(settings))
    builder.register_schema(schema_def, mutations=settings.mutations)
    return builder.seal()


def cmd_schema(args: argparse.Namespace) -> int:
    """Print the SDL of the reflected database."""
    settings = load_cli_settings(args)
    try:
        schema = asyncio.run(build_schema(settings))
    except SqlGraphError as e:
        print(f"Error building schema: {e}")
        return 1
    print(schema.sdl())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the GraphQL server."""
    import uvicorn

    from ..service.app import create_app

    settings = load_cli_settings(args)
    logging.basicConfig(level=settings.log_level.upper())
    try:
        schema = asyncio.run(build_schema(settings))
    except SqlGraphError as e:
        print(f"Error building schema: {e}")
        return 1

    app = create_app(schema, create_engine(settings))
    logger.info(f"Serving {len(schema.registry)} entities on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the schema and serve commands."""
    parser = argparse.ArgumentParser(
        prog="sqlgraph",
        description="sqlgraph - GraphQL schemas generated from relational databases"
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument("--config", "-c", help="YAML settings file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # schema
    schema_parser = subparsers.add_parser("schema", help="Print the GraphQL SDL of a database")
    schema_parser.add_argument("--database-url", help="SQLAlchemy async database URL")
    schema_parser.add_argument("--tables", help="Comma-separated tables to expose")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Serve the GraphQL API")
    serve_parser.add_argument("--database-url", help="SQLAlchemy async database URL")
    serve_parser.add_argument("--tables", help="Comma-separated tables to expose")
    serve_parser.add_argument("--host", help="Bind host")
    serve_parser.add_argument("--port", "-p", type=int, help="Bind port")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Run a command and return its exit code."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "schema": cmd_schema,
        "serve": cmd_serve,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Console script entry point."""
    sys.exit(app())


if __name__ == "__main__":
    main()
