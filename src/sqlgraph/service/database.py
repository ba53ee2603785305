"""
Database utilities for sqlgraph services.

Provides:
- AsyncEngine configuration from settings
- Reflection of an existing database into a SchemaDef
"""

from __future__ import annotations

import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..core.defs import SchemaDef
from ..core.introspect import schema_from_metadata
from ..core.settings import Settings

logger = logging.getLogger(__name__)

# Engine (initialized lazily)
_engine: Optional[AsyncEngine] = None


def create_engine(settings: Settings) -> AsyncEngine:
    """Create a new async engine for the configured database."""
    return create_async_engine(settings.database_url, echo=settings.echo_sql)


def get_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """Get or create the shared async engine."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings or Settings())
    return _engine


async def close_db() -> None:
    """Dispose the shared engine's connections."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


async def reflect_schema(engine: AsyncEngine, tables: Optional[list[str]] = None) -> SchemaDef:
    """Reflect tables, keys and foreign keys of a live database."""
    metadata = sa.MetaData()
    async with engine.connect() as conn:
        await conn.run_sync(lambda sync_conn: metadata.reflect(bind=sync_conn, only=tables))
    logger.info(f"Reflected {len(metadata.tables)} tables")
    return schema_from_metadata(metadata, tables=tables)
