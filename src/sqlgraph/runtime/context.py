"""
Contexts for schema building and request execution.

- BuilderContext: immutable configuration shared by every resolver and loader
- SchemaRuntime: registry and compilers owned by a sealed schema
- RequestContext: per-request state (database handle, loaders, variables)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from ..core.errors import DatabaseError
from ..core.filters import FilterCompiler
from ..core.registry import EntityRegistry
from ..core.types_map import ColumnOverride, TypeMapper
from ..core.utils import get_case_function, to_camel_case, to_pascal_case, to_upper_case
from ..iam.guard import EntityFilter, Guard

if TYPE_CHECKING:
    from ..core.settings import Settings
    from .events import EntityWatch
    from .loader import DataLoaders

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuilderContext:
    """
    Configuration of a schema build.

    Overrides, guards and entity filters are keyed by GraphQL names:
    "<TypeName>" for entity guards and filters, "<TypeName>.<fieldName>"
    for the rest.
    """
    # Naming
    type_name_case: Callable[[str], str] = to_pascal_case
    field_name_case: Callable[[str], str] = to_camel_case
    variant_case: Callable[[str], str] = to_upper_case

    # Pagination
    default_limit: Optional[int] = None
    max_limit: Optional[int] = None

    # Output
    timestamp_rfc3339: bool = False

    # Query limits
    depth_limit: Optional[int] = None
    complexity_limit: Optional[int] = None

    # Per-column configuration
    column_overrides: Mapping[str, ColumnOverride] = field(default_factory=dict)
    filter_overrides: Mapping[str, Optional[str]] = field(default_factory=dict)  # family name or None

    # Guards
    entity_guards: Mapping[str, Guard] = field(default_factory=dict)
    field_guards: Mapping[str, Guard] = field(default_factory=dict)

    # Row scopes and mutation events
    entity_filters: Mapping[str, EntityFilter] = field(default_factory=dict)
    entity_watch: Optional[EntityWatch] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> BuilderContext:
        """Create a context from settings; keyword arguments take precedence."""
        values: dict[str, Any] = dict(
            type_name_case=get_case_function(settings.type_name_case),
            field_name_case=get_case_function(settings.field_name_case),
            default_limit=settings.default_limit,
            max_limit=settings.max_limit,
            timestamp_rfc3339=settings.timestamp_rfc3339,
            depth_limit=settings.depth_limit,
            complexity_limit=settings.complexity_limit,
        )
        values.update(kwargs)
        return cls(**values)

    def type_name(self, name: str) -> str:
        return self.type_name_case(name)

    def field_name(self, name: str) -> str:
        return self.field_name_case(name)

    def enum_type_name(self, enum_name: str) -> str:
        return f"{self.type_name_case(enum_name)}Enum"


@dataclass
class SchemaRuntime:
    """Everything resolvers need that is fixed at seal time."""
    context: BuilderContext
    registry: EntityRegistry
    mapper: TypeMapper
    filters: FilterCompiler


async def fetch_rows(conn: AsyncConnection, stmt: Any) -> list[dict[str, Any]]:
    """Execute a SELECT (or RETURNING) statement and return rows as dicts."""
    logger.debug(f"Executing: {stmt}")
    try:
        result = await conn.execute(stmt)
    except SQLAlchemyError as e:
        raise DatabaseError(e.__class__.__name__) from e
    return [dict(row._mapping) for row in result]


async def execute_statement(conn: AsyncConnection, stmt: Any) -> int:
    """Execute a DML statement and return the affected row count."""
    logger.debug(f"Executing: {stmt}")
    try:
        result = await conn.execute(stmt)
    except SQLAlchemyError as e:
        raise DatabaseError(e.__class__.__name__) from e
    return result.rowcount


class RequestContext:
    """
    Per-request execution state, passed to resolvers as ``info.context``.

    Reads use short-lived pooled connections. Mutations share one
    connection per request and run each mutation in its own transaction.
    """

    def __init__(
        self,
        runtime: SchemaRuntime,
        engine: AsyncEngine,
        variables: Optional[dict[str, Any]] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        self.runtime = runtime
        self.engine = engine
        self.variables = variables or {}  # raw variables, key order preserved
        self.extra = extra or {}
        self._loaders: Optional[DataLoaders] = None
        self._mutation_connection: Optional[AsyncConnection] = None
        self._mutation_lock = asyncio.Lock()

    @property
    def loaders(self) -> DataLoaders:
        """Request-scoped data-loaders, created on first use."""
        if self._loaders is None:
            from .loader import create_dataloaders
            self._loaders = create_dataloaders(self)
        return self._loaders

    async def fetch_all(self, stmt: Any) -> list[dict[str, Any]]:
        """Run a read query on a pooled connection."""
        try:
            async with self.engine.connect() as conn:
                return await fetch_rows(conn, stmt)
        except SQLAlchemyError as e:
            raise DatabaseError(e.__class__.__name__) from e

    async def fetch_scalar(self, stmt: Any) -> Any:
        """Run a scalar query (e.g. COUNT) on a pooled connection."""
        logger.debug(f"Executing: {stmt}")
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.scalar()
        except SQLAlchemyError as e:
            raise DatabaseError(e.__class__.__name__) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """
        Open a transaction on the request's mutation connection.

        Commits on success; rolls back on any exception, including
        cancellation.
        """
        async with self._mutation_lock:
            try:
                if self._mutation_connection is None:
                    self._mutation_connection = await self.engine.connect()
                conn = self._mutation_connection
                async with conn.begin():
                    yield conn
            except SQLAlchemyError as e:
                raise DatabaseError(e.__class__.__name__) from e

    async def close(self) -> None:
        """Release the mutation connection, if one was opened."""
        if self._mutation_connection is not None:
            await self._mutation_connection.close()
            self._mutation_connection = None
