"""
Mutation executor for sqlgraph.

Handles create-one, create-batch, update-by-filter and delete-by-filter.
Every mutation runs in a transaction on the request's mutation connection
and rolls back as a whole on failure.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.errors import DatabaseError
from ..core.registry import EntityInfo
from .context import RequestContext, SchemaRuntime, execute_statement, fetch_rows

logger = logging.getLogger(__name__)


class MutationExecutor:
    """
    Executes mutations against the database.

    Returned rows are plain dicts keyed by column name, resolved through
    the entity's Basic type.
    """

    def __init__(self, runtime: SchemaRuntime):
        self.runtime = runtime
        self.mapper = runtime.mapper
        self.filters = runtime.filters

    def column_values(self, info: EntityInfo, data: dict[str, Any]) -> dict[str, Any]:
        """
        Convert an insert/update input into column values.

        Raises:
            TypeConversionError: a value does not fit its column
        """
        values = {}
        for name, value in data.items():
            field_info = info.field(name)
            override = field_info.override
            if value is not None and override is not None and override.input_conversion is not None:
                values[field_info.column.name] = override.input_conversion(value)
            else:
                values[field_info.column.name] = self.mapper.parse_input(
                    field_info.path, field_info.column.type, value
                )
        return values

    async def create_one(self, request: RequestContext, info: EntityInfo, data: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it."""
        values = self.column_values(info, data)
        async with request.transaction() as conn:
            row = await self._insert(conn, info, values)
        logger.info(f"Created {info.name} row")
        return row

    async def create_batch(
        self,
        request: RequestContext,
        info: EntityInfo,
        items: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Insert all rows in one transaction; none are kept if any fails."""
        rows_values = [self.column_values(info, data) for data in items]
        async with request.transaction() as conn:
            rows = [await self._insert(conn, info, values) for values in rows_values]
        logger.info(f"Created {len(rows)} {info.name} rows")
        return rows

    async def update(
        self,
        request: RequestContext,
        info: EntityInfo,
        data: dict[str, Any],
        filters: Optional[dict[str, Any]],
        scope: Optional[sa.ColumnElement[bool]] = None,
    ) -> list[dict[str, Any]]:
        """Update rows matching the filter and scope and return them after the update."""
        table = info.table
        values = self.column_values(info, data)
        condition = self._condition(info, filters, scope)
        key_names = info.entity.primary_key
        key_columns = info.sql_columns(key_names)

        async with request.transaction() as conn:
            if not values:
                return await fetch_rows(conn, sa.select(table).where(condition).order_by(*key_columns))

            stmt = sa.update(table).where(condition).values(**values)
            if conn.dialect.update_returning:
                rows = await fetch_rows(conn, stmt.returning(*table.c))
            else:
                keys = await fetch_rows(conn, sa.select(*key_columns).where(condition))
                await execute_statement(conn, stmt)
                # Primary key columns may have been updated too
                keys = [{n: values.get(n, key[n]) for n in key_names} for key in keys]
                rows = await self._select_keys(conn, info, keys)

        logger.info(f"Updated {len(rows)} {info.name} rows")
        return rows

    async def delete(
        self,
        request: RequestContext,
        info: EntityInfo,
        filters: Optional[dict[str, Any]],
        scope: Optional[sa.ColumnElement[bool]] = None,
    ) -> int:
        """Delete rows matching the filter and scope and return the affected count."""
        condition = self._condition(info, filters, scope)
        async with request.transaction() as conn:
            count = await execute_statement(conn, sa.delete(info.table).where(condition))
        logger.info(f"Deleted {count} {info.name} rows")
        return count

    def _condition(
        self,
        info: EntityInfo,
        filters: Optional[dict[str, Any]],
        scope: Optional[sa.ColumnElement[bool]],
    ) -> sa.ColumnElement[bool]:
        condition = self.filters.compile(info, filters)
        return condition if scope is None else sa.and_(condition, scope)

    async def _insert(self, conn: AsyncConnection, info: EntityInfo, values: dict[str, Any]) -> dict[str, Any]:
        table = info.table
        stmt = sa.insert(table).values(**values)

        if conn.dialect.insert_returning:
            rows = await fetch_rows(conn, stmt.returning(*table.c))
            return rows[0]

        try:
            result = await conn.execute(stmt)
        except sa.exc.SQLAlchemyError as e:
            raise DatabaseError(e.__class__.__name__) from e
        key = dict(zip(info.entity.primary_key, result.inserted_primary_key))
        rows = await self._select_keys(conn, info, [key])
        if not rows:
            raise DatabaseError(f"inserted {info.name} row could not be read back")
        return rows[0]

    async def _select_keys(
        self,
        conn: AsyncConnection,
        info: EntityInfo,
        keys: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        if not keys:
            return []
        table = info.table
        key_names = info.entity.primary_key
        key_columns = info.sql_columns(key_names)
        if len(key_columns) == 1:
            condition = key_columns[0].in_([key[key_names[0]] for key in keys])
        else:
            condition = sa.tuple_(*key_columns).in_([tuple(key[n] for n in key_names) for key in keys])
        return await fetch_rows(conn, sa.select(table).where(condition).order_by(*key_columns))
