"""
Query compiler - composes filter, order and pagination into SELECTs.

Root connections are paginated in SQL; relation fields go through the
request's data-loaders and are paginated in memory.

Usage:
    compiler = QueryCompiler(runtime)
    connection = await compiler.resolve_connection(request, info, filters, orders, plan)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import sqlalchemy as sa

from ..core.cursor import decode_key, encode_key
from ..core.errors import InvalidPaginationError
from ..core.ordering import order_clauses, with_key_tiebreak
from ..core.query_types import Connection, NormalizedOrder
from ..core.registry import EntityInfo, RelationInfo
from ..core.utils import freeze
from ..iam.guard import scope_fingerprint
from .context import RequestContext, SchemaRuntime
from .loader import GroupKey, JunctionKey, KeyComplex
from .pagination import (
    PaginationPlan,
    all_rows_info,
    check_anchor,
    keyset_condition,
    offset_info,
    page_info,
    paginate_rows,
)

logger = logging.getLogger(__name__)


class QueryCompiler:
    """Builds and runs read queries for entity connections and relations."""

    def __init__(self, runtime: SchemaRuntime):
        self.runtime = runtime
        self.mapper = runtime.mapper
        self.filters = runtime.filters

    # -------------------------------------------------------------------------
    # Root connections
    # -------------------------------------------------------------------------

    async def resolve_connection(
        self,
        request: RequestContext,
        info: EntityInfo,
        filters: Optional[dict[str, Any]],
        orders: list[NormalizedOrder],
        plan: PaginationPlan,
        scope: Optional[sa.ColumnElement[bool]] = None,
    ) -> Connection:
        """Run a root query and assemble its connection; ``scope`` is ANDed into the filter."""
        condition = self.filters.compile(info, filters)
        if scope is not None:
            condition = sa.and_(condition, scope)

        if plan.is_cursor:
            return await self._cursor_page(request, info, condition, orders, plan)

        table = info.table
        stmt = sa.select(table).where(condition)
        clauses = order_clauses(table, orders)
        if clauses:
            stmt = stmt.order_by(*clauses)

        if plan.mode == "all":
            rows = await request.fetch_all(stmt)
            return self._connection(info, rows, False, False, all_rows_info(len(rows)))

        # Count total over the same WHERE
        count_stmt = sa.select(sa.func.count()).select_from(sa.select(table).where(condition).subquery())
        total = await request.fetch_scalar(count_stmt) or 0

        limit = plan.limit
        if plan.mode == "page":
            rows = await request.fetch_all(stmt.limit(limit).offset(plan.page * limit))
            pagination = page_info(total, limit, plan.page)
            return self._connection(
                info,
                rows,
                has_previous_page=plan.page > 0,
                has_next_page=plan.page + 1 < pagination.pages,
                pagination_info=pagination,
            )

        rows = await request.fetch_all(stmt.offset(plan.offset).limit(limit))
        return self._connection(
            info,
            rows,
            has_previous_page=plan.offset > 0,
            has_next_page=plan.offset + limit < total,
            pagination_info=offset_info(total, limit, plan.offset),
        )

    async def _cursor_page(
        self,
        request: RequestContext,
        info: EntityInfo,
        condition: sa.ColumnElement[bool],
        orders: list[NormalizedOrder],
        plan: PaginationPlan,
    ) -> Connection:
        """
        Keyset pagination: rows after the cursor in (order..., primary key).

        has_next/has_previous come from one-row lookahead queries on
        each side of the returned page.
        """
        table = info.table
        key_names = info.entity.primary_key
        orders = with_key_tiebreak(orders, key_names)

        stmt = sa.select(table).where(condition)
        if plan.cursor:
            anchor = await self._cursor_anchor(request, info, plan.cursor, orders)
            stmt = stmt.where(keyset_condition(table, orders, anchor, forward=True))

        rows = await request.fetch_all(stmt.order_by(*order_clauses(table, orders)).limit(plan.limit))

        if rows:
            has_next = await self._lookahead(request, info, condition, orders, rows[-1], forward=True)
            has_previous = await self._lookahead(request, info, condition, orders, rows[0], forward=False)
            if has_next is None:
                has_next = len(rows) == plan.limit
            if has_previous is None:
                has_previous = plan.cursor is not None
        else:
            has_next = False
            has_previous = plan.cursor is not None

        return self._connection(info, rows, has_previous, has_next)

    async def _cursor_anchor(
        self,
        request: RequestContext,
        info: EntityInfo,
        cursor: str,
        orders: list[NormalizedOrder],
    ) -> dict[str, Any]:
        key_names = info.entity.primary_key
        key = decode_key(info.key_columns, cursor, self.mapper, info.key_paths)
        anchor = dict(zip(key_names, key))

        # Ordering by non-key columns needs the cursor row's values
        if any(order.field not in anchor for order in orders):
            table = info.table
            stmt = sa.select(table).where(sa.and_(*(table.c[n] == v for n, v in anchor.items()))).limit(1)
            found = await request.fetch_all(stmt)
            if not found:
                raise InvalidPaginationError("cursor", "cursor row no longer exists")
            anchor = found[0]

        check_anchor(anchor, orders)
        return anchor

    async def _lookahead(
        self,
        request: RequestContext,
        info: EntityInfo,
        condition: sa.ColumnElement[bool],
        orders: list[NormalizedOrder],
        row: dict[str, Any],
        forward: bool,
    ) -> Optional[bool]:
        """Whether any row exists after (or before) ``row``; None when NULLs prevent comparison."""
        if any(row.get(order.field) is None for order in orders):
            return None
        table = info.table
        key_columns = info.sql_columns(info.entity.primary_key)
        stmt = (
            sa.select(*key_columns)
            .where(condition)
            .where(keyset_condition(table, orders, row, forward=forward))
            .limit(1)
        )
        return bool(await request.fetch_all(stmt))

    def _connection(
        self,
        info: EntityInfo,
        rows: list[dict[str, Any]],
        has_previous_page: bool,
        has_next_page: bool,
        pagination_info=None,
    ) -> Connection:
        cursors = [encode_key(info.key_columns, row, self.mapper) for row in rows]
        return Connection.from_rows(rows, cursors, has_previous_page, has_next_page, pagination_info)

    # -------------------------------------------------------------------------
    # Single rows
    # -------------------------------------------------------------------------

    async def resolve_by_pk(
        self,
        request: RequestContext,
        info: EntityInfo,
        key: dict[str, Any],
        scope: Optional[sa.ColumnElement[bool]] = None,
    ) -> Optional[dict[str, Any]]:
        """Fetch one row by primary key (column name -> value)."""
        table = info.table
        stmt = sa.select(table).where(sa.and_(*(table.c[n] == v for n, v in key.items())))
        if scope is not None:
            stmt = stmt.where(scope)
        stmt = stmt.limit(1)
        rows = await request.fetch_all(stmt)
        return rows[0] if rows else None

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    async def resolve_relation(
        self,
        request: RequestContext,
        relation_info: RelationInfo,
        target: EntityInfo,
        parent: dict[str, Any],
        filters: Optional[dict[str, Any]] = None,
        orders: Optional[list[NormalizedOrder]] = None,
        plan: Optional[PaginationPlan] = None,
        scope: Optional[sa.ColumnElement[bool]] = None,
    ) -> Union[Connection, dict[str, Any], None]:
        """
        Resolve a relation field through the data-loaders.

        To-many relations return a connection paginated in memory;
        to-one relations return the related row or None.
        """
        relation = relation_info.relation
        key = tuple(parent.get(name) for name in relation.from_columns)
        orders = list(orders or [])
        if plan is not None and plan.is_cursor:
            orders = with_key_tiebreak(orders, target.entity.primary_key)

        junction = None
        if relation.junction is not None:
            junction = JunctionKey(
                table=relation.junction.table,
                from_columns=tuple(relation.junction.from_columns),
                to_columns=tuple(relation.junction.to_columns),
            )

        meta = GroupKey(
            target=target.name,
            columns=tuple(relation.to_columns),
            junction=junction,
            filters=freeze(filters) if filters else None,
            scope=scope_fingerprint(scope),
            order=tuple((o.field, o.dir) for o in orders),
            condition=self._relation_condition(target, filters, scope),
        )

        if not relation_info.is_to_many:
            if any(value is None for value in key):
                return None
            return await request.loaders.one_to_one.load(KeyComplex(key, meta))

        if any(value is None for value in key):
            rows = []
        else:
            rows = await request.loaders.one_to_many.load(KeyComplex(key, meta))
        return paginate_rows(
            rows, plan or PaginationPlan(mode="all"), target.key_columns, self.mapper, target.key_paths,
        )

    def _relation_condition(
        self,
        target: EntityInfo,
        filters: Optional[dict[str, Any]],
        scope: Optional[sa.ColumnElement[bool]],
    ) -> Optional[sa.ColumnElement[bool]]:
        clauses = []
        if filters:
            clauses.append(self.filters.compile(target, filters))
        if scope is not None:
            clauses.append(scope)
        if not clauses:
            return None
        return clauses[0] if len(clauses) == 1 else sa.and_(*clauses)
