"""
Pagination planning and in-memory pagination.

Three strategies are supported:
- cursor: keyset pagination over the ordering, with lookahead queries
- page:   0-based page of ``limit`` rows plus a COUNT
- offset: ``offset``/``limit`` plus a COUNT

Root connections paginate in SQL (see query.py); related connections
paginate the loader's per-key slice in memory with the same semantics.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Optional

import sqlalchemy as sa
from pydantic import ValidationError as PydanticValidationError

from ..core.cursor import decode_key, encode_key
from ..core.defs import Column
from ..core.errors import InvalidPaginationError
from ..core.query_types import (
    Connection,
    CursorInput,
    NormalizedOrder,
    OffsetInput,
    PageInput,
    PaginationInfo,
    PaginationInput,
)
from ..core.types_map import TypeMapper
from .context import BuilderContext

PaginationMode = Literal["cursor", "page", "offset", "all"]


@dataclass
class PaginationPlan:
    """Validated pagination request."""
    mode: PaginationMode
    limit: Optional[int] = None
    page: int = 0
    offset: int = 0
    cursor: Optional[str] = None

    @property
    def is_cursor(self) -> bool:
        return self.mode == "cursor"


def plan_pagination(value: Optional[dict[str, Any]], context: BuilderContext) -> PaginationPlan:
    """
    Validate a coerced PaginationInput.

    An absent argument applies the configured default: a first page of
    ``default_limit`` rows, else of ``max_limit`` rows, else all rows.

    Raises:
        InvalidPaginationError: zero or multiple variants, or bad bounds
    """
    if value is None:
        limit = context.default_limit or context.max_limit
        if limit is None:
            return PaginationPlan(mode="all")
        return PaginationPlan(mode="page", limit=limit, page=0)

    try:
        pagination = PaginationInput.model_validate(value)
    except PydanticValidationError as e:
        raise InvalidPaginationError("input", str(e)) from e

    variants = pagination.variants()
    if len(variants) > 1:
        raise InvalidPaginationError("multiple", "exactly one of cursor, page or offset is allowed")
    if not variants:
        raise InvalidPaginationError("zero", "one of cursor, page or offset is required")

    variant = variants[0]
    _check_limit(variant.limit, context)

    if isinstance(variant, CursorInput):
        return PaginationPlan(mode="cursor", limit=variant.limit, cursor=variant.cursor)
    elif isinstance(variant, PageInput):
        if variant.page < 0:
            raise InvalidPaginationError("page", "must be >= 0")
        return PaginationPlan(mode="page", limit=variant.limit, page=variant.page)
    elif isinstance(variant, OffsetInput):
        if variant.offset < 0:
            raise InvalidPaginationError("offset", "must be >= 0")
        return PaginationPlan(mode="offset", limit=variant.limit, offset=variant.offset)

    raise InvalidPaginationError("input", "unknown pagination variant")


def _check_limit(limit: int, context: BuilderContext) -> None:
    if limit <= 0:
        raise InvalidPaginationError("limit", "must be > 0")
    if context.max_limit is not None and limit > context.max_limit:
        raise InvalidPaginationError("limit", f"must be <= {context.max_limit}")


def page_info(total: int, limit: int, page: int) -> PaginationInfo:
    return PaginationInfo(
        pages=math.ceil(total / limit),
        current=page,
        offset=page * limit,
        total=total,
    )


def offset_info(total: int, limit: int, offset: int) -> PaginationInfo:
    return PaginationInfo(
        pages=math.ceil(total / limit),
        current=math.ceil(offset / limit),
        offset=offset,
        total=total,
    )


def all_rows_info(total: int) -> PaginationInfo:
    return PaginationInfo(pages=1, current=0, offset=0, total=total)


# =============================================================================
# Keyset helpers
# =============================================================================


def keyset_condition(
    table: sa.Table,
    orders: list[NormalizedOrder],
    anchor: dict[str, Any],
    forward: bool = True,
) -> sa.ColumnElement[bool]:
    """
    Rows strictly after (forward) or before the anchor in ``orders``.

    For orders (a asc, b desc) this is:
        a > :a OR (a = :a AND b < :b)
    """
    branches = []
    for i, order in enumerate(orders):
        column = table.c[order.field]
        value = anchor[order.field]
        ascending = (order.dir == "asc") == forward
        step = column > value if ascending else column < value
        equal = [table.c[o.field] == anchor[o.field] for o in orders[:i]]
        branches.append(sa.and_(*equal, step))
    return sa.or_(*branches)


def check_anchor(anchor: dict[str, Any], orders: list[NormalizedOrder]) -> None:
    for order in orders:
        if anchor.get(order.field) is None:
            raise InvalidPaginationError("cursor", f"ordering column '{order.field}' is NULL at the cursor row")


# =============================================================================
# In-memory pagination
# =============================================================================


def paginate_rows(
    rows: list[dict[str, Any]],
    plan: PaginationPlan,
    key_columns: list[Column],
    mapper: TypeMapper,
    key_paths: Optional[list[str]] = None,
) -> Connection:
    """
    Paginate an already ordered list of rows.

    Cursor mode does not report PaginationInfo: a page count derived from
    a keyset position would be a guess.
    """
    cursors = [encode_key(key_columns, row, mapper) for row in rows]
    total = len(rows)

    if plan.mode == "all":
        return Connection.from_rows(rows, cursors, False, False, all_rows_info(total))

    limit = plan.limit
    if plan.mode == "page":
        start = plan.page * limit
        return Connection.from_rows(
            rows[start:start + limit],
            cursors[start:start + limit],
            has_previous_page=plan.page > 0,
            has_next_page=plan.page + 1 < math.ceil(total / limit),
            pagination_info=page_info(total, limit, plan.page),
        )

    if plan.mode == "offset":
        start = plan.offset
        return Connection.from_rows(
            rows[start:start + limit],
            cursors[start:start + limit],
            has_previous_page=start > 0,
            has_next_page=start + limit < total,
            pagination_info=offset_info(total, limit, start),
        )

    start = 0
    if plan.cursor:
        start = _cursor_position(rows, plan.cursor, key_columns, mapper, key_paths)
    return Connection.from_rows(
        rows[start:start + limit],
        cursors[start:start + limit],
        has_previous_page=start > 0,
        has_next_page=start + limit < total,
    )


def _cursor_position(
    rows: list[dict[str, Any]],
    cursor: str,
    key_columns: list[Column],
    mapper: TypeMapper,
    key_paths: Optional[list[str]] = None,
) -> int:
    """
    Index of the first row after the cursor row.

    Raises:
        InvalidPaginationError: the cursor row is not among the related rows
    """
    key = decode_key(key_columns, cursor, mapper, key_paths)
    names = [c.name for c in key_columns]

    for index, row in enumerate(rows):
        if tuple(row.get(name) for name in names) == key:
            return index + 1
    raise InvalidPaginationError("cursor", "cursor row no longer exists")
