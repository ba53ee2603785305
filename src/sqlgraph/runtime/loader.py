"""
Relation data-loaders.

Nested selections enqueue composite keys into request-scoped loaders.
Keys enqueued within one event-loop tick are dispatched together; the batch
function groups them by shape (target entity, key columns, junction, filter,
order) and issues one ``IN`` query per group.

Usage:
    loaders = request.loaders
    meta = GroupKey(target="staff", columns=("store_id",))
    rows = await loaders.one_to_many.load(KeyComplex((1,), meta))
"""

from __future__ import annotations

import asyncio
import decimal
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Any, Hashable, Optional, Sequence

import sqlalchemy as sa
from strawberry.dataloader import DataLoader

from ..core.ordering import order_clauses
from ..core.query_types import NormalizedOrder

if TYPE_CHECKING:
    from .context import RequestContext

logger = logging.getLogger(__name__)

KEY_LABEL = "__sqlgraph_key_{}"


def normalize_value(value: Any) -> Hashable:
    """
    Width-independent identity of a key value.

    All integers share one family whatever their column width, integral
    decimals count as integers, and booleans stay distinct from 0/1.
    """
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, int):
        return ("int", value)
    if isinstance(value, decimal.Decimal) and value.is_finite() and value == value.to_integral_value():
        return ("int", int(value))
    return (type(value).__name__, value)


@dataclass(frozen=True)
class JunctionKey:
    """Junction of a many-to-many group."""
    table: str
    from_columns: tuple[str, ...]  # matched by the key values
    to_columns: tuple[str, ...]  # joined to the target columns


@dataclass(frozen=True)
class GroupKey:
    """
    Shape of a batch group.

    ``filters`` and ``scope`` are hashable fingerprints of the filter input
    and of the entity filter; ``condition`` is the compiled predicate of
    both and does not take part in equality.
    """
    target: str  # target entity name
    columns: tuple[str, ...]  # target columns matched by the key (or joined to the junction)
    junction: Optional[JunctionKey] = None
    filters: Hashable = None
    scope: Hashable = None
    order: tuple[tuple[str, str], ...] = ()
    condition: Any = field(default=None, compare=False, hash=False)

    @property
    def orders(self) -> list[NormalizedOrder]:
        return [NormalizedOrder(field=name, dir=direction) for name, direction in self.order]


class KeyComplex:
    """A key value tuple plus the shape of the group it belongs to."""

    __slots__ = ("key", "meta", "normalized")

    def __init__(self, key: Sequence[Any], meta: GroupKey):
        self.key = tuple(key)
        self.meta = meta
        self.normalized = tuple(normalize_value(v) for v in self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyComplex):
            return NotImplemented
        return self.normalized == other.normalized and self.meta == other.meta

    def __hash__(self) -> int:
        return hash((self.normalized, self.meta))

    def __repr__(self) -> str:
        return f"KeyComplex({self.key!r}, {self.meta.target}{self.meta.columns})"


@dataclass
class DataLoaders:
    """Request-scoped loaders, one per relation cardinality."""
    one_to_one: DataLoader
    one_to_many: DataLoader


def create_dataloaders(request: RequestContext) -> DataLoaders:
    """Create fresh loaders bound to a request."""
    return DataLoaders(
        one_to_one=DataLoader(load_fn=partial(load_one_to_one, request)),
        one_to_many=DataLoader(load_fn=partial(load_one_to_many, request)),
    )


async def load_one_to_many(request: RequestContext, keys: list[KeyComplex]) -> list[list[dict[str, Any]]]:
    """Batch function: every key gets its (possibly empty) ordered slice of rows."""
    grouped = await _load_groups(request, keys)
    return [grouped[key.meta].get(key.normalized, []) for key in keys]


async def load_one_to_one(request: RequestContext, keys: list[KeyComplex]) -> list[Optional[dict[str, Any]]]:
    """Batch function: every key gets its first matching row or None."""
    grouped = await _load_groups(request, keys)
    result = []
    for key in keys:
        rows = grouped[key.meta].get(key.normalized)
        result.append(rows[0] if rows else None)
    return result


async def _load_groups(
    request: RequestContext,
    keys: list[KeyComplex],
) -> dict[GroupKey, dict[tuple, list[dict[str, Any]]]]:
    groups: dict[GroupKey, list[KeyComplex]] = {}
    for key in keys:
        groups.setdefault(key.meta, []).append(key)

    logger.debug(f"Dispatching {len(keys)} keys in {len(groups)} groups")

    metas = list(groups)
    results = await asyncio.gather(*(_load_group(request, meta, groups[meta]) for meta in metas))
    return dict(zip(metas, results))


async def _load_group(
    request: RequestContext,
    meta: GroupKey,
    keys: list[KeyComplex],
) -> dict[tuple, list[dict[str, Any]]]:
    """Run one batched query and distribute its rows by key."""
    registry = request.runtime.registry
    table = registry.get(meta.target).table

    # Deduplicate values across integer widths
    values: dict[tuple, tuple] = {}
    for key in keys:
        if any(v is None for v in key.key):
            continue
        values.setdefault(key.normalized, key.key)
    if not values:
        return {}

    if meta.junction is None:
        key_columns = [table.c[name] for name in meta.columns]
        stmt = sa.select(table)
        labels = list(meta.columns)
    else:
        junction_table = registry.get(meta.junction.table).table
        key_columns = [junction_table.c[name] for name in meta.junction.from_columns]
        labels = [KEY_LABEL.format(i) for i in range(len(key_columns))]
        join_on = sa.and_(*(
            table.c[target] == junction_table.c[through]
            for target, through in zip(meta.columns, meta.junction.to_columns)
        ))
        stmt = (
            sa.select(table, *(column.label(label) for column, label in zip(key_columns, labels)))
            .select_from(table.join(junction_table, join_on))
        )

    stmt = stmt.where(_in_condition(key_columns, list(values.values())))
    if meta.condition is not None:
        stmt = stmt.where(meta.condition)
    clauses = order_clauses(table, meta.orders)
    if clauses:
        stmt = stmt.order_by(*clauses)

    rows = await request.fetch_all(stmt)
    logger.debug(f"Loaded {len(rows)} {meta.target} rows for {len(values)} keys")

    distributed: dict[tuple, list[dict[str, Any]]] = {}
    for row in rows:
        row_key = tuple(normalize_value(row[label]) for label in labels)
        if meta.junction is not None:
            row = {k: v for k, v in row.items() if k not in labels}
        distributed.setdefault(row_key, []).append(row)
    return distributed


def _in_condition(columns: list[sa.Column], values: list[tuple]) -> sa.ColumnElement[bool]:
    if len(columns) == 1:
        return columns[0].in_([value[0] for value in values])
    return sa.tuple_(*columns).in_(values)
