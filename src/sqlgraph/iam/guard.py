"""
Entity and field guards, and row scopes.

Guards are synchronous hooks that run before a resolver. They are keyed
by entity type name ("Store") or by field path ("Store.managerStaffId"),
receive the operation being performed and return a GuardAction. A blocked
guard surfaces as a single GraphQL error carrying the reason, or a
default phrase.

Entity filters are mandatory row conditions the client cannot bypass.
They are keyed by entity type name and ANDed into every read, update and
delete of that entity, including relation fields.

Usage:
    def staff_only(info, operation) -> GuardAction:
        user = info.context.extra.get("user")
        if operation is OperationType.READ or user:
            return GuardAction.allow()
        return GuardAction.block("Login required")

    def own_store(info, operation, table):
        return table.c.store_id == info.context.extra["store_id"]

    context = BuilderContext(entity_guards={"Payment": staff_only}, entity_filters={"Staff": own_store})
"""

from __future__ import annotations

import enum
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Mapping, Optional, Union

import sqlalchemy as sa
from graphql import GraphQLResolveInfo
from sqlalchemy.sql.elements import ColumnElement

from ..core.errors import GuardBlockedError
from ..core.utils import freeze

ENTITY_GUARD_PHRASE = "Entity guard triggered."
FIELD_GUARD_PHRASE = "Field guard triggered."


class OperationType(str, enum.Enum):
    """What a resolver is about to do with an entity."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class GuardAction:
    """Decision of a guard: allow, or block with an optional reason."""
    allowed: bool = True
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> GuardAction:
        return cls(allowed=True)

    @classmethod
    def block(cls, reason: Optional[str] = None) -> GuardAction:
        return cls(allowed=False, reason=reason)


Guard = Callable[[GraphQLResolveInfo, OperationType], Union[GuardAction, bool]]
EntityFilter = Callable[[GraphQLResolveInfo, OperationType, sa.Table], Optional[ColumnElement[bool]]]


def _reject_awaitable(result: Any, kind: str) -> None:
    if inspect.isawaitable(result):
        # Close the coroutine so it is not reported as never awaited
        close = getattr(result, "close", None)
        if close is not None:
            close()
        raise TypeError(f"{kind} must be synchronous")


def run_guard(guard: Guard, info: GraphQLResolveInfo, operation: OperationType, default_reason: str) -> None:
    """
    Evaluate a guard and raise when it blocks.

    Raises:
        GuardBlockedError: guard returned a block decision
        TypeError: guard is asynchronous
    """
    action = guard(info, operation)
    _reject_awaitable(action, "Guards")
    if isinstance(action, bool):
        action = GuardAction(allowed=action)
    if not action.allowed:
        raise GuardBlockedError(action.reason or default_reason)


def check_entity_guard(
    guards: Mapping[str, Guard],
    type_name: str,
    info: GraphQLResolveInfo,
    operation: OperationType,
) -> None:
    """Run the guard registered for an entity type, if any."""
    guard = guards.get(type_name)
    if guard is not None:
        run_guard(guard, info, operation, ENTITY_GUARD_PHRASE)


def check_field_guard(
    guards: Mapping[str, Guard],
    path: str,
    info: GraphQLResolveInfo,
    operation: OperationType,
) -> None:
    """Run the guard registered for a field path ("Type.field"), if any."""
    guard = guards.get(path)
    if guard is not None:
        run_guard(guard, info, operation, FIELD_GUARD_PHRASE)


def entity_scope(
    filters: Mapping[str, EntityFilter],
    type_name: str,
    table: sa.Table,
    info: GraphQLResolveInfo,
    operation: OperationType,
) -> Optional[ColumnElement[bool]]:
    """
    Mandatory row condition of an entity for one operation, or None.

    Raises:
        TypeError: entity filter is asynchronous
    """
    entity_filter = filters.get(type_name)
    if entity_filter is None:
        return None
    condition = entity_filter(info, operation, table)
    _reject_awaitable(condition, "Entity filters")
    return condition


def scope_fingerprint(condition: Optional[ColumnElement[bool]]) -> Hashable:
    """Hashable identity of a row condition: its SQL text and bound values."""
    if condition is None:
        return None
    compiled = condition.compile()
    return str(compiled), freeze(compiled.params)
