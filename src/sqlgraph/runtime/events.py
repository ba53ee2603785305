"""
Mutation events.

An entity watch is an async hook awaited after a mutation has committed.
It receives the resolver info, the entity type name and the operation.
The data is already stored when it runs, so a failing watch is logged
and never fails the mutation.

Usage:
    async def audit(info, type_name, operation):
        await queue.put((type_name, operation.value))

    context = BuilderContext(entity_watch=audit)
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from graphql import GraphQLResolveInfo

from ..iam.guard import OperationType

logger = logging.getLogger(__name__)

EntityWatch = Callable[[GraphQLResolveInfo, str, OperationType], Awaitable[None]]


async def notify_watch(
    watch: Optional[EntityWatch],
    info: GraphQLResolveInfo,
    type_name: str,
    operation: OperationType,
) -> None:
    """Await the entity watch, if one is configured."""
    if watch is None:
        return
    try:
        await watch(info, type_name, operation)
    except Exception as e:
        logger.error(f"Entity watch failed after {operation.value} of {type_name}: {e}", exc_info=True)
