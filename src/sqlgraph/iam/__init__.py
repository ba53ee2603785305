"""
IAM module - entity and field guards, row scopes.
"""

from .guard import (
    ENTITY_GUARD_PHRASE,
    FIELD_GUARD_PHRASE,
    EntityFilter,
    Guard,
    GuardAction,
    OperationType,
    check_entity_guard,
    check_field_guard,
    entity_scope,
    run_guard,
)

__all__ = [
    "ENTITY_GUARD_PHRASE",
    "FIELD_GUARD_PHRASE",
    "EntityFilter",
    "Guard",
    "GuardAction",
    "OperationType",
    "run_guard",
    "check_entity_guard",
    "check_field_guard",
    "entity_scope",
]
