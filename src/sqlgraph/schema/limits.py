"""
Query depth and complexity limits as graphql-core validation rules.

Depth counts nested field selections; complexity counts every selected
field once. Introspection fields are not counted.
"""

from __future__ import annotations

from typing import Optional

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    ValidationContext,
    ValidationRule,
)


def _measure(
    context: ValidationContext,
    selection_set: Optional[SelectionSetNode],
    visited: frozenset[str] = frozenset(),
) -> tuple[int, int]:
    """(depth, field count) of a selection set, fragments expanded."""
    if selection_set is None:
        return 0, 0

    depth = 0
    count = 0
    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            if selection.name.value.startswith("__"):
                continue
            child_depth, child_count = _measure(context, selection.selection_set, visited)
            depth = max(depth, child_depth + 1)
            count += child_count + 1
        elif isinstance(selection, InlineFragmentNode):
            child_depth, child_count = _measure(context, selection.selection_set, visited)
            depth = max(depth, child_depth)
            count += child_count
        elif isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            fragment = context.get_fragment(name)
            if fragment is None or name in visited:
                continue
            child_depth, child_count = _measure(context, fragment.selection_set, visited | {name})
            depth = max(depth, child_depth)
            count += child_count
    return depth, count


def depth_limit_rule(max_depth: int) -> type[ValidationRule]:
    """Validation rule rejecting operations nested deeper than ``max_depth``."""

    class DepthLimitRule(ValidationRule):
        def enter_operation_definition(self, node: OperationDefinitionNode, *_args) -> None:
            depth, _ = _measure(self.context, node.selection_set)
            if depth > max_depth:
                self.report_error(GraphQLError(f"Query is nested too deep: {depth} > {max_depth}", node))

    return DepthLimitRule


def complexity_limit_rule(max_complexity: int) -> type[ValidationRule]:
    """Validation rule rejecting operations selecting more than ``max_complexity`` fields."""

    class ComplexityLimitRule(ValidationRule):
        def enter_operation_definition(self, node: OperationDefinitionNode, *_args) -> None:
            _, complexity = _measure(self.context, node.selection_set)
            if complexity > max_complexity:
                self.report_error(GraphQLError(f"Query is too complex: {complexity} > {max_complexity}", node))

    return ComplexityLimitRule
