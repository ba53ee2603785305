"""
Runtime module - request context, data-loaders and the query/mutation compilers.
"""

from .context import BuilderContext, RequestContext, SchemaRuntime
from .events import EntityWatch, notify_watch
from .executor import SchemaExecutor, mask_error
from .loader import DataLoaders, GroupKey, JunctionKey, KeyComplex, create_dataloaders
from .mutation_executor import MutationExecutor
from .pagination import PaginationPlan, paginate_rows, plan_pagination
from .query import QueryCompiler

__all__ = [
    # Context
    "BuilderContext",
    "SchemaRuntime",
    "RequestContext",
    # Events
    "EntityWatch",
    "notify_watch",
    # Loaders
    "DataLoaders",
    "GroupKey",
    "JunctionKey",
    "KeyComplex",
    "create_dataloaders",
    # Pagination
    "PaginationPlan",
    "plan_pagination",
    "paginate_rows",
    # Execution
    "QueryCompiler",
    "MutationExecutor",
    "SchemaExecutor",
    "mask_error",
]
