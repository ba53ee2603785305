"""
Schema module - GraphQL types and the schema builder.
"""

from .builder import Builder, Schema
from .enums import build_enum_type
from .limits import complexity_limit_rule, depth_limit_rule

__all__ = [
    "Builder",
    "Schema",
    "build_enum_type",
    "depth_limit_rule",
    "complexity_limit_rule",
]
