"""
API module - FastAPI router for GraphQL requests.
"""

from .router import GraphQLRequest, create_router

__all__ = ["GraphQLRequest", "create_router"]
