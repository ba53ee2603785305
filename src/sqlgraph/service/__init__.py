"""
Service utilities - app factory and database helpers.
"""

from .app import HealthcheckLogFilter, create_app
from .database import close_db, create_engine, get_engine, reflect_schema

__all__ = [
    "create_app",
    "HealthcheckLogFilter",
    "create_engine",
    "get_engine",
    "close_db",
    "reflect_schema",
]
