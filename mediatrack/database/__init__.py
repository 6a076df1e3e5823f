"""
Database Module
"""
from .connection import (
    close_database,
    create_engine,
    create_schema,
    create_session_factory,
    get_session_factory,
    init_database,
    session_scope,
)
from .models import Base, MetadataLot, ReviewVisibility
from .store import EntityStore

__all__ = [
    "init_database",
    "close_database",
    "create_engine",
    "create_schema",
    "create_session_factory",
    "get_session_factory",
    "session_scope",
    "Base",
    "MetadataLot",
    "ReviewVisibility",
    "EntityStore",
]
