"""
Storage module for content-addressed facts.

Provides an async key/value abstraction, an in-memory and a SQLite backend,
and the typed `DbObject` / `Fact` layer on top of them.
"""

from .dict_storage import DictStorage
from .fact import DbObject, Fact, FactFetchingContext, to_snake_case
from .sqlite import SQLiteStorage
from .storage import Storage

__all__ = [
    "Storage",
    "DictStorage",
    "SQLiteStorage",
    "DbObject",
    "Fact",
    "FactFetchingContext",
    "to_snake_case",
]
