"""
Database namespace definitions for storage tables.

Defines table names and schema constants for SQLite storage.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FactNamespace:
    """
    Namespace for fact storage.

    Every object is stored under its full `{prefix}:{suffix}` key.
    Values are the object's canonical encoding.
    """

    TABLE_NAME: str = "facts"
    """Table name for fact storage."""

    CREATE_TABLE: str = """
        CREATE TABLE IF NOT EXISTS facts (
            key BLOB PRIMARY KEY,
            value BLOB NOT NULL
        )
    """
    """SQL to create the facts table."""


FACTS = FactNamespace()

ALL_NAMESPACES = [FACTS]
"""All namespace definitions for schema initialization."""
