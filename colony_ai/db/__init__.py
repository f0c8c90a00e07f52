"""
Database layer for colony-ai.

Provides the repository interface and implementations for:
- Dolt: Git-like versioned SQL over the MySQL wire protocol

Implementations:
- InMemory*: For testing (no external dependencies)
- Real drivers: For production (requires a running database)
"""

from __future__ import annotations

from colony_ai.db.dolt import (
    DoltColonyRepository,
    DoltConnection,
    init_dolt_schema,
)
from colony_ai.db.interfaces import ColonyRepository
from colony_ai.db.memory import InMemoryColonyRepository

__all__ = [
    # Protocol interface
    "ColonyRepository",
    # In-memory implementation (for testing)
    "InMemoryColonyRepository",
    # Real database implementation
    "DoltConnection",
    "DoltColonyRepository",
    "init_dolt_schema",
]
