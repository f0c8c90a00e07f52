"""
Database interface definitions for colony-ai.

Uses Protocol classes to define the contract for persistence.
Implementations can use a real Dolt server or in-memory mocks for testing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

if TYPE_CHECKING:
    from colony_ai.models import AIState, Colony
    from colony_ai.models.memory import MemoryExport


class ColonyRepository(Protocol):
    """
    Interface for colony persistence.

    Stores AI colony records and each colony's serialized memory.
    """

    # Colony operations
    def save_colony(self, colony: Colony) -> None:
        """Insert or update a colony record."""
        ...

    def get_colony(self, colony_id: UUID) -> Colony | None:
        """Get a colony by ID."""
        ...

    def list_colonies(self, state: AIState | None = None) -> list[Colony]:
        """List colonies, optionally only those in one behavior state."""
        ...

    def delete_colony(self, colony_id: UUID) -> bool:
        """Delete a colony and its memory. Returns False if it did not exist."""
        ...

    # Memory operations
    def save_memory(self, colony_id: str, memory: MemoryExport) -> None:
        """Replace the stored memory of a colony."""
        ...

    def get_memory(self, colony_id: str) -> MemoryExport | None:
        """Get the stored memory of a colony."""
        ...
