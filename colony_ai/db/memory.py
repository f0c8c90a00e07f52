"""
In-memory implementation of the colony repository for testing.

Stores everything in dictionaries, making tests fast and isolated from
actual database infrastructure.
"""

from __future__ import annotations

from copy import deepcopy
from datetime import UTC, datetime
from uuid import UUID

from colony_ai.models import AIState, Colony
from colony_ai.models.memory import MemoryExport


class InMemoryColonyRepository:
    """
    In-memory implementation of ColonyRepository for testing.

    Records are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._colonies: dict[UUID, Colony] = {}
        self._memories: dict[str, MemoryExport] = {}

    # Colony operations
    def save_colony(self, colony: Colony) -> None:
        """Insert or update a colony record."""
        stored = deepcopy(colony)
        stored.updated_at = datetime.now(UTC)
        self._colonies[colony.id] = stored

    def get_colony(self, colony_id: UUID) -> Colony | None:
        """Get a colony by ID."""
        colony = self._colonies.get(colony_id)
        return deepcopy(colony) if colony else None

    def list_colonies(self, state: AIState | None = None) -> list[Colony]:
        """List colonies, optionally only those in one behavior state."""
        return [
            deepcopy(c) for c in self._colonies.values() if state is None or c.state == state
        ]

    def delete_colony(self, colony_id: UUID) -> bool:
        """Delete a colony and its memory."""
        self._memories.pop(str(colony_id), None)
        return self._colonies.pop(colony_id, None) is not None

    # Memory operations
    def save_memory(self, colony_id: str, memory: MemoryExport) -> None:
        """Replace the stored memory of a colony."""
        self._memories[colony_id] = deepcopy(memory)

    def get_memory(self, colony_id: str) -> MemoryExport | None:
        """Get the stored memory of a colony."""
        memory = self._memories.get(colony_id)
        return deepcopy(memory) if memory else None
