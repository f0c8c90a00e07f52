"""
Colony Memory Models for colony-ai.

Memory entries are category-tagged facts (discoveries, sightings, battle
outcomes) with a relevance score that decays with age.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import BaseModel, Field

from colony_ai.models.position import Position


class MemoryCategory(str, Enum):
    """Categories with dedicated capacity and retention settings."""

    DISCOVERED_RESOURCES = "discovered_resources"
    ENEMY_MOVEMENTS = "enemy_movements"
    BATTLE_HISTORY = "battle_history"
    TERRITORY_CHANGES = "territory_changes"
    SCOUT_MISSIONS = "scout_missions"
    TRADE_OPPORTUNITIES = "trade_opportunities"
    STRATEGIC_POSITIONS = "strategic_positions"
    THREAT_ASSESSMENTS = "threat_assessments"
    ALLIANCE_INFORMATION = "alliance_information"
    TERRAIN_FEATURES = "terrain_features"

    # Categories written by the controller itself
    DECISIONS = "decisions"
    PHASE_TRANSITIONS = "phase_transitions"
    ATTACKS = "attacks"


# Per-category capacity. Unlisted categories fall back to DEFAULT_CAPACITY.
CATEGORY_CAPACITY: dict[str, int] = {
    MemoryCategory.DISCOVERED_RESOURCES.value: 100,
    MemoryCategory.ENEMY_MOVEMENTS.value: 50,
    MemoryCategory.BATTLE_HISTORY.value: 30,
    MemoryCategory.TERRITORY_CHANGES.value: 40,
    MemoryCategory.SCOUT_MISSIONS.value: 25,
    MemoryCategory.TRADE_OPPORTUNITIES.value: 20,
    MemoryCategory.STRATEGIC_POSITIONS.value: 50,
    MemoryCategory.THREAT_ASSESSMENTS.value: 40,
    MemoryCategory.ALLIANCE_INFORMATION.value: 15,
    MemoryCategory.TERRAIN_FEATURES.value: 80,
}

# Days before an unaccessed, low-relevance memory may be purged.
CATEGORY_RETENTION_DAYS: dict[str, int] = {
    MemoryCategory.DISCOVERED_RESOURCES.value: 45,
    MemoryCategory.ENEMY_MOVEMENTS.value: 14,
    MemoryCategory.BATTLE_HISTORY.value: 60,
    MemoryCategory.TERRITORY_CHANGES.value: 30,
    MemoryCategory.SCOUT_MISSIONS.value: 21,
    MemoryCategory.TRADE_OPPORTUNITIES.value: 30,
    MemoryCategory.STRATEGIC_POSITIONS.value: 60,
    MemoryCategory.THREAT_ASSESSMENTS.value: 21,
    MemoryCategory.ALLIANCE_INFORMATION.value: 90,
    MemoryCategory.TERRAIN_FEATURES.value: 90,
}

DEFAULT_CAPACITY = 50
DEFAULT_RETENTION_DAYS = 30


def category_key(category: MemoryCategory | str) -> str:
    """Normalize a category to its string key."""
    return category.value if isinstance(category, MemoryCategory) else str(category)


class MemoryEntry(BaseModel):
    """A single remembered fact."""

    id: str = Field(default_factory=lambda: f"mem_{uuid4().hex[:12]}")
    category: str
    payload: dict[str, Any] = Field(default_factory=dict)
    relevance_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    access_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_accessed: datetime | None = None
    last_updated: datetime | None = None

    @property
    def location(self) -> Position | None:
        """Location stored in the payload, if any."""
        raw = self.payload.get("location")
        if isinstance(raw, Position):
            return raw
        if isinstance(raw, dict) and "x" in raw and "y" in raw:
            return Position(x=float(raw["x"]), y=float(raw["y"]))
        return None

    @property
    def type(self) -> str | None:
        """Payload ``type`` tag, if any."""
        value = self.payload.get("type")
        if isinstance(value, Enum):
            return str(value.value)
        return None if value is None else str(value)


class MemoryQuery(BaseModel):
    """Filters for retrieving memories from one category."""

    limit: Annotated[int, Field(ge=1)] | None = None
    since: datetime | None = None
    location: Position | None = None
    radius: Annotated[float, Field(gt=0.0)] = 10.0
    relevance_threshold: Annotated[float, Field(ge=0.0, le=1.0)] | None = None


class MemorySearch(BaseModel):
    """Cross-category search criteria."""

    text: str | None = None
    location: Position | None = None
    radius: Annotated[float, Field(gt=0.0)] = 10.0
    type: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    custom_filter: Callable[[MemoryEntry], bool] | None = None


class RelatedMemory(BaseModel):
    """A memory related to a reference entry."""

    entry: MemoryEntry
    relation_score: float


class CategoryUsage(BaseModel):
    """Fill level of one category."""

    used: int
    limit: int
    usage_percent: float


class MemoryStats(BaseModel):
    """Aggregate statistics over a colony's memory."""

    total_memories: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    memory_usage: dict[str, CategoryUsage] = Field(default_factory=dict)
    oldest_memory: MemoryEntry | None = None
    newest_memory: MemoryEntry | None = None
    most_accessed: MemoryEntry | None = None


class CleanupReport(BaseModel):
    """What a cleanup pass removed."""

    removed_memories: int = 0
    categories_cleaned: dict[str, int] = Field(default_factory=dict)
    cleanup_time: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MemoryExport(BaseModel):
    """Serialized memory of one colony."""

    colony_id: str
    export_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    memories: dict[str, list[MemoryEntry]] = Field(default_factory=dict)
