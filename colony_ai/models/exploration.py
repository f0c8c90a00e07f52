"""
Exploration Map Models for colony-ai.

Per-colony fog of war: which tiles have been explored, which are visible
right now, and how far the memory of unvisited tiles has decayed.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, Field

from colony_ai.models.position import Position


def tile_key(x: int, y: int) -> str:
    """Map key for a tile coordinate."""
    return f"{x},{y}"


def parse_tile_key(key: str) -> tuple[int, int]:
    """Inverse of tile_key."""
    x, y = key.split(",")
    return int(x), int(y)


class ExploredTile(BaseModel):
    """Bookkeeping for a tile the colony has seen at least once."""

    explored_at: datetime
    last_visited: datetime
    discovery_type: str | None = None


class TileStatus(BaseModel):
    """What a colony knows about one tile."""

    explored: bool = False
    visible: bool = False
    explored_at: datetime | None = None
    last_visited: datetime | None = None
    discovery_type: str | None = None
    memory_decay: Annotated[float, Field(ge=0.0, le=1.0)] = 1.0
    fog_level: Annotated[float, Field(ge=0.0, le=1.0)] = 1.0
    """0 means fully visible, 1 means never seen."""


class ExplorationMilestone(BaseModel):
    milestone: int
    """Total explored tiles when the milestone was reached."""

    timestamp: datetime
    location: Position


class DecayReport(BaseModel):
    """Result of one memory-decay pass."""

    tiles_decayed: int = 0
    tiles_lost: int = 0
    total_explored: int = 0


class DecayBuckets(BaseModel):
    fresh: int = 0
    fading: int = 0
    lost: int = 0


class ExplorationStats(BaseModel):
    colony_id: str
    total_explored_tiles: int
    total_map_tiles: int
    exploration_percentage: float
    currently_visible: int
    memory_decay_stats: DecayBuckets
    exploration_milestones: int
    last_update: datetime


class ExplorationMapExport(BaseModel):
    """Serialized fog-of-war state of one colony."""

    colony_id: str
    map_width: int
    map_height: int
    base_position: Position
    explored_tiles: dict[str, ExploredTile] = Field(default_factory=dict)
    visible_tiles: list[str] = Field(default_factory=list)
    memory_decay: dict[str, float] = Field(default_factory=dict)
    total_explored_area: int = 0
    history: list[ExplorationMilestone] = Field(default_factory=list)
    last_update: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ExplorationEfficiency(BaseModel):
    """How well a colony's scouting has paid off."""

    missions_completed: int = 0
    success_rate: float = 0.0
    discoveries_per_mission: float = 0.0
    active_missions: int = 0
    explored_tiles: int = 0
    budget_utilization: float = 0.0
