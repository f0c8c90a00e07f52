"""
Exploration Map for colony-ai.

Per-colony fog of war. Tiles become explored when a scout or the base sees
them; explored tiles that go unvisited slowly fade from memory and are
forgotten entirely after the retention window.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from colony_ai.clock import Clock, utc_now
from colony_ai.config import ExplorationConfig
from colony_ai.models.colony import ScoutSighting
from colony_ai.models.exploration import (
    DecayBuckets,
    DecayReport,
    ExplorationMapExport,
    ExplorationMilestone,
    ExplorationStats,
    ExploredTile,
    TileStatus,
    parse_tile_key,
    tile_key,
)
from colony_ai.models.position import Position

logger = logging.getLogger(__name__)

_TILE_STATE_FIELDS = (
    "explored_tiles",
    "visible_tiles",
    "memory_decay",
    "total_explored_area",
    "history",
    "last_update",
)


def circular_area(
    center_x: int, center_y: int, radius: int, width: int, height: int
) -> list[tuple[int, int]]:
    """In-bounds tiles within ``radius`` of a center tile."""
    tiles: list[tuple[int, int]] = []
    radius_squared = radius * radius
    for y in range(center_y - radius, center_y + radius + 1):
        for x in range(center_x - radius, center_x + radius + 1):
            if x < 0 or x >= width or y < 0 or y >= height:
                continue
            if (x - center_x) ** 2 + (y - center_y) ** 2 <= radius_squared:
                tiles.append((x, y))
    return tiles


def fog_level(explored: bool, visible: bool, decay: float) -> float:
    """0 for visible tiles, 1 for never-seen tiles, at most 0.7 in between."""
    if visible:
        return 0.0
    if not explored:
        return 1.0
    return min(0.7, decay * 0.7)


@dataclass
class ExplorationMap:
    """Explored and visible tiles for one colony."""

    colony_id: str
    map_width: int
    map_height: int
    base_position: Position
    config: ExplorationConfig = field(default_factory=ExplorationConfig)
    clock: Clock = utc_now

    explored_tiles: dict[str, ExploredTile] = field(default_factory=dict)
    visible_tiles: set[str] = field(default_factory=set)
    memory_decay: dict[str, float] = field(default_factory=dict)
    total_explored_area: int = 0
    history: list[ExplorationMilestone] = field(default_factory=list)
    last_update: datetime | None = None

    @classmethod
    def create(
        cls,
        colony_id: str,
        map_width: int,
        map_height: int,
        base_position: Position,
        *,
        config: ExplorationConfig | None = None,
        clock: Clock = utc_now,
    ) -> ExplorationMap:
        """New map with the tiles around the base already explored."""
        exploration_map = cls(
            colony_id=colony_id,
            map_width=map_width,
            map_height=map_height,
            base_position=base_position,
            config=config or ExplorationConfig(),
            clock=clock,
        )
        exploration_map.set_explored_area(round(base_position.x), round(base_position.y), 1)
        return exploration_map

    def _in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.map_width and 0 <= y < self.map_height

    def checkpoint(self) -> dict[str, object]:
        """Copy of the mutable tile state."""
        return {name: deepcopy(getattr(self, name)) for name in _TILE_STATE_FIELDS}

    def restore(self, checkpoint: dict[str, object]) -> None:
        for name, value in checkpoint.items():
            setattr(self, name, value)

    # =========================================================================
    # Tile State
    # =========================================================================

    def tile_status(self, x: int, y: int) -> TileStatus:
        key = tile_key(x, y)
        info = self.explored_tiles.get(key)
        visible = key in self.visible_tiles
        decay = self.memory_decay.get(key, 1.0)
        return TileStatus(
            explored=info is not None,
            visible=visible,
            explored_at=info.explored_at if info else None,
            last_visited=info.last_visited if info else None,
            discovery_type=info.discovery_type if info else None,
            memory_decay=decay,
            fog_level=fog_level(info is not None, visible, decay),
        )

    def set_explored(self, x: int, y: int, discovery_type: str | None = None) -> bool:
        """
        Mark a tile explored now. Returns False for out-of-bounds tiles.

        Every ``milestone_interval`` newly explored tiles a milestone is
        recorded.
        """
        if not self._in_bounds(x, y):
            return False

        key = tile_key(x, y)
        now = self.clock()
        previous = self.explored_tiles.get(key)
        self.explored_tiles[key] = ExploredTile(
            explored_at=previous.explored_at if previous else now,
            last_visited=now,
            discovery_type=discovery_type,
        )
        self.memory_decay[key] = 0.0

        if previous is None:
            self.total_explored_area += 1
            if self.total_explored_area % self.config.milestone_interval == 0:
                self.history.append(
                    ExplorationMilestone(
                        milestone=self.total_explored_area,
                        timestamp=now,
                        location=Position(x=x, y=y),
                    )
                )
                logger.info(
                    "Colony %s explored %d tiles", self.colony_id, self.total_explored_area
                )

        self.last_update = now
        return True

    def set_explored_area(
        self, center_x: int, center_y: int, radius: int, shape: str = "circular"
    ) -> list[tuple[int, int]]:
        """Explore a circular or square area. Returns the tiles explored."""
        explored: list[tuple[int, int]] = []
        for y in range(center_y - radius, center_y + radius + 1):
            for x in range(center_x - radius, center_x + radius + 1):
                if not self._in_bounds(x, y):
                    continue
                if shape == "square":
                    inside = abs(x - center_x) <= radius and abs(y - center_y) <= radius
                else:
                    inside = (x - center_x) ** 2 + (y - center_y) ** 2 <= radius * radius
                if inside:
                    self.set_explored(x, y)
                    explored.append((x, y))
        return explored

    def update_visibility(self, sightings: list[ScoutSighting]) -> list[tuple[int, int]]:
        """
        Recompute the visible set from the base and scout positions.

        Everything visible is also marked explored.
        """
        self.visible_tiles.clear()
        sources = [(self.base_position, self.config.base_visibility_range)]
        sources.extend((s.position, s.visibility_range) for s in sightings)

        for position, radius in sources:
            for x, y in circular_area(
                round(position.x), round(position.y), radius, self.map_width, self.map_height
            ):
                self.visible_tiles.add(tile_key(x, y))
                self.set_explored(x, y)

        self.last_update = self.clock()
        return [parse_tile_key(key) for key in sorted(self.visible_tiles)]

    # =========================================================================
    # Memory Decay
    # =========================================================================

    def process_decay(self) -> DecayReport:
        """
        Fade unvisited tiles.

        Decay starts after ``memory_decay_threshold_hours`` and reaches 1 at
        ``max_memory_retention_hours``, when the tile is forgotten.
        """
        now = self.clock()
        threshold = timedelta(hours=self.config.memory_decay_threshold_hours)
        retention = timedelta(hours=self.config.max_memory_retention_hours)
        window = max(timedelta(seconds=1), retention - threshold)
        report = DecayReport()

        for key, info in list(self.explored_tiles.items()):
            if key in self.visible_tiles:
                self.memory_decay[key] = 0.0
                continue

            since_visit = now - info.last_visited
            if since_visit <= threshold:
                continue

            decay = min(1.0, (since_visit - threshold) / window)
            self.memory_decay[key] = decay
            report.tiles_decayed += 1

            if decay >= 1.0:
                del self.explored_tiles[key]
                del self.memory_decay[key]
                self.total_explored_area -= 1
                report.tiles_lost += 1

        self.last_update = now
        report.total_explored = self.total_explored_area
        if report.tiles_lost:
            logger.debug("Colony %s forgot %d tiles", self.colony_id, report.tiles_lost)
        return report

    # =========================================================================
    # Stats and Persistence
    # =========================================================================

    def get_stats(self) -> ExplorationStats:
        total_tiles = self.map_width * self.map_height
        buckets = DecayBuckets()
        for decay in self.memory_decay.values():
            if decay < 0.25:
                buckets.fresh += 1
            elif decay < 0.75:
                buckets.fading += 1
            else:
                buckets.lost += 1

        return ExplorationStats(
            colony_id=self.colony_id,
            total_explored_tiles=self.total_explored_area,
            total_map_tiles=total_tiles,
            exploration_percentage=round(self.total_explored_area / total_tiles * 100, 2),
            currently_visible=len(self.visible_tiles),
            memory_decay_stats=buckets,
            exploration_milestones=len(self.history),
            last_update=self.last_update or self.clock(),
        )

    def export(self) -> ExplorationMapExport:
        return ExplorationMapExport(
            colony_id=self.colony_id,
            map_width=self.map_width,
            map_height=self.map_height,
            base_position=self.base_position.model_copy(),
            explored_tiles={k: v.model_copy() for k, v in self.explored_tiles.items()},
            visible_tiles=sorted(self.visible_tiles),
            memory_decay=dict(self.memory_decay),
            total_explored_area=self.total_explored_area,
            history=[m.model_copy() for m in self.history],
            last_update=self.last_update or self.clock(),
        )

    @classmethod
    def from_export(
        cls,
        data: ExplorationMapExport,
        *,
        config: ExplorationConfig | None = None,
        clock: Clock = utc_now,
    ) -> ExplorationMap:
        return cls(
            colony_id=data.colony_id,
            map_width=data.map_width,
            map_height=data.map_height,
            base_position=data.base_position.model_copy(),
            config=config or ExplorationConfig(),
            clock=clock,
            explored_tiles={k: v.model_copy() for k, v in data.explored_tiles.items()},
            visible_tiles=set(data.visible_tiles),
            memory_decay=dict(data.memory_decay),
            total_explored_area=data.total_explored_area,
            history=[m.model_copy() for m in data.history],
            last_update=data.last_update,
        )
