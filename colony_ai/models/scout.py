"""
Scouting and Exploration Models for colony-ai.

Scout missions are created from exploration assignments, advance one step
per tick along an abstract waypoint route, and are drained once complete.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, Field

from colony_ai.models.position import Position


class ScoutState(str, Enum):
    """Lifecycle state of a scout mission."""

    IDLE = "idle"
    MOVING = "moving"
    EXPLORING = "exploring"
    RETURNING = "returning"
    INVESTIGATING = "investigating"


class PathfindingMode(str, Enum):
    """How a route is laid out between targets."""

    DIRECT = "direct"
    SAFE = "safe"
    STEALTH = "stealth"
    RAPID = "rapid"


class WaypointAction(str, Enum):
    """What scouts do on reaching a waypoint."""

    DEPARTURE = "departure"
    INVESTIGATE = "investigate"
    STEALTH_APPROACH = "stealth_approach"
    STEALTH_INVESTIGATE = "stealth_investigate"
    RAPID_SURVEY = "rapid_survey"
    SAFETY_CHECK = "safety_check"
    EXPLORE = "explore"
    RETURN_TO_BASE = "return_to_base"


class TargetKind(str, Enum):
    """Geometric pattern a target point was generated from."""

    SPIRAL_POINT = "spiral_point"
    ADJACENT_AREA = "adjacent_area"
    PERIMETER_POINT = "perimeter_point"
    STRATEGIC_POSITION = "strategic_position"
    LONG_RANGE_TARGET = "long_range_target"
    CHECKPOINT = "checkpoint"
    APPROACH = "approach"
    START = "start"
    RETURN = "return"
    EXPLORATION = "exploration"


class ObjectiveType(str, Enum):
    """Reasons a colony sends scouts out."""

    RESOURCE_DISCOVERY = "resource_discovery"
    TERRITORY_EXPANSION = "territory_expansion"
    THREAT_ASSESSMENT = "threat_assessment"
    STRATEGIC_POSITIONING = "strategic_positioning"
    TRADE_ROUTE_DISCOVERY = "trade_route_discovery"


class AssignmentType(str, Enum):
    """Kind of mission an objective turns into."""

    SURVEY = "survey"
    EXPANSION_SURVEY = "expansion_survey"
    SURVEILLANCE = "surveillance"
    RECONNAISSANCE = "reconnaissance"
    LONG_RANGE = "long_range"


class ExplorationMode(str, Enum):
    """Personality-driven exploration style."""

    SYSTEMATIC = "systematic"
    AGGRESSIVE = "aggressive"
    CAUTIOUS = "cautious"
    OPPORTUNISTIC = "opportunistic"
    EXPANSIVE = "expansive"
    METHODICAL = "methodical"


class DiscoveryType(str, Enum):
    """Kinds of findings scouts bring back."""

    RESOURCE = "resource"
    TERRAIN_FEATURE = "terrain_feature"
    QUICK_SCAN = "quick_scan"
    EXPLORATION = "exploration"
    ENEMY_ACTIVITY = "enemy_activity"
    SAFETY_ASSESSMENT = "safety_assessment"


class TargetPoint(BaseModel):
    """A coordinate a mission should visit."""

    x: float
    y: float
    kind: TargetKind = TargetKind.EXPLORATION

    @property
    def position(self) -> Position:
        return Position(x=self.x, y=self.y)


class Waypoint(BaseModel):
    """One stop on a scout route."""

    x: float
    y: float
    kind: TargetKind = TargetKind.EXPLORATION
    action: WaypointAction = WaypointAction.EXPLORE
    estimated_time: float = 0.0
    investigation_time: float = 0.0


class ScoutRoute(BaseModel):
    """Planned route for a mission, with optional fallbacks."""

    waypoints: list[Waypoint] = Field(default_factory=list)
    total_distance: float = 0.0
    estimated_time: float = 0.0
    pathfinding_mode: PathfindingMode = PathfindingMode.SAFE
    risk_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.3
    alternative_routes: list[ScoutRoute] = Field(default_factory=list)


class Discovery(BaseModel):
    """
    A finding reported by scouts.

    Used for both physical discoveries and gathered intelligence; only the
    fields relevant to ``type`` are populated.
    """

    type: DiscoveryType
    location: Position
    discovered_by: str | None = None
    discovery_method: str = "basic_exploration"
    discovered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    resource_type: str | None = None
    abundance: float | None = None
    accessibility: float | None = None
    feature_type: str | None = None
    strategic_value: float | None = None
    threat_level: float | None = None
    confidence: float | None = None
    safety_level: float | None = None
    threats_detected: bool = False


class ScoutMission(BaseModel):
    """An active scouting assignment."""

    id: str = Field(default_factory=lambda: f"scout_{uuid4().hex[:10]}")
    assignment_type: AssignmentType = AssignmentType.SURVEY
    objective: ObjectiveType = ObjectiveType.RESOURCE_DISCOVERY
    scouts_assigned: Annotated[int, Field(ge=1)] = 1
    target_coordinates: list[TargetPoint] = Field(default_factory=list)
    start_position: Position = Field(default_factory=Position)
    current_position: Position = Field(default_factory=Position)
    state: ScoutState = ScoutState.IDLE
    progress: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    route: ScoutRoute | None = None
    discoveries: list[Discovery] = Field(default_factory=list)
    intelligence: list[Discovery] = Field(default_factory=list)
    estimated_duration: Annotated[int, Field(ge=1)] = 5
    actual_duration: int = 0
    success_probability: Annotated[float, Field(ge=0.0, le=1.0)] = 0.7
    fallback_plan: str = "return_to_base"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_update: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_complete(self) -> bool:
        """A mission is finished once progress is full or scouts head home."""
        return self.progress >= 1.0 or self.state == ScoutState.RETURNING


class ScoutStepResult(BaseModel):
    """Outcome of advancing a mission by one tick."""

    mission_id: str
    step_completed: bool = False
    discoveries: list[Discovery] = Field(default_factory=list)
    intelligence: list[Discovery] = Field(default_factory=list)
    position_updated: bool = False
    state_changed: bool = False
    next_action: str | None = None
    completion_progress: float = 0.0


# =============================================================================
# Exploration Planning
# =============================================================================


class ExplorationPattern(BaseModel):
    """Personality-indexed exploration style."""

    mode: ExplorationMode
    search_radius: Annotated[int, Field(ge=1)]
    scout_ratio: Annotated[float, Field(ge=0.0, le=1.0)]
    """Share of the population that may act as scouts."""

    risk_tolerance: Annotated[float, Field(ge=0.0, le=1.0)]


class ExplorationObjective(BaseModel):
    """A prioritized reason to explore."""

    id: str = Field(default_factory=lambda: f"objective_{uuid4().hex[:8]}")
    type: ObjectiveType
    priority: Annotated[float, Field(ge=0.0, le=1.0)]
    description: str
    scouts_needed: Annotated[int, Field(ge=1)] = 1


class ExplorationAssignment(BaseModel):
    """Scouts allocated to one objective, ready to become a mission."""

    objective_id: str
    objective_type: ObjectiveType
    assignment_type: AssignmentType
    scouts_assigned: Annotated[int, Field(ge=1)]
    target_coordinates: list[TargetPoint] = Field(default_factory=list)
    estimated_duration: Annotated[int, Field(ge=1)] = 5
    success_probability: Annotated[float, Field(ge=0.0, le=1.0)] = 0.7
    fallback_plan: str = "return_to_base"


class ExplorationPlan(BaseModel):
    """A full exploration plan for one tick."""

    pattern: ExplorationPattern
    objectives: list[ExplorationObjective] = Field(default_factory=list)
    assignments: list[ExplorationAssignment] = Field(default_factory=list)
    available_scouts: int = 0
    reasoning: list[str] = Field(default_factory=list)


class ExplorationResult(BaseModel):
    """What one exploration step achieved."""

    explored: bool = False
    missions_launched: list[ScoutMission] = Field(default_factory=list)
    missions_completed: int = 0
    discoveries: list[Discovery] = Field(default_factory=list)
    intelligence: list[Discovery] = Field(default_factory=list)
    updated_threat_level: float | None = None
