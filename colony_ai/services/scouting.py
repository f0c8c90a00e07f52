"""
Scout Behavior for colony-ai.

Turns exploration assignments into scout missions, lays out abstract
waypoint routes and advances missions one step per tick, rolling for
discoveries and intelligence at each waypoint.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from colony_ai.clock import Clock, utc_now
from colony_ai.models.colony import ColonySnapshot
from colony_ai.models.position import Position
from colony_ai.models.scout import (
    AssignmentType,
    Discovery,
    DiscoveryType,
    ExplorationAssignment,
    PathfindingMode,
    ScoutMission,
    ScoutRoute,
    ScoutState,
    ScoutStepResult,
    TargetKind,
    TargetPoint,
    Waypoint,
    WaypointAction,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

INVESTIGATION_TIME: dict[TargetKind, float] = {
    TargetKind.SPIRAL_POINT: 1.0,
    TargetKind.ADJACENT_AREA: 1.0,
    TargetKind.PERIMETER_POINT: 2.0,
    TargetKind.STRATEGIC_POSITION: 2.0,
    TargetKind.LONG_RANGE_TARGET: 3.0,
    TargetKind.CHECKPOINT: 0.5,
    TargetKind.APPROACH: 0.5,
}

UNKNOWN_AREA_KINDS = frozenset({TargetKind.PERIMETER_POINT, TargetKind.LONG_RANGE_TARGET})

RESOURCE_TYPES = ("food", "wood", "stone", "water", "minerals")
TERRAIN_FEATURES = ("hill", "river", "forest", "clearing", "rocky_outcrop", "water_source")

HIGH_RISK_ROUTE = 0.6
STEALTH_APPROACH_OFFSET = 2.0
ARRIVAL_DISTANCE = 0.5


def investigation_time(kind: TargetKind) -> float:
    return INVESTIGATION_TIME.get(kind, 1.0)


def midpoint(a: TargetPoint, b: TargetPoint) -> tuple[float, float]:
    return math.floor((a.x + b.x) / 2), math.floor((a.y + b.y) / 2)


def route_distance(waypoints: list[Waypoint]) -> float:
    """Total straight-line length of a waypoint chain."""
    return sum(
        math.hypot(current.x - previous.x, current.y - previous.y)
        for previous, current in zip(waypoints, waypoints[1:])
    )


def route_time(waypoints: list[Waypoint], scout_count: int) -> int:
    """Travel plus investigation time; extra scouts split up, up to twice as fast."""
    total = sum((wp.estimated_time or 1) + wp.investigation_time for wp in waypoints)
    efficiency = min(2.0, 1.0 + (scout_count - 1) * 0.2)
    return math.ceil(total / efficiency)


def route_risk(waypoints: list[Waypoint], start: Position) -> float:
    """
    Average per-waypoint risk.

    Base 0.2, plus up to 0.3 for distance from the route's start, plus 0.2
    in unknown areas; stealth actions take 30% off.
    """
    if not waypoints:
        return 0.3

    total = 0.0
    for waypoint in waypoints:
        risk = 0.2
        distance = math.hypot(waypoint.x - start.x, waypoint.y - start.y)
        risk += min(0.3, distance / 50)
        if waypoint.kind in UNKNOWN_AREA_KINDS:
            risk += 0.2
        if "stealth" in waypoint.action.value:
            risk *= 0.7
        total += risk
    return min(1.0, total / len(waypoints))


def select_pathfinding_mode(mission: ScoutMission) -> PathfindingMode:
    if mission.assignment_type == AssignmentType.SURVEILLANCE or mission.success_probability < 0.6:
        return PathfindingMode.STEALTH
    if mission.estimated_duration <= 2:
        return PathfindingMode.RAPID
    if mission.assignment_type == AssignmentType.SURVEY:
        return PathfindingMode.DIRECT
    return PathfindingMode.SAFE


# =============================================================================
# Waypoint Layouts
# =============================================================================


def direct_waypoints(targets: list[TargetPoint]) -> list[Waypoint]:
    return [
        Waypoint(
            x=target.x,
            y=target.y,
            kind=target.kind,
            action=WaypointAction.INVESTIGATE,
            estimated_time=index + 1,
            investigation_time=investigation_time(target.kind),
        )
        for index, target in enumerate(targets)
    ]


def safe_waypoints(targets: list[TargetPoint]) -> list[Waypoint]:
    """Direct route with a safety checkpoint between consecutive targets."""
    waypoints: list[Waypoint] = []
    for index, target in enumerate(targets):
        if index > 0:
            mx, my = midpoint(targets[index - 1], target)
            waypoints.append(
                Waypoint(
                    x=mx,
                    y=my,
                    kind=TargetKind.CHECKPOINT,
                    action=WaypointAction.SAFETY_CHECK,
                    estimated_time=index + 0.5,
                )
            )
        waypoints.append(
            Waypoint(
                x=target.x,
                y=target.y,
                kind=target.kind,
                action=WaypointAction.INVESTIGATE,
                estimated_time=index + 1,
                investigation_time=investigation_time(target.kind),
            )
        )
    return waypoints


def rapid_waypoints(targets: list[TargetPoint]) -> list[Waypoint]:
    """Only the leading half of the targets, surveyed quickly."""
    priority = targets[: math.ceil(len(targets) / 2)]
    return [
        Waypoint(
            x=target.x,
            y=target.y,
            kind=target.kind,
            action=WaypointAction.RAPID_SURVEY,
            estimated_time=index + 0.5,
            investigation_time=investigation_time(target.kind) * 0.5,
        )
        for index, target in enumerate(priority)
    ]


@dataclass
class ScoutBehavior:
    """Plans and executes scout missions."""

    rng: random.Random = field(default_factory=random.Random)
    clock: Clock = utc_now

    # =========================================================================
    # Mission Creation
    # =========================================================================

    def create_mission(
        self, assignment: ExplorationAssignment, snapshot: ColonySnapshot
    ) -> ScoutMission:
        """Create a mission from an assignment, starting at the colony base, with its route planned."""
        now = self.clock()
        mission = ScoutMission(
            assignment_type=assignment.assignment_type,
            objective=assignment.objective_type,
            scouts_assigned=assignment.scouts_assigned,
            target_coordinates=[t.model_copy() for t in assignment.target_coordinates],
            start_position=snapshot.base.model_copy(),
            current_position=snapshot.base.model_copy(),
            estimated_duration=assignment.estimated_duration,
            success_probability=assignment.success_probability,
            fallback_plan=assignment.fallback_plan,
            created_at=now,
            last_update=now,
        )
        mission.route = self.plan_route(mission)
        logger.debug(
            "Planned scout mission %s: %s route, risk %.2f",
            mission.id,
            mission.route.pathfinding_mode.value,
            mission.route.risk_level,
        )
        return mission

    def plan_route(self, mission: ScoutMission) -> ScoutRoute:
        """Lay out waypoints and score the route; risky routes get alternatives."""
        mode = select_pathfinding_mode(mission)
        waypoints = self.generate_waypoints(mission, mode)
        route = ScoutRoute(
            waypoints=waypoints,
            total_distance=route_distance(waypoints),
            estimated_time=route_time(waypoints, mission.scouts_assigned),
            pathfinding_mode=mode,
            risk_level=route_risk(waypoints, mission.start_position),
        )
        if route.risk_level > HIGH_RISK_ROUTE:
            route.alternative_routes = self.alternative_routes(mission)
        return route

    def generate_waypoints(self, mission: ScoutMission, mode: PathfindingMode) -> list[Waypoint]:
        start = mission.start_position
        targets = mission.target_coordinates
        waypoints = [
            Waypoint(
                x=start.x,
                y=start.y,
                kind=TargetKind.START,
                action=WaypointAction.DEPARTURE,
                estimated_time=0,
            )
        ]

        if mode == PathfindingMode.DIRECT:
            waypoints.extend(direct_waypoints(targets))
        elif mode == PathfindingMode.SAFE:
            waypoints.extend(safe_waypoints(targets))
        elif mode == PathfindingMode.STEALTH:
            waypoints.extend(self.stealth_waypoints(targets))
        else:
            waypoints.extend(rapid_waypoints(targets))

        waypoints.append(
            Waypoint(
                x=start.x,
                y=start.y,
                kind=TargetKind.RETURN,
                action=WaypointAction.RETURN_TO_BASE,
                estimated_time=len(waypoints) * 2,
            )
        )
        return waypoints

    def stealth_waypoints(self, targets: list[TargetPoint]) -> list[Waypoint]:
        """Each target is preceded by an offset approach point and investigated slowly."""
        waypoints: list[Waypoint] = []
        for index, target in enumerate(targets):
            offset_x = STEALTH_APPROACH_OFFSET if self.rng.random() > 0.5 else -STEALTH_APPROACH_OFFSET
            offset_y = STEALTH_APPROACH_OFFSET if self.rng.random() > 0.5 else -STEALTH_APPROACH_OFFSET
            waypoints.append(
                Waypoint(
                    x=target.x + offset_x,
                    y=target.y + offset_y,
                    kind=TargetKind.APPROACH,
                    action=WaypointAction.STEALTH_APPROACH,
                    estimated_time=index + 0.5,
                )
            )
            waypoints.append(
                Waypoint(
                    x=target.x,
                    y=target.y,
                    kind=target.kind,
                    action=WaypointAction.STEALTH_INVESTIGATE,
                    estimated_time=index + 1,
                    investigation_time=investigation_time(target.kind) * 1.5,
                )
            )
        return waypoints

    def alternative_routes(self, mission: ScoutMission) -> list[ScoutRoute]:
        """A slower conservative route and a jittered bypass route."""
        conservative = ScoutRoute(
            waypoints=safe_waypoints(mission.target_coordinates[:2]),
            pathfinding_mode=PathfindingMode.SAFE,
            risk_level=0.2,
            estimated_time=mission.estimated_duration * 1.5,
        )
        conservative.total_distance = route_distance(conservative.waypoints)

        shifted = [
            TargetPoint(
                x=target.x + (self.rng.random() - 0.5) * 4,
                y=target.y + (self.rng.random() - 0.5) * 4,
                kind=target.kind,
            )
            for target in mission.target_coordinates
        ]
        bypass = ScoutRoute(
            waypoints=direct_waypoints(shifted),
            pathfinding_mode=PathfindingMode.DIRECT,
            risk_level=0.4,
            estimated_time=mission.estimated_duration * 1.2,
        )
        bypass.total_distance = route_distance(bypass.waypoints)
        return [conservative, bypass]

    # =========================================================================
    # Mission Execution
    # =========================================================================

    def current_waypoint(self, mission: ScoutMission) -> Waypoint | None:
        if mission.route is None or not mission.route.waypoints:
            return None
        index = math.floor(mission.progress * len(mission.route.waypoints))
        if index >= len(mission.route.waypoints):
            return None
        return mission.route.waypoints[index]

    def execute_step(self, mission: ScoutMission) -> ScoutStepResult:
        """
        Advance a mission by one tick, in place.

        Progress is elapsed over estimated duration. Findings are appended to
        the mission and also returned on the step result.
        """
        result = ScoutStepResult(mission_id=mission.id)
        mission.actual_duration += 1

        waypoint = self.current_waypoint(mission)
        if waypoint is None:
            mission.state = ScoutState.RETURNING
            result.step_completed = True
            result.completion_progress = 1.0
            return result

        discoveries, intelligence = self.waypoint_action(mission, waypoint)
        mission.discoveries.extend(discoveries)
        mission.intelligence.extend(intelligence)
        result.discoveries = discoveries
        result.intelligence = intelligence

        if self._needs_to_move(mission, waypoint):
            mission.current_position = Position(x=waypoint.x, y=waypoint.y)
            result.position_updated = True

        mission.progress = min(1.0, mission.actual_duration / mission.estimated_duration)
        result.completion_progress = mission.progress
        result.step_completed = mission.progress >= 1.0
        result.next_action = self._next_action(mission, waypoint)

        state = self.determine_state(mission, waypoint)
        if state != mission.state:
            mission.state = state
            result.state_changed = True

        mission.last_update = self.clock()
        return result

    def waypoint_action(
        self, mission: ScoutMission, waypoint: Waypoint
    ) -> tuple[list[Discovery], list[Discovery]]:
        """Roll for findings at a waypoint. Returns (discoveries, intelligence)."""
        location = Position(x=waypoint.x, y=waypoint.y)
        action = waypoint.action

        if action == WaypointAction.INVESTIGATE:
            return self._investigate(mission, location), []
        if action == WaypointAction.STEALTH_INVESTIGATE:
            return [], self._stealth_investigate(mission, location)
        if action == WaypointAction.RAPID_SURVEY:
            return self._rapid_survey(mission, location), []
        if action == WaypointAction.SAFETY_CHECK:
            return [], [self._safety_check(mission, location)]
        if action == WaypointAction.STEALTH_APPROACH:
            return [], []
        return self._basic_exploration(mission, location), []

    def _investigate(self, mission: ScoutMission, location: Position) -> list[Discovery]:
        found: list[Discovery] = []
        if self.rng.random() < 0.3:
            found.append(
                Discovery(
                    type=DiscoveryType.RESOURCE,
                    location=location,
                    resource_type=self.rng.choice(RESOURCE_TYPES),
                    abundance=self.rng.random() * 100,
                    accessibility=self.rng.random(),
                    discovered_by=mission.id,
                    discovery_method="investigation",
                    discovered_at=self.clock(),
                )
            )
        if self.rng.random() < 0.2:
            found.append(
                Discovery(
                    type=DiscoveryType.TERRAIN_FEATURE,
                    location=location,
                    feature_type=self.rng.choice(TERRAIN_FEATURES),
                    strategic_value=self.rng.random(),
                    discovered_by=mission.id,
                    discovery_method="investigation",
                    discovered_at=self.clock(),
                )
            )
        return found

    def _stealth_investigate(self, mission: ScoutMission, location: Position) -> list[Discovery]:
        if self.rng.random() >= 0.4:
            return []
        return [
            Discovery(
                type=DiscoveryType.ENEMY_ACTIVITY,
                location=location,
                threat_level=self.rng.random(),
                confidence=0.8,
                discovered_by=mission.id,
                discovery_method="stealth_observation",
                discovered_at=self.clock(),
            )
        ]

    def _rapid_survey(self, mission: ScoutMission, location: Position) -> list[Discovery]:
        if self.rng.random() >= 0.15:
            return []
        return [
            Discovery(
                type=DiscoveryType.QUICK_SCAN,
                location=location,
                discovered_by=mission.id,
                discovery_method="rapid_survey",
                discovered_at=self.clock(),
            )
        ]

    def _safety_check(self, mission: ScoutMission, location: Position) -> Discovery:
        return Discovery(
            type=DiscoveryType.SAFETY_ASSESSMENT,
            location=location,
            safety_level=self.rng.random(),
            threats_detected=self.rng.random() < 0.1,
            discovered_by=mission.id,
            discovery_method="safety_check",
            discovered_at=self.clock(),
        )

    def _basic_exploration(self, mission: ScoutMission, location: Position) -> list[Discovery]:
        if self.rng.random() >= 0.2:
            return []
        return [
            Discovery(
                type=DiscoveryType.EXPLORATION,
                location=location,
                discovered_by=mission.id,
                discovered_at=self.clock(),
            )
        ]

    def _needs_to_move(self, mission: ScoutMission, waypoint: Waypoint) -> bool:
        distance = math.hypot(
            waypoint.x - mission.current_position.x, waypoint.y - mission.current_position.y
        )
        return distance > ARRIVAL_DISTANCE

    def _next_action(self, mission: ScoutMission, waypoint: Waypoint | None) -> str:
        if mission.progress >= 1.0:
            return WaypointAction.RETURN_TO_BASE.value
        if waypoint is None:
            return "find_next_waypoint"
        if self._needs_to_move(mission, waypoint):
            return "move_to_waypoint"
        return waypoint.action.value

    def determine_state(self, mission: ScoutMission, waypoint: Waypoint | None) -> ScoutState:
        if mission.progress >= 1.0:
            return ScoutState.RETURNING
        if waypoint is None:
            return ScoutState.IDLE
        if self._needs_to_move(mission, waypoint):
            return ScoutState.MOVING
        if "investigate" in waypoint.action.value:
            return ScoutState.INVESTIGATING
        return ScoutState.EXPLORING


def mission_success(mission: ScoutMission) -> float:
    """
    Score a mission from 0 to 1.

    Base 0.5; +0.2 on time, -0.2 when over 150% of the estimate; +0.1 per
    discovery up to 0.3; +0.3 scaled by progress.
    """
    score = 0.5
    if mission.actual_duration <= mission.estimated_duration:
        score += 0.2
    elif mission.actual_duration > mission.estimated_duration * 1.5:
        score -= 0.2
    score += min(0.3, len(mission.discoveries) * 0.1)
    score += mission.progress * 0.3
    return max(0.0, min(1.0, score))
