"""
Exploration Planner for colony-ai.

Decides whether a colony explores this tick and, if so, what for: a
personality-driven exploration pattern, up to five prioritized objectives,
and a greedy allocation of free scouts to those objectives, each with
target coordinates laid out around the colony base.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from colony_ai.config import ExplorationConfig
from colony_ai.models.colony import AIState, ColonySnapshot, Personality
from colony_ai.models.memory import MemoryCategory
from colony_ai.models.scout import (
    AssignmentType,
    ExplorationAssignment,
    ExplorationMode,
    ExplorationObjective,
    ExplorationPattern,
    ExplorationPlan,
    ObjectiveType,
    TargetKind,
    TargetPoint,
)
from colony_ai.services.memory import ColonyMemory

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

EXPLORATION_PATTERNS: dict[Personality, ExplorationPattern] = {
    Personality.AGGRESSIVE: ExplorationPattern(
        mode=ExplorationMode.AGGRESSIVE, search_radius=20, scout_ratio=0.15, risk_tolerance=0.7
    ),
    Personality.DEFENSIVE: ExplorationPattern(
        mode=ExplorationMode.CAUTIOUS, search_radius=10, scout_ratio=0.08, risk_tolerance=0.3
    ),
    Personality.EXPANSIONIST: ExplorationPattern(
        mode=ExplorationMode.EXPANSIVE, search_radius=25, scout_ratio=0.2, risk_tolerance=0.6
    ),
    Personality.OPPORTUNIST: ExplorationPattern(
        mode=ExplorationMode.OPPORTUNISTIC, search_radius=18, scout_ratio=0.12, risk_tolerance=0.5
    ),
    Personality.MILITANT: ExplorationPattern(
        mode=ExplorationMode.METHODICAL, search_radius=15, scout_ratio=0.1, risk_tolerance=0.6
    ),
    Personality.BUILDER: ExplorationPattern(
        mode=ExplorationMode.SYSTEMATIC, search_radius=12, scout_ratio=0.1, risk_tolerance=0.4
    ),
}

# Chance per tick that a colony not already exploring decides to.
EXPLORE_PROBABILITY: dict[Personality, float] = {
    Personality.EXPANSIONIST: 0.8,
    Personality.OPPORTUNIST: 0.6,
    Personality.DEFENSIVE: 0.3,
}
DEFAULT_EXPLORE_PROBABILITY = 0.5

OBJECTIVE_ASSIGNMENT: dict[ObjectiveType, AssignmentType] = {
    ObjectiveType.RESOURCE_DISCOVERY: AssignmentType.SURVEY,
    ObjectiveType.TERRITORY_EXPANSION: AssignmentType.EXPANSION_SURVEY,
    ObjectiveType.THREAT_ASSESSMENT: AssignmentType.SURVEILLANCE,
    ObjectiveType.STRATEGIC_POSITIONING: AssignmentType.RECONNAISSANCE,
    ObjectiveType.TRADE_ROUTE_DISCOVERY: AssignmentType.LONG_RANGE,
}

BASE_SCOUTS_NEEDED: dict[ObjectiveType, int] = {
    ObjectiveType.RESOURCE_DISCOVERY: 2,
    ObjectiveType.TERRITORY_EXPANSION: 3,
    ObjectiveType.THREAT_ASSESSMENT: 2,
    ObjectiveType.STRATEGIC_POSITIONING: 2,
    ObjectiveType.TRADE_ROUTE_DISCOVERY: 1,
}

MIN_OBJECTIVE_PRIORITY = 0.25
GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


def exploration_pattern(personality: Personality) -> ExplorationPattern:
    return EXPLORATION_PATTERNS.get(personality, EXPLORATION_PATTERNS[Personality.OPPORTUNIST])


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass
class ExplorationPlanner:
    """Plans scouting for one colony tick."""

    config: ExplorationConfig = field(default_factory=ExplorationConfig)
    rng: random.Random = field(default_factory=random.Random)

    def should_explore(self, snapshot: ColonySnapshot) -> bool:
        """
        Whether the colony scouts this tick.

        Small colonies never explore and a colony defending against a heavy
        threat stays home. A colony in the exploring state always explores;
        otherwise it is a personality-weighted coin flip.
        """
        if snapshot.population < self.config.min_population:
            return False
        if snapshot.threat_level > 0.8 and snapshot.state == AIState.DEFENDING:
            return False
        if snapshot.state == AIState.EXPLORING:
            return True
        chance = EXPLORE_PROBABILITY.get(snapshot.personality, DEFAULT_EXPLORE_PROBABILITY)
        return self.rng.random() < chance

    def plan(
        self,
        snapshot: ColonySnapshot,
        memory: ColonyMemory,
        *,
        map_width: int = 100,
        map_height: int = 100,
    ) -> ExplorationPlan:
        """
        Build an exploration plan.

        Args:
            snapshot: Read-only view of the colony
            memory: The colony's memory, used to see what is already known
            map_width: World width, for clamping targets
            map_height: World height, for clamping targets

        Returns:
            Pattern, ranked objectives and scout assignments
        """
        pattern = exploration_pattern(snapshot.personality)
        objectives = self.prioritize_objectives(snapshot, memory, pattern)
        available = max(
            0, math.floor(snapshot.population * pattern.scout_ratio) - snapshot.committed_scouts
        )

        plan = ExplorationPlan(pattern=pattern, objectives=objectives, available_scouts=available)
        plan.assignments = self.allocate_scouts(
            snapshot, objectives, available, pattern, map_width, map_height
        )

        plan.reasoning.append(
            f"{pattern.mode.value.capitalize()} exploration within radius {pattern.search_radius}"
        )
        if objectives:
            plan.reasoning.append(f"Top objective: {objectives[0].description}")
        if available == 0:
            plan.reasoning.append("No free scouts available")
        else:
            plan.reasoning.append(
                f"{sum(a.scouts_assigned for a in plan.assignments)} of {available} free scouts assigned"
            )
        logger.debug(
            "Exploration plan for %s: %d objectives, %d assignments",
            snapshot.colony_id,
            len(objectives),
            len(plan.assignments),
        )
        return plan

    # =========================================================================
    # Objectives
    # =========================================================================

    def prioritize_objectives(
        self, snapshot: ColonySnapshot, memory: ColonyMemory, pattern: ExplorationPattern
    ) -> list[ExplorationObjective]:
        """Score every objective type and keep the strongest few."""
        known_resources = memory.count(MemoryCategory.DISCOVERED_RESOURCES)
        known_enemies = memory.count(MemoryCategory.ENEMY_MOVEMENTS)
        stock_ratio = min(1.0, snapshot.total_resources / 1000)

        candidates = [
            ExplorationObjective(
                type=ObjectiveType.RESOURCE_DISCOVERY,
                priority=_clamp(0.4 + (1 - stock_ratio) * 0.4 - min(0.2, known_resources * 0.02)),
                description="Locate new resource deposits",
            ),
            ExplorationObjective(
                type=ObjectiveType.TERRITORY_EXPANSION,
                priority=_clamp(
                    0.3 + snapshot.expansion_drive * 0.5 if snapshot.territory_size < 25 else 0.0
                ),
                description="Survey land for territorial expansion",
            ),
            ExplorationObjective(
                type=ObjectiveType.THREAT_ASSESSMENT,
                priority=_clamp(0.2 + snapshot.threat_level * 0.6 + min(0.2, known_enemies * 0.05)),
                description="Assess enemy activity near the colony",
            ),
            ExplorationObjective(
                type=ObjectiveType.STRATEGIC_POSITIONING,
                priority=_clamp(0.3 + snapshot.aggression_level * 0.2 + pattern.risk_tolerance * 0.1),
                description="Identify strategic positions",
            ),
            ExplorationObjective(
                type=ObjectiveType.TRADE_ROUTE_DISCOVERY,
                priority=_clamp(
                    0.2
                    + (0.2 if snapshot.personality == Personality.OPPORTUNIST else 0.0)
                    + snapshot.trade_disruption * 0.3
                ),
                description="Find long-range trade routes",
            ),
        ]

        for objective in candidates:
            objective.scouts_needed = self.scouts_needed(objective.type, pattern)

        ranked = sorted(
            (o for o in candidates if o.priority >= MIN_OBJECTIVE_PRIORITY),
            key=lambda o: o.priority,
            reverse=True,
        )
        return ranked[: self.config.max_objectives]

    def scouts_needed(self, objective: ObjectiveType, pattern: ExplorationPattern) -> int:
        needed = BASE_SCOUTS_NEEDED[objective]
        if pattern.mode in (ExplorationMode.EXPANSIVE, ExplorationMode.AGGRESSIVE):
            needed += 1
        return min(self.config.max_scouts_per_mission, needed)

    # =========================================================================
    # Allocation
    # =========================================================================

    def allocate_scouts(
        self,
        snapshot: ColonySnapshot,
        objectives: list[ExplorationObjective],
        available: int,
        pattern: ExplorationPattern,
        map_width: int,
        map_height: int,
    ) -> list[ExplorationAssignment]:
        """Greedy in priority order; an objective takes what it needs or what is left."""
        assignments: list[ExplorationAssignment] = []
        remaining = available

        for objective in objectives:
            if remaining <= 0:
                break
            scouts = min(objective.scouts_needed, remaining)
            remaining -= scouts

            targets = self.target_coordinates(
                objective.type, snapshot, pattern, map_width, map_height
            )
            assignments.append(
                ExplorationAssignment(
                    objective_id=objective.id,
                    objective_type=objective.type,
                    assignment_type=OBJECTIVE_ASSIGNMENT[objective.type],
                    scouts_assigned=scouts,
                    target_coordinates=targets,
                    estimated_duration=max(
                        1, math.ceil(len(targets) * 2 + pattern.search_radius / 10)
                    ),
                    success_probability=self.success_probability(objective.type, snapshot, pattern),
                )
            )
        return assignments

    def success_probability(
        self, objective: ObjectiveType, snapshot: ColonySnapshot, pattern: ExplorationPattern
    ) -> float:
        probability = 0.8 - snapshot.threat_level * 0.2
        if objective == ObjectiveType.THREAT_ASSESSMENT:
            probability -= 0.2
        if objective == ObjectiveType.TRADE_ROUTE_DISCOVERY:
            probability -= 0.1
        probability += (pattern.risk_tolerance - 0.5) * -0.1
        return _clamp(probability, 0.1, 0.95)

    # =========================================================================
    # Target Coordinates
    # =========================================================================

    def target_coordinates(
        self,
        objective: ObjectiveType,
        snapshot: ColonySnapshot,
        pattern: ExplorationPattern,
        map_width: int,
        map_height: int,
    ) -> list[TargetPoint]:
        bx, by = snapshot.base.x, snapshot.base.y
        radius = pattern.search_radius
        points: list[tuple[float, float, TargetKind]] = []

        if objective == ObjectiveType.RESOURCE_DISCOVERY:
            # Spiral outward from the base
            count = 4
            for i in range(count):
                angle = i * GOLDEN_ANGLE
                distance = radius * 0.6 * (i + 1) / count
                points.append(
                    (bx + math.cos(angle) * distance, by + math.sin(angle) * distance, TargetKind.SPIRAL_POINT)
                )
        elif objective == ObjectiveType.TERRITORY_EXPANSION:
            distance = math.sqrt(snapshot.territory_size) * 2 + 3
            for dx, dy in ((1, 0), (0, 1), (-1, 0), (0, -1)):
                points.append((bx + dx * distance, by + dy * distance, TargetKind.ADJACENT_AREA))
        elif objective == ObjectiveType.THREAT_ASSESSMENT:
            for i in range(4):
                angle = math.pi / 4 + i * math.pi / 2
                points.append(
                    (bx + math.cos(angle) * radius, by + math.sin(angle) * radius, TargetKind.PERIMETER_POINT)
                )
        elif objective == ObjectiveType.STRATEGIC_POSITIONING:
            offset = radius * 0.7
            points.append((bx + offset, by + offset, TargetKind.STRATEGIC_POSITION))
            points.append((bx - offset, by - offset, TargetKind.STRATEGIC_POSITION))
        else:
            for _ in range(2):
                angle = self.rng.uniform(0, 2 * math.pi)
                distance = radius * 1.5
                points.append(
                    (bx + math.cos(angle) * distance, by + math.sin(angle) * distance, TargetKind.LONG_RANGE_TARGET)
                )

        return [
            TargetPoint(
                x=float(min(map_width - 1, max(0, round(x)))),
                y=float(min(map_height - 1, max(0, round(y)))),
                kind=kind,
            )
            for x, y, kind in points
        ]
