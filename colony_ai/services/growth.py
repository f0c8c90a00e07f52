"""
Growth Calculator for colony-ai.

Time-based growth of an AI colony's population, resources, territory,
military and infrastructure. Growth is computed from a snapshot, then
applied to a colony record as a separate step so it can also be simulated
ahead for projections.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field

from colony_ai.config import GrowthConfig
from colony_ai.models.colony import (
    Colony,
    ColonySnapshot,
    DevelopmentPhase,
    Difficulty,
    Personality,
    ResourceKind,
)
from colony_ai.models.growth import (
    AppliedGrowth,
    GrowthAmounts,
    GrowthEfficiency,
    GrowthModifiers,
    GrowthProjection,
    GrowthStepResult,
    ProjectionMilestone,
    ProjectionPoint,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

PERSONALITY_GROWTH: dict[Personality, float] = {
    Personality.AGGRESSIVE: 1.1,
    Personality.DEFENSIVE: 0.9,
    Personality.EXPANSIONIST: 1.3,
    Personality.BUILDER: 1.2,
    Personality.MILITANT: 1.0,
    Personality.OPPORTUNIST: 1.1,
}

DIFFICULTY_GROWTH: dict[Difficulty, float] = {
    Difficulty.EASY: 0.8,
    Difficulty.MEDIUM: 1.0,
    Difficulty.HARD: 1.3,
    Difficulty.NIGHTMARE: 1.6,
}

PHASE_EFFICIENCY: dict[DevelopmentPhase, float] = {
    DevelopmentPhase.EARLY: 0.8,
    DevelopmentPhase.EXPANSION: 1.0,
    DevelopmentPhase.CONSOLIDATION: 1.2,
    DevelopmentPhase.DOMINANCE: 1.5,
}

OPTIMAL_FOOD = 200.0

PROJECTION_POPULATION_MILESTONE = 100
PROJECTION_TERRITORY_MILESTONE = 10


def growth_phase(population: int, territory_size: int) -> DevelopmentPhase:
    """Phase used for growth efficiency, from size alone."""
    if population < 40 or territory_size < 4:
        return DevelopmentPhase.EARLY
    if population < 80 or territory_size < 8:
        return DevelopmentPhase.EXPANSION
    if population < 150 or territory_size < 15:
        return DevelopmentPhase.CONSOLIDATION
    return DevelopmentPhase.DOMINANCE


def threat_modifier(threat_level: float) -> float:
    """Colonies under threat focus on survival over growth."""
    if threat_level > 0.7:
        return 0.7
    if threat_level > 0.3:
        return 0.9
    return 1.2


@dataclass
class GrowthCalculator:
    """Computes and applies per-tick colony growth."""

    config: GrowthConfig = field(default_factory=GrowthConfig)
    rng: random.Random = field(default_factory=random.Random)

    # =========================================================================
    # Modifiers
    # =========================================================================

    def calculate_modifiers(self, snapshot: ColonySnapshot) -> GrowthModifiers:
        """Every growth multiplier in effect, and their product."""
        modifiers = GrowthModifiers(
            personality=PERSONALITY_GROWTH.get(snapshot.personality, 1.0),
            difficulty=DIFFICULTY_GROWTH.get(snapshot.difficulty, 1.0),
            threat=threat_modifier(snapshot.threat_level),
            resources=min(1.5, max(0.5, snapshot.food / OPTIMAL_FOOD)),
            phase=PHASE_EFFICIENCY[growth_phase(snapshot.population, snapshot.territory_size)],
            efficiency=snapshot.resource_efficiency or 1.0,
        )
        modifiers.overall = (
            modifiers.personality
            * modifiers.difficulty
            * modifiers.threat
            * modifiers.resources
            * modifiers.phase
            * modifiers.efficiency
        )
        return modifiers

    # =========================================================================
    # Per-aspect growth
    # =========================================================================

    def population_growth(
        self, snapshot: ColonySnapshot, time_delta: float, overall: float
    ) -> int:
        current = snapshot.population
        cap = snapshot.max_population
        if current >= cap:
            return 0
        rate = self.config.population_rate * (1 - current / cap) * overall
        return min(math.floor(current * rate * time_delta), cap - current)

    def resource_growth(
        self, snapshot: ColonySnapshot, time_delta: float, overall: float
    ) -> dict[ResourceKind, int]:
        growth: dict[ResourceKind, int] = {}
        population_factor = min(2.0, snapshot.population / 50)

        for kind in ResourceKind:
            current = snapshot.resource(kind)
            capacity = snapshot.resource_capacity.get(kind, 1000.0)
            if current >= capacity:
                growth[kind] = 0
                continue
            rate = (
                self.config.resource_rates.get(kind.value, 0.0)
                * population_factor
                * (1 - current / capacity)
                * overall
            )
            growth[kind] = min(math.floor(current * rate * time_delta), math.floor(capacity - current))
        return growth

    def territory_growth(
        self, snapshot: ColonySnapshot, time_delta: float, overall: float
    ) -> int:
        """Territory grows one tile at a time, by chance, and only with enough food."""
        current = snapshot.territory_size
        if current >= self.config.max_territory:
            return 0
        if snapshot.food < current * self.config.food_per_territory:
            return 0

        population_factor = min(2.0, snapshot.population / max(1, current * 10))
        chance = self.config.territory_rate * population_factor * overall * time_delta
        return 1 if self.rng.random() < chance else 0

    def military_growth(
        self, snapshot: ColonySnapshot, time_delta: float, overall: float
    ) -> int:
        population = snapshot.population
        current = math.floor(population * (snapshot.military_focus or 0.3))
        maximum = math.floor(population * self.config.max_military_ratio)
        if current >= maximum:
            return 0

        rate = (
            self.config.military_rate
            * (1 + snapshot.threat_level)
            * min(1.0, snapshot.food / 100)
            * overall
        )
        return min(math.floor(population * rate * time_delta), maximum - current)

    def infrastructure_growth(
        self, snapshot: ColonySnapshot, time_delta: float, overall: float
    ) -> float:
        wood = min(1.0, snapshot.resource(ResourceKind.WOOD) / 100)
        stone = min(1.0, snapshot.resource(ResourceKind.STONE) / 100)
        return self.config.infrastructure_rate * ((wood + stone) / 2) * overall * time_delta

    # =========================================================================
    # Step
    # =========================================================================

    def calculate_growth(self, snapshot: ColonySnapshot, time_delta: float = 1.0) -> GrowthStepResult:
        """
        Compute growth over ``time_delta`` ticks without applying it.

        Args:
            snapshot: Read-only view of the colony
            time_delta: Ticks elapsed since the last growth step

        Returns:
            Growth amounts, the modifiers behind them and a short explanation
        """
        modifiers = self.calculate_modifiers(snapshot)
        overall = modifiers.overall
        growth = GrowthAmounts(
            population=self.population_growth(snapshot, time_delta, overall),
            resources=self.resource_growth(snapshot, time_delta, overall),
            territory=self.territory_growth(snapshot, time_delta, overall),
            military=self.military_growth(snapshot, time_delta, overall),
            infrastructure=self.infrastructure_growth(snapshot, time_delta, overall),
        )
        return GrowthStepResult(
            growth=growth,
            modifiers=modifiers,
            phase=growth_phase(snapshot.population, snapshot.territory_size),
            reasoning=self._reasoning(snapshot, growth, modifiers),
        )

    def _reasoning(
        self, snapshot: ColonySnapshot, growth: GrowthAmounts, modifiers: GrowthModifiers
    ) -> list[str]:
        reasoning: list[str] = []
        if modifiers.overall > 1.2:
            reasoning.append("Excellent growth conditions with strong modifiers")
        elif modifiers.overall > 1.0:
            reasoning.append("Good growth conditions")
        elif modifiers.overall > 0.8:
            reasoning.append("Moderate growth conditions")
        else:
            reasoning.append("Challenging growth conditions")

        if modifiers.threat < 0.9:
            reasoning.append(f"High threat level ({snapshot.threat_level:.2f}) limiting growth")
        if modifiers.resources < 0.8:
            reasoning.append("Resource shortages constraining growth")
        if modifiers.difficulty > 1.2:
            reasoning.append(f"High difficulty ({snapshot.difficulty.value}) accelerating AI growth")

        if growth.population > 0:
            reasoning.append(f"Population growing by {growth.population} units")
        if growth.territory > 0:
            reasoning.append("Territory expansion successful")
        if growth.total_resources > 100:
            reasoning.append("Strong resource generation")
        return reasoning

    def apply_growth(self, colony: Colony, step: GrowthStepResult) -> tuple[Colony, AppliedGrowth]:
        """
        Apply a growth step to a colony.

        Territory costs food, infrastructure costs wood and stone and raises
        the population cap.

        Returns:
            The updated colony (a new, validated record) and what changed
        """
        growth = step.growth
        applied = AppliedGrowth()
        population = colony.population
        territory = colony.territory_size
        resources = dict(colony.resources)
        infrastructure = colony.infrastructure_level
        max_population = colony.max_population
        military_focus = colony.military_focus

        if growth.population > 0:
            population += growth.population
            applied.population = growth.population

        for kind, amount in growth.resources.items():
            if amount > 0:
                resources[kind] = resources.get(kind, 0.0) + amount
                applied.resources[kind] = float(amount)

        if growth.territory > 0:
            territory += growth.territory
            applied.territory_size = growth.territory
            food_cost = territory * self.config.food_per_territory
            resources[ResourceKind.FOOD] = max(0.0, resources.get(ResourceKind.FOOD, 0.0) - food_cost)

        if growth.infrastructure > 0:
            infrastructure += growth.infrastructure
            applied.infrastructure_level = growth.infrastructure
            capacity_increase = math.floor(growth.infrastructure * 100)
            max_population += capacity_increase
            applied.max_population = capacity_increase
            resources[ResourceKind.WOOD] = max(
                0.0, resources.get(ResourceKind.WOOD, 0.0) - math.floor(growth.infrastructure * 50)
            )
            resources[ResourceKind.STONE] = max(
                0.0, resources.get(ResourceKind.STONE, 0.0) - math.floor(growth.infrastructure * 30)
            )

        if growth.military > 0 and population > 0:
            soldiers = math.floor(population * (military_focus or 0.3)) + growth.military
            military_focus = min(self.config.max_military_ratio, soldiers / population)
            applied.military_focus = growth.military / population

        data = colony.model_dump()
        data.update(
            population=population,
            territory_size=territory,
            resources=resources,
            infrastructure_level=infrastructure,
            max_population=max_population,
            military_focus=military_focus,
        )
        logger.debug("Colony %s growth applied: %s", colony.id, applied)
        return Colony.model_validate(data), applied

    # =========================================================================
    # Projection
    # =========================================================================

    def project_growth(self, colony: Colony, ticks: int = 10) -> GrowthProjection:
        """
        Simulate ``ticks`` growth steps on a copy of the colony.

        Population and territory milestones are recorded once, at the tick
        they are first reached.
        """
        projection = GrowthProjection()
        simulated = colony
        reached_population = colony.population >= PROJECTION_POPULATION_MILESTONE
        reached_territory = colony.territory_size >= PROJECTION_TERRITORY_MILESTONE

        for tick in range(1, ticks + 1):
            step = self.calculate_growth(simulated.snapshot(), 1.0)
            simulated, _ = self.apply_growth(simulated, step)

            point = ProjectionPoint(
                tick=tick,
                population=simulated.population,
                territory_size=simulated.territory_size,
                total_resources=sum(simulated.resources.values()),
                phase=growth_phase(simulated.population, simulated.territory_size),
            )
            projection.timeline.append(point)

            if not reached_population and simulated.population >= PROJECTION_POPULATION_MILESTONE:
                reached_population = True
                projection.milestones.append(
                    ProjectionMilestone(
                        tick=tick,
                        type="population",
                        description=f"Reached {PROJECTION_POPULATION_MILESTONE} population",
                    )
                )
            if not reached_territory and simulated.territory_size >= PROJECTION_TERRITORY_MILESTONE:
                reached_territory = True
                projection.milestones.append(
                    ProjectionMilestone(
                        tick=tick,
                        type="territory",
                        description=f"Reached {PROJECTION_TERRITORY_MILESTONE} territory size",
                    )
                )

        if projection.timeline:
            projection.final_state = projection.timeline[-1]
        return projection

    # =========================================================================
    # Efficiency
    # =========================================================================

    def growth_efficiency(self, snapshot: ColonySnapshot) -> GrowthEfficiency:
        """Current growth modifiers with bottlenecks and recommendations."""
        modifiers = self.calculate_modifiers(snapshot)
        return GrowthEfficiency(
            overall_efficiency=modifiers.overall,
            factors=modifiers,
            bottlenecks=identify_bottlenecks(snapshot),
            recommendations=growth_recommendations(snapshot, modifiers.overall),
        )


def identify_bottlenecks(snapshot: ColonySnapshot) -> list[str]:
    bottlenecks: list[str] = []
    if snapshot.population >= snapshot.max_population * 0.9:
        bottlenecks.append("Population approaching housing capacity")
    if snapshot.food < 50:
        bottlenecks.append("Critical food shortage limiting growth")
    if snapshot.resource(ResourceKind.WOOD) < 100 and snapshot.resource(ResourceKind.STONE) < 100:
        bottlenecks.append("Insufficient construction materials for expansion")
    if snapshot.threat_level > 0.7:
        bottlenecks.append("High threat level forcing defensive posture")
    if snapshot.territory_size >= 20:
        bottlenecks.append("Large territory becoming difficult to manage")
    return bottlenecks


def growth_recommendations(snapshot: ColonySnapshot, overall: float) -> list[str]:
    recommendations: list[str] = []
    if overall < 0.8:
        recommendations.append(
            "Consider reducing threat level through diplomatic or military means"
        )
    if snapshot.food > 200 and snapshot.population < snapshot.max_population * 0.8:
        recommendations.append("Abundant food allows for rapid population growth")
    if snapshot.territory_size < 8 and snapshot.threat_level < 0.3:
        recommendations.append("Safe environment suitable for territorial expansion")
    if snapshot.resource(ResourceKind.WOOD) > 150 and snapshot.resource(ResourceKind.STONE) > 150:
        recommendations.append("Strong resource position enables infrastructure development")
    return recommendations
