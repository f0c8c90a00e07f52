"""
Defensive positioning strategy.

Picks a defensive posture from the colony's threat level and personality,
then plans unit deployment, fortifications and the areas most worth
protecting.
"""

from __future__ import annotations

import math

from colony_ai.models.colony import ColonySnapshot, Personality, ResourceKind
from colony_ai.models.position import Position
from colony_ai.models.strategy import (
    DefenseEvaluation,
    DefensePosture,
    DefenseStrategy,
    FortificationPlan,
    PriorityArea,
    UnitDeployment,
)

# =============================================================================
# Constants
# =============================================================================

# Strongest first; personalities shift one step along this ladder.
POSTURE_LADDER = [
    DefensePosture.MINIMAL,
    DefensePosture.BALANCED,
    DefensePosture.DEFENSIVE,
    DefensePosture.FORTRESS,
]

# soldiers, archers, guards, scouts
UNIT_RATIOS: dict[DefensePosture, tuple[float, float, float, float]] = {
    DefensePosture.FORTRESS: (0.4, 0.3, 0.2, 0.1),
    DefensePosture.DEFENSIVE: (0.35, 0.25, 0.25, 0.15),
    DefensePosture.BALANCED: (0.3, 0.2, 0.3, 0.2),
    DefensePosture.MINIMAL: (0.2, 0.1, 0.4, 0.3),
}

POSITION_RATIOS: dict[DefensePosture, dict[str, float]] = {
    DefensePosture.FORTRESS: {
        "entrance_guards": 0.3,
        "perimeter_patrol": 0.2,
        "watchtowers": 0.3,
        "resource_protection": 0.1,
        "mobile_reserve": 0.1,
    },
    DefensePosture.DEFENSIVE: {
        "entrance_guards": 0.25,
        "perimeter_patrol": 0.25,
        "watchtowers": 0.2,
        "resource_protection": 0.15,
        "mobile_reserve": 0.15,
    },
    DefensePosture.BALANCED: {
        "entrance_guards": 0.2,
        "perimeter_patrol": 0.3,
        "watchtowers": 0.15,
        "resource_protection": 0.15,
        "mobile_reserve": 0.2,
    },
    DefensePosture.MINIMAL: {
        "entrance_guards": 0.15,
        "perimeter_patrol": 0.35,
        "watchtowers": 0.1,
        "resource_protection": 0.1,
        "mobile_reserve": 0.3,
    },
}

# Per posture: (territory multiplier, resource divisor) for walls, towers,
# barriers; (territory multiplier, population divisor) for trenches.
FORTIFICATION_RULES: dict[DefensePosture, dict[str, tuple[float, float]]] = {
    DefensePosture.FORTRESS: {
        "walls": (2.0, 50),
        "towers": (1 / 2, 80),
        "barriers": (1.0, 30),
        "trenches": (1.0, 20),
    },
    DefensePosture.DEFENSIVE: {
        "walls": (1.0, 60),
        "towers": (1 / 3, 100),
        "barriers": (0.8, 40),
        "trenches": (0.6, 30),
    },
    DefensePosture.BALANCED: {
        "walls": (0.6, 80),
        "towers": (1 / 4, 120),
        "barriers": (0.5, 50),
        "trenches": (0.3, 40),
    },
    DefensePosture.MINIMAL: {
        "walls": (0.3, 100),
        "towers": (1 / 6, 150),
        "barriers": (0.3, 60),
        "trenches": (0.2, 50),
    },
}

FORTIFICATION_ORDER: dict[DefensePosture, list[str]] = {
    DefensePosture.FORTRESS: ["walls", "towers", "barriers", "trenches"],
    DefensePosture.DEFENSIVE: ["walls", "barriers", "towers", "trenches"],
    DefensePosture.BALANCED: ["barriers", "walls", "trenches", "towers"],
    DefensePosture.MINIMAL: ["barriers", "trenches", "walls", "towers"],
}


# =============================================================================
# Planning
# =============================================================================


def determine_posture(threat_level: float, personality: Personality) -> DefensePosture:
    """Posture from threat bands, shifted one step by personality."""
    if threat_level > 0.8:
        posture = DefensePosture.FORTRESS
    elif threat_level > 0.6:
        posture = DefensePosture.DEFENSIVE
    elif threat_level > 0.3:
        posture = DefensePosture.BALANCED
    else:
        posture = DefensePosture.MINIMAL

    index = POSTURE_LADDER.index(posture)
    if personality == Personality.DEFENSIVE and posture in (
        DefensePosture.MINIMAL,
        DefensePosture.BALANCED,
    ):
        index += 1
    elif personality == Personality.AGGRESSIVE and posture in (
        DefensePosture.FORTRESS,
        DefensePosture.DEFENSIVE,
    ):
        index -= 1
    return POSTURE_LADDER[index]


def plan_unit_deployment(snapshot: ColonySnapshot, posture: DefensePosture) -> UnitDeployment:
    """Split the military population across unit types and positions."""
    total_military = math.floor(snapshot.population * snapshot.military_focus)
    soldiers, archers, guards, scouts = UNIT_RATIOS[posture]
    deployment = UnitDeployment(
        soldiers=math.floor(total_military * soldiers),
        archers=math.floor(total_military * archers),
        guards=math.floor(total_military * guards),
        scouts=math.floor(total_military * scouts),
    )
    total_units = deployment.total_units
    deployment.positions = {
        name: math.floor(total_units * ratio) for name, ratio in POSITION_RATIOS[posture].items()
    }
    return deployment


def plan_fortifications(snapshot: ColonySnapshot, posture: DefensePosture) -> FortificationPlan:
    """Fortifications the colony can afford for its posture, with costs."""
    territory = snapshot.territory_size
    stone = snapshot.resource(ResourceKind.STONE)
    wood = snapshot.resource(ResourceKind.WOOD)
    rules = FORTIFICATION_RULES[posture]

    def limit(name: str, available: float) -> int:
        multiplier, divisor = rules[name]
        return min(math.floor(territory * multiplier), math.floor(available / divisor))

    plan = FortificationPlan(
        walls=limit("walls", stone),
        towers=limit("towers", stone),
        barriers=limit("barriers", wood),
        trenches=limit("trenches", snapshot.population),
        priority_order=list(FORTIFICATION_ORDER[posture]),
    )
    plan.resource_cost = {
        "stone": plan.walls * 50 + plan.towers * 80,
        "wood": plan.barriers * 30 + plan.towers * 20,
        "labor": (plan.walls + plan.towers + plan.barriers) * 10 + plan.trenches * 5,
    }
    return plan


def perimeter_points(base: Position, territory_size: int) -> list[Position]:
    """Evenly spaced points on the territory boundary."""
    radius = territory_size
    count = max(4, math.floor(radius * 2))
    return [
        Position(
            x=round(base.x + radius * math.cos(2 * math.pi * i / count)),
            y=round(base.y + radius * math.sin(2 * math.pi * i / count)),
        )
        for i in range(count)
    ]


def identify_priority_areas(
    snapshot: ColonySnapshot,
    resource_sites: list[Position] | None = None,
    high_ground: list[Position] | None = None,
) -> list[PriorityArea]:
    """Areas worth defending, most important first."""
    areas = [
        PriorityArea(
            type="entrance",
            priority=1.0,
            coordinates=snapshot.base.model_copy(),
            reason="Primary access point to colony",
        )
    ]
    for site in resource_sites or []:
        areas.append(
            PriorityArea(
                type="resource_area",
                priority=0.7,
                coordinates=site,
                reason="Critical resource gathering location",
            )
        )
    for point in perimeter_points(snapshot.base, snapshot.territory_size):
        areas.append(
            PriorityArea(
                type="perimeter",
                priority=0.6,
                coordinates=point,
                reason="Territory boundary defense",
            )
        )
    for point in high_ground or []:
        areas.append(
            PriorityArea(
                type="high_ground",
                priority=0.8,
                coordinates=point,
                reason="Strategic elevated position",
            )
        )

    areas.sort(key=lambda area: area.priority, reverse=True)
    return areas


def _reasoning(snapshot: ColonySnapshot) -> list[str]:
    threat = snapshot.threat_level
    reasoning: list[str] = []

    if threat > 0.7:
        reasoning.append(f"High threat level ({threat:.2f}) requires fortress-level defenses")
    elif threat > 0.3:
        reasoning.append(
            f"Moderate threat level ({threat:.2f}) suggests balanced defensive approach"
        )
    else:
        reasoning.append(f"Low threat level ({threat:.2f}) allows minimal defensive posture")

    if snapshot.personality == Personality.DEFENSIVE:
        reasoning.append("Defensive personality prioritizes fortification and static defense")
    elif snapshot.personality == Personality.AGGRESSIVE:
        reasoning.append("Aggressive personality favors mobile defense over static fortifications")

    if snapshot.resource(ResourceKind.STONE) < 100:
        reasoning.append("Limited stone resources constrain wall and tower construction")
    if snapshot.resource(ResourceKind.WOOD) < 100:
        reasoning.append("Limited wood resources limit barrier construction")

    if snapshot.population < 50:
        reasoning.append("Small population limits available military units")
    elif snapshot.population > 100:
        reasoning.append("Large population enables comprehensive defensive coverage")

    if snapshot.territory_size > 8:
        reasoning.append("Large territory requires extended perimeter defense")
    elif snapshot.territory_size < 4:
        reasoning.append("Compact territory allows concentrated defensive focus")

    return reasoning


def evaluate_defense_strategy(
    snapshot: ColonySnapshot,
    resource_sites: list[Position] | None = None,
    high_ground: list[Position] | None = None,
) -> DefenseStrategy:
    """
    Plan the colony's defenses.

    Args:
        snapshot: Read-only view of the colony
        resource_sites: Known gathering sites worth protecting
        high_ground: Elevated positions, if the terrain exposes any

    Returns:
        Posture, unit deployment, fortification plan and priority areas
    """
    posture = determine_posture(snapshot.threat_level, snapshot.personality)
    return DefenseStrategy(
        posture=posture,
        unit_deployment=plan_unit_deployment(snapshot, posture),
        fortification_plan=plan_fortifications(snapshot, posture),
        priority_areas=identify_priority_areas(snapshot, resource_sites, high_ground),
        reasoning=_reasoning(snapshot),
    )


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_defensive_effectiveness(
    snapshot: ColonySnapshot, strategy: DefenseStrategy
) -> DefenseEvaluation:
    """Score a defense plan on coverage, sustainability and positioning."""
    territory = max(1, snapshot.territory_size)
    plan = strategy.fortification_plan
    costs = plan.resource_cost

    stone_ratio = snapshot.resource(ResourceKind.STONE) / (costs.get("stone") or 1)
    wood_ratio = snapshot.resource(ResourceKind.WOOD) / (costs.get("wood") or 1)
    labor_ratio = snapshot.population / (costs.get("labor") or 1)

    positioning = 0.5
    if any(area.priority > 0.7 for area in strategy.priority_areas):
        positioning += 0.3
    if strategy.posture == DefensePosture.FORTRESS and snapshot.threat_level > 0.7:
        positioning += 0.2
    elif strategy.posture == DefensePosture.MINIMAL and snapshot.threat_level < 0.3:
        positioning += 0.1

    factors = {
        "unit_coverage": min(1.0, strategy.unit_deployment.total_units / (territory * 2)),
        "fortification_coverage": min(1.0, plan.total_structures / territory),
        "resource_sustainability": min(1.0, (stone_ratio + wood_ratio + labor_ratio) / 3),
        "strategic_positioning": min(1.0, positioning),
    }
    evaluation = DefenseEvaluation(
        overall_score=(
            factors["unit_coverage"] * 0.3
            + factors["fortification_coverage"] * 0.25
            + factors["resource_sustainability"] * 0.25
            + factors["strategic_positioning"] * 0.2
        ),
        factors=factors,
    )

    if factors["unit_coverage"] < 0.5:
        evaluation.weaknesses.append("Insufficient unit coverage for territory size")
    elif factors["unit_coverage"] > 0.8:
        evaluation.strengths.append("Excellent unit coverage across territory")

    if factors["fortification_coverage"] < 0.3:
        evaluation.weaknesses.append("Inadequate fortification coverage")
    elif factors["fortification_coverage"] > 0.7:
        evaluation.strengths.append("Strong fortification network")

    return evaluation
