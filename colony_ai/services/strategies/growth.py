"""
Growth and development strategy.

Classifies the colony's development phase, weighs the five growth areas
(population, territory, military, infrastructure, technology) and produces
a plan for each, with the resources it will take and the milestones to
expect along the way.
"""

from __future__ import annotations

import math

from colony_ai.models.colony import ColonySnapshot, DevelopmentPhase, Personality, ResourceKind
from colony_ai.models.strategy import (
    GrowthAllocation,
    GrowthEvaluation,
    GrowthFocus,
    GrowthMilestone,
    GrowthPlan,
    GrowthStrategy,
    InfrastructurePlan,
    MilestonePriority,
    MilitaryDevelopmentPlan,
    PopulationGrowthPlan,
    ResourceDistribution,
    TechnologyPlan,
    TerritoryExpansionPlan,
)

# =============================================================================
# Constants
# =============================================================================

PHASE_PRIORITIES: dict[DevelopmentPhase, dict[GrowthFocus, float]] = {
    DevelopmentPhase.EARLY: {
        GrowthFocus.POPULATION: 1.0,
        GrowthFocus.INFRASTRUCTURE: 0.9,
        GrowthFocus.TERRITORY: 0.6,
        GrowthFocus.MILITARY: 0.4,
        GrowthFocus.TECHNOLOGY: 0.3,
    },
    DevelopmentPhase.EXPANSION: {
        GrowthFocus.TERRITORY: 1.0,
        GrowthFocus.POPULATION: 0.8,
        GrowthFocus.INFRASTRUCTURE: 0.7,
        GrowthFocus.MILITARY: 0.6,
        GrowthFocus.TECHNOLOGY: 0.5,
    },
    DevelopmentPhase.CONSOLIDATION: {
        GrowthFocus.MILITARY: 1.0,
        GrowthFocus.INFRASTRUCTURE: 0.9,
        GrowthFocus.POPULATION: 0.7,
        GrowthFocus.TERRITORY: 0.6,
        GrowthFocus.TECHNOLOGY: 0.8,
    },
    DevelopmentPhase.DOMINANCE: {
        GrowthFocus.TECHNOLOGY: 1.0,
        GrowthFocus.MILITARY: 0.9,
        GrowthFocus.TERRITORY: 0.8,
        GrowthFocus.INFRASTRUCTURE: 0.7,
        GrowthFocus.POPULATION: 0.5,
    },
}

PERSONALITY_GROWTH_MODIFIERS: dict[Personality, dict[GrowthFocus, float]] = {
    Personality.AGGRESSIVE: {
        GrowthFocus.MILITARY: 1.4,
        GrowthFocus.TERRITORY: 1.2,
        GrowthFocus.POPULATION: 1.1,
        GrowthFocus.INFRASTRUCTURE: 0.8,
        GrowthFocus.TECHNOLOGY: 0.9,
    },
    Personality.DEFENSIVE: {
        GrowthFocus.INFRASTRUCTURE: 1.4,
        GrowthFocus.MILITARY: 1.2,
        GrowthFocus.POPULATION: 1.1,
        GrowthFocus.TERRITORY: 0.8,
        GrowthFocus.TECHNOLOGY: 0.9,
    },
    Personality.EXPANSIONIST: {
        GrowthFocus.TERRITORY: 1.4,
        GrowthFocus.POPULATION: 1.3,
        GrowthFocus.INFRASTRUCTURE: 1.1,
        GrowthFocus.MILITARY: 0.9,
        GrowthFocus.TECHNOLOGY: 0.8,
    },
    Personality.BUILDER: {
        GrowthFocus.INFRASTRUCTURE: 1.4,
        GrowthFocus.TECHNOLOGY: 1.3,
        GrowthFocus.POPULATION: 1.1,
        GrowthFocus.MILITARY: 0.7,
        GrowthFocus.TERRITORY: 1.0,
    },
    Personality.MILITANT: {
        GrowthFocus.MILITARY: 1.4,
        GrowthFocus.TECHNOLOGY: 1.2,
        GrowthFocus.POPULATION: 1.0,
        GrowthFocus.INFRASTRUCTURE: 0.9,
        GrowthFocus.TERRITORY: 0.8,
    },
    Personality.OPPORTUNIST: {
        GrowthFocus.POPULATION: 1.1,
        GrowthFocus.TERRITORY: 1.1,
        GrowthFocus.MILITARY: 1.0,
        GrowthFocus.INFRASTRUCTURE: 1.0,
        GrowthFocus.TECHNOLOGY: 1.0,
    },
}

EXPANSION_DIRECTIONS = [
    "north",
    "south",
    "east",
    "west",
    "northeast",
    "northwest",
    "southeast",
    "southwest",
]

RESEARCH_PROJECTS = [
    "improved_agriculture",
    "advanced_construction",
    "military_tactics",
    "resource_efficiency",
    "defensive_engineering",
    "logistics_optimization",
]

MILESTONE_RANK = {MilestonePriority.HIGH: 3, MilestonePriority.MEDIUM: 2, MilestonePriority.LOW: 1}


# =============================================================================
# Phase and Priorities
# =============================================================================


def determine_development_phase(snapshot: ColonySnapshot) -> DevelopmentPhase:
    """
    Phase for planning purposes.

    A colony only leaves a phase once population, territory and age all
    clear the next bar.
    """
    population = snapshot.population
    territory = snapshot.territory_size
    ticks = snapshot.total_ticks

    if population < 40 or territory < 4 or ticks < 50:
        return DevelopmentPhase.EARLY
    if population < 80 or territory < 8 or ticks < 200:
        return DevelopmentPhase.EXPANSION
    if population < 150 or territory < 15 or ticks < 500:
        return DevelopmentPhase.CONSOLIDATION
    return DevelopmentPhase.DOMINANCE


def apply_situational_modifiers(
    snapshot: ColonySnapshot, priorities: dict[GrowthFocus, float]
) -> dict[GrowthFocus, float]:
    modified = dict(priorities)

    def scale(focus: GrowthFocus, factor: float) -> None:
        modified[focus] = modified.get(focus, 0.5) * factor

    if snapshot.threat_level > 0.7:
        scale(GrowthFocus.MILITARY, 1.5)
        scale(GrowthFocus.INFRASTRUCTURE, 1.3)
        scale(GrowthFocus.TERRITORY, 0.7)
        scale(GrowthFocus.POPULATION, 0.8)
    elif snapshot.threat_level < 0.3:
        scale(GrowthFocus.TERRITORY, 1.3)
        scale(GrowthFocus.POPULATION, 1.2)
        scale(GrowthFocus.TECHNOLOGY, 1.2)
        scale(GrowthFocus.MILITARY, 0.8)

    if snapshot.food < 100:
        scale(GrowthFocus.POPULATION, 0.7)
        scale(GrowthFocus.TERRITORY, 0.8)

    # Housing pressure
    if snapshot.population > snapshot.max_population * 0.9:
        scale(GrowthFocus.INFRASTRUCTURE, 1.4)
        scale(GrowthFocus.TERRITORY, 1.3)
        scale(GrowthFocus.POPULATION, 0.6)

    # Territory saturation
    if snapshot.territory_size > 12:
        scale(GrowthFocus.INFRASTRUCTURE, 1.3)
        scale(GrowthFocus.MILITARY, 1.2)
        scale(GrowthFocus.TECHNOLOGY, 1.2)
        scale(GrowthFocus.TERRITORY, 0.6)

    return modified


def calculate_growth_priorities(
    snapshot: ColonySnapshot, phase: DevelopmentPhase
) -> dict[GrowthFocus, float]:
    """Phase base weights x personality x situation."""
    priorities = dict(PHASE_PRIORITIES[phase])
    modifiers = PERSONALITY_GROWTH_MODIFIERS.get(
        snapshot.personality, PERSONALITY_GROWTH_MODIFIERS[Personality.OPPORTUNIST]
    )
    for focus, modifier in modifiers.items():
        priorities[focus] = priorities.get(focus, 0.5) * modifier
    return apply_situational_modifiers(snapshot, priorities)


# =============================================================================
# Plans
# =============================================================================


def plan_population_growth(snapshot: ColonySnapshot, priority: float) -> PopulationGrowthPlan:
    population = snapshot.population
    if priority < 0.5:
        target = population + math.floor(population * 0.1)
        rate = 0.05
    elif priority < 0.8:
        target = population + math.floor(population * 0.3)
        rate = 0.1
    else:
        target = min(snapshot.max_population, population + math.floor(population * 0.5))
        rate = 0.15

    increase = max(0, target - population)
    return PopulationGrowthPlan(
        target_population=target,
        growth_rate=rate,
        housing_needed=max(0, target - snapshot.max_population),
        food_requirements=increase * 2,
        timeline=math.ceil(increase / (population * rate)) if population > 0 else 0,
    )


def plan_territory_expansion(snapshot: ColonySnapshot, priority: float) -> TerritoryExpansionPlan:
    current = snapshot.territory_size
    if priority < 0.5:
        target = current + 1
    elif priority < 0.8:
        target = current + math.ceil(current * 0.3)
    else:
        target = current + math.ceil(current * 0.5)

    growth = target - current
    outposts = math.ceil(growth / 3)
    return TerritoryExpansionPlan(
        target_size=target,
        expansion_directions=EXPANSION_DIRECTIONS[: min(4, math.ceil(growth / 2))],
        outposts_needed=outposts,
        resource_cost={"wood": outposts * 50, "stone": outposts * 30, "food": growth * 20},
        timeline=growth * 2,
    )


def plan_military_development(
    snapshot: ColonySnapshot, priority: float
) -> MilitaryDevelopmentPlan:
    population = snapshot.population
    current = math.floor(population * (snapshot.military_focus or 0.3))
    if priority < 0.5:
        target = math.floor(population * 0.2)
    elif priority < 0.8:
        target = math.floor(population * 0.4)
    else:
        target = math.floor(population * 0.6)

    if snapshot.personality == Personality.DEFENSIVE:
        ratios = {"guards": 0.4, "archers": 0.3, "soldiers": 0.3}
    elif snapshot.personality == Personality.AGGRESSIVE:
        ratios = {"soldiers": 0.5, "cavalry": 0.3, "archers": 0.2}
    else:
        ratios = {"soldiers": 0.4, "archers": 0.3, "guards": 0.3}

    shortfall = max(0, target - current)
    return MilitaryDevelopmentPlan(
        target_military_size=target,
        unit_composition={unit: math.floor(target * ratio) for unit, ratio in ratios.items()},
        training_facilities=math.ceil(target / 20),
        equipment_needed={
            "weapons": shortfall,
            "armor": math.floor(shortfall * 0.8),
            "supplies": shortfall * 5,
        },
        timeline=math.ceil(shortfall / 5),
    )


def plan_infrastructure_projects(priority: float) -> InfrastructurePlan:
    if priority < 0.5:
        plan = InfrastructurePlan(housing_projects=1, storage_facilities=1, production_buildings=1)
    elif priority < 0.8:
        plan = InfrastructurePlan(
            housing_projects=2, storage_facilities=2, production_buildings=2, defensive_structures=1
        )
    else:
        plan = InfrastructurePlan(
            housing_projects=3, storage_facilities=3, production_buildings=3, defensive_structures=2
        )

    plan.resource_cost = {
        "wood": plan.housing_projects * 80 + plan.production_buildings * 60,
        "stone": plan.storage_facilities * 100 + plan.defensive_structures * 120,
        "labor": plan.total_projects * 15,
    }
    plan.timeline = plan.total_projects * 3
    return plan


def plan_technology_research(priority: float) -> TechnologyPlan:
    if priority < 0.5:
        projects, facilities = RESEARCH_PROJECTS[:1], 1
    elif priority < 0.8:
        projects, facilities = RESEARCH_PROJECTS[:2], 1
    else:
        projects, facilities = RESEARCH_PROJECTS[:3], 2

    count = len(projects)
    return TechnologyPlan(
        research_projects=list(projects),
        research_facilities=facilities,
        specialists_needed=count * 3,
        resource_investment={
            "knowledge_points": count * 100,
            "research_materials": count * 50,
            "time_investment": count * 10,
        },
        timeline=count * 8,
    )


def create_growth_plan(
    snapshot: ColonySnapshot, priorities: dict[GrowthFocus, float]
) -> GrowthPlan:
    return GrowthPlan(
        population_growth=plan_population_growth(snapshot, priorities[GrowthFocus.POPULATION]),
        territory_expansion=plan_territory_expansion(snapshot, priorities[GrowthFocus.TERRITORY]),
        military_development=plan_military_development(snapshot, priorities[GrowthFocus.MILITARY]),
        infrastructure_projects=plan_infrastructure_projects(
            priorities[GrowthFocus.INFRASTRUCTURE]
        ),
        technology_research=plan_technology_research(priorities[GrowthFocus.TECHNOLOGY]),
    )


def plan_resource_allocation(snapshot: ColonySnapshot, plan: GrowthPlan) -> GrowthAllocation:
    """Assign workers to activities and check plan costs against stock."""
    working = math.floor(snapshot.population * 0.7)
    population_allocation = {
        "resource_gathering": math.floor(working * 0.4),
        "construction": math.floor(working * 0.2),
        "military": math.floor(working * (snapshot.military_focus or 0.3)),
        "research": math.floor(working * 0.1),
        "administration": math.floor(working * 0.05),
    }

    needs = {"food": 0, "wood": 0, "stone": 0, "labor": 0}
    for cost in (plan.territory_expansion.resource_cost, plan.infrastructure_projects.resource_cost):
        for resource, amount in cost.items():
            needs[resource] = needs.get(resource, 0) + amount
    needs["food"] += plan.population_growth.food_requirements

    available = {
        "food": snapshot.resource(ResourceKind.FOOD),
        "wood": snapshot.resource(ResourceKind.WOOD),
        "stone": snapshot.resource(ResourceKind.STONE),
        "labor": float(population_allocation["construction"]),
    }
    distribution = {
        resource: ResourceDistribution(
            needed=needed,
            available=available.get(resource, 0.0),
            allocated=min(needed, available.get(resource, 0.0)),
            shortage=max(0.0, needed - available.get(resource, 0.0)),
        )
        for resource, needed in needs.items()
    }
    shortages = sorted(
        (r for r, d in distribution.items() if d.shortage > 0),
        key=lambda r: distribution[r].shortage,
        reverse=True,
    )
    return GrowthAllocation(
        population_allocation=population_allocation,
        resource_distribution=distribution,
        priority_order=shortages,
    )


def set_growth_milestones(snapshot: ColonySnapshot, plan: GrowthPlan) -> list[GrowthMilestone]:
    """Milestones ordered by priority, then by expected completion."""
    tick = snapshot.total_ticks
    milestones: list[GrowthMilestone] = []

    population = plan.population_growth
    if population.target_population > snapshot.population:
        milestones.append(
            GrowthMilestone(
                type=GrowthFocus.POPULATION,
                target=population.target_population,
                current=snapshot.population,
                estimated_completion=tick + population.timeline,
                priority=MilestonePriority.HIGH,
            )
        )

    territory = plan.territory_expansion
    if territory.target_size > snapshot.territory_size:
        milestones.append(
            GrowthMilestone(
                type=GrowthFocus.TERRITORY,
                target=territory.target_size,
                current=snapshot.territory_size,
                estimated_completion=tick + territory.timeline,
                priority=MilestonePriority.MEDIUM,
            )
        )

    military = plan.military_development
    current_military = math.floor(snapshot.population * (snapshot.military_focus or 0.3))
    if military.target_military_size > current_military:
        milestones.append(
            GrowthMilestone(
                type=GrowthFocus.MILITARY,
                target=military.target_military_size,
                current=current_military,
                estimated_completion=tick + military.timeline,
                priority=(
                    MilestonePriority.HIGH
                    if snapshot.threat_level > 0.5
                    else MilestonePriority.MEDIUM
                ),
            )
        )

    infrastructure = plan.infrastructure_projects
    if infrastructure.total_projects > 0:
        milestones.append(
            GrowthMilestone(
                type=GrowthFocus.INFRASTRUCTURE,
                target=infrastructure.total_projects,
                current=0,
                estimated_completion=tick + infrastructure.timeline,
                priority=MilestonePriority.MEDIUM,
            )
        )

    technology = plan.technology_research
    if technology.research_projects:
        milestones.append(
            GrowthMilestone(
                type=GrowthFocus.TECHNOLOGY,
                target=len(technology.research_projects),
                current=0,
                estimated_completion=tick + technology.timeline,
                priority=MilestonePriority.LOW,
            )
        )

    milestones.sort(key=lambda m: (-MILESTONE_RANK[m.priority], m.estimated_completion))
    return milestones


def _reasoning(snapshot: ColonySnapshot, strategy: GrowthStrategy) -> list[str]:
    reasoning = [
        f"Colony is in {strategy.development_phase.value} development phase",
        f"Primary growth focus: {strategy.primary_focus.value}",
        f"Secondary growth focus: {strategy.secondary_focus.value}",
        f"{snapshot.personality.value} personality influences growth priorities",
    ]

    threat = snapshot.threat_level
    if threat > 0.5:
        reasoning.append(
            f"High threat level ({threat:.2f}) prioritizes military and defensive growth"
        )
    elif threat < 0.3:
        reasoning.append(
            f"Low threat level ({threat:.2f}) allows focus on expansion and development"
        )

    shortages = [
        resource
        for resource, data in strategy.allocation.resource_distribution.items()
        if data.shortage > 0
    ]
    if shortages:
        reasoning.append(f"Resource shortages identified: {', '.join(shortages)}")

    if snapshot.population < 50:
        reasoning.append("Small population requires focus on growth and basic infrastructure")
    elif snapshot.population > 100:
        reasoning.append("Large population enables diverse development strategies")

    if snapshot.territory_size < 5:
        reasoning.append("Limited territory constrains expansion options")
    elif snapshot.territory_size > 10:
        reasoning.append("Large territory provides expansion opportunities but requires management")

    if strategy.milestones:
        nearest = strategy.milestones[0]
        reasoning.append(
            f"Next milestone: {nearest.type.value} target in "
            f"{nearest.estimated_completion - snapshot.total_ticks} ticks"
        )
    return reasoning


def evaluate_growth_strategy(snapshot: ColonySnapshot) -> GrowthStrategy:
    """
    Decide where the colony should invest its growth.

    Args:
        snapshot: Read-only view of the colony

    Returns:
        Phase, weighted priorities, primary and secondary focus, per-area
        plans, allocation and milestones
    """
    phase = determine_development_phase(snapshot)
    priorities = calculate_growth_priorities(snapshot, phase)
    ranked = sorted(priorities, key=lambda focus: priorities[focus], reverse=True)
    plan = create_growth_plan(snapshot, priorities)

    strategy = GrowthStrategy(
        development_phase=phase,
        priorities=priorities,
        primary_focus=ranked[0],
        secondary_focus=ranked[1],
        plan=plan,
        allocation=plan_resource_allocation(snapshot, plan),
        milestones=set_growth_milestones(snapshot, plan),
    )
    strategy.reasoning = _reasoning(snapshot, strategy)
    return strategy


def evaluate_growth_effectiveness(
    snapshot: ColonySnapshot, strategy: GrowthStrategy
) -> GrowthEvaluation:
    """Score a growth strategy and list its bottlenecks and opportunities."""
    distribution = strategy.allocation.resource_distribution
    if distribution:
        availability = sum(d.allocated / (d.needed or 1) for d in distribution.values()) / len(
            distribution
        )
    else:
        availability = 1.0

    if strategy.milestones:
        average_timeline = sum(
            m.estimated_completion - snapshot.total_ticks for m in strategy.milestones
        ) / len(strategy.milestones)
    else:
        average_timeline = 10.0
    feasibility = max(0.2, min(1.0, 20 / average_timeline)) if average_timeline > 0 else 1.0

    weights = list(strategy.priorities.values()) or [1.0]
    balance = max(0.3, 1.0 - (max(weights) - min(weights)) / 2)

    military_priority = (
        1.0 if GrowthFocus.MILITARY in (strategy.primary_focus, strategy.secondary_focus) else 0.5
    )
    if snapshot.threat_level > 0.5:
        threat_fit = military_priority
    else:
        threat_fit = 1.0 - military_priority * 0.5

    factors = {
        "resource_availability": min(1.0, availability),
        "timeline_feasibility": feasibility,
        "balance": balance,
        "threat_appropriateness": threat_fit,
    }
    evaluation = GrowthEvaluation(
        overall_score=(
            factors["resource_availability"] * 0.3
            + factors["timeline_feasibility"] * 0.25
            + factors["balance"] * 0.2
            + factors["threat_appropriateness"] * 0.25
        ),
        factors=factors,
    )

    if factors["resource_availability"] < 0.6:
        evaluation.bottlenecks.append("Insufficient resources for planned growth")
    if factors["timeline_feasibility"] < 0.5:
        evaluation.bottlenecks.append("Overly ambitious timeline for growth targets")
    if snapshot.population > snapshot.max_population * 0.9:
        evaluation.bottlenecks.append("Population approaching housing capacity")

    if snapshot.threat_level < 0.3 and strategy.primary_focus != GrowthFocus.TERRITORY:
        evaluation.opportunities.append("Low threat environment suitable for territorial expansion")
    if snapshot.food > 300 and strategy.primary_focus != GrowthFocus.POPULATION:
        evaluation.opportunities.append("Abundant food reserves enable rapid population growth")
    if factors["resource_availability"] > 0.8:
        evaluation.opportunities.append("Strong resource position enables accelerated development")

    return evaluation
