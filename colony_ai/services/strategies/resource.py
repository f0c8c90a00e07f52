"""
Resource gathering strategy.

Scores each resource by current need, personality preference and colony
efficiency, then splits the working population across resources in
proportion to those priorities.
"""

from __future__ import annotations

import math

from colony_ai.models.colony import ColonySnapshot, Personality, ResourceKind
from colony_ai.models.position import Position
from colony_ai.models.strategy import (
    ColonyAction,
    GatheringAction,
    GatheringOpportunity,
    ResourceStatus,
    ResourceStrategy,
    StorageLevel,
)

# =============================================================================
# Constants
# =============================================================================

WORKFORCE_SHARE = 0.6
"""Share of the population that works as gatherers."""

PERSONALITY_RESOURCE_MODIFIERS: dict[Personality, dict[ResourceKind, float]] = {
    Personality.AGGRESSIVE: {
        ResourceKind.FOOD: 1.2,
        ResourceKind.WOOD: 0.8,
        ResourceKind.STONE: 0.9,
        ResourceKind.MINERALS: 1.4,
        ResourceKind.WATER: 1.0,
    },
    Personality.DEFENSIVE: {
        ResourceKind.FOOD: 1.1,
        ResourceKind.WOOD: 1.3,
        ResourceKind.STONE: 1.4,
        ResourceKind.MINERALS: 0.8,
        ResourceKind.WATER: 1.0,
    },
    Personality.EXPANSIONIST: {
        ResourceKind.FOOD: 1.3,
        ResourceKind.WOOD: 1.1,
        ResourceKind.STONE: 0.8,
        ResourceKind.MINERALS: 0.9,
        ResourceKind.WATER: 1.2,
    },
    Personality.BUILDER: {
        ResourceKind.FOOD: 1.0,
        ResourceKind.WOOD: 1.4,
        ResourceKind.STONE: 1.3,
        ResourceKind.MINERALS: 0.9,
        ResourceKind.WATER: 1.1,
    },
    Personality.MILITANT: {
        ResourceKind.FOOD: 1.2,
        ResourceKind.WOOD: 0.8,
        ResourceKind.STONE: 1.1,
        ResourceKind.MINERALS: 1.4,
        ResourceKind.WATER: 0.9,
    },
    Personality.OPPORTUNIST: {kind: 1.0 for kind in ResourceKind},
}

# (efficiency, cost, yield) per gathering trip
GATHERING_ACTIONS: dict[ResourceKind, tuple[float, int, int]] = {
    ResourceKind.FOOD: (1.0, 10, 30),
    ResourceKind.WOOD: (0.8, 15, 25),
    ResourceKind.STONE: (0.6, 20, 20),
    ResourceKind.MINERALS: (0.4, 25, 15),
    ResourceKind.WATER: (0.9, 12, 28),
}


# =============================================================================
# Needs and Priorities
# =============================================================================


def analyze_resource_needs(snapshot: ColonySnapshot) -> dict[ResourceKind, float]:
    """How badly the colony needs each resource right now (roughly 0.4-1.5)."""
    food = snapshot.resource(ResourceKind.FOOD)
    wood = snapshot.resource(ResourceKind.WOOD)
    stone = snapshot.resource(ResourceKind.STONE)
    minerals = snapshot.resource(ResourceKind.MINERALS)
    water = snapshot.resource(ResourceKind.WATER)

    needs: dict[ResourceKind, float] = {}

    if food < 30:
        needs[ResourceKind.FOOD] = 1.5
    elif food < 100:
        needs[ResourceKind.FOOD] = 1.2
    elif food < 200:
        needs[ResourceKind.FOOD] = 1.0
    else:
        needs[ResourceKind.FOOD] = 0.7

    if wood < 50:
        needs[ResourceKind.WOOD] = 1.3
    elif wood < 150:
        needs[ResourceKind.WOOD] = 1.0
    else:
        needs[ResourceKind.WOOD] = 0.6

    # Stone builds defenses
    if snapshot.threat_level > 0.5 and stone < 100:
        needs[ResourceKind.STONE] = 1.4
    elif stone < 80:
        needs[ResourceKind.STONE] = 1.0
    else:
        needs[ResourceKind.STONE] = 0.5

    # Minerals equip soldiers
    if snapshot.military_focus > 0.7 and minerals < 50:
        needs[ResourceKind.MINERALS] = 1.3
    elif minerals < 30:
        needs[ResourceKind.MINERALS] = 0.8
    else:
        needs[ResourceKind.MINERALS] = 0.4

    if snapshot.population > 50 and water < 100:
        needs[ResourceKind.WATER] = 1.2
    elif water < 50:
        needs[ResourceKind.WATER] = 1.0
    else:
        needs[ResourceKind.WATER] = 0.6

    return needs


def calculate_priorities(
    needs: dict[ResourceKind, float],
    personality: Personality,
    resource_efficiency: float = 1.0,
) -> dict[ResourceKind, float]:
    """priority = need x personality modifier x colony efficiency."""
    modifiers = PERSONALITY_RESOURCE_MODIFIERS.get(
        personality, PERSONALITY_RESOURCE_MODIFIERS[Personality.OPPORTUNIST]
    )
    return {
        kind: needs.get(kind, 0.5) * modifiers.get(kind, 1.0) * resource_efficiency
        for kind in ResourceKind
    }


def allocate_workers(
    population: int, priorities: dict[ResourceKind, float]
) -> dict[ResourceKind, int]:
    """
    Split the workforce across resources in proportion to priority.

    Every resource gets at least one worker; leftover workers go to the
    highest-priority resource.
    """
    total_workers = math.floor(population * WORKFORCE_SHARE)
    total_priority = sum(priorities.values()) or 1.0

    allocation: dict[ResourceKind, int] = {}
    for kind, priority in priorities.items():
        allocation[kind] = max(1, math.floor(priority / total_priority * total_workers))

    remaining = total_workers - sum(allocation.values())
    if remaining > 0:
        top = max(priorities, key=lambda kind: priorities[kind])
        allocation[top] += remaining
    return allocation


def _reasoning(
    snapshot: ColonySnapshot, needs: dict[ResourceKind, float]
) -> list[str]:
    reasoning: list[str] = []
    for kind, need in needs.items():
        if need > 1.3:
            reasoning.append(f"Critical {kind.value} shortage detected (need: {need:.2f})")
        elif need > 1.1:
            reasoning.append(f"High {kind.value} demand (need: {need:.2f})")

    reasoning.append(f"Personality ({snapshot.personality.value}) influences resource priorities")
    if snapshot.threat_level > 0.5:
        reasoning.append(
            f"High threat level ({snapshot.threat_level:.2f}) prioritizes defensive resources"
        )
    if snapshot.population > 80:
        reasoning.append("Large population requires increased food and water production")
    return reasoning


def evaluate_resource_strategy(snapshot: ColonySnapshot) -> ResourceStrategy:
    """
    Decide which resources to gather and how many workers go to each.

    Args:
        snapshot: Read-only view of the colony

    Returns:
        Primary and secondary resource, per-resource priorities and the
        worker allocation
    """
    needs = analyze_resource_needs(snapshot)
    priorities = calculate_priorities(needs, snapshot.personality, snapshot.resource_efficiency)
    ranked = sorted(priorities, key=lambda kind: priorities[kind], reverse=True)

    return ResourceStrategy(
        primary_resource=ranked[0],
        secondary_resource=ranked[1],
        needs=needs,
        priorities=priorities,
        allocation=allocate_workers(snapshot.population, priorities),
        reasoning=_reasoning(snapshot, needs),
    )


# =============================================================================
# Gathering Details
# =============================================================================


def get_gathering_action(
    kind: ResourceKind, snapshot: ColonySnapshot, urgency: float = 1.0
) -> GatheringAction:
    """A gathering order with yield and cost scaled by colony efficiency."""
    efficiency, cost, base_yield = GATHERING_ACTIONS[kind]
    colony_efficiency = snapshot.resource_efficiency
    return GatheringAction(
        name=ColonyAction.gather(kind),
        resource=kind,
        efficiency=efficiency,
        cost=math.ceil(cost / colony_efficiency),
        yield_amount=math.floor(base_yield * colony_efficiency * urgency),
        urgency=urgency,
    )


def evaluate_gathering_opportunity(
    kind: ResourceKind,
    location: Position,
    snapshot: ColonySnapshot,
    *,
    abundance: float = 0.5,
    threat_level: float = 0.0,
    competition: float = 0.0,
) -> GatheringOpportunity:
    """Score a gathering site by distance, abundance, safety and competition."""
    factors = {
        "distance": max(0.0, 1 - snapshot.base.distance_to(location) / 20),
        "abundance": abundance,
        "safety": 1 - threat_level,
        "competition": 1 - competition,
    }
    score = (
        factors["distance"] * 0.3
        + factors["abundance"] * 0.4
        + factors["safety"] * 0.2
        + factors["competition"] * 0.1
    )
    return GatheringOpportunity(resource=kind, location=location, score=score, factors=factors)


def storage_level(current: float, capacity: float) -> StorageLevel:
    percentage = current / capacity * 100 if capacity > 0 else 100.0
    if percentage < 20:
        return StorageLevel.CRITICAL
    if percentage < 40:
        return StorageLevel.LOW
    if percentage < 70:
        return StorageLevel.MEDIUM
    if percentage < 90:
        return StorageLevel.HIGH
    return StorageLevel.FULL


def get_resource_status(snapshot: ColonySnapshot) -> dict[ResourceKind, ResourceStatus]:
    """Fill level of every resource store."""
    status: dict[ResourceKind, ResourceStatus] = {}
    for kind in ResourceKind:
        current = snapshot.resource(kind)
        capacity = snapshot.resource_capacity.get(kind, 1000.0)
        status[kind] = ResourceStatus(
            current=current,
            capacity=capacity,
            percentage=current / capacity * 100 if capacity > 0 else 100.0,
            status=storage_level(current, capacity),
        )
    return status
