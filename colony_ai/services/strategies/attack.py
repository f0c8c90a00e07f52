"""
Offensive planning strategy.

Scores every visible target, picks one of the best few at random so the
colony is not predictable, and builds a complete attack plan for it:
method, force composition, phases, contingencies and timeline.
"""

from __future__ import annotations

import math
import random

from colony_ai.models.colony import ColonySnapshot, Personality, TargetCandidate
from colony_ai.models.strategy import (
    AttackMethod,
    AttackPhase,
    AttackPlan,
    AttackStrategy,
    AttackSuccessEvaluation,
    AttackTimeline,
    Contingency,
    ForceComposition,
    TargetViability,
    TimelineMilestone,
)

# =============================================================================
# Constants
# =============================================================================

VIABILITY_THRESHOLD = 0.5
TOP_TARGETS = 3
DEPLOYABLE_SHARE = 0.8
"""Share of the military committed to an attack."""

# assault, support, siege, scout, reserve
FORCE_RATIOS: dict[AttackMethod, tuple[float, float, float, float, float]] = {
    AttackMethod.BLITZ: (0.6, 0.2, 0.0, 0.1, 0.1),
    AttackMethod.SIEGE: (0.3, 0.2, 0.4, 0.0, 0.1),
    AttackMethod.RAID: (0.4, 0.2, 0.0, 0.3, 0.1),
    AttackMethod.HARASSMENT: (0.3, 0.2, 0.0, 0.4, 0.1),
    AttackMethod.CONQUEST: (0.4, 0.3, 0.1, 0.1, 0.1),
}

PHASES: dict[AttackMethod, list[tuple[str, int, str]]] = {
    AttackMethod.BLITZ: [
        ("reconnaissance", 1, "Scout enemy positions"),
        ("approach", 1, "Move forces into position"),
        ("assault", 2, "Overwhelming attack on all fronts"),
        ("consolidation", 1, "Secure captured territory"),
    ],
    AttackMethod.SIEGE: [
        ("preparation", 3, "Build siege equipment and gather supplies"),
        ("encirclement", 2, "Surround enemy colony"),
        ("siege", 5, "Maintain siege pressure"),
        ("assault", 2, "Final assault on weakened defenses"),
        ("occupation", 2, "Occupy and secure territory"),
    ],
    AttackMethod.RAID: [
        ("infiltration", 1, "Sneak forces close to target"),
        ("strike", 1, "Quick hit on key targets"),
        ("extraction", 1, "Withdraw with captured resources"),
    ],
    AttackMethod.HARASSMENT: [
        ("positioning", 2, "Position forces around enemy territory"),
        ("harassment", 4, "Continuous small attacks and raids"),
        ("exploitation", 2, "Exploit weakened enemy state"),
    ],
    AttackMethod.CONQUEST: [
        ("buildup", 2, "Gather forces and supplies"),
        ("advance", 2, "Advance on enemy territory"),
        ("battle", 3, "Main battle for control"),
        ("cleanup", 2, "Eliminate remaining resistance"),
        ("integration", 3, "Integrate captured territory"),
    ],
}

PREPARATION_TIME: dict[AttackMethod, int] = {
    AttackMethod.BLITZ: 2,
    AttackMethod.SIEGE: 5,
    AttackMethod.RAID: 1,
    AttackMethod.HARASSMENT: 3,
    AttackMethod.CONQUEST: 4,
}

CONTINGENCIES = [
    ("Heavy casualties (>30%)", "Tactical withdrawal"),
    ("Enemy reinforcements", "Accelerate timeline or retreat"),
    ("Supply line disruption", "Switch to raid tactics"),
    ("Unexpected strong defenses", "Adapt to siege tactics"),
]


def military_strength(snapshot: ColonySnapshot) -> float:
    """Our effective fighting population."""
    return snapshot.population * (snapshot.military_focus or 0.3)


def strength_ratio(snapshot: ColonySnapshot, target: TargetCandidate) -> float:
    return military_strength(snapshot) / (target.military_power + 1)


# =============================================================================
# Target Assessment
# =============================================================================


def personality_attack_modifier(personality: Personality, target: TargetCandidate) -> float:
    if personality == Personality.AGGRESSIVE:
        return 1.3
    if personality == Personality.MILITANT:
        return 1.4 if target.military_strength > 0.5 else 1.1
    if personality == Personality.OPPORTUNIST:
        return 1.3 if target.defense_strength < 0.4 else 0.8
    if personality == Personality.EXPANSIONIST:
        return 1.2 if target.distance < 20 else 0.9
    if personality == Personality.DEFENSIVE:
        return 0.7
    if personality == Personality.BUILDER:
        return 0.8
    return 1.0


def assess_target_viability(snapshot: ColonySnapshot, target: TargetCandidate) -> TargetViability:
    """Weighted score of distance, strength ratio, loot and enemy defenses."""
    ratio = strength_ratio(snapshot, target)
    if 5 < target.distance < 30:
        distance_factor = max(0.0, 1 - target.distance / 30)
    else:
        distance_factor = 0.2

    factors = {
        "distance": distance_factor,
        "strength_ratio": min(2.0, ratio),
        "resource_potential": min(1.0, target.estimated_resources / 500),
        "defense_weakness": max(0.1, 1 - target.defense_strength),
    }
    score = (
        factors["distance"] * 0.2
        + factors["strength_ratio"] * 0.4
        + factors["resource_potential"] * 0.2
        + factors["defense_weakness"] * 0.2
    ) * personality_attack_modifier(snapshot.personality, target)

    viability = TargetViability(viable=score > VIABILITY_THRESHOLD, score=score, factors=factors)

    if ratio < 1.2:
        viability.risks.append("Insufficient military advantage")
    if target.distance > 20:
        viability.risks.append("Long supply lines")
    if target.defense_strength > 0.6:
        viability.risks.append("Strong enemy defenses")

    if target.estimated_resources > 300:
        viability.benefits.append("Rich resource target")
    if target.military_strength < 0.3:
        viability.benefits.append("Weak military opposition")
    if target.distance < 15:
        viability.benefits.append("Close proximity for quick strikes")

    return viability


def select_target(
    scored: list[tuple[TargetCandidate, TargetViability]], rng: random.Random
) -> tuple[TargetCandidate, TargetViability] | None:
    """Pick uniformly among the best few viable targets."""
    if not scored:
        return None
    ranked = sorted(scored, key=lambda pair: pair[1].score, reverse=True)
    return rng.choice(ranked[:TOP_TARGETS])


def determine_attack_method(snapshot: ColonySnapshot, target: TargetCandidate) -> AttackMethod:
    ratio = strength_ratio(snapshot, target)
    if target.defense_strength > 0.7:
        return AttackMethod.SIEGE
    if ratio > 2.0 and target.distance < 15:
        return AttackMethod.BLITZ
    if ratio < 1.5:
        return AttackMethod.HARASSMENT
    if target.distance > 20:
        return AttackMethod.RAID
    return AttackMethod.CONQUEST


# =============================================================================
# Planning
# =============================================================================


def plan_force_composition(snapshot: ColonySnapshot, method: AttackMethod) -> ForceComposition:
    available = math.floor(military_strength(snapshot) * DEPLOYABLE_SHARE)
    assault, support, siege, scout, reserve = FORCE_RATIOS[method]
    return ForceComposition(
        assault_units=math.floor(available * assault),
        support_units=math.floor(available * support),
        siege_units=math.floor(available * siege),
        scout_units=math.floor(available * scout),
        reserve_units=math.floor(available * reserve),
    )


def create_attack_plan(target: TargetCandidate, method: AttackMethod) -> AttackPlan:
    """Phases, objectives, abort conditions and supplies for an attack."""
    phases = [
        AttackPhase(name=name, duration=duration, description=description)
        for name, duration, description in PHASES[method]
    ]

    if method == AttackMethod.RAID:
        objectives = [
            "Capture valuable resources",
            "Disrupt enemy operations",
            "Avoid prolonged engagement",
            "Return safely to base",
        ]
    else:
        objectives = [
            "Neutralize enemy military forces",
            "Capture key resource areas",
            "Minimize own casualties",
            "Secure strategic positions",
        ]

    plan = AttackPlan(
        phases=phases,
        objectives=objectives,
        contingencies=[Contingency(trigger=t, response=r) for t, r in CONTINGENCIES],
        success_criteria={
            "primary": "Capture 50+ resources" if method == AttackMethod.RAID else "Defeat enemy colony",
            "secondary": "Maintain <25% casualty rate",
            "tertiary": "Complete within planned timeline",
        },
    )
    plan.supply_requirements = {
        "food": plan.total_duration * 20,
        "weapons": math.floor(target.population * 0.5),
        "siege_equipment": 5 if method == AttackMethod.SIEGE else 0,
        "medical_supplies": 10,
    }
    return plan


def plan_attack_timeline(
    target: TargetCandidate, method: AttackMethod, plan: AttackPlan
) -> AttackTimeline:
    timeline = AttackTimeline(
        preparation_time=PREPARATION_TIME[method],
        travel_time=math.ceil(target.distance / 5),
        attack_duration=plan.total_duration,
    )
    timeline.total_time = timeline.preparation_time + timeline.travel_time + timeline.attack_duration

    current = 0
    timeline.milestones.append(
        TimelineMilestone(time=current, event="Attack planning initiated", phase="planning")
    )
    current += timeline.preparation_time
    timeline.milestones.append(
        TimelineMilestone(time=current, event="Forces prepared and ready to move", phase="preparation")
    )
    current += timeline.travel_time
    timeline.milestones.append(
        TimelineMilestone(time=current, event="Forces arrive at target location", phase="deployment")
    )
    for phase in plan.phases:
        current += phase.duration
        timeline.milestones.append(
            TimelineMilestone(time=current, event=f"{phase.name} phase completed", phase=phase.name)
        )
    return timeline


def _reasoning(
    snapshot: ColonySnapshot,
    target: TargetCandidate,
    viability: TargetViability,
    method: AttackMethod,
    timeline: AttackTimeline,
) -> list[str]:
    reasoning = [
        f"Selected {target.name} as primary target",
        f"Target viability score: {viability.score:.2f}",
        f"Chose {method.value} attack based on target characteristics",
        f"Force ratio: {military_strength(snapshot) / max(target.military_power, 1):.2f}:1",
        f"Target distance: {target.distance:g} units "
        f"({'close' if target.distance < 15 else 'distant'})",
    ]
    if target.estimated_resources > 200:
        reasoning.append(
            f"High resource value target ({target.estimated_resources:g} total resources)"
        )
    if snapshot.personality == Personality.AGGRESSIVE:
        reasoning.append("Aggressive personality favors offensive action")
    elif snapshot.personality == Personality.OPPORTUNIST:
        reasoning.append("Opportunistic personality seeks advantageous targets")
    if viability.risks:
        reasoning.append(f"Identified risks: {', '.join(viability.risks)}")
    reasoning.append(f"Estimated campaign duration: {timeline.total_time} time units")
    return reasoning


def evaluate_attack_strategy(
    snapshot: ColonySnapshot,
    targets: list[TargetCandidate],
    rng: random.Random,
) -> AttackStrategy:
    """
    Build an attack plan against the best available target.

    Args:
        snapshot: Read-only view of the colony
        targets: Visible target candidates
        rng: Random source used to choose among the top targets

    Returns:
        A complete strategy, or one with no target and an explanation
    """
    scored = [(target, assess_target_viability(snapshot, target)) for target in targets]
    chosen = select_target([pair for pair in scored if pair[1].viable], rng)
    if chosen is None:
        return AttackStrategy(reasoning=["No suitable targets identified for attack"])

    target, viability = chosen
    method = determine_attack_method(snapshot, target)
    plan = create_attack_plan(target, method)
    timeline = plan_attack_timeline(target, method, plan)

    return AttackStrategy(
        target=target,
        viability=viability,
        method=method,
        force_composition=plan_force_composition(snapshot, method),
        plan=plan,
        timeline=timeline,
        reasoning=_reasoning(snapshot, target, viability, method, timeline),
    )


def evaluate_attack_success(
    snapshot: ColonySnapshot, strategy: AttackStrategy
) -> AttackSuccessEvaluation:
    """Estimated probability that a planned attack succeeds."""
    if strategy.target is None or strategy.plan is None:
        return AttackSuccessEvaluation(critical_risks=["No target selected"])

    target = strategy.target
    food_needed = strategy.plan.supply_requirements.get("food") or 1
    factors = {
        "military_strength": min(1.0, strength_ratio(snapshot, target)),
        "resource_sustainability": min(1.0, snapshot.food / food_needed),
        "distance": max(0.3, 1 - target.distance / 40),
        "defense_penetration": max(0.2, 1 - target.defense_strength),
    }
    evaluation = AttackSuccessEvaluation(
        success_probability=(
            factors["military_strength"] * 0.4
            + factors["resource_sustainability"] * 0.2
            + factors["distance"] * 0.2
            + factors["defense_penetration"] * 0.2
        ),
        factors=factors,
    )

    if factors["military_strength"] < 0.8:
        evaluation.critical_risks.append("Insufficient military advantage")
    if factors["resource_sustainability"] < 0.5:
        evaluation.critical_risks.append("Inadequate supply reserves")
    if target.distance > 25:
        evaluation.critical_risks.append("Extended supply lines vulnerable to disruption")

    if strength_ratio(snapshot, target) > 1.5:
        evaluation.success_factors.append("Overwhelming military superiority")
    if target.defense_strength < 0.3:
        evaluation.success_factors.append("Weak enemy defenses")
    if target.distance < 15:
        evaluation.success_factors.append("Short supply lines and quick reinforcement")

    return evaluation
