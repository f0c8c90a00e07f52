"""
Counter-Strategy Selector for colony-ai.

Picks a packaged counter-strategy against one classified player: analyzes
the player's strengths and weaknesses, merges candidates from several
sources, scores them, samples among the best few and turns the winner
into an implementation plan. Applied counters go into a per-colony ledger
and are scored later, which feeds back into future selections.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, deque
from copy import deepcopy
from dataclasses import dataclass, field

from colony_ai.clock import Clock, utc_now
from colony_ai.config import CounterConfig
from colony_ai.models.colony import ColonySnapshot, ColonyUpdate
from colony_ai.models.counter import (
    BehaviorModifications,
    CounterAnalysis,
    CounterApplication,
    CounterSelection,
    CounterStrategyOption,
    CounterStrategyType,
    ImplementationPlan,
    Outcome,
    PlayerAnalysis,
    TimelinePhase,
)
from colony_ai.models.player import BehaviorSummary, PatternType, Playstyle
from colony_ai.models.trigger import AttackType, CooldownStatus
from colony_ai.services.locks import KeyedLocks
from colony_ai.services.triggers import TriggerEvaluator

logger = logging.getLogger(__name__)

T = CounterStrategyType

# =============================================================================
# Constants
# =============================================================================

# (type, approach, description, tactical focus)
_Candidate = tuple[CounterStrategyType, str, str, tuple[str, ...]]

PRIMARY_COUNTERS: dict[Playstyle, list[_Candidate]] = {
    Playstyle.AGGRESSIVE_MILITARY: [
        (
            T.DEFENSIVE_ATTRITION,
            "fortify_and_counter",
            "Build strong defenses and counter-attack when aggressor overextends",
            ("defensive_positioning", "resource_conservation", "opportunistic_strikes"),
        ),
        (
            T.ECONOMIC_WARFARE,
            "resource_disruption",
            "Target economic infrastructure to starve military production",
            ("raid_economy", "block_resources", "technological_advantage"),
        ),
        (
            T.HIT_AND_RUN,
            "mobility_harassment",
            "Use mobility to harass and avoid direct confrontation",
            ("fast_units", "guerrilla_tactics", "retreat_routes"),
        ),
    ],
    Playstyle.DEFENSIVE_TURTLE: [
        (
            T.TERRITORIAL_DENIAL,
            "expansion_blockade",
            "Control key territories to force defensive player to react",
            ("strategic_positions", "resource_control", "pressure_application"),
        ),
        (
            T.ECONOMIC_WARFARE,
            "resource_competition",
            "Compete for resources and force economic decisions",
            ("resource_domination", "trade_disruption", "economic_pressure"),
        ),
        (
            T.OVERWHELMING_FORCE,
            "concentrated_assault",
            "Build superior force and break defensive positions",
            ("force_concentration", "siege_capabilities", "breakthrough_tactics"),
        ),
    ],
    Playstyle.ECONOMIC_FOCUSED: [
        (
            T.DIRECT_COUNTER,
            "military_pressure",
            "Apply early military pressure before economic advantage grows",
            ("early_aggression", "economic_disruption", "time_pressure"),
        ),
        (
            T.HIT_AND_RUN,
            "economic_harassment",
            "Disrupt economic operations with quick strikes",
            ("target_workers", "resource_raids", "infrastructure_damage"),
        ),
        (
            T.TECHNOLOGY_RACE,
            "competitive_advancement",
            "Compete in technological development to match economic growth",
            ("research_focus", "technological_advantages", "efficiency_improvements"),
        ),
    ],
    Playstyle.RAPID_EXPANDER: [
        (
            T.FLANKING_MANEUVER,
            "exploit_overextension",
            "Target weak points in expanded territory",
            ("weak_settlements", "supply_line_attacks", "isolated_targets"),
        ),
        (
            T.HIT_AND_RUN,
            "harassment_campaign",
            "Constantly harass expanded positions to force defensive concentration",
            ("mobile_raids", "multiple_targets", "coordination_disruption"),
        ),
        (
            T.TERRITORIAL_DENIAL,
            "key_position_control",
            "Control strategic positions to limit further expansion",
            ("chokepoints", "resource_denial", "expansion_blocking"),
        ),
    ],
    Playstyle.BALANCED_STRATEGIC: [
        (
            T.ADAPTIVE_CHAOS,
            "unpredictable_tactics",
            "Use unpredictable mixed tactics to prevent adaptation",
            ("strategy_switching", "misdirection", "tactical_surprise"),
        ),
        (
            T.MIRROR_STRATEGY,
            "competitive_matching",
            "Match balanced approach with superior execution",
            ("efficiency_superiority", "tactical_refinement", "strategic_patience"),
        ),
        (
            T.OVERWHELMING_FORCE,
            "decisive_superiority",
            "Build decisive advantage in one area to break balance",
            ("specialization_advantage", "concentrated_strength", "decisive_action"),
        ),
    ],
}

PATTERN_COUNTERS: dict[PatternType, list[_Candidate]] = {
    PatternType.MILITARY_PREPARATION: [
        (
            T.PSYCHOLOGICAL_PRESSURE,
            "force_premature_action",
            "Create pressure to force early, unprepared military action",
            ("threat_display", "false_targets", "time_pressure"),
        ),
        (
            T.DEFENSIVE_ATTRITION,
            "preparation_counter",
            "Prepare defenses to make military buildup ineffective",
            ("defensive_superiority", "fortification", "counter_preparation"),
        ),
    ],
    PatternType.RESOURCE_HOARDING: [
        (
            T.DIRECT_COUNTER,
            "immediate_pressure",
            "Strike before hoarded resources can be utilized",
            ("time_pressure", "immediate_action", "prevent_utilization"),
        ),
        (
            T.ECONOMIC_WARFARE,
            "resource_disruption",
            "Disrupt resource collection to prevent further hoarding",
            ("resource_raids", "worker_harassment", "supply_disruption"),
        ),
    ],
    PatternType.EXPANSION_PRESSURE: [
        (
            T.TERRITORIAL_DENIAL,
            "expansion_blocking",
            "Block key expansion routes and territories",
            ("strategic_positioning", "route_control", "expansion_prevention"),
        ),
        (
            T.FLANKING_MANEUVER,
            "overextension_exploitation",
            "Target weak points created by rapid expansion",
            ("weak_settlements", "overextended_lines", "supply_vulnerabilities"),
        ),
    ],
    PatternType.HIT_AND_RUN_TACTICS: [
        (
            T.TERRITORIAL_DENIAL,
            "area_control",
            "Control key areas to limit hit-and-run effectiveness",
            ("area_denial", "movement_restriction", "defensive_networks"),
        ),
        (
            T.OVERWHELMING_FORCE,
            "decisive_engagement",
            "Force decisive engagements that favor concentrated force",
            ("force_concentration", "engagement_forcing", "mobility_counters"),
        ),
    ],
}

WEAKNESS_EXPLOITS: dict[str, list[_Candidate]] = {
    "resource_drain": [
        (
            T.ECONOMIC_WARFARE,
            "accelerate_drain",
            "Force continued resource expenditure to accelerate depletion",
            ("force_military_spending", "resource_competition", "economic_pressure"),
        ),
    ],
    "defensive_gaps": [
        (
            T.FLANKING_MANEUVER,
            "gap_exploitation",
            "Target and exploit identified defensive weaknesses",
            ("weak_point_attacks", "breakthrough_tactics", "defensive_penetration"),
        ),
    ],
    "overextension": [
        (
            T.HIT_AND_RUN,
            "multiple_target_harassment",
            "Attack multiple overextended positions simultaneously",
            ("simultaneous_attacks", "coordination_disruption", "force_dispersion"),
        ),
    ],
    "military_weakness": [
        (
            T.DIRECT_COUNTER,
            "military_superiority",
            "Exploit military weakness with direct military action",
            ("military_advantage", "force_application", "tactical_superiority"),
        ),
    ],
    "predictability": [
        (
            T.ADAPTIVE_CHAOS,
            "unpredictable_response",
            "Use unpredictable tactics against predictable behavior",
            ("strategy_variation", "tactical_surprise", "behavioral_disruption"),
        ),
    ],
}

PLAYSTYLE_TRAITS: dict[Playstyle, tuple[tuple[str, ...], tuple[str, ...]]] = {
    Playstyle.AGGRESSIVE_MILITARY: (
        ("strong_military", "quick_decisive_action", "pressure_tactics"),
        ("resource_drain", "defensive_gaps", "overextension"),
    ),
    Playstyle.DEFENSIVE_TURTLE: (
        ("strong_defense", "resource_accumulation", "patience"),
        ("slow_expansion", "predictability", "missed_opportunities"),
    ),
    Playstyle.ECONOMIC_FOCUSED: (
        ("resource_advantage", "long_term_thinking", "efficiency"),
        ("military_weakness", "slow_response", "vulnerable_economy"),
    ),
    Playstyle.RAPID_EXPANDER: (
        ("territory_control", "resource_access", "strategic_positioning"),
        ("thin_defenses", "resource_strain", "coordination_difficulties"),
    ),
    Playstyle.BALANCED_STRATEGIC: (
        ("adaptability", "well_rounded", "strategic_thinking"),
        ("lacks_specialization", "slower_development", "resource_division"),
    ),
}

# (predicted actions, exploitable gaps)
PATTERN_INSIGHTS: dict[PatternType, tuple[tuple[str, ...], tuple[str, ...]]] = {
    PatternType.MILITARY_PREPARATION: (
        ("imminent_attack", "territorial_expansion"),
        ("economic_focus_reduced", "diplomatic_neglect"),
    ),
    PatternType.RESOURCE_HOARDING: (
        ("major_expansion", "technology_upgrade"),
        ("current_weakness", "delayed_action"),
    ),
    PatternType.EXPANSION_PRESSURE: (
        ("continued_expansion", "resource_competition"),
        ("defensive_weakening", "overextension_risk"),
    ),
    PatternType.HIT_AND_RUN_TACTICS: (
        ("harassment_attacks", "evasive_maneuvers"),
        ("lack_of_commitment", "territory_abandonment"),
    ),
}

CHAOS_TACTICS = (
    "random_strategy_switching",
    "misdirection_campaigns",
    "false_buildup_patterns",
    "unexpected_alliances",
    "tactical_feints",
    "resource_cycling",
    "unit_composition_variation",
)

RISK_FACTORS: dict[CounterStrategyType, float] = {
    T.OVERWHELMING_FORCE: 0.8,
    T.DIRECT_COUNTER: 0.6,
    T.FLANKING_MANEUVER: 0.4,
    T.HIT_AND_RUN: 0.3,
    T.ECONOMIC_WARFARE: 0.3,
    T.DEFENSIVE_ATTRITION: 0.2,
    T.TERRITORIAL_DENIAL: 0.4,
    T.ADAPTIVE_CHAOS: 0.5,
    T.PSYCHOLOGICAL_PRESSURE: 0.3,
    T.TECHNOLOGY_RACE: 0.2,
    T.MIRROR_STRATEGY: 0.3,
}

RESOURCE_REQUIREMENTS: dict[CounterStrategyType, float] = {
    T.OVERWHELMING_FORCE: 0.8,
    T.TECHNOLOGY_RACE: 0.7,
    T.ECONOMIC_WARFARE: 0.6,
    T.TERRITORIAL_DENIAL: 0.6,
    T.DEFENSIVE_ATTRITION: 0.5,
    T.HIT_AND_RUN: 0.4,
    T.FLANKING_MANEUVER: 0.4,
    T.ADAPTIVE_CHAOS: 0.5,
    T.DIRECT_COUNTER: 0.6,
    T.PSYCHOLOGICAL_PRESSURE: 0.3,
    T.MIRROR_STRATEGY: 0.5,
}

# Offensive counters need the matching attack type off cooldown.
OFFENSIVE_ATTACK_TYPES: dict[CounterStrategyType, AttackType] = {
    T.HIT_AND_RUN: AttackType.RAID,
    T.FLANKING_MANEUVER: AttackType.SKIRMISH,
    T.DIRECT_COUNTER: AttackType.ASSAULT,
    T.OVERWHELMING_FORCE: AttackType.SIEGE,
}
COOLDOWN_FEASIBILITY_PENALTY = 0.5

# Stored resources at which a colony counts as fully funded.
FULLY_FUNDED_RESOURCES = 1000.0

IMPLEMENTATION_TEMPLATES: dict[CounterStrategyType, tuple[tuple[str, ...], dict[str, float]]] = {
    T.ECONOMIC_WARFARE: (
        ("identify_economic_targets", "prepare_raid_forces", "gather_economic_intelligence"),
        {"military": 0.4, "intelligence": 0.2, "mobility": 0.3, "defense": 0.1},
    ),
    T.DEFENSIVE_ATTRITION: (
        (
            "strengthen_defensive_positions",
            "prepare_counter_attack_forces",
            "establish_early_warning_systems",
        ),
        {"defense": 0.5, "military": 0.3, "intelligence": 0.1, "economy": 0.1},
    ),
    T.HIT_AND_RUN: (
        ("train_mobile_units", "identify_vulnerable_targets", "establish_retreat_routes"),
        {"mobility": 0.4, "military": 0.3, "intelligence": 0.2, "stealth": 0.1},
    ),
    T.TERRITORIAL_DENIAL: (
        ("identify_strategic_positions", "deploy_control_forces", "establish_forward_bases"),
        {"expansion": 0.4, "military": 0.3, "infrastructure": 0.2, "defense": 0.1},
    ),
    T.ADAPTIVE_CHAOS: (
        (
            "prepare_multiple_unit_types",
            "establish_flexible_command_structure",
            "develop_misdirection_plans",
        ),
        {"military": 0.3, "intelligence": 0.2, "flexibility": 0.3, "deception": 0.2},
    ),
}
DEFAULT_IMPLEMENTATION: tuple[tuple[str, ...], dict[str, float]] = (
    ("analyze_current_situation", "prepare_strategic_response", "monitor_player_reactions"),
    {"military": 0.4, "economy": 0.3, "intelligence": 0.2, "infrastructure": 0.1},
)

BEHAVIOR_MODIFICATIONS: dict[CounterStrategyType, BehaviorModifications] = {
    T.ECONOMIC_WARFARE: BehaviorModifications(
        aggression_level=0.3, economic_focus=-0.2, risk_tolerance=0.2
    ),
    T.DEFENSIVE_ATTRITION: BehaviorModifications(
        defensive_posture=0.4, aggression_level=-0.2, risk_tolerance=-0.3
    ),
    T.HIT_AND_RUN: BehaviorModifications(
        aggression_level=0.2, risk_tolerance=0.3, adaptation_rate=0.2
    ),
    T.TERRITORIAL_DENIAL: BehaviorModifications(
        expansion_drive=0.3, aggression_level=0.1, defensive_posture=0.2
    ),
    T.ADAPTIVE_CHAOS: BehaviorModifications(adaptation_rate=0.5, risk_tolerance=0.2),
}

TIMELINE: dict[str, TimelinePhase] = {
    "immediate": TimelinePhase(
        duration="0-5 minutes",
        actions=["begin_strategy_implementation", "initial_resource_allocation"],
    ),
    "short_term": TimelinePhase(
        duration="5-15 minutes",
        actions=["deploy_tactical_changes", "monitor_player_response"],
    ),
    "medium_term": TimelinePhase(
        duration="15-45 minutes",
        actions=["evaluate_strategy_effectiveness", "adjust_approach"],
    ),
    "long_term": TimelinePhase(
        duration="45+ minutes",
        actions=["assess_strategic_outcome", "plan_next_adaptation"],
    ),
}


# =============================================================================
# Candidate Generation
# =============================================================================


def _option(candidate: _Candidate) -> CounterStrategyOption:
    strategy_type, approach, description, focus = candidate
    return CounterStrategyOption(
        type=strategy_type,
        approach=approach,
        description=description,
        tactical_focus=list(focus),
    )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def adaptive_chaos_option() -> CounterStrategyOption:
    """Constantly shifting tactics, used against players who adapt well."""
    return CounterStrategyOption(
        type=T.ADAPTIVE_CHAOS,
        approach="unpredictable_adaptation",
        description="Use constantly changing tactics to prevent player adaptation",
        tactical_focus=list(CHAOS_TACTICS),
        unpredictability=0.9,
    )


def analyze_player(summary: BehaviorSummary) -> PlayerAnalysis:
    """Strengths, weaknesses and likely next moves implied by a behavior summary."""
    strengths, weaknesses = PLAYSTYLE_TRAITS.get(summary.playstyle, ((), ()))
    predicted: list[str] = []
    gaps: list[str] = []
    for pattern in summary.patterns:
        insight = PATTERN_INSIGHTS.get(pattern.type)
        if insight is not None:
            predicted.extend(insight[0])
            gaps.extend(insight[1])

    return PlayerAnalysis(
        primary_strategy=summary.playstyle,
        active_patterns=[p.type.value for p in summary.patterns],
        strengths=list(strengths),
        weaknesses=list(weaknesses),
        predicted_actions=predicted,
        exploitable_gaps=gaps,
        adaptation_level=summary.metrics.adaptation_resistance,
    )


def primary_counters(playstyle: Playstyle) -> list[CounterStrategyOption]:
    candidates = PRIMARY_COUNTERS.get(playstyle)
    if candidates is None:
        return [adaptive_chaos_option()]
    return [_option(c) for c in candidates]


def deduplicate(options: list[CounterStrategyOption]) -> list[CounterStrategyOption]:
    """
    Drop repeated (type, approach) candidates, keeping the first occurrence.

    A dropped duplicate that carries a historical effectiveness passes the
    better of the two values on to the kept option.
    """
    kept: dict[tuple[CounterStrategyType, str], CounterStrategyOption] = {}
    for option in options:
        existing = kept.get(option.key)
        if existing is None:
            kept[option.key] = option
            continue
        history = option.historical_effectiveness
        if history is not None and history > (existing.historical_effectiveness or 0.0):
            existing.historical_effectiveness = history
    return list(kept.values())


# =============================================================================
# Scoring
# =============================================================================


def strategy_risk(option: CounterStrategyOption) -> float:
    return RISK_FACTORS.get(option.type, 0.5)


def reward_potential(option: CounterStrategyOption, summary: BehaviorSummary) -> float:
    potential = 0.5

    if "exploitation" in option.approach or "weakness" in option.approach:
        potential += 0.3

    if option.type == T.ECONOMIC_WARFARE and summary.metrics.military_focus > 0.6:
        potential += 0.2

    description = option.description.lower()
    for pattern in summary.patterns:
        if pattern.type.value.replace("_", " ") in description:
            potential += 0.1

    return _clamp(potential, 0.1, 0.9)


def generate_reasoning(
    selected: CounterStrategyOption, ranked: list[CounterStrategyOption]
) -> str:
    reasons = [
        f"Selected {selected.type.value} with {selected.effectiveness * 100:.1f}% effectiveness"
    ]

    if selected.historical_effectiveness:
        reasons.append("Previously successful against similar player behavior")

    if selected.risk_level < 0.4:
        reasons.append("Low risk approach preferred")
    elif selected.reward_potential > 0.7:
        reasons.append("High reward potential justifies elevated risk")

    others = [o for o in ranked if o is not selected]
    if others:
        advantage = selected.effectiveness - others[0].effectiveness
        if advantage > 0.2:
            reasons.append("Clear effectiveness advantage over alternatives")
        else:
            reasons.append("Slight edge over alternative strategies")

    return "; ".join(reasons)


def implementation_plan(option: CounterStrategyOption) -> ImplementationPlan:
    actions, allocation = IMPLEMENTATION_TEMPLATES.get(option.type, DEFAULT_IMPLEMENTATION)
    modifications = BEHAVIOR_MODIFICATIONS.get(option.type, BehaviorModifications())
    return ImplementationPlan(
        strategy_type=option.type,
        tactical_focus=list(option.tactical_focus),
        immediate_actions=list(actions),
        resource_allocation=dict(allocation),
        behavior_modifications=modifications.model_copy(),
        timeline={name: phase.model_copy(deep=True) for name, phase in TIMELINE.items()},
    )


def plan_update(snapshot: ColonySnapshot, plan: ImplementationPlan) -> ColonyUpdate:
    """Colony changes that put an implementation plan into effect."""
    mods = plan.behavior_modifications
    return ColonyUpdate(
        aggression_level=_clamp(snapshot.aggression_level + mods.aggression_level),
        expansion_drive=_clamp(snapshot.expansion_drive + mods.expansion_drive),
        risk_tolerance=_clamp(snapshot.risk_tolerance + mods.risk_tolerance),
        resource_allocation=dict(plan.resource_allocation),
        reasons=[f"Counter-strategy {plan.strategy_type.value}"],
    )


# =============================================================================
# Selector
# =============================================================================


def _discard(entries: deque[CounterApplication], application_id: str) -> bool:
    """Remove an application from a ledger list in place. True if it was there."""
    kept = [a for a in entries if a.id != application_id]
    if len(kept) == len(entries):
        return False
    entries.clear()
    entries.extend(kept)
    return True


@dataclass
class _ColonyLedger:
    applied: deque[CounterApplication]
    successful: deque[CounterApplication]
    failed: deque[CounterApplication]
    learning_rate: float
    specialization: CounterStrategyType | None = None


@dataclass
class CounterStrategySelector:
    """
    Chooses and records counter-strategies per colony.

    When a TriggerEvaluator is supplied, offensive counters whose attack
    type is cooling down are treated as less feasible.
    """

    config: CounterConfig = field(default_factory=CounterConfig)
    rng: random.Random = field(default_factory=random.Random)
    clock: Clock = utc_now
    triggers: TriggerEvaluator | None = None

    _colonies: dict[str, _ColonyLedger] = field(default_factory=dict)
    _locks: KeyedLocks = field(default_factory=KeyedLocks)

    def _ledger(self, colony_id: str) -> _ColonyLedger:
        ledger = self._colonies.get(colony_id)
        if ledger is None:
            limit = self.config.ledger_limit
            ledger = _ColonyLedger(
                applied=deque(maxlen=limit),
                successful=deque(maxlen=limit),
                failed=deque(maxlen=limit),
                learning_rate=self.config.initial_learning_rate,
            )
            self._colonies[colony_id] = ledger
        return ledger

    # =========================================================================
    # Selection
    # =========================================================================

    def select_counter_strategy(
        self, snapshot: ColonySnapshot, summary: BehaviorSummary
    ) -> CounterSelection:
        """
        Select a counter-strategy against one player and record it as pending.

        Args:
            snapshot: Read-only view of the selecting colony
            summary: Behavior summary of the targeted player

        Returns:
            CounterSelection with the ledger entry, reasoning, up to three
            alternatives and the ColonyUpdate that applies the plan
        """
        colony_id = str(snapshot.colony_id)
        analysis = analyze_player(summary)

        with self._locks.get(colony_id):
            ledger = self._ledger(colony_id)
            history = list(ledger.successful)

        candidates = self.generate_options(analysis, summary, history)
        ranked = self.evaluate_options(candidates, summary, snapshot)
        selected = self.choose(ranked)
        plan = implementation_plan(selected)

        application = CounterApplication(
            timestamp=self.clock(),
            player_id=summary.player_id,
            target_playstyle=summary.playstyle,
            option=selected,
            plan=plan,
        )
        with self._locks.get(colony_id):
            self._ledger(colony_id).applied.append(application)

        logger.info(
            "Colony %s selected counter %s/%s against player %s",
            colony_id,
            selected.type.value,
            selected.approach,
            summary.player_id,
        )
        return CounterSelection(
            application=application,
            reasoning=selected.reasoning,
            expected_effectiveness=selected.effectiveness,
            alternatives=[o for o in ranked if o is not selected][:3],
            update=plan_update(snapshot, plan),
        )

    def generate_options(
        self,
        analysis: PlayerAnalysis,
        summary: BehaviorSummary,
        history: list[CounterApplication],
    ) -> list[CounterStrategyOption]:
        """Merge primary, pattern, weakness, historical and chaos candidates."""
        options = primary_counters(analysis.primary_strategy)

        for pattern in summary.patterns:
            options.extend(_option(c) for c in PATTERN_COUNTERS.get(pattern.type, ()))

        for weakness in analysis.weaknesses:
            options.extend(_option(c) for c in WEAKNESS_EXPLOITS.get(weakness, ()))

        for past in history:
            if past.target_playstyle != analysis.primary_strategy:
                continue
            options.append(
                past.option.model_copy(
                    update={
                        "description": f"Previously successful strategy: {past.option.description}",
                        "historical_effectiveness": past.effectiveness,
                        "reasoning": "",
                    }
                )
            )

        if analysis.adaptation_level > self.config.chaos_resistance_threshold:
            options.append(adaptive_chaos_option())

        return deduplicate(options)

    def evaluate_options(
        self,
        options: list[CounterStrategyOption],
        summary: BehaviorSummary,
        snapshot: ColonySnapshot,
    ) -> list[CounterStrategyOption]:
        """Score every option and sort by effectiveness, best first."""
        metrics = summary.metrics
        cooldowns = (
            self.triggers.get_cooldown_status(str(snapshot.colony_id)) if self.triggers else None
        )
        evaluated: list[CounterStrategyOption] = []

        for option in options:
            effectiveness = 0.5
            if option.type == T.ADAPTIVE_CHAOS and metrics.adaptation_resistance > 0.7:
                effectiveness += 0.3
            if option.type == T.ECONOMIC_WARFARE and metrics.military_focus > 0.7:
                effectiveness += 0.2
            if option.historical_effectiveness:
                effectiveness += option.historical_effectiveness * 0.3

            risk = strategy_risk(option)
            reward = reward_potential(option, summary)
            effectiveness += (reward - risk) * 0.2

            feasibility = self.feasibility(option, snapshot, cooldowns)
            effectiveness *= feasibility

            evaluated.append(
                option.model_copy(
                    update={
                        "effectiveness": _clamp(effectiveness, 0.1, 0.95),
                        "risk_level": risk,
                        "reward_potential": reward,
                        "feasibility": feasibility,
                    }
                )
            )

        evaluated.sort(key=lambda o: o.effectiveness, reverse=True)
        return evaluated

    def feasibility(
        self,
        option: CounterStrategyOption,
        snapshot: ColonySnapshot,
        cooldowns: dict[AttackType, CooldownStatus] | None = None,
    ) -> float:
        """
        How well the colony can afford an option, in [0, 1].

        Availability blends stored resources with free military capacity.
        An offensive option whose attack type is on cooldown is halved.
        """
        funded = min(1.0, snapshot.total_resources / FULLY_FUNDED_RESOURCES)
        free_military = (
            snapshot.available_military / snapshot.military_capacity
            if snapshot.military_capacity
            else 0.0
        )
        availability = 0.3 + 0.4 * funded + 0.3 * free_military
        requirement = RESOURCE_REQUIREMENTS.get(option.type, 0.5)
        feasibility = min(1.0, availability / requirement)

        attack_type = OFFENSIVE_ATTACK_TYPES.get(option.type)
        if cooldowns and attack_type is not None and not cooldowns[attack_type].available:
            feasibility *= COOLDOWN_FEASIBILITY_PENALTY
        return feasibility

    def choose(self, ranked: list[CounterStrategyOption]) -> CounterStrategyOption:
        """
        Sample among the top candidates with weights decaying by rank.

        Falls back to adaptive chaos when there is nothing to choose from.
        """
        if not ranked:
            chaos = adaptive_chaos_option()
            chaos.reasoning = "No viable counters; defaulting to unpredictable tactics"
            return chaos

        top = ranked[: self.config.top_candidates]
        weights = [o.effectiveness * self.config.rank_decay**rank for rank, o in enumerate(top)]
        roll = self.rng.random() * sum(weights)

        selected = top[0]
        for option, weight in zip(top, weights):
            roll -= weight
            if roll <= 0:
                selected = option
                break

        return selected.model_copy(update={"reasoning": generate_reasoning(selected, ranked)})

    # =========================================================================
    # Learning
    # =========================================================================

    def update_strategy_effectiveness(
        self,
        colony_id: str,
        application_id: str,
        effectiveness: float,
        outcome: Outcome | None = None,
    ) -> CounterApplication | None:
        """
        Score a previously applied counter.

        Scores above the success threshold join the successful list and
        raise the learning rate; scores below the failure threshold join
        the failed list. Without an explicit outcome, only scores above the
        success threshold count as success. Scoring the same application
        again replaces its earlier result, and the learning rate only steps
        the first time an application joins the successful list.

        Returns:
            The updated ledger entry, or None if it is unknown
        """
        if not 0.0 <= effectiveness <= 1.0:
            raise ValueError(f"effectiveness must be within [0, 1], got {effectiveness}")

        with self._locks.get(colony_id):
            ledger = self._colonies.get(colony_id)
            if ledger is None:
                return None
            application = next((a for a in ledger.applied if a.id == application_id), None)
            if application is None:
                return None

            application.effectiveness = effectiveness
            if outcome is None:
                if effectiveness > self.config.success_threshold:
                    outcome = Outcome.SUCCESS
                else:
                    outcome = Outcome.FAILURE
            application.outcome = outcome

            was_successful = _discard(ledger.successful, application_id)
            _discard(ledger.failed, application_id)

            if effectiveness > self.config.success_threshold:
                ledger.successful.append(application)
                if not was_successful:
                    ledger.learning_rate = min(
                        self.config.max_learning_rate,
                        ledger.learning_rate + self.config.learning_step,
                    )
            elif effectiveness < self.config.failure_threshold:
                ledger.failed.append(application)

            if ledger.successful:
                ledger.specialization = Counter(
                    a.option.type for a in ledger.successful
                ).most_common(1)[0][0]
            else:
                ledger.specialization = None

        logger.debug(
            "Colony %s counter %s scored %.2f (%s)",
            colony_id,
            application_id,
            effectiveness,
            outcome.value,
        )
        return application

    def get_counter_strategy_analysis(self, colony_id: str) -> CounterAnalysis | None:
        with self._locks.get(colony_id):
            ledger = self._colonies.get(colony_id)
            if ledger is None:
                return None
            applied = list(ledger.applied)
            successful = list(ledger.successful)
            return CounterAnalysis(
                colony_id=colony_id,
                total_applied=len(applied),
                successful=len(successful),
                failed=len(ledger.failed),
                success_rate=len(successful) / len(applied) if applied else 0.0,
                learning_rate=ledger.learning_rate,
                specialization=ledger.specialization,
                recent=applied[-5:],
                most_effective=sorted(
                    successful, key=lambda a: a.effectiveness or 0.0, reverse=True
                )[:3],
            )

    def get_ledger(self, colony_id: str) -> list[CounterApplication]:
        with self._locks.get(colony_id):
            ledger = self._colonies.get(colony_id)
            return list(ledger.applied) if ledger else []

    def checkpoint(self, colony_id: str) -> _ColonyLedger | None:
        """Copy of a colony's counter ledger."""
        with self._locks.get(colony_id):
            ledger = self._colonies.get(colony_id)
            return deepcopy(ledger) if ledger is not None else None

    def restore(self, colony_id: str, checkpoint: _ColonyLedger | None) -> None:
        with self._locks.get(colony_id):
            if checkpoint is None:
                self._colonies.pop(colony_id, None)
            else:
                self._colonies[colony_id] = checkpoint

    def reset_colony(self, colony_id: str) -> bool:
        with self._locks.get(colony_id):
            removed = self._colonies.pop(colony_id, None) is not None
        self._locks.discard(colony_id)
        return removed
