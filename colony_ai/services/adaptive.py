"""
Adaptive Strategy Engine for colony-ai.

Switches a colony's macro strategy in response to how a particular player
plays. Adaptations are rate-limited per colony, sampled from a
playstyle-indexed counter table, and returned as a ColonyUpdate for the
controller to apply.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from colony_ai.clock import Clock, utc_now
from colony_ai.config import AdaptationConfig
from colony_ai.models.adaptation import (
    INTENSITY_MULTIPLIERS,
    AdaptationIntensity,
    AdaptationNeed,
    AdaptationRecord,
    AdaptationResult,
    AdaptationStatus,
    AdaptedStrategy,
    PlayerCounters,
    StrategyDetails,
)
from colony_ai.models.colony import ColonySnapshot, ColonyUpdate, MacroStrategy, WorldSnapshot
from colony_ai.models.player import BehaviorSummary, PatternType, Playstyle
from colony_ai.services.locks import KeyedLocks
from colony_ai.services.player_monitor import PlayerMonitor

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# How well each macro strategy holds up against each playstyle.
STRATEGY_EFFECTIVENESS: dict[MacroStrategy, dict[Playstyle, float]] = {
    MacroStrategy.DEFENSIVE: {
        Playstyle.AGGRESSIVE_MILITARY: 0.7,
        Playstyle.DEFENSIVE_TURTLE: 0.3,
        Playstyle.ECONOMIC_FOCUSED: 0.4,
        Playstyle.RAPID_EXPANDER: 0.6,
        Playstyle.BALANCED_STRATEGIC: 0.5,
        Playstyle.CAUTIOUS_EXPLORER: 0.4,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.4,
    },
    MacroStrategy.AGGRESSIVE: {
        Playstyle.AGGRESSIVE_MILITARY: 0.5,
        Playstyle.DEFENSIVE_TURTLE: 0.3,
        Playstyle.ECONOMIC_FOCUSED: 0.8,
        Playstyle.RAPID_EXPANDER: 0.6,
        Playstyle.BALANCED_STRATEGIC: 0.6,
        Playstyle.CAUTIOUS_EXPLORER: 0.7,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.4,
    },
    MacroStrategy.ECONOMIC: {
        Playstyle.AGGRESSIVE_MILITARY: 0.2,
        Playstyle.DEFENSIVE_TURTLE: 0.6,
        Playstyle.ECONOMIC_FOCUSED: 0.4,
        Playstyle.RAPID_EXPANDER: 0.5,
        Playstyle.BALANCED_STRATEGIC: 0.6,
        Playstyle.CAUTIOUS_EXPLORER: 0.7,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.5,
    },
    MacroStrategy.EXPANSION: {
        Playstyle.AGGRESSIVE_MILITARY: 0.4,
        Playstyle.DEFENSIVE_TURTLE: 0.8,
        Playstyle.ECONOMIC_FOCUSED: 0.6,
        Playstyle.RAPID_EXPANDER: 0.3,
        Playstyle.BALANCED_STRATEGIC: 0.5,
        Playstyle.CAUTIOUS_EXPLORER: 0.6,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.5,
    },
    MacroStrategy.GUERRILLA: {
        Playstyle.AGGRESSIVE_MILITARY: 0.6,
        Playstyle.DEFENSIVE_TURTLE: 0.4,
        Playstyle.ECONOMIC_FOCUSED: 0.7,
        Playstyle.RAPID_EXPANDER: 0.8,
        Playstyle.BALANCED_STRATEGIC: 0.5,
        Playstyle.CAUTIOUS_EXPLORER: 0.6,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.7,
    },
    MacroStrategy.BALANCED: {
        Playstyle.AGGRESSIVE_MILITARY: 0.5,
        Playstyle.DEFENSIVE_TURTLE: 0.5,
        Playstyle.ECONOMIC_FOCUSED: 0.5,
        Playstyle.RAPID_EXPANDER: 0.5,
        Playstyle.BALANCED_STRATEGIC: 0.5,
        Playstyle.CAUTIOUS_EXPLORER: 0.5,
        Playstyle.ADAPTIVE_OPPORTUNIST: 0.6,
    },
}

# Candidate counters per playstyle: (strategy, weight, reason)
COUNTER_TABLE: dict[Playstyle, list[tuple[MacroStrategy, float, str]]] = {
    Playstyle.AGGRESSIVE_MILITARY: [
        (MacroStrategy.DEFENSIVE, 0.4, "Fortify against aggression"),
        (MacroStrategy.GUERRILLA, 0.3, "Hit-and-run tactics"),
        (MacroStrategy.ECONOMIC, 0.2, "Out-resource the aggressor"),
        (MacroStrategy.EXPANSION, 0.1, "Expand away from conflict"),
    ],
    Playstyle.DEFENSIVE_TURTLE: [
        (MacroStrategy.EXPANSION, 0.5, "Exploit defensive inactivity"),
        (MacroStrategy.ECONOMIC, 0.3, "Build economic advantage"),
        (MacroStrategy.AGGRESSIVE, 0.2, "Force defensive player to react"),
    ],
    Playstyle.ECONOMIC_FOCUSED: [
        (MacroStrategy.AGGRESSIVE, 0.6, "Strike before economic advantage grows"),
        (MacroStrategy.GUERRILLA, 0.3, "Disrupt economic operations"),
        (MacroStrategy.EXPANSION, 0.1, "Compete for resources"),
    ],
    Playstyle.RAPID_EXPANDER: [
        (MacroStrategy.GUERRILLA, 0.4, "Target spread-out positions"),
        (MacroStrategy.AGGRESSIVE, 0.3, "Strike weak expansion points"),
        (MacroStrategy.DEFENSIVE, 0.2, "Force overextension"),
        (MacroStrategy.ECONOMIC, 0.1, "Build concentrated strength"),
    ],
    Playstyle.BALANCED_STRATEGIC: [
        (MacroStrategy.COUNTER_SPECIFIC, 0.4, "Adapt to specific patterns"),
        (MacroStrategy.AGGRESSIVE, 0.3, "Force specific responses"),
        (MacroStrategy.GUERRILLA, 0.3, "Create unpredictability"),
    ],
    Playstyle.CAUTIOUS_EXPLORER: [
        (MacroStrategy.AGGRESSIVE, 0.5, "Punish cautious expansion"),
        (MacroStrategy.EXPANSION, 0.3, "Race for territory"),
        (MacroStrategy.GUERRILLA, 0.2, "Harass exploration efforts"),
    ],
    Playstyle.ADAPTIVE_OPPORTUNIST: [
        (MacroStrategy.COUNTER_SPECIFIC, 0.6, "Counter current adaptations"),
        (MacroStrategy.BALANCED, 0.4, "Maintain strategic flexibility"),
    ],
}
DEFAULT_COUNTERS = [(MacroStrategy.BALANCED, 1.0, "Default adaptive strategy")]

# Weight boosts applied per active pattern: pattern -> (boosted strategies, factor)
PATTERN_BOOSTS: dict[PatternType, tuple[frozenset[MacroStrategy], float]] = {
    PatternType.MILITARY_PREPARATION: (
        frozenset({MacroStrategy.DEFENSIVE, MacroStrategy.GUERRILLA}),
        1.3,
    ),
    PatternType.EXPANSION_PRESSURE: (
        frozenset({MacroStrategy.AGGRESSIVE, MacroStrategy.GUERRILLA}),
        1.2,
    ),
    PatternType.RESOURCE_HOARDING: (
        frozenset({MacroStrategy.AGGRESSIVE, MacroStrategy.EXPANSION}),
        1.2,
    ),
}

STRATEGY_TEMPLATES: dict[MacroStrategy, StrategyDetails] = {
    MacroStrategy.DEFENSIVE: StrategyDetails(
        priority="defense",
        resource_allocation={"military": 0.4, "defense": 0.4, "economy": 0.2},
        unit_focus=["defensive_units", "ranged_units"],
        building_priority=["walls", "towers", "barracks"],
        aggression_modifier=-0.3,
        expansion_modifier=-0.4,
        risk_tolerance=0.2,
    ),
    MacroStrategy.AGGRESSIVE: StrategyDetails(
        priority="attack",
        resource_allocation={"military": 0.6, "offense": 0.3, "economy": 0.1},
        unit_focus=["attack_units", "fast_units"],
        building_priority=["barracks", "weapon_forge", "stables"],
        aggression_modifier=0.4,
        expansion_modifier=0.2,
        risk_tolerance=0.8,
    ),
    MacroStrategy.ECONOMIC: StrategyDetails(
        priority="economy",
        resource_allocation={"economy": 0.6, "military": 0.2, "infrastructure": 0.2},
        unit_focus=["worker_units", "trader_units"],
        building_priority=["resource_buildings", "trade_posts", "warehouses"],
        aggression_modifier=-0.2,
        expansion_modifier=0.1,
        risk_tolerance=0.3,
    ),
    MacroStrategy.EXPANSION: StrategyDetails(
        priority="territory",
        resource_allocation={"expansion": 0.4, "military": 0.3, "infrastructure": 0.3},
        unit_focus=["scout_units", "settler_units", "fast_units"],
        building_priority=["outposts", "roads", "resource_extractors"],
        aggression_modifier=0.1,
        expansion_modifier=0.6,
        risk_tolerance=0.6,
    ),
    MacroStrategy.GUERRILLA: StrategyDetails(
        priority="harassment",
        resource_allocation={"military": 0.5, "mobility": 0.3, "stealth": 0.2},
        unit_focus=["fast_units", "stealth_units", "raider_units"],
        building_priority=["scout_posts", "hidden_bases", "escape_routes"],
        aggression_modifier=0.3,
        expansion_modifier=-0.1,
        risk_tolerance=0.7,
    ),
    MacroStrategy.BALANCED: StrategyDetails(
        priority="adaptive",
        resource_allocation={"military": 0.3, "economy": 0.3, "infrastructure": 0.4},
        unit_focus=["versatile_units", "support_units"],
        building_priority=["mixed_development"],
        aggression_modifier=0.0,
        expansion_modifier=0.0,
        risk_tolerance=0.5,
    ),
}


def strategy_effectiveness(strategy: MacroStrategy, playstyle: Playstyle) -> float:
    """Effectiveness of a macro strategy against a playstyle, 0.5 when unknown."""
    return STRATEGY_EFFECTIVENESS.get(strategy, {}).get(playstyle, 0.5)


def adaptation_intensity(need_score: float) -> AdaptationIntensity:
    if need_score > 0.7:
        return AdaptationIntensity.HIGH
    if need_score > 0.5:
        return AdaptationIntensity.MEDIUM
    return AdaptationIntensity.LOW


def strategy_details(
    strategy: MacroStrategy, summary: BehaviorSummary, need: AdaptationNeed
) -> StrategyDetails:
    """Template parameters for a strategy, modifiers scaled by adaptation intensity."""
    intensity = adaptation_intensity(need.score)
    multiplier = INTENSITY_MULTIPLIERS[intensity]
    details = STRATEGY_TEMPLATES.get(strategy, STRATEGY_TEMPLATES[MacroStrategy.BALANCED]).model_copy(
        deep=True
    )
    details.aggression_modifier *= multiplier
    details.expansion_modifier *= multiplier
    details.intensity = intensity

    metrics = summary.metrics
    details.player_counters = PlayerCounters(
        aggressiveness=max(0.1, 1.0 - metrics.aggressiveness),
        military_focus="defensive_focus" if metrics.military_focus > 0.6 else "offensive_opportunity",
        economic_focus="economic_pressure" if metrics.economic_focus > 0.6 else "military_advantage",
    )
    return details


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class _ColonyAdaptation:
    base_strategy: MacroStrategy
    current_strategy: MacroStrategy
    adaptation_level: float
    last_adaptation: datetime | None = None
    adaptation_count: int = 0
    successful_adaptations: int = 0
    strategic_memory: deque[AdaptationRecord] = field(default_factory=deque)
    player_adaptations: dict[str, deque[AdaptationRecord]] = field(default_factory=dict)


@dataclass
class AdaptiveStrategyEngine:
    """
    Per-colony macro strategy adaptation.

    Uses the shared PlayerMonitor for behavior summaries and threat
    assessments. Each colony's bookkeeping is guarded by its own lock.
    """

    monitor: PlayerMonitor
    config: AdaptationConfig = field(default_factory=AdaptationConfig)
    rng: random.Random = field(default_factory=random.Random)
    clock: Clock = utc_now

    _colonies: dict[str, _ColonyAdaptation] = field(default_factory=dict)
    _locks: KeyedLocks = field(default_factory=KeyedLocks)

    def _state(self, snapshot: ColonySnapshot) -> _ColonyAdaptation:
        colony_id = str(snapshot.colony_id)
        state = self._colonies.get(colony_id)
        if state is None:
            state = _ColonyAdaptation(
                base_strategy=snapshot.current_strategy,
                current_strategy=snapshot.current_strategy,
                adaptation_level=snapshot.adaptation_level,
                strategic_memory=deque(maxlen=self.config.strategic_memory_limit),
            )
            self._colonies[colony_id] = state
        return state

    def _cooldown(self) -> timedelta:
        return timedelta(seconds=self.config.cooldown_seconds)

    def _in_cooldown(self, state: _ColonyAdaptation, now: datetime) -> bool:
        return state.last_adaptation is not None and now - state.last_adaptation < self._cooldown()

    # =========================================================================
    # Adaptation
    # =========================================================================

    def adapt_to_player(
        self,
        snapshot: ColonySnapshot,
        player_id: str,
        context: WorldSnapshot | None = None,
    ) -> AdaptationResult:
        """
        Consider switching the colony's strategy to counter a player.

        Args:
            snapshot: Read-only view of the colony
            player_id: Player whose behavior drives the adaptation
            context: Current world snapshot, for major-event flags

        Returns:
            AdaptationResult; ``adapted`` is False with a reason when there
            is too little data, the colony is cooling down, or the need is
            below threshold
        """
        return self._adapt(snapshot, player_id, context, bypass_cooldown=False)

    def force_adaptation(
        self,
        snapshot: ColonySnapshot,
        player_id: str,
        context: WorldSnapshot | None = None,
    ) -> AdaptationResult:
        """Adapt immediately, ignoring the cooldown. The need threshold still applies."""
        return self._adapt(snapshot, player_id, context, bypass_cooldown=True)

    def _adapt(
        self,
        snapshot: ColonySnapshot,
        player_id: str,
        context: WorldSnapshot | None,
        *,
        bypass_cooldown: bool,
    ) -> AdaptationResult:
        summary = self.monitor.get_behavior_summary(player_id)
        if summary is None:
            return AdaptationResult(reason="Insufficient player data for adaptation")

        colony_id = str(snapshot.colony_id)
        with self._locks.get(colony_id):
            state = self._state(snapshot)
            now = self.clock()

            if not bypass_cooldown and self._in_cooldown(state, now):
                return AdaptationResult(
                    reason="Adaptation cooldown active",
                    next_adaptation_available=state.last_adaptation + self._cooldown(),
                )

            need = self.evaluate_need(state, summary, context, now)
            if need.score < self.config.need_threshold:
                return AdaptationResult(reason="Current strategy sufficient", need=need)

            strategy = self.generate_strategy(summary, need)
            old_strategy = state.current_strategy

            state.current_strategy = strategy.type
            state.adaptation_level = need.score
            state.last_adaptation = now
            state.adaptation_count += 1

            record = AdaptationRecord(
                timestamp=now,
                player_id=player_id,
                old_strategy=old_strategy,
                new_strategy=strategy.type,
                reasoning=strategy.reasoning,
                confidence=strategy.confidence,
                intensity=need.score,
                triggers=need.factors,
            )
            state.strategic_memory.append(record)
            per_player = state.player_adaptations.setdefault(
                player_id, deque(maxlen=self.config.player_history_limit)
            )
            per_player.append(record)

        logger.info(
            "Colony %s adapted to player %s: %s -> %s (%s)",
            colony_id,
            player_id,
            old_strategy.value,
            strategy.type.value,
            strategy.reasoning,
        )
        return AdaptationResult(
            adapted=True,
            reason="Adapted to player behavior",
            old_strategy=old_strategy,
            new_strategy=strategy.type,
            adaptation_level=need.score,
            reasoning=strategy.reasoning,
            confidence=strategy.confidence,
            details=strategy.details,
            need=need,
            update=self._behavior_update(snapshot, strategy, need),
        )

    def evaluate_need(
        self,
        state: _ColonyAdaptation,
        summary: BehaviorSummary,
        context: WorldSnapshot | None,
        now: datetime,
    ) -> AdaptationNeed:
        score = 0.0
        factors: list[str] = []

        threat = self.monitor.assess_threat(summary.player_id)
        if threat.threat_level > 0.7:
            score += 0.3
            factors.append("High player threat detected")

        effectiveness = strategy_effectiveness(state.current_strategy, summary.playstyle)
        if effectiveness < 0.4:
            score += 0.4
            factors.append("Current strategy ineffective against player style")

        if summary.metrics.adaptation_resistance > 0.7:
            score += 0.2
            factors.append("Player shows consistent patterns - opportunity for counter-strategy")

        if state.last_adaptation is not None:
            hours = (now - state.last_adaptation).total_seconds() / 3600
            if hours > 1:
                score += min(0.2, hours * 0.05)
                factors.append("Sufficient time elapsed for strategy reassessment")

        if context is not None and (context.major_event or context.power_shift):
            score += 0.3
            factors.append("Significant game state changes detected")

        return AdaptationNeed(
            score=_clamp(score),
            factors=factors,
            threat_level=threat.threat_level,
            strategy_effectiveness=effectiveness,
        )

    def generate_strategy(self, summary: BehaviorSummary, need: AdaptationNeed) -> AdaptedStrategy:
        """Sample a counter strategy for the player's playstyle, boosted by active patterns."""
        candidates = [list(c) for c in COUNTER_TABLE.get(summary.playstyle, DEFAULT_COUNTERS)]
        for pattern in summary.patterns:
            boost = PATTERN_BOOSTS.get(pattern.type)
            if boost is None:
                continue
            boosted, factor = boost
            for candidate in candidates:
                if candidate[0] in boosted:
                    candidate[1] *= factor

        total = sum(weight for _, weight, _ in candidates)
        roll = self.rng.random() * total
        selected = candidates[0]
        for candidate in candidates:
            roll -= candidate[1]
            if roll <= 0:
                selected = candidate
                break

        strategy_type, _, reason = selected
        return AdaptedStrategy(
            type=strategy_type,
            reasoning=reason,
            confidence=min(self.config.max_confidence, need.score * 1.2),
            details=strategy_details(strategy_type, summary, need),
            targeted_patterns=[p.type.value for p in summary.patterns],
            player_style_counter=summary.playstyle,
        )

    def _behavior_update(
        self, snapshot: ColonySnapshot, strategy: AdaptedStrategy, need: AdaptationNeed
    ) -> ColonyUpdate:
        details = strategy.details
        return ColonyUpdate(
            current_strategy=strategy.type,
            adaptation_level=need.score,
            aggression_level=_clamp(snapshot.aggression_level + details.aggression_modifier),
            expansion_drive=_clamp(snapshot.expansion_drive + details.expansion_modifier),
            risk_tolerance=details.risk_tolerance,
            resource_allocation=dict(details.resource_allocation),
            reasons=[f"Adapted to {strategy.type.value}: {strategy.reasoning}"],
        )

    # =========================================================================
    # Status
    # =========================================================================

    def record_outcome(self, colony_id: str, success: bool) -> None:
        """Count a successful adaptation toward the colony's success rate."""
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            if state is not None and success:
                state.successful_adaptations += 1

    def get_adaptation_status(self, colony_id: str) -> AdaptationStatus | None:
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            if state is None:
                return None
            return AdaptationStatus(
                colony_id=colony_id,
                current_strategy=state.current_strategy,
                base_strategy=state.base_strategy,
                adaptation_level=state.adaptation_level,
                last_adaptation=state.last_adaptation,
                adaptation_count=state.adaptation_count,
                success_rate=(
                    state.successful_adaptations / state.adaptation_count
                    if state.adaptation_count
                    else 0.0
                ),
                in_cooldown=self._in_cooldown(state, self.clock()),
                recent_adaptations=list(state.strategic_memory)[-3:],
                player_adaptation_counts={
                    player_id: len(records)
                    for player_id, records in state.player_adaptations.items()
                },
            )

    def get_player_adaptations(self, colony_id: str, player_id: str) -> list[AdaptationRecord]:
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            if state is None:
                return []
            return list(state.player_adaptations.get(player_id, ()))

    def checkpoint(self, colony_id: str) -> _ColonyAdaptation | None:
        """Copy of a colony's adaptation bookkeeping, for rolling back a failed tick."""
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            return deepcopy(state) if state is not None else None

    def restore(self, colony_id: str, checkpoint: _ColonyAdaptation | None) -> None:
        """Put back bookkeeping taken with ``checkpoint``."""
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
