"""
Player Monitor Service for colony-ai.

Watches every human player's actions, keeps a rolling window of recent
activity, and periodically derives behavioral metrics, a playstyle, and
short-lived patterns. AI colonies read the results to predict what a player
will do next and how threatening they are.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from colony_ai.clock import Clock, utc_now
from colony_ai.config import PlayerMonitorConfig
from colony_ai.models.player import (
    ActionCategory,
    ActionPrediction,
    BehaviorAnalysis,
    BehaviorPattern,
    BehaviorSummary,
    PatternType,
    PlayerAction,
    PlayerActivitySummary,
    PlayerMetrics,
    PlayerProfile,
    Playstyle,
    ThreatAssessment,
)
from colony_ai.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Checked in order; the first matching keyword wins.
CATEGORY_KEYWORDS: list[tuple[ActionCategory, tuple[str, ...]]] = [
    (ActionCategory.RESOURCE_GATHERING, ("gather", "harvest", "mine")),
    (ActionCategory.TERRITORY_EXPANSION, ("expand", "settle", "claim")),
    (ActionCategory.MILITARY_BUILDUP, ("train", "recruit", "military")),
    (ActionCategory.TRADING, ("trade", "exchange", "market")),
    (ActionCategory.EXPLORATION, ("scout", "explore", "discover")),
    (ActionCategory.DIPLOMACY, ("ally", "treaty", "negotiate")),
    (ActionCategory.TECHNOLOGY_RESEARCH, ("research", "technology", "upgrade")),
    (ActionCategory.DEFENSIVE_ACTIONS, ("defend", "defens", "fortify", "wall")),
]

MILITARY_CATEGORIES = frozenset(
    {ActionCategory.MILITARY_BUILDUP, ActionCategory.DEFENSIVE_ACTIONS}
)

PATTERN_PREDICTIONS: dict[PatternType, ActionCategory] = {
    PatternType.MILITARY_PREPARATION: ActionCategory.MILITARY_BUILDUP,
    PatternType.EXPANSION_PRESSURE: ActionCategory.TERRITORY_EXPANSION,
    PatternType.DEFENSIVE_PREPARATION: ActionCategory.DEFENSIVE_ACTIONS,
    PatternType.TRADE_FOCUSED: ActionCategory.TRADING,
    PatternType.HIT_AND_RUN_TACTICS: ActionCategory.MILITARY_BUILDUP,
}

PATTERN_RECOMMENDATIONS: dict[PatternType, str] = {
    PatternType.MILITARY_PREPARATION: "Prepare for potential conflict",
    PatternType.EXPANSION_PRESSURE: "Secure key territorial positions",
    PatternType.HIT_AND_RUN_TACTICS: "Strengthen perimeter defenses",
}


def categorize_action(action: PlayerAction) -> ActionCategory:
    """
    Sort an action into one of the fixed categories.

    An explicit category wins, then an action type naming a category
    exactly, then keyword matching. Anything unrecognized counts as
    resource gathering.
    """
    if action.category is not None:
        return action.category

    action_type = action.type.lower()
    for category in ActionCategory:
        if action_type == category.value:
            return category

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in action_type for keyword in keywords):
            return category

    return ActionCategory.RESOURCE_GATHERING


def _is_aggressive(action: PlayerAction) -> bool:
    action_type = action.type.lower()
    return "attack" in action_type or "raid" in action_type or action.intensity > 0.7


def _is_risky(action: PlayerAction) -> bool:
    return action.risk_level > 0.6 or "aggressive" in action.type.lower()


def _is_retreat(action: PlayerAction) -> bool:
    action_type = action.type.lower()
    return any(word in action_type for word in ("retreat", "withdraw", "defensive"))


# =============================================================================
# Analysis (pure)
# =============================================================================


def calculate_metrics(
    profile: PlayerProfile,
    recent: list[PlayerAction],
    min_actions_for_resistance: int = 10,
) -> PlayerMetrics:
    """Derive behavioral metrics from cumulative counts and the recent window."""
    total = max(1, profile.total_actions)
    window = max(1, len(recent))
    counts = profile.action_counts

    def count(category: ActionCategory) -> int:
        return counts.get(category, 0)

    military_pct = (
        count(ActionCategory.MILITARY_BUILDUP) + count(ActionCategory.DEFENSIVE_ACTIONS)
    ) / total
    economic_pct = (
        count(ActionCategory.RESOURCE_GATHERING) + count(ActionCategory.TRADING)
    ) / total
    expansion_pct = (
        count(ActionCategory.TERRITORY_EXPANSION) + count(ActionCategory.EXPLORATION)
    ) / total

    aggressive = sum(1 for a in recent if _is_aggressive(a))
    recent_expansion = sum(1 for a in recent if a.category == ActionCategory.TERRITORY_EXPANSION)
    recent_military = sum(1 for a in recent if a.category == ActionCategory.MILITARY_BUILDUP)
    risky = sum(1 for a in recent if _is_risky(a))

    if profile.total_actions < min_actions_for_resistance or not recent:
        resistance = 0.5
    else:
        dominance = max(counts.values(), default=0) / total
        diversity = len({a.category for a in recent}) / window
        resistance = max(0.0, min(1.0, dominance * 1.5 - diversity))

    return PlayerMetrics(
        aggressiveness=min(1.0, aggressive / window + military_pct * 0.5),
        expansion_tendency=min(1.0, expansion_pct + recent_expansion / window),
        economic_focus=min(1.0, economic_pct),
        military_focus=min(1.0, military_pct + recent_military / window),
        risk_tolerance=min(1.0, risky / window),
        adaptation_resistance=resistance,
    )


def classify_playstyle(metrics: PlayerMetrics) -> Playstyle:
    """Map metrics to a playstyle. Rules are checked in order."""
    aggression = metrics.aggressiveness
    expansion = metrics.expansion_tendency
    economic = metrics.economic_focus
    military = metrics.military_focus
    risk = metrics.risk_tolerance

    if aggression > 0.7 and military > 0.6:
        return Playstyle.AGGRESSIVE_MILITARY
    if military > 0.5 and expansion < 0.3 and risk < 0.4:
        return Playstyle.DEFENSIVE_TURTLE
    if economic > 0.6 and military < 0.3:
        return Playstyle.ECONOMIC_FOCUSED
    if expansion > 0.6 and risk > 0.5:
        return Playstyle.RAPID_EXPANDER
    if abs(aggression - 0.5) < 0.2 and abs(expansion - 0.5) < 0.2:
        return Playstyle.BALANCED_STRATEGIC
    if expansion > 0.5 and risk < 0.5:
        return Playstyle.CAUTIOUS_EXPLORER
    return Playstyle.ADAPTIVE_OPPORTUNIST


def _longest_run(recent: list[PlayerAction], categories: frozenset[ActionCategory]) -> int:
    longest = current = 0
    for action in recent:
        if action.category in categories:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def detect_patterns(recent: list[PlayerAction], min_actions: int = 5) -> list[BehaviorPattern]:
    """Find short-lived regularities in the recent action window."""
    if len(recent) < min_actions:
        return []

    window = len(recent)
    patterns: list[BehaviorPattern] = []

    def share(category: ActionCategory) -> tuple[int, float]:
        n = sum(1 for a in recent if a.category == category)
        return n, n / window

    _, gathering = share(ActionCategory.RESOURCE_GATHERING)
    if gathering > 0.6:
        patterns.append(
            BehaviorPattern(
                type=PatternType.RESOURCE_HOARDING,
                confidence=gathering,
                description="Player is focusing heavily on resource accumulation",
                predicted_behavior="major_expansion_or_military_buildup",
            )
        )

    if _longest_run(recent, MILITARY_CATEGORIES) >= 3:
        patterns.append(
            BehaviorPattern(
                type=PatternType.MILITARY_PREPARATION,
                confidence=0.8,
                description="Player is preparing for military action",
                predicted_behavior="imminent_attack_or_defense",
            )
        )

    expansions, _ = share(ActionCategory.TERRITORY_EXPANSION)
    if expansions >= 3:
        patterns.append(
            BehaviorPattern(
                type=PatternType.EXPANSION_PRESSURE,
                confidence=min(1.0, expansions / 5),
                description="Player is aggressively expanding territory",
                predicted_behavior="territorial_conflict_likely",
            )
        )

    _, defensive = share(ActionCategory.DEFENSIVE_ACTIONS)
    if defensive > 0.4:
        patterns.append(
            BehaviorPattern(
                type=PatternType.DEFENSIVE_PREPARATION,
                confidence=defensive,
                description="Player is strengthening defenses",
                predicted_behavior="expecting_attack_or_turtle_strategy",
            )
        )

    _, trading = share(ActionCategory.TRADING)
    if trading > 0.3:
        patterns.append(
            BehaviorPattern(
                type=PatternType.TRADE_FOCUSED,
                confidence=trading,
                description="Player is prioritizing economic growth through trade",
                predicted_behavior="peaceful_economic_expansion",
            )
        )

    strikes = [
        i
        for i, a in enumerate(recent)
        if "attack" in a.type.lower() or "raid" in a.type.lower()
    ]
    raids = sum(1 for i in strikes if i < window - 1 and _is_retreat(recent[i + 1]))
    if strikes and raids >= 2:
        confidence = raids / len(strikes)
        if confidence > 0.6:
            patterns.append(
                BehaviorPattern(
                    type=PatternType.HIT_AND_RUN_TACTICS,
                    confidence=confidence,
                    description="Player employs quick strike tactics",
                    predicted_behavior="continued_harassment_attacks",
                )
            )

    return patterns


def assess_threat(profile: PlayerProfile, patterns: Iterable[BehaviorPattern]) -> ThreatAssessment:
    """Score how threatening a player looks from metrics and active patterns."""
    metrics = profile.metrics
    patterns = list(patterns)
    threat = 0.5 + (metrics.aggressiveness - 0.5) * 0.4 + (metrics.military_focus - 0.5) * 0.3

    reasons: list[str] = []
    if metrics.aggressiveness > 0.7:
        reasons.append("High aggressiveness detected")
    if metrics.military_focus > 0.6:
        reasons.append("Strong military focus")

    for pattern in patterns:
        if pattern.type == PatternType.MILITARY_PREPARATION:
            threat += 0.3 * pattern.confidence
            reasons.append("Military buildup detected")
        elif pattern.type == PatternType.EXPANSION_PRESSURE:
            threat += 0.2 * pattern.confidence
            reasons.append("Aggressive expansion detected")
        elif pattern.type == PatternType.HIT_AND_RUN_TACTICS:
            threat += 0.25 * pattern.confidence
            reasons.append("Raiding pattern identified")

    threat = max(0.1, min(0.95, threat))

    if threat > 0.7:
        recommendations = [
            "Increase defensive posture",
            "Monitor for imminent attacks",
            "Consider preemptive defensive measures",
        ]
    elif threat > 0.5:
        recommendations = ["Maintain moderate defensive stance", "Monitor military activities"]
    else:
        recommendations = ["Standard monitoring sufficient", "Focus on economic/expansion goals"]
    recommendations.extend(
        PATTERN_RECOMMENDATIONS[p.type] for p in patterns if p.type in PATTERN_RECOMMENDATIONS
    )

    return ThreatAssessment(
        player_id=profile.player_id,
        threat_level=threat,
        confidence=min(0.9, profile.total_actions / 50),
        reasoning=", ".join(reasons) if reasons else "Standard threat assessment",
        recommendations=recommendations,
        known=True,
    )


# =============================================================================
# Service
# =============================================================================


@dataclass
class PlayerMonitor:
    """
    Tracks every observed player's behavior.

    Profiles are keyed by player id; each key has its own lock so colonies
    ticking in parallel can record actions for different players without
    contention.
    """

    config: PlayerMonitorConfig = field(default_factory=PlayerMonitorConfig)
    clock: Clock = utc_now
    rng: random.Random = field(default_factory=random.Random)

    _profiles: dict[str, PlayerProfile] = field(default_factory=dict)
    _recent: dict[str, deque[PlayerAction]] = field(default_factory=dict)
    _patterns: dict[str, list[BehaviorPattern]] = field(default_factory=dict)
    _locks: KeyedLocks = field(default_factory=KeyedLocks)

    def record_action(self, player_id: str, action: PlayerAction) -> BehaviorAnalysis | None:
        """
        Record one player action.

        The action is categorized and appended to the player's recent window.
        Every ``analysis_interval``-th action triggers a fresh analysis once
        enough recent actions exist.

        Returns:
            The analysis if one ran, else None
        """
        categorized = action.model_copy(update={"category": categorize_action(action)})
        now = self.clock()

        with self._locks.get(player_id):
            profile = self._profiles.get(player_id)
            if profile is None:
                profile = PlayerProfile(player_id=player_id, session_start=now, last_activity=now)
                self._profiles[player_id] = profile
                self._recent[player_id] = deque(maxlen=self.config.recent_window)

            profile.total_actions += 1
            profile.action_counts[categorized.category] = (
                profile.action_counts.get(categorized.category, 0) + 1
            )
            profile.last_activity = now
            self._recent[player_id].append(categorized)

            if (
                profile.total_actions % self.config.analysis_interval == 0
                and len(self._recent[player_id]) >= self.config.min_actions_for_analysis
            ):
                return self._analyze(player_id)
        return None

    def analyze(self, player_id: str) -> BehaviorAnalysis | None:
        """Run an analysis cycle now, regardless of cadence."""
        with self._locks.get(player_id):
            if player_id not in self._profiles:
                return None
            return self._analyze(player_id)

    def _analyze(self, player_id: str) -> BehaviorAnalysis:
        profile = self._profiles[player_id]
        recent = list(self._recent[player_id])

        profile.metrics = calculate_metrics(
            profile, recent, self.config.min_actions_for_resistance
        )
        profile.playstyle = classify_playstyle(profile.metrics)
        profile.last_analysis = self.clock()
        patterns = detect_patterns(recent, self.config.min_actions_for_analysis)
        self._patterns[player_id] = patterns

        logger.debug(
            "Player %s analyzed: playstyle=%s patterns=%s",
            player_id,
            profile.playstyle.value,
            [p.type.value for p in patterns],
        )
        return BehaviorAnalysis(
            profile=profile.model_copy(deep=True),
            metrics=profile.metrics.model_copy(),
            patterns=list(patterns),
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_profile(self, player_id: str) -> PlayerProfile | None:
        with self._locks.get(player_id):
            profile = self._profiles.get(player_id)
            return profile.model_copy(deep=True) if profile else None

    def get_patterns(self, player_id: str) -> list[BehaviorPattern]:
        with self._locks.get(player_id):
            return list(self._patterns.get(player_id, []))

    def predict_next_action(self, player_id: str) -> ActionPrediction | None:
        """Guess the category of the player's next action."""
        with self._locks.get(player_id):
            return self._predict(player_id)

    def _predict(self, player_id: str) -> ActionPrediction | None:
        recent = self._recent.get(player_id)
        if not recent:
            return None
        profile = self._profiles[player_id]
        patterns = self._patterns.get(player_id, [])

        strong = [p for p in patterns if p.confidence > 0.7]
        if strong:
            pattern = max(strong, key=lambda p: p.confidence)
            if pattern.type == PatternType.RESOURCE_HOARDING:
                category = (
                    ActionCategory.MILITARY_BUILDUP
                    if profile.metrics.military_focus > 0.5
                    else ActionCategory.TERRITORY_EXPANSION
                )
            else:
                category = PATTERN_PREDICTIONS[pattern.type]
            return ActionPrediction(
                category=category,
                confidence=pattern.confidence,
                reasoning=f"Following {pattern.type.value} pattern",
            )

        playstyle = profile.playstyle
        if playstyle == Playstyle.AGGRESSIVE_MILITARY:
            category = (
                ActionCategory.MILITARY_BUILDUP
                if self.rng.random() > 0.5
                else ActionCategory.TERRITORY_EXPANSION
            )
            return ActionPrediction(
                category=category, confidence=0.6, reasoning="Aggressive playstyle tendency"
            )
        if playstyle == Playstyle.DEFENSIVE_TURTLE:
            return ActionPrediction(
                category=ActionCategory.DEFENSIVE_ACTIONS,
                confidence=0.7,
                reasoning="Defensive playstyle tendency",
            )
        if playstyle == Playstyle.ECONOMIC_FOCUSED:
            category = (
                ActionCategory.RESOURCE_GATHERING
                if self.rng.random() > 0.3
                else ActionCategory.TRADING
            )
            return ActionPrediction(
                category=category, confidence=0.6, reasoning="Economic playstyle tendency"
            )
        if playstyle == Playstyle.RAPID_EXPANDER:
            return ActionPrediction(
                category=ActionCategory.TERRITORY_EXPANSION,
                confidence=0.7,
                reasoning="Expansion playstyle tendency",
            )
        return ActionPrediction()

    def get_behavior_summary(self, player_id: str) -> BehaviorSummary | None:
        """Everything known about a player, or None if never observed."""
        with self._locks.get(player_id):
            profile = self._profiles.get(player_id)
            if profile is None:
                return None

            minutes = (profile.last_activity - profile.session_start).total_seconds() / 60
            activity = PlayerActivitySummary(
                total_actions=profile.total_actions,
                session_minutes=minutes,
                actions_per_minute=profile.total_actions / minutes if minutes > 0 else 0.0,
                last_activity=profile.last_activity,
            )
            return BehaviorSummary(
                player_id=player_id,
                playstyle=profile.playstyle,
                metrics=profile.metrics.model_copy(),
                activity=activity,
                patterns=list(self._patterns.get(player_id, [])),
                recent_action_count=len(self._recent[player_id]),
                predicted_next_action=self._predict(player_id),
            )

    def assess_threat(self, player_id: str) -> ThreatAssessment:
        """Threat assessment for a player; unknown players score 0.5."""
        with self._locks.get(player_id):
            profile = self._profiles.get(player_id)
            if profile is None:
                return ThreatAssessment(player_id=player_id)
            return assess_threat(profile, self._patterns.get(player_id, []))

    def get_all_profiles(self) -> dict[str, PlayerProfile]:
        player_ids = list(self._profiles)
        profiles: dict[str, PlayerProfile] = {}
        for player_id in player_ids:
            profile = self.get_profile(player_id)
            if profile is not None:
                profiles[player_id] = profile
        return profiles

    def reset_player(self, player_id: str) -> bool:
        """Forget everything about a player. Returns False if unknown."""
        with self._locks.get(player_id):
            existed = self._profiles.pop(player_id, None) is not None
            self._recent.pop(player_id, None)
            self._patterns.pop(player_id, None)
        self._locks.discard(player_id)
        if existed:
            logger.info("Reset behavior profile for player %s", player_id)
        return existed
