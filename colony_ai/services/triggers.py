"""
Attack Trigger Evaluator for colony-ai.

Eight independent trigger conditions score how strongly a colony is pushed
toward attacking a particular target. Their weighted sum, adjusted for
personality, aggression and attack cooldowns, decides whether to attack
and at what scale.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, deque
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime

from colony_ai.clock import Clock, utc_now
from colony_ai.config import TriggerConfig
from colony_ai.models.colony import ColonySnapshot, Personality, TargetCandidate
from colony_ai.models.trigger import (
    AggressionTrend,
    AttackFrequency,
    AttackRecord,
    AttackType,
    CooldownStatus,
    ReasonFrequency,
    TriggerAnalysis,
    TriggerEvaluation,
    TriggerHistoryEntry,
    TriggerResult,
    TriggerType,
)
from colony_ai.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

PERSONALITY_TRIGGER_MULTIPLIER: dict[Personality, float] = {
    Personality.AGGRESSIVE: 1.3,
    Personality.DEFENSIVE: 0.7,
    Personality.OPPORTUNIST: 1.1,
}

# (min score, type, preparation seconds, description), checked top down
ATTACK_BANDS: list[tuple[float, AttackType, float, str]] = [
    (0.7, AttackType.SIEGE, 60.0, "Siege operation"),
    (0.6, AttackType.ASSAULT, 30.0, "Coordinated assault"),
    (0.4, AttackType.SKIRMISH, 15.0, "Limited skirmish"),
]
CAMPAIGN_SCORE = 0.8
CAMPAIGN_MILITARY_FOCUS = 0.7
MAX_ATTACK_CONFIDENCE = 0.9


def _result(intensity: float, reasons: list[str], threshold: float, fallback: str, **factors) -> TriggerResult:
    return TriggerResult(
        triggered=intensity > threshold,
        intensity=min(1.0, intensity),
        reasons=reasons,
        reason="; ".join(reasons) or fallback,
        factors=factors,
    )


# =============================================================================
# Trigger Conditions
# =============================================================================


def resource_threshold(snapshot: ColonySnapshot, target: TargetCandidate) -> TriggerResult:
    """Plenty of resources or idle military capacity to spend on an attack."""
    intensity = 0.0
    reasons: list[str] = []
    total = snapshot.total_resources

    if total > 1000:
        intensity += 0.3
        reasons.append("Abundant resources available for military action")

    utilization = snapshot.used_military_capacity / max(1, snapshot.military_capacity)
    if utilization > 0.8:
        intensity += 0.4
        reasons.append("High military capacity ready for deployment")

    if snapshot.resources:
        average = total / len(snapshot.resources)
        for kind, amount in snapshot.resources.items():
            if amount > average * 2:
                intensity += 0.1
                reasons.append(f"Excess {kind.value} resources could fund military operations")

    if target.estimated_resources > total * 1.5:
        intensity += 0.3
        reasons.append("Target has significantly more resources")

    return _result(
        intensity,
        reasons,
        0.2,
        "Resource conditions not met",
        total_resources=total,
        military_utilization=utilization,
        target_resource_ratio=target.estimated_resources / (total or 1),
    )


def territory_proximity(snapshot: ColonySnapshot, target: TargetCandidate) -> TriggerResult:
    intensity = 0.0
    reasons: list[str] = []

    if target.distance < 50:
        intensity += 0.6
        reasons.append("Target is in immediate proximity")
    elif target.distance < 100:
        intensity += 0.3
        reasons.append("Target is within medium range")

    if target.territory_size > snapshot.territory_size:
        intensity += 0.2
        reasons.append("Target has larger territory")
    if target.border_tension > 0.6:
        intensity += 0.3
        reasons.append("High border tension detected")
    if target.strategic_value > 0.7:
        intensity += 0.2
        reasons.append("Target holds strategically valuable position")

    return _result(
        intensity,
        reasons,
        0.2,
        "Territory factors insufficient",
        distance=target.distance,
        territory_ratio=target.territory_size / (snapshot.territory_size or 1),
        border_tension=target.border_tension,
        strategic_value=target.strategic_value,
    )


def time_based(
    snapshot: ColonySnapshot, attacks: list[AttackRecord], now: datetime
) -> TriggerResult:
    """
    Aggression windows over game time.

    Game time is minutes since the colony was created. A small sine term
    keeps attack timing from being perfectly regular.
    """
    intensity = 0.0
    reasons: list[str] = []
    minutes = max(0.0, (now - snapshot.created_at).total_seconds() / 60)

    if 15 <= minutes <= 45:
        intensity += 0.3
        reasons.append("Early aggression window active")
    if minutes > 120:
        intensity += 0.2
        reasons.append("Late game - increased aggression")

    since_last: float | None = None
    if attacks:
        since_last = (now - attacks[-1].timestamp).total_seconds() / 60
        if since_last > 30:
            intensity += 0.2
            reasons.append("Sufficient time elapsed since last military action")
    else:
        intensity += 0.1
        reasons.append("No previous attacks - opportunity for first strike")

    intensity += max(0.0, math.sin(minutes / 20) * 0.1)

    return _result(
        intensity,
        reasons,
        0.1,
        "Time factors insufficient",
        game_minutes=minutes,
        minutes_since_last_attack=since_last,
        attack_count=len(attacks),
    )


def player_weakness(target: TargetCandidate) -> TriggerResult:
    intensity = 0.0
    reasons: list[str] = []

    if target.military_strength < 0.4:
        intensity += 0.5
        reasons.append("Target has weak military forces")
    if target.resource_shortage > 0.6:
        intensity += 0.3
        reasons.append("Target experiencing resource shortages")
    if target.recent_losses > 0.3:
        intensity += 0.4
        reasons.append("Target has suffered recent losses")
    if target.has_defensive_gaps:
        intensity += 0.3
        reasons.append("Defensive vulnerabilities identified")
    if target.engaged_in_conflict:
        intensity += 0.4
        reasons.append("Target is engaged in other conflicts")
    if target.internal_instability > 0.5:
        intensity += 0.2
        reasons.append("Target economy is unstable")

    return _result(
        intensity,
        reasons,
        0.2,
        "Target shows no significant weaknesses",
        military_strength=target.military_strength,
        resource_shortage=target.resource_shortage,
        recent_losses=target.recent_losses,
        engaged_in_conflict=target.engaged_in_conflict,
        internal_instability=target.internal_instability,
    )


def strategic_opportunity(snapshot: ColonySnapshot, target: TargetCandidate) -> TriggerResult:
    intensity = 0.0
    reasons: list[str] = []

    gain = target.estimated_resources / max(1.0, snapshot.total_resources)
    if gain > 1.5:
        intensity += 0.3
        reasons.append("High resource gain potential")
    if target.strategic_value > 0.7:
        intensity += 0.3
        reasons.append("Strategic position can be acquired")
    if target.has_technology:
        intensity += 0.2
        reasons.append("Can capture advanced technology")
    if target.elimination_value > 0.7:
        intensity += 0.4
        reasons.append("Opportunity to eliminate opponent")
    if target.alliance_disruption > 0.5:
        intensity += 0.2
        reasons.append("Attack could disrupt enemy alliances")

    return _result(
        intensity,
        reasons,
        0.2,
        "No significant strategic opportunities",
        resource_gain_potential=gain,
        strategic_value=target.strategic_value,
        elimination_value=target.elimination_value,
        has_technology=target.has_technology,
    )


def defensive_necessity(target: TargetCandidate) -> TriggerResult:
    """Strike first against a target that is becoming dangerous."""
    intensity = 0.0
    reasons: list[str] = []

    if target.threat_level > 0.7:
        intensity += 0.6
        reasons.append("High threat level detected - preemptive action needed")
    if target.military_buildup > 0.6:
        intensity += 0.4
        reasons.append("Target is building military forces")
    if target.expansion_toward_us > 0.5:
        intensity += 0.5
        reasons.append("Target expanding toward our territory")
    if target.resource_competition > 0.6:
        intensity += 0.3
        reasons.append("Competition for critical resources")
    if target.alliance_threat > 0.5:
        intensity += 0.3
        reasons.append("Enemy alliance forming against us")

    return _result(
        intensity,
        reasons,
        0.3,
        "No immediate defensive threats",
        threat_level=target.threat_level,
        military_buildup=target.military_buildup,
        expansion_toward_us=target.expansion_toward_us,
        resource_competition=target.resource_competition,
    )


def economic_pressure(snapshot: ColonySnapshot) -> TriggerResult:
    intensity = 0.0
    reasons: list[str] = []

    if snapshot.total_resources < 200:
        intensity += 0.4
        reasons.append("Low resource reserves - raid needed")
    if snapshot.economic_growth_rate < 0.02:
        intensity += 0.3
        reasons.append("Economic stagnation - need external resources")
    if snapshot.trade_disruption > 0.5:
        intensity += 0.2
        reasons.append("Trade routes disrupted")
    if snapshot.maintenance_burden > 0.7:
        intensity += 0.2
        reasons.append("High maintenance costs strain economy")

    return _result(
        intensity,
        reasons,
        0.2,
        "Economic situation stable",
        total_resources=snapshot.total_resources,
        economic_growth_rate=snapshot.economic_growth_rate,
        trade_disruption=snapshot.trade_disruption,
        maintenance_burden=snapshot.maintenance_burden,
    )


def diplomatic_situation(target: TargetCandidate) -> TriggerResult:
    intensity = 0.0
    reasons: list[str] = []

    if target.relationship < -0.5:
        intensity += 0.3
        reasons.append("Relations have deteriorated significantly")
    if target.is_enemy_of_allies:
        intensity += 0.2
        reasons.append("Potential allies against target available")
    if target.betrayed_us:
        intensity += 0.3
        reasons.append("Recent betrayal justifies action")

    return _result(
        intensity,
        reasons,
        0.1,
        "Diplomatic situation neutral",
        relationship=target.relationship,
        betrayed_us=target.betrayed_us,
    )


def determine_attack_type(score: float, military_focus: float) -> tuple[AttackType, float, str]:
    """Attack scale for a score: (type, preparation seconds, description)."""
    if score >= CAMPAIGN_SCORE and military_focus > CAMPAIGN_MILITARY_FOCUS:
        return AttackType.CAMPAIGN, 0.0, "Large-scale military campaign"
    for minimum, attack_type, delay, description in ATTACK_BANDS:
        if score >= minimum:
            return attack_type, delay, description
    return AttackType.RAID, 5.0, "Quick raid"


def calculate_urgency(breakdown: dict[TriggerType, TriggerResult]) -> float:
    urgency = 0.0
    for trigger_type, weight in (
        (TriggerType.DEFENSIVE_NECESSITY, 0.5),
        (TriggerType.STRATEGIC_OPPORTUNITY, 0.3),
        (TriggerType.PLAYER_WEAKNESS, 0.4),
    ):
        result = breakdown.get(trigger_type)
        if result is not None and result.triggered:
            urgency += result.intensity * weight
    return min(1.0, urgency)


# =============================================================================
# Evaluator
# =============================================================================


@dataclass
class _ColonyTriggerState:
    attacks: deque[AttackRecord]
    history: deque[TriggerHistoryEntry]


@dataclass
class TriggerEvaluator:
    """
    Per-colony attack trigger evaluation and cooldown tracking.

    Attack history and evaluation history are kept per colony, each colony
    guarded by its own lock.
    """

    config: TriggerConfig = field(default_factory=TriggerConfig)
    clock: Clock = utc_now

    _colonies: dict[str, _ColonyTriggerState] = field(default_factory=dict)
    _locks: KeyedLocks = field(default_factory=KeyedLocks)

    def _state(self, colony_id: str) -> _ColonyTriggerState:
        state = self._colonies.get(colony_id)
        if state is None:
            state = _ColonyTriggerState(
                attacks=deque(maxlen=self.config.attack_history_limit),
                history=deque(maxlen=self.config.trigger_history_limit),
            )
            self._colonies[colony_id] = state
        return state

    def cooldown_seconds(self, attack_type: AttackType) -> float:
        return self.config.cooldowns.get(attack_type, self.config.default_cooldown_seconds)

    def evaluate(self, snapshot: ColonySnapshot, target: TargetCandidate) -> TriggerEvaluation:
        """
        Evaluate every trigger against one target.

        Args:
            snapshot: Read-only view of the attacking colony
            target: Candidate target with its observed attributes

        Returns:
            Combined evaluation; ``should_attack`` iff the score reaches the
            attack threshold
        """
        colony_id = str(snapshot.colony_id)
        now = self.clock()

        with self._locks.get(colony_id):
            state = self._state(colony_id)
            attacks = list(state.attacks)

            breakdown: dict[TriggerType, TriggerResult] = {
                TriggerType.RESOURCE_THRESHOLD: resource_threshold(snapshot, target),
                TriggerType.TERRITORY_PROXIMITY: territory_proximity(snapshot, target),
                TriggerType.TIME_BASED: time_based(snapshot, attacks, now),
                TriggerType.PLAYER_WEAKNESS: player_weakness(target),
                TriggerType.STRATEGIC_OPPORTUNITY: strategic_opportunity(snapshot, target),
                TriggerType.DEFENSIVE_NECESSITY: defensive_necessity(target),
                TriggerType.ECONOMIC_PRESSURE: economic_pressure(snapshot),
                TriggerType.DIPLOMATIC_SITUATION: diplomatic_situation(target),
            }

            score = 0.0
            reasons: list[str] = []
            for trigger_type, result in breakdown.items():
                if result.triggered:
                    score += result.intensity * self.config.weights.get(trigger_type, 0.1)
                    reasons.append(result.reason)

            score *= PERSONALITY_TRIGGER_MULTIPLIER.get(snapshot.personality, 1.0)
            score *= 0.5 + snapshot.aggression_level
            score = self._apply_cooldown(score, attacks, now)
            score = max(0.0, min(1.0, score))

            attack_type, delay, description = determine_attack_type(score, snapshot.military_focus)
            evaluation = TriggerEvaluation(
                should_attack=score >= self.config.attack_threshold,
                trigger_score=score,
                attack_type=attack_type,
                attack_description=description,
                confidence=min(MAX_ATTACK_CONFIDENCE, score),
                urgency=calculate_urgency(breakdown),
                recommended_delay_seconds=delay,
                reasons=reasons,
                breakdown=breakdown,
                cooldown_status=self._cooldown_status(attacks, now),
                target_id=target.id,
                timestamp=now,
            )

            state.history.append(
                TriggerHistoryEntry(
                    timestamp=now,
                    trigger_score=score,
                    should_attack=evaluation.should_attack,
                    attack_type=attack_type,
                    reasons=reasons,
                    urgency=evaluation.urgency,
                )
            )

        logger.debug(
            "Colony %s vs target %s: score %.2f, attack=%s",
            colony_id,
            target.id,
            score,
            evaluation.should_attack,
        )
        return evaluation

    def _apply_cooldown(self, score: float, attacks: list[AttackRecord], now: datetime) -> float:
        """Scale the score down while the last attack's type is still cooling down."""
        if not attacks:
            return score
        last = attacks[-1]
        required = self.cooldown_seconds(last.attack_type)
        elapsed = (now - last.timestamp).total_seconds()
        if required > 0 and elapsed < required:
            return score * max(0.0, elapsed / required)
        return score

    def _cooldown_status(
        self, attacks: list[AttackRecord], now: datetime
    ) -> dict[AttackType, CooldownStatus]:
        status: dict[AttackType, CooldownStatus] = {}
        for attack_type in AttackType:
            last = max(
                (a for a in attacks if a.attack_type == attack_type),
                key=lambda a: a.timestamp,
                default=None,
            )
            if last is None:
                status[attack_type] = CooldownStatus()
                continue
            elapsed = (now - last.timestamp).total_seconds()
            remaining = max(0.0, self.cooldown_seconds(attack_type) - elapsed)
            status[attack_type] = CooldownStatus(
                available=remaining == 0,
                remaining_seconds=remaining,
                last_used=last.timestamp,
            )
        return status

    # =========================================================================
    # Attack History
    # =========================================================================

    def record_attack_launch(
        self, colony_id: str, attack_type: AttackType, target_id: str | None = None
    ) -> AttackRecord:
        """Remember a launched attack; it starts that type's cooldown."""
        record = AttackRecord(timestamp=self.clock(), attack_type=attack_type, target_id=target_id)
        with self._locks.get(colony_id):
            self._state(colony_id).attacks.append(record)
        logger.info("Colony %s launched %s against %s", colony_id, attack_type.value, target_id)
        return record

    def get_cooldown_status(self, colony_id: str) -> dict[AttackType, CooldownStatus]:
        with self._locks.get(colony_id):
            attacks = list(self._state(colony_id).attacks)
        return self._cooldown_status(attacks, self.clock())

    def is_available(self, colony_id: str, attack_type: AttackType) -> bool:
        """Whether an attack type is off cooldown for a colony."""
        return self.get_cooldown_status(colony_id)[attack_type].available

    def analyze_trigger_patterns(self, colony_id: str) -> TriggerAnalysis | None:
        """
        Summarize a colony's attack behavior.

        Returns None for a colony that has never been evaluated.
        """
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            if state is None:
                return None
            attacks = list(state.attacks)
            history = list(state.history)

        return TriggerAnalysis(
            colony_id=colony_id,
            total_attacks=len(attacks),
            attack_frequency=attack_frequency(attacks),
            trigger_patterns=reason_frequencies(history),
            aggression_trend=aggression_trend(history),
            cooldown_status=self._cooldown_status(attacks, self.clock()),
            recent_triggers=history[-5:],
        )

    def checkpoint(self, colony_id: str) -> _ColonyTriggerState | None:
        """Copy of a colony's attack and evaluation history."""
        with self._locks.get(colony_id):
            state = self._colonies.get(colony_id)
            return deepcopy(state) if state is not None else None

    def restore(self, colony_id: str, checkpoint: _ColonyTriggerState | None) -> None:
        with self._locks.get(colony_id):
            if checkpoint is None:
                self._colonies.pop(colony_id, None)
            else:
                self._colonies[colony_id] = checkpoint

    def reset_colony(self, colony_id: str) -> None:
        with self._locks.get(colony_id):
            self._colonies.pop(colony_id, None)
        self._locks.discard(colony_id)


def attack_frequency(attacks: list[AttackRecord]) -> AttackFrequency:
    if len(attacks) < 2:
        return AttackFrequency()

    intervals = [
        (current.timestamp - previous.timestamp).total_seconds()
        for previous, current in zip(attacks, attacks[1:])
    ]
    average = sum(intervals) / len(intervals)
    per_minute = len(intervals) / (average / 60) if average > 0 else 0.0
    return AttackFrequency(
        average_interval_seconds=average,
        attacks_per_minute=per_minute,
        total_intervals=len(intervals),
    )


def reason_frequencies(history: list[TriggerHistoryEntry], top: int = 5) -> list[ReasonFrequency]:
    """Most common trigger reasons, as counts and percentage of evaluations."""
    counts = Counter(reason for entry in history for reason in entry.reasons)
    return [
        ReasonFrequency(reason=reason, frequency=count, percentage=count / len(history) * 100)
        for reason, count in counts.most_common(top)
    ]


def aggression_trend(history: list[TriggerHistoryEntry]) -> AggressionTrend:
    """Compare the last five scores against the five before them."""
    if len(history) < 3:
        return AggressionTrend.INSUFFICIENT_DATA

    recent = [entry.trigger_score for entry in history[-5:]]
    older = [entry.trigger_score for entry in history[-10:-5]]
    if not older:
        return AggressionTrend.INSUFFICIENT_DATA

    trend = sum(recent) / len(recent) - sum(older) / len(older)
    if trend > 0.1:
        return AggressionTrend.INCREASING
    if trend < -0.1:
        return AggressionTrend.DECREASING
    return AggressionTrend.STABLE
