"""Tests for attack trigger evaluation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from colony_ai.models.colony import ColonySnapshot, Personality, TargetCandidate, create_colony
from colony_ai.models.trigger import (
    AggressionTrend,
    AttackRecord,
    AttackType,
    TriggerHistoryEntry,
    TriggerResult,
    TriggerType,
)
from colony_ai.services.triggers import (
    TriggerEvaluator,
    aggression_trend,
    attack_frequency,
    calculate_urgency,
    defensive_necessity,
    determine_attack_type,
    diplomatic_situation,
    economic_pressure,
    player_weakness,
    territory_proximity,
)

HOSTILE_WEAK_TARGET = TargetCandidate(
    id="player_colony",
    distance=10,
    military_strength=0.2,
    has_defensive_gaps=True,
    engaged_in_conflict=True,
    threat_level=0.9,
    military_buildup=0.8,
    strategic_value=0.8,
    elimination_value=0.8,
    relationship=-0.8,
    betrayed_us=True,
)

DISTANT_TARGET = TargetCandidate(id="far_colony", distance=200)


def _snapshot(clock, personality: Personality = Personality.AGGRESSIVE, **fields) -> ColonySnapshot:
    fields.setdefault("created_at", clock.now)
    return create_colony(personality=personality).snapshot().model_copy(update=fields)


# =============================================================================
# Individual triggers
# =============================================================================


class TestTriggerConditions:
    """Tests for the eight trigger functions."""

    def test_defensive_necessity(self) -> None:
        """A threatening, arming target calls for a preemptive strike."""
        result = defensive_necessity(
            TargetCandidate(id="t", threat_level=0.9, military_buildup=0.8)
        )

        assert result.triggered
        assert result.intensity >= 0.6
        assert len(result.reasons) == 2

    def test_defensive_necessity_quiet(self) -> None:
        result = defensive_necessity(TargetCandidate(id="t"))

        assert not result.triggered
        assert result.intensity == 0.0
        assert result.reason == "No immediate defensive threats"

    def test_player_weakness(self) -> None:
        result = player_weakness(
            TargetCandidate(id="t", military_strength=0.2, has_defensive_gaps=True)
        )

        assert result.triggered
        assert result.intensity == pytest.approx(0.8)

    def test_intensity_capped(self) -> None:
        """Stacked conditions never push intensity past 1."""
        result = player_weakness(HOSTILE_WEAK_TARGET)
        assert result.intensity == 1.0

    def test_territory_proximity(self, clock) -> None:
        """Medium range plus a larger target territory."""
        result = territory_proximity(_snapshot(clock), TargetCandidate(id="t", distance=60))

        assert result.triggered
        assert result.intensity == pytest.approx(0.5)
        assert result.factors["distance"] == 60

    def test_economic_pressure(self, clock) -> None:
        snapshot = _snapshot(clock, total_resources=100.0, economic_growth_rate=0.01)
        result = economic_pressure(snapshot)

        assert result.triggered
        assert result.intensity == pytest.approx(0.7)

    def test_stable_economy(self, clock) -> None:
        assert not economic_pressure(_snapshot(clock)).triggered

    def test_diplomatic_situation(self) -> None:
        result = diplomatic_situation(
            TargetCandidate(id="t", relationship=-0.8, betrayed_us=True)
        )
        assert result.intensity == pytest.approx(0.6)


class TestAttackType:
    """Tests for attack scale selection."""

    def test_bands(self) -> None:
        assert determine_attack_type(0.75, 0.5)[0] == AttackType.SIEGE
        assert determine_attack_type(0.65, 0.5)[0] == AttackType.ASSAULT
        assert determine_attack_type(0.45, 0.5)[0] == AttackType.SKIRMISH
        assert determine_attack_type(0.2, 0.5) == (AttackType.RAID, 5.0, "Quick raid")

    def test_campaign_needs_military_focus(self) -> None:
        """Only a military-heavy colony escalates to a campaign."""
        assert determine_attack_type(0.85, 0.8)[0] == AttackType.CAMPAIGN
        assert determine_attack_type(0.85, 0.5)[0] == AttackType.SIEGE

    def test_urgency(self) -> None:
        breakdown = {
            TriggerType.DEFENSIVE_NECESSITY: TriggerResult(triggered=True, intensity=1.0),
            TriggerType.PLAYER_WEAKNESS: TriggerResult(triggered=True, intensity=0.5),
            TriggerType.STRATEGIC_OPPORTUNITY: TriggerResult(triggered=False, intensity=0.9),
        }
        assert calculate_urgency(breakdown) == pytest.approx(0.7)


# =============================================================================
# Evaluator
# =============================================================================


class TestTriggerEvaluator:
    """Tests for the combined evaluation and cooldowns."""

    @pytest.fixture
    def evaluator(self, clock) -> TriggerEvaluator:
        return TriggerEvaluator(clock=clock)

    def test_strong_case_attacks(self, evaluator: TriggerEvaluator, clock) -> None:
        """An aggressive colony facing a weak, hostile neighbor attacks."""
        evaluation = evaluator.evaluate(_snapshot(clock), HOSTILE_WEAK_TARGET)

        assert evaluation.should_attack
        assert evaluation.trigger_score == 1.0
        assert evaluation.attack_type == AttackType.SIEGE
        assert evaluation.recommended_delay_seconds == 60.0
        assert evaluation.confidence == pytest.approx(0.9)
        assert evaluation.target_id == "player_colony"
        assert len(evaluation.breakdown) == 8

    def test_weak_case_holds(self, evaluator: TriggerEvaluator, clock) -> None:
        """A defensive colony leaves a distant, healthy colony alone."""
        evaluation = evaluator.evaluate(
            _snapshot(clock, personality=Personality.DEFENSIVE), DISTANT_TARGET
        )

        assert not evaluation.should_attack
        assert evaluation.trigger_score < 0.6
        assert evaluation.attack_type == AttackType.RAID

    def test_score_bounds_and_threshold(self, evaluator: TriggerEvaluator, clock) -> None:
        """Scores stay in [0, 1] and the attack flag follows the threshold."""
        for personality in Personality:
            for target in (HOSTILE_WEAK_TARGET, DISTANT_TARGET, TargetCandidate(id="t")):
                evaluation = evaluator.evaluate(_snapshot(clock, personality=personality), target)

                assert 0.0 <= evaluation.trigger_score <= 1.0
                assert evaluation.should_attack == (evaluation.trigger_score >= 0.6)

    def test_cooldown_suppresses_attack(self, evaluator: TriggerEvaluator, clock) -> None:
        """Right after an attack the score is scaled to zero until the cooldown passes."""
        snapshot = _snapshot(clock)
        colony_id = str(snapshot.colony_id)
        evaluator.record_attack_launch(colony_id, AttackType.SIEGE, "player_colony")

        evaluation = evaluator.evaluate(snapshot, HOSTILE_WEAK_TARGET)

        assert evaluation.trigger_score == 0.0
        assert not evaluation.should_attack
        siege = evaluation.cooldown_status[AttackType.SIEGE]
        assert not siege.available
        assert siege.remaining_seconds == pytest.approx(1200.0)
        assert evaluation.cooldown_status[AttackType.RAID].available

        clock.advance(1200)
        assert evaluator.evaluate(snapshot, HOSTILE_WEAK_TARGET).should_attack
        assert evaluator.is_available(colony_id, AttackType.SIEGE)

    def test_cooldowns_are_per_colony(self, evaluator: TriggerEvaluator, clock) -> None:
        evaluator.record_attack_launch("colony_a", AttackType.RAID)

        assert not evaluator.is_available("colony_a", AttackType.RAID)
        assert evaluator.is_available("colony_b", AttackType.RAID)

    def test_analysis(self, evaluator: TriggerEvaluator, clock) -> None:
        """The analysis summarizes history for an evaluated colony."""
        snapshot = _snapshot(clock)
        colony_id = str(snapshot.colony_id)
        for _ in range(3):
            evaluator.evaluate(snapshot, HOSTILE_WEAK_TARGET)

        analysis = evaluator.analyze_trigger_patterns(colony_id)

        assert analysis is not None
        assert len(analysis.recent_triggers) == 3
        assert analysis.aggression_trend == AggressionTrend.INSUFFICIENT_DATA
        assert analysis.trigger_patterns[0].percentage == pytest.approx(100.0)

    def test_unknown_and_reset_colony(self, evaluator: TriggerEvaluator, clock) -> None:
        snapshot = _snapshot(clock)
        colony_id = str(snapshot.colony_id)

        assert evaluator.analyze_trigger_patterns(colony_id) is None
        evaluator.evaluate(snapshot, DISTANT_TARGET)
        assert evaluator.analyze_trigger_patterns(colony_id) is not None

        evaluator.reset_colony(colony_id)
        assert evaluator.analyze_trigger_patterns(colony_id) is None


class TestHistoryAnalysis:
    """Tests for pure history helpers."""

    def test_attack_frequency(self, clock) -> None:
        start = clock.now
        attacks = [
            AttackRecord(timestamp=start, attack_type=AttackType.RAID),
            AttackRecord(timestamp=start + timedelta(seconds=60), attack_type=AttackType.RAID),
            AttackRecord(timestamp=start + timedelta(seconds=180), attack_type=AttackType.RAID),
        ]
        frequency = attack_frequency(attacks)

        assert frequency.average_interval_seconds == pytest.approx(90.0)
        assert frequency.attacks_per_minute == pytest.approx(2 / 1.5)
        assert frequency.total_intervals == 2

    def test_single_attack_has_no_frequency(self, clock) -> None:
        frequency = attack_frequency([AttackRecord(timestamp=clock.now, attack_type=AttackType.RAID)])
        assert frequency.average_interval_seconds is None

    def test_increasing_trend(self, clock) -> None:
        """Recent scores well above older ones read as increasing aggression."""
        history = [
            TriggerHistoryEntry(
                timestamp=clock.now,
                trigger_score=0.2 if i < 5 else 0.8,
                should_attack=i >= 5,
                attack_type=AttackType.RAID,
            )
            for i in range(10)
        ]

        assert aggression_trend(history) == AggressionTrend.INCREASING
        assert aggression_trend(history[::-1]) == AggressionTrend.DECREASING
