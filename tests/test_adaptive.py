"""Tests for adaptive macro strategy selection."""

from __future__ import annotations

import random

import pytest

from colony_ai.models.adaptation import AdaptationIntensity, AdaptationNeed
from colony_ai.models.colony import (
    ColonySnapshot,
    MacroStrategy,
    Personality,
    WorldSnapshot,
    create_colony,
)
from colony_ai.models.player import PlayerAction, Playstyle
from colony_ai.services.adaptive import (
    COUNTER_TABLE,
    AdaptiveStrategyEngine,
    adaptation_intensity,
    strategy_details,
    strategy_effectiveness,
)
from colony_ai.services.player_monitor import PlayerMonitor


def _record(monitor: PlayerMonitor, clock, player_id: str, *types: str) -> None:
    for action_type in types:
        monitor.record_action(player_id, PlayerAction(type=action_type))
        clock.advance(60)


def _military_player(monitor: PlayerMonitor, clock, player_id: str = "p1") -> None:
    """Ten alternating buildup and defensive actions: a high-threat turtle."""
    _record(monitor, clock, player_id, *(["military_buildup", "defensive_actions"] * 5))


def _gathering_player(monitor: PlayerMonitor, clock, player_id: str = "p2") -> None:
    """Ten gathering actions: a low-threat economic player."""
    _record(monitor, clock, player_id, *(["gather"] * 10))


def _snapshot() -> ColonySnapshot:
    return create_colony(personality=Personality.OPPORTUNIST).snapshot()


# =============================================================================
# Pure helpers
# =============================================================================


class TestHelpers:
    """Tests for the effectiveness table and intensity bands."""

    def test_effectiveness(self) -> None:
        assert strategy_effectiveness(MacroStrategy.DEFENSIVE, Playstyle.AGGRESSIVE_MILITARY) == 0.7
        assert strategy_effectiveness(MacroStrategy.ECONOMIC, Playstyle.AGGRESSIVE_MILITARY) == 0.2

    def test_unknown_pairs_are_neutral(self) -> None:
        """Strategies without a table row score 0.5."""
        assert strategy_effectiveness(MacroStrategy.COUNTER_SPECIFIC, Playstyle.RAPID_EXPANDER) == 0.5
        assert strategy_effectiveness(MacroStrategy.BALANCED, Playstyle.UNKNOWN) == 0.5

    def test_intensity_bands(self) -> None:
        assert adaptation_intensity(0.8) == AdaptationIntensity.HIGH
        assert adaptation_intensity(0.6) == AdaptationIntensity.MEDIUM
        assert adaptation_intensity(0.3) == AdaptationIntensity.LOW

    def test_strategy_details_scaled(self, clock) -> None:
        """Modifiers shrink or grow with adaptation intensity."""
        monitor = PlayerMonitor(clock=clock)
        _military_player(monitor, clock)
        summary = monitor.get_behavior_summary("p1")
        assert summary is not None

        details = strategy_details(MacroStrategy.AGGRESSIVE, summary, AdaptationNeed(score=0.8))

        assert details.intensity == AdaptationIntensity.HIGH
        assert details.aggression_modifier == pytest.approx(0.32)
        assert details.expansion_modifier == pytest.approx(0.16)
        assert details.player_counters is not None
        assert details.player_counters.military_focus == "defensive_focus"

    def test_template_not_mutated(self, clock) -> None:
        monitor = PlayerMonitor(clock=clock)
        _military_player(monitor, clock)
        summary = monitor.get_behavior_summary("p1")
        assert summary is not None

        strategy_details(MacroStrategy.AGGRESSIVE, summary, AdaptationNeed(score=0.8))
        again = strategy_details(MacroStrategy.AGGRESSIVE, summary, AdaptationNeed(score=0.8))

        assert again.aggression_modifier == pytest.approx(0.32)


# =============================================================================
# Engine
# =============================================================================


class TestAdaptiveStrategyEngine:
    """Tests for adapting a colony to a player."""

    @pytest.fixture
    def monitor(self, clock) -> PlayerMonitor:
        return PlayerMonitor(clock=clock)

    @pytest.fixture
    def engine(self, monitor: PlayerMonitor, clock, rng: random.Random) -> AdaptiveStrategyEngine:
        return AdaptiveStrategyEngine(monitor=monitor, rng=rng, clock=clock)

    def test_unknown_player(self, engine: AdaptiveStrategyEngine) -> None:
        result = engine.adapt_to_player(_snapshot(), "ghost")

        assert not result.adapted
        assert result.reason == "Insufficient player data for adaptation"

    def test_adapts_to_threatening_player(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """A high-threat player pushes the colony to a counter strategy."""
        _military_player(monitor, clock)
        snapshot = _snapshot()

        result = engine.adapt_to_player(snapshot, "p1")

        assert result.adapted
        assert result.old_strategy == MacroStrategy.BALANCED
        counters = {strategy for strategy, _, _ in COUNTER_TABLE[Playstyle.DEFENSIVE_TURTLE]}
        assert result.new_strategy in counters
        assert result.need is not None
        assert result.need.score == pytest.approx(0.3)
        assert "High player threat detected" in result.need.factors
        assert result.confidence == pytest.approx(0.36)

    def test_update_instructions(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """The result carries a colony update for the controller to apply."""
        _military_player(monitor, clock)
        snapshot = _snapshot()

        result = engine.adapt_to_player(snapshot, "p1")

        assert result.update is not None
        assert result.update.current_strategy == result.new_strategy
        assert result.update.adaptation_level == pytest.approx(0.3)
        assert result.details is not None
        assert result.update.aggression_level == pytest.approx(
            max(0.0, min(1.0, snapshot.aggression_level + result.details.aggression_modifier))
        )

    def test_cooldown_limits_changes(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """Two adaptations within the cooldown change strategy at most once."""
        _military_player(monitor, clock)
        snapshot = _snapshot()

        first = engine.adapt_to_player(snapshot, "p1")
        second = engine.adapt_to_player(snapshot, "p1")

        assert first.adapted
        assert not second.adapted
        assert second.reason == "Adaptation cooldown active"
        assert second.next_adaptation_available is not None
        assert (second.next_adaptation_available - clock.now).total_seconds() == pytest.approx(300)

        status = engine.get_adaptation_status(str(snapshot.colony_id))
        assert status is not None
        assert status.adaptation_count == 1
        assert status.in_cooldown

    def test_adapts_again_after_cooldown(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        _military_player(monitor, clock)
        snapshot = _snapshot()

        engine.adapt_to_player(snapshot, "p1")
        clock.advance(300)
        result = engine.adapt_to_player(snapshot, "p1")

        assert result.adapted
        status = engine.get_adaptation_status(str(snapshot.colony_id))
        assert status is not None
        assert status.adaptation_count == 2
        assert status.player_adaptation_counts == {"p1": 2}

    def test_force_bypasses_cooldown(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """Forced adaptation ignores the cooldown."""
        _military_player(monitor, clock)
        snapshot = _snapshot()

        engine.adapt_to_player(snapshot, "p1")
        forced = engine.force_adaptation(snapshot, "p1")

        assert forced.adapted

    def test_low_need_keeps_strategy(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """A predictable but harmless player does not warrant a change."""
        _gathering_player(monitor, clock)

        result = engine.adapt_to_player(_snapshot(), "p2")

        assert not result.adapted
        assert result.reason == "Current strategy sufficient"
        assert result.need is not None
        assert result.need.score == pytest.approx(0.2)

    def test_major_event_raises_need(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        """World-changing events make adaptation more urgent."""
        _gathering_player(monitor, clock)

        result = engine.adapt_to_player(_snapshot(), "p2", WorldSnapshot(major_event=True))

        assert result.adapted
        assert result.need is not None
        assert result.need.score == pytest.approx(0.5)
        counters = {strategy for strategy, _, _ in COUNTER_TABLE[Playstyle.ECONOMIC_FOCUSED]}
        assert result.new_strategy in counters

    def test_history_per_player(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        _military_player(monitor, clock)
        snapshot = _snapshot()
        colony_id = str(snapshot.colony_id)

        engine.adapt_to_player(snapshot, "p1")

        records = engine.get_player_adaptations(colony_id, "p1")
        assert len(records) == 1
        assert records[0].player_id == "p1"
        assert engine.get_player_adaptations(colony_id, "p2") == []

    def test_success_rate(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        _military_player(monitor, clock)
        snapshot = _snapshot()
        colony_id = str(snapshot.colony_id)

        engine.adapt_to_player(snapshot, "p1")
        engine.record_outcome(colony_id, success=True)

        status = engine.get_adaptation_status(colony_id)
        assert status is not None
        assert status.success_rate == pytest.approx(1.0)

    def test_reset_colony(
        self, engine: AdaptiveStrategyEngine, monitor: PlayerMonitor, clock
    ) -> None:
        _military_player(monitor, clock)
        snapshot = _snapshot()
        colony_id = str(snapshot.colony_id)
        engine.adapt_to_player(snapshot, "p1")

        assert engine.reset_colony(colony_id)
        assert not engine.reset_colony(colony_id)
        assert engine.get_adaptation_status(colony_id) is None
