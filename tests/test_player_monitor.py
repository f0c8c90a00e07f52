"""Tests for player behavior monitoring."""

from __future__ import annotations

import pytest

from colony_ai.config import PlayerMonitorConfig
from colony_ai.models.player import (
    ActionCategory,
    PatternType,
    PlayerAction,
    PlayerMetrics,
    PlayerProfile,
    Playstyle,
)
from colony_ai.services.player_monitor import (
    PlayerMonitor,
    assess_threat,
    categorize_action,
    classify_playstyle,
    detect_patterns,
)


def _actions(*types: str) -> list[PlayerAction]:
    return [PlayerAction(type=t) for t in types]


def _categorized(*types: str) -> list[PlayerAction]:
    return [
        a.model_copy(update={"category": categorize_action(a)}) for a in _actions(*types)
    ]


# =============================================================================
# Categorization
# =============================================================================


class TestCategorizeAction:
    """Tests for sorting actions into categories."""

    def test_keywords(self) -> None:
        """Keywords in the action type pick the category."""
        assert categorize_action(PlayerAction(type="gather_wood")) == ActionCategory.RESOURCE_GATHERING
        assert categorize_action(PlayerAction(type="train_soldiers")) == ActionCategory.MILITARY_BUILDUP
        assert categorize_action(PlayerAction(type="build_wall")) == ActionCategory.DEFENSIVE_ACTIONS
        assert categorize_action(PlayerAction(type="scout_north")) == ActionCategory.EXPLORATION
        assert categorize_action(PlayerAction(type="settle_valley")) == ActionCategory.TERRITORY_EXPANSION

    def test_exact_category_name(self) -> None:
        """An action type that names a category maps to it directly."""
        assert categorize_action(PlayerAction(type="trading")) == ActionCategory.TRADING
        assert (
            categorize_action(PlayerAction(type="defensive_actions"))
            == ActionCategory.DEFENSIVE_ACTIONS
        )

    def test_explicit_category_wins(self) -> None:
        """A preset category is kept."""
        action = PlayerAction(type="gather", category=ActionCategory.DIPLOMACY)
        assert categorize_action(action) == ActionCategory.DIPLOMACY

    def test_unknown_defaults_to_gathering(self) -> None:
        """Unrecognized actions count as resource gathering."""
        assert categorize_action(PlayerAction(type="dance")) == ActionCategory.RESOURCE_GATHERING


# =============================================================================
# Pure analysis
# =============================================================================


class TestClassifyPlaystyle:
    """Tests for playstyle classification."""

    def test_aggressive_military(self) -> None:
        metrics = PlayerMetrics(aggressiveness=0.8, military_focus=0.7)
        assert classify_playstyle(metrics) == Playstyle.AGGRESSIVE_MILITARY

    def test_defensive_turtle(self) -> None:
        metrics = PlayerMetrics(
            aggressiveness=0.3, military_focus=0.6, expansion_tendency=0.1, risk_tolerance=0.1
        )
        assert classify_playstyle(metrics) == Playstyle.DEFENSIVE_TURTLE

    def test_economic(self) -> None:
        metrics = PlayerMetrics(economic_focus=0.8, military_focus=0.1)
        assert classify_playstyle(metrics) == Playstyle.ECONOMIC_FOCUSED

    def test_balanced(self) -> None:
        """Default metrics read as balanced."""
        assert classify_playstyle(PlayerMetrics()) == Playstyle.BALANCED_STRATEGIC


class TestDetectPatterns:
    """Tests for pattern detection."""

    def test_too_few_actions(self) -> None:
        """Short windows yield no patterns."""
        assert detect_patterns(_categorized("train", "train", "train")) == []

    def test_military_preparation(self) -> None:
        """Three consecutive military actions signal preparation."""
        recent = _categorized("gather", "train", "recruit", "fortify", "gather")
        patterns = detect_patterns(recent)

        types = {p.type for p in patterns}
        assert PatternType.MILITARY_PREPARATION in types

    def test_expansion_pressure(self) -> None:
        """Three or more expansions build pressure."""
        recent = _categorized("expand", "claim", "settle", "gather", "gather", "gather")
        patterns = detect_patterns(recent)

        expansion = [p for p in patterns if p.type == PatternType.EXPANSION_PRESSURE]
        assert len(expansion) == 1
        assert expansion[0].confidence == pytest.approx(0.6)

    def test_hit_and_run(self) -> None:
        """Raids followed by retreats are hit-and-run tactics."""
        recent = _categorized("raid", "retreat", "raid", "retreat", "raid", "retreat")
        patterns = detect_patterns(recent)

        hit_and_run = [p for p in patterns if p.type == PatternType.HIT_AND_RUN_TACTICS]
        assert len(hit_and_run) == 1
        assert hit_and_run[0].confidence == pytest.approx(1.0)

    def test_trade_focus(self) -> None:
        recent = _categorized("trade", "trade", "gather", "gather", "explore")
        types = {p.type for p in detect_patterns(recent)}
        assert PatternType.TRADE_FOCUSED in types


class TestAssessThreat:
    """Tests for the pure threat score."""

    def test_neutral_profile(self) -> None:
        """Default metrics without patterns score 0.5."""
        assessment = assess_threat(PlayerProfile(player_id="p1"), [])
        assert assessment.threat_level == pytest.approx(0.5)
        assert assessment.known

    def test_clamped(self) -> None:
        """Threat stays within [0.1, 0.95]."""
        calm = PlayerProfile(
            player_id="p1", metrics=PlayerMetrics(aggressiveness=0.0, military_focus=0.0)
        )
        hostile = PlayerProfile(
            player_id="p2", metrics=PlayerMetrics(aggressiveness=1.0, military_focus=1.0)
        )
        patterns = detect_patterns(
            _categorized("train", "train", "train", "expand", "expand", "expand")
        )

        assert assess_threat(calm, []).threat_level >= 0.1
        assert assess_threat(hostile, patterns).threat_level == pytest.approx(0.95)


# =============================================================================
# Monitor service
# =============================================================================


class TestPlayerMonitor:
    """Tests for the stateful monitor."""

    @pytest.fixture
    def monitor(self, clock, rng) -> PlayerMonitor:
        return PlayerMonitor(clock=clock, rng=rng)

    def _record_military(self, monitor: PlayerMonitor, clock, count: int = 10):
        analysis = None
        for i in range(count):
            action_type = "military_buildup" if i % 2 == 0 else "defensive_actions"
            analysis = monitor.record_action("p1", PlayerAction(type=action_type))
            clock.advance(60)
        return analysis

    def test_analysis_cadence(self, monitor: PlayerMonitor, clock) -> None:
        """Only every tenth action triggers an analysis."""
        for _ in range(9):
            assert monitor.record_action("p1", PlayerAction(type="gather")) is None
        assert monitor.record_action("p1", PlayerAction(type="gather")) is not None

    def test_military_preparation_detected(self, monitor: PlayerMonitor, clock) -> None:
        """Ten military and defensive actions reveal military preparation."""
        analysis = self._record_military(monitor, clock)

        assert analysis is not None
        prep = [p for p in analysis.patterns if p.type == PatternType.MILITARY_PREPARATION]
        assert len(prep) == 1
        assert prep[0].confidence >= 0.8
        assert analysis.profile.playstyle == Playstyle.DEFENSIVE_TURTLE

    def test_threat_rises_with_military_activity(self, monitor: PlayerMonitor, clock) -> None:
        """A player preparing for war reads as a high threat."""
        self._record_military(monitor, clock)

        assessment = monitor.assess_threat("p1")

        assert assessment.threat_level == pytest.approx(0.89)
        assert assessment.confidence == pytest.approx(0.2)
        assert "Prepare for potential conflict" in assessment.recommendations

    def test_prediction_follows_strong_pattern(self, monitor: PlayerMonitor, clock) -> None:
        """A confident pattern drives the prediction."""
        self._record_military(monitor, clock)

        prediction = monitor.predict_next_action("p1")

        assert prediction is not None
        assert prediction.category == ActionCategory.MILITARY_BUILDUP
        assert prediction.confidence == pytest.approx(0.8)

    def test_unknown_player(self, monitor: PlayerMonitor) -> None:
        """Unknown players are neutral and have no summary."""
        assessment = monitor.assess_threat("ghost")

        assert assessment.threat_level == 0.5
        assert not assessment.known
        assert monitor.get_behavior_summary("ghost") is None
        assert monitor.predict_next_action("ghost") is None
        assert monitor.analyze("ghost") is None

    def test_behavior_summary(self, monitor: PlayerMonitor, clock) -> None:
        """The summary reports session activity."""
        self._record_military(monitor, clock)

        summary = monitor.get_behavior_summary("p1")

        assert summary is not None
        assert summary.activity.total_actions == 10
        assert summary.activity.session_minutes == pytest.approx(9.0)
        assert summary.activity.actions_per_minute == pytest.approx(10 / 9)
        assert summary.recent_action_count == 10
        assert summary.has_pattern(PatternType.MILITARY_PREPARATION)

    def test_recent_window_bounded(self, clock, rng) -> None:
        """The recent window keeps only the newest actions."""
        monitor = PlayerMonitor(config=PlayerMonitorConfig(recent_window=5), clock=clock, rng=rng)
        for _ in range(12):
            monitor.record_action("p1", PlayerAction(type="gather"))

        summary = monitor.get_behavior_summary("p1")
        assert summary is not None
        assert summary.recent_action_count == 5
        assert summary.activity.total_actions == 12

    def test_reset_player(self, monitor: PlayerMonitor) -> None:
        """Resetting forgets the player."""
        monitor.record_action("p1", PlayerAction(type="gather"))

        assert monitor.reset_player("p1")
        assert not monitor.reset_player("p1")
        assert monitor.get_profile("p1") is None
        assert monitor.get_all_profiles() == {}
