"""Tests for counter-strategy selection and learning."""

from __future__ import annotations

import random

import pytest

from colony_ai.config import CounterConfig
from colony_ai.models.colony import ColonySnapshot, create_colony
from colony_ai.models.counter import (
    CounterApplication,
    CounterStrategyOption,
    CounterStrategyType,
    Outcome,
)
from colony_ai.models.player import BehaviorSummary, PlayerAction, Playstyle
from colony_ai.models.trigger import AttackType
from colony_ai.services.counter import (
    CounterStrategySelector,
    analyze_player,
    deduplicate,
    implementation_plan,
    reward_potential,
)
from colony_ai.services.player_monitor import PlayerMonitor
from colony_ai.services.triggers import TriggerEvaluator


@pytest.fixture
def military_summary(clock) -> BehaviorSummary:
    """A defensive turtle preparing for war."""
    monitor = PlayerMonitor(clock=clock)
    for action_type in ["military_buildup", "defensive_actions"] * 5:
        monitor.record_action("p1", PlayerAction(type=action_type))
        clock.advance(60)
    summary = monitor.get_behavior_summary("p1")
    assert summary is not None
    return summary


@pytest.fixture
def snapshot() -> ColonySnapshot:
    return create_colony().snapshot()


def _option(
    strategy_type: CounterStrategyType = CounterStrategyType.ECONOMIC_WARFARE,
    approach: str = "resource_disruption",
    **fields,
) -> CounterStrategyOption:
    return CounterStrategyOption(
        type=strategy_type, approach=approach, description="test option", **fields
    )


# =============================================================================
# Analysis and candidates
# =============================================================================


class TestCandidates:
    """Tests for player analysis and candidate generation."""

    def test_analyze_player(self, military_summary: BehaviorSummary) -> None:
        """Playstyle traits and pattern insights are collected."""
        analysis = analyze_player(military_summary)

        assert analysis.primary_strategy == Playstyle.DEFENSIVE_TURTLE
        assert "predictability" in analysis.weaknesses
        assert "imminent_attack" in analysis.predicted_actions
        assert analysis.adaptation_level == pytest.approx(0.55)

    def test_options_merge_sources(self, military_summary: BehaviorSummary) -> None:
        """Primary, pattern and weakness candidates are all offered."""
        selector = CounterStrategySelector()
        options = selector.generate_options(
            analyze_player(military_summary), military_summary, []
        )
        keys = {o.key for o in options}

        assert (CounterStrategyType.TERRITORIAL_DENIAL, "expansion_blockade") in keys
        assert (CounterStrategyType.PSYCHOLOGICAL_PRESSURE, "force_premature_action") in keys
        assert (CounterStrategyType.ADAPTIVE_CHAOS, "unpredictable_response") in keys
        assert len(keys) == len(options)

    def test_history_feeds_candidates(self, military_summary: BehaviorSummary) -> None:
        """A past success against the same playstyle carries its effectiveness."""
        past_option = _option(CounterStrategyType.TERRITORIAL_DENIAL, "expansion_blockade")
        history = [
            CounterApplication(
                player_id="p1",
                target_playstyle=Playstyle.DEFENSIVE_TURTLE,
                option=past_option,
                plan=implementation_plan(past_option),
                effectiveness=0.9,
            )
        ]
        options = CounterStrategySelector().generate_options(
            analyze_player(military_summary), military_summary, history
        )

        blockade = [o for o in options if o.key == past_option.key]
        assert len(blockade) == 1
        assert blockade[0].historical_effectiveness == pytest.approx(0.9)

    def test_deduplicate_keeps_best_history(self) -> None:
        first = _option(historical_effectiveness=0.4)
        duplicate = _option(historical_effectiveness=0.8)
        worse = _option(historical_effectiveness=0.1)

        kept = deduplicate([first, duplicate, worse])

        assert len(kept) == 1
        assert kept[0] is first
        assert kept[0].historical_effectiveness == pytest.approx(0.8)


# =============================================================================
# Scoring
# =============================================================================


class TestScoring:
    """Tests for reward, feasibility and effectiveness."""

    def test_reward_potential(self, military_summary: BehaviorSummary) -> None:
        summary = military_summary.model_copy(update={"patterns": []})

        assert reward_potential(
            _option(CounterStrategyType.FLANKING_MANEUVER, "gap_exploitation"), summary
        ) == pytest.approx(0.8)
        assert reward_potential(_option(), summary) == pytest.approx(0.7)

    def test_feasibility_from_resources_and_military(self, snapshot: ColonySnapshot) -> None:
        """Expensive counters are less feasible for a poor colony."""
        selector = CounterStrategySelector()

        assert selector.feasibility(
            _option(CounterStrategyType.OVERWHELMING_FORCE, "x"), snapshot
        ) == pytest.approx(0.728 / 0.8)
        assert selector.feasibility(
            _option(CounterStrategyType.PSYCHOLOGICAL_PRESSURE, "x"), snapshot
        ) == pytest.approx(1.0)

    def test_cooldown_halves_feasibility(self, snapshot: ColonySnapshot, clock) -> None:
        """An offensive counter whose attack type is cooling down is penalized."""
        triggers = TriggerEvaluator(clock=clock)
        triggers.record_attack_launch(str(snapshot.colony_id), AttackType.SIEGE)
        selector = CounterStrategySelector(triggers=triggers)
        cooldowns = triggers.get_cooldown_status(str(snapshot.colony_id))

        assert selector.feasibility(
            _option(CounterStrategyType.OVERWHELMING_FORCE, "x"), snapshot, cooldowns
        ) == pytest.approx(0.728 / 0.8 * 0.5)
        assert selector.feasibility(
            _option(CounterStrategyType.HIT_AND_RUN, "x"), snapshot, cooldowns
        ) == pytest.approx(1.0)

    def test_evaluate_options(
        self, military_summary: BehaviorSummary, snapshot: ColonySnapshot
    ) -> None:
        """Economic warfare shines against a military-heavy player."""
        summary = military_summary.model_copy(update={"patterns": []})
        ranked = CounterStrategySelector().evaluate_options(
            [_option(CounterStrategyType.DEFENSIVE_ATTRITION, "x"), _option()],
            summary,
            snapshot,
        )

        assert ranked[0].type == CounterStrategyType.ECONOMIC_WARFARE
        assert ranked[0].effectiveness == pytest.approx(0.78)
        assert ranked[0].risk_level == pytest.approx(0.3)
        assert ranked[0].feasibility == pytest.approx(1.0)

    def test_choose_empty_falls_back_to_chaos(self) -> None:
        chosen = CounterStrategySelector().choose([])

        assert chosen.type == CounterStrategyType.ADAPTIVE_CHAOS
        assert chosen.reasoning

    def test_choose_single_candidate(self, rng: random.Random) -> None:
        """With one candidate slot the best option always wins."""
        selector = CounterStrategySelector(config=CounterConfig(top_candidates=1), rng=rng)
        best = _option(effectiveness=0.9)
        other = _option(CounterStrategyType.HIT_AND_RUN, "y", effectiveness=0.5)

        for _ in range(10):
            assert selector.choose([best, other]).key == best.key


# =============================================================================
# Selection and learning
# =============================================================================


class TestCounterStrategySelector:
    """Tests for selection, the ledger and effectiveness feedback."""

    @pytest.fixture
    def selector(self, rng: random.Random, clock) -> CounterStrategySelector:
        return CounterStrategySelector(rng=rng, clock=clock)

    def test_selection_recorded(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        """A selection lands in the ledger as pending with an update to apply."""
        selection = selector.select_counter_strategy(snapshot, military_summary)

        ledger = selector.get_ledger(str(snapshot.colony_id))
        assert [a.id for a in ledger] == [selection.application.id]
        assert selection.application.outcome == Outcome.PENDING
        assert selection.application.target_playstyle == Playstyle.DEFENSIVE_TURTLE
        assert selection.reasoning.startswith("Selected ")
        assert len(selection.alternatives) <= 3
        assert selection.update.reasons[0].startswith("Counter-strategy ")
        assert 0.1 <= selection.expected_effectiveness <= 0.95

    def test_success_updates_learning(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        """A strong result is remembered and raises the learning rate."""
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        updated = selector.update_strategy_effectiveness(
            colony_id, selection.application.id, 0.8
        )

        assert updated is not None
        assert updated.outcome == Outcome.SUCCESS
        analysis = selector.get_counter_strategy_analysis(colony_id)
        assert analysis is not None
        assert analysis.successful == 1
        assert analysis.success_rate == pytest.approx(1.0)
        assert analysis.learning_rate == pytest.approx(0.11)
        assert analysis.specialization == selection.application.option.type

    def test_failure_recorded(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        updated = selector.update_strategy_effectiveness(
            colony_id, selection.application.id, 0.3
        )

        assert updated is not None
        assert updated.outcome == Outcome.FAILURE
        analysis = selector.get_counter_strategy_analysis(colony_id)
        assert analysis is not None
        assert analysis.failed == 1
        assert analysis.learning_rate == pytest.approx(0.1)

    def test_middling_score(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        """Scores between the thresholds are not a success and join neither list."""
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        updated = selector.update_strategy_effectiveness(
            colony_id, selection.application.id, 0.55
        )

        assert updated is not None
        assert updated.outcome == Outcome.FAILURE
        analysis = selector.get_counter_strategy_analysis(colony_id)
        assert analysis is not None
        assert (analysis.successful, analysis.failed) == (0, 0)
        assert analysis.learning_rate == pytest.approx(0.1)

    def test_rescoring_counts_once(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        """Scoring one application repeatedly keeps a single ledger result."""
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        for _ in range(3):
            selector.update_strategy_effectiveness(colony_id, selection.application.id, 0.9)

        analysis = selector.get_counter_strategy_analysis(colony_id)
        assert analysis is not None
        assert analysis.total_applied == 1
        assert analysis.successful == 1
        assert analysis.success_rate == pytest.approx(1.0)
        assert analysis.learning_rate == pytest.approx(0.11)

    def test_rescoring_moves_between_lists(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        """A later poor score replaces an earlier success."""
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        selector.update_strategy_effectiveness(colony_id, selection.application.id, 0.9)
        updated = selector.update_strategy_effectiveness(
            colony_id, selection.application.id, 0.2
        )

        assert updated is not None
        assert updated.outcome == Outcome.FAILURE
        analysis = selector.get_counter_strategy_analysis(colony_id)
        assert analysis is not None
        assert (analysis.successful, analysis.failed) == (0, 1)
        assert analysis.success_rate == 0.0
        assert analysis.specialization is None

    def test_explicit_outcome_wins(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        colony_id = str(snapshot.colony_id)
        selection = selector.select_counter_strategy(snapshot, military_summary)

        updated = selector.update_strategy_effectiveness(
            colony_id, selection.application.id, 0.55, Outcome.FAILURE
        )

        assert updated is not None
        assert updated.outcome == Outcome.FAILURE

    def test_invalid_effectiveness(self, selector: CounterStrategySelector) -> None:
        with pytest.raises(ValueError):
            selector.update_strategy_effectiveness("colony", "counter", 1.5)

    def test_unknown_application(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        colony_id = str(snapshot.colony_id)
        assert selector.update_strategy_effectiveness(colony_id, "counter_missing", 0.7) is None

        selector.select_counter_strategy(snapshot, military_summary)
        assert selector.update_strategy_effectiveness(colony_id, "counter_missing", 0.7) is None

    def test_ledger_bounded(
        self, rng: random.Random, snapshot: ColonySnapshot, military_summary: BehaviorSummary
    ) -> None:
        selector = CounterStrategySelector(config=CounterConfig(ledger_limit=2), rng=rng)
        for _ in range(3):
            selector.select_counter_strategy(snapshot, military_summary)

        assert len(selector.get_ledger(str(snapshot.colony_id))) == 2

    def test_reset_colony(
        self,
        selector: CounterStrategySelector,
        snapshot: ColonySnapshot,
        military_summary: BehaviorSummary,
    ) -> None:
        colony_id = str(snapshot.colony_id)
        selector.select_counter_strategy(snapshot, military_summary)

        assert selector.reset_colony(colony_id)
        assert selector.get_ledger(colony_id) == []
        assert selector.get_counter_strategy_analysis(colony_id) is None
