"""Tests for colony-ai core models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from colony_ai.models import (
    AIState,
    Colony,
    ColonyUpdate,
    GrowthRecord,
    MacroStrategy,
    Personality,
    ResourceKind,
    TargetCandidate,
    create_colony,
    is_valid_transition,
)
from colony_ai.models.colony import GROWTH_HISTORY_LIMIT, VALID_TRANSITIONS

# =============================================================================
# State Machine Tests
# =============================================================================


class TestTransitions:
    """Tests for the behavior-state adjacency table."""

    def test_idle_transitions(self) -> None:
        """Idle may only start gathering, exploring or growing."""
        assert is_valid_transition(AIState.IDLE, AIState.GATHERING)
        assert is_valid_transition(AIState.IDLE, AIState.EXPLORING)
        assert is_valid_transition(AIState.IDLE, AIState.GROWING)
        assert not is_valid_transition(AIState.IDLE, AIState.ATTACKING)
        assert not is_valid_transition(AIState.IDLE, AIState.DEFENDING)

    def test_gathering_to_attacking(self) -> None:
        """Gathering can escalate into an attack."""
        assert is_valid_transition(AIState.GATHERING, AIState.ATTACKING)

    def test_growing_cannot_attack(self) -> None:
        """A growing colony must pass through another state before attacking."""
        assert not is_valid_transition(AIState.GROWING, AIState.ATTACKING)

    def test_nothing_returns_to_idle(self) -> None:
        """Idle is only ever a starting state."""
        for state in AIState:
            assert not is_valid_transition(state, AIState.IDLE)

    def test_no_self_transitions_listed(self) -> None:
        """The table never lists a state as its own successor."""
        for state, targets in VALID_TRANSITIONS.items():
            assert state not in targets


# =============================================================================
# Colony Tests
# =============================================================================


class TestCreateColony:
    """Tests for the colony factory."""

    def test_defaults(self) -> None:
        """A new colony starts idle with default stock."""
        colony = create_colony(name="Ironhold")

        assert colony.name == "Ironhold"
        assert colony.state == AIState.IDLE
        assert colony.current_strategy == MacroStrategy.BALANCED
        assert colony.resource(ResourceKind.FOOD) == 100.0
        assert colony.total_ticks == 0

    def test_personality_defaults(self) -> None:
        """Behavior modifiers come from the personality."""
        colony = create_colony(personality=Personality.AGGRESSIVE)

        assert colony.aggression_level == pytest.approx(0.8)
        assert colony.military_focus == pytest.approx(0.5)

    def test_overrides(self) -> None:
        """Explicit modifiers override the personality defaults."""
        colony = create_colony(personality=Personality.BUILDER, aggression_level=0.9)

        assert colony.aggression_level == pytest.approx(0.9)
        assert colony.military_focus == pytest.approx(0.2)

    def test_partial_resources(self) -> None:
        """Missing resource kinds keep their defaults."""
        colony = create_colony(resources={ResourceKind.FOOD: 5.0})

        assert colony.resource(ResourceKind.FOOD) == 5.0
        assert colony.resource(ResourceKind.WATER) == 100.0

    def test_threat_out_of_range_rejected(self) -> None:
        """Bounded fields are validated."""
        with pytest.raises(ValidationError):
            Colony(threat_level=1.5)


class TestWithUpdate:
    """Tests for applying update instructions."""

    def test_returns_new_colony(self) -> None:
        """The original colony is left unchanged."""
        colony = create_colony()
        updated = colony.with_update(
            ColonyUpdate(state=AIState.GATHERING, threat_level=0.4)
        )

        assert updated.state == AIState.GATHERING
        assert updated.threat_level == pytest.approx(0.4)
        assert colony.state == AIState.IDLE
        assert updated.id == colony.id

    def test_none_fields_untouched(self) -> None:
        """Fields left as None keep their value."""
        colony = create_colony(personality=Personality.DEFENSIVE)
        updated = colony.with_update(ColonyUpdate(adaptation_level=0.2))

        assert updated.aggression_level == colony.aggression_level
        assert updated.adaptation_level == pytest.approx(0.2)

    def test_resource_deltas_clamped(self) -> None:
        """Stock never goes below zero or above capacity."""
        colony = create_colony()
        updated = colony.with_update(
            ColonyUpdate(
                resource_deltas={ResourceKind.FOOD: -500.0, ResourceKind.WOOD: 5000.0}
            )
        )

        assert updated.resource(ResourceKind.FOOD) == 0.0
        assert updated.resource(ResourceKind.WOOD) == 1000.0

    def test_update_validation(self) -> None:
        """Out-of-range update values are rejected."""
        with pytest.raises(ValidationError):
            ColonyUpdate(threat_level=-0.1)

    def test_is_empty(self) -> None:
        """An update with no instructions is empty."""
        assert ColonyUpdate().is_empty()
        assert ColonyUpdate(reasons=["nothing"]).is_empty()
        assert not ColonyUpdate(resource_deltas={ResourceKind.FOOD: 1.0}).is_empty()


class TestSnapshot:
    """Tests for the read-only colony snapshot."""

    def test_derived_values(self) -> None:
        """Totals and available forces are derived from the colony."""
        colony = create_colony()
        colony.used_military_capacity = 30
        snapshot = colony.snapshot()

        assert snapshot.total_resources == pytest.approx(320.0)
        assert snapshot.food == 100.0
        assert snapshot.available_military == 70
        assert snapshot.economic_growth_rate == pytest.approx(0.05)

    def test_snapshot_is_frozen(self) -> None:
        """Snapshots cannot be modified."""
        snapshot = create_colony().snapshot()
        with pytest.raises(ValidationError):
            snapshot.threat_level = 0.9

    def test_growth_rate_from_history(self) -> None:
        """Recent growth records drive the economic growth rate."""
        colony = create_colony()
        for tick in range(3):
            colony.record_growth(
                GrowthRecord(
                    tick=tick,
                    population=30,
                    territory_size=3,
                    total_resources=300,
                    growth_rate=10.0,
                )
            )

        assert colony.snapshot().economic_growth_rate == pytest.approx(0.1)

    def test_growth_history_bounded(self) -> None:
        """Only the most recent growth records are kept."""
        colony = create_colony()
        for tick in range(GROWTH_HISTORY_LIMIT + 5):
            colony.record_growth(
                GrowthRecord(tick=tick, population=30, territory_size=3, total_resources=300)
            )

        assert len(colony.growth_history) == GROWTH_HISTORY_LIMIT
        assert colony.growth_history[0].tick == 5


class TestTargetCandidate:
    """Tests for partially observed targets."""

    def test_defaults(self) -> None:
        """Unobserved attributes fall back to named defaults."""
        target = TargetCandidate(id="player_colony")

        assert target.distance == 50.0
        assert target.military_power == pytest.approx(25.0)
        assert not target.has_defensive_gaps
