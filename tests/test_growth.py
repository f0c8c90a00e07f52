"""Tests for the colony growth calculator."""

from __future__ import annotations

import random

import pytest

from colony_ai.models.colony import (
    DevelopmentPhase,
    Difficulty,
    ResourceKind,
    create_colony,
)
from colony_ai.models.growth import GrowthAmounts, GrowthModifiers, GrowthStepResult
from colony_ai.services.growth import GrowthCalculator, growth_phase, threat_modifier


def _step(**amounts) -> GrowthStepResult:
    return GrowthStepResult(
        growth=GrowthAmounts(**amounts),
        modifiers=GrowthModifiers(),
        phase=DevelopmentPhase.EARLY,
    )


# =============================================================================
# Modifiers
# =============================================================================


class TestModifiers:
    """Tests for growth multipliers."""

    @pytest.fixture
    def calculator(self, rng: random.Random) -> GrowthCalculator:
        return GrowthCalculator(rng=rng)

    def test_default_colony(self, calculator: GrowthCalculator) -> None:
        """Personality, threat, food and phase combine multiplicatively."""
        modifiers = calculator.calculate_modifiers(create_colony().snapshot())

        assert modifiers.personality == pytest.approx(1.1)
        assert modifiers.threat == pytest.approx(1.2)
        assert modifiers.resources == pytest.approx(0.5)
        assert modifiers.phase == pytest.approx(0.8)
        assert modifiers.overall == pytest.approx(1.1 * 1.2 * 0.5 * 0.8)

    def test_difficulty(self, calculator: GrowthCalculator) -> None:
        """Harder difficulties grow faster."""
        snapshot = create_colony(difficulty=Difficulty.NIGHTMARE).snapshot()
        assert calculator.calculate_modifiers(snapshot).difficulty == pytest.approx(1.6)

    def test_threat_bands(self) -> None:
        assert threat_modifier(0.8) == 0.7
        assert threat_modifier(0.5) == 0.9
        assert threat_modifier(0.1) == 1.2

    def test_growth_phase(self) -> None:
        """Growth efficiency phase depends on size only."""
        assert growth_phase(30, 3) == DevelopmentPhase.EARLY
        assert growth_phase(50, 5) == DevelopmentPhase.EXPANSION
        assert growth_phase(100, 10) == DevelopmentPhase.CONSOLIDATION
        assert growth_phase(200, 20) == DevelopmentPhase.DOMINANCE


# =============================================================================
# Calculation
# =============================================================================


class TestCalculateGrowth:
    """Tests for per-aspect growth."""

    @pytest.fixture
    def calculator(self, rng: random.Random) -> GrowthCalculator:
        return GrowthCalculator(rng=rng)

    def test_population_grows_over_time(self, calculator: GrowthCalculator) -> None:
        """Population growth scales with elapsed time."""
        step = calculator.calculate_growth(create_colony().snapshot(), time_delta=10)
        assert step.growth.population == 2

    def test_population_capped(self, calculator: GrowthCalculator) -> None:
        """A colony at its population cap does not grow."""
        snapshot = create_colony(population=100, max_population=100).snapshot()
        assert calculator.calculate_growth(snapshot, 10).growth.population == 0

    def test_full_storage_does_not_grow(self, calculator: GrowthCalculator) -> None:
        """Resources at capacity stay put."""
        snapshot = create_colony(resources={ResourceKind.FOOD: 1000.0}).snapshot()
        step = calculator.calculate_growth(snapshot, 10)
        assert step.growth.resources[ResourceKind.FOOD] == 0

    def test_territory_needs_food(self, calculator: GrowthCalculator) -> None:
        """Territory never grows without enough food to support it."""
        snapshot = create_colony(resources={ResourceKind.FOOD: 100.0}).snapshot()
        assert calculator.calculate_growth(snapshot, 100_000).growth.territory == 0

    def test_territory_grows_one_tile(self, calculator: GrowthCalculator) -> None:
        """Territory grows by at most one tile per step."""
        snapshot = create_colony(resources={ResourceKind.FOOD: 500.0}).snapshot()
        assert calculator.calculate_growth(snapshot, 100_000).growth.territory == 1

    def test_reasoning(self, calculator: GrowthCalculator) -> None:
        step = calculator.calculate_growth(create_colony().snapshot())
        assert step.reasoning[0] == "Challenging growth conditions"
        assert "Resource shortages constraining growth" in step.reasoning


# =============================================================================
# Application
# =============================================================================


class TestApplyGrowth:
    """Tests for applying a growth step to a colony."""

    def test_territory_costs_food(self) -> None:
        """Each new tile is paid for in food."""
        colony = create_colony(resources={ResourceKind.FOOD: 500.0})
        updated, applied = GrowthCalculator().apply_growth(colony, _step(territory=1))

        assert updated.territory_size == 4
        assert updated.resource(ResourceKind.FOOD) == pytest.approx(300.0)
        assert applied.territory_size == 1
        assert colony.territory_size == 3

    def test_infrastructure_raises_cap(self) -> None:
        """Infrastructure consumes materials and adds housing."""
        colony = create_colony()
        updated, applied = GrowthCalculator().apply_growth(colony, _step(infrastructure=0.5))

        assert updated.max_population == 150
        assert updated.resource(ResourceKind.WOOD) == pytest.approx(25.0)
        assert updated.resource(ResourceKind.STONE) == pytest.approx(35.0)
        assert applied.max_population == 50

    def test_military_growth_raises_focus(self) -> None:
        """New soldiers increase the military share."""
        colony = create_colony()
        updated, applied = GrowthCalculator().apply_growth(colony, _step(military=3))

        assert updated.military_focus == pytest.approx(0.4)
        assert applied.military_focus == pytest.approx(0.1)

    def test_resources_added(self) -> None:
        colony = create_colony()
        updated, applied = GrowthCalculator().apply_growth(
            colony, _step(population=5, resources={ResourceKind.WATER: 10})
        )

        assert updated.population == 35
        assert updated.resource(ResourceKind.WATER) == pytest.approx(110.0)
        assert applied.resources == {ResourceKind.WATER: 10.0}


# =============================================================================
# Projection and efficiency
# =============================================================================


class TestProjection:
    """Tests for multi-tick growth projection."""

    def test_timeline_length(self, rng: random.Random) -> None:
        projection = GrowthCalculator(rng=rng).project_growth(create_colony(), ticks=5)

        assert len(projection.timeline) == 5
        assert projection.final_state == projection.timeline[-1]
        assert [p.tick for p in projection.timeline] == [1, 2, 3, 4, 5]

    def test_projection_does_not_touch_colony(self, rng: random.Random) -> None:
        colony = create_colony(resources={ResourceKind.FOOD: 1000.0})
        GrowthCalculator(rng=rng).project_growth(colony, ticks=20)

        assert colony.population == 30
        assert colony.resource(ResourceKind.FOOD) == 1000.0

    def test_population_milestone_recorded_once(self, rng: random.Random) -> None:
        """A milestone is recorded the first time it is reached, and only then."""
        colony = create_colony(
            population=95, max_population=200, resources={ResourceKind.FOOD: 1000.0}
        )
        projection = GrowthCalculator(rng=rng).project_growth(colony, ticks=20)

        population_milestones = [m for m in projection.milestones if m.type == "population"]
        assert len(population_milestones) == 1
        assert population_milestones[0].tick <= 5

    def test_no_milestone_if_already_reached(self, rng: random.Random) -> None:
        colony = create_colony(population=120, max_population=200)
        projection = GrowthCalculator(rng=rng).project_growth(colony, ticks=5)

        assert not [m for m in projection.milestones if m.type == "population"]

    def test_zero_ticks(self, rng: random.Random) -> None:
        projection = GrowthCalculator(rng=rng).project_growth(create_colony(), ticks=0)
        assert projection.timeline == []
        assert projection.final_state is None


class TestEfficiency:
    """Tests for growth efficiency reports."""

    def test_bottlenecks_and_recommendations(self) -> None:
        efficiency = GrowthCalculator().growth_efficiency(create_colony().snapshot())

        assert efficiency.overall_efficiency == pytest.approx(0.528)
        assert "Insufficient construction materials for expansion" in efficiency.bottlenecks
        assert "Safe environment suitable for territorial expansion" in efficiency.recommendations
