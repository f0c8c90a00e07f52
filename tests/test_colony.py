"""Tests for the colony controller and its decision helpers."""

from __future__ import annotations

import random

import pytest

from colony_ai.db.memory import InMemoryColonyRepository
from colony_ai.models.colony import (
    AIState,
    ColonyUpdate,
    DevelopmentPhase,
    EnemySighting,
    MacroStrategy,
    Personality,
    PlayerActivity,
    ResourceKind,
    TargetCandidate,
    WorldSnapshot,
    create_colony,
)
from colony_ai.models.event import AIEventType, EventHistoryFilter
from colony_ai.models.memory import MemoryCategory
from colony_ai.models.player import PlayerAction
from colony_ai.models.strategy import ColonyAction, DecisionKind
from colony_ai.models.trigger import AttackType
from colony_ai.services.colony import (
    ColonyController,
    SharedServices,
    basic_decision,
    development_phase_for,
    estimate_attack_forces,
    threat_from_sightings,
)


@pytest.fixture
def services(clock, rng: random.Random) -> SharedServices:
    return SharedServices.create(rng=rng, clock=clock)


@pytest.fixture
def controller(services: SharedServices, clock, rng: random.Random) -> ColonyController:
    return ColonyController.create(services, rng=rng, clock=clock)


def _events(services: SharedServices, event_type: AIEventType) -> list:
    services.events.process_pending()
    return services.events.get_event_history(EventHistoryFilter(event_type=event_type))


def _adapting_world() -> WorldSnapshot:
    """A turtling player during a major event, with one target in reach."""
    actions = [PlayerAction(type=t) for t in ["military_buildup", "defensive_actions"] * 5]
    return WorldSnapshot(
        players=[PlayerActivity(player_id="p1", recent_actions=actions)],
        targets=[TargetCandidate(id="outpost")],
        major_event=True,
    )


# =============================================================================
# Pure helpers
# =============================================================================


class TestBasicDecision:
    """Tests for the fallback decision rules."""

    def test_food_shortage(self) -> None:
        snapshot = create_colony(resources={ResourceKind.FOOD: 20.0}).snapshot()
        decision = basic_decision(snapshot)

        assert decision.primary_action == ColonyAction.GATHER_FOOD
        assert decision.to_state == AIState.GATHERING
        assert decision.kind == DecisionKind.FALLBACK
        assert decision.confidence == pytest.approx(0.3)

    def test_high_threat(self) -> None:
        snapshot = create_colony().snapshot().model_copy(update={"threat_level": 0.8})
        decision = basic_decision(snapshot)

        assert decision.primary_action == ColonyAction.BUILD_DEFENSES
        assert decision.to_state == AIState.DEFENDING

    def test_population_below_capacity(self) -> None:
        decision = basic_decision(create_colony().snapshot())

        assert decision.primary_action == ColonyAction.GROW_POPULATION
        assert decision.to_state == AIState.GROWING

    def test_default_keeps_state(self) -> None:
        """A healthy, safe, full colony keeps gathering where it is."""
        snapshot = create_colony(population=90).snapshot()
        decision = basic_decision(snapshot)

        assert decision.primary_action == ColonyAction.GATHER_FOOD
        assert decision.to_state == AIState.IDLE
        assert decision.reasoning == ["Fallback to basic decision making"]


class TestHelpers:
    """Tests for phase, force and threat calculations."""

    def test_development_phase(self) -> None:
        """Any one threshold is enough to reach a phase."""
        assert development_phase_for(30, 3, 0) == DevelopmentPhase.EARLY
        assert development_phase_for(40, 3, 0) == DevelopmentPhase.EXPANSION
        assert development_phase_for(30, 3, 200) == DevelopmentPhase.CONSOLIDATION
        assert development_phase_for(30, 15, 0) == DevelopmentPhase.DOMINANCE

    def test_attack_forces(self) -> None:
        snapshot = create_colony().snapshot()

        assert estimate_attack_forces(snapshot, AttackType.SIEGE) == 80
        assert estimate_attack_forces(snapshot, AttackType.RAID) == 20
        assert estimate_attack_forces(snapshot, AttackType.CAMPAIGN) == 100

    def test_forces_use_available_military(self) -> None:
        snapshot = create_colony().snapshot().model_copy(update={"used_military_capacity": 50})
        assert estimate_attack_forces(snapshot, AttackType.SKIRMISH) == 20

    def test_threat_from_sightings(self) -> None:
        enemies = [EnemySighting(distance=10, population=100)]

        assert threat_from_sightings(Personality.OPPORTUNIST, enemies, 0) == pytest.approx(0.5)
        assert threat_from_sightings(Personality.AGGRESSIVE, enemies, 0) == pytest.approx(0.4)
        assert threat_from_sightings(Personality.DEFENSIVE, enemies, 0) == pytest.approx(0.6)

    def test_distant_enemies_and_attacks(self) -> None:
        """Enemies beyond range add nothing; each attack adds a tenth."""
        enemies = [EnemySighting(distance=25, population=100)]
        assert threat_from_sightings(Personality.BUILDER, enemies, 3) == pytest.approx(0.3)

    def test_threat_capped(self) -> None:
        enemies = [EnemySighting(distance=0, population=500)]
        assert threat_from_sightings(Personality.DEFENSIVE, enemies, 5) == 1.0


# =============================================================================
# Controller
# =============================================================================


class TestStateChanges:
    """Tests for the state machine."""

    def test_valid_transition(self, controller: ColonyController) -> None:
        assert controller.change_state(AIState.GATHERING, "test")
        assert controller.colony.state == AIState.GATHERING

    def test_invalid_transition_rejected(self, controller: ColonyController) -> None:
        """Idle colonies cannot jump straight into an attack."""
        assert not controller.change_state(AIState.ATTACKING)
        assert controller.colony.state == AIState.IDLE

    def test_same_state_allowed(self, controller: ColonyController) -> None:
        assert controller.change_state(AIState.IDLE)


class TestStrategicDecision:
    """Tests for the synthesized decision."""

    def test_food_shortage_gathers(self, services: SharedServices, clock, rng) -> None:
        controller = ColonyController.create(
            services, rng=rng, clock=clock, resources={ResourceKind.FOOD: 20.0}
        )
        controller.colony = controller.colony.with_update(ColonyUpdate(threat_level=0.1))

        decision = controller.make_strategic_decision()

        assert decision.primary_action == ColonyAction.GATHER_FOOD
        assert decision.from_state == AIState.IDLE
        assert decision.to_state == AIState.GATHERING
        assert decision.kind == DecisionKind.STRATEGIC
        assert controller.colony.state == AIState.GATHERING

    def test_high_threat_defends(self, services: SharedServices, clock, rng) -> None:
        """Every personality turns defensive under heavy threat."""
        for personality in Personality:
            controller = ColonyController.create(
                services, rng=rng, clock=clock, personality=personality
            )
            controller.colony = controller.colony.with_update(
                ColonyUpdate(state=AIState.GATHERING, threat_level=0.85)
            )

            decision = controller.make_strategic_decision()

            assert decision.primary_action.is_defensive
            assert decision.to_state == AIState.DEFENDING
            assert controller.colony.state == AIState.DEFENDING

    def test_decision_remembered(self, controller: ColonyController) -> None:
        controller.make_strategic_decision()
        assert controller.memory.count(MemoryCategory.DECISIONS) == 1

    def test_confidence_bounds(self, controller: ColonyController) -> None:
        decision = controller.make_strategic_decision()

        assert 0.1 <= decision.confidence <= 1.0
        assert len(decision.secondary_actions) <= 2


class TestTick:
    """Tests for the decision cycle."""

    def test_tick_result(self, controller: ColonyController) -> None:
        result = controller.tick()

        assert result.tick == 1
        assert not result.fallback
        assert result.colony_id == controller.colony.id
        assert result.orders[0] == result.decision.primary_action
        assert controller.colony.total_ticks == 1

    def test_growth_recorded(self, controller: ColonyController) -> None:
        controller.tick()
        controller.tick()

        assert [r.tick for r in controller.colony.growth_history] == [1, 2]

    def test_player_actions_recorded(self, controller: ColonyController, services) -> None:
        world = WorldSnapshot(
            players=[PlayerActivity(player_id="p1", recent_actions=[PlayerAction(type="gather")])]
        )

        controller.tick(world)

        summary = services.monitor.get_behavior_summary("p1")
        assert summary is not None

    def test_failure_falls_back(self, controller: ColonyController, monkeypatch) -> None:
        """A failing tick restores the colony and answers with the basic decision."""

        def _boom(world: WorldSnapshot) -> None:
            controller.colony.population = 999
            raise RuntimeError("boom")

        monkeypatch.setattr(controller, "_run_tick", _boom)

        result = controller.tick()

        assert result.fallback
        assert result.tick == 1
        assert result.decision.kind == DecisionKind.FALLBACK
        assert result.decision.primary_action == ColonyAction.GROW_POPULATION
        assert controller.colony.population == 30
        assert controller.colony.total_ticks == 1
        assert controller.colony.state == AIState.GROWING

    def test_events_published_with_tick(self, controller: ColonyController, services) -> None:
        result = controller.tick(_adapting_world())

        assert not result.fallback
        changed = _events(services, AIEventType.STRATEGY_CHANGED)
        assert len(changed) == 1
        assert changed[0].id in result.event_ids

    def test_failure_after_adaptation_rolls_back(
        self, controller: ColonyController, services, monkeypatch
    ) -> None:
        """Shared service entries, memory and events from a failed tick are discarded."""

        def _boom() -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(controller, "_grow", _boom)

        result = controller.tick(_adapting_world())

        assert result.fallback
        assert result.event_ids == []
        assert controller.colony.current_strategy == MacroStrategy.BALANCED
        assert controller.memory.count(MemoryCategory.DECISIONS) == 0
        assert services.adaptive.get_adaptation_status(controller.colony_id) is None
        assert services.counter.get_ledger(controller.colony_id) == []
        assert services.triggers.analyze_trigger_patterns(controller.colony_id) is None
        assert _events(services, AIEventType.STRATEGY_CHANGED) == []
        assert _events(services, AIEventType.COUNTER_STRATEGY_APPLIED) == []
        # Player observations are not the colony's to undo
        assert services.monitor.get_behavior_summary("p1") is not None

    def test_tick_after_failure_adapts_again(
        self, controller: ColonyController, services, monkeypatch
    ) -> None:
        """A rolled-back adaptation does not leave the colony cooling down."""
        grow = controller._grow
        failures: list[int] = []

        def _fail_once() -> None:
            if not failures:
                failures.append(1)
                raise RuntimeError("boom")
            grow()

        monkeypatch.setattr(controller, "_grow", _fail_once)
        controller.tick(_adapting_world())

        result = controller.tick(_adapting_world())

        assert not result.fallback
        assert len(_events(services, AIEventType.STRATEGY_CHANGED)) == 1


class TestThreatAndEvents:
    """Tests for threat updates and emitted events."""

    def test_creation_event(self, controller: ColonyController, services) -> None:
        events = _events(services, AIEventType.COLONY_CREATED)

        assert len(events) == 1
        assert events[0].colony_id == controller.colony.id

    def test_update_threat_level(self, controller: ColonyController, services) -> None:
        level = controller.update_threat_level([EnemySighting(distance=10, population=100)])

        assert level == pytest.approx(0.5)
        assert controller.colony.threat_level == pytest.approx(0.5)
        events = _events(services, AIEventType.THREAT_LEVEL_CHANGED)
        assert len(events) == 1
        assert events[0].payload.new_threat_level == pytest.approx(0.5)

    def test_unchanged_threat_is_silent(self, controller: ColonyController, services) -> None:
        enemies = [EnemySighting(distance=10, population=100)]
        controller.update_threat_level(enemies)
        controller.update_threat_level(enemies)

        assert len(_events(services, AIEventType.THREAT_LEVEL_CHANGED)) == 1


# =============================================================================
# Persistence
# =============================================================================


class TestPersistence:
    """Tests for saving and loading controllers."""

    def test_round_trip(self, controller: ColonyController, services, clock) -> None:
        repository = InMemoryColonyRepository()
        controller.make_strategic_decision()
        controller.persist(repository)

        loaded = ColonyController.load(repository, controller.colony.id, services, clock=clock)

        assert loaded is not None
        assert loaded.colony.id == controller.colony.id
        assert loaded.colony.state == controller.colony.state
        assert loaded.memory.count(MemoryCategory.DECISIONS) == 1

    def test_unknown_colony(self, services) -> None:
        repository = InMemoryColonyRepository()
        assert ColonyController.load(repository, create_colony().id, services) is None
