"""
Colony Controller for colony-ai.

The per-colony orchestration layer. Each tick it synthesizes a decision
from the tactical modules, feeds player actions through the monitor and
adaptive engine, looks for an attack opportunity, grows the colony, runs
one exploration step and refreshes its threat level.

A controller owns its Colony record, memory and fog-of-war map outright.
The player monitor, adaptive engine, trigger evaluator, counter selector
and event service are process-wide and shared between controllers.
"""

from __future__ import annotations

import logging
import math
import random
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from colony_ai.clock import Clock, utc_now
from colony_ai.config import EngineConfig
from colony_ai.models.adaptation import AdaptationResult, AdaptationStatus
from colony_ai.models.colony import (
    AIState,
    Colony,
    ColonySnapshot,
    ColonyUpdate,
    DevelopmentPhase,
    EnemySighting,
    GrowthRecord,
    Personality,
    ResourceKind,
    WorldSnapshot,
    create_colony,
    is_valid_transition,
)
from colony_ai.models.counter import CounterAnalysis, CounterApplication, Outcome
from colony_ai.models.event import (
    AdaptationTriggeredPayload,
    AIEvent,
    AIEventType,
    AttackLaunchedPayload,
    ColonyCreatedPayload,
    CounterStrategyAppliedPayload,
    DiscoveryPayload,
    PhaseChangedPayload,
    PriorityLevel,
    StrategyChangedPayload,
    ThreatLevelChangedPayload,
    UnitDeployedPayload,
)
from colony_ai.models.exploration import ExplorationEfficiency
from colony_ai.models.growth import GrowthEfficiency, GrowthProjection
from colony_ai.models.memory import MemoryCategory, MemoryEntry, MemorySearch
from colony_ai.models.player import BehaviorSummary, ThreatAssessment
from colony_ai.models.scout import Discovery, DiscoveryType, ExplorationPlan, ScoutMission
from colony_ai.models.strategy import (
    AttackMethod,
    AttackOrder,
    AttackStrategy,
    ColonyAction,
    DecisionKind,
    DefensePosture,
    DefenseStrategy,
    GrowthFocus,
    GrowthStrategy,
    ResourceStrategy,
    StrategicDecision,
    TickResult,
)
from colony_ai.models.trigger import AttackType, TriggerAnalysis
from colony_ai.services.adaptive import AdaptiveStrategyEngine, adaptation_intensity
from colony_ai.services.counter import CounterStrategySelector
from colony_ai.services.events import EventService
from colony_ai.services.exploration import ExplorationPlanner
from colony_ai.services.exploration_map import ExplorationMap
from colony_ai.services.growth import GrowthCalculator
from colony_ai.services.memory import ColonyMemory
from colony_ai.services.player_monitor import PlayerMonitor
from colony_ai.services.scouting import ScoutBehavior, mission_success
from colony_ai.services.strategies import (
    evaluate_attack_strategy,
    evaluate_defense_strategy,
    evaluate_growth_strategy,
    evaluate_resource_strategy,
)
from colony_ai.services.triggers import TriggerEvaluator

if TYPE_CHECKING:
    from colony_ai.db.interfaces import ColonyRepository

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Share of free soldiers committed per attack type.
ATTACK_FORCE_MULTIPLIERS: dict[AttackType, float] = {
    AttackType.RAID: 0.2,
    AttackType.SKIRMISH: 0.4,
    AttackType.ASSAULT: 0.6,
    AttackType.SIEGE: 0.8,
    AttackType.CAMPAIGN: 1.0,
}

GROWTH_FOCUS_ACTIONS: dict[GrowthFocus, ColonyAction] = {
    GrowthFocus.POPULATION: ColonyAction.GROW_POPULATION,
    GrowthFocus.TERRITORY: ColonyAction.SEND_SCOUTS,
    GrowthFocus.MILITARY: ColonyAction.TRAIN_SOLDIERS,
    GrowthFocus.INFRASTRUCTURE: ColonyAction.BUILD_INFRASTRUCTURE,
    GrowthFocus.TECHNOLOGY: ColonyAction.RESEARCH_TECHNOLOGY,
}

# (population, territory, ticks) at which each phase begins. Any one suffices.
PHASE_THRESHOLDS: list[tuple[DevelopmentPhase, int, int, int]] = [
    (DevelopmentPhase.DOMINANCE, 150, 15, 500),
    (DevelopmentPhase.CONSOLIDATION, 80, 8, 200),
    (DevelopmentPhase.EXPANSION, 40, 4, 50),
]

DISCOVERY_CATEGORIES: dict[DiscoveryType, MemoryCategory] = {
    DiscoveryType.RESOURCE: MemoryCategory.DISCOVERED_RESOURCES,
    DiscoveryType.ENEMY_ACTIVITY: MemoryCategory.ENEMY_MOVEMENTS,
}

THREAT_PERCEPTION: dict[Personality, float] = {
    Personality.AGGRESSIVE: 0.8,
    Personality.DEFENSIVE: 1.2,
}

ENEMY_THREAT_RANGE = 20.0
THREAT_PER_RECENT_ATTACK = 0.1
DETECTED_THREAT_LEVEL = 0.6
SCOUTED_AREA_SPACING = 2.0
DISCOVERY_REVEAL_RADIUS = 3
GROWTH_EVENTS_CATEGORY = "growth_events"


# =============================================================================
# Decision Synthesis
# =============================================================================


@dataclass(frozen=True)
class TacticalAssessment:
    """Outputs of the four tactical modules for one tick."""

    resource: ResourceStrategy
    defense: DefenseStrategy
    attack: AttackStrategy
    growth: GrowthStrategy


def secondary_actions(
    snapshot: ColonySnapshot, resource: ResourceStrategy, primary: ColonyAction
) -> list[ColonyAction]:
    """Up to two actions that complement the primary one."""
    actions: list[ColonyAction] = []
    if not primary.is_gathering:
        actions.append(ColonyAction.gather(resource.secondary_resource))
    if snapshot.threat_level > 0.3 and not primary.is_defensive:
        actions.append(ColonyAction.BUILD_DEFENSES)
    if snapshot.territory_size < 6 and primary != ColonyAction.SEND_SCOUTS:
        actions.append(ColonyAction.SEND_SCOUTS)
    return actions[:2]


def _matches_personality(personality: Personality, action: ColonyAction) -> bool:
    if personality == Personality.AGGRESSIVE:
        return action == ColonyAction.LAUNCH_ATTACK
    if personality == Personality.DEFENSIVE:
        return action == ColonyAction.BUILD_DEFENSES
    if personality == Personality.BUILDER:
        return action in (ColonyAction.BUILD_DEFENSES, ColonyAction.BUILD_INFRASTRUCTURE)
    return False


def decision_confidence(
    snapshot: ColonySnapshot, assessment: TacticalAssessment, decision: StrategicDecision
) -> float:
    """Confidence from strategy alignment, food security, threat and personality."""
    confidence = 0.5
    if decision.resource_focus == assessment.resource.primary_resource:
        confidence += 0.1
    if snapshot.food > 100:
        confidence += 0.1
    if snapshot.threat_level > 0.5 and decision.to_state != AIState.DEFENDING:
        confidence -= 0.2
    if _matches_personality(snapshot.personality, decision.primary_action):
        confidence += 0.2
    return max(0.1, min(1.0, confidence))


def combine_strategies(
    snapshot: ColonySnapshot,
    assessment: TacticalAssessment,
    timestamp: datetime | None = None,
) -> StrategicDecision:
    """
    Merge the tactical module outputs into one decision.

    Threat above 0.7 always wins and turns the colony defensive. An ongoing
    attack continues while a viable target exists. A food shortage comes
    next; otherwise the growth strategy's primary focus picks the action.
    """
    reasoning: list[str] = []
    resource_focus: ResourceKind | None = None
    military_action: AttackMethod | None = None
    growth_focus: GrowthFocus | None = None
    to_state = snapshot.state

    if snapshot.threat_level > 0.7:
        if assessment.defense.posture == DefensePosture.FORTRESS:
            primary = ColonyAction.BUILD_DEFENSES
        else:
            primary = ColonyAction.TRAIN_SOLDIERS
        to_state = AIState.DEFENDING
        reasoning.append("High threat level prioritizes defensive actions")
    elif snapshot.state == AIState.ATTACKING and assessment.attack.has_target:
        primary = ColonyAction.LAUNCH_ATTACK
        military_action = assessment.attack.method
        reasoning.append("Continuing active attack strategy")
    elif snapshot.food < 50:
        primary = ColonyAction.GATHER_FOOD
        resource_focus = assessment.resource.primary_resource
        to_state = AIState.GATHERING
        reasoning.append("Critical food shortage requires immediate gathering")
    else:
        focus = assessment.growth.primary_focus
        primary = GROWTH_FOCUS_ACTIONS[focus]
        growth_focus = focus
        reasoning.append(f"Growth strategy focuses on {focus.value}")
        if focus == GrowthFocus.MILITARY:
            to_state = AIState.DEFENDING
        elif focus == GrowthFocus.TERRITORY:
            to_state = AIState.EXPLORING
        else:
            to_state = AIState.GROWING

    if resource_focus is None:
        resource_focus = assessment.resource.primary_resource

    decision = StrategicDecision(
        kind=DecisionKind.STRATEGIC,
        primary_action=primary,
        secondary_actions=secondary_actions(snapshot, assessment.resource, primary),
        resource_focus=resource_focus,
        military_action=military_action,
        growth_focus=growth_focus,
        reasoning=reasoning,
        from_state=snapshot.state,
        to_state=to_state,
        timestamp=timestamp or datetime.now(UTC),
    )
    decision.confidence = decision_confidence(snapshot, assessment, decision)
    decision.reasoning.extend(assessment.resource.reasoning[:2])
    decision.reasoning.extend(assessment.growth.reasoning[:2])
    return decision


def basic_decision(snapshot: ColonySnapshot, timestamp: datetime | None = None) -> StrategicDecision:
    """Low-confidence fallback used when a tick fails."""
    primary = ColonyAction.GATHER_FOOD
    to_state = snapshot.state
    reason = "Fallback to basic decision making"

    if snapshot.food < 30:
        to_state = AIState.GATHERING
        reason = "Critical food shortage"
    elif snapshot.threat_level > 0.7:
        primary = ColonyAction.BUILD_DEFENSES
        to_state = AIState.DEFENDING
        reason = "High threat level"
    elif snapshot.population < snapshot.max_population * 0.8:
        primary = ColonyAction.GROW_POPULATION
        to_state = AIState.GROWING
        reason = "Population below capacity"

    return StrategicDecision(
        kind=DecisionKind.FALLBACK,
        primary_action=primary,
        reasoning=[reason],
        confidence=0.3,
        from_state=snapshot.state,
        to_state=to_state,
        timestamp=timestamp or datetime.now(UTC),
    )


def development_phase_for(population: int, territory_size: int, total_ticks: int) -> DevelopmentPhase:
    """Phase reached by size or by age, whichever is further along."""
    for phase, population_min, territory_min, ticks_min in PHASE_THRESHOLDS:
        if (
            population >= population_min
            or territory_size >= territory_min
            or total_ticks >= ticks_min
        ):
            return phase
    return DevelopmentPhase.EARLY


def estimate_attack_forces(snapshot: ColonySnapshot, attack_type: AttackType) -> int:
    """Soldiers committed to an attack of the given type."""
    multiplier = ATTACK_FORCE_MULTIPLIERS.get(attack_type, 0.5)
    return math.floor(snapshot.available_military * multiplier)


def threat_from_sightings(
    personality: Personality, enemies: list[EnemySighting], recent_attacks: int
) -> float:
    """
    Threat implied by nearby enemies and recent attacks.

    Each enemy contributes (1 - distance / 20) scaled by its population in
    hundreds; each recent attack adds 0.1. Aggressive colonies shrug some
    of it off, defensive ones feel it more.
    """
    score = 0.0
    for enemy in enemies:
        proximity = max(0.0, 1 - enemy.distance / ENEMY_THREAT_RANGE)
        score += proximity * (enemy.population / 100)
    score += recent_attacks * THREAT_PER_RECENT_ATTACK
    return min(1.0, score * THREAT_PERCEPTION.get(personality, 1.0))


# =============================================================================
# Shared Services
# =============================================================================


@dataclass
class SharedServices:
    """Process-wide services shared by every colony controller."""

    events: EventService
    monitor: PlayerMonitor
    adaptive: AdaptiveStrategyEngine
    triggers: TriggerEvaluator
    counter: CounterStrategySelector

    @classmethod
    def create(
        cls,
        config: EngineConfig | None = None,
        *,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
    ) -> SharedServices:
        """Build the full service set from one config, random source and clock."""
        config = config or EngineConfig()
        rng = rng or random.Random()
        monitor = PlayerMonitor(config=config.player_monitor, clock=clock, rng=rng)
        triggers = TriggerEvaluator(config=config.triggers, clock=clock)
        return cls(
            events=EventService(config=config.events, clock=clock),
            monitor=monitor,
            adaptive=AdaptiveStrategyEngine(
                monitor=monitor, config=config.adaptation, rng=rng, clock=clock
            ),
            triggers=triggers,
            counter=CounterStrategySelector(
                config=config.counter, rng=rng, clock=clock, triggers=triggers
            ),
        )


# =============================================================================
# Controller
# =============================================================================


@dataclass
class ColonyController:
    """
    Runs one AI colony.

    ``tick`` holds the controller's own lock for its whole duration, so a
    colony is never ticked twice at once. Different colonies tick in
    parallel; the shared services lock per colony key.
    """

    colony: Colony
    services: SharedServices
    config: EngineConfig = field(default_factory=EngineConfig)
    rng: random.Random = field(default_factory=random.Random)
    clock: Clock = utc_now

    # Components (initialized in __post_init__)
    memory: ColonyMemory = field(init=False)
    growth: GrowthCalculator = field(init=False)
    planner: ExplorationPlanner = field(init=False)
    scouts: ScoutBehavior = field(init=False)
    exploration_map: ExplorationMap | None = field(init=False, default=None)

    _lock: threading.RLock = field(init=False, repr=False, default_factory=threading.RLock)
    _staged_events: list[tuple[AIEventType, Any, PriorityLevel]] | None = field(
        init=False, repr=False, default=None
    )

    def __post_init__(self) -> None:
        """Initialize per-colony components."""
        self.memory = ColonyMemory(
            colony_id=str(self.colony.id), config=self.config.memory, clock=self.clock
        )
        self.growth = GrowthCalculator(config=self.config.growth, rng=self.rng)
        self.planner = ExplorationPlanner(config=self.config.exploration, rng=self.rng)
        self.scouts = ScoutBehavior(rng=self.rng, clock=self.clock)

    @classmethod
    def create(
        cls,
        services: SharedServices,
        *,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
        **colony_options: Any,
    ) -> ColonyController:
        """
        Found a new colony and announce it.

        Args:
            services: Shared services
            config: Engine configuration
            rng: Random source for this colony
            clock: Time source
            **colony_options: Passed to ``create_colony``

        Returns:
            A controller for the new colony
        """
        colony = create_colony(**colony_options)
        controller = cls(
            colony=colony,
            services=services,
            config=config or EngineConfig(),
            rng=rng or random.Random(),
            clock=clock,
        )
        controller._emit(
            AIEventType.COLONY_CREATED,
            ColonyCreatedPayload(
                colony_id=colony.id,
                position=colony.base.model_copy(),
                personality=colony.personality.value,
                initial_strategy=colony.current_strategy.value,
            ),
        )
        logger.info("Colony %s (%s) founded", colony.id, colony.personality.value)
        return controller

    @property
    def colony_id(self) -> str:
        return str(self.colony.id)

    # =========================================================================
    # State
    # =========================================================================

    def get_colony_state(self) -> ColonySnapshot:
        """Read-only snapshot of the colony."""
        with self._lock:
            return self.colony.snapshot()

    def change_state(self, new_state: AIState, reason: str = "") -> bool:
        """
        Move the colony to a new behavior state.

        Transitions outside the adjacency table are rejected with a warning
        and leave the state unchanged. Staying in the same state is allowed.

        Returns:
            True if the colony is now in ``new_state``
        """
        with self._lock:
            current = self.colony.state
            if new_state == current:
                return True
            if not is_valid_transition(current, new_state):
                logger.warning(
                    "Invalid state transition %s -> %s for colony %s",
                    current.value,
                    new_state.value,
                    self.colony_id,
                )
                return False
            self._apply(ColonyUpdate(state=new_state, reasons=[reason] if reason else []))
            logger.debug(
                "Colony %s: %s -> %s %s", self.colony_id, current.value, new_state.value, reason
            )
            return True

    def _apply(self, update: ColonyUpdate) -> None:
        if not update.is_empty():
            self.colony = self.colony.with_update(update)

    def _emit(
        self,
        event_type: AIEventType,
        payload: Any,
        priority: PriorityLevel = PriorityLevel.MEDIUM,
    ) -> None:
        """Publish an event, or hold it until the running tick commits."""
        if self._staged_events is not None:
            self._staged_events.append((event_type, payload, priority))
            return
        self._publish(event_type, payload, priority)

    def _publish(
        self, event_type: AIEventType, payload: Any, priority: PriorityLevel
    ) -> AIEvent:
        return self.services.events.add_event(
            event_type, payload, priority=priority, colony_id=self.colony.id
        )

    def _set_threat(self, new_level: float, source_id: str | None = None) -> None:
        old_level = self.colony.threat_level
        new_level = max(0.0, min(1.0, new_level))
        if new_level == old_level:
            return
        self._apply(ColonyUpdate(threat_level=new_level))
        self._emit(
            AIEventType.THREAT_LEVEL_CHANGED,
            ThreatLevelChangedPayload(
                colony_id=self.colony.id,
                old_threat_level=old_level,
                new_threat_level=new_level,
                source_id=source_id,
            ),
            PriorityLevel.HIGH if new_level > 0.7 else PriorityLevel.MEDIUM,
        )

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self, world: WorldSnapshot | None = None) -> TickResult:
        """
        Run one decision cycle.

        Events raised during the tick are held back and published only once
        the tick completes. Any failure discards them, puts the colony, its
        memory and map, and its entries in the shared adaptive, trigger and
        counter services back as they were, logs the exception and answers
        with the basic fallback decision. Player actions already handed to
        the monitor are kept.
        """
        world = world or WorldSnapshot()
        with self._lock:
            backup = self.colony.model_copy(deep=True)
            memory_backup = self.memory.checkpoint()
            exploration_map = self.exploration_map
            map_backup = exploration_map.checkpoint() if exploration_map else None
            adaptive_backup = self.services.adaptive.checkpoint(self.colony_id)
            triggers_backup = self.services.triggers.checkpoint(self.colony_id)
            counter_backup = self.services.counter.checkpoint(self.colony_id)
            self._staged_events = []
            try:
                result = self._run_tick(world)
            except Exception:
                logger.exception(
                    "Tick %d failed for colony %s, using fallback decision",
                    backup.total_ticks + 1,
                    self.colony_id,
                )
                self._staged_events = None
                self.colony = backup
                self.memory.restore(memory_backup)
                self.exploration_map = exploration_map
                if exploration_map is not None and map_backup is not None:
                    exploration_map.restore(map_backup)
                self.services.adaptive.restore(self.colony_id, adaptive_backup)
                self.services.triggers.restore(self.colony_id, triggers_backup)
                self.services.counter.restore(self.colony_id, counter_backup)

                self.colony.total_ticks += 1
                decision = basic_decision(self.colony.snapshot(), timestamp=self.clock())
                self.change_state(decision.to_state, "fallback")
                return TickResult(
                    colony_id=self.colony.id,
                    tick=self.colony.total_ticks,
                    decision=decision,
                    orders=[decision.primary_action],
                    fallback=True,
                )

            staged, self._staged_events = self._staged_events, None
            result.event_ids = [self._publish(*event).id for event in staged]
            return result

    def _run_tick(self, world: WorldSnapshot) -> TickResult:
        self.colony.total_ticks += 1

        # Strategic decision
        assessment = self.assess(world)
        decision = self._decide(assessment)

        # Player adaptation
        adaptations = 0
        for activity in world.players:
            if not activity.recent_actions:
                continue
            for action in activity.recent_actions:
                self.services.monitor.record_action(activity.player_id, action)
            if self._adapt_to_player(activity.player_id, world).adapted:
                adaptations += 1

        attack_order = self._evaluate_attacks(world)
        phase_before = self.colony.development_phase
        self._grow()
        scout_launches, discoveries = self._explore(world)
        self._refresh_threat(world)

        return TickResult(
            colony_id=self.colony.id,
            tick=self.colony.total_ticks,
            decision=decision,
            attack_order=attack_order,
            orders=[decision.primary_action, *decision.secondary_actions],
            worker_allocation=dict(assessment.resource.allocation),
            scout_launches=scout_launches,
            details={
                "adaptations": adaptations,
                "discoveries": discoveries,
                "phase_changed": self.colony.development_phase != phase_before,
                "threat_level": self.colony.threat_level,
                "state": self.colony.state.value,
            },
        )

    # =========================================================================
    # Strategic Decision
    # =========================================================================

    def assess(self, world: WorldSnapshot) -> TacticalAssessment:
        """Run the four tactical modules against the current colony."""
        snapshot = self.colony.snapshot()
        return TacticalAssessment(
            resource=evaluate_resource_strategy(snapshot),
            defense=evaluate_defense_strategy(snapshot),
            attack=evaluate_attack_strategy(snapshot, world.targets, self.rng),
            growth=evaluate_growth_strategy(snapshot),
        )

    def make_strategic_decision(self, world: WorldSnapshot | None = None) -> StrategicDecision:
        """Decide, apply the decision's state change and remember it."""
        with self._lock:
            return self._decide(self.assess(world or WorldSnapshot()))

    def _decide(self, assessment: TacticalAssessment) -> StrategicDecision:
        snapshot = self.colony.snapshot()
        decision = combine_strategies(snapshot, assessment, timestamp=self.clock())
        self.change_state(decision.to_state, decision.reasoning[0] if decision.reasoning else "")
        self.memory.store(
            MemoryCategory.DECISIONS,
            {
                "decision": decision.model_dump(mode="json"),
                "state": self.colony.state.value,
                "threat_level": self.colony.threat_level,
            },
        )
        return decision

    # =========================================================================
    # Player Adaptation
    # =========================================================================

    def _adapt_to_player(self, player_id: str, world: WorldSnapshot) -> AdaptationResult:
        result = self.services.adaptive.adapt_to_player(self.colony.snapshot(), player_id, world)
        if not result.adapted:
            return result

        if result.update is not None:
            self._apply(result.update)

        old_strategy = result.old_strategy.value if result.old_strategy else ""
        new_strategy = result.new_strategy.value if result.new_strategy else ""
        self._emit(
            AIEventType.STRATEGY_CHANGED,
            StrategyChangedPayload(
                colony_id=self.colony.id,
                old_strategy=old_strategy,
                new_strategy=new_strategy,
                adaptation_level=result.adaptation_level,
                reasoning=result.reasoning,
            ),
            PriorityLevel.HIGH,
        )
        self._emit(
            AIEventType.ADAPTATION_TRIGGERED,
            AdaptationTriggeredPayload(
                colony_id=self.colony.id,
                player_id=player_id,
                old_behavior=old_strategy,
                new_behavior=new_strategy,
                trigger_reason=result.reasoning,
                intensity=adaptation_intensity(result.adaptation_level).value,
                noticeable=result.adaptation_level > 0.6,
            ),
        )

        summary = self.services.monitor.get_behavior_summary(player_id)
        if summary is not None:
            self._apply_counter(summary)
        return result

    def _apply_counter(self, summary: BehaviorSummary) -> CounterApplication:
        selection = self.services.counter.select_counter_strategy(self.colony.snapshot(), summary)
        self._apply(selection.update)
        application = selection.application
        self._emit(
            AIEventType.COUNTER_STRATEGY_APPLIED,
            CounterStrategyAppliedPayload(
                colony_id=self.colony.id,
                player_id=summary.player_id,
                counter_type=application.option.type.value,
                effectiveness=selection.expected_effectiveness,
                application_id=application.id,
            ),
        )
        return application

    def report_counter_outcome(
        self, application_id: str, effectiveness: float, outcome: Outcome | None = None
    ) -> CounterApplication | None:
        """
        Feed back how well an applied counter worked.

        Also counts toward the adaptive engine's success rate when the
        counter succeeded.

        Raises:
            ValueError: If effectiveness is outside [0, 1]
        """
        application = self.services.counter.update_strategy_effectiveness(
            self.colony_id, application_id, effectiveness, outcome
        )
        if application is not None:
            self.services.adaptive.record_outcome(
                self.colony_id, application.outcome == Outcome.SUCCESS
            )
        return application

    # =========================================================================
    # Attacks
    # =========================================================================

    def _evaluate_attacks(self, world: WorldSnapshot) -> AttackOrder | None:
        """Launch against the first target whose triggers say attack."""
        snapshot = self.colony.snapshot()
        for target in world.targets:
            evaluation = self.services.triggers.evaluate(snapshot, target)
            if not evaluation.should_attack:
                continue

            forces = estimate_attack_forces(snapshot, evaluation.attack_type)
            self.services.triggers.record_attack_launch(
                self.colony_id, evaluation.attack_type, target.id
            )
            order = AttackOrder(
                target_id=target.id,
                target_name=target.name,
                attack_type=evaluation.attack_type,
                forces=forces,
                urgency=evaluation.urgency,
                delay_seconds=evaluation.recommended_delay_seconds,
                reasons=list(evaluation.reasons),
            )
            self._emit(
                AIEventType.ATTACK_LAUNCHED,
                AttackLaunchedPayload(
                    colony_id=self.colony.id,
                    target_id=target.id,
                    attack_type=evaluation.attack_type.value,
                    forces=forces,
                    urgency=evaluation.urgency,
                    reasoning=list(evaluation.reasons),
                ),
                PriorityLevel.CRITICAL if evaluation.urgency > 0.7 else PriorityLevel.HIGH,
            )
            self.memory.store(
                MemoryCategory.ATTACKS,
                {
                    "target_id": target.id,
                    "attack_type": evaluation.attack_type.value,
                    "forces": forces,
                    "score": evaluation.trigger_score,
                    "location": target.position.model_dump(),
                },
            )
            if is_valid_transition(self.colony.state, AIState.ATTACKING):
                self.change_state(AIState.ATTACKING, f"Attacking {target.name}")
            return order
        return None

    # =========================================================================
    # Growth
    # =========================================================================

    def _grow(self) -> None:
        before = self.colony.snapshot()
        step = self.growth.calculate_growth(before)
        self.colony, applied = self.growth.apply_growth(self.colony, step)
        total = sum(self.colony.resources.values())
        self.colony.record_growth(
            GrowthRecord(
                tick=self.colony.total_ticks,
                population=self.colony.population,
                territory_size=self.colony.territory_size,
                total_resources=total,
                growth_rate=(total - before.total_resources) / max(1.0, before.total_resources) * 100,
                phase=step.phase,
                timestamp=self.clock(),
            )
        )
        self.memory.store(
            GROWTH_EVENTS_CATEGORY,
            {
                "tick": self.colony.total_ticks,
                "population_growth": applied.population or 0,
                "resource_growth": sum(applied.resources.values()),
                "territory_growth": applied.territory_size or 0,
                "reasoning": step.reasoning,
            },
        )
        self.update_development_phase()

    def update_development_phase(self) -> DevelopmentPhase:
        """Advance the development phase, remembering and announcing changes."""
        with self._lock:
            colony = self.colony
            new_phase = development_phase_for(
                colony.population, colony.territory_size, colony.total_ticks
            )
            old_phase = colony.development_phase
            if new_phase == old_phase:
                return old_phase

            colony.development_phase = new_phase
            self.memory.store(
                MemoryCategory.PHASE_TRANSITIONS,
                {
                    "old_phase": old_phase.value,
                    "new_phase": new_phase.value,
                    "population": colony.population,
                    "territory_size": colony.territory_size,
                    "total_ticks": colony.total_ticks,
                },
            )
            self._emit(
                AIEventType.PHASE_CHANGED,
                PhaseChangedPayload(
                    colony_id=colony.id, old_phase=old_phase.value, new_phase=new_phase.value
                ),
            )
            logger.info(
                "Colony %s entered %s phase (was %s)", colony.id, new_phase.value, old_phase.value
            )
            return new_phase

    def get_growth_efficiency(self) -> GrowthEfficiency:
        return self.growth.growth_efficiency(self.get_colony_state())

    def get_growth_projection(self, ticks: int = 10) -> GrowthProjection:
        with self._lock:
            colony = self.colony.model_copy(deep=True)
        return self.growth.project_growth(colony, ticks)

    # =========================================================================
    # Exploration
    # =========================================================================

    def _ensure_map(self, world: WorldSnapshot) -> ExplorationMap:
        if self.exploration_map is None:
            self.exploration_map = ExplorationMap.create(
                self.colony_id,
                world.map_width,
                world.map_height,
                self.colony.base.model_copy(),
                config=self.config.exploration,
                clock=self.clock,
            )
        return self.exploration_map

    def _explore(self, world: WorldSnapshot) -> tuple[list[str], int]:
        """
        One exploration step.

        Active missions always advance. New missions are planned and
        launched only when the colony wants to explore this tick.

        Returns:
            Ids of launched missions and the number of discoveries made
        """
        exploration_map = self._ensure_map(world)
        discoveries, intelligence = self._advance_missions()
        self._process_discoveries(discoveries, exploration_map)
        self._assess_intelligence(intelligence)

        launched: list[str] = []
        snapshot = self.colony.snapshot()
        if self.planner.should_explore(snapshot):
            plan = self.planner.plan(
                snapshot, self.memory, map_width=world.map_width, map_height=world.map_height
            )
            launched = self._launch_missions(plan, snapshot)

        exploration_map.update_visibility(world.scout_sightings)
        exploration_map.process_decay()
        return launched, len(discoveries)

    def _advance_missions(self) -> tuple[list[Discovery], list[Discovery]]:
        discoveries: list[Discovery] = []
        intelligence: list[Discovery] = []
        remaining: list[ScoutMission] = []

        for mission in self.colony.active_scout_missions:
            step = self.scouts.execute_step(mission)
            discoveries.extend(step.discoveries)
            intelligence.extend(step.intelligence)
            if not mission.is_complete():
                remaining.append(mission)
                continue

            self.memory.store(
                MemoryCategory.SCOUT_MISSIONS,
                {
                    "mission_id": mission.id,
                    "status": "completed",
                    "objective": mission.objective.value,
                    "completion_time": self.clock().isoformat(),
                    "discoveries_count": len(mission.discoveries),
                    "intelligence_count": len(mission.intelligence),
                    "success": mission_success(mission),
                    "location": mission.current_position.model_dump(),
                },
            )
            logger.debug("Colony %s scout mission %s completed", self.colony_id, mission.id)

        self.colony.active_scout_missions = remaining
        return discoveries, intelligence

    def _process_discoveries(
        self, discoveries: list[Discovery], exploration_map: ExplorationMap
    ) -> None:
        for discovery in discoveries:
            category = DISCOVERY_CATEGORIES.get(discovery.type, MemoryCategory.TERRAIN_FEATURES)
            self.memory.store(category, discovery.model_dump(mode="json"))

            location = discovery.location
            known = any(
                abs(area.x - location.x) < SCOUTED_AREA_SPACING
                and abs(area.y - location.y) < SCOUTED_AREA_SPACING
                for area in self.colony.scouted_areas
            )
            if not known:
                self.colony.scouted_areas.append(location.model_copy())

            exploration_map.set_explored_area(
                round(location.x), round(location.y), DISCOVERY_REVEAL_RADIUS
            )
            self._emit(
                AIEventType.DISCOVERY_MADE,
                DiscoveryPayload(
                    colony_id=self.colony.id,
                    discovery_type=discovery.type.value,
                    location=location.model_copy(),
                    significance=discovery.strategic_value or discovery.abundance or 0.0,
                ),
                PriorityLevel.LOW,
            )

    def _assess_intelligence(self, intelligence: list[Discovery]) -> None:
        threat = self.colony.threat_level
        for report in intelligence:
            if report.type == DiscoveryType.ENEMY_ACTIVITY and report.threat_level:
                threat = max(threat, report.threat_level)
            elif report.type == DiscoveryType.SAFETY_ASSESSMENT and report.threats_detected:
                threat = max(threat, DETECTED_THREAT_LEVEL)
        self._set_threat(threat, source_id="scouting")

    def _launch_missions(self, plan: ExplorationPlan, snapshot: ColonySnapshot) -> list[str]:
        free = plan.available_scouts
        launched: list[str] = []
        for assignment in plan.assignments:
            if len(launched) >= self.config.exploration.max_new_missions_per_tick:
                break
            if assignment.scouts_assigned > free:
                continue

            mission = self.scouts.create_mission(assignment, snapshot)
            self.colony.active_scout_missions.append(mission)
            free -= assignment.scouts_assigned
            launched.append(mission.id)
            self._emit(
                AIEventType.UNIT_DEPLOYED,
                UnitDeployedPayload(
                    colony_id=self.colony.id,
                    unit_type="scout",
                    squad_size=assignment.scouts_assigned,
                    mission=assignment.objective_type.value,
                    position=snapshot.base.model_copy(),
                ),
                PriorityLevel.LOW,
            )
        if launched:
            logger.debug("Colony %s launched %d scout missions", self.colony_id, len(launched))
        return launched

    def get_exploration_efficiency(self) -> ExplorationEfficiency:
        """How productive the colony's scouting has been."""
        with self._lock:
            completed = self.memory.get_memories(MemoryCategory.SCOUT_MISSIONS)
            snapshot = self.colony.snapshot()
            budget = math.floor(snapshot.population * snapshot.exploration_budget)
            efficiency = ExplorationEfficiency(
                missions_completed=len(completed),
                active_missions=len(self.colony.active_scout_missions),
                explored_tiles=(
                    self.exploration_map.total_explored_area if self.exploration_map else 0
                ),
                budget_utilization=min(1.0, snapshot.committed_scouts / budget) if budget else 0.0,
            )
            if completed:
                scores = [float(m.payload.get("success", 0.0)) for m in completed]
                found = [int(m.payload.get("discoveries_count", 0)) for m in completed]
                efficiency.success_rate = sum(1 for s in scores if s >= 0.6) / len(scores)
                efficiency.discoveries_per_mission = sum(found) / len(found)
            return efficiency

    # =========================================================================
    # Threat
    # =========================================================================

    def update_threat_level(
        self, nearby_enemies: list[EnemySighting], recent_attacks: int = 0
    ) -> float:
        """Recompute threat from nearby enemies and recent attacks."""
        with self._lock:
            level = threat_from_sightings(self.colony.personality, nearby_enemies, recent_attacks)
            self._set_threat(level, source_id="sightings")
            return self.colony.threat_level

    def _refresh_threat(self, world: WorldSnapshot) -> None:
        if world.nearby_enemies or world.recent_attacks:
            self.update_threat_level(world.nearby_enemies, world.recent_attacks)

        for activity in world.players:
            assessment = self.services.monitor.assess_threat(activity.player_id)
            if not assessment.known:
                continue
            current = self.colony.threat_level
            if abs(assessment.threat_level - current) > self.config.threat_change_threshold:
                self._set_threat(max(current, assessment.threat_level), activity.player_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_player_threat_assessment(self, player_id: str) -> ThreatAssessment:
        return self.services.monitor.assess_threat(player_id)

    def get_player_behavior_summary(self, player_id: str) -> BehaviorSummary | None:
        return self.services.monitor.get_behavior_summary(player_id)

    def get_adaptation_status(self) -> AdaptationStatus | None:
        return self.services.adaptive.get_adaptation_status(self.colony_id)

    def get_trigger_analysis(self) -> TriggerAnalysis | None:
        return self.services.triggers.analyze_trigger_patterns(self.colony_id)

    def get_counter_strategy_analysis(self) -> CounterAnalysis | None:
        return self.services.counter.get_counter_strategy_analysis(self.colony_id)

    def search_memories(self, criteria: MemorySearch) -> list[MemoryEntry]:
        with self._lock:
            return self.memory.search_memories(criteria)

    # =========================================================================
    # Persistence
    # =========================================================================

    def persist(self, repository: ColonyRepository) -> None:
        """Save the colony record and its memory."""
        with self._lock:
            repository.save_colony(self.colony)
            repository.save_memory(self.colony_id, self.memory.export())

    @classmethod
    def load(
        cls,
        repository: ColonyRepository,
        colony_id: UUID,
        services: SharedServices,
        *,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
    ) -> ColonyController | None:
        """Rebuild a controller from a repository, or None if the colony is unknown."""
        colony = repository.get_colony(colony_id)
        if colony is None:
            return None
        controller = cls(
            colony=colony,
            services=services,
            config=config or EngineConfig(),
            rng=rng or random.Random(),
            clock=clock,
        )
        exported = repository.get_memory(str(colony_id))
        if exported is not None:
            controller.memory.import_data(exported)
        return controller
