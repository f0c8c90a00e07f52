"""
Colony Models for colony-ai.

Defines the AI colony record, its state machine, the read-only snapshot
handed to strategy functions, and the world snapshot supplied each tick.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from colony_ai.models.player import PlayerAction
from colony_ai.models.position import Position
from colony_ai.models.scout import ScoutMission


class Personality(str, Enum):
    """Fixed personality an AI colony is created with."""

    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    EXPANSIONIST = "expansionist"
    OPPORTUNIST = "opportunist"
    MILITANT = "militant"
    BUILDER = "builder"


class AIState(str, Enum):
    """High-level behavior mode a colony occupies."""

    IDLE = "idle"
    GATHERING = "gathering"
    DEFENDING = "defending"
    ATTACKING = "attacking"
    GROWING = "growing"
    EXPLORING = "exploring"


class ResourceKind(str, Enum):
    """Stored resource types."""

    FOOD = "food"
    WOOD = "wood"
    STONE = "stone"
    MINERALS = "minerals"
    WATER = "water"


class DevelopmentPhase(str, Enum):
    """Coarse stage of a colony's development."""

    EARLY = "early"
    EXPANSION = "expansion"
    CONSOLIDATION = "consolidation"
    DOMINANCE = "dominance"


class Difficulty(str, Enum):
    """Difficulty setting that scales AI growth."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    NIGHTMARE = "nightmare"


class MacroStrategy(str, Enum):
    """Macro strategy tag selected by adaptation."""

    DEFENSIVE = "defensive"
    AGGRESSIVE = "aggressive"
    ECONOMIC = "economic"
    EXPANSION = "expansion"
    GUERRILLA = "guerrilla"
    BALANCED = "balanced"
    COUNTER_SPECIFIC = "counter_specific"


# Directional state adjacency. Anything not listed here is rejected.
VALID_TRANSITIONS: dict[AIState, frozenset[AIState]] = {
    AIState.IDLE: frozenset({AIState.GATHERING, AIState.EXPLORING, AIState.GROWING}),
    AIState.GATHERING: frozenset(
        {AIState.GROWING, AIState.DEFENDING, AIState.ATTACKING, AIState.EXPLORING}
    ),
    AIState.GROWING: frozenset({AIState.GATHERING, AIState.DEFENDING, AIState.EXPLORING}),
    AIState.DEFENDING: frozenset({AIState.GATHERING, AIState.ATTACKING, AIState.GROWING}),
    AIState.ATTACKING: frozenset({AIState.GATHERING, AIState.DEFENDING, AIState.GROWING}),
    AIState.EXPLORING: frozenset({AIState.GATHERING, AIState.GROWING, AIState.DEFENDING}),
}

GROWTH_HISTORY_LIMIT = 100
DEFAULT_RESOURCE_CAPACITY = 1000.0


def is_valid_transition(current: AIState, target: AIState) -> bool:
    """Check whether ``current -> target`` is allowed by the adjacency table."""
    return target in VALID_TRANSITIONS.get(current, frozenset())


def _default_resources() -> dict[ResourceKind, float]:
    return {
        ResourceKind.FOOD: 100.0,
        ResourceKind.WOOD: 50.0,
        ResourceKind.STONE: 50.0,
        ResourceKind.MINERALS: 20.0,
        ResourceKind.WATER: 100.0,
    }


def _default_capacity() -> dict[ResourceKind, float]:
    return {kind: DEFAULT_RESOURCE_CAPACITY for kind in ResourceKind}


class GrowthRecord(BaseModel):
    """One growth step in a colony's history."""

    tick: int
    population: int
    territory_size: int
    total_resources: float
    growth_rate: float = 0.0
    """Percentage change in total resources over the step."""

    phase: DevelopmentPhase = DevelopmentPhase.EARLY
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Colony Record
# =============================================================================


class Colony(BaseModel):
    """
    Persisted state of one AI colony.

    Owned exclusively by a ColonyController. Other services only ever see
    a ColonySnapshot and return ColonyUpdate instructions.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = "AI Colony"
    personality: Personality = Personality.OPPORTUNIST
    state: AIState = AIState.IDLE
    difficulty: Difficulty = Difficulty.MEDIUM

    # Demographics and territory
    population: Annotated[int, Field(ge=0)] = 30
    max_population: Annotated[int, Field(ge=1)] = 100
    territory_size: Annotated[int, Field(ge=0)] = 3
    base: Position = Field(default_factory=Position)

    # Economy
    resources: dict[ResourceKind, float] = Field(default_factory=_default_resources)
    resource_capacity: dict[ResourceKind, float] = Field(default_factory=_default_capacity)
    resource_efficiency: Annotated[float, Field(gt=0.0)] = 1.0
    infrastructure_level: Annotated[float, Field(ge=0.0)] = 0.0
    trade_disruption: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    # Military
    military_capacity: Annotated[int, Field(ge=0)] = 100
    used_military_capacity: Annotated[int, Field(ge=0)] = 0
    military_focus: Annotated[float, Field(ge=0.0, le=1.0)] = 0.3

    # Behavior modifiers
    aggression_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    expansion_drive: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    risk_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    diplomatic_isolation: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    resource_allocation: dict[str, float] = Field(
        default_factory=lambda: {"economy": 0.4, "military": 0.3, "expansion": 0.3}
    )

    # Strategy
    threat_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    current_strategy: MacroStrategy = MacroStrategy.BALANCED
    adaptation_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    development_phase: DevelopmentPhase = DevelopmentPhase.EARLY
    total_ticks: Annotated[int, Field(ge=0)] = 0

    # Exploration
    exploration_budget: Annotated[float, Field(ge=0.0, le=1.0)] = 0.2
    """Share of the population that may be committed to scouting."""

    active_scout_missions: list[ScoutMission] = Field(default_factory=list)
    scouted_areas: list[Position] = Field(default_factory=list)

    growth_history: list[GrowthRecord] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def resource(self, kind: ResourceKind) -> float:
        """Current stored amount of a resource."""
        return self.resources.get(kind, 0.0)

    def committed_scouts(self) -> int:
        """Scouts currently out on missions."""
        return sum(mission.scouts_assigned for mission in self.active_scout_missions)

    def record_growth(self, record: GrowthRecord) -> None:
        """Append a growth record, keeping the history bounded."""
        self.growth_history.append(record)
        if len(self.growth_history) > GROWTH_HISTORY_LIMIT:
            self.growth_history = self.growth_history[-GROWTH_HISTORY_LIMIT:]

    def snapshot(self) -> ColonySnapshot:
        """Build a read-only snapshot with derived economic indicators."""
        total = sum(self.resources.values())
        recent = self.growth_history[-5:]
        if recent:
            growth_rate = sum(r.growth_rate for r in recent) / len(recent) / 100
        else:
            growth_rate = 0.05
        maintenance = min(0.9, self.infrastructure_level * 10 / max(1.0, total))

        return ColonySnapshot(
            colony_id=self.id,
            personality=self.personality,
            state=self.state,
            difficulty=self.difficulty,
            population=self.population,
            max_population=self.max_population,
            territory_size=self.territory_size,
            base=self.base.model_copy(),
            resources=dict(self.resources),
            resource_capacity=dict(self.resource_capacity),
            total_resources=total,
            resource_efficiency=self.resource_efficiency,
            infrastructure_level=self.infrastructure_level,
            military_capacity=self.military_capacity,
            used_military_capacity=self.used_military_capacity,
            military_focus=self.military_focus,
            aggression_level=self.aggression_level,
            expansion_drive=self.expansion_drive,
            risk_tolerance=self.risk_tolerance,
            diplomatic_isolation=self.diplomatic_isolation,
            threat_level=self.threat_level,
            current_strategy=self.current_strategy,
            adaptation_level=self.adaptation_level,
            development_phase=self.development_phase,
            total_ticks=self.total_ticks,
            exploration_budget=self.exploration_budget,
            committed_scouts=self.committed_scouts(),
            economic_growth_rate=growth_rate,
            trade_disruption=self.trade_disruption,
            maintenance_burden=maintenance,
            created_at=self.created_at,
        )

    def with_update(self, update: ColonyUpdate) -> Colony:
        """
        Return a validated copy of this colony with ``update`` applied.

        Raises:
            pydantic.ValidationError: If the result violates a field constraint
        """
        data = self.model_dump()
        for field_name in _SCALAR_UPDATE_FIELDS:
            value = getattr(update, field_name)
            if value is not None:
                data[field_name] = value
        if update.resource_allocation is not None:
            data["resource_allocation"] = dict(update.resource_allocation)
        for kind, delta in update.resource_deltas.items():
            current = data["resources"].get(kind, 0.0)
            capacity = data["resource_capacity"].get(kind, DEFAULT_RESOURCE_CAPACITY)
            data["resources"][kind] = max(0.0, min(capacity, current + delta))
        data["updated_at"] = datetime.now(UTC)
        return Colony.model_validate(data)


class ColonySnapshot(BaseModel):
    """Immutable view of a colony passed to pure strategy functions."""

    model_config = ConfigDict(frozen=True)

    colony_id: UUID
    personality: Personality
    state: AIState
    difficulty: Difficulty = Difficulty.MEDIUM
    population: int
    max_population: int
    territory_size: int
    base: Position = Field(default_factory=Position)
    resources: dict[ResourceKind, float]
    resource_capacity: dict[ResourceKind, float] = Field(default_factory=_default_capacity)
    total_resources: float
    resource_efficiency: float = 1.0
    infrastructure_level: float = 0.0
    military_capacity: int = 100
    used_military_capacity: int = 0
    military_focus: float = 0.3
    aggression_level: float = 0.5
    expansion_drive: float = 0.5
    risk_tolerance: float = 0.5
    diplomatic_isolation: float = 0.0
    threat_level: float = 0.0
    current_strategy: MacroStrategy = MacroStrategy.BALANCED
    adaptation_level: float = 0.0
    development_phase: DevelopmentPhase = DevelopmentPhase.EARLY
    total_ticks: int = 0
    exploration_budget: float = 0.2
    committed_scouts: int = 0
    economic_growth_rate: float = 0.05
    trade_disruption: float = 0.0
    maintenance_burden: float = 0.0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def resource(self, kind: ResourceKind) -> float:
        """Stored amount of a resource."""
        return self.resources.get(kind, 0.0)

    @property
    def food(self) -> float:
        return self.resource(ResourceKind.FOOD)

    @property
    def available_military(self) -> int:
        """Soldiers that could be committed to a new operation."""
        return max(0, self.military_capacity - self.used_military_capacity)


class ColonyUpdate(BaseModel):
    """
    State-change instructions produced by an engine.

    Every ``None`` field is left untouched. The controller applies the whole
    update at once so a colony is never left half-updated.
    """

    state: AIState | None = None
    threat_level: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    current_strategy: MacroStrategy | None = None
    adaptation_level: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    aggression_level: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    expansion_drive: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    risk_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    military_focus: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    used_military_capacity: Annotated[int, Field(ge=0)] | None = None
    resource_allocation: dict[str, float] | None = None
    resource_deltas: dict[ResourceKind, float] = Field(default_factory=dict)
    reasons: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """True when applying this update would change nothing."""
        return (
            all(getattr(self, name) is None for name in _SCALAR_UPDATE_FIELDS)
            and self.resource_allocation is None
            and not self.resource_deltas
        )


_SCALAR_UPDATE_FIELDS = (
    "state",
    "threat_level",
    "current_strategy",
    "adaptation_level",
    "aggression_level",
    "expansion_drive",
    "risk_tolerance",
    "military_focus",
    "used_military_capacity",
)


# =============================================================================
# World Snapshot
# =============================================================================


class TargetCandidate(BaseModel):
    """
    An attackable colony as seen by an AI colony.

    Every attribute carries a named default so partially observed targets
    can still be scored.
    """

    id: str
    name: str = "Unknown"
    owner_player_id: str | None = None
    position: Position = Field(default_factory=Position)
    distance: Annotated[float, Field(ge=0.0)] = 50.0

    population: Annotated[int, Field(ge=0)] = 50
    territory_size: Annotated[int, Field(ge=0)] = 5
    estimated_resources: Annotated[float, Field(ge=0.0)] = 500.0
    military_strength: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    defense_strength: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5

    # Threat signals
    threat_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    military_buildup: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    expansion_toward_us: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    resource_competition: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    alliance_threat: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    border_tension: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    # Weakness signals
    resource_shortage: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    recent_losses: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    has_defensive_gaps: bool = False
    engaged_in_conflict: bool = False
    internal_instability: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    # Opportunity signals
    strategic_value: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    potential_resource_gain: Annotated[float, Field(ge=0.0)] = 1.0
    """Expected loot relative to the cost of the attack."""

    has_technology: bool = False
    elimination_value: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    alliance_disruption: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    # Diplomacy
    relationship: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.0
    is_enemy_of_allies: bool = False
    betrayed_us: bool = False

    @property
    def military_power(self) -> float:
        """Effective fighting population."""
        return self.population * self.military_strength


class EnemySighting(BaseModel):
    """A hostile force observed near the colony."""

    position: Position = Field(default_factory=Position)
    distance: Annotated[float, Field(ge=0.0)] = 20.0
    population: Annotated[int, Field(ge=0)] = 0


class PlayerActivity(BaseModel):
    """Actions one human player took since the previous tick."""

    player_id: str
    recent_actions: list[PlayerAction] = Field(default_factory=list)


class ScoutSighting(BaseModel):
    """Visibility acknowledgement for a scout in the field."""

    position: Position
    visibility_range: Annotated[int, Field(ge=0)] = 5


class WorldSnapshot(BaseModel):
    """Read-only view of the world handed to a colony's tick."""

    players: list[PlayerActivity] = Field(default_factory=list)
    targets: list[TargetCandidate] = Field(default_factory=list)
    nearby_enemies: list[EnemySighting] = Field(default_factory=list)
    recent_attacks: Annotated[int, Field(ge=0)] = 0
    """Attacks suffered since the previous tick."""

    scout_sightings: list[ScoutSighting] = Field(default_factory=list)
    map_width: Annotated[int, Field(ge=1)] = 100
    map_height: Annotated[int, Field(ge=1)] = 100
    major_event: bool = False
    power_shift: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Factory Functions
# =============================================================================


def create_colony(
    *,
    name: str = "AI Colony",
    personality: Personality = Personality.OPPORTUNIST,
    population: int = 30,
    max_population: int = 100,
    territory_size: int = 3,
    base_x: float = 0.0,
    base_y: float = 0.0,
    resources: dict[ResourceKind, float] | None = None,
    difficulty: Difficulty = Difficulty.MEDIUM,
    military_focus: float | None = None,
    aggression_level: float | None = None,
    expansion_drive: float | None = None,
) -> Colony:
    """
    Create an AI colony with personality-derived behavior defaults.

    Args:
        name: Display name
        personality: Fixed personality
        population: Starting population
        max_population: Population cap
        territory_size: Starting territory tiles
        base_x: Base X coordinate
        base_y: Base Y coordinate
        resources: Starting stock (missing kinds get defaults)
        difficulty: Difficulty level
        military_focus: Override of the personality default
        aggression_level: Override of the personality default
        expansion_drive: Override of the personality default

    Returns:
        A new Colony in the idle state
    """
    defaults = PERSONALITY_DEFAULTS[personality]
    stock = _default_resources()
    if resources:
        stock.update(resources)

    return Colony(
        name=name,
        personality=personality,
        population=population,
        max_population=max_population,
        territory_size=territory_size,
        base=Position(x=base_x, y=base_y),
        resources=stock,
        difficulty=difficulty,
        military_focus=defaults["military_focus"] if military_focus is None else military_focus,
        aggression_level=(
            defaults["aggression_level"] if aggression_level is None else aggression_level
        ),
        expansion_drive=defaults["expansion_drive"] if expansion_drive is None else expansion_drive,
    )


PERSONALITY_DEFAULTS: dict[Personality, dict[str, float]] = {
    Personality.AGGRESSIVE: {"military_focus": 0.5, "aggression_level": 0.8, "expansion_drive": 0.6},
    Personality.DEFENSIVE: {"military_focus": 0.4, "aggression_level": 0.2, "expansion_drive": 0.3},
    Personality.EXPANSIONIST: {
        "military_focus": 0.3,
        "aggression_level": 0.4,
        "expansion_drive": 0.9,
    },
    Personality.OPPORTUNIST: {"military_focus": 0.3, "aggression_level": 0.5, "expansion_drive": 0.5},
    Personality.MILITANT: {"military_focus": 0.7, "aggression_level": 0.7, "expansion_drive": 0.4},
    Personality.BUILDER: {"military_focus": 0.2, "aggression_level": 0.2, "expansion_drive": 0.4},
}
