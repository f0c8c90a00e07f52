"""
Tactical Strategy Models for colony-ai.

Results produced by the resource, defense, attack and growth modules, the
combined decision synthesized from them, and the per-tick output of a
colony controller.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, Field

from colony_ai.models.colony import AIState, DevelopmentPhase, ResourceKind, TargetCandidate
from colony_ai.models.position import Position
from colony_ai.models.trigger import AttackType


class ColonyAction(str, Enum):
    """Concrete actions a colony can be ordered to take."""

    GATHER_FOOD = "gather_food"
    GATHER_WOOD = "gather_wood"
    GATHER_STONE = "gather_stone"
    GATHER_MINERALS = "gather_minerals"
    GATHER_WATER = "gather_water"
    BUILD_DEFENSES = "build_defenses"
    TRAIN_SOLDIERS = "train_soldiers"
    LAUNCH_ATTACK = "launch_attack"
    GROW_POPULATION = "grow_population"
    SEND_SCOUTS = "send_scouts"
    BUILD_INFRASTRUCTURE = "build_infrastructure"
    RESEARCH_TECHNOLOGY = "research_technology"

    @classmethod
    def gather(cls, kind: ResourceKind) -> ColonyAction:
        """The gathering action for a resource kind."""
        return cls(f"gather_{kind.value}")

    @property
    def is_gathering(self) -> bool:
        return self.value.startswith("gather_")

    @property
    def is_defensive(self) -> bool:
        return self in (ColonyAction.BUILD_DEFENSES, ColonyAction.TRAIN_SOLDIERS)


# =============================================================================
# Resource Strategy
# =============================================================================


class StorageLevel(str, Enum):
    CRITICAL = "critical"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"


class GatheringAction(BaseModel):
    """A gathering order scaled by colony efficiency and urgency."""

    name: ColonyAction
    resource: ResourceKind
    efficiency: float
    cost: int
    yield_amount: int
    urgency: float = 1.0


class GatheringOpportunity(BaseModel):
    """Score of gathering one resource at one location."""

    resource: ResourceKind
    location: Position
    score: float
    factors: dict[str, float] = Field(default_factory=dict)


class ResourceStatus(BaseModel):
    current: float
    capacity: float
    percentage: float
    status: StorageLevel


class ResourceStrategy(BaseModel):
    """Which resources to gather and how to split the workforce."""

    primary_resource: ResourceKind
    secondary_resource: ResourceKind
    needs: dict[ResourceKind, float] = Field(default_factory=dict)
    priorities: dict[ResourceKind, float] = Field(default_factory=dict)
    allocation: dict[ResourceKind, int] = Field(default_factory=dict)
    """Workers assigned to each resource."""

    reasoning: list[str] = Field(default_factory=list)


# =============================================================================
# Defense Strategy
# =============================================================================


class DefensePosture(str, Enum):
    """Overall defensive stance, strongest first."""

    FORTRESS = "fortress"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    MINIMAL = "minimal"


class UnitDeployment(BaseModel):
    soldiers: int = 0
    archers: int = 0
    scouts: int = 0
    guards: int = 0
    positions: dict[str, int] = Field(default_factory=dict)

    @property
    def total_units(self) -> int:
        return self.soldiers + self.archers + self.scouts + self.guards


class FortificationPlan(BaseModel):
    walls: int = 0
    towers: int = 0
    barriers: int = 0
    trenches: int = 0
    priority_order: list[str] = Field(default_factory=list)
    resource_cost: dict[str, int] = Field(default_factory=dict)

    @property
    def total_structures(self) -> int:
        return self.walls + self.towers + self.barriers + self.trenches


class PriorityArea(BaseModel):
    """A location worth defending."""

    type: str
    priority: float
    coordinates: Position
    reason: str


class DefenseStrategy(BaseModel):
    """Defensive posture with unit and fortification plans."""

    posture: DefensePosture
    unit_deployment: UnitDeployment
    fortification_plan: FortificationPlan
    priority_areas: list[PriorityArea] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)


class DefenseEvaluation(BaseModel):
    overall_score: float = 0.0
    factors: dict[str, float] = Field(default_factory=dict)
    weaknesses: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


# =============================================================================
# Attack Strategy
# =============================================================================


class AttackMethod(str, Enum):
    """Tactical shape of an attack."""

    BLITZ = "blitz"
    SIEGE = "siege"
    RAID = "raid"
    HARASSMENT = "harassment"
    CONQUEST = "conquest"


class TargetViability(BaseModel):
    """How attractive a target is."""

    viable: bool = False
    score: float = 0.0
    factors: dict[str, float] = Field(default_factory=dict)
    risks: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)


class ForceComposition(BaseModel):
    assault_units: int = 0
    support_units: int = 0
    siege_units: int = 0
    scout_units: int = 0
    reserve_units: int = 0

    @property
    def total_units(self) -> int:
        return (
            self.assault_units
            + self.support_units
            + self.siege_units
            + self.scout_units
            + self.reserve_units
        )


class AttackPhase(BaseModel):
    name: str
    duration: int
    description: str


class Contingency(BaseModel):
    """An abort or adapt condition attached to an attack plan."""

    trigger: str
    response: str


class AttackPlan(BaseModel):
    phases: list[AttackPhase] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    contingencies: list[Contingency] = Field(default_factory=list)
    supply_requirements: dict[str, int] = Field(default_factory=dict)
    success_criteria: dict[str, str] = Field(default_factory=dict)

    @property
    def total_duration(self) -> int:
        return sum(phase.duration for phase in self.phases)


class TimelineMilestone(BaseModel):
    time: int
    event: str
    phase: str


class AttackTimeline(BaseModel):
    preparation_time: int = 0
    travel_time: int = 0
    attack_duration: int = 0
    total_time: int = 0
    milestones: list[TimelineMilestone] = Field(default_factory=list)


class AttackStrategy(BaseModel):
    """
    A complete offensive plan, or an explanation of why there is none.

    When no target is viable every optional field stays ``None`` and the
    reasoning says so.
    """

    target: TargetCandidate | None = None
    viability: TargetViability | None = None
    method: AttackMethod | None = None
    force_composition: ForceComposition | None = None
    plan: AttackPlan | None = None
    timeline: AttackTimeline | None = None
    reasoning: list[str] = Field(default_factory=list)

    @property
    def has_target(self) -> bool:
        return self.target is not None


class AttackSuccessEvaluation(BaseModel):
    success_probability: float = 0.0
    factors: dict[str, float] = Field(default_factory=dict)
    critical_risks: list[str] = Field(default_factory=list)
    success_factors: list[str] = Field(default_factory=list)


# =============================================================================
# Growth Strategy
# =============================================================================


class GrowthFocus(str, Enum):
    """Areas a colony can invest growth into."""

    POPULATION = "population"
    TERRITORY = "territory"
    MILITARY = "military"
    INFRASTRUCTURE = "infrastructure"
    TECHNOLOGY = "technology"


class PopulationGrowthPlan(BaseModel):
    target_population: int
    growth_rate: float
    housing_needed: int
    food_requirements: int
    timeline: int


class TerritoryExpansionPlan(BaseModel):
    target_size: int
    expansion_directions: list[str] = Field(default_factory=list)
    outposts_needed: int = 0
    resource_cost: dict[str, int] = Field(default_factory=dict)
    timeline: int = 0


class MilitaryDevelopmentPlan(BaseModel):
    target_military_size: int
    unit_composition: dict[str, int] = Field(default_factory=dict)
    training_facilities: int = 0
    equipment_needed: dict[str, int] = Field(default_factory=dict)
    timeline: int = 0


class InfrastructurePlan(BaseModel):
    housing_projects: int = 0
    storage_facilities: int = 0
    production_buildings: int = 0
    defensive_structures: int = 0
    resource_cost: dict[str, int] = Field(default_factory=dict)
    timeline: int = 0

    @property
    def total_projects(self) -> int:
        return (
            self.housing_projects
            + self.storage_facilities
            + self.production_buildings
            + self.defensive_structures
        )


class TechnologyPlan(BaseModel):
    research_projects: list[str] = Field(default_factory=list)
    research_facilities: int = 0
    specialists_needed: int = 0
    resource_investment: dict[str, int] = Field(default_factory=dict)
    timeline: int = 0


class GrowthPlan(BaseModel):
    population_growth: PopulationGrowthPlan
    territory_expansion: TerritoryExpansionPlan
    military_development: MilitaryDevelopmentPlan
    infrastructure_projects: InfrastructurePlan
    technology_research: TechnologyPlan


class ResourceDistribution(BaseModel):
    needed: int
    available: float
    allocated: float
    shortage: float


class GrowthAllocation(BaseModel):
    population_allocation: dict[str, int] = Field(default_factory=dict)
    resource_distribution: dict[str, ResourceDistribution] = Field(default_factory=dict)
    priority_order: list[str] = Field(default_factory=list)
    """Resources in shortage, largest shortage first."""


class MilestonePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GrowthMilestone(BaseModel):
    type: GrowthFocus
    target: int
    current: int
    estimated_completion: int
    """Tick at which the milestone is expected to be reached."""

    priority: MilestonePriority


class GrowthStrategy(BaseModel):
    """Development phase, growth focus and the plans behind it."""

    development_phase: DevelopmentPhase
    priorities: dict[GrowthFocus, float] = Field(default_factory=dict)
    primary_focus: GrowthFocus
    secondary_focus: GrowthFocus
    plan: GrowthPlan
    allocation: GrowthAllocation
    milestones: list[GrowthMilestone] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)


class GrowthEvaluation(BaseModel):
    overall_score: float = 0.0
    factors: dict[str, float] = Field(default_factory=dict)
    bottlenecks: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)


# =============================================================================
# Decisions and Tick Output
# =============================================================================


class DecisionKind(str, Enum):
    STRATEGIC = "strategic"
    FALLBACK = "fallback"


class StrategicDecision(BaseModel):
    """The single action a colony commits to for one tick."""

    kind: DecisionKind = DecisionKind.STRATEGIC
    primary_action: ColonyAction
    secondary_actions: list[ColonyAction] = Field(default_factory=list, max_length=2)
    resource_focus: ResourceKind | None = None
    military_action: AttackMethod | None = None
    growth_focus: GrowthFocus | None = None
    reasoning: list[str] = Field(default_factory=list)
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    from_state: AIState
    to_state: AIState
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AttackOrder(BaseModel):
    """Order to commit forces against one target."""

    target_id: str
    target_name: str
    attack_type: AttackType
    forces: int
    urgency: float = 0.0
    delay_seconds: float = 0.0
    reasons: list[str] = Field(default_factory=list)


class TickResult(BaseModel):
    """Everything a colony produced during one tick."""

    colony_id: UUID
    tick: int
    decision: StrategicDecision
    attack_order: AttackOrder | None = None
    orders: list[ColonyAction] = Field(default_factory=list)
    worker_allocation: dict[ResourceKind, int] = Field(default_factory=dict)
    scout_launches: list[str] = Field(default_factory=list)
    """Ids of scout missions launched this tick."""

    event_ids: list[str] = Field(default_factory=list)
    fallback: bool = False
    details: dict[str, Any] = Field(default_factory=dict)
