"""
Growth Models for colony-ai.

Output of the per-tick growth calculator: the modifiers in effect, the
amount each aspect of the colony grew, and multi-tick projections.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from colony_ai.models.colony import DevelopmentPhase, ResourceKind


class GrowthModifiers(BaseModel):
    """Multipliers applied to every base growth rate."""

    personality: float = 1.0
    difficulty: float = 1.0
    threat: float = 1.0
    resources: float = 1.0
    phase: float = 1.0
    efficiency: float = 1.0
    overall: float = 1.0


class GrowthAmounts(BaseModel):
    """How much each aspect grows over one step."""

    population: int = 0
    resources: dict[ResourceKind, int] = Field(default_factory=dict)
    territory: int = 0
    military: int = 0
    infrastructure: float = 0.0

    @property
    def total_resources(self) -> int:
        return sum(self.resources.values())


class GrowthStepResult(BaseModel):
    """Growth computed for a time delta, before it is applied."""

    growth: GrowthAmounts
    modifiers: GrowthModifiers
    phase: DevelopmentPhase
    reasoning: list[str] = Field(default_factory=list)


class AppliedGrowth(BaseModel):
    """Field changes made when a growth step is applied."""

    population: int | None = None
    resources: dict[ResourceKind, float] = Field(default_factory=dict)
    territory_size: int | None = None
    military_focus: float | None = None
    infrastructure_level: float | None = None
    max_population: int | None = None


class ProjectionPoint(BaseModel):
    tick: int
    population: int
    territory_size: int
    total_resources: float
    phase: DevelopmentPhase


class ProjectionMilestone(BaseModel):
    tick: int
    type: str
    description: str


class GrowthProjection(BaseModel):
    """Simulated growth over several future ticks."""

    timeline: list[ProjectionPoint] = Field(default_factory=list)
    milestones: list[ProjectionMilestone] = Field(default_factory=list)
    final_state: ProjectionPoint | None = None


class GrowthEfficiency(BaseModel):
    """Current growth conditions with advice."""

    overall_efficiency: float
    factors: GrowthModifiers
    bottlenecks: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
