"""
Counter-Strategy Models for colony-ai.

Candidate counter-strategies against a classified player, the plan used to
carry one out, and the per-colony ledger of applied counters.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, Field

from colony_ai.models.colony import ColonyUpdate
from colony_ai.models.player import Playstyle


class CounterStrategyType(str, Enum):
    """Packaged macro-behavior changes aimed at a specific opponent."""

    MIRROR_STRATEGY = "mirror_strategy"
    DIRECT_COUNTER = "direct_counter"
    FLANKING_MANEUVER = "flanking_maneuver"
    ECONOMIC_WARFARE = "economic_warfare"
    PSYCHOLOGICAL_PRESSURE = "psychological_pressure"
    TERRITORIAL_DENIAL = "territorial_denial"
    HIT_AND_RUN = "hit_and_run"
    OVERWHELMING_FORCE = "overwhelming_force"
    DEFENSIVE_ATTRITION = "defensive_attrition"
    TECHNOLOGY_RACE = "technology_race"
    ALLIANCE_DISRUPTION = "alliance_disruption"
    ADAPTIVE_CHAOS = "adaptive_chaos"


class Outcome(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class CounterStrategyOption(BaseModel):
    """A candidate counter, scored once evaluated."""

    type: CounterStrategyType
    approach: str
    description: str
    tactical_focus: list[str] = Field(default_factory=list)
    historical_effectiveness: float | None = None
    """Set when the option was lifted from a previous success."""

    unpredictability: float | None = None

    effectiveness: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    risk_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    reward_potential: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    feasibility: Annotated[float, Field(ge=0.0, le=1.0)] = 1.0
    reasoning: str = ""

    @property
    def key(self) -> tuple[CounterStrategyType, str]:
        """Identity used to drop duplicate candidates."""
        return (self.type, self.approach)


class TimelinePhase(BaseModel):
    duration: str
    actions: list[str] = Field(default_factory=list)


class BehaviorModifications(BaseModel):
    """Deltas applied to the colony's behavior modifiers."""

    aggression_level: float = 0.0
    defensive_posture: float = 0.0
    economic_focus: float = 0.0
    expansion_drive: float = 0.0
    risk_tolerance: float = 0.0
    adaptation_rate: float = 0.0


class ImplementationPlan(BaseModel):
    """How a selected counter is put into practice."""

    strategy_type: CounterStrategyType
    tactical_focus: list[str] = Field(default_factory=list)
    immediate_actions: list[str] = Field(default_factory=list)
    resource_allocation: dict[str, float] = Field(default_factory=dict)
    behavior_modifications: BehaviorModifications = Field(default_factory=BehaviorModifications)
    timeline: dict[str, TimelinePhase] = Field(default_factory=dict)


class CounterApplication(BaseModel):
    """Ledger entry for a counter that was applied."""

    id: str = Field(default_factory=lambda: f"counter_{uuid4().hex[:10]}")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    player_id: str
    target_playstyle: Playstyle
    option: CounterStrategyOption
    plan: ImplementationPlan
    effectiveness: float | None = None
    outcome: Outcome = Outcome.PENDING


class PlayerAnalysis(BaseModel):
    """Strengths and weaknesses implied by a player's playstyle and patterns."""

    primary_strategy: Playstyle
    active_patterns: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    predicted_actions: list[str] = Field(default_factory=list)
    exploitable_gaps: list[str] = Field(default_factory=list)
    adaptation_level: float = 0.5


class CounterSelection(BaseModel):
    """Result of selecting a counter for one player."""

    application: CounterApplication
    reasoning: str
    expected_effectiveness: float
    alternatives: list[CounterStrategyOption] = Field(default_factory=list)
    update: ColonyUpdate = Field(default_factory=ColonyUpdate)


class CounterAnalysis(BaseModel):
    """Learning statistics for a colony's counter ledger."""

    colony_id: str
    total_applied: int = 0
    successful: int = 0
    failed: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    learning_rate: float = 0.1
    specialization: CounterStrategyType | None = None
    recent: list[CounterApplication] = Field(default_factory=list)
    most_effective: list[CounterApplication] = Field(default_factory=list)
