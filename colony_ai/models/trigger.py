"""
Attack Trigger Models for colony-ai.

Results of evaluating whether an AI colony should launch an attack, plus
the per-colony attack and trigger history kept by the evaluator.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field


class TriggerType(str, Enum):
    """Independent conditions that can push a colony toward attacking."""

    RESOURCE_THRESHOLD = "resource_threshold"
    TERRITORY_PROXIMITY = "territory_proximity"
    TIME_BASED = "time_based"
    PLAYER_WEAKNESS = "player_weakness"
    STRATEGIC_OPPORTUNITY = "strategic_opportunity"
    DEFENSIVE_NECESSITY = "defensive_necessity"
    ECONOMIC_PRESSURE = "economic_pressure"
    DIPLOMATIC_SITUATION = "diplomatic_situation"


class AttackType(str, Enum):
    """Scale of a recommended attack, smallest first."""

    RAID = "raid"
    SKIRMISH = "skirmish"
    ASSAULT = "assault"
    SIEGE = "siege"
    CAMPAIGN = "campaign"


class AggressionTrend(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class TriggerResult(BaseModel):
    """Outcome of a single trigger."""

    triggered: bool = False
    intensity: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    reasons: list[str] = Field(default_factory=list)
    reason: str = ""
    """Joined reasons, or a fixed message when nothing contributed."""

    factors: dict[str, Any] = Field(default_factory=dict)


class CooldownStatus(BaseModel):
    """Availability of one attack type."""

    available: bool = True
    remaining_seconds: float = 0.0
    last_used: datetime | None = None


class TriggerEvaluation(BaseModel):
    """Combined verdict over all triggers for one target."""

    should_attack: bool = False
    trigger_score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    attack_type: AttackType = AttackType.RAID
    attack_description: str = "Quick raid"
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    urgency: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    recommended_delay_seconds: float = 0.0
    reasons: list[str] = Field(default_factory=list)
    breakdown: dict[TriggerType, TriggerResult] = Field(default_factory=dict)
    cooldown_status: dict[AttackType, CooldownStatus] = Field(default_factory=dict)
    target_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AttackRecord(BaseModel):
    """An attack that was actually launched."""

    timestamp: datetime
    attack_type: AttackType
    target_id: str | None = None


class TriggerHistoryEntry(BaseModel):
    """Compact record of one past evaluation."""

    timestamp: datetime
    trigger_score: float
    should_attack: bool
    attack_type: AttackType
    reasons: list[str] = Field(default_factory=list)
    urgency: float = 0.0


class AttackFrequency(BaseModel):
    average_interval_seconds: float | None = None
    attacks_per_minute: float = 0.0
    total_intervals: int = 0


class ReasonFrequency(BaseModel):
    reason: str
    frequency: int
    percentage: float


class TriggerAnalysis(BaseModel):
    """Summary of a colony's attack behavior over time."""

    colony_id: str
    total_attacks: int = 0
    attack_frequency: AttackFrequency = Field(default_factory=AttackFrequency)
    trigger_patterns: list[ReasonFrequency] = Field(default_factory=list)
    aggression_trend: AggressionTrend = AggressionTrend.INSUFFICIENT_DATA
    cooldown_status: dict[AttackType, CooldownStatus] = Field(default_factory=dict)
    recent_triggers: list[TriggerHistoryEntry] = Field(default_factory=list)
