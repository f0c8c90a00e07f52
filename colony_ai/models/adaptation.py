"""
Adaptation Models for colony-ai.

Records of how an AI colony switched macro strategy in response to a
player's behavior.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

from colony_ai.models.colony import ColonyUpdate, MacroStrategy
from colony_ai.models.player import Playstyle


class AdaptationIntensity(str, Enum):
    """How strongly an adaptation's modifiers are applied."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


INTENSITY_MULTIPLIERS: dict[AdaptationIntensity, float] = {
    AdaptationIntensity.LOW: 0.2,
    AdaptationIntensity.MEDIUM: 0.5,
    AdaptationIntensity.HIGH: 0.8,
    AdaptationIntensity.EXTREME: 1.0,
}


class PlayerCounters(BaseModel):
    """Player-specific adjustments attached to a strategy."""

    aggressiveness: float
    """Room left to out-aggress the player (1 - their aggressiveness, min 0.1)."""

    military_focus: str
    economic_focus: str


class StrategyDetails(BaseModel):
    """Concrete parameters of a macro strategy."""

    priority: str
    resource_allocation: dict[str, float] = Field(default_factory=dict)
    unit_focus: list[str] = Field(default_factory=list)
    building_priority: list[str] = Field(default_factory=list)
    aggression_modifier: float = 0.0
    expansion_modifier: float = 0.0
    risk_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    intensity: AdaptationIntensity = AdaptationIntensity.LOW
    player_counters: PlayerCounters | None = None


class AdaptationNeed(BaseModel):
    """How urgently a colony should change strategy."""

    score: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    factors: list[str] = Field(default_factory=list)
    threat_level: float = 0.5
    strategy_effectiveness: float = 0.5


class AdaptedStrategy(BaseModel):
    """A macro strategy chosen to counter a player."""

    type: MacroStrategy
    reasoning: str
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    details: StrategyDetails
    targeted_patterns: list[str] = Field(default_factory=list)
    player_style_counter: Playstyle = Playstyle.UNKNOWN


class AdaptationRecord(BaseModel):
    """One entry of a colony's strategic memory."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    player_id: str | None = None
    old_strategy: MacroStrategy
    new_strategy: MacroStrategy
    reasoning: str
    confidence: float
    intensity: float
    triggers: list[str] = Field(default_factory=list)


class AdaptationResult(BaseModel):
    """
    Outcome of an adaptation attempt.

    When ``adapted`` is False only ``reason`` (and possibly ``need`` or
    ``next_adaptation_available``) is meaningful.
    """

    adapted: bool = False
    reason: str = ""
    old_strategy: MacroStrategy | None = None
    new_strategy: MacroStrategy | None = None
    adaptation_level: float = 0.0
    reasoning: str = ""
    confidence: float = 0.0
    details: StrategyDetails | None = None
    need: AdaptationNeed | None = None
    next_adaptation_available: datetime | None = None
    update: ColonyUpdate | None = None


class AdaptationStatus(BaseModel):
    """Current adaptation bookkeeping for one colony."""

    colony_id: str
    current_strategy: MacroStrategy
    base_strategy: MacroStrategy
    adaptation_level: float
    last_adaptation: datetime | None = None
    adaptation_count: int = 0
    success_rate: float = 0.0
    in_cooldown: bool = False
    recent_adaptations: list[AdaptationRecord] = Field(default_factory=list)
    player_adaptation_counts: dict[str, int] = Field(default_factory=dict)
