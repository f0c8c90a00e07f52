"""
Player Behavior Models for colony-ai.

Profiles, metrics and patterns describing how a human opponent plays.
Patterns are regenerated on every analysis cycle and never mutated in place.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import BaseModel, Field


class ActionCategory(str, Enum):
    """Fixed categories every player action is sorted into."""

    RESOURCE_GATHERING = "resource_gathering"
    TERRITORY_EXPANSION = "territory_expansion"
    MILITARY_BUILDUP = "military_buildup"
    TRADING = "trading"
    EXPLORATION = "exploration"
    DIPLOMACY = "diplomacy"
    TECHNOLOGY_RESEARCH = "technology_research"
    DEFENSIVE_ACTIONS = "defensive_actions"


class Playstyle(str, Enum):
    """Classification of a player's dominant tendency."""

    UNKNOWN = "unknown"
    AGGRESSIVE_MILITARY = "aggressive_military"
    DEFENSIVE_TURTLE = "defensive_turtle"
    ECONOMIC_FOCUSED = "economic_focused"
    RAPID_EXPANDER = "rapid_expander"
    BALANCED_STRATEGIC = "balanced_strategic"
    CAUTIOUS_EXPLORER = "cautious_explorer"
    ADAPTIVE_OPPORTUNIST = "adaptive_opportunist"


class PatternType(str, Enum):
    """Short-lived regularities detected in a player's recent actions."""

    RESOURCE_HOARDING = "resource_hoarding"
    MILITARY_PREPARATION = "military_preparation"
    EXPANSION_PRESSURE = "expansion_pressure"
    DEFENSIVE_PREPARATION = "defensive_preparation"
    TRADE_FOCUSED = "trade_focused"
    HIT_AND_RUN_TACTICS = "hit_and_run_tactics"


class PlayerAction(BaseModel):
    """A single action reported for a human player."""

    id: str = Field(default_factory=lambda: f"action_{uuid4().hex[:10]}")
    type: str
    """Free-form action type, e.g. "gather_wood" or "raid_outpost"."""

    category: ActionCategory | None = None
    """Filled in by the monitor when the action is recorded."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    intensity: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    """Scale of the action's impact."""

    success: bool = True
    target: str | None = None
    location: tuple[float, float] | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def risk_level(self) -> float:
        """Risk reported in the action context, 0.0 when absent."""
        value = self.context.get("risk_level", 0.0)
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0


class PlayerMetrics(BaseModel):
    """Behavioral metrics, all on a 0-1 scale."""

    aggressiveness: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    expansion_tendency: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    economic_focus: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    military_focus: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    risk_tolerance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    adaptation_resistance: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    """How consistently the player sticks to one kind of action."""


class PlayerProfile(BaseModel):
    """Cumulative behavioral profile of one observed player."""

    player_id: str
    total_actions: int = 0
    action_counts: dict[ActionCategory, int] = Field(
        default_factory=lambda: {category: 0 for category in ActionCategory}
    )
    metrics: PlayerMetrics = Field(default_factory=PlayerMetrics)
    playstyle: Playstyle = Playstyle.UNKNOWN
    session_start: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_analysis: datetime | None = None


class BehaviorPattern(BaseModel):
    """A detected regularity with its predicted follow-up behavior."""

    type: PatternType
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    description: str
    predicted_behavior: str


class ActionPrediction(BaseModel):
    """Best guess at the category of the player's next action."""

    category: ActionCategory = ActionCategory.RESOURCE_GATHERING
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.3
    reasoning: str = "Default fallback prediction"


class PlayerActivitySummary(BaseModel):
    """Activity statistics for the current session."""

    total_actions: int
    session_minutes: float
    actions_per_minute: float
    last_activity: datetime


class BehaviorSummary(BaseModel):
    """Everything an AI colony knows about one player."""

    player_id: str
    playstyle: Playstyle
    metrics: PlayerMetrics
    activity: PlayerActivitySummary
    patterns: list[BehaviorPattern] = Field(default_factory=list)
    recent_action_count: int = 0
    predicted_next_action: ActionPrediction | None = None

    def has_pattern(self, pattern_type: PatternType) -> bool:
        """Check whether a pattern is currently active."""
        return any(p.type == pattern_type for p in self.patterns)

    def pattern_confidence(self, pattern_type: PatternType) -> float:
        """Confidence of an active pattern, 0.0 when absent."""
        for pattern in self.patterns:
            if pattern.type == pattern_type:
                return pattern.confidence
        return 0.0


class BehaviorAnalysis(BaseModel):
    """Result of one analysis cycle."""

    profile: PlayerProfile
    metrics: PlayerMetrics
    patterns: list[BehaviorPattern] = Field(default_factory=list)


class ThreatAssessment(BaseModel):
    """How threatening a player currently looks."""

    player_id: str
    threat_level: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    reasoning: str = "Unknown player"
    recommendations: list[str] = Field(default_factory=list)
    known: bool = False
    """False when the player has never been observed."""
