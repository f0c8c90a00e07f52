"""
AI Event Models for colony-ai.

Events announce significant AI decisions (attacks, strategy changes,
discoveries) to the rest of the game. The set of event types is closed and
every type carries its own payload model.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, SerializeAsAny, model_validator

from colony_ai.models.position import Position


class AIEventType(str, Enum):
    """Every kind of event an AI colony can emit."""

    ATTACK_LAUNCHED = "attack_launched"
    STRATEGY_CHANGED = "strategy_changed"
    COLONY_CREATED = "colony_created"
    COLONY_DESTROYED = "colony_destroyed"
    ADAPTATION_TRIGGERED = "adaptation_triggered"
    THREAT_LEVEL_CHANGED = "threat_level_changed"
    RESOURCE_THRESHOLD_REACHED = "resource_threshold_reached"
    ALLIANCE_FORMED = "alliance_formed"
    ALLIANCE_BROKEN = "alliance_broken"
    DISCOVERY_MADE = "discovery_made"
    TERRITORY_CLAIMED = "territory_claimed"
    UNIT_DEPLOYED = "unit_deployed"
    BUILDING_CONSTRUCTED = "building_constructed"
    RESEARCH_COMPLETED = "research_completed"
    DIPLOMATIC_ACTION = "diplomatic_action"
    COUNTER_STRATEGY_APPLIED = "counter_strategy_applied"
    PHASE_CHANGED = "phase_changed"


class PriorityLevel(str, Enum):
    """Named priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    EMERGENCY = "emergency"


PRIORITY_VALUES: dict[PriorityLevel, int] = {
    PriorityLevel.LOW: 1,
    PriorityLevel.MEDIUM: 2,
    PriorityLevel.HIGH: 3,
    PriorityLevel.CRITICAL: 4,
    PriorityLevel.EMERGENCY: 5,
}


# =============================================================================
# Payloads
# =============================================================================


class AttackLaunchedPayload(BaseModel):
    """An AI colony committed forces against a target."""

    colony_id: UUID
    target_id: str
    attack_type: str
    forces: int
    urgency: float = 0.0
    reasoning: list[str] = Field(default_factory=list)


class StrategyChangedPayload(BaseModel):
    """Macro strategy switched after adaptation."""

    colony_id: UUID
    old_strategy: str
    new_strategy: str
    adaptation_level: float
    reasoning: str = ""


class ColonyCreatedPayload(BaseModel):
    colony_id: UUID
    position: Position
    personality: str
    initial_strategy: str


class ColonyDestroyedPayload(BaseModel):
    colony_id: UUID
    destroyed_by: str | None = None
    final_resources: dict[str, float] = Field(default_factory=dict)
    duration_ticks: int = 0


class AdaptationTriggeredPayload(BaseModel):
    """A player's behavior caused the colony to adapt."""

    colony_id: UUID
    player_id: str
    old_behavior: str
    new_behavior: str
    trigger_reason: str
    intensity: str
    noticeable: bool = False
    """Whether the change is obvious enough to hint at in the UI."""


class ThreatLevelChangedPayload(BaseModel):
    colony_id: UUID
    old_threat_level: float
    new_threat_level: float
    source_id: str | None = None


class ResourceThresholdPayload(BaseModel):
    colony_id: UUID
    resource_type: str
    threshold: str
    """One of "abundance", "scarcity" or "military_ready"."""

    current_amount: float
    action: str | None = None


class AlliancePayload(BaseModel):
    colony_id: UUID
    other_id: str
    alliance_type: str = "neutral"
    reason: str | None = None
    betrayal: bool = False


class DiscoveryPayload(BaseModel):
    colony_id: UUID
    discovery_type: str
    location: Position
    significance: float = 0.0


class TerritoryClaimedPayload(BaseModel):
    colony_id: UUID
    territory_size: int
    strategic_value: float = 0.0


class UnitDeployedPayload(BaseModel):
    colony_id: UUID
    unit_type: str
    squad_size: int
    mission: str
    position: Position | None = None


class BuildingConstructedPayload(BaseModel):
    colony_id: UUID
    building_type: str
    purpose: str = ""
    position: Position | None = None


class ResearchCompletedPayload(BaseModel):
    colony_id: UUID
    research_type: str
    benefits: dict[str, Any] = Field(default_factory=dict)


class DiplomaticActionPayload(BaseModel):
    colony_id: UUID
    target_id: str
    action: str
    terms: dict[str, Any] = Field(default_factory=dict)


class CounterStrategyAppliedPayload(BaseModel):
    colony_id: UUID
    player_id: str
    counter_type: str
    effectiveness: float
    application_id: str


class PhaseChangedPayload(BaseModel):
    colony_id: UUID
    old_phase: str
    new_phase: str


EVENT_PAYLOADS: dict[AIEventType, type[BaseModel]] = {
    AIEventType.ATTACK_LAUNCHED: AttackLaunchedPayload,
    AIEventType.STRATEGY_CHANGED: StrategyChangedPayload,
    AIEventType.COLONY_CREATED: ColonyCreatedPayload,
    AIEventType.COLONY_DESTROYED: ColonyDestroyedPayload,
    AIEventType.ADAPTATION_TRIGGERED: AdaptationTriggeredPayload,
    AIEventType.THREAT_LEVEL_CHANGED: ThreatLevelChangedPayload,
    AIEventType.RESOURCE_THRESHOLD_REACHED: ResourceThresholdPayload,
    AIEventType.ALLIANCE_FORMED: AlliancePayload,
    AIEventType.ALLIANCE_BROKEN: AlliancePayload,
    AIEventType.DISCOVERY_MADE: DiscoveryPayload,
    AIEventType.TERRITORY_CLAIMED: TerritoryClaimedPayload,
    AIEventType.UNIT_DEPLOYED: UnitDeployedPayload,
    AIEventType.BUILDING_CONSTRUCTED: BuildingConstructedPayload,
    AIEventType.RESEARCH_COMPLETED: ResearchCompletedPayload,
    AIEventType.DIPLOMATIC_ACTION: DiplomaticActionPayload,
    AIEventType.COUNTER_STRATEGY_APPLIED: CounterStrategyAppliedPayload,
    AIEventType.PHASE_CHANGED: PhaseChangedPayload,
}


# =============================================================================
# Event Record
# =============================================================================


class AIEvent(BaseModel):
    """
    A queued or archived AI event.

    An event ends either ``processed`` or ``failed``, never both.
    """

    id: str = Field(default_factory=lambda: f"ai_event_{uuid4().hex[:12]}")
    type: AIEventType
    payload: SerializeAsAny[BaseModel]
    priority_level: PriorityLevel = PriorityLevel.MEDIUM
    colony_id: UUID | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    attempts: int = 0
    max_attempts: Annotated[int, Field(ge=1)] = 3
    retry_at: datetime | None = None
    last_error: str | None = None

    processed: bool = False
    processed_at: datetime | None = None
    failed: bool = False

    @model_validator(mode="after")
    def _check_payload_type(self) -> AIEvent:
        expected = EVENT_PAYLOADS[self.type]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.type.value} events require a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )
        return self

    @property
    def priority(self) -> int:
        """Numeric priority derived from the named level."""
        return PRIORITY_VALUES[self.priority_level]


class EventHistoryFilter(BaseModel):
    """Filters for querying archived events."""

    colony_id: UUID | None = None
    event_type: AIEventType | None = None
    min_priority: PriorityLevel | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    failed_only: bool = False


class EventStatistics(BaseModel):
    """Aggregate counts over archived and queued events."""

    total_events: int = 0
    events_in_queue: int = 0
    events_by_type: dict[str, int] = Field(default_factory=dict)
    events_by_priority: dict[str, int] = Field(default_factory=dict)
    failed_events: int = 0
    average_processing_seconds: float = 0.0
