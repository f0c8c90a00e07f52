"""
Engine configuration for colony-ai.

Every tunable number the services rely on lives here with a named default,
validated when the config object is built.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from colony_ai.models.event import PriorityLevel
from colony_ai.models.trigger import AttackType, TriggerType


class MemoryConfig(BaseModel):
    """Capacity and ranking settings for the colony memory store."""

    default_capacity: int = Field(default=50, ge=1, description="Capacity of unlisted categories")
    default_retention_days: int = Field(default=30, ge=1)
    relevance_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    recency_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    recency_window_days: float = Field(
        default=30.0, gt=0.0, description="Age at which recency reaches zero"
    )
    cleanup_relevance_floor: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Old memories at or above this survive cleanup"
    )
    default_radius: float = Field(default=10.0, gt=0.0)
    related_threshold: float = Field(default=0.3, ge=0.0, le=1.0)


class EventServiceConfig(BaseModel):
    """Queue, retry and history settings for the event service."""

    max_history: int = Field(default=1000, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_base_seconds: float = Field(default=1.0, ge=0.0, description="Backoff base delay")
    poll_interval_seconds: float = Field(default=0.1, gt=0.0)
    immediate_priority: PriorityLevel = Field(
        default=PriorityLevel.HIGH, description="Events at or above this run in the caller"
    )


class PlayerMonitorConfig(BaseModel):
    """Window and analysis cadence for the player monitor."""

    recent_window: int = Field(default=50, ge=1)
    analysis_interval: int = Field(default=10, ge=1, description="Re-analyze every N actions")
    min_actions_for_analysis: int = Field(default=5, ge=1)
    min_actions_for_resistance: int = Field(default=10, ge=1)


class AdaptationConfig(BaseModel):
    """Cooldown and thresholds for macro strategy adaptation."""

    cooldown_seconds: float = Field(default=300.0, ge=0.0)
    need_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    player_history_limit: int = Field(default=5, ge=1)
    strategic_memory_limit: int = Field(default=10, ge=1)
    max_confidence: float = Field(default=0.9, ge=0.0, le=1.0)


def _default_trigger_weights() -> dict[TriggerType, float]:
    return {
        TriggerType.RESOURCE_THRESHOLD: 0.25,
        TriggerType.TERRITORY_PROXIMITY: 0.20,
        TriggerType.TIME_BASED: 0.15,
        TriggerType.PLAYER_WEAKNESS: 0.30,
        TriggerType.STRATEGIC_OPPORTUNITY: 0.25,
        TriggerType.DEFENSIVE_NECESSITY: 0.35,
        TriggerType.ECONOMIC_PRESSURE: 0.15,
        TriggerType.DIPLOMATIC_SITUATION: 0.10,
    }


def _default_attack_cooldowns() -> dict[AttackType, float]:
    return {
        AttackType.RAID: 180.0,
        AttackType.SKIRMISH: 300.0,
        AttackType.ASSAULT: 600.0,
        AttackType.SIEGE: 1200.0,
        AttackType.CAMPAIGN: 1800.0,
    }


class TriggerConfig(BaseModel):
    """Weights, cooldowns and history limits for attack triggers."""

    attack_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    weights: dict[TriggerType, float] = Field(default_factory=_default_trigger_weights)
    cooldowns: dict[AttackType, float] = Field(
        default_factory=_default_attack_cooldowns, description="Seconds per attack type"
    )
    default_cooldown_seconds: float = Field(default=300.0, ge=0.0)
    trigger_history_limit: int = Field(default=20, ge=1)
    attack_history_limit: int = Field(default=10, ge=1)


class CounterConfig(BaseModel):
    """Ledger and sampling settings for counter-strategy selection."""

    ledger_limit: int = Field(default=20, ge=1)
    top_candidates: int = Field(default=3, ge=1)
    rank_decay: float = Field(default=0.8, gt=0.0, le=1.0)
    initial_learning_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    learning_step: float = Field(default=0.01, ge=0.0)
    max_learning_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    success_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    failure_threshold: float = Field(default=0.4, ge=0.0, le=1.0)
    chaos_resistance_threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class ExplorationConfig(BaseModel):
    """Scouting limits and fog-of-war decay."""

    max_objectives: int = Field(default=5, ge=1)
    min_population: int = Field(default=20, ge=0, description="No scouting below this")
    max_scouts_per_mission: int = Field(default=5, ge=1)
    max_new_missions_per_tick: int = Field(default=2, ge=0)
    memory_decay_threshold_hours: float = Field(default=72.0, ge=0.0)
    max_memory_retention_hours: float = Field(default=168.0, gt=0.0)
    base_visibility_range: int = Field(default=3, ge=0)
    milestone_interval: int = Field(default=50, ge=1)


class GrowthConfig(BaseModel):
    """Base growth rates and caps."""

    population_rate: float = Field(default=0.02, ge=0.0)
    resource_rates: dict[str, float] = Field(
        default_factory=lambda: {
            "food": 0.05,
            "wood": 0.03,
            "stone": 0.02,
            "minerals": 0.01,
            "water": 0.04,
        }
    )
    territory_rate: float = Field(default=0.001, ge=0.0)
    military_rate: float = Field(default=0.015, ge=0.0)
    infrastructure_rate: float = Field(default=0.01, ge=0.0)
    max_territory: int = Field(default=25, ge=1)
    max_military_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    food_per_territory: float = Field(default=50.0, ge=0.0)


class EngineConfig(BaseModel):
    """Master configuration for every colony-ai service."""

    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    events: EventServiceConfig = Field(default_factory=EventServiceConfig)
    player_monitor: PlayerMonitorConfig = Field(default_factory=PlayerMonitorConfig)
    adaptation: AdaptationConfig = Field(default_factory=AdaptationConfig)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)
    counter: CounterConfig = Field(default_factory=CounterConfig)
    exploration: ExplorationConfig = Field(default_factory=ExplorationConfig)
    growth: GrowthConfig = Field(default_factory=GrowthConfig)

    # Controller
    threat_change_threshold: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Minimum change before threat is refreshed"
    )
