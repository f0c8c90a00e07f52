"""
Core Data Models for colony-ai.

These models describe AI colonies, the human players they observe, and
every result the decision engines hand back to the controller.

Persisted by the repositories in colony_ai.db:
- Colony records and their memory
Everything else is transient and recomputed each tick.
"""

from colony_ai.models.adaptation import (
    AdaptationIntensity,
    AdaptationNeed,
    AdaptationRecord,
    AdaptationResult,
    AdaptationStatus,
    AdaptedStrategy,
    StrategyDetails,
)
from colony_ai.models.colony import (
    AIState,
    Colony,
    ColonySnapshot,
    ColonyUpdate,
    DevelopmentPhase,
    Difficulty,
    EnemySighting,
    GrowthRecord,
    MacroStrategy,
    Personality,
    PlayerActivity,
    ResourceKind,
    ScoutSighting,
    TargetCandidate,
    WorldSnapshot,
    create_colony,
    is_valid_transition,
)
from colony_ai.models.counter import (
    CounterAnalysis,
    CounterApplication,
    CounterSelection,
    CounterStrategyOption,
    CounterStrategyType,
    ImplementationPlan,
    Outcome,
    PlayerAnalysis,
)
from colony_ai.models.event import (
    AIEvent,
    AIEventType,
    EventHistoryFilter,
    EventStatistics,
    PriorityLevel,
)
from colony_ai.models.exploration import (
    ExplorationEfficiency,
    ExplorationMapExport,
    ExplorationStats,
    TileStatus,
)
from colony_ai.models.growth import (
    GrowthEfficiency,
    GrowthModifiers,
    GrowthProjection,
    GrowthStepResult,
)
from colony_ai.models.memory import (
    MemoryCategory,
    MemoryEntry,
    MemoryExport,
    MemoryQuery,
    MemorySearch,
    MemoryStats,
)
from colony_ai.models.player import (
    ActionCategory,
    BehaviorPattern,
    BehaviorSummary,
    PatternType,
    PlayerAction,
    PlayerMetrics,
    PlayerProfile,
    Playstyle,
    ThreatAssessment,
)
from colony_ai.models.position import Position
from colony_ai.models.scout import (
    Discovery,
    ExplorationPlan,
    ScoutMission,
    ScoutRoute,
    ScoutState,
    Waypoint,
)
from colony_ai.models.strategy import (
    AttackOrder,
    AttackStrategy,
    ColonyAction,
    DefenseStrategy,
    GrowthStrategy,
    ResourceStrategy,
    StrategicDecision,
    TickResult,
)
from colony_ai.models.trigger import (
    AttackType,
    TriggerAnalysis,
    TriggerEvaluation,
    TriggerResult,
    TriggerType,
)

__all__ = [
    # Colony
    "AIState",
    "Colony",
    "ColonySnapshot",
    "ColonyUpdate",
    "DevelopmentPhase",
    "Difficulty",
    "EnemySighting",
    "GrowthRecord",
    "MacroStrategy",
    "Personality",
    "PlayerActivity",
    "ResourceKind",
    "ScoutSighting",
    "TargetCandidate",
    "WorldSnapshot",
    "create_colony",
    "is_valid_transition",
    "Position",
    # Players
    "ActionCategory",
    "BehaviorPattern",
    "BehaviorSummary",
    "PatternType",
    "PlayerAction",
    "PlayerMetrics",
    "PlayerProfile",
    "Playstyle",
    "ThreatAssessment",
    # Adaptation
    "AdaptationIntensity",
    "AdaptationNeed",
    "AdaptationRecord",
    "AdaptationResult",
    "AdaptationStatus",
    "AdaptedStrategy",
    "StrategyDetails",
    # Counter-strategies
    "CounterAnalysis",
    "CounterApplication",
    "CounterSelection",
    "CounterStrategyOption",
    "CounterStrategyType",
    "ImplementationPlan",
    "Outcome",
    "PlayerAnalysis",
    # Triggers
    "AttackType",
    "TriggerAnalysis",
    "TriggerEvaluation",
    "TriggerResult",
    "TriggerType",
    # Events
    "AIEvent",
    "AIEventType",
    "EventHistoryFilter",
    "EventStatistics",
    "PriorityLevel",
    # Memory
    "MemoryCategory",
    "MemoryEntry",
    "MemoryExport",
    "MemoryQuery",
    "MemorySearch",
    "MemoryStats",
    # Scouting and exploration
    "Discovery",
    "ExplorationEfficiency",
    "ExplorationMapExport",
    "ExplorationPlan",
    "ExplorationStats",
    "ScoutMission",
    "ScoutRoute",
    "ScoutState",
    "TileStatus",
    "Waypoint",
    # Growth
    "GrowthEfficiency",
    "GrowthModifiers",
    "GrowthProjection",
    "GrowthStepResult",
    # Strategy results
    "AttackOrder",
    "AttackStrategy",
    "ColonyAction",
    "DefenseStrategy",
    "GrowthStrategy",
    "ResourceStrategy",
    "StrategicDecision",
    "TickResult",
]
