"""
Service layer for colony-ai.

Services hold per-colony or per-player state and turn read-only snapshots
into decisions and ColonyUpdate instructions. The ColonyController ties
them together for one colony.
"""

from __future__ import annotations

from colony_ai.services.adaptive import AdaptiveStrategyEngine
from colony_ai.services.colony import ColonyController, SharedServices
from colony_ai.services.counter import CounterStrategySelector
from colony_ai.services.events import EventService
from colony_ai.services.exploration import ExplorationPlanner
from colony_ai.services.exploration_map import ExplorationMap
from colony_ai.services.growth import GrowthCalculator
from colony_ai.services.memory import ColonyMemory
from colony_ai.services.player_monitor import PlayerMonitor
from colony_ai.services.scouting import ScoutBehavior
from colony_ai.services.triggers import TriggerEvaluator

__all__ = [
    "AdaptiveStrategyEngine",
    "ColonyController",
    "ColonyMemory",
    "CounterStrategySelector",
    "EventService",
    "ExplorationMap",
    "ExplorationPlanner",
    "GrowthCalculator",
    "PlayerMonitor",
    "ScoutBehavior",
    "SharedServices",
    "TriggerEvaluator",
]
