"""
Tactical strategy modules for colony-ai.

Pure functions over a ColonySnapshot. None of them mutate the colony; the
controller combines their results into one decision per tick.
"""

from __future__ import annotations

from colony_ai.services.strategies.attack import (
    assess_target_viability,
    evaluate_attack_strategy,
    evaluate_attack_success,
)
from colony_ai.services.strategies.defense import (
    determine_posture,
    evaluate_defense_strategy,
    evaluate_defensive_effectiveness,
)
from colony_ai.services.strategies.growth import (
    determine_development_phase,
    evaluate_growth_effectiveness,
    evaluate_growth_strategy,
)
from colony_ai.services.strategies.resource import (
    evaluate_gathering_opportunity,
    evaluate_resource_strategy,
    get_gathering_action,
    get_resource_status,
)

__all__ = [
    # Resource
    "evaluate_resource_strategy",
    "evaluate_gathering_opportunity",
    "get_gathering_action",
    "get_resource_status",
    # Defense
    "determine_posture",
    "evaluate_defense_strategy",
    "evaluate_defensive_effectiveness",
    # Attack
    "assess_target_viability",
    "evaluate_attack_strategy",
    "evaluate_attack_success",
    # Growth
    "determine_development_phase",
    "evaluate_growth_effectiveness",
    "evaluate_growth_strategy",
]
