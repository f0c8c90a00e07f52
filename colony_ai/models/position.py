"""Grid positions shared by colony, scouting and memory models."""

from __future__ import annotations

import math

from pydantic import BaseModel


class Position(BaseModel):
    """A point on the abstract world grid."""

    x: float = 0.0
    y: float = 0.0

    def distance_to(self, other: Position) -> float:
        """Euclidean distance to another position."""
        return math.hypot(self.x - other.x, self.y - other.y)
