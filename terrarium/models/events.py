"""
Terrarium - World Event Records
Immutable, time-stamped, radius-bounded perturbations.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from terrarium.config import EventKind

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class WorldEvent:
    """
    A world event stored by value inside every chunk it reaches.

    The timestamp only records when the event happened; generation never
    reads it, so re-running a stage with the same events gives the same maps.
    """
    kind: EventKind
    epicenter: Vec3
    radius: float
    intensity: float
    timestamp: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "kind", EventKind(self.kind))
        epicenter = tuple(float(v) for v in self.epicenter)
        if len(epicenter) != 3:
            raise ValueError("epicenter must be an (x, y, z) position")
        object.__setattr__(self, "epicenter", epicenter)

        values = (*epicenter, self.radius, self.intensity, self.timestamp)
        if not all(math.isfinite(v) for v in values):
            raise ValueError("event values must be finite")
        if self.radius < 0:
            raise ValueError("event radius must be non-negative")

    def distance_to(self, position: Vec3) -> float:
        """Euclidean distance from the epicenter to a world position"""
        return math.dist(self.epicenter, position)

    def reaches(self, position: Vec3) -> bool:
        """Whether a position lies within the event radius (inclusive)"""
        return self.distance_to(position) <= self.radius

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name.lower(),
            "epicenter": list(self.epicenter),
            "radius": self.radius,
            "intensity": self.intensity,
            "timestamp": self.timestamp,
        }
