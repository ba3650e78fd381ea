"""
World Event Manager
Trigger surface for world events, with a bounded historical record.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from terrarium.config import EventKind
from terrarium.models.chunk import ChunkCoord
from terrarium.models.events import WorldEvent

logger = logging.getLogger(__name__)

# Debug trigger defaults: (radius, intensity)
EVENT_DEFAULTS: Dict[EventKind, tuple] = {
    EventKind.MAGICAL_EXPLOSION: (100.0, 1.0),
    EventKind.CRYSTALLIZED_TERRAIN: (80.0, 0.8),
    EventKind.FACTION_INFLUENCE: (150.0, 1.5),
    EventKind.NATURAL_DISASTER: (120.0, 1.2),
}


class WorldEventManager:
    """
    Creates world events and hands them to the chunk manager.

    Triggering is synchronous and not de-duplicated: the same event fired
    twice is recorded twice.
    """

    def __init__(
        self,
        chunk_manager=None,
        clock: Callable[[], float] = time.monotonic,
        max_history: int = 1000,
    ):
        """
        Initialize event manager.

        Args:
            chunk_manager: ChunkManager receiving the events
            clock: Time source for event timestamps
            max_history: Number of past events kept
        """
        self.chunk_manager = chunk_manager
        self.clock = clock

        # Event history
        self._history: List[WorldEvent] = []
        self._max_history = max_history

    def attach(self, chunk_manager) -> None:
        self.chunk_manager = chunk_manager

    def trigger(
        self,
        kind: EventKind,
        position: Sequence[float],
        radius: Optional[float] = None,
        intensity: Optional[float] = None,
    ) -> List[ChunkCoord]:
        """
        Create an event and apply it to the loaded chunks.

        Args:
            kind: Event kind
            position: (x, y, z) epicenter
            radius: Radius in world units (kind default when omitted)
            intensity: Effect strength (kind default when omitted)

        Returns:
            Coordinates of the chunks that recorded the event

        Raises:
            RuntimeError: If no chunk manager is attached
        """
        if self.chunk_manager is None:
            raise RuntimeError("WorldEventManager has no chunk manager attached")

        kind = EventKind(kind)
        default_radius, default_intensity = EVENT_DEFAULTS[kind]
        event = WorldEvent(
            kind=kind,
            epicenter=tuple(position),
            radius=default_radius if radius is None else radius,
            intensity=default_intensity if intensity is None else intensity,
            timestamp=self.clock(),
        )

        affected = self.chunk_manager.apply_event(event)

        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history.pop(0)

        logger.info(f"{kind.name} triggered at {event.epicenter} with radius {event.radius}")
        return affected

    def trigger_magical_explosion(self, position, radius: float = 100.0, intensity: float = 1.0):
        """Raises terrain sharply with crystalline spikes and dries it out"""
        return self.trigger(EventKind.MAGICAL_EXPLOSION, position, radius, intensity)

    def trigger_crystallized_terrain(self, position, radius: float = 80.0, intensity: float = 0.8):
        """Crystalline cell patterns, reduced moisture"""
        return self.trigger(EventKind.CRYSTALLIZED_TERRAIN, position, radius, intensity)

    def trigger_faction_influence(self, position, radius: float = 150.0, intensity: float = 1.5):
        """Flattens land and raises settlement chances"""
        return self.trigger(EventKind.FACTION_INFLUENCE, position, radius, intensity)

    def trigger_natural_disaster(self, position, radius: float = 120.0, intensity: float = 1.2):
        """Chaotic terrain and local flooding"""
        return self.trigger(EventKind.NATURAL_DISASTER, position, radius, intensity)

    def get_recent_events(self, limit: int = 50, kind: Optional[EventKind] = None) -> List[WorldEvent]:
        """Get recent historical events"""
        events = self._history

        if kind is not None:
            events = [e for e in events if e.kind == kind]

        return events[-limit:]

    def get_stats(self) -> Dict[str, Any]:
        """Get event statistics"""
        by_kind = {}
        for event in self._history:
            name = event.kind.name.lower()
            by_kind[name] = by_kind.get(name, 0) + 1

        return {
            "total_events": len(self._history),
            "by_kind": by_kind,
        }
