"""
Terrarium - Chunk Data Models
Coordinates, bounded containers and the chunk record holding every
generation layer plus lifecycle metadata.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from terrarium.config import (
    GenerationStage,
    LODLevel,
    MAX_ACTIVE_EVENTS,
    MAX_ENTITIES,
    MAX_POINTS_OF_INTEREST,
    SETTLEMENT_TIERS,
)
from terrarium.models.events import WorldEvent

T = TypeVar("T")

LAYER_NAMES = ("height", "moisture", "temperature", "biome")


# =============================================================================
# COORDINATES
# =============================================================================

@dataclass(frozen=True, order=True)
class ChunkCoord:
    """Integer chunk position on the infinite grid"""
    x: int
    z: int

    @classmethod
    def from_world_position(cls, position: Sequence[float], chunk_size: int) -> "ChunkCoord":
        """
        Chunk containing a world position.

        Args:
            position: (x, y, z) or (x, z) world position
            chunk_size: World units per chunk side
        """
        if len(position) == 3:
            wx, _, wz = position
        else:
            wx, wz = position
        return cls(math.floor(wx / chunk_size), math.floor(wz / chunk_size))

    def to_world_position(self, chunk_size: int) -> Tuple[float, float, float]:
        """World-space origin (minimum corner) of the chunk"""
        return (float(self.x * chunk_size), 0.0, float(self.z * chunk_size))

    def center(self, chunk_size: int) -> Tuple[float, float, float]:
        """World-space center of the chunk at y = 0"""
        half = chunk_size / 2.0
        return (self.x * chunk_size + half, 0.0, self.z * chunk_size + half)

    def chebyshev(self, other: "ChunkCoord") -> int:
        """Ring distance between two chunks"""
        return max(abs(self.x - other.x), abs(self.z - other.z))

    def __str__(self) -> str:
        return f"({self.x}, {self.z})"


# =============================================================================
# BOUNDED CONTAINERS
# =============================================================================

class BoundedList(Generic[T]):
    """
    List with a fixed capacity.

    Appending to a full list drops the item and returns False. Overflow is a
    soft limit, never an error.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self.capacity = capacity
        self._items: List[T] = []

    def append(self, item: T) -> bool:
        """Add an item if there is room; returns whether it was stored"""
        if len(self._items) >= self.capacity:
            return False
        self._items.append(item)
        return True

    def extend(self, items) -> int:
        """Append items until full; returns how many were stored"""
        stored = 0
        for item in items:
            if not self.append(item):
                break
            stored += 1
        return stored

    def remove(self, item: T) -> None:
        self._items.remove(item)

    def clear(self) -> None:
        self._items.clear()

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    @property
    def free_slots(self) -> int:
        return self.capacity - len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"BoundedList({self._items!r}, capacity={self.capacity})"


# =============================================================================
# ENTITY SPAWNS
# =============================================================================

@dataclass(frozen=True)
class EntitySpawn:
    """NPC, monster, wildlife or loot spawn point"""
    position: Tuple[float, float, float]  # (local x, height, local z)
    entity_type_id: int
    threat_level: float
    is_loot: bool = False


# =============================================================================
# CHUNK
# =============================================================================

class Chunk:
    """
    A square section of the world at one level of detail.
    Contains every layer produced by the generation pipeline.

    Per-vertex layers are flat NumPy arrays of length resolution**2 in
    row-major order, indexed x + z * resolution. Use grid() for a 2D view
    indexed [z, x].
    """

    def __init__(
        self,
        coord: ChunkCoord,
        resolution: int,
        lod: LODLevel = LODLevel.FULL,
        created_at: float = 0.0
    ):
        if resolution <= 0:
            raise ValueError(f"Chunk resolution must be positive, got {resolution}")

        self.coord = coord
        self.lod = LODLevel(lod)
        self.stage = GenerationStage.NONE
        self.last_access_time = created_at
        self.dirty = False
        self.revision = 0
        self._released = False

        # Layer 1-2: per-vertex maps
        self.resolution = resolution
        self.height: Optional[np.ndarray] = None       # float32, world units
        self.moisture: Optional[np.ndarray] = None     # float32, 0-1
        self.temperature: Optional[np.ndarray] = None  # float32, 0-1
        self.biome: Optional[np.ndarray] = None        # uint8, BiomeType
        self.allocate(resolution)

        # Layer 3: features
        self.has_river = False
        self.has_road = False
        self.points_of_interest: BoundedList[Tuple[int, int]] = BoundedList(MAX_POINTS_OF_INTEREST)

        # Layer 4: settlement
        self.has_settlement = False
        self.settlement_size = 0
        self.settlement_suitability = 0.0

        # Layer 5: dungeon
        self.has_dungeon = False
        self.dungeon_depth = 0
        self.dungeon_chance = 0.0

        # Layer 6: entities
        self.entities: BoundedList[EntitySpawn] = BoundedList(MAX_ENTITIES)

        # Dynamic world events
        self.active_events: BoundedList[WorldEvent] = BoundedList(MAX_ACTIVE_EVENTS)

    def allocate(self, resolution: int) -> None:
        """(Re)allocate every per-vertex layer at a resolution"""
        if resolution <= 0:
            raise ValueError(f"Chunk resolution must be positive, got {resolution}")
        size = resolution * resolution
        self.resolution = resolution
        self.height = np.zeros(size, dtype=np.float32)
        self.moisture = np.zeros(size, dtype=np.float32)
        self.temperature = np.zeros(size, dtype=np.float32)
        self.biome = np.zeros(size, dtype=np.uint8)

    def grid(self, name: str) -> np.ndarray:
        """2D [z, x] view of a per-vertex layer"""
        if name not in LAYER_NAMES:
            raise KeyError(f"Unknown layer '{name}'")
        layer = getattr(self, name)
        if layer is None:
            raise RuntimeError(f"Chunk {self.coord} has been released")
        return layer.reshape(self.resolution, self.resolution)

    def vertex_positions(self, chunk_size: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        World X and Z positions of the vertex columns and rows.
        Edge vertices sit exactly on the chunk border so neighbours share them.
        """
        # Multiply before dividing so border offsets land exactly on chunk_size
        offsets = np.arange(self.resolution, dtype=np.float64) * chunk_size / max(self.resolution - 1, 1)
        origin_x, _, origin_z = self.coord.to_world_position(chunk_size)
        return origin_x + offsets, origin_z + offsets

    def index(self, x: int, z: int) -> int:
        """Flat layer index of a local vertex"""
        return x + z * self.resolution

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def set_lod(self, lod: LODLevel, resolution: int) -> None:
        """
        Switch to another level of detail.
        Buffers are reallocated and generation restarts from the queue.
        """
        self.lod = LODLevel(lod)
        self.allocate(resolution)
        self.stage = GenerationStage.QUEUED
        self.dirty = True

    def mark_complete(self) -> None:
        """Freeze the layers handed to readers and bump the revision"""
        for name in LAYER_NAMES:
            layer = getattr(self, name)
            if layer is not None:
                layer.flags.writeable = False
        self.stage = GenerationStage.COMPLETE
        self.dirty = False
        self.revision += 1

    def add_event(self, event: WorldEvent) -> bool:
        """Attach an event to the first free slot; False when all slots are taken"""
        if not self.active_events.append(event):
            return False
        self.dirty = True
        return True

    def events_of(self, kind) -> List[WorldEvent]:
        return [e for e in self.active_events if e.kind == kind]

    def release(self) -> None:
        """Drop every owned buffer"""
        self.height = None
        self.moisture = None
        self.temperature = None
        self.biome = None
        self.points_of_interest.clear()
        self.entities.clear()
        self.active_events.clear()
        self._released = True

    @property
    def is_released(self) -> bool:
        return self._released

    @property
    def is_complete(self) -> bool:
        return self.stage == GenerationStage.COMPLETE

    @property
    def settlement_tier(self) -> str:
        return SETTLEMENT_TIERS[self.settlement_size]

    def to_dict(self) -> Dict[str, Any]:
        """Summary of the chunk without the per-vertex layers"""
        return {
            "coord": [self.coord.x, self.coord.z],
            "lod": self.lod.name.lower(),
            "stage": self.stage.name.lower(),
            "resolution": self.resolution,
            "revision": self.revision,
            "dirty": self.dirty,
            "has_river": self.has_river,
            "has_road": self.has_road,
            "points_of_interest": [list(p) for p in self.points_of_interest],
            "has_settlement": self.has_settlement,
            "settlement_size": self.settlement_size,
            "has_dungeon": self.has_dungeon,
            "dungeon_depth": self.dungeon_depth,
            "entity_count": len(self.entities),
            "events": [e.to_dict() for e in self.active_events],
        }

    def __repr__(self) -> str:
        return f"<Chunk {self.coord} lod={self.lod.name} stage={self.stage.name}>"
