"""
Terrarium Models
Chunk records, coordinates and world event values.
"""

from terrarium.models.chunk import BoundedList, Chunk, ChunkCoord, EntitySpawn
from terrarium.models.events import WorldEvent

__all__ = ["BoundedList", "Chunk", "ChunkCoord", "EntitySpawn", "WorldEvent"]
