"""
Terrarium - Procedural Chunked World Generation

This package provides:
- A deterministic six-stage chunk pipeline (terrain, biomes, features,
  settlements, dungeons, entities)
- A chunk lifecycle manager with LOD rings, work queues and a bounded cache
- World events that retroactively reshape generated chunks
"""

from terrarium.chunks.manager import ChunkManager, TickResult
from terrarium.config import (
    BiomeType,
    EventKind,
    GenerationStage,
    LODLevel,
    WorldGenerationParams,
)
from terrarium.generation.pipeline import GenerationPipeline, create_pipeline
from terrarium.models.chunk import Chunk, ChunkCoord, EntitySpawn
from terrarium.models.events import WorldEvent
from terrarium.world.events import WorldEventManager
from terrarium.world.interface import LocationData, RenderData, WorldInterface

__version__ = "0.1.0"
__all__ = [
    "BiomeType",
    "Chunk",
    "ChunkCoord",
    "ChunkManager",
    "EntitySpawn",
    "EventKind",
    "GenerationPipeline",
    "GenerationStage",
    "LODLevel",
    "LocationData",
    "RenderData",
    "TickResult",
    "WorldEvent",
    "WorldEventManager",
    "WorldGenerationParams",
    "WorldInterface",
    "create_pipeline",
]
