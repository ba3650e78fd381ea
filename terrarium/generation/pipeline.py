"""
Terrarium - Generation Pipeline
Stage dispatcher for chunk generation.
Maps each generation stage to its handler and the stage that follows it.
"""

import logging
import threading
import time
from collections import defaultdict
from typing import Callable, Dict, Optional, Tuple

from terrarium.config import GenerationStage, LODLevel, WorldGenerationParams
from terrarium.models.chunk import Chunk, ChunkCoord

logger = logging.getLogger(__name__)

StageHandler = Callable[[Chunk, WorldGenerationParams], None]


def finalize(chunk: Chunk, params: WorldGenerationParams):
    """Freeze the finished layers before handing the chunk to readers."""
    chunk.mark_complete()


class GenerationPipeline:
    """
    Advances chunks through the generation stages one step at a time.
    Tracks cumulative timing per stage.
    """

    def __init__(self, params: WorldGenerationParams):
        """
        Initialize generation pipeline.

        Args:
            params: World generation parameters
        """
        self.params = params

        # Stage registry: current stage -> (handler, next stage)
        self.stage_registry: Dict[GenerationStage, Tuple[StageHandler, GenerationStage]] = {}

        # Track timing for each stage
        self.stage_timings: Dict[GenerationStage, float] = defaultdict(float)
        self.stage_counts: Dict[GenerationStage, int] = defaultdict(int)
        self._timing_lock = threading.Lock()

    def register_stage(self, stage: GenerationStage, handler: StageHandler, next_stage: GenerationStage):
        """Register the handler run when a chunk sits at a stage"""
        self.stage_registry[GenerationStage(stage)] = (handler, GenerationStage(next_stage))

    def advance(self, chunk: Chunk) -> bool:
        """
        Run exactly one stage on a chunk.

        Args:
            chunk: Chunk to advance

        Returns:
            False if the chunk was already COMPLETE, True otherwise
        """
        if chunk.stage == GenerationStage.COMPLETE:
            return False

        entry = self.stage_registry.get(chunk.stage)
        if entry is None:
            raise KeyError(f"No handler registered for stage {chunk.stage.name}")
        handler, next_stage = entry

        stage = chunk.stage
        start = time.perf_counter()
        handler(chunk, self.params)
        chunk.stage = next_stage
        duration = time.perf_counter() - start

        with self._timing_lock:
            self.stage_timings[stage] += duration
            self.stage_counts[stage] += 1

        logger.debug(f"Chunk {chunk.coord} {stage.name} -> {next_stage.name} in {duration * 1000:.1f}ms")
        return True

    def generate_chunk(self, coord: ChunkCoord, lod: LODLevel = LODLevel.FULL, chunk: Optional[Chunk] = None) -> Chunk:
        """
        Generate a single chunk synchronously through every stage.
        Useful for tools and tests.

        Args:
            coord: Chunk coordinate
            lod: Level of detail
            chunk: Optional existing chunk (events attached) to generate into

        Returns:
            COMPLETE chunk
        """
        if chunk is None:
            chunk = Chunk(coord, self.params.chunks.resolution_for(lod), lod)

        while self.advance(chunk):
            pass

        return chunk

    def timing_report(self) -> Dict[str, Dict[str, float]]:
        """Total and mean seconds spent per stage"""
        with self._timing_lock:
            return {
                stage.name.lower(): {
                    "total": self.stage_timings[stage],
                    "count": self.stage_counts[stage],
                    "mean": self.stage_timings[stage] / max(self.stage_counts[stage], 1),
                }
                for stage in self.stage_timings
            }


def create_pipeline(params: WorldGenerationParams) -> GenerationPipeline:
    """
    Factory function to create a fully configured generation pipeline.

    Args:
        params: World generation parameters

    Returns:
        Configured GenerationPipeline with every stage registered
    """
    pipeline = GenerationPipeline(params)

    # Import and register all stages
    from terrarium.generation import stage_01_terrain
    from terrarium.generation import stage_02_biomes
    from terrarium.generation import stage_03_features
    from terrarium.generation import stage_04_settlements
    from terrarium.generation import stage_05_dungeons
    from terrarium.generation import stage_06_entities

    pipeline.register_stage(GenerationStage.NONE, stage_01_terrain.execute, GenerationStage.BASE_TERRAIN)
    pipeline.register_stage(GenerationStage.QUEUED, stage_01_terrain.execute, GenerationStage.BASE_TERRAIN)
    pipeline.register_stage(GenerationStage.BASE_TERRAIN, stage_02_biomes.execute, GenerationStage.BIOMES)
    pipeline.register_stage(GenerationStage.BIOMES, stage_03_features.execute, GenerationStage.FEATURES)
    pipeline.register_stage(GenerationStage.FEATURES, stage_04_settlements.execute, GenerationStage.SETTLEMENTS)
    pipeline.register_stage(GenerationStage.SETTLEMENTS, stage_05_dungeons.execute, GenerationStage.DUNGEONS)
    pipeline.register_stage(GenerationStage.DUNGEONS, stage_06_entities.execute, GenerationStage.ENTITIES)
    pipeline.register_stage(GenerationStage.ENTITIES, finalize, GenerationStage.COMPLETE)

    return pipeline
