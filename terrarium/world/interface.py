"""
World Interface
Read-only query surface over the chunk manager for renderers and tools.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from terrarium.config import BiomeType, GenerationStage
from terrarium.generation.stage_03_features import get_poi_type
from terrarium.generation.stage_04_settlements import get_settlement_name
from terrarium.generation.stage_05_dungeons import get_dungeon_type
from terrarium.generation.stage_06_entities import get_entity_name
from terrarium.models.chunk import ChunkCoord
from terrarium.utils.seeding import derive_seed

logger = logging.getLogger(__name__)


@dataclass
class LocationData:
    """Environmental data at a world location (nearest chunk vertex)"""
    x: float
    z: float
    chunk_x: int
    chunk_z: int
    local_x: int
    local_z: int

    stage: str
    lod: str

    # Terrain
    height: Optional[float] = None  # world units
    moisture: Optional[float] = None
    temperature: Optional[float] = None
    biome_type: Optional[str] = None

    # Chunk features
    has_river: bool = False
    has_road: bool = False
    has_settlement: bool = False
    settlement_size: int = 0
    has_dungeon: bool = False
    dungeon_depth: int = 0
    event_count: int = 0


@dataclass(frozen=True)
class RenderData:
    """Snapshot a mesh builder needs; arrays are read-only"""
    coord: ChunkCoord
    resolution: int
    chunk_size: int
    height: np.ndarray
    biome: np.ndarray
    revision: int


class WorldInterface:
    """
    Bridge between consumers (renderers, debug tools) and chunk data.
    Never mutates chunks.
    """

    def __init__(self, chunk_manager):
        """
        Initialize world interface.

        Args:
            chunk_manager: ChunkManager owning the chunks
        """
        self.chunk_manager = chunk_manager
        self._biome_names = {biome: biome.name.lower() for biome in BiomeType}

    @property
    def chunk_size(self) -> int:
        return self.chunk_manager.config.chunk_size

    def query_location(self, x: float, z: float) -> Optional[LocationData]:
        """
        Get environmental data at world coordinates.

        Args:
            x: World X coordinate
            z: World Z coordinate

        Returns:
            LocationData, or None if the chunk is not loaded or has no terrain yet
        """
        chunk = self.chunk_manager.get_at_world_position((x, 0.0, z))
        if chunk is None or chunk.is_released or chunk.stage < GenerationStage.BASE_TERRAIN:
            return None

        # Nearest vertex to the position
        res = chunk.resolution
        step = self.chunk_size / max(res - 1, 1)
        origin_x, _, origin_z = chunk.coord.to_world_position(self.chunk_size)
        local_x = int(np.clip(round((x - origin_x) / step), 0, res - 1))
        local_z = int(np.clip(round((z - origin_z) / step), 0, res - 1))
        index = chunk.index(local_x, local_z)

        loc = LocationData(
            x=x, z=z,
            chunk_x=chunk.coord.x, chunk_z=chunk.coord.z,
            local_x=local_x, local_z=local_z,
            stage=chunk.stage.name.lower(),
            lod=chunk.lod.name.lower(),
        )

        # Terrain
        loc.height = float(chunk.height[index])
        loc.moisture = float(chunk.moisture[index])
        loc.temperature = float(chunk.temperature[index])

        if chunk.stage >= GenerationStage.BIOMES:
            loc.biome_type = self._biome_names[BiomeType(int(chunk.biome[index]))]

        # Features
        if chunk.stage >= GenerationStage.FEATURES:
            loc.has_river = chunk.has_river
            loc.has_road = chunk.has_road
        if chunk.stage >= GenerationStage.SETTLEMENTS:
            loc.has_settlement = chunk.has_settlement
            loc.settlement_size = chunk.settlement_size
        if chunk.stage >= GenerationStage.DUNGEONS:
            loc.has_dungeon = chunk.has_dungeon
            loc.dungeon_depth = chunk.dungeon_depth

        loc.event_count = len(chunk.active_events)
        return loc

    def get_render_data(self, coord: ChunkCoord) -> Optional[RenderData]:
        """Height and biome buffers of a COMPLETE chunk, else None"""
        chunk = self.chunk_manager.get(coord)
        if chunk is None or not chunk.is_complete:
            return None

        return RenderData(
            coord=coord,
            resolution=chunk.resolution,
            chunk_size=self.chunk_size,
            height=chunk.height,
            biome=chunk.biome,
            revision=chunk.revision,
        )

    def describe_chunk(self, coord: ChunkCoord) -> Optional[Dict[str, Any]]:
        """
        Human-readable summary of a COMPLETE chunk with generated names for
        its settlement, dungeon, points of interest and entities.
        """
        chunk = self.chunk_manager.get(coord)
        if chunk is None or not chunk.is_complete:
            return None

        seed = self.chunk_manager.params.seed
        summary = chunk.to_dict()

        if chunk.has_settlement:
            summary["settlement_name"] = get_settlement_name(coord.x, coord.z, chunk.settlement_size, seed)
            summary["settlement_tier"] = chunk.settlement_tier
        if chunk.has_dungeon:
            summary["dungeon_type"] = get_dungeon_type(chunk, derive_seed(seed, 0, coord, 5))

        pois: List[Dict[str, Any]] = []
        for i, (px, pz) in enumerate(chunk.points_of_interest):
            biome = BiomeType(int(chunk.biome[chunk.index(px, pz)]))
            pois.append({
                "position": [px, pz],
                "type": get_poi_type(biome, derive_seed(seed, 0, coord, 3, i)),
            })
        summary["points_of_interest"] = pois

        entity_counts: Dict[str, int] = {}
        for spawn in chunk.entities:
            name = get_entity_name(spawn.entity_type_id)
            entity_counts[name] = entity_counts.get(name, 0) + 1
        summary["entities"] = entity_counts

        return summary
