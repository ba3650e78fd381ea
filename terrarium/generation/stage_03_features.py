"""
Terrarium - Stage 3: Features
Decides rivers and roads and scatters points of interest.

Rivers, roads and POIs each draw from their own random stream so changing
one seed never reshuffles the others.
"""

import logging

import numpy as np

from terrarium.config import BiomeType, UNBUILDABLE_BIOMES, WorldGenerationParams
from terrarium.models.chunk import Chunk
from terrarium.utils.seeding import rng_from_seed, stage_rng

logger = logging.getLogger(__name__)


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Generate rivers, roads and points of interest for a chunk.

    Args:
        chunk: Chunk with biomes assigned
        params: Generation parameters
    """
    features = params.features
    coord = chunk.coord

    chunk.has_river = has_river(
        chunk.moisture, chunk.resolution, stage_rng(params.seed, features.river_seed, coord), params
    )
    chunk.has_road = has_road(
        chunk.biome, stage_rng(params.seed, features.road_seed, coord), params
    )

    chunk.points_of_interest.clear()
    poi_rng = stage_rng(params.seed, features.poi_seed, coord)
    for poi in sample_points_of_interest(chunk.biome, chunk.resolution, poi_rng, features.max_pois):
        if not chunk.points_of_interest.append(poi):
            logger.debug(f"POI capacity reached in chunk {coord}, dropping {poi}")
            break

    logger.debug(
        f"Features for chunk {coord}: river={chunk.has_river} road={chunk.has_road} "
        f"pois={len(chunk.points_of_interest)}"
    )


def has_river(moisture: np.ndarray, resolution: int, rng: np.random.Generator, params: WorldGenerationParams) -> bool:
    """
    River check: enough wet vertices, then a roll weighted by how wet they are.
    """
    features = params.features
    wet = moisture > features.river_threshold
    wet_count = int(np.count_nonzero(wet))

    if wet_count <= 2 * resolution:
        return False

    mean_moisture = float(moisture[wet].mean())
    return mean_moisture * rng.random() > features.river_chance_threshold


def has_road(biome: np.ndarray, rng: np.random.Generator, params: WorldGenerationParams) -> bool:
    """Road check: mostly buildable land, then a roll scaled by that fraction."""
    features = params.features
    if biome.size == 0:
        return False

    buildable_fraction = float(np.mean(~np.isin(biome, UNBUILDABLE_BIOMES)))
    if buildable_fraction <= features.road_min_fraction:
        return False

    return rng.random() < buildable_fraction * features.road_chance_factor


def sample_points_of_interest(biome: np.ndarray, resolution: int, rng: np.random.Generator, max_pois: int):
    """
    Uniformly sampled land vertices (duplicates allowed).

    Returns:
        List of (x, z) local vertex coordinates
    """
    count = int(rng.integers(0, max_pois + 1))
    land = np.flatnonzero(biome != BiomeType.OCEAN)

    if count == 0 or land.size == 0:
        return []

    picks = rng.choice(land, size=count)
    return [(int(i % resolution), int(i // resolution)) for i in picks]


def get_poi_type(biome: BiomeType, seed: int) -> str:
    """Display name for a point of interest in a biome."""
    roll = rng_from_seed(seed).random()
    biome = BiomeType(biome)

    if biome == BiomeType.DESERT:
        return "Oasis" if roll > 0.5 else "Ancient Ruins"
    if biome in (BiomeType.FOREST, BiomeType.RAINFOREST):
        return "Druid Circle" if roll > 0.6 else "Hidden Grove" if roll > 0.3 else "Old Shrine"
    if biome == BiomeType.MOUNTAIN:
        return "Cave Entrance" if roll > 0.5 else "Mountain Peak"
    if biome in (BiomeType.GRASSLAND, BiomeType.SAVANNA):
        return "Standing Stones" if roll > 0.7 else "Abandoned Camp" if roll > 0.4 else "Wildflower Field"
    if biome == BiomeType.TAIGA:
        return "Hunter's Lodge" if roll > 0.5 else "Frozen Lake"
    if biome == BiomeType.BEACH:
        return "Shipwreck" if roll > 0.5 else "Tide Pools"
    return "Mystery Location"
