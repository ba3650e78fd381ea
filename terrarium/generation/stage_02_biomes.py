"""
Terrarium - Stage 2: Biomes
Classifies each vertex by normalized height, then by a Whittaker-style
temperature / moisture lookup.

SCIENTIFIC BASIS:
- Whittaker Biome Classification for land biomes
- Height bands for ocean, shoreline and alpine zones
"""

import logging

import numpy as np

from terrarium.config import BiomeParams, BiomeType, WorldGenerationParams
from terrarium.models.chunk import Chunk

logger = logging.getLogger(__name__)


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Assign a biome to every vertex of a chunk.

    Args:
        chunk: Chunk with base terrain layers
        params: Generation parameters
    """
    # float64 so thresholds compare exactly against the stored heights
    normalized = chunk.height.astype(np.float64) / params.terrain.height_multiplier

    chunk.biome = classify_biomes(
        normalized,
        chunk.moisture.astype(np.float64),
        chunk.temperature.astype(np.float64),
        params.biomes,
    )

    if logger.isEnabledFor(logging.DEBUG):
        counts = np.bincount(chunk.biome, minlength=len(BiomeType))
        dominant = BiomeType(int(np.argmax(counts)))
        logger.debug(f"Biomes for chunk {chunk.coord}: dominant {dominant.name}")


def classify_biomes(
    height: np.ndarray,
    moisture: np.ndarray,
    temperature: np.ndarray,
    biomes: BiomeParams
) -> np.ndarray:
    """
    Vectorized biome classification.

    Args:
        height: Normalized height (0-1)
        moisture: Moisture (0-1)
        temperature: Temperature (0-1)
        biomes: Height thresholds

    Returns:
        uint8 array of BiomeType values, same shape as the inputs
    """
    height = np.asarray(height)
    moisture = np.asarray(moisture)
    temperature = np.asarray(temperature)

    is_snow_peak = (height > biomes.snow_level) | (temperature < biomes.snow_temperature)

    conditions = [
        height < biomes.ocean_level,
        height < biomes.beach_level,
        (height > biomes.mountain_level) & is_snow_peak,
        height > biomes.mountain_level,
    ]
    choices = [BiomeType.OCEAN, BiomeType.BEACH, BiomeType.SNOW, BiomeType.MOUNTAIN]

    land = whittaker_biomes(temperature, moisture)
    return np.select(conditions, choices, default=land).astype(np.uint8)


def whittaker_biomes(temperature: np.ndarray, moisture: np.ndarray) -> np.ndarray:
    """Climate lookup for land between the beach and mountain bands."""
    t = np.asarray(temperature)
    m = np.asarray(moisture)

    cold = np.where(m < 0.3, BiomeType.TUNDRA, BiomeType.TAIGA)
    temperate = np.where(m < 0.3, BiomeType.GRASSLAND, BiomeType.FOREST)
    warm = np.select([m < 0.3, m < 0.6], [BiomeType.SAVANNA, BiomeType.FOREST], BiomeType.RAINFOREST)
    hot = np.select([m < 0.4, m < 0.7], [BiomeType.DESERT, BiomeType.SAVANNA], BiomeType.RAINFOREST)

    return np.select([t < 0.2, t < 0.5, t < 0.8], [cold, temperate, warm], hot)


def get_biome_from_climate(temperature: float, moisture: float) -> BiomeType:
    """Whittaker lookup for a single temperature / moisture pair."""
    if temperature < 0.2:
        return BiomeType.TUNDRA if moisture < 0.3 else BiomeType.TAIGA
    elif temperature < 0.5:
        return BiomeType.GRASSLAND if moisture < 0.3 else BiomeType.FOREST
    elif temperature < 0.8:
        if moisture < 0.3:
            return BiomeType.SAVANNA
        elif moisture < 0.6:
            return BiomeType.FOREST
        return BiomeType.RAINFOREST
    else:
        if moisture < 0.4:
            return BiomeType.DESERT
        elif moisture < 0.7:
            return BiomeType.SAVANNA
        return BiomeType.RAINFOREST


def classify_biome(height: float, moisture: float, temperature: float, biomes: BiomeParams) -> BiomeType:
    """Scalar form of classify_biomes."""
    if height < biomes.ocean_level:
        return BiomeType.OCEAN
    if height < biomes.beach_level:
        return BiomeType.BEACH
    if height > biomes.mountain_level:
        if height > biomes.snow_level or temperature < biomes.snow_temperature:
            return BiomeType.SNOW
        return BiomeType.MOUNTAIN
    return get_biome_from_climate(temperature, moisture)
