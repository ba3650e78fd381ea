"""
Terrarium - Stage 1: Base Terrain
Generates height, moisture and temperature maps from coherent noise sampled
at world positions, then applies the chunk's active world events.

Noise is never normalized per chunk, so neighbouring chunks share their
border vertices exactly and every LOD samples the same underlying field.
"""

import logging

import numpy as np

from terrarium.config import WorldGenerationParams
from terrarium.generation.event_effects import apply_events
from terrarium.models.chunk import Chunk
from terrarium.utils.noise import get_noise_generator

logger = logging.getLogger(__name__)

RIDGE_SEED_OFFSET = 1000
TEMPERATURE_SEED_OFFSET = 2000
MOISTURE_SEED_OFFSET = 3000


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Fill the base terrain layers of a chunk.

    Args:
        chunk: Chunk to update (layers are replaced with new arrays)
        params: Generation parameters
    """
    terrain = params.terrain
    seed = params.seed

    xs, zs = chunk.vertex_positions(params.chunks.chunk_size)

    height = generate_height(xs, zs, seed, params)
    moisture = generate_moisture(xs, zs, height, seed, params)

    if chunk.active_events:
        height, moisture = apply_events(
            height, moisture, xs, zs, chunk.active_events, seed, params.events
        )
        height = np.clip(height, 0.0, 1.0)
        moisture = np.clip(moisture, 0.0, 1.0)

    # Lapse uses the final height so events cool raised ground too
    temperature = generate_temperature(xs, zs, height, seed, params)

    chunk.height = (height * terrain.height_multiplier).astype(np.float32).ravel()
    chunk.moisture = moisture.astype(np.float32).ravel()
    chunk.temperature = temperature.astype(np.float32).ravel()

    logger.debug(
        f"Terrain for chunk {chunk.coord}: height "
        f"{float(chunk.height.min()):.1f}..{float(chunk.height.max()):.1f}"
    )


def generate_height(xs: np.ndarray, zs: np.ndarray, seed: int, params: WorldGenerationParams) -> np.ndarray:
    """
    Normalized height in [0, 1]: fBm blended with ridged noise, contrast
    stretched around 0.5.
    """
    terrain = params.terrain

    base_noise = get_noise_generator(
        seed, terrain.octaves, terrain.persistence, terrain.lacunarity, terrain.scale
    )
    ridge_noise = get_noise_generator(
        seed + RIDGE_SEED_OFFSET,
        max(1, terrain.octaves - 2),
        terrain.persistence,
        terrain.lacunarity,
        terrain.scale * terrain.ridge_scale,
    )

    base = base_noise.generate_fbm(xs, zs)
    ridges = ridge_noise.generate_ridged(xs, zs)

    height = (1.0 - terrain.ridge_weight) * base + terrain.ridge_weight * ridges
    height = 0.5 + (height - 0.5) * terrain.height_contrast

    return np.clip(height, 0.0, 1.0)


def generate_temperature(
    xs: np.ndarray,
    zs: np.ndarray,
    height: np.ndarray,
    seed: int,
    params: WorldGenerationParams
) -> np.ndarray:
    """Latitude band mixed with noise, cooled above sea level."""
    terrain = params.terrain

    latitude = 0.5 + 0.5 * np.cos(2.0 * np.pi * zs / terrain.latitude_period)
    noise = get_noise_generator(
        seed + TEMPERATURE_SEED_OFFSET, 3, 0.5, 2.0, terrain.scale * 0.5
    ).generate_fbm(xs, zs)

    w = terrain.temperature_noise_weight
    temperature = (1.0 - w) * latitude[:, np.newaxis] + w * noise
    temperature -= terrain.altitude_lapse * np.maximum(0.0, height - terrain.sea_level)

    return np.clip(temperature, 0.0, 1.0)


def generate_moisture(
    xs: np.ndarray,
    zs: np.ndarray,
    height: np.ndarray,
    seed: int,
    params: WorldGenerationParams
) -> np.ndarray:
    """Noise wetted near low ground and dried on high ground."""
    terrain = params.terrain

    noise = get_noise_generator(
        seed + MOISTURE_SEED_OFFSET, 4, 0.5, 2.0, terrain.scale * terrain.moisture_scale
    ).generate_fbm(xs, zs)

    w = terrain.coastal_weight
    moisture = (1.0 - w) * noise + w * (1.0 - height)
    moisture -= terrain.elevation_dryness * np.maximum(0.0, height - params.biomes.mountain_level)

    return np.clip(moisture, 0.0, 1.0)
