"""
Terrarium - Stage 5: Dungeons
Places dungeon entrances, favouring mountains, forests and deserts and
avoiding settled chunks. Magical explosions make dungeons both likelier
and deeper.
"""

import logging
from typing import Iterable

import numpy as np

from terrarium.config import BiomeType, DungeonParams, EventKind, WorldGenerationParams
from terrarium.models.chunk import Chunk
from terrarium.models.events import WorldEvent
from terrarium.utils.seeding import rng_from_seed, stage_rng

logger = logging.getLogger(__name__)

DUNGEON_BIOMES = (
    BiomeType.MOUNTAIN,
    BiomeType.FOREST,
    BiomeType.RAINFOREST,
    BiomeType.TAIGA,
    BiomeType.DESERT,
    BiomeType.GRASSLAND,
    BiomeType.SAVANNA,
)
FOREST_BIOMES = (BiomeType.FOREST, BiomeType.RAINFOREST, BiomeType.TAIGA)


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Roll for a dungeon entrance in a chunk.

    Args:
        chunk: Chunk with settlements decided
        params: Generation parameters
    """
    dp = params.dungeons
    explosions = chunk.events_of(EventKind.MAGICAL_EXPLOSION)

    chance = calculate_dungeon_chance(chunk.biome, chunk.has_settlement, explosions, dp)
    chunk.dungeon_chance = chance

    rng = stage_rng(params.seed, dp.dungeon_seed, chunk.coord)
    if rng.random() < chance:
        chunk.has_dungeon = True
        chunk.dungeon_depth = determine_dungeon_depth(chunk.biome, explosions, rng, dp)
        logger.info(f"Dungeon generated at chunk {chunk.coord} - Depth: {chunk.dungeon_depth}")
    else:
        chunk.has_dungeon = False
        chunk.dungeon_depth = 0


def calculate_dungeon_chance(
    biome: np.ndarray,
    has_settlement: bool,
    explosions: Iterable[WorldEvent],
    dp: DungeonParams
) -> float:
    """
    Dungeon spawn chance in [0, 1].

    The terrain part is zero when no dungeon-friendly tile exists; explosion
    bonuses apply after the settlement penalty.
    """
    chance = 0.0
    total = biome.size

    if total > 0 and np.isin(biome, DUNGEON_BIOMES).any():
        mountain_ratio = np.count_nonzero(biome == BiomeType.MOUNTAIN) / total
        forest_ratio = np.count_nonzero(np.isin(biome, FOREST_BIOMES)) / total
        desert_ratio = np.count_nonzero(biome == BiomeType.DESERT) / total

        chance = (
            dp.base_chance
            + mountain_ratio * dp.mountain_weight
            + forest_ratio * dp.forest_weight
            + desert_ratio * dp.desert_weight
        )

    if has_settlement:
        chance *= dp.settlement_penalty

    for event in explosions:
        chance += event.intensity * dp.explosion_chance_bonus

    return float(min(max(chance, 0.0), 1.0))


def determine_dungeon_depth(
    biome: np.ndarray,
    explosions: Iterable[WorldEvent],
    rng: np.random.Generator,
    dp: DungeonParams
) -> int:
    """Depth in [min_depth, max_depth]; mountains and explosions dig deeper."""
    depth = int(rng.integers(dp.min_depth, dp.max_depth + 1))

    if biome.size and np.count_nonzero(biome == BiomeType.MOUNTAIN) / biome.size > 0.5:
        depth += int(rng.integers(1, 4))

    for event in explosions:
        depth += int(event.intensity * dp.explosion_depth_bonus)

    return min(max(depth, dp.min_depth), dp.max_depth)


def get_dominant_biome(biome: np.ndarray) -> BiomeType:
    """Most common biome; GRASSLAND for an empty map."""
    if biome.size == 0:
        return BiomeType.GRASSLAND
    counts = np.bincount(biome.ravel(), minlength=len(BiomeType))
    return BiomeType(int(np.argmax(counts)))


def get_dungeon_type(chunk: Chunk, seed: int) -> str:
    """Display name for a chunk's dungeon, themed by its dominant biome."""
    roll = rng_from_seed(seed).random()
    dominant = get_dominant_biome(chunk.biome)

    if dominant == BiomeType.MOUNTAIN:
        return "Mountain Cave" if roll > 0.5 else "Dwarven Ruins"
    if dominant in (BiomeType.FOREST, BiomeType.RAINFOREST):
        return "Ancient Grove Sanctum" if roll > 0.5 else "Overgrown Catacombs"
    if dominant == BiomeType.DESERT:
        return "Lost Tomb" if roll > 0.5 else "Desert Pyramid"
    if dominant == BiomeType.TAIGA:
        return "Frozen Barrow"
    if dominant in (BiomeType.GRASSLAND, BiomeType.SAVANNA):
        return "Bandit Hideout" if roll > 0.5 else "Old Cellar"
    return "Mysterious Dungeon"
