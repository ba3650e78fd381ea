"""
Terrarium - Stage 4: Settlements
Scores how well a chunk supports a settlement and rolls for one.

SITE SCORING:
- Flat, buildable tiles only (no ocean, mountain or snow)
- Moisture and temperature close to their optimum
- Biome suitability table
- Road and river access bonuses
- Faction influence events boost both the score and the size
"""

import logging
from typing import Sequence

import numpy as np

from terrarium.config import (
    BIOME_SETTLEMENT_SUITABILITY,
    BiomeType,
    DEFAULT_BIOME_SUITABILITY,
    EventKind,
    SETTLEMENT_TIERS,
    SettlementParams,
    UNBUILDABLE_BIOMES,
    WorldGenerationParams,
)
from terrarium.models.chunk import Chunk
from terrarium.utils.seeding import derive_seed, rng_from_seed, stage_rng
from terrarium.utils.spatial import calculate_flatness

logger = logging.getLogger(__name__)

# Biome suitability indexed by BiomeType value
_SUITABILITY_TABLE = np.full(len(BiomeType), DEFAULT_BIOME_SUITABILITY, dtype=np.float64)
for _biome, _value in BIOME_SETTLEMENT_SUITABILITY.items():
    _SUITABILITY_TABLE[int(_biome)] = _value

SETTLEMENT_PREFIXES = ["North", "South", "East", "West", "New", "Old", "Great", "Little"]
SETTLEMENT_ROOTS = ["ford", "ton", "ville", "burg", "dale", "field", "wood", "stone", "haven", "port"]
SETTLEMENT_SUFFIXES = ["", " City", " Town", " Village", " Hamlet"]


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Decide whether a chunk hosts a settlement and how large it is.

    Args:
        chunk: Chunk with features generated
        params: Generation parameters
    """
    sp = params.settlements

    base = calculate_settlement_suitability(
        chunk.grid("height"),
        chunk.grid("moisture"),
        chunk.grid("temperature"),
        chunk.grid("biome"),
        chunk.has_road,
        chunk.has_river,
        sp,
    )

    faction = get_faction_influence(chunk)
    suitability = base * (1.0 + faction * sp.faction_influence_multiplier)
    chunk.settlement_suitability = suitability

    rng = stage_rng(params.seed, sp.settlement_seed, chunk.coord)
    spawn_roll = rng.random()
    size_roll = rng.random()

    if spawn_roll < suitability * sp.base_chance:
        chunk.has_settlement = True
        chunk.settlement_size = determine_settlement_size(suitability, faction, size_roll, sp.size_tier_bounds)
        logger.info(
            f"Settlement generated at chunk {chunk.coord} - "
            f"Size: {chunk.settlement_size} ({SETTLEMENT_TIERS[chunk.settlement_size]})"
        )
    else:
        chunk.has_settlement = False
        chunk.settlement_size = 0


def calculate_settlement_suitability(
    height: np.ndarray,
    moisture: np.ndarray,
    temperature: np.ndarray,
    biome: np.ndarray,
    has_road: bool,
    has_river: bool,
    sp: SettlementParams
) -> float:
    """
    Mean site score over the valid tiles of a chunk, in [0, 1].

    Args:
        height: 2D height grid in world units
        moisture: 2D moisture grid
        temperature: 2D temperature grid
        biome: 2D biome grid
        has_road: Road access bonus applies
        has_river: River access bonus applies
        sp: Settlement parameters

    Returns:
        Suitability before faction influence
    """
    flatness = calculate_flatness(np.asarray(height, dtype=np.float64), sp.flatness_range)
    valid = ~np.isin(biome, UNBUILDABLE_BIOMES) & (flatness >= sp.min_flatness)

    if not valid.any():
        return 0.0

    score = (
        flatness
        * (1.0 - np.abs(moisture - sp.optimal_moisture))
        * (1.0 - np.abs(temperature - sp.optimal_temperature))
        * _SUITABILITY_TABLE[biome]
    )
    suitability = float(score[valid].mean())

    if has_road:
        suitability *= sp.road_bonus
    if has_river:
        suitability *= sp.river_bonus

    return min(max(suitability, 0.0), 1.0)


def get_faction_influence(chunk: Chunk) -> float:
    """Summed intensity of the faction influence events on a chunk."""
    return float(sum(e.intensity for e in chunk.events_of(EventKind.FACTION_INFLUENCE)))


def determine_settlement_size(
    suitability: float,
    faction_influence: float,
    size_roll: float,
    bounds: Sequence[float] = (0.1, 0.3, 0.5, 0.7)
) -> int:
    """
    Size tier from a roll scaled down by suitability and faction influence.

    Args:
        suitability: Final settlement suitability
        faction_influence: Summed faction intensity
        size_roll: Uniform draw in [0, 1)
        bounds: Quotient bounds for tiers 5, 4, 3 and 2

    Returns:
        Tier 1 (hamlet) to 5 (metropolis)
    """
    divisor = suitability + 0.5 * faction_influence
    if divisor <= 0:
        return 1

    quotient = size_roll / divisor
    for tier, bound in zip((5, 4, 3, 2), bounds):
        if quotient < bound:
            return tier
    return 1


def get_settlement_name(chunk_x: int, chunk_z: int, size: int, seed: int) -> str:
    """Procedural settlement name, stable for a chunk and seed."""
    rng = rng_from_seed(derive_seed(seed, 0, (chunk_x, chunk_z)))

    prefix = SETTLEMENT_PREFIXES[rng.integers(len(SETTLEMENT_PREFIXES))] if rng.random() > 0.5 else ""
    root = SETTLEMENT_ROOTS[rng.integers(len(SETTLEMENT_ROOTS))]
    suffix = SETTLEMENT_SUFFIXES[size - 3] if size > 3 else ""

    return f"{prefix}{root}{suffix}".strip()
