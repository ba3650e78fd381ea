"""
Terrarium - Deterministic Seeding
Derives independent random streams from (world seed, stage seed, chunk coord).

Every stage draws from its own generator built here, never from a shared or
global random source, so a chunk's output depends only on its coordinate and
the configured seeds.
"""

from typing import TYPE_CHECKING, Tuple, Union

import numpy as np

if TYPE_CHECKING:
    from terrarium.models.chunk import ChunkCoord

CoordLike = Union["ChunkCoord", Tuple[int, int]]


def _zigzag(value: int) -> int:
    """Map a signed integer onto the non-negative integers (0, -1, 1, -2 ...)"""
    return value * 2 if value >= 0 else -value * 2 - 1


def _coord_parts(coord: CoordLike) -> Tuple[int, int]:
    if hasattr(coord, "x") and hasattr(coord, "z"):
        return int(coord.x), int(coord.z)
    x, z = coord
    return int(x), int(z)


def seed_sequence(world_seed: int, stage_seed: int, coord: CoordLike, *salt: int) -> np.random.SeedSequence:
    """Build the SeedSequence for one stage of one chunk."""
    x, z = _coord_parts(coord)
    entropy = [_zigzag(int(world_seed)), _zigzag(int(stage_seed)), _zigzag(x), _zigzag(z)]
    entropy.extend(_zigzag(int(s)) for s in salt)
    return np.random.SeedSequence(entropy)


def derive_seed(world_seed: int, stage_seed: int, coord: CoordLike, *salt: int) -> int:
    """
    Derive a 64-bit stream seed for a stage of a chunk.

    Args:
        world_seed: Global world seed
        stage_seed: Per-stage seed from configuration
        coord: Chunk coordinate (ChunkCoord or (x, z) tuple)
        salt: Optional extra integers to split further streams

    Returns:
        Non-negative integer seed
    """
    state = seed_sequence(world_seed, stage_seed, coord, *salt).generate_state(1, dtype=np.uint64)
    return int(state[0])


def stage_rng(world_seed: int, stage_seed: int, coord: CoordLike, *salt: int) -> np.random.Generator:
    """Random generator local to one stage call."""
    return np.random.default_rng(seed_sequence(world_seed, stage_seed, coord, *salt))


def rng_from_seed(seed: int) -> np.random.Generator:
    """Generator for a lone integer seed (negative seeds allowed)."""
    return np.random.default_rng(np.random.SeedSequence([_zigzag(int(seed))]))
