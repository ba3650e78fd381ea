"""
Terrarium - Spatial Utilities
Neighbourhood filters, distance fields and Voronoi cells on chunk grids.
All grids are indexed [z, x].
"""

from typing import Sequence, Tuple

import numpy as np
from scipy.ndimage import maximum_filter, minimum_filter, uniform_filter
from scipy.spatial import cKDTree

_U64 = np.uint64


def calculate_flatness(height: np.ndarray, flatness_range: float = 10.0) -> np.ndarray:
    """
    Score how flat each cell is relative to its 8-neighbourhood.

    Args:
        height: 2D height grid in world units
        flatness_range: Height difference that scores zero

    Returns:
        Array in [0, 1], 1 = perfectly flat
    """
    # 'nearest' padding repeats edge cells, so out-of-range neighbours add no difference
    local_max = maximum_filter(height, size=3, mode="nearest")
    local_min = minimum_filter(height, size=3, mode="nearest")
    max_diff = np.maximum(local_max - height, height - local_min)
    return 1.0 - np.clip(max_diff / flatness_range, 0.0, 1.0)


def local_average(grid: np.ndarray, size: int = 3) -> np.ndarray:
    """Mean over a size x size window (edges repeat)."""
    return uniform_filter(grid.astype(np.float64), size=size, mode="nearest")


def distance_to_point(
    xs: np.ndarray,
    zs: np.ndarray,
    point: Sequence[float]
) -> np.ndarray:
    """
    3D distance from each grid vertex (at y = 0) to a point.

    Args:
        xs: 1D world X positions
        zs: 1D world Z positions
        point: (x, y, z) position

    Returns:
        Array of shape (len(zs), len(xs))
    """
    px, py, pz = point
    dx = xs[np.newaxis, :] - px
    dz = zs[:, np.newaxis] - pz
    return np.sqrt(dx ** 2 + py ** 2 + dz ** 2)


def hash_unit(ix: np.ndarray, iz: np.ndarray, seed: int, salt: int = 0) -> np.ndarray:
    """
    Stateless hash of integer lattice points into [0, 1).
    Same (ix, iz, seed, salt) always hashes to the same value.
    """
    h = np.asarray(ix, dtype=np.int64).astype(_U64) * _U64(0x9E3779B97F4A7C15)
    h ^= np.asarray(iz, dtype=np.int64).astype(_U64) * _U64(0xC2B2AE3D27D4EB4F)
    h ^= _U64((int(seed) * 0x165667B19E3779F9 + int(salt) * 0x27D4EB2F165667C5) & 0xFFFFFFFFFFFFFFFF)

    # splitmix64 finalizer
    h ^= h >> _U64(30)
    h *= _U64(0xBF58476D1CE4E5B9)
    h ^= h >> _U64(27)
    h *= _U64(0x94D049BB133111EB)
    h ^= h >> _U64(31)

    return (h >> _U64(11)).astype(np.float64) * (1.0 / (1 << 53))


def voronoi_cells(
    xs: np.ndarray,
    zs: np.ndarray,
    cell_size: float,
    seed: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Jittered-grid Voronoi diagram sampled on a grid.

    One feature point lives in every world cell of size cell_size, so the
    pattern is continuous across chunk borders.

    Args:
        xs: 1D world X positions
        zs: 1D world Z positions
        cell_size: Spacing of feature points in world units
        seed: Pattern seed

    Returns:
        Tuple of (f1, f2, cell_value): distance to nearest and second nearest
        feature point and a per-cell random value in [0, 1)
    """
    # Cells covering the grid plus one ring, enough to find both neighbours
    cx0 = int(np.floor(xs.min() / cell_size)) - 2
    cx1 = int(np.floor(xs.max() / cell_size)) + 2
    cz0 = int(np.floor(zs.min() / cell_size)) - 2
    cz1 = int(np.floor(zs.max() / cell_size)) + 2

    cell_x, cell_z = np.meshgrid(np.arange(cx0, cx1 + 1), np.arange(cz0, cz1 + 1))
    cell_x = cell_x.ravel()
    cell_z = cell_z.ravel()

    points = np.column_stack([
        (cell_x + hash_unit(cell_x, cell_z, seed, 1)) * cell_size,
        (cell_z + hash_unit(cell_x, cell_z, seed, 2)) * cell_size,
    ])
    values = hash_unit(cell_x, cell_z, seed, 3)

    grid_x, grid_z = np.meshgrid(xs, zs)
    queries = np.column_stack([grid_x.ravel(), grid_z.ravel()])

    distances, indices = cKDTree(points).query(queries, k=2)

    shape = (zs.size, xs.size)
    f1 = distances[:, 0].reshape(shape)
    f2 = distances[:, 1].reshape(shape)
    cell_value = values[indices[:, 0]].reshape(shape)
    return f1, f2, cell_value
