"""
Terrarium - Noise Generation Utilities
Provides deterministic coherent noise sampled at world positions.

Uses OpenSimplex for properly seeded noise. Because every sample is taken at
absolute world coordinates, neighbouring chunks line up seamlessly and any
LOD samples the same underlying field.
"""

from functools import lru_cache

import numpy as np
from opensimplex import OpenSimplex


class NoiseGenerator:
    """
    Deterministic multi-octave noise generator using OpenSimplex noise.

    - Deterministic generation (same seed = same result)
    - Proper seeding (different seeds = different results)
    - Seamless chunk boundaries (sampled in world space)
    """

    def __init__(
        self,
        seed: int,
        octaves: int = 6,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        frequency: float = 0.01
    ):
        """
        Initialize noise generator with parameters.

        Args:
            seed: Random seed for deterministic generation
            octaves: Number of noise layers to combine
            persistence: Amplitude multiplier per octave (0-1)
            lacunarity: Frequency multiplier per octave (>1)
            frequency: Base frequency in cycles per world unit
        """
        if octaves < 1:
            raise ValueError("octaves must be >= 1")
        if not np.isfinite(frequency) or frequency <= 0:
            raise ValueError("frequency must be a positive finite number")

        self.seed = seed
        self.octaves = octaves
        self.persistence = persistence
        self.lacunarity = lacunarity
        self.frequency = frequency

        self.simplex = OpenSimplex(seed=seed)

    def generate_fbm(
        self,
        xs: np.ndarray,
        zs: np.ndarray,
        normalize: bool = True
    ) -> np.ndarray:
        """
        Sample fractal Brownian motion on the grid spanned by xs and zs.

        Args:
            xs: 1D array of world X positions
            zs: 1D array of world Z positions
            normalize: If True, map output from [-1, 1] to [0, 1]

        Returns:
            Array of shape (len(zs), len(xs)), indexed [z, x]
        """
        xs = np.asarray(xs, dtype=np.float64)
        zs = np.asarray(zs, dtype=np.float64)

        value = np.zeros((zs.size, xs.size), dtype=np.float64)
        amplitude = 1.0
        frequency = self.frequency
        max_value = 0.0

        for octave in range(self.octaves):
            # noise2array returns shape (y.size, x.size)
            value += self.simplex.noise2array(xs * frequency, zs * frequency) * amplitude
            max_value += amplitude

            amplitude *= self.persistence
            frequency *= self.lacunarity

        value /= max_value

        if normalize:
            value = (value + 1.0) / 2.0

        return value

    def generate_ridged(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """
        Generate ridged multi-fractal noise.
        Useful for mountain ranges and sharp terrain features.

        Returns:
            Array normalized to [0, 1]
        """
        noise = self.generate_fbm(xs, zs, normalize=False)

        # Create ridges by taking absolute value and inverting
        ridged = 1.0 - np.abs(noise)

        # Square to sharpen ridges
        return ridged ** 2


@lru_cache(maxsize=64)
def get_noise_generator(
    seed: int,
    octaves: int = 6,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
    frequency: float = 0.01
) -> NoiseGenerator:
    """
    Shared, immutable generator for a parameter set.
    OpenSimplex only reads its permutation tables after construction.
    """
    return NoiseGenerator(seed, octaves, persistence, lacunarity, frequency)


__all__ = [
    'NoiseGenerator',
    'get_noise_generator',
]
