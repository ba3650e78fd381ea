"""
Terrarium - World Event Effects
Perturbs the base terrain maps of a chunk with its active world events.

Every effect is weighted by a linear falloff max(0, 1 - d / radius) * intensity
around the event epicenter and samples its patterns in world space, so the
same event shapes neighbouring chunks consistently.
"""

import logging
from typing import Callable, Dict, Iterable, Tuple

import numpy as np

from terrarium.config import EventEffectParams, EventKind
from terrarium.models.events import WorldEvent
from terrarium.utils.noise import get_noise_generator
from terrarium.utils.spatial import distance_to_point, local_average, voronoi_cells

logger = logging.getLogger(__name__)

# Offsets separating the pattern seeds of each effect from the terrain seeds
SPIKE_SEED_OFFSET = 101
CRYSTAL_SEED_OFFSET = 202
DISASTER_NOISE_SEED_OFFSET = 303
DISASTER_REGION_SEED_OFFSET = 404


def event_falloff(event: WorldEvent, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
    """
    Per-vertex weight of an event.

    Returns:
        Array of shape (len(zs), len(xs)); zero outside the radius
    """
    if event.radius <= 0:
        return np.zeros((zs.size, xs.size), dtype=np.float64)
    distance = distance_to_point(xs, zs, event.epicenter)
    return np.maximum(0.0, 1.0 - distance / event.radius) * event.intensity


def apply_magical_explosion(height, moisture, xs, zs, weight, seed, effects: EventEffectParams):
    """Sharp uplift topped with crystalline spikes; dries the blast zone."""
    spikes = get_noise_generator(
        seed + SPIKE_SEED_OFFSET, 3, 0.5, 2.0, effects.explosion_spike_scale
    ).generate_fbm(xs, zs, normalize=False)
    spikes = (1.0 - np.abs(spikes)) ** 4

    height += weight * (effects.explosion_height + effects.explosion_spike * spikes)
    moisture -= weight * effects.explosion_drying


def apply_crystallized_terrain(height, moisture, xs, zs, weight, seed, effects: EventEffectParams):
    """Faceted Voronoi plateaus with raised seams between cells."""
    f1, f2, cell_value = voronoi_cells(xs, zs, effects.crystal_cell_size, seed + CRYSTAL_SEED_OFFSET)
    seams = 1.0 - np.clip((f2 - f1) / effects.crystal_cell_size, 0.0, 1.0)
    facets = (cell_value * 2.0 - 1.0) + 0.5 * seams

    height += weight * effects.crystal_height * facets
    moisture -= weight * effects.crystal_drying


def apply_faction_influence(height, moisture, xs, zs, weight, seed, effects: EventEffectParams):
    """Levels the land toward its neighbourhood mean."""
    smoothed = local_average(height, effects.faction_smoothing_size)
    blend = np.clip(weight, 0.0, 1.0)
    height += blend * (smoothed - height)


def apply_natural_disaster(height, moisture, xs, zs, weight, seed, effects: EventEffectParams):
    """Churned ground plus flooding in scattered sub-regions."""
    churn = get_noise_generator(
        seed + DISASTER_NOISE_SEED_OFFSET, 2, 0.5, 2.0, effects.disaster_noise_scale
    ).generate_fbm(xs, zs, normalize=False)
    regions = get_noise_generator(
        seed + DISASTER_REGION_SEED_OFFSET, 2, 0.5, 2.0, effects.disaster_region_scale
    ).generate_fbm(xs, zs)

    height += weight * effects.disaster_noise * churn
    moisture += weight * effects.disaster_flooding * (regions > 0.5)


EFFECT_HANDLERS: Dict[EventKind, Callable] = {
    EventKind.MAGICAL_EXPLOSION: apply_magical_explosion,
    EventKind.CRYSTALLIZED_TERRAIN: apply_crystallized_terrain,
    EventKind.FACTION_INFLUENCE: apply_faction_influence,
    EventKind.NATURAL_DISASTER: apply_natural_disaster,
}


def apply_events(
    height: np.ndarray,
    moisture: np.ndarray,
    xs: np.ndarray,
    zs: np.ndarray,
    events: Iterable[WorldEvent],
    seed: int,
    effects: EventEffectParams
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Apply events in order to normalized height and moisture grids.

    Args:
        height: 2D normalized height grid [z, x]
        moisture: 2D moisture grid [z, x]
        xs: 1D world X positions of the grid columns
        zs: 1D world Z positions of the grid rows
        events: Events attached to the chunk
        seed: World seed
        effects: Effect strengths

    Returns:
        New (height, moisture) grids; the inputs are left untouched
    """
    height = np.array(height, dtype=np.float64)
    moisture = np.array(moisture, dtype=np.float64)

    for event in events:
        weight = event_falloff(event, xs, zs)
        if not weight.any():
            continue
        EFFECT_HANDLERS[event.kind](height, moisture, xs, zs, weight, seed, effects)
        logger.debug(f"Applied {event.kind.name} (intensity {event.intensity:.2f})")

    return height, moisture
