#!/usr/bin/env python3
"""
Terrarium - Demo Script

Walks a viewpoint across the world, ticks the chunk manager, fires one of
each world event and prints what was generated.
"""

import logging
import time

import numpy as np

from terrarium.chunks.manager import ChunkManager
from terrarium.config import BiomeType, WorldGenerationParams
from terrarium.settings import get_settings
from terrarium.world.events import WorldEventManager
from terrarium.world.interface import WorldInterface

logger = logging.getLogger("terrarium.demo")


class WalkingViewpoint:
    """Viewpoint moving along +X at a fixed speed per poll"""

    def __init__(self, speed: float):
        self.speed = speed
        self.position = np.zeros(3)

    def __call__(self):
        self.position[0] += self.speed
        return tuple(self.position)


def print_world_statistics(manager: ChunkManager, interface: WorldInterface):
    """Print interesting statistics about the generated chunks"""
    print("\n" + "=" * 60)
    print(" CHUNK GENERATION SUMMARY")
    print("=" * 60)

    stats = manager.stats()
    print(f"\nActive chunks: {stats['active']}  Cached: {stats['cached']}")
    print(f"Queued: near {stats['near_queue']}, far {stats['far_queue']}")
    print(f"Completed: {stats['chunks_completed']}  LOD changes: {stats['lod_changes']}")

    biome_counts = np.zeros(len(BiomeType), dtype=np.int64)
    settlements = 0
    dungeons = 0
    for chunk in manager.iter_active():
        if not chunk.is_complete:
            continue
        biome_counts += np.bincount(chunk.biome, minlength=len(BiomeType))
        settlements += chunk.has_settlement
        dungeons += chunk.has_dungeon

    total = biome_counts.sum()
    if total:
        print("\nBiomes:")
        for biome in BiomeType:
            if biome_counts[biome]:
                print(f"  {biome.name.lower():12s} {biome_counts[biome] / total * 100:5.1f}%")

    print(f"\nSettlements: {settlements}  Dungeons: {dungeons}")

    for chunk in manager.iter_active():
        summary = interface.describe_chunk(chunk.coord)
        if summary and "settlement_name" in summary:
            print(f"  {summary['settlement_name']} ({summary['settlement_tier']}) at {chunk.coord}")

    print("\nStage timings:")
    for stage, timing in manager.pipeline.timing_report().items():
        print(f"  {stage:15s} {timing['total']:8.2f}s over {timing['count']} runs")

    print("\n" + "=" * 60)


def run_demo(params: WorldGenerationParams, ticks: int, walk_speed: float):
    """
    Run the chunk system for a number of ticks.

    Args:
        params: World generation parameters
        ticks: Number of manager ticks
        walk_speed: World units the viewpoint moves per tick
    """
    viewpoint = WalkingViewpoint(walk_speed)

    with ChunkManager(params, viewpoint_provider=viewpoint) as manager:
        interface = WorldInterface(manager)
        events = WorldEventManager(manager)

        manager.add_completion_listener(
            lambda chunk: logger.debug(f"Ready to render {chunk.coord} (revision {chunk.revision})")
        )

        start = time.time()
        for tick in range(ticks):
            manager.tick()

            # Fire each event kind once along the walk
            if tick == ticks // 5:
                events.trigger_magical_explosion(viewpoint.position)
            elif tick == 2 * ticks // 5:
                events.trigger_crystallized_terrain(viewpoint.position)
            elif tick == 3 * ticks // 5:
                events.trigger_faction_influence(viewpoint.position)
            elif tick == 4 * ticks // 5:
                events.trigger_natural_disaster(viewpoint.position)

        print(f"\n{ticks} ticks in {time.time() - start:.2f}s")

        x, _, z = viewpoint.position
        location = interface.query_location(x, z)
        if location is not None:
            print(f"\nAt viewpoint ({x:.0f}, {z:.0f}): {location.biome_type}, height {location.height:.1f}")

        print_world_statistics(manager, interface)
        print(f"Events: {events.get_stats()}")


def main():
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format='%(levelname)s %(name)s: %(message)s')

    print("=" * 60)
    print(" TERRARIUM CHUNK SYSTEM - DEMO")
    print("=" * 60)

    run_demo(settings.to_params(), settings.demo_ticks, settings.demo_walk_speed)


if __name__ == "__main__":
    main()
