"""
Terrarium - Stage 6: Entities
Populates a chunk with NPCs, dungeon monsters, wildlife and loot.

Spawn groups run in a fixed order (NPCs, monsters, wildlife, loot) into one
bounded list; once it is full the remaining spawns are dropped.
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np

from terrarium.config import (
    BiomeType,
    DEFAULT_WILDLIFE_ID_RANGE,
    ENTITY_NAMES,
    EntityParams,
    LOOT_ID_RANGE,
    MONSTER_ID_RANGE,
    NPC_ID_RANGE,
    WILDLIFE_ID_RANGES,
    WorldGenerationParams,
)
from terrarium.models.chunk import Chunk, EntitySpawn
from terrarium.utils.seeding import stage_rng

logger = logging.getLogger(__name__)


def execute(chunk: Chunk, params: WorldGenerationParams):
    """
    Spawn every entity group for a chunk.

    Args:
        chunk: Chunk with settlement and dungeon decided
        params: Generation parameters
    """
    ep = params.entities
    rng = stage_rng(params.seed, ep.entity_seed, chunk.coord)
    spawner = _Spawner(chunk, rng, ep)

    threat = chunk_threat_level(chunk.coord.x, chunk.coord.z, ep)

    if chunk.has_settlement:
        spawner.spawn_npcs()
    if chunk.has_dungeon:
        spawner.spawn_monsters(threat, chunk.dungeon_depth)
    spawner.spawn_wildlife(threat)
    spawner.spawn_loot()

    if spawner.dropped:
        logger.debug(f"Entity capacity reached in chunk {chunk.coord}, dropped {spawner.dropped} spawns")
    logger.debug(f"Entities for chunk {chunk.coord}: {len(chunk.entities)}")


def chunk_threat_level(chunk_x: int, chunk_z: int, ep: EntityParams) -> float:
    """Threat grows with distance from the world origin."""
    return ep.base_threat_level + math.sqrt(chunk_x * chunk_x + chunk_z * chunk_z) * ep.distance_threat_multiplier


def get_wildlife_id_range(biome: BiomeType) -> Tuple[int, int]:
    return WILDLIFE_ID_RANGES.get(BiomeType(biome), DEFAULT_WILDLIFE_ID_RANGE)


def get_entity_name(entity_type_id: int) -> str:
    """Display name for an entity type id."""
    for (start, stop), name in ENTITY_NAMES:
        if start <= entity_type_id < stop:
            return name
    return "Unknown Entity"


class _Spawner:
    """Shared spawn bookkeeping for one chunk."""

    def __init__(self, chunk: Chunk, rng: np.random.Generator, ep: EntityParams):
        self.chunk = chunk
        self.rng = rng
        self.ep = ep
        self.resolution = chunk.resolution
        self.dropped = 0

        chunk.entities.clear()
        self.biome = chunk.biome
        self.height = chunk.height

    @property
    def full(self) -> bool:
        return len(self.chunk.entities) >= self.ep.max_entities or self.chunk.entities.is_full

    def find_position(self, require_low: bool = False) -> Optional[Tuple[int, int]]:
        """Random land vertex, or None after every attempt fails."""
        for _ in range(self.ep.spawn_attempts):
            x = int(self.rng.integers(0, self.resolution))
            z = int(self.rng.integers(0, self.resolution))
            index = x + z * self.resolution

            if self.biome[index] == BiomeType.OCEAN:
                continue
            if require_low and self.height[index] > self.ep.npc_max_height:
                continue
            return x, z
        return None

    def add(self, x: int, z: int, entity_type_id: int, threat_level: float, is_loot: bool = False):
        spawn = EntitySpawn(
            position=(float(x), float(self.height[x + z * self.resolution]), float(z)),
            entity_type_id=int(entity_type_id),
            threat_level=float(threat_level),
            is_loot=is_loot,
        )
        if not self.chunk.entities.append(spawn):
            self.dropped += 1

    def _has_room(self, total: int, done: int) -> bool:
        if self.full:
            self.dropped += total - done
            return False
        return True

    def spawn_npcs(self):
        """Friendly settlement NPCs on low ground"""
        count = int(self.rng.integers(self.ep.npc_min, self.ep.npc_max + 1))
        for i in range(count):
            if not self._has_room(count, i):
                return
            pos = self.find_position(require_low=True)
            if pos is None:
                continue
            self.add(*pos, self.rng.integers(*NPC_ID_RANGE), 0.0)

    def spawn_monsters(self, threat: float, depth: int):
        """Monsters around the dungeon entrance, scaled by depth"""
        dungeon_threat = threat + depth * 0.5
        count = int(self.rng.integers(depth * 2, depth * 5 + 1))
        for i in range(count):
            if not self._has_room(count, i):
                return
            pos = self.find_position()
            if pos is None:
                continue
            entity_id = self.rng.integers(*MONSTER_ID_RANGE)
            self.add(*pos, entity_id, dungeon_threat * self.rng.uniform(0.8, 1.2))

    def spawn_wildlife(self, threat: float):
        """Biome-specific creatures, some hostile"""
        count = int(self.resolution * self.resolution * self.ep.monster_density * 0.01)
        for i in range(count):
            if not self._has_room(count, i):
                return
            pos = self.find_position()
            if pos is None:
                continue
            x, z = pos
            biome = BiomeType(int(self.biome[x + z * self.resolution]))
            entity_id = self.rng.integers(*get_wildlife_id_range(biome))

            hostile = self.rng.random() > self.ep.hostile_threshold
            threat_level = threat * self.rng.uniform(0.5, 1.5) if hostile else 0.0
            self.add(x, z, entity_id, threat_level)

    def spawn_loot(self):
        count = int(self.resolution * self.resolution * self.ep.loot_density * 0.01)
        for i in range(count):
            if not self._has_room(count, i):
                return
            pos = self.find_position()
            if pos is None:
                continue
            self.add(*pos, self.rng.integers(*LOOT_ID_RANGE), 0.0, is_loot=True)
