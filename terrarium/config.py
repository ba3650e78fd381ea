"""
Terrarium - Configuration and Constants
Contains all global settings, enumerations, lookup tables and the
validated generation parameters for the chunk pipeline.
"""

import math
from enum import IntEnum
from typing import Dict, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

# =============================================================================
# CHUNK CONFIGURATION
# =============================================================================

CHUNK_SIZE = 64          # World units per chunk side
BASE_RESOLUTION = 128    # Vertices per side at LOD FULL

DEFAULT_SEED = 12345

# Fixed capacities of the per-chunk bounded lists
MAX_POINTS_OF_INTEREST = 16
MAX_ENTITIES = 64
MAX_ACTIVE_EVENTS = 8

# =============================================================================
# ENUMERATIONS
# =============================================================================

class LODLevel(IntEnum):
    """Level of detail, ordered from most to least detailed"""
    FULL = 0      # Immediate surroundings
    HIGH = 1
    MEDIUM = 2
    LOW = 3       # Outermost ring


class GenerationStage(IntEnum):
    """Linear generation state machine of a chunk"""
    NONE = 0
    QUEUED = 1
    BASE_TERRAIN = 2   # Layer 1: height / moisture / temperature
    BIOMES = 3         # Layer 2: biome assignment
    FEATURES = 4       # Layer 3: rivers, roads, points of interest
    SETTLEMENTS = 5    # Layer 4: towns
    DUNGEONS = 6       # Layer 5: dungeon entrances
    ENTITIES = 7       # Layer 6: NPCs, monsters, loot
    COMPLETE = 8


class BiomeType(IntEnum):
    """Biome classifications (stored per vertex as uint8)"""
    OCEAN = 0
    BEACH = 1
    DESERT = 2
    SAVANNA = 3
    GRASSLAND = 4
    FOREST = 5
    RAINFOREST = 6
    TAIGA = 7
    TUNDRA = 8
    SNOW = 9
    MOUNTAIN = 10


class EventKind(IntEnum):
    """Kinds of world events that perturb generation"""
    MAGICAL_EXPLOSION = 1
    CRYSTALLIZED_TERRAIN = 2
    FACTION_INFLUENCE = 3
    NATURAL_DISASTER = 4


# =============================================================================
# LOOKUP TABLES
# =============================================================================

# Biomes that block roads and settlements
UNBUILDABLE_BIOMES = (BiomeType.OCEAN, BiomeType.MOUNTAIN, BiomeType.SNOW)

# Settlement suitability multiplier per biome (anything missing scores 0.1)
BIOME_SETTLEMENT_SUITABILITY: Dict[BiomeType, float] = {
    BiomeType.GRASSLAND: 1.0,
    BiomeType.FOREST: 0.8,
    BiomeType.SAVANNA: 0.7,
    BiomeType.BEACH: 0.6,
    BiomeType.TAIGA: 0.5,
    BiomeType.RAINFOREST: 0.5,
    BiomeType.DESERT: 0.4,
    BiomeType.TUNDRA: 0.3,
}
DEFAULT_BIOME_SUITABILITY = 0.1

SETTLEMENT_TIERS = {
    0: "none",
    1: "hamlet",
    2: "village",
    3: "town",
    4: "city",
    5: "metropolis",
}

# Entity type id ranges, half-open [start, stop)
NPC_ID_RANGE: Tuple[int, int] = (1000, 1100)
MONSTER_ID_RANGE: Tuple[int, int] = (2000, 2100)
LOOT_ID_RANGE: Tuple[int, int] = (3000, 3100)

WILDLIFE_ID_RANGES: Dict[BiomeType, Tuple[int, int]] = {
    BiomeType.FOREST: (2100, 2110),
    BiomeType.RAINFOREST: (2100, 2110),
    BiomeType.DESERT: (2110, 2120),
    BiomeType.MOUNTAIN: (2120, 2130),
    BiomeType.TAIGA: (2130, 2140),
    BiomeType.SAVANNA: (2140, 2150),
}
DEFAULT_WILDLIFE_ID_RANGE: Tuple[int, int] = (2150, 2200)

# Display names for entity id ranges
ENTITY_NAMES = [
    ((1000, 1100), "NPC"),
    ((2000, 2100), "Dungeon Monster"),
    ((2100, 2110), "Forest Creature"),
    ((2110, 2120), "Desert Creature"),
    ((2120, 2130), "Mountain Creature"),
    ((2130, 2140), "Arctic Creature"),
    ((2140, 2150), "Savanna Creature"),
    ((2150, 2200), "Wildlife"),
    ((3000, 3100), "Treasure"),
]

# =============================================================================
# GENERATION PARAMETERS
# =============================================================================

class TerrainParams(BaseModel):
    """Layer 1: coherent noise and climate parameters"""
    scale: float = Field(0.01, gt=0.0, description="Noise frequency per world unit")
    octaves: int = Field(6, ge=1, le=12, description="Octaves for fBm noise")
    persistence: float = Field(0.5, gt=0.0, le=1.0, description="Amplitude multiplier per octave")
    lacunarity: float = Field(2.0, ge=1.0, le=4.0, description="Frequency multiplier per octave")
    height_multiplier: float = Field(100.0, gt=0.0, description="World units of a normalized height of 1.0")

    ridge_weight: float = Field(0.3, ge=0.0, le=1.0, description="Blend weight of the ridged component")
    ridge_scale: float = Field(2.0, gt=0.0, description="Ridged noise frequency relative to base")
    height_contrast: float = Field(1.6, gt=0.0, description="Stretch applied around 0.5 before clipping")

    latitude_period: float = Field(4096.0, gt=0.0, description="World units per full climate band cycle")
    temperature_noise_weight: float = Field(0.3, ge=0.0, le=1.0)
    altitude_lapse: float = Field(0.6, ge=0.0, description="Temperature drop per normalized height above sea")
    sea_level: float = Field(0.3, ge=0.0, le=1.0, description="Normalized height where lapse starts")

    moisture_scale: float = Field(1.5, gt=0.0, description="Moisture noise frequency relative to base")
    coastal_weight: float = Field(0.35, ge=0.0, le=1.0, description="Weight of the low-ground wetness term")
    elevation_dryness: float = Field(0.5, ge=0.0, description="Moisture drop per normalized height above 0.7")

    @field_validator("scale", "height_multiplier", "latitude_period")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("must be a finite number")
        return v


class EventEffectParams(BaseModel):
    """Strength of each world event's perturbation (normalized height units)"""
    explosion_height: float = Field(0.35, description="Peak uplift of a magical explosion")
    explosion_spike: float = Field(0.12, description="Crystalline spike amplitude of an explosion")
    explosion_spike_scale: float = Field(0.15, gt=0.0, description="Spike noise frequency per world unit")
    explosion_drying: float = Field(0.3, ge=0.0)

    crystal_cell_size: float = Field(8.0, gt=0.0, description="Voronoi cell size in world units")
    crystal_height: float = Field(0.15)
    crystal_drying: float = Field(0.4, ge=0.0)

    faction_smoothing_size: int = Field(3, ge=3, description="Neighbourhood size for height averaging")

    disaster_noise: float = Field(0.1, description="High-frequency height noise amplitude")
    disaster_noise_scale: float = Field(0.25, gt=0.0)
    disaster_flooding: float = Field(0.3, ge=0.0)
    disaster_region_scale: float = Field(0.03, gt=0.0, description="Frequency of the flooded sub-region mask")

    @field_validator("faction_smoothing_size")
    @classmethod
    def must_be_odd(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError("smoothing window must be odd")
        return v


class BiomeParams(BaseModel):
    """Layer 2: ordered normalized height thresholds"""
    ocean_level: float = Field(0.3, ge=0.0, le=1.0)
    beach_level: float = Field(0.35, ge=0.0, le=1.0)
    mountain_level: float = Field(0.7, ge=0.0, le=1.0)
    snow_level: float = Field(0.85, ge=0.0, le=1.0)
    snow_temperature: float = Field(0.3, ge=0.0, le=1.0, description="Colder peaks turn to snow")

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "BiomeParams":
        if not (self.ocean_level < self.beach_level < self.mountain_level < self.snow_level):
            raise ValueError("biome thresholds must satisfy ocean < beach < mountain < snow")
        return self


class FeatureParams(BaseModel):
    """Layer 3: rivers, roads and points of interest"""
    river_threshold: float = Field(0.7, ge=0.0, le=1.0)
    river_chance_threshold: float = Field(0.6, ge=0.0, le=1.0)
    river_seed: int = 54321

    road_min_fraction: float = Field(0.5, ge=0.0, le=1.0)
    road_chance_factor: float = Field(0.3, ge=0.0, le=1.0)
    road_seed: int = 98765

    max_pois: int = Field(8, ge=0, le=MAX_POINTS_OF_INTEREST)
    poi_seed: int = 11111


class SettlementParams(BaseModel):
    """Layer 4: settlement placement"""
    settlement_seed: int = 77777
    base_chance: float = Field(0.05, ge=0.0, le=1.0)
    faction_influence_multiplier: float = Field(2.0, ge=0.0)

    min_flatness: float = Field(0.7, ge=0.0, le=1.0)
    flatness_range: float = Field(10.0, gt=0.0, description="Height difference (world units) scoring zero flatness")
    optimal_moisture: float = Field(0.5, ge=0.0, le=1.0)
    optimal_temperature: float = Field(0.6, ge=0.0, le=1.0)

    road_bonus: float = Field(1.5, ge=0.0)
    river_bonus: float = Field(1.3, ge=0.0)

    # Size tiers: quotient below each bound yields 5, 4, 3, 2 (else 1)
    size_tier_bounds: Tuple[float, float, float, float] = (0.1, 0.3, 0.5, 0.7)

    @field_validator("size_tier_bounds")
    @classmethod
    def bounds_increasing(cls, v: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
        if list(v) != sorted(v):
            raise ValueError("size tier bounds must be increasing")
        return v


class DungeonParams(BaseModel):
    """Layer 5: dungeon entrances"""
    dungeon_seed: int = 88888
    base_chance: float = Field(0.08, ge=0.0, le=1.0)
    mountain_weight: float = 0.3
    forest_weight: float = 0.15
    desert_weight: float = 0.2
    settlement_penalty: float = Field(0.3, ge=0.0, le=1.0)
    explosion_chance_bonus: float = 0.4
    explosion_depth_bonus: float = 5.0
    min_depth: int = Field(1, ge=0)
    max_depth: int = Field(10, ge=0)

    @model_validator(mode="after")
    def depth_range_valid(self) -> "DungeonParams":
        if self.min_depth > self.max_depth:
            raise ValueError("min_depth must not exceed max_depth")
        return self


class EntityParams(BaseModel):
    """Layer 6: NPCs, monsters, wildlife and loot"""
    entity_seed: int = 99999
    max_entities: int = Field(MAX_ENTITIES, ge=0, le=MAX_ENTITIES)

    npc_min: int = Field(5, ge=0)
    npc_max: int = Field(20, ge=0)
    npc_max_height: float = Field(80.0, description="Flatness proxy: NPCs spawn at or below this height")
    monster_density: float = Field(0.5, ge=0.0)
    loot_density: float = Field(0.2, ge=0.0)
    hostile_threshold: float = Field(0.6, ge=0.0, le=1.0, description="Wildlife is hostile when a draw exceeds this")

    base_threat_level: float = 1.0
    distance_threat_multiplier: float = 0.1
    spawn_attempts: int = Field(10, ge=1)

    @model_validator(mode="after")
    def npc_range_valid(self) -> "EntityParams":
        if self.npc_min > self.npc_max:
            raise ValueError("npc_min must not exceed npc_max")
        return self


class ChunkSystemParams(BaseModel):
    """Chunk lifecycle: sizes, LOD rings, per-tick budget and cache"""
    chunk_size: int = Field(CHUNK_SIZE, gt=0)
    base_resolution: int = Field(BASE_RESOLUTION, gt=0)

    view_distance_full: int = Field(2, ge=0)
    view_distance_high: int = Field(4, ge=0)
    view_distance_medium: int = Field(8, ge=0)
    view_distance_low: int = Field(16, ge=0)

    max_chunks_per_tick: int = Field(2, ge=1)
    use_far_queue: bool = True
    max_workers: int = Field(1, ge=1, description="Threads used to advance a tick's batch")

    max_cached_chunks: int = Field(100, ge=0)
    cache_timeout: float = Field(300.0, ge=0.0, description="Seconds a cached chunk survives without access")
    cleanup_interval: float = Field(1.0, ge=0.0, description="Seconds between cache sweeps")

    @model_validator(mode="after")
    def lod_table_valid(self) -> "ChunkSystemParams":
        if self.base_resolution >> int(LODLevel.LOW) < 1:
            raise ValueError(
                f"base_resolution {self.base_resolution} too small: "
                f"every LOD needs a positive resolution"
            )
        distances = [self.view_distance(lod) for lod in LODLevel]
        if distances != sorted(distances):
            raise ValueError("view distances must not shrink as LOD decreases")
        return self

    def resolution_for(self, lod: LODLevel) -> int:
        """Vertices per side for a LOD level"""
        return self.base_resolution >> int(lod)

    def view_distance(self, lod: LODLevel) -> int:
        """Ring radius (in chunks) for a LOD level"""
        return {
            LODLevel.FULL: self.view_distance_full,
            LODLevel.HIGH: self.view_distance_high,
            LODLevel.MEDIUM: self.view_distance_medium,
            LODLevel.LOW: self.view_distance_low,
        }[LODLevel(lod)]


class WorldGenerationParams(BaseModel):
    """
    Input parameters for the whole chunk system.
    All generation parameters can be customized.
    """
    seed: int = Field(DEFAULT_SEED, description="World seed for deterministic generation")

    chunks: ChunkSystemParams = Field(default_factory=ChunkSystemParams)
    terrain: TerrainParams = Field(default_factory=TerrainParams)
    events: EventEffectParams = Field(default_factory=EventEffectParams)
    biomes: BiomeParams = Field(default_factory=BiomeParams)
    features: FeatureParams = Field(default_factory=FeatureParams)
    settlements: SettlementParams = Field(default_factory=SettlementParams)
    dungeons: DungeonParams = Field(default_factory=DungeonParams)
    entities: EntityParams = Field(default_factory=EntityParams)
