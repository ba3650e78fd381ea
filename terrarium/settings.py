"""
Terrarium Settings
Environment variables and .env loading for the chunk system.

Nested parameter groups use a double underscore, e.g.
TERRARIUM_CHUNKS__VIEW_DISTANCE_LOW=12 or TERRARIUM_TERRAIN__SCALE=0.02.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from terrarium.config import (
    BiomeParams,
    ChunkSystemParams,
    DEFAULT_SEED,
    DungeonParams,
    EntityParams,
    EventEffectParams,
    FeatureParams,
    SettlementParams,
    TerrainParams,
    WorldGenerationParams,
)


class TerrariumSettings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TERRARIUM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # World
    seed: int = DEFAULT_SEED

    # Generation parameter groups
    chunks: ChunkSystemParams = Field(default_factory=ChunkSystemParams)
    terrain: TerrainParams = Field(default_factory=TerrainParams)
    events: EventEffectParams = Field(default_factory=EventEffectParams)
    biomes: BiomeParams = Field(default_factory=BiomeParams)
    features: FeatureParams = Field(default_factory=FeatureParams)
    settlements: SettlementParams = Field(default_factory=SettlementParams)
    dungeons: DungeonParams = Field(default_factory=DungeonParams)
    entities: EntityParams = Field(default_factory=EntityParams)

    # Demo
    demo_ticks: int = Field(200, ge=1)
    demo_walk_speed: float = Field(8.0, description="World units the demo viewpoint moves per tick")

    def to_params(self) -> WorldGenerationParams:
        """Build the validated generation parameters"""
        return WorldGenerationParams(
            seed=self.seed,
            chunks=self.chunks,
            terrain=self.terrain,
            events=self.events,
            biomes=self.biomes,
            features=self.features,
            settlements=self.settlements,
            dungeons=self.dungeons,
            entities=self.entities,
        )


@lru_cache()
def get_settings() -> TerrariumSettings:
    """Get cached settings instance."""
    return TerrariumSettings()
