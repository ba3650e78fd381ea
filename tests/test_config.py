"""
Configuration Tests
Parameter defaults, validation and environment settings.
"""

import pytest
from pydantic import ValidationError

from terrarium.config import (
    BiomeParams,
    ChunkSystemParams,
    DungeonParams,
    EntityParams,
    EventEffectParams,
    LODLevel,
    SettlementParams,
    TerrainParams,
    WorldGenerationParams,
)
from terrarium.settings import TerrariumSettings, get_settings


class TestChunkSystemParams:
    """Tests for chunk lifecycle parameters"""

    def test_defaults(self):
        """Test default sizes and rings"""
        params = ChunkSystemParams()
        assert params.chunk_size == 64
        assert params.base_resolution == 128
        assert [params.view_distance(lod) for lod in LODLevel] == [2, 4, 8, 16]
        assert params.max_chunks_per_tick == 2
        assert params.use_far_queue is True

    def test_resolution_halves_per_lod(self):
        """Test LOD resolution table"""
        params = ChunkSystemParams()
        assert [params.resolution_for(lod) for lod in LODLevel] == [128, 64, 32, 16]

    def test_base_resolution_too_small(self):
        """Test every LOD must keep a positive resolution"""
        with pytest.raises(ValidationError):
            ChunkSystemParams(base_resolution=4)

    def test_view_distances_must_not_shrink(self):
        """Test ring ordering"""
        with pytest.raises(ValidationError):
            ChunkSystemParams(view_distance_full=5, view_distance_high=2)

    def test_batch_size_positive(self):
        """Test per-tick budget"""
        with pytest.raises(ValidationError):
            ChunkSystemParams(max_chunks_per_tick=0)

    def test_validation_error_is_value_error(self):
        """Test invalid configuration surfaces as ValueError"""
        with pytest.raises(ValueError):
            ChunkSystemParams(chunk_size=-1)


class TestGenerationParams:
    """Tests for per-stage parameter groups"""

    def test_world_defaults(self):
        """Test nested defaults"""
        params = WorldGenerationParams()
        assert params.seed == 12345
        assert params.terrain.height_multiplier == 100.0
        assert params.biomes.ocean_level == 0.3
        assert params.features.river_seed == 54321
        assert params.settlements.settlement_seed == 77777
        assert params.dungeons.dungeon_seed == 88888
        assert params.entities.entity_seed == 99999

    def test_biome_thresholds_ordered(self):
        """Test threshold ordering"""
        with pytest.raises(ValidationError):
            BiomeParams(ocean_level=0.5, beach_level=0.4)

    def test_terrain_scale_positive(self):
        """Test noise scale"""
        with pytest.raises(ValidationError):
            TerrainParams(scale=0.0)

    def test_smoothing_window_odd(self):
        """Test faction smoothing window"""
        with pytest.raises(ValidationError):
            EventEffectParams(faction_smoothing_size=4)

    def test_size_tier_bounds_increasing(self):
        """Test settlement tier bounds"""
        with pytest.raises(ValidationError):
            SettlementParams(size_tier_bounds=(0.5, 0.3, 0.1, 0.7))

    def test_dungeon_depth_range(self):
        """Test depth bounds"""
        with pytest.raises(ValidationError):
            DungeonParams(min_depth=5, max_depth=2)

    def test_npc_range(self):
        """Test NPC count bounds"""
        with pytest.raises(ValidationError):
            EntityParams(npc_min=10, npc_max=2)

    def test_max_entities_capped(self):
        """Test entity budget cannot exceed list capacity"""
        with pytest.raises(ValidationError):
            EntityParams(max_entities=65)


class TestSettings:
    """Tests for environment-driven settings"""

    def test_defaults(self, monkeypatch):
        """Test settings without overrides"""
        monkeypatch.delenv("TERRARIUM_SEED", raising=False)
        settings = TerrariumSettings(_env_file=None)
        assert settings.seed == 12345
        assert settings.log_level == "INFO"
        assert settings.to_params().model_dump() == WorldGenerationParams().model_dump()

    def test_env_override(self, monkeypatch):
        """Test flat and nested environment variables"""
        monkeypatch.setenv("TERRARIUM_SEED", "42")
        monkeypatch.setenv("TERRARIUM_CHUNKS__VIEW_DISTANCE_LOW", "20")

        params = TerrariumSettings(_env_file=None).to_params()

        assert params.seed == 42
        assert params.chunks.view_distance_low == 20
        assert params.chunks.view_distance_medium == 8

    def test_invalid_env_rejected(self, monkeypatch):
        """Test invalid nested values fail validation"""
        monkeypatch.setenv("TERRARIUM_CHUNKS__BASE_RESOLUTION", "2")
        with pytest.raises(ValidationError):
            TerrariumSettings(_env_file=None)

    def test_get_settings_cached(self):
        """Test settings singleton"""
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
