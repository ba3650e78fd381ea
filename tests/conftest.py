"""
Shared fixtures: small, fast configurations and a controllable clock.
"""

import pytest

from terrarium.chunks.manager import ChunkManager
from terrarium.config import ChunkSystemParams, TerrainParams, WorldGenerationParams
from terrarium.generation.pipeline import create_pipeline


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_params(seed: int = 12345, **chunk_overrides) -> WorldGenerationParams:
    """Small chunks and rings so every test runs in milliseconds"""
    chunks = dict(
        chunk_size=16,
        base_resolution=16,
        view_distance_full=1,
        view_distance_high=1,
        view_distance_medium=2,
        view_distance_low=2,
        max_chunks_per_tick=2,
        max_cached_chunks=10,
        cache_timeout=30.0,
        cleanup_interval=1.0,
    )
    chunks.update(chunk_overrides)
    return WorldGenerationParams(
        seed=seed,
        chunks=ChunkSystemParams(**chunks),
        terrain=TerrainParams(octaves=3),
    )


@pytest.fixture
def clock():
    """Create fake clock"""
    return FakeClock()


@pytest.fixture
def make_params():
    """Factory for small generation parameters"""
    return build_params


@pytest.fixture
def params():
    """Default small parameters"""
    return build_params()


@pytest.fixture
def pipeline(params):
    """Pipeline with every stage registered"""
    return create_pipeline(params)


@pytest.fixture
def make_manager(clock):
    """Factory for chunk managers sharing the fake clock; shut down after the test"""
    managers = []

    def factory(**chunk_overrides) -> ChunkManager:
        manager = ChunkManager(build_params(**chunk_overrides), clock=clock)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        manager.shutdown()


@pytest.fixture
def single_chunk_manager(make_manager):
    """Manager whose desired set is only the viewpoint chunk"""
    manager = make_manager(
        view_distance_full=0,
        view_distance_high=0,
        view_distance_medium=0,
        view_distance_low=0,
    )
    manager.set_viewpoint((8.0, 0.0, 8.0))
    return manager
