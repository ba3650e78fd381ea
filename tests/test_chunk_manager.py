"""
Chunk Manager Tests
Desired set, queues, ticking, caching and world event re-generation.
"""

import logging

import numpy as np
import pytest

from terrarium.chunks.cache import ChunkCache
from terrarium.chunks.manager import ChunkManager
from terrarium.config import EventKind, GenerationStage, LODLevel
from terrarium.models.chunk import Chunk, ChunkCoord
from terrarium.models.events import WorldEvent

STAGE_COUNT = 7


def explosion_at(position, radius=16.0, intensity=1.0):
    return WorldEvent(EventKind.MAGICAL_EXPLOSION, position, radius, intensity)


def run_until_idle(manager, limit=500):
    """Tick until both queues drain"""
    for _ in range(limit):
        manager.tick()
        if manager.near_queue_size == 0 and manager.far_queue_size == 0:
            return
    raise AssertionError("queues never drained")


class TestViewpoint:
    """Tests for the viewpoint and desired chunk set"""

    def test_tick_requires_viewpoint(self, make_manager):
        """Test ticking before a viewpoint is set"""
        manager = make_manager()
        with pytest.raises(RuntimeError):
            manager.tick()

    def test_non_finite_viewpoint(self, make_manager):
        """Test invalid viewpoints"""
        manager = make_manager()
        with pytest.raises(ValueError):
            manager.set_viewpoint((float("nan"), 0.0, 0.0))

    def test_lod_rings(self, make_manager):
        """Test ring layout around the viewpoint chunk"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))

        coords = manager.active_coords()
        assert len(coords) == 25
        assert manager.viewpoint_chunk == ChunkCoord(0, 0)

        assert manager.get(ChunkCoord(0, 0)).lod == LODLevel.FULL
        assert manager.get(ChunkCoord(1, -1)).lod == LODLevel.FULL
        assert manager.get(ChunkCoord(2, 0)).lod == LODLevel.MEDIUM
        assert manager.get(ChunkCoord(-2, -2)).lod == LODLevel.MEDIUM
        assert manager.get(ChunkCoord(0, 0)).resolution == 16
        assert manager.get(ChunkCoord(2, 0)).resolution == 4

    def test_xz_viewpoint(self, make_manager):
        """Test (x, z) viewpoints"""
        manager = make_manager()
        manager.set_viewpoint((-8.0, 40.0))
        assert manager.viewpoint == (-8.0, 0.0, 40.0)
        assert manager.viewpoint_chunk == ChunkCoord(-1, 2)

    def test_same_chunk_move_keeps_set(self, make_manager):
        """Test moving within a chunk creates nothing new"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        manager.set_viewpoint((12.0, 0.0, 3.0))
        assert manager.stats()["chunks_created"] == 25

    def test_viewpoint_provider_polled(self, make_params, clock):
        """Test tick polls the provider"""
        with ChunkManager(make_params(), clock=clock, viewpoint_provider=lambda: (8.0, 0.0, 8.0)) as manager:
            result = manager.tick()
            assert manager.viewpoint == (8.0, 0.0, 8.0)
            assert result.processed


class TestQueues:
    """Tests for near / far routing and batching"""

    def test_near_far_routing(self, make_manager):
        """Test only chunks within the full ring distance go near"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))

        assert manager.near_queue_size == 5
        assert manager.far_queue_size == 20
        for coord in manager.active_coords():
            assert manager.is_queued(coord)
            assert manager.get(coord).stage == GenerationStage.QUEUED

    def test_far_queue_disabled(self, make_manager):
        """Test everything routes near without a far queue"""
        manager = make_manager(use_far_queue=False)
        manager.set_viewpoint((8.0, 0.0, 8.0))
        assert manager.near_queue_size == 25
        assert manager.far_queue_size == 0

    def test_batch_size(self, make_manager):
        """Test near budget plus one far chunk per tick"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))

        result = manager.tick()

        assert len(result.processed) == 3
        assert result.near_queue_size == 5
        assert result.far_queue_size == 20
        stages = [manager.get(c).stage for c in result.processed]
        assert stages == [GenerationStage.BASE_TERRAIN] * 3

    def test_one_stage_per_tick(self, single_chunk_manager):
        """Test a chunk completes after one tick per stage"""
        coord = ChunkCoord(0, 0)
        for i in range(STAGE_COUNT - 1):
            result = single_chunk_manager.tick()
            assert result.processed == [coord]
            assert result.completed == []

        result = single_chunk_manager.tick()
        assert result.completed == [coord]
        assert single_chunk_manager.is_complete(coord)
        assert not single_chunk_manager.is_queued(coord)

        result = single_chunk_manager.tick()
        assert result.processed == []

    def test_everything_completes(self, make_manager):
        """Test the whole desired set finishes"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        run_until_idle(manager)

        assert all(manager.is_complete(c) for c in manager.active_coords())
        assert manager.stats()["chunks_completed"] == 25

    def test_threaded_matches_serial(self, make_manager):
        """Test worker threads produce the same chunks"""
        serial = make_manager()
        threaded = make_manager(max_workers=4)
        for manager in (serial, threaded):
            manager.set_viewpoint((8.0, 0.0, 8.0))
            run_until_idle(manager)

        for coord in serial.active_coords():
            a = serial.get(coord)
            b = threaded.get(coord)
            np.testing.assert_array_equal(a.height, b.height)
            np.testing.assert_array_equal(a.biome, b.biome)
            assert list(a.entities) == list(b.entities)


class TestEvictionAndCache:
    """Tests for eviction, caching and reinstatement"""

    def test_evicted_chunk_cached_and_reinstated(self, single_chunk_manager):
        """Test returning to an area reuses the generated chunk"""
        manager = single_chunk_manager
        origin = ChunkCoord(0, 0)
        for _ in range(STAGE_COUNT):
            manager.tick()
        chunk = manager.get(origin)

        manager.set_viewpoint((168.0, 0.0, 8.0))
        assert not manager.is_loaded(origin)
        assert manager.is_cached(origin)

        manager.set_viewpoint((8.0, 0.0, 8.0))
        assert manager.get(origin) is chunk
        assert chunk.is_complete
        assert not manager.is_queued(origin)
        assert manager.cache.get_stats()["hits"] == 1

    def test_partial_chunk_resumes(self, single_chunk_manager):
        """Test a half-built chunk continues where it left off"""
        manager = single_chunk_manager
        origin = ChunkCoord(0, 0)
        manager.tick()
        manager.tick()

        manager.set_viewpoint((168.0, 0.0, 8.0))
        assert not manager.is_queued(origin)

        manager.set_viewpoint((8.0, 0.0, 8.0))
        chunk = manager.get(origin)
        assert chunk.stage == GenerationStage.BIOMES
        assert manager.is_queued(origin)

    def test_full_cache_releases(self, make_manager):
        """Test chunks are released when the cache has no room"""
        manager = make_manager(
            view_distance_full=0, view_distance_high=0, view_distance_medium=0, view_distance_low=0,
            max_cached_chunks=0,
        )
        manager.set_viewpoint((8.0, 0.0, 8.0))
        chunk = manager.get(ChunkCoord(0, 0))

        manager.set_viewpoint((168.0, 0.0, 8.0))

        assert chunk.is_released
        assert not manager.is_cached(ChunkCoord(0, 0))

    def test_cache_never_exceeds_capacity(self, make_manager):
        """Test capacity holds when a whole ring is evicted"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        manager.set_viewpoint((8.0 + 16 * 20, 0.0, 8.0))

        stats = manager.cache.get_stats()
        assert len(manager.cache) == 10
        assert stats["released_full"] == 15

    def test_cache_capacity_over_random_walk(self, make_manager, clock):
        """Test capacity holds and cached chunks stay inactive along a wandering viewpoint"""
        manager = make_manager()
        rng = np.random.default_rng(2024)
        position = np.array([8.0, 8.0])

        for _ in range(60):
            position += rng.integers(-3, 4, size=2) * 16.0
            manager.set_viewpoint((position[0], 0.0, position[1]))
            assert len(manager.cache) <= manager.config.max_cached_chunks
            assert not any(manager.is_loaded(coord) for coord in manager.cache)

            clock.advance(float(rng.uniform(0.0, 10.0)))
            manager.tick()
            assert len(manager.cache) <= manager.config.max_cached_chunks

    def test_expired_chunks_swept(self, single_chunk_manager, clock):
        """Test cached chunks are released after the timeout"""
        manager = single_chunk_manager
        manager.set_viewpoint((168.0, 0.0, 8.0))
        assert manager.is_cached(ChunkCoord(0, 0))

        clock.advance(31.0)
        result = manager.tick()

        assert result.swept == 1
        assert not manager.is_cached(ChunkCoord(0, 0))

    def test_recent_chunks_survive_sweep(self, single_chunk_manager, clock):
        """Test entries younger than the timeout stay"""
        manager = single_chunk_manager
        manager.set_viewpoint((168.0, 0.0, 8.0))

        clock.advance(29.0)
        assert manager.tick().swept == 0
        assert manager.is_cached(ChunkCoord(0, 0))

    def test_cache_put_take(self, clock):
        """Test the cache on its own"""
        cache = ChunkCache(max_size=1, timeout=5.0, clock=clock)
        first = Chunk(ChunkCoord(0, 0), 4)
        second = Chunk(ChunkCoord(1, 0), 4)

        assert cache.put(first) is True
        assert cache.put(second) is False
        assert second.is_released
        assert cache.take(ChunkCoord(1, 0)) is None
        assert cache.take(ChunkCoord(0, 0)) is first
        assert cache.get_stats()["hit_rate"] == 0.5


class TestLodChanges:
    """Tests for LOD transitions"""

    def test_lod_drop_regenerates(self, make_manager):
        """Test a chunk moving outward is reallocated at lower detail"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        run_until_idle(manager)
        chunk = manager.get(ChunkCoord(0, 0))

        manager.set_viewpoint((40.0, 0.0, 8.0))

        assert manager.get(ChunkCoord(0, 0)) is chunk
        assert chunk.lod == LODLevel.MEDIUM
        assert chunk.resolution == 4
        assert chunk.stage == GenerationStage.QUEUED
        assert chunk.dirty is True
        assert manager.is_queued(ChunkCoord(0, 0))
        assert manager.stats()["lod_changes"] >= 1

    def test_approaching_chunk_moves_to_near_queue(self, make_manager):
        """Test queues follow the viewpoint as it walks toward far chunks"""
        manager = make_manager(
            view_distance_full=1, view_distance_high=2, view_distance_medium=4, view_distance_low=6,
        )
        manager.set_viewpoint((8.0, 0.0, 8.0))
        target = ChunkCoord(4, 0)
        assert manager.queue_name(target) == "far"
        assert manager.queue_name(ChunkCoord(0, 0)) == "near"

        manager.set_viewpoint((8.0 + 3 * 16, 0.0, 8.0))

        assert manager.get(target).lod == LODLevel.FULL
        assert manager.queue_name(target) == "near"
        assert manager.get(ChunkCoord(0, 0)).lod == LODLevel.MEDIUM
        assert manager.queue_name(ChunkCoord(0, 0)) == "far"

        near = [c for c in manager.active_coords() if manager.queue_name(c) == "near"]
        assert sorted(near) == sorted([
            ChunkCoord(3, 0), ChunkCoord(2, 0), ChunkCoord(4, 0), ChunkCoord(3, 1), ChunkCoord(3, -1),
        ])
        assert manager.near_queue_size == 5

        assert manager.tick().processed[:2] == [ChunkCoord(3, -1), ChunkCoord(2, 0)]
        assert manager.tick().processed[:2] == [ChunkCoord(3, 0), target]

    def test_reinstated_chunk_routed_by_distance(self, make_manager):
        """Test a chunk taken back from the cache joins the queue matching its distance"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        manager.set_viewpoint((8.0 + 16 * 3, 0.0, 8.0))
        assert manager.is_cached(ChunkCoord(-2, 0))

        manager.set_viewpoint((8.0, 0.0, 8.0))

        assert manager.queue_name(ChunkCoord(0, 0)) == "near"
        assert manager.queue_name(ChunkCoord(-2, 0)) == "far"
        assert manager.near_queue_size == 5


class TestWorldEvents:
    """Tests for applying world events to loaded chunks"""

    def test_containment(self, make_manager):
        """Test only chunks whose center is in range record the event"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))

        affected = manager.apply_event(explosion_at((8.0, 0.0, 8.0)))

        assert sorted(affected) == sorted([
            ChunkCoord(0, 0), ChunkCoord(1, 0), ChunkCoord(-1, 0), ChunkCoord(0, 1), ChunkCoord(0, -1),
        ])
        assert len(manager.get(ChunkCoord(1, 1)).active_events) == 0

    def test_complete_chunk_regenerates(self, single_chunk_manager):
        """Test an explosion re-runs generation and raises dungeon odds"""
        manager = single_chunk_manager
        origin = ChunkCoord(0, 0)
        for _ in range(STAGE_COUNT):
            manager.tick()
        chunk = manager.get(origin)
        chance_before = chunk.dungeon_chance
        height_before = chunk.height.copy()
        assert chunk.revision == 1

        manager.apply_event(explosion_at((8.0, 0.0, 8.0), radius=32.0))

        assert chunk.stage == GenerationStage.BASE_TERRAIN
        assert chunk.dirty is True
        assert manager.is_queued(origin)

        for i in range(STAGE_COUNT - 1):
            result = manager.tick()
        assert result.completed == [origin]
        assert chunk.revision == 2
        assert chunk.dirty is False
        assert chunk.dungeon_chance > chance_before
        assert chunk.height.mean() > height_before.mean()

    def test_queued_chunk_picks_up_event(self, single_chunk_manager):
        """Test events reach chunks that have not generated terrain yet"""
        manager = single_chunk_manager
        chunk = manager.get(ChunkCoord(0, 0))

        affected = manager.apply_event(explosion_at((8.0, 0.0, 8.0)))

        assert affected == [ChunkCoord(0, 0)]
        assert chunk.stage == GenerationStage.QUEUED
        assert len(chunk.active_events) == 1
        assert manager.near_queue_size == 1

    def test_event_slots_full(self, single_chunk_manager):
        """Test extra events are dropped once every slot is taken"""
        manager = single_chunk_manager
        for _ in range(8):
            assert manager.apply_event(explosion_at((8.0, 0.0, 8.0))) == [ChunkCoord(0, 0)]

        assert manager.apply_event(explosion_at((8.0, 0.0, 8.0))) == []
        assert manager.stats()["events_applied"] == 9

    def test_unloaded_area_unaffected(self, single_chunk_manager):
        """Test events never create chunks"""
        manager = single_chunk_manager
        assert manager.apply_event(explosion_at((5000.0, 0.0, 5000.0), radius=100.0)) == []
        assert len(manager.active_coords()) == 1


class TestCompletionListeners:
    """Tests for completion notifications"""

    def test_listener_called(self, single_chunk_manager):
        """Test listeners receive completed chunks"""
        completed = []
        single_chunk_manager.add_completion_listener(completed.append)
        for _ in range(STAGE_COUNT):
            single_chunk_manager.tick()
        assert [c.coord for c in completed] == [ChunkCoord(0, 0)]

    def test_failing_listener_logged(self, single_chunk_manager, caplog):
        """Test listener errors are logged and do not stop other listeners"""
        completed = []

        def broken(chunk):
            raise ValueError("boom")

        single_chunk_manager.add_completion_listener(broken)
        single_chunk_manager.add_completion_listener(completed.append)

        with caplog.at_level(logging.ERROR, logger="terrarium.chunks.manager"):
            for _ in range(STAGE_COUNT):
                single_chunk_manager.tick()

        assert len(completed) == 1
        assert any("boom" in record.getMessage() for record in caplog.records)

    def test_warns_once_without_listener(self, make_manager, caplog):
        """Test a single warning when nobody listens"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))

        with caplog.at_level(logging.WARNING, logger="terrarium.chunks.manager"):
            run_until_idle(manager)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1

    def test_remove_listener(self, single_chunk_manager):
        """Test removed listeners are not called"""
        completed = []
        single_chunk_manager.add_completion_listener(completed.append)
        single_chunk_manager.remove_completion_listener(completed.append)
        for _ in range(STAGE_COUNT):
            single_chunk_manager.tick()
        assert completed == []


class TestStatsAndShutdown:
    """Tests for statistics and teardown"""

    def test_stats(self, make_manager):
        """Test counters after a tick"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        manager.tick()

        stats = manager.stats()
        assert stats["active"] == 25
        assert stats["ticks"] == 1
        assert stats["chunks_created"] == 25
        assert stats["stages"]["base_terrain"] == 3
        assert stats["stages"]["queued"] == 22
        assert stats["cache"]["size"] == 0

    def test_tick_result_dict(self, single_chunk_manager):
        """Test tick result serialization"""
        data = single_chunk_manager.tick().to_dict()
        assert data["tick_number"] == 1
        assert data["processed"] == [[0, 0]]

    def test_shutdown_releases(self, make_manager):
        """Test shutdown releases active and cached chunks"""
        manager = make_manager()
        manager.set_viewpoint((8.0, 0.0, 8.0))
        chunks = list(manager.iter_active())

        manager.shutdown()

        assert manager.stats()["active"] == 0
        assert manager.near_queue_size == 0
        assert all(chunk.is_released for chunk in chunks)
