"""
Chunk Manager
Loads, generates, caches and evicts chunks around a moving viewpoint.

Tick Flow:
1. Poll the viewpoint provider and recompute the desired chunk set
2. Dequeue a batch (near queue first, at most one far chunk)
3. Advance each chunk exactly one generation stage
4. Re-enqueue unfinished chunks, notify listeners of completed ones
5. Periodically release expired cached chunks
"""

import logging
import math
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Sequence, Tuple

from terrarium.chunks.cache import ChunkCache
from terrarium.config import GenerationStage, LODLevel, WorldGenerationParams
from terrarium.generation.pipeline import GenerationPipeline, create_pipeline
from terrarium.models.chunk import Chunk, ChunkCoord
from terrarium.models.events import WorldEvent

logger = logging.getLogger(__name__)

Position = Tuple[float, float, float]
CompletionListener = Callable[[Chunk], None]


@dataclass
class TickResult:
    """Result of a single manager tick"""
    tick_number: int
    processed: List[ChunkCoord] = field(default_factory=list)
    completed: List[ChunkCoord] = field(default_factory=list)
    near_queue_size: int = 0
    far_queue_size: int = 0
    swept: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_number": self.tick_number,
            "processed": [[c.x, c.z] for c in self.processed],
            "completed": [[c.x, c.z] for c in self.completed],
            "near_queue_size": self.near_queue_size,
            "far_queue_size": self.far_queue_size,
            "swept": self.swept,
            "duration_ms": self.duration_ms,
        }


class ChunkManager:
    """
    Sole owner of the active chunks, the chunk cache and both work queues.

    The near queue holds chunks close to the viewpoint and has strict
    priority; the far queue pre-generates the outer rings one chunk per tick.
    """

    def __init__(
        self,
        params: Optional[WorldGenerationParams] = None,
        pipeline: Optional[GenerationPipeline] = None,
        clock: Callable[[], float] = time.monotonic,
        viewpoint_provider: Optional[Callable[[], Sequence[float]]] = None,
    ):
        """
        Initialize the manager.

        Args:
            params: World generation parameters (validated on construction)
            pipeline: Stage dispatcher; built from params when omitted
            clock: Time source in seconds
            viewpoint_provider: Optional callable polled each tick for the viewpoint
        """
        self.params = params if params is not None else WorldGenerationParams()
        self.config = self.params.chunks
        self.pipeline = pipeline if pipeline is not None else create_pipeline(self.params)
        self.clock = clock
        self.viewpoint_provider = viewpoint_provider

        self._active: Dict[ChunkCoord, Chunk] = {}
        self.cache = ChunkCache(self.config.max_cached_chunks, self.config.cache_timeout, clock)

        self._near_queue: Deque[Chunk] = deque()
        self._far_queue: Deque[Chunk] = deque()
        self._queued: Dict[ChunkCoord, Deque[Chunk]] = {}

        self._viewpoint: Optional[Position] = None
        self._viewpoint_chunk: Optional[ChunkCoord] = None

        self._listeners: List[CompletionListener] = []
        self._warned_no_listener = False

        self._tick_count = 0
        self._last_cleanup = clock()
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.config.max_workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="terrarium-gen",
            )

        self._stats = {
            "chunks_created": 0,
            "chunks_completed": 0,
            "lod_changes": 0,
            "evictions": 0,
            "events_applied": 0,
        }

    # =========================================================================
    # Viewpoint & desired set
    # =========================================================================

    @property
    def viewpoint(self) -> Optional[Position]:
        return self._viewpoint

    @property
    def viewpoint_chunk(self) -> Optional[ChunkCoord]:
        return self._viewpoint_chunk

    def world_to_coord(self, position: Sequence[float]) -> ChunkCoord:
        """Chunk coordinate containing a world position"""
        return ChunkCoord.from_world_position(position, self.config.chunk_size)

    def set_viewpoint(self, position: Sequence[float], force: bool = False) -> None:
        """
        Move the viewpoint.
        The desired chunk set is recomputed when the viewpoint changes chunk.

        Args:
            position: (x, y, z) world position; (x, z) is accepted too
            force: Recompute even if the viewpoint chunk is unchanged
        """
        if len(position) == 2:
            position = (position[0], 0.0, position[1])
        x, y, z = (float(v) for v in position)
        if not all(math.isfinite(v) for v in (x, y, z)):
            raise ValueError(f"Viewpoint must be finite, got {position}")

        self._viewpoint = (x, y, z)
        coord = self.world_to_coord(self._viewpoint)

        if force or coord != self._viewpoint_chunk:
            self._viewpoint_chunk = coord
            self.update_visible_chunks()

    def lod_for_distance(self, ring: int) -> Optional[LODLevel]:
        """Most detailed LOD whose ring contains a Chebyshev distance"""
        for lod in LODLevel:
            if ring <= self.config.view_distance(lod):
                return lod
        return None

    def desired_chunks(self, center: ChunkCoord) -> Dict[ChunkCoord, LODLevel]:
        """Every coordinate within the outermost ring with its LOD"""
        radius = self.config.view_distance(LODLevel.LOW)
        desired = {}
        for dz in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                lod = self.lod_for_distance(max(abs(dx), abs(dz)))
                if lod is not None:
                    desired[ChunkCoord(center.x + dx, center.z + dz)] = lod
        return desired

    def update_visible_chunks(self) -> None:
        """Load, reinstate, re-LOD and evict chunks for the current viewpoint"""
        if self._viewpoint_chunk is None:
            return

        desired = self.desired_chunks(self._viewpoint_chunk)

        for coord, lod in desired.items():
            chunk = self._active.get(coord)
            if chunk is not None:
                if chunk.lod != lod:
                    self._change_lod(chunk, lod)
                self._reroute(chunk)
                continue

            chunk = self.cache.take(coord)
            if chunk is not None:
                self._active[coord] = chunk
                if chunk.lod != lod:
                    self._change_lod(chunk, lod)
                elif not chunk.is_complete:
                    self._enqueue(chunk)
                logger.debug(f"Reinstated chunk {coord} from cache")
                continue

            chunk = Chunk(coord, self.config.resolution_for(lod), lod, created_at=self.clock())
            self._active[coord] = chunk
            self._stats["chunks_created"] += 1
            self._enqueue(chunk)

        for coord in [c for c in self._active if c not in desired]:
            self._evict(coord)

    def _change_lod(self, chunk: Chunk, lod: LODLevel) -> None:
        old_lod = chunk.lod
        chunk.set_lod(lod, self.config.resolution_for(lod))
        self._stats["lod_changes"] += 1
        self._enqueue(chunk)
        logger.debug(f"Chunk {chunk.coord} LOD {old_lod.name} -> {lod.name}")

    def _evict(self, coord: ChunkCoord) -> None:
        chunk = self._active.pop(coord)
        queue = self._queued.pop(coord, None)
        if queue is not None:
            queue.remove(chunk)
        self.cache.put(chunk)
        self._stats["evictions"] += 1

    # =========================================================================
    # Queues
    # =========================================================================

    def _is_near(self, chunk: Chunk) -> bool:
        if not self.config.use_far_queue or self._viewpoint is None:
            return True
        center = chunk.coord.center(self.config.chunk_size)
        return math.dist(self._viewpoint, center) <= self.config.chunk_size * self.config.view_distance_full

    def _reroute(self, chunk: Chunk) -> None:
        """Move a queued chunk whose distance class changed to the tail of the other queue"""
        queue = self._queued.get(chunk.coord)
        if queue is None:
            return
        target = self._near_queue if self._is_near(chunk) else self._far_queue
        if queue is not target:
            queue.remove(chunk)
            target.append(chunk)
            self._queued[chunk.coord] = target

    def _enqueue(self, chunk: Chunk, queue: Optional[Deque[Chunk]] = None) -> None:
        """Append a chunk to the tail of a queue unless it is already queued"""
        if chunk.coord in self._queued:
            return
        if chunk.stage == GenerationStage.NONE:
            chunk.stage = GenerationStage.QUEUED
        if queue is None:
            queue = self._near_queue if self._is_near(chunk) else self._far_queue
        queue.append(chunk)
        self._queued[chunk.coord] = queue

    def _dequeue_batch(self) -> List[Tuple[Chunk, Deque[Chunk]]]:
        batch = []
        while self._near_queue and len(batch) < self.config.max_chunks_per_tick:
            chunk = self._near_queue.popleft()
            self._queued.pop(chunk.coord, None)
            batch.append((chunk, self._near_queue))
        if self._far_queue:
            chunk = self._far_queue.popleft()
            self._queued.pop(chunk.coord, None)
            batch.append((chunk, self._far_queue))
        return batch

    def is_queued(self, coord: ChunkCoord) -> bool:
        return coord in self._queued

    def queue_name(self, coord: ChunkCoord) -> Optional[str]:
        """"near", "far" or None for a chunk waiting on no queue"""
        queue = self._queued.get(coord)
        if queue is None:
            return None
        return "near" if queue is self._near_queue else "far"

    @property
    def near_queue_size(self) -> int:
        return len(self._near_queue)

    @property
    def far_queue_size(self) -> int:
        return len(self._far_queue)

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self) -> TickResult:
        """
        Advance the queued chunks by one stage each.

        Returns:
            TickResult describing the processed batch

        Raises:
            RuntimeError: If no viewpoint has been supplied yet
        """
        start = time.perf_counter()

        if self.viewpoint_provider is not None:
            position = self.viewpoint_provider()
            if position is not None:
                self.set_viewpoint(position)

        if self._viewpoint is None:
            raise RuntimeError(
                "No viewpoint set: call set_viewpoint() or supply a viewpoint_provider before tick()"
            )

        self._tick_count += 1
        result = TickResult(tick_number=self._tick_count)

        batch = self._dequeue_batch()
        chunks = [chunk for chunk, _ in batch]

        if self._executor is not None and len(chunks) > 1:
            # Join every worker before anything is re-enqueued
            list(self._executor.map(self.pipeline.advance, chunks))
        else:
            for chunk in chunks:
                self.pipeline.advance(chunk)

        for chunk, queue in batch:
            result.processed.append(chunk.coord)
            if chunk.is_complete:
                result.completed.append(chunk.coord)
                self._stats["chunks_completed"] += 1
                self._notify_complete(chunk)
            elif self._active.get(chunk.coord) is chunk:
                self._enqueue(chunk, queue)

        now = self.clock()
        if now - self._last_cleanup >= self.config.cleanup_interval:
            result.swept = self.sweep_cache()
            self._last_cleanup = now

        result.near_queue_size = len(self._near_queue)
        result.far_queue_size = len(self._far_queue)
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result

    def sweep_cache(self) -> int:
        """Release cached chunks older than the cache timeout"""
        return self.cache.cleanup_expired()

    # =========================================================================
    # Completion listeners
    # =========================================================================

    def add_completion_listener(self, callback: CompletionListener) -> None:
        """Register a callback run whenever a chunk reaches COMPLETE"""
        self._listeners.append(callback)

    def remove_completion_listener(self, callback: CompletionListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_complete(self, chunk: Chunk) -> None:
        logger.info(
            f"Chunk {chunk.coord} complete (LOD {chunk.lod.name}, revision {chunk.revision})"
        )

        if not self._listeners:
            if not self._warned_no_listener:
                logger.warning("Chunks are completing but no completion listener is attached")
                self._warned_no_listener = True
            return

        for callback in list(self._listeners):
            try:
                callback(chunk)
            except Exception as e:
                logger.error(f"Completion listener error for chunk {chunk.coord}: {e}")

    # =========================================================================
    # World events
    # =========================================================================

    def apply_event(self, event: WorldEvent) -> List[ChunkCoord]:
        """
        Attach an event to every active chunk whose center lies in its radius.

        Chunks past the queue have their base terrain regenerated immediately
        and resume from BASE_TERRAIN; queued chunks pick the event up when
        their terrain runs.

        Returns:
            Coordinates of the chunks that recorded the event
        """
        affected = []
        chunk_size = self.config.chunk_size

        for coord, chunk in list(self._active.items()):
            if not event.reaches(coord.center(chunk_size)):
                continue

            if not chunk.add_event(event):
                logger.debug(f"Event slots full on chunk {coord}, dropping {event.kind.name}")
                continue
            affected.append(coord)

            if chunk.stage >= GenerationStage.BASE_TERRAIN:
                chunk.stage = GenerationStage.QUEUED
                self.pipeline.advance(chunk)
                self._enqueue(chunk)

        self._stats["events_applied"] += 1
        logger.info(
            f"{event.kind.name} at {event.epicenter} (r={event.radius}, i={event.intensity}) "
            f"affected {len(affected)} chunks"
        )
        return affected

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, coord: ChunkCoord) -> Optional[Chunk]:
        """Active chunk at a coordinate"""
        return self._active.get(coord)

    def get_at_world_position(self, position: Sequence[float]) -> Optional[Chunk]:
        return self._active.get(self.world_to_coord(position))

    def is_loaded(self, coord: ChunkCoord) -> bool:
        return coord in self._active

    def is_cached(self, coord: ChunkCoord) -> bool:
        return coord in self.cache

    def is_complete(self, coord: ChunkCoord) -> bool:
        chunk = self._active.get(coord)
        return chunk is not None and chunk.is_complete

    def iter_active(self) -> Iterator[Chunk]:
        """Iterate over a snapshot of the active chunks"""
        return iter(list(self._active.values()))

    def active_coords(self) -> List[ChunkCoord]:
        return list(self._active)

    def stats(self) -> Dict[str, Any]:
        """Chunk counts, queue sizes and cache statistics"""
        stages: Dict[str, int] = {}
        for chunk in self._active.values():
            name = chunk.stage.name.lower()
            stages[name] = stages.get(name, 0) + 1

        return {
            **self._stats,
            "ticks": self._tick_count,
            "active": len(self._active),
            "cached": len(self.cache),
            "near_queue": len(self._near_queue),
            "far_queue": len(self._far_queue),
            "stages": stages,
            "cache": self.cache.get_stats(),
        }

    def shutdown(self) -> None:
        """Release every active and cached chunk"""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        for chunk in self._active.values():
            chunk.release()
        self._active.clear()
        self.cache.clear()

        self._near_queue.clear()
        self._far_queue.clear()
        self._queued.clear()
        logger.info("Chunk manager shut down")

    def __enter__(self) -> "ChunkManager":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
