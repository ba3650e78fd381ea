"""
Chunk Cache
Bounded, time-limited store for chunks that left the view.
"""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterator, List, Optional

from terrarium.models.chunk import Chunk, ChunkCoord

logger = logging.getLogger(__name__)


class ChunkCache:
    """
    Holds evicted chunks so returning to an area is cheap.

    Features:
    - Fixed capacity; a chunk offered to a full cache is released, never
      stored, so the cache never exceeds max_size
    - Entries expire cache_timeout seconds after their last access
    - Access statistics
    """

    def __init__(
        self,
        max_size: int = 100,
        timeout: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of cached chunks
            timeout: Seconds a chunk may sit unaccessed before release
            clock: Time source in seconds
        """
        self.max_size = max_size
        self.timeout = timeout
        self.clock = clock
        self._cache: "OrderedDict[ChunkCoord, Chunk]" = OrderedDict()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "released_full": 0,
            "expired": 0,
        }

    def put(self, chunk: Chunk) -> bool:
        """
        Store an evicted chunk.

        Returns:
            True if cached, False if the cache was full and the chunk released
        """
        if len(self._cache) >= self.max_size:
            chunk.release()
            self._stats["released_full"] += 1
            logger.debug(f"Cache full, released chunk {chunk.coord}")
            return False

        chunk.last_access_time = self.clock()
        self._cache[chunk.coord] = chunk
        self._cache.move_to_end(chunk.coord)
        return True

    def take(self, coord: ChunkCoord) -> Optional[Chunk]:
        """Remove and return a cached chunk, refreshing its access time"""
        chunk = self._cache.pop(coord, None)
        if chunk is None:
            self._stats["misses"] += 1
            return None

        chunk.last_access_time = self.clock()
        self._stats["hits"] += 1
        return chunk

    def cleanup_expired(self) -> int:
        """Release entries unaccessed for longer than the timeout"""
        now = self.clock()
        expired_keys = [
            coord for coord, chunk in self._cache.items()
            if now - chunk.last_access_time > self.timeout
        ]
        for coord in expired_keys:
            self._cache.pop(coord).release()
        self._stats["expired"] += len(expired_keys)

        if expired_keys:
            logger.debug(f"Released {len(expired_keys)} expired cached chunks")
        return len(expired_keys)

    def clear(self) -> List[Chunk]:
        """Release every cached chunk"""
        chunks = list(self._cache.values())
        for chunk in chunks:
            chunk.release()
        self._cache.clear()
        return chunks

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total_requests if total_requests > 0 else 0.0

        return {
            **self._stats,
            "size": len(self._cache),
            "max_size": self.max_size,
            "hit_rate": hit_rate,
        }

    def __contains__(self, coord: ChunkCoord) -> bool:
        return coord in self._cache

    def __len__(self) -> int:
        return len(self._cache)

    def __iter__(self) -> Iterator[ChunkCoord]:
        return iter(list(self._cache))
