"""
Chunk Lifecycle
Viewpoint-driven loading, LOD changes, work queues and caching.
"""

from terrarium.chunks.cache import ChunkCache
from terrarium.chunks.manager import ChunkManager, TickResult

__all__ = ["ChunkCache", "ChunkManager", "TickResult"]
