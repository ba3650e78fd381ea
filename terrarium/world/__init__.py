"""
World Surface
Event triggering and read-only queries over loaded chunks.
"""

from terrarium.world.events import WorldEventManager
from terrarium.world.interface import LocationData, RenderData, WorldInterface

__all__ = ["LocationData", "RenderData", "WorldEventManager", "WorldInterface"]
