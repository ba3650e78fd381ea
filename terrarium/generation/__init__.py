"""
Terrarium - Generation Package
Contains all generation stages and the stage dispatcher.
"""

# Import these lazily to avoid circular imports
__all__ = [
    "GenerationPipeline",
    "create_pipeline",
]
