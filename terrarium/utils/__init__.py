"""
Terrarium - Utilities
Noise sampling, spatial helpers and deterministic seeding.
"""
