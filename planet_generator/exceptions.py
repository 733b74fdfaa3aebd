# planet_generator/exceptions.py

"""
Error types raised by a generation pass. Per-tile lookups (classification,
colors) never raise; they resolve to a fallback and log instead.
"""


class PlanetGenerationError(Exception):
    """Base class for every failure that aborts a generation pass."""


class ConfigurationError(PlanetGenerationError):
    """Invalid settings. Raised before any generation work is attempted."""


class DegenerateGeometryError(PlanetGenerationError):
    """The tiling violates the sphere's topology, even after retries."""


class GenerationTimeoutError(PlanetGenerationError):
    """A background generation job exceeded its wall-clock budget."""
