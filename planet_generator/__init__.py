# planet_generator/__init__.py

# Public API of the planet generator.

from .exceptions import (
    ConfigurationError,
    DegenerateGeometryError,
    GenerationTimeoutError,
    PlanetGenerationError,
)
from .generator import PlanetGenerator
from .models import Planet, Plate, Tile
from .random_source import DeterministicRandomSource
from .terrain import TerrainClassifier, TerrainId
from .tiling import SphericalTiling, TilingAlgorithm
from .tectonics import PlateAssigner
from .vegetation import VegetationLODSelector

__all__ = [
    "ConfigurationError",
    "DegenerateGeometryError",
    "GenerationTimeoutError",
    "PlanetGenerationError",
    "PlanetGenerator",
    "Planet",
    "Plate",
    "Tile",
    "DeterministicRandomSource",
    "TerrainClassifier",
    "TerrainId",
    "SphericalTiling",
    "TilingAlgorithm",
    "PlateAssigner",
    "VegetationLODSelector",
]
