# planet_generator/runtime/world.py

"""
================================================================================
WORLD RUNTIME
================================================================================
This module provides the user-facing `World` class, the primary interface for
a live planet session. It owns the currently published Planet and the
vegetation LOD state derived from it, and exposes tile access,
classification and color lookups in one place.

Data Contract:
---------------
- Public Methods:
    - generate(settings), set_elevation_bias(bias), publish(planet)
    - get_tile(id), for_each_tile(fn), classify(tile)
    - color_for(terrain_id, elevation), color_for_temperature(v),
      color_for_moisture(v)
    - update_lod(viewer_position)
- Side Effects: Logs messages using the provided logger.
- Invariants: The published planet only changes on a fully successful
  generation. A failed generate() leaves the previous planet, and everything
  derived from it, untouched.
================================================================================
"""
import logging
from typing import Callable, Optional

from .. import color_maps
from .. import config as DEFAULTS
from ..exceptions import ConfigurationError, PlanetGenerationError
from ..generator import PlanetGenerator
from ..models import Planet, Tile
from ..terrain import TerrainClassifier, TerrainId
from ..vegetation import VegetationLODSelector, build_instances
from .throttle import UpdateThrottle


class World:
    """
    The main runtime class for a generated planet.
    """
    def __init__(self, logger: logging.Logger = None, lod_tiers: tuple = None,
                 vegetation_radius: float = DEFAULTS.VEGETATION_PLANET_RADIUS,
                 lod_interval_ms: float = DEFAULTS.LOD_UPDATE_INTERVAL_MS):
        """
        Initializes an empty world. Call generate() (or publish()) to give it
        a planet.

        Args:
            logger (logging.Logger): The logger instance for all output.
            lod_tiers (tuple): LODTier overrides for the vegetation selector.
            vegetation_radius (float): Planet radius used to place vegetation.
            lod_interval_ms (float): Minimum time between LOD recomputations.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.classifier = TerrainClassifier(logger=self.logger)
        self.lod_tiers = lod_tiers
        self.vegetation_radius = vegetation_radius

        self.planet: Optional[Planet] = None
        self._lod_selector: Optional[VegetationLODSelector] = None
        self._lod_throttle = UpdateThrottle(lod_interval_ms)
        self._last_lod = None

    # --- Generation ---
    def generate(self, settings: dict) -> Planet:
        """
        Generates and publishes a new planet.

        Raises:
            ConfigurationError, DegenerateGeometryError: The previous planet
            is kept.
        """
        try:
            planet = PlanetGenerator(settings, self.logger).generate()
        except PlanetGenerationError as e:
            self.logger.error(f"Planet generation failed; keeping the current planet: {e}")
            raise
        self.publish(planet)
        return planet

    def set_elevation_bias(self, elevation_bias: float) -> Planet:
        """Re-biases the current planet without re-tiling and publishes the result."""
        if self.planet is None:
            raise ConfigurationError("No planet has been generated yet.")
        try:
            generator = PlanetGenerator(self.planet.settings, self.logger)
            planet = generator.apply_elevation_bias(self.planet, elevation_bias)
        except PlanetGenerationError as e:
            self.logger.error(f"Elevation bias update failed; keeping the current planet: {e}")
            raise
        self.publish(planet)
        return planet

    def publish(self, planet: Planet):
        """
        Makes a planet current. All derived state is built before anything is
        swapped in.
        """
        instances = build_instances(planet, self.vegetation_radius)
        selector = VegetationLODSelector(instances, self.lod_tiers, self.logger)
        classifier = TerrainClassifier(
            logger=self.logger, sea_level=planet.settings.get("sea_level", DEFAULTS.SEA_LEVEL)
        )

        self.planet, self._lod_selector, self.classifier = planet, selector, classifier
        self._last_lod = None
        self._lod_throttle.reset()
        self.logger.info(f"Published {planet!r} with {len(instances)} vegetation instances.")

    # --- Tile Access ---
    def get_tile(self, tile_id) -> Optional[Tile]:
        if self.planet is None:
            return None
        return self.planet.get_tile(tile_id)

    def for_each_tile(self, fn: Callable[[Tile], None]):
        """Calls fn for every tile, in id order."""
        if self.planet is not None:
            self.planet.for_each_tile(fn)

    def classify(self, tile) -> TerrainId:
        return self.classifier.classify(tile)

    # --- Colors ---
    def color_for(self, terrain_id, elevation=None) -> tuple:
        return color_maps.color_for(terrain_id, elevation)

    def color_for_temperature(self, value) -> tuple:
        return color_maps.color_for_temperature(value)

    def color_for_moisture(self, value) -> tuple:
        return color_maps.color_for_moisture(value)

    # --- Vegetation LOD ---
    def update_lod(self, viewer_position, now: float = None) -> dict:
        """
        Splits the vegetation into LOD tiers for the viewer. Calls within the
        throttle interval return the previous result.
        """
        if self._lod_selector is None:
            return {}
        if self._last_lod is not None and not self._lod_throttle.ready(now):
            return self._last_lod
        if self._last_lod is None:
            self._lod_throttle.ready(now)
        self._last_lod = self._lod_selector.update(viewer_position)
        return self._last_lod

    def estimate_lod_memory_bytes(self) -> int:
        if self._lod_selector is None or self._last_lod is None:
            return 0
        return self._lod_selector.estimate_memory_bytes(self._last_lod)
