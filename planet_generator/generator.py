# planet_generator/generator.py

"""
================================================================================
CORE PLANET GENERATOR
================================================================================
This module contains the main PlanetGenerator class, responsible for running
one complete generation pass: tiling, plates, elevation, climate, water bodies
and terrain.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): A dictionary of generation parameters which can override
      the internal defaults. Expected keys include 'seed', 'num_tiles',
      'num_plates', 'jitter', 'algorithm' and 'elevation_bias'. camelCase
      aliases ('numTiles', ...) are accepted.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - A Planet holding per-tile NumPy arrays.
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed and configuration, the output is
  deterministic. A pass is all-or-nothing: the Planet is only constructed once
  every array is complete, and invalid settings fail before any work is done.
================================================================================
"""

import logging
import math
import time

import numpy as np

from . import config as DEFAULTS
from . import climate
from . import noise
from .exceptions import ConfigurationError
from .models import Planet
from .random_source import DeterministicRandomSource, normalize_seed
from .tectonics import PlateAssigner, smooth_elevation
from .terrain import TerrainClassifier
from .tiling import SphericalTiling

# Accepted camelCase spellings of the public settings.
SETTING_ALIASES = {
    'numTiles': 'num_tiles',
    'numPlates': 'num_plates',
    'elevationBias': 'elevation_bias',
    'boundaryStrategy': 'boundary_strategy',
}


# Real-valued noise tunables; octave counts are validated separately.
NOISE_NUMBER_SETTINGS = (
    'elevation_noise_scale',
    'elevation_noise_persistence',
    'elevation_noise_lacunarity',
    'elevation_noise_amplitude',
    'moisture_noise_scale',
    'moisture_noise_amplitude',
)


def normalize_setting_keys(config: dict) -> dict:
    """Maps camelCase aliases to their snake_case names. Snake_case keys win."""
    normalized = {}
    for key, value in (config or {}).items():
        canonical = SETTING_ALIASES.get(key, key)
        if canonical != key and canonical in config:
            continue
        normalized[canonical] = value
    return normalized


class PlanetGenerator:
    """
    Generates a Planet from a settings dictionary.
    This class is backend-only and does not handle any visualization.
    """
    def __init__(self, config: dict, logger: logging.Logger = None):
        """
        Initializes the planet generator and validates its settings.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.

        Raises:
            ConfigurationError: If any setting is invalid.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = normalize_setting_keys(config)

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'num_tiles': self.user_config.get('num_tiles', DEFAULTS.DEFAULT_NUM_TILES),
            'jitter': self.user_config.get('jitter', DEFAULTS.DEFAULT_JITTER),
            'algorithm': self.user_config.get('algorithm', DEFAULTS.DEFAULT_ALGORITHM),
            'num_plates': self.user_config.get('num_plates', DEFAULTS.DEFAULT_NUM_PLATES),
            'elevation_bias': self.user_config.get('elevation_bias', DEFAULTS.DEFAULT_ELEVATION_BIAS),
            'boundary_strategy': self.user_config.get('boundary_strategy', DEFAULTS.DEFAULT_BOUNDARY_STRATEGY),

            'smoothing_passes': self.user_config.get('smoothing_passes', DEFAULTS.SMOOTHING_PASSES),
            'elevation_noise_scale': self.user_config.get('elevation_noise_scale', DEFAULTS.ELEVATION_NOISE_SCALE),
            'elevation_noise_octaves': self.user_config.get('elevation_noise_octaves', DEFAULTS.ELEVATION_NOISE_OCTAVES),
            'elevation_noise_persistence': self.user_config.get('elevation_noise_persistence', DEFAULTS.ELEVATION_NOISE_PERSISTENCE),
            'elevation_noise_lacunarity': self.user_config.get('elevation_noise_lacunarity', DEFAULTS.ELEVATION_NOISE_LACUNARITY),
            'elevation_noise_amplitude': self.user_config.get('elevation_noise_amplitude', DEFAULTS.ELEVATION_NOISE_AMPLITUDE),
            'moisture_noise_scale': self.user_config.get('moisture_noise_scale', DEFAULTS.MOISTURE_NOISE_SCALE),
            'moisture_noise_octaves': self.user_config.get('moisture_noise_octaves', DEFAULTS.MOISTURE_NOISE_OCTAVES),
            'moisture_noise_amplitude': self.user_config.get('moisture_noise_amplitude', DEFAULTS.MOISTURE_NOISE_AMPLITUDE),
            'sea_level': self.user_config.get('sea_level', DEFAULTS.SEA_LEVEL),
        }

        # --- Validation (before any work) ---
        num_tiles = self.settings['num_tiles']
        if isinstance(num_tiles, (int, np.integer)) and not isinstance(num_tiles, bool) \
                and num_tiles > DEFAULTS.MAX_NUM_TILES:
            raise ConfigurationError(f"num_tiles must be at most {DEFAULTS.MAX_NUM_TILES}, got {num_tiles}")
        self.tiling = SphericalTiling(
            self.settings['num_tiles'], self.settings['jitter'], self.settings['algorithm'], self.logger
        )
        self.plate_assigner = PlateAssigner(
            self.settings['num_plates'], self.settings['boundary_strategy'], self.logger
        )
        self.plate_assigner.validate(self.tiling.num_tiles)
        self.settings['elevation_bias'] = validate_elevation_bias(self.settings['elevation_bias'])
        _validate_integer_setting(self.settings, 'smoothing_passes', 0)
        for key in ('elevation_noise_octaves', 'moisture_noise_octaves'):
            _validate_integer_setting(self.settings, key, 1)
        for key in NOISE_NUMBER_SETTINGS + ('sea_level',):
            _validate_finite_setting(self.settings, key)

        self.settings['num_tiles'] = self.tiling.num_tiles
        self.settings['jitter'] = self.tiling.jitter
        self.settings['algorithm'] = int(self.tiling.algorithm)
        self.settings['num_plates'] = self.plate_assigner.num_plates
        self.classifier = TerrainClassifier(logger=self.logger, sea_level=self.settings['sea_level'])

        # --- Public Properties for easy access ---
        self.seed = normalize_seed(self.settings['seed'])
        self.settings['resolved_seed'] = self.seed

        self.logger.info(
            f"PlanetGenerator initialized with seed: {self.settings['seed']!r} (resolved {self.seed}), "
            f"{self.settings['num_tiles']} tiles, {self.settings['num_plates']} plates."
        )

    def generate(self) -> Planet:
        """
        Runs the full generation pass and returns a new Planet.

        Raises:
            DegenerateGeometryError: If the tiling cannot be made valid.
        """
        start_time = time.perf_counter()
        settings = self.settings
        rng = DeterministicRandomSource(self.seed)

        # --- 1. Tiling ---
        graph = self.tiling.generate(rng)
        self.logger.info(
            f"Tiling complete: {graph.num_tiles} tiles, {graph.num_edges} edges "
            f"({time.perf_counter() - start_time:.2f}s)."
        )

        # --- 2. Plates ---
        step_time = time.perf_counter()
        plates, plate_ids = self.plate_assigner.assign(graph, rng)
        plates = climate.assign_plate_moisture(plates, rng)
        self.logger.info(f"Plate assignment complete ({time.perf_counter() - step_time:.2f}s).")

        # --- 3. Elevation ---
        step_time = time.perf_counter()
        elevation_p = noise.create_permutation_table(rng.fork(DEFAULTS.NOISE_SEED_OFFSET))
        detail = noise.fbm_on_sphere(
            elevation_p, graph.centers, settings['elevation_noise_scale'],
            settings['elevation_noise_octaves'], settings['elevation_noise_persistence'],
            settings['elevation_noise_lacunarity'],
        )
        raw = self.plate_assigner.base_elevation(graph, plates, plate_ids)
        raw += (detail * 2.0 - 1.0) * settings['elevation_noise_amplitude']
        raw_elevation = smooth_elevation(graph.adjacency, raw, settings['smoothing_passes'])
        self.logger.info(f"Elevation complete ({time.perf_counter() - step_time:.2f}s).")

        # --- 4. Moisture ---
        step_time = time.perf_counter()
        moisture_p = noise.create_permutation_table(rng.fork(DEFAULTS.MOISTURE_NOISE_SEED_OFFSET))
        moisture_noise = noise.fbm_on_sphere(
            moisture_p, graph.centers, settings['moisture_noise_scale'], settings['moisture_noise_octaves'],
        )
        moisture = climate.compute_moisture(
            graph.centers, plates, plate_ids, moisture_noise, settings['moisture_noise_amplitude']
        )
        self.logger.info(f"Moisture complete ({time.perf_counter() - step_time:.2f}s).")

        planet = build_surface(
            settings, graph, plates, plate_ids, raw_elevation, moisture, self.classifier, self.logger
        )
        self.logger.info(f"Planet generation finished in {time.perf_counter() - start_time:.2f}s.")
        return planet

    def apply_elevation_bias(self, planet: Planet, elevation_bias) -> Planet:
        """
        Returns a new Planet that shares the tiling, plates and moisture of an
        existing one, with elevation re-biased and everything derived from it
        (temperature, water bodies, terrain) recomputed.
        """
        elevation_bias = validate_elevation_bias(elevation_bias)
        settings = dict(planet.settings, elevation_bias=elevation_bias)
        self.logger.info(f"Re-applying elevation bias {elevation_bias:+.3f} to {planet!r}.")
        return build_surface(
            settings, planet.graph, planet.plates, planet.plate_ids, planet.raw_elevation,
            planet.moisture, self.classifier, self.logger,
        )


def _is_finite_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


def validate_elevation_bias(elevation_bias) -> float:
    if not _is_finite_number(elevation_bias):
        raise ConfigurationError(f"elevation_bias must be a finite number, got {elevation_bias!r}")
    return float(elevation_bias)


def _validate_integer_setting(settings: dict, key: str, minimum: int):
    value = settings[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigurationError(f"{key} must be an integer >= {minimum}, got {value!r}")


def _validate_finite_setting(settings: dict, key: str):
    value = settings[key]
    if not _is_finite_number(value):
        raise ConfigurationError(f"{key} must be a finite number, got {value!r}")
    settings[key] = float(value)


def build_surface(settings: dict, graph, plates, plate_ids: np.ndarray, raw_elevation: np.ndarray,
                  moisture: np.ndarray, classifier: TerrainClassifier, logger: logging.Logger) -> Planet:
    """
    Applies the elevation bias and derives every elevation-dependent layer.
    The Planet is constructed only after all arrays are complete.
    """
    step_time = time.perf_counter()
    elevation = np.clip(raw_elevation + settings['elevation_bias'], -1.0, 1.0)
    temperature = climate.compute_temperature(graph.centers, elevation)

    ocean_connected, is_lake = climate.find_water_bodies(
        graph.adjacency, elevation, settings.get('sea_level', DEFAULTS.SEA_LEVEL)
    )
    has_lake = climate.lake_adjacency(graph.adjacency, is_lake)
    logger.debug(
        f"Water bodies: {int(ocean_connected.sum())} ocean tiles, {int(is_lake.sum())} lake tiles."
    )

    terrain = classifier.classify_arrays(elevation, moisture, temperature, ocean_connected, has_lake)
    logger.info(f"Climate and terrain complete ({time.perf_counter() - step_time:.2f}s).")

    return Planet(
        settings=settings,
        graph=graph,
        plates=plates,
        plate_ids=plate_ids,
        raw_elevation=raw_elevation,
        elevation=elevation,
        moisture=moisture,
        temperature=temperature,
        ocean_connected=ocean_connected,
        is_lake=is_lake,
        has_lake=has_lake,
        terrain=terrain,
    )
