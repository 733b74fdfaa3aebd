# planet_generator/color_maps.py

"""
================================================================================
SHARED COLOR MAPPING UTILITIES
================================================================================
This module contains the color registries and functions for converting tile
data (terrain, elevation, temperature, moisture, plates) into RGB colors.

It is a pure, stateless utility with no rendering dependencies, so it can be
used by any renderer as well as the offline report scripts.

Lookups never raise: an unknown terrain id or a missing value resolves to
NEUTRAL_GRAY and is logged.
================================================================================
"""
import logging
import math
from dataclasses import dataclass

import numpy as np

from .random_source import DeterministicRandomSource
from .terrain import ColorVariants, terrain_by_id

logger = logging.getLogger(__name__)

NEUTRAL_GRAY = (128, 128, 128)


@dataclass(frozen=True)
class Level:
    """A band of a scalar field. threshold is the exclusive upper bound."""
    id: str
    name: str
    threshold: float
    color: tuple


# --- Temperature Levels ---
# Ordered coldest to hottest. The last threshold exceeds 1.0 so that 1.0 is caught.
TEMPERATURE_LEVELS = (
    Level("TEMP_NEG_26_2", "< -26.2°C", 0.04, (255, 192, 203)),       # Pink
    Level("TEMP_NEG_23_4", "-26.1 to -23.4°C", 0.08, (255, 182, 193)), # LightPink
    Level("TEMP_NEG_20_5", "-23.3 to -20.5°C", 0.12, (255, 160, 122)), # LightSalmon
    Level("TEMP_NEG_17_8", "-20.5 to -17.8°C", 0.16, (238, 130, 238)), # Violet
    Level("TEMP_NEG_15_1", "-17.7 to -15.1°C", 0.20, (218, 112, 214)), # Orchid
    Level("TEMP_NEG_12_3", "-15.0 to -12.3°C", 0.24, (186, 85, 211)),  # MediumOrchid
    Level("TEMP_NEG_9_5", "-12.2 to -9.5°C", 0.28, (153, 50, 204)),    # DarkOrchid
    Level("TEMP_NEG_6_7", "-9.4 to -6.7°C", 0.32, (138, 43, 226)),     # BlueViolet
    Level("TEMP_NEG_3_9", "-6.6 to -3.9°C", 0.36, (75, 0, 130)),       # Indigo
    Level("TEMP_NEG_1_2", "-3.8 to -1.2°C", 0.40, (0, 0, 205)),        # MediumBlue
    Level("TEMP_1_6", "-1.1 to 1.6°C", 0.44, (65, 105, 225)),          # RoyalBlue
    Level("TEMP_4_3", "1.7 to 4.3°C", 0.48, (0, 191, 255)),            # DeepSkyBlue
    Level("TEMP_7_1", "4.4 to 7.1°C", 0.52, (135, 206, 235)),          # SkyBlue
    Level("TEMP_9_9", "7.2 to 9.9°C", 0.56, (175, 238, 238)),          # PaleTurquoise
    Level("TEMP_12_7", "10.0 to 12.7°C", 0.60, (152, 251, 152)),       # PaleGreen
    Level("TEMP_15_5", "12.8 to 15.5°C", 0.64, (60, 179, 113)),        # MediumSeaGreen
    Level("TEMP_18_2", "15.6 to 18.2°C", 0.68, (173, 255, 47)),        # GreenYellow
    Level("TEMP_21_0", "18.3 to 21.0°C", 0.72, (255, 255, 0)),         # Yellow
    Level("TEMP_23_8", "21.1 to 23.8°C", 0.76, (255, 215, 0)),         # Gold
    Level("TEMP_26_6", "23.9 to 26.6°C", 0.80, (255, 165, 0)),         # Orange
    Level("TEMP_29_3", "26.7 to 29.3°C", 0.84, (255, 140, 0)),         # DarkOrange
    Level("TEMP_32_1", "29.4 to 32.1°C", 0.88, (255, 69, 0)),          # OrangeRed
    Level("TEMP_35_0", "32.2 to 35.0°C", 0.92, (255, 0, 0)),           # Red
    Level("TEMP_37_7", "35.1 to 37.7°C", 0.96, (220, 20, 60)),         # Crimson
    Level("TEMP_OVER_37_8", "> 37.8°C", 1.01, (139, 0, 0)),            # DarkRed
)

# --- Moisture Levels ---
# Ordered driest to wettest.
MOISTURE_LEVELS = (
    Level("PARCHED", "Parched", 0.1, (237, 230, 188)),
    Level("EXTREMELY_ARID", "Extremely Arid", 0.2, (226, 234, 253)),
    Level("VERY_ARID", "Very Arid", 0.3, (198, 212, 241)),
    Level("ARID", "Arid", 0.4, (152, 173, 226)),
    Level("SEMI_ARID", "Semi-Arid", 0.5, (126, 142, 238)),
    Level("SEMI_HUMID", "Semi-Humid", 0.6, (97, 114, 230)),
    Level("HUMID", "Humid", 0.7, (69, 81, 215)),
    Level("VERY_HUMID", "Very Humid", 0.8, (38, 46, 179)),
    Level("EXTREMELY_HUMID", "Extremely Humid", 0.9, (12, 15, 110)),
    Level("SATURATED", "Saturated", 1.01, (0, 0, 48)),
)

LUT_SIZE = 256


# --- Level Lookups ---
def _is_missing(value) -> bool:
    if value is None or isinstance(value, bool):
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return True


def level_for(value: float, levels) -> Level:
    """The first level whose threshold exceeds value, else the last level."""
    for level in levels:
        if value < level.threshold:
            return level
    return levels[-1]


def color_for_temperature(value) -> tuple:
    if _is_missing(value):
        logger.warning(f"Invalid temperature value {value!r}; using neutral gray.")
        return NEUTRAL_GRAY
    return level_for(value, TEMPERATURE_LEVELS).color


def color_for_moisture(value) -> tuple:
    if _is_missing(value):
        logger.warning(f"Invalid moisture value {value!r}; using neutral gray.")
        return NEUTRAL_GRAY
    return level_for(value, MOISTURE_LEVELS).color


# --- Terrain Colors ---
def _variant_color(variants: ColorVariants, elevation) -> tuple:
    ordered = sorted(variants.variants, key=lambda v: v[0])
    if not _is_missing(elevation):
        for max_elevation, color in ordered:
            if elevation <= max_elevation:
                return color
    if variants.default is not None:
        return variants.default
    return ordered[-1][1] if ordered else NEUTRAL_GRAY


def color_for(terrain_id, elevation=None) -> tuple:
    """
    Returns the RGB color of a terrain. Elevation selects among the color
    variants of terrains that have them and is ignored otherwise.
    """
    terrain = terrain_by_id(terrain_id)
    if terrain is None:
        logger.error(f"No color registered for terrain '{terrain_id}'; using neutral gray.")
        return NEUTRAL_GRAY
    if isinstance(terrain.color, ColorVariants):
        return _variant_color(terrain.color, elevation)
    return terrain.color


# --- Color Lookup Table (LUT) Generation ---
def _create_level_lut(levels) -> np.ndarray:
    t = np.linspace(0.0, 1.0, LUT_SIZE)
    thresholds = np.array([level.threshold for level in levels])
    colors = np.array([level.color for level in levels], dtype=np.uint8)
    # side="right" gives the first threshold strictly greater than t.
    indices = np.minimum(np.searchsorted(thresholds, t, side="right"), len(levels) - 1)
    return colors[indices]


def create_temperature_lut() -> np.ndarray:
    """Creates a 256-entry stepped color LUT for the temperature map."""
    return _create_level_lut(TEMPERATURE_LEVELS)


def create_moisture_lut() -> np.ndarray:
    """Creates a 256-entry stepped color LUT for the moisture map."""
    return _create_level_lut(MOISTURE_LEVELS)


def _lut_indices(values: np.ndarray) -> np.ndarray:
    normalized = np.clip(np.nan_to_num(values, nan=0.0), 0.0, 1.0)
    return np.round(normalized * (LUT_SIZE - 1)).astype(np.uint8)


# --- Color Array Generation Functions ---
# All arrays are (num_tiles, 3) uint8, indexed by tile id.
def get_terrain_color_array(terrain_ids, elevation: np.ndarray) -> np.ndarray:
    """
    Converts per-tile terrain ids into an RGB color array. Tiles are grouped
    by terrain so each terrain's registry entry is resolved once.
    """
    terrain_ids = np.asarray([str(t) for t in terrain_ids])
    colors = np.empty((terrain_ids.shape[0], 3), dtype=np.uint8)
    for terrain_id in np.unique(terrain_ids):
        mask = terrain_ids == terrain_id
        terrain = terrain_by_id(terrain_id)
        if terrain is not None and isinstance(terrain.color, ColorVariants):
            colors[mask] = [color_for(terrain_id, e) for e in elevation[mask].tolist()]
        else:
            colors[mask] = color_for(terrain_id)
    return colors


def get_temperature_color_array(temperature_values: np.ndarray, temperature_lut: np.ndarray) -> np.ndarray:
    """Converts normalized temperature data into an RGB color array using a pre-computed LUT."""
    return temperature_lut[_lut_indices(temperature_values)]


def get_moisture_color_array(moisture_values: np.ndarray, moisture_lut: np.ndarray) -> np.ndarray:
    """Converts normalized moisture data into an RGB color array using a pre-computed LUT."""
    return moisture_lut[_lut_indices(moisture_values)]


def get_elevation_color_array(elevation_values: np.ndarray) -> np.ndarray:
    """Converts elevation data [-1, 1] into a grayscale RGB color array."""
    gray_values = ((np.clip(elevation_values, -1.0, 1.0) + 1.0) * 0.5 * 255).astype(np.uint8)
    return np.stack([gray_values] * 3, axis=-1)


def get_tectonic_color_array(plate_ids: np.ndarray, num_plates: int, seed) -> np.ndarray:
    """Generates a color array where each tectonic plate has a unique, deterministic color."""
    # 1. Create a deterministic but random color for each plate ID.
    rng = DeterministicRandomSource(seed)
    color_palette = np.array(
        [[rng.next_int(0, 255) for _ in range(3)] for _ in range(num_plates)],
        dtype=np.uint8,
    ).reshape(num_plates, 3)

    # 2. Use the plate ids as indices into the palette.
    return color_palette[plate_ids]
