# planet_generator/climate.py

"""
================================================================================
CLIMATE & WATER BODIES
================================================================================
Derives moisture, temperature and water-body flags for every tile once the
elevation is known.

Data Contract:
---------------
- Inputs:
    - Tile centers (unit vectors, +Y is the north pole), plate assignment,
      final elevation, the tile adjacency matrix.
- Outputs:
    - moisture, temperature (np.ndarray, [0, 1]).
    - ocean_connected, is_lake, has_lake (boolean np.ndarray).
- Side Effects: None. Plate moisture factors are drawn by the caller.
- Invariants: Every water tile (elevation <= sea level) is either ocean or
  lake, never both. has_lake is true for lake tiles and their neighbors.
================================================================================
"""
import math
from dataclasses import replace

import numpy as np
from scipy import sparse
from scipy.sparse.csgraph import connected_components

from . import config as DEFAULTS

_SIN_30_DEG = math.sin(math.radians(30))
_SIN_60_DEG = math.sin(math.radians(60))


# --- Moisture ---
def assign_plate_moisture(plates, rng) -> list:
    """Draws a moisture influence for each plate, in plate order."""
    low, high = DEFAULTS.PLATE_MOISTURE_RANGE
    return [replace(plate, moisture_factor=rng.next_range(low, high)) for plate in plates]


def latitude_moisture(abs_y: np.ndarray) -> np.ndarray:
    """
    Wet at the equator, dry around 30 degrees (the subtropical deserts) and
    moderate from 60 degrees to the poles. Piecewise linear in |y|.
    """
    return np.interp(
        abs_y,
        [0.0, _SIN_30_DEG, _SIN_60_DEG, 1.0],
        [DEFAULTS.MOISTURE_EQUATOR_MAX, DEFAULTS.MOISTURE_30_DEG_MIN,
         DEFAULTS.MOISTURE_60_DEG_MID, DEFAULTS.MOISTURE_60_DEG_MID],
    )


def compute_moisture(centers: np.ndarray, plates, plate_ids: np.ndarray, noise_values: np.ndarray,
                     noise_amplitude: float = DEFAULTS.MOISTURE_NOISE_AMPLITUDE) -> np.ndarray:
    """Blends the latitude profile with the plate factor, plus local noise in [0, 1]."""
    profile = latitude_moisture(np.abs(centers[:, 1]))
    plate_factor = np.array([p.moisture_factor for p in plates], dtype=np.float64)[plate_ids]
    combined = (DEFAULTS.MOISTURE_LATITUDE_WEIGHT * profile
                + DEFAULTS.MOISTURE_PLATE_WEIGHT * plate_factor)
    return np.clip(combined + (noise_values - 0.5) * noise_amplitude, 0.0, 1.0)


# --- Temperature ---
def compute_temperature(centers: np.ndarray, elevation: np.ndarray) -> np.ndarray:
    """
    1.0 at the equator and 0.0 at the poles, colder with altitude above sea
    level and slightly colder over deep ocean.
    """
    temperature = 1.0 - np.abs(centers[:, 1])
    temperature -= np.where(elevation > 0, elevation * DEFAULTS.TEMPERATURE_LAPSE, 0.0)
    temperature -= np.where(elevation < DEFAULTS.DEEP_OCEAN_ELEVATION, DEFAULTS.DEEP_OCEAN_COOLING, 0.0)
    return np.clip(temperature, 0.0, 1.0)


# --- Water Bodies ---
def lake_size_limit(num_tiles: int) -> int:
    return max(DEFAULTS.LAKE_MIN_TILE_LIMIT, int(num_tiles * DEFAULTS.LAKE_MAX_FRACTION))


def find_water_bodies(adjacency: sparse.csr_matrix, elevation: np.ndarray,
                      sea_level: float = DEFAULTS.SEA_LEVEL, lake_max_tiles: int = None) -> tuple[np.ndarray, np.ndarray]:
    """
    Splits water tiles into ocean and lakes by connected component. The
    largest body is always ocean; any other body of at most lake_max_tiles
    tiles is a lake.

    Returns:
        (ocean_connected, is_lake) boolean arrays over all tiles.
    """
    num_tiles = elevation.shape[0]
    if lake_max_tiles is None:
        lake_max_tiles = lake_size_limit(num_tiles)

    ocean_connected = np.zeros(num_tiles, dtype=bool)
    is_lake = np.zeros(num_tiles, dtype=bool)
    water = np.flatnonzero(elevation <= sea_level)
    if water.size == 0:
        return ocean_connected, is_lake

    subgraph = adjacency[water][:, water]
    num_bodies, labels = connected_components(subgraph, directed=False)
    sizes = np.bincount(labels, minlength=num_bodies)
    lake_bodies = sizes <= lake_max_tiles
    lake_bodies[np.argmax(sizes)] = False

    is_lake[water] = lake_bodies[labels]
    ocean_connected[water] = ~lake_bodies[labels]
    return ocean_connected, is_lake


def lake_adjacency(adjacency: sparse.csr_matrix, is_lake: np.ndarray) -> np.ndarray:
    """True for lake tiles and for every tile bordering one."""
    touching = adjacency @ is_lake.astype(np.int64)
    return is_lake | (touching > 0)
