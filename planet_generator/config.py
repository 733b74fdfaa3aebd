# planet_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the planet
generator. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC PLANET.
Instead, pass a configuration dictionary to the PlanetGenerator instance.
================================================================================
"""

# --- Random Source ---
# Used whenever a seed is missing, of an unsupported type, or hashes to zero.
DEFAULT_SEED = 19831108
# Offsets used to fork independent streams from the master seed, so that
# adding a layer never shifts the draws of the main generation stream.
NOISE_SEED_OFFSET = 12347
MOISTURE_NOISE_SEED_OFFSET = 98761
VEGETATION_SEED_OFFSET = 54321
PLATE_COLOR_SEED_OFFSET = 25391

# --- Tiling ---
DEFAULT_NUM_TILES = 96000
MIN_TILES = 4 # The smallest point set with a closed triangulation (tetrahedron)
MAX_NUM_TILES = 128000
DEFAULT_JITTER = 0.5
DEFAULT_ALGORITHM = 1
# Two sites closer than this (chord length on the unit sphere) are duplicates.
DUPLICATE_SITE_TOLERANCE = 1e-9
# Bounded retry for degenerate point sets (Euler check failures).
MAX_TILING_RETRIES = 3
# The jitter used for a retry when the requested jitter is smaller.
RETRY_MIN_JITTER = 0.05

# --- Tectonic Plates ---
DEFAULT_NUM_PLATES = 128
DEFAULT_ELEVATION_BIAS = 0.0
DEFAULT_BOUNDARY_STRATEGY = "convergence"

# Fraction of the mean plate radius that seed tiles must keep between them.
SEED_SEPARATION_FACTOR = 0.5

# Chance for a new plate to be oceanic (0.0 to 1.0).
OCEANIC_CHANCE = 0.7
OCEANIC_ELEVATION_RANGE = (-0.9, -0.5)
CONTINENTAL_ELEVATION_RANGE = (0.1, 0.5)

# --- Boundary Elevation: Convergence Strategy ---
# Elevation change per unit of mean closing speed across a plate boundary.
CONVERGENCE_STRENGTH = 0.5
# The adjustment never exceeds this magnitude in either direction.
CONVERGENCE_MAX_ADJUSTMENT = 0.6

# --- Boundary Elevation: Plate Interaction Strategy ---
# Closing speeds above this value count as a strong collision.
INTERACTION_STRONG_CONVERGENCE = 0.4
INTERACTION_ELEVATION_MOUNTAIN = 1.0
INTERACTION_ELEVATION_COASTLINE_LAND = 0.0
INTERACTION_ELEVATION_COASTLINE_OCEAN = -0.15
INTERACTION_ELEVATION_OCEAN_RIDGE = -0.1
INTERACTION_TRENCH_OFFSET = -0.45
INTERACTION_ELEVATION_OCEAN_FLOOR = -0.75
# Higher priority interactions win when several neighbors affect a tile.
INTERACTION_PRIORITY = {
    "base": 0,
    "ocean_floor": 1,
    "coast_ridge_trench": 2,
    "mountain": 3,
}

# --- Elevation Smoothing ---
SMOOTHING_PASSES = 2
SMOOTHING_ORIGINAL_WEIGHT = 0.6
SMOOTHING_AVERAGED_WEIGHT = 0.4

# --- Noise Generation ---
ELEVATION_NOISE_SCALE = 4.0 # Features per unit of sphere radius
ELEVATION_NOISE_OCTAVES = 4
ELEVATION_NOISE_PERSISTENCE = 0.5
ELEVATION_NOISE_LACUNARITY = 2.0
ELEVATION_NOISE_AMPLITUDE = 0.1

MOISTURE_NOISE_SCALE = 8.0
MOISTURE_NOISE_OCTAVES = 2
MOISTURE_NOISE_AMPLITUDE = 0.05

# --- Climate ---
SEA_LEVEL = -0.05

# Latitudinal moisture profile, sampled at the equator, 30 and 60 degrees.
MOISTURE_EQUATOR_MAX = 0.9
MOISTURE_30_DEG_MIN = 0.1
MOISTURE_60_DEG_MID = 0.5
MOISTURE_LATITUDE_WEIGHT = 0.7
MOISTURE_PLATE_WEIGHT = 0.3
PLATE_MOISTURE_RANGE = (0.2, 0.8)

# Temperature drop for a 1.0 change in (positive) elevation.
TEMPERATURE_LAPSE = 0.25
DEEP_OCEAN_ELEVATION = -0.5
DEEP_OCEAN_COOLING = 0.05

# Water bodies no larger than this are lakes (unless they are the largest body).
LAKE_MAX_FRACTION = 0.005
LAKE_MIN_TILE_LIMIT = 3

# --- Vegetation LOD ---
VEGETATION_PLANET_RADIUS = 1000.0
VEGETATION_SCALE_VARIATION = 0.2
# Per tier: cutoff distance, capacity (None = unbounded), vertex count.
LOD_TIERS = {
    "detailed": {"max_distance": 1000.0, "capacity": 5000, "vertex_count": 80},
    "simple": {"max_distance": 3000.0, "capacity": 15000, "vertex_count": 44},
    "billboard": {"max_distance": float("inf"), "capacity": None, "vertex_count": 4},
}
BILLBOARD_REFERENCE_DISTANCE = 1000.0
BILLBOARD_MIN_SCALE = 0.5
BILLBOARD_MAX_SCALE = 2.0
# Position + normal (2 x vec3 float32) and one 4x4 float32 matrix.
BYTES_PER_VERTEX = 24
BYTES_PER_INSTANCE_TRANSFORM = 64
LOD_UPDATE_INTERVAL_MS = 100.0
