# planet_generator/terrain.py

"""
================================================================================
TERRAIN CLASSIFICATION
================================================================================
The terrain registry and the rule engine that assigns a terrain to each tile.

Each TerrainType is a rule: a priority plus inclusive bounds on elevation,
moisture and temperature, and optional lake / ocean requirements. Rules are
evaluated in ascending priority (ties keep definition order) and the first
rule that admits a tile wins.

Data Contract:
---------------
- Inputs: A tile (or its arrays): elevation, moisture, temperature,
  is_ocean_connected, has_lake.
- Outputs: A TerrainId.
- Side Effects: Logs a warning when no rule matches (a registry gap).
- Invariants: Classification is total and pure. Missing or non-numeric inputs
  and registry gaps resolve to FALLBACK_TERRAIN.
================================================================================
"""
import enum
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np

from . import config as DEFAULTS


class TerrainId(str, enum.Enum):
    OCEAN = "OCEAN"
    LAKE = "LAKE"
    LAKESHORE = "LAKESHORE"
    ICE = "ICE"
    SNOW = "SNOW"
    TUNDRA = "TUNDRA"
    BARE = "BARE"
    SCORCHED = "SCORCHED"
    TEMPERATE_DESERT = "TEMPERATE_DESERT"
    SUBTROPICAL_DESERT = "SUBTROPICAL_DESERT"
    GRASSLAND = "GRASSLAND"
    PLAINS = "PLAINS"
    TAIGA = "TAIGA"
    FOREST = "FOREST"
    RAINFOREST = "RAINFOREST"
    JUNGLE = "JUNGLE"
    MARSH = "MARSH"
    BEACH = "BEACH"

    def __str__(self):
        return self.value


class BaseType(str, enum.Enum):
    WATER = "WATER"
    LAND = "LAND"
    ICE = "ICE"


@dataclass(frozen=True)
class ColorVariants:
    """Elevation-banded colors: the first band whose max_elevation >= elevation wins."""
    variants: tuple  # ((max_elevation, (r, g, b)), ...)
    default: Optional[tuple] = None


@dataclass(frozen=True)
class TerrainType:
    id: TerrainId
    name: str
    base_type: BaseType
    priority: int
    color: Union[tuple, ColorVariants]
    min_elevation: float = -math.inf
    max_elevation: float = math.inf
    min_moisture: float = 0.0
    max_moisture: float = 1.0
    min_temp: float = 0.0
    max_temp: float = 1.0
    requires_lake: bool = False
    requires_ocean: bool = False

    def matches(self, elevation: float, moisture: float, temperature: float,
                has_lake: bool = False, is_ocean_connected: bool = False) -> bool:
        """Inclusive bounds check. NaN inputs never match."""
        return (
            self.min_elevation <= elevation <= self.max_elevation
            and self.min_moisture <= moisture <= self.max_moisture
            and self.min_temp <= temperature <= self.max_temp
            and (has_lake or not self.requires_lake)
            and (is_ocean_connected or not self.requires_ocean)
        )

    def mask(self, elevation: np.ndarray, moisture: np.ndarray, temperature: np.ndarray,
             has_lake: np.ndarray, ocean_connected: np.ndarray) -> np.ndarray:
        """Vectorized matches() over per-tile arrays."""
        admitted = (
            (elevation >= self.min_elevation) & (elevation <= self.max_elevation)
            & (moisture >= self.min_moisture) & (moisture <= self.max_moisture)
            & (temperature >= self.min_temp) & (temperature <= self.max_temp)
        )
        if self.requires_lake:
            admitted &= has_lake
        if self.requires_ocean:
            admitted &= ocean_connected
        return admitted


# --- Priorities ---
WATER_PRIORITY = 0
ICE_SNOW_PRIORITY = 5
LAND_BASE_PRIORITY = 10

# Lowest elevation of shore and wetland rules.
_SHORE_MIN_ELEVATION = -0.049

# --- Terrain Colors ---
OCEAN_COLOR = ColorVariants(
    default=(29, 65, 121), # Shallowest
    variants=(
        (-0.82, (11, 0, 51)), # Deepest
        (-0.75, (10, 2, 51)),
        (-0.68, (8, 3, 53)),
        (-0.61, (6, 4, 55)),
        (-0.54, (5, 5, 60)),
        (-0.47, (6, 10, 66)),
        (-0.40, (8, 16, 73)),
        (-0.33, (11, 24, 82)),
        (-0.26, (14, 31, 91)),
        (-0.19, (18, 41, 101)),
        (-0.12, (23, 52, 111)),
        (-0.05, (29, 65, 121)),
    ),
)
# Lower elevation = darker, more saturated.
GRASSLAND_COLOR = ColorVariants(
    default=(136, 170, 85),
    variants=(
        (0.2, (107, 142, 35)),
        (0.4, (136, 170, 85)),
        (0.6, (170, 189, 119)),
    ),
)
PLAINS_COLOR = ColorVariants(
    default=(154, 205, 50),
    variants=(
        (0.1, (127, 175, 31)),
        (0.2, (154, 205, 50)),
        (0.3, (184, 220, 86)),
    ),
)

# --- Terrain Registry ---
# Definition order breaks priority ties.
TERRAIN_TYPES = (
    TerrainType(TerrainId.OCEAN, "Ocean", BaseType.WATER, WATER_PRIORITY, OCEAN_COLOR,
                max_elevation=DEFAULTS.SEA_LEVEL, requires_ocean=True),
    TerrainType(TerrainId.LAKE, "Lake", BaseType.WATER, WATER_PRIORITY + 2, (51, 102, 153),
                max_elevation=DEFAULTS.SEA_LEVEL, requires_lake=True),
    TerrainType(TerrainId.LAKESHORE, "Lakeshore", BaseType.LAND, LAND_BASE_PRIORITY, (34, 85, 136),
                max_elevation=0.05, requires_lake=True),

    # Ice and snow, evaluated right after water
    TerrainType(TerrainId.ICE, "Ice", BaseType.ICE, ICE_SNOW_PRIORITY, (255, 255, 255),
                max_temp=0.1, min_moisture=0.1),
    TerrainType(TerrainId.SNOW, "Snow", BaseType.ICE, ICE_SNOW_PRIORITY + 1, (255, 255, 255),
                min_elevation=0.7, max_temp=0.25),

    # Land, roughly cold/dry to hot/wet; specific rules before general ones
    TerrainType(TerrainId.TUNDRA, "Tundra", BaseType.LAND, LAND_BASE_PRIORITY, (187, 187, 170),
                min_elevation=0.2, max_temp=0.3, min_moisture=0.05, max_moisture=0.5),
    TerrainType(TerrainId.BARE, "Bare Rock/Soil", BaseType.LAND, LAND_BASE_PRIORITY + 1, (136, 136, 136),
                min_elevation=0.5, max_moisture=0.1),
    TerrainType(TerrainId.SCORCHED, "Scorched", BaseType.LAND, LAND_BASE_PRIORITY + 2, (85, 85, 85),
                min_temp=0.9, max_moisture=0.05),
    TerrainType(TerrainId.TEMPERATE_DESERT, "Temperate Desert", BaseType.LAND, LAND_BASE_PRIORITY + 5, (201, 210, 155),
                min_temp=0.35, max_temp=0.65, max_moisture=0.2),
    TerrainType(TerrainId.SUBTROPICAL_DESERT, "Subtropical Desert", BaseType.LAND, LAND_BASE_PRIORITY + 5, (210, 185, 139),
                min_temp=0.65, max_moisture=0.2),
    TerrainType(TerrainId.GRASSLAND, "Grassland", BaseType.LAND, LAND_BASE_PRIORITY + 10, GRASSLAND_COLOR,
                min_moisture=0.18, max_moisture=0.5),
    TerrainType(TerrainId.PLAINS, "Plains", BaseType.LAND, LAND_BASE_PRIORITY + 11, PLAINS_COLOR,
                min_moisture=0.25, max_moisture=0.6, max_elevation=0.3),
    TerrainType(TerrainId.TAIGA, "Taiga", BaseType.LAND, LAND_BASE_PRIORITY + 20, (153, 170, 119),
                min_temp=0.10, max_temp=0.4, min_moisture=0.4, max_moisture=0.85),
    TerrainType(TerrainId.FOREST, "Forest", BaseType.LAND, LAND_BASE_PRIORITY + 25, (85, 107, 47),
                min_moisture=0.5, max_moisture=0.8),
    TerrainType(TerrainId.RAINFOREST, "Rainforest", BaseType.LAND, LAND_BASE_PRIORITY + 22, (68, 136, 85),
                min_temp=0.3, max_temp=1.0, min_moisture=0.65, max_moisture=1.0),
    TerrainType(TerrainId.JUNGLE, "Jungle", BaseType.LAND, LAND_BASE_PRIORITY + 30, (46, 139, 87),
                min_temp=0.65, min_moisture=0.65),
    TerrainType(TerrainId.MARSH, "Marsh", BaseType.LAND, LAND_BASE_PRIORITY + 4, (47, 102, 102),
                min_elevation=_SHORE_MIN_ELEVATION, max_elevation=0.1, min_moisture=0.7),
    TerrainType(TerrainId.BEACH, "Beach", BaseType.LAND, LAND_BASE_PRIORITY + 3, (160, 144, 119),
                min_elevation=_SHORE_MIN_ELEVATION, max_elevation=0.05, max_moisture=0.3),
)

# sorted() is stable, so equal priorities keep definition order.
TERRAIN_RULES = tuple(sorted(TERRAIN_TYPES, key=lambda t: t.priority))

_TERRAIN_BY_ID = {t.id: t for t in TERRAIN_TYPES}

FALLBACK_TERRAIN = TerrainId.GRASSLAND

# Terrains that receive vegetation instances.
VEGETATION_TERRAINS = frozenset({
    TerrainId.FOREST,
    TerrainId.TAIGA,
    TerrainId.JUNGLE,
    TerrainId.RAINFOREST,
})


def parse_terrain_id(terrain_id) -> Optional[TerrainId]:
    """Returns the TerrainId for a member or its string value, else None."""
    if isinstance(terrain_id, TerrainId):
        return terrain_id
    try:
        return TerrainId(terrain_id)
    except ValueError:
        return None


def terrain_by_id(terrain_id) -> Optional[TerrainType]:
    parsed = parse_terrain_id(terrain_id)
    return _TERRAIN_BY_ID.get(parsed) if parsed is not None else None


def hosts_vegetation(terrain_id) -> bool:
    return parse_terrain_id(terrain_id) in VEGETATION_TERRAINS


def rules_for_sea_level(sea_level: float, rules=TERRAIN_RULES) -> tuple:
    """Returns the rules with every water rule capped at the given sea level."""
    return tuple(
        replace(rule, max_elevation=sea_level) if rule.base_type is BaseType.WATER else rule
        for rule in rules
    )


# camelCase spellings accepted for tile fields.
TILE_FIELD_ALIASES = {
    'is_ocean_connected': 'isOceanConnected',
    'has_lake': 'hasLake',
}


def _read_field(tile, name: str, default=None):
    alias = TILE_FIELD_ALIASES.get(name)
    if isinstance(tile, Mapping):
        if name in tile:
            return tile[name]
        return tile.get(alias, default) if alias else default
    if hasattr(tile, name):
        return getattr(tile, name)
    return getattr(tile, alias, default) if alias else default


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        return None
    value = float(value)
    return None if math.isnan(value) else value


class TerrainClassifier:
    """Assigns terrain ids by first-match over a priority-ordered rule table."""

    def __init__(self, rules=TERRAIN_RULES, fallback: TerrainId = FALLBACK_TERRAIN,
                 logger: logging.Logger = None, sea_level: float = None):
        if sea_level is not None:
            rules = rules_for_sea_level(sea_level, rules)
        self.sea_level = sea_level
        self.rules = tuple(sorted(rules, key=lambda t: t.priority))
        self.fallback = fallback
        self.logger = logger or logging.getLogger(__name__)

    def match(self, elevation: float, moisture: float, temperature: float,
              has_lake: bool = False, is_ocean_connected: bool = False) -> Optional[TerrainId]:
        """Returns the first matching rule's id, or None for a registry gap."""
        for rule in self.rules:
            if rule.matches(elevation, moisture, temperature, has_lake, is_ocean_connected):
                return rule.id
        return None

    def classify(self, tile) -> TerrainId:
        """
        Classifies a single tile (a Tile, any object with the same attributes,
        or a mapping). Never raises.
        """
        if tile is None:
            return self.fallback

        elevation = _as_number(_read_field(tile, "elevation"))
        moisture = _as_number(_read_field(tile, "moisture"))
        temperature = _as_number(_read_field(tile, "temperature"))
        if elevation is None or moisture is None or temperature is None:
            self.logger.debug(f"Tile {_read_field(tile, 'id')!r} has missing climate inputs; using fallback.")
            return self.fallback

        terrain_id = self.match(
            elevation, moisture, temperature,
            has_lake=bool(_read_field(tile, "has_lake", False)),
            is_ocean_connected=bool(_read_field(tile, "is_ocean_connected", False)),
        )
        if terrain_id is None:
            self.logger.warning(
                f"No terrain rule matches elevation={elevation:.3f}, moisture={moisture:.3f}, "
                f"temperature={temperature:.3f}; using {self.fallback.value}."
            )
            return self.fallback
        return terrain_id

    def classify_arrays(self, elevation: np.ndarray, moisture: np.ndarray, temperature: np.ndarray,
                        ocean_connected: np.ndarray, has_lake: np.ndarray) -> list:
        """
        Classifies every tile at once. Equivalent to classify() per tile: each
        tile takes the first rule (in priority order) whose mask admits it.
        """
        num_tiles = elevation.shape[0]
        result = np.full(num_tiles, -1, dtype=np.int64)
        unassigned = np.ones(num_tiles, dtype=bool)

        for index, rule in enumerate(self.rules):
            claimed = unassigned & rule.mask(elevation, moisture, temperature, has_lake, ocean_connected)
            result[claimed] = index
            unassigned &= ~claimed
            if not unassigned.any():
                break

        gaps = int(unassigned.sum())
        if gaps:
            self.logger.warning(f"{gaps} tile(s) matched no terrain rule; using {self.fallback.value}.")

        ids = [rule.id for rule in self.rules]
        return [ids[i] if i >= 0 else self.fallback for i in result.tolist()]
