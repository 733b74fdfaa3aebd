# planet_generator/models.py

"""
================================================================================
PLANET DATA MODEL
================================================================================
Value types produced by a generation pass.

Data Contract:
---------------
- Planet: Owns the generation settings, the tile graph, the plate list and
  one flat array per tile attribute, all indexed by tile id.
- Tile: A read-only snapshot of one tile, built on demand from those arrays.
- Plate: A tectonic plate. Never mutated after creation.
- Side Effects: None.
- Invariants: A Planet is immutable after construction (its arrays are marked
  read-only). Regeneration produces a new Planet; it never edits one in place.
================================================================================
"""
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import numpy as np


@dataclass(frozen=True)
class Plate:
    id: int
    seed_tile_id: int
    center: tuple
    motion: tuple
    is_oceanic: bool
    base_elevation: float
    moisture_factor: float = 0.5


@dataclass(frozen=True)
class Tile:
    id: int
    center: tuple
    neighbors: tuple
    area: float
    elevation: float
    moisture: float
    temperature: float
    plate_id: Optional[int] = None
    is_ocean_connected: bool = False
    has_lake: bool = False
    terrain: Optional[str] = None


class Planet:
    """A fully generated planet. Readers may share it freely."""

    def __init__(self, settings: dict, graph, plates: tuple, plate_ids: np.ndarray,
                 raw_elevation: np.ndarray, elevation: np.ndarray, moisture: np.ndarray,
                 temperature: np.ndarray, ocean_connected: np.ndarray, is_lake: np.ndarray,
                 has_lake: np.ndarray, terrain: tuple):
        self.settings = dict(settings)
        self.graph = graph
        self.plates = tuple(plates)
        self.plate_ids = plate_ids
        self.raw_elevation = raw_elevation
        self.elevation = elevation
        self.moisture = moisture
        self.temperature = temperature
        self.ocean_connected = ocean_connected
        self.is_lake = is_lake
        self.has_lake = has_lake
        self.terrain = tuple(terrain)

        self._freeze()

    def _freeze(self):
        for array in (self.plate_ids, self.raw_elevation, self.elevation, self.moisture,
                      self.temperature, self.ocean_connected, self.is_lake, self.has_lake,
                      self.graph.centers, self.graph.areas):
            array.setflags(write=False)

    def __setstate__(self, state):
        # Unpickled arrays (e.g. from a worker process) come back writable.
        self.__dict__.update(state)
        self._freeze()

    # --- Accessors ---
    @property
    def num_tiles(self) -> int:
        return self.graph.num_tiles

    @property
    def centers(self) -> np.ndarray:
        return self.graph.centers

    @property
    def neighbors(self) -> tuple:
        return self.graph.neighbors

    def get_tile(self, tile_id) -> Optional[Tile]:
        """Returns a snapshot of the tile, or None if the id does not exist."""
        if isinstance(tile_id, bool) or not isinstance(tile_id, (int, np.integer)):
            return None
        if not 0 <= tile_id < self.num_tiles:
            return None
        i = int(tile_id)
        return Tile(
            id=i,
            center=tuple(float(c) for c in self.graph.centers[i]),
            neighbors=self.graph.neighbors[i],
            area=float(self.graph.areas[i]),
            elevation=float(self.elevation[i]),
            moisture=float(self.moisture[i]),
            temperature=float(self.temperature[i]),
            plate_id=int(self.plate_ids[i]),
            is_ocean_connected=bool(self.ocean_connected[i]),
            has_lake=bool(self.has_lake[i]),
            terrain=self.terrain[i],
        )

    def tiles(self) -> Iterator[Tile]:
        """Yields every tile in id order."""
        for i in range(self.num_tiles):
            yield self.get_tile(i)

    def for_each_tile(self, fn: Callable[[Tile], None]) -> None:
        for tile in self.tiles():
            fn(tile)

    def plate_tiles(self, plate_id: int) -> np.ndarray:
        """Returns the ids of all tiles on the given plate."""
        return np.flatnonzero(self.plate_ids == plate_id)

    # --- Reporting ---
    def terrain_stats(self) -> dict:
        """Counts tiles per terrain id."""
        return dict(Counter(str(t) for t in self.terrain))

    def summary(self) -> dict:
        """A compact, JSON-serializable description of the planet."""
        oceanic = sum(1 for p in self.plates if p.is_oceanic)
        return {
            "seed": self.settings.get("seed"),
            "resolved_seed": self.settings.get("resolved_seed"),
            "num_tiles": self.num_tiles,
            "num_edges": self.graph.num_edges,
            "num_plates": len(self.plates),
            "oceanic_plates": oceanic,
            "continental_plates": len(self.plates) - oceanic,
            "elevation_range": [float(self.elevation.min()), float(self.elevation.max())],
            "ocean_tiles": int(self.ocean_connected.sum()),
            "lake_tiles": int(self.is_lake.sum()),
            "terrain": self.terrain_stats(),
        }

    def __repr__(self):
        return (f"Planet(seed={self.settings.get('seed')!r}, tiles={self.num_tiles}, "
                f"plates={len(self.plates)})")
