# planet_generator/tectonics.py

"""
================================================================================
TECTONIC PLATE GENERATION
================================================================================
This module partitions the tile graph into tectonic plates and derives a
per-tile elevation from plate membership and boundary interactions. It is a
stylized abstraction used to create large-scale features like continents,
mountain ranges and trenches, not a physical simulation.

Data Contract:
---------------
- Inputs:
    - A TileGraph, the number of plates, a DeterministicRandomSource.
- Outputs:
    - plates (tuple of Plate): Seed tile, center, motion, oceanic flag and
      base elevation for each plate.
    - plate_ids (np.ndarray): The plate id of every tile.
    - elevation (np.ndarray): Unclamped, smoothed elevation before bias.
- Side Effects: Consumes draws from the supplied random source.
- Invariants: Every tile belongs to exactly one plate. Frontier processing
  visits plates in ascending id, so the partition depends only on the seed.
================================================================================
"""
import logging
import math
from collections import deque
from dataclasses import replace
from typing import Protocol

import numpy as np
from scipy import sparse

from . import config as DEFAULTS
from .exceptions import ConfigurationError, DegenerateGeometryError
from .models import Plate


def _normalize(vector: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(vector)
    return vector / length if length > 0 else vector


def boundary_edges(graph, plate_ids: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Returns the directed (tile, neighbor) pairs that cross a plate boundary."""
    coo = graph.adjacency.tocoo()
    crossing = plate_ids[coo.row] != plate_ids[coo.col]
    return coo.row[crossing], coo.col[crossing]


def closing_speeds(graph, plates, plate_ids: np.ndarray, tiles: np.ndarray, neighbors: np.ndarray) -> np.ndarray:
    """
    Relative plate motion projected onto the tile-to-neighbor direction.
    Positive values mean the two plates move toward each other (convergent),
    negative values mean they move apart (divergent).
    """
    motions = np.array([p.motion for p in plates], dtype=np.float64)
    direction = graph.centers[neighbors] - graph.centers[tiles]
    lengths = np.linalg.norm(direction, axis=1, keepdims=True)
    direction = direction / np.where(lengths > 0, lengths, 1.0)
    relative = motions[plate_ids[tiles]] - motions[plate_ids[neighbors]]
    return np.einsum("ij,ij->i", relative, direction)


# --- Boundary Strategies ---
class BoundaryStrategy(Protocol):
    """Computes the elevation adjustment of every tile from its plate boundaries."""
    def adjust(self, graph, plates, plate_ids: np.ndarray) -> np.ndarray: ...


class ConvergenceBoundaryStrategy:
    """
    Adjustment proportional to the mean closing speed across a tile's foreign
    neighbors: convergent boundaries are raised, divergent ones lowered.
    Interior tiles are not adjusted.
    """
    def __init__(self, strength: float = DEFAULTS.CONVERGENCE_STRENGTH,
                 max_adjustment: float = DEFAULTS.CONVERGENCE_MAX_ADJUSTMENT):
        self.strength = strength
        self.max_adjustment = max_adjustment

    def adjust(self, graph, plates, plate_ids: np.ndarray) -> np.ndarray:
        num_tiles = graph.num_tiles
        tiles, neighbors = boundary_edges(graph, plate_ids)
        if tiles.size == 0:
            return np.zeros(num_tiles)

        speeds = closing_speeds(graph, plates, plate_ids, tiles, neighbors)
        total = np.bincount(tiles, weights=speeds, minlength=num_tiles)
        count = np.bincount(tiles, minlength=num_tiles)
        mean = np.divide(total, count, out=np.zeros(num_tiles), where=count > 0)
        return np.clip(self.strength * mean, -self.max_adjustment, self.max_adjustment)


class PlateInteractionBoundaryStrategy:
    """
    Rule-based boundary features. Each foreign neighbor proposes a target
    elevation with a priority that depends on the two plates' types and on
    whether the collision is strong:

        land  / land  : mountains on strong collision, else unchanged
        land  / ocean : coastal mountains on strong collision, else coastline
        ocean / land  : trench on strong collision, else continental shelf
        ocean / ocean : ridge on strong collision, else ocean floor

    The highest-priority proposal wins; equal priorities keep the higher
    target. The adjustment is the winning target minus the plate's base.
    """
    def __init__(self, strong_convergence: float = DEFAULTS.INTERACTION_STRONG_CONVERGENCE):
        self.strong_convergence = strong_convergence
        self.priority = DEFAULTS.INTERACTION_PRIORITY

    def _proposal(self, plate: Plate, other: Plate, strong: bool) -> tuple[int, float]:
        priority = self.priority
        if not plate.is_oceanic and not other.is_oceanic:
            if strong:
                return priority["mountain"], DEFAULTS.INTERACTION_ELEVATION_MOUNTAIN
            return priority["base"], plate.base_elevation
        if not plate.is_oceanic and other.is_oceanic:
            if strong:
                return priority["mountain"], DEFAULTS.INTERACTION_ELEVATION_MOUNTAIN
            return priority["coast_ridge_trench"], DEFAULTS.INTERACTION_ELEVATION_COASTLINE_LAND
        if plate.is_oceanic and not other.is_oceanic:
            if strong:
                return priority["coast_ridge_trench"], plate.base_elevation + DEFAULTS.INTERACTION_TRENCH_OFFSET
            return priority["coast_ridge_trench"], DEFAULTS.INTERACTION_ELEVATION_COASTLINE_OCEAN
        if strong:
            return priority["coast_ridge_trench"], DEFAULTS.INTERACTION_ELEVATION_OCEAN_RIDGE
        return priority["ocean_floor"], DEFAULTS.INTERACTION_ELEVATION_OCEAN_FLOOR

    def adjust(self, graph, plates, plate_ids: np.ndarray) -> np.ndarray:
        adjustment = np.zeros(graph.num_tiles)
        tiles, neighbors = boundary_edges(graph, plate_ids)
        if tiles.size == 0:
            return adjustment

        speeds = closing_speeds(graph, plates, plate_ids, tiles, neighbors)
        best = {}
        for tile, neighbor, speed in zip(tiles.tolist(), neighbors.tolist(), speeds.tolist()):
            plate = plates[plate_ids[tile]]
            other = plates[plate_ids[neighbor]]
            priority, target = self._proposal(plate, other, speed > self.strong_convergence)
            current = best.get(tile)
            if current is None or priority > current[0]:
                best[tile] = (priority, target)
            elif priority == current[0] and priority > self.priority["base"]:
                best[tile] = (priority, max(current[1], target))

        for tile, (_, target) in best.items():
            adjustment[tile] = target - plates[plate_ids[tile]].base_elevation
        return adjustment


BOUNDARY_STRATEGIES = {
    "convergence": ConvergenceBoundaryStrategy,
    "interaction": PlateInteractionBoundaryStrategy,
}


def resolve_boundary_strategy(strategy) -> BoundaryStrategy:
    """Accepts a strategy instance or the name of a built-in strategy."""
    if isinstance(strategy, str):
        try:
            return BOUNDARY_STRATEGIES[strategy]()
        except KeyError:
            raise ConfigurationError(
                f"Unknown boundary strategy '{strategy}'. "
                f"Expected one of: {', '.join(sorted(BOUNDARY_STRATEGIES))}"
            ) from None
    if hasattr(strategy, "adjust"):
        return strategy
    raise ConfigurationError(f"Invalid boundary strategy: {strategy!r}")


def smooth_elevation(adjacency: sparse.csr_matrix, elevation: np.ndarray, passes: int,
                     original_weight: float = DEFAULTS.SMOOTHING_ORIGINAL_WEIGHT,
                     averaged_weight: float = DEFAULTS.SMOOTHING_AVERAGED_WEIGHT) -> np.ndarray:
    """
    Blends each tile with the mean of itself and its neighbors. A constant
    field is left unchanged.
    """
    degree = np.asarray(adjacency.sum(axis=1)).ravel() + 1.0
    weights = adjacency.astype(np.float64)
    result = elevation.astype(np.float64)
    for _ in range(passes):
        averaged = (result + weights @ result) / degree
        result = original_weight * result + averaged_weight * averaged
    return result


class PlateAssigner:
    """
    Partitions tiles into plates with a round-robin multi-source flood fill.
    """
    def __init__(self, num_plates: int, boundary_strategy=DEFAULTS.DEFAULT_BOUNDARY_STRATEGY,
                 logger: logging.Logger = None, seed_separation_factor: float = DEFAULTS.SEED_SEPARATION_FACTOR,
                 oceanic_chance: float = DEFAULTS.OCEANIC_CHANCE):
        if isinstance(num_plates, bool) or not isinstance(num_plates, (int, np.integer)):
            raise ConfigurationError(f"num_plates must be an integer, got {num_plates!r}")
        if num_plates < 1:
            raise ConfigurationError(f"num_plates must be at least 1, got {num_plates}")
        self.num_plates = int(num_plates)
        self.boundary_strategy = resolve_boundary_strategy(boundary_strategy)
        self.seed_separation_factor = seed_separation_factor
        self.oceanic_chance = oceanic_chance
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, num_tiles: int) -> None:
        if self.num_plates > num_tiles:
            raise ConfigurationError(
                f"num_plates ({self.num_plates}) cannot exceed num_tiles ({num_tiles})"
            )

    # --- 1. Seed Selection ---
    def select_seed_tiles(self, graph, rng) -> list[int]:
        """
        Samples seed tiles without replacement, rejecting candidates that are
        too close to an accepted seed. When spacing cannot be honored the
        remaining seeds are filled from the rejected candidates, in order.
        """
        candidates = list(range(graph.num_tiles))
        rng.shuffle(candidates)

        min_angle = self.seed_separation_factor * math.sqrt(4.0 * math.pi / self.num_plates)
        min_dot = math.cos(min(min_angle, math.pi))
        centers = graph.centers

        accepted = []
        rejected = []
        for tile_id in candidates:
            if len(accepted) == self.num_plates:
                break
            if accepted and np.max(centers[accepted] @ centers[tile_id]) > min_dot:
                rejected.append(tile_id)
            else:
                accepted.append(tile_id)

        if len(accepted) < self.num_plates:
            shortfall = self.num_plates - len(accepted)
            self.logger.debug(f"Seed spacing not feasible for {shortfall} plate(s); filling from rejected tiles.")
            accepted.extend(rejected[:shortfall])
        return accepted

    # --- 2. Plate Properties ---
    def create_plates(self, graph, seed_tiles: list[int], rng) -> list[Plate]:
        plates = []
        for plate_id, seed_tile in enumerate(seed_tiles):
            center = graph.centers[seed_tile]
            random_vec = _normalize(np.array([
                rng.next_float() - 0.5,
                rng.next_float() - 0.5,
                rng.next_float() - 0.5,
            ]))
            motion = np.cross(center, random_vec)
            if np.linalg.norm(motion) < 1e-12:
                # Random vector parallel to the center; any tangent will do.
                motion = np.cross(center, [1.0, 0.0, 0.0] if abs(center[0]) < 0.9 else [0.0, 1.0, 0.0])
            motion = _normalize(motion)

            is_oceanic = rng.next_float() < self.oceanic_chance
            low, high = DEFAULTS.OCEANIC_ELEVATION_RANGE if is_oceanic else DEFAULTS.CONTINENTAL_ELEVATION_RANGE
            base_elevation = rng.next_range(low, high)

            plates.append(Plate(
                id=plate_id,
                seed_tile_id=int(seed_tile),
                center=tuple(float(c) for c in center),
                motion=tuple(float(m) for m in motion),
                is_oceanic=is_oceanic,
                base_elevation=base_elevation,
            ))
        return plates

    # --- 3. Flood Fill ---
    def grow_plates(self, graph, plates: list[Plate], rng) -> np.ndarray:
        """
        One FIFO frontier per plate. Each round, plates in ascending id pop one
        tile and claim all of its unassigned neighbors (visited in shuffled
        order). A tile belongs to whichever plate claims it first.
        """
        plate_ids = np.full(graph.num_tiles, -1, dtype=np.int64)
        frontiers = []
        for plate in plates:
            plate_ids[plate.seed_tile_id] = plate.id
            frontiers.append(deque([plate.seed_tile_id]))

        active = True
        while active:
            active = False
            for plate in plates:
                frontier = frontiers[plate.id]
                if not frontier:
                    continue
                active = True
                tile_id = frontier.popleft()
                neighbors = list(graph.neighbors[tile_id])
                rng.shuffle(neighbors)
                for neighbor_id in neighbors:
                    if plate_ids[neighbor_id] == -1:
                        plate_ids[neighbor_id] = plate.id
                        frontier.append(neighbor_id)

        unassigned = int(np.count_nonzero(plate_ids == -1))
        if unassigned:
            raise DegenerateGeometryError(f"{unassigned} tile(s) unreachable from any plate seed.")
        return plate_ids

    @staticmethod
    def recenter_plates(graph, plates: list[Plate], plate_ids: np.ndarray) -> list[Plate]:
        """Moves each plate center to the normalized mean of its tiles."""
        sums = np.zeros((len(plates), 3))
        np.add.at(sums, plate_ids, graph.centers)
        recentered = []
        for plate in plates:
            mean = sums[plate.id]
            center = tuple(float(c) for c in _normalize(mean)) if np.linalg.norm(mean) > 0 else plate.center
            recentered.append(replace(plate, center=center))
        return recentered

    def assign(self, graph, rng) -> tuple[list[Plate], np.ndarray]:
        """Runs seed selection, plate creation and the flood fill."""
        self.validate(graph.num_tiles)
        seed_tiles = self.select_seed_tiles(graph, rng)
        plates = self.create_plates(graph, seed_tiles, rng)
        plate_ids = self.grow_plates(graph, plates, rng)
        plates = self.recenter_plates(graph, plates, plate_ids)

        oceanic = sum(1 for p in plates if p.is_oceanic)
        self.logger.info(f"Assigned {graph.num_tiles} tiles to {len(plates)} plates ({oceanic} oceanic).")
        return plates, plate_ids

    # --- 4. Elevation ---
    def base_elevation(self, graph, plates: list[Plate], plate_ids: np.ndarray) -> np.ndarray:
        """Plate base elevation plus the boundary adjustment, per tile."""
        base = np.array([p.base_elevation for p in plates], dtype=np.float64)[plate_ids]
        return base + self.boundary_strategy.adjust(graph, plates, plate_ids)
