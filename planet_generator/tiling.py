# planet_generator/tiling.py

"""
================================================================================
SPHERICAL TILING
================================================================================
This module divides the unit sphere into tiles. It places quasi-uniform sites
on the sphere, perturbs them by a jitter, and derives the tile adjacency from
the spherical Delaunay triangulation (the convex hull of the sites). Each tile
is the Voronoi cell of its site.

Data Contract:
---------------
- Inputs:
    - num_tiles, jitter [0, 1], algorithm (TilingAlgorithm), a random source.
- Outputs:
    - A TileGraph: unit-vector centers, symmetric sorted neighbor lists, a
      sparse adjacency matrix, Voronoi cell areas and hull triangles.
- Side Effects: Consumes draws from the supplied random source.
- Invariants: The adjacency graph satisfies Euler's formula for a sphere
  (V - E + F = 2). Degenerate point sets are retried a bounded number of
  times, then reported as a DegenerateGeometryError.
================================================================================
"""
import enum
import logging
import math
from dataclasses import dataclass

import numpy as np
from scipy import sparse
from scipy.spatial import ConvexHull, QhullError, SphericalVoronoi, cKDTree

from . import config as DEFAULTS
from .exceptions import ConfigurationError, DegenerateGeometryError


class TilingAlgorithm(enum.IntEnum):
    """Base point distributions. Both are Fibonacci spirals with fixed poles."""
    FIBONACCI_GOLDEN = 1
    FIBONACCI_SPIRAL = 2

    @classmethod
    def parse(cls, value) -> "TilingAlgorithm":
        """Accepts a member, its integer value or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        elif isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ConfigurationError(f"Unknown tiling algorithm: {value!r}")


# Angular step between consecutive spiral points, per algorithm.
_SPIRAL_STEP = {
    TilingAlgorithm.FIBONACCI_GOLDEN: math.pi * (math.sqrt(5) - 1),
    TilingAlgorithm.FIBONACCI_SPIRAL: math.pi * (3 - math.sqrt(5)),
}


@dataclass(frozen=True)
class TileGraph:
    """The geometric skeleton of a planet, before any tile data is assigned."""
    centers: np.ndarray        # (N, 3) unit vectors
    neighbors: tuple           # N sorted tuples of tile ids
    adjacency: sparse.csr_matrix
    areas: np.ndarray          # (N,) steradians, sums to 4*pi
    triangles: np.ndarray      # (F, 3) Delaunay triangles

    @property
    def num_tiles(self) -> int:
        return self.centers.shape[0]

    @property
    def num_edges(self) -> int:
        return int(self.adjacency.nnz // 2)


def generate_fibonacci_points(num_tiles: int, jitter: float, algorithm: TilingAlgorithm, rng) -> np.ndarray:
    """
    Generates num_tiles points: the north pole, a spiral from top to bottom,
    and the south pole. When jitter > 0 each spiral point draws an angle and
    an amount from rng (in that order) and is pushed sideways in the x/z plane
    by up to jitter times the mean site spacing.
    """
    phi = _SPIRAL_STEP[algorithm]
    spacing = math.sqrt(4.0 * math.pi / num_tiles)
    points = np.empty((num_tiles, 3), dtype=np.float64)
    points[0] = (0.0, 1.0, 0.0)
    points[-1] = (0.0, -1.0, 0.0)

    for i in range(num_tiles - 2):
        y = 1.0 - (i + 1) * 2.0 / (num_tiles - 1)
        radius = math.sqrt(1.0 - y * y)
        theta = phi * i
        x = math.cos(theta) * radius
        z = math.sin(theta) * radius

        if jitter > 0:
            angle = rng.next_float() * math.pi * 2
            amount = rng.next_float() * jitter * spacing
            x += math.cos(angle) * amount
            z += math.sin(angle) * amount
            length = math.sqrt(x * x + y * y + z * z)
            x, y, z = x / length, y / length, z / length

        points[i + 1] = (x, y, z)

    return points


def _find_duplicate_sites(points: np.ndarray) -> set:
    tree = cKDTree(points)
    return tree.query_pairs(r=DEFAULTS.DUPLICATE_SITE_TOLERANCE)


def _unique_edges(triangles: np.ndarray) -> np.ndarray:
    """Returns the sorted, de-duplicated (E, 2) edge list of a triangle set."""
    edges = np.concatenate([
        triangles[:, [0, 1]],
        triangles[:, [1, 2]],
        triangles[:, [2, 0]],
    ])
    edges.sort(axis=1)
    return np.unique(edges, axis=0)


def triangulate(points: np.ndarray, logger: logging.Logger = None) -> TileGraph:
    """
    Builds the tile graph for a fixed point set. Raises DegenerateGeometryError
    if the point set does not produce a valid spherical triangulation.
    """
    logger = logger or logging.getLogger(__name__)
    num_points = points.shape[0]

    duplicates = _find_duplicate_sites(points)
    if duplicates:
        raise DegenerateGeometryError(f"{len(duplicates)} pair(s) of coincident tile sites.")

    try:
        hull = ConvexHull(points)
    except QhullError as e:
        raise DegenerateGeometryError(f"Convex hull construction failed: {e}") from e

    # Every site must lie on the hull, otherwise it would have no tile.
    if len(hull.vertices) != num_points:
        raise DegenerateGeometryError(
            f"Only {len(hull.vertices)} of {num_points} sites are hull vertices."
        )

    triangles = hull.simplices.astype(np.int64)
    edges = _unique_edges(triangles)

    # --- Euler Check (V - E + F = 2) ---
    num_edges, num_faces = edges.shape[0], triangles.shape[0]
    euler = num_points - num_edges + num_faces
    if euler != 2:
        raise DegenerateGeometryError(
            f"Euler characteristic is {euler} (V={num_points}, E={num_edges}, F={num_faces}), expected 2."
        )

    rows = np.concatenate([edges[:, 0], edges[:, 1]])
    cols = np.concatenate([edges[:, 1], edges[:, 0]])
    adjacency = sparse.csr_matrix(
        (np.ones(rows.shape[0], dtype=np.int32), (rows, cols)),
        shape=(num_points, num_points),
    )
    adjacency.sort_indices()
    neighbors = tuple(
        tuple(int(n) for n in adjacency.indices[adjacency.indptr[i]:adjacency.indptr[i + 1]])
        for i in range(num_points)
    )

    try:
        voronoi = SphericalVoronoi(points, radius=1.0, center=np.zeros(3))
        areas = voronoi.calculate_areas()
    except ValueError as e:
        raise DegenerateGeometryError(f"Spherical Voronoi construction failed: {e}") from e

    logger.debug(f"Triangulated {num_points} sites: {num_edges} edges, {num_faces} triangles.")
    return TileGraph(
        centers=points,
        neighbors=neighbors,
        adjacency=adjacency,
        areas=areas,
        triangles=triangles,
    )


class SphericalTiling:
    """Generates the tile graph for a planet, retrying degenerate point sets."""

    def __init__(self, num_tiles: int, jitter: float, algorithm, logger: logging.Logger = None,
                 max_retries: int = DEFAULTS.MAX_TILING_RETRIES):
        if not isinstance(num_tiles, (int, np.integer)) or isinstance(num_tiles, bool):
            raise ConfigurationError(f"num_tiles must be an integer, got {num_tiles!r}")
        if num_tiles < DEFAULTS.MIN_TILES:
            raise ConfigurationError(
                f"num_tiles must be at least {DEFAULTS.MIN_TILES} to close a sphere, got {num_tiles}"
            )
        if not isinstance(jitter, (int, float)) or isinstance(jitter, bool) or not 0.0 <= jitter <= 1.0:
            raise ConfigurationError(f"jitter must be within [0, 1], got {jitter}")

        self.num_tiles = int(num_tiles)
        self.jitter = float(jitter)
        self.algorithm = TilingAlgorithm.parse(algorithm)
        self.max_retries = max_retries
        self.logger = logger or logging.getLogger(__name__)

    def generate(self, rng) -> TileGraph:
        """
        Produces the tile graph. A degenerate point set is re-perturbed with
        fresh draws from rng, up to max_retries times.
        """
        jitter = self.jitter
        for attempt in range(self.max_retries + 1):
            points = generate_fibonacci_points(self.num_tiles, jitter, self.algorithm, rng)
            try:
                return triangulate(points, self.logger)
            except DegenerateGeometryError as e:
                if attempt == self.max_retries:
                    raise DegenerateGeometryError(
                        f"Tiling failed after {self.max_retries} retries: {e}"
                    ) from e
                jitter = max(jitter, DEFAULTS.RETRY_MIN_JITTER)
                self.logger.warning(
                    f"Degenerate tiling on attempt {attempt + 1} ({e}). "
                    f"Retrying with jitter {jitter:.3f}."
                )
        raise DegenerateGeometryError("Tiling failed.")
