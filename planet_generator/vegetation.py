# planet_generator/vegetation.py

"""
================================================================================
VEGETATION PLACEMENT & LEVEL OF DETAIL
================================================================================
Places one vegetation instance on every tile whose terrain hosts vegetation,
and splits the instances into level-of-detail tiers from a viewer position.

Data Contract:
---------------
- Inputs:
    - A Planet (for placement), a viewer position (for each update).
- Outputs:
    - {tier_name: TierBatch} with float32 (count, 4, 4) column-vector
      transforms, ready for instanced drawing.
- Side Effects: Logs tier counts at debug level.
- Invariants: No tier ever holds more instances than its capacity. Instance
  transforms are fixed at placement; only the tier split and the billboard
  orientation depend on the viewer.
================================================================================
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import config as DEFAULTS
from .random_source import DeterministicRandomSource
from .terrain import hosts_vegetation

_WORLD_UP = np.array([0.0, 1.0, 0.0])
_FALLBACK_UP = np.array([0.0, 0.0, 1.0])
_EPSILON = 1e-9


@dataclass(frozen=True)
class VegetationInstance:
    tile_id: int
    position: tuple
    normal: tuple
    yaw: float
    scale: float


@dataclass(frozen=True)
class LODTier:
    name: str
    max_distance: float
    capacity: Optional[int]  # None = unbounded
    vertex_count: int


@dataclass(frozen=True)
class TierBatch:
    transforms: np.ndarray  # (count, 4, 4) float32
    count: int
    tile_ids: np.ndarray


def default_tiers() -> tuple:
    return tuple(
        LODTier(name, tier["max_distance"], tier["capacity"], tier["vertex_count"])
        for name, tier in DEFAULTS.LOD_TIERS.items()
    )


# --- Placement ---
def build_instances(planet, radius: float = DEFAULTS.VEGETATION_PLANET_RADIUS, seed=None,
                    scale_variation: float = DEFAULTS.VEGETATION_SCALE_VARIATION) -> list:
    """
    One instance per vegetated tile, in tile id order. Yaw and scale come
    from a forked stream of the planet seed, so placement never disturbs
    (and is never disturbed by) the generation stream.
    """
    if seed is None:
        seed = planet.settings.get("resolved_seed", planet.settings.get("seed"))
    rng = DeterministicRandomSource(seed).fork(DEFAULTS.VEGETATION_SEED_OFFSET)

    instances = []
    for tile_id, terrain_id in enumerate(planet.terrain):
        if not hosts_vegetation(terrain_id):
            continue
        normal = planet.centers[tile_id]
        yaw = rng.next_float() * 2 * math.pi
        scale = 1.0 + (rng.next_float() - 0.5) * 2 * scale_variation
        instances.append(VegetationInstance(
            tile_id=tile_id,
            position=tuple(float(c) * radius for c in normal),
            normal=tuple(float(c) for c in normal),
            yaw=yaw,
            scale=scale,
        ))
    return instances


# --- Transforms ---
def _align_y_to(normals: np.ndarray) -> np.ndarray:
    """Rotation matrices taking +Y onto each normal."""
    count = normals.shape[0]
    rotations = np.tile(np.eye(3), (count, 1, 1))
    v = np.cross(np.broadcast_to(_WORLD_UP, normals.shape), normals)
    c = normals[:, 1]

    # R = I + [v]x + [v]x^2 / (1 + c), undefined only for the antipode of +Y.
    regular = c > -1.0 + _EPSILON
    skew = np.zeros((count, 3, 3))
    skew[:, 0, 1], skew[:, 0, 2] = -v[:, 2], v[:, 1]
    skew[:, 1, 0], skew[:, 1, 2] = v[:, 2], -v[:, 0]
    skew[:, 2, 0], skew[:, 2, 1] = -v[:, 1], v[:, 0]
    factor = np.zeros(count)
    factor[regular] = 1.0 / (1.0 + c[regular])
    rotations += skew + (skew @ skew) * factor[:, None, None]

    # Half turn about X for normals pointing straight down.
    rotations[~regular] = np.diag([1.0, -1.0, -1.0])
    return rotations


def _yaw_rotations(yaws: np.ndarray) -> np.ndarray:
    cos, sin = np.cos(yaws), np.sin(yaws)
    rotations = np.zeros((yaws.shape[0], 3, 3))
    rotations[:, 0, 0], rotations[:, 0, 2] = cos, sin
    rotations[:, 1, 1] = 1.0
    rotations[:, 2, 0], rotations[:, 2, 2] = -sin, cos
    return rotations


def mesh_transforms(positions: np.ndarray, normals: np.ndarray, yaws: np.ndarray,
                    scales: np.ndarray) -> np.ndarray:
    """T * R_align * R_yaw * S for every instance."""
    count = positions.shape[0]
    linear = _align_y_to(normals) @ _yaw_rotations(yaws) * scales[:, None, None]
    transforms = np.zeros((count, 4, 4), dtype=np.float32)
    transforms[:, :3, :3] = linear
    transforms[:, :3, 3] = positions
    transforms[:, 3, 3] = 1.0
    return transforms


def billboard_transforms(positions: np.ndarray, normals: np.ndarray, viewer: np.ndarray,
                         distances: np.ndarray) -> np.ndarray:
    """Camera-facing quads, scaled with distance for a steady on-screen size."""
    count = positions.shape[0]
    look = viewer - positions
    at_viewer = distances < _EPSILON
    look[at_viewer] = normals[at_viewer]
    look /= np.linalg.norm(look, axis=1, keepdims=True)

    up = np.broadcast_to(_WORLD_UP, look.shape).copy()
    right = np.cross(up, look)
    parallel = np.linalg.norm(right, axis=1) < _EPSILON
    up[parallel] = _FALLBACK_UP
    right[parallel] = np.cross(up[parallel], look[parallel])
    right /= np.linalg.norm(right, axis=1, keepdims=True)
    billboard_up = np.cross(look, right)

    scale = np.clip(distances / DEFAULTS.BILLBOARD_REFERENCE_DISTANCE,
                    DEFAULTS.BILLBOARD_MIN_SCALE, DEFAULTS.BILLBOARD_MAX_SCALE)
    transforms = np.zeros((count, 4, 4), dtype=np.float32)
    transforms[:, :3, 0] = right * scale[:, None]
    transforms[:, :3, 1] = billboard_up * scale[:, None]
    transforms[:, :3, 2] = look * scale[:, None]
    transforms[:, :3, 3] = positions
    transforms[:, 3, 3] = 1.0
    return transforms


class VegetationLODSelector:
    """
    Assigns instances to tiers nearest-first. Each instance takes the first
    tier whose cutoff exceeds its distance and which still has room; the last
    tier renders as billboards.
    """
    def __init__(self, instances: list, tiers: tuple = None, logger: logging.Logger = None):
        self.tiers = tuple(tiers) if tiers is not None else default_tiers()
        if not self.tiers:
            raise ValueError("At least one LOD tier is required.")
        self.logger = logger or logging.getLogger(__name__)
        self.instances = tuple(instances)

        count = len(self.instances)
        self.tile_ids = np.array([i.tile_id for i in self.instances], dtype=np.int64)
        self.positions = np.array([i.position for i in self.instances], dtype=np.float64).reshape(count, 3)
        self.normals = np.array([i.normal for i in self.instances], dtype=np.float64).reshape(count, 3)
        yaws = np.array([i.yaw for i in self.instances], dtype=np.float64)
        scales = np.array([i.scale for i in self.instances], dtype=np.float64)
        self._mesh_transforms = mesh_transforms(self.positions, self.normals, yaws, scales)

    def update(self, viewer_position) -> dict:
        viewer = np.asarray(viewer_position, dtype=np.float64).reshape(3)
        distances = np.linalg.norm(self.positions - viewer, axis=1)
        order = np.argsort(distances, kind="stable")
        sorted_distances = distances[order]
        free = np.ones(order.size, dtype=bool)

        result = {}
        last = len(self.tiers) - 1
        for index, tier in enumerate(self.tiers):
            candidates = np.flatnonzero(free & (sorted_distances < tier.max_distance))
            if tier.capacity is not None:
                candidates = candidates[:tier.capacity]
            free[candidates] = False
            taken = order[candidates]

            if index == last:
                transforms = billboard_transforms(
                    self.positions[taken], self.normals[taken], viewer, distances[taken]
                )
            else:
                transforms = self._mesh_transforms[taken]
            result[tier.name] = TierBatch(transforms=transforms, count=int(taken.size), tile_ids=self.tile_ids[taken])

        dropped = int(free.sum())
        if dropped:
            self.logger.debug(f"Dropped {dropped} vegetation instance(s): every tier is full.")
        self.logger.debug(
            "LOD update: " + ", ".join(f"{name}={batch.count}" for name, batch in result.items())
        )
        return result

    def estimate_memory_bytes(self, result: dict) -> int:
        """Geometry plus per-instance transform memory for one update result."""
        total = 0
        for tier in self.tiers:
            batch = result.get(tier.name)
            count = batch.count if batch is not None else 0
            total += tier.vertex_count * DEFAULTS.BYTES_PER_VERTEX + count * DEFAULTS.BYTES_PER_INSTANCE_TRANSFORM
        return total
