"""Tests for vegetation placement and LOD selection."""

import math
from types import SimpleNamespace

import numpy as np
import pytest

from planet_generator import config as DEFAULTS
from planet_generator.terrain import TerrainId
from planet_generator.vegetation import (
    LODTier,
    VegetationInstance,
    VegetationLODSelector,
    billboard_transforms,
    build_instances,
    default_tiers,
    mesh_transforms,
)

TIERS = (
    LODTier("near", 250.0, 2, 80),
    LODTier("mid", 600.0, 3, 44),
    LODTier("far", math.inf, None, 4),
)


def row_of_instances(count=10, spacing=100.0):
    """Instances along +X at 0, spacing, 2*spacing, ... from the origin."""
    return [
        VegetationInstance(tile_id=i, position=(i * spacing, 0.0, 0.0), normal=(0.0, 1.0, 0.0), yaw=0.0, scale=1.0)
        for i in range(count)
    ]


class TestLODSelection:
    def test_nearest_first_with_capacities(self):
        selector = VegetationLODSelector(row_of_instances(), TIERS)
        result = selector.update((0.0, 0.0, 0.0))
        assert {name: batch.count for name, batch in result.items()} == {"near": 2, "mid": 3, "far": 5}
        assert result["near"].tile_ids.tolist() == [0, 1]
        assert result["mid"].tile_ids.tolist() == [2, 3, 4]
        assert result["far"].tile_ids.tolist() == [5, 6, 7, 8, 9]

    def test_every_instance_lands_in_one_tier(self):
        selector = VegetationLODSelector(row_of_instances(), TIERS)
        result = selector.update((450.0, 0.0, 0.0))
        tile_ids = np.concatenate([batch.tile_ids for batch in result.values()])
        assert sorted(tile_ids.tolist()) == list(range(10))

    def test_capacity_is_never_exceeded(self):
        selector = VegetationLODSelector(row_of_instances(count=50, spacing=1.0), TIERS)
        result = selector.update((0.0, 0.0, 0.0))
        assert result["near"].count == 2
        assert result["mid"].count == 3
        assert result["far"].count == 45

    def test_bounded_last_tier_drops_instances(self):
        tiers = TIERS[:2] + (LODTier("far", 700.0, 1, 4),)
        selector = VegetationLODSelector(row_of_instances(), tiers)
        result = selector.update((0.0, 0.0, 0.0))
        assert result["far"].tile_ids.tolist() == [5]
        assert sum(batch.count for batch in result.values()) == 6

    def test_memory_estimate(self):
        selector = VegetationLODSelector(row_of_instances(), TIERS)
        result = selector.update((0.0, 0.0, 0.0))
        expected = (80 + 44 + 4) * DEFAULTS.BYTES_PER_VERTEX + 10 * DEFAULTS.BYTES_PER_INSTANCE_TRANSFORM
        assert selector.estimate_memory_bytes(result) == expected == 3712

    def test_empty_selector(self):
        selector = VegetationLODSelector([], TIERS)
        result = selector.update((1.0, 2.0, 3.0))
        assert all(batch.count == 0 for batch in result.values())
        assert result["far"].transforms.shape == (0, 4, 4)
        assert selector.estimate_memory_bytes(result) == (80 + 44 + 4) * DEFAULTS.BYTES_PER_VERTEX

    def test_no_tiers_rejected(self):
        with pytest.raises(ValueError):
            VegetationLODSelector(row_of_instances(), ())

    def test_default_tiers_from_config(self):
        tiers = default_tiers()
        assert [tier.name for tier in tiers] == list(DEFAULTS.LOD_TIERS)


class TestTransforms:
    def test_mesh_transform_aligns_up_with_normal(self):
        normals = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, -1.0, 0.0], [0.6, 0.0, 0.8]])
        positions = normals * 10.0
        scales = np.array([1.0, 2.0, 0.5, 1.5])
        yaws = np.array([0.0, 1.0, 2.0, 3.0])
        transforms = mesh_transforms(positions, normals, yaws, scales)

        assert transforms.dtype == np.float32
        np.testing.assert_allclose(transforms[:, :3, 1] / scales[:, None], normals, atol=1e-6)
        np.testing.assert_allclose(transforms[:, :3, 3], positions, atol=1e-5)
        np.testing.assert_allclose(transforms[:, 3], np.tile([0, 0, 0, 1], (4, 1)))

    def test_mesh_rotation_is_orthonormal(self):
        normals = np.array([[0.0, 0.6, 0.8]])
        transforms = mesh_transforms(normals, normals, np.array([0.7]), np.array([1.0]))
        rotation = transforms[0, :3, :3].astype(np.float64)
        np.testing.assert_allclose(rotation @ rotation.T, np.eye(3), atol=1e-6)
        assert np.linalg.det(rotation) == pytest.approx(1.0, abs=1e-6)

    def test_billboard_faces_viewer_and_clamps_scale(self):
        positions = np.array([[0.0, 0.0, 0.0], [5000.0, 0.0, 0.0], [1500.0, 0.0, 0.0]])
        normals = np.tile([0.0, 1.0, 0.0], (3, 1))
        viewer = np.array([0.0, 0.0, 100.0])
        distances = np.linalg.norm(positions - viewer, axis=1)
        transforms = billboard_transforms(positions, normals, viewer, distances)

        scales = np.linalg.norm(transforms[:, :3, 2], axis=1)
        expected = np.clip(distances / DEFAULTS.BILLBOARD_REFERENCE_DISTANCE,
                           DEFAULTS.BILLBOARD_MIN_SCALE, DEFAULTS.BILLBOARD_MAX_SCALE)
        np.testing.assert_allclose(scales, expected, rtol=1e-5)

        look = transforms[:, :3, 2] / scales[:, None]
        towards_viewer = (viewer - positions) / distances[:, None]
        np.testing.assert_allclose(look, towards_viewer, atol=1e-5)

    def test_billboard_looking_straight_down(self):
        positions = np.array([[0.0, 0.0, 0.0]])
        viewer = np.array([0.0, 500.0, 0.0])
        transforms = billboard_transforms(positions, np.array([[0.0, 1.0, 0.0]]), viewer, np.array([500.0]))
        assert np.all(np.isfinite(transforms))


class TestPlacement:
    def _fake_planet(self, seed=42):
        terrain = [TerrainId.FOREST, TerrainId.OCEAN, TerrainId.RAINFOREST, TerrainId.SNOW, TerrainId.JUNGLE]
        centers = np.array([
            [0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [-1.0, 0.0, 0.0], [0.0, -1.0, 0.0],
        ])
        return SimpleNamespace(settings={"resolved_seed": seed}, terrain=terrain, centers=centers)

    def test_only_vegetated_tiles(self):
        instances = build_instances(self._fake_planet(), radius=10.0)
        assert [i.tile_id for i in instances] == [0, 2, 4]
        assert instances[0].position == (0.0, 10.0, 0.0)
        assert instances[0].normal == (0.0, 1.0, 0.0)

    def test_deterministic_and_bounded(self):
        first = build_instances(self._fake_planet(), scale_variation=0.2)
        second = build_instances(self._fake_planet(), scale_variation=0.2)
        assert first == second
        for instance in first:
            assert 0.0 <= instance.yaw < 2 * math.pi
            assert 0.8 <= instance.scale <= 1.2

    def test_seed_changes_placement(self):
        first = build_instances(self._fake_planet(seed=1))
        second = build_instances(self._fake_planet(seed=2))
        assert [i.yaw for i in first] != [i.yaw for i in second]
