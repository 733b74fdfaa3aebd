"""Tests for moisture, temperature and water-body detection."""

import math

import numpy as np
import pytest
from scipy import sparse

from planet_generator import climate
from planet_generator.models import Plate
from planet_generator.random_source import DeterministicRandomSource


def path_adjacency(num_tiles):
    """Adjacency of tiles 0 - 1 - 2 - ... - (n-1)."""
    rows = np.arange(num_tiles - 1)
    cols = rows + 1
    data = np.ones(2 * (num_tiles - 1), dtype=np.int32)
    return sparse.csr_matrix(
        (data, (np.concatenate([rows, cols]), np.concatenate([cols, rows]))),
        shape=(num_tiles, num_tiles),
    )


def make_plate(plate_id, moisture_factor=0.5):
    return Plate(plate_id, plate_id, (0.0, 1.0, 0.0), (1.0, 0.0, 0.0), True, -0.6, moisture_factor)


class TestMoisture:
    def test_latitude_profile(self):
        profile = climate.latitude_moisture(np.array([
            0.0, math.sin(math.radians(30)), math.sin(math.radians(60)), 1.0,
        ]))
        np.testing.assert_allclose(profile, [0.9, 0.1, 0.5, 0.5])

    def test_profile_is_driest_at_thirty_degrees(self):
        abs_y = np.linspace(0, 1, 101)
        profile = climate.latitude_moisture(abs_y)
        assert abs_y[np.argmin(profile)] == pytest.approx(0.5, abs=0.01)

    def test_moisture_blend(self):
        centers = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        plates = [make_plate(0, 0.2), make_plate(1, 0.8)]
        plate_ids = np.array([0, 1])
        noise = np.full(2, 0.5)
        moisture = climate.compute_moisture(centers, plates, plate_ids, noise)
        np.testing.assert_allclose(moisture, [0.7 * 0.9 + 0.3 * 0.2, 0.7 * 0.5 + 0.3 * 0.8])

    def test_moisture_is_clipped(self):
        centers = np.array([[1.0, 0.0, 0.0]])
        moisture = climate.compute_moisture(centers, [make_plate(0, 1.0)], np.array([0]), np.array([1.0]), 10.0)
        assert moisture[0] == 1.0

    def test_plate_moisture_factors(self):
        plates = [make_plate(i) for i in range(20)]
        updated = climate.assign_plate_moisture(plates, DeterministicRandomSource(4))
        again = climate.assign_plate_moisture(plates, DeterministicRandomSource(4))
        assert updated == again
        assert all(0.2 <= p.moisture_factor <= 0.8 for p in updated)
        assert [p.id for p in updated] == list(range(20))


class TestTemperature:
    def test_latitude_and_altitude(self):
        centers = np.array([
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [1.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
        ])
        elevation = np.array([0.0, 0.0, 0.4, -0.6])
        temperature = climate.compute_temperature(centers, elevation)
        np.testing.assert_allclose(temperature, [1.0, 0.0, 0.9, 0.95])

    def test_clipped_to_unit_range(self):
        centers = np.array([[0.0, -1.0, 0.0]])
        temperature = climate.compute_temperature(centers, np.array([1.0]))
        assert temperature[0] == 0.0


class TestWaterBodies:
    def test_ocean_and_lake(self):
        adjacency = path_adjacency(10)
        elevation = np.array([-0.5, -0.5, -0.4, -0.3, -0.2, -0.1, 0.2, -0.3, 0.1, 0.3])
        ocean, lake = climate.find_water_bodies(adjacency, elevation, lake_max_tiles=3)
        np.testing.assert_array_equal(np.flatnonzero(ocean), [0, 1, 2, 3, 4, 5])
        np.testing.assert_array_equal(np.flatnonzero(lake), [7])

    def test_water_is_ocean_or_lake_never_both(self):
        adjacency = path_adjacency(12)
        elevation = np.array([-0.3, 0.2, -0.3, -0.3, 0.2, -0.3, -0.3, -0.3, -0.3, -0.3, 0.2, -0.3])
        ocean, lake = climate.find_water_bodies(adjacency, elevation, lake_max_tiles=2)
        water = elevation <= -0.05
        np.testing.assert_array_equal(ocean | lake, water)
        assert not np.any(ocean & lake)

    def test_large_secondary_body_is_ocean(self):
        adjacency = path_adjacency(9)
        elevation = np.array([-0.3, -0.3, -0.3, -0.3, 0.2, -0.3, -0.3, -0.3, 0.2])
        ocean, lake = climate.find_water_bodies(adjacency, elevation, lake_max_tiles=2)
        assert not lake.any()
        assert ocean.sum() == 7

    def test_single_water_body_is_ocean(self):
        adjacency = path_adjacency(5)
        elevation = np.array([0.3, -0.3, 0.3, 0.3, 0.3])
        ocean, lake = climate.find_water_bodies(adjacency, elevation, lake_max_tiles=3)
        np.testing.assert_array_equal(ocean, [False, True, False, False, False])
        assert not lake.any()

    def test_no_water(self):
        adjacency = path_adjacency(5)
        ocean, lake = climate.find_water_bodies(adjacency, np.full(5, 0.5))
        assert not ocean.any()
        assert not lake.any()

    def test_sea_level_is_inclusive(self):
        adjacency = path_adjacency(3)
        ocean, _ = climate.find_water_bodies(adjacency, np.array([-0.05, 0.0, 0.5]))
        np.testing.assert_array_equal(ocean, [True, False, False])

    def test_lake_adjacency(self):
        adjacency = path_adjacency(10)
        is_lake = np.zeros(10, dtype=bool)
        is_lake[7] = True
        np.testing.assert_array_equal(np.flatnonzero(climate.lake_adjacency(adjacency, is_lake)), [6, 7, 8])

    def test_lake_size_limit(self):
        assert climate.lake_size_limit(100) == 3
        assert climate.lake_size_limit(10000) == 50
