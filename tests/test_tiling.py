"""Tests for spherical tiling."""

import math

import numpy as np
import pytest

from planet_generator import tiling
from planet_generator.exceptions import ConfigurationError, DegenerateGeometryError
from planet_generator.random_source import DeterministicRandomSource
from planet_generator.tiling import SphericalTiling, TilingAlgorithm, generate_fibonacci_points, triangulate


@pytest.fixture(scope="module")
def graph():
    return SphericalTiling(200, 0.5, TilingAlgorithm.FIBONACCI_GOLDEN).generate(DeterministicRandomSource(42))


class TestFibonacciPoints:
    def test_poles_and_unit_length(self):
        points = generate_fibonacci_points(50, 0.0, TilingAlgorithm.FIBONACCI_GOLDEN, DeterministicRandomSource(1))
        np.testing.assert_allclose(points[0], [0.0, 1.0, 0.0])
        np.testing.assert_allclose(points[-1], [0.0, -1.0, 0.0])
        np.testing.assert_allclose(np.linalg.norm(points, axis=1), 1.0)

    def test_zero_jitter_draws_nothing(self):
        rng = DeterministicRandomSource(9)
        generate_fibonacci_points(50, 0.0, TilingAlgorithm.FIBONACCI_SPIRAL, rng)
        assert rng.next_uint32() == DeterministicRandomSource(9).next_uint32()

    def test_jitter_draws_two_floats_per_spiral_point(self):
        rng = DeterministicRandomSource(9)
        generate_fibonacci_points(10, 0.5, TilingAlgorithm.FIBONACCI_GOLDEN, rng)
        reference = DeterministicRandomSource(9)
        for _ in range(2 * 8):
            reference.next_float()
        assert rng.next_uint32() == reference.next_uint32()

    def test_jitter_keeps_poles_fixed(self):
        points = generate_fibonacci_points(50, 1.0, TilingAlgorithm.FIBONACCI_GOLDEN, DeterministicRandomSource(1))
        np.testing.assert_allclose(points[0], [0.0, 1.0, 0.0])
        np.testing.assert_allclose(points[-1], [0.0, -1.0, 0.0])
        np.testing.assert_allclose(np.linalg.norm(points, axis=1), 1.0)

    def test_algorithms_differ(self):
        golden = generate_fibonacci_points(30, 0.0, TilingAlgorithm.FIBONACCI_GOLDEN, DeterministicRandomSource(1))
        spiral = generate_fibonacci_points(30, 0.0, TilingAlgorithm.FIBONACCI_SPIRAL, DeterministicRandomSource(1))
        assert not np.allclose(golden, spiral)


class TestTileGraph:
    def test_euler_formula(self, graph):
        assert graph.num_tiles - graph.num_edges + graph.triangles.shape[0] == 2

    def test_neighbors_are_symmetric_and_sorted(self, graph):
        for tile_id, neighbors in enumerate(graph.neighbors):
            assert list(neighbors) == sorted(neighbors)
            assert tile_id not in neighbors
            for neighbor_id in neighbors:
                assert tile_id in graph.neighbors[neighbor_id]

    def test_adjacency_matches_neighbor_lists(self, graph):
        assert (graph.adjacency != graph.adjacency.T).nnz == 0
        for tile_id, neighbors in enumerate(graph.neighbors):
            assert tuple(graph.adjacency[tile_id].indices) == neighbors

    def test_every_tile_has_at_least_three_neighbors(self, graph):
        assert min(len(n) for n in graph.neighbors) >= 3

    def test_areas_sum_to_sphere(self, graph):
        assert np.all(graph.areas >= 0)
        assert graph.areas.sum() == pytest.approx(4 * math.pi, rel=1e-6)

    def test_same_seed_same_graph(self, graph):
        again = SphericalTiling(200, 0.5, 1).generate(DeterministicRandomSource(42))
        np.testing.assert_array_equal(graph.centers, again.centers)
        assert graph.neighbors == again.neighbors

    def test_spiral_algorithm(self):
        spiral = SphericalTiling(64, 0.2, "fibonacci_spiral").generate(DeterministicRandomSource(5))
        assert spiral.num_tiles - spiral.num_edges + spiral.triangles.shape[0] == 2

    def test_smallest_sphere(self):
        tetra = SphericalTiling(4, 0.0, 1).generate(DeterministicRandomSource(5))
        assert tetra.num_tiles == 4
        assert all(len(n) == 3 for n in tetra.neighbors)


class TestTriangulate:
    def test_duplicate_sites_rejected(self):
        points = np.array([
            [0.0, 1.0, 0.0], [0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0],
        ])
        with pytest.raises(DegenerateGeometryError):
            triangulate(points)

    def test_interior_site_rejected(self):
        points = np.array([
            [1.0, 0.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
            [0.0, -1.0, 0.0], [0.0, 0.0, 1.0], [0.0, 0.0, -1.0], [0.1, 0.1, 0.1],
        ])
        with pytest.raises(DegenerateGeometryError):
            triangulate(points)


class TestRetries:
    def test_retries_then_succeeds(self, monkeypatch):
        real_triangulate = tiling.triangulate
        calls = []

        def flaky(points, logger=None):
            calls.append(points)
            if len(calls) < 3:
                raise DegenerateGeometryError("simulated")
            return real_triangulate(points, logger)

        monkeypatch.setattr(tiling, "triangulate", flaky)
        result = SphericalTiling(50, 0.0, 1).generate(DeterministicRandomSource(1))
        assert len(calls) == 3
        assert result.num_tiles == 50
        # Retries re-perturb with at least the minimum retry jitter.
        assert not np.allclose(calls[0], calls[1])

    def test_gives_up_after_max_retries(self, monkeypatch):
        calls = []

        def always_fails(points, logger=None):
            calls.append(points)
            raise DegenerateGeometryError("simulated")

        monkeypatch.setattr(tiling, "triangulate", always_fails)
        with pytest.raises(DegenerateGeometryError):
            SphericalTiling(50, 0.5, 1, max_retries=3).generate(DeterministicRandomSource(1))
        assert len(calls) == 4


class TestValidation:
    @pytest.mark.parametrize("num_tiles", [0, 3, -10, 2.5, "100", True])
    def test_invalid_tile_count(self, num_tiles):
        with pytest.raises(ConfigurationError):
            SphericalTiling(num_tiles, 0.5, 1)

    @pytest.mark.parametrize("jitter", [-0.1, 1.5, "0.5", None])
    def test_invalid_jitter(self, jitter):
        with pytest.raises(ConfigurationError):
            SphericalTiling(100, jitter, 1)

    @pytest.mark.parametrize("algorithm", [0, 3, "hexagonal", None])
    def test_unknown_algorithm(self, algorithm):
        with pytest.raises(ConfigurationError):
            SphericalTiling(100, 0.5, algorithm)

    def test_algorithm_parsing(self):
        assert TilingAlgorithm.parse(2) is TilingAlgorithm.FIBONACCI_SPIRAL
        assert TilingAlgorithm.parse("fibonacci_golden") is TilingAlgorithm.FIBONACCI_GOLDEN
        assert TilingAlgorithm.parse(TilingAlgorithm.FIBONACCI_SPIRAL) is TilingAlgorithm.FIBONACCI_SPIRAL
