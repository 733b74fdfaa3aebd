"""Tests for the World runtime and the update throttle."""

import logging
import math

import pytest

from planet_generator.color_maps import NEUTRAL_GRAY
from planet_generator.exceptions import ConfigurationError
from planet_generator.runtime import UpdateThrottle, World
from planet_generator.terrain import TerrainId, hosts_vegetation
from planet_generator.vegetation import LODTier

TIERS = (
    LODTier("near", 500.0, 10, 80),
    LODTier("far", math.inf, None, 4),
)


@pytest.fixture
def world(logger):
    return World(logger, lod_tiers=TIERS)


class TestEmptyWorld:
    def test_no_planet(self, world):
        assert world.planet is None
        assert world.get_tile(0) is None
        assert world.update_lod((0.0, 0.0, 0.0)) == {}
        assert world.estimate_lod_memory_bytes() == 0

    def test_for_each_tile_is_a_no_op(self, world):
        seen = []
        world.for_each_tile(seen.append)
        assert seen == []

    def test_set_elevation_bias_requires_a_planet(self, world):
        with pytest.raises(ConfigurationError):
            world.set_elevation_bias(0.1)

    def test_lookups_work_without_a_planet(self, world):
        assert world.color_for(TerrainId.FOREST) == (85, 107, 47)
        assert world.color_for_temperature(0.5) == (135, 206, 235)
        assert world.color_for_moisture(None) == NEUTRAL_GRAY
        assert world.classify({"elevation": -0.3, "moisture": 0.5, "temperature": 0.5,
                               "is_ocean_connected": True}) is TerrainId.OCEAN


class TestGeneration:
    def test_generate_publishes(self, world, small_settings):
        planet = world.generate(small_settings)
        assert world.planet is planet
        assert world.get_tile(3).id == 3
        seen = []
        world.for_each_tile(lambda tile: seen.append(tile.id))
        assert seen == list(range(planet.num_tiles))

    def test_failed_generate_keeps_previous_planet(self, world, small_settings, caplog):
        planet = world.generate(small_settings)
        lod = world.update_lod((0.0, 1000.0, 0.0), now=0.0)
        with caplog.at_level(logging.ERROR):
            with pytest.raises(ConfigurationError):
                world.generate({"num_tiles": 5, "num_plates": 10})
        assert world.planet is planet
        assert world.update_lod((0.0, 1000.0, 0.0), now=0.01) is lod
        assert "keeping the current planet" in caplog.text

    def test_set_elevation_bias_reuses_geometry(self, world, small_settings):
        planet = world.generate(small_settings)
        biased = world.set_elevation_bias(0.25)
        assert world.planet is biased
        assert biased.graph is planet.graph
        assert biased.settings["elevation_bias"] == 0.25

    def test_invalid_bias_keeps_planet(self, world, small_settings):
        planet = world.generate(small_settings)
        with pytest.raises(ConfigurationError):
            world.set_elevation_bias(float("nan"))
        assert world.planet is planet

    def test_classify_follows_planet_sea_level(self, world, small_settings):
        shallow = {"elevation": 0.05, "moisture": 0.6, "temperature": 0.5, "is_ocean_connected": True}
        world.generate(dict(small_settings, sea_level=0.1))
        assert world.classify(shallow) is TerrainId.OCEAN
        world.generate(small_settings)
        assert world.classify(shallow) is not TerrainId.OCEAN

    def test_published_terrain_matches_classify(self, world, small_settings):
        planet = world.generate(dict(small_settings, sea_level=0.1))
        for tile in planet.tiles():
            assert world.classify(tile) is tile.terrain


class TestLODUpdates:
    def test_throttled_updates_return_previous_result(self, world, small_settings):
        world.generate(small_settings)
        first = world.update_lod((0.0, 1000.0, 0.0), now=0.0)
        assert world.update_lod((0.0, -1000.0, 0.0), now=0.05) is first
        second = world.update_lod((0.0, -1000.0, 0.0), now=0.2)
        assert second is not first
        assert set(second) == {"near", "far"}

    def test_tier_counts_cover_all_vegetation(self, world, small_settings):
        planet = world.generate(small_settings)
        result = world.update_lod((0.0, 1000.0, 0.0), now=0.0)
        vegetated = sum(1 for t in planet.terrain if hosts_vegetation(t))
        assert sum(batch.count for batch in result.values()) == vegetated
        assert result["near"].count <= 10
        assert world.estimate_lod_memory_bytes() == (80 + 4) * 24 + vegetated * 64

    def test_publish_resets_lod(self, world, small_settings):
        world.generate(small_settings)
        first = world.update_lod((0.0, 1000.0, 0.0), now=0.0)
        world.set_elevation_bias(0.1)
        assert world.update_lod((0.0, 1000.0, 0.0), now=0.01) is not first


class TestUpdateThrottle:
    def test_first_call_is_ready(self):
        assert UpdateThrottle(100).ready(now=5.0)

    def test_interval(self):
        throttle = UpdateThrottle(100)
        assert throttle.ready(now=0.0)
        assert not throttle.ready(now=0.099)
        assert throttle.ready(now=0.1)
        assert not throttle.ready(now=0.15)

    def test_reset(self):
        throttle = UpdateThrottle(100)
        throttle.ready(now=0.0)
        throttle.reset()
        assert throttle.ready(now=0.01)

    def test_injected_clock(self):
        ticks = iter([0.0, 0.05, 0.3])
        throttle = UpdateThrottle(100, clock=lambda: next(ticks))
        assert [throttle.ready(), throttle.ready(), throttle.ready()] == [True, False, True]
