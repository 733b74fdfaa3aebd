"""Shared fixtures for the planet generator tests."""

import logging

import pytest

from planet_generator.generator import PlanetGenerator

SMALL_SETTINGS = {"seed": 42, "num_tiles": 100, "num_plates": 8, "jitter": 0.5}


@pytest.fixture
def logger():
    return logging.getLogger("planet_generator.tests")


@pytest.fixture
def small_settings():
    return dict(SMALL_SETTINGS)


@pytest.fixture(scope="session")
def small_planet():
    """A 100-tile planet, generated once for the whole session."""
    return PlanetGenerator(dict(SMALL_SETTINGS), logging.getLogger("planet_generator.tests")).generate()


@pytest.fixture(scope="session")
def medium_planet():
    return PlanetGenerator(
        {"seed": "medium", "num_tiles": 800, "num_plates": 12},
        logging.getLogger("planet_generator.tests"),
    ).generate()
