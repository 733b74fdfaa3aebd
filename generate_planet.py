# generate_planet.py

"""
================================================================================
OFFLINE PLANET GENERATOR SCRIPT
================================================================================
This script is a command-line tool for generating one or more planets from a
JSON configuration and saving their tile data and a summary report. Several
seeds are generated in parallel, one planet per worker process.

Output, per seed:
    <output>/seed_<seed>/summary.json  - counts, ranges and terrain statistics
    <output>/seed_<seed>/tiles.npz     - per-tile arrays and RGB color arrays

Usage:
    python generate_planet.py --config planet_config.json
    python generate_planet.py --config planet_config.json --seeds 1 2 my-world
================================================================================
"""
import os
import re
import sys
import json
import logging
import argparse
import time
import multiprocessing

import numpy as np
from tqdm import tqdm

from planet_generator.generator import PlanetGenerator
from planet_generator.exceptions import PlanetGenerationError
from planet_generator import color_maps
from planet_generator import config as DEFAULTS


def parse_seed(raw: str):
    """Numeric seeds stay numeric; anything else is a string seed."""
    try:
        return int(raw)
    except ValueError:
        return raw


def build_tile_arrays(planet) -> dict:
    """Collects every per-tile array of a planet, plus the renderer color arrays."""
    temperature_lut = color_maps.create_temperature_lut()
    moisture_lut = color_maps.create_moisture_lut()
    return {
        "centers": planet.centers,
        "areas": planet.graph.areas,
        "plate_ids": planet.plate_ids,
        "elevation": planet.elevation,
        "moisture": planet.moisture,
        "temperature": planet.temperature,
        "ocean_connected": planet.ocean_connected,
        "has_lake": planet.has_lake,
        "terrain": np.array([str(t) for t in planet.terrain]),
        "terrain_colors": color_maps.get_terrain_color_array(planet.terrain, planet.elevation),
        "elevation_colors": color_maps.get_elevation_color_array(planet.elevation),
        "temperature_colors": color_maps.get_temperature_color_array(planet.temperature, temperature_lut),
        "moisture_colors": color_maps.get_moisture_color_array(planet.moisture, moisture_lut),
        "tectonic_colors": color_maps.get_tectonic_color_array(
            planet.plate_ids, len(planet.plates),
            planet.settings['resolved_seed'] + DEFAULTS.PLATE_COLOR_SEED_OFFSET,
        ),
    }


def generate_one(settings: dict) -> dict:
    """
    Generates a single planet. Runs in a worker process and returns only
    plain data, so nothing but arrays crosses the process boundary.
    """
    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    try:
        planet = PlanetGenerator(settings, worker_logger).generate()
    except PlanetGenerationError as e:
        worker_logger.error(f"Generation failed for seed {settings.get('seed')!r}: {e}")
        return {"seed": settings.get("seed"), "error": str(e)}
    return {"seed": settings.get("seed"), "summary": planet.summary(), "arrays": build_tile_arrays(planet)}


def planet_dir_name(seed) -> str:
    """A directory name for a seed; anything but letters, digits, "-", "_" and "." becomes "_"."""
    return "seed_" + re.sub(r"[^A-Za-z0-9_.-]", "_", str(seed))


def save_result(result: dict, output_dir: str) -> str:
    planet_dir = os.path.join(output_dir, planet_dir_name(result["seed"]))
    os.makedirs(planet_dir, exist_ok=True)
    with open(os.path.join(planet_dir, "summary.json"), 'w') as f:
        json.dump(result["summary"], f, indent=2)
    np.savez_compressed(os.path.join(planet_dir, "tiles.npz"), **result["arrays"])
    return planet_dir


# --- Main Generation Function ---
def generate_planets(config_path: str, seeds: list = None, output_dir: str = None, workers: int = None) -> int:
    """
    Loads a configuration, generates a planet for each seed and saves the
    results. Returns the number of failed planets.
    """
    # 1. --- Setup Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("PlanetGenerator")

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {config_path}")
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return 1

    planet_params = config.get('planet_generation_parameters', {})
    output_dir = output_dir or config.get('output_directory', "generated_planets")
    if not seeds:
        seeds = [planet_params.get('seed', DEFAULTS.DEFAULT_SEED)]
    tasks = [dict(planet_params, seed=seed) for seed in seeds]

    # 3. --- Validate every task before starting any work ---
    for settings in tasks:
        try:
            PlanetGenerator(settings, logger)
        except PlanetGenerationError as e:
            logger.critical(f"Invalid configuration for seed {settings['seed']!r}: {e}")
            return len(tasks)

    # 4. --- Main Generation Loop (Parallelized) ---
    num_workers = workers or max(1, min(len(tasks), multiprocessing.cpu_count() - 1))
    logger.info(f"Generating {len(tasks)} planet(s) with {num_workers} worker process(es)...")
    start_time = time.perf_counter()

    failures = 0
    with multiprocessing.Pool(processes=num_workers) as pool:
        results_iterator = pool.imap_unordered(generate_one, tasks)
        for result in tqdm(results_iterator, total=len(tasks), desc="Generating Planets"):
            if "error" in result:
                failures += 1
                continue
            planet_dir = save_result(result, output_dir)
            summary = result["summary"]
            logger.info(
                f"Seed {result['seed']!r}: {summary['num_tiles']} tiles, {summary['num_plates']} plates, "
                f"{summary['ocean_tiles']} ocean / {summary['lake_tiles']} lake tiles -> {planet_dir}"
            )
            top_terrain = sorted(summary["terrain"].items(), key=lambda item: -item[1])[:5]
            logger.info("  Terrain: " + ", ".join(f"{name}={count}" for name, count in top_terrain))

    end_time = time.perf_counter()
    logger.info(f"Generation complete! Total time: {end_time - start_time:.2f} seconds.")
    if failures:
        logger.error(f"{failures} of {len(tasks)} planet(s) failed.")
    return failures


# --- Command-Line Interface ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Offline generator for the procedural planet pipeline.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the JSON configuration file for the planet(s) to generate."
    )
    parser.add_argument(
        "--seeds",
        nargs="+",
        type=parse_seed,
        help="One or more seeds. Overrides the seed in the configuration file."
    )
    parser.add_argument("--output", type=str, help="Output directory for the generated planets.")
    parser.add_argument("--workers", type=int, help="Number of worker processes.")
    args = parser.parse_args()

    sys.exit(1 if generate_planets(args.config, args.seeds, args.output, args.workers) else 0)
