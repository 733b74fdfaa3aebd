# planet_generator/runtime/__init__.py

# This file makes the 'runtime' directory a Python package.
# It also defines the public API of the package.

from .world import World
from .worker import RegenerationWorker, generate_planet_job
from .throttle import UpdateThrottle

__all__ = ["World", "RegenerationWorker", "generate_planet_job", "UpdateThrottle"]
