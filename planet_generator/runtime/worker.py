# planet_generator/runtime/worker.py

"""
================================================================================
BACKGROUND REGENERATION
================================================================================
Runs planet generation in a separate process so the caller (a UI loop, a
server) never blocks on it.

Data Contract:
---------------
- Inputs: Settings dictionaries, one per request(); periodic poll() calls.
- Outputs: The finished Planet, handed to the on_publish callback.
- Side Effects: Starts and terminates worker processes.
- Invariants: Only the result of the most recent request is ever published.
  A newer request cancels the in-flight job; any older result that still
  completes is discarded. A failed or timed-out job never touches the
  published planet.
================================================================================
"""
import logging
import multiprocessing
import time
from typing import Callable, Optional

from ..exceptions import GenerationTimeoutError
from ..generator import PlanetGenerator
from ..models import Planet


def generate_planet_job(settings: dict) -> Planet:
    """
    A worker function that runs one full generation pass.
    This is designed to be run in a separate process.
    """
    logger = logging.getLogger(__name__)
    try:
        logger.info("WORKER: Starting planet generation...")
        planet = PlanetGenerator(settings, logger).generate()
        logger.info("WORKER: Planet generation complete.")
        return planet
    except Exception as e:
        # Use exc_info=True to log the full traceback from the worker process
        logger.critical(f"WORKER: An exception occurred during planet generation: {e}", exc_info=True)
        raise


class _Job:
    def __init__(self, token: int, pool, result, started: float):
        self.token = token
        self.pool = pool
        self.result = result
        self.started = started


class RegenerationWorker:
    """
    Background regeneration with cancellation and atomic publish.

    Args:
        on_publish: Called with the new Planet when the latest job finishes.
        logger: The logger instance for all output.
        timeout_s: Optional wall-clock budget per job.
        pool_factory: Creates the single-process pool for each job.
        clock: Monotonic time source used for the timeout.
    """
    def __init__(self, on_publish: Callable[[Planet], None], logger: logging.Logger = None,
                 timeout_s: Optional[float] = None, pool_factory=None, clock=time.monotonic):
        self.on_publish = on_publish
        self.logger = logger or logging.getLogger(__name__)
        self.timeout_s = timeout_s
        self.pool_factory = pool_factory or (lambda: multiprocessing.Pool(processes=1))
        self.clock = clock
        self.latest_token = 0
        self._jobs = []

    @property
    def busy(self) -> bool:
        return bool(self._jobs)

    def request(self, settings: dict, cancel_previous: bool = True) -> int:
        """
        Starts a generation job and returns its token. By default any job
        still in flight is terminated first.
        """
        if cancel_previous and self._jobs:
            for job in self._jobs:
                self.logger.info(f"Cancelling in-flight generation job #{job.token}.")
                self._terminate(job)
            self._jobs = []

        self.latest_token += 1
        pool = self.pool_factory()
        result = pool.apply_async(generate_planet_job, (dict(settings),))
        self._jobs.append(_Job(self.latest_token, pool, result, self.clock()))
        self.logger.info(f"Started generation job #{self.latest_token}.")
        return self.latest_token

    def poll(self) -> Optional[Planet]:
        """
        Checks the in-flight jobs. Publishes and returns the Planet when the
        latest job has finished; returns None otherwise.

        Raises:
            GenerationTimeoutError: If the latest job exceeded timeout_s.
            Exception: Whatever the latest job raised in the worker process.
        """
        published = None
        for job in list(self._jobs):
            if not job.result.ready():
                if self.timeout_s is not None and self.clock() - job.started > self.timeout_s:
                    self._jobs.remove(job)
                    self._terminate(job)
                    if job.token == self.latest_token:
                        raise GenerationTimeoutError(
                            f"Generation job #{job.token} exceeded {self.timeout_s:.1f}s and was terminated."
                        )
                continue

            self._jobs.remove(job)
            self._release(job)
            if job.token != self.latest_token:
                self.logger.debug(f"Discarding stale result of generation job #{job.token}.")
                continue

            try:
                planet = job.result.get()
            except Exception as e:
                self.logger.error(f"Generation job #{job.token} failed; keeping the current planet: {e}")
                raise
            self.logger.info(f"Generation job #{job.token} complete. Publishing {planet!r}.")
            self.on_publish(planet)
            published = planet
        return published

    def close(self):
        """Terminates every in-flight job and releases the pools."""
        for job in self._jobs:
            self._terminate(job)
        self._jobs = []

    def _terminate(self, job: _Job):
        job.pool.terminate()
        job.pool.join()

    def _release(self, job: _Job):
        job.pool.close()
        job.pool.join()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
