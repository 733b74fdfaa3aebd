# planet_generator/runtime/throttle.py

"""
A minimal rate limiter for per-frame work such as vegetation LOD updates.
The clock is injectable so callers (and tests) can drive time explicitly.
"""
import time

from .. import config as DEFAULTS


class UpdateThrottle:
    """Allows at most one update per interval."""

    def __init__(self, interval_ms: float = DEFAULTS.LOD_UPDATE_INTERVAL_MS, clock=time.monotonic):
        self.interval_s = interval_ms / 1000.0
        self.clock = clock
        self._last_update = None

    def ready(self, now: float = None) -> bool:
        """
        Returns True (and starts a new interval) if the previous update is at
        least one interval old. The first call is always ready.
        """
        now = self.clock() if now is None else now
        if self._last_update is not None and now - self._last_update < self.interval_s:
            return False
        self._last_update = now
        return True

    def reset(self):
        self._last_update = None
