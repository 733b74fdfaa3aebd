# planet_generator/random_source.py

"""
================================================================================
DETERMINISTIC RANDOM SOURCE
================================================================================
A seedable Mulberry32 generator. Every random draw in a generation pass comes
from one of these, so an identical seed reproduces an identical planet.

Data Contract:
---------------
- Inputs: A seed (int, float or str). Anything else falls back to the default.
- Outputs: Unsigned 32-bit integers, floats in [0, 1), inclusive int ranges.
- Side Effects: Advances the internal state on every draw.
- Invariants: The output sequence for a given seed is identical across
  platforms. All scrambling arithmetic wraps at 32 bits exactly.
================================================================================
"""
import math

from . import config as DEFAULTS

_UINT32_MASK = 0xFFFFFFFF
_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _to_int32(value: int) -> int:
    """Wraps an integer to a signed 32-bit value."""
    value &= _UINT32_MASK
    return value - 0x100000000 if value & 0x80000000 else value


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply on unsigned operands."""
    return (a * b) & _UINT32_MASK


def _utf16_code_units(text: str):
    """Yields the first UTF-16 code unit of each code point."""
    for char in text:
        code = ord(char)
        if code > 0xFFFF:
            # High surrogate of the pair
            code = 0xD800 + ((code - 0x10000) >> 10)
        yield code


def hash_string_seed(text: str) -> int:
    """
    Rolling hash of a string seed: acc = ((acc << 5) - acc) + code.
    The shift operates on a signed 32-bit view of the accumulator, while the
    subtraction and addition are exact.
    """
    acc = 0
    for code in _utf16_code_units(text):
        shifted = _to_int32(_to_int32(acc) << 5)
        acc = shifted - acc + code
    return acc


def normalize_seed(seed) -> int:
    """Converts a raw seed into a positive, non-zero integer."""
    if isinstance(seed, str):
        numeric_seed = hash_string_seed(seed)
    elif isinstance(seed, (int, float)) and not isinstance(seed, bool):
        if isinstance(seed, float) and not math.isfinite(seed):
            return DEFAULTS.DEFAULT_SEED
        numeric_seed = math.floor(seed)
    else:
        numeric_seed = DEFAULTS.DEFAULT_SEED

    numeric_seed = abs(int(numeric_seed))
    return DEFAULTS.DEFAULT_SEED if numeric_seed == 0 else numeric_seed


class DeterministicRandomSource:
    """Mulberry32 PRNG with helpers for ranges and shuffling."""

    def __init__(self, seed=None):
        self.seed = normalize_seed(seed)
        self._state = self.seed & _UINT32_MASK

    def next_uint32(self) -> int:
        """Advances the state and returns a value in [0, 2**32)."""
        self._state = (self._state + _MULBERRY_INCREMENT) & _UINT32_MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _UINT32_MASK
        return (t ^ (t >> 14)) & _UINT32_MASK

    def next_float(self) -> float:
        return self.next_uint32() / _TWO_POW_32

    def next_int(self, min_value: int, max_value: int) -> int:
        """Returns an integer in [min_value, max_value], both inclusive."""
        return math.floor(self.next_float() * (max_value - min_value + 1)) + min_value

    def next_range(self, low: float, high: float) -> float:
        return low + self.next_float() * (high - low)

    def shuffle(self, sequence) -> None:
        """In-place Fisher-Yates shuffle."""
        for i in range(len(sequence) - 1, 0, -1):
            j = self.next_int(0, i)
            sequence[i], sequence[j] = sequence[j], sequence[i]

    def fork(self, offset: int) -> "DeterministicRandomSource":
        """
        Returns an independent stream derived from this source's seed. Forking
        does not consume draws from this source.
        """
        return DeterministicRandomSource(self.seed + offset)

    def __repr__(self):
        return f"DeterministicRandomSource(seed={self.seed})"
