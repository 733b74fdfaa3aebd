# planet_generator/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides functions for generating 3D Perlin noise sampled at
points on (or near) the unit sphere. It is designed to be a pure, stateless
utility.

Data Contract:
---------------
- Inputs:
    - p: A pre-shuffled permutation table (int array of length 512).
    - x, y, z: 1D NumPy arrays of coordinates.
    - octaves, persistence, lacunarity: Standard noise parameters.
- Outputs:
    - A 1D NumPy array of noise values (typically in the range [-1, 1]).
- Side Effects: None.
- Invariants: The output has the same length as the inputs.
================================================================================
"""

import numpy as np
from numba import njit

# The 12 cube-edge gradient vectors of improved Perlin noise.
_GRADIENT_VECTORS = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1],
], dtype=np.float64)


def create_permutation_table(rng) -> np.ndarray:
    """
    Builds a doubled 256-entry permutation table from a DeterministicRandomSource.
    The shuffle goes through the source (not numpy's RNG) so the table is
    reproducible from the planet seed alone.
    """
    p = list(range(256))
    rng.shuffle(p)
    p = np.array(p, dtype=np.int64)
    return np.stack([p, p]).flatten()


@njit
def _lerp(a, b, x):
    "Linear interpolation."
    return a + x * (b - a)

@njit
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)

@njit
def _gradient(h, x, y, z):
    """Calculates the dot product between a gradient vector and coordinates."""
    g = _GRADIENT_VECTORS[h % 12]
    return g[0] * x + g[1] * y + g[2] * z

@njit
def perlin_noise_3d(p, x, y, z, octaves=1, persistence=0.5, lacunarity=2.0):
    """
    Generate 3D Perlin noise at each (x[i], y[i], z[i]) sample using a
    pre-computed permutation table. JIT-compiled with Numba.
    """
    count = x.shape[0]
    total_noise = np.zeros(count)

    for i in range(count):
        noise_val = 0.0
        amplitude = 1.0
        frequency = 1.0

        for _ in range(octaves):
            x_sample = x[i] * frequency
            y_sample = y[i] * frequency
            z_sample = z[i] * frequency

            xi = int(np.floor(x_sample))
            yi = int(np.floor(y_sample))
            zi = int(np.floor(z_sample))

            xf = x_sample - xi
            yf = y_sample - yi
            zf = z_sample - zi

            u = _fade(xf)
            v = _fade(yf)
            w = _fade(zf)

            px0 = xi % 256
            px1 = (px0 + 1) % 256
            py0 = yi % 256
            py1 = (py0 + 1) % 256
            pz0 = zi % 256
            pz1 = (pz0 + 1) % 256

            # Numba requires scalar indexing
            h000 = p[p[p[px0] + py0] + pz0]
            h001 = p[p[p[px0] + py0] + pz1]
            h010 = p[p[p[px0] + py1] + pz0]
            h011 = p[p[p[px0] + py1] + pz1]
            h100 = p[p[p[px1] + py0] + pz0]
            h101 = p[p[p[px1] + py0] + pz1]
            h110 = p[p[p[px1] + py1] + pz0]
            h111 = p[p[p[px1] + py1] + pz1]

            g000 = _gradient(h000, xf, yf, zf)
            g100 = _gradient(h100, xf - 1, yf, zf)
            g010 = _gradient(h010, xf, yf - 1, zf)
            g110 = _gradient(h110, xf - 1, yf - 1, zf)
            g001 = _gradient(h001, xf, yf, zf - 1)
            g101 = _gradient(h101, xf - 1, yf, zf - 1)
            g011 = _gradient(h011, xf, yf - 1, zf - 1)
            g111 = _gradient(h111, xf - 1, yf - 1, zf - 1)

            x00 = _lerp(g000, g100, u)
            x10 = _lerp(g010, g110, u)
            x01 = _lerp(g001, g101, u)
            x11 = _lerp(g011, g111, u)
            y0 = _lerp(x00, x10, v)
            y1 = _lerp(x01, x11, v)
            octave_noise = _lerp(y0, y1, w)

            noise_val += octave_noise * amplitude
            amplitude *= persistence
            frequency *= lacunarity

        total_noise[i] = noise_val

    return total_noise


def fbm_on_sphere(p: np.ndarray, centers: np.ndarray, scale: float, octaves: int,
                  persistence: float = 0.5, lacunarity: float = 2.0) -> np.ndarray:
    """
    Samples fractal noise at unit-sphere points and normalizes it to [0, 1].
    Sampling in 3D avoids the seam and pole pinching of a lat/lon mapping.
    """
    scaled = np.ascontiguousarray(centers * scale, dtype=np.float64)
    raw = perlin_noise_3d(p, scaled[:, 0], scaled[:, 1], scaled[:, 2], octaves, persistence, lacunarity)

    # Theoretical bound of the octave sum (each Perlin octave is within [-1, 1]).
    max_amplitude = sum(abs(persistence) ** i for i in range(max(octaves, 1)))
    return np.clip((raw / max_amplitude + 1.0) / 2.0, 0.0, 1.0)
