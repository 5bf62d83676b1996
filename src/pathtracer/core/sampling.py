"""Random sampling helpers for Monte Carlo light transport.

Every function takes an explicit random source instead of reaching for a
global generator, so each render task owns its randomness and tests can
inject deterministic sequences. A random source is anything with a
``random()`` method returning a float in [0, 1); ``numpy.random.Generator``
and ``random.Random`` both qualify.

All samplers draw a fixed number of values and never use rejection loops,
so a stub that always returns the same number cannot stall them.

Example:
    >>> import numpy as np
    >>> from pathtracer.core.sampling import random_unit_vector
    >>> rng = np.random.default_rng(7)
    >>> v = random_unit_vector(rng)
"""

from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from pathtracer.core.ray import Vec3, normalize


class RandomSource(Protocol):
    """Minimal interface of a random number generator."""

    def random(self) -> float: ...


def random_unit_vector(rng: RandomSource) -> Vec3:
    """Generate a uniformly distributed unit vector on the sphere."""
    z = 1.0 - 2.0 * rng.random()
    r = math.sqrt(max(0.0, 1.0 - z * z))
    phi = 2.0 * math.pi * rng.random()
    return np.array((r * math.cos(phi), r * math.sin(phi), z), dtype=np.float64)


def random_in_unit_sphere(rng: RandomSource) -> Vec3:
    """Generate a uniformly distributed point inside the unit sphere."""
    return random_unit_vector(rng) * rng.random() ** (1.0 / 3.0)


def random_on_hemisphere(normal: Vec3, rng: RandomSource) -> Vec3:
    """Generate a uniform unit vector in the hemisphere around a normal."""
    v = random_unit_vector(rng)
    if float(np.dot(v, normal)) < 0.0:
        return -v
    return v


def random_in_unit_disk(rng: RandomSource) -> Vec3:
    """Generate a uniform point in the unit disk on the XY plane (z = 0)."""
    r = math.sqrt(rng.random())
    theta = 2.0 * math.pi * rng.random()
    return np.array((r * math.cos(theta), r * math.sin(theta), 0.0), dtype=np.float64)


def random_cosine_direction(rng: RandomSource) -> Vec3:
    """Generate a cosine-weighted direction around +Z in local coordinates.

    Uses Malley's method: sample the unit disk uniformly, then project up
    onto the hemisphere. The resulting pdf is cos(theta) / pi.
    """
    r1 = rng.random()
    r2 = rng.random()
    phi = 2.0 * math.pi * r1
    sqrt_r2 = math.sqrt(r2)
    return np.array(
        (math.cos(phi) * sqrt_r2, math.sin(phi) * sqrt_r2, math.sqrt(max(0.0, 1.0 - r2))),
        dtype=np.float64,
    )


def build_onb_from_normal(normal: Vec3) -> tuple[Vec3, Vec3, Vec3]:
    """Build an orthonormal basis with w aligned to the normal.

    Returns:
        Tuple (u, v, w) of unit vectors.
    """
    w = normalize(normal)
    helper = np.array((0.0, 1.0, 0.0)) if abs(w[0]) > 0.9 else np.array((1.0, 0.0, 0.0))
    v = normalize(np.cross(w, helper))
    u = np.cross(w, v)
    return u, v, w


def local_to_world(local: Vec3, u: Vec3, v: Vec3, w: Vec3) -> Vec3:
    """Express a local-space direction in the basis (u, v, w)."""
    return local[0] * u + local[1] * v + local[2] * w


def sample_cosine_hemisphere(normal: Vec3, rng: RandomSource) -> Vec3:
    """Generate a cosine-weighted unit direction around a normal."""
    u, v, w = build_onb_from_normal(normal)
    return normalize(local_to_world(random_cosine_direction(rng), u, v, w))
