"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray and hit record types, vector utilities
    sampling: Random direction sampling with an explicit random source
    cache: Lazily recomputed cached values
    transform: Hierarchical position/rotation/scale transforms
    stats: Ray counting and render statistics
    framebuffer: Taichi accumulation and display buffers
    integrator: Recursive path tracing
    progressive: Concurrent, cancellable, progressive render driver

Per-ray math uses NumPy; the framebuffer is backed by Taichi fields, so
``ti.init`` must be called before a render starts.
"""

from .cache import Cached
from .ray import (
    DEFAULT_T_MAX,
    SECONDARY_RAY_T_MIN,
    HitSide,
    Ray,
    RayHit,
    as_vec3,
    length,
    luminance,
    make_ray,
    near_zero,
    normalize,
    reflect,
    refract,
    schlick_fresnel,
    spawn_ray,
    transform_direction,
    transform_point,
    vec3,
)
from .sampling import (
    RandomSource,
    build_onb_from_normal,
    local_to_world,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_on_hemisphere,
    random_unit_vector,
    sample_cosine_hemisphere,
)
from .stats import RayCounter, RaytracingStats, StatsSnapshot
from .transform import Transform, safe_inverse

# Note: framebuffer, integrator and progressive are NOT imported here to avoid
# circular imports with the materials package. Import them directly, e.g.
#   from pathtracer.core.progressive import Raytracer

__all__ = [
    # Ray module
    "Ray",
    "RayHit",
    "HitSide",
    "make_ray",
    "spawn_ray",
    "vec3",
    "as_vec3",
    "length",
    "normalize",
    "near_zero",
    "reflect",
    "refract",
    "schlick_fresnel",
    "luminance",
    "transform_point",
    "transform_direction",
    "DEFAULT_T_MAX",
    "SECONDARY_RAY_T_MIN",
    # Sampling module
    "RandomSource",
    "random_unit_vector",
    "random_in_unit_sphere",
    "random_on_hemisphere",
    "random_in_unit_disk",
    "random_cosine_direction",
    "build_onb_from_normal",
    "local_to_world",
    "sample_cosine_hemisphere",
    # Cache, stats and transform
    "Cached",
    "RayCounter",
    "RaytracingStats",
    "StatsSnapshot",
    "Transform",
    "safe_inverse",
]
