"""Recursive path tracing integrator.

``trace_ray`` follows one light path backwards from the camera. Each call
finds the closest surface, asks its material how the light scatters, and
recurses with the scattered ray until the path escapes to the environment,
hits an emitter, is absorbed, or runs out of depth. Recursion depth alone
bounds the cost; there is no stochastic early termination. Noise averages
out over the samples taken per pixel.

Key features:
    - Material dispatch over the closed set of material types
    - Per-task ray counting for lock-free statistics
    - Explicit random source for reproducible sampling

Example:
    >>> import numpy as np
    >>> from pathtracer.core.integrator import trace_ray
    >>> rng = np.random.default_rng(0)
    >>> color = trace_ray(camera.get_ray_through_pixel(10.5, 20.5, 64, 64), scene, 8, rng)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from pathtracer.core.ray import Ray, RayHit, Vec3
from pathtracer.core.sampling import RandomSource
from pathtracer.core.stats import RayCounter
from pathtracer.materials.base import Material, MaterialType, ScatterResult
from pathtracer.materials.diffuse import scatter_diffuse
from pathtracer.materials.emissive import scatter_emissive
from pathtracer.materials.metal import scatter_metal
from pathtracer.materials.transparent import scatter_transparent

if TYPE_CHECKING:
    from pathtracer.scene.scene import Scene


def scatter(material: Material, ray: Ray, hit: RayHit, rng: RandomSource) -> ScatterResult:
    """Dispatch a surface interaction to the material's scattering model.

    Raises:
        TypeError: If the material is not one of the known variants.
    """
    material_type = getattr(material, "material_type", None)
    if material_type == MaterialType.DIFFUSE:
        return scatter_diffuse(material, ray, hit, rng)  # type: ignore[arg-type]
    elif material_type == MaterialType.METAL:
        return scatter_metal(material, ray, hit, rng)  # type: ignore[arg-type]
    elif material_type == MaterialType.TRANSPARENT:
        return scatter_transparent(material, ray, hit, rng)  # type: ignore[arg-type]
    elif material_type == MaterialType.EMISSIVE:
        return scatter_emissive(material, ray, hit, rng)  # type: ignore[arg-type]
    raise TypeError(f"Unsupported material: {material!r}")


def trace_ray(
    ray: Ray,
    scene: Scene,
    depth: int,
    rng: RandomSource,
    counter: RayCounter | None = None,
) -> Vec3:
    """Compute the radiance arriving along a ray.

    Args:
        ray: The ray to follow, in world space.
        scene: The scene to trace against.
        depth: Remaining number of rays this path may trace. At zero the
            path contributes nothing.
        rng: Random source for material sampling.
        counter: Optional per-task statistics.

    Returns:
        Linear RGB radiance as a float64 array of shape (3,).
    """
    if depth <= 0:
        return np.zeros(3, dtype=np.float64)
    if counter is not None:
        counter.record(depth)

    hit = scene.closest_hit(ray)
    if hit is None:
        return np.asarray(scene.background(ray.direction), dtype=np.float64)

    result = scatter(hit.hit_object.material, ray, hit, rng)
    if result.emitted is not None:
        return np.asarray(result.emitted, dtype=np.float64)
    if result.scattered is None:
        return np.zeros(3, dtype=np.float64)

    return result.attenuation * trace_ray(result.scattered, scene, depth - 1, rng, counter)
