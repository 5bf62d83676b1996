"""Diffuse (Lambertian) material.

Incident light is scattered around the surface normal with a
cosine-weighted distribution. Because the sampling pdf (cos(theta) / pi)
cancels the Lambertian BRDF times the cosine term, the path weight is
simply the albedo.

Example:
    >>> from pathtracer.materials.diffuse import DiffuseMaterial
    >>> clay = DiffuseMaterial(color=(0.8, 0.3, 0.3))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from pathtracer.core.ray import Ray, RayHit, near_zero, spawn_ray
from pathtracer.core.sampling import RandomSource, sample_cosine_hemisphere
from pathtracer.materials.base import Material, MaterialType, ScatterResult


@dataclass(eq=False)
class DiffuseMaterial(Material):
    """Ideal diffuse reflector."""

    material_type: ClassVar[MaterialType] = MaterialType.DIFFUSE


def scatter_diffuse(
    material: DiffuseMaterial,
    ray: Ray,
    hit: RayHit,
    rng: RandomSource,
) -> ScatterResult:
    """Scatter a ray off a diffuse surface.

    Args:
        material: The diffuse material.
        ray: The incoming ray.
        hit: The surface hit; its normal faces the incoming ray.
        rng: Random source for the bounce direction.

    Returns:
        ScatterResult with the albedo as attenuation.
    """
    direction = sample_cosine_hemisphere(hit.normal, rng)
    if near_zero(direction):
        direction = hit.normal
    return ScatterResult(
        attenuation=material.color_at(hit.uv),
        scattered=spawn_ray(hit, direction, ray),
    )
