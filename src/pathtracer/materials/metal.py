"""Metal (specular reflective) material.

Rays reflect about the surface normal; roughness perturbs the mirror
direction by a random offset of up to ``roughness`` length, blending from a
perfect mirror (0) to a very blurry reflection (1). Perturbed rays that end
up below the surface are absorbed.

Example:
    >>> from pathtracer.materials.metal import MetalMaterial
    >>> gold = MetalMaterial(color=(1.0, 0.766, 0.336), roughness=0.1)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np

from pathtracer.core.ray import Ray, RayHit, normalize, reflect, spawn_ray
from pathtracer.core.sampling import RandomSource, random_in_unit_sphere
from pathtracer.materials.base import Material, MaterialType, ScatterResult


@dataclass(eq=False)
class MetalMaterial(Material):
    """Mirror-like reflector with optional roughness."""

    material_type: ClassVar[MaterialType] = MaterialType.METAL


def scatter_metal(
    material: MetalMaterial,
    ray: Ray,
    hit: RayHit,
    rng: RandomSource,
) -> ScatterResult:
    """Reflect a ray off a metal surface.

    Returns:
        ScatterResult with the albedo as attenuation, or an absorbed result
        when the perturbed reflection points into the surface.
    """
    reflected = reflect(normalize(ray.direction), hit.normal)
    roughness = material.roughness_at(hit.uv)
    if roughness > 0.0:
        reflected = normalize(reflected) + roughness * random_in_unit_sphere(rng)

    if float(np.dot(reflected, hit.normal)) <= 0.0:
        return ScatterResult()
    return ScatterResult(
        attenuation=material.color_at(hit.uv),
        scattered=spawn_ray(hit, reflected, ray),
    )
