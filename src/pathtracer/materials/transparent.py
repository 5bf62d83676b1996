"""Transparent (glass/water) material.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

The material randomly chooses between reflection and refraction based on
the Fresnel reflectance probability, which increases at grazing angles.
Entering rays use the ratio 1 / ior; exiting rays use ior, which is why the
hit side matters.

Example:
    >>> from pathtracer.materials.transparent import TransparentMaterial
    >>> glass = TransparentMaterial(index_of_refraction=1.5)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np

from pathtracer.core.ray import (
    Ray,
    RayHit,
    normalize,
    reflect,
    refract,
    schlick_fresnel,
    spawn_ray,
)
from pathtracer.core.sampling import RandomSource, random_in_unit_sphere
from pathtracer.materials.base import Material, MaterialType, ScatterResult

# Common indices of refraction
IOR_AIR = 1.0
IOR_WATER = 1.33
IOR_GLASS = 1.5
IOR_DIAMOND = 2.4


@dataclass(eq=False)
class TransparentMaterial(Material):
    """Refractive material.

    Attributes:
        index_of_refraction: Index of refraction relative to the
            surrounding medium (>= 1).
    """

    material_type: ClassVar[MaterialType] = MaterialType.TRANSPARENT

    index_of_refraction: float = IOR_GLASS

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.index_of_refraction < 1.0:
            raise ValueError(
                f"Index of refraction must be >= 1, got {self.index_of_refraction}"
            )


def will_reflect(cos_theta: float, eta_ratio: float, random_value: float) -> bool:
    """Decide between reflection and refraction for one sample.

    Reflection is forced on total internal reflection; otherwise it is
    chosen with the Schlick reflectance as probability.
    """
    sin_theta = np.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    if eta_ratio * sin_theta > 1.0:
        return True
    return schlick_fresnel(cos_theta, eta_ratio) > random_value


def scatter_transparent(
    material: TransparentMaterial,
    ray: Ray,
    hit: RayHit,
    rng: RandomSource,
) -> ScatterResult:
    """Reflect or refract a ray at a transparent surface.

    Args:
        material: The transparent material.
        ray: The incoming ray.
        hit: The surface hit. Its normal faces the incoming ray, and its
            side tells whether the ray is entering or leaving.
        rng: Random source for the Fresnel choice and roughness.

    Returns:
        ScatterResult with the material color as attenuation (white for
        clear glass). Transparent surfaces always scatter.
    """
    incident = normalize(ray.direction)
    ior = material.index_of_refraction
    eta_ratio = ior if hit.inside else 1.0 / ior

    cos_theta = min(float(np.dot(-incident, hit.normal)), 1.0)
    direction = None
    if not will_reflect(cos_theta, eta_ratio, rng.random()):
        direction = refract(incident, hit.normal, eta_ratio)
    if direction is None:
        direction = reflect(incident, hit.normal)

    roughness = material.roughness_at(hit.uv)
    if roughness > 0.0:
        direction = normalize(direction) + roughness * random_in_unit_sphere(rng)

    return ScatterResult(
        attenuation=material.color_at(hit.uv),
        scattered=spawn_ray(hit, direction, ray),
    )
