"""Emissive (light source) material.

An emissive surface returns its color times its intensity as radiance and
ends the path; nothing is scattered. A texture modulates the emitted color
the same way it modulates albedo on other materials.

Example:
    >>> from pathtracer.materials.emissive import EmissiveMaterial
    >>> lamp = EmissiveMaterial(color=(1.0, 0.9, 0.8), intensity=15.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from pathtracer.core.ray import Ray, RayHit
from pathtracer.core.sampling import RandomSource
from pathtracer.materials.base import Material, MaterialType, ScatterResult


@dataclass(eq=False)
class EmissiveMaterial(Material):
    """Light-emitting surface.

    Attributes:
        intensity: Multiplier applied to the emitted color.
    """

    material_type: ClassVar[MaterialType] = MaterialType.EMISSIVE

    intensity: float = 1.0

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.intensity < 0.0:
            raise ValueError(f"Emission intensity must be non-negative, got {self.intensity}")


def scatter_emissive(
    material: EmissiveMaterial,
    ray: Ray,
    hit: RayHit,
    rng: RandomSource,
) -> ScatterResult:
    """Return the surface radiance; emissive surfaces do not scatter."""
    return ScatterResult(emitted=material.color_at(hit.uv) * material.intensity)
