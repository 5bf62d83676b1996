"""Material base type and scattering result.

Materials form a closed set of variants tagged by ``MaterialType``. Each
variant module provides a dataclass and a ``scatter_*`` function; the
integrator dispatches on the tag. Every variant shares the surface
properties defined here:

- color: constant albedo (or radiance for emissive surfaces), multiplied
  by the texture color when a texture is present
- roughness: scalar roughness, replaced by the red channel of the
  roughness map when one is present
- uv_scale: scale applied to texture coordinates before sampling
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

import numpy as np

from pathtracer.core.ray import Ray, Vec3
from pathtracer.materials.texture import AddressMode, Texture, TextureFilter


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used by the integrator to select the scattering function.
    """

    DIFFUSE = 0
    METAL = 1
    TRANSPARENT = 2
    EMISSIVE = 3


@dataclass(eq=False)
class Material:
    """Surface properties shared by all material variants.

    Attributes:
        color: Linear RGB color. Components are usually in [0, 1]; emissive
            materials may exceed 1.
        texture: Optional texture multiplied into the color.
        roughness: Scalar roughness in [0, 1].
        roughness_map: Optional texture whose red channel replaces roughness.
        uv_scale: Multiplier applied to (u, v) before texture sampling.
        address_mode: Texture addressing for both maps.
        filter: Texture filtering for both maps.
    """

    material_type: ClassVar[MaterialType]

    color: Sequence[float] | Vec3 = (1.0, 1.0, 1.0)
    texture: Texture | None = None
    roughness: float = 0.0
    roughness_map: Texture | None = None
    uv_scale: Sequence[float] = (1.0, 1.0)
    address_mode: AddressMode = AddressMode.WRAP
    filter: TextureFilter = TextureFilter.POINT

    def __post_init__(self) -> None:
        color = np.asarray(self.color, dtype=np.float64)
        if color.shape != (3,):
            raise ValueError(f"Material color must have 3 components, got shape {color.shape}")
        self.color = color
        self.uv_scale = tuple(float(s) for s in self.uv_scale)
        if len(self.uv_scale) != 2:
            raise ValueError(f"uv_scale must have 2 components, got {len(self.uv_scale)}")
        if self.roughness < 0.0:
            raise ValueError(f"Roughness must be non-negative, got {self.roughness}")

    def _scaled_uv(self, uv: np.ndarray) -> tuple[float, float]:
        return float(uv[0]) * self.uv_scale[0], float(uv[1]) * self.uv_scale[1]

    def color_at(self, uv: np.ndarray) -> Vec3:
        """Albedo at a texture coordinate."""
        if self.texture is None:
            return self.color
        sample = self.texture.sample(self._scaled_uv(uv), self.address_mode, self.filter)
        return np.asarray(sample[:3], dtype=np.float64) * self.color

    def roughness_at(self, uv: np.ndarray) -> float:
        """Roughness at a texture coordinate."""
        if self.roughness_map is None:
            return self.roughness
        sample = self.roughness_map.sample(self._scaled_uv(uv), self.address_mode, self.filter)
        return float(sample[0])


@dataclass(frozen=True, eq=False)
class ScatterResult:
    """Outcome of a material interaction.

    Attributes:
        attenuation: Color multiplied into the radiance carried by
            ``scattered``.
        scattered: The outgoing ray, or None if the path ends here.
        emitted: Radiance emitted by the surface. When set, the path ends
            and this value is returned as-is.
    """

    attenuation: Vec3 = field(default_factory=lambda: np.zeros(3))
    scattered: Ray | None = None
    emitted: Vec3 | None = None

    @property
    def absorbed(self) -> bool:
        return self.scattered is None and self.emitted is None
