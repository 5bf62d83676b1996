"""Background color functions sampled when a ray leaves the scene.

Three variants are provided:
- SolidEnvironment: one color in every direction
- GradientEnvironment: blends from a horizon color to a zenith color above
  the horizon and to a nadir color below it
- SkyboxEnvironment: looks the direction up in a cube map

Example:
    >>> from pathtracer.scene.environment import GradientEnvironment
    >>> sky = GradientEnvironment(up=(0.39, 0.58, 0.93), forward=(1, 1, 1), down=(1, 1, 1))
    >>> sky.color_from_direction((0.0, 1.0, 0.0))
    array([0.39, 0.58, 0.93])
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from pathtracer.core.ray import Vec3, Vec3Like, as_vec3, normalize
from pathtracer.materials.texture import CubeMap

_UP = np.array((0.0, 1.0, 0.0))


class SolidEnvironment:
    """The same color in every direction."""

    def __init__(self, color: Sequence[float] = (0.0, 0.0, 0.0)) -> None:
        self.color = as_vec3(color)

    def color_from_direction(self, direction: Vec3Like) -> Vec3:
        return self.color.copy()

    def __repr__(self) -> str:
        return f"SolidEnvironment(color={self.color.tolist()})"


class GradientEnvironment:
    """Three-point vertical gradient.

    The blend parameter is ``1 - 2 * angle / pi`` where ``angle`` is the
    angle between the direction and +Y, so it is 1 straight up, 0 at the
    horizon and -1 straight down.

    Attributes:
        up: Color straight up.
        forward: Color at the horizon.
        down: Color straight down.
    """

    def __init__(
        self,
        up: Sequence[float] = (0.39, 0.58, 0.93),
        forward: Sequence[float] = (1.0, 1.0, 1.0),
        down: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> None:
        self.up = as_vec3(up)
        self.forward = as_vec3(forward)
        self.down = as_vec3(down)

    def color_from_direction(self, direction: Vec3Like) -> Vec3:
        d = normalize(as_vec3(direction))
        cos_angle = max(-1.0, min(1.0, float(np.dot(_UP, d))))
        t = 1.0 - 2.0 * math.acos(cos_angle) / math.pi
        if t > 0.0:
            return self.forward + (self.up - self.forward) * t
        return self.forward + (self.down - self.forward) * -t

    def __repr__(self) -> str:
        return (
            f"GradientEnvironment(up={self.up.tolist()}, forward={self.forward.tolist()}, "
            f"down={self.down.tolist()})"
        )


class SkyboxEnvironment:
    """Directional lookup into a cube map.

    Attributes:
        cubemap: Faces ordered +X, -X, +Y, -Y, +Z, -Z.
        intensity: Multiplier applied to the sampled color.
    """

    def __init__(self, cubemap: CubeMap, intensity: float = 1.0) -> None:
        self.cubemap = cubemap
        self.intensity = float(intensity)

    def color_from_direction(self, direction: Vec3Like) -> Vec3:
        sample = self.cubemap.sample(direction)
        return np.asarray(sample[:3], dtype=np.float64) * self.intensity

    def __repr__(self) -> str:
        return f"SkyboxEnvironment(intensity={self.intensity})"


Environment = SolidEnvironment | GradientEnvironment | SkyboxEnvironment
