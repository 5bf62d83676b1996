"""Ray and hit record data structures with vector utilities.

This module provides the Ray and RayHit types used throughout the tracer,
along with the small set of vector operations needed for shading. All vectors
are float64 NumPy arrays of shape (3,); matrices are 4x4 and use the column
vector convention (``M @ v``).

Example:
    >>> from pathtracer.core.ray import make_ray
    >>> ray = make_ray(origin=(0.0, 0.0, 0.0), direction=(0.0, 0.0, -2.0))
    >>> ray.direction
    array([ 0.,  0., -1.])
    >>> ray.at(5.0)  # Point 5 units along the ray
    array([ 0.,  0., -5.])
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import numpy as np
import numpy.typing as npt

# Type alias for 3D vectors
Vec3 = npt.NDArray[np.float64]
Vec3Like = Vec3 | Sequence[float]
Matrix4 = npt.NDArray[np.float64]

# Default far end of the ray parameter window
DEFAULT_T_MAX = 1000.0

# Minimum parameter for rays spawned at a surface (avoids self-intersection)
SECONDARY_RAY_T_MIN = 1e-4


def vec3(x: float, y: float, z: float) -> Vec3:
    """Create a 3D vector."""
    return np.array((x, y, z), dtype=np.float64)


def as_vec3(value: Vec3Like) -> Vec3:
    """Convert a sequence or array to a float64 vector of shape (3,).

    Raises:
        ValueError: If the value does not hold exactly three components.
    """
    array = np.asarray(value, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError(f"Expected a 3-component vector, got shape {array.shape}")
    return array


# =============================================================================
# Vector Utility Functions
# =============================================================================


def length(v: Vec3) -> float:
    """Compute the Euclidean length of a vector."""
    return float(math.sqrt(float(np.dot(v, v))))


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
        If v is zero-length, returns a zero vector.
    """
    norm = length(v)
    if norm == 0.0:
        return np.zeros(3, dtype=np.float64)
    return v / norm


def near_zero(v: Vec3, epsilon: float = 1e-8) -> bool:
    """Check whether every component of a vector is close to zero."""
    return bool(np.all(np.abs(v) < epsilon))


def reflect(incident: Vec3, normal: Vec3) -> Vec3:
    """Reflect an incident vector about a normal.

    The normal should be unit length for correct results.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The surface normal.

    Returns:
        The reflected direction: incident - 2 * dot(incident, normal) * normal.
    """
    return incident - 2.0 * float(np.dot(incident, normal)) * normal


def refract(incident: Vec3, normal: Vec3, eta_ratio: float) -> Vec3 | None:
    """Refract a unit incident vector through a surface using Snell's law.

    Args:
        incident: The unit incoming direction (pointing toward the surface).
        normal: The unit surface normal, facing against the incident ray.
        eta_ratio: Ratio of refractive indices (eta_incident / eta_transmitted).

    Returns:
        The refracted direction, or None on total internal reflection.
    """
    cos_theta = min(float(np.dot(-incident, normal)), 1.0)
    k = 1.0 - eta_ratio * eta_ratio * (1.0 - cos_theta * cos_theta)
    if k < 0.0:
        return None
    return eta_ratio * incident + (eta_ratio * cos_theta - math.sqrt(k)) * normal


def schlick_fresnel(cosine: float, eta_ratio: float) -> float:
    """Schlick's approximation of Fresnel reflectance.

    Args:
        cosine: Cosine of the angle between the incident ray and the normal.
        eta_ratio: Ratio of refractive indices.

    Returns:
        The reflection probability in [0, 1].
    """
    r0 = (1.0 - eta_ratio) / (1.0 + eta_ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * (1.0 - cosine) ** 5


def luminance(color: Vec3) -> float:
    """Relative luminance of a linear RGB color (Rec. 709 weights)."""
    return float(0.2126 * color[0] + 0.7152 * color[1] + 0.0722 * color[2])


def transform_point(matrix: Matrix4, point: Vec3) -> Vec3:
    """Transform a point by an affine 4x4 matrix."""
    return matrix[:3, :3] @ point + matrix[:3, 3]


def transform_direction(matrix: Matrix4, direction: Vec3) -> Vec3:
    """Transform a direction by a 4x4 matrix, ignoring translation."""
    return matrix[:3, :3] @ direction


# =============================================================================
# Ray
# =============================================================================


@dataclass(frozen=True, eq=False)
class Ray:
    """A ray with an origin, a direction and a valid parameter window.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction vector of the ray. Should be normalized
            for most operations, but this is not enforced so that rays
            moved into an entity's local space keep their parameter scale.
        t_min: Smallest parameter accepted as a hit.
        t_max: Largest parameter accepted as a hit.
        inv_direction: Component-wise reciprocal of the direction. Zero
            components produce signed infinities.
    """

    origin: Vec3
    direction: Vec3
    t_min: float = 0.0
    t_max: float = DEFAULT_T_MAX
    inv_direction: Vec3 = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", as_vec3(self.origin))
        object.__setattr__(self, "direction", as_vec3(self.direction))
        object.__setattr__(self, "t_min", float(self.t_min))
        object.__setattr__(self, "t_max", float(self.t_max))
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_direction = 1.0 / self.direction
        object.__setattr__(self, "inv_direction", inv_direction)

    def at(self, t: float) -> Vec3:
        """Compute the point along the ray at parameter t."""
        return self.origin + t * self.direction

    def transformed(self, matrix: Matrix4) -> Ray:
        """Return this ray expressed in another space.

        The direction is transformed but not renormalized, so a parameter
        ``t`` names the same physical point in both spaces.

        Args:
            matrix: Affine 4x4 matrix mapping this ray's space to the target.

        Returns:
            A new Ray with the same parameter window.
        """
        return Ray(
            origin=transform_point(matrix, self.origin),
            direction=transform_direction(matrix, self.direction),
            t_min=self.t_min,
            t_max=self.t_max,
        )


def make_ray(
    origin: Vec3Like,
    direction: Vec3Like,
    t_min: float = 0.0,
    t_max: float = DEFAULT_T_MAX,
) -> Ray:
    """Create a ray with a normalized direction.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector; normalized before storing.
        t_min: Smallest accepted hit parameter.
        t_max: Largest accepted hit parameter.

    Returns:
        A new Ray instance.
    """
    return Ray(as_vec3(origin), normalize(as_vec3(direction)), t_min, t_max)


# =============================================================================
# Hit Record
# =============================================================================


class HitSide(Enum):
    """Which side of a surface a ray struck."""

    OUTSIDE = 0
    INSIDE = 1


@dataclass(frozen=True, eq=False)
class RayHit:
    """Result of a successful ray/surface intersection.

    Attributes:
        position: Hit point.
        normal: Unit surface normal, flipped to face the ray for inside hits.
        uv: Surface texture coordinates, shape (2,).
        distance: Ray parameter of the hit.
        side: Whether the ray hit the outside or the inside of the surface.
        hit_object: The object that was hit (set by the owning entity).
    """

    position: Vec3
    normal: Vec3
    uv: npt.NDArray[np.float64]
    distance: float
    side: HitSide = HitSide.OUTSIDE
    hit_object: Any = None

    @property
    def inside(self) -> bool:
        """True if the ray struck the surface from the inside."""
        return self.side is HitSide.INSIDE

    def with_object(self, hit_object: Any) -> RayHit:
        """Return a copy of this hit attributed to another object."""
        return replace(self, hit_object=hit_object)


def spawn_ray(hit: RayHit, direction: Vec3, parent: Ray) -> Ray:
    """Create a secondary ray leaving a surface hit.

    The new ray starts at the hit position with a small minimum parameter
    and keeps the far limit of the ray that produced the hit.
    """
    return Ray(hit.position, normalize(direction), SECONDARY_RAY_T_MIN, parent.t_max)
