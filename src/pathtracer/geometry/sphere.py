"""Sphere primitive with robust ray-sphere intersection.

The sphere is defined in its own local space; entities place it in the
world through their transform. Intersection uses the numerically stable
quadratic formula from Ray Tracing Gems to avoid catastrophic cancellation
when b^2 is nearly equal to 4ac.

Example:
    >>> from pathtracer.core.ray import make_ray
    >>> from pathtracer.geometry.sphere import Sphere
    >>> sphere = Sphere(center=(0.0, 0.0, 0.0), radius=1.0)
    >>> hit = sphere.ray_intersection(make_ray((0, 0, -5), (0, 0, 1)))
    >>> hit.distance
    4.0
"""

from __future__ import annotations

import math

import numpy as np

from pathtracer.core.ray import HitSide, Ray, RayHit, Vec3, Vec3Like, as_vec3
from pathtracer.geometry.aabb import AABB


def solve_quadratic_robust(h: float, a: float, c: float, sqrt_d: float) -> tuple[float, float]:
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # Use the sign of h to avoid catastrophic cancellation
    sign_h = -1.0 if h < 0.0 else 1.0
    q = -(h + sign_h * sqrt_d)

    if abs(q) < 1e-10:
        # Tangent ray; fall back to the standard formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        t0, t1 = t1, t0
    return t0, t1


def sphere_uv(outward_normal: Vec3) -> np.ndarray:
    """Spherical texture coordinates for a point on the unit sphere.

    u runs once around the Y axis starting at -X; v is 0 at the north pole
    (+Y) and 1 at the south pole, matching image rows.
    """
    x, y, z = outward_normal
    u = 0.5 + math.atan2(z, x) / (2.0 * math.pi)
    v = math.acos(max(-1.0, min(1.0, float(y)))) / math.pi
    return np.array((u, v), dtype=np.float64)


class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive).
    """

    def __init__(self, center: Vec3Like = (0.0, 0.0, 0.0), radius: float = 1.0) -> None:
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self.center = as_vec3(center)
        self.radius = float(radius)
        extent = np.full(3, self.radius)
        self._aabb = AABB(self.center - extent, self.center + extent)

    @property
    def aabb(self) -> AABB:
        """Local-space bound."""
        return self._aabb

    def ray_intersection(self, ray: Ray) -> RayHit | None:
        """Intersect a ray with the sphere.

        The nearer root inside ``[t_min, t_max]`` wins. If only the farther
        root is valid the ray started inside the sphere; the hit is flagged
        INSIDE and its normal points back toward the center.

        Args:
            ray: The ray in the sphere's local space. Its direction does not
                need to be normalized.

        Returns:
            A RayHit, or None on a miss.
        """
        oc = ray.origin - self.center
        a = float(np.dot(ray.direction, ray.direction))
        if a == 0.0:
            return None
        h = float(np.dot(ray.direction, oc))
        c = float(np.dot(oc, oc)) - self.radius * self.radius

        discriminant = h * h - a * c
        if discriminant < 0.0:
            return None

        t0, t1 = solve_quadratic_robust(h, a, c, math.sqrt(discriminant))

        side = HitSide.OUTSIDE
        t = t0
        if t < ray.t_min or t > ray.t_max:
            side = HitSide.INSIDE
            t = t1
            if t < ray.t_min or t > ray.t_max:
                return None

        position = ray.at(t)
        outward = (position - self.center) / self.radius
        normal = outward if side is HitSide.OUTSIDE else -outward
        return RayHit(
            position=position,
            normal=normal,
            uv=sphere_uv(outward),
            distance=t,
            side=side,
        )

    def __repr__(self) -> str:
        return f"Sphere(center={self.center.tolist()}, radius={self.radius})"
