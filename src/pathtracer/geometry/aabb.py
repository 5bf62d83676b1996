"""Axis-aligned bounding boxes.

An AABB is a ``minimum``/``maximum`` corner pair with ``minimum <= maximum``
on every axis. Boxes only grow (via ``encompass``) once created; a smaller
box is always a new object.

Corners are indexed 0-7 by bits: bit 2 selects the maximum X, bit 1 the
maximum Y and bit 0 the maximum Z. Octants use the same ordering, so octant
``i`` of a box is the sub-box touching ``corner(i)``.

Example:
    >>> from pathtracer.geometry.aabb import AABB, Containment
    >>> box = AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))
    >>> box.contains(AABB((0.0, 0.0, 0.0), (0.5, 0.5, 0.5)))
    <Containment.CONTAINS: 1>
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

import numpy as np

from pathtracer.core.ray import Matrix4, Ray, Vec3, Vec3Like, as_vec3


class Containment(Enum):
    """Result of classifying one box against another."""

    NO_OVERLAP = 0
    CONTAINS = 1
    INTERSECTS = 2


class AABB:
    """Axis-aligned bounding box.

    Attributes:
        minimum: Lower corner.
        maximum: Upper corner.
    """

    __slots__ = ("minimum", "maximum")

    def __init__(self, minimum: Vec3Like, maximum: Vec3Like) -> None:
        self.minimum = as_vec3(minimum).copy()
        self.maximum = as_vec3(maximum).copy()
        if np.any(self.minimum > self.maximum):
            raise ValueError(
                f"AABB minimum {self.minimum.tolist()} exceeds maximum {self.maximum.tolist()}"
            )

    @classmethod
    def from_point(cls, point: Vec3Like) -> AABB:
        """Create a zero-volume box around a single point."""
        p = as_vec3(point)
        return cls(p, p)

    @classmethod
    def from_points(cls, points: Iterable[Vec3Like] | np.ndarray) -> AABB:
        """Create the smallest box holding every point.

        Raises:
            ValueError: If no points are given.
        """
        array = np.asarray(points if isinstance(points, np.ndarray) else list(points), dtype=np.float64)
        if array.size == 0:
            raise ValueError("Cannot build an AABB from an empty point set")
        array = array.reshape(-1, 3)
        return cls(array.min(axis=0), array.max(axis=0))

    @staticmethod
    def combine(a: AABB, b: AABB) -> AABB:
        """Return a new box enclosing both boxes."""
        return AABB(np.minimum(a.minimum, b.minimum), np.maximum(a.maximum, b.maximum))

    def copy(self) -> AABB:
        return AABB(self.minimum, self.maximum)

    # -------------------------------------------------------------------------
    # Measurements
    # -------------------------------------------------------------------------

    @property
    def size(self) -> Vec3:
        return self.maximum - self.minimum

    @property
    def center(self) -> Vec3:
        return (self.minimum + self.maximum) * 0.5

    @property
    def width(self) -> float:
        return float(self.maximum[0] - self.minimum[0])

    @property
    def height(self) -> float:
        return float(self.maximum[1] - self.minimum[1])

    @property
    def depth(self) -> float:
        return float(self.maximum[2] - self.minimum[2])

    @property
    def volume(self) -> float:
        return float(np.prod(self.size))

    # -------------------------------------------------------------------------
    # Growth
    # -------------------------------------------------------------------------

    def encompass(self, item: AABB | Vec3Like) -> AABB:
        """Grow this box in place to include a point or another box.

        Returns:
            This box, for chaining.
        """
        if isinstance(item, AABB):
            np.minimum(self.minimum, item.minimum, out=self.minimum)
            np.maximum(self.maximum, item.maximum, out=self.maximum)
        else:
            point = as_vec3(item)
            np.minimum(self.minimum, point, out=self.minimum)
            np.maximum(self.maximum, point, out=self.maximum)
        return self

    # -------------------------------------------------------------------------
    # Splitting
    # -------------------------------------------------------------------------

    def _half(self, axis: int, upper: bool) -> AABB:
        minimum = self.minimum.copy()
        maximum = self.maximum.copy()
        middle = self.center[axis]
        if upper:
            minimum[axis] = middle
        else:
            maximum[axis] = middle
        return AABB(minimum, maximum)

    def left(self) -> AABB:
        """Half with the smaller X values."""
        return self._half(0, upper=False)

    def right(self) -> AABB:
        """Half with the larger X values."""
        return self._half(0, upper=True)

    def bottom(self) -> AABB:
        """Half with the smaller Y values."""
        return self._half(1, upper=False)

    def top(self) -> AABB:
        """Half with the larger Y values."""
        return self._half(1, upper=True)

    def front(self) -> AABB:
        """Half with the smaller Z values."""
        return self._half(2, upper=False)

    def back(self) -> AABB:
        """Half with the larger Z values."""
        return self._half(2, upper=True)

    def octants(self) -> list[AABB]:
        """Split into eight equal boxes, ordered like the corners."""
        result = []
        for index in range(8):
            x_half = self.right() if index & 4 else self.left()
            xy_half = x_half.top() if index & 2 else x_half.bottom()
            result.append(xy_half.back() if index & 1 else xy_half.front())
        return result

    def could_fit(self, other: AABB) -> bool:
        """True if ``other`` is no larger than this box on every axis."""
        return bool(np.all(other.size <= self.size))

    # -------------------------------------------------------------------------
    # Corners and transformation
    # -------------------------------------------------------------------------

    def corner(self, index: int) -> Vec3:
        """Return one of the eight corners.

        Raises:
            IndexError: If ``index`` is outside 0-7.
        """
        if not 0 <= index < 8:
            raise IndexError(f"AABB corner index must be in 0-7, got {index}")
        return np.array(
            (
                self.maximum[0] if index & 4 else self.minimum[0],
                self.maximum[1] if index & 2 else self.minimum[1],
                self.maximum[2] if index & 1 else self.minimum[2],
            ),
            dtype=np.float64,
        )

    def corners(self) -> np.ndarray:
        """All eight corners as an array of shape (8, 3)."""
        return np.array([self.corner(i) for i in range(8)])

    def transformed(self, matrix: Matrix4) -> AABB:
        """Bound of this box after an affine transform.

        All eight corners are transformed and re-enclosed, which stays
        correct under rotation.
        """
        corners = self.corners()
        moved = corners @ matrix[:3, :3].T + matrix[:3, 3]
        return AABB.from_points(moved)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def contains(self, other: AABB) -> Containment:
        """Classify another box against this one.

        Returns:
            NO_OVERLAP if the boxes are separated on some axis, CONTAINS if
            ``other`` lies entirely inside this box, INTERSECTS otherwise.
        """
        if np.any(other.maximum < self.minimum) or np.any(other.minimum > self.maximum):
            return Containment.NO_OVERLAP
        if np.all(self.minimum <= other.minimum) and np.all(other.maximum <= self.maximum):
            return Containment.CONTAINS
        return Containment.INTERSECTS

    def contains_point(self, point: Vec3Like) -> bool:
        p = as_vec3(point)
        return bool(np.all(self.minimum <= p) and np.all(p <= self.maximum))

    def intersects(self, ray: Ray) -> float | None:
        """Slab test against a ray.

        Uses the ray's precomputed inverse direction. A zero direction
        component yields infinities, and ``0 * inf`` yields NaN; NaN slab
        values fail every comparison and are skipped, so rays parallel to
        a slab are handled without special cases.

        Args:
            ray: The ray to test. Only its ``[t_min, t_max]`` window counts.

        Returns:
            The entry parameter clamped to ``ray.t_min``, or None on a miss.
        """
        t_enter = ray.t_min
        t_exit = ray.t_max
        for axis in range(3):
            inv = float(ray.inv_direction[axis])
            origin = float(ray.origin[axis])
            t0 = (float(self.minimum[axis]) - origin) * inv
            t1 = (float(self.maximum[axis]) - origin) * inv
            if inv < 0.0:
                t0, t1 = t1, t0
            if t0 > t_enter:
                t_enter = t0
            if t1 < t_exit:
                t_exit = t1
            if t_exit < t_enter:
                return None
        return t_enter

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AABB):
            return NotImplemented
        return bool(np.array_equal(self.minimum, other.minimum) and np.array_equal(self.maximum, other.maximum))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"AABB(minimum={self.minimum.tolist()}, maximum={self.maximum.tolist()})"
