"""Perspective camera with lazily rebuilt view and projection matrices.

The camera is placed by a Transform and looks down its local -Z axis with
+Y up. Matrices follow the right-handed convention with depth mapped to
[0, 1]:

- view = inverse of the camera's world matrix, rebuilt when the transform
  version changes
- projection = perspective matrix from the vertical field of view, aspect
  ratio and clip planes, rebuilt when one of those changes

``get_ray_through_pixel`` maps a pixel coordinate to normalized device
coordinates (Y flipped, since image row 0 is the top), unprojects it
through the inverse view-projection matrix and builds a ray from the
camera position. A non-zero aperture turns on thin-lens depth of field.

Example:
    >>> from pathtracer.camera.camera import Camera
    >>> camera = Camera(position=(0.0, 5.0, 20.0), fov=45.0, aspect_ratio=16 / 9)
    >>> camera.look_at((0.0, 0.0, 0.0))
    >>> ray = camera.get_ray_through_pixel(320.5, 180.5, 640, 360)
"""

from __future__ import annotations

import math

import numpy as np

from pathtracer.core.cache import Cached
from pathtracer.core.ray import Matrix4, Ray, Vec3, Vec3Like, as_vec3, normalize
from pathtracer.core.sampling import RandomSource, random_in_unit_disk
from pathtracer.core.transform import Transform, safe_inverse

# Default clip planes
DEFAULT_NEAR = 0.01
DEFAULT_FAR = 1000.0


def perspective_matrix(fov_degrees: float, aspect_ratio: float, near: float, far: float) -> Matrix4:
    """Right-handed perspective projection with depth in [0, 1].

    Args:
        fov_degrees: Vertical field of view in degrees.
        aspect_ratio: Width divided by height.
        near: Distance to the near clip plane.
        far: Distance to the far clip plane.
    """
    f = 1.0 / math.tan(math.radians(fov_degrees) / 2.0)
    depth = near - far
    return np.array(
        (
            (f / aspect_ratio, 0.0, 0.0, 0.0),
            (0.0, f, 0.0, 0.0),
            (0.0, 0.0, far / depth, near * far / depth),
            (0.0, 0.0, -1.0, 0.0),
        ),
        dtype=np.float64,
    )


class Camera:
    """A perspective camera.

    Attributes:
        transform: Placement of the camera in the world.
        fov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height.
        near: Near clip distance; also the minimum parameter of camera rays.
        far: Far clip distance; also the maximum parameter of camera rays.
        aperture: Lens diameter. Zero gives a pinhole camera.
        focal_distance: Distance to the plane in perfect focus.
    """

    def __init__(
        self,
        position: Vec3Like = (0.0, 0.0, 0.0),
        fov: float = 45.0,
        aspect_ratio: float = 1.0,
        near: float = DEFAULT_NEAR,
        far: float = DEFAULT_FAR,
        aperture: float = 0.0,
        focal_distance: float = 10.0,
        transform: Transform | None = None,
    ) -> None:
        self.transform = transform if transform is not None else Transform(position=position)
        self._fov = 0.0
        self._aspect_ratio = 1.0
        self._near = DEFAULT_NEAR
        self._far = DEFAULT_FAR
        self._projection_version = 0

        self._view = Cached(lambda: self.transform.world_inverse_matrix.copy(), key=lambda: self.transform.version)
        self._projection = Cached(self._compute_projection)
        self._inverse_view_projection = Cached(
            lambda: safe_inverse(self.projection_matrix @ self.view_matrix),
            key=lambda: (self.transform.version, self._projection_version),
        )

        self.set_projection(fov, aspect_ratio, near, far)
        self.aperture = aperture
        self.focal_distance = focal_distance

    # -------------------------------------------------------------------------
    # Projection parameters
    # -------------------------------------------------------------------------

    def set_projection(self, fov: float, aspect_ratio: float, near: float, far: float) -> None:
        """Set every projection parameter at once.

        Raises:
            ValueError: If the parameters do not describe a valid frustum.
        """
        if not 0.0 < fov < 180.0:
            raise ValueError(f"Field of view must be in (0, 180) degrees, got {fov}")
        if aspect_ratio <= 0.0:
            raise ValueError(f"Aspect ratio must be positive, got {aspect_ratio}")
        if not 0.0 < near < far:
            raise ValueError(f"Clip planes must satisfy 0 < near < far, got near={near}, far={far}")
        self._fov = float(fov)
        self._aspect_ratio = float(aspect_ratio)
        self._near = float(near)
        self._far = float(far)
        self._projection_version += 1
        self._projection.invalidate()

    @property
    def fov(self) -> float:
        return self._fov

    @fov.setter
    def fov(self, value: float) -> None:
        self.set_projection(value, self._aspect_ratio, self._near, self._far)

    @property
    def aspect_ratio(self) -> float:
        return self._aspect_ratio

    @aspect_ratio.setter
    def aspect_ratio(self, value: float) -> None:
        self.set_projection(self._fov, value, self._near, self._far)

    @property
    def near(self) -> float:
        return self._near

    @near.setter
    def near(self, value: float) -> None:
        self.set_projection(self._fov, self._aspect_ratio, value, self._far)

    @property
    def far(self) -> float:
        return self._far

    @far.setter
    def far(self, value: float) -> None:
        self.set_projection(self._fov, self._aspect_ratio, self._near, value)

    # -------------------------------------------------------------------------
    # Matrices and placement
    # -------------------------------------------------------------------------

    @property
    def view_matrix(self) -> Matrix4:
        return self._view.get()

    @property
    def projection_matrix(self) -> Matrix4:
        return self._projection.get()

    @property
    def inverse_view_projection_matrix(self) -> Matrix4:
        return self._inverse_view_projection.get()

    def _compute_projection(self) -> Matrix4:
        return perspective_matrix(self._fov, self._aspect_ratio, self._near, self._far)

    @property
    def position(self) -> Vec3:
        return self.transform.world_position

    @property
    def forward(self) -> Vec3:
        """World-space viewing direction."""
        return normalize(self.transform.world_matrix[:3, :3] @ np.array((0.0, 0.0, -1.0)))

    @property
    def up(self) -> Vec3:
        return normalize(self.transform.world_matrix[:3, 1].copy())

    @property
    def right(self) -> Vec3:
        return normalize(self.transform.world_matrix[:3, 0].copy())

    def look_at(self, target: Vec3Like) -> None:
        """Rotate the camera to face a world-space point, with zero roll.

        Leaves the rotation unchanged if the target is the camera position.
        """
        direction = normalize(as_vec3(target) - self.position)
        if not direction.any():
            return
        pitch = math.asin(max(-1.0, min(1.0, float(direction[1]))))
        yaw = math.atan2(-float(direction[0]), -float(direction[2]))
        self.transform.set_rotation((pitch, yaw, 0.0))

    # -------------------------------------------------------------------------
    # Ray generation
    # -------------------------------------------------------------------------

    def get_ray_through_pixel(
        self,
        x: float,
        y: float,
        width: int,
        height: int,
        rng: RandomSource | None = None,
    ) -> Ray:
        """Generate a world-space ray through an image position.

        Args:
            x: Horizontal pixel coordinate; x + 0.5 is the center of column x.
            y: Vertical pixel coordinate, growing downward.
            width: Image width in pixels.
            height: Image height in pixels.
            rng: Random source for lens sampling. Without one (or with a
                zero aperture) the camera behaves as a pinhole.

        Returns:
            A ray with a normalized direction and the clip planes as its
            parameter window.
        """
        ndc_x = x / width * 2.0 - 1.0
        ndc_y = 1.0 - y / height * 2.0

        clip = self.inverse_view_projection_matrix @ np.array((ndc_x, ndc_y, 0.0, 1.0))
        point = clip[:3] / clip[3]

        origin = self.position
        direction = normalize(point - origin)

        if self.aperture > 0.0 and rng is not None:
            focal_point = origin + direction * self.focal_distance
            disk = random_in_unit_disk(rng) * (self.aperture * 0.5)
            origin = origin + self.right * disk[0] + self.up * disk[1]
            direction = normalize(focal_point - origin)

        return Ray(origin, direction, self._near, self._far)

    def __repr__(self) -> str:
        return (
            f"Camera(position={self.position.tolist()}, fov={self._fov}, "
            f"aspect_ratio={self._aspect_ratio:.4f}, near={self._near}, far={self._far})"
        )
