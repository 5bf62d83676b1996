"""Ready-made demo scenes.

This module provides factory functions for the two scenes used by the
example script and the integration tests. Each returns a ``(scene, camera)``
pair ready to hand to ``RaytracingParameters``.

Spheres scene:
- Huge gray diffuse sphere acting as the ground
- Green diffuse, mirror and gold spheres side by side
- 25 random floating spheres (diffuse or metal), seeded for repeatability
- Cornflower blue to white gradient sky

Cornell box:
- 5 quad-mesh walls forming an open box (red, green and white)
- Emissive area light just below the ceiling
- 3 spheres with different materials (diffuse, metal, glass)
- Black environment, so the light is the only source

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.demo_scenes import CornellBoxParams, create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene(CornellBoxParams(light_intensity=20.0))
    >>> len(scene)
    9
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from pathtracer.camera.camera import Camera
from pathtracer.core.transform import Transform
from pathtracer.geometry.aabb import AABB
from pathtracer.geometry.primitives import make_quad_mesh
from pathtracer.geometry.sphere import Sphere
from pathtracer.materials.diffuse import DiffuseMaterial
from pathtracer.materials.emissive import EmissiveMaterial
from pathtracer.materials.metal import MetalMaterial
from pathtracer.materials.transparent import IOR_GLASS, TransparentMaterial
from pathtracer.scene.entity import Entity
from pathtracer.scene.environment import GradientEnvironment, SolidEnvironment
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# =============================================================================
# Spheres Scene Constants
# =============================================================================

CORNFLOWER_BLUE = (100 / 255, 149 / 255, 237 / 255)
WHITE = (1.0, 1.0, 1.0)
GRAY = (128 / 255, 128 / 255, 128 / 255)

GROUND_RADIUS = 1000.0
FEATURE_SPHERE_RADIUS = 2.0
GREEN_ALBEDO = (0.2, 1.0, 0.2)
GOLD_ALBEDO = (1.0, 0.766, 0.336)

RANDOM_SPHERE_COUNT = 25
DEFAULT_SEED = 2024


def _sphere_entity(center, radius: float, material, name: str) -> Entity:
    return Entity(Sphere(radius=radius), material, Transform(position=center), name=name)


def create_spheres_scene(
    seed: int | None = DEFAULT_SEED,
    aspect_ratio: float = 16 / 9,
) -> tuple[Scene, Camera]:
    """Create the ground-plane spheres scene.

    Args:
        seed: Seed for the random floating spheres. None gives a different
            arrangement every call.
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        Tuple (scene, camera). The camera sits at (0, 5, 20) looking
        slightly down the -Z axis.
    """
    environment = GradientEnvironment(up=CORNFLOWER_BLUE, forward=WHITE, down=WHITE)
    bounds = AABB((-GROUND_RADIUS, -2.0 * GROUND_RADIUS, -GROUND_RADIUS), (GROUND_RADIUS,) * 3)
    scene = Scene("spheres", environment=environment, bounds=bounds)

    scene.add(
        _sphere_entity((0.0, -GROUND_RADIUS, 0.0), GROUND_RADIUS, DiffuseMaterial(color=GRAY), "ground")
    )
    scene.add(
        _sphere_entity((-5.0, 2.0, 0.0), FEATURE_SPHERE_RADIUS, DiffuseMaterial(color=GREEN_ALBEDO), "green")
    )
    scene.add(
        _sphere_entity((0.0, 4.0, 0.0), FEATURE_SPHERE_RADIUS, MetalMaterial(color=WHITE), "mirror")
    )
    scene.add(
        _sphere_entity((5.0, 2.0, 0.0), FEATURE_SPHERE_RADIUS, MetalMaterial(color=GOLD_ALBEDO), "gold")
    )

    # Random floating spheres
    rng = np.random.default_rng(seed)
    for i in range(RANDOM_SPHERE_COUNT):
        center = (rng.uniform(-10.0, 10.0), rng.uniform(0.0, 5.0), rng.uniform(-10.0, 10.0))
        radius = float(rng.uniform(0.5, 3.0))
        color = tuple(float(c) for c in rng.random(3))
        material = MetalMaterial(color=color) if rng.random() < 0.5 else DiffuseMaterial(color=color)
        scene.add(_sphere_entity(center, radius, material, f"floating-{i}"))

    scene.finalize_octree()

    camera = Camera(position=(0.0, 5.0, 20.0), fov=45.0, aspect_ratio=aspect_ratio)
    camera.look_at(camera.position + np.array((0.0, -0.2, -1.0)))

    logger.debug("Created spheres scene with %d entities", len(scene))
    return scene, camera


# =============================================================================
# Cornell Box Parameters
# =============================================================================


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    All parameters have defaults matching the classic Cornell box
    configuration.

    Attributes:
        box_size: Edge length of the box. The box spans [0, box_size] on
            every axis.
        light_intensity: Multiplier on the light color. Default is 15.0,
            which provides good illumination for the scene.
        light_color: RGB color of the light (each component in [0, 1]).
        left_wall_color: RGB albedo of the wall on the left of the image.
        right_wall_color: RGB albedo of the wall on the right of the image.
        back_wall_color: RGB albedo of the back wall, floor and ceiling.
        aspect_ratio: Aspect ratio of the returned camera.

    Example:
        >>> params = CornellBoxParams()
        >>> params.light_intensity
        15.0

        >>> # Warm light with a blue left wall
        >>> custom = CornellBoxParams(
        ...     light_color=(1.0, 0.9, 0.8),
        ...     left_wall_color=(0.2, 0.2, 0.8),
        ... )
    """

    box_size: float = 555.0
    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    right_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    back_wall_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    aspect_ratio: float = 1.0

    def __post_init__(self) -> None:
        if self.box_size <= 0.0:
            raise ValueError(f"box_size must be positive, got {self.box_size}")
        if self.light_intensity < 0.0:
            raise ValueError(f"light_intensity must be non-negative, got {self.light_intensity}")


# =============================================================================
# Cornell Box Constants
# =============================================================================

# Classic Cornell box light is about 130x105 units
LIGHT_WIDTH = 130.0
LIGHT_DEPTH = 105.0

SPHERE_RADIUS = 80.0
DIFFUSE_SPHERE_ALBEDO = (0.73, 0.73, 0.73)
METAL_SPHERE_ALBEDO = (0.95, 0.93, 0.88)
METAL_SPHERE_ROUGHNESS = 0.3

CAMERA_DISTANCE = 800.0
CAMERA_FOV = 40.0


# =============================================================================
# Cornell Box Factory
# =============================================================================


def create_cornell_box_scene(params: CornellBoxParams | None = None) -> tuple[Scene, Camera]:
    """Create a Cornell box scene.

    The box spans [0, box_size] on every axis and is open toward -Z, where
    the camera looks in along +Z. Looking in, +X is to the left.

    Args:
        params: Optional CornellBoxParams. If None, uses the defaults.

    Returns:
        Tuple (scene, camera) with 5 walls, the light and 3 spheres.
    """
    if params is None:
        params = CornellBoxParams()
    size = params.box_size
    scale = size / 555.0

    scene = Scene("cornell-box", environment=SolidEnvironment((0.0, 0.0, 0.0)))

    # =========================================================================
    # Materials
    # =========================================================================

    left_mat = DiffuseMaterial(color=params.left_wall_color)
    right_mat = DiffuseMaterial(color=params.right_wall_color)
    white_mat = DiffuseMaterial(color=params.back_wall_color)
    light_mat = EmissiveMaterial(color=params.light_color, intensity=params.light_intensity)

    # =========================================================================
    # Walls
    # =========================================================================

    walls = (
        ("left-wall", (size, 0.0, size), (0.0, size, 0.0), (0.0, 0.0, -size), left_mat),
        ("right-wall", (0.0, 0.0, 0.0), (0.0, size, 0.0), (0.0, 0.0, size), right_mat),
        ("back-wall", (0.0, 0.0, size), (0.0, size, 0.0), (size, 0.0, 0.0), white_mat),
        ("floor", (0.0, 0.0, 0.0), (0.0, 0.0, size), (size, 0.0, 0.0), white_mat),
        ("ceiling", (0.0, size, 0.0), (size, 0.0, 0.0), (0.0, 0.0, size), white_mat),
    )
    for name, corner, edge_u, edge_v, material in walls:
        scene.add(Entity(make_quad_mesh(corner, edge_u, edge_v), material, name=name))

    # =========================================================================
    # Area Light
    # =========================================================================

    light_width = LIGHT_WIDTH * scale
    light_depth = LIGHT_DEPTH * scale
    # Just below the ceiling to avoid coplanar hits
    light_y = size - 1.0 * scale
    scene.add(
        Entity(
            make_quad_mesh(
                ((size - light_width) / 2.0, light_y, (size - light_depth) / 2.0),
                (light_width, 0.0, 0.0),
                (0.0, 0.0, light_depth),
            ),
            light_mat,
            name="light",
        )
    )

    # =========================================================================
    # Spheres
    # =========================================================================

    radius = SPHERE_RADIUS * scale
    spheres = (
        ("diffuse-sphere", (size * 0.73, radius, size * 0.35), DiffuseMaterial(color=DIFFUSE_SPHERE_ALBEDO)),
        (
            "metal-sphere",
            (size * 0.27, radius, size * 0.35),
            MetalMaterial(color=METAL_SPHERE_ALBEDO, roughness=METAL_SPHERE_ROUGHNESS),
        ),
        ("glass-sphere", (size * 0.5, radius, size * 0.65), TransparentMaterial(index_of_refraction=IOR_GLASS)),
    )
    for name, center, material in spheres:
        scene.add(_sphere_entity(center, radius, material, name))

    scene.finalize_octree()

    # =========================================================================
    # Camera
    # =========================================================================

    half = size / 2.0
    camera = Camera(
        position=(half, half, -CAMERA_DISTANCE * scale),
        fov=CAMERA_FOV,
        aspect_ratio=params.aspect_ratio,
        near=0.01 * scale,
        far=10.0 * size,
    )
    camera.look_at((half, half, half))

    logger.debug("Created Cornell box with %d entities", len(scene))
    return scene, camera
