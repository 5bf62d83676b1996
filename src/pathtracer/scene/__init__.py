"""Scene module for scene objects, environments and ray-scene queries.

Components:
    entity: Geometry, material and transform combined into a scene object
    environment: Background colors for rays that escape the scene
    scene: Entity container with an octree for closest-hit queries
    demo_scenes: Ready-made spheres and Cornell box scenes
"""

from .demo_scenes import CornellBoxParams, create_cornell_box_scene, create_spheres_scene
from .entity import Entity
from .environment import Environment, GradientEnvironment, SkyboxEnvironment, SolidEnvironment
from .scene import DEFAULT_SCENE_EXTENT, Scene

__all__ = [
    "Entity",
    "Scene",
    "DEFAULT_SCENE_EXTENT",
    # Environments
    "Environment",
    "SolidEnvironment",
    "GradientEnvironment",
    "SkyboxEnvironment",
    # Demo scenes
    "CornellBoxParams",
    "create_spheres_scene",
    "create_cornell_box_scene",
]
