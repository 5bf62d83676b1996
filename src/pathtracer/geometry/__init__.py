"""Geometry module for bounding volumes and ray-intersectable shapes.

Components:
    aabb: Axis-aligned bounding boxes, slab ray test, octants
    octree: Octree over boundable, intersectable objects
    sphere: Analytic sphere with robust quadratic solve
    mesh: Indexed triangle meshes and the Wavefront OBJ loader
    primitives: Procedural quad and box meshes

All geometry is expressed in local space; entities place it in the world.
"""

from .aabb import AABB, Containment
from .mesh import Mesh
from .octree import DIVIDE_THRESHOLD, MAX_DEPTH, Octree
from .primitives import make_box_mesh, make_quad_mesh
from .sphere import Sphere

__all__ = [
    "AABB",
    "Containment",
    "Octree",
    "DIVIDE_THRESHOLD",
    "MAX_DEPTH",
    "Sphere",
    "Mesh",
    "make_quad_mesh",
    "make_box_mesh",
]
