"""Procedural triangle meshes for quads and boxes.

A quad is defined by:
- corner: A corner point of the quad
- edge_u: Edge vector from the corner to an adjacent corner
- edge_v: Edge vector from the corner to the other adjacent corner

The quad spans the parallelogram from corner to corner+edge_u+edge_v and is
built from two triangles. Its normal is normalize(cross(edge_u, edge_v)),
pointing in the direction given by the right-hand rule.

Example:
    >>> from pathtracer.geometry.primitives import make_quad_mesh
    >>> # Floor quad at y=0 facing up, spanning x=[0,1] and z=[0,1]
    >>> floor = make_quad_mesh((0, 0, 1), (1, 0, 0), (0, 0, -1))
"""

from __future__ import annotations

import numpy as np

from pathtracer.core.ray import Vec3Like, as_vec3, normalize
from pathtracer.errors import MeshLoadError
from pathtracer.geometry.mesh import Mesh

# Texture coordinates of the four quad corners: corner, +u, +u+v, +v
_QUAD_UVS = ((0.0, 1.0), (1.0, 1.0), (1.0, 0.0), (0.0, 0.0))


def _quad_arrays(corner: Vec3Like, edge_u: Vec3Like, edge_v: Vec3Like):
    q = as_vec3(corner)
    u = as_vec3(edge_u)
    v = as_vec3(edge_v)
    n = np.cross(u, v)
    if float(np.dot(n, n)) < 1e-20:
        raise MeshLoadError("Quad edges are parallel or zero-length")
    normal = normalize(n)
    positions = np.array((q, q + u, q + u + v, q + v))
    normals = np.tile(normal, (4, 1))
    return positions, normals


def make_quad_mesh(
    corner: Vec3Like,
    edge_u: Vec3Like,
    edge_v: Vec3Like,
    *,
    cull_backfaces: bool = False,
) -> Mesh:
    """Create a two-triangle parallelogram mesh.

    Args:
        corner: A corner point of the quad.
        edge_u: Edge vector from the corner to an adjacent corner.
        edge_v: Edge vector from the corner to the other adjacent corner.
        cull_backfaces: If True, the quad is invisible from behind.

    Returns:
        A Mesh with four vertices and two triangles.

    Raises:
        MeshLoadError: If the edges do not span a plane.
    """
    positions, normals = _quad_arrays(corner, edge_u, edge_v)
    return Mesh(
        positions=positions,
        indices=((0, 1, 2), (0, 2, 3)),
        normals=normals,
        uvs=_QUAD_UVS,
        cull_backfaces=cull_backfaces,
        name="quad",
    )


def make_box_mesh(
    minimum: Vec3Like,
    maximum: Vec3Like,
    *,
    cull_backfaces: bool = False,
) -> Mesh:
    """Create an axis-aligned box from six outward-facing quads.

    Each face has its own four vertices so faces keep flat normals.

    Args:
        minimum: Lower corner of the box.
        maximum: Upper corner of the box.
        cull_backfaces: If True, faces are invisible from inside the box.

    Returns:
        A Mesh with 24 vertices and 12 triangles.
    """
    a = as_vec3(minimum)
    b = as_vec3(maximum)
    dx = np.array((b[0] - a[0], 0.0, 0.0))
    dy = np.array((0.0, b[1] - a[1], 0.0))
    dz = np.array((0.0, 0.0, b[2] - a[2]))

    faces = (
        ((a[0], a[1], b[2]), dx, dy),   # +Z
        ((b[0], a[1], a[2]), -dx, dy),  # -Z
        ((b[0], a[1], b[2]), -dz, dy),  # +X
        ((a[0], a[1], a[2]), dz, dy),   # -X
        ((a[0], b[1], b[2]), dx, -dz),  # +Y
        ((a[0], a[1], a[2]), dx, dz),   # -Y
    )

    positions = []
    normals = []
    uvs = []
    indices = []
    for face_index, (corner, edge_u, edge_v) in enumerate(faces):
        face_positions, face_normals = _quad_arrays(corner, edge_u, edge_v)
        positions.append(face_positions)
        normals.append(face_normals)
        uvs.extend(_QUAD_UVS)
        base = face_index * 4
        indices.extend(((base, base + 1, base + 2), (base, base + 2, base + 3)))

    return Mesh(
        positions=np.concatenate(positions),
        indices=indices,
        normals=np.concatenate(normals),
        uvs=uvs,
        cull_backfaces=cull_backfaces,
        name="box",
    )
