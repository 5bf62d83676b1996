"""Indexed triangle meshes.

A Mesh holds vertex positions, optional per-vertex normals and texture
coordinates, and an index list of triangles. Ray intersection runs the
Moller-Trumbore test against every triangle at once with NumPy and keeps
the closest valid hit.

Meshes are built eagerly: malformed data raises MeshLoadError from the
constructor or loader, never at render time.

Example:
    >>> from pathtracer.geometry.mesh import Mesh
    >>> mesh = Mesh(
    ...     positions=[(0, 0, 0), (1, 0, 0), (0, 1, 0)],
    ...     indices=[(0, 1, 2)],
    ... )
    >>> mesh.triangle_count
    1
    >>> teapot = Mesh.from_obj("assets/teapot.obj")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import HitSide, Ray, RayHit, normalize
from pathtracer.errors import MeshLoadError
from pathtracer.geometry.aabb import AABB

logger = logging.getLogger(__name__)

# Determinant magnitude below which a ray counts as parallel to a triangle
PARALLEL_EPSILON = 1e-6


def _row_dot(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", a, b)


class Mesh:
    """An indexed triangle mesh in local space.

    Attributes:
        positions: Vertex positions, shape (N, 3).
        normals: Per-vertex unit normals, shape (N, 3), or None to shade
            with flat face normals.
        uvs: Per-vertex texture coordinates, shape (N, 2).
        indices: Triangle vertex indices, shape (M, 3).
        cull_backfaces: If True, triangles seen from behind are ignored.
    """

    def __init__(
        self,
        positions: npt.ArrayLike,
        indices: npt.ArrayLike,
        normals: npt.ArrayLike | None = None,
        uvs: npt.ArrayLike | None = None,
        *,
        cull_backfaces: bool = False,
        name: str = "",
    ) -> None:
        try:
            self.positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
            self.indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
        except (TypeError, ValueError) as e:
            raise MeshLoadError(f"Invalid mesh data for {name or 'mesh'}: {e}") from e

        vertex_count = len(self.positions)
        if vertex_count == 0 or len(self.indices) == 0:
            raise MeshLoadError(f"Mesh {name!r} has no triangles")
        if self.indices.min() < 0 or self.indices.max() >= vertex_count:
            raise MeshLoadError(
                f"Mesh index out of range: indices span "
                f"[{self.indices.min()}, {self.indices.max()}] for {vertex_count} vertices"
            )

        self.normals = self._per_vertex(normals, 3, "normals")
        if self.normals is not None:
            lengths = np.linalg.norm(self.normals, axis=1, keepdims=True)
            self.normals = np.divide(self.normals, lengths, out=np.zeros_like(self.normals), where=lengths > 0)
        uv_array = self._per_vertex(uvs, 2, "uvs")
        self.uvs = uv_array if uv_array is not None else np.zeros((vertex_count, 2))

        self.cull_backfaces = cull_backfaces
        self.name = name

        # Per-triangle data for the vectorized intersection test
        self._v0 = self.positions[self.indices[:, 0]]
        self._edge1 = self.positions[self.indices[:, 1]] - self._v0
        self._edge2 = self.positions[self.indices[:, 2]] - self._v0
        self._face_normals = np.cross(self._edge1, self._edge2)

        self._aabb = AABB.from_points(self.positions)

    def _per_vertex(self, values: npt.ArrayLike | None, width: int, label: str) -> np.ndarray | None:
        if values is None:
            return None
        try:
            array = np.asarray(values, dtype=np.float64).reshape(-1, width)
        except (TypeError, ValueError) as e:
            raise MeshLoadError(f"Invalid mesh {label}: {e}") from e
        if len(array) != len(self.positions):
            raise MeshLoadError(
                f"Mesh has {len(self.positions)} vertices but {len(array)} {label}"
            )
        return array

    @property
    def aabb(self) -> AABB:
        """Local-space bound."""
        return self._aabb

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices)

    def ray_intersection(self, ray: Ray) -> RayHit | None:
        """Find the closest triangle hit by a ray.

        Triangles nearly parallel to the ray, and hits outside
        ``[t_min, t_max]``, are misses. A triangle hit from behind is either
        skipped (when culling) or reported as an INSIDE hit with its normal
        flipped toward the ray.

        Args:
            ray: The ray in the mesh's local space.

        Returns:
            The closest RayHit, or None.
        """
        direction = ray.direction
        pvec = np.cross(direction, self._edge2)
        det = _row_dot(self._edge1, pvec)
        backface = self._face_normals @ direction >= 0.0

        valid = np.abs(det) > PARALLEL_EPSILON
        if self.cull_backfaces:
            valid &= ~backface
        if not valid.any():
            return None

        with np.errstate(divide="ignore", invalid="ignore"):
            inv_det = 1.0 / det
            tvec = ray.origin - self._v0
            u = _row_dot(tvec, pvec) * inv_det
            qvec = np.cross(tvec, self._edge1)
            v = (qvec @ direction) * inv_det
            t = _row_dot(self._edge2, qvec) * inv_det

        valid &= (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0)
        valid &= (t >= ray.t_min) & (t <= ray.t_max)
        if not valid.any():
            return None

        index = int(np.argmin(np.where(valid, t, np.inf)))
        return self._build_hit(ray, index, float(t[index]), float(u[index]), float(v[index]), bool(backface[index]))

    def _build_hit(self, ray: Ray, index: int, t: float, u: float, v: float, backface: bool) -> RayHit:
        i0, i1, i2 = self.indices[index]
        w = 1.0 - u - v

        if self.normals is not None:
            normal = normalize(w * self.normals[i0] + u * self.normals[i1] + v * self.normals[i2])
        else:
            normal = normalize(self._face_normals[index])
        uv = w * self.uvs[i0] + u * self.uvs[i1] + v * self.uvs[i2]

        side = HitSide.INSIDE if backface else HitSide.OUTSIDE
        if backface:
            normal = -normal
        return RayHit(position=ray.at(t), normal=normal, uv=uv, distance=t, side=side)

    # -------------------------------------------------------------------------
    # Wavefront OBJ loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_obj(cls, path: str | Path, *, cull_backfaces: bool = False) -> Mesh:
        """Load a Wavefront OBJ file.

        Supports ``v``, ``vt``, ``vn`` and ``f`` records. Face vertices may be
        written as ``v``, ``v/vt``, ``v//vn`` or ``v/vt/vn``, with negative
        indices counting back from the end. Polygons are triangulated as
        fans. Texture V is flipped so row 0 of an image is the top.

        Args:
            path: Path to the .obj file.
            cull_backfaces: Passed to the Mesh constructor.

        Returns:
            The loaded Mesh.

        Raises:
            MeshLoadError: If the file is missing or holds malformed data.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise MeshLoadError(f"Cannot read mesh file {path}: {e}") from e

        positions: list[tuple[float, float, float]] = []
        texcoords: list[tuple[float, float]] = []
        normals: list[tuple[float, float, float]] = []
        faces: list[list[tuple[int, int | None, int | None]]] = []

        for line_number, raw in enumerate(text.splitlines(), start=1):
            parts = raw.split("#", 1)[0].split()
            if not parts:
                continue
            keyword, args = parts[0], parts[1:]
            try:
                if keyword == "v":
                    x, y, z = (float(a) for a in args[:3])
                    positions.append((x, y, z))
                elif keyword == "vt":
                    u = float(args[0])
                    v = float(args[1]) if len(args) > 1 else 0.0
                    texcoords.append((u, 1.0 - v))
                elif keyword == "vn":
                    x, y, z = (float(a) for a in args[:3])
                    normals.append((x, y, z))
                elif keyword == "f":
                    if len(args) < 3:
                        raise ValueError("face needs at least three vertices")
                    faces.append([
                        _parse_face_vertex(token, len(positions), len(texcoords), len(normals))
                        for token in args
                    ])
            except (ValueError, IndexError) as e:
                raise MeshLoadError(f"{path}:{line_number}: malformed '{keyword}' record: {e}") from e

        if not faces:
            raise MeshLoadError(f"Mesh file {path} contains no faces")

        has_uvs = any(corner[1] is not None for face in faces for corner in face)
        has_normals = any(corner[2] is not None for face in faces for corner in face)

        # OBJ indexes each attribute separately; emit one vertex per combination
        vertex_lookup: dict[tuple[int, int | None, int | None], int] = {}
        out_positions: list[tuple[float, float, float]] = []
        out_uvs: list[tuple[float, float]] = []
        out_normals: list[tuple[float, float, float]] = []
        triangles: list[tuple[int, int, int]] = []

        def vertex_index(corner: tuple[int, int | None, int | None]) -> int:
            if corner not in vertex_lookup:
                vi, ti, ni = corner
                vertex_lookup[corner] = len(out_positions)
                out_positions.append(positions[vi])
                out_uvs.append(texcoords[ti] if ti is not None else (0.0, 0.0))
                out_normals.append(normals[ni] if ni is not None else (0.0, 0.0, 0.0))
            return vertex_lookup[corner]

        for face in faces:
            first = vertex_index(face[0])
            for a, b in zip(face[1:-1], face[2:]):
                triangles.append((first, vertex_index(a), vertex_index(b)))

        mesh = cls(
            positions=out_positions,
            indices=triangles,
            normals=out_normals if has_normals else None,
            uvs=out_uvs if has_uvs else None,
            cull_backfaces=cull_backfaces,
            name=path.stem,
        )
        logger.info(
            "Loaded mesh %s: %d vertices, %d triangles",
            path.name,
            mesh.vertex_count,
            mesh.triangle_count,
        )
        return mesh

    def __repr__(self) -> str:
        return f"Mesh(name={self.name!r}, vertices={self.vertex_count}, triangles={self.triangle_count})"


def _resolve_index(token: str, count: int, label: str) -> int:
    index = int(token)
    resolved = index - 1 if index > 0 else count + index
    if index == 0 or not 0 <= resolved < count:
        raise ValueError(f"{label} index {index} out of range (have {count})")
    return resolved


def _parse_face_vertex(
    token: str,
    position_count: int,
    texcoord_count: int,
    normal_count: int,
) -> tuple[int, int | None, int | None]:
    fields = token.split("/")
    if len(fields) > 3:
        raise ValueError(f"bad face vertex '{token}'")
    vi = _resolve_index(fields[0], position_count, "vertex")
    ti = _resolve_index(fields[1], texcoord_count, "texture") if len(fields) > 1 and fields[1] else None
    ni = _resolve_index(fields[2], normal_count, "normal") if len(fields) > 2 and fields[2] else None
    return vi, ti, ni
