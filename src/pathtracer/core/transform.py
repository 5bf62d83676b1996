"""Hierarchical position/rotation/scale nodes with lazily cached matrices.

A Transform stores its local position, rotation (pitch, yaw, roll in
radians) and scale. Its world matrix is the parent's world matrix times the
local matrix ``T @ R @ S``, where ``R = Ry(yaw) @ Rx(pitch) @ Rz(roll)``.
Matrices are only rebuilt when read after a mutation of the node or of one
of its ancestors.

Parents own their children; a child only holds a weak reference to its
parent, so dropping a subtree root releases the subtree.

Example:
    >>> from pathtracer.core.transform import Transform
    >>> root = Transform(position=(0.0, 1.0, 0.0))
    >>> child = Transform(position=(2.0, 0.0, 0.0))
    >>> root.add_child(child, make_child_relative=False)
    >>> child.world_position
    array([2., 1., 0.])
"""

from __future__ import annotations

import logging
import math
import weakref
from collections.abc import Iterator

import numpy as np

from pathtracer.core.cache import Cached
from pathtracer.core.ray import Matrix4, Vec3, Vec3Like, as_vec3
from pathtracer.errors import TransformCycleError

logger = logging.getLogger(__name__)

# Determinant magnitude below which a world matrix is treated as singular
SINGULAR_EPSILON = 1e-12

# Local axes in the untransformed frame
_FORWARD = np.array((0.0, 0.0, -1.0))
_UP = np.array((0.0, 1.0, 0.0))
_RIGHT = np.array((1.0, 0.0, 0.0))


# =============================================================================
# Matrix Construction
# =============================================================================


def translation_matrix(position: Vec3) -> Matrix4:
    """Build a 4x4 translation matrix."""
    m = np.identity(4)
    m[:3, 3] = position
    return m


def scale_matrix(scale: Vec3) -> Matrix4:
    """Build a 4x4 non-uniform scale matrix."""
    return np.diag((scale[0], scale[1], scale[2], 1.0))


def rotation_matrix(pitch_yaw_roll: Vec3) -> Matrix4:
    """Build a 4x4 rotation matrix from pitch (X), yaw (Y) and roll (Z).

    Roll is applied first, then pitch, then yaw.
    """
    pitch, yaw, roll = pitch_yaw_roll
    cp, sp = math.cos(pitch), math.sin(pitch)
    cy, sy = math.cos(yaw), math.sin(yaw)
    cr, sr = math.cos(roll), math.sin(roll)

    rx = np.array(((1.0, 0.0, 0.0), (0.0, cp, -sp), (0.0, sp, cp)))
    ry = np.array(((cy, 0.0, sy), (0.0, 1.0, 0.0), (-sy, 0.0, cy)))
    rz = np.array(((cr, -sr, 0.0), (sr, cr, 0.0), (0.0, 0.0, 1.0)))

    m = np.identity(4)
    m[:3, :3] = ry @ rx @ rz
    return m


def euler_from_rotation(rotation: np.ndarray) -> Vec3:
    """Recover (pitch, yaw, roll) from a pure 3x3 rotation matrix.

    Inverse of ``rotation_matrix``. At gimbal lock (pitch of +/-90 degrees)
    yaw is reported as zero and the remaining rotation is folded into roll.
    """
    sin_pitch = float(np.clip(-rotation[1, 2], -1.0, 1.0))
    pitch = math.asin(sin_pitch)
    if abs(sin_pitch) < 1.0 - 1e-9:
        yaw = math.atan2(rotation[0, 2], rotation[2, 2])
        roll = math.atan2(rotation[1, 0], rotation[1, 1])
    else:
        yaw = 0.0
        roll = math.atan2(-rotation[0, 1], rotation[0, 0])
    return np.array((pitch, yaw, roll), dtype=np.float64)


def decompose_matrix(matrix: Matrix4) -> tuple[Vec3, Vec3, Vec3]:
    """Split an affine matrix into position, pitch/yaw/roll and scale.

    Shear cannot be represented and is discarded. A mirrored basis is
    expressed as a negative X scale.

    Returns:
        Tuple (position, pitch_yaw_roll, scale).
    """
    position = np.array(matrix[:3, 3], dtype=np.float64)
    basis = np.array(matrix[:3, :3], dtype=np.float64)
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0.0:
        scale[0] = -scale[0]

    rotation = np.identity(3)
    for axis in range(3):
        if abs(scale[axis]) > SINGULAR_EPSILON:
            rotation[:, axis] = basis[:, axis] / scale[axis]
    return position, euler_from_rotation(rotation), scale


def safe_inverse(matrix: Matrix4) -> Matrix4:
    """Invert a matrix, substituting identity when it is singular.

    Rendering continues with an untransformed object instead of failing.
    A warning is logged each time the substitution happens.
    """
    if abs(np.linalg.det(matrix[:3, :3])) < SINGULAR_EPSILON:
        logger.warning("Singular matrix, substituting identity for its inverse")
        return np.identity(4)
    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        logger.warning("Matrix inversion failed, substituting identity")
        return np.identity(4)


# =============================================================================
# Transform Node
# =============================================================================


class Transform:
    """A node in a position/rotation/scale hierarchy.

    Attributes:
        position: Local translation.
        pitch_yaw_roll: Local rotation in radians.
        scale: Local per-axis scale.
        version: Counter bumped whenever this node or an ancestor changes.
            Dependent caches use it as their version key.
    """

    def __init__(
        self,
        position: Vec3Like = (0.0, 0.0, 0.0),
        pitch_yaw_roll: Vec3Like = (0.0, 0.0, 0.0),
        scale: Vec3Like | float = (1.0, 1.0, 1.0),
    ) -> None:
        self._position = as_vec3(position)
        self._pitch_yaw_roll = as_vec3(pitch_yaw_roll)
        self._scale = _as_scale(scale)

        self._parent_ref: weakref.ReferenceType[Transform] | None = None
        self._children: list[Transform] = []
        self._version = 0

        self._rotation = Cached(lambda: rotation_matrix(self._pitch_yaw_roll))
        self._local = Cached(self._compute_local)
        self._world = Cached(self._compute_world)

    # -------------------------------------------------------------------------
    # Local state
    # -------------------------------------------------------------------------

    @property
    def position(self) -> Vec3:
        return self._position.copy()

    @position.setter
    def position(self, value: Vec3Like) -> None:
        self.set_position(value)

    @property
    def pitch_yaw_roll(self) -> Vec3:
        return self._pitch_yaw_roll.copy()

    @pitch_yaw_roll.setter
    def pitch_yaw_roll(self, value: Vec3Like) -> None:
        self.set_rotation(value)

    @property
    def scale(self) -> Vec3:
        return self._scale.copy()

    @scale.setter
    def scale(self, value: Vec3Like | float) -> None:
        self.set_scale(value)

    @property
    def version(self) -> int:
        return self._version

    @property
    def forward(self) -> Vec3:
        """Local -Z axis after rotation, in the parent's space."""
        return self._rotation.get()[:3, :3] @ _FORWARD

    @property
    def up(self) -> Vec3:
        """Local +Y axis after rotation, in the parent's space."""
        return self._rotation.get()[:3, :3] @ _UP

    @property
    def right(self) -> Vec3:
        """Local +X axis after rotation, in the parent's space."""
        return self._rotation.get()[:3, :3] @ _RIGHT

    @property
    def local_matrix(self) -> Matrix4:
        return self._local.get()

    def set_position(self, position: Vec3Like) -> None:
        self._position = as_vec3(position)
        self._mark_dirty()

    def set_rotation(self, pitch_yaw_roll: Vec3Like) -> None:
        self._pitch_yaw_roll = as_vec3(pitch_yaw_roll)
        self._mark_dirty()

    def set_scale(self, scale: Vec3Like | float) -> None:
        self._scale = _as_scale(scale)
        self._mark_dirty()

    def move_absolute(self, offset: Vec3Like) -> None:
        """Translate along the parent's axes."""
        self._position = self._position + as_vec3(offset)
        self._mark_dirty()

    def move_relative(self, offset: Vec3Like) -> None:
        """Translate along this node's own rotated axes."""
        self._position = self._position + self._rotation.get()[:3, :3] @ as_vec3(offset)
        self._mark_dirty()

    def rotate(self, pitch_yaw_roll: Vec3Like) -> None:
        """Add to the current pitch, yaw and roll."""
        self._pitch_yaw_roll = self._pitch_yaw_roll + as_vec3(pitch_yaw_roll)
        self._mark_dirty()

    def scale_relative(self, factor: Vec3Like | float) -> None:
        """Multiply the current scale."""
        self._scale = self._scale * _as_scale(factor)
        self._mark_dirty()

    def set_transform_from_matrix(self, matrix: Matrix4) -> None:
        """Replace local position, rotation and scale by decomposing a matrix."""
        position, pitch_yaw_roll, scale = decompose_matrix(np.asarray(matrix, dtype=np.float64))
        self._position = position
        self._pitch_yaw_roll = pitch_yaw_roll
        self._scale = scale
        self._mark_dirty()

    # -------------------------------------------------------------------------
    # World matrices
    # -------------------------------------------------------------------------

    @property
    def world_matrix(self) -> Matrix4:
        """Local-to-world matrix, rebuilt lazily."""
        return self._world.get()[0]

    @property
    def world_inverse_matrix(self) -> Matrix4:
        """World-to-local matrix; identity if the world matrix is singular."""
        return self._world.get()[1]

    @property
    def world_inverse_transpose_matrix(self) -> Matrix4:
        """Matrix that carries local normals into world space."""
        return self._world.get()[2]

    @property
    def world_position(self) -> Vec3:
        return self.world_matrix[:3, 3].copy()

    def _compute_local(self) -> Matrix4:
        return (
            translation_matrix(self._position)
            @ self._rotation.get()
            @ scale_matrix(self._scale)
        )

    def _compute_world(self) -> tuple[Matrix4, Matrix4, Matrix4]:
        parent = self.parent
        world = self._local.get()
        if parent is not None:
            world = parent.world_matrix @ world
        inverse = safe_inverse(world)
        return world, inverse, inverse.T.copy()

    def _mark_dirty(self) -> None:
        self._version += 1
        self._rotation.invalidate()
        self._local.invalidate()
        self._world.invalidate()
        for child in self._children:
            child._mark_ancestor_dirty()

    def _mark_ancestor_dirty(self) -> None:
        self._version += 1
        self._world.invalidate()
        for child in self._children:
            child._mark_ancestor_dirty()

    # -------------------------------------------------------------------------
    # Hierarchy
    # -------------------------------------------------------------------------

    @property
    def parent(self) -> Transform | None:
        if self._parent_ref is None:
            return None
        parent = self._parent_ref()
        if parent is None:
            self._parent_ref = None
        return parent

    @property
    def children(self) -> tuple[Transform, ...]:
        return tuple(self._children)

    @property
    def child_count(self) -> int:
        return len(self._children)

    def get_child(self, index: int) -> Transform:
        return self._children[index]

    def get_child_index(self, child: Transform) -> int:
        """Return the index of a child, or -1 if it is not a child."""
        for index, candidate in enumerate(self._children):
            if candidate is child:
                return index
        return -1

    def is_ancestor_of(self, other: Transform) -> bool:
        """True if this node is a parent, grandparent, ... of ``other``."""
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def iter_descendants(self) -> Iterator[Transform]:
        """Yield every node below this one, depth first."""
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def add_child(self, child: Transform, make_child_relative: bool = True) -> None:
        """Attach a node as a child of this one.

        Args:
            child: The node to attach. It is detached from its current
                parent first.
            make_child_relative: If True, the child's local state is
                rewritten so its world placement does not change. If False,
                its local state is kept and it moves with this node.

        Raises:
            TransformCycleError: If ``child`` is this node or one of its
                ancestors.
        """
        if child is self or child.is_ancestor_of(self):
            raise TransformCycleError("Cannot parent a transform to itself or to one of its descendants")

        child_world = child.world_matrix
        old_parent = child.parent
        if old_parent is not None:
            old_parent._detach(child)

        child._parent_ref = weakref.ref(self)
        self._children.append(child)

        if make_child_relative:
            child.set_transform_from_matrix(self.world_inverse_matrix @ child_world)
        else:
            child._mark_dirty()

    def remove_child(self, child: Transform, apply_parent_transform: bool = True) -> None:
        """Detach a child from this node.

        Args:
            child: The node to detach.
            apply_parent_transform: If True, the child keeps its current world
                placement. If False, its local state becomes its world state.

        Raises:
            ValueError: If ``child`` is not a child of this node.
        """
        if self.get_child_index(child) < 0:
            raise ValueError("Transform is not a child of this node")

        child_world = child.world_matrix
        self._detach(child)
        if apply_parent_transform:
            child.set_transform_from_matrix(child_world)
        else:
            child._mark_dirty()

    def set_parent(self, parent: Transform | None, keep_world: bool = True) -> None:
        """Reparent this node, or detach it when ``parent`` is None."""
        if parent is None:
            current = self.parent
            if current is not None:
                current.remove_child(self, apply_parent_transform=keep_world)
            return
        parent.add_child(self, make_child_relative=keep_world)

    def _detach(self, child: Transform) -> None:
        index = self.get_child_index(child)
        del self._children[index]
        child._parent_ref = None

    def __repr__(self) -> str:
        return (
            f"Transform(position={self._position.tolist()}, "
            f"pitch_yaw_roll={self._pitch_yaw_roll.tolist()}, "
            f"scale={self._scale.tolist()}, children={len(self._children)})"
        )


def _as_scale(value: Vec3Like | float) -> Vec3:
    if np.isscalar(value):
        return np.full(3, float(value))  # type: ignore[arg-type]
    return as_vec3(value)  # type: ignore[arg-type]
