"""Octree spatial index over boundable, ray-intersectable objects.

Each node owns a bounding box and the objects whose box it fully contains
but none of its children fully contains. A leaf divides into eight octants
once it holds ``DIVIDE_THRESHOLD`` objects, pushing every object that fits
a single octant down into it. Objects straddling a split plane stay at the
parent and are never duplicated.

Ray queries prune whole subtrees whose box the ray misses, but otherwise
visit every child and keep the globally closest hit.

Example:
    >>> from pathtracer.geometry.aabb import AABB
    >>> from pathtracer.geometry.octree import Octree
    >>> tree = Octree(AABB((-10, -10, -10), (10, 10, 10)))
    >>> tree.insert(entity)  # any object with .aabb and .ray_intersection()
    True
    >>> hit = tree.ray_intersection(ray)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, Protocol, TypeVar

from pathtracer.core.ray import Ray, RayHit
from pathtracer.geometry.aabb import AABB, Containment

# Direct object count at which a leaf divides
DIVIDE_THRESHOLD = 3

# Nodes at this depth never divide (guards against degenerate boxes)
MAX_DEPTH = 16


class Boundable(Protocol):
    """Object exposing a world-space bounding box."""

    @property
    def aabb(self) -> AABB: ...


class RayIntersectable(Protocol):
    """Object that can be hit by a ray."""

    def ray_intersection(self, ray: Ray) -> RayHit | None: ...


class OctreeItem(Boundable, RayIntersectable, Protocol):
    """Object that can be stored in an octree."""


T = TypeVar("T", bound=OctreeItem)


class Octree(Generic[T]):
    """A node of an octree; the root node represents the whole tree.

    Attributes:
        aabb: The node's allocated bound.
        bounds: The bound used for ray rejection. Equals ``aabb`` until
            ``shrink_and_prune`` tightens it to the node's contents.
    """

    def __init__(
        self,
        aabb: AABB,
        threshold: int = DIVIDE_THRESHOLD,
        depth: int = 0,
    ) -> None:
        if threshold < 1:
            raise ValueError(f"Octree threshold must be >= 1, got {threshold}")
        self._aabb = aabb.copy()
        self._shrunk: AABB | None = None
        self._threshold = threshold
        self._depth = depth
        self._objects: list[T] = []
        self._octants: list[AABB] | None = None
        # Entries become None when shrink_and_prune removes an empty child
        self._children: list[Octree[T] | None] | None = None

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def aabb(self) -> AABB:
        return self._aabb

    @property
    def bounds(self) -> AABB:
        return self._shrunk if self._shrunk is not None else self._aabb

    @property
    def divided(self) -> bool:
        return self._children is not None

    @property
    def objects(self) -> tuple[T, ...]:
        """Objects stored directly at this node."""
        return tuple(self._objects)

    @property
    def children(self) -> tuple[Octree[T], ...]:
        """Existing child nodes (pruned children are omitted)."""
        if self._children is None:
            return ()
        return tuple(child for child in self._children if child is not None)

    def __len__(self) -> int:
        return len(self._objects) + sum(len(child) for child in self.children)

    def __iter__(self) -> Iterator[T]:
        yield from self._objects
        for child in self.children:
            yield from child

    def iter_nodes(self) -> Iterator[Octree[T]]:
        """Yield this node and every descendant node, depth first."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def subdivision_count(self) -> int:
        """Number of nodes that have divided."""
        return sum(1 for node in self.iter_nodes() if node.divided)

    def depth(self) -> int:
        """Number of levels below this node."""
        return max((child.depth() + 1 for child in self.children), default=0)

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    def insert(self, item: T) -> bool:
        """Insert an object into the tightest node that fully contains it.

        Returns:
            False if this node's bound does not fully contain the object's
            bound; the object is then not stored.
        """
        box = item.aabb
        if self._aabb.contains(box) is not Containment.CONTAINS:
            return False
        self._insert_contained(item, box)
        return True

    def _insert_contained(self, item: T, box: AABB) -> None:
        if self._shrunk is not None:
            self._shrunk.encompass(box)

        if self._children is not None:
            if not self._push_down(item, box):
                self._objects.append(item)
            return

        self._objects.append(item)
        if len(self._objects) >= self._threshold and self._depth < MAX_DEPTH:
            self._divide()

    def _push_down(self, item: T, box: AABB) -> bool:
        assert self._children is not None and self._octants is not None
        for index, octant in enumerate(self._octants):
            if octant.contains(box) is Containment.CONTAINS:
                child = self._children[index]
                if child is None:
                    child = Octree(octant, self._threshold, self._depth + 1)
                    self._children[index] = child
                child._insert_contained(item, box)
                return True
        return False

    def _divide(self) -> None:
        self._octants = self._aabb.octants()
        self._children = [
            Octree(octant, self._threshold, self._depth + 1) for octant in self._octants
        ]
        held = self._objects
        self._objects = []
        for item in held:
            if not self._push_down(item, item.aabb):
                self._objects.append(item)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def ray_intersection(self, ray: Ray) -> RayHit | None:
        """Return the closest hit among all stored objects, or None."""
        if self.bounds.intersects(ray) is None:
            return None
        return self._closest_hit(ray)

    def _closest_hit(self, ray: Ray) -> RayHit | None:
        closest: RayHit | None = None
        for item in self._objects:
            hit = item.ray_intersection(ray)
            if hit is not None and (closest is None or hit.distance < closest.distance):
                closest = hit

        for child in self.children:
            entry = child.bounds.intersects(ray)
            if entry is None:
                continue
            if closest is not None and entry > closest.distance:
                continue
            hit = child._closest_hit(ray)
            if hit is not None and (closest is None or hit.distance < closest.distance):
                closest = hit
        return closest

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    def shrink_and_prune(self) -> AABB | None:
        """Tighten node bounds to their contents and drop empty subtrees.

        Query results are unchanged. Objects inserted afterwards grow the
        tightened bounds along their insertion path.

        Returns:
            The tightened bound of this node, or None if it holds nothing.
        """
        shrunk: AABB | None = None
        for item in self._objects:
            shrunk = item.aabb.copy() if shrunk is None else shrunk.encompass(item.aabb)

        if self._children is not None:
            for index, child in enumerate(self._children):
                if child is None:
                    continue
                child_bounds = child.shrink_and_prune()
                if child_bounds is None:
                    self._children[index] = None
                    continue
                shrunk = child_bounds.copy() if shrunk is None else shrunk.encompass(child_bounds)

        if shrunk is None:
            self._shrunk = None
            return None
        self._shrunk = shrunk
        return shrunk

    def __repr__(self) -> str:
        return (
            f"Octree(aabb={self._aabb!r}, objects={len(self._objects)}, "
            f"divided={self.divided}, depth={self._depth})"
        )
