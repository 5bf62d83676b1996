"""Scene container: entities, their octree and the environment.

The Scene keeps an ordered entity list for enumeration and an octree for
ray queries; every entity in one is also in the other. The octree root is
sized by ``bounds``. Adding an entity that does not fit grows the bounds
and rebuilds the tree, so callers never need to size the scene up front.

Example:
    >>> from pathtracer.geometry.sphere import Sphere
    >>> from pathtracer.materials.diffuse import DiffuseMaterial
    >>> from pathtracer.scene.entity import Entity
    >>> from pathtracer.scene.scene import Scene
    >>> scene = Scene("demo")
    >>> scene.add(Entity(Sphere(radius=1.0), DiffuseMaterial(color=(0.8, 0.8, 0.8))))
    >>> scene.finalize_octree()
    >>> hit = scene.closest_hit(ray)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from pathtracer.core.ray import Ray, RayHit, Vec3, Vec3Like
from pathtracer.geometry.aabb import AABB
from pathtracer.geometry.octree import DIVIDE_THRESHOLD, Octree
from pathtracer.scene.entity import Entity
from pathtracer.scene.environment import Environment, SolidEnvironment

logger = logging.getLogger(__name__)

# Default half-extent of the octree root
DEFAULT_SCENE_EXTENT = 1000.0


class Scene:
    """A renderable collection of entities.

    Attributes:
        name: Label used in logs.
        environment: Background color function for escaping rays.
    """

    def __init__(
        self,
        name: str = "scene",
        environment: Environment | None = None,
        bounds: AABB | None = None,
        octree_threshold: int = DIVIDE_THRESHOLD,
    ) -> None:
        self.name = name
        self.environment: Environment = environment if environment is not None else SolidEnvironment()
        extent = DEFAULT_SCENE_EXTENT
        self._bounds = bounds.copy() if bounds is not None else AABB((-extent,) * 3, (extent,) * 3)
        self._threshold = octree_threshold
        self._entities: list[Entity] = []
        self._octree: Octree[Entity] = Octree(self._bounds, self._threshold)
        self._finalized = False

    # -------------------------------------------------------------------------
    # Contents
    # -------------------------------------------------------------------------

    @property
    def bounds(self) -> AABB:
        return self._bounds.copy()

    @property
    def octree(self) -> Octree[Entity]:
        return self._octree

    @property
    def entities(self) -> tuple[Entity, ...]:
        return tuple(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(tuple(self._entities))

    def __getitem__(self, index: int) -> Entity:
        return self._entities[index]

    def __contains__(self, entity: object) -> bool:
        return any(e is entity for e in self._entities)

    def add(self, entity: Entity) -> Entity:
        """Add an entity to the list and the octree.

        Returns:
            The added entity.
        """
        self._entities.append(entity)
        if not self._octree.insert(entity):
            self._bounds.encompass(entity.aabb)
            logger.info(
                "Scene %r: %s lies outside the octree bounds, growing to %s",
                self.name,
                entity.name,
                self._bounds,
            )
            self.rebuild_octree()
        return entity

    def remove(self, entity: Entity) -> None:
        """Remove an entity and rebuild the octree.

        Raises:
            ValueError: If the entity is not part of this scene.
        """
        for index, candidate in enumerate(self._entities):
            if candidate is entity:
                del self._entities[index]
                self.rebuild_octree()
                return
        raise ValueError(f"{entity!r} is not in scene {self.name!r}")

    def rebuild_octree(self) -> None:
        """Rebuild the octree from the entity list.

        Call after moving entities. The bounds grow if an entity no longer
        fits, and a finalized tree is finalized again.
        """
        for entity in self._entities:
            self._bounds.encompass(entity.aabb)

        octree: Octree[Entity] = Octree(self._bounds, self._threshold)
        for entity in self._entities:
            octree.insert(entity)
        self._octree = octree
        if self._finalized:
            octree.shrink_and_prune()
        logger.debug(
            "Scene %r: rebuilt octree with %d entities, %d nodes",
            self.name,
            len(self._entities),
            octree.node_count(),
        )

    def finalize_octree(self) -> None:
        """Tighten the octree after bulk insertion."""
        self._octree.shrink_and_prune()
        self._finalized = True
        logger.debug("Scene %r: octree finalized (depth %d)", self.name, self._octree.depth())

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def closest_hit(self, ray: Ray) -> RayHit | None:
        """Closest entity hit by a world-space ray."""
        return self._octree.ray_intersection(ray)

    def background(self, direction: Vec3Like) -> Vec3:
        """Environment color seen along a direction."""
        return self.environment.color_from_direction(direction)

    def __repr__(self) -> str:
        return f"Scene(name={self.name!r}, entities={len(self._entities)})"
