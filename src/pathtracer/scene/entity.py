"""Scene entities: geometry placed in the world with a material.

An Entity owns its Transform but only references its geometry and
material, so many entities can share one mesh or material. Intersection
happens in the geometry's local space: the world ray is carried in through
the inverse world matrix and the hit is carried back out, with normals
transformed by the inverse-transpose.
"""

from __future__ import annotations

import itertools

from pathtracer.core.cache import Cached
from pathtracer.core.ray import Ray, RayHit, normalize, transform_direction, transform_point
from pathtracer.core.transform import Transform
from pathtracer.geometry.aabb import AABB
from pathtracer.geometry.mesh import Mesh
from pathtracer.geometry.sphere import Sphere
from pathtracer.materials.base import Material

Geometry = Sphere | Mesh

_entity_ids = itertools.count()


class Entity:
    """Geometry, material and transform combined into a scene object.

    Attributes:
        geometry: Shared local-space geometry.
        material: Shared material.
        transform: This entity's own transform.
        name: Optional label used in logs and reprs.
    """

    def __init__(
        self,
        geometry: Geometry,
        material: Material,
        transform: Transform | None = None,
        name: str = "",
    ) -> None:
        self.geometry = geometry
        self.material = material
        self.transform = transform if transform is not None else Transform()
        self.name = name or f"entity-{next(_entity_ids)}"
        self._aabb = Cached(
            lambda: self.geometry.aabb.transformed(self.transform.world_matrix),
            key=lambda: self.transform.version,
        )

    @property
    def aabb(self) -> AABB:
        """World-space bound; follows transform changes."""
        return self._aabb.get()

    def ray_intersection(self, ray: Ray) -> RayHit | None:
        """Intersect a world-space ray with this entity.

        Returns:
            The hit in world space with ``hit_object`` set to this entity,
            or None.
        """
        transform = self.transform
        local_hit = self.geometry.ray_intersection(ray.transformed(transform.world_inverse_matrix))
        if local_hit is None:
            return None

        normal = normalize(
            transform_direction(transform.world_inverse_transpose_matrix, local_hit.normal)
        )
        return RayHit(
            position=transform_point(transform.world_matrix, local_hit.position),
            normal=normal,
            uv=local_hit.uv,
            distance=local_hit.distance,
            side=local_hit.side,
            hit_object=self,
        )

    def __repr__(self) -> str:
        return f"Entity(name={self.name!r}, geometry={self.geometry!r})"
