"""Tests for the octree spatial index.

Tests cover:
- Insertion and rejection of objects outside the root bound
- Subdivision at the threshold and the depth guard
- Closest-hit queries against a brute-force reference
- Shrink-and-prune and insertion after pruning
"""

import numpy as np
import pytest


class SphereItem:
    """Minimal boundable, ray-intersectable object for octree tests."""

    def __init__(self, center, radius):
        from pathtracer.geometry.sphere import Sphere

        self.sphere = Sphere(center, radius)

    @property
    def aabb(self):
        return self.sphere.aabb

    def ray_intersection(self, ray):
        hit = self.sphere.ray_intersection(ray)
        return hit.with_object(self) if hit is not None else None


def make_tree(threshold=3):
    from pathtracer.geometry.aabb import AABB
    from pathtracer.geometry.octree import Octree

    return Octree(AABB((-8.0, -8.0, -8.0), (8.0, 8.0, 8.0)), threshold)


# Centers of small spheres, one per octant of the default tree
OCTANT_CENTERS = [
    (-4.0, -4.0, -4.0),
    (-4.0, -4.0, 4.0),
    (-4.0, 4.0, -4.0),
    (-4.0, 4.0, 4.0),
    (4.0, -4.0, -4.0),
    (4.0, -4.0, 4.0),
    (4.0, 4.0, -4.0),
    (4.0, 4.0, 4.0),
]


class TestOctreeInsertion:
    """Tests for inserting objects."""

    def test_insert_inside_root(self):
        """Test that an object inside the root is stored."""
        tree = make_tree()
        item = SphereItem((0.0, 0.0, 0.0), 1.0)
        assert tree.insert(item) is True
        assert len(tree) == 1
        assert tree.objects == (item,)

    def test_insert_outside_root_is_rejected(self):
        """Test that an object not fully inside the root is not stored."""
        tree = make_tree()
        assert tree.insert(SphereItem((7.5, 0.0, 0.0), 1.0)) is False
        assert len(tree) == 0

    def test_invalid_threshold_raises(self):
        """Test that a threshold below one is rejected."""
        from pathtracer.geometry.aabb import AABB
        from pathtracer.geometry.octree import Octree

        with pytest.raises(ValueError):
            Octree(AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)), threshold=0)

    def test_no_division_below_threshold(self):
        """Test that two objects stay at the root with threshold three."""
        tree = make_tree()
        tree.insert(SphereItem(OCTANT_CENTERS[0], 1.0))
        tree.insert(SphereItem(OCTANT_CENTERS[1], 1.0))
        assert not tree.divided
        assert tree.subdivision_count() == 0

    def test_division_at_threshold(self):
        """Test that the third object triggers a division."""
        tree = make_tree()
        for center in OCTANT_CENTERS[:3]:
            tree.insert(SphereItem(center, 1.0))
        assert tree.divided
        assert tree.objects == ()
        assert len(tree) == 3

    def test_five_objects_in_distinct_octants_divide_once(self):
        """Test that objects spread over octants cause a single subdivision."""
        tree = make_tree()
        for center in OCTANT_CENTERS[:5]:
            tree.insert(SphereItem(center, 1.0))
        assert tree.subdivision_count() == 1
        assert len(tree) == 5
        assert tree.depth() == 1

    def test_straddling_object_stays_at_parent(self):
        """Test that an object crossing a split plane is kept by the parent."""
        tree = make_tree()
        for center in OCTANT_CENTERS[:3]:
            tree.insert(SphereItem(center, 1.0))
        straddler = SphereItem((0.0, 0.0, 0.0), 1.0)
        tree.insert(straddler)
        assert straddler in tree.objects

    def test_iteration_yields_each_object_once(self):
        """Test that iteration covers the whole tree without duplicates."""
        tree = make_tree()
        items = [SphereItem(center, 1.0) for center in OCTANT_CENTERS]
        items.append(SphereItem((0.0, 0.0, 0.0), 2.0))
        for item in items:
            tree.insert(item)
        stored = list(tree)
        assert len(stored) == len(items)
        assert {id(i) for i in stored} == {id(i) for i in items}

    def test_depth_is_limited(self):
        """Test that coincident objects stop subdividing at MAX_DEPTH."""
        from pathtracer.geometry.aabb import AABB
        from pathtracer.geometry.octree import MAX_DEPTH, Octree

        tree = Octree(AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0)))
        for _ in range(10):
            tree.insert(SphereItem((0.3, 0.3, 0.3), 1e-7))
        assert tree.depth() == MAX_DEPTH
        assert len(tree) == 10


class TestOctreeQueries:
    """Tests for closest-hit queries."""

    def test_empty_tree_misses(self):
        """Test that an empty tree returns no hit."""
        from pathtracer.core.ray import make_ray

        assert make_tree().ray_intersection(make_ray((0.0, 0.0, -20.0), (0.0, 0.0, 1.0))) is None

    def test_closest_of_two_objects(self):
        """Test that the nearer of two objects along a ray wins."""
        from pathtracer.core.ray import make_ray

        tree = make_tree()
        near = SphereItem((0.0, 0.0, -4.0), 1.0)
        far = SphereItem((0.0, 0.0, 4.0), 1.0)
        tree.insert(far)
        tree.insert(near)

        hit = tree.ray_intersection(make_ray((0.0, 0.0, -20.0), (0.0, 0.0, 1.0)))
        assert hit is not None
        assert hit.hit_object is near
        assert hit.distance == pytest.approx(15.0)

    def test_matches_brute_force(self):
        """Test that queries agree with a linear scan for random rays."""
        from pathtracer.core.ray import make_ray

        rng = np.random.default_rng(99)
        tree = make_tree()
        items = []
        for _ in range(40):
            center = rng.uniform(-6.0, 6.0, size=3)
            item = SphereItem(center, float(rng.uniform(0.2, 1.5)))
            items.append(item)
            tree.insert(item)

        for _ in range(200):
            origin = rng.uniform(-7.0, 7.0, size=3)
            direction = rng.normal(size=3)
            ray = make_ray(origin, direction)

            expected = None
            for item in items:
                hit = item.ray_intersection(ray)
                if hit is not None and (expected is None or hit.distance < expected.distance):
                    expected = hit

            actual = tree.ray_intersection(ray)
            if expected is None:
                assert actual is None
            else:
                assert actual is not None
                assert actual.distance == pytest.approx(expected.distance)


class TestOctreeShrinkAndPrune:
    """Tests for finalizing a tree."""

    def test_shrink_tightens_bounds(self):
        """Test that the root bound shrinks to its contents."""
        from pathtracer.geometry.aabb import AABB

        tree = make_tree()
        tree.insert(SphereItem((1.0, 1.0, 1.0), 1.0))
        shrunk = tree.shrink_and_prune()
        assert shrunk == AABB((0.0, 0.0, 0.0), (2.0, 2.0, 2.0))
        assert tree.bounds == shrunk
        assert tree.aabb == AABB((-8.0, -8.0, -8.0), (8.0, 8.0, 8.0))

    def test_empty_tree_shrinks_to_none(self):
        """Test that an empty tree has nothing to shrink to."""
        assert make_tree().shrink_and_prune() is None

    def test_prune_removes_empty_children(self):
        """Test that empty octants are dropped."""
        tree = make_tree()
        for center in OCTANT_CENTERS[:3]:
            tree.insert(SphereItem(center, 1.0))
        nodes_before = tree.node_count()
        tree.shrink_and_prune()
        assert tree.node_count() == nodes_before - 5
        assert len(tree.children) == 3

    def test_queries_unchanged_after_prune(self):
        """Test that pruning does not change query results."""
        from pathtracer.core.ray import make_ray

        rng = np.random.default_rng(5)
        tree = make_tree()
        for _ in range(20):
            tree.insert(SphereItem(rng.uniform(-6.0, 6.0, size=3), 0.8))
        rays = [make_ray(rng.uniform(-7.0, 7.0, size=3), rng.normal(size=3)) for _ in range(100)]

        before = [tree.ray_intersection(ray) for ray in rays]
        tree.shrink_and_prune()
        after = [tree.ray_intersection(ray) for ray in rays]

        for a, b in zip(before, after):
            assert (a is None) == (b is None)
            if a is not None:
                assert a.hit_object is b.hit_object
                assert a.distance == pytest.approx(b.distance)

    def test_insert_after_prune_is_found(self):
        """Test that an object added to a pruned octant is still hit."""
        from pathtracer.core.ray import make_ray

        tree = make_tree()
        for center in OCTANT_CENTERS[:3]:
            tree.insert(SphereItem(center, 1.0))
        tree.shrink_and_prune()

        late = SphereItem(OCTANT_CENTERS[7], 1.0)
        assert tree.insert(late)
        assert tree.bounds.contains_point(OCTANT_CENTERS[7])

        hit = tree.ray_intersection(make_ray((4.0, 4.0, -20.0), (0.0, 0.0, 1.0)))
        assert hit is not None
        assert hit.hit_object is late
