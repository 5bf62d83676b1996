"""Tests for axis-aligned bounding boxes.

Tests cover:
- Construction, growth and combination
- Corner and octant ordering
- Containment classification
- Transformation by rotation matrices
- Slab ray test, including axis-parallel rays
"""

import math

import numpy as np
import pytest


def unit_box():
    from pathtracer.geometry.aabb import AABB

    return AABB((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))


class TestAABBConstruction:
    """Tests for creating and growing boxes."""

    def test_minimum_above_maximum_raises(self):
        """Test that an inverted box is rejected."""
        from pathtracer.geometry.aabb import AABB

        with pytest.raises(ValueError):
            AABB((1.0, 0.0, 0.0), (0.0, 1.0, 1.0))

    def test_from_points(self):
        """Test that from_points encloses every point."""
        from pathtracer.geometry.aabb import AABB

        box = AABB.from_points([(1.0, 2.0, 3.0), (-1.0, 5.0, 0.0), (0.0, 0.0, 4.0)])
        np.testing.assert_allclose(box.minimum, (-1.0, 0.0, 0.0))
        np.testing.assert_allclose(box.maximum, (1.0, 5.0, 4.0))

    def test_from_points_empty_raises(self):
        """Test that an empty point set is rejected."""
        from pathtracer.geometry.aabb import AABB

        with pytest.raises(ValueError):
            AABB.from_points([])

    def test_from_point_has_zero_volume(self):
        """Test that a single-point box is degenerate."""
        from pathtracer.geometry.aabb import AABB

        box = AABB.from_point((1.0, 2.0, 3.0))
        assert box.volume == 0.0
        assert box.contains_point((1.0, 2.0, 3.0))

    def test_encompass_point_grows_in_place(self):
        """Test that encompass mutates and returns the same box."""
        box = unit_box()
        result = box.encompass((3.0, 0.0, -2.0))
        assert result is box
        np.testing.assert_allclose(box.minimum, (-1.0, -1.0, -2.0))
        np.testing.assert_allclose(box.maximum, (3.0, 1.0, 1.0))

    def test_encompass_box(self):
        """Test growing a box to include another box."""
        from pathtracer.geometry.aabb import AABB

        box = unit_box()
        box.encompass(AABB((0.0, 0.0, 0.0), (4.0, 4.0, 4.0)))
        assert box == AABB((-1.0, -1.0, -1.0), (4.0, 4.0, 4.0))

    def test_combine_returns_new_box(self):
        """Test that combine leaves both inputs unchanged."""
        from pathtracer.geometry.aabb import AABB

        a = AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
        b = AABB((2.0, 2.0, 2.0), (3.0, 3.0, 3.0))
        combined = AABB.combine(a, b)
        assert combined == AABB((0.0, 0.0, 0.0), (3.0, 3.0, 3.0))
        assert a == AABB((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))

    def test_copy_is_independent(self):
        """Test that copies do not share storage."""
        box = unit_box()
        copy = box.copy()
        copy.encompass((10.0, 10.0, 10.0))
        assert box == unit_box()

    def test_measurements(self):
        """Test size, center and volume."""
        from pathtracer.geometry.aabb import AABB

        box = AABB((0.0, 0.0, 0.0), (2.0, 4.0, 6.0))
        assert box.width == 2.0
        assert box.height == 4.0
        assert box.depth == 6.0
        assert box.volume == 48.0
        np.testing.assert_allclose(box.center, (1.0, 2.0, 3.0))

    def test_boxes_are_unhashable(self):
        """Test that mutable boxes cannot be used as dict keys."""
        with pytest.raises(TypeError):
            hash(unit_box())


class TestAABBCornersAndOctants:
    """Tests for corner indexing and subdivision."""

    def test_corner_bit_order(self):
        """Test that bit 2 selects max X, bit 1 max Y and bit 0 max Z."""
        box = unit_box()
        np.testing.assert_allclose(box.corner(0), (-1.0, -1.0, -1.0))
        np.testing.assert_allclose(box.corner(1), (-1.0, -1.0, 1.0))
        np.testing.assert_allclose(box.corner(2), (-1.0, 1.0, -1.0))
        np.testing.assert_allclose(box.corner(4), (1.0, -1.0, -1.0))
        np.testing.assert_allclose(box.corner(7), (1.0, 1.0, 1.0))

    @pytest.mark.parametrize("index", [-1, 8, 100])
    def test_corner_out_of_range_raises(self, index):
        """Test that corner indices outside 0-7 raise IndexError."""
        with pytest.raises(IndexError):
            unit_box().corner(index)

    def test_corners_shape(self):
        """Test that corners returns all eight corners."""
        corners = unit_box().corners()
        assert corners.shape == (8, 3)
        assert len({tuple(c) for c in corners}) == 8

    def test_octants_touch_matching_corner(self):
        """Test that octant i contains corner i of the parent."""
        box = unit_box()
        octants = box.octants()
        assert len(octants) == 8
        for index, octant in enumerate(octants):
            assert octant.contains_point(box.corner(index))
            assert octant.contains_point(box.center)
            assert octant.volume == pytest.approx(box.volume / 8.0)

    def test_halves(self):
        """Test the six axis halves."""
        box = unit_box()
        assert box.left().maximum[0] == 0.0
        assert box.right().minimum[0] == 0.0
        assert box.bottom().maximum[1] == 0.0
        assert box.top().minimum[1] == 0.0
        assert box.front().maximum[2] == 0.0
        assert box.back().minimum[2] == 0.0

    def test_could_fit(self):
        """Test size-only fitting regardless of position."""
        from pathtracer.geometry.aabb import AABB

        small = AABB((10.0, 10.0, 10.0), (11.0, 11.0, 11.0))
        assert unit_box().could_fit(small)
        assert not small.could_fit(unit_box())


class TestAABBContainment:
    """Tests for box-box classification."""

    def test_contains(self):
        """Test a box fully inside another."""
        from pathtracer.geometry.aabb import AABB, Containment

        inner = AABB((-0.5, -0.5, -0.5), (0.5, 0.5, 0.5))
        assert unit_box().contains(inner) is Containment.CONTAINS

    def test_contains_self(self):
        """Test that a box contains an identical box."""
        from pathtracer.geometry.aabb import Containment

        assert unit_box().contains(unit_box()) is Containment.CONTAINS

    def test_intersects(self):
        """Test partially overlapping boxes."""
        from pathtracer.geometry.aabb import AABB, Containment

        other = AABB((0.5, 0.5, 0.5), (2.0, 2.0, 2.0))
        assert unit_box().contains(other) is Containment.INTERSECTS

    def test_no_overlap(self):
        """Test separated boxes."""
        from pathtracer.geometry.aabb import AABB, Containment

        other = AABB((2.0, 0.0, 0.0), (3.0, 1.0, 1.0))
        assert unit_box().contains(other) is Containment.NO_OVERLAP

    def test_touching_faces_intersect(self):
        """Test that boxes sharing a face count as intersecting."""
        from pathtracer.geometry.aabb import AABB, Containment

        other = AABB((1.0, -1.0, -1.0), (2.0, 1.0, 1.0))
        assert unit_box().contains(other) is Containment.INTERSECTS


class TestAABBTransform:
    """Tests for transforming boxes."""

    def test_translation(self):
        """Test that translation moves the box."""
        from pathtracer.core.transform import translation_matrix
        from pathtracer.geometry.aabb import AABB

        moved = unit_box().transformed(translation_matrix(np.array((5.0, 0.0, 0.0))))
        assert moved == AABB((4.0, -1.0, -1.0), (6.0, 1.0, 1.0))

    def test_rotation_encloses_all_corners(self):
        """Test that a 45 degree yaw widens the box to sqrt(2)."""
        from pathtracer.core.transform import rotation_matrix

        rotated = unit_box().transformed(rotation_matrix(np.array((0.0, math.pi / 4.0, 0.0))))
        np.testing.assert_allclose(rotated.maximum, (math.sqrt(2.0), 1.0, math.sqrt(2.0)), atol=1e-12)
        np.testing.assert_allclose(rotated.minimum, (-math.sqrt(2.0), -1.0, -math.sqrt(2.0)), atol=1e-12)


class TestAABBRayIntersection:
    """Tests for the slab ray test."""

    def test_hit_returns_entry_distance(self):
        """Test a ray hitting the box head-on."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert unit_box().intersects(ray) == pytest.approx(4.0)

    def test_ray_pointing_away_misses(self):
        """Test that a box behind the ray is rejected."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, -5.0), (0.0, 0.0, -1.0))
        assert unit_box().intersects(ray) is None

    def test_origin_inside_returns_t_min(self):
        """Test that a ray starting inside enters at t_min."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, 0.0), (1.0, 1.0, 0.0), t_min=0.0)
        assert unit_box().intersects(ray) == 0.0

    def test_box_beyond_t_max_misses(self):
        """Test that the ray window limits hits."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), t_max=3.0)
        assert unit_box().intersects(ray) is None

    def test_axis_parallel_ray_outside_slab_misses(self):
        """Test a ray parallel to the X slabs but outside them."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((2.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert unit_box().intersects(ray) is None

    def test_axis_parallel_ray_inside_slab_hits(self):
        """Test a ray with two zero direction components."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.5, -0.5, -5.0), (0.0, 0.0, 1.0))
        assert unit_box().intersects(ray) == pytest.approx(4.0)

    def test_ray_on_slab_boundary_is_not_rejected(self):
        """Test that a ray running along a face yields NaN slabs that are skipped."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((1.0, 0.0, -5.0), (0.0, 0.0, 1.0))
        assert unit_box().intersects(ray) == pytest.approx(4.0)

    def test_diagonal_ray(self):
        """Test a diagonal ray through a corner region."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((-3.0, -3.0, -3.0), (1.0, 1.0, 1.0))
        entry = unit_box().intersects(ray)
        assert entry == pytest.approx(2.0 * math.sqrt(3.0))
