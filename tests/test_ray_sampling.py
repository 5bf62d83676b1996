"""Tests for rays, vector helpers and random samplers."""

import math

import numpy as np
import pytest


class TestVectorHelpers:
    """Tests for vector utility functions."""

    def test_normalize(self):
        """Test unit length output."""
        from pathtracer.core.ray import normalize

        np.testing.assert_allclose(normalize(np.array((3.0, 0.0, 4.0))), (0.6, 0.0, 0.8))

    def test_normalize_zero_vector(self):
        """Test that a zero vector stays zero."""
        from pathtracer.core.ray import normalize

        np.testing.assert_array_equal(normalize(np.zeros(3)), np.zeros(3))

    def test_as_vec3_rejects_wrong_shape(self):
        """Test that only three components are accepted."""
        from pathtracer.core.ray import as_vec3

        with pytest.raises(ValueError):
            as_vec3((1.0, 2.0))

    def test_reflect(self):
        """Test mirror reflection off a floor."""
        from pathtracer.core.ray import reflect

        reflected = reflect(np.array((1.0, -1.0, 0.0)), np.array((0.0, 1.0, 0.0)))
        np.testing.assert_allclose(reflected, (1.0, 1.0, 0.0))

    def test_refract_same_medium_passes_straight(self):
        """Test that equal indices leave the direction unchanged."""
        from pathtracer.core.ray import normalize, refract

        incident = normalize(np.array((1.0, -1.0, 0.0)))
        refracted = refract(incident, np.array((0.0, 1.0, 0.0)), 1.0)
        np.testing.assert_allclose(refracted, incident, atol=1e-12)

    def test_refract_total_internal_reflection(self):
        """Test that a steep exit from glass returns None."""
        from pathtracer.core.ray import normalize, refract

        incident = normalize(np.array((1.0, -1.0, 0.0)))
        assert refract(incident, np.array((0.0, 1.0, 0.0)), 1.5) is None

    def test_schlick_at_normal_incidence(self):
        """Test the base reflectance of glass."""
        from pathtracer.core.ray import schlick_fresnel

        assert schlick_fresnel(1.0, 1.5) == pytest.approx(0.04)
        assert schlick_fresnel(0.0, 1.5) == pytest.approx(1.0)


class TestRay:
    """Tests for Ray and RayHit."""

    def test_make_ray_normalizes(self):
        """Test that make_ray stores a unit direction."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, 0.0), (0.0, 0.0, -2.0))
        np.testing.assert_allclose(ray.direction, (0.0, 0.0, -1.0))
        assert ray.t_min == 0.0
        assert ray.t_max == 1000.0

    def test_at(self):
        """Test point evaluation along the ray."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        np.testing.assert_allclose(ray.at(2.5), (1.0, 2.5, 0.0))

    def test_inverse_direction_infinities(self):
        """Test that zero direction components give infinities."""
        from pathtracer.core.ray import Ray

        ray = Ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert math.isinf(ray.inv_direction[0])
        assert ray.inv_direction[1] == 1.0

    def test_transformed_keeps_parameter_scale(self):
        """Test that a scaled space keeps hit parameters comparable."""
        from pathtracer.core.ray import make_ray

        ray = make_ray((0.0, 0.0, 4.0), (0.0, 0.0, -1.0), 0.5, 10.0)
        half = np.diag((0.5, 0.5, 0.5, 1.0))
        local = ray.transformed(half)
        np.testing.assert_allclose(local.origin, (0.0, 0.0, 2.0))
        np.testing.assert_allclose(local.direction, (0.0, 0.0, -0.5))
        np.testing.assert_allclose(local.at(3.0), half[:3, :3] @ ray.at(3.0))
        assert (local.t_min, local.t_max) == (0.5, 10.0)

    def test_spawn_ray(self):
        """Test that secondary rays leave the surface with an offset window."""
        from pathtracer.core.ray import SECONDARY_RAY_T_MIN, RayHit, make_ray, spawn_ray

        parent = make_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), 0.0, 50.0)
        hit = RayHit(position=np.zeros(3), normal=np.array((0.0, 0.0, 1.0)), uv=np.zeros(2), distance=5.0)
        child = spawn_ray(hit, np.array((0.0, 0.0, 3.0)), parent)
        np.testing.assert_allclose(child.direction, (0.0, 0.0, 1.0))
        assert child.t_min == SECONDARY_RAY_T_MIN
        assert child.t_max == 50.0

    def test_with_object(self):
        """Test that a hit can be reattributed without mutation."""
        from pathtracer.core.ray import HitSide, RayHit

        hit = RayHit(position=np.zeros(3), normal=np.zeros(3), uv=np.zeros(2), distance=1.0, side=HitSide.INSIDE)
        owned = hit.with_object("entity")
        assert owned.hit_object == "entity"
        assert hit.hit_object is None
        assert owned.inside


class TestSampling:
    """Tests for the random samplers."""

    def test_unit_vector_with_constant_source(self, constant_rng):
        """Test a fixed draw and the number of values consumed."""
        from pathtracer.core.sampling import random_unit_vector

        source = constant_rng(0.5)
        v = random_unit_vector(source)
        np.testing.assert_allclose(v, (-1.0, 0.0, 0.0), atol=1e-12)
        assert source.calls == 2

    def test_samplers_terminate_with_degenerate_source(self, constant_rng):
        """Test that no sampler loops when every draw is identical."""
        from pathtracer.core.sampling import (
            random_in_unit_disk,
            random_in_unit_sphere,
            random_on_hemisphere,
            random_unit_vector,
            sample_cosine_hemisphere,
        )

        normal = np.array((0.0, 1.0, 0.0))
        for value in (0.0, 0.999999):
            source = constant_rng(value)
            assert np.linalg.norm(random_unit_vector(source)) == pytest.approx(1.0)
            assert np.linalg.norm(random_in_unit_sphere(source)) <= 1.0
            assert np.linalg.norm(random_in_unit_disk(source)) <= 1.0
            assert float(np.dot(random_on_hemisphere(normal, source), normal)) >= 0.0
            assert np.linalg.norm(sample_cosine_hemisphere(normal, source)) == pytest.approx(1.0)

    def test_hemisphere_flips_into_normal_side(self, constant_rng):
        """Test that a draw opposite the normal is mirrored."""
        from pathtracer.core.sampling import random_on_hemisphere

        v = random_on_hemisphere(np.array((1.0, 0.0, 0.0)), constant_rng(0.5))
        np.testing.assert_allclose(v, (1.0, 0.0, 0.0), atol=1e-12)

    def test_unit_disk_stays_in_plane(self, rng):
        """Test that disk samples have z = 0 and radius <= 1."""
        from pathtracer.core.sampling import random_in_unit_disk

        points = np.array([random_in_unit_disk(rng) for _ in range(200)])
        assert np.all(points[:, 2] == 0.0)
        assert np.all(np.linalg.norm(points, axis=1) <= 1.0)

    def test_cosine_hemisphere_distribution(self, rng):
        """Test unit length, orientation and mean cosine of 2/3."""
        from pathtracer.core.sampling import sample_cosine_hemisphere

        normal = np.array((0.0, 0.0, -1.0))
        samples = np.array([sample_cosine_hemisphere(normal, rng) for _ in range(4000)])
        np.testing.assert_allclose(np.linalg.norm(samples, axis=1), 1.0)
        cosines = samples @ normal
        assert np.all(cosines >= 0.0)
        assert cosines.mean() == pytest.approx(2.0 / 3.0, abs=0.03)

    def test_onb_is_orthonormal(self):
        """Test the basis built around a normal."""
        from pathtracer.core.sampling import build_onb_from_normal

        for normal in [(1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.3, -0.4, 0.866)]:
            u, v, w = build_onb_from_normal(np.array(normal))
            basis = np.stack((u, v, w))
            np.testing.assert_allclose(basis @ basis.T, np.identity(3), atol=1e-12)
