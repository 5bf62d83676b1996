"""Tests for the demo scene factories."""

import math

import numpy as np
import pytest


class TestSpheresScene:
    """Tests for create_spheres_scene."""

    def test_contents(self):
        """Test entity count, names and octree membership."""
        from pathtracer.scene.demo_scenes import RANDOM_SPHERE_COUNT, create_spheres_scene

        scene, camera = create_spheres_scene()
        assert len(scene) == 4 + RANDOM_SPHERE_COUNT
        assert len(scene.octree) == len(scene)
        names = {entity.name for entity in scene}
        assert {"ground", "green", "mirror", "gold"} <= names
        np.testing.assert_allclose(camera.position, (0.0, 5.0, 20.0))
        assert camera.aspect_ratio == pytest.approx(16 / 9)

    def test_seeded_layout(self):
        """Test that the seed controls the floating spheres."""
        from pathtracer.scene.demo_scenes import create_spheres_scene

        def layout(seed):
            scene, _ = create_spheres_scene(seed=seed)
            return [tuple(e.transform.position) for e in scene if e.name.startswith("floating")]

        assert layout(5) == layout(5)
        assert layout(5) != layout(6)

    def test_camera_looks_slightly_down(self):
        """Test the camera orientation."""
        from pathtracer.scene.demo_scenes import create_spheres_scene

        _, camera = create_spheres_scene()
        forward = camera.forward
        assert forward[2] < -0.9
        assert forward[1] < 0.0

    def test_ground_is_hit_below_horizon(self):
        """Test that looking straight down hits the ground sphere."""
        from pathtracer.core.ray import make_ray
        from pathtracer.scene.demo_scenes import create_spheres_scene

        scene, _ = create_spheres_scene()
        hit = scene.closest_hit(make_ray((0.0, 50.0, 40.0), (0.0, -1.0, 0.0)))
        assert hit is not None
        assert hit.hit_object.name == "ground"
        expected_y = -1000.0 + math.sqrt(1000.0**2 - 40.0**2)
        assert hit.position[1] == pytest.approx(expected_y)


class TestCornellBoxScene:
    """Tests for create_cornell_box_scene."""

    def test_contents(self):
        """Test five walls, one light and three spheres."""
        from pathtracer.materials.emissive import EmissiveMaterial
        from pathtracer.scene.demo_scenes import create_cornell_box_scene

        scene, _ = create_cornell_box_scene()
        names = [entity.name for entity in scene]
        assert len(names) == 9
        assert {"left-wall", "right-wall", "back-wall", "floor", "ceiling", "light"} <= set(names)
        light = next(e for e in scene if e.name == "light")
        assert isinstance(light.material, EmissiveMaterial)
        assert light.material.intensity == 15.0

    def test_walls_face_inward(self):
        """Test that every wall normal points into the box."""
        from pathtracer.core.ray import HitSide, make_ray
        from pathtracer.scene.demo_scenes import create_cornell_box_scene

        scene, _ = create_cornell_box_scene()
        # From a point inside the box toward each wall
        probes = {
            "left-wall": ((400.0, 400.0, 100.0), (1.0, 0.0, 0.0)),
            "right-wall": ((120.0, 400.0, 60.0), (-1.0, 0.0, 0.0)),
            "back-wall": ((120.0, 400.0, 60.0), (0.0, 0.0, 1.0)),
            "floor": ((120.0, 400.0, 60.0), (0.0, -1.0, 0.0)),
            "ceiling": ((120.0, 400.0, 60.0), (0.0, 1.0, 0.0)),
        }
        for name, (origin, direction) in probes.items():
            hit = scene.closest_hit(make_ray(origin, direction))
            assert hit.hit_object.name == name
            assert hit.side is HitSide.OUTSIDE
            np.testing.assert_allclose(hit.normal, -np.array(direction), atol=1e-12)

    def test_light_above_floor_center(self):
        """Test that the light faces down over the middle of the floor."""
        from pathtracer.core.ray import make_ray
        from pathtracer.scene.demo_scenes import create_cornell_box_scene

        scene, _ = create_cornell_box_scene()
        hit = scene.closest_hit(make_ray((277.5, 1.0, 277.5), (0.0, 1.0, 0.0)))
        assert hit.hit_object.name == "light"
        assert hit.position[1] == pytest.approx(554.0)
        np.testing.assert_allclose(hit.normal, (0.0, -1.0, 0.0), atol=1e-12)

    def test_camera_looks_into_box(self):
        """Test that rays near the center reach the back wall."""
        from pathtracer.scene.demo_scenes import create_cornell_box_scene

        scene, camera = create_cornell_box_scene()
        np.testing.assert_allclose(camera.forward, (0.0, 0.0, 1.0), atol=1e-12)
        ray = camera.get_ray_through_pixel(40.0, 50.0, 100, 100)
        hit = scene.closest_hit(ray)
        assert hit.hit_object.name == "back-wall"
        assert hit.position[2] == pytest.approx(555.0)
        # +X is to the left when looking into the box
        assert hit.position[0] > 277.5

    def test_box_size_scales_scene(self):
        """Test a unit-sized box."""
        from pathtracer.scene.demo_scenes import CornellBoxParams, create_cornell_box_scene

        scene, camera = create_cornell_box_scene(CornellBoxParams(box_size=1.0, aspect_ratio=2.0))
        assert len(scene) == 9
        np.testing.assert_allclose(camera.position, (0.5, 0.5, -800.0 / 555.0))
        assert camera.far == pytest.approx(10.0)
        assert camera.aspect_ratio == 2.0

    @pytest.mark.parametrize("kwargs", [{"box_size": 0.0}, {"light_intensity": -1.0}])
    def test_invalid_params_raise(self, kwargs):
        """Test parameter validation."""
        from pathtracer.scene.demo_scenes import CornellBoxParams

        with pytest.raises(ValueError):
            CornellBoxParams(**kwargs)
