"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


class ConstantRandom:
    """Random source that always returns the same value."""

    def __init__(self, value: float = 0.5) -> None:
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value


class SequenceRandom:
    """Random source that cycles through a fixed list of values."""

    def __init__(self, values) -> None:
        self.values = list(values)
        self.index = 0

    def random(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value


@pytest.fixture
def constant_rng():
    """Factory for constant random sources."""
    return ConstantRandom


@pytest.fixture
def sequence_rng():
    """Factory for cycling random sources."""
    return SequenceRandom


@pytest.fixture
def rng():
    """Seeded NumPy generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def single_sphere_scene():
    """Scene with one unit diffuse sphere at the origin and a solid white sky."""
    from pathtracer.geometry.sphere import Sphere
    from pathtracer.materials.diffuse import DiffuseMaterial
    from pathtracer.scene.entity import Entity
    from pathtracer.scene.environment import SolidEnvironment
    from pathtracer.scene.scene import Scene

    scene = Scene("single-sphere", environment=SolidEnvironment((1.0, 1.0, 1.0)))
    scene.add(Entity(Sphere(radius=1.0), DiffuseMaterial(color=(0.5, 0.5, 0.5)), name="ball"))
    scene.finalize_octree()
    return scene


@pytest.fixture
def empty_scene():
    """Scene with no entities and a constant sky."""
    from pathtracer.scene.environment import SolidEnvironment
    from pathtracer.scene.scene import Scene

    return Scene("empty", environment=SolidEnvironment((0.25, 0.5, 0.75)))


@pytest.fixture
def front_camera():
    """Square camera at (0, 0, 5) looking down -Z."""
    from pathtracer.camera.camera import Camera

    return Camera(position=(0.0, 0.0, 5.0), fov=45.0, aspect_ratio=1.0)
