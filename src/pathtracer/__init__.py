"""Octree-accelerated Monte Carlo path tracer.

This package renders scenes of transformed spheres and triangle meshes by
recursively tracing light paths, with support for:
- Hierarchical transforms with lazily cached world matrices
- Octree spatial indexing over world-space bounding boxes
- Diffuse, metal, transparent and emissive materials with texture maps
- Solid, gradient and cube-map skybox environments
- A threaded, cancellable, progressive render driver

Subpackages:
    core: Rays, sampling, transforms, the recursive integrator and render driver
    geometry: Bounding boxes, the octree, spheres and triangle meshes
    materials: Textures, cube maps and material models
    camera: Perspective camera with thin-lens ray generation
    scene: Entities, environments, scenes and demo scene factories
    preview: Tone mapping, matplotlib display and PNG export
"""

__version__ = "0.1.0"
