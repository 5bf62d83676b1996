"""Exception types raised by the path tracer.

Scene construction errors are raised eagerly, when a mesh or texture is
created, never deferred to render time.
"""


class PathTracerError(Exception):
    """Base class for all path tracer errors."""


class SceneConstructionError(PathTracerError, ValueError):
    """Raised when scene data cannot be built from its source."""


class MeshLoadError(SceneConstructionError):
    """Raised when mesh data is missing or malformed."""


class TextureLoadError(SceneConstructionError):
    """Raised when texture data is missing or malformed."""


class TransformCycleError(PathTracerError, ValueError):
    """Raised when parenting a transform would create a cycle."""
