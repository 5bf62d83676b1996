"""Camera module for primary ray generation.

Components:
    camera: Perspective camera with lazily rebuilt view/projection matrices
        and optional thin-lens depth of field
"""

from .camera import DEFAULT_FAR, DEFAULT_NEAR, Camera, perspective_matrix

__all__ = [
    "Camera",
    "perspective_matrix",
    "DEFAULT_NEAR",
    "DEFAULT_FAR",
]
