"""Preview module for displaying and exporting rendered images.

Components:
    display: Tone mapping, gamma correction and Matplotlib preview
    export: PNG export via Pillow and image comparison helpers
"""

from .display import (
    apply_gamma,
    process_image_for_display,
    show_linear_image,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from .export import compute_rmse, image_to_uint8, save_png, save_png_from_array

__all__ = [
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "show_preview",
    "show_linear_image",
    "image_to_uint8",
    "save_png",
    "save_png_from_array",
    "compute_rmse",
]
