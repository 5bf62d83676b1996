"""Image export utilities for rendered images.

Supported formats:
    - PNG (8-bit via Pillow)

Render results are already gamma corrected and are written directly.
Linear images (for example ``Framebuffer.linear_image()``) go through the
tone mapping and gamma pipeline of ``preview.display`` first.

Example:
    >>> from pathtracer.preview.export import save_png
    >>> results = Raytracer().render(params)
    >>> save_png(results, "output.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from pathtracer.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from pathtracer.core.progressive import RaytracingResults


def save_png(
    results: RaytracingResults,
    filepath: str | Path,
    *,
    include_alpha: bool = False,
) -> None:
    """Save a render result as a PNG file.

    Args:
        results: The RaytracingResults to save.
        filepath: Output file path (should end in .png).
        include_alpha: Write RGBA instead of RGB.
    """
    pixels = results.to_uint8()
    if include_alpha:
        pil_image = PILImage.fromarray(pixels, mode="RGBA")
    else:
        pil_image = PILImage.fromarray(np.ascontiguousarray(pixels[:, :, :3]), mode="RGB")
    pil_image.save(filepath)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float32 image to uint8 for display/export.

    Args:
        image: Linear HDR image array of shape (H, W, 3) or (H, W, 4);
            alpha is dropped.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(
        image[:, :, :3],
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return (processed * 255.0 + 0.5).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear NumPy image as a PNG file.

    Args:
        image: Linear HDR image array of shape (H, W, 3) or (H, W, 4).
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).
    """
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8, mode="RGB").save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
