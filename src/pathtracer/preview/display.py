"""Matplotlib-based preview display for rendered images.

This module provides functions for displaying rendered images using Matplotlib,
with support for tone mapping and gamma correction of linear images.

Features:
    - Preview window for finished (or cancelled) renders
    - Tone mapping (Reinhard, exposure-based)
    - Gamma correction (sRGB 2.2)
    - Render statistics in the title

Example:
    >>> from pathtracer.preview.display import show_preview
    >>> results = Raytracer().render(params)
    >>> show_preview(results)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from pathtracer.core.progressive import RaytracingResults


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Simple global tone mapping operator that compresses HDR values
    into the displayable [0, 1] range.

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value (default 1.0). Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array in [0, 1] range.
        gamma: Gamma value (default 2.2 for sRGB). 1.0 returns the input.

    Returns:
        Gamma corrected image.
    """
    if gamma == 1.0:
        return image

    # Clamp before the power to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Process a linear image for display with tone mapping and gamma correction.

    Applies the full display pipeline:
    1. Tone mapping (optional, for HDR content)
    2. Gamma correction (for sRGB display)
    3. Clamping to [0, 1]

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Returns:
        Processed image ready for display, in [0, 1] range.

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    result = image.copy()

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def results_title(results: RaytracingResults) -> str:
    """Short description of a render for window titles."""
    stats = results.stats
    status = "cancelled" if results.cancelled else "done"
    return (
        f"{results.width}x{results.height} - {status} at {results.completion_percent:.0f}% - "
        f"{stats.total_rays:,} rays in {stats.elapsed_seconds:.1f}s"
    )


def show_preview(
    results: RaytracingResults,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display a render result as a Matplotlib figure.

    The result pixels are already gamma corrected and are shown as-is.

    Args:
        results: The RaytracingResults to display.
        title: Custom title (default shows size, status and statistics).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(np.clip(results.pixels[:, :, :3], 0.0, 1.0))
    ax.axis("off")
    ax.set_title(title if title is not None else results_title(results))

    plt.tight_layout()
    plt.show(block=block)


def show_linear_image(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str = "Linear image",
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display a linear (HDR) image after tone mapping and gamma.

    Useful with ``Framebuffer.linear_image()``.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        image[:, :, :3],
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    ax.set_title(title if tone_map == "none" else f"{title} ({tone_map})")

    plt.tight_layout()
    plt.show(block=block)
