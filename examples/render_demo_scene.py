#!/usr/bin/env python3
"""Render one of the demo scenes.

This script demonstrates end-to-end rendering: it builds a demo scene,
runs the threaded render driver with live progress output, optionally shows
the result in a Matplotlib window and saves it as a PNG.

Usage:
    python examples/render_demo_scene.py [options]

Options:
    --scene {spheres,cornell}  Scene to render (default: spheres)
    --width WIDTH              Image width in pixels (default: 320)
    --height HEIGHT            Image height in pixels (default: 180)
    --samples SAMPLES          Samples per pixel (default: 16)
    --depth DEPTH              Maximum recursion depth (default: 8)
    --reduction N              Macro pixel edge length (default: 1)
    --progressive              Render in refining passes
    --seed SEED                Random seed (default: none)
    --workers N                Worker threads (default: executor default)
    --output OUTPUT            Output file path (default: render.png)
    --show                     Show the result in a Matplotlib window
    --verbose                  Enable debug logging
    --quiet                    Suppress progress output

Example:
    python examples/render_demo_scene.py --scene cornell --width 200 --height 200 --samples 64 --progressive
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti

from pathtracer.logging_config import setup_logging


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a demo scene with the path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=("spheres", "cornell"),
        default="spheres",
        help="Scene to render (default: spheres)",
    )
    parser.add_argument("--width", type=int, default=320, help="Image width in pixels (default: 320)")
    parser.add_argument("--height", type=int, default=180, help="Image height in pixels (default: 180)")
    parser.add_argument("--samples", type=int, default=16, help="Samples per pixel (default: 16)")
    parser.add_argument("--depth", type=int, default=8, help="Maximum recursion depth (default: 8)")
    parser.add_argument("--reduction", type=int, default=1, help="Macro pixel edge length (default: 1)")
    parser.add_argument("--progressive", action="store_true", help="Render in refining passes")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: none)")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads")
    parser.add_argument(
        "--output",
        type=str,
        default="render.png",
        help="Output file path (default: render.png)",
    )
    parser.add_argument("--show", action="store_true", help="Show the result in a Matplotlib window")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_demo_scene(args: argparse.Namespace) -> Path:
    """Render the requested scene and save it to file.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.core.progressive import Raytracer, RaytracingParameters, RaytracingProgress
    from pathtracer.preview.display import show_preview
    from pathtracer.preview.export import save_png
    from pathtracer.scene.demo_scenes import (
        CornellBoxParams,
        create_cornell_box_scene,
        create_spheres_scene,
    )

    aspect_ratio = args.width / args.height
    if args.scene == "cornell":
        scene, camera = create_cornell_box_scene(CornellBoxParams(aspect_ratio=aspect_ratio))
    else:
        scene, camera = create_spheres_scene(aspect_ratio=aspect_ratio)

    params = RaytracingParameters(
        scene=scene,
        camera=camera,
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples,
        resolution_reduction=args.reduction,
        max_recursion_depth=args.depth,
        progressive=args.progressive,
        seed=args.seed,
    )

    def progress_callback(progress: RaytracingProgress) -> None:
        if args.quiet:
            return
        stats = progress.stats
        print(
            f"\r  Pass {progress.pass_index + 1}, row {progress.row_start:4d} "
            f"({progress.completion_percent:5.1f}%) - {stats.rays_per_second:,.0f} rays/s",
            end="",
            flush=True,
        )

    raytracer = Raytracer(max_workers=args.workers)
    results = raytracer.render(params, progress=progress_callback)

    if not args.quiet:
        print()  # Newline after progress
        stats = results.stats
        print(
            f"Traced {stats.total_rays:,} rays in {stats.elapsed_seconds:.2f}s "
            f"(deepest recursion {stats.deepest_recursion}/{stats.max_recursion_depth})"
        )

    output_file = Path(args.output)
    save_png(results, output_file)
    if not args.quiet:
        print(f"Saved to: {output_file.absolute()}")

    if args.show:
        show_preview(results)

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logger = setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    # Initialize Taichi
    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
    except Exception:
        ti.init(arch=ti.cpu)

    try:
        render_demo_scene(args)
        return 0
    except Exception as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
