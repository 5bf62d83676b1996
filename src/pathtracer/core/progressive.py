"""Concurrent, cancellable, progressive render driver.

The Raytracer turns a RaytracingParameters request into an image. The image
is split into macro pixels of ``resolution_reduction`` squared real pixels.
Scanlines of macro pixels are rendered one after another; within a
scanline each macro-pixel column is an independent task on a thread pool.
After every scanline the driver:

1. waits for all of the scanline's tasks,
2. accumulates the colors into the Taichi framebuffer,
3. merges the tasks' ray counters into the shared statistics,
4. reports a RaytracingProgress event,
5. checks the cancellation token.

Two sampling schedules are supported:
- Non-progressive: one pass; every macro pixel averages
  ``samples_per_pixel`` jittered camera rays and is written once.
- Progressive: ``samples_per_pixel`` full-image passes of one ray per
  macro pixel; the framebuffer keeps the running average, so the image
  refines after every pass.

Every task gets its own random generator from ``rng_factory(pass, row,
column)``. The default factory derives it from one SeedSequence per render,
so a seeded render is reproducible regardless of thread scheduling.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.progressive import Raytracer, RaytracingParameters
    >>> from pathtracer.scene.demo_scenes import create_spheres_scene
    >>>
    >>> scene, camera = create_spheres_scene(aspect_ratio=4 / 3)
    >>> params = RaytracingParameters(scene, camera, 160, 120, samples_per_pixel=8, progressive=True)
    >>> results = Raytracer().render(params, progress=lambda p: print(f"{p.completion_percent:.0f}%"))
    >>> results.pixels.shape
    (120, 160, 4)
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Generator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from pathtracer.core.framebuffer import Framebuffer
from pathtracer.core.integrator import trace_ray
from pathtracer.core.sampling import RandomSource
from pathtracer.core.stats import RayCounter, RaytracingStats, StatsSnapshot

if TYPE_CHECKING:
    from pathtracer.camera.camera import Camera
    from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Factory receiving (pass_index, macro_row, macro_column)
RngFactory = Callable[[int, int, int], RandomSource]

# Callback receiving each progress event
ProgressCallback = Callable[["RaytracingProgress"], None]


class RenderState(Enum):
    """Lifecycle of a Raytracer."""

    IDLE = "idle"
    RENDERING = "rendering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Level-triggered cancellation flag shared with a running render.

    The driver checks the flag between scanlines; setting it never
    interrupts work in progress.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class RaytracingParameters:
    """Parameters of one render invocation.

    Attributes:
        scene: Scene to render; read-only while the render runs.
        camera: Camera to render from.
        width: Output width in pixels.
        height: Output height in pixels.
        samples_per_pixel: Samples per macro pixel (>= 1). In progressive
            mode this is the number of passes.
        resolution_reduction: Edge length in pixels of one macro pixel
            (>= 1). Each macro pixel is traced once and replicated.
        max_recursion_depth: Maximum rays per path (>= 0). Zero renders
            black.
        progressive: Render in refining passes instead of one pass.
        seed: Seed for the default random generators. None draws fresh
            entropy for every render.
    """

    scene: Scene
    camera: Camera
    width: int
    height: int
    samples_per_pixel: int = 1
    resolution_reduction: int = 1
    max_recursion_depth: int = 8
    progressive: bool = False
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be >= 1, got {self.samples_per_pixel}")
        if self.resolution_reduction < 1:
            raise ValueError(f"resolution_reduction must be >= 1, got {self.resolution_reduction}")
        if self.max_recursion_depth < 0:
            raise ValueError(f"max_recursion_depth must be >= 0, got {self.max_recursion_depth}")

    @property
    def passes(self) -> int:
        """Number of full-image passes."""
        return self.samples_per_pixel if self.progressive else 1

    @property
    def rays_per_pixel(self) -> int:
        """Camera rays per macro pixel in each pass."""
        return 1 if self.progressive else self.samples_per_pixel

    @property
    def macro_width(self) -> int:
        return math.ceil(self.width / self.resolution_reduction)

    @property
    def macro_height(self) -> int:
        return math.ceil(self.height / self.resolution_reduction)


@dataclass(frozen=True, eq=False)
class RaytracingProgress:
    """Report emitted after each completed scanline.

    Attributes:
        scanline_index: Macro-pixel row that was completed.
        row_start: First image row covered by the scanline.
        row_count: Number of image rows covered (the macro pixel height,
            cut short at the bottom edge).
        pass_index: Zero-based pass the scanline belongs to.
        pixels: Gamma-corrected RGBA values of the scanline at full width,
            shape (width, 4); identical for every covered row.
        completion_percent: Overall completion in [0, 100].
        stats: Statistics at the time of the report.
    """

    scanline_index: int
    row_start: int
    row_count: int
    pass_index: int
    pixels: npt.NDArray[np.float32]
    completion_percent: float
    stats: StatsSnapshot


@dataclass(frozen=True, eq=False)
class RaytracingResults:
    """Final output of a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        pixels: Gamma-corrected RGBA image, shape (height, width, 4). Values
            are not clamped, so bright emitters can exceed 1.0; ``to_uint8``
            clamps. After a cancellation it holds whatever was rendered so
            far.
        stats: Final statistics.
        success: True if the render ran to completion.
        cancelled: True if the render was cancelled.
        completion_percent: Completion reached before stopping.
    """

    width: int
    height: int
    pixels: npt.NDArray[np.float32]
    stats: StatsSnapshot
    success: bool
    cancelled: bool
    completion_percent: float

    def to_uint8(self) -> npt.NDArray[np.uint8]:
        """Pixels as 8-bit RGBA, shape (height, width, 4)."""
        return (np.clip(self.pixels, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    def to_bytes(self) -> bytes:
        """Pixels as packed 8-bit RGBA, row-major from the top row."""
        return self.to_uint8().tobytes()


def seeded_rng_factory(seed: int | None) -> RngFactory:
    """Build an RNG factory whose generators all derive from one seed.

    Each (pass, row, column) task gets an independent stream, so results
    do not depend on which thread runs which task.
    """
    root = np.random.SeedSequence(seed)
    entropy = root.entropy

    def factory(pass_index: int, row: int, column: int) -> RandomSource:
        return np.random.default_rng(
            np.random.SeedSequence(entropy, spawn_key=(pass_index, row, column))
        )

    return factory


class Raytracer:
    """Drives render invocations on a thread pool.

    One Raytracer runs at most one render at a time. Its framebuffer and
    statistics stay readable after a render ends.

    Attributes:
        state: Current RenderState.
        stats: Statistics of the current or last render.
        framebuffer: Framebuffer of the current or last render.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        rng_factory: RngFactory | None = None,
    ) -> None:
        self._max_workers = max_workers
        self._rng_factory = rng_factory
        self._state = RenderState.IDLE
        self._state_lock = threading.Lock()
        self._stats = RaytracingStats()
        self._framebuffer: Framebuffer | None = None

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def stats(self) -> RaytracingStats:
        return self._stats

    @property
    def framebuffer(self) -> Framebuffer | None:
        return self._framebuffer

    def render(
        self,
        params: RaytracingParameters,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> RaytracingResults:
        """Render to completion or cancellation.

        Args:
            params: What and how to render.
            progress: Called on the calling thread after every scanline.
                It may cancel the token; the render then stops before the
                next scanline.
            cancel: Token checked between scanlines.

        Returns:
            The final results, with ``cancelled`` set if the token fired.

        Raises:
            RuntimeError: If this Raytracer is already rendering.
        """
        events = self.iter_render(params, cancel)
        while True:
            try:
                event = next(events)
            except StopIteration as stop:
                return stop.value
            if progress is not None:
                progress(event)

    def iter_render(
        self,
        params: RaytracingParameters,
        cancel: CancellationToken | None = None,
    ) -> Generator[RaytracingProgress, None, RaytracingResults]:
        """Render as a generator of progress events.

        The generator's return value (``StopIteration.value``) is the
        RaytracingResults. Closing the generator early counts as a
        cancellation.

        Yields:
            One RaytracingProgress per completed scanline, in order.

        Raises:
            RuntimeError: If this Raytracer is already rendering.
        """
        with self._state_lock:
            if self._state is RenderState.RENDERING:
                raise RuntimeError("Raytracer is already rendering")
            self._state = RenderState.RENDERING

        cancel = cancel if cancel is not None else CancellationToken()
        try:
            framebuffer = self._prepare(params)
            completion = 0.0
            with ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="raytracer",
            ) as executor:
                for event in self._scanlines(params, framebuffer, executor, cancel):
                    completion = event.completion_percent
                    yield event
            cancelled = completion < 100.0
        except GeneratorExit:
            self._stats.stop()
            self._state = RenderState.CANCELLED
            logger.info("Render closed early by the consumer")
            raise
        except BaseException:
            self._stats.stop()
            self._state = RenderState.IDLE
            raise

        self._stats.stop()
        self._state = RenderState.CANCELLED if cancelled else RenderState.COMPLETED
        snapshot = self._stats.snapshot()
        if cancelled:
            logger.info("Render cancelled at %.1f%% after %d rays", completion, snapshot.total_rays)
        else:
            logger.info(
                "Render completed: %d rays in %.2fs (deepest recursion %d)",
                snapshot.total_rays,
                snapshot.elapsed_seconds,
                snapshot.deepest_recursion,
            )
        return RaytracingResults(
            width=params.width,
            height=params.height,
            pixels=framebuffer.display_image(),
            stats=snapshot,
            success=not cancelled,
            cancelled=cancelled,
            completion_percent=completion,
        )

    def _prepare(self, params: RaytracingParameters) -> Framebuffer:
        fb = self._framebuffer
        if fb is None or fb.width != params.width or fb.height != params.height:
            if fb is not None:
                fb.destroy()
            fb = Framebuffer(params.width, params.height)
            self._framebuffer = fb
        else:
            fb.clear()
        self._stats.reset(params.max_recursion_depth)
        logger.info(
            "Rendering %r at %dx%d: %d spp, reduction %d, depth %d, %s",
            params.scene.name,
            params.width,
            params.height,
            params.samples_per_pixel,
            params.resolution_reduction,
            params.max_recursion_depth,
            "progressive" if params.progressive else "single pass",
        )
        return fb

    def _scanlines(
        self,
        params: RaytracingParameters,
        framebuffer: Framebuffer,
        executor: ThreadPoolExecutor,
        cancel: CancellationToken,
    ) -> Generator[RaytracingProgress, None, None]:
        rng_factory = self._rng_factory or seeded_rng_factory(params.seed)
        reduction = params.resolution_reduction
        rows = params.macro_height
        total = params.passes * rows

        for pass_index in range(params.passes):
            for row in range(rows):
                if cancel.cancelled:
                    return

                def render_column(column: int, row: int = row, pass_index: int = pass_index):
                    return self._render_macro_pixel(params, rng_factory(pass_index, row, column), row, column)

                results = list(executor.map(render_column, range(params.macro_width)))

                macro_colors = np.empty((params.macro_width, 3), dtype=np.float64)
                for column, (color, counter) in enumerate(results):
                    macro_colors[column] = color
                    self._stats.merge(counter)

                row_start = row * reduction
                row_count = min(reduction, params.height - row_start)
                colors = np.repeat(macro_colors, reduction, axis=0)[: params.width]
                framebuffer.accumulate_rows(row_start, row_count, colors)

                done = pass_index * rows + row + 1
                yield RaytracingProgress(
                    scanline_index=row,
                    row_start=row_start,
                    row_count=row_count,
                    pass_index=pass_index,
                    pixels=framebuffer.row(row_start),
                    completion_percent=100.0 * done / total,
                    stats=self._stats.snapshot(),
                )

    @staticmethod
    def _render_macro_pixel(
        params: RaytracingParameters,
        rng: RandomSource,
        row: int,
        column: int,
    ) -> tuple[np.ndarray, RayCounter]:
        counter = RayCounter(params.max_recursion_depth)
        reduction = params.resolution_reduction
        color = np.zeros(3, dtype=np.float64)
        for _ in range(params.rays_per_pixel):
            x = min((column + rng.random()) * reduction, params.width)
            y = min((row + rng.random()) * reduction, params.height)
            ray = params.camera.get_ray_through_pixel(x, y, params.width, params.height, rng)
            color += trace_ray(ray, params.scene, params.max_recursion_depth, rng, counter)
        return color / params.rays_per_pixel, counter
