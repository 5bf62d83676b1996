"""Render statistics.

Workers never touch shared counters directly. Each render task counts into
its own RayCounter, and the driver merges finished counters into the
shared RaytracingStats under a lock. Readers get immutable snapshots.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class StatsSnapshot:
    """Immutable view of the statistics at one moment.

    Attributes:
        total_rays: Rays traced so far, primary and secondary.
        deepest_recursion: Deepest bounce level reached (1 = camera ray).
        max_recursion_depth: Configured depth limit of the render.
        elapsed_seconds: Wall-clock time since the render started.
    """

    total_rays: int = 0
    deepest_recursion: int = 0
    max_recursion_depth: int = 0
    elapsed_seconds: float = 0.0

    @property
    def rays_per_second(self) -> float:
        if self.elapsed_seconds <= 0.0:
            return 0.0
        return self.total_rays / self.elapsed_seconds


class RayCounter:
    """Per-task ray statistics. Not thread-safe; owned by a single task."""

    __slots__ = ("max_depth", "rays", "deepest")

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self.rays = 0
        self.deepest = 0

    def record(self, remaining_depth: int) -> None:
        """Count one traced ray with ``remaining_depth`` bounces left."""
        self.rays += 1
        level = self.max_depth - remaining_depth + 1
        if level > self.deepest:
            self.deepest = level


class RaytracingStats:
    """Statistics shared by one render invocation.

    Counters only increase between ``reset`` calls.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_rays = 0
        self._deepest = 0
        self._max_depth = 0
        self._start: float | None = None
        self._end: float | None = None

    def reset(self, max_recursion_depth: int = 0) -> None:
        """Clear counters and start the clock."""
        with self._lock:
            self._total_rays = 0
            self._deepest = 0
            self._max_depth = max_recursion_depth
            self._start = time.perf_counter()
            self._end = None

    def stop(self) -> None:
        """Freeze the elapsed time."""
        with self._lock:
            if self._start is not None and self._end is None:
                self._end = time.perf_counter()

    def merge(self, counter: RayCounter) -> None:
        """Add a finished task's counts."""
        with self._lock:
            self._total_rays += counter.rays
            if counter.deepest > self._deepest:
                self._deepest = counter.deepest

    @property
    def total_rays(self) -> int:
        return self._total_rays

    @property
    def deepest_recursion(self) -> int:
        return self._deepest

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            if self._start is None:
                elapsed = 0.0
            else:
                end = self._end if self._end is not None else time.perf_counter()
                elapsed = end - self._start
            return StatsSnapshot(
                total_rays=self._total_rays,
                deepest_recursion=self._deepest,
                max_recursion_depth=self._max_depth,
                elapsed_seconds=elapsed,
            )
