"""Lazily computed values guarded by a dirty bit.

Matrices derived from transform and camera state are expensive to build
and cheap to invalidate. ``Cached`` keeps the last computed value and only
recomputes it on read, after ``invalidate()`` was called or when the
optional version key reports a change.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")

_UNSET = object()


class Cached(Generic[T]):
    """A memoized value recomputed on demand.

    Reads are synchronized, so several render workers may share one cache.
    Invalidation only flips a flag and never computes anything.

    Attributes:
        compute: Pure function producing the value from current state.
        key: Optional function returning a version token. A change in the
            token invalidates the cached value without an explicit call.

    Example:
        >>> counter = {"calls": 0}
        >>> def build():
        ...     counter["calls"] += 1
        ...     return counter["calls"]
        >>> cached = Cached(build)
        >>> cached.get(), cached.get()
        (1, 1)
        >>> cached.invalidate()
        >>> cached.get()
        2
    """

    def __init__(
        self,
        compute: Callable[[], T],
        key: Callable[[], Hashable] | None = None,
    ) -> None:
        self._compute = compute
        self._key = key
        self._value: T | None = None
        self._dirty = True
        self._cached_key: object = _UNSET
        self._lock = threading.RLock()

    @property
    def dirty(self) -> bool:
        """True if the next ``get()`` will recompute the value."""
        if self._dirty:
            return True
        return self._key is not None and self._key() != self._cached_key

    def invalidate(self) -> None:
        """Mark the value stale."""
        self._dirty = True

    def get(self) -> T:
        """Return the current value, recomputing it if stale."""
        with self._lock:
            key = self._key() if self._key is not None else None
            if self._dirty or key != self._cached_key:
                # Cleared before computing so a concurrent invalidate is not lost
                self._dirty = False
                self._cached_key = key
                self._value = self._compute()
            return self._value  # type: ignore[return-value]
