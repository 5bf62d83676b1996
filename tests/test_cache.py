"""Tests for the lazily computed value holder."""

import threading


class TestCached:
    """Tests for Cached."""

    def test_computes_once(self):
        """Test that repeated reads reuse the value."""
        from pathtracer.core.cache import Cached

        calls = []
        cached = Cached(lambda: calls.append(1) or len(calls))
        assert cached.dirty
        assert cached.get() == 1
        assert cached.get() == 1
        assert not cached.dirty
        assert len(calls) == 1

    def test_invalidate_recomputes_on_next_read(self):
        """Test that invalidation is lazy."""
        from pathtracer.core.cache import Cached

        calls = []
        cached = Cached(lambda: calls.append(1) or len(calls))
        cached.get()
        cached.invalidate()
        assert len(calls) == 1
        assert cached.get() == 2

    def test_key_change_invalidates(self):
        """Test that a version key change triggers recomputation."""
        from pathtracer.core.cache import Cached

        state = {"version": 0, "calls": 0}

        def build():
            state["calls"] += 1
            return state["version"] * 10

        cached = Cached(build, key=lambda: state["version"])
        assert cached.get() == 0
        state["version"] = 3
        assert cached.dirty
        assert cached.get() == 30
        assert cached.get() == 30
        assert state["calls"] == 2

    def test_concurrent_reads_compute_once(self):
        """Test that parallel readers share a single computation."""
        from pathtracer.core.cache import Cached

        calls = []
        start = threading.Barrier(8)

        def build():
            calls.append(1)
            return "value"

        cached = Cached(build)
        results = []

        def reader():
            start.wait()
            results.append(cached.get())

        threads = [threading.Thread(target=reader) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == ["value"] * 8
        assert len(calls) == 1
