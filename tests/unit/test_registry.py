"""
Unit tests for the sharded seen registry.
"""

import threading

import pytest

from dupemark.dedup.registry import SeenRegistry
from dupemark.observability.metrics import METRICS

from tests.helpers.metric_delta import metric_delta, sample_value


class TestSeenRegistry:
    """Insert-if-absent semantics and clearing."""

    def setup_method(self):
        self.registry = SeenRegistry(num_shards=8)

    def test_first_insert_wins(self):
        assert self.registry.add_if_absent("GET http://a:80/ ") is True
        assert self.registry.add_if_absent("GET http://a:80/ ") is False
        assert "GET http://a:80/ " in self.registry
        assert len(self.registry) == 1

    def test_distinct_fingerprints_across_shards(self):
        keys = [f"GET http://a:80/{i} " for i in range(100)]

        assert all(self.registry.add_if_absent(k) for k in keys)
        assert len(self.registry) == 100
        assert self.registry.snapshot() == set(keys)
        assert sorted(self.registry) == sorted(keys)

    def test_clear_drops_everything(self):
        for i in range(10):
            self.registry.add_if_absent(str(i))

        self.registry.clear()

        assert len(self.registry) == 0
        assert "3" not in self.registry
        assert self.registry.add_if_absent("3") is True

    def test_clear_records_reason(self):
        with metric_delta(METRICS["registry_clears_total"], 1, suffix="_total", reason="manual"):
            self.registry.clear()
        with metric_delta(METRICS["registry_clears_total"], 1, suffix="_total", reason="replay"):
            self.registry.clear(reason="replay")

        assert sample_value(METRICS["registry_size"]) == 0

    def test_non_string_membership(self):
        assert 42 not in self.registry

    def test_stats(self):
        self.registry.add_if_absent("a")
        self.registry.add_if_absent("a")
        self.registry.add_if_absent("b")
        self.registry.clear()

        stats = self.registry.get_stats()

        assert stats == {"size": 0, "num_shards": 8, "inserts": 2, "hits": 1, "clears": 1}

    def test_single_shard_is_valid(self):
        registry = SeenRegistry(num_shards=1)

        assert registry.add_if_absent("x") is True
        assert registry.add_if_absent("x") is False

    def test_rejects_zero_shards(self):
        with pytest.raises(ValueError):
            SeenRegistry(num_shards=0)


class TestSeenRegistryConcurrency:
    """Racing inserts of the same fingerprint."""

    def test_exactly_one_thread_inserts(self):
        registry = SeenRegistry(num_shards=4)
        thread_count = 32
        barrier = threading.Barrier(thread_count)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            inserted = registry.add_if_absent("POST https://example.com:443/api J:a")
            with results_lock:
                results.append(inserted)

        threads = [threading.Thread(target=worker) for _ in range(thread_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert results.count(False) == thread_count - 1

    def test_clear_during_inserts_leaves_consistent_state(self):
        registry = SeenRegistry(num_shards=4)
        stop = threading.Event()

        def inserter(offset):
            i = 0
            while not stop.is_set():
                registry.add_if_absent(f"{offset}-{i % 50}")
                i += 1

        threads = [threading.Thread(target=inserter, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for _ in range(20):
            registry.clear()
        stop.set()
        for t in threads:
            t.join()

        assert len(registry) == len(registry.snapshot())
        assert len(registry) <= 4 * 50

    def test_stats_and_size_gauge_stay_exact_under_contention(self):
        registry = SeenRegistry(num_shards=4)
        thread_count = 8
        per_thread = 500
        barrier = threading.Barrier(thread_count + 1)

        def worker():
            barrier.wait()
            for i in range(per_thread):
                registry.add_if_absent(f"GET https://example.com:443/item/{i % 100}")

        threads = [threading.Thread(target=worker) for _ in range(thread_count)]
        for t in threads:
            t.start()
        barrier.wait()
        registry.clear()
        for t in threads:
            t.join()

        stats = registry.get_stats()
        assert stats["inserts"] + stats["hits"] == thread_count * per_thread
        assert sample_value(METRICS["registry_size"]) == len(registry)
