"""Tests for the storage benchmark."""

import pytest

from objstore.bench import Benchmark, generate_data


class TestBenchmark:
    def test_generate_data(self):
        assert len(generate_data(1000)) == 1000
        assert generate_data(3) == b"ABC"

    def test_run_and_cleanup(self, local_store):
        bench = Benchmark(local_store, "bench/")

        results = bench.run([(128, 4)], workers=2)

        assert [r.operation for r in results] == ["PUT", "PUT-P", "GET", "GET-P"]
        assert all(r.total_bytes == 512 for r in results)
        assert "Throughput" in str(results[0])
        assert bench.cleanup() == 4
        assert local_store.list("", "", 100) == []

    def test_invalid_workers(self, local_store):
        with pytest.raises(ValueError):
            Benchmark(local_store).run([(1, 1)], workers=0)
