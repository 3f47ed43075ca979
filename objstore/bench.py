"""Throughput benchmark that runs against any storage driver."""

import concurrent.futures
import logging
import time
from dataclasses import dataclass
from typing import Callable

from objstore.errors import NotFoundError
from objstore.storage import ObjectStorage
from objstore.utils import format_size

logger = logging.getLogger(__name__)

# Pattern that compresses poorly, to simulate real data
PATTERN = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


@dataclass
class BenchResult:
    """Result of one benchmark pass."""

    operation: str
    object_size: int
    object_count: int
    total_bytes: int
    duration: float
    throughput_mbps: float
    ops_per_sec: float
    avg_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float

    def __str__(self) -> str:
        return (
            f"{self.operation:8s} | "
            f"Size: {format_size(self.object_size):8s} | "
            f"Count: {self.object_count:5d} | "
            f"Throughput: {self.throughput_mbps:7.2f} MB/s | "
            f"IOPS: {self.ops_per_sec:7.2f} | "
            f"Latency: {self.avg_latency_ms:6.2f}ms"
        )


def generate_data(size: int) -> bytes:
    """Generate test data of specified size."""
    repeats = (size + len(PATTERN) - 1) // len(PATTERN)
    return (PATTERN * repeats)[:size]


class Benchmark:
    """Sequential and parallel put/get passes under a key prefix."""

    def __init__(self, storage: ObjectStorage, prefix: str = "objstore-bench"):
        self.storage = storage
        self.prefix = prefix.rstrip("/")

    def _key(self, index: int, size: int) -> str:
        return f"{self.prefix}/{size}bytes/object_{index:05d}.dat"

    def _put(self, size: int, data: bytes) -> Callable[[int], float]:
        def put_object(index: int) -> float:
            op_start = time.time()
            self.storage.put(self._key(index, size), data)
            return (time.time() - op_start) * 1000  # ms

        return put_object

    def _get(self, size: int) -> Callable[[int], float]:
        def get_object(index: int) -> float:
            key = self._key(index, size)
            op_start = time.time()
            with self.storage.get(key) as reader:
                data = reader.read()
            if len(data) != size:
                raise ValueError(f"Short read for {key}: {len(data)} of {size} bytes")
            return (time.time() - op_start) * 1000  # ms

        return get_object

    def _run(self, operation: str, op: Callable[[int], float], size: int, count: int,
             workers: int) -> BenchResult:
        start_time = time.time()
        if workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                latencies = list(executor.map(op, range(count)))
        else:
            latencies = [op(i) for i in range(count)]
        duration = max(time.time() - start_time, 1e-9)
        total_bytes = size * count

        return BenchResult(
            operation=operation,
            object_size=size,
            object_count=count,
            total_bytes=total_bytes,
            duration=duration,
            throughput_mbps=(total_bytes / (1024 * 1024)) / duration,
            ops_per_sec=count / duration,
            avg_latency_ms=sum(latencies) / len(latencies),
            min_latency_ms=min(latencies),
            max_latency_ms=max(latencies),
        )

    def run_put(self, size: int, count: int, workers: int = 1) -> BenchResult:
        operation = "PUT-P" if workers > 1 else "PUT"
        return self._run(operation, self._put(size, generate_data(size)), size, count, workers)

    def run_get(self, size: int, count: int, workers: int = 1) -> BenchResult:
        operation = "GET-P" if workers > 1 else "GET"
        return self._run(operation, self._get(size), size, count, workers)

    def run(self, sizes: list[tuple[int, int]], workers: int = 10) -> list[BenchResult]:
        """Put then get every (size, count) pair, sequentially and in parallel."""
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        results = []
        for size, count in sizes:
            if count < 1:
                raise ValueError(f"count must be at least 1, got {count}")
            results.append(self.run_put(size, count))
            results.append(self.run_put(size, count, workers))
            results.append(self.run_get(size, count))
            results.append(self.run_get(size, count, workers))
        return results

    def cleanup(self) -> int:
        """Delete every object under the prefix. Returns the number deleted."""
        keys = [obj.key for obj in self.storage.start_listing(f"{self.prefix}/")]
        deleted = 0
        for key in keys:
            try:
                self.storage.delete(key)
                deleted += 1
            except NotFoundError:
                logger.debug("%s already deleted", key)
        return deleted
