"""
Async-first metrics collection for the batching pipeline.

Implements a minimal Prometheus-compatible metric set for flush cycles and
backend writes.

Design goals:
- Pure async/await, no blocking I/O
- Zero global state; every collector owns an isolated registry
- Safe no-op behavior when metrics are disabled, while still keeping the
  in-memory counters tests assert on
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


@dataclass
class PipelineMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    events_submitted: int = 0
    events_written: int = 0
    events_dropped: int = 0
    sub_batches_written: int = 0
    write_errors: int = 0
    flush_cycles: int = 0
    failed_cycles: int = 0


class MetricsCollector:
    """Collector-scoped async metrics."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = PipelineMetrics()

        self._c_submitted: Any | None = None
        self._c_written: Any | None = None
        self._c_dropped: Any | None = None
        self._c_sub_batches: Any | None = None
        self._c_write_errors: Any | None = None
        self._c_cycles: Any | None = None
        self._h_batch_size: Any | None = None
        self._h_flush_latency: Any | None = None
        self._g_pending_high: Any | None = None
        self._registry: CollectorRegistry | None = None
        self._pending_high = 0

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_submitted = Counter(
                "tablelog_events_submitted_total",
                "Total number of events accepted by the scheduler",
                registry=self._registry,
            )
            self._c_written = Counter(
                "tablelog_events_written_total",
                "Total number of records written to the backend",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "tablelog_events_dropped_total",
                "Total number of events dropped after write failures",
                registry=self._registry,
            )
            self._c_sub_batches = Counter(
                "tablelog_sub_batches_written_total",
                "Total number of partition batches written",
                registry=self._registry,
            )
            self._c_write_errors = Counter(
                "tablelog_write_errors_total",
                "Total number of failed partition batch writes",
                ["table"],
                registry=self._registry,
            )
            self._c_cycles = Counter(
                "tablelog_flush_cycles_total",
                "Total number of flush cycles by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._h_batch_size = Histogram(
                "tablelog_sub_batch_size",
                "Records per partition batch",
                buckets=(1, 5, 10, 25, 50, 75, 100),
                registry=self._registry,
            )
            self._h_flush_latency = Histogram(
                "tablelog_flush_seconds",
                "Latency of a complete flush cycle",
                buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
                registry=self._registry,
            )
            self._g_pending_high = Gauge(
                "tablelog_pending_high_watermark",
                "Largest pending queue length observed at flush time",
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_events_submitted(self, count: int) -> None:
        if count <= 0:
            return
        async with self._lock:
            self._state.events_submitted += count
        if self._c_submitted is not None:
            self._c_submitted.inc(count)

    async def record_sub_batch_written(self, size: int) -> None:
        async with self._lock:
            self._state.sub_batches_written += 1
            self._state.events_written += size
        if not self._enabled:
            return
        if self._c_sub_batches is not None:
            self._c_sub_batches.inc()
        if self._c_written is not None:
            self._c_written.inc(size)
        if self._h_batch_size is not None:
            self._h_batch_size.observe(size)

    async def record_write_error(self, *, table: str | None = None) -> None:
        async with self._lock:
            self._state.write_errors += 1
        if self._c_write_errors is not None:
            self._c_write_errors.labels(table=table or "unknown").inc()

    async def record_events_dropped(self, count: int) -> None:
        if count <= 0:
            return
        async with self._lock:
            self._state.events_dropped += count
        if self._c_dropped is not None:
            self._c_dropped.inc(count)

    async def record_flush(self, *, ok: bool, latency_seconds: float) -> None:
        async with self._lock:
            self._state.flush_cycles += 1
            if not ok:
                self._state.failed_cycles += 1
        if not self._enabled:
            return
        if self._c_cycles is not None:
            self._c_cycles.labels(outcome="ok" if ok else "failed").inc()
        if self._h_flush_latency is not None:
            self._h_flush_latency.observe(latency_seconds)

    async def set_pending_high_watermark(self, value: int) -> None:
        async with self._lock:
            if value <= self._pending_high:
                return
            self._pending_high = value
        if self._g_pending_high is not None:
            self._g_pending_high.set(value)

    async def snapshot(self) -> PipelineMetrics:
        async with self._lock:
            return PipelineMetrics(**vars(self._state))


__all__ = ["MetricsCollector", "PipelineMetrics"]
