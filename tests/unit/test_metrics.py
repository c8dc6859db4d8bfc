from __future__ import annotations

import pytest

from tablelog.metrics.metrics import MetricsCollector


def _sample(metrics: MetricsCollector, name: str, labels: dict | None = None) -> float:
    assert metrics.registry is not None
    value = metrics.registry.get_sample_value(name, labels or {})
    return 0.0 if value is None else value


@pytest.mark.asyncio
async def test_disabled_collector_keeps_counts_without_registry() -> None:
    metrics = MetricsCollector()
    await metrics.record_events_submitted(3)
    await metrics.record_sub_batch_written(3)
    await metrics.record_flush(ok=True, latency_seconds=0.01)

    assert not metrics.is_enabled
    assert metrics.registry is None
    snap = await metrics.snapshot()
    assert snap.events_submitted == 3
    assert snap.events_written == 3
    assert snap.sub_batches_written == 1
    assert snap.flush_cycles == 1


@pytest.mark.asyncio
async def test_enabled_collector_exports_prometheus_samples() -> None:
    metrics = MetricsCollector(enabled=True)
    await metrics.record_events_submitted(10)
    await metrics.record_sub_batch_written(6)
    await metrics.record_sub_batch_written(4)
    await metrics.record_write_error(table="Logs")
    await metrics.record_events_dropped(2)
    await metrics.record_flush(ok=True, latency_seconds=0.02)
    await metrics.record_flush(ok=False, latency_seconds=0.03)
    await metrics.set_pending_high_watermark(10)
    await metrics.set_pending_high_watermark(4)

    assert _sample(metrics, "tablelog_events_submitted_total") == 10
    assert _sample(metrics, "tablelog_events_written_total") == 10
    assert _sample(metrics, "tablelog_sub_batches_written_total") == 2
    assert _sample(metrics, "tablelog_write_errors_total", {"table": "Logs"}) == 1
    assert _sample(metrics, "tablelog_events_dropped_total") == 2
    assert _sample(metrics, "tablelog_flush_cycles_total", {"outcome": "ok"}) == 1
    assert _sample(metrics, "tablelog_flush_cycles_total", {"outcome": "failed"}) == 1
    assert _sample(metrics, "tablelog_sub_batch_size_count") == 2
    assert _sample(metrics, "tablelog_flush_seconds_count") == 2
    assert _sample(metrics, "tablelog_pending_high_watermark") == 10

    snap = await metrics.snapshot()
    assert snap.failed_cycles == 1
    assert snap.write_errors == 1


def test_collectors_do_not_share_registries() -> None:
    first = MetricsCollector(enabled=True)
    second = MetricsCollector(enabled=True)
    assert first.registry is not second.registry


@pytest.mark.asyncio
async def test_non_positive_counts_ignored() -> None:
    metrics = MetricsCollector(enabled=True)
    await metrics.record_events_submitted(0)
    await metrics.record_events_dropped(-1)
    snap = await metrics.snapshot()
    assert snap.events_submitted == 0
    assert snap.events_dropped == 0
