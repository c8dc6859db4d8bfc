"""
Pytest fixtures for tablelog.

Registered for the whole suite through ``pytest_plugins`` in the root
conftest. Requires the test extra: ``pip install tablelog[test]``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest

from ..metrics.metrics import MetricsCollector
from ..plugins.sinks.table_storage import TableStorageSink
from .backend import InMemoryTableClient


@pytest.fixture
def table_client() -> InMemoryTableClient:
    return InMemoryTableClient()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector(enabled=True)


@pytest.fixture
async def started_sink(
    table_client: InMemoryTableClient, metrics: MetricsCollector
) -> AsyncGenerator[TableStorageSink, None]:
    """A started sink with a long period so tests drive flushes explicitly."""
    sink = TableStorageSink(
        table_client,
        batch_size_limit=100,
        period_seconds=3600.0,
        metrics=metrics,
    )
    await sink.start()
    yield sink
    await sink.stop()
