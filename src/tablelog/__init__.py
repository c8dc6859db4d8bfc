"""
Public entrypoints for tablelog.

Periodic batching of log events into partitioned table storage:

    from tablelog import TableStorageSink, now_event
    from tablelog.testing import InMemoryTableClient

    async with TableStorageSink(InMemoryTableClient(), batch_size_limit=100) as sink:
        sink.emit(now_event("Information", "User {UserId} signed in", UserId=42))
"""

from __future__ import annotations

from ._version import __version__
from .core.errors import (
    BackendUnavailableError,
    FlushError,
    InvalidConfigurationError,
    SinkStateError,
    TablelogError,
    WriteError,
)
from .core.events import EventLevel, LogEvent, now_event
from .core.keys import BatchKeyGenerator, DefaultBatchKeyGenerator
from .core.rendering import FormatProvider, InvariantFormatProvider
from .core.settings import Settings
from .metrics.metrics import MetricsCollector
from .plugins.sinks.table_storage import (
    TableStorageSink,
    TableStorageSinkConfig,
    open_table_sink,
)

VERSION = __version__

__all__ = [
    "BackendUnavailableError",
    "BatchKeyGenerator",
    "DefaultBatchKeyGenerator",
    "EventLevel",
    "FlushError",
    "FormatProvider",
    "InvalidConfigurationError",
    "InvariantFormatProvider",
    "LogEvent",
    "MetricsCollector",
    "Settings",
    "SinkStateError",
    "TableStorageSink",
    "TableStorageSinkConfig",
    "TablelogError",
    "VERSION",
    "WriteError",
    "__version__",
    "now_event",
    "open_table_sink",
]
