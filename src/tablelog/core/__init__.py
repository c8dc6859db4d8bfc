"""
Core batching pipeline: events, keys, records, grouping, writing, scheduling.
"""

from .backend import InsertOperation, TableClient, TableHandle
from .batching import BatchAccumulator, EmitReport, SubBatch
from .errors import (
    BackendUnavailableError,
    ErrorCategory,
    FlushError,
    InvalidConfigurationError,
    SinkStateError,
    TablelogError,
    WriteError,
)
from .events import EventLevel, LogEvent, now_event
from .keys import BatchKeyGenerator, DefaultBatchKeyGenerator
from .records import LogEventEntity, build_record
from .rendering import FormatProvider, InvariantFormatProvider, render_template
from .scheduler import FailurePolicy, FlushResult, PeriodicScheduler, SchedulerState
from .settings import Settings
from .writer import TableWriter

__all__ = [
    # Model
    "EventLevel",
    "LogEvent",
    "now_event",
    "LogEventEntity",
    "build_record",
    # Keys and rendering
    "BatchKeyGenerator",
    "DefaultBatchKeyGenerator",
    "FormatProvider",
    "InvariantFormatProvider",
    "render_template",
    # Pipeline
    "BatchAccumulator",
    "EmitReport",
    "SubBatch",
    "TableWriter",
    "PeriodicScheduler",
    "FailurePolicy",
    "FlushResult",
    "SchedulerState",
    # Backend
    "InsertOperation",
    "TableClient",
    "TableHandle",
    # Errors
    "TablelogError",
    "ErrorCategory",
    "InvalidConfigurationError",
    "BackendUnavailableError",
    "WriteError",
    "FlushError",
    "SinkStateError",
    # Config
    "Settings",
]
