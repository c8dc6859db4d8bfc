"""
Partitioned table storage sink.

Buffers log events and periodically writes them to a partitioned table
backend as partition-scoped atomic batches:

    emit()/write() -> PeriodicScheduler -> BatchAccumulator -> TableWriter

The sink owns the lifecycle: configuration is validated at construction,
the table is provisioned by ``start()`` before any event is accepted, and
``stop()`` performs a final flush and surfaces its failure.
"""

from __future__ import annotations

import os
import types
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...core import diagnostics
from ...core.backend import MAX_BATCH_OPERATIONS, TableClient
from ...core.batching import BatchAccumulator, EmitReport
from ...core.errors import (
    BackendUnavailableError,
    InvalidConfigurationError,
    SinkStateError,
)
from ...core.events import LogEvent
from ...core.keys import BatchKeyGenerator, DefaultBatchKeyGenerator
from ...core.records import LogEventEntity
from ...core.rendering import DEFAULT_FORMAT_PROVIDER, FormatProvider
from ...core.scheduler import FlushResult, PeriodicScheduler, SchedulerState
from ...core.settings import Settings
from ...core.writer import TableWriter
from ...metrics.metrics import MetricsCollector
from ..utils import get_plugin_name, parse_plugin_config

# Table name used when none is configured: the record type's name
DEFAULT_TABLE_NAME = LogEventEntity.__name__


def _env(name: str, default: str | None = None) -> Any:
    return os.getenv(f"TABLELOG_TABLE__{name}", default)


class TableStorageSinkConfig(BaseModel):
    """Configuration for the table storage sink.

    Values are validated eagerly; out-of-range values are rejected, never
    clamped. Defaults may come from ``TABLELOG_TABLE__*`` environment
    variables.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    batch_size_limit: int = Field(
        default_factory=lambda: _env("BATCH_SIZE_LIMIT", "50"),
        ge=1,
        le=MAX_BATCH_OPERATIONS,
        description="Maximum records per backend batch call (backend ceiling 100)",
    )
    period_seconds: float = Field(
        default_factory=lambda: _env("PERIOD_SECONDS", "2.0"),
        gt=0.0,
        description="Flush interval",
    )
    table_name: str | None = Field(
        default_factory=lambda: _env("TABLE_NAME"),
        description=(
            "Target table. Blank or unset uses the record type name "
            f"({DEFAULT_TABLE_NAME})"
        ),
    )
    flush_threshold: int | None = Field(
        default=None,
        ge=1,
        description="Pending length that triggers an early flush; None = timer only",
    )
    failure_policy: Literal["retry", "drop"] = Field(
        default="retry",
        description="What to do with the unwritten events of a failed cycle",
    )
    max_retry_cycles: int = Field(
        default=5,
        ge=0,
        description="Failed retry cycles tolerated before retained events are dropped",
    )
    retry_backoff_max_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for the back-off between failed cycles",
    )

    @field_validator("table_name")
    @classmethod
    def _blank_table_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class TableStorageSink:
    """Periodic batching sink for partitioned table storage."""

    name = "table_storage"

    def __init__(
        self,
        client: TableClient,
        config: TableStorageSinkConfig | dict | None = None,
        *,
        key_generator: BatchKeyGenerator | None = None,
        format_provider: FormatProvider | None = None,
        metrics: MetricsCollector | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(TableStorageSinkConfig, config, **kwargs)
        if key_generator is not None and not isinstance(
            key_generator, BatchKeyGenerator
        ):
            raise InvalidConfigurationError(
                "key_generator must provide start_batch, generate_partition_key "
                "and generate_row_key",
                key_generator=type(key_generator).__name__,
            )
        self._config = cfg
        self._client = client
        self._table_name = cfg.table_name or DEFAULT_TABLE_NAME
        self._key_generator = key_generator or DefaultBatchKeyGenerator()
        self._format_provider = format_provider or DEFAULT_FORMAT_PROVIDER
        if metrics is None:
            metrics = MetricsCollector(enabled=Settings().core.enable_metrics)
        self._metrics = metrics
        self._accumulator = BatchAccumulator(
            self._key_generator,
            cfg.batch_size_limit,
            format_provider=self._format_provider,
        )
        self._scheduler: PeriodicScheduler[LogEvent] = PeriodicScheduler(
            self._emit_batch,
            period_seconds=cfg.period_seconds,
            flush_threshold=cfg.flush_threshold,
            failure_policy=cfg.failure_policy,
            max_retry_cycles=cfg.max_retry_cycles,
            retry_backoff_max_seconds=cfg.retry_backoff_max_seconds,
            metrics=metrics,
            name=f"{get_plugin_name(self)}:{self._table_name}",
        )
        self._writer: TableWriter | None = None

    @property
    def config(self) -> TableStorageSinkConfig:
        return self._config

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def scheduler(self) -> PeriodicScheduler[LogEvent]:
        return self._scheduler

    async def start(self) -> None:
        """Provision the table, then start the flush timer. Idempotent."""
        if self._writer is None:
            try:
                table = await self._client.get_or_create_table(self._table_name)
            except Exception as exc:
                diagnostics.warn(
                    get_plugin_name(self),
                    "table provisioning failed",
                    table=self._table_name,
                    error=str(exc),
                )
                raise BackendUnavailableError(
                    f"Could not provision table {self._table_name!r}",
                    table_name=self._table_name,
                    cause=exc,
                ) from exc
            self._writer = TableWriter(table, metrics=self._metrics)
        await self._scheduler.start()

    async def stop(self) -> FlushResult:
        """Stop the timer and flush all buffered events.

        Raises ``FlushError`` when the final flush fails.
        """
        return await self._scheduler.shutdown()

    def emit(self, event: LogEvent | Mapping[str, Any]) -> None:
        """Queue one event. Thread-safe and never waits on the backend."""
        if self._writer is None:
            raise SinkStateError(
                f"{get_plugin_name(self)} sink for {self._table_name!r} "
                "has not been started"
            )
        if not isinstance(event, LogEvent):
            event = LogEvent.from_mapping(event)
        self._scheduler.submit(event)

    async def write(self, entry: LogEvent | Mapping[str, Any]) -> None:
        self.emit(entry)

    async def flush(self) -> FlushResult:
        """Flush pending events now."""
        return await self._scheduler.flush()

    async def health_check(self) -> bool:
        if self._writer is None:
            return False
        if self._scheduler.state is SchedulerState.STOPPED:
            return False
        last = self._scheduler.last_result
        return last is None or last.ok

    async def _emit_batch(self, events: list[LogEvent]) -> EmitReport:
        if self._writer is None:
            raise SinkStateError(
                f"{get_plugin_name(self)} sink for {self._table_name!r} "
                "has not been started"
            )
        return await self._accumulator.emit(events, self._writer)

    async def __aenter__(self) -> TableStorageSink:
        await self.start()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        await self.stop()


async def open_table_sink(
    client: TableClient,
    config: TableStorageSinkConfig | dict | None = None,
    **kwargs: Any,
) -> TableStorageSink:
    """Construct and start a sink in one call."""
    sink = TableStorageSink(client, config, **kwargs)
    await sink.start()
    return sink


PLUGIN_METADATA = {
    "name": "table_storage",
    "version": "1.0.0",
    "plugin_type": "sink",
    "entry_point": "tablelog.plugins.sinks.table_storage:TableStorageSink",
    "description": "Periodic batching sink for partitioned table storage.",
    "author": "tablelog",
    "api_version": "1.0",
}

# Mark Pydantic validators as used for vulture
_VULTURE_USED: tuple[object, ...] = (TableStorageSinkConfig._blank_table_name,)


__all__ = [
    "DEFAULT_TABLE_NAME",
    "PLUGIN_METADATA",
    "TableStorageSink",
    "TableStorageSinkConfig",
    "open_table_sink",
]
