"""
Grouping of one flush cycle's events into partition-scoped sub-batches.

Given events in submission order the accumulator produces sub-batches that:

1. contain records of exactly one partition key
2. never exceed ``batch_size_limit`` records
3. are emitted in the order of their first member in the input
4. concatenate back to the original event sequence

A cycle with no events yields no sub-batches and performs no backend call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Protocol, Sequence

from .errors import WriteError
from .events import LogEvent
from .keys import BatchKeyGenerator
from .records import LogEventEntity, build_record
from .rendering import FormatProvider

RecordFactory = Callable[[LogEvent, str, str], LogEventEntity]


@dataclass(frozen=True)
class SubBatch:
    """Sealed, ordered group of records sharing one partition key."""

    partition_key: str
    records: tuple[LogEventEntity, ...]
    events: tuple[LogEvent, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class EmitReport:
    """What one ``emit()`` call wrote."""

    sub_batches: int = 0
    records: int = 0
    sizes: list[int] = field(default_factory=list)


class SubBatchWriter(Protocol):
    async def execute(self, sub_batch: SubBatch) -> None:  # pragma: no cover
        ...


class BatchAccumulator:
    def __init__(
        self,
        key_generator: BatchKeyGenerator,
        batch_size_limit: int,
        *,
        format_provider: FormatProvider | None = None,
        record_factory: RecordFactory | None = None,
    ) -> None:
        if batch_size_limit < 1:
            raise ValueError("batch_size_limit must be >= 1")
        self._key_generator = key_generator
        self._batch_size_limit = batch_size_limit
        self._current_partition: str | None = None
        if record_factory is None:

            def record_factory(
                event: LogEvent, partition_key: str, row_key: str
            ) -> LogEventEntity:
                return build_record(event, partition_key, row_key, format_provider)

        self._record_factory = record_factory

    @property
    def batch_size_limit(self) -> int:
        return self._batch_size_limit

    def group(self, events: Iterable[LogEvent]) -> Iterator[SubBatch]:
        """Lazily yield sealed sub-batches.

        Row keys are generated while iterating, so a consumer that writes each
        sub-batch before pulling the next sees the same key sequence as a
        fully materialized grouping.
        """
        keys = self._key_generator
        keys.start_batch()
        batch_key: str | None = None
        records: list[LogEventEntity] = []
        members: list[LogEvent] = []

        for event in events:
            partition_key = keys.generate_partition_key(event)
            self._current_partition = partition_key
            if partition_key != batch_key and records:
                yield self._seal(batch_key, records, members)
                records, members = [], []
                keys.start_batch()
            batch_key = partition_key
            records.append(
                self._record_factory(event, partition_key, keys.generate_row_key(event))
            )
            members.append(event)
            if len(records) >= self._batch_size_limit:
                yield self._seal(batch_key, records, members)
                records, members = [], []

        if records:
            yield self._seal(batch_key, records, members)

    async def emit(
        self, events: Sequence[LogEvent], writer: SubBatchWriter
    ) -> EmitReport:
        """Write every sub-batch sequentially.

        On the first failure the rest of the cycle is abandoned and a
        ``WriteError`` is raised with ``unwritten`` holding the events that
        did not reach storage, in order. Failures while building records
        (raised by the key generator or a format provider) are wrapped the
        same way so already stored sub-batches are never written twice.
        """
        report = EmitReport()
        written = 0
        self._current_partition = None
        sub_batches = self.group(events)
        while True:
            try:
                sub_batch = next(sub_batches, None)
                if sub_batch is None:
                    break
                await writer.execute(sub_batch)
            except WriteError as err:
                err.unwritten = tuple(events[written:])
                raise
            except Exception as exc:
                wrapped = WriteError(
                    f"Could not build or write records after {written} event(s): "
                    f"{type(exc).__name__}: {exc}",
                    table_name=getattr(writer, "table_name", "unknown"),
                    partition_key=self._current_partition or "",
                    record_count=len(events) - written,
                    cause=exc,
                )
                wrapped.unwritten = tuple(events[written:])
                raise wrapped from exc
            written += len(sub_batch)
            report.sub_batches += 1
            report.records += len(sub_batch)
            report.sizes.append(len(sub_batch))
        return report

    @staticmethod
    def _seal(
        partition_key: str | None,
        records: list[LogEventEntity],
        members: list[LogEvent],
    ) -> SubBatch:
        if partition_key is None:
            raise RuntimeError("Cannot seal a sub-batch without a partition key")
        return SubBatch(
            partition_key=partition_key,
            records=tuple(records),
            events=tuple(members),
        )



__all__ = ["BatchAccumulator", "EmitReport", "RecordFactory", "SubBatch", "SubBatchWriter"]
