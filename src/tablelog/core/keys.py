"""
Partition and row key generation.

A key generator maps each event to a ``(partition_key, row_key)`` pair. The
accumulator calls ``start_batch()`` at the start of a flush cycle and again
each time the partition key changes, so generators may keep per-batch state.
Row keys must stay unique within a partition across batches and cycles.

Partition keys must come out contiguous in submission order (e.g. time
buckets); otherwise grouping still stays correct but produces more, smaller
sub-batches.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable
from uuid import uuid4

from .events import LogEvent

_TICK_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MINUTE = 60 * TICKS_PER_SECOND


@runtime_checkable
class BatchKeyGenerator(Protocol):
    """Capability interface for key derivation."""

    def start_batch(self) -> None:  # pragma: no cover - structural protocol
        ...

    def generate_partition_key(self, event: LogEvent) -> str:  # pragma: no cover
        ...

    def generate_row_key(self, event: LogEvent) -> str:  # pragma: no cover
        ...


def to_ticks(moment: datetime) -> int:
    """Count of 100 ns ticks since 0001-01-01T00:00:00Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    delta = moment.astimezone(timezone.utc) - _TICK_EPOCH
    return (delta.days * 86_400 + delta.seconds) * TICKS_PER_SECOND + (
        delta.microseconds * 10
    )


class DefaultBatchKeyGenerator:
    """Time-bucketed keys.

    Partition key: ``"0"`` + 19-digit tick count of the event's UTC time
    truncated to ``bucket_ticks`` (one minute by default).

    Row key: ``"{ticks:019d}|{seq:012d}|{instance}"`` with the full precision
    tick count, a sequence that grows for the generator's whole lifetime and
    a random per-instance token. Keys of events sharing a timestamp stay
    unique across flush cycles, across non-contiguous runs of a partition
    and across generators writing to the same table. Both keys sort lexically
    in chronological order; ties follow submission order.
    """

    def __init__(self, *, bucket_ticks: int = TICKS_PER_MINUTE) -> None:
        if bucket_ticks <= 0:
            raise ValueError("bucket_ticks must be > 0")
        self._bucket_ticks = bucket_ticks
        self._sequence = 0
        self._instance = uuid4().hex[:8]

    @property
    def instance(self) -> str:
        return self._instance

    def start_batch(self) -> None:
        # Row keys never restart; a reset would reuse keys already stored
        pass

    def generate_partition_key(self, event: LogEvent) -> str:
        ticks = to_ticks(event.timestamp)
        return f"0{ticks - ticks % self._bucket_ticks:019d}"

    def generate_row_key(self, event: LogEvent) -> str:
        self._sequence += 1
        return (
            f"{to_ticks(event.timestamp):019d}|{self._sequence:012d}|{self._instance}"
        )


__all__ = [
    "BatchKeyGenerator",
    "DefaultBatchKeyGenerator",
    "TICKS_PER_MINUTE",
    "TICKS_PER_SECOND",
    "to_ticks",
]
