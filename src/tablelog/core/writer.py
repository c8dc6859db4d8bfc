"""
Adapter from sealed sub-batches to backend batch writes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..metrics.metrics import MetricsCollector
from .backend import InsertOperation, TableHandle
from .errors import WriteError

if TYPE_CHECKING:
    from .batching import SubBatch


class TableWriter:
    """Executes one sub-batch as a single atomic insert batch.

    The writer does not retry; any backend exception surfaces as a
    ``WriteError`` naming the table, partition and record count.
    """

    def __init__(
        self, table: TableHandle, *, metrics: MetricsCollector | None = None
    ) -> None:
        self._table = table
        self._metrics = metrics

    @property
    def table_name(self) -> str:
        return self._table.name

    async def execute(self, sub_batch: SubBatch) -> None:
        if not sub_batch.records:
            raise ValueError("Refusing to execute an empty sub-batch")
        operations = [InsertOperation(entity=r.to_entity()) for r in sub_batch.records]
        try:
            await self._table.execute_batch(operations)
        except Exception as exc:
            if self._metrics is not None:
                await self._metrics.record_write_error(table=self.table_name)
            raise WriteError(
                f"Batch insert of {len(operations)} record(s) into "
                f"{self.table_name!r} failed for partition {sub_batch.partition_key!r}",
                table_name=self.table_name,
                partition_key=sub_batch.partition_key,
                record_count=len(operations),
                cause=exc,
            ) from exc
        if self._metrics is not None:
            await self._metrics.record_sub_batch_written(len(operations))


__all__ = ["TableWriter"]
