"""
Storage backend surface consumed by the pipeline.

The backend is an external collaborator. tablelog only needs two calls:

- ``TableClient.get_or_create_table(name)``: idempotent provisioning
- ``TableHandle.execute_batch(operations)``: one atomic write scoped to a
  single partition, raising on failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Protocol, Sequence, runtime_checkable

# Azure-style ceiling on operations per entity group transaction
MAX_BATCH_OPERATIONS = 100


@dataclass(frozen=True)
class InsertOperation:
    """Insert of one entity; ``entity`` holds PartitionKey/RowKey."""

    entity: Mapping[str, Any]
    kind: Literal["insert"] = "insert"

    @property
    def partition_key(self) -> str:
        return str(self.entity["PartitionKey"])

    @property
    def row_key(self) -> str:
        return str(self.entity["RowKey"])


@runtime_checkable
class TableHandle(Protocol):
    @property
    def name(self) -> str:  # pragma: no cover - structural protocol
        ...

    async def execute_batch(
        self, operations: Sequence[InsertOperation]
    ) -> None:  # pragma: no cover - structural protocol
        ...


@runtime_checkable
class TableClient(Protocol):
    async def get_or_create_table(
        self, table_name: str
    ) -> TableHandle:  # pragma: no cover - structural protocol
        ...


__all__ = ["InsertOperation", "MAX_BATCH_OPERATIONS", "TableClient", "TableHandle"]
