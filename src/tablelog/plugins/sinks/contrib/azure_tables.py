"""
Azure Table Storage backend for the table sink.

Wraps the synchronous ``azure-data-tables`` SDK; blocking calls run in a
worker thread via ``asyncio.to_thread``. Install with
``pip install tablelog[azure]``.

Each sub-batch becomes one entity group transaction of ``create`` operations.
The service owns the ``Timestamp`` property, so the event time is stored as
``EventTimestamp``. ``None`` values are omitted.
"""

from __future__ import annotations

import asyncio
import importlib
from typing import Any, Sequence

from ....core.backend import InsertOperation

__all__ = ["AzureTable", "AzureTableClient", "to_azure_entity"]


def to_azure_entity(entity: dict[str, Any] | Any) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in dict(entity).items():
        if value is None:
            continue
        if key == "Timestamp":
            key = "EventTimestamp"
        result[key] = value
    return result


class AzureTable:
    """``TableHandle`` over an ``azure.data.tables.TableClient``."""

    def __init__(self, table_client: Any, name: str) -> None:
        self._table_client = table_client
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def execute_batch(self, operations: Sequence[InsertOperation]) -> None:
        transaction = [("create", to_azure_entity(op.entity)) for op in operations]
        await asyncio.to_thread(self._table_client.submit_transaction, transaction)


class AzureTableClient:
    """``TableClient`` over an ``azure.data.tables.TableServiceClient``.

    Pass either a connection string or a ready ``service_client``.
    """

    def __init__(
        self,
        connection_string: str | None = None,
        *,
        service_client: Any | None = None,
    ) -> None:
        if service_client is None:
            if not connection_string:
                raise ValueError(
                    "AzureTableClient needs a connection_string or a service_client"
                )
            try:
                tables = importlib.import_module("azure.data.tables")
            except ImportError as exc:
                raise ImportError(
                    "Azure Table Storage support requires azure-data-tables. "
                    "Install with: pip install tablelog[azure]"
                ) from exc
            service_client = tables.TableServiceClient.from_connection_string(
                conn_str=connection_string
            )
        self._service_client = service_client

    async def get_or_create_table(self, table_name: str) -> AzureTable:
        table_client = await asyncio.to_thread(
            self._service_client.create_table_if_not_exists, table_name
        )
        return AzureTable(table_client, table_name)
