from __future__ import annotations

import asyncio
import os

from tablelog import TableStorageSink, now_event
from tablelog.plugins.sinks.contrib.azure_tables import AzureTableClient


async def main() -> None:
    # Azurite: "UseDevelopmentStorage=true"
    connection_string = os.getenv(
        "AZURE_STORAGE_CONNECTION_STRING", "UseDevelopmentStorage=true"
    )
    client = AzureTableClient(connection_string)
    sink = TableStorageSink(client, table_name="LogEventEntity", period_seconds=2.0)
    await sink.start()
    try:
        for i in range(10):
            sink.emit(now_event("Information", "Processed item {Index}", Index=i))
            await asyncio.sleep(0.1)
    finally:
        await sink.stop()


if __name__ == "__main__":
    asyncio.run(main())
