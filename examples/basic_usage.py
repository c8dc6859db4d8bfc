"""
Basic usage example for tablelog.

Buffers a few events in memory and writes them to the in-memory table
backend on shutdown.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tablelog import TableStorageSink, now_event
from tablelog.testing import InMemoryTableClient


async def main() -> None:
    client = InMemoryTableClient()

    async with TableStorageSink(
        client, table_name="AppLogs", batch_size_limit=50, period_seconds=1.0
    ) as sink:
        sink.emit(
            now_event("Information", "Application started in {Elapsed:.2f}s", Elapsed=0.5)
        )
        sink.emit(now_event("Warning", "Disk usage at {Percent}%", Percent=91))
        try:
            1 / 0
        except ZeroDivisionError as exc:
            sink.emit(
                now_event(
                    "Error",
                    "Computation failed for {@Input}",
                    exception=exc,
                    Input={"a": 1, "b": 0},
                )
            )

        # Timer flushes happen in the background; force one now
        result = await sink.flush()
        print(f"flushed {result.items} event(s)")

    for entity in client.tables["AppLogs"].entities():
        print(entity["PartitionKey"], entity["RowKey"], entity["RenderedMessage"])


if __name__ == "__main__":
    asyncio.run(main())
