from __future__ import annotations

from typing import Protocol, runtime_checkable

from .table_storage import TableStorageSink, TableStorageSinkConfig, open_table_sink


@runtime_checkable
class BaseSink(Protocol):
    """Base async sink interface.

    Sinks are responsible for emitting log events to an external destination.
    Implementations must keep ``write()`` non-blocking with respect to the
    destination; delivery errors are contained by the sink and surface only
    from explicit ``flush()``/``stop()`` calls.
    """

    async def start(self) -> None:  # Optional lifecycle hook
        ...

    async def stop(self) -> object:  # Optional lifecycle hook
        ...

    async def write(self, _entry: object) -> None:  # noqa: ARG002, D401
        """Queue a single log event for the sink destination."""
        ...


__all__ = [
    "BaseSink",
    "TableStorageSink",
    "TableStorageSinkConfig",
    "open_table_sink",
]
