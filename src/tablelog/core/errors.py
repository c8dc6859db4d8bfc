"""
Error types for the tablelog batching pipeline.

All errors derive from ``TablelogError`` which carries a category, an optional
chained cause and a free-form context mapping that diagnostics can serialize.

Hierarchy:
- InvalidConfigurationError: rejected configuration, raised at construction
- BackendUnavailableError: table provisioning failed during startup
- WriteError: one sub-batch could not be written to the backend
- FlushError: the final flush of a shutdown failed
- SinkStateError: operation not allowed in the current lifecycle state
"""

from __future__ import annotations

import traceback
from enum import Enum
from typing import Any, Sequence


class ErrorCategory(str, Enum):
    """Coarse error categories used for diagnostics and metrics labels."""

    CONFIGURATION = "configuration"
    BACKEND = "backend"
    WRITE = "write"
    LIFECYCLE = "lifecycle"
    SYSTEM = "system"


class TablelogError(Exception):
    """Base error with category, cause chaining and structured context."""

    category: ErrorCategory = ErrorCategory.SYSTEM

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
        }
        if self.context:
            data["context"] = dict(self.context)
        if self.__cause__ is not None:
            data["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return data


class InvalidConfigurationError(TablelogError):
    """Configuration rejected at construction time. Never clamped."""

    category = ErrorCategory.CONFIGURATION


class BackendUnavailableError(TablelogError):
    """The storage backend could not provision or reach the target table."""

    category = ErrorCategory.BACKEND

    def __init__(
        self,
        message: str,
        *,
        table_name: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause, table_name=table_name)
        self.table_name = table_name


class WriteError(TablelogError):
    """A sub-batch write failed as a whole.

    ``unwritten`` is filled in by the accumulator with the events of the
    failed sub-batch followed by every later event of the same flush cycle,
    so the scheduler can retain or drop exactly what did not reach storage.
    """

    category = ErrorCategory.WRITE

    def __init__(
        self,
        message: str,
        *,
        table_name: str,
        partition_key: str,
        record_count: int,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            message,
            cause=cause,
            table_name=table_name,
            partition_key=partition_key,
            record_count=record_count,
        )
        self.table_name = table_name
        self.partition_key = partition_key
        self.record_count = record_count
        self.unwritten: Sequence[Any] = ()


class FlushError(TablelogError):
    """The final flush performed during shutdown did not complete."""

    category = ErrorCategory.WRITE

    def __init__(
        self,
        message: str,
        *,
        unwritten_count: int,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause, unwritten_count=unwritten_count)
        self.unwritten_count = unwritten_count


class SinkStateError(TablelogError):
    """Raised for writes before start or after shutdown began."""

    category = ErrorCategory.LIFECYCLE


def format_exception_text(exc: BaseException, *, max_chars: int = 20000) -> str:
    """Render an exception and its traceback, bounded to ``max_chars``.

    The head of the text is kept since it holds the exception type and the
    outermost frames.
    """
    text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    text = text.rstrip("\n")
    if len(text) > max_chars:
        return text[: max(0, max_chars - 3)] + "..."
    return text


__all__ = [
    "BackendUnavailableError",
    "ErrorCategory",
    "FlushError",
    "InvalidConfigurationError",
    "SinkStateError",
    "TablelogError",
    "WriteError",
    "format_exception_text",
]
