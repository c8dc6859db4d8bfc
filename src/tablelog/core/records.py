"""
Storage records built from events at flush time.

``LogEventEntity`` is the unit persisted to the backend. Its ``to_entity()``
form is the only wire contract of this package: a flat property bag keyed by
field name that carries the two key fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .errors import format_exception_text
from .events import LogEvent
from .rendering import FormatProvider, render_template, to_json

# Column size guardrail for the rendered traceback
MAX_EXCEPTION_CHARS = 32_000


@dataclass(frozen=True)
class LogEventEntity:
    partition_key: str
    row_key: str
    timestamp: datetime
    level: str
    message_template: str
    rendered_message: str
    exception: str | None
    data: str

    def __post_init__(self) -> None:
        if not self.partition_key:
            raise ValueError("partition_key must be a non-empty string")
        if not self.row_key:
            raise ValueError("row_key must be a non-empty string")

    def to_entity(self) -> dict[str, Any]:
        return {
            "PartitionKey": self.partition_key,
            "RowKey": self.row_key,
            "Timestamp": self.timestamp,
            "Level": self.level,
            "MessageTemplate": self.message_template,
            "RenderedMessage": self.rendered_message,
            "Exception": self.exception,
            "Data": self.data,
        }


def build_record(
    event: LogEvent,
    partition_key: str,
    row_key: str,
    format_provider: FormatProvider | None = None,
) -> LogEventEntity:
    exc_text = None
    if event.exception is not None:
        exc_text = format_exception_text(
            event.exception, max_chars=MAX_EXCEPTION_CHARS
        )
    return LogEventEntity(
        partition_key=partition_key,
        row_key=row_key,
        timestamp=event.utc_timestamp,
        level=event.level.value,
        message_template=event.message_template,
        rendered_message=render_template(
            event.message_template, event.properties, format_provider
        ),
        exception=exc_text,
        data=to_json(dict(event.properties), format_provider),
    )


__all__ = ["LogEventEntity", "MAX_EXCEPTION_CHARS", "build_record"]
