"""
Log event model consumed by the batching pipeline.

Events are produced by the application and are read-only to tablelog; the
pipeline only derives storage records from them at flush time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class EventLevel(str, Enum):
    """Event severity levels, lowest to highest."""

    VERBOSE = "Verbose"
    DEBUG = "Debug"
    INFORMATION = "Information"
    WARNING = "Warning"
    ERROR = "Error"
    FATAL = "Fatal"

    @classmethod
    def parse(cls, value: str | EventLevel) -> EventLevel:
        """Parse a level name, accepting common aliases case-insensitively."""
        if isinstance(value, EventLevel):
            return value
        name = str(value).strip().upper()
        level = _LEVEL_ALIASES.get(name)
        if level is None:
            raise ValueError(f"Unknown event level: {value!r}")
        return level


_LEVEL_ALIASES: dict[str, EventLevel] = {
    "VERBOSE": EventLevel.VERBOSE,
    "TRACE": EventLevel.VERBOSE,
    "DEBUG": EventLevel.DEBUG,
    "INFORMATION": EventLevel.INFORMATION,
    "INFO": EventLevel.INFORMATION,
    "WARNING": EventLevel.WARNING,
    "WARN": EventLevel.WARNING,
    "ERROR": EventLevel.ERROR,
    "FATAL": EventLevel.FATAL,
    "CRITICAL": EventLevel.FATAL,
}


def _coerce_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, (int, float)):
        ts = datetime.fromtimestamp(float(value), tz=timezone.utc)
    else:
        raise ValueError("Timestamp must be a datetime, ISO string or epoch seconds")
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class LogEvent:
    """Immutable log event.

    ``timestamp`` is always timezone-aware (naive input is taken as UTC) and
    ``properties`` is exposed as a read-only mapping.
    """

    timestamp: datetime
    level: EventLevel
    message_template: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    exception: BaseException | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", _coerce_timestamp(self.timestamp))
        object.__setattr__(self, "level", EventLevel.parse(self.level))
        if not isinstance(self.message_template, str):
            raise ValueError("message_template must be a string")
        object.__setattr__(
            self, "properties", MappingProxyType(dict(self.properties or {}))
        )

    @property
    def utc_timestamp(self) -> datetime:
        return self.timestamp.astimezone(timezone.utc)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LogEvent:
        """Create an event from a dict envelope.

        Accepts ``message_template`` or ``message``, and ``properties`` or
        ``metadata`` for the structured fields. A missing timestamp means now.
        """
        template = data.get("message_template", data.get("message", ""))
        props = data.get("properties")
        if props is None:
            props = data.get("metadata") or {}
        exc = data.get("exception")
        return cls(
            timestamp=data.get("timestamp", datetime.now(timezone.utc)),
            level=data.get("level", EventLevel.INFORMATION),
            message_template=str(template),
            properties=dict(props),
            exception=exc if isinstance(exc, BaseException) else None,
        )


def now_event(
    level: str | EventLevel,
    message_template: str,
    *,
    exception: BaseException | None = None,
    **properties: Any,
) -> LogEvent:
    """Convenience constructor stamping the current UTC time."""
    return LogEvent(
        timestamp=datetime.now(timezone.utc),
        level=EventLevel.parse(level),
        message_template=message_template,
        properties=properties,
        exception=exception,
    )


__all__ = ["EventLevel", "LogEvent", "now_event"]
