"""
Structured internal diagnostics.

Non-fatal problems inside the pipeline (a failed sub-batch, dropped events,
a timer tick that had to be skipped) are reported here as single-line JSON
payloads instead of being raised into the producer's code path.

Emission is gated by ``Settings().core.internal_logging_enabled`` which is read
once and cached in ``_internal_logging_enabled``. Callers may pass
``_rate_limit_key`` to collapse bursts of the same diagnostic.

Diagnostics never raise.
"""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

# Cached at first use; tests reset it to None between cases
_internal_logging_enabled: bool | None = None
_rate_limit_seconds: float | None = None

_writer: Writer | None = None
_last_emit: dict[str, float] = {}
_lock = threading.Lock()


def _load_settings() -> None:
    global _internal_logging_enabled, _rate_limit_seconds
    try:
        from .settings import Settings

        core = Settings().core
        _internal_logging_enabled = bool(core.internal_logging_enabled)
        _rate_limit_seconds = float(core.diagnostics_rate_limit_seconds)
    except Exception:
        _internal_logging_enabled = False
        _rate_limit_seconds = 5.0


def is_enabled() -> bool:
    if _internal_logging_enabled is None:
        _load_settings()
    return bool(_internal_logging_enabled)


def _default_writer(payload: dict[str, Any]) -> None:
    sys.stderr.write(orjson.dumps(payload, default=str).decode("utf-8") + "\n")
    sys.stderr.flush()


def set_writer_for_tests(writer: Writer | None) -> None:
    """Redirect diagnostics to ``writer`` (``None`` restores stderr)."""
    global _writer
    _writer = writer
    with _lock:
        _last_emit.clear()


def _allowed(key: str | None) -> bool:
    if key is None:
        return True
    window = _rate_limit_seconds if _rate_limit_seconds is not None else 5.0
    now = time.monotonic()
    with _lock:
        last = _last_emit.get(key)
        if last is not None and now - last < window:
            return False
        _last_emit[key] = now
    return True


def _emit(
    level: str,
    component: str,
    message: str,
    rate_limit_key: str | None,
    fields: dict[str, Any],
) -> None:
    try:
        if not is_enabled():
            return
        if not _allowed(rate_limit_key):
            return
        payload: dict[str, Any] = {
            "timestamp": time.time(),
            "level": level,
            "logger": "tablelog.diagnostics",
            "component": component,
            "message": message,
        }
        payload.update(fields)
        (_writer or _default_writer)(payload)
    except Exception:
        # Diagnostics must never break the pipeline
        pass


def warn(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    _emit("WARN", component, message, _rate_limit_key, fields)


def debug(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    _emit("DEBUG", component, message, _rate_limit_key, fields)


__all__ = ["debug", "is_enabled", "set_writer_for_tests", "warn"]
