"""
Periodic flush scheduling.

``PeriodicScheduler`` owns the pending buffer shared with producers and a
single background task that periodically hands the buffered items to a flush
callback. It knows nothing about tables or partitions; the sink composes it
with the accumulator and writer.

State machine::

    IDLE -> (submit) -> ACCUMULATING -> (tick | threshold) -> FLUSHING
         -> ACCUMULATING ... ; shutdown: STOPPING (final flush) -> STOPPED

Producers only ever append under a short lock. Each flush swaps the buffer
for a fresh one, so an in-progress flush never blocks ``submit()``. Flushes
are serialized by an asyncio lock and a tick that lands while a flush is
running is skipped.

Failure policy for a failed cycle (the callback raised):

- ``retry``: the unwritten items are kept and prepended to the next cycle;
  the timer backs off exponentially; after ``max_retry_cycles`` further
  failures the kept items are dropped
- ``drop``: the unwritten items are dropped right away

The final flush of ``shutdown()`` is never retried; its failure is raised.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from ..metrics.metrics import MetricsCollector
from . import diagnostics
from .errors import FlushError, SinkStateError

T = TypeVar("T")

FlushCallback = Callable[[list[T]], Awaitable[Any]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    STOPPING = "stopping"
    STOPPED = "stopped"


class FailurePolicy(str, Enum):
    RETRY = "retry"
    DROP = "drop"


@dataclass
class FlushResult:
    """Outcome of one flush cycle."""

    items: int = 0
    ok: bool = True
    retained: int = 0
    dropped: int = 0
    error: BaseException | None = None
    outcome: Any = None

    @property
    def empty(self) -> bool:
        return self.items == 0


class PeriodicScheduler(Generic[T]):
    """Timer and threshold driven flushing of a shared pending buffer."""

    def __init__(
        self,
        flush_callback: FlushCallback[T],
        *,
        period_seconds: float,
        flush_threshold: int | None = None,
        failure_policy: FailurePolicy | str = FailurePolicy.RETRY,
        max_retry_cycles: int = 5,
        retry_backoff_max_seconds: float = 60.0,
        metrics: MetricsCollector | None = None,
        name: str = "scheduler",
    ) -> None:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")
        if flush_threshold is not None and flush_threshold < 1:
            raise ValueError("flush_threshold must be >= 1")
        if max_retry_cycles < 0:
            raise ValueError("max_retry_cycles must be >= 0")
        self._flush_callback = flush_callback
        self._period = float(period_seconds)
        self._threshold = flush_threshold
        self._policy = FailurePolicy(failure_policy)
        self._max_retry_cycles = max_retry_cycles
        self._backoff_max = float(retry_backoff_max_seconds)
        self._metrics = metrics
        self._name = name

        # Producer-facing state, guarded by _pending_lock
        self._pending_lock = threading.Lock()
        self._pending: deque[T] = deque()
        self._submitted = 0
        self._flush_requested = False
        self._closed = False

        # Flush-context state, only touched while holding _flush_lock
        self._flush_lock = asyncio.Lock()
        self._retained: list[T] = []
        self._failures = 0

        self._state = SchedulerState.IDLE
        self._wakeup = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Future[FlushResult] | None = None
        self._last_result: FlushResult | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending) + len(self._retained)

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def last_result(self) -> FlushResult | None:
        return self._last_result

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def current_period(self) -> float:
        """Seconds until the next timer tick, including failure back-off."""
        if self._failures == 0:
            return self._period
        backoff = self._period * (2 ** min(self._failures, 16))
        return max(self._period, min(backoff, self._backoff_max))

    def submit(self, item: T) -> None:
        """Enqueue ``item``. Thread-safe, non-blocking, no I/O."""
        with self._pending_lock:
            if self._closed:
                raise SinkStateError(
                    f"{self._name} is shutting down; submission rejected"
                )
            self._pending.append(item)
            self._submitted += 1
            if self._state is SchedulerState.IDLE:
                self._state = SchedulerState.ACCUMULATING
            request = (
                self._threshold is not None
                and not self._flush_requested
                and len(self._pending) >= self._threshold
            )
            if request:
                self._flush_requested = True
        if request:
            self._request_flush()

    def _request_flush(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            # Not started yet; start() checks the threshold itself
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._wakeup.set()
            return
        try:
            loop.call_soon_threadsafe(self._wakeup.set)
        except RuntimeError:
            # Loop closed between the check and the call
            pass

    async def start(self) -> None:
        """Launch the timer task on the running loop. Idempotent."""
        if self._task is not None:
            return
        if self._closed:
            raise SinkStateError(f"{self._name} has been shut down")
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run(), name=f"{self._name}-timer")
        with self._pending_lock:
            if (
                self._threshold is not None
                and len(self._pending) >= self._threshold
            ):
                self._flush_requested = True
                self._wakeup.set()

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.wait_for(
                    self._wakeup.wait(), timeout=self.current_period()
                )
            except asyncio.TimeoutError:
                pass  # Timer tick
            self._wakeup.clear()
            if self._closed:
                return
            if self._flush_lock.locked():
                diagnostics.debug(
                    "scheduler",
                    "tick skipped, flush already running",
                    scheduler=self._name,
                    _rate_limit_key="scheduler-tick-skipped",
                )
                continue
            try:
                await self._flush_cycle(final=False)
            except Exception as exc:  # pragma: no cover
                diagnostics.warn(
                    "scheduler",
                    "flush cycle crashed",
                    scheduler=self._name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

    async def flush(self) -> FlushResult:
        """Run one flush cycle now, waiting for a running one first."""
        return await self._flush_cycle(final=False)

    async def shutdown(self) -> FlushResult:
        """Stop the timer and flush everything still buffered.

        Returns once the final flush's backend calls have completed.
        Raises ``FlushError`` if the final flush failed. Repeated calls wait
        for and return the outcome of the first one.
        """
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown())
        return await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> FlushResult:
        with self._pending_lock:
            self._closed = True
        self._state = SchedulerState.STOPPING
        task = self._task
        if task is not None and not task.done():
            self._wakeup.set()
            # Let an in-flight cycle finish instead of cancelling its writes
            await task
        try:
            return await self._flush_cycle(final=True)
        finally:
            self._state = SchedulerState.STOPPED

    def _swap_pending(self) -> tuple[deque[T], int]:
        with self._pending_lock:
            swapped = self._pending
            self._pending = deque()
            submitted = self._submitted
            self._submitted = 0
            self._flush_requested = False
        return swapped, submitted

    async def _flush_cycle(self, *, final: bool) -> FlushResult:
        async with self._flush_lock:
            swapped, submitted = self._swap_pending()
            items = self._retained + list(swapped)
            self._retained = []
            if self._metrics is not None:
                await self._metrics.record_events_submitted(submitted)
                await self._metrics.set_pending_high_watermark(len(items))
            if not items:
                result = FlushResult()
                self._settle_state(final)
                self._last_result = result
                return result

            if not final:
                self._state = SchedulerState.FLUSHING
            start = time.perf_counter()
            try:
                outcome = await self._flush_callback(items)
            except Exception as exc:
                result = await self._handle_failure(exc, items, final)
                await self._record_cycle(ok=False, start=start)
                self._settle_state(final)
                self._last_result = result
                if final:
                    raise FlushError(
                        f"Final flush of {self._name} failed; "
                        f"{result.retained} item(s) were not written",
                        unwritten_count=result.retained,
                        cause=exc,
                    ) from exc
                return result

            self._failures = 0
            await self._record_cycle(ok=True, start=start)
            self._settle_state(final)
            result = FlushResult(items=len(items), ok=True, outcome=outcome)
            self._last_result = result
            return result

    async def _handle_failure(
        self, exc: Exception, items: list[T], final: bool
    ) -> FlushResult:
        unwritten = list(getattr(exc, "unwritten", None) or items)
        self._failures += 1
        result = FlushResult(items=len(items), ok=False, error=exc)

        if final:
            self._retained = unwritten
            result.retained = len(unwritten)
            diagnostics.warn(
                "scheduler",
                "final flush failed",
                scheduler=self._name,
                unwritten=len(unwritten),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return result

        give_up = (
            self._policy is FailurePolicy.DROP
            or self._failures > self._max_retry_cycles
        )
        if give_up:
            result.dropped = len(unwritten)
            diagnostics.warn(
                "scheduler",
                "flush failed, dropping unwritten events",
                scheduler=self._name,
                policy=self._policy.value,
                failures=self._failures,
                dropped=len(unwritten),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self._failures = 0
            if self._metrics is not None:
                await self._metrics.record_events_dropped(len(unwritten))
            return result

        self._retained = unwritten
        result.retained = len(unwritten)
        diagnostics.warn(
            "scheduler",
            "flush failed, retaining unwritten events for retry",
            scheduler=self._name,
            failures=self._failures,
            retained=len(unwritten),
            next_attempt_seconds=self.current_period(),
            error_type=type(exc).__name__,
            error=str(exc),
            _rate_limit_key=f"{self._name}-retry",
        )
        return result

    def _settle_state(self, final: bool) -> None:
        if final:
            return
        with self._pending_lock:
            busy = bool(self._pending) or bool(self._retained)
            if self._closed:
                self._state = SchedulerState.STOPPING
            else:
                self._state = (
                    SchedulerState.ACCUMULATING if busy else SchedulerState.IDLE
                )

    async def _record_cycle(self, *, ok: bool, start: float) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.record_flush(
                ok=ok, latency_seconds=time.perf_counter() - start
            )
        except Exception as exc:
            diagnostics.warn(
                "scheduler",
                "recording flush metrics failed",
                scheduler=self._name,
                error_type=type(exc).__name__,
                error=str(exc),
                _rate_limit_key=f"{self._name}-metrics",
            )


__all__ = [
    "FailurePolicy",
    "FlushCallback",
    "FlushResult",
    "PeriodicScheduler",
    "SchedulerState",
]
