"""Debounced, single-flight scheduling of fill cycles.

States:
    IDLE     nothing waiting, nothing running
    PENDING  a payload is waiting for its debounce timer
    RUNNING  a cycle is in flight (a newer payload may be waiting behind it)

Requests coalesce into one slot holding the latest payload. When the timer
fires during a cycle the payload is not queued as a separate job; it runs as
soon as the in-flight cycle finishes. Cycles are never cancelled.
"""
from __future__ import annotations
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .config import FILL_DELAY, FIRST_FILL_DELAY

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


class UpdateScheduler:
    def __init__(
        self,
        run_cycle: Callable[[Any], Awaitable[Any]],
        first_delay: float = FIRST_FILL_DELAY,
        delay: float = FILL_DELAY,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        self._run_cycle = run_cycle
        self.first_delay = first_delay
        self.delay = delay
        self.on_error = on_error

        self.state = SchedulerState.IDLE
        self._payload: Any = None
        self._has_payload = False
        self._due = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

        self.cycles_started = 0
        self.cycles_completed = 0
        self.cycles_failed = 0

    @property
    def current_delay(self) -> float:
        return self.delay if self.cycles_completed else self.first_delay

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    def request(self, payload: Any) -> None:
        """Replace the waiting payload and restart the debounce window."""
        if self._closed:
            raise RuntimeError("scheduler is closed")
        loop = asyncio.get_running_loop()
        self._payload = payload
        self._has_payload = True
        self._due = False
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.current_delay, self._on_timer)
        if self.state is SchedulerState.IDLE:
            self.state = SchedulerState.PENDING
        self._idle.clear()

    def _on_timer(self) -> None:
        self._timer = None
        if not self._has_payload:
            return
        if self._task is None:
            self._start_cycle()
        else:
            # picked up when the in-flight cycle finishes
            self._due = True

    def _start_cycle(self) -> None:
        payload = self._payload
        self._payload = None
        self._has_payload = False
        self._due = False
        self.state = SchedulerState.RUNNING
        self.cycles_started += 1
        self._task = asyncio.get_running_loop().create_task(self._run(payload))

    async def _run(self, payload: Any) -> None:
        cycle = self.cycles_started
        try:
            await self._run_cycle(payload)
            self.cycles_completed += 1
        except Exception as e:
            self.cycles_failed += 1
            logger.error("Fill cycle %d failed: %s", cycle, e)
            if self.on_error is not None:
                try:
                    self.on_error(e)
                except Exception as cb_err:
                    logger.error("Error callback raised: %s", cb_err)
        finally:
            self._task = None
            self._after_cycle()

    def _after_cycle(self) -> None:
        if self._has_payload and self._due and not self._closed:
            self._start_cycle()
        elif self._has_payload and not self._closed:
            self.state = SchedulerState.PENDING
        else:
            self.state = SchedulerState.IDLE
            self._idle.set()

    async def wait_idle(self) -> None:
        while self.state is not SchedulerState.IDLE:
            await self._idle.wait()

    async def flush(self) -> None:
        """Run the waiting payload now instead of at timer expiry, then wait for idle."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._has_payload:
            if self._task is None:
                self._start_cycle()
            else:
                self._due = True
        await self.wait_idle()

    async def close(self) -> None:
        """Drop any waiting payload and let the in-flight cycle finish."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._payload = None
        self._has_payload = False
        self._due = False
        task = self._task
        if task is not None:
            await task
        self.state = SchedulerState.IDLE
        self._idle.set()
