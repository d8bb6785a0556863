"""Self-rescheduling timer on the running event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Run *callback* after a delay, then re-arm once it has completed.

    The delay is read from *delay* every time the timer is armed, so a
    callback can change the interval for its own next run. Runs never
    overlap. :meth:`stop` stops re-arming; a run already in progress is
    left to finish.

    Exceptions from *callback* are logged and do not stop the timer.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Awaitable[object]],
        delay: Callable[[], float],
    ) -> None:
        self._name = name
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, initial_delay: float | None = None) -> None:
        if self._running:
            return
        self._running = True
        self._arm(self._delay() if initial_delay is None else initial_delay)

    def _arm(self, delay: float) -> None:
        if not self._running:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(max(0.0, delay), self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._running or self.in_flight:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"geosentinel-{self._name}")

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception:
            _logger.exception("Timer %s callback failed", self._name)
        finally:
            self._task = None
            if self._running:
                self._arm(self._delay())

    async def stop(self) -> None:
        """Stop scheduling and wait for an in-flight run to complete."""
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait([task])
