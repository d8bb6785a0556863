"""Forward warnings to the collection service's client-log endpoint."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from collections.abc import Callable
from typing import Protocol

# Records from these loggers would re-trigger the upload that produced them.
_IGNORED_LOGGERS: tuple[str, ...] = ("geosentinel._transport", "geosentinel.client", "aiohttp")


class ClientLogSender(Protocol):
    async def send_client_log(self, station_id: str | None, level: str, message: str) -> bool:
        ...


class RemoteLogHandler(logging.Handler):
    """Best-effort ``logging.Handler`` posting records to ``/api/client-log``.

    Records are sent from tasks on *loop*; a record emitted while no loop is
    available is dropped. Delivery failures are swallowed by the sender.
    """

    def __init__(
        self,
        sender: ClientLogSender,
        station_id: Callable[[], str | None],
        loop: asyncio.AbstractEventLoop,
        level: int = logging.WARNING,
    ) -> None:
        super().__init__(level)
        self._sender = sender
        self._station_id = station_id
        self._loop = loop
        self._pending: set[concurrent.futures.Future[bool]] = set()

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(_IGNORED_LOGGERS):
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        if self._loop.is_closed():
            return
        try:
            message = self.format(record)
            station_id = self._station_id()
            coro = self._sender.send_client_log(station_id, record.levelname, message)
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        except Exception:
            self.handleError(record)
            return
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight uploads (used on shutdown)."""
        pending = [asyncio.wrap_future(f) for f in list(self._pending)]
        if pending:
            await asyncio.wait(pending)
