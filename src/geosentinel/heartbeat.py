"""Periodic presence signal, independent of the outbox."""

from __future__ import annotations

import logging
from typing import Protocol

from geosentinel._timer import RepeatingTimer
from geosentinel.exceptions import SentinelConfigError, SentinelError
from geosentinel.session import SessionManager

_logger = logging.getLogger(__name__)


class HeartbeatSender(Protocol):
    async def heartbeat(self, token: str) -> None:
        ...


class HeartbeatMonitor:
    """Tell the service the station is alive.

    A failed heartbeat invalidates the session token and nothing else: it
    never touches the outbox or the sync backoff.
    """

    def __init__(self, session: SessionManager, sender: HeartbeatSender, *, interval: float = 60.0) -> None:
        self._session = session
        self._sender = sender
        self._interval = interval
        self._timer = RepeatingTimer("heartbeat", self.beat, lambda: self._interval)
        self.sent = 0
        self.failed = 0

    def start(self, initial_delay: float | None = None) -> None:
        self._timer.start(initial_delay)

    async def stop(self) -> None:
        await self._timer.stop()

    async def beat(self) -> bool:
        """Send one heartbeat. Best-effort: never raises."""
        try:
            authenticated = await self._session.ensure_authenticated()
        except SentinelConfigError:
            authenticated = False
        except Exception:
            _logger.debug("Heartbeat login failed unexpectedly", exc_info=True)
            authenticated = False
        if not authenticated:
            self.failed += 1
            return False

        token = self._session.token
        if token is None:
            self.failed += 1
            return False

        try:
            await self._sender.heartbeat(token)
        except SentinelError as exc:
            _logger.debug("Heartbeat failed: %s", exc)
            self._session.invalidate()
            self.failed += 1
            return False
        except Exception:
            _logger.debug("Heartbeat failed unexpectedly", exc_info=True)
            self._session.invalidate()
            self.failed += 1
            return False

        self.sent += 1
        return True
