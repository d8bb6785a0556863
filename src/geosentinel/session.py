"""In-memory session state and single-flight login."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from geosentinel.exceptions import SentinelConfigError, SentinelError
from geosentinel.models.token import AuthToken

_logger = logging.getLogger(__name__)


class LoginClient(Protocol):
    async def login(self, station_id: str) -> AuthToken:
        ...


class SessionManager:
    """Holds the bearer token for the lifetime of the process.

    The token is never persisted: every restart re-authenticates. At most
    one login request is in flight; concurrent callers of
    :meth:`ensure_authenticated` share its outcome.

    Parameters
    ----------
    client
        Anything with an async ``login(station_id)``.
    station_id
        Callable returning the configured station identifier or ``None``.
        It is read on every login so a station configured after startup
        is picked up.
    """

    def __init__(
        self,
        client: LoginClient,
        station_id: Callable[[], str | None],
    ) -> None:
        self._client = client
        self._station_id = station_id
        self._token: AuthToken | None = None
        self._login_task: asyncio.Task[bool] | None = None
        self.login_attempts = 0
        self.last_login_at: float | None = None

    @property
    def token(self) -> str | None:
        return self._token.token if self._token is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def station_id(self) -> str | None:
        return self._station_id()

    async def ensure_authenticated(self) -> bool:
        """Return ``True`` once a token is held, logging in if needed.

        Holding a token short-circuits without any network call. Login
        failures (network, server, rejected station) return ``False``.

        Raises
        ------
        SentinelConfigError
            If no station identifier is configured. No request is made.
        """
        if self._token is not None:
            return True

        task = self._login_task
        if task is None:
            station_id = self._station_id()
            if not station_id:
                raise SentinelConfigError("Station identifier is not configured")
            task = asyncio.get_running_loop().create_task(self._login(station_id))
            task.add_done_callback(self._clear_login_task)
            self._login_task = task

        # Shielded so a cancelled waiter does not abort the shared login.
        return await asyncio.shield(task)

    def _clear_login_task(self, task: asyncio.Task[bool]) -> None:
        if self._login_task is task:
            self._login_task = None

    async def _login(self, station_id: str) -> bool:
        self.login_attempts += 1
        try:
            token = await self._client.login(station_id)
        except SentinelError as exc:
            _logger.warning("Login failed: %s", exc)
            return False
        except Exception:
            _logger.exception("Unexpected login error")
            return False
        self._token = token
        self.last_login_at = time.monotonic()
        _logger.info("Login successful")
        return True

    def invalidate(self) -> None:
        """Drop the held token; the next :meth:`ensure_authenticated` logs in again."""
        if self._token is not None:
            _logger.debug("Session token invalidated")
        self._token = None
