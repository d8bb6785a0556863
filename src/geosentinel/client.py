"""Async client for the location collection service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from geosentinel._api import location as _location_api
from geosentinel._api import presence as _presence_api
from geosentinel._api.login import login as _login
from geosentinel._transport import HttpTransport, Transport
from geosentinel.config import SentinelConfig
from geosentinel.exceptions import SentinelError
from geosentinel.models.location import LocationRecord
from geosentinel.models.token import AuthToken

_logger = logging.getLogger(__name__)


class SentinelClient:
    """Async client for the collection service.

    The client is stateless with respect to authentication: the caller
    (normally :class:`~geosentinel.session.SessionManager`) owns the token
    and passes it to each authenticated call.

    Usage::

        async with SentinelClient(config) as client:
            token = await client.login("station-7")
            await client.heartbeat(token.token)
    """

    def __init__(
        self,
        config: SentinelConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._external_transport = transport is not None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SentinelClient:
        if self._external_transport:
            return self
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(
            self._config.base_url,
            self._http_session,
            timeout=self._config.request_timeout,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise SentinelError("Client not initialized. Use 'async with SentinelClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def login(self, station_id: str) -> AuthToken:
        """Exchange the station identifier for a bearer token."""
        return await _login(self._require_transport(), station_id)

    async def update_location(self, token: str, latitude: float, longitude: float) -> None:
        """Report a single position."""
        await _location_api.post_update(self._require_transport(), token, latitude, longitude)

    async def upload_batch(self, token: str, records: Sequence[LocationRecord]) -> None:
        """Upload outbox records; returning normally means the service acknowledged them all."""
        if not records:
            return
        await _location_api.post_batch(self._require_transport(), token, records)

    async def heartbeat(self, token: str) -> None:
        await _presence_api.post_heartbeat(self._require_transport(), token)

    async def send_client_log(self, station_id: str | None, level: str, message: str) -> bool:
        """Best-effort diagnostic upload. Never raises; returns delivery success."""
        try:
            await _presence_api.post_client_log(self._require_transport(), station_id, level, message)
        except SentinelError:
            _logger.debug("Client log upload failed", exc_info=True)
            return False
        return True
