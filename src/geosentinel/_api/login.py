"""Login endpoint.

Endpoint:
  - /api/auth/auto-login
"""

from __future__ import annotations

import logging
from typing import Any

from geosentinel._constants import LOGIN_ENDPOINT
from geosentinel._redact import redact_for_log
from geosentinel._transport import Transport
from geosentinel.exceptions import SentinelAuthenticationError
from geosentinel.models.token import AuthToken

_logger = logging.getLogger(__name__)


def build_login_request(station_id: str) -> dict[str, Any]:
    """Build the auto-login body. No ``Authorization`` header is sent."""
    return {"stationId": station_id}


def parse_login_response(response: dict[str, Any]) -> AuthToken:
    """Extract the auth token from a login reply.

    Raises
    ------
    SentinelAuthenticationError
        If the reply carries no usable token.
    """
    _logger.debug("Login response parsed=%s", redact_for_log(response))
    token = response.get("token")
    if not isinstance(token, str) or not token.strip():
        raise SentinelAuthenticationError(
            "Login response missing token",
            endpoint=LOGIN_ENDPOINT,
        )
    return AuthToken(token=token, raw=response)


async def login(transport: Transport, station_id: str) -> AuthToken:
    """Authenticate a station and return its bearer token."""
    response = await transport.post_json(LOGIN_ENDPOINT, build_login_request(station_id), expect_json=True)
    return parse_login_response(response)
