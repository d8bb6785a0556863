"""Presence endpoints.

Endpoints:
  - /api/heartbeat (authenticated liveness ping)
  - /api/client-log (unauthenticated, best-effort diagnostics)
"""

from __future__ import annotations

from typing import Any

from geosentinel._constants import CLIENT_LOG_ENDPOINT, HEARTBEAT_ENDPOINT
from geosentinel._transport import Transport

# Longer messages are cut; tracebacks can be large.
_MAX_LOG_MESSAGE = 2000


def build_client_log_request(station_id: str | None, level: str, message: str) -> dict[str, Any]:
    return {
        "stationId": station_id,
        "level": level.lower(),
        "message": message[:_MAX_LOG_MESSAGE],
    }


async def post_heartbeat(transport: Transport, token: str) -> None:
    await transport.post_json(HEARTBEAT_ENDPOINT, {}, token=token)


async def post_client_log(transport: Transport, station_id: str | None, level: str, message: str) -> None:
    await transport.post_json(CLIENT_LOG_ENDPOINT, build_client_log_request(station_id, level, message))
