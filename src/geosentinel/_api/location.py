"""Location upload endpoints.

Endpoints:
  - /api/location/update (single position)
  - /api/location/batch (outbox batch)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from geosentinel._constants import LOCATION_BATCH_ENDPOINT, LOCATION_UPDATE_ENDPOINT
from geosentinel._transport import Transport
from geosentinel.models.location import LocationRecord


def build_update_request(latitude: float, longitude: float) -> dict[str, Any]:
    return {"latitude": latitude, "longitude": longitude}


def build_batch_request(records: Sequence[LocationRecord]) -> dict[str, Any]:
    """Batch body; rows keep outbox order (oldest first)."""
    return {"records": [record.to_wire() for record in records]}


async def post_update(transport: Transport, token: str, latitude: float, longitude: float) -> None:
    await transport.post_json(LOCATION_UPDATE_ENDPOINT, build_update_request(latitude, longitude), token=token)


async def post_batch(transport: Transport, token: str, records: Sequence[LocationRecord]) -> None:
    await transport.post_json(LOCATION_BATCH_ENDPOINT, build_batch_request(records), token=token)
