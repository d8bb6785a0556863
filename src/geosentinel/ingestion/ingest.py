"""Ingestion entrypoint: store first, then try a best-effort direct upload."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from geosentinel.ingestion.normalize import now_ms
from geosentinel.models.location import Coordinates
from geosentinel.outbox import OutboxStore
from geosentinel.session import SessionManager

_logger = logging.getLogger(__name__)


class SingleUploader(Protocol):
    async def update_location(self, token: str, latitude: float, longitude: float) -> None:
        ...


class LocationIngestor:
    """Write samples to the outbox and opportunistically deliver them at once.

    The outbox insert always happens first and its failure propagates. The
    direct upload that follows is an optimisation only: it runs when a
    token is already held (it never logs in), and on success deletes just
    that record. It never raises; a record it fails to deliver stays queued
    for the batch cycle.
    """

    def __init__(
        self,
        store: OutboxStore,
        session: SessionManager,
        uploader: SingleUploader,
        *,
        immediate_upload: bool = True,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._session = session
        self._uploader = uploader
        self._immediate_upload = immediate_upload
        self._clock = clock
        self.immediate_delivered = 0

    async def ingest(
        self,
        latitude: float,
        longitude: float,
        *,
        captured_at: int | None = None,
        immediate_upload: bool | None = None,
    ) -> int:
        """Durably queue a position and return its outbox id.

        Raises
        ------
        ValueError
            For a non-finite or out-of-range coordinate, or a *captured_at*
            that is not a positive epoch-millisecond integer.
        SentinelStorageError
            If the outbox write fails. The caller still owns the sample.
        """
        coords = Coordinates(latitude=latitude, longitude=longitude)
        captured = self._clock() if captured_at is None else captured_at
        record_id = self._store.insert(coords.latitude, coords.longitude, captured)

        upload = self._immediate_upload if immediate_upload is None else immediate_upload
        if upload:
            await self.try_immediate_upload(record_id, coords)
        return record_id

    async def try_immediate_upload(self, record_id: int, coords: Coordinates) -> bool:
        """Best-effort single-record delivery. Never raises."""
        token = self._session.token
        if token is None:
            return False
        try:
            await self._uploader.update_location(token, coords.latitude, coords.longitude)
        except Exception as exc:
            _logger.debug("Immediate upload of record %d failed: %s", record_id, exc)
            return False

        try:
            self._store.delete_batch([record_id])
        except Exception as exc:
            # Still queued, so the batch cycle sends it again.
            _logger.debug("Could not drop delivered record %d: %s", record_id, exc)
            return True
        self.immediate_delivered += 1
        return True
