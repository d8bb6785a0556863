"""Sampler tick handler."""

from __future__ import annotations

import dataclasses
import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from geosentinel._timer import RepeatingTimer
from geosentinel.exceptions import SentinelSamplerError, SentinelStorageError
from geosentinel.ingestion.ingest import LocationIngestor
from geosentinel.ingestion.normalize import now_ms
from geosentinel.ingestion.sampler import LocationSampler, SamplerOptions
from geosentinel.models.location import Coordinates

_logger = logging.getLogger(__name__)


class TickOutcome(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    NO_POSITION = "no_position"
    RETAINED = "retained"


@dataclasses.dataclass(frozen=True)
class RetainedSample:
    coords: Coordinates
    captured_at: int


class LocationTracker:
    """Sample the position on every tick and hand it to the ingestor.

    When the sampler fails, the last known position is ingested again if
    ``stale_fallback`` is on. The substituted sample carries the current
    capture time and no staleness marker.

    When the outbox cannot be written, samples are kept in memory (up to
    ``retained_limit``, oldest dropped first) with their original capture
    time, and written ahead of any newer sample once the outbox recovers.
    """

    def __init__(
        self,
        sampler: LocationSampler,
        ingestor: LocationIngestor,
        *,
        options: SamplerOptions | None = None,
        interval: float = 15.0,
        stale_fallback: bool = True,
        retained_limit: int = 100,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._sampler = sampler
        self._ingestor = ingestor
        self._options = options or SamplerOptions()
        self._stale_fallback = stale_fallback
        self._clock = clock
        self._retained: deque[RetainedSample] = deque(maxlen=max(1, retained_limit))
        self._timer = RepeatingTimer("sampler", self.tick, lambda: interval)
        self.last_known: Coordinates | None = None
        self.last_sample_at: datetime | None = None

    @property
    def retained_count(self) -> int:
        return len(self._retained)

    def start(self, initial_delay: float | None = None) -> None:
        self._timer.start(initial_delay)

    async def stop(self) -> None:
        await self._timer.stop()

    async def tick(self) -> TickOutcome:
        """Handle one sampler tick. Never raises."""
        try:
            coords = await self._sampler.get_position(self._options)
        except SentinelSamplerError as exc:
            _logger.info("Location fetch failed: %s", exc)
            if not self._stale_fallback or self.last_known is None:
                return TickOutcome.NO_POSITION
            _logger.info("Using last known location")
            coords = self.last_known
            outcome = TickOutcome.STALE
        except Exception:
            _logger.exception("Sampler raised unexpectedly")
            return TickOutcome.NO_POSITION
        else:
            self.last_known = coords
            outcome = TickOutcome.FRESH

        self.last_sample_at = datetime.now(UTC)
        sample = RetainedSample(coords=coords, captured_at=self._clock())

        if not await self._flush_retained():
            self._retain(sample)
            return TickOutcome.RETAINED

        try:
            await self._ingestor.ingest(coords.latitude, coords.longitude, captured_at=sample.captured_at)
        except SentinelStorageError:
            self._retain(sample)
            return TickOutcome.RETAINED
        return outcome

    def _retain(self, sample: RetainedSample) -> None:
        if len(self._retained) == self._retained.maxlen:
            _logger.warning("Retained sample buffer full; dropping the oldest sample")
        self._retained.append(sample)

    async def _flush_retained(self) -> bool:
        """Write retained samples oldest first; ``False`` if the outbox is still failing."""
        while self._retained:
            sample = self._retained[0]
            try:
                await self._ingestor.ingest(
                    sample.coords.latitude,
                    sample.coords.longitude,
                    captured_at=sample.captured_at,
                    immediate_upload=False,
                )
            except SentinelStorageError:
                return False
            self._retained.popleft()
        return True
