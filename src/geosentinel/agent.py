"""Agent composition: store, session, sync engine, heartbeat and sampler."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from geosentinel._remote_log import RemoteLogHandler
from geosentinel._transport import Transport
from geosentinel.client import SentinelClient
from geosentinel.config import SentinelConfig, StationFile
from geosentinel.engine import SyncEngine
from geosentinel.exceptions import SentinelConfigError
from geosentinel.heartbeat import HeartbeatMonitor
from geosentinel.ingestion.ingest import LocationIngestor
from geosentinel.ingestion.sampler import LocationSampler, SamplerOptions
from geosentinel.ingestion.tracker import LocationTracker
from geosentinel.models.status import AgentPhase, AgentStatus
from geosentinel.outbox import OutboxStore
from geosentinel.session import SessionManager

_logger = logging.getLogger(__name__)


class SentinelAgent:
    """The background agent.

    Usage::

        async with SentinelAgent(config, sampler) as agent:
            await agent.start()
            ...
            await agent.stop()

    Entering the context opens the outbox; failing to do so raises
    :class:`~geosentinel.exceptions.SentinelStorageError` and is fatal.
    Every failure after that is handled internally.
    """

    def __init__(
        self,
        config: SentinelConfig,
        sampler: LocationSampler,
        *,
        station_file: StationFile | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        store: OutboxStore | None = None,
    ) -> None:
        self._config = config
        self._sampler = sampler
        self.station_file = station_file or StationFile(config.station_file)
        self.client = SentinelClient(config, session=session, transport=transport)
        self._external_store = store is not None
        self._store = store
        self.session = SessionManager(self.client, self.station_file.read)
        self._engine: SyncEngine | None = None
        self._heartbeat: HeartbeatMonitor | None = None
        self._tracker: LocationTracker | None = None
        self.ingestor: LocationIngestor | None = None
        self._remote_log: RemoteLogHandler | None = None
        self._phase = AgentPhase.INITIALIZING
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SentinelAgent:
        if self._store is None:
            self._store = OutboxStore(self._config.db_path)
        await self.client.__aenter__()

        self._engine = SyncEngine.from_config(self._config, self._store, self.session, self.client)
        self._heartbeat = HeartbeatMonitor(self.session, self.client, interval=self._config.heartbeat_interval)
        self.ingestor = LocationIngestor(
            self._store,
            self.session,
            self.client,
            immediate_upload=self._config.immediate_upload,
        )
        self._tracker = LocationTracker(
            self._sampler,
            self.ingestor,
            options=SamplerOptions(
                high_accuracy=self._config.sampler_high_accuracy,
                timeout=self._config.sampler_timeout,
                maximum_age=self._config.sampler_maximum_age,
            ),
            interval=self._config.sample_interval,
            stale_fallback=self._config.stale_fallback,
            retained_limit=self._config.retained_sample_limit,
        )
        if self._config.remote_logging:
            self._remote_log = RemoteLogHandler(self.client, self.station_file.read, asyncio.get_running_loop())
            logging.getLogger("geosentinel").addHandler(self._remote_log)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if self._remote_log is not None:
            logging.getLogger("geosentinel").removeHandler(self._remote_log)
            await self._remote_log.drain()
            self._remote_log = None
        await self.client.__aexit__(*exc)
        if not self._external_store and self._store is not None:
            self._store.close()
            self._store = None

    @property
    def store(self) -> OutboxStore:
        if self._store is None:
            raise RuntimeError("Agent not initialized. Use 'async with SentinelAgent(...) as agent:'")
        return self._store

    @property
    def engine(self) -> SyncEngine:
        if self._engine is None:
            raise RuntimeError("Agent not initialized. Use 'async with SentinelAgent(...) as agent:'")
        return self._engine

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        if self._heartbeat is None:
            raise RuntimeError("Agent not initialized. Use 'async with SentinelAgent(...) as agent:'")
        return self._heartbeat

    @property
    def tracker(self) -> LocationTracker:
        if self._tracker is None:
            raise RuntimeError("Agent not initialized. Use 'async with SentinelAgent(...) as agent:'")
        return self._tracker

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Try one initial login, then arm the sampler, sync and heartbeat timers.

        Timers are armed whatever the login outcome: samples are always
        stored, and the sync cycle keeps retrying authentication. Returns
        whether the initial login succeeded.
        """
        if self._started:
            return self.session.is_authenticated
        engine, heartbeat, tracker = self.engine, self.heartbeat, self.tracker
        self._started = True

        self._phase = AgentPhase.AUTHENTICATING
        try:
            authenticated = await self.session.ensure_authenticated()
        except SentinelConfigError as exc:
            _logger.error("%s; locations will be stored but not synced", exc)
            authenticated = False
        self._phase = AgentPhase.TRACKING if authenticated else AgentPhase.FAILED

        delay = self._config.startup_delay
        tracker.start(initial_delay=delay)
        engine.start(initial_delay=delay + engine.current_delay_ms / 1000.0)
        heartbeat.start(initial_delay=delay + self._config.heartbeat_interval)
        _logger.info("Agent started (authenticated=%s)", authenticated)
        return authenticated

    async def stop(self) -> None:
        """Stop scheduling; in-flight requests finish on their own."""
        if not self._started:
            return
        self._started = False
        await asyncio.gather(self.tracker.stop(), self.engine.stop(), self.heartbeat.stop())
        _logger.info("Agent stopped")

    async def ingest(self, latitude: float, longitude: float) -> int:
        """Ingestion entrypoint for samplers that push rather than get polled."""
        if self.ingestor is None:
            raise RuntimeError("Agent not initialized. Use 'async with SentinelAgent(...) as agent:'")
        return await self.ingestor.ingest(latitude, longitude)

    def status(self) -> AgentStatus:
        sync = self.engine.status()
        phase = self._phase
        if self._started:
            if sync.authenticated:
                phase = AgentPhase.TRACKING
            elif sync.consecutive_failures > 0:
                phase = AgentPhase.FAILED
        return AgentStatus(
            phase=phase,
            sync=sync,
            station_configured=self.station_file.read() is not None,
            last_sample_at=self.tracker.last_sample_at,
            retained_samples=self.tracker.retained_count,
        )
