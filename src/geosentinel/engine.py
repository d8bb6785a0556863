"""Outbox sync engine.

One batch cycle: authenticate, read the oldest pending records, upload
them, and delete them only once the service has acknowledged the upload.
Cycles run on a self-rescheduling timer whose delay is the current
backoff; at most one cycle executes at a time.

Delivery is at-least-once. A crash between an acknowledged upload and the
delete re-sends that batch on the next start; a record is never deleted
unless an upload containing it succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from geosentinel._timer import RepeatingTimer
from geosentinel.config import SentinelConfig
from geosentinel.exceptions import SentinelConfigError, SentinelError, SentinelStorageError
from geosentinel.models.location import LocationRecord
from geosentinel.models.status import SyncStatus
from geosentinel.outbox import OutboxStore
from geosentinel.session import SessionManager
from geosentinel.state.backoff import BackoffState
from geosentinel.state.engine_state import SyncEngineState
from geosentinel.state.events import CycleOutcome, SyncPhase

_logger = logging.getLogger(__name__)


class BatchUploader(Protocol):
    async def upload_batch(self, token: str, records: Sequence[LocationRecord]) -> None:
        ...


class SyncEngine:
    """Drains the outbox to the collection service.

    Parameters
    ----------
    store : OutboxStore
        Source of pending records; the only record of what is undelivered.
    session : SessionManager
        Token holder; invalidated after every failed upload.
    uploader : BatchUploader
        Normally a :class:`~geosentinel.client.SentinelClient`.
    batch_size : int
        Maximum records per cycle.
    base_delay_ms, max_delay_ms : int
        Backoff bounds.
    """

    def __init__(
        self,
        store: OutboxStore,
        session: SessionManager,
        uploader: BatchUploader,
        *,
        batch_size: int = 20,
        base_delay_ms: int = 10_000,
        max_delay_ms: int = 60_000,
        state: SyncEngineState | None = None,
    ) -> None:
        self._store = store
        self._session = session
        self._uploader = uploader
        self._batch_size = batch_size
        self.state = state or SyncEngineState(BackoffState(base_delay_ms=base_delay_ms, max_delay_ms=max_delay_ms))
        self._timer = RepeatingTimer("sync", self.run_cycle, self._next_delay_seconds)

    @classmethod
    def from_config(
        cls,
        config: SentinelConfig,
        store: OutboxStore,
        session: SessionManager,
        uploader: BatchUploader,
    ) -> SyncEngine:
        return cls(
            store,
            session,
            uploader,
            batch_size=config.batch_size,
            base_delay_ms=config.base_delay_ms,
            max_delay_ms=config.max_delay_ms,
        )

    @property
    def current_delay_ms(self) -> int:
        return self.state.backoff.current_delay_ms

    @property
    def is_running(self) -> bool:
        return self._timer.is_running

    def _next_delay_seconds(self) -> float:
        return self.state.backoff.current_delay_ms / 1000.0

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self, initial_delay: float | None = None) -> None:
        """Arm the cycle timer. The first cycle runs after the current backoff unless *initial_delay* is given."""
        self._timer.start(initial_delay)

    async def stop(self) -> None:
        """Stop scheduling cycles; an in-flight cycle is allowed to finish."""
        await self._timer.stop()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleOutcome:
        """Run one batch cycle. Never raises.

        Returns :attr:`CycleOutcome.SKIPPED` without side effects when a
        cycle is already in progress.
        """
        if not self.state.begin_cycle():
            _logger.debug("Sync cycle already in progress; skipping")
            return CycleOutcome.SKIPPED

        outcome = CycleOutcome.UPLOAD_FAILED
        error: str | None = None
        try:
            outcome, error = await self._cycle()
        except Exception as exc:
            _logger.exception("Unexpected error in sync cycle")
            outcome, error = CycleOutcome.UPLOAD_FAILED, repr(exc)
        finally:
            self.state.finish_cycle(outcome, error)

        if outcome.is_failure:
            _logger.info(
                "Sync cycle %s; next attempt in %d ms",
                outcome.value,
                self.state.backoff.current_delay_ms,
            )
        return outcome

    async def _cycle(self) -> tuple[CycleOutcome, str | None]:
        try:
            authenticated = await self._session.ensure_authenticated()
        except SentinelConfigError as exc:
            _logger.warning("Cannot authenticate: %s", exc)
            return CycleOutcome.NOT_CONFIGURED, str(exc)
        if not authenticated:
            return CycleOutcome.AUTH_FAILED, "login failed"

        try:
            records = self._store.peek_batch(self._batch_size)
        except SentinelStorageError as exc:
            return CycleOutcome.STORAGE_FAILED, str(exc)
        if not records:
            return CycleOutcome.NOTHING_PENDING, None

        token = self._session.token
        if token is None:
            # Invalidated between login and upload (e.g. by a failed heartbeat).
            return CycleOutcome.AUTH_FAILED, "session invalidated before upload"

        self.state.phase = SyncPhase.UPLOADING
        try:
            await self._uploader.upload_batch(token, records)
        except Exception as exc:
            if not isinstance(exc, SentinelError):
                _logger.exception("Unexpected batch upload error")
            _logger.warning("Batch upload of %d records failed: %s", len(records), exc)
            # Expiry cannot be told apart from transient errors in every case; force a fresh login.
            self._session.invalidate()
            return CycleOutcome.UPLOAD_FAILED, str(exc)

        ids = [record.id for record in records]
        try:
            deleted = self._store.delete_batch(ids)
        except SentinelStorageError as exc:
            # Rows stay pending and will be uploaded again: a duplicate, not a loss.
            return CycleOutcome.STORAGE_FAILED, str(exc)
        _logger.debug("Uploaded %d records (ids %d..%d), deleted %d", len(ids), ids[0], ids[-1], deleted)
        return CycleOutcome.UPLOADED, None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> SyncStatus:
        try:
            pending = self._store.pending_count()
        except SentinelStorageError:
            pending = -1
        return SyncStatus(
            phase=self.state.phase,
            authenticated=self._session.is_authenticated,
            current_delay_ms=self.state.backoff.current_delay_ms,
            consecutive_failures=self.state.backoff.consecutive_failures,
            last_success_at=self.state.last_success_at,
            last_error=self.state.last_error,
            pending_count=pending,
        )
