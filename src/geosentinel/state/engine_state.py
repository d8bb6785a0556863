"""Explicit state object owned by one sync engine."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from geosentinel.state.backoff import BackoffState
from geosentinel.state.events import CycleOutcome, SyncPhase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SyncEngineState:
    """Phase, backoff and outcome bookkeeping for a :class:`SyncEngine`.

    The phase doubles as the re-entrancy guard: a cycle may only begin
    from :attr:`SyncPhase.IDLE`.
    """

    def __init__(
        self,
        backoff: BackoffState,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self.backoff = backoff
        self.phase = SyncPhase.IDLE
        self.last_outcome: CycleOutcome | None = None
        self.last_success_at: datetime | None = None
        self.last_cycle_at: datetime | None = None
        self.last_error: str | None = None
        self.cycles = 0

    @property
    def in_cycle(self) -> bool:
        return self.phase is not SyncPhase.IDLE

    def begin_cycle(self) -> bool:
        """Enter the cycle; ``False`` when one is already running."""
        if self.in_cycle:
            return False
        self.phase = SyncPhase.AUTHENTICATING
        return True

    def finish_cycle(self, outcome: CycleOutcome, error: str | None = None) -> None:
        now = self._clock()
        self.phase = SyncPhase.IDLE
        self.last_outcome = outcome
        self.last_cycle_at = now
        self.cycles += 1
        if outcome.is_success:
            self.backoff.record_success()
            self.last_success_at = now
            self.last_error = None
        else:
            self.backoff.record_failure()
            self.last_error = error or outcome.value
