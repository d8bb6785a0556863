"""Status snapshot exposed to a status display."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from geosentinel.state.events import SyncPhase


class AgentPhase(StrEnum):
    """Coarse agent state for an external status indicator."""

    INITIALIZING = "initializing"
    AUTHENTICATING = "authenticating"
    TRACKING = "tracking"
    FAILED = "failed"


class SyncStatus(BaseModel):
    """Point-in-time view of the sync engine."""

    model_config = ConfigDict(frozen=True)

    phase: SyncPhase
    authenticated: bool
    current_delay_ms: int
    consecutive_failures: int
    last_success_at: datetime | None = None
    last_error: str | None = None
    pending_count: int = 0


class AgentStatus(BaseModel):
    """Point-in-time view of the whole agent."""

    model_config = ConfigDict(frozen=True)

    phase: AgentPhase
    sync: SyncStatus
    station_configured: bool
    last_sample_at: datetime | None = None
    retained_samples: int = 0
