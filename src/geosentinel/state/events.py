"""Sync engine phases and cycle outcomes."""

from __future__ import annotations

from enum import StrEnum


class SyncPhase(StrEnum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    UPLOADING = "uploading"


class CycleOutcome(StrEnum):
    """Result of a single batch cycle."""

    UPLOADED = "uploaded"
    NOTHING_PENDING = "nothing_pending"
    AUTH_FAILED = "auth_failed"
    NOT_CONFIGURED = "not_configured"
    UPLOAD_FAILED = "upload_failed"
    STORAGE_FAILED = "storage_failed"
    SKIPPED = "skipped"

    @property
    def is_success(self) -> bool:
        return self in (CycleOutcome.UPLOADED, CycleOutcome.NOTHING_PENDING)

    @property
    def is_failure(self) -> bool:
        return not self.is_success and self is not CycleOutcome.SKIPPED
