"""Retry backoff policy.

Doubling on failure, capped; reset to the base delay on success. After
``n`` consecutive failures the delay is ``min(base * 2**n, cap)``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


def next_delay_ms(current_ms: int, max_delay_ms: int) -> int:
    """Delay after one more failure."""
    return min(current_ms * 2, max_delay_ms)


class BackoffState(BaseModel):
    """Mutable backoff counter bounded in ``[base_delay_ms, max_delay_ms]``.

    ``current_delay_ms`` starts at the base delay unless an in-range value
    is supplied.
    """

    model_config = ConfigDict(extra="forbid")

    base_delay_ms: int = Field(gt=0)
    max_delay_ms: int = Field(gt=0)
    current_delay_ms: int = 0
    consecutive_failures: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> BackoffState:
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        if not self.base_delay_ms <= self.current_delay_ms <= self.max_delay_ms:
            self.current_delay_ms = self.base_delay_ms
        return self

    def record_success(self) -> int:
        self.current_delay_ms = self.base_delay_ms
        self.consecutive_failures = 0
        return self.current_delay_ms

    def record_failure(self) -> int:
        self.current_delay_ms = next_delay_ms(self.current_delay_ms, self.max_delay_ms)
        self.consecutive_failures += 1
        return self.current_delay_ms
