"""Custom exception hierarchy for geosentinel."""

from __future__ import annotations


class SentinelError(Exception):
    """Base exception for all geosentinel errors."""


class SentinelConfigError(SentinelError):
    """Invalid or missing configuration (e.g. no station identifier)."""


class SentinelStorageError(SentinelError):
    """Local persistence failure (cannot open, write or delete in the outbox)."""


class SentinelSamplerError(SentinelError):
    """The location sampler could not produce a position."""


class SentinelTransportError(SentinelError):
    """HTTP-level failure (network, timeout, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class SentinelUnauthorizedError(SentinelTransportError):
    """Request rejected as unauthenticated or unauthorized (HTTP 401/403).

    The sync engine treats this like any other upload failure; it exists so
    callers that *can* tell token expiry apart are able to do so.
    """


class SentinelAuthenticationError(SentinelError):
    """Login rejected, or the login response carried no token."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)
