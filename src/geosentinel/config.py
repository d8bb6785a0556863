"""Agent configuration and the persisted station record."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any

from geosentinel._constants import (
    BASE_URL,
    DB_FILENAME,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_REQUEST_TIMEOUT,
    STATION_FILENAME,
)
from geosentinel.exceptions import SentinelConfigError

_logger = logging.getLogger(__name__)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def default_data_dir() -> Path:
    """Per-user directory holding the outbox database and station record."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / "GeoSentinelService"
    return Path.home() / ".geosentinel"


@dataclasses.dataclass(frozen=True)
class SentinelConfig:
    """Agent configuration.

    Parameters
    ----------
    base_url : str
        Collection service base URL (``http`` or ``https``).
    data_dir : Path
        Directory holding ``local.db`` and ``config.json``.
    request_timeout : float
        Per-request timeout in seconds. A timed-out call counts as a
        network failure.
    batch_size : int
        Maximum number of records uploaded per sync cycle.
    base_delay_ms : int
        Sync cycle delay after a successful cycle.
    max_delay_ms : int
        Upper bound for the doubled delay after consecutive failures.
    startup_delay : float
        Seconds to wait after start before the first timers are armed.
    sample_interval : float
        Seconds between location sampler ticks.
    heartbeat_interval : float
        Seconds between heartbeat calls.
    sampler_high_accuracy : bool
        Ask the sampler for a high-accuracy fix.
    sampler_timeout : float
        Seconds the sampler may take to produce a position.
    sampler_maximum_age : float
        Maximum age in seconds of a cached position the sampler may return.
    immediate_upload : bool
        Attempt a single-record upload right after each ingestion.
    stale_fallback : bool
        Re-ingest the last known position when the sampler fails.
    retained_sample_limit : int
        Samples kept in memory while the outbox cannot be written.
    remote_logging : bool
        Forward WARNING-and-above log records to the client-log endpoint.
    """

    base_url: str = BASE_URL
    data_dir: Path = dataclasses.field(default_factory=default_data_dir)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    batch_size: int = DEFAULT_BATCH_SIZE
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    startup_delay: float = 5.0
    sample_interval: float = 15.0
    heartbeat_interval: float = 60.0
    sampler_high_accuracy: bool = False
    sampler_timeout: float = 15.0
    sampler_maximum_age: float = 60.0
    immediate_upload: bool = True
    stale_fallback: bool = True
    retained_sample_limit: int = 100
    remote_logging: bool = False

    def __post_init__(self) -> None:
        if not self.base_url.startswith(("https://", "http://")):
            raise SentinelConfigError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.base_url.endswith("/"):
            object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "data_dir", Path(self.data_dir))
        if self.batch_size < 1:
            raise SentinelConfigError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.base_delay_ms <= 0:
            raise SentinelConfigError(f"base_delay_ms must be > 0, got {self.base_delay_ms}")
        if self.max_delay_ms < self.base_delay_ms:
            raise SentinelConfigError(
                f"max_delay_ms ({self.max_delay_ms}) must not be below base_delay_ms ({self.base_delay_ms})"
            )
        for name in ("request_timeout", "sample_interval", "heartbeat_interval", "sampler_timeout"):
            if getattr(self, name) <= 0:
                raise SentinelConfigError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.startup_delay < 0:
            raise SentinelConfigError(f"startup_delay must be >= 0, got {self.startup_delay}")

    @property
    def db_path(self) -> Path:
        return self.data_dir / DB_FILENAME

    @property
    def station_file(self) -> Path:
        return self.data_dir / STATION_FILENAME

    @classmethod
    def from_env(cls, **overrides: Any) -> SentinelConfig:
        """Create configuration from ``GEOSENTINEL_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "GEOSENTINEL_BASE_URL": "base_url",
            "GEOSENTINEL_DATA_DIR": "data_dir",
        }
        _ENV_FLOAT_MAP = {
            "GEOSENTINEL_REQUEST_TIMEOUT": "request_timeout",
            "GEOSENTINEL_STARTUP_DELAY": "startup_delay",
            "GEOSENTINEL_SAMPLE_INTERVAL": "sample_interval",
            "GEOSENTINEL_HEARTBEAT_INTERVAL": "heartbeat_interval",
            "GEOSENTINEL_SAMPLER_TIMEOUT": "sampler_timeout",
            "GEOSENTINEL_SAMPLER_MAXIMUM_AGE": "sampler_maximum_age",
        }
        _ENV_INT_MAP = {
            "GEOSENTINEL_BATCH_SIZE": "batch_size",
            "GEOSENTINEL_BASE_DELAY_MS": "base_delay_ms",
            "GEOSENTINEL_MAX_DELAY_MS": "max_delay_ms",
            "GEOSENTINEL_RETAINED_SAMPLE_LIMIT": "retained_sample_limit",
        }
        _ENV_BOOL_MAP = {
            "GEOSENTINEL_SAMPLER_HIGH_ACCURACY": ("sampler_high_accuracy", False),
            "GEOSENTINEL_IMMEDIATE_UPLOAD": ("immediate_upload", True),
            "GEOSENTINEL_STALE_FALLBACK": ("stale_fallback", True),
            "GEOSENTINEL_REMOTE_LOGGING": ("remote_logging", False),
        }

        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise SentinelConfigError(f"Invalid numeric environment value: {exc}") from exc

        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


class StationFile:
    """The persisted ``{"stationId": ...}`` record.

    The station identifier is supplied once (``--station=<id>``) and read
    back on every later start. A missing or corrupt file reads as ``None``.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            _logger.warning("Station file %s is unreadable", self._path, exc_info=True)
            return None
        station_id = data.get("stationId") if isinstance(data, dict) else None
        if not isinstance(station_id, str) or not station_id.strip():
            return None
        return station_id.strip()

    def write(self, station_id: str) -> None:
        station_id = station_id.strip()
        if not station_id:
            raise SentinelConfigError("station identifier must be non-empty")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"stationId": station_id}, indent=2), encoding="utf-8")
        _logger.info("Station identifier persisted to %s", self._path)
