"""geosentinel - Offline-first location buffering and sync agent."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("geosentinel")
except PackageNotFoundError:
    __version__ = "0+local"
from geosentinel.agent import SentinelAgent
from geosentinel.client import SentinelClient
from geosentinel.config import SentinelConfig, StationFile
from geosentinel.engine import SyncEngine
from geosentinel.exceptions import (
    SentinelAuthenticationError,
    SentinelConfigError,
    SentinelError,
    SentinelSamplerError,
    SentinelStorageError,
    SentinelTransportError,
    SentinelUnauthorizedError,
)
from geosentinel.models import (
    AgentPhase,
    AgentStatus,
    AuthToken,
    Coordinates,
    LocationRecord,
    SyncStatus,
)
from geosentinel.outbox import OutboxStore
from geosentinel.session import SessionManager

__all__ = [
    "__version__",
    "AgentPhase",
    "AgentStatus",
    "AuthToken",
    "Coordinates",
    "LocationRecord",
    "OutboxStore",
    "SentinelAgent",
    "SentinelAuthenticationError",
    "SentinelClient",
    "SentinelConfig",
    "SentinelConfigError",
    "SentinelError",
    "SentinelSamplerError",
    "SentinelStorageError",
    "SentinelTransportError",
    "SentinelUnauthorizedError",
    "SessionManager",
    "StationFile",
    "SyncEngine",
    "SyncStatus",
]
