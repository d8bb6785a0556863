"""Data models for the agent and the collection service."""

from geosentinel.models.location import Coordinates, LocationRecord
from geosentinel.models.status import AgentPhase, AgentStatus, SyncStatus
from geosentinel.models.token import AuthToken

__all__ = [
    "AgentPhase",
    "AgentStatus",
    "AuthToken",
    "Coordinates",
    "LocationRecord",
    "SyncStatus",
]
