"""Incident and user sources: in-memory store, remote HTTP source, user directory."""

from sources.base import IncidentSource, IncidentSourceError
from sources.memory import InMemoryIncidentStore, UserDirectory, new_incident_id
from sources.remote import RemoteIncidentSource

__all__ = [
    "IncidentSource",
    "IncidentSourceError",
    "InMemoryIncidentStore",
    "UserDirectory",
    "RemoteIncidentSource",
    "new_incident_id",
]
