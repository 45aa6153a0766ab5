"""What the engine needs from an incident store."""

from typing import Protocol

from core.models import Incident


class IncidentSourceError(Exception):
    """Transport or decoding failure in an incident source."""


class IncidentSource(Protocol):
    def list_incidents(self) -> list[Incident]:
        ...

    def list_incidents_by_reporter(self, user_id: str) -> list[Incident]:
        """Reports by user_id, oldest first."""
        ...

    def create_incident(self, fields: dict) -> Incident:
        ...
