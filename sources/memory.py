"""In-memory incident store and user directory (single process, used by the API by default)."""

import logging
import threading
import uuid
from datetime import datetime
from typing import Optional

from core.models import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    Category,
    Incident,
    Severity,
    User,
    utc_now,
)

logger = logging.getLogger("saferoute.sources.memory")


def new_incident_id() -> str:
    """Generate a new incident id (e.g. incident-<uuid4>)."""
    return "incident-" + uuid.uuid4().hex[:12]


def new_user_id() -> str:
    return "user-" + uuid.uuid4().hex[:12]


class InMemoryIncidentStore:
    """Insertion-ordered incident store. Returned lists are copies."""

    def __init__(self, incidents: Optional[list[Incident]] = None):
        self._lock = threading.Lock()
        self._incidents: dict[str, Incident] = {}
        for incident in incidents or []:
            self._incidents[incident.incident_id] = incident

    def __len__(self) -> int:
        with self._lock:
            return len(self._incidents)

    def list_incidents(self) -> list[Incident]:
        with self._lock:
            return list(self._incidents.values())

    def get_incident(self, incident_id: str) -> Optional[Incident]:
        with self._lock:
            return self._incidents.get(incident_id)

    def list_incidents_by_reporter(self, user_id: str) -> list[Incident]:
        with self._lock:
            mine = [i for i in self._incidents.values() if i.reporter_id is not None and i.reporter_id == user_id]
        return sorted(mine, key=lambda i: i.reported_at)

    def create_incident(self, fields: dict) -> Incident:
        reported_at = fields.get("reported_at")
        incident = Incident(
            incident_id=new_incident_id(),
            title=fields["title"],
            description=fields["description"],
            category=Category(fields["category"]),
            severity=Severity(fields.get("severity") or Severity.MEDIUM),
            location=fields["location"],
            reported_at=reported_at if isinstance(reported_at, datetime) else utc_now(),
            latitude=float(fields.get("latitude", DEFAULT_LATITUDE)),
            longitude=float(fields.get("longitude", DEFAULT_LONGITUDE)),
            verified=bool(fields.get("verified", False)),
            reporter_id=fields.get("reporter_id"),
        )
        with self._lock:
            self._incidents[incident.incident_id] = incident
        logger.info("incident created incident_id=%s severity=%s reporter_id=%s",
                    incident.incident_id, incident.severity.value, incident.reporter_id or "(anonymous)")
        return incident


class UserDirectory:
    """Stand-in for the auth service: the users the profile view can be built for."""

    def __init__(self):
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}

    def add_user(self, name: str, email: str, created_at: Optional[datetime] = None, user_id: Optional[str] = None) -> User:
        user = User(user_id=user_id or new_user_id(), name=name, email=email, created_at=created_at or utc_now())
        with self._lock:
            self._users[user.user_id] = user
        logger.info("user registered user_id=%s", user.user_id)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)
