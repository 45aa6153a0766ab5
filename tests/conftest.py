"""Pytest fixtures for SafeRoute engine and API tests."""

from datetime import datetime, timedelta, timezone

import pytest

from core.models import Category, Incident, Severity, User
from core.risk_mode import RiskModeController

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def build_incident(n: int, severity=Severity.LOW, reported_at=None, reporter_id=None, **overrides) -> Incident:
    fields = {
        "incident_id": f"incident-{n:03d}",
        "title": f"Report {n}",
        "description": "something happened",
        "category": Category.THEFT,
        "severity": severity,
        "location": "State St",
        "reported_at": reported_at or (T0 + timedelta(hours=n)),
        "reporter_id": reporter_id,
    }
    fields.update(overrides)
    return Incident(**fields)


@pytest.fixture
def make_incident():
    """Factory: make_incident(n, severity=..., reported_at=..., reporter_id=...)."""
    return build_incident


@pytest.fixture
def mixed_incidents():
    """Five incidents out of time order: 2 high, 1 medium, 2 low."""
    return [
        build_incident(1, Severity.HIGH, reported_at=T0 + timedelta(hours=3)),
        build_incident(2, Severity.LOW, reported_at=T0 + timedelta(hours=1)),
        build_incident(3, Severity.MEDIUM, reported_at=T0 + timedelta(hours=5)),
        build_incident(4, Severity.LOW, reported_at=T0 + timedelta(hours=2)),
        build_incident(5, Severity.HIGH, reported_at=T0 + timedelta(hours=4)),
    ]


@pytest.fixture
def user():
    return User(user_id="user-001", name="Alex Rivera", email="alex@example.com", created_at=T0 - timedelta(days=30))


@pytest.fixture
def user_reports(user):
    """Factory: n reports by the user, oldest first."""
    def _reports(n: int) -> list[Incident]:
        return [build_incident(i, reporter_id=user.user_id, reported_at=T0 + timedelta(days=i)) for i in range(n)]
    return _reports


@pytest.fixture
def controller():
    c = RiskModeController(name="test")
    yield c
    c.teardown()


@pytest.fixture
def app_client():
    """TestClient over a fresh app (in-memory store); lifespan runs so the dashboard observer is mounted."""
    from fastapi.testclient import TestClient
    from api.main import create_app
    from sources.memory import InMemoryIncidentStore, UserDirectory

    app = create_app(source=InMemoryIncidentStore(), users=UserDirectory(), controller=RiskModeController(name="api-test"))
    with TestClient(app) as client:
        yield client
