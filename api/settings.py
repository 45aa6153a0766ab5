"""
Environment-driven settings (read on each call so tests can monkeypatch os.environ).

- RECENT_INCIDENTS_LIMIT: how many recent incidents the summary returns (default 4).
- INCIDENT_SOURCE_URL: if set, incidents are read from / written to this remote service
  instead of the in-memory store.
- INCIDENT_SOURCE_TIMEOUT: seconds per remote request (default 10).
"""

import os

from core.aggregator import DEFAULT_RECENT_LIMIT
from sources.remote import DEFAULT_TIMEOUT

MAX_RECENT_LIMIT = 50


def recent_incidents_limit() -> int:
    v = os.environ.get("RECENT_INCIDENTS_LIMIT")
    if v is None or v.strip() == "":
        return DEFAULT_RECENT_LIMIT
    try:
        return max(0, min(MAX_RECENT_LIMIT, int(v.strip())))
    except ValueError:
        return DEFAULT_RECENT_LIMIT


def incident_source_url() -> str | None:
    v = os.environ.get("INCIDENT_SOURCE_URL")
    if v is None or v.strip() == "":
        return None
    return v.strip().rstrip("/")


def incident_source_timeout() -> float:
    v = os.environ.get("INCIDENT_SOURCE_TIMEOUT")
    if v is None or v.strip() == "":
        return DEFAULT_TIMEOUT
    try:
        return max(0.1, float(v.strip()))
    except ValueError:
        return DEFAULT_TIMEOUT
