"""
Remote incident source over HTTP (httpx).

Talks to any service exposing GET /incidents[?reporter_id=], POST /incidents with the JSON
incident shape of Incident.to_dict(). Responses may be a bare list or {"incidents": [...]}.
Transport errors and bad payloads surface as IncidentSourceError; nothing is retried here.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from core.models import Incident, format_iso
from sources.base import IncidentSourceError

logger = logging.getLogger("saferoute.sources.remote")

DEFAULT_TIMEOUT = 10.0


def _incident_payload(fields: dict) -> dict:
    out = {}
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            out[key] = format_iso(value)
        else:
            out[key] = getattr(value, "value", value)  # enums -> plain strings
    return out


class RemoteIncidentSource:
    def __init__(self, base_url: str, *, timeout: float = DEFAULT_TIMEOUT, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            r = self._client.request(method, path, **kwargs)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            logger.warning("incident source %s %s -> %s", method, path, e.response.status_code)
            raise IncidentSourceError(f"{method} {path} failed with status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("incident source %s %s transport error: %s", method, path, e)
            raise IncidentSourceError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise IncidentSourceError(f"{method} {path} returned invalid JSON") from e

    def _decode_list(self, data: Any) -> list[Incident]:
        items = data.get("incidents") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise IncidentSourceError("expected a list of incidents")
        try:
            return [Incident.from_dict(d) for d in items]
        except (KeyError, TypeError, ValueError) as e:
            raise IncidentSourceError(f"malformed incident in response: {e}") from e

    def list_incidents(self) -> list[Incident]:
        return self._decode_list(self._request("GET", "/incidents"))

    def list_incidents_by_reporter(self, user_id: str) -> list[Incident]:
        incidents = self._decode_list(self._request("GET", "/incidents", params={"reporter_id": user_id}))
        # Remote order is not trusted; scoring reads by position.
        return sorted(incidents, key=lambda i: i.reported_at)

    def create_incident(self, fields: dict) -> Incident:
        data = self._request("POST", "/incidents", json=_incident_payload(fields))
        try:
            return Incident.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise IncidentSourceError(f"malformed incident in response: {e}") from e
