"""
FastAPI backend: report incidents, serve dashboard summary, contributor profiles and the shared risk mode.
Summary and profile values are derived on every request from the current incident list.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from api import settings
from core.aggregator import aggregate
from core.models import DEFAULT_LATITUDE, DEFAULT_LONGITUDE, Category, Severity
from core.observers import ObserverRegistry
from core.risk_mode import RiskModeController
from core.trust import score
from sources.base import IncidentSourceError
from sources.memory import InMemoryIncidentStore, UserDirectory
from sources.remote import RemoteIncidentSource

load_dotenv(override=True)

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("saferoute.api")

# No-cache for dynamic API responses (avoid 304 for stale data)
NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate", "Pragma": "no-cache"}


# -----------------------------------------------------------------------------
# Request models (report form rules)
# -----------------------------------------------------------------------------
class IncidentCreate(BaseModel):
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=500)
    category: Category
    severity: Severity = Severity.MEDIUM
    location: str
    latitude: float = Field(DEFAULT_LATITUDE, ge=-90, le=90)
    longitude: float = Field(DEFAULT_LONGITUDE, ge=-180, le=180)
    reporter_id: Optional[str] = None  # omit for an anonymous report

    @field_validator("title", "description", "location")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("is required")
        return v


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    created_at: Optional[datetime] = None


def _default_source():
    url = settings.incident_source_url()
    if url:
        logger.info("using remote incident source %s", url)
        return RemoteIncidentSource(url, timeout=settings.incident_source_timeout())
    return InMemoryIncidentStore()


def create_app(source=None, users: Optional[UserDirectory] = None, controller: Optional[RiskModeController] = None) -> FastAPI:
    """
    Build the app around one incident source, one user directory and one risk controller.
    The controller lives as long as the app: the dashboard observer is mounted at startup,
    and both are torn down at shutdown.
    """
    source = source if source is not None else _default_source()
    users = users if users is not None else UserDirectory()
    controller = controller if controller is not None else RiskModeController(name="app")
    observers = ObserverRegistry(controller)

    def current_incidents():
        return source.list_incidents()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await run_in_threadpool(observers.mount, "dashboard", current_incidents)
        except IncidentSourceError as e:
            logger.warning("dashboard observer mounted without incidents: %s", e)
            observers.mount("dashboard", lambda: [])
        yield
        observers.close_all()
        controller.teardown()
        if hasattr(source, "close"):
            source.close()

    app = FastAPI(title="SafeRoute Incident API", lifespan=lifespan)
    app.state.source = source
    app.state.users = users
    app.state.risk_controller = controller
    app.state.observers = observers

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IncidentSourceError)
    async def incident_source_error(request: Request, exc: IncidentSourceError):
        logger.error("incident source failure path=%s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": "Incident source unavailable"}, headers=NO_CACHE_HEADERS)

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------
    @app.get("/health")
    def health():
        return JSONResponse(
            content={"status": "ok", "source": "remote" if isinstance(source, RemoteIncidentSource) else "memory"},
            headers=NO_CACHE_HEADERS,
        )

    @app.get("/incidents")
    def list_incidents(reporter_id: Optional[str] = None):
        """All incidents in store order, or one reporter's incidents oldest first."""
        if reporter_id:
            incidents = source.list_incidents_by_reporter(reporter_id)
        else:
            incidents = source.list_incidents()
        return JSONResponse(content={"incidents": [i.to_dict() for i in incidents]}, headers=NO_CACHE_HEADERS)

    @app.get("/incidents/summary")
    def incidents_summary(limit: Optional[int] = Query(None, ge=0, le=settings.MAX_RECENT_LIMIT)):
        """Home dashboard: totals, counts by severity, most recent reports."""
        summary = aggregate(source.list_incidents())
        n = limit if limit is not None else settings.recent_incidents_limit()
        return JSONResponse(content=summary.to_dict(limit=n), headers=NO_CACHE_HEADERS)

    @app.get("/incidents/{incident_id}")
    def get_incident(incident_id: str):
        incident = next((i for i in source.list_incidents() if i.incident_id == incident_id), None)
        if incident is None:
            logger.debug("get_incident not_found incident_id=%s", incident_id)
            raise HTTPException(status_code=404, detail="Incident not found")
        return JSONResponse(content=incident.to_dict(), headers=NO_CACHE_HEADERS)

    @app.post("/incidents", status_code=201)
    def create_incident(body: IncidentCreate):
        """Store a report, then let every mounted observer re-evaluate the high-severity count."""
        incident = source.create_incident(body.model_dump())
        observers.refresh_all(current_incidents)
        logger.info("report accepted incident_id=%s severity=%s mode=%s",
                    incident.incident_id, body.severity.value, controller.current_mode().value)
        return JSONResponse(status_code=201, content=incident.to_dict(), headers=NO_CACHE_HEADERS)

    @app.post("/users", status_code=201)
    def register_user(body: UserCreate):
        user = users.add_user(body.name.strip(), body.email.strip(), created_at=body.created_at)
        return JSONResponse(status_code=201, content=user.to_dict(), headers=NO_CACHE_HEADERS)

    @app.get("/users/{user_id}/profile")
    def user_profile(user_id: str):
        """Trust level, badges, milestone timeline and impact, recomputed from the user's reports."""
        user = users.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        reports = source.list_incidents_by_reporter(user_id)
        content = score(user, reports).to_dict()
        content["reports"] = [i.to_dict() for i in reports]
        return JSONResponse(content=content, headers=NO_CACHE_HEADERS)

    @app.get("/risk-mode")
    def risk_mode():
        return JSONResponse(content=controller.snapshot(), headers=NO_CACHE_HEADERS)

    @app.websocket("/risk-mode/ws")
    async def risk_mode_websocket(websocket: WebSocket):
        """
        One connection = one observer surface. Sends {"mode", "assertions"} now and on every mode change;
        the observer is mounted for the life of the connection. Text "snapshot" asks for the current state.
        """
        await websocket.accept()
        surface_id = "ws-" + uuid.uuid4().hex[:8]
        loop = asyncio.get_running_loop()
        outbox: asyncio.Queue = asyncio.Queue()

        def on_change(mode, count):
            loop.call_soon_threadsafe(outbox.put_nowait, {"mode": mode.value, "assertions": count})

        async def sender():
            while True:
                msg = await outbox.get()
                await websocket.send_json(msg)

        unsubscribe = controller.subscribe(on_change, replay=True)
        send_task = asyncio.create_task(sender())
        observer = None
        logger.info("risk surface connected %s", surface_id)
        try:
            observer = await run_in_threadpool(observers.mount, surface_id, current_incidents)
            while True:
                text = await websocket.receive_text()
                if text.strip().lower() == "snapshot":
                    outbox.put_nowait(controller.snapshot())
        except WebSocketDisconnect:
            pass
        finally:
            unsubscribe()
            if observer is not None:
                observers.unmount(observer)
            send_task.cancel()
            try:
                await send_task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("risk surface %s sender failed", surface_id)
            logger.info("risk surface disconnected %s", surface_id)

    return app


app = create_app()
