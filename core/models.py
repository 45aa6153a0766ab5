"""Incident, user and derived gamification models. Incidents and users are read-only snapshots."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Default report coordinate (Chicago city center) when the reporter does not pick a point
DEFAULT_LATITUDE = 41.8781
DEFAULT_LONGITUDE = -87.6298


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class Category(str, Enum):
    THEFT = "theft"
    ASSAULT = "assault"
    VANDALISM = "vandalism"
    HARASSMENT = "harassment"
    SCAM = "scam"
    UNSAFE_AREA = "unsafe_area"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.THEFT: "Theft",
    Category.ASSAULT: "Assault",
    Category.VANDALISM: "Vandalism",
    Category.HARASSMENT: "Harassment",
    Category.SCAM: "Scam/Fraud",
    Category.UNSAFE_AREA: "Unsafe Area",
    Category.OTHER: "Other",
}


class RiskMode(str, Enum):
    """Ambient display mode. Only two states are reachable."""
    DAY = "day"
    RISK = "risk"


def parse_iso(ts: Optional[str]) -> Optional[datetime]:
    """Parse ISO-8601 (with or without Z). Naive values are read as UTC."""
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(ISO_FORMAT)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _coerce(enum_cls, value):
    """Known values become enum members; anything else is kept as-is and never matches a bucket."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Incident:
    incident_id: str
    title: str
    description: str
    category: Category
    severity: Severity
    location: str
    reported_at: datetime
    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    verified: bool = False
    reporter_id: Optional[str] = None  # None for anonymous reports

    def to_dict(self):
        category = self.category.value if isinstance(self.category, Category) else self.category
        severity = self.severity.value if isinstance(self.severity, Severity) else self.severity
        return {
            "incident_id": self.incident_id,
            "title": self.title,
            "description": self.description,
            "category": category,
            "category_label": self.category.label if isinstance(self.category, Category) else str(category),
            "severity": severity,
            "location": self.location,
            "latitude": round(self.latitude, 6),
            "longitude": round(self.longitude, 6),
            "verified": self.verified,
            "reporter_id": self.reporter_id,
            "reported_at": format_iso(self.reported_at),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Incident":
        """Raises ValueError when reported_at is missing or not ISO-8601; a report time is never invented."""
        reported_at = parse_iso(d.get("reported_at"))
        if reported_at is None:
            raise ValueError(f"incident {d.get('incident_id')} has no valid reported_at: {d.get('reported_at')!r}")
        return cls(
            incident_id=str(d["incident_id"]),
            title=d.get("title", ""),
            description=d.get("description", ""),
            category=_coerce(Category, d.get("category")),
            severity=_coerce(Severity, d.get("severity")),
            location=d.get("location", ""),
            reported_at=reported_at,
            latitude=float(d.get("latitude", DEFAULT_LATITUDE)),
            longitude=float(d.get("longitude", DEFAULT_LONGITUDE)),
            verified=bool(d.get("verified", False)),
            reporter_id=d.get("reporter_id"),
        )


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    email: str
    created_at: Optional[datetime] = None

    @property
    def initials(self) -> str:
        parts = [p for p in self.name.split(" ") if p]
        return "".join(p[0] for p in parts).upper() or "U"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "initials": self.initials,
            "created_at": format_iso(self.created_at),
        }


@dataclass(frozen=True)
class TrustLevel:
    level: str
    progress: int  # 0 - 100, fixed per tier
    threshold: int
    next_level: Optional[str] = None
    reports_to_next: Optional[int] = None
    tiers_reached: tuple = ()

    def to_dict(self):
        return {
            "level": self.level,
            "progress": self.progress,
            "threshold": self.threshold,
            "next_level": self.next_level,
            "reports_to_next": self.reports_to_next,
            "tiers_reached": list(self.tiers_reached),
        }


@dataclass(frozen=True)
class Badge:
    badge_id: str
    name: str
    description: str
    threshold: int
    earned: bool

    def to_dict(self):
        return {
            "id": self.badge_id,
            "name": self.name,
            "description": self.description,
            "threshold": self.threshold,
            "earned": self.earned,
        }


@dataclass(frozen=True)
class Milestone:
    title: str
    completed: bool
    date: Optional[datetime] = None

    def to_dict(self):
        return {"title": self.title, "completed": self.completed, "date": format_iso(self.date)}


@dataclass(frozen=True)
class ContributorScore:
    """Everything the profile view derives from one user's reports."""
    user: Optional[User]
    report_count: int
    trust_level: TrustLevel
    badges: list = field(default_factory=list)  # list of Badge, catalog order
    milestones: list = field(default_factory=list)  # list of Milestone, timeline order
    people_helped: int = 0
    areas_impacted: int = 0

    @property
    def progress(self) -> int:
        return self.trust_level.progress

    def to_dict(self):
        return {
            "user": self.user.to_dict() if self.user else None,
            "report_count": self.report_count,
            "trust_level": self.trust_level.to_dict(),
            "progress": self.progress,
            "badges": [b.to_dict() for b in self.badges],
            "milestones": [m.to_dict() for m in self.milestones],
            "impact": {
                "reports_submitted": self.report_count,
                "people_helped": self.people_helped,
                "areas_impacted": self.areas_impacted,
                "member_since": format_iso(self.user.created_at) if self.user else None,
            },
        }
