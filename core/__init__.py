"""Derived-state engine: incident aggregation, contributor scoring, shared risk mode."""

from core.models import Incident, User, Severity, Category, RiskMode
from core.aggregator import aggregate, count_by_severity, sorted_by_recency, top_n
from core.trust import score, trust_level, badge_status, milestone_timeline
from core.risk_mode import RiskModeController, RiskAssertion
from core.observers import HighSeverityObserver

__all__ = [
    "Incident",
    "User",
    "Severity",
    "Category",
    "RiskMode",
    "aggregate",
    "count_by_severity",
    "sorted_by_recency",
    "top_n",
    "score",
    "trust_level",
    "badge_status",
    "milestone_timeline",
    "RiskModeController",
    "RiskAssertion",
    "HighSeverityObserver",
]
