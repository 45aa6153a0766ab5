"""Pure aggregation over an incident collection: severity counts and recency ordering.
Nothing here mutates its input or keeps state between calls.
"""

from dataclasses import dataclass, field
from typing import Iterable

from core.models import Incident, Severity

DEFAULT_RECENT_LIMIT = 4


def count_by_severity(incidents: Iterable[Incident], level) -> int:
    """Number of incidents whose severity equals level. Unknown severities never match."""
    return sum(1 for incident in incidents if incident.severity == level)


def filter_by_severity(incidents: Iterable[Incident], level) -> list[Incident]:
    return [incident for incident in incidents if incident.severity == level]


def sorted_by_recency(incidents: Iterable[Incident]) -> list[Incident]:
    """
    New list ordered by reported_at, newest first.
    sorted() is stable with reverse=True, so equal timestamps keep their input order.
    """
    return sorted(incidents, key=lambda incident: incident.reported_at, reverse=True)


def top_n(incidents: Iterable[Incident], n: int) -> list[Incident]:
    """First n of the recency order; the whole sequence when n exceeds its length."""
    if n <= 0:
        return []
    return sorted_by_recency(incidents)[:n]


@dataclass(frozen=True)
class IncidentSummary:
    counts_by_severity: dict = field(default_factory=dict)  # severity value -> count
    sorted_by_recency: tuple = ()

    @property
    def total(self) -> int:
        return len(self.sorted_by_recency)

    @property
    def high_priority(self) -> int:
        return self.counts_by_severity.get(Severity.HIGH.value, 0)

    def count(self, level) -> int:
        key = level.value if isinstance(level, Severity) else level
        return self.counts_by_severity.get(key, 0)

    def top_n(self, n: int) -> list[Incident]:
        if n <= 0:
            return []
        return list(self.sorted_by_recency[:n])

    def to_dict(self, limit: int = DEFAULT_RECENT_LIMIT):
        return {
            "total": self.total,
            "high_priority": self.high_priority,
            "counts_by_severity": dict(self.counts_by_severity),
            "recent": [incident.to_dict() for incident in self.top_n(limit)],
        }


def aggregate(incidents: Iterable[Incident]) -> IncidentSummary:
    """Snapshot the collection once and derive counts and recency order from it."""
    snapshot = tuple(incidents)
    counts = {level.value: count_by_severity(snapshot, level) for level in Severity}
    return IncidentSummary(counts_by_severity=counts, sorted_by_recency=tuple(sorted_by_recency(snapshot)))
