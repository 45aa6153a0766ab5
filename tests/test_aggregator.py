"""Tests for incident aggregation: severity counts, recency order, top_n, aggregate()."""

from datetime import timedelta

import pytest

from core.aggregator import (
    aggregate,
    count_by_severity,
    filter_by_severity,
    sorted_by_recency,
    top_n,
)
from core.models import Incident, Severity

from tests.conftest import T0, build_incident


class TestCountBySeverity:
    def test_counts(self, mixed_incidents):
        assert count_by_severity(mixed_incidents, Severity.HIGH) == 2
        assert count_by_severity(mixed_incidents, Severity.MEDIUM) == 1
        assert count_by_severity(mixed_incidents, Severity.LOW) == 2

    def test_counts_sum_to_total(self, mixed_incidents):
        total = sum(count_by_severity(mixed_incidents, level) for level in Severity)
        assert total == len(mixed_incidents)

    def test_empty(self):
        assert count_by_severity([], Severity.HIGH) == 0

    def test_plain_string_level(self, mixed_incidents):
        assert count_by_severity(mixed_incidents, "high") == 2

    def test_unknown_severity_never_matches(self):
        d = build_incident(1).to_dict()
        d["severity"] = "extreme"
        odd = Incident.from_dict(d)
        incidents = [odd, build_incident(2, Severity.HIGH)]
        assert sum(count_by_severity(incidents, level) for level in Severity) == 1

    def test_filter(self, mixed_incidents):
        highs = filter_by_severity(mixed_incidents, Severity.HIGH)
        assert [i.incident_id for i in highs] == ["incident-001", "incident-005"]


class TestSortedByRecency:
    def test_newest_first(self, mixed_incidents):
        ids = [i.incident_id for i in sorted_by_recency(mixed_incidents)]
        assert ids == ["incident-003", "incident-005", "incident-001", "incident-004", "incident-002"]

    def test_does_not_mutate_input(self, mixed_incidents):
        before = list(mixed_incidents)
        result = sorted_by_recency(mixed_incidents)
        assert mixed_incidents == before
        assert result is not mixed_incidents

    def test_idempotent(self, mixed_incidents):
        once = sorted_by_recency(mixed_incidents)
        assert sorted_by_recency(once) == once

    def test_ties_keep_input_order(self):
        a = build_incident(1, reported_at=T0)
        b = build_incident(2, reported_at=T0)
        c = build_incident(3, reported_at=T0 + timedelta(hours=1))
        assert sorted_by_recency([a, b, c]) == [c, a, b]
        assert sorted_by_recency([b, a, c]) == [c, b, a]

    def test_empty(self):
        assert sorted_by_recency([]) == []


class TestTopN:
    def test_first_n(self, mixed_incidents):
        assert [i.incident_id for i in top_n(mixed_incidents, 2)] == ["incident-003", "incident-005"]

    @pytest.mark.parametrize("n", [5, 6, 100])
    def test_n_at_or_beyond_length_returns_full_sort(self, mixed_incidents, n):
        assert top_n(mixed_incidents, n) == sorted_by_recency(mixed_incidents)

    def test_zero_or_negative(self, mixed_incidents):
        assert top_n(mixed_incidents, 0) == []
        assert top_n(mixed_incidents, -1) == []


class TestAggregate:
    def test_summary(self, mixed_incidents):
        summary = aggregate(mixed_incidents)
        assert summary.total == 5
        assert summary.high_priority == 2
        assert summary.count(Severity.MEDIUM) == 1
        assert summary.counts_by_severity == {"low": 2, "medium": 1, "high": 2}
        assert list(summary.sorted_by_recency) == sorted_by_recency(mixed_incidents)
        assert summary.top_n(1)[0].incident_id == "incident-003"

    def test_accepts_generator(self, mixed_incidents):
        summary = aggregate(i for i in mixed_incidents)
        assert summary.total == 5
        assert summary.high_priority == 2

    def test_empty(self):
        summary = aggregate([])
        assert summary.total == 0
        assert summary.counts_by_severity == {"low": 0, "medium": 0, "high": 0}
        assert summary.top_n(4) == []

    def test_to_dict_limits_recent(self, mixed_incidents):
        d = aggregate(mixed_incidents).to_dict(limit=4)
        assert d["total"] == 5
        assert d["high_priority"] == 2
        assert len(d["recent"]) == 4
        assert d["recent"][0]["incident_id"] == "incident-003"
