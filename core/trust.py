"""
Contributor trust scoring: trust tier, badges, milestone timeline and impact metrics.

Everything is recomputed from the user's report list on each call; nothing is awarded or stored.
The report list is expected to be in reported_at ascending order (oldest first), as returned
by the incident source for a single reporter.
"""

from datetime import datetime
from typing import Optional, Sequence

from core.models import Badge, ContributorScore, Incident, Milestone, TrustLevel, User

# (level, lower bound inclusive, progress)
TRUST_LADDER: list[tuple[str, int, int]] = [
    ("New", 0, 25),
    ("Active", 5, 50),
    ("Trusted", 10, 75),
    ("Expert", 25, 100),
]

# (id, name, description, minimum report count)
BADGE_CATALOG: list[tuple[str, str, str, int]] = [
    ("first-report", "First Report", "Submitted your first safety report", 1),
    ("trusted", "Trusted Contributor", "Earned trust through consistent reporting", 5),
    ("community-helper", "Community Helper", "Helped shape community safety", 10),
    ("safety-advocate", "Safety Advocate", "Dedicated to community protection", 25),
]

# (title, minimum report count, index of the report that dates the milestone)
REPORT_MILESTONES: list[tuple[str, int, int]] = [
    ("First Report Submitted", 1, 0),
    ("Trusted Contributor", 5, 4),
    ("Community Helper", 10, 9),
]
ACCOUNT_MILESTONE = "Account Created"

PEOPLE_PER_REPORT = 150  # avg. views per report
MAX_AREAS_IMPACTED = 8


def trust_level(count: int) -> TrustLevel:
    """Tier for a report count, plus the next tier and the gap to it."""
    safe_count = max(0, int(count or 0))
    current = TRUST_LADDER[0]
    next_tier: Optional[tuple[str, int, int]] = None
    reached = []

    for idx, tier in enumerate(TRUST_LADDER):
        if safe_count >= tier[1]:
            current = tier
            reached.append(tier[0])
            next_tier = TRUST_LADDER[idx + 1] if idx + 1 < len(TRUST_LADDER) else None
        else:
            break

    name, threshold, progress = current
    return TrustLevel(
        level=name,
        progress=progress,
        threshold=threshold,
        next_level=next_tier[0] if next_tier else None,
        reports_to_next=max(0, next_tier[1] - safe_count) if next_tier else None,
        tiers_reached=tuple(reached),
    )


def badge_status(count: int) -> list[Badge]:
    """Each badge is checked on its own; a badge earned at some count stays earned above it."""
    safe_count = max(0, int(count or 0))
    return [
        Badge(badge_id=bid, name=name, description=desc, threshold=threshold, earned=safe_count >= threshold)
        for bid, name, desc, threshold in BADGE_CATALOG
    ]


def milestone_timeline(account_created_at: Optional[datetime], ordered_incidents: Sequence[Incident]) -> list[Milestone]:
    """
    Account creation first, then one entry per report milestone.
    A milestone is dated only when its count predicate holds and the report at its index exists;
    the two guards are checked separately since the list may be a truncated refresh.
    """
    count = len(ordered_incidents)
    timeline = [Milestone(title=ACCOUNT_MILESTONE, completed=True, date=account_created_at)]
    for title, min_count, index in REPORT_MILESTONES:
        completed = count >= min_count
        date = None
        if completed and index < len(ordered_incidents):
            date = ordered_incidents[index].reported_at
        timeline.append(Milestone(title=title, completed=completed, date=date))
    return timeline


def people_helped(count: int) -> int:
    return max(0, count) * PEOPLE_PER_REPORT


def areas_impacted(count: int) -> int:
    return min(max(0, count), MAX_AREAS_IMPACTED)


def score(user: Optional[User], reporter_incidents: Sequence[Incident]) -> ContributorScore:
    """Full profile state for user from their reports (oldest first)."""
    incidents = list(reporter_incidents)
    count = len(incidents)
    return ContributorScore(
        user=user,
        report_count=count,
        trust_level=trust_level(count),
        badges=badge_status(count),
        milestones=milestone_timeline(user.created_at if user else None, incidents),
        people_helped=people_helped(count),
        areas_impacted=areas_impacted(count),
    )
