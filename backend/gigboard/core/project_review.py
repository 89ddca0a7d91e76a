"""Project Review — moderation hints for a project awaiting admin verification.

Invariants:
    - Waiting time counts whole days since submission; urgency is high from 7 days,
      medium from 3, low below
    - Flags are derived only from the project, its client profile and the client's
      per-status project counts; nothing here touches the database
    - A client with no project besides this one is new
    - A client whose projects were cancelled three or more times is flagged, as is any
      budget ceiling above SUSPICIOUS_BUDGET
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from gigboard.core.domain_types import ProjectStatus

LONG_WAIT_DAYS = 7
MEDIUM_WAIT_DAYS = 3
FREQUENT_REJECTIONS = 3
SUSPICIOUS_BUDGET = 100_000


@dataclass(frozen=True)
class WaitingTime:
    days: int
    urgency: str

    @property
    def display(self) -> str:
        if self.days == 0:
            return "Today"
        if self.days == 1:
            return "1 day ago"
        return f"{self.days} days ago"


def waiting_time(submitted_at: datetime, now: datetime | None = None) -> WaitingTime:
    now = now or datetime.now(timezone.utc)
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    days = max((now - submitted_at).days, 0)
    if days >= LONG_WAIT_DAYS:
        urgency = "high"
    elif days >= MEDIUM_WAIT_DAYS:
        urgency = "medium"
    else:
        urgency = "low"
    return WaitingTime(days=days, urgency=urgency)


def review_flags(
    wait: WaitingTime,
    status_counts: dict[str, int],
    budget_max: float | None,
    company_name: str | None,
    industry: str | None,
) -> dict[str, bool]:
    return {
        "long_wait": wait.days >= LONG_WAIT_DAYS,
        "new_client": sum(status_counts.values()) <= 1,
        "frequent_rejections": (
            status_counts.get(ProjectStatus.CANCELLED.value, 0) >= FREQUENT_REJECTIONS
        ),
        "suspicious_budget": bool(budget_max and budget_max > SUSPICIOUS_BUDGET),
        "incomplete_profile": not company_name or not industry,
    }
