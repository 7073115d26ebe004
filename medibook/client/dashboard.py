from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

STATUSES = ("pending", "accepted", "completed", "cancelled", "rejected")
UPCOMING_STATUSES = ("pending", "accepted")


@dataclass
class DashboardSummary:
    total: int
    by_status: Dict[str, int]
    upcoming: List[dict] = field(default_factory=list)


def summarize_appointments(appointments: List[dict], upcoming_limit: int = 5) -> DashboardSummary:
    """Status counts plus the next open appointments, soonest first."""
    counts = Counter(a["status"] for a in appointments)
    upcoming = sorted(
        (a for a in appointments if a["status"] in UPCOMING_STATUSES),
        key=lambda a: (a["date"], a["time"]),
    )
    return DashboardSummary(
        total=len(appointments),
        by_status={status: counts.get(status, 0) for status in STATUSES},
        upcoming=upcoming[:upcoming_limit],
    )
