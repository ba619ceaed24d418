"""Status counters shown above the complaint map."""

from dataclasses import dataclass, asdict
from typing import Dict, Sequence

from mapcore.models import ComplaintStatus, Point


@dataclass
class ComplaintStats:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0
    high_priority: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def compute_stats(points: Sequence[Point], high_priority_threshold: float = 70.0) -> ComplaintStats:
    """Count the eligible points by status and priority."""
    stats = ComplaintStats()
    for p in points:
        if not p.is_eligible:
            continue
        stats.total += 1
        if p.status is ComplaintStatus.PENDING:
            stats.pending += 1
        elif p.status is ComplaintStatus.IN_PROGRESS:
            stats.in_progress += 1
        elif p.status is ComplaintStatus.RESOLVED:
            stats.resolved += 1
        if p.priority_score > high_priority_threshold:
            stats.high_priority += 1
    return stats
