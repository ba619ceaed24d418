"""
Marker view: one pin per complaint instead of density circles.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from mapcore.models import ComplaintStatus, Point

RESOLVED_COLOR = "#4CAF50"
IN_PROGRESS_COLOR = "#FF9800"
PENDING_COLOR = "#F44336"

CATEGORY_ICONS = {
    "pothole": "car",
    "road_damage": "car",
    "water_issue": "water",
    "water_leakage": "water",
    "sewage_overflow": "warning",
    "garbage": "trash",
    "streetlight": "bulb",
    "electricity": "flash",
    "electrical_danger": "flash",
    "tree_issue": "leaf",
    "flooding": "rainy",
    "fire_hazard": "flame",
    "traffic_signal": "stop",
}
DEFAULT_ICON = "alert-circle"


def status_color(status: ComplaintStatus) -> str:
    """Pin colour for a complaint status. Rejected pins share the pending colour."""
    if status is ComplaintStatus.RESOLVED:
        return RESOLVED_COLOR
    if status is ComplaintStatus.IN_PROGRESS:
        return IN_PROGRESS_COLOR
    return PENDING_COLOR


def category_icon(category: Optional[str]) -> str:
    return CATEGORY_ICONS.get((category or "").lower(), DEFAULT_ICON)


def priority_color(score: Optional[float]) -> str:
    """Admin priority scale, from critical dark red down to minimal gray."""
    score = score or 0
    if score > 80:
        return "#D32F2F"
    if score > 60:
        return "#F57C00"
    if score > 40:
        return "#FBC02D"
    if score > 20:
        return "#689F38"
    return "#9E9E9E"


@dataclass
class Marker:
    """A single complaint pin."""
    point: Point
    color: str
    icon: str
    description: str
    high_priority: bool = False  # Admin badge

    @property
    def latitude(self) -> float:
        return self.point.latitude

    @property
    def longitude(self) -> float:
        return self.point.longitude


def build_markers(
    points: Sequence[Point],
    priority_aware: bool = False,
    high_priority_threshold: float = 70.0,
) -> List[Marker]:
    """Build pins for every eligible point, preserving input order."""
    markers = []
    for p in points:
        if not p.is_eligible:
            continue
        if priority_aware:
            description = f"Priority: {round(p.priority_score)} | Status: {p.status.value}"
            badge = p.priority_score > high_priority_threshold
        else:
            description = p.description
            badge = False
        markers.append(Marker(
            point=p,
            color=status_color(p.status),
            icon=category_icon(p.category),
            description=description,
            high_priority=badge,
        ))
    return markers
