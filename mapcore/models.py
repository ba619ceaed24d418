"""
Core data models for the complaint map engine.
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

log = logging.getLogger(__name__)


class ComplaintStatus(Enum):
    """Lifecycle state of a complaint as reported by the complaint backend."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: Any) -> "ComplaintStatus":
        """
        Parse a raw status string.

        "completed" is a legacy spelling of resolved. Anything unknown is
        treated as pending.
        """
        if isinstance(value, ComplaintStatus):
            return value
        text = str(value or "").strip().lower()
        if text == "completed":
            return cls.RESOLVED
        for status in cls:
            if status.value == text:
                return status
        return cls.PENDING


class MapVariant(Enum):
    """Which screen flavour the engine serves."""
    CITIZEN = "citizen"
    ADMIN = "admin"  # Priority-aware heatmap, status filter, priority-sorted search

    @property
    def priority_aware(self) -> bool:
        return self is MapVariant.ADMIN


class ResultKind(Enum):
    """Source bucket of a search result, in ranking order."""
    GAZETTEER = "gazetteer"
    COMPLAINT = "complaint"
    GEOCODED = "geocoded"


class NoticeLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def parse_status_filter(value: Any) -> Optional[ComplaintStatus]:
    """Parse an admin status filter. "all", empty or None means no filter."""
    if value is None or isinstance(value, ComplaintStatus):
        return value
    text = str(value).strip().lower()
    if text in ("", "all"):
        return None
    return ComplaintStatus.parse(text)


def _parse_coordinate(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class Point:
    """
    A geo-tagged complaint.

    Only points whose coordinates are finite numbers are eligible for
    clustering, markers and search.
    """
    id: str
    latitude: float
    longitude: float
    title: str = ""
    description: str = ""
    category: str = "other"
    status: ComplaintStatus = ComplaintStatus.PENDING
    priority_score: float = 0.0  # 0 to 100
    created_at: Optional[datetime] = None
    image_urls: List[str] = field(default_factory=list)

    def __post_init__(self):
        # Numeric strings become floats; anything else is left as given and stays ineligible
        for name in ("latitude", "longitude"):
            value = getattr(self, name)
            if isinstance(value, str):
                parsed = _parse_coordinate(value)
                if parsed is not None:
                    setattr(self, name, parsed)

    @property
    def is_eligible(self) -> bool:
        return (
            isinstance(self.latitude, (int, float)) and not isinstance(self.latitude, bool)
            and isinstance(self.longitude, (int, float)) and not isinstance(self.longitude, bool)
            and math.isfinite(self.latitude) and math.isfinite(self.longitude)
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "status": self.status.value,
            "priority_score": self.priority_score,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "image_urls": list(self.image_urls),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Optional["Point"]:
        """
        Convert a complaint backend record into a Point.

        Returns None when the record's coordinates are missing or do not
        parse to finite numbers.
        """
        lat = _parse_coordinate(record.get("location_latitude"))
        lon = _parse_coordinate(record.get("location_longitude"))
        if lat is None or lon is None:
            return None

        try:
            priority = float(record.get("priority_score") or 0)
        except (TypeError, ValueError):
            priority = 0.0
        if not math.isfinite(priority):
            priority = 0.0
        priority = max(0.0, min(100.0, priority))

        return cls(
            id=str(record.get("id", "")),
            latitude=lat,
            longitude=lon,
            title=record.get("title") or "",
            description=record.get("description") or "",
            category=record.get("category") or "other",
            status=ComplaintStatus.parse(record.get("status")),
            priority_score=priority,
            created_at=_parse_timestamp(record.get("created_at")),
            image_urls=list(record.get("image_urls") or []),
        )


def points_from_records(records: Iterable[Dict[str, Any]]) -> List[Point]:
    """Convert raw records, keeping input order and dropping ineligible ones."""
    points = []
    skipped = 0
    for record in records:
        point = Point.from_record(record)
        if point is None:
            skipped += 1
            continue
        points.append(point)
    if skipped:
        log.debug(f"Skipped {skipped} complaint(s) without usable coordinates")
    return points


@dataclass
class Cluster:
    """
    A group of points gathered around a seed.

    The rendered center is the seed's coordinate, not a centroid.
    """
    id: str
    seed: Point
    members: List[Point]  # Seed first, then discovery order
    avg_priority: Optional[float] = None  # Only set by priority-aware clustering

    @property
    def density(self) -> int:
        return len(self.members)

    @property
    def latitude(self) -> float:
        return self.seed.latitude

    @property
    def longitude(self) -> float:
        return self.seed.longitude

    def mean_priority(self) -> float:
        if not self.members:
            return 0.0
        return sum(p.priority_score for p in self.members) / len(self.members)


@dataclass
class SearchResult:
    """One row of the ranked search list."""
    id: str
    latitude: float
    longitude: float
    title: str
    subtitle: str
    kind: ResultKind
    importance: float = 0.0  # Geocoded results only
    source_point: Optional[Point] = None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "title": self.title,
            "subtitle": self.subtitle,
            "kind": self.kind.value,
            "importance": self.importance,
            "point_id": self.source_point.id if self.source_point else None,
        }


@dataclass(frozen=True)
class ViewportRegion:
    """Visible map area: center plus span in degrees."""
    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float

    @classmethod
    def around(cls, latitude: float, longitude: float, delta: float) -> "ViewportRegion":
        return cls(latitude, longitude, delta, delta)

    def to_dict(self) -> Dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "latitudeDelta": self.latitude_delta,
            "longitudeDelta": self.longitude_delta,
        }


@dataclass
class Notice:
    """A non-blocking message for the host UI."""
    level: NoticeLevel
    title: str
    message: str
