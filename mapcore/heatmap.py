"""
Heatmap Mapper - turns density clusters into renderable circles.

Intensity is a cluster's density relative to the densest cluster in the
same run. The citizen map colours by intensity band; the admin map lets a
high average priority override the band colour and grow the circle.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

from mapcore.config import MapSettings, get_settings
from mapcore.models import Cluster, MapVariant

log = logging.getLogger(__name__)


class Rgba(NamedTuple):
    """Translucent colour with alpha in [0, 1]."""
    r: int
    g: int
    b: int
    a: float

    def with_alpha(self, alpha: float) -> "Rgba":
        return self._replace(a=alpha)

    def css(self) -> str:
        return f"rgba({self.r}, {self.g}, {self.b}, {self.a})"

    def to_deck(self) -> List[int]:
        """[r, g, b, a] with alpha scaled to 0-255 as pydeck expects."""
        return [self.r, self.g, self.b, int(round(self.a * 255))]


# ═══════════════════════════════════════════════════════════════════════════
# PALETTE
# ═══════════════════════════════════════════════════════════════════════════
BAND_FILL_ALPHA = 0.4
CITIZEN_STROKE_ALPHA = 0.6
ADMIN_STROKE_ALPHA = 0.7
PRIORITY_FILL_ALPHA = 0.5

RED = Rgba(231, 76, 60, BAND_FILL_ALPHA)
ORANGE = Rgba(230, 126, 34, BAND_FILL_ALPHA)
YELLOW = Rgba(241, 196, 15, BAND_FILL_ALPHA)
BLUE = Rgba(52, 152, 219, BAND_FILL_ALPHA)
GREEN = Rgba(46, 125, 50, BAND_FILL_ALPHA)

CRITICAL_PRIORITY = Rgba(211, 47, 47, PRIORITY_FILL_ALPHA)
HIGH_PRIORITY = Rgba(245, 124, 0, PRIORITY_FILL_ALPHA)

# (minimum intensity, colour), checked top down
INTENSITY_BANDS = [
    (0.8, RED),
    (0.6, ORANGE),
    (0.4, YELLOW),
    (0.2, BLUE),
]


def intensity(density: int, max_density: int) -> float:
    """Density normalized to the densest cluster, bounded to [0, 1]."""
    if max_density <= 0:
        return 0.0
    return max(0.0, min(1.0, density / max_density))


def band_color(value: float) -> Rgba:
    for threshold, color in INTENSITY_BANDS:
        if value >= threshold:
            return color
    return GREEN


def priority_band_color(value: float, avg_priority: float) -> Rgba:
    """Admin colour: priority overrides first, then the intensity bands."""
    if avg_priority > 80:
        return CRITICAL_PRIORITY
    if avg_priority > 60:
        return HIGH_PRIORITY
    return band_color(value)


@dataclass
class Shape:
    """A circle to draw on the map surface for one cluster."""
    latitude: float
    longitude: float
    radius_meters: float
    fill_color: Rgba
    stroke_color: Rgba
    stroke_width: int
    intensity: float
    cluster: Cluster = field(repr=False)

    @property
    def center(self):
        return (self.latitude, self.longitude)


@dataclass
class MemberSummary:
    """A cluster member as listed in the tap detail view."""
    id: str
    title: str
    status: str
    category: str
    priority_score: Optional[float] = None  # Admin only


@dataclass
class ClusterDetail:
    """Payload shown when a heatmap circle is tapped."""
    id: str
    title: str
    latitude: float
    longitude: float
    members: List[MemberSummary]
    avg_priority: Optional[float] = None

    @property
    def description(self) -> str:
        lines = []
        if self.avg_priority is not None:
            lines.append(f"Average Priority: {round(self.avg_priority)}")
            lines.append("")
            lines.extend(f"• {m.title} ({m.status})" for m in self.members)
        else:
            lines.extend(f"• {m.title}" for m in self.members)
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "avg_priority": self.avg_priority,
            "members": [asdict(m) for m in self.members],
        }


def describe_cluster(cluster: Cluster, include_priority: bool = False) -> ClusterDetail:
    """Build the tap detail for a cluster, members in discovery order."""
    count = cluster.density
    members = [
        MemberSummary(
            id=p.id,
            title=p.title,
            status=p.status.value,
            category=p.category,
            priority_score=p.priority_score if include_priority else None,
        )
        for p in cluster.members
    ]
    avg = None
    if include_priority:
        avg = cluster.avg_priority if cluster.avg_priority is not None else cluster.mean_priority()
    return ClusterDetail(
        id=cluster.id,
        title=f"{count} Complaint{'s' if count > 1 else ''} in this area",
        latitude=cluster.latitude,
        longitude=cluster.longitude,
        members=members,
        avg_priority=avg,
    )


class HeatmapMapper:
    """
    Maps clusters to shapes for one map variant.

    Usage:
        mapper = HeatmapMapper(priority_aware=True)
        shapes = mapper.map_to_shapes(clusters)
    """

    def __init__(self, priority_aware: bool = False, settings: Optional[MapSettings] = None):
        self.priority_aware = priority_aware
        self.settings = settings or get_settings()

    @classmethod
    def for_variant(cls, variant: MapVariant, settings: Optional[MapSettings] = None) -> "HeatmapMapper":
        return cls(priority_aware=variant.priority_aware, settings=settings)

    def map_to_shapes(self, clusters: Sequence[Cluster]) -> List[Shape]:
        if not clusters:
            return []
        max_density = max(c.density for c in clusters)
        return [self._shape(c, intensity(c.density, max_density)) for c in clusters]

    def _shape(self, cluster: Cluster, value: float) -> Shape:
        s = self.settings
        if not self.priority_aware:
            fill = band_color(value)
            return Shape(
                latitude=cluster.latitude,
                longitude=cluster.longitude,
                radius_meters=max(s.min_shape_radius_m, value * s.citizen_radius_scale_m),
                fill_color=fill,
                stroke_color=fill.with_alpha(CITIZEN_STROKE_ALPHA),
                stroke_width=2,
                intensity=value,
                cluster=cluster,
            )

        avg = cluster.avg_priority if cluster.avg_priority is not None else cluster.mean_priority()
        fill = priority_band_color(value, avg)
        radius = max(
            s.min_shape_radius_m,
            value * s.admin_radius_scale_m + avg * s.admin_priority_radius_factor,
        )
        return Shape(
            latitude=cluster.latitude,
            longitude=cluster.longitude,
            radius_meters=radius,
            fill_color=fill,
            stroke_color=fill.with_alpha(ADMIN_STROKE_ALPHA),
            stroke_width=3 if avg > 70 else 2,
            intensity=value,
            cluster=cluster,
        )

    def describe(self, shape: Shape) -> ClusterDetail:
        return describe_cluster(shape.cluster, include_priority=self.priority_aware)
