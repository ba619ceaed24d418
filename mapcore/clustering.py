"""
Density clustering for the complaint heatmap.

Points are grouped around seeds in a single ordered pass. Membership is
tested against the seed only, so two points that are close to each other
but both outside a seed's radius are never chained into one cluster.
Distances are planar on raw degrees; there is no geodesic correction and no
special handling of the antimeridian or the poles.
"""

import math
import logging
from typing import List, Optional, Sequence

from mapcore.config import MapSettings, get_settings
from mapcore.models import Cluster, MapVariant, Point

log = logging.getLogger(__name__)

DEFAULT_RADIUS_DEG = 0.008


def planar_distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points in decimal degrees."""
    return math.sqrt((a.latitude - b.latitude) ** 2 + (a.longitude - b.longitude) ** 2)


def cluster_points(
    points: Sequence[Point],
    radius_deg: float = DEFAULT_RADIUS_DEG,
    priority_aware: bool = False,
) -> List[Cluster]:
    """
    Partition the eligible points into seed-centred clusters.

    Args:
        points: Points in input order. Ineligible points are skipped.
        radius_deg: Maximum planar distance from the seed, inclusive.
        priority_aware: If True, also compute each cluster's average priority.

    Returns:
        Clusters in seed order. Every eligible point appears in exactly one.
    """
    indexed = [(index, p) for index, p in enumerate(points) if p.is_eligible]
    processed = [False] * len(indexed)
    clusters: List[Cluster] = []

    for i, (seed_index, seed) in enumerate(indexed):
        if processed[i]:
            continue
        processed[i] = True
        members = [seed]

        for j in range(len(indexed)):
            if processed[j]:
                continue
            other = indexed[j][1]
            if planar_distance(seed, other) <= radius_deg:
                members.append(other)
                processed[j] = True

        cluster = Cluster(id=f"cluster_{seed_index}", seed=seed, members=members)
        if priority_aware:
            cluster.avg_priority = cluster.mean_priority()
        clusters.append(cluster)

    return clusters


class ClusteringEngine:
    """
    Configured clustering for one map variant.

    Usage:
        engine = ClusteringEngine(MapVariant.ADMIN)
        clusters = engine.cluster(points)
    """

    def __init__(
        self,
        variant: MapVariant = MapVariant.CITIZEN,
        settings: Optional[MapSettings] = None,
    ):
        self.variant = variant
        self.settings = settings or get_settings()

    @property
    def radius_deg(self) -> float:
        return self.settings.cluster_radius_deg

    def cluster(self, points: Sequence[Point]) -> List[Cluster]:
        clusters = cluster_points(
            points,
            radius_deg=self.radius_deg,
            priority_aware=self.variant.priority_aware,
        )
        log.debug(
            f"Clustered {sum(c.density for c in clusters)} point(s) into "
            f"{len(clusters)} cluster(s) (radius={self.radius_deg})"
        )
        return clusters
