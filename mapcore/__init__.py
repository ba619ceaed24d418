"""
Core module for the Civic Complaint Map.
Contains data models, clustering, heatmap, search and viewport control.
"""

from mapcore.config import MapSettings, get_settings
from mapcore.models import (
    Cluster,
    ComplaintStatus,
    MapVariant,
    Notice,
    NoticeLevel,
    Point,
    ResultKind,
    SearchResult,
    ViewportRegion,
)
from mapcore.clustering import ClusteringEngine, cluster_points
from mapcore.heatmap import ClusterDetail, HeatmapMapper, Shape
from mapcore.markers import Marker, build_markers
from mapcore.stats import ComplaintStats, compute_stats
from mapcore.gazetteer import Gazetteer
from mapcore.search import SearchEngine, SearchOutcome
from mapcore.timers import Debouncer, ManualScheduler, Scheduler, ThreadingScheduler
from mapcore.viewport import FeedbackGuard, GuardKind, MapSurface, ViewportController
from mapcore.session import ComplaintMapSession

__all__ = [
    # Models
    "Cluster",
    "ComplaintStatus",
    "MapVariant",
    "Notice",
    "NoticeLevel",
    "Point",
    "ResultKind",
    "SearchResult",
    "ViewportRegion",
    # Engines
    "ClusteringEngine",
    "cluster_points",
    "HeatmapMapper",
    "Shape",
    "ClusterDetail",
    "Marker",
    "build_markers",
    "ComplaintStats",
    "compute_stats",
    "Gazetteer",
    "SearchEngine",
    "SearchOutcome",
    # Interaction
    "Scheduler",
    "ThreadingScheduler",
    "ManualScheduler",
    "Debouncer",
    "GuardKind",
    "FeedbackGuard",
    "MapSurface",
    "ViewportController",
    "ComplaintMapSession",
    # Config
    "MapSettings",
    "get_settings",
]
