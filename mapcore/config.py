"""
Map Engine Settings

Every tunable value used by the clustering, heatmap, search and viewport
layers lives here. Deployment values (API endpoints, cache paths) can be
overridden from the environment.
"""

import os
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple

log = logging.getLogger(__name__)


@dataclass
class MapSettings:
    """
    All configurable settings for a complaint map.

    Times are in seconds unless the name says otherwise, distances in
    decimal degrees unless the name says meters.
    """

    # Endpoints
    api_base_url: str = "http://localhost:5000"
    """Base URL of the complaint backend."""

    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    """Nominatim search endpoint used for global place lookup."""

    user_agent: str = "CivicComplaintMap/1.0"
    """User-Agent sent to Nominatim (required by its usage policy)."""

    geocode_cache_path: str = "geocode_cache.db"
    """SQLite file caching geocoding responses."""

    request_timeout_seconds: float = 10.0

    # Clustering
    cluster_radius_deg: float = 0.008
    """Planar radius around a seed point, roughly 800m near the equator."""

    # Heatmap
    min_shape_radius_m: float = 100.0
    """Floor on circle radius so small clusters stay visible."""

    citizen_radius_scale_m: float = 500.0
    admin_radius_scale_m: float = 600.0
    admin_priority_radius_factor: float = 2.0

    # Search
    min_query_chars: int = 2
    """Typed queries shorter than this (after trimming) do not auto-search."""

    query_debounce_seconds: float = 0.5
    citizen_complaint_cap: int = 3
    admin_complaint_cap: int = 5
    geocode_limit: int = 8
    """Candidates requested from the geocoding provider."""

    geocode_considered: int = 6
    """Leading candidates actually evaluated from the provider response."""

    geocode_min_importance: float = 0.3
    geocode_min_query_length: int = 3
    """Geocoding also runs after a gazetteer hit when the query is longer than this."""

    dedup_degrees: float = 0.01
    high_priority_threshold: float = 70.0
    auto_select_delay_seconds: float = 0.8

    # Viewport
    selection_delta_deg: float = 0.08
    user_location_delta_deg: float = 0.05
    region_settle_seconds: float = 0.2
    animation_duration_ms: int = 1000
    programmatic_move_guard_seconds: float = 1.5
    marker_interaction_guard_seconds: float = 1.0
    detail_open_delay_seconds: float = 0.5
    default_region: Tuple[float, float, float, float] = (10.9837, 76.9266, 0.1, 0.1)
    """(latitude, longitude, latitude_delta, longitude_delta) shown before any location is known."""

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "MapSettings":
        """
        Build settings with deployment overrides from environment variables.

        Recognized variables:
            COMPLAINT_MAP_API_URL, COMPLAINT_MAP_NOMINATIM_URL,
            COMPLAINT_MAP_GEOCODE_CACHE, COMPLAINT_MAP_USER_AGENT,
            COMPLAINT_MAP_CLUSTER_RADIUS
        """
        env = os.environ if environ is None else environ
        settings = cls()

        settings.api_base_url = env.get("COMPLAINT_MAP_API_URL", settings.api_base_url).rstrip("/")
        settings.nominatim_url = env.get("COMPLAINT_MAP_NOMINATIM_URL", settings.nominatim_url)
        settings.geocode_cache_path = env.get("COMPLAINT_MAP_GEOCODE_CACHE", settings.geocode_cache_path)
        settings.user_agent = env.get("COMPLAINT_MAP_USER_AGENT", settings.user_agent)

        radius = env.get("COMPLAINT_MAP_CLUSTER_RADIUS")
        if radius:
            try:
                value = float(radius)
                if value > 0:
                    settings.cluster_radius_deg = value
                else:
                    log.warning(f"Ignoring non-positive cluster radius: {radius}")
            except ValueError:
                log.warning(f"Ignoring malformed COMPLAINT_MAP_CLUSTER_RADIUS: {radius!r}")

        return settings


# Singleton instance
_settings: Optional[MapSettings] = None

def get_settings() -> MapSettings:
    """Get the process-wide settings, loaded from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = MapSettings.from_env()
    return _settings
