"""
Complaint Store - reads geo-tagged complaints from the civic backend.

The backend answers GET /api/complaints/all with
{"success": true, "complaints": [{id, title, ..., location_latitude, ...}]}.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential

from mapcore.config import MapSettings, get_settings
from mapcore.models import Point, points_from_records

log = logging.getLogger(__name__)


class ComplaintStore:
    """
    Read-only client for the complaint backend.

    Usage:
        store = ComplaintStore("https://civic.example.org")
        points = store.fetch_points()   # [] if the backend is unreachable
    """

    COMPLAINTS_PATH = "/api/complaints/all"

    def __init__(self, base_url: Optional[str] = None, settings: Optional[MapSettings] = None):
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    @property
    def complaints_url(self) -> str:
        return f"{self.base_url}{self.COMPLAINTS_PATH}"

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=5), reraise=True)
    def _get(self, url: str) -> Any:
        response = self.session.get(url, timeout=self.settings.request_timeout_seconds)
        response.raise_for_status()
        return response.json()

    def fetch_records(self) -> List[Dict[str, Any]]:
        """
        Fetch raw complaint records.

        Raises:
            requests.RequestException: if the backend cannot be reached
        """
        payload = self._get(self.complaints_url)
        if not isinstance(payload, dict) or not payload.get("success"):
            log.warning("Complaint backend reported no success; treating as empty")
            return []
        complaints = payload.get("complaints")
        if not isinstance(complaints, list):
            return []
        return [c for c in complaints if isinstance(c, dict)]

    def fetch_points(self) -> List[Point]:
        """Fetch complaints as eligible points. Failures are logged and yield []."""
        try:
            records = self.fetch_records()
        except Exception as e:
            log.error(f"Error fetching complaints from {self.complaints_url}: {e}")
            return []
        points = points_from_records(records)
        log.info(f"Fetched {len(records)} complaint(s), {len(points)} with usable coordinates")
        return points


# Singleton
_store: Optional[ComplaintStore] = None

def get_complaint_store() -> ComplaintStore:
    """Get singleton complaint store."""
    global _store
    if _store is None:
        _store = ComplaintStore()
    return _store
