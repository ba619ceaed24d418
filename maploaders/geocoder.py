"""
Geocoder - Free-text place search using Nominatim.

Features:
- Rate limiting (1 request/second per Nominatim policy)
- SQLite caching of candidate lists
- Retry with exponential backoff
- Never raises to callers: failures come back as an empty list
"""

import time
import sqlite3
import json
import hashlib
import threading
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, asdict, field
import logging
import requests
from tenacity import retry, stop_after_attempt, wait_exponential

from mapcore.config import MapSettings, get_settings

log = logging.getLogger(__name__)

# Rate limiter - tracks last request time
_last_request_time = 0.0
_rate_lock = threading.Lock()
_MIN_REQUEST_INTERVAL = 1.1  # 1.1 seconds between requests (slightly over 1/sec)


@dataclass
class GeocodeCandidate:
    """One ranked place returned by the geocoding provider."""
    place_id: str
    latitude: float
    longitude: float
    display_name: str
    importance: float = 0.0
    place_type: str = ""
    place_class: str = ""
    address_type: str = ""
    address: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_nominatim(cls, item: Dict[str, Any]) -> "GeocodeCandidate":
        """Parse one Nominatim jsonv2 result. Raises on missing coordinates."""
        return cls(
            place_id=str(item.get("place_id", "")),
            latitude=float(item["lat"]),
            longitude=float(item["lon"]),
            display_name=item.get("display_name", ""),
            importance=float(item.get("importance") or 0.0),
            place_type=item.get("type", "") or "",
            place_class=item.get("category", item.get("class", "")) or "",
            address_type=item.get("addresstype", "") or "",
            address=dict(item.get("address") or {}),
        )


class GeocodingCache:
    """SQLite cache for geocoding results."""

    def __init__(self, db_path: str = "geocode_cache.db"):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS geocode_search_cache (
                    query_hash TEXT PRIMARY KEY,
                    query_text TEXT,
                    result_json TEXT,
                    created_at REAL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def _hash_query(self, query: str) -> str:
        return hashlib.md5(query.lower().strip().encode()).hexdigest()

    def get(self, query: str) -> Optional[List[Dict]]:
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT result_json FROM geocode_search_cache WHERE query_hash = ?",
                (self._hash_query(query),)
            ).fetchone()
        finally:
            conn.close()
        if row:
            return json.loads(row[0])
        return None

    def set(self, query: str, result: List[Dict]):
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                """INSERT OR REPLACE INTO geocode_search_cache
                   (query_hash, query_text, result_json, created_at)
                   VALUES (?, ?, ?, ?)""",
                (self._hash_query(query), query, json.dumps(result), time.time())
            )
            conn.commit()
        finally:
            conn.close()


class Geocoder:
    """
    Geocoding provider backed by the OpenStreetMap Nominatim API.

    Respects rate limits: max 1 request per second.
    Uses caching to avoid redundant API calls.
    """

    def __init__(self, settings: Optional[MapSettings] = None, cache_path: Optional[str] = None):
        self.settings = settings or get_settings()
        self.url = self.settings.nominatim_url
        self.cache = GeocodingCache(cache_path or self.settings.geocode_cache_path)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.settings.user_agent})

    def _rate_limit(self):
        """Ensure we don't exceed 1 request per second."""
        global _last_request_time
        with _rate_lock:
            elapsed = time.time() - _last_request_time
            if elapsed < _MIN_REQUEST_INTERVAL:
                time.sleep(_MIN_REQUEST_INTERVAL - elapsed)
            _last_request_time = time.time()

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=2, min=2, max=10), reraise=True)
    def _make_request(self, params: Dict) -> List[Dict]:
        """Make a rate-limited request with retry."""
        self._rate_limit()
        response = self.session.get(
            self.url, params=params, timeout=self.settings.request_timeout_seconds
        )
        response.raise_for_status()
        return response.json()

    def search(self, query: str, limit: int = 8) -> List[GeocodeCandidate]:
        """
        Look up places matching free text.

        Args:
            query: Place name or address, e.g. "Thrissur"
            limit: Maximum number of candidates to request

        Returns:
            Candidates in provider rank order, or [] if nothing was found
            or the provider failed
        """
        query = (query or "").strip()
        if not query:
            return []

        cache_key = f"{query.lower()}|{limit}"
        cached = self.cache.get(cache_key)
        if cached:
            log.debug(f"Cache hit for: {query}")
            return [GeocodeCandidate(**c) for c in cached]

        params = {
            "q": query,
            "format": "jsonv2",
            "limit": limit,
            "addressdetails": 1,
        }

        try:
            raw = self._make_request(params)
        except Exception as e:
            log.error(f"Geocoding failed for '{query}': {e}")
            return []

        if not raw:
            log.info(f"No geocoding results for: {query}")
            return []

        candidates = []
        for item in raw:
            try:
                candidates.append(GeocodeCandidate.from_nominatim(item))
            except (KeyError, TypeError, ValueError) as e:
                log.debug(f"Skipping malformed geocoding candidate: {e}")

        if candidates:
            self.cache.set(cache_key, [c.to_dict() for c in candidates])
        log.info(f"Geocoded: {query} -> {len(candidates)} candidate(s)")

        return candidates


# Singleton instance
_geocoder: Optional[Geocoder] = None

def get_geocoder() -> Geocoder:
    """Get the singleton geocoder instance."""
    global _geocoder
    if _geocoder is None:
        _geocoder = Geocoder()
    return _geocoder
