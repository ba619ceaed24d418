"""
Gazetteer - static lookup of well-known place names.

Checked before any network geocoding because it is instant and always
available.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from mapcore.models import ResultKind, SearchResult


@dataclass(frozen=True)
class Place:
    latitude: float
    longitude: float
    name: str


# Insertion order matters: partial matches take the first hit.
DEFAULT_PLACES: Dict[str, Place] = {
    "delhi": Place(28.6139, 77.2090, "Delhi, India"),
    "new delhi": Place(28.6139, 77.2090, "New Delhi, India"),
    "mumbai": Place(19.0760, 72.8777, "Mumbai, India"),
    "bangalore": Place(12.9716, 77.5946, "Bangalore, India"),
    "chennai": Place(13.0827, 80.2707, "Chennai, India"),
    "kolkata": Place(22.5726, 88.3639, "Kolkata, India"),
    "hyderabad": Place(17.3850, 78.4867, "Hyderabad, India"),
    "pune": Place(18.5204, 73.8567, "Pune, India"),
    "kochi": Place(9.9312, 76.2673, "Kochi, Kerala"),
    "ernakulam": Place(9.9816, 76.2999, "Ernakulam, Kerala"),
    "jaipur": Place(26.9124, 75.7873, "Jaipur, India"),
    "ahmedabad": Place(23.0225, 72.5714, "Ahmedabad, India"),
    "lucknow": Place(26.8467, 80.9462, "Lucknow, India"),
    "nagpur": Place(21.1458, 79.0882, "Nagpur, India"),
    "surat": Place(21.1702, 72.8311, "Surat, India"),
}


class Gazetteer:
    """
    Name to coordinate table.

    Usage:
        gazetteer = Gazetteer()
        result = gazetteer.lookup("mumbai")
    """

    def __init__(self, places: Optional[Dict[str, Place]] = None):
        self.places = dict(DEFAULT_PLACES if places is None else places)

    @property
    def keys(self) -> List[str]:
        return list(self.places)

    def match_key(self, query: str) -> Optional[str]:
        """
        Find the table key for a normalized query.

        Exact key first. Otherwise the first key that contains the query,
        or whose first word appears inside the query.
        """
        if not query:
            return None
        if query in self.places:
            return query
        for key in self.places:
            if query in key or key.split(" ")[0] in query:
                return key
        return None

    def lookup(self, query: str) -> Optional[SearchResult]:
        key = self.match_key(query)
        if key is None:
            return None
        place = self.places[key]
        return SearchResult(
            id=f"city_{key}",
            latitude=place.latitude,
            longitude=place.longitude,
            title=place.name,
            subtitle="Major City",
            kind=ResultKind.GAZETTEER,
        )
