"""
Remote data sources for the complaint map.

Includes:
- Complaint store (civic backend, read-only)
- Geocoding (Nominatim)
"""

from maploaders.complaint_store import ComplaintStore, get_complaint_store
from maploaders.geocoder import Geocoder, GeocodeCandidate, GeocodingCache, get_geocoder

__all__ = [
    "ComplaintStore",
    "get_complaint_store",
    "Geocoder",
    "GeocodeCandidate",
    "GeocodingCache",
    "get_geocoder",
]
