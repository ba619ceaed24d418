"""
Search & Ranking Engine

Merges three sources for one query into a single ordered list:
1. Gazetteer (static well-known places)
2. Complaints already loaded on the map
3. Geocoding provider (citizen map only)

Gazetteer hits always rank first, then complaints, then geocoded places by
importance. The engine is synchronous; debouncing and stale-response
handling live in the session.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from mapcore.config import MapSettings, get_settings
from mapcore.gazetteer import Gazetteer
from mapcore.models import (
    ComplaintStatus,
    MapVariant,
    Notice,
    NoticeLevel,
    Point,
    ResultKind,
    SearchResult,
)

log = logging.getLogger(__name__)

SETTLEMENT_TYPES = {
    "city", "town", "village", "hamlet", "municipality",
    "suburb", "neighbourhood", "administrative",
}


@dataclass
class SearchOutcome:
    """
    Everything the host needs to render one search.

    Attributes:
        query: The raw query text
        results: Ranked results (order is the ranking)
        panel_visible: Whether the results dropdown should be shown
        auto_select: Result to select automatically after a short delay
        notices: Non-blocking messages to surface
        generation: Search id assigned by the session (0 when run directly)
    """
    query: str
    results: List[SearchResult] = field(default_factory=list)
    panel_visible: bool = False
    auto_select: Optional[SearchResult] = None
    notices: List[Notice] = field(default_factory=list)
    generation: int = 0

    @property
    def no_results(self) -> bool:
        return bool(self.query.strip()) and not self.results


def normalize_query(query: Optional[str]) -> str:
    return (query or "").strip().lower()


def _matches(point: Point, q: str) -> bool:
    fields = (point.title, point.description, point.category, point.status.value)
    return any(q in (value or "").lower() for value in fields)


def _is_settlement(candidate: Any, min_importance: float) -> bool:
    place_type = getattr(candidate, "place_type", "")
    place_class = getattr(candidate, "place_class", "")
    display_name = getattr(candidate, "display_name", "") or ""
    address_type = getattr(candidate, "address_type", "")
    return (
        place_type in SETTLEMENT_TYPES
        or place_class in SETTLEMENT_TYPES
        or "city" in display_name
        or "town" in display_name
        or address_type in ("city", "town")
        or (getattr(candidate, "importance", 0.0) or 0.0) > min_importance
    )


def _is_duplicate(lat: float, lon: float, selected: Sequence[SearchResult], tolerance: float) -> bool:
    return any(
        abs(r.latitude - lat) < tolerance and abs(r.longitude - lon) < tolerance
        for r in selected
    )


class SearchEngine:
    """
    Query ranking for one map variant.

    Usage:
        engine = SearchEngine(MapVariant.CITIZEN, geocoder=get_geocoder())
        outcome = engine.search("kochi", points)
    """

    def __init__(
        self,
        variant: MapVariant = MapVariant.CITIZEN,
        gazetteer: Optional[Gazetteer] = None,
        geocoder: Any = None,
        settings: Optional[MapSettings] = None,
    ):
        self.variant = variant
        self.gazetteer = gazetteer or Gazetteer()
        self.geocoder = geocoder
        self.settings = settings or get_settings()

    def search(
        self,
        query: str,
        points: Sequence[Point],
        status_filter: Optional[ComplaintStatus] = None,
    ) -> SearchOutcome:
        """
        Rank gazetteer, complaint and geocoded matches for a query.

        Args:
            query: Raw text from the search box
            points: Currently loaded complaints, in store order
            status_filter: Admin status filter; ignored by the citizen map

        Returns:
            SearchOutcome; an empty query hides the panel with no results
        """
        q = normalize_query(query)
        if not q:
            return SearchOutcome(query=query or "")

        gazetteer_hit = self.gazetteer.lookup(q)
        gazetteer_results = [gazetteer_hit] if gazetteer_hit else []

        complaint_results = self._point_pass(q, points, status_filter)

        geocoded_results: List[SearchResult] = []
        if self.variant is MapVariant.CITIZEN and (
            not gazetteer_hit or len(q) > self.settings.geocode_min_query_length
        ):
            geocoded_results = self._geocoded_pass(
                query.strip(), gazetteer_results + complaint_results
            )

        geocoded_results.sort(key=lambda r: r.importance, reverse=True)
        results = gazetteer_results + complaint_results + geocoded_results

        outcome = SearchOutcome(query=query, results=results, panel_visible=bool(results))
        self._annotate(outcome, q)
        log.debug(
            f"Search '{q}': {len(gazetteer_results)} gazetteer, "
            f"{len(complaint_results)} complaint, {len(geocoded_results)} geocoded"
        )
        return outcome

    def _point_pass(
        self,
        q: str,
        points: Sequence[Point],
        status_filter: Optional[ComplaintStatus],
    ) -> List[SearchResult]:
        candidates = [p for p in points if p.is_eligible]
        if self.variant is MapVariant.ADMIN:
            if status_filter is not None:
                candidates = [p for p in candidates if p.status is status_filter]
            matches = [p for p in candidates if _matches(p, q)]
            matches.sort(key=lambda p: p.priority_score, reverse=True)
            matches = matches[:self.settings.admin_complaint_cap]
        else:
            matches = [p for p in candidates if _matches(p, q)][:self.settings.citizen_complaint_cap]

        return [self._complaint_result(p) for p in matches]

    def _complaint_result(self, point: Point) -> SearchResult:
        if self.variant is MapVariant.ADMIN:
            subtitle = (
                f"{point.category} • {point.status.value} • "
                f"Priority: {round(point.priority_score)}"
            )
        else:
            subtitle = f"{point.category} • Complaint"
        return SearchResult(
            id=f"complaint_{point.id}",
            latitude=point.latitude,
            longitude=point.longitude,
            title=point.title,
            subtitle=subtitle,
            kind=ResultKind.COMPLAINT,
            source_point=point,
        )

    def _geocoded_pass(self, query: str, selected: List[SearchResult]) -> List[SearchResult]:
        if self.geocoder is None:
            return []

        s = self.settings
        try:
            candidates = self.geocoder.search(query, limit=s.geocode_limit) or []
        except Exception as e:
            log.warning(f"Geocoding unavailable, continuing with other results: {e}")
            return []

        results: List[SearchResult] = []
        for candidate in list(candidates)[:s.geocode_considered]:
            if not _is_settlement(candidate, s.geocode_min_importance):
                continue
            lat, lon = candidate.latitude, candidate.longitude
            if _is_duplicate(lat, lon, selected + results, s.dedup_degrees):
                continue

            parts = [part.strip() for part in (candidate.display_name or "").split(",")]
            name = parts[0] if parts and parts[0] else query
            address = getattr(candidate, "address", None) or {}
            state = address.get("state") or (parts[1] if len(parts) > 1 else "")
            country = address.get("country") or (parts[-1] if len(parts) > 1 else "")
            title = f"{name}, {state}" if state and state != name else name

            results.append(SearchResult(
                id=f"geocoded_{candidate.place_id}",
                latitude=lat,
                longitude=lon,
                title=title,
                subtitle=f"{country or 'Location'} • Global Search",
                kind=ResultKind.GEOCODED,
                importance=candidate.importance or 0.0,
            ))
        return results

    def _annotate(self, outcome: SearchOutcome, q: str) -> None:
        """Attach auto-selection and notices to a finished search."""
        results = outcome.results
        if not results:
            outcome.notices.append(Notice(
                NoticeLevel.INFO,
                "No Results",
                f'No results found for "{outcome.query.strip()}". Try a city name or complaint keywords.',
            ))
            return

        top = results[0]
        if len(results) == 1 or q in top.title.lower():
            outcome.auto_select = top
            outcome.notices.append(Notice(NoticeLevel.INFO, "Location Found!", f"Moving to {top.title}..."))

        threshold = self.settings.high_priority_threshold
        for r in results:
            if r.kind is ResultKind.COMPLAINT and r.source_point and r.source_point.priority_score > threshold:
                outcome.notices.append(Notice(
                    NoticeLevel.WARNING,
                    "High Priority Complaint!",
                    f"Priority {round(r.source_point.priority_score)}: {r.title}",
                ))
