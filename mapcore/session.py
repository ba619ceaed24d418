"""
Map Session - one complaint map screen (citizen or admin).

Wires the store, clustering, heatmap, search and viewport together and
owns the query lifecycle:

    keystroke -> debounce (500 ms) -> search (generation N)
              -> apply if N is still current -> auto-select after 0.8 s

Timer callbacks may arrive on other threads, so every state change goes
through one lock. The search engine itself runs outside it.
"""

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Union

from mapcore.clustering import ClusteringEngine
from mapcore.config import MapSettings, get_settings
from mapcore.gazetteer import Gazetteer
from mapcore.heatmap import ClusterDetail, HeatmapMapper, Shape
from mapcore.markers import Marker, build_markers
from mapcore.models import (
    Cluster,
    ComplaintStatus,
    MapVariant,
    Notice,
    NoticeLevel,
    Point,
    SearchResult,
    ViewportRegion,
    parse_status_filter,
    points_from_records,
)
from mapcore.search import SearchEngine, SearchOutcome
from mapcore.stats import ComplaintStats, compute_stats
from mapcore.timers import Debouncer, Scheduler, ThreadingScheduler, TimerHandle
from mapcore.viewport import MapSurface, ViewportController

log = logging.getLogger(__name__)


class ComplaintMapSession:
    """
    Host-facing controller for one map screen.

    Usage:
        session = ComplaintMapSession(MapVariant.ADMIN, store=get_complaint_store(),
                                      on_results=render_results)
        session.refresh_points()
        session.on_query_changed("pothole")
    """

    def __init__(
        self,
        variant: MapVariant = MapVariant.CITIZEN,
        store: Any = None,
        geocoder: Any = None,
        scheduler: Optional[Scheduler] = None,
        surface: Optional[MapSurface] = None,
        settings: Optional[MapSettings] = None,
        gazetteer: Optional[Gazetteer] = None,
        on_results: Optional[Callable[[SearchOutcome], None]] = None,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self.variant = variant
        self.settings = settings or get_settings()
        self.store = store
        self.scheduler = scheduler or ThreadingScheduler()
        self.on_results = on_results
        self.on_notice = on_notice

        self.clustering = ClusteringEngine(variant, self.settings)
        self.heatmap = HeatmapMapper.for_variant(variant, self.settings)
        self.engine = SearchEngine(
            variant,
            gazetteer=gazetteer,
            geocoder=geocoder,
            settings=self.settings,
        )
        self.viewport = ViewportController(self.scheduler, surface, self.settings)

        self._lock = threading.RLock()
        self._points: List[Point] = []
        self._status_filter: Optional[ComplaintStatus] = None
        self._query = ""
        self._generation = 0
        self._outcome = SearchOutcome(query="")
        self._panel_visible = False
        self._auto_select_timer: Optional[TimerHandle] = None
        self._debouncer = Debouncer(self.scheduler, self.settings.query_debounce_seconds, self._run_search)

    # ═══════════════════════════════════════════════════════════════════════
    # POINTS
    # ═══════════════════════════════════════════════════════════════════════

    def refresh_points(self) -> List[Point]:
        """Reload complaints from the store. Failures leave an empty map."""
        points: List[Point] = []
        if self.store is not None:
            try:
                points = self.store.fetch_points()
            except Exception as e:
                log.error(f"Error refreshing complaints: {e}")
                points = []
        self.load_points(points)
        return self.points

    def load_points(self, items: Iterable[Union[Point, dict]]):
        """Replace the loaded complaints with Points or raw store records."""
        points: List[Point] = []
        records = []
        for item in items:
            if isinstance(item, Point):
                if item.is_eligible:
                    points.append(item)
            elif isinstance(item, dict):
                records.append(item)
        points.extend(points_from_records(records))
        with self._lock:
            self._points = points
        log.info(f"Loaded {len(points)} complaint(s) for {self.variant.value} map")

    @property
    def points(self) -> List[Point]:
        with self._lock:
            return list(self._points)

    @property
    def status_filter(self) -> Optional[ComplaintStatus]:
        with self._lock:
            return self._status_filter

    def set_status_filter(self, value: Any):
        """Accepts a ComplaintStatus, a status string, or None/'all'."""
        status = value if isinstance(value, ComplaintStatus) else parse_status_filter(value)
        with self._lock:
            self._status_filter = status

    @property
    def visible_points(self) -> List[Point]:
        with self._lock:
            points = list(self._points)
            status = self._status_filter
        if self.variant is MapVariant.ADMIN and status is not None:
            points = [p for p in points if p.status is status]
        return points

    def clusters(self) -> List[Cluster]:
        return self.clustering.cluster(self.visible_points)

    def shapes(self) -> List[Shape]:
        return self.heatmap.map_to_shapes(self.clusters())

    def markers(self) -> List[Marker]:
        return build_markers(
            self.visible_points,
            priority_aware=self.variant.priority_aware,
            high_priority_threshold=self.settings.high_priority_threshold,
        )

    def stats(self) -> ComplaintStats:
        return compute_stats(self.visible_points, self.settings.high_priority_threshold)

    # ═══════════════════════════════════════════════════════════════════════
    # QUERY FLOW
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def query(self) -> str:
        with self._lock:
            return self._query

    @property
    def outcome(self) -> SearchOutcome:
        with self._lock:
            return self._outcome

    @property
    def panel_visible(self) -> bool:
        with self._lock:
            return self._panel_visible

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def on_query_changed(self, text: str):
        """Called on every keystroke in the search box."""
        text = text or ""
        with self._lock:
            self._query = text
            self._generation += 1
            self._cancel_auto_select()

        stripped = text.strip()
        if not stripped:
            self._debouncer.cancel()
            self._apply(SearchOutcome(query=text), self.generation)
            return
        if len(stripped) < self.settings.min_query_chars:
            self._debouncer.cancel()
            return
        self._debouncer.trigger(text)

    def submit(self) -> Optional[SearchOutcome]:
        """Search the current text right away, skipping the debounce."""
        self._debouncer.cancel()
        text = self.query
        if not text.strip():
            self._notify(Notice(NoticeLevel.WARNING, "Search Required", "Please enter a location to search"))
            return None
        return self._run_search(text)

    def _run_search(self, text: str) -> SearchOutcome:
        with self._lock:
            self._generation += 1
            generation = self._generation
            points = list(self._points)
            status = self._status_filter

        try:
            outcome = self.engine.search(text, points, status)
        except Exception as e:
            log.error(f"Search failed for '{text}': {e}", exc_info=True)
            outcome = SearchOutcome(
                query=text,
                notices=[Notice(NoticeLevel.ERROR, "Search Error", "Search failed. Please try again.")],
            )
        outcome.generation = generation

        if not self._apply(outcome, generation):
            return outcome

        if outcome.auto_select is not None:
            with self._lock:
                self._cancel_auto_select()
                self._auto_select_timer = self.scheduler.call_later(
                    self.settings.auto_select_delay_seconds,
                    self._auto_select,
                    outcome.auto_select,
                    generation,
                )
        return outcome

    def _apply(self, outcome: SearchOutcome, generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                log.debug(f"Discarding stale search '{outcome.query}' (generation {generation})")
                return False
            self._outcome = outcome
            self._panel_visible = outcome.panel_visible

        if self.on_results is not None:
            self.on_results(outcome)
        for notice in outcome.notices:
            self._notify(notice)
        return True

    def _auto_select(self, result: SearchResult, generation: int):
        with self._lock:
            if generation != self._generation:
                log.debug(f"Skipping auto-select of '{result.title}', query changed")
                return
            self._auto_select_timer = None
        self.select(result)

    def _cancel_auto_select(self):
        if self._auto_select_timer is not None:
            self._auto_select_timer.cancel()
            self._auto_select_timer = None

    def _notify(self, notice: Notice):
        log.debug(f"Notice [{notice.level.value}] {notice.title}: {notice.message}")
        if self.on_notice is not None:
            self.on_notice(notice)

    # ═══════════════════════════════════════════════════════════════════════
    # SELECTION & VIEWPORT
    # ═══════════════════════════════════════════════════════════════════════

    def select(self, result: SearchResult) -> ViewportRegion:
        with self._lock:
            self._query = result.title
            self._panel_visible = False
            self._generation += 1
            self._cancel_auto_select()
        self._debouncer.cancel()
        return self.viewport.select(result)

    @property
    def region(self) -> ViewportRegion:
        return self.viewport.region

    def on_region_change(self, region: ViewportRegion):
        self.viewport.on_region_change(region)

    def on_marker_tap(self, point: Point):
        self.viewport.on_marker_tap(point)

    def on_shape_tap(self, shape: Shape) -> ClusterDetail:
        return self.viewport.on_shape_tap(shape, include_priority=self.variant.priority_aware)

    def close_detail(self):
        self.viewport.close_detail()

    def center_on_user(self, locate: Callable[[], Optional[tuple]]) -> Optional[ViewportRegion]:
        region = self.viewport.center_on_user(locate)
        if region is None:
            self._notify(Notice(NoticeLevel.ERROR, "Location Error", "Unable to get your location"))
        return region

    def close(self):
        """Cancel all pending timers."""
        self._debouncer.cancel()
        with self._lock:
            self._cancel_auto_select()
        self.viewport.close()
