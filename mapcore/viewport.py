"""
Viewport Controller - moves the map and keeps user-driven and
programmatic camera changes from feeding back into each other.

Guard states:
    PROGRAMMATIC_MOVE   - camera is animating to a selected result
    MARKER_INTERACTION  - a marker or circle was just tapped

While any guard is active, settled region changes are not committed.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from mapcore.config import MapSettings, get_settings
from mapcore.heatmap import ClusterDetail, Shape, describe_cluster
from mapcore.models import Point, SearchResult, ViewportRegion
from mapcore.timers import Debouncer, Scheduler, ThreadingScheduler, TimerHandle

log = logging.getLogger(__name__)

Detail = Union[Point, ClusterDetail]


class GuardKind(Enum):
    PROGRAMMATIC_MOVE = "programmatic_move"
    MARKER_INTERACTION = "marker_interaction"


class FeedbackGuard:
    """
    Set of time-boxed suppression flags.

    Each kind auto-resets after its window; re-arming restarts the window.
    """

    def __init__(self, scheduler: Scheduler, windows: Optional[Dict[GuardKind, float]] = None):
        self.scheduler = scheduler
        self.windows = dict(windows or {})
        self._timers: Dict[GuardKind, TimerHandle] = {}
        self._lock = threading.RLock()

    def arm(self, kind: GuardKind, duration: Optional[float] = None):
        window = duration if duration is not None else self.windows.get(kind, 0.0)
        with self._lock:
            previous = self._timers.get(kind)
            if previous is not None:
                previous.cancel()
            self._timers[kind] = self.scheduler.call_later(window, self._expire, kind)
        log.debug(f"Guard {kind.value} armed for {window}s")

    def release(self, kind: GuardKind):
        with self._lock:
            handle = self._timers.pop(kind, None)
        if handle is not None:
            handle.cancel()

    def is_active(self, kind: GuardKind) -> bool:
        with self._lock:
            handle = self._timers.get(kind)
            return handle is not None and handle.active

    @property
    def active_kinds(self) -> List[GuardKind]:
        return [kind for kind in GuardKind if self.is_active(kind)]

    @property
    def suppressed(self) -> bool:
        return bool(self.active_kinds)

    def release_all(self):
        for kind in GuardKind:
            self.release(kind)

    def _expire(self, kind: GuardKind):
        with self._lock:
            handle = self._timers.get(kind)
            if handle is not None and not handle.active:
                del self._timers[kind]
        log.debug(f"Guard {kind.value} expired")


class MapSurface:
    """
    Host-side map widget. Subclass and override; the defaults do nothing.
    """

    def animate_to_region(self, region: ViewportRegion, duration_ms: int):
        pass

    def show_detail(self, detail: Optional[Detail]):
        pass


class ViewportController:
    """
    Owns the current region and the detail view for one map screen.

    Usage:
        controller = ViewportController(scheduler, surface)
        controller.select(result)
        controller.on_region_change(region)   # from the map widget
    """

    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        surface: Optional[MapSurface] = None,
        settings: Optional[MapSettings] = None,
        region: Optional[ViewportRegion] = None,
        on_region_committed: Optional[Callable[[ViewportRegion], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.scheduler = scheduler or ThreadingScheduler()
        self.surface = surface or MapSurface()
        self.on_region_committed = on_region_committed
        self.guard = FeedbackGuard(self.scheduler, {
            GuardKind.PROGRAMMATIC_MOVE: self.settings.programmatic_move_guard_seconds,
            GuardKind.MARKER_INTERACTION: self.settings.marker_interaction_guard_seconds,
        })
        self._settle = Debouncer(self.scheduler, self.settings.region_settle_seconds, self._on_region_settled)
        self._region = region or self.default_region
        self._detail: Optional[Detail] = None
        self._detail_timer: Optional[TimerHandle] = None
        self._lock = threading.RLock()

    @property
    def default_region(self) -> ViewportRegion:
        lat, lon, lat_delta, lon_delta = self.settings.default_region
        return ViewportRegion(lat, lon, lat_delta, lon_delta)

    @property
    def region(self) -> ViewportRegion:
        with self._lock:
            return self._region

    @property
    def detail(self) -> Optional[Detail]:
        with self._lock:
            return self._detail

    @property
    def detail_open(self) -> bool:
        return self.detail is not None

    # ═══════════════════════════════════════════════════════════════════════
    # PROGRAMMATIC MOVES
    # ═══════════════════════════════════════════════════════════════════════

    def select(self, result: SearchResult) -> ViewportRegion:
        """Center on a search result and, for complaints, open its detail."""
        region = ViewportRegion.around(
            result.latitude, result.longitude, self.settings.selection_delta_deg
        )
        self.guard.arm(GuardKind.PROGRAMMATIC_MOVE)
        self._commit(region)
        self._animate(region)

        if result.source_point is not None:
            with self._lock:
                if self._detail_timer is not None:
                    self._detail_timer.cancel()
                self._detail_timer = self.scheduler.call_later(
                    self.settings.detail_open_delay_seconds, self.open_detail, result.source_point
                )
        log.info(f"Selected {result.kind.value} result '{result.title}'")
        return region

    def center_on_user(self, locate: Callable[[], Optional[tuple]]) -> Optional[ViewportRegion]:
        """
        Move to the device location.

        Args:
            locate: Returns (latitude, longitude) or None; may raise

        Returns:
            The new region, or None if the location was unavailable (the
            default region is restored in that case)
        """
        try:
            position = locate()
        except Exception as e:
            log.warning(f"Device location failed: {e}")
            position = None

        if not position:
            self._commit(self.default_region)
            return None

        lat, lon = position[0], position[1]
        region = ViewportRegion.around(lat, lon, self.settings.user_location_delta_deg)
        self.guard.arm(GuardKind.PROGRAMMATIC_MOVE)
        self._commit(region)
        self._animate(region)
        return region

    def _animate(self, region: ViewportRegion):
        try:
            self.surface.animate_to_region(region, self.settings.animation_duration_ms)
        except Exception as e:
            log.warning(f"Map animation failed, region still committed: {e}")

    def _commit(self, region: ViewportRegion):
        with self._lock:
            self._region = region
        if self.on_region_committed is not None:
            self.on_region_committed(region)

    # ═══════════════════════════════════════════════════════════════════════
    # USER EVENTS
    # ═══════════════════════════════════════════════════════════════════════

    def on_region_change(self, region: ViewportRegion):
        """Called by the map widget for every camera movement."""
        self._settle.trigger(region)

    def _on_region_settled(self, region: ViewportRegion):
        if self.guard.suppressed:
            log.debug(f"Ignoring region change, guards active: {[k.value for k in self.guard.active_kinds]}")
            return
        if self.detail_open:
            log.debug("Ignoring region change while detail is open")
            return
        self._commit(region)

    def on_marker_tap(self, point: Point):
        self.guard.arm(GuardKind.MARKER_INTERACTION)
        self.open_detail(point)

    def on_shape_tap(self, shape: Shape, include_priority: bool = False) -> ClusterDetail:
        self.guard.arm(GuardKind.MARKER_INTERACTION)
        detail = describe_cluster(shape.cluster, include_priority=include_priority)
        self.open_detail(detail)
        return detail

    def open_detail(self, detail: Detail):
        with self._lock:
            self._detail = detail
            self._detail_timer = None
        self.surface.show_detail(detail)

    def close_detail(self):
        with self._lock:
            self._detail = None
            if self._detail_timer is not None:
                self._detail_timer.cancel()
                self._detail_timer = None
        self.guard.release(GuardKind.MARKER_INTERACTION)
        self.surface.show_detail(None)

    def close(self):
        """Cancel every pending timer."""
        self._settle.cancel()
        self.guard.release_all()
        with self._lock:
            if self._detail_timer is not None:
                self._detail_timer.cancel()
                self._detail_timer = None
