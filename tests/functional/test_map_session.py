import pytest
from unittest.mock import MagicMock

from mapcore.config import MapSettings
from mapcore.gazetteer import Gazetteer
from mapcore.models import ComplaintStatus, MapVariant, Point, ViewportRegion
from mapcore.search import SearchEngine
from mapcore.session import ComplaintMapSession
from mapcore.timers import ManualScheduler
from mapcore.viewport import GuardKind, MapSurface

RECORDS = [
    {"id": 1, "title": "Pothole on Avinashi Road", "category": "pothole", "status": "pending",
     "priority_score": 88, "location_latitude": 10.9837, "location_longitude": 76.9266},
    {"id": 2, "title": "Garbage near market", "category": "garbage", "status": "in_progress",
     "priority_score": 45, "location_latitude": 10.9840, "location_longitude": 76.9270},
    {"id": 3, "title": "Streetlight out", "category": "streetlight", "status": "completed",
     "priority_score": 10, "location_latitude": 11.0200, "location_longitude": 76.9600},
    {"id": 4, "title": "Missing coordinates", "status": "pending"},
]


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def results():
    return []


@pytest.fixture
def notices():
    return []


def make_session(scheduler, results, notices, variant=MapVariant.CITIZEN, geocoder=None, store=None):
    session = ComplaintMapSession(
        variant,
        store=store,
        geocoder=geocoder,
        scheduler=scheduler,
        surface=MagicMock(spec=MapSurface),
        settings=MapSettings(),
        on_results=results.append,
        on_notice=notices.append,
    )
    session.load_points(RECORDS)
    return session


def type_text(session, scheduler, text, gap=0.05):
    """Simulate typing one character at a time."""
    for i in range(1, len(text) + 1):
        session.on_query_changed(text[:i])
        scheduler.advance(gap)


def test_debounce_collapses_typing(scheduler, results, notices):
    """Typing 'delhi' inside the debounce window issues one search for 'delhi'."""
    session = make_session(scheduler, results, notices)
    session.engine.search = MagicMock(wraps=session.engine.search)

    type_text(session, scheduler, "delhi", gap=0.1)
    session.engine.search.assert_not_called()

    scheduler.advance(0.5)
    session.engine.search.assert_called_once()
    assert session.engine.search.call_args[0][0] == "delhi"
    assert results[-1].results[0].id == "city_delhi"
    assert session.panel_visible


def test_auto_select_after_delay(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    type_text(session, scheduler, "mumbai")
    scheduler.advance(0.5)
    assert session.region != ViewportRegion(19.0760, 72.8777, 0.08, 0.08)

    scheduler.advance(0.8)
    assert session.region == ViewportRegion(19.0760, 72.8777, 0.08, 0.08)
    assert session.query == "Mumbai, India"
    assert not session.panel_visible
    assert notices[0].title == "Location Found!"


def test_auto_select_dropped_when_query_changes(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    default = session.region
    session.on_query_changed("kochi")
    session.submit()

    session.on_query_changed("kochi p")
    scheduler.advance(0.8)
    assert session.region == default


def test_stale_outcome_is_discarded(scheduler, results, notices):
    """A search finishing after a newer keystroke is never applied."""
    session = make_session(scheduler, results, notices)
    real_search = session.engine.search

    def slow_search(text, points, status):
        # user keeps typing while this search is in flight
        session.on_query_changed("garbage")
        return real_search(text, points, status)

    session.engine.search = slow_search
    session.on_query_changed("pothole")
    outcome = session.submit()

    assert outcome.results
    assert results == []
    assert session.outcome.query == ""


def test_selection_during_search_wins(scheduler, results, notices):
    """A row picked while a search is running is not undone by that search."""
    session = make_session(scheduler, results, notices)
    real_search = session.engine.search
    chennai = Gazetteer().lookup("chennai")

    def slow_search(text, points, status):
        session.select(chennai)
        return real_search(text, points, status)

    session.engine.search = slow_search
    session.on_query_changed("mumbai")
    session.submit()
    scheduler.advance(2.0)

    assert session.region == ViewportRegion(13.0827, 80.2707, 0.08, 0.08)
    assert session.query == "Chennai, India"
    assert not session.panel_visible
    assert results == []


def test_submit_bypasses_debounce(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.on_query_changed("garbage")
    outcome = session.submit()

    assert [r.title for r in outcome.results] == ["Garbage near market"]
    scheduler.advance(1.0)
    assert len(results) == 1


def test_submit_empty_query(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.on_query_changed("   ")
    assert session.submit() is None
    assert notices[-1].title == "Search Required"


def test_short_query_does_not_search(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.engine.search = MagicMock()
    session.on_query_changed("d")
    scheduler.advance(1.0)
    session.engine.search.assert_not_called()


def test_clearing_query_hides_panel(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.on_query_changed("garbage")
    session.submit()
    assert session.panel_visible

    session.on_query_changed("")
    assert not session.panel_visible
    assert results[-1].results == []


def test_search_error_notice(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.engine = MagicMock(spec=SearchEngine)
    session.engine.search.side_effect = RuntimeError("boom")

    session.on_query_changed("kochi")
    outcome = session.submit()

    assert outcome.results == []
    assert notices[-1].title == "Search Error"


def test_geocoder_failure_keeps_local_results(scheduler, results, notices):
    geocoder = MagicMock()
    geocoder.search.side_effect = ConnectionError("offline")
    session = make_session(scheduler, results, notices, geocoder=geocoder)

    session.on_query_changed("pothole")
    outcome = session.submit()
    assert [r.title for r in outcome.results] == ["Pothole on Avinashi Road"]


def test_region_change_suppressed_after_selection(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.on_query_changed("surat")
    outcome = session.submit()
    selected = session.select(outcome.results[0])

    session.on_region_change(ViewportRegion(10.0, 76.0, 0.2, 0.2))
    scheduler.advance(0.3)
    assert session.region == selected

    scheduler.advance(1.5)
    session.on_region_change(ViewportRegion(10.0, 76.0, 0.2, 0.2))
    scheduler.advance(0.2)
    assert session.region == ViewportRegion(10.0, 76.0, 0.2, 0.2)


def test_admin_heatmap_and_filter(scheduler, results, notices):
    session = make_session(scheduler, results, notices, variant=MapVariant.ADMIN)

    clusters = session.clusters()
    assert [c.density for c in clusters] == [2, 1]
    assert clusters[0].avg_priority == pytest.approx(66.5)
    assert session.stats().high_priority == 1

    session.set_status_filter("completed")
    assert [p.id for p in session.visible_points] == ["3"]
    assert len(session.shapes()) == 1
    assert session.stats().resolved == 1

    session.set_status_filter("all")
    assert len(session.markers()) == 3


def test_admin_shape_tap_and_close(scheduler, results, notices):
    session = make_session(scheduler, results, notices, variant=MapVariant.ADMIN)
    detail = session.on_shape_tap(session.shapes()[0])
    assert detail.description.startswith("Average Priority: 66")
    assert session.viewport.guard.is_active(GuardKind.MARKER_INTERACTION)

    session.close_detail()
    assert not session.viewport.detail_open


def test_refresh_points_store_failure(scheduler, results, notices):
    store = MagicMock()
    store.fetch_points.side_effect = RuntimeError("backend down")
    session = make_session(scheduler, results, notices, store=store)

    assert session.refresh_points() == []
    assert session.shapes() == []


def test_refresh_points_from_store(scheduler, results, notices):
    store = MagicMock()
    store.fetch_points.return_value = [Point(id="9", latitude=10.0, longitude=76.0,
                                             status=ComplaintStatus.RESOLVED)]
    session = make_session(scheduler, results, notices, store=store)
    assert [p.id for p in session.refresh_points()] == ["9"]


def test_center_on_user_failure(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    assert session.center_on_user(lambda: None) is None
    assert notices[-1].title == "Location Error"
    assert session.region == ViewportRegion(10.9837, 76.9266, 0.1, 0.1)


def test_close_cancels_pending(scheduler, results, notices):
    session = make_session(scheduler, results, notices)
    session.engine.search = MagicMock(wraps=session.engine.search)
    session.on_query_changed("kochi")
    session.close()
    scheduler.advance(2.0)
    session.engine.search.assert_not_called()
    assert scheduler.pending == 0
