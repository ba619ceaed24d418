import pytest
from unittest.mock import MagicMock, patch

import requests

from mapcore.config import MapSettings
from mapcore.models import ComplaintStatus
from maploaders.complaint_store import ComplaintStore

RECORDS = [
    {
        "id": 1,
        "title": "Overflowing drain",
        "category": "sewage_overflow",
        "status": "pending",
        "priority_score": 82,
        "location_latitude": 10.9837,
        "location_longitude": 76.9266,
    },
    {
        "id": 2,
        "title": "No location",
        "status": "completed",
        "location_latitude": None,
        "location_longitude": None,
    },
    {
        "id": 3,
        "title": "Streetlight out",
        "status": "completed",
        "location_latitude": "10.99",
        "location_longitude": "76.93",
    },
]


@pytest.fixture
def store():
    with patch('requests.Session') as mock_session:
        loader = ComplaintStore("http://backend.test/", settings=MapSettings())
        loader.session = mock_session.return_value
        yield loader


def respond(store, payload):
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    store.session.get.return_value = mock_response


def test_complaints_url(store):
    assert store.complaints_url == "http://backend.test/api/complaints/all"


def test_fetch_points(store):
    """Records without coordinates are dropped, order kept."""
    respond(store, {"success": True, "complaints": RECORDS})

    points = store.fetch_points()

    assert [p.id for p in points] == ["1", "3"]
    assert points[1].status is ComplaintStatus.RESOLVED
    assert points[1].latitude == 10.99
    store.session.get.assert_called_once_with("http://backend.test/api/complaints/all", timeout=10.0)


def test_unsuccessful_payload_is_empty(store):
    respond(store, {"success": False, "message": "db down"})
    assert store.fetch_records() == []


def test_missing_list_is_empty(store):
    respond(store, {"success": True, "complaints": None})
    assert store.fetch_points() == []


def test_non_dict_items_filtered(store):
    respond(store, {"success": True, "complaints": [RECORDS[0], "junk", 42]})
    assert len(store.fetch_records()) == 1


def test_transport_failure(store):
    """fetch_records raises, fetch_points degrades to []."""
    with patch.object(ComplaintStore, '_get', side_effect=requests.ConnectionError("refused")):
        with pytest.raises(requests.ConnectionError):
            store.fetch_records()
        assert store.fetch_points() == []
