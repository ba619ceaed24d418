import json

from main import density_char, main

RECORDS = [
    {"id": 1, "title": "Pothole near Kochi bus stand", "status": "pending", "priority_score": 91,
     "location_latitude": 9.9312, "location_longitude": 76.2673},
    {"id": 2, "title": "Broken drain", "status": "in_progress", "priority_score": 30,
     "location_latitude": 9.9315, "location_longitude": 76.2675},
]


def test_density_char():
    assert density_char(1.0) == "#"
    assert density_char(0.5) == "+"
    assert density_char(0.0) == "."


def test_cli_with_records(tmp_path, capsys):
    """End to end: records file -> clusters, stats and search output."""
    path = tmp_path / "complaints.json"
    path.write_text(json.dumps({"success": True, "complaints": RECORDS}))

    code = main(["--records", str(path), "--admin", "--search", "kochi", "--no-geocode"])

    out = capsys.readouterr().out
    assert code == 0
    assert "cluster_0" in out
    assert "2 complaint(s)" in out
    assert "High priority: 1" in out
    assert "[gazetteer] Kochi, Kerala" in out
    assert "High Priority Complaint!" in out
