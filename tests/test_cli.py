import xml.etree.ElementTree as ET

import pytest

from conftest import kml_document
from kml2fpl import main

FPL = "{http://www8.garmin.com/xmlschemas/FlightPlan/v1}"

# Schiphol to San Francisco, a few points in between
TRANSATLANTIC = [
    (4.7683, 52.3105, 0),
    (4.5000, 52.6000, 3000),
    (-20.0000, 60.0000, 11000),
    (-100.0000, 50.0000, 11000),
    (-122.3000, 37.7000, 900),
    (-122.3790, 37.6213, 0),
]


def _identifiers(path):
    root = ET.fromstring(path.read_text(encoding="utf-8"))
    return [e.text for e in root.iter(f"{FPL}identifier")]


@pytest.fixture
def track_file(tmp_path, flightaware_kml):
    path = tmp_path / "KLM605.kml"
    path.write_text(flightaware_kml(TRANSATLANTIC), encoding="utf-8")
    return path


def test_writes_plan_next_to_input(track_file, capsys):
    assert main([str(track_file)]) == 0

    plan = track_file.with_suffix(".fpl")
    assert _identifiers(plan) == ["001", "002", "003", "004", "005", "006"]
    assert "✅ Converted" in capsys.readouterr().out


def test_explicit_output_and_codes(track_file, tmp_path):
    out = tmp_path / "plan.fpl"

    assert main([str(track_file), str(out), "--origin", " eham", "--destination", "ksfo"]) == 0

    assert _identifiers(out) == ["EHAM", "002", "003", "004", "005", "KSFO"]


def test_auto_codes_from_nearest_airports(track_file):
    assert main([str(track_file), "--auto-codes"]) == 0

    ids = _identifiers(track_file.with_suffix(".fpl"))
    assert ids[0] == "EHAM" and ids[-1] == "KSFO"


def test_info_only_writes_nothing(track_file, capsys):
    assert main(["--info", str(track_file)]) == 0

    out = capsys.readouterr().out
    assert "FlightAware" in out
    assert "Route: EHAM → KSFO" in out
    assert not track_file.with_suffix(".fpl").exists()


def test_empty_track_fails(tmp_path, capsys):
    path = tmp_path / "empty.kml"
    path.write_text(kml_document("<name>empty</name>"), encoding="utf-8")

    assert main([str(path)]) == 1
    assert "No valid waypoints" in capsys.readouterr().err


def test_unsupported_extension_fails(tmp_path, capsys):
    path = tmp_path / "flight.gpx"
    path.write_text("<gpx/>")

    assert main([str(path)]) == 1
    assert "Unsupported input format" in capsys.readouterr().err


def test_missing_file_fails(tmp_path):
    assert main([str(tmp_path / "nope.kml")]) == 1
