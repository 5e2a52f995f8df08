import dataclasses

import pytest

from models import (
    TrackPoint, TrackSource, Waypoint, SimplificationOutcome,
    coord_key, feet_to_meters, meters_to_feet, name_waypoints,
)


def _waypoints(count):
    return [Waypoint(id=f"t-0-{i}", name="", lat=50.0 + i, lng=4.0) for i in range(count)]


def test_names_are_zero_padded_sequence():
    wps = name_waypoints(_waypoints(12))
    assert [wp.name for wp in wps][:3] == ["001", "002", "003"]
    assert wps[-1].name == "012"


def test_origin_and_destination_replace_route_ends():
    wps = name_waypoints(_waypoints(5), origin="EHAM", destination="KSFO")

    assert [wp.name for wp in wps] == ["EHAM", "002", "003", "004", "KSFO"]


def test_renaming_twice_gives_same_names():
    wps = name_waypoints(_waypoints(5), origin="EHAM", destination="KSFO")
    first = [wp.name for wp in wps]

    name_waypoints(wps, origin="EHAM", destination="KSFO")

    assert [wp.name for wp in wps] == first


def test_renaming_discards_previous_names():
    wps = name_waypoints(_waypoints(3), origin="EHAM", destination="KSFO")

    name_waypoints(wps)

    assert [wp.name for wp in wps] == ["001", "002", "003"]


def test_destination_needs_two_waypoints():
    wps = name_waypoints(_waypoints(1), origin=None, destination="KSFO")
    assert wps[0].name == "001"

    wps = name_waypoints(_waypoints(1), origin="EHAM", destination="KSFO")
    assert wps[0].name == "EHAM"


def test_naming_empty_list():
    assert name_waypoints([], origin="EHAM", destination="KSFO") == []


def test_unit_conversions_round_to_whole_units():
    assert meters_to_feet(1000) == 3281
    assert meters_to_feet(0) == 0
    assert feet_to_meters(1000) == 305
    assert feet_to_meters(35000) == 10668


def test_coord_key_uses_six_decimals():
    assert coord_key(52.3105001, 4.7683) == "52.310500,4.768300"
    assert coord_key(52.3105001, 4.7683) == coord_key(52.3104996, 4.76830001)


def test_track_point_is_immutable():
    pt = TrackPoint(sequence_index=0, lat=1.0, lng=2.0, altitude_ft=100, id="fa-0-0")
    with pytest.raises(dataclasses.FrozenInstanceError):
        pt.lat = 3.0


def test_waypoint_from_track_point_copies_identity():
    pt = TrackPoint(sequence_index=7, lat=1.5, lng=2.5, altitude_ft=1200, id="line-0-7")

    wp = Waypoint.from_track_point(pt, "008")

    assert (wp.id, wp.name, wp.lat, wp.lng, wp.altitude_ft, wp.selected) == \
        ("line-0-7", "008", 1.5, 2.5, 1200, False)


def test_waypoint_dict_round_trip_for_editor():
    wp = Waypoint(id="fa-0-3", name="EHAM", lat=52.31, lng=4.76, altitude_ft=-11, selected=True)

    data = wp.to_dict()

    assert data["altitude"] == -11
    assert Waypoint.from_dict(data) == wp


def test_outcome_counts_follow_waypoints():
    outcome = SimplificationOutcome(waypoints=_waypoints(4), original_count=9, explanation="x")

    assert outcome.final_count == 4
    assert outcome
    assert outcome.to_dict()["simplifiedCount"] == 4


def test_empty_outcome_shape():
    outcome = SimplificationOutcome.empty("No valid waypoints found in KML file",
                                          TrackSource.FLIGHTRADAR24, "a.kml")

    assert not outcome
    assert outcome.final_count == 0
    assert outcome.original_count == 0
    assert outcome.to_dict()["source"] == "FlightRadar24"


@pytest.mark.parametrize("field_name, value", [("lat", "nan"), ("lng", "inf"), ("altitude", "-inf")])
def test_waypoint_from_dict_rejects_non_finite_numbers(field_name, value):
    data = {"id": "a", "name": "001", "lat": 52.31, "lng": 4.76, "altitude": 0}
    data[field_name] = value

    with pytest.raises(ValueError):
        Waypoint.from_dict(data)
