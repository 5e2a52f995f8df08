"""Shared KML and track builders."""

from __future__ import annotations

import pytest

from models import TrackPoint

KML_NS = "http://www.opengis.net/kml/2.2"
GX_NS = "http://www.google.com/kml/ext/2.2"


def kml_document(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<kml xmlns="{KML_NS}" xmlns:gx="{GX_NS}">\n'
        f"<Document>\n{body}\n</Document>\n"
        "</kml>\n"
    )


def flightaware_body(coords, name="FlightAware ✈ KLM605 (EHAM-KSFO)") -> str:
    """coords are (lng, lat, alt_m) tuples written as gx:coord "lon lat alt"."""
    lines = "\n".join(f"<gx:coord>{lng} {lat} {alt}</gx:coord>" for lng, lat, alt in coords)
    return (
        f"<name>{name}</name>\n"
        "<Placemark><name>Track</name>\n"
        f"<gx:Track><altitudeMode>absolute</altitudeMode>\n{lines}\n</gx:Track>\n"
        "</Placemark>"
    )


def linestring_body(coords, name="KL605") -> str:
    """coords are (lng, lat, alt_m) tuples written as "lon,lat,alt" tokens."""
    text = " ".join(f"{lng},{lat},{alt}" for lng, lat, alt in coords)
    return (
        f"<name>{name}</name>\n"
        "<Placemark><name>Trail</name>\n"
        f"<LineString><coordinates>{text}</coordinates></LineString>\n"
        "</Placemark>"
    )


def make_track(coords):
    """TrackPoints from (lat, lng) or (lat, lng, altitude_ft) tuples."""
    points = []
    for i, c in enumerate(coords):
        alt = c[2] if len(c) > 2 else 0
        points.append(TrackPoint(sequence_index=i, lat=c[0], lng=c[1], altitude_ft=alt, id=f"t-0-{i}"))
    return points


@pytest.fixture
def flightaware_kml():
    def build(coords, **kwargs):
        return kml_document(flightaware_body(coords, **kwargs))
    return build


@pytest.fixture
def linestring_kml():
    def build(coords, **kwargs):
        return kml_document(linestring_body(coords, **kwargs))
    return build


@pytest.fixture
def track():
    return make_track


@pytest.fixture
def turn_track():
    """1000 collinear points heading east with one 90 degree turn north at index 500."""
    coords = []
    for i in range(1000):
        if i <= 500:
            coords.append((0.0, i / 100))
        else:
            coords.append(((i - 500) / 100, 5.0))
    return make_track(coords)


@pytest.fixture
def wiggly_track():
    """3000 points that no tolerance step can straighten out cheaply."""
    coords = []
    for i in range(3000):
        lat = 40.0 + i * 0.001 + (0.02 if i % 2 else 0.0)
        lng = -3.0 + (i % 37) * 0.003
        coords.append((lat, lng, (i * 37) % 11000))
    return make_track(coords)
