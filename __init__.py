"""
Kml2Fpl — KML Track to Flight Plan Converter
============================================
Convert FlightAware / FlightRadar24 KML ground tracks into Garmin .fpl flight
plans that fit the simulator's 250-waypoint limit.

Quick start:
    python kml2fpl.py flight.kml              # CLI, writes flight.fpl
    python server.py                          # JSON API for the editor

Library:
    from formats import parse_track, write_fpl
    outcome = parse_track(open("flight.kml", "rb").read(), origin="EHAM", destination="KSFO")
    fpl_xml = write_fpl(outcome.waypoints)
"""

from models import TrackPoint, Waypoint, SimplificationOutcome, TrackSource, name_waypoints
from formats import (
    parse_track, read_track_file, write_fpl, save_fpl, convert,
    sniff_source, extract_track_points, EXTRACTION_STRATEGIES,
)
from simplify import clean_route, simplify_route
from airports import identify_route

__version__ = "1.0.0"
__all__ = [
    "TrackPoint", "Waypoint", "SimplificationOutcome", "TrackSource", "name_waypoints",
    "parse_track", "read_track_file", "write_fpl", "save_fpl", "convert",
    "sniff_source", "extract_track_points", "EXTRACTION_STRATEGIES",
    "clean_route", "simplify_route", "identify_route",
]
