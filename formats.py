"""
Kml2Fpl — Track readers & flight plan writer

Read:  KML ground tracks exported by FlightAware (gx:Track / gx:coord) and
       FlightRadar24 (LineString), with generic Placemark / coordinates fallbacks
Write: Garmin flight plan (.fpl, FlightPlan/v1 schema)
"""

from __future__ import annotations
import logging
import math
import re
import xml.etree.ElementTree as ET
from xml.dom import minidom
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from models import (
    TrackPoint, TrackSource, Waypoint, SimplificationOutcome,
    MAX_WAYPOINTS, meters_to_feet, feet_to_meters, name_waypoints,
)
from simplify import clean_route, simplify_route

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

SOFT_NAME = "Kml2Fpl"
SOFT_VERSION = "1.0"
SOFT_FULL_NAME = f"{SOFT_NAME} v{SOFT_VERSION}"


def _safe_float(s: str, default: float = 0.0) -> float:
    try:
        value = float(s.strip())
    except (ValueError, TypeError, AttributeError):
        return default
    return value if math.isfinite(value) else default


def _xml_prettify(root: ET.Element) -> str:
    rough = ET.tostring(root, encoding="unicode", xml_declaration=True)
    return minidom.parseString(rough).toprettyxml(indent="  ", encoding=None)


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


# ─────────────────────────────────────────────────────────────
# KML document access
# ─────────────────────────────────────────────────────────────

_KML_GX_NS = "http://www.google.com/kml/ext/2.2"
FLIGHTAWARE_TOKEN = "FlightAware"


class KmlDocument:
    """Element lookups the extractors need, independent of KML namespace version."""

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def from_string(cls, data: Union[str, bytes]) -> KmlDocument:
        return cls(ET.fromstring(data))

    @staticmethod
    def descendants(elem: ET.Element, name: str) -> List[ET.Element]:
        """All elements below ``elem`` with the given local name, any namespace."""
        return [e for e in elem.iter() if e is not elem and _local(e.tag) == name]

    def title(self) -> str:
        names = self.descendants(self.root, "name")
        return (names[0].text or "").strip() if names else ""

    def find_extended_tracks(self) -> List[ET.Element]:
        return list(self.root.iter(f"{{{_KML_GX_NS}}}Track"))

    @staticmethod
    def extended_coords(track: ET.Element) -> List[ET.Element]:
        return list(track.iter(f"{{{_KML_GX_NS}}}coord"))

    def find_line_geometries(self) -> List[ET.Element]:
        return [e for e in self.root.iter() if _local(e.tag) == "LineString"]

    def find_generic_placemarks(self) -> List[ET.Element]:
        return [e for e in self.root.iter() if _local(e.tag) == "Placemark"]

    def find_any_coordinate_lists(self) -> List[ET.Element]:
        return [e for e in self.root.iter() if _local(e.tag) == "coordinates"]


def sniff_source(doc: KmlDocument) -> TrackSource:
    """Guess which tracking service exported the file."""
    has_gx_coords = any(doc.extended_coords(t) for t in doc.find_extended_tracks())
    if has_gx_coords or FLIGHTAWARE_TOKEN in doc.title():
        return TrackSource.FLIGHTAWARE
    if doc.find_line_geometries():
        return TrackSource.FLIGHTRADAR24
    return TrackSource.UNKNOWN


# ─────────────────────────────────────────────────────────────
# Coordinate extraction
# ─────────────────────────────────────────────────────────────

class _PointBuilder:
    """Numbers points across every source element of one document."""

    def __init__(self):
        self.points: List[TrackPoint] = []

    def add(self, lng: float, lat: float, alt_m: float, tag: str, element_index: int):
        seq = len(self.points)
        self.points.append(TrackPoint(
            sequence_index=seq,
            lat=lat,
            lng=lng,
            altitude_ft=meters_to_feet(alt_m),
            id=f"{tag}-{element_index}-{seq}",
        ))

    def add_comma_triple(self, token: str, tag: str, element_index: int):
        """Parse ``lon,lat[,alt_m]``; entries without numeric lon/lat are skipped."""
        parts = token.strip().split(",")
        if len(parts) < 2:
            return
        lng = _safe_float(parts[0], math.nan)
        lat = _safe_float(parts[1], math.nan)
        if math.isnan(lng) or math.isnan(lat):
            return
        alt = _safe_float(parts[2]) if len(parts) >= 3 else 0.0
        self.add(lng, lat, alt, tag, element_index)

    def add_coordinate_list(self, text: Optional[str], tag: str, element_index: int):
        for token in (text or "").split():
            self.add_comma_triple(token, tag, element_index)


def _first_text(elem: ET.Element, name: str) -> Optional[str]:
    found = KmlDocument.descendants(elem, name)
    return found[0].text if found else None


def _read_flightaware(doc: KmlDocument, builder: _PointBuilder):
    # gx:coord is "lon lat alt", whitespace separated only
    for i, track in enumerate(doc.find_extended_tracks()):
        for coord in doc.extended_coords(track):
            parts = (coord.text or "").split()
            if len(parts) >= 2:
                builder.add_comma_triple(",".join(parts), "fa", i)


def _read_linestrings(doc: KmlDocument, builder: _PointBuilder):
    for i, line in enumerate(doc.find_line_geometries()):
        builder.add_coordinate_list(_first_text(line, "coordinates"), "line", i)


def _read_placemarks(doc: KmlDocument, builder: _PointBuilder):
    for i, pm in enumerate(doc.find_generic_placemarks()):
        builder.add_coordinate_list(_first_text(pm, "coordinates"), "pm", i)
        for j, track in enumerate(KmlDocument.descendants(pm, "Track")):
            for coord in KmlDocument.descendants(track, "coord"):
                token = re.sub(r"\s+", ",", (coord.text or "").strip())
                builder.add_comma_triple(token, "pmtrk", i * 1000 + j)


def _read_any_coordinates(doc: KmlDocument, builder: _PointBuilder):
    for i, coords in enumerate(doc.find_any_coordinate_lists()):
        builder.add_coordinate_list(coords.text, "any", i)


@dataclass
class ExtractionStrategy:
    """One way of pulling track points out of a KML document."""
    name: str
    reader: Callable[[KmlDocument, _PointBuilder], None]


# Tried in order until one yields points
EXTRACTION_STRATEGIES: List[ExtractionStrategy] = [
    ExtractionStrategy("flightaware", _read_flightaware),
    ExtractionStrategy("linestring",  _read_linestrings),
    ExtractionStrategy("placemark",   _read_placemarks),
    ExtractionStrategy("coordinates", _read_any_coordinates),
]


def extract_track_points(doc: KmlDocument) -> Tuple[List[TrackPoint], Optional[str]]:
    """Run the extraction chain. Returns the points and the strategy that found them."""
    builder = _PointBuilder()
    for strategy in EXTRACTION_STRATEGIES:
        strategy.reader(doc, builder)
        if builder.points:
            logger.info("Extracted %d points with the %s strategy", len(builder.points), strategy.name)
            return builder.points, strategy.name
        logger.debug("No points from the %s strategy", strategy.name)
    return [], None


# ─────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────

NO_WAYPOINTS_REASON = "No valid waypoints found in KML file"


def parse_track(data: Union[str, bytes], filename: str = "", origin: Optional[str] = None,
                destination: Optional[str] = None,
                max_waypoints: int = MAX_WAYPOINTS) -> SimplificationOutcome:
    """
    Convert KML text into at most ``max_waypoints`` named waypoints.

    Never raises for bad input: unparseable XML and files without usable
    coordinates come back as an empty outcome with an explanation.
    """
    try:
        doc = KmlDocument.from_string(data)
    except (ET.ParseError, UnicodeError) as e:
        logger.warning("Could not parse %s: %s", filename or "KML input", e)
        return SimplificationOutcome.empty(f"Error parsing KML file: {e}", filename=filename)

    source = sniff_source(doc)
    logger.info("Detected %s KML format", source.value)

    raw, _ = extract_track_points(doc)
    if not raw:
        return SimplificationOutcome.empty(NO_WAYPOINTS_REASON, source, filename)

    cleaned = clean_route(raw)
    logger.info("After cleaning: %d of %d points", len(cleaned), len(raw))

    kept, explanation = simplify_route(cleaned, max_waypoints)
    waypoints = name_waypoints([Waypoint.from_track_point(p) for p in kept], origin, destination)

    return SimplificationOutcome(
        waypoints=waypoints,
        original_count=len(cleaned),
        explanation=explanation,
        source=source,
        extracted_count=len(raw),
        filename=filename,
    )


def read_track_file(filepath: str, **opts) -> SimplificationOutcome:
    """Read a .kml file from disk and run it through the pipeline."""
    path = Path(filepath)
    if path.suffix.lower() != ".kml":
        raise ValueError(f"Unsupported input format: {path.suffix or '(none)'}\nSupported: .kml")
    with open(path, "rb") as f:
        data = f.read()
    return parse_track(data, filename=path.name, **opts)


# ─────────────────────────────────────────────────────────────
# FPL (Garmin flight plan) - .fpl
# ─────────────────────────────────────────────────────────────

_FPL_NS = "http://www8.garmin.com/xmlschemas/FlightPlan/v1"
FPL_WAYPOINT_TYPE = "USER WAYPOINT"


def write_fpl(waypoints: List[Waypoint], route_name: str = "IMPORTED ROUTE",
              created: Optional[str] = None) -> str:
    """Render a Garmin flight plan. An empty waypoint list gives an empty string."""
    if not waypoints:
        return ""

    root = ET.Element("flight-plan")
    root.set("xmlns", _FPL_NS)
    if created:
        ET.SubElement(root, "created").text = created

    table = ET.SubElement(root, "waypoint-table")
    for wp in waypoints:
        el = ET.SubElement(table, "waypoint")
        ET.SubElement(el, "identifier").text = wp.name
        ET.SubElement(el, "type").text = FPL_WAYPOINT_TYPE
        ET.SubElement(el, "lat").text = f"{wp.lat:.6f}"
        ET.SubElement(el, "lon").text = f"{wp.lng:.6f}"
        if wp.altitude_ft != 0:
            # Waypoints carry feet, the schema wants meters
            ET.SubElement(el, "elevation").text = str(feet_to_meters(wp.altitude_ft))

    route = ET.SubElement(root, "route")
    ET.SubElement(route, "route-name").text = route_name
    ET.SubElement(route, "flight-plan-index").text = "1"
    for wp in waypoints:
        rp = ET.SubElement(route, "route-point")
        ET.SubElement(rp, "waypoint-identifier").text = wp.name
        ET.SubElement(rp, "waypoint-type").text = FPL_WAYPOINT_TYPE
        ET.SubElement(rp, "waypoint-country-code").text = ""

    return _xml_prettify(root)


def save_fpl(filepath: str, waypoints: List[Waypoint], **kwargs):
    """Write a Garmin .fpl file."""
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(write_fpl(waypoints, **kwargs))


def fpl_filename(source_name: str = "") -> str:
    """Export name for an imported track: ``route.kml`` -> ``route.fpl``."""
    stem = Path(source_name).stem if source_name else ""
    return f"{stem}.fpl" if stem else "flightplan.fpl"


def convert(input_path: str, output_path: Optional[str] = None, created: Optional[str] = None,
            route_name: str = "IMPORTED ROUTE", **opts) -> SimplificationOutcome:
    """Convert a KML track file into a flight plan file next to it (or at ``output_path``)."""
    outcome = read_track_file(input_path, **opts)
    if not outcome:
        raise ValueError(f"{outcome.explanation}: {input_path}")

    if output_path is None:
        output_path = str(Path(input_path).with_name(fpl_filename(outcome.filename)))
    save_fpl(output_path, outcome.waypoints, route_name=route_name, created=created or _now_iso())
    return outcome
