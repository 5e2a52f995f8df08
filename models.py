"""
Kml2Fpl — KML Track to Flight Plan Converter
Data models: TrackPoint, Waypoint, SimplificationOutcome
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum


MAX_WAYPOINTS = 250        # Hard cap of the simulator's flight plan loader
METERS_TO_FEET = 3.28084
FEET_TO_METERS = 0.3048
COORD_PRECISION = 6


class TrackSource(Enum):
    FLIGHTAWARE = "FlightAware"
    FLIGHTRADAR24 = "FlightRadar24"
    UNKNOWN = "Unknown"


def meters_to_feet(meters: float) -> int:
    return int(round(meters * METERS_TO_FEET))


def feet_to_meters(feet: float) -> int:
    return int(round(feet * FEET_TO_METERS))


def coord_key(lat: float, lng: float) -> str:
    """Position key used for duplicate detection (6 decimals, ~0.1 m)."""
    return f"{lat:.{COORD_PRECISION}f},{lng:.{COORD_PRECISION}f}"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometers."""
    R = 6371.0  # Earth radius in km
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = math.sin(dlat / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlng / 2) ** 2
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True)
class TrackPoint:
    """One raw sample of a recorded ground track, altitude already in feet."""
    sequence_index: int
    lat: float
    lng: float
    altitude_ft: int = 0
    id: str = ""

    @property
    def key(self) -> str:
        return coord_key(self.lat, self.lng)


@dataclass
class Waypoint:
    """A named point of the output flight plan. Owned by the editor after the pipeline."""
    id: str
    name: str
    lat: float
    lng: float
    altitude_ft: int = 0
    selected: bool = False

    @classmethod
    def from_track_point(cls, pt: TrackPoint, name: str = "") -> Waypoint:
        return cls(id=pt.id, name=name, lat=pt.lat, lng=pt.lng, altitude_ft=pt.altitude_ft)

    @classmethod
    def from_dict(cls, data: dict) -> Waypoint:
        lat = float(data.get("lat", 0.0))
        lng = float(data.get("lng", 0.0))
        altitude = float(data.get("altitude", 0) or 0)
        if not all(math.isfinite(v) for v in (lat, lng, altitude)):
            raise ValueError(f"Non-finite waypoint position: {lat}, {lng}, {altitude}")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            lat=lat,
            lng=lng,
            altitude_ft=int(round(altitude)),
            selected=bool(data.get("selected", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "altitude": self.altitude_ft,
            "selected": self.selected,
        }


@dataclass
class SimplificationOutcome:
    """Result of converting one track file.

    ``explanation`` is part of the contract: it names the reduction that was
    applied and, for phase simplification, the size of each phase.
    """
    waypoints: List[Waypoint] = field(default_factory=list)
    original_count: int = 0
    explanation: str = ""
    source: TrackSource = TrackSource.UNKNOWN
    extracted_count: int = 0
    filename: str = ""
    route: Optional[str] = None

    @property
    def final_count(self) -> int:
        return len(self.waypoints)

    def __bool__(self) -> bool:
        return len(self.waypoints) > 0

    @classmethod
    def empty(cls, explanation: str, source: TrackSource = TrackSource.UNKNOWN,
              filename: str = "") -> SimplificationOutcome:
        return cls(explanation=explanation, source=source, filename=filename)

    def to_dict(self) -> dict:
        return {
            "waypoints": [wp.to_dict() for wp in self.waypoints],
            "originalCount": self.original_count,
            "simplifiedCount": self.final_count,
            "extractedCount": self.extracted_count,
            "simplificationReason": self.explanation,
            "source": self.source.value,
            "filename": self.filename,
            "route": self.route,
        }


def name_waypoints(waypoints: List[Waypoint], origin: Optional[str] = None,
                   destination: Optional[str] = None) -> List[Waypoint]:
    """
    Assign "001", "002", ... by position, then put the origin/destination
    codes on the route ends. Running it twice gives the same names.
    """
    for i, wp in enumerate(waypoints):
        wp.name = f"{i + 1:03d}"
    if origin and waypoints:
        waypoints[0].name = origin
    if destination and len(waypoints) >= 2:
        waypoints[-1].name = destination
    return waypoints
