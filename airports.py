"""
Kml2Fpl — Airport lookup
Guesses departure and arrival airports from the ends of a route.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from models import Waypoint, haversine_km

MAX_AIRPORT_DISTANCE_KM = 30.0


@dataclass(frozen=True)
class Airport:
    code: str
    name: str
    lat: float
    lng: float


# Major airports by passenger traffic
AIRPORTS: List[Airport] = [
    Airport("KATL", "Hartsfield-Jackson Atlanta International Airport", 33.6407, -84.4277),
    Airport("OMDB", "Dubai International Airport", 25.2532, 55.3657),
    Airport("KDFW", "Dallas Fort Worth International Airport", 32.8998, -97.0403),
    Airport("RJTT", "Tokyo Haneda Airport", 35.5494, 139.7798),
    Airport("EGLL", "Heathrow Airport", 51.4700, -0.4543),
    Airport("KDEN", "Denver International Airport", 39.8561, -104.6737),
    Airport("KORD", "O'Hare International Airport", 41.9742, -87.9073),
    Airport("LTFM", "Istanbul Airport", 41.2753, 28.7519),
    Airport("VIDP", "Indira Gandhi International Airport", 28.5562, 77.1000),
    Airport("ZSPD", "Shanghai Pudong International Airport", 31.1443, 121.8083),
    Airport("KLAX", "Los Angeles International Airport", 33.9416, -118.4085),
    Airport("ZBAA", "Beijing Capital International Airport", 40.0801, 116.5846),
    Airport("LFPG", "Charles de Gaulle Airport", 49.0097, 2.5479),
    Airport("EHAM", "Amsterdam Airport Schiphol", 52.3105, 4.7683),
    Airport("KSFO", "San Francisco International Airport", 37.6213, -122.3790),
    Airport("ZGGG", "Guangzhou Baiyun International Airport", 23.3924, 113.2988),
    Airport("EDDF", "Frankfurt Airport", 50.0379, 8.5622),
    Airport("KSEA", "Seattle-Tacoma International Airport", 47.4502, -122.3088),
    Airport("CYYZ", "Toronto Pearson International Airport", 43.6777, -79.6248),
    Airport("WSSS", "Singapore Changi Airport", 1.3644, 103.9915),
    Airport("RKSI", "Incheon International Airport", 37.4602, 126.4407),
    Airport("KPHX", "Phoenix Sky Harbor International Airport", 33.4342, -112.0116),
    Airport("ZUCK", "Chongqing Jiangbei International Airport", 29.7192, 106.6417),
    Airport("ZSHC", "Hangzhou Xiaoshan International Airport", 30.2295, 120.4345),
    Airport("ZSSS", "Shanghai Hongqiao International Airport", 31.1979, 121.3363),
    Airport("ZPPP", "Kunming Changshui International Airport", 25.1019, 102.9292),
    Airport("ZLXY", "Xi'an Xianyang International Airport", 34.4471, 108.7516),
    Airport("SKBO", "El Dorado International Airport", 4.7016, -74.1469),
    Airport("MMMX", "Mexico City International Airport", 19.4361, -99.0719),
    Airport("WIII", "Soekarno-Hatta International Airport", -6.1256, 106.6559),
    Airport("WMKK", "Kuala Lumpur International Airport", 2.7456, 101.7072),
    Airport("KIAH", "George Bush Intercontinental Airport", 29.9902, -95.3368),
    Airport("OTHH", "Hamad International Airport", 25.2731, 51.6085),
    Airport("RPLL", "Ninoy Aquino International Airport", 14.5086, 121.0198),
    Airport("ZUTF", "Chengdu Tianfu International Airport", 30.3139, 104.4440),
    Airport("OEJN", "King Abdulaziz International Airport", 21.6796, 39.1565),
    Airport("SBGR", "Sao Paulo/Guarulhos International Airport", -23.4356, -46.4731),
    Airport("EGKK", "Gatwick Airport", 51.1537, -0.1821),
    Airport("KBOS", "Logan International Airport", 42.3656, -71.0096),
    Airport("VVTS", "Tan Son Nhat International Airport", 10.8188, 106.6519),
    Airport("KCLT", "Charlotte Douglas International Airport", 35.2140, -80.9431),
    Airport("VHHH", "Hong Kong International Airport", 22.3080, 113.9185),
    Airport("ZGSZ", "Shenzhen Bao'an International Airport", 22.6393, 113.8107),
    Airport("KMSP", "Minneapolis-Saint Paul International Airport", 44.8848, -93.2223),
    Airport("KDTW", "Detroit Metropolitan Airport", 42.2162, -83.3554),
    Airport("RJAA", "Narita International Airport", 35.7720, 140.3929),
    Airport("LEMD", "Adolfo Suarez Madrid-Barajas Airport", 40.4983, -3.5676),
    Airport("LFPO", "Paris Orly Airport", 48.7262, 2.3652),
    Airport("EDDM", "Munich Airport", 48.3538, 11.7861),
    Airport("LIRF", "Leonardo da Vinci-Fiumicino Airport", 41.8003, 12.2389),
]


def find_closest_airport(lat: float, lng: float,
                         max_distance_km: float = MAX_AIRPORT_DISTANCE_KM) -> Optional[Airport]:
    """Nearest known airport, or None if nothing is within ``max_distance_km``."""
    best, best_dist = None, float("inf")
    for airport in AIRPORTS:
        d = haversine_km(lat, lng, airport.lat, airport.lng)
        if d < best_dist:
            best, best_dist = airport, d
    return best if best_dist < max_distance_km else None


def guess_endpoint_codes(waypoints: Sequence[Waypoint]) -> Tuple[Optional[str], Optional[str]]:
    """ICAO codes of the airports nearest to the first and last waypoint."""
    if len(waypoints) < 2:
        return None, None
    departure = find_closest_airport(waypoints[0].lat, waypoints[0].lng)
    arrival = find_closest_airport(waypoints[-1].lat, waypoints[-1].lng)
    return (departure.code if departure else None,
            arrival.code if arrival else None)


def identify_route(waypoints: Sequence[Waypoint]) -> Optional[str]:
    """``"EHAM → KSFO"`` when both ends are near a known airport."""
    origin, destination = guess_endpoint_codes(waypoints)
    if origin and destination:
        return f"{origin} → {destination}"
    return None
