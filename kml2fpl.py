#!/usr/bin/env python3
"""
Kml2Fpl — KML Track to Flight Plan Converter
=============================================
Turn a FlightAware / FlightRadar24 KML track into a Garmin .fpl flight plan
of at most 250 waypoints.

Usage:
    python kml2fpl.py flight.kml                          # → flight.fpl
    python kml2fpl.py flight.kml plan.fpl                 # Explicit output
    python kml2fpl.py flight.kml --origin EHAM --destination KSFO
    python kml2fpl.py flight.kml --auto-codes             # Guess airports from the ends
    python kml2fpl.py --info flight.kml                   # Show track info only
"""

from __future__ import annotations
import argparse
import logging
import sys
import os
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import SimplificationOutcome, MAX_WAYPOINTS, haversine_km, name_waypoints
from formats import read_track_file, save_fpl, fpl_filename, SOFT_FULL_NAME, _now_iso
from airports import guess_endpoint_codes, identify_route


def format_distance(km: float) -> str:
    """Format distance in human-readable form."""
    if km >= 1:
        return f"{km:.1f} km"
    return f"{km * 1000:.0f} m"


def route_distance_km(outcome: SimplificationOutcome) -> float:
    wps = outcome.waypoints
    return sum(haversine_km(a.lat, a.lng, b.lat, b.lng) for a, b in zip(wps, wps[1:]))


def show_info(outcome: SimplificationOutcome, filepath: str = ""):
    """Display information about a converted track."""
    if filepath:
        print(f"\n📁 File: {filepath}")
    print(f"   Source: {outcome.source.value}")
    print(f"   Extracted points: {outcome.extracted_count}")
    print(f"   After cleaning:   {outcome.original_count}")
    print(f"   Waypoints:        {outcome.final_count}")
    print(f"   {outcome.explanation}")

    if outcome:
        print(f"   Distance: {format_distance(route_distance_km(outcome))}")
        first = outcome.waypoints[0]
        last = outcome.waypoints[-1]
        print(f"   Start: {first.lat:.6f}, {first.lng:.6f}  {first.name}")
        if outcome.final_count > 1:
            print(f"   End:   {last.lat:.6f}, {last.lng:.6f}  {last.name}")
        route = identify_route(outcome.waypoints)
        if route:
            print(f"   Route: {route}")


def _code(value):
    return value.strip().upper() if value and value.strip() else None


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="kml2fpl",
        description=f"{SOFT_FULL_NAME} — KML track to flight plan converter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s flight.kml                         Write flight.fpl next to the input
  %(prog)s flight.kml plan.fpl                Write plan.fpl
  %(prog)s flight.kml --origin EHAM --destination KSFO
  %(prog)s flight.kml --auto-codes            Name the ends after nearby airports
  %(prog)s --info flight.kml                  Show track information
        """)

    parser.add_argument("input", help="Input KML track")
    parser.add_argument("output", nargs="?", help="Output .fpl file (default: <input>.fpl)")
    parser.add_argument("--origin", help="Departure airport code for the first waypoint")
    parser.add_argument("--destination", help="Arrival airport code for the last waypoint")
    parser.add_argument("--auto-codes", action="store_true",
                        help="Guess origin/destination from the nearest known airports")
    parser.add_argument("--max-waypoints", type=int, default=MAX_WAYPOINTS,
                        help=f"Waypoint limit of the flight plan (default: {MAX_WAYPOINTS})")
    parser.add_argument("--route-name", default="IMPORTED ROUTE", help="Route name stored in the plan")
    parser.add_argument("--info", action="store_true", help="Show track info")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    origin, destination = _code(args.origin), _code(args.destination)

    try:
        outcome = read_track_file(args.input, origin=origin, destination=destination,
                                  max_waypoints=args.max_waypoints)
    except (OSError, ValueError) as e:
        print(f"❌ Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    if not outcome:
        print(f"❌ {outcome.explanation}: {args.input}", file=sys.stderr)
        return 1

    if args.auto_codes:
        guessed_origin, guessed_destination = guess_endpoint_codes(outcome.waypoints)
        name_waypoints(outcome.waypoints, origin or guessed_origin, destination or guessed_destination)
        if args.verbose:
            print(f"   🛫 Origin: {origin or guessed_origin or '-'}  "
                  f"🛬 Destination: {destination or guessed_destination or '-'}")

    if args.verbose or args.info:
        show_info(outcome, args.input)

    if args.info and not args.output:
        return 0

    output_path = args.output or str(Path(args.input).with_name(fpl_filename(outcome.filename)))
    try:
        save_fpl(output_path, outcome.waypoints, route_name=args.route_name, created=_now_iso())
    except OSError as e:
        print(f"❌ Error writing {output_path}: {e}", file=sys.stderr)
        return 1

    print(f"✅ Converted → {output_path} ({outcome.final_count} waypoints "
          f"from {outcome.original_count} track points)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
