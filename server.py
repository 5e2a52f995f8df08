#!/usr/bin/env python3
"""
Kml2Fpl — Web API
Backend for the flight plan editor: imports KML tracks and exports edited
waypoint lists as Garmin .fpl files.

Usage:
    python server.py                  # Start on port 8080
    python server.py --port 9000      # Custom port
"""

import http.server
import json
import os
import sys
import urllib.parse
import argparse
import base64
import logging

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import Waypoint, MAX_WAYPOINTS, name_waypoints
from formats import parse_track, write_fpl, fpl_filename, SOFT_FULL_NAME, _now_iso
from airports import guess_endpoint_codes, identify_route

logger = logging.getLogger(__name__)


def _code(value):
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip().upper()


def _text_field(body, key, default):
    value = body.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    value.encode("utf-8")  # UnicodeEncodeError (a ValueError) on lone surrogates
    return value


class Kml2FplHandler(http.server.BaseHTTPRequestHandler):

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path == "/api/about":
            self._send_json({"name": SOFT_FULL_NAME, "max_waypoints": MAX_WAYPOINTS})
        else:
            self.send_error(404)

    def do_POST(self):
        parsed = urllib.parse.urlparse(self.path)
        routes = {
            "/api/import": self._handle_import,
            "/api/export": self._handle_export,
        }
        handler = routes.get(parsed.path)
        if handler:
            handler()
        else:
            self.send_error(404)

    def _read_body(self):
        length = int(self.headers.get("Content-Length", 0))
        return self.rfile.read(length)

    def _send_json(self, data, status=200):
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", len(body))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def _handle_import(self):
        try:
            body = json.loads(self._read_body())
            filename = _text_field(body, "filename", "upload.kml")
            file_data = base64.b64decode(body.get("data", ""))
        except (ValueError, TypeError, AttributeError) as e:
            self._send_json({"error": f"Invalid request: {e}"}, 400)
            return

        origin, destination = _code(body.get("origin")), _code(body.get("destination"))
        outcome = parse_track(file_data, filename=filename, origin=origin, destination=destination)

        if outcome and body.get("auto_codes"):
            guessed_origin, guessed_destination = guess_endpoint_codes(outcome.waypoints)
            name_waypoints(outcome.waypoints, origin or guessed_origin, destination or guessed_destination)
        outcome.route = identify_route(outcome.waypoints)

        logger.info("imported %s: %d -> %d waypoints", filename, outcome.original_count, outcome.final_count)
        self._send_json(outcome.to_dict())

    def _handle_export(self):
        try:
            body = json.loads(self._read_body())
            waypoints = [Waypoint.from_dict(wp) for wp in body.get("waypoints", [])]
            route_name = _text_field(body, "route_name", "IMPORTED ROUTE")
            filename = _text_field(body, "filename", "")
        except (ValueError, TypeError, AttributeError) as e:
            self._send_json({"error": f"Invalid request: {e}"}, 400)
            return

        if not waypoints:
            self._send_json({"error": "No waypoints to export"}, 400)
            return

        file_data = write_fpl(waypoints, route_name=route_name, created=_now_iso()).encode("utf-8")
        self._send_json({
            "filename": fpl_filename(filename),
            "data": base64.b64encode(file_data).decode("ascii"),
            "size": len(file_data),
            "points": len(waypoints),
        })

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def log_message(self, format, *args):
        if "/api/" in str(args[0]):
            super().log_message(format, *args)


def main():
    parser = argparse.ArgumentParser(description=f"{SOFT_FULL_NAME} — Web API")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    server = http.server.HTTPServer((args.host, args.port), Kml2FplHandler)
    print(f"🛫 {SOFT_FULL_NAME} listening on http://{args.host}:{args.port}  (Ctrl+C to stop)")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n👋 Server stopped.")
        server.server_close()


if __name__ == "__main__":
    main()
