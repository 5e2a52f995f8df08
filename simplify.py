"""
Kml2Fpl — Route cleaning & simplification

Shrinks a recorded track to the simulator's waypoint cap while keeping the
route shape and the points that matter to a pilot (turns, climbs, descents):

  clean_route            duplicate removal + loop breaking
  select_critical_points turn / altitude-change scoring
  douglas_peucker        perpendicular-distance reduction at a fixed tolerance
  reduce_to_target       tolerance escalation until a point budget is met
  sample_evenly          index sampling to an exact count
  simplify_route         departure / en-route / arrival budgets + fallbacks
"""

from __future__ import annotations
import logging
import math
from typing import List, Sequence, Tuple

from models import TrackPoint, MAX_WAYPOINTS

logger = logging.getLogger(__name__)

PHASE_FRACTION = 0.2       # departure and arrival each take 20% of the route
MIN_PHASE_BUDGET = 10
CRITICAL_SHARE = 0.3       # share of a phase budget reserved for critical points
EDGE_FRACTION = 0.05       # verbatim head/tail kept by the coarse fallback
INITIAL_TOLERANCE = 1e-5   # degrees
MAX_TOLERANCE = 1.0
MAX_ITERATIONS = 20
ALTITUDE_SCALE_FT = 10000.0


# ─────────────────────────────────────────────────────────────
# Route cleaning
# ─────────────────────────────────────────────────────────────

def remove_duplicates(points: Sequence[TrackPoint]) -> List[TrackPoint]:
    """Keep the first occurrence of every position."""
    seen = set()
    unique = []
    for p in points:
        if p.key not in seen:
            seen.add(p.key)
            unique.append(p)
    return unique


def segment_key(a: TrackPoint, b: TrackPoint) -> str:
    """Direction-independent key of the leg between two points."""
    first, second = sorted((a, b), key=lambda p: (p.lat, p.lng))
    return f"{first.key}-{second.key}"


def break_loops(points: Sequence[TrackPoint]) -> List[TrackPoint]:
    """
    Drop points that would fly a leg a second time (in either direction).
    The last point is always kept.
    """
    if len(points) <= 3:
        return list(points)

    kept = [points[0]]
    visited = set()
    for p in points[1:]:
        key = segment_key(kept[-1], p)
        if key not in visited:
            visited.add(key)
            kept.append(p)

    if kept[-1] is not points[-1]:
        kept.append(points[-1])
    return kept


def clean_route(points: Sequence[TrackPoint]) -> List[TrackPoint]:
    return break_loops(remove_duplicates(points))


# ─────────────────────────────────────────────────────────────
# Critical points
# ─────────────────────────────────────────────────────────────

def _heading(a: TrackPoint, b: TrackPoint) -> float:
    return math.atan2(b.lat - a.lat, b.lng - a.lng)


def turn_angle(prev: TrackPoint, curr: TrackPoint, nxt: TrackPoint) -> float:
    """Change of heading at ``curr``, in radians within [0, pi]."""
    angle = abs(_heading(curr, nxt) - _heading(prev, curr))
    if angle > math.pi:
        angle = 2 * math.pi - angle
    return angle


def importance(prev: TrackPoint, curr: TrackPoint, nxt: TrackPoint) -> float:
    alt_delta = abs(nxt.altitude_ft - prev.altitude_ft)
    return turn_angle(prev, curr, nxt) / math.pi + alt_delta / ALTITUDE_SCALE_FT


def select_critical_points(points: Sequence[TrackPoint], max_points: int) -> List[TrackPoint]:
    """
    Endpoints plus the ``max_points - 2`` interior points with the sharpest
    turns / largest altitude changes, in track order.
    """
    if len(points) <= 2:
        return list(points)
    if max_points <= 2:
        return [points[0], points[-1]]

    scored = [
        (importance(points[i - 1], points[i], points[i + 1]), points[i])
        for i in range(1, len(points) - 1)
    ]
    scored.sort(key=lambda s: s[0], reverse=True)

    chosen = [points[0], points[-1]] + [p for _, p in scored[:max_points - 2]]
    return sorted(chosen, key=lambda p: p.sequence_index)


# ─────────────────────────────────────────────────────────────
# Perpendicular-distance reduction
# ─────────────────────────────────────────────────────────────

def _perpendicular_distance(pt: TrackPoint, line_start: TrackPoint, line_end: TrackPoint) -> float:
    """
    Distance from a point to the line through two others, in degrees of the
    (lng, lat) plane. Only ever compared with a tolerance in the same units.
    """
    x, y = pt.lng, pt.lat
    x1, y1 = line_start.lng, line_start.lat
    x2, y2 = line_end.lng, line_end.lat

    if x1 == x2 and y1 == y2:
        return math.hypot(x - x1, y - y1)

    numerator = abs((y2 - y1) * x - (x2 - x1) * y + x2 * y1 - y2 * x1)
    return numerator / math.hypot(y2 - y1, x2 - x1)


def douglas_peucker(points: Sequence[TrackPoint], tolerance: float) -> List[TrackPoint]:
    """
    Douglas-Peucker simplification at a fixed tolerance.

    Iterative implementation to avoid recursion limits on huge tracks.
    """
    n = len(points)
    if n < 3:
        return list(points)

    keep = [False] * n
    keep[0] = True
    keep[n - 1] = True

    stack = [(0, n - 1)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue

        max_dist = 0.0
        max_idx = start
        for i in range(start + 1, end):
            d = _perpendicular_distance(points[i], points[start], points[end])
            if d > max_dist:
                max_dist = d
                max_idx = i

        if max_dist > tolerance:
            keep[max_idx] = True
            stack.append((start, max_idx))
            stack.append((max_idx, end))

    return [p for i, p in enumerate(points) if keep[i]]


def sample_evenly(points: Sequence[TrackPoint], target: int) -> List[TrackPoint]:
    """Exactly ``target`` points picked at even index steps, endpoints included."""
    if len(points) <= target:
        return list(points)
    if target <= 0:
        return []
    if target == 1:
        return [points[0]]

    step = len(points) / target
    result = [points[0]]
    for i in range(1, target - 1):
        result.append(points[min(int(math.floor(i * step)), len(points) - 1)])
    result.append(points[-1])
    return result


def reduce_to_target(points: Sequence[TrackPoint], target: int) -> List[TrackPoint]:
    """
    Auto-tunes the Douglas-Peucker tolerance (doubling from 1e-5) until at
    most ``target`` points remain; falls back to even sampling otherwise.
    """
    if len(points) <= 2 or target >= len(points):
        return list(points)

    tolerance = INITIAL_TOLERANCE
    simplified = list(points)
    iterations = 0
    while len(simplified) > target and tolerance < MAX_TOLERANCE and iterations < MAX_ITERATIONS:
        simplified = douglas_peucker(points, tolerance)
        tolerance *= 2
        iterations += 1

    if len(simplified) > target:
        logger.debug("tolerance escalation stopped at %d points, sampling down to %d",
                     len(simplified), target)
        return sample_evenly(simplified, target)
    return simplified


# ─────────────────────────────────────────────────────────────
# Phase partitioning
# ─────────────────────────────────────────────────────────────

def phase_budgets(max_waypoints: int = MAX_WAYPOINTS) -> Tuple[int, int, int]:
    """(departure, en-route, arrival) point budgets."""
    edge = max(int(max_waypoints * PHASE_FRACTION), MIN_PHASE_BUDGET)
    if 2 * edge > max_waypoints:
        raise ValueError(f"max_waypoints must be at least {2 * MIN_PHASE_BUDGET}, got {max_waypoints}")
    return edge, max_waypoints - 2 * edge, edge


def _simplify_terminal_phase(segment: List[TrackPoint], budget: int) -> List[TrackPoint]:
    """Departure/arrival: critical points first, then shape-preserving reduction."""
    if len(segment) <= budget:
        return segment
    critical = select_critical_points(segment, int(budget * CRITICAL_SHARE))
    critical_ids = {p.id for p in critical}
    rest = [p for p in segment if p.id not in critical_ids]
    reduced = reduce_to_target(rest, budget - len(critical))
    return sorted(critical + reduced, key=lambda p: p.sequence_index)


def _simplify_phases(points: List[TrackPoint], max_waypoints: int) -> Tuple[List[TrackPoint], str]:
    n = len(points)
    dep_budget, enr_budget, arr_budget = phase_budgets(max_waypoints)
    logger.info("Simplification targets: departure=%d, en-route=%d, arrival=%d",
                dep_budget, enr_budget, arr_budget)

    head = int(n * PHASE_FRACTION)
    tail = int(n * (1 - PHASE_FRACTION))
    departure = _simplify_terminal_phase(points[:head], dep_budget)
    en_route = points[head:tail]
    if len(en_route) > enr_budget:
        en_route = reduce_to_target(en_route, enr_budget)
    arrival = _simplify_terminal_phase(points[tail:], arr_budget)

    result = []
    seen_ids = set()
    for p in departure + en_route + arrival:
        if p.id not in seen_ids:
            seen_ids.add(p.id)
            result.append(p)

    if points[0].id not in seen_ids:
        result.insert(0, points[0])
    if points[-1].id not in seen_ids:
        result.append(points[-1])

    explanation = (f"Simplified from {n} to {len(result)} waypoints, preserving "
                   f"departure ({len(departure)}), en-route ({len(en_route)}), "
                   f"and arrival ({len(arrival)}) segments")
    return result, explanation


def _coarse_simplify(points: List[TrackPoint], max_waypoints: int) -> Tuple[List[TrackPoint], str]:
    n = len(points)
    edge = min(int(n * EDGE_FRACTION), int(max_waypoints * EDGE_FRACTION))
    first = points[:edge]
    last = points[n - edge:] if edge else []
    middle = sample_evenly(points[edge:n - edge], max_waypoints - len(first) - len(last))
    result = first + middle + last
    return result, (f"Fallback simplification from {n} to {len(result)} waypoints, "
                    f"preserving start and end segments")


def _emergency_simplify(points: List[TrackPoint], max_waypoints: int) -> Tuple[List[TrackPoint], str]:
    result = sample_evenly(points, max_waypoints)
    return result, (f"Emergency fallback simplification from {len(points)} to {len(result)} "
                    f"waypoints using evenly spaced selection")


def simplify_route(points: Sequence[TrackPoint],
                   max_waypoints: int = MAX_WAYPOINTS) -> Tuple[List[TrackPoint], str]:
    """
    Reduce a cleaned route to at most ``max_waypoints`` points.

    Returns the kept points in track order and a human-readable explanation
    of the reduction. A failure of the phase simplifier drops to a coarse
    head/middle/tail sampler, and that one to plain even sampling.
    """
    points = list(points)
    n = len(points)
    if n <= max_waypoints:
        return points, f"No simplification needed ({max_waypoints} or fewer waypoints)"

    phase_budgets(max_waypoints)  # rejects caps too small for two terminal phases

    try:
        return _simplify_phases(points, max_waypoints)
    except Exception:
        logger.warning("phase simplification failed, using fallback", exc_info=True)

    try:
        return _coarse_simplify(points, max_waypoints)
    except Exception:
        logger.warning("fallback simplification failed, using emergency sampling", exc_info=True)

    return _emergency_simplify(points, max_waypoints)
