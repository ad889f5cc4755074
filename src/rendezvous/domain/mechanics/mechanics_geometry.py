# rendezvous/domain/mechanics/mechanics_geometry.py
"""
Stateless spatial primitives: distance, bearing, nearest-point search, station-name
normalization, shared-run detection and time interpolation along a path.

Every function here is pure; paths are sequences of Coordinate ordered start -> end.
"""

import math
import re
from collections.abc import Iterable, Sequence

import numpy as np

from rendezvous.domain.entities.geography import Coordinate, NamedWaypoint

EARTH_RADIUS_M = 6_371_000.0
NOT_FOUND = -1

_PAREN_RE = re.compile(r"\(.*?\)")
_WS_RE = re.compile(r"\s+")
# localized "station" suffixes: Korean provider data and English names
_STATION_SUFFIX_RE = re.compile(r"(역|station)$")


# ---------------- distance / bearing ----------------


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance in metres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def distances_m(path: Sequence[Coordinate], target: Coordinate) -> np.ndarray:
    """Vectorised haversine from every path point to target."""
    if not path:
        return np.empty(0, dtype=float)
    arr = np.asarray([(p.lat, p.lon) for p in path], dtype=float)
    lat1 = np.radians(arr[:, 0])
    lat2 = math.radians(target.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(target.lon) - np.radians(arr[:, 1])
    h = np.sin(d_lat / 2) ** 2 + np.cos(lat1) * math.cos(lat2) * np.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def bearing_deg(p: Coordinate, q: Coordinate) -> float:
    """Initial bearing from p to q in [0, 360)."""
    lat1, lat2 = math.radians(p.lat), math.radians(q.lat)
    d_lon = math.radians(q.lon - p.lon)
    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def angle_diff_deg(a: float, b: float) -> float:
    """Minimal angular difference in [0, 180]."""
    diff = abs(a - b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


# ---------------- names ----------------


def normalize_station_name(raw: str | None) -> str:
    """
    Canonical form of a stop name so that independent providers agree:
    "Seoul Station (Line 1)" -> "seoul", "강남역" -> "강남".
    """
    if raw is None or not raw.strip():
        return ""
    s = _PAREN_RE.sub("", raw)
    s = _WS_RE.sub("", s).lower().strip()
    return _STATION_SUFFIX_RE.sub("", s)


def find_common_waypoint(
    list_a: Iterable[NamedWaypoint], list_b: Iterable[NamedWaypoint]
) -> NamedWaypoint | None:
    """First waypoint of B whose normalized name also appears in A."""
    names_a = {n for n in (normalize_station_name(w.name) for w in list_a) if n}
    for wb in list_b:
        nb = normalize_station_name(wb.name)
        if nb and nb in names_a:
            return wb
    return None


# ---------------- path search ----------------


def is_near_path(point: Coordinate, path: Sequence[Coordinate], radius_m: float) -> bool:
    if point.is_unset or not path:
        return False
    return bool((distances_m(path, point) <= radius_m).any())


def nearest_path_index(path: Sequence[Coordinate], target: Coordinate) -> int:
    """Index of the path point closest to target; NOT_FOUND for an empty path."""
    if not path:
        return NOT_FOUND
    # argmin returns the first occurrence on ties
    return int(np.argmin(distances_m(path, target)))


def estimate_elapsed_s(
    path: Sequence[Coordinate],
    target_index: int,
    total_distance_m: float,
    total_duration_s: int,
) -> int:
    """
    Seconds from path start to path[target_index], assuming uniform speed.
    Providers only report aggregate distance/duration, so time is spread
    proportionally to distance travelled along the polyline.
    """
    if not path or target_index <= 0 or total_distance_m <= 0:
        return 0
    if target_index >= len(path) - 1:
        return int(total_duration_s)

    partial = sum(distance_m(path[i], path[i + 1]) for i in range(target_index))
    ratio = min(1.0, max(0.0, partial / float(total_distance_m)))
    return int(total_duration_s * ratio)


# ---------------- shared runs ----------------


def find_shared_runs(
    path_a: Sequence[Coordinate],
    path_b: Sequence[Coordinate],
    tolerance_m: float = 30.0,
    angle_tolerance_deg: float = 45.0,
    *,
    lookahead: int = 5,
    min_points: int = 6,
) -> list[list[Coordinate]]:
    """
    Maximal runs of path_a that travel together with path_b (same road, same heading),
    as opposed to merely crossing it. Runs shorter than min_points are dropped.
    """
    runs: list[list[Coordinate]] = []
    if not path_a or not path_b:
        return runs

    last_b = len(path_b) - 1
    i = 0
    while i < len(path_a):
        near = np.flatnonzero(distances_m(path_b, path_a[i]) <= tolerance_m)
        if near.size == 0:
            i += 1
            continue

        run = [path_a[i]]
        ia, jb = i, int(near[0])
        while ia + 1 < len(path_a):
            next_a = path_a[ia + 1]
            window = range(jb + 1, min(last_b, jb + lookahead) + 1)
            if not window:
                break
            best_j = min(window, key=lambda j: distance_m(next_a, path_b[j]))

            if distance_m(next_a, path_b[best_j]) > tolerance_m:
                break
            heading_a = bearing_deg(run[-1], next_a)
            heading_b = bearing_deg(path_b[jb], path_b[best_j])
            if angle_diff_deg(heading_a, heading_b) > angle_tolerance_deg:
                break

            run.append(next_a)
            ia += 1
            jb = best_j

        if len(run) >= min_points:
            runs.append(run)
        i = ia + 1
    return runs


def find_all_shared_runs(
    paths: Sequence[Sequence[Coordinate]], **kw
) -> list[list[Coordinate]]:
    """find_shared_runs over every unordered pair (i < j), concatenated in pair order."""
    out: list[list[Coordinate]] = []
    for i in range(len(paths) - 1):
        for j in range(i + 1, len(paths)):
            out.extend(find_shared_runs(paths[i], paths[j], **kw))
    return out
