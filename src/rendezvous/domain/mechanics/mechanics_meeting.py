# rendezvous/domain/mechanics/mechanics_meeting.py
from dataclasses import dataclass

from rendezvous.config.models import GeometryModel
from rendezvous.domain.entities.geography import Coordinate, NamedWaypoint, RouteSegment
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.mechanics.mechanics_geometry import (
    distance_m,
    find_all_shared_runs,
    find_common_waypoint,
    is_near_path,
    nearest_path_index,
)
from rendezvous.domain.state import MeetingSource


@dataclass(frozen=True)
class MeetingCandidate:
    coord: Coordinate
    source: MeetingSource
    name: str | None = None  # set when the match came from a named waypoint


def _waypoint_near_path(
    waypoints: tuple[NamedWaypoint, ...], path, radius_m: float
) -> MeetingCandidate | None:
    for w in waypoints:
        if is_near_path(w.coord, path, radius_m):
            return MeetingCandidate(w.coord, "proximity", w.name)
    return None


def _walk_point_near_path(walk_path, car_path, radius_m: float, stride: int):
    for i in range(0, len(walk_path), stride):
        p = walk_path[i]
        if is_near_path(p, car_path, radius_m):
            # meet on the car's road, not on the sidewalk point
            return MeetingCandidate(car_path[nearest_path_index(car_path, p)], "proximity")
    return None


def _proximity(a: Traveler, a_route, b: Traveler, b_route, cfg: GeometryModel):
    modes = (a.mode, b.mode)
    r = cfg.meeting_radius_m
    if modes == (TravelMode.CAR, TravelMode.TRANSIT):
        return _waypoint_near_path(b_route.waypoints, a_route.points, r)
    if modes == (TravelMode.TRANSIT, TravelMode.CAR):
        return _waypoint_near_path(a_route.waypoints, b_route.points, r)
    if modes == (TravelMode.CAR, TravelMode.WALK):
        return _walk_point_near_path(b_route.points, a_route.points, r, cfg.walk_sample_stride)
    if modes == (TravelMode.WALK, TravelMode.CAR):
        return _walk_point_near_path(a_route.points, b_route.points, r, cfg.walk_sample_stride)
    return None


def find_meeting_point(
    a: Traveler,
    a_route: RouteSegment,
    b: Traveler,
    b_route: RouteSegment,
    cfg: GeometryModel,
) -> MeetingCandidate | None:
    """
    Where could a and b plausibly meet en route? Priority:
      1) a named waypoint both routes pass (normalized name match)
      2) mode proximity: car<->transit stop, car<->walking path within meeting_radius_m
      3) start of the first shared run of the two full paths
    """
    common = find_common_waypoint(a_route.waypoints, b_route.waypoints)
    if common is not None:
        return MeetingCandidate(common.coord, "waypoint", common.name)

    near = _proximity(a, a_route, b, b_route, cfg)
    if near is not None:
        return near

    runs = find_all_shared_runs(
        [a_route.points, b_route.points],
        tolerance_m=cfg.shared_run_tolerance_m,
        angle_tolerance_deg=cfg.shared_run_angle_deg,
        lookahead=cfg.shared_run_lookahead,
        min_points=cfg.shared_run_min_points,
    )
    if runs:
        return MeetingCandidate(runs[0][0], "shared_run")
    return None


def outside_destination_guard(
    coord: Coordinate, destination: Coordinate | None, cfg: GeometryModel
) -> bool:
    """False when the meeting would happen at the destination's doorstep."""
    if destination is None:
        return False
    return distance_m(coord, destination) > cfg.destination_guard_m
