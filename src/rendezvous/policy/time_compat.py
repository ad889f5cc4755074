# rendezvous/policy/time_compat.py
from rendezvous.app.protocols import TimeCompatibilityPolicy
from rendezvous.domain.entities.geography import Coordinate, RouteSegment
from rendezvous.domain.entities.traveler import Traveler
from rendezvous.domain.mechanics.mechanics_geometry import (
    NOT_FOUND,
    estimate_elapsed_s,
    nearest_path_index,
)


def elapsed_to(route: RouteSegment, coord: Coordinate) -> int:
    idx = nearest_path_index(route.points, coord)
    if idx == NOT_FOUND:
        return 0
    return estimate_elapsed_s(route.points, idx, route.distance_m, route.duration_s)


class AlwaysCompatiblePolicy(TimeCompatibilityPolicy):
    """
    Approves every spatial match. The slower traveler is expected to leave early
    and wait; lateness is reported in the itinerary instead of blocking the match.
    """

    def compatible(self, pivot, pivot_route, candidate, candidate_route, meeting) -> bool:
        return True


class MaxWaitCompatiblePolicy(TimeCompatibilityPolicy):
    """Both leave at the same time; arrivals at the meeting point may differ by at most max_wait_s."""

    def __init__(self, max_wait_s: float):
        if max_wait_s <= 0:
            raise ValueError("max_wait_s must be > 0")
        self.max_wait_s = max_wait_s

    def compatible(
        self,
        pivot: Traveler,
        pivot_route: RouteSegment,
        candidate: Traveler,
        candidate_route: RouteSegment,
        meeting: Coordinate,
    ) -> bool:
        t_pivot = elapsed_to(pivot_route, meeting)
        t_candidate = elapsed_to(candidate_route, meeting)
        return abs(t_pivot - t_candidate) <= self.max_wait_s
