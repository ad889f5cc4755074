# rendezvous/policy/leader.py
from collections.abc import Sequence

from rendezvous.app.protocols import LeaderPolicy
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.state import RouteMap


class CarFirstLeaderPolicy(LeaderPolicy):
    """
    1st: the first CAR member (picking others up is cheapest for everyone).
    2nd: the routed member with the shortest total distance; ties by input order.
    """

    def select(self, group: Sequence[Traveler], routes: RouteMap) -> Traveler | None:
        if not group:
            return None
        for m in group:
            if m.mode is TravelMode.CAR:
                return m

        best: Traveler | None = None
        best_d = float("inf")
        for m in group:
            r = routes.get(m.id)
            if r is None or r.is_empty:
                continue
            if r.distance_m < best_d:
                best, best_d = m, r.distance_m
        return best
