# core/hooks.py
from typing import Protocol


class PlannerHooks(Protocol):
    def run_start(self, *, travelers, with_origin, deadline): ...
    def route_fetched(self, *, traveler_id, mode, points, distance_m, duration_s, fare=0): ...
    def route_unavailable(self, *, traveler_id, mode, reason: str): ...
    def group_formed(self, *, members, leader_id): ...
    def follower_matched(
        self, *, follower_id, leader_id, source, name, leader_index=-1, follower_index=-1
    ): ...
    def follower_independent(self, *, follower_id, leader_id): ...
    def late_departure(self, *, traveler_id, late_by_min): ...
    def run_end(self, *, groups, wall_ms): ...
    def error(self, *, reason: str, **kw): ...


class NoopHooks:
    def run_start(self, **_):
        pass

    def route_fetched(self, **_):
        pass

    def route_unavailable(self, **_):
        pass

    def group_formed(self, **_):
        pass

    def follower_matched(self, **_):
        pass

    def follower_independent(self, **_):
        pass

    def late_departure(self, **_):
        pass

    def run_end(self, **_):
        pass

    def error(self, **_):
        pass
