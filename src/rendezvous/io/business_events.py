# rendezvous/io/business_events.py

from dataclasses import dataclass
from typing import Literal


# Base type for analytics events emitted once per planning run
@dataclass
class BizEvent:
    run_id: str
    name: str  # stable event name


@dataclass
class RouteFetchedBiz(BizEvent):
    traveler_id: int
    mode: str
    distance_m: int
    duration_s: int
    fare: int = 0


@dataclass
class RouteUnavailableBiz(BizEvent):
    traveler_id: int
    mode: str
    reason: Literal["no_origin", "provider_error", "empty_route"]


@dataclass
class GroupFormedBiz(BizEvent):
    members: list[int]
    leader_id: int | None = None


@dataclass
class FollowerMatchedBiz(BizEvent):
    follower_id: int
    leader_id: int
    source: str
    meeting_name: str
    leader_index: int
    follower_index: int


@dataclass
class FollowerIndependentBiz(BizEvent):
    follower_id: int
    leader_id: int


@dataclass
class LateDepartureBiz(BizEvent):
    traveler_id: int
    late_by_min: int
