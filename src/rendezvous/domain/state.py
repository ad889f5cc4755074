# rendezvous/domain/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from rendezvous.domain.entities.geography import BoundingBox, Coordinate, Leg, RouteSegment
from rendezvous.domain.entities.traveler import Traveler

MeetingSource = Literal["waypoint", "proximity", "shared_run"]
PlanRole = Literal["solo", "leader", "follower", "independent", "unroutable"]
JoinedStyle = Literal["transit", "emphasis"]

# route map keyed by traveler id
RouteMap = dict[int, RouteSegment]


@dataclass(frozen=True)
class Group:
    members: tuple[Traveler, ...]
    leader: Traveler | None = None
    routable: bool = True

    def __post_init__(self):
        if not self.members:
            raise ValueError("Group must have at least one member")

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1

    @property
    def member_ids(self) -> list[int]:
        return [m.id for m in self.members]

    @property
    def followers(self) -> list[Traveler]:
        if self.leader is None:
            return []
        return [m for m in self.members if m.id != self.leader.id]


@dataclass(frozen=True)
class MeetingPoint:
    coord: Coordinate
    name: str
    leader_index: int  # cut index into the leader's points
    follower_index: int  # cut index into the follower's points
    source: MeetingSource


@dataclass
class TravelerPlan:
    traveler_id: int
    role: PlanRole
    departure: datetime | None = None
    is_late: bool = False
    late_by_min: int = 0  # whole minutes; 0 when less than a minute late
    meeting: MeetingPoint | None = None
    meeting_time: datetime | None = None
    leader_id: int | None = None


@dataclass(frozen=True)
class JoinedPath:
    """Leader-path segment rendered in the "joined" style."""

    points: tuple[Coordinate, ...]
    style: JoinedStyle
    leader_id: int


@dataclass
class CalculationResult:
    narrative: str = ""
    traveler_logs: dict[int, str] = field(default_factory=dict)
    groups: list[Group] = field(default_factory=list)
    plans: dict[int, TravelerPlan] = field(default_factory=dict)

    # pre-meetup (own color) and post-meetup (borrowed from leader) points
    solo_paths: dict[int, list[Coordinate]] = field(default_factory=dict)
    joined_paths: dict[int, list[Coordinate]] = field(default_factory=dict)
    cut_indices: dict[int, int] = field(default_factory=dict)
    overlaps: list[JoinedPath] = field(default_factory=list)

    camera_points: list[Coordinate] = field(default_factory=list)
    routes: RouteMap = field(default_factory=dict)
    legs: dict[int, tuple[Leg, ...]] = field(default_factory=dict)

    @classmethod
    def no_travelers(cls, message: str) -> CalculationResult:
        return cls(narrative=message)

    @property
    def bounds(self) -> BoundingBox | None:
        return BoundingBox.around(self.camera_points)

    def group_ids(self) -> list[list[int]]:
        return [g.member_ids for g in self.groups]
