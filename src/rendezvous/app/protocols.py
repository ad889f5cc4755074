from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from rendezvous.domain.entities.geography import Coordinate, RouteSegment
from rendezvous.domain.entities.traveler import Traveler, TravelMode
from rendezvous.domain.state import JoinedStyle, RouteMap

# place category codes understood by search_nearby
SUBWAY = "SW8"
CAFE = "CE7"
CONVENIENCE = "CS2"
RESTAURANT = "FD6"


@dataclass(frozen=True)
class Place:
    name: str
    coord: Coordinate
    address: str = ""
    category: str = ""


# ------------- External collaborators --------------------
@runtime_checkable
class RouteProvider(Protocol):
    """
    Responsibilities:
      • Return a route for (mode, origin, destination, option).
      • On transport/parsing failure return RouteSegment.empty(mode) instead of raising;
        only caller errors (e.g. missing destination) raise.
      • Look up named places around a coordinate, ranked by distance.
    Units: metres, seconds, currency minor units.
    """

    async def fetch_route(
        self,
        mode: TravelMode,
        origin: Coordinate,
        destination: Coordinate,
        option: int,
    ) -> RouteSegment: ...
    async def search_nearby(
        self, category_code: str, center: Coordinate, radius_m: int
    ) -> list[Place]: ...
    async def reverse_geocode(self, center: Coordinate) -> str | None: ...


@runtime_checkable
class Renderer(Protocol):
    """Side-effecting drawing surface; performs no computation."""

    def clear(self) -> None: ...
    def draw_path(self, points: Sequence[Coordinate], color: str) -> None: ...
    def draw_joined_path(self, points: Sequence[Coordinate], style: JoinedStyle) -> None: ...
    def fit_camera(self, points: Sequence[Coordinate]) -> None: ...


# --------------- Policies -------------------------


@runtime_checkable
class TimeCompatibilityPolicy(Protocol):
    """Decides whether two travelers can meet at a point time-wise."""

    def compatible(
        self,
        pivot: Traveler,
        pivot_route: RouteSegment,
        candidate: Traveler,
        candidate_route: RouteSegment,
        meeting: Coordinate,
    ) -> bool: ...


@runtime_checkable
class LeaderPolicy(Protocol):
    def select(self, group: Sequence[Traveler], routes: RouteMap) -> Traveler | None: ...


@runtime_checkable
class PlaceNamer(Protocol):
    async def name_for(self, coord: Coordinate) -> str: ...
